"""Ray tracing core: geometry, meshes, BSDFs, lights, a BVH, scenes, integrators and tiling."""

__version__ = "0.1.0"