# txrender

txrender is the core of a small physically based ray tracer in pure Python. It
uses only the standard library. It does not depend on any other package.

## What is in it

- **`txrender.geometry`** holds the basic value types.
  - `Vec3` is an immutable vector. It has `dot`, `cross`, `length` and `normalized`.
  - `Color` is an RGBA colour. It has `luminance` and `clamp`. Its arithmetic acts on RGB and keeps alpha.
  - `Ray` keeps its direction at unit length. It has `end` and `set_segment`.
  - `BBox` is an axis-aligned bounding box. It has `union`, `centroid` and `maximum_extent`.
  - `Transform` holds a translation and a per-axis scale. It has `translate`, `scale`, `apply_point` and `apply_normal`.
  - `SceneObject` and `DynamicSceneObject` are base classes for things in a scene.
- **`txrender.mesh`** defines `SceneMesh`, an indexed triangle mesh with one normal per vertex.
  - `post_intersect` sets the normal at a hit by interpolating the vertex normals with barycentric weights.
- **`txrender.intersection`** defines two hit records.
  - `Intersection` holds the hit distance, the primitive, the triangle id and the barycentric `uv`.
  - `LocalGeo` extends it with the surface point, the normal, the BSDF and a local frame.
  - `LocalGeo` has `compute_differentials`, `world_to_local`, `local_to_world` and `emit`.
- **`txrender.bsdf`** defines the scattering functions.
  - `Diffuse` is Lambertian and uses cosine-weighted sampling.
  - `Mirror` is a perfect specular reflector.
  - `Dielectric` is smooth glass with Fresnel reflection and Snell refraction.
  - Every BSDF has `eval`, `pdf` and `sample_direct`. `sample_direct` returns a `BSDFSample`.
  - Every BSDF also has rough Phong-style values: `ambient`, `diffuse`, `specular` and `shininess`.
  - The module also has the helpers `cos_theta`, `sin_theta`, `tan_theta`, `cos_phi`, `same_hemisphere` and others.
- **`txrender.primitive`** defines the scene's shapes.
  - A `Primitive` pairs its own copy of a mesh with a BSDF.
  - `bake()` bakes the transform into the mesh. It also creates a `MeshSampler` if the primitive carries an area light.
  - `MeshSampler` picks surface points uniformly by area. It gives the solid-angle pdf of a ray reaching a triangle.
  - `PrimitiveManager` is the abstract acceleration-structure interface.
- **`txrender.lights`** defines the lights.
  - `AreaLight` emits from the front of a primitive's surface.
  - `PointLight` fades to zero at its `radius`.
  - `DirectionalLight` shines from one fixed direction.
  - `sample_direct` returns a `LightSample`, which holds the shadow ray, the colour and the pdf.
- **`txrender.bvh`** defines the `BVH` accelerator.
  - The tree is flattened into a depth-first array. Each leaf holds triangles packed four at a time as `Tri4`.
  - `SplitMethod.MIDDLE_CUT` is the default. It falls back to an equal-count split when one side would be empty.
  - `SplitMethod.EQUAL_COUNT` is also supported.
  - `SplitMethod.SAH` splits at the middle index without reordering.
- **`txrender.scene`** defines `Scene`, which holds primitives and lights.
  - `construct()` bakes every primitive and builds the manager. The manager is a `BVH` unless you give another one.
  - `intersect` returns a `LocalGeo` or `None`. `occlude` tests for a blocker.
- **`txrender.tracers`** defines the integrators and the settings that choose them.
  - `DirectLighting` gathers direct light from every light with multiple importance sampling. It follows perfect specular reflection and transmission recursively.
  - `PathTracing` adds next-event estimation and Russian roulette after the third bounce.
  - `RandomSampler` fills a `CameraSample` with uniform random numbers.
  - `RendererConfig` chooses the integrator (`RenderMethod`) and the sampler (`SamplerType`).
- **`txrender.tiles`** splits an image into tiles for worker threads.
  - `Synchronizer` cuts an image into 64×64 `RenderTile`s.
  - Workers take tiles from it with `next_tile`.
  - Workers wait for each other between sample frames with `pre_render_sync` and `post_render_sync`. Both return `False` if `abort()` is called while a worker waits.

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install ".[test]"
```

## Example

This example traces one ray at a floor lit by a lamp above it:

```python
import random

from txrender.bsdf import Diffuse
from txrender.geometry import Color, Ray, Vec3
from txrender.lights import AreaLight
from txrender.mesh import SceneMesh
from txrender.primitive import Primitive
from txrender.scene import Scene
from txrender.tracers import CameraSample, RendererConfig, RenderMethod

corners = [Vec3(-1, -1, 0), Vec3(1, -1, 0), Vec3(1, 1, 0), Vec3(-1, 1, 0)]
floor_mesh = SceneMesh(corners, [Vec3.Z] * 4, [0, 1, 2, 0, 2, 3])
lamp_mesh = SceneMesh(corners, [-Vec3.Z] * 4, [0, 2, 1, 0, 3, 2])

floor = Primitive(floor_mesh, Diffuse(Color(0.8)))
floor.transform.scale(5, 5, 1)

lamp = Primitive(lamp_mesh, Diffuse(Color.BLACK))
lamp.transform.translate(0, 0, 3)
light = AreaLight(Color(9.0), lamp)

scene = Scene()                 # uses a BVH by default
scene.add_primitive(floor)
scene.add_primitive(lamp)
scene.add_light(light)
scene.construct()

config = RendererConfig(samples_per_pixel=4, tracer_t=RenderMethod.PATH_TRACING,
                        tracer_maxdepth=5)
tracer = config.new_method()
sampler = config.new_sampler()

samples = CameraSample()
tracer.bake_samples(scene, samples)   # once, before tracing
rng = random.Random(1)

sampler.get_samples(samples)
ray = Ray(Vec3(0, 0, 1), Vec3(0, 0, -1))
color = tracer.trace(scene, ray, samples, rng)
```

`PathTracing.li` raises `RuntimeError` if `bake_samples` has not been called.

## What it does not do

txrender computes the radiance along rays you give it. It does not do the following:

- It has no camera model that turns pixels into rays.
- It has no film or image buffer, and it writes no image files.
- It has no loader for scene or mesh files.
- It has no render loop that runs worker threads over the tiles. `Synchronizer` only coordinates such workers.
- It has no preview window or other user interface.
- It installs no command-line program.

## Tests

```
pytest
```