"""A scene: primitives, lights and the acceleration structure that answers ray queries."""

from __future__ import annotations

from .geometry import Ray
from .intersection import LocalGeo
from .primitive import Primitive, PrimitiveManager


class Scene:
    """Holds primitives and lights and answers intersection queries through a primitive manager."""

    def __init__(self, manager: PrimitiveManager | None = None):
        if manager is None:
            from .bvh import BVH

            manager = BVH()
        self._manager = manager
        self._prims: list[Primitive] = []
        self.lights: list = []

    def add_primitive(self, prim: Primitive) -> None:
        prim.scene = self
        self._prims.append(prim)

    def add_light(self, light) -> None:
        light.scene = self
        self.lights.append(light)

    def primitives(self) -> list[Primitive]:
        return list(self._prims)

    def construct(self) -> None:
        """Bake every primitive and build the acceleration structure; call after adding everything."""
        for prim in self._prims:
            prim.bake()
        self._manager.construct(self._prims)

    def intersect(self, ray: Ray) -> LocalGeo | None:
        """Closest hit along ``ray`` as a fresh hit record, shortening ``ray.t_max``; None on a miss."""
        hit = self._manager.intersect(ray)
        if hit is None:
            return None
        return LocalGeo(dist=hit.dist, prim=hit.prim, tri_id=hit.tri_id, uv=hit.uv)

    def post_intersect(self, ray: Ray, geom: LocalGeo) -> None:
        geom.prim.post_intersect(ray, geom)

    def occlude(self, ray: Ray) -> bool:
        return self._manager.occlude(ray)