"""Ray/surface hit records and the local shading frame."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from .geometry import Color, Ray, Vec3


@dataclass(eq=False)
class Intersection:
    """Where a ray hit: distance, primitive, triangle and barycentric coordinates."""

    dist: float = math.inf
    prim: Any = None
    tri_id: int = 0
    uv: tuple[float, float] = (0.0, 0.0)


@dataclass(eq=False)
class LocalGeo(Intersection):
    """Hit record extended with surface point, normal, BSDF and a local frame (u, v, normal)."""

    bsdf: Any = None
    point: Vec3 = Vec3(0.0, 0.0, 0.0)
    normal: Vec3 = Vec3(0.0, 0.0, 0.0)
    u: Vec3 = Vec3(0.0, 0.0, 0.0)
    v: Vec3 = Vec3(0.0, 0.0, 0.0)

    def emit(self, wo: Vec3) -> Color:
        """Radiance leaving this point towards ``wo`` if the primitive carries an area light."""
        light = self.prim.area_light if self.prim is not None else None
        if light is None:
            return Color.BLACK
        return light.emit(self.point, self.normal, wo)

    def compute_differentials(self, ray: Ray) -> None:
        helper = Vec3.Y if abs(self.normal.x) > 0.1 else Vec3.X
        self.u = helper.cross(self.normal).normalized()
        self.v = self.normal.cross(self.u)

    def _check_frame(self) -> None:
        if self.u == self.v:
            raise ValueError("local frame has not been computed")

    def world_to_local(self, vec: Vec3) -> Vec3:
        self._check_frame()
        return Vec3(vec.dot(self.u), vec.dot(self.v), vec.dot(self.normal))

    def local_to_world(self, vec: Vec3) -> Vec3:
        self._check_frame()
        return self.u * vec.x + self.v * vec.y + self.normal * vec.z