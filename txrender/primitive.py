"""Scene primitives, emitter surface sampling and the primitive manager interface."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from bisect import bisect_right
from dataclasses import replace
from itertools import accumulate
from typing import Iterable

from .bsdf import BSDF, Sample
from .geometry import DynamicSceneObject, Ray, Transform, Vec3
from .intersection import Intersection, LocalGeo
from .mesh import SceneMesh


class MeshSampler:
    """Samples points uniformly by area over the triangles of a mesh."""

    def __init__(self, mesh: SceneMesh):
        self.mesh = mesh
        self.areas = [
            0.5 * (b - a).cross(c - a).length()
            for a, b, c in map(self._corners, range(mesh.triangle_count()))
        ]
        self.total_area = sum(self.areas)
        if self.total_area <= 0.0:
            raise ValueError("cannot sample a mesh without surface area")
        self.cdf = list(accumulate(self.areas))

    def _corners(self, tri_id: int) -> tuple[Vec3, Vec3, Vec3]:
        i0, i1, i2 = self.mesh.triangle_indices(tri_id)
        vertices = self.mesh.vertices
        return vertices[i0], vertices[i1], vertices[i2]

    def sample_point(self, sample: Sample) -> tuple[Vec3, int, Vec3]:
        """Pick a surface point; returns the point, its triangle and its surface normal."""
        target = sample.u * self.total_area
        tri_id = min(bisect_right(self.cdf, target), len(self.cdf) - 1)
        lower = self.cdf[tri_id - 1] if tri_id else 0.0
        area = self.areas[tri_id]
        u = (target - lower) / area if area > 0.0 else 0.0
        u = min(max(u, 0.0), 1.0)

        su = math.sqrt(u)
        b0 = 1.0 - su
        b1 = sample.v * su
        b2 = 1.0 - b0 - b1

        a, b, c = self._corners(tri_id)
        point = a * b0 + b * b1 + c * b2

        i0, i1, i2 = self.mesh.triangle_indices(tri_id)
        normals = self.mesh.normals
        try:
            normal = (normals[i0] * b0 + normals[i1] * b1 + normals[i2] * b2).normalized()
        except ValueError:
            normal = (b - a).cross(c - a).normalized()
        return point, tri_id, normal

    def pdf(self, tri_id: int, ray: Ray) -> float:
        """Solid-angle density of reaching triangle ``tri_id`` along ``ray``; 0 if it misses."""
        a, b, c = self._corners(tri_id)
        edge1, edge2 = b - a, c - a
        p = ray.direction.cross(edge2)
        det = edge1.dot(p)
        if det == 0.0:
            return 0.0
        inv_det = 1.0 / det
        t_vec = ray.origin - a
        u = t_vec.dot(p) * inv_det
        if u < 0.0 or u > 1.0:
            return 0.0
        q = t_vec.cross(edge1)
        v = ray.direction.dot(q) * inv_det
        if v < 0.0 or u + v > 1.0:
            return 0.0
        t = edge2.dot(q) * inv_det
        if not ray.t_min < t < ray.t_max:
            return 0.0
        normal = edge1.cross(edge2)
        cos = abs(normal.dot(ray.direction)) / normal.length()
        if cos == 0.0:
            return 0.0
        return t * t / (cos * self.total_area)


class Primitive(DynamicSceneObject):
    """A mesh with a material, optionally acting as the surface of an area light."""

    def __init__(self, mesh: SceneMesh, bsdf: BSDF):
        super().__init__()
        self.mesh = replace(mesh)
        self.bsdf = bsdf
        self.area_light = None
        self.mesh_sampler: MeshSampler | None = None

    def bake(self) -> "Primitive":
        """Apply the transform to the mesh and prepare emitter sampling if needed."""
        self.mesh.apply_transform(self.transform)
        self.transform = Transform()
        if self.area_light is not None:
            self.mesh_sampler = MeshSampler(self.mesh)
        return self

    def post_intersect(self, ray: Ray, geom: LocalGeo) -> None:
        geom.point = ray.end()
        geom.bsdf = self.bsdf
        self.mesh.post_intersect(geom)

    def _sampler(self) -> MeshSampler:
        if self.mesh_sampler is None:
            raise RuntimeError("primitive has not been baked as a light emitter")
        return self.mesh_sampler

    def pdf(self, tri_id: int, eye: Vec3, direction: Vec3) -> float:
        return self._sampler().pdf(tri_id, Ray(eye, direction))

    def sample_point(self, sample: Sample) -> tuple[Vec3, int, Vec3]:
        return self._sampler().sample_point(sample)


class PrimitiveManager(ABC):
    """Acceleration structure answering ray queries over a list of primitives."""

    def __init__(self) -> None:
        self.prims: list[Primitive] = []

    def construct(self, prims: Iterable[Primitive]) -> None:
        self.prims = list(prims)
        self.build()

    @abstractmethod
    def intersect(self, ray: Ray) -> Intersection | None:
        """Closest hit along ``ray`` (shortening ``ray.t_max``), or None."""

    @abstractmethod
    def occlude(self, ray: Ray) -> bool:
        """Whether anything blocks ``ray``."""

    @abstractmethod
    def build(self) -> None:
        """Build the structure from ``self.prims``."""