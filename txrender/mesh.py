"""Triangle meshes as used by scene primitives."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce

from .geometry import BBox, Transform, Vec3


@dataclass
class SceneMesh:
    """Indexed triangle mesh with per-vertex normals."""

    vertices: list[Vec3] = field(default_factory=list)
    normals: list[Vec3] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.vertices = list(self.vertices)
        self.normals = list(self.normals)
        self.indices = list(self.indices)
        if len(self.indices) % 3:
            raise ValueError("index count must be a multiple of three")
        if len(self.normals) != len(self.vertices):
            raise ValueError("every vertex needs exactly one normal")
        count = len(self.vertices)
        if any(not 0 <= i < count for i in self.indices):
            raise ValueError("triangle index refers to a missing vertex")

    def vertex_count(self) -> int:
        return len(self.vertices)

    def triangle_count(self) -> int:
        return len(self.indices) // 3

    def triangle_indices(self, tri_id: int) -> tuple[int, int, int]:
        if not 0 <= tri_id < self.triangle_count():
            raise IndexError(f"triangle {tri_id} out of range")
        a, b, c = self.indices[3 * tri_id: 3 * tri_id + 3]
        return a, b, c

    def bounds(self) -> BBox:
        return reduce(BBox.union, self.vertices, BBox())

    def apply_transform(self, transform: Transform) -> None:
        self.vertices = [transform.apply_point(v) for v in self.vertices]
        self.normals = [transform.apply_normal(n) for n in self.normals]

    def post_intersect(self, geom) -> None:
        """Set ``geom.normal`` by interpolating vertex normals at its barycentric coordinates."""
        i0, i1, i2 = self.triangle_indices(geom.tri_id)
        u, v = geom.uv
        geom.normal = (
            self.normals[i0] * (1.0 - u - v)
            + self.normals[i1] * u
            + self.normals[i2] * v
        )