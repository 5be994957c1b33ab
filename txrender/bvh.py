"""Bounding volume hierarchy over triangle meshes, with triangles packed four to a leaf entry."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Iterable, Iterator, Sequence

from .geometry import BBox, Ray, Vec3
from .intersection import Intersection
from .primitive import Primitive, PrimitiveManager

TRIS_PER_PACK = 4


class SplitMethod(Enum):
    """How an interior node divides its triangles between its two children."""

    SAH = "sah"
    MIDDLE_CUT = "middle_cut"
    EQUAL_COUNT = "equal_count"


@dataclass(frozen=True)
class BuildTri:
    """A triangle during construction: global vertex indices plus where it came from."""

    idx0: int
    idx1: int
    idx2: int
    prim_id: int
    tri_id: int


@dataclass(frozen=True)
class _PackedTri:
    vert0: Vec3
    edge1: Vec3
    edge2: Vec3
    prim_id: int
    tri_id: int


class Tri4:
    """Up to four triangles tested against a ray together (Moller-Trumbore)."""

    def __init__(self, triangles: Iterable[tuple[Sequence[Vec3], BuildTri]]):
        packed = []
        for (v0, v1, v2), tri in triangles:
            packed.append(_PackedTri(v0, v1 - v0, v2 - v0, tri.prim_id, tri.tri_id))
        if len(packed) > TRIS_PER_PACK:
            raise ValueError(f"a Tri4 holds at most {TRIS_PER_PACK} triangles, got {len(packed)}")
        self.triangles: tuple[_PackedTri, ...] = tuple(packed)

    def __len__(self) -> int:
        return len(self.triangles)

    def _candidates(self, ray: Ray) -> Iterator[tuple[float, float, float, _PackedTri]]:
        """Yield (t, u, v, triangle) for every triangle whose plane hit lies inside it."""
        direction, origin = ray.direction, ray.origin
        for tri in self.triangles:
            p = direction.cross(tri.edge2)
            det = tri.edge1.dot(p)
            if det == 0.0:
                continue
            inv_det = 1.0 / det
            t_vec = origin - tri.vert0
            u = t_vec.dot(p) * inv_det
            if not 0.0 < u < 1.0:
                continue
            q = t_vec.cross(tri.edge1)
            v = direction.dot(q) * inv_det
            if not (v > 0.0 and u + v < 1.0):
                continue
            yield tri.edge2.dot(q) * inv_det, u, v, tri

    def intersect(self, ray: Ray, prims: Sequence[Primitive]) -> Intersection | None:
        """Closest hit inside the ray's range; shortens ``ray.t_max`` to it."""
        best = None
        for candidate in self._candidates(ray):
            t = candidate[0]
            if ray.t_min < t < ray.t_max and (best is None or t < best[0]):
                best = candidate
        if best is None:
            return None
        t, u, v, tri = best
        ray.t_max = t
        return Intersection(dist=t, prim=prims[tri.prim_id], tri_id=tri.tri_id, uv=(u, v))

    def occlude(self, ray: Ray) -> bool:
        """Whether the nearest triangle hit along the ray's line lies within its range."""
        nearest = min((c[0] for c in self._candidates(ray)), default=None)
        if nearest is None:
            return False
        return ray.t_min <= nearest <= ray.t_max


def intersect_bounds(bounds: BBox, ray: Ray, inv_dir: Vec3, dir_sign: Sequence[int]) -> bool:
    """Slab test of ``ray`` against ``bounds``; ``dir_sign[i]`` is 1 where ``inv_dir[i] >= 0``."""
    sx, sy, sz = dir_sign
    t_min = (bounds[1 - sx].x - ray.origin.x) * inv_dir.x
    t_max = (bounds[sx].x - ray.origin.x) * inv_dir.x
    ty_min = (bounds[1 - sy].y - ray.origin.y) * inv_dir.y
    ty_max = (bounds[sy].y - ray.origin.y) * inv_dir.y
    if t_min > ty_max or ty_min > t_max:
        return False
    if ty_min > t_min:
        t_min = ty_min
    if ty_max < t_max:
        t_max = ty_max

    tz_min = (bounds[1 - sz].z - ray.origin.z) * inv_dir.z
    tz_max = (bounds[sz].z - ray.origin.z) * inv_dir.z
    if t_min > tz_max or tz_min > t_max:
        return False
    if tz_min > t_min:
        t_min = tz_min
    if tz_max < t_max:
        t_max = tz_max
    return t_min < ray.t_max and t_max > ray.t_min


def _reciprocal(value: float) -> float:
    if value == 0.0:
        return math.copysign(math.inf, value)
    return 1.0 / value


@dataclass
class _BuildData:
    id: int
    bbox: BBox
    centroid: Vec3 = field(init=False)

    def __post_init__(self) -> None:
        self.centroid = self.bbox.centroid()


@dataclass
class _BuildNode:
    bounds: BBox
    axis: int = 0
    tri4s: list[Tri4] = field(default_factory=list)
    children: tuple["_BuildNode", "_BuildNode"] | None = None


@dataclass
class _LinearNode:
    bounds: BBox
    axis: int
    prim_count: int
    offset: int = 0  # first Tri4 for a leaf, second child for an interior node


class BVH(PrimitiveManager):
    """Bounding volume hierarchy flattened into a depth-first node array."""

    def __init__(self, split: SplitMethod = SplitMethod.MIDDLE_CUT, max_tris_per_node: int = 128):
        super().__init__()
        self.method = split
        self.max_tris_per_node = max_tris_per_node
        self._build_verts: list[Vec3] = []
        self._build_tris: list[BuildTri] = []
        self._nodes: list[_LinearNode] = []
        self._tri4s: list[Tri4] = []
        self._prim_count = 0

    def build(self) -> None:
        self._refine_geometry()
        self._nodes = []
        self._tri4s = []
        self._prim_count = 0
        if not self._build_tris:
            return
        verts = self._build_verts
        data = [
            _BuildData(tri_index, BBox().union(verts[t.idx0]).union(verts[t.idx1]).union(verts[t.idx2]))
            for tri_index, t in enumerate(self._build_tris)
        ]
        root = self._recursive_build(data, 0, len(data))
        self._flatten(root)

    def _refine_geometry(self) -> None:
        self._build_verts = []
        self._build_tris = []
        for prim_id, prim in enumerate(self.prims):
            mesh = prim.mesh
            base = len(self._build_verts)
            for tri_id in range(mesh.triangle_count()):
                i0, i1, i2 = mesh.triangle_indices(tri_id)
                self._build_tris.append(BuildTri(base + i0, base + i1, base + i2, prim_id, tri_id))
            self._build_verts.extend(mesh.vertices)

    def _make_leaf(self, data: list[_BuildData], start: int, end: int) -> _BuildNode:
        verts = self._build_verts
        segment = data[start:end]
        tri4s = []
        for chunk_start in range(0, len(segment), TRIS_PER_PACK):
            chunk = segment[chunk_start:chunk_start + TRIS_PER_PACK]
            tris = [self._build_tris[d.id] for d in chunk]
            tri4s.append(Tri4(((verts[t.idx0], verts[t.idx1], verts[t.idx2]), t) for t in tris))
        bounds = reduce(BBox.union, (d.bbox for d in segment), BBox())
        self._prim_count += len(tri4s)
        return _BuildNode(bounds=bounds, tri4s=tri4s)

    def _make_interior(self, data: list[_BuildData], start: int, mid: int, end: int, axis: int) -> _BuildNode:
        first = self._recursive_build(data, start, mid)
        second = self._recursive_build(data, mid, end)
        return _BuildNode(bounds=first.bounds.union(second.bounds), axis=axis, children=(first, second))

    def _recursive_build(self, data: list[_BuildData], start: int, end: int) -> _BuildNode:
        if start == end:
            raise ValueError("cannot build a node without triangles")
        tri_count = end - start
        tri4_count = (tri_count + TRIS_PER_PACK - 1) // TRIS_PER_PACK
        if tri4_count == 1:
            return self._make_leaf(data, start, end)

        centroid_bounds = reduce(BBox.union, (d.centroid for d in data[start:end]), BBox())
        dim = centroid_bounds.maximum_extent()
        mid = (start + end) // 2

        if centroid_bounds.max[dim] == centroid_bounds.min[dim]:
            if self._prim_count <= self.max_tris_per_node:
                return self._make_leaf(data, start, end)
            return self._make_interior(data, start, mid, end, dim)

        if self.method is SplitMethod.MIDDLE_CUT:
            midpoint = 0.5 * (centroid_bounds.min[dim] + centroid_bounds.max[dim])
            segment = data[start:end]
            left = [d for d in segment if d.centroid[dim] < midpoint]
            right = [d for d in segment if not d.centroid[dim] < midpoint]
            data[start:end] = left + right
            mid = start + len(left)
            if mid in (start, end):
                mid = self._equal_count(data, start, end, dim)
        elif self.method is SplitMethod.EQUAL_COUNT:
            mid = self._equal_count(data, start, end, dim)

        return self._make_interior(data, start, mid, end, dim)

    @staticmethod
    def _equal_count(data: list[_BuildData], start: int, end: int, dim: int) -> int:
        data[start:end] = sorted(data[start:end], key=lambda d: d.centroid[dim])
        return (start + end) // 2

    def _flatten(self, node: _BuildNode) -> int:
        offset = len(self._nodes)
        linear = _LinearNode(node.bounds, node.axis, len(node.tri4s))
        self._nodes.append(linear)
        if node.tri4s:
            linear.offset = len(self._tri4s)
            self._tri4s.extend(node.tri4s)
        else:
            first, second = node.children
            self._flatten(first)
            linear.offset = self._flatten(second)
        return offset

    def _leaf_packs(self, ray: Ray) -> Iterator[Tri4]:
        """Yield the packed triangles of every leaf whose box the ray reaches, near child first."""
        if not self._nodes:
            return
        inv_dir = Vec3(*(_reciprocal(c) for c in ray.direction))
        dir_sign = tuple(int(c >= 0) for c in inv_dir)
        stack: list[int] = []
        node_id = 0
        while True:
            node = self._nodes[node_id]
            if intersect_bounds(node.bounds, ray, inv_dir, dir_sign):
                if not node.prim_count:
                    if dir_sign[node.axis]:
                        stack.append(node.offset)
                        node_id += 1
                    else:
                        stack.append(node_id + 1)
                        node_id = node.offset
                    continue
                yield from self._tri4s[node.offset:node.offset + node.prim_count]
            if not stack:
                return
            node_id = stack.pop()

    def intersect(self, ray: Ray) -> Intersection | None:
        hit = None
        for pack in self._leaf_packs(ray):
            found = pack.intersect(ray, self.prims)
            if found is not None:
                hit = found
        return hit

    def occlude(self, ray: Ray) -> bool:
        return any(pack.occlude(ray) for pack in self._leaf_packs(ray))