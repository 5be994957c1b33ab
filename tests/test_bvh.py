import math

import pytest

from txrender.bsdf import Diffuse
from txrender.bvh import BVH, BuildTri, SplitMethod, Tri4, intersect_bounds
from txrender.geometry import BBox, Ray, Vec3
from txrender.mesh import SceneMesh
from txrender.primitive import Primitive


def grid_mesh(n, z):
    verts = [Vec3(float(i), float(j), z) for j in range(n + 1) for i in range(n + 1)]
    normals = [Vec3.Z] * len(verts)
    indices = []
    for j in range(n):
        for i in range(n):
            a = j * (n + 1) + i
            b = a + 1
            c = a + n + 2
            d = a + n + 1
            indices += [a, b, c, a, c, d]
    return SceneMesh(verts, normals, indices)


def make_bvh(prims, method=SplitMethod.MIDDLE_CUT):
    bvh = BVH(method)
    bvh.construct(prims)
    return bvh


def single_tri4(z=0.0, prim_id=0, tri_id=0):
    tri = BuildTri(0, 1, 2, prim_id, tri_id)
    corners = (Vec3(0, 0, z), Vec3(1, 0, z), Vec3(0, 1, z))
    return Tri4([(corners, tri)])


def down_ray(x, y, z=5.0):
    return Ray(Vec3(x, y, z), Vec3(0, 0, -1))


def unit_box():
    return BBox(Vec3(0, 0, 0), Vec3(1, 1, 1))


def slab_args(ray):
    inv = Vec3(*(math.copysign(math.inf, c) if c == 0 else 1.0 / c for c in ray.direction))
    return inv, tuple(int(c >= 0) for c in inv)


def test_intersect_bounds_hits_box_ahead():
    ray = Ray(Vec3(0.5, 0.5, -1), Vec3(0, 0, 1))
    inv, sign = slab_args(ray)
    assert intersect_bounds(unit_box(), ray, inv, sign) is True


def test_intersect_bounds_misses_box_behind():
    ray = Ray(Vec3(0.5, 0.5, -1), Vec3(0, 0, -1))
    inv, sign = slab_args(ray)
    assert intersect_bounds(unit_box(), ray, inv, sign) is False


def test_intersect_bounds_respects_ray_range():
    ray = Ray(Vec3(0.5, 0.5, -3), Vec3(0, 0, 1), t_max=1.0)
    inv, sign = slab_args(ray)
    assert intersect_bounds(unit_box(), ray, inv, sign) is False


def test_tri4_intersect_reports_hit_and_shortens_ray():
    prims = ["only"]
    ray = down_ray(0.2, 0.3)
    hit = single_tri4().intersect(ray, prims)
    assert hit.dist == pytest.approx(5.0)
    assert hit.prim == "only"
    assert hit.uv == pytest.approx((0.2, 0.3))
    assert ray.t_max == pytest.approx(hit.dist)


def test_tri4_miss_leaves_ray_untouched():
    ray = down_ray(0.8, 0.8)
    assert single_tri4().intersect(ray, ["only"]) is None
    assert ray.t_max == math.inf


def test_tri4_picks_closest_triangle():
    tris = [
        ((Vec3(0, 0, z), Vec3(1, 0, z), Vec3(0, 1, z)), BuildTri(0, 1, 2, 0, index))
        for index, z in enumerate([0.0, 2.0, 1.0])
    ]
    ray = down_ray(0.2, 0.2)
    hit = Tri4(tris).intersect(ray, ["p"])
    assert hit.tri_id == 1
    assert hit.dist == pytest.approx(3.0)


def test_tri4_rejects_more_than_four():
    tri = ((Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(0, 1, 0)), BuildTri(0, 1, 2, 0, 0))
    with pytest.raises(ValueError):
        Tri4([tri] * 5)


def test_tri4_occlude_within_and_beyond_segment():
    tri4 = single_tri4()
    blocked = Ray()
    blocked.set_segment(Vec3(0.2, 0.2, 1), Vec3(0.2, 0.2, -1))
    clear = Ray()
    clear.set_segment(Vec3(0.2, 0.2, 3), Vec3(0.2, 0.2, 1))
    assert tri4.occlude(blocked) is True
    assert tri4.occlude(clear) is False


def test_empty_bvh_finds_nothing():
    bvh = make_bvh([])
    assert bvh.intersect(down_ray(0, 0)) is None
    assert bvh.occlude(down_ray(0, 0)) is False


def test_bvh_hits_plane_primitive():
    prim = Primitive(grid_mesh(1, 0.0), Diffuse())
    bvh = make_bvh([prim])
    hit = bvh.intersect(down_ray(0.2, 0.7))
    assert hit.prim is prim
    assert hit.dist == pytest.approx(5.0)
    assert hit.tri_id in (0, 1)


@pytest.mark.parametrize("method", list(SplitMethod))
def test_bvh_grid_hits_correct_triangle(method):
    n = 8
    prim = Primitive(grid_mesh(n, 0.0), Diffuse())
    bvh = make_bvh([prim], method)
    for i, j in [(0, 0), (3, 5), (7, 7), (6, 1)]:
        x, y = i + 0.3, j + 0.6
        hit = bvh.intersect(down_ray(x, y))
        assert hit.dist == pytest.approx(5.0)
        corners = [prim.mesh.vertices[k] for k in prim.mesh.triangle_indices(hit.tri_id)]
        assert min(c.x for c in corners) <= x <= max(c.x for c in corners)
        assert min(c.y for c in corners) <= y <= max(c.y for c in corners)


@pytest.mark.parametrize("method", list(SplitMethod))
def test_bvh_returns_nearest_of_stacked_primitives(method):
    prims = [Primitive(grid_mesh(4, z), Diffuse()) for z in (0.0, 2.0, 1.0)]
    bvh = make_bvh(prims, method)
    hit = bvh.intersect(down_ray(1.4, 2.7))
    assert hit.prim is prims[1]
    assert hit.dist == pytest.approx(3.0)
    up = bvh.intersect(Ray(Vec3(1.4, 2.7, -5), Vec3(0, 0, 1)))
    assert up.prim is prims[0]


def test_split_methods_agree():
    prims = [Primitive(grid_mesh(5, z), Diffuse()) for z in (0.0, -1.5)]
    hits = [
        make_bvh(prims, method).intersect(Ray(Vec3(2.2, 3.9, 4), Vec3(0.1, -0.2, -1)))
        for method in SplitMethod
    ]
    assert len(hits) == len(SplitMethod)
    first = hits[0]
    assert first.prim is prims[0]
    assert all(hit.prim is prims[0] for hit in hits)
    assert [hit.dist for hit in hits] == pytest.approx([first.dist] * len(hits))


def test_bvh_occlude_segment():
    bvh = make_bvh([Primitive(grid_mesh(4, 0.0), Diffuse())])
    through = Ray()
    through.set_segment(Vec3(1.3, 1.6, 2), Vec3(1.3, 1.6, -2))
    short = Ray()
    short.set_segment(Vec3(1.3, 1.6, 2), Vec3(1.3, 1.6, 0.5))
    assert bvh.occlude(through) is True
    assert bvh.occlude(short) is False


def test_bvh_miss_outside_grid():
    bvh = make_bvh([Primitive(grid_mesh(4, 0.0), Diffuse())])
    assert bvh.intersect(down_ray(10.0, 10.0)) is None


def test_concentric_triangles_give_first_triangle():
    verts = [Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(0, 1, 0)]
    mesh = SceneMesh(verts, [Vec3.Z] * 3, [0, 1, 2] * 20)
    bvh = make_bvh([Primitive(mesh, Diffuse())])
    hit = bvh.intersect(down_ray(0.25, 0.25))
    assert hit.tri_id == 0
    assert hit.dist == pytest.approx(5.0)


def test_rebuild_after_new_primitives():
    bvh = make_bvh([Primitive(grid_mesh(2, 0.0), Diffuse())])
    other = Primitive(grid_mesh(2, 1.0), Diffuse())
    bvh.construct([other])
    hit = bvh.intersect(down_ray(0.5, 1.2))
    assert hit.prim is other
    assert hit.dist == pytest.approx(4.0)