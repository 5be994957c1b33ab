import pytest

from txrender.bsdf import Diffuse, Sample
from txrender.geometry import Ray, Vec3
from txrender.intersection import LocalGeo
from txrender.mesh import SceneMesh
from txrender.primitive import MeshSampler, Primitive, PrimitiveManager


def square_mesh():
    return SceneMesh(
        vertices=[Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(1, 1, 0), Vec3(0, 1, 0)],
        normals=[Vec3.Z] * 4,
        indices=[0, 1, 2, 0, 2, 3],
    )


def emitter():
    prim = Primitive(square_mesh(), Diffuse())
    prim.area_light = object()
    return prim.bake()


def test_primitive_copies_mesh():
    mesh = square_mesh()
    prim = Primitive(mesh, Diffuse())
    mesh.vertices[0] = Vec3(9, 9, 9)
    assert prim.mesh.vertices[0] == Vec3(0, 0, 0)


def test_bake_applies_and_resets_transform():
    prim = Primitive(square_mesh(), Diffuse())
    prim.transform.translate(0, 0, 2)
    prim.bake()
    assert all(v.z == 2 for v in prim.mesh.vertices)
    assert prim.transform.position == Vec3(0, 0, 0)
    assert prim.mesh_sampler is None


def test_pdf_requires_emitter():
    prim = Primitive(square_mesh(), Diffuse()).bake()
    with pytest.raises(RuntimeError):
        prim.pdf(0, Vec3(0.75, 0.25, 1), Vec3(0, 0, -1))
    with pytest.raises(RuntimeError):
        prim.sample_point(Sample())


@pytest.mark.parametrize("u,expected_tri", [(0.25, 0), (0.75, 1)])
def test_sample_point_lies_on_chosen_triangle(u, expected_tri):
    prim = emitter()
    point, tri_id, normal = prim.sample_point(Sample(u, 0.4, 0.0))
    assert tri_id == expected_tri
    assert point.z == 0
    assert 0 <= point.x <= 1 and 0 <= point.y <= 1
    if tri_id == 0:
        assert point.x >= point.y
    else:
        assert point.y >= point.x
    assert normal == Vec3.Z


def test_pdf_of_head_on_hit():
    prim = emitter()
    assert prim.pdf(0, Vec3(0.75, 0.25, 1), Vec3(0, 0, -1)) == pytest.approx(1.0)


def test_pdf_grows_with_squared_distance():
    prim = emitter()
    near = prim.pdf(0, Vec3(0.75, 0.25, 1), Vec3(0, 0, -1))
    far = prim.pdf(0, Vec3(0.75, 0.25, 2), Vec3(0, 0, -1))
    assert far == pytest.approx(4 * near)


def test_pdf_is_zero_on_miss():
    prim = emitter()
    assert prim.pdf(0, Vec3(0.25, 0.75, 1), Vec3(0, 0, -1)) == 0.0
    assert prim.pdf(0, Vec3(0.75, 0.25, 1), Vec3(0, 0, 1)) == 0.0


def test_post_intersect_fills_geometry():
    prim = Primitive(square_mesh(), Diffuse()).bake()
    ray = Ray(Vec3(0.75, 0.25, 1), Vec3(0, 0, -1))
    ray.t_max = 1.0
    geom = LocalGeo(prim=prim, tri_id=0, uv=(0.5, 0.25))
    prim.post_intersect(ray, geom)
    assert geom.point == Vec3(0.75, 0.25, 0)
    assert geom.normal == Vec3.Z
    assert geom.bsdf is prim.bsdf


def test_mesh_sampler_rejects_flat_mesh():
    mesh = SceneMesh(
        vertices=[Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(2, 0, 0)],
        normals=[Vec3.Z] * 3,
        indices=[0, 1, 2],
    )
    with pytest.raises(ValueError):
        MeshSampler(mesh)


def test_mesh_sampler_total_area_matches_areas():
    sampler = MeshSampler(square_mesh())
    assert sum(sampler.areas) == pytest.approx(sampler.total_area)
    assert sampler.cdf[-1] == pytest.approx(sampler.total_area)


class _RecordingManager(PrimitiveManager):
    def __init__(self):
        super().__init__()
        self.built_with = None

    def build(self):
        self.built_with = list(self.prims)

    def intersect(self, ray):
        return None

    def occlude(self, ray):
        return False


def test_construct_stores_prims_and_builds():
    prims = [Primitive(square_mesh(), Diffuse()), Primitive(square_mesh(), Diffuse())]
    manager = _RecordingManager()
    manager.construct(prims)
    assert manager.built_with == prims


def test_primitive_manager_is_abstract():
    with pytest.raises(TypeError):
        PrimitiveManager()