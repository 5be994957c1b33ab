import pytest

from txrender.bsdf import Diffuse, Sample
from txrender.geometry import Color, Vec3
from txrender.intersection import Intersection
from txrender.lights import AreaLight, DirectionalLight, Light, PointLight
from txrender.mesh import SceneMesh
from txrender.primitive import Primitive


def square_primitive():
    mesh = SceneMesh(
        vertices=[Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(1, 1, 0), Vec3(0, 1, 0)],
        normals=[Vec3.Z] * 4,
        indices=[0, 1, 2, 0, 2, 3],
    )
    return Primitive(mesh, Diffuse())


def baked_area_light(intensity=Color(3.0)):
    prim = square_primitive()
    light = AreaLight(intensity, prim)
    prim.bake()
    return light, prim


class _StubScene:
    def __init__(self, hit):
        self.hit = hit

    def intersect(self, ray):
        return self.hit


def test_area_light_attaches_to_primitive():
    prim = square_primitive()
    light = AreaLight(Color(2.0), prim)
    assert prim.area_light is light
    assert light.is_delta() is False


def test_area_light_emits_only_from_front():
    light, _ = baked_area_light()
    assert light.emit(Vec3.ZERO, Vec3.Z, Vec3.Z) == light.intensity
    assert light.emit(Vec3.ZERO, Vec3.Z, -Vec3.Z) == Color.BLACK


def test_area_light_position_is_centroid():
    light, _ = baked_area_light()
    assert light.position() == (0.5, 0.5, 0.0, 1.0)


def test_area_light_default_direction():
    light, _ = baked_area_light()
    assert light.direction() == Vec3(0, 0, -1)


def test_area_light_sample_from_front():
    light, _ = baked_area_light()
    eye = Vec3(0.5, 0.5, 1.0)
    result = light.sample_direct(eye, Sample(0.3, 0.6, 0.0))
    assert result.ray.origin == eye
    assert result.ray.direction.z < 0
    assert result.ray.end().z == pytest.approx(0.0, abs=1e-3)
    assert result.color == light.intensity
    assert result.pdf > 0


def test_area_light_sample_from_behind_is_black():
    light, _ = baked_area_light()
    result = light.sample_direct(Vec3(0.5, 0.5, -1.0), Sample(0.3, 0.6, 0.0))
    assert result.color == Color.BLACK


def test_area_light_pdf_needs_scene():
    light, _ = baked_area_light()
    with pytest.raises(RuntimeError):
        light.pdf(Vec3(0.75, 0.25, 1), Vec3(0, 0, -1))


def test_area_light_pdf_when_hitting_its_primitive():
    light, prim = baked_area_light()
    light.scene = _StubScene(Intersection(dist=1.0, prim=prim, tri_id=0))
    eye, direction = Vec3(0.75, 0.25, 1), Vec3(0, 0, -1)
    assert light.pdf(eye, direction) == prim.pdf(0, eye, direction)
    assert light.pdf(eye, direction) > 0


def test_area_light_pdf_zero_when_blocked_or_missed():
    light, _ = baked_area_light()
    other = square_primitive()
    light.scene = _StubScene(Intersection(dist=1.0, prim=other, tri_id=0))
    assert light.pdf(Vec3(0.75, 0.25, 1), Vec3(0, 0, -1)) == 0.0
    light.scene = _StubScene(None)
    assert light.pdf(Vec3(0.75, 0.25, 1), Vec3(0, 0, -1)) == 0.0


def test_directional_light():
    light = DirectionalLight(Color(2.0), Vec3(0, 2, 0))
    pos = Vec3(1, 2, 3)
    result = light.sample_direct(pos, Sample())
    assert result.ray.origin == pos
    assert result.ray.direction == Vec3(0, 1, 0)
    assert result.color == Color(2.0)
    assert result.pdf == 1.0
    assert light.is_delta() is True
    assert light.pdf(pos, Vec3.Z) == 0.0
    assert light.position() == (0.0, 0.0, 0.0, 0.0)
    assert light.direction() == Vec3(0, 2, 0)


def test_point_light_basics():
    light = PointLight(Color(4.0), 10.0, Vec3(1, 2, 3))
    assert light.position() == (1, 2, 3, 1.0)
    assert light.is_delta() is True
    assert light.pdf(Vec3.ZERO, Vec3.Z) == 0.0
    assert light.radius == 10.0


def test_point_light_falls_off_with_distance():
    light = PointLight(Color(4.0), 10.0, Vec3(0, 0, 0))
    near = light.sample_direct(Vec3(0, 0, 2), Sample())
    far = light.sample_direct(Vec3(0, 0, 6), Sample())
    assert near.color.r > far.color.r
    assert near.pdf == 1.0
    assert near.ray.direction == Vec3(0, 0, -1)


def test_point_light_is_dark_at_radius():
    light = PointLight(Color(4.0), 10.0, Vec3(0, 0, 0))
    result = light.sample_direct(Vec3(0, 0, 10), Sample())
    assert result.color.r == pytest.approx(0.0, abs=1e-3)


def test_point_light_rejects_zero_radius():
    light = PointLight(Color(1.0))
    with pytest.raises(ValueError):
        light.radius = 0.0
    with pytest.raises(ValueError):
        PointLight(Color(1.0), 0.0)


def test_light_is_abstract():
    with pytest.raises(TypeError):
        Light()