"""Light sources: area, directional and point lights."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .bsdf import Sample
from .geometry import Color, Ray, SceneObject, Vec3
from .primitive import Primitive


@dataclass
class LightSample:
    """Shadow ray towards the light, the light's colour along it and the sampling pdf."""

    ray: Ray
    color: Color
    pdf: float


class Light(SceneObject, ABC):
    """Base light source."""

    intensity: Color = Color.WHITE

    def __init__(self, sample_count: int = 1):
        super().__init__()
        self.sample_count = sample_count

    @abstractmethod
    def sample_direct(self, pos: Vec3, sample: Sample) -> LightSample:
        """Build a ray from ``pos`` towards the light."""

    @abstractmethod
    def pdf(self, eye: Vec3, direction: Vec3) -> float:
        """Density of sampling ``direction`` from ``eye``."""

    @abstractmethod
    def is_delta(self) -> bool:
        """Whether the light is a delta distribution that cannot be hit at random."""

    @abstractmethod
    def position(self) -> tuple[float, float, float, float]:
        """Homogeneous position; w == 0 marks a directional light."""

    def direction(self) -> Vec3:
        return Vec3(0.0, 0.0, -1.0)


class AreaLight(Light):
    """Light emitted from the front side of a primitive's surface."""

    def __init__(self, intensity: Color, primitive: Primitive, sample_count: int = 1):
        super().__init__(sample_count)
        self.intensity = intensity
        self.primitive = primitive
        primitive.area_light = self

    def is_delta(self) -> bool:
        return False

    def sample_direct(self, pos: Vec3, sample: Sample) -> LightSample:
        point, tri_id, normal = self.primitive.sample_point(sample)
        ray = Ray()
        ray.set_segment(pos, point)
        pdf = self.primitive.pdf(tri_id, pos, ray.direction)
        return LightSample(ray, self.emit(point, normal, -ray.direction), pdf)

    def emit(self, pos: Vec3, normal: Vec3, wo: Vec3) -> Color:
        return self.intensity if normal.dot(wo) > 0.0 else Color.BLACK

    def pdf(self, eye: Vec3, direction: Vec3) -> float:
        if self.scene is None:
            raise RuntimeError("area light is not part of a scene")
        hit = self.scene.intersect(Ray(eye, direction))
        if hit is None or hit.prim is not self.primitive:
            return 0.0
        return self.primitive.pdf(hit.tri_id, eye, direction)

    def position(self) -> tuple[float, float, float, float]:
        centre = self.primitive.mesh.bounds().centroid()
        return centre.x, centre.y, centre.z, 1.0


class DirectionalLight(Light):
    """Light arriving from a fixed direction everywhere in the scene."""

    def __init__(self, intensity: Color, direction: Vec3 = Vec3(0.0, 0.0, -1.0), sample_count: int = 1):
        super().__init__(sample_count)
        self.intensity = intensity
        self.dir = direction

    def sample_direct(self, pos: Vec3, sample: Sample) -> LightSample:
        return LightSample(Ray(pos, self.dir), self.intensity, 1.0)

    def pdf(self, eye: Vec3, direction: Vec3) -> float:
        return 0.0

    def is_delta(self) -> bool:
        return True

    def position(self) -> tuple[float, float, float, float]:
        return 0.0, 0.0, 0.0, 0.0

    def direction(self) -> Vec3:
        return self.dir


class PointLight(Light):
    """Point light whose brightness falls off to zero at its radius."""

    def __init__(
        self,
        intensity: Color,
        radius: float = 10.0,
        position: Vec3 = Vec3.ZERO,
        sample_count: int = 1,
    ):
        super().__init__(sample_count)
        self.intensity = intensity
        self.pos = position
        self.radius = radius

    @property
    def radius(self) -> float:
        return self._radius

    @radius.setter
    def radius(self, value: float) -> None:
        if value == 0.0:
            raise ValueError("point light radius must be non-zero")
        self._radius = value
        self._radius_sq_rcp = 1.0 / (value * value)

    def sample_direct(self, pos: Vec3, sample: Sample) -> LightSample:
        ray = Ray()
        ray.set_segment(pos, self.pos)
        color = self.intensity * (1.0 - ray.t_max * ray.t_max * self._radius_sq_rcp)
        return LightSample(ray, color, 1.0)

    def pdf(self, eye: Vec3, direction: Vec3) -> float:
        return 0.0

    def is_delta(self) -> bool:
        return True

    def position(self) -> tuple[float, float, float, float]:
        return self.pos.x, self.pos.y, self.pos.z, 1.0