"""Ray tracing integrators, sample buffers, samplers and renderer configuration."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from .bsdf import BSDFType, Sample
from .geometry import Color, Ray

_NON_SPECULAR = BSDFType(int(BSDFType.ALL) & ~int(BSDFType.SPECULAR))


def _is_black(color: Color) -> bool:
    return color.r == 0.0 and color.g == 0.0 and color.b == 0.0


def _power_heuristic(nf: int, f_pdf: float, ng: int, g_pdf: float) -> float:
    f = nf * f_pdf
    g = ng * g_pdf
    return (f * f) / (f * f + g * g)


def _background(ray: Ray) -> Color:
    d = ray.direction
    return Color(d.x, d.y, d.z) * 0.5 + 0.5


@dataclass
class CameraSample:
    """Film position of a camera sample plus a buffer of canonical samples for the integrator."""

    x: float = 0.0
    y: float = 0.0
    pix_x: int = 0
    pix_y: int = 0
    buffer: list[Sample] = field(default_factory=list)
    _used: int = field(default=0, init=False, repr=False)

    def _request(self, count: int) -> int:
        """Reserve ``count`` consecutive buffer slots and return the first one's offset."""
        offset = self._used
        self._used += count
        if len(self.buffer) < self._used:
            self.buffer.extend(Sample() for _ in range(self._used - len(self.buffer)))
        return offset


class RayTracer(ABC):
    """Base integrator computing the radiance arriving along a camera ray."""

    def __init__(self, maxdepth: int = 5):
        self.maxdepth = maxdepth
        self.rng = random.Random()

    def trace(self, scene, ray: Ray, samples: CameraSample, rng: random.Random) -> Color:
        self.rng = rng
        return self.li(scene, ray, self.maxdepth, samples)

    @abstractmethod
    def bake_samples(self, scene, samples: CameraSample) -> None:
        """Reserve the sample slots this integrator needs in ``samples``."""

    @abstractmethod
    def li(self, scene, ray: Ray, depth: int, samples: CameraSample) -> Color:
        """Radiance arriving along ``ray``."""

    def estimate_direct(self, scene, ray: Ray, geom, light, light_sample: Sample, bsdf_sample: Sample) -> Color:
        """Direct light from ``light`` at ``geom``, combining light and BSDF sampling."""
        wo = -ray.direction
        color = Color.BLACK

        ls = light.sample_direct(geom.point, light_sample)
        if ls.pdf > 0.0 and not _is_black(ls.color):
            surface = geom.bsdf.eval(ls.ray.direction, wo, geom, _NON_SPECULAR)
            if not _is_black(surface) and not scene.occlude(ls.ray):
                cos = abs(ls.ray.direction.dot(geom.normal))
                if light.is_delta():
                    color = surface * ls.color * cos
                else:
                    bsdf_pdf = geom.bsdf.pdf(wo, ls.ray.direction, geom)
                    weight = _power_heuristic(1, ls.pdf, 1, bsdf_pdf)
                    color = surface * ls.color * (cos / ls.pdf * weight)

        if light.is_delta():
            return color

        bs = geom.bsdf.sample_direct(wo, geom, bsdf_sample, _NON_SPECULAR)
        if bs.pdf > 0.0 and not _is_black(bs.color):
            light_color = Color.BLACK
            light_pdf = 0.0
            bounce = Ray(geom.point, bs.wi)
            hit = scene.intersect(bounce)
            if hit is not None and hit.prim.area_light is light:
                scene.post_intersect(bounce, hit)
                light_pdf = hit.prim.pdf(hit.tri_id, geom.point, bounce.direction)
                light_color = hit.emit(-bounce.direction)
            if not _is_black(light_color):
                cos = abs(bounce.direction.dot(geom.normal))
                weight = _power_heuristic(1, bs.pdf, 1, light_pdf)
                color = color + bs.color * light_color * (cos / bs.pdf * weight)
        return color

    def _trace_specular(self, scene, ray: Ray, geom, depth: int, samples: CameraSample, lobe: BSDFType) -> Color:
        wo = -ray.direction
        bs = geom.bsdf.sample_direct(wo, geom, Sample(), lobe)
        cos = abs(bs.wi.dot(geom.normal))
        if bs.pdf > 0.0 and not _is_black(bs.color) and cos != 0.0:
            incoming = self.li(scene, Ray(geom.point, bs.wi), depth, samples)
            return bs.color * incoming * (cos / bs.pdf)
        return Color.BLACK

    def trace_specular_reflect(self, scene, ray: Ray, geom, depth: int, samples: CameraSample) -> Color:
        return self._trace_specular(scene, ray, geom, depth, samples, BSDFType.REFLECTION | BSDFType.SPECULAR)

    def trace_specular_transmit(self, scene, ray: Ray, geom, depth: int, samples: CameraSample) -> Color:
        return self._trace_specular(scene, ray, geom, depth, samples, BSDFType.TRANSMISSION | BSDFType.SPECULAR)


class DirectLighting(RayTracer):
    """Direct illumination from every light plus recursive perfect specular bounces."""

    def __init__(self, maxdepth: int = 5):
        super().__init__(maxdepth)

    def bake_samples(self, scene, samples: CameraSample) -> None:
        return None

    def li(self, scene, ray: Ray, depth: int, samples: CameraSample) -> Color:
        if depth < 0:
            return Color.BLACK
        geom = scene.intersect(ray)
        if geom is None:
            return _background(ray)
        scene.post_intersect(ray, geom)
        geom.compute_differentials(ray)

        color = Color.BLACK
        for light in scene.lights:
            color = color + self.estimate_direct(scene, ray, geom, light, Sample(), Sample())
        color = color + self.trace_specular_reflect(scene, ray, geom, depth - 1, samples)
        color = color + self.trace_specular_transmit(scene, ray, geom, depth - 1, samples)
        return color


class PathTracing(RayTracer):
    """Unidirectional path tracer with next-event estimation and Russian roulette."""

    SAMPLE_DEPTH = 3

    def __init__(self, maxdepth: int = 6):
        super().__init__(maxdepth)
        self._light_offsets: list[int] = []
        self._bsdf_offsets: list[int] = []
        self._scatter_offsets: list[int] = []

    def bake_samples(self, scene, samples: CameraSample) -> None:
        self._light_offsets = []
        self._bsdf_offsets = []
        self._scatter_offsets = []
        for _ in range(self.maxdepth):
            self._light_offsets.append(samples._request(1))
            self._bsdf_offsets.append(samples._request(1))
            self._scatter_offsets.append(samples._request(1))

    def li(self, scene, ray: Ray, depth: int, samples: CameraSample) -> Color:
        if len(self._scatter_offsets) < self.maxdepth:
            raise RuntimeError("bake_samples must be called before tracing")
        radiance = Color.BLACK
        throughput = Color.WHITE
        specular_bounce = True
        path_ray = ray
        light_count = len(scene.lights)

        for bounce in range(self.maxdepth):
            geom = scene.intersect(path_ray)
            if geom is None:
                if specular_bounce:
                    radiance = radiance + throughput * _background(ray)
                break
            scene.post_intersect(path_ray, geom)
            geom.compute_differentials(path_ray)
            wo = -path_ray.direction

            if specular_bounce:
                radiance = radiance + throughput * geom.emit(wo)

            if not geom.bsdf.is_specular() and light_count:
                light_sample = samples.buffer[self._light_offsets[bounce]]
                bsdf_sample = samples.buffer[self._bsdf_offsets[bounce]]
                index = int(min(light_sample.w * light_count, light_count - 1))
                direct = self.estimate_direct(scene, path_ray, geom, scene.lights[index], light_sample, bsdf_sample)
                radiance = radiance + throughput * direct

            scatter = samples.buffer[self._scatter_offsets[bounce]]
            bs = geom.bsdf.sample_direct(wo, geom, scatter, BSDFType.ALL)
            if _is_black(bs.color) or bs.pdf == 0.0:
                break
            specular_bounce = bool(bs.sampled_type is not None and bs.sampled_type & BSDFType.SPECULAR)
            throughput = throughput * bs.color * (abs(bs.wi.dot(geom.normal)) / bs.pdf)
            path_ray = Ray(geom.point, bs.wi)

            if bounce > self.SAMPLE_DEPTH:
                continue_prob = min(1.0, throughput.luminance())
                if self.rng.random() > continue_prob:
                    break
                throughput = throughput / continue_prob
        return radiance


class Sampler(ABC):
    """Source of camera samples."""

    @abstractmethod
    def get_samples(self, sample: CameraSample) -> None:
        """Fill every field of ``sample`` with canonical random values."""


class RandomSampler(Sampler):
    """Independent uniform random samples."""

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def get_samples(self, sample: CameraSample) -> None:
        rand = self.rng.random
        sample.x = rand()
        sample.y = rand()
        sample.buffer[:] = [Sample(rand(), rand(), rand()) for _ in sample.buffer]


class RenderMethod(Enum):
    DIRECT_LIGHTING = "direct_lighting"
    PATH_TRACING = "path_tracing"


class SamplerType(Enum):
    RANDOM = "random"


@dataclass
class RendererConfig:
    """Image size, sampling rate and the integrator and sampler to use."""

    samples_per_pixel: int = 1
    width: int = 0
    height: int = 0
    tracer_t: RenderMethod = RenderMethod.PATH_TRACING
    tracer_maxdepth: int = 5
    sampler_t: SamplerType = SamplerType.RANDOM

    def new_method(self) -> RayTracer:
        if self.tracer_t is RenderMethod.DIRECT_LIGHTING:
            return DirectLighting(self.tracer_maxdepth)
        if self.tracer_t is RenderMethod.PATH_TRACING:
            return PathTracing(self.tracer_maxdepth)
        raise ValueError(f"unimplemented render method: {self.tracer_t!r}")

    def new_sampler(self) -> Sampler:
        if self.sampler_t is SamplerType.RANDOM:
            return RandomSampler()
        raise ValueError(f"unimplemented sampler: {self.sampler_t!r}")