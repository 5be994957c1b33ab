"""Bidirectional scattering distribution functions."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntFlag

from .geometry import Color, Vec3

_PI_RCP = 1.0 / math.pi


class BSDFType(IntFlag):
    REFLECTION = 1
    TRANSMISSION = 2
    DIFFUSE = 4
    GLOSSY = 8
    SPECULAR = 16
    ALL_TYPES = 4 | 8 | 16
    ALL_REFLECTION = 1 | 4 | 8 | 16
    ALL_TRANSMISSION = 2 | 4 | 8 | 16
    ALL = 1 | 2 | 4 | 8 | 16


def _without(types: BSDFType, flag: BSDFType) -> BSDFType:
    return BSDFType(int(types) & ~int(flag))


@dataclass(frozen=True)
class Sample:
    """Three canonical random numbers in [0, 1)."""

    u: float = 0.0
    v: float = 0.0
    w: float = 0.0


@dataclass(frozen=True)
class BSDFSample:
    """Result of sampling a BSDF: value, incident direction, pdf and sampled lobe."""

    color: Color
    wi: Vec3
    pdf: float
    sampled_type: BSDFType | None = None


_NO_SAMPLE = BSDFSample(Color.BLACK, Vec3.ZERO, 0.0)


def cos_theta(vec: Vec3) -> float:
    return vec.z


def abs_cos_theta(vec: Vec3) -> float:
    return abs(vec.z)


def sin_theta2(vec: Vec3) -> float:
    return max(0.0, 1.0 - vec.z * vec.z)


def sin_theta(vec: Vec3) -> float:
    return math.sqrt(sin_theta2(vec))


def tan_theta(vec: Vec3) -> float:
    return math.sqrt(sin_theta2(vec)) / vec.z


def tan_theta2(vec: Vec3) -> float:
    cos2 = vec.z * vec.z
    sin2 = 1.0 - cos2
    if sin2 <= 0.0:
        return 0.0
    return sin2 / cos2


def cos_phi(vec: Vec3) -> float:
    st = sin_theta(vec)
    if st == 0.0:
        return 1.0
    return min(1.0, max(-1.0, vec.x / st))


def sin_phi(vec: Vec3) -> float:
    st = sin_theta(vec)
    if st == 0.0:
        return 0.0
    return min(1.0, max(-1.0, vec.y / st))


def same_hemisphere(v1: Vec3, v2: Vec3) -> bool:
    return v1.z * v2.z > 0.0


def _concentric_disk(u1: float, u2: float) -> tuple[float, float]:
    ox, oy = 2.0 * u1 - 1.0, 2.0 * u2 - 1.0
    if ox == 0.0 and oy == 0.0:
        return 0.0, 0.0
    if abs(ox) > abs(oy):
        r, theta = ox, (math.pi / 4.0) * (oy / ox)
    else:
        r, theta = oy, math.pi / 2.0 - (math.pi / 4.0) * (ox / oy)
    return r * math.cos(theta), r * math.sin(theta)


def _cosine_hemisphere(u1: float, u2: float) -> Vec3:
    x, y = _concentric_disk(u1, u2)
    return Vec3(x, y, math.sqrt(max(0.0, 1.0 - x * x - y * y)))


class BSDF(ABC):
    """Base scattering function with a lobe type and a base colour."""

    def __init__(self, bsdf_type: BSDFType, color: Color = Color.WHITE):
        self.bsdf_type = bsdf_type
        self.color = color

    def subtype_of(self, t: BSDFType) -> bool:
        return (self.bsdf_type & t) == self.bsdf_type

    def is_specular(self) -> bool:
        lobes = BSDFType.SPECULAR | BSDFType.DIFFUSE | BSDFType.GLOSSY
        return (lobes & self.bsdf_type) == BSDFType.SPECULAR

    def get_color(self, geom) -> Color:
        return self.color

    def _valid(self, wo: Vec3, wi: Vec3, normal: Vec3, types: BSDFType) -> tuple[bool, BSDFType]:
        if wo.dot(normal) * wi.dot(normal) < 0.0:
            types = _without(types, BSDFType.REFLECTION)
        else:
            types = _without(types, BSDFType.TRANSMISSION)
        return self.subtype_of(types), types

    def eval(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> Color:
        ok, types = self._valid(wo, wi, geom.normal, types)
        if not ok:
            return Color.BLACK
        return self.get_color(geom) * self._eval_local(geom.world_to_local(wo), geom.world_to_local(wi), types)

    def pdf(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> float:
        ok, types = self._valid(wo, wi, geom.normal, types)
        if not ok:
            return 0.0
        return self._pdf_local(geom.world_to_local(wo), geom.world_to_local(wi), types)

    @abstractmethod
    def sample_direct(self, wo: Vec3, geom, sample: Sample, types: BSDFType = BSDFType.ALL) -> BSDFSample:
        """Choose an incident direction for the outgoing direction ``wo``."""

    def _eval_local(self, wo: Vec3, wi: Vec3, types: BSDFType) -> float:
        """Lambertian density for a diffuse lobe; delta lobes have none for a given pair."""
        return _PI_RCP if self.bsdf_type & BSDFType.DIFFUSE else 0.0

    def _pdf_local(self, wo: Vec3, wi: Vec3, types: BSDFType) -> float:
        """Cosine-weighted pdf for a diffuse lobe; zero for delta lobes."""
        if not self.bsdf_type & BSDFType.DIFFUSE or not same_hemisphere(wo, wi):
            return 0.0
        return abs_cos_theta(wi) * _PI_RCP

    def ambient(self) -> Color:
        return Color.BLACK

    def diffuse(self) -> Color:
        return self.color

    def specular(self) -> Color:
        return Color.BLACK

    def shininess(self) -> float:
        return 1e7


class Diffuse(BSDF):
    """Lambertian reflector."""

    def __init__(self, color: Color = Color.WHITE):
        super().__init__(BSDFType.REFLECTION | BSDFType.DIFFUSE, color)

    def sample_direct(self, wo: Vec3, geom, sample: Sample, types: BSDFType = BSDFType.ALL) -> BSDFSample:
        local_wo = geom.world_to_local(wo).normalized()
        local_wi = _cosine_hemisphere(sample.u, sample.v)
        if local_wo.z < 0.0:
            local_wi = Vec3(local_wi.x, local_wi.y, -local_wi.z)
        wi = geom.local_to_world(local_wi)
        ok, types = self._valid(wo, wi, geom.normal, types)
        if not ok:
            return BSDFSample(Color.BLACK, wi, 0.0)
        return BSDFSample(
            self.get_color(geom) * self._eval_local(local_wo, local_wi, types),
            wi,
            self._pdf_local(local_wo, local_wi, types),
            self.bsdf_type,
        )

    def ambient(self) -> Color:
        return self.color


class Mirror(BSDF):
    """Perfect specular reflector."""

    def __init__(self, color: Color = Color.WHITE):
        super().__init__(BSDFType.REFLECTION | BSDFType.SPECULAR, color)

    def eval(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> Color:
        return Color.BLACK

    def pdf(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> float:
        return 0.0

    def sample_direct(self, wo: Vec3, geom, sample: Sample, types: BSDFType = BSDFType.ALL) -> BSDFSample:
        if not self.subtype_of(types):
            return _NO_SAMPLE
        local_wo = geom.world_to_local(wo)
        local_wi = Vec3(-local_wo.x, -local_wo.y, local_wo.z)
        cos = abs_cos_theta(local_wi)
        if cos == 0.0:
            return _NO_SAMPLE
        return BSDFSample(self.get_color(geom) / cos, geom.local_to_world(local_wi), 1.0, self.bsdf_type)

    def diffuse(self) -> Color:
        return Color(0.1)

    def specular(self) -> Color:
        return Color.WHITE

    def shininess(self) -> float:
        return 1.0


class Dielectric(BSDF):
    """Smooth glass-like surface that both reflects and refracts."""

    def __init__(self, color: Color = Color.WHITE, etat: float = 1.5, etai: float = 1.0):
        super().__init__(BSDFType.REFLECTION | BSDFType.TRANSMISSION | BSDFType.SPECULAR, color)
        self.etat = etat
        self.etai = etai
        self.eta = etai / etat
        self.eta_inv = etat / etai

    def sample_direct(self, wo: Vec3, geom, sample: Sample, types: BSDFType = BSDFType.ALL) -> BSDFSample:
        refl_lobe = BSDFType.REFLECTION | BSDFType.SPECULAR
        trans_lobe = BSDFType.TRANSMISSION | BSDFType.SPECULAR
        reflection = (types & refl_lobe) == refl_lobe
        transmission = (types & trans_lobe) == trans_lobe
        if not reflection and not transmission:
            return _NO_SAMPLE
        both = reflection == transmission
        local_wo = geom.world_to_local(wo)
        cosi = cos_theta(local_wo)
        cost, eta = self.refract(cosi)
        refl = self.reflectance(cosi, cost)
        prob = 0.5 * refl + 0.25

        if refl > 0.0 and ((sample.w <= prob and both) or (reflection and not both)):
            local_wi = Vec3(-local_wo.x, -local_wo.y, local_wo.z)
            cos = abs_cos_theta(local_wi)
            if cos == 0.0:
                return _NO_SAMPLE
            return BSDFSample(
                Color(self.get_color(geom).luminance() * refl / cos),
                geom.local_to_world(local_wi),
                prob if both else 1.0,
                refl_lobe,
            )
        if refl < 1.0 and ((sample.w > prob and both) or (transmission and not both)):
            if eta == self.eta:
                cost = -cost
            local_wi = Vec3(eta * -local_wo.x, eta * -local_wo.y, cost)
            cos = abs_cos_theta(local_wi)
            if cos == 0.0:
                return _NO_SAMPLE
            return BSDFSample(
                self.get_color(geom) * ((1.0 - refl) / cos),
                geom.local_to_world(local_wi),
                1.0 - prob if both else 1.0,
                trans_lobe,
            )
        return _NO_SAMPLE

    def eval(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> Color:
        return Color.BLACK

    def pdf(self, wo: Vec3, wi: Vec3, geom, types: BSDFType = BSDFType.ALL) -> float:
        return 0.0

    def refract(self, cosi: float) -> tuple[float, float]:
        """Cosine of the refracted angle by Snell's law, and the relative index used."""
        eta = self.eta if cosi > 0.0 else self.eta_inv
        return math.sqrt(max(0.0, 1.0 - eta * eta * (1.0 - cosi * cosi))), eta

    def reflectance(self, cosi: float, cost: float) -> float:
        """Fresnel reflectance for unpolarised light."""
        if cost == 0.0:
            return 1.0
        cosi = abs(cosi)
        etci, etct = self.etat * cosi, self.etat * cost
        eici, eict = self.etai * cosi, self.etai * cost
        para = (etci - eict) / (etci + eict)
        perp = (eici - etct) / (eici + etct)
        return 0.5 * (para * para + perp * perp)

    def ambient(self) -> Color:
        return Color(0.1)

    def diffuse(self) -> Color:
        return Color(self.color.r, self.color.g, self.color.b, 0.3)

    def specular(self) -> Color:
        return Color(0.8)

    def shininess(self) -> float:
        return 1.0