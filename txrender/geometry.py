"""Vectors, colours, rays, bounding boxes and transforms used by the renderer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Iterator, Union

EPSILON = 1e-4

_Operand = Union["Vec3", float]


@dataclass(frozen=True)
class Vec3:
    """Immutable three-component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    ZERO: ClassVar["Vec3"]
    ONE: ClassVar["Vec3"]
    X: ClassVar["Vec3"]
    Y: ClassVar["Vec3"]
    Z: ClassVar["Vec3"]

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __getitem__(self, axis: int) -> float:
        return (self.x, self.y, self.z)[axis]

    def _apply(self, other: _Operand, op) -> "Vec3":
        if isinstance(other, Vec3):
            return Vec3(op(self.x, other.x), op(self.y, other.y), op(self.z, other.z))
        return Vec3(op(self.x, other), op(self.y, other), op(self.z, other))

    def __add__(self, other: _Operand) -> "Vec3":
        return self._apply(other, lambda a, b: a + b)

    __radd__ = __add__

    def __sub__(self, other: _Operand) -> "Vec3":
        return self._apply(other, lambda a, b: a - b)

    def __rsub__(self, other: _Operand) -> "Vec3":
        return self._apply(other, lambda a, b: b - a)

    def __mul__(self, other: _Operand) -> "Vec3":
        return self._apply(other, lambda a, b: a * b)

    __rmul__ = __mul__

    def __truediv__(self, other: _Operand) -> "Vec3":
        return self._apply(other, lambda a, b: a / b)

    def __neg__(self) -> "Vec3":
        return Vec3(-self.x, -self.y, -self.z)

    def dot(self, other: "Vec3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vec3") -> "Vec3":
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> "Vec3":
        length = self.length()
        if length == 0.0:
            raise ValueError("cannot normalize a zero-length vector")
        return self / length


Vec3.ZERO = Vec3(0.0, 0.0, 0.0)
Vec3.ONE = Vec3(1.0, 1.0, 1.0)
Vec3.X = Vec3(1.0, 0.0, 0.0)
Vec3.Y = Vec3(0.0, 1.0, 0.0)
Vec3.Z = Vec3(0.0, 0.0, 1.0)


@dataclass(frozen=True, init=False)
class Color:
    """RGBA colour; arithmetic acts on the RGB channels and keeps alpha."""

    r: float
    g: float
    b: float
    a: float

    BLACK: ClassVar["Color"]
    WHITE: ClassVar["Color"]

    def __init__(self, r: float = 0.0, g: float | None = None, b: float | None = None, a: float = 1.0):
        if (g is None) != (b is None):
            raise TypeError("give either a single grey level or all of r, g and b")
        if g is None:
            g = b = r
        object.__setattr__(self, "r", float(r))
        object.__setattr__(self, "g", float(g))
        object.__setattr__(self, "b", float(b))
        object.__setattr__(self, "a", float(a))

    def _apply(self, other: "Color | float", op) -> "Color":
        if isinstance(other, Color):
            return Color(op(self.r, other.r), op(self.g, other.g), op(self.b, other.b), self.a)
        return Color(op(self.r, other), op(self.g, other), op(self.b, other), self.a)

    def __add__(self, other: "Color | float") -> "Color":
        return self._apply(other, lambda a, b: a + b)

    __radd__ = __add__

    def __sub__(self, other: "Color | float") -> "Color":
        return self._apply(other, lambda a, b: a - b)

    def __mul__(self, other: "Color | float") -> "Color":
        return self._apply(other, lambda a, b: a * b)

    __rmul__ = __mul__

    def __truediv__(self, other: "Color | float") -> "Color":
        return self._apply(other, lambda a, b: a / b)

    def luminance(self) -> float:
        return 0.212671 * self.r + 0.715160 * self.g + 0.072169 * self.b

    def clamp(self) -> "Color":
        def limit(value: float) -> float:
            return min(1.0, max(0.0, value))

        return Color(limit(self.r), limit(self.g), limit(self.b), limit(self.a))


Color.BLACK = Color(0.0)
Color.WHITE = Color(1.0)


@dataclass
class Ray:
    """Half-open ray segment between ``t_min`` and ``t_max``; the direction is kept unit length."""

    origin: Vec3 = Vec3(0.0, 0.0, 0.0)
    direction: Vec3 = Vec3(0.0, 0.0, 1.0)
    t_min: float = EPSILON
    t_max: float = math.inf

    def __post_init__(self) -> None:
        self.direction = self.direction.normalized()

    def end(self) -> Vec3:
        return self.origin + self.direction * self.t_max

    def set_segment(self, start: Vec3, end: Vec3) -> None:
        offset = end - start
        distance = offset.length()
        self.origin = start
        self.direction = offset.normalized()
        self.t_min = EPSILON
        self.t_max = distance - EPSILON


_INF = math.inf


def _vmin(a: Vec3, b: Vec3) -> Vec3:
    return Vec3(min(a.x, b.x), min(a.y, b.y), min(a.z, b.z))


def _vmax(a: Vec3, b: Vec3) -> Vec3:
    return Vec3(max(a.x, b.x), max(a.y, b.y), max(a.z, b.z))


@dataclass(frozen=True)
class BBox:
    """Axis-aligned bounding box; the default box is empty."""

    min: Vec3 = Vec3(_INF, _INF, _INF)
    max: Vec3 = Vec3(-_INF, -_INF, -_INF)

    def __getitem__(self, index: int) -> Vec3:
        return (self.min, self.max)[index]

    def union(self, other: "BBox | Vec3") -> "BBox":
        if isinstance(other, Vec3):
            return BBox(_vmin(self.min, other), _vmax(self.max, other))
        return BBox(_vmin(self.min, other.min), _vmax(self.max, other.max))

    def centroid(self) -> Vec3:
        return (self.min + self.max) * 0.5

    def maximum_extent(self) -> int:
        diag = self.max - self.min
        if diag.x > diag.y and diag.x > diag.z:
            return 0
        if diag.y > diag.z:
            return 1
        return 2


@dataclass
class Transform:
    """Translation and per-axis scale applied to points and normals."""

    position: Vec3 = Vec3(0.0, 0.0, 0.0)
    scaling: Vec3 = Vec3(1.0, 1.0, 1.0)

    def translate(self, x: float, y: float, z: float) -> None:
        self.position = self.position + Vec3(x, y, z)

    def scale(self, x: float, y: float, z: float) -> None:
        self.scaling = self.scaling * Vec3(x, y, z)

    def apply_point(self, point: Vec3) -> Vec3:
        return point * self.scaling + self.position

    def apply_normal(self, normal: Vec3) -> Vec3:
        return (normal / self.scaling).normalized()


class SceneObject:
    """Anything that belongs to a scene."""

    def __init__(self) -> None:
        self.scene = None


class DynamicSceneObject(SceneObject):
    """Scene object that carries its own transform."""

    def __init__(self) -> None:
        super().__init__()
        self.transform = Transform()