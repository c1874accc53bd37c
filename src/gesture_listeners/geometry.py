"""Geometry helpers for 2D canvas coordinates.

Screen space: x grows to the right, y grows downward. Points are anything
indexable as ``(x, y)``: tuples, lists or numpy rows (a trailing z is ignored).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from gesture_listeners.errors import ConfigurationError

Point = Sequence[float]
Scale = Callable[[float], float]


def identity(value: float) -> float:
    return value


class HorizontalOrder(Enum):
    LEFT = "left"
    RIGHT = "right"


class VerticalOrder(Enum):
    ABOVE = "above"
    BELOW = "below"


@dataclass(frozen=True)
class AxisDistance:
    """Absolute distance along one axis plus which side point A lies on."""
    value: float
    order: Enum


@dataclass(frozen=True)
class Distance:
    horizontal: AxisDistance
    vertical: AxisDistance
    euclidean: float


def distance(a: Point, b: Point) -> Distance:
    """Distance from point A to point B.

    ``horizontal.order`` is LEFT when A is left of B, ``vertical.order`` is
    ABOVE when A is above B (smaller y).
    """
    dx = float(a[0]) - float(b[0])
    dy = float(a[1]) - float(b[1])
    return Distance(
        horizontal=AxisDistance(
            value=abs(dx),
            order=HorizontalOrder.LEFT if dx < 0 else HorizontalOrder.RIGHT,
        ),
        vertical=AxisDistance(
            value=abs(dy),
            order=VerticalOrder.ABOVE if dy < 0 else VerticalOrder.BELOW,
        ),
        euclidean=math.sqrt(dx * dx + dy * dy),
    )


def angle_between(origin: Point, point: Point) -> float:
    """Angle in degrees from ``origin`` to ``point``.

    Negated relative to the math convention because y points down, so
    "up on screen" comes out positive.
    """
    dy = float(point[1]) - float(origin[1])
    dx = float(point[0]) - float(origin[0])
    return -(math.atan2(dy, dx) * (180 / math.pi))


def distances_between(points_a: Iterable[Point], points_b: Iterable[Point]) -> list[float]:
    """Pairwise euclidean distances of two equally long point lists."""
    a = np.asarray(list(points_a), dtype=np.float64).reshape(-1, 2)
    b = np.asarray(list(points_b), dtype=np.float64).reshape(-1, 2)
    return np.linalg.norm(a - b, axis=1).tolist()


def exceeds(values: Iterable[float], maximum: float) -> bool:
    """True if any value is larger than ``maximum``."""
    return any(v > maximum for v in values)


def keep_between(value: float, start: float, end: float, round_value: bool = False) -> float:
    """Clamp ``value`` into ``[start, end]``."""
    if start > end:
        raise ValueError("Invalid range")

    output = round(value) if round_value else value
    if output > end:
        return end
    if output < start:
        return start
    return output


@dataclass(frozen=True)
class BoundsRegion:
    """A rectangle (position + dimensions) or a circle (center + radius).

    With neither dimensions nor radius the region is unbounded.
    """

    position: tuple[float, float] = (0.0, 0.0)
    dimensions: Optional[tuple[float, float]] = None  # (width, height)
    radius: Optional[float] = None

    def __post_init__(self):
        if self.dimensions is not None and self.radius is not None:
            raise ConfigurationError("A bounds region takes dimensions or radius, not both")
        object.__setattr__(self, "position", (float(self.position[0]), float(self.position[1])))
        if self.dimensions is not None:
            w, h = self.dimensions
            if w < 0 or h < 0:
                raise ConfigurationError(f"Region dimensions must be non-negative: {self.dimensions}")
            object.__setattr__(self, "dimensions", (float(w), float(h)))
        if self.radius is not None and self.radius < 0:
            raise ConfigurationError(f"Region radius must be non-negative: {self.radius}")

    @property
    def is_circle(self) -> bool:
        return self.radius is not None

    @property
    def is_unbounded(self) -> bool:
        return self.radius is None and self.dimensions is None

    def to_dict(self) -> dict:
        data: dict = {"position": list(self.position)}
        if self.dimensions is not None:
            data["dimensions"] = list(self.dimensions)
        if self.radius is not None:
            data["radius"] = self.radius
        return data

    @classmethod
    def from_dict(cls, data: dict) -> BoundsRegion:
        dimensions = data.get("dimensions")
        return cls(
            position=tuple(data.get("position", (0.0, 0.0))),
            dimensions=tuple(dimensions) if dimensions is not None else None,
            radius=data.get("radius"),
        )


def is_in_bounds(
    point: Point,
    region: BoundsRegion,
    x_scale: Scale = identity,
    y_scale: Scale = identity,
) -> bool:
    """Test a point against a region after scaling it.

    Circles include their boundary; rectangles exclude their edges.
    """
    x = x_scale(float(point[0]))
    y = y_scale(float(point[1]))

    if region.radius is not None:
        return distance((x, y), region.position).euclidean <= region.radius

    if region.dimensions is not None:
        min_x, min_y = region.position
        max_x = min_x + region.dimensions[0]
        max_y = min_y + region.dimensions[1]
        return min_x < x < max_x and min_y < y < max_y

    return True
