from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from .errors import InvalidInputError, InvalidShapeError


class ShapeKind(str, Enum):
    """Planar shapes a brace segment can take (upright, measured from its base)."""
    RECTANGLE = "rectangle"
    TRIANGLE = "triangle"
    PARABOLIC = "parabolic"  # apex-down parabola
    NONE = "none"


@dataclass(frozen=True)
class ShapeProperties:
    area: float
    centroid: float  # from the shape's own base
    second_moment: float  # about the shape's own centroid


NO_SHAPE = ShapeProperties(area=0.0, centroid=0.0, second_moment=0.0)


def assert_positive(value: float, label: str) -> float:
    """Fail fast unless value is a finite number > 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(label)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(label)
    return float(value)


def as_shape_kind(shape: Union[ShapeKind, str]) -> ShapeKind:
    if isinstance(shape, ShapeKind):
        return shape
    try:
        return ShapeKind(shape)
    except ValueError:
        raise InvalidShapeError(shape) from None


def _finite_properties(build: Callable[[], ShapeProperties], label: str) -> ShapeProperties:
    """Run build(); overflow or a non-finite result is an invalid input named by label."""
    try:
        props = build()
    except OverflowError:
        props = None
    if props is None or not all(math.isfinite(v) for v in (props.area, props.centroid, props.second_moment)):
        raise InvalidInputError(label, f"{label} is too large: section properties overflow.")
    return props


def rectangle_properties(breadth: float, height: float, label: str = "height") -> ShapeProperties:
    return _finite_properties(
        lambda: ShapeProperties(
            area=breadth * height,
            centroid=height / 2,
            second_moment=(breadth * height**3) / 12,
        ),
        label,
    )


def shape_properties(shape: Union[ShapeKind, str], breadth: float, height: float) -> ShapeProperties:
    """
    Area, centroid and second moment of area of a single shape.

    Formulas (b = breadth, h = height):

      rectangle:  A = b*h,        y = h/2,    I = b*h^3/12
      triangle:   A = b*h/2,      y = h/3,    I = b*h^3/36
      parabolic:  A = (2/3)*b*h,  y = (3/8)h, I = (19/480)*b*h^3

    ShapeKind.NONE is inert: returns zeros without looking at breadth/height.
    """
    kind = as_shape_kind(shape)
    if kind is ShapeKind.NONE:
        return NO_SHAPE

    b = assert_positive(breadth, "breadth")
    h = assert_positive(height, "height")

    if kind is ShapeKind.RECTANGLE:
        return rectangle_properties(b, h)
    if kind is ShapeKind.TRIANGLE:
        return _finite_properties(
            lambda: ShapeProperties(
                area=(b * h) / 2,
                centroid=h / 3,
                second_moment=(b * h**3) / 36,
            ),
            "height",
        )
    if kind is ShapeKind.PARABOLIC:
        return _finite_properties(
            lambda: ShapeProperties(
                area=(2 / 3) * b * h,
                centroid=(3 / 8) * h,
                second_moment=(19 / 480) * b * h**3,
            ),
            "height",
        )
    raise InvalidShapeError(shape)
