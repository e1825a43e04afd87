"""
Transformed-section engine for layered composite slices.

A slice is one full-width top layer plus zero or more braces. Each brace is a
stack of up to three segments (bottom -> middle -> top) sharing one intercept
breadth. Segments are scaled by their modular ratio E_seg / E_ref so that the
whole slice can be treated as a homogeneous section of the reference material:

    y_bar = sum(A'_i * y_i) / sum(A'_i)
    I'    = sum(I'_i + A'_i * (y_bar - y_i)^2)
    EI    = E_ref * I'

All positions are measured from the base of the stack. Every function here is
pure: same inputs give bit-identical outputs.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .constants import SHALLOW_ANGLE_SIN_LIMIT
from .errors import InvalidInputError, NoActiveSegmentsError, ShallowAngleError
from .shapes import (
    ShapeKind,
    ShapeProperties,
    as_shape_kind,
    assert_positive,
    rectangle_properties,
    shape_properties,
)

SEGMENT_LABELS = ("bottom", "middle", "top")


# ------------------------------
# Parameters
# ------------------------------
@dataclass(frozen=True)
class DirectBreadth:
    value: float


@dataclass(frozen=True)
class DerivedBreadth:
    plan_width: float
    angle_deg: float  # inclination of the brace to the span


BreadthSpec = Union[DirectBreadth, DerivedBreadth]


@dataclass(frozen=True)
class Segment:
    shape: ShapeKind
    height: float
    modulus: float


@dataclass(frozen=True)
class BraceSpec:
    breadth: BreadthSpec
    bottom: Optional[Segment] = None
    middle: Optional[Segment] = None
    top: Optional[Segment] = None

    def stack(self) -> Tuple[Tuple[str, Segment], ...]:
        """Supplied segments in stacking order, labelled."""
        pairs = zip(SEGMENT_LABELS, (self.bottom, self.middle, self.top))
        return tuple((label, seg) for label, seg in pairs if seg is not None)


@dataclass(frozen=True)
class SliceParams:
    span: float
    top_thickness: float
    top_modulus: float  # reference modulus
    braces: Tuple[BraceSpec, ...] = ()


# ------------------------------
# Results
# ------------------------------
@dataclass(frozen=True)
class TransformedSegment:
    label: str
    shape: ShapeKind
    height: float
    breadth: float
    base: float  # running base offset of this segment
    area: float
    centroid: float  # absolute: base + own centroid
    second_moment: float  # own, about own centroid
    modular_ratio: float
    transformed_area: float
    transformed_second_moment: float


@dataclass(frozen=True)
class BraceResult:
    breadth: float
    height: float
    transformed_area: float
    transformed_centroid: float
    transformed_second_moment: float
    segments: Tuple[TransformedSegment, ...]


@dataclass(frozen=True)
class SliceResult:
    centroid: float
    transformed_area: float
    transformed_second_moment: float
    EI: float
    top: ShapeProperties
    braces: Tuple[BraceResult, ...]


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def _assert_finite(label: str, *values: float) -> None:
    if not all(math.isfinite(v) for v in values):
        raise InvalidInputError(label, f"{label} overflows: input magnitudes are too large.")


def compute_intercept_breadth(breadth: BreadthSpec, span: float) -> float:
    """Resolve the breadth of a brace footprint, clamped to [0, span].

    Direct breadths are used as given. Derived breadths come from the plan
    width and the inclination: b = w_plan / |sin(phi)|.
    """
    span = assert_positive(span, "span")

    if isinstance(breadth, DirectBreadth):
        b = assert_positive(breadth.value, "brace breadth b")
        return clamp(b, 0.0, span)

    w_plan = assert_positive(breadth.plan_width, "brace plan width")
    phi_deg = assert_positive(breadth.angle_deg, "brace angle")
    sin_phi = math.sin(math.radians(phi_deg))
    if abs(sin_phi) < SHALLOW_ANGLE_SIN_LIMIT:
        raise ShallowAngleError(phi_deg)
    return clamp(w_plan / abs(sin_phi), 0.0, span)


def compute_brace_transformed(brace: BraceSpec, span: float, reference_modulus: float) -> BraceResult:
    e_ref = assert_positive(reference_modulus, "top modulus")
    breadth = compute_intercept_breadth(brace.breadth, span)

    segments = []
    running_base = 0.0
    transformed_area = 0.0
    centroid_numerator = 0.0

    for label, seg in brace.stack():
        kind = as_shape_kind(seg.shape)
        if isinstance(seg.height, bool) or not isinstance(seg.height, (int, float)):
            raise InvalidInputError(f"{label} height")
        # NaN heights fall through to shape_properties and are rejected there
        if seg.height <= 0 or kind is ShapeKind.NONE:
            continue

        props = shape_properties(kind, breadth, seg.height)
        y_abs = running_base + props.centroid
        e_seg = assert_positive(seg.modulus, f"{label} modulus")

        n = e_seg / e_ref
        a_prime = n * props.area
        i_prime = n * props.second_moment

        transformed_area += a_prime
        centroid_numerator += a_prime * y_abs
        segments.append(
            TransformedSegment(
                label=label,
                shape=kind,
                height=float(seg.height),
                breadth=breadth,
                base=running_base,
                area=props.area,
                centroid=y_abs,
                second_moment=props.second_moment,
                modular_ratio=n,
                transformed_area=a_prime,
                transformed_second_moment=i_prime,
            )
        )
        running_base += seg.height

    if transformed_area <= 0.0:
        raise NoActiveSegmentsError()

    y_bar = centroid_numerator / transformed_area

    i_transformed = 0.0
    for s in segments:
        dy = y_bar - s.centroid
        i_transformed += s.transformed_second_moment + s.transformed_area * dy * dy

    _assert_finite("brace section", transformed_area, y_bar, i_transformed)

    return BraceResult(
        breadth=breadth,
        height=running_base,
        transformed_area=transformed_area,
        transformed_centroid=y_bar,
        transformed_second_moment=i_transformed,
        segments=tuple(segments),
    )


def compute_top_section(span: float, thickness: float) -> ShapeProperties:
    """Full-width rectangular top layer."""
    span = assert_positive(span, "span")
    thickness = assert_positive(thickness, "top thickness")
    return rectangle_properties(span, thickness, "top thickness")


def compute_slice(params: SliceParams) -> SliceResult:
    """Compose the top layer and all braces into one transformed section.

    Any failing brace fails the whole slice.
    """
    e_ref = assert_positive(params.top_modulus, "top modulus")
    top = compute_top_section(params.span, params.top_thickness)
    braces = tuple(compute_brace_transformed(b, params.span, e_ref) for b in params.braces)

    total_area = top.area
    centroid_numerator = top.area * top.centroid
    for b in braces:
        total_area += b.transformed_area
        centroid_numerator += b.transformed_area * b.transformed_centroid
    y_bar = centroid_numerator / total_area

    dy_top = y_bar - top.centroid
    i_transformed = top.second_moment + top.area * dy_top * dy_top
    for b in braces:
        dy = y_bar - b.transformed_centroid
        i_transformed += b.transformed_second_moment + b.transformed_area * dy * dy

    _assert_finite("slice section", total_area, y_bar, i_transformed, e_ref * i_transformed)

    return SliceResult(
        centroid=y_bar,
        transformed_area=total_area,
        transformed_second_moment=i_transformed,
        EI=e_ref * i_transformed,
        top=top,
        braces=braces,
    )


def total_brace_breadth(result: SliceResult) -> float:
    return sum(b.breadth for b in result.braces)
