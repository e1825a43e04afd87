from __future__ import annotations

from typing import List, Optional, Sequence

from .calculator import (
    BraceSpec,
    BreadthSpec,
    DerivedBreadth,
    DirectBreadth,
    Segment,
    SliceParams,
    clamp,
)
from .constants import GPA_TO_N_PER_MM2, MAX_ANGLE_FROM_PERPENDICULAR_DEG
from .models import BraceInput, FlexuralRigidityInputs, SegmentInput
from .shapes import ShapeKind


def inclination_from_perpendicular(angle_from_perp_deg: float) -> float:
    """Angle measured from the perpendicular -> inclination to the span (deg)."""
    return 90.0 - clamp(angle_from_perp_deg, 0.0, MAX_ANGLE_FROM_PERPENDICULAR_DEG)


def _segment(seg: Optional[SegmentInput]) -> Optional[Segment]:
    if seg is None:
        return None
    return Segment(
        shape=ShapeKind(seg.shape),
        height=seg.height_mm,
        modulus=seg.modulus_gpa * GPA_TO_N_PER_MM2,
    )


def _breadth(brace: BraceInput) -> BreadthSpec:
    if brace.intercept_breadth_mm is not None:
        return DirectBreadth(brace.intercept_breadth_mm)
    return DerivedBreadth(plan_width=brace.plan_width_mm, angle_deg=brace.inclination_deg)


def brace_from_input(brace: BraceInput) -> BraceSpec:
    return BraceSpec(
        breadth=_breadth(brace),
        bottom=_segment(brace.bottom),
        middle=_segment(brace.middle),
        top=_segment(brace.top),
    )


def uniform_brace(inputs: FlexuralRigidityInputs) -> BraceSpec:
    if inputs.intercept_breadth_mm is not None:
        breadth: BreadthSpec = DirectBreadth(inputs.intercept_breadth_mm)
    else:
        breadth = DerivedBreadth(
            plan_width=inputs.brace_plan_width_mm,
            angle_deg=inclination_from_perpendicular(inputs.brace_angle_deg),
        )
    e = inputs.brace_modulus_gpa * GPA_TO_N_PER_MM2
    return BraceSpec(
        breadth=breadth,
        bottom=Segment(ShapeKind(inputs.bottom_shape), inputs.bottom_height_mm, e),
        middle=Segment(ShapeKind(inputs.middle_shape), inputs.middle_height_mm, e),
        top=Segment(ShapeKind(inputs.top_shape), inputs.top_height_mm, e),
    )


def build_slice_params(inputs: FlexuralRigidityInputs) -> SliceParams:
    """Validated tool inputs -> engine parameters (N, mm)."""
    if inputs.uses_explicit_braces():
        braces = tuple(brace_from_input(b) for b in inputs.braces or [])
    else:
        braces = (uniform_brace(inputs),) * inputs.brace_count
    return SliceParams(
        span=inputs.span_mm,
        top_thickness=inputs.top_thickness_mm,
        top_modulus=inputs.top_modulus_gpa * GPA_TO_N_PER_MM2,
        braces=braces,
    )


def compute_brace_offsets(span: float, widths: Sequence[float]) -> List[float]:
    """
    Horizontal centre offsets of the braces, measured from the span centre.

    If the braces fit, equal gaps separate them and the span ends:
      gap = (span - sum(widths)) / (n + 1)
    otherwise they are packed from the left end without gaps.
    """
    n = len(widths)
    if n == 0:
        return []
    total = float(sum(widths))
    gap = (span - total) / (n + 1) if total < span else 0.0

    offsets: List[float] = []
    x = -span / 2 + gap
    for w in widths:
        offsets.append(x + w / 2)
        x += w + gap
    return offsets
