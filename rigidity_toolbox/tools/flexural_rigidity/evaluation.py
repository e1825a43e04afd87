from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .calc_trace import CalcTrace, CheckResult, Rounding, compute_step
from .calculator import DirectBreadth, SliceParams, SliceResult, total_brace_breadth
from .constants import NM_TO_NMM, RAD_TO_DEG

SIG4 = Rounding(rule="sigfigs", digits=4)
DEC3 = Rounding(rule="decimals", digits=3)


@dataclass(frozen=True)
class RotationCheck:
    moment_nmm: float
    rotation_deg: float
    limit_deg: Optional[float]
    passes: Optional[bool]  # None when no limit is given


def evaluate_rotation(applied_moment_nm: float, EI_nmm2: float, limit_deg: Optional[float]) -> RotationCheck:
    """
    Rotation read-out from the applied moment:

      theta = (M * 1000) / EI * 180/pi     [M in N*m, EI in N*mm^2]
    """
    moment_nmm = applied_moment_nm * NM_TO_NMM
    rotation_deg = moment_nmm / EI_nmm2 * RAD_TO_DEG
    passes = None if limit_deg is None else rotation_deg <= limit_deg
    return RotationCheck(moment_nmm=moment_nmm, rotation_deg=rotation_deg, limit_deg=limit_deg, passes=passes)


def brace_rigidities(params: SliceParams, result: SliceResult) -> List[float]:
    """EI of each brace on its own, referenced to the top modulus (N*mm^2)."""
    return [params.top_modulus * b.transformed_second_moment for b in result.braces]


def overlap_warning(span: float, result: SliceResult) -> Optional[str]:
    total = total_brace_breadth(result)
    if total > span:
        return (
            f"Sum of brace breadths ({total:.6g} mm) exceeds the span ({span:.6g} mm); "
            "braces overlap and are not checked for it."
        )
    return None


def evaluate_with_trace(
    trace: CalcTrace,
    params: SliceParams,
    result: SliceResult,
    rotation: RotationCheck,
) -> None:
    """Record the transformed-section steps of an already computed slice."""
    top = result.top
    e_ref = params.top_modulus

    compute_step(
        trace,
        id="T1",
        section="Top layer",
        title="Top layer area",
        output_symbol="A_top",
        equation="A_top = L * t",
        variables=[
            {"symbol": "L", "description": "Span", "value": params.span, "units": "mm", "source": "input:span_mm"},
            {"symbol": "t", "description": "Top thickness", "value": params.top_thickness, "units": "mm", "source": "input:top_thickness_mm"},
        ],
        compute_fn=lambda: top.area,
        units="mm^2",
        rounding=SIG4,
        references=["calculator.compute_top_section"],
    )
    compute_step(
        trace,
        id="T2",
        section="Top layer",
        title="Top layer second moment about own centroid",
        output_symbol="I_top",
        equation="I_top = L * t^3 / 12",
        variables=[
            {"symbol": "L", "description": "Span", "value": params.span, "units": "mm", "source": "input:span_mm"},
            {"symbol": "t", "description": "Top thickness", "value": params.top_thickness, "units": "mm", "source": "input:top_thickness_mm"},
        ],
        compute_fn=lambda: top.second_moment,
        units="mm^4",
        rounding=SIG4,
        references=["calculator.compute_top_section"],
    )

    for i, (spec, brace) in enumerate(zip(params.braces, result.braces), start=1):
        section = f"Brace {i}"
        if isinstance(spec.breadth, DirectBreadth):
            equation = "b = min(b_direct, L)"
            variables = [
                {"symbol": "b_direct", "description": "Direct intercept breadth", "value": spec.breadth.value, "units": "mm", "source": "input"},
            ]
        else:
            equation = "b = min(w_plan / |sin(phi)|, L)"
            variables = [
                {"symbol": "w_plan", "description": "Plan width", "value": spec.breadth.plan_width, "units": "mm", "source": "input"},
                {"symbol": "phi", "description": "Inclination to span", "value": spec.breadth.angle_deg, "units": "deg", "source": "derived"},
            ]
        variables.append({"symbol": "L", "description": "Span", "value": params.span, "units": "mm", "source": "input:span_mm"})
        compute_step(
            trace,
            id=f"B{i}.1",
            section=section,
            title="Intercept breadth",
            output_symbol="b",
            equation=equation,
            variables=variables,
            compute_fn=lambda brace=brace: brace.breadth,
            units="mm",
            rounding=DEC3,
            references=["calculator.compute_intercept_breadth"],
        )

        for j, seg in enumerate(brace.segments, start=2):
            compute_step(
                trace,
                id=f"B{i}.{j}",
                section=section,
                title=f"{seg.label.capitalize()} segment ({seg.shape.value}) transformed area",
                output_symbol="A'",
                equation="A' = (E_seg / E_ref) * A",
                variables=[
                    {"symbol": "E_seg", "description": "Segment modulus", "value": seg.modular_ratio * e_ref, "units": "N/mm^2", "source": "input"},
                    {"symbol": "E_ref", "description": "Reference modulus", "value": e_ref, "units": "N/mm^2", "source": "input:top_modulus_gpa"},
                    {"symbol": "A", "description": f"Area at b = {seg.breadth:.6g} mm, h = {seg.height:.6g} mm", "value": seg.area, "units": "mm^2", "source": "shapes.shape_properties"},
                ],
                compute_fn=lambda seg=seg: seg.transformed_area,
                units="mm^2",
                rounding=SIG4,
                references=["calculator.compute_brace_transformed"],
            )

        compute_step(
            trace,
            id=f"B{i}.c",
            section=section,
            title="Transformed brace centroid",
            output_symbol="y_brace",
            equation="y_brace = sum(A'_i * y_i) / sum(A'_i)",
            variables=[
                {"symbol": "sum(A'_i)", "description": "Transformed brace area", "value": brace.transformed_area, "units": "mm^2", "source": "derived"},
            ],
            compute_fn=lambda brace=brace: brace.transformed_centroid,
            units="mm",
            rounding=DEC3,
            references=["calculator.compute_brace_transformed"],
        )
        compute_step(
            trace,
            id=f"B{i}.I",
            section=section,
            title="Transformed brace second moment",
            output_symbol="I_brace",
            equation="I_brace = sum(I'_i + A'_i * (y_brace - y_i)^2)",
            variables=[
                {"symbol": "y_brace", "description": "Transformed brace centroid", "value": brace.transformed_centroid, "units": "mm", "source": f"step:B{i}.c"},
            ],
            compute_fn=lambda brace=brace: brace.transformed_second_moment,
            units="mm^4",
            rounding=SIG4,
            references=["calculator.compute_brace_transformed"],
        )

    compute_step(
        trace,
        id="S1",
        section="Slice",
        title="Total transformed area",
        output_symbol="A'_tot",
        equation="A'_tot = A_top + sum(A'_brace)",
        variables=[
            {"symbol": "A_top", "description": "Top layer area", "value": top.area, "units": "mm^2", "source": "step:T1"},
        ],
        compute_fn=lambda: result.transformed_area,
        units="mm^2",
        rounding=SIG4,
        references=["calculator.compute_slice"],
    )
    compute_step(
        trace,
        id="S2",
        section="Slice",
        title="Global centroid",
        output_symbol="y_bar",
        equation="y_bar = (A_top * y_top + sum(A'_brace * y_brace)) / A'_tot",
        variables=[
            {"symbol": "A'_tot", "description": "Total transformed area", "value": result.transformed_area, "units": "mm^2", "source": "step:S1"},
            {"symbol": "y_top", "description": "Top layer centroid", "value": top.centroid, "units": "mm", "source": "derived"},
        ],
        compute_fn=lambda: result.centroid,
        units="mm",
        rounding=DEC3,
        references=["calculator.compute_slice"],
    )
    compute_step(
        trace,
        id="S3",
        section="Slice",
        title="Global transformed second moment",
        output_symbol="I'",
        equation="I' = I_top + A_top * (y_bar - y_top)^2 + sum(I_brace + A'_brace * (y_bar - y_brace)^2)",
        variables=[
            {"symbol": "I_top", "description": "Top layer second moment", "value": top.second_moment, "units": "mm^4", "source": "step:T2"},
            {"symbol": "y_bar", "description": "Global centroid", "value": result.centroid, "units": "mm", "source": "step:S2"},
        ],
        compute_fn=lambda: result.transformed_second_moment,
        units="mm^4",
        rounding=SIG4,
        references=["calculator.compute_slice"],
    )
    compute_step(
        trace,
        id="S4",
        section="Slice",
        title="Flexural rigidity",
        output_symbol="EI",
        equation="EI = E_ref * I'",
        variables=[
            {"symbol": "E_ref", "description": "Reference modulus", "value": e_ref, "units": "N/mm^2", "source": "input:top_modulus_gpa"},
            {"symbol": "I'", "description": "Global transformed second moment", "value": result.transformed_second_moment, "units": "mm^4", "source": "step:S3"},
        ],
        compute_fn=lambda: result.EI,
        units="N*mm^2",
        rounding=SIG4,
        references=["calculator.compute_slice"],
    )

    def _checks(theta: float) -> List[CheckResult]:
        if rotation.limit_deg is None:
            return []
        return [
            CheckResult(
                label="Rotation limit",
                demand=theta,
                capacity=rotation.limit_deg,
                ratio=theta / rotation.limit_deg,
                pass_fail="PASS" if rotation.passes else "FAIL",
            )
        ]

    compute_step(
        trace,
        id="R1",
        section="Rotation",
        title="Rotation under applied moment",
        output_symbol="theta",
        equation="theta = M / EI * 180/pi",
        variables=[
            {"symbol": "M", "description": "Applied moment", "value": rotation.moment_nmm, "units": "N*mm", "source": "input:applied_moment_nm"},
            {"symbol": "EI", "description": "Flexural rigidity", "value": result.EI, "units": "N*mm^2", "source": "step:S4"},
        ],
        compute_fn=lambda: rotation.rotation_deg,
        units="deg",
        rounding=Rounding(rule="decimals", digits=4),
        references=["evaluation.evaluate_rotation"],
        checks_builder=_checks,
    )
