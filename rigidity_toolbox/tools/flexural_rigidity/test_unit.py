from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from .calc_trace import CalcTrace, Rounding, apply_rounding, compute_input_hash, compute_step
from .calculator import (
    BraceSpec,
    DerivedBreadth,
    DirectBreadth,
    Segment,
    SliceParams,
    compute_brace_transformed,
    compute_intercept_breadth,
    compute_slice,
    compute_top_section,
)
from .errors import InvalidInputError, InvalidShapeError, NoActiveSegmentsError, ShallowAngleError
from .evaluation import evaluate_rotation, evaluate_with_trace, overlap_warning
from .layout import build_slice_params, compute_brace_offsets, inclination_from_perpendicular
from .models import BraceInput, FlexuralRigidityInputs
from .shapes import ShapeKind, shape_properties
from .tool import READOUT_KEYS, TOOL

RECT = ShapeKind.RECTANGLE
TRI = ShapeKind.TRIANGLE


def _rect_brace(heights, modulus=1000.0, breadth=20.0) -> BraceSpec:
    segs = [Segment(RECT, h, modulus) for h in heights]
    segs += [None] * (3 - len(segs))
    return BraceSpec(DirectBreadth(breadth), *segs)


# ------------------------------
# Shapes
# ------------------------------
@pytest.mark.parametrize("b,h", [(20.0, 5.0), (3.5, 12.25), (0.1, 1000.0)])
def test_shape_areas_exact(b, h) -> None:
    assert shape_properties(RECT, b, h).area == b * h
    assert shape_properties(TRI, b, h).area == b * h / 2
    assert shape_properties(ShapeKind.PARABOLIC, b, h).area == (2 / 3) * b * h


@pytest.mark.parametrize("shape", [ShapeKind.RECTANGLE, ShapeKind.TRIANGLE, ShapeKind.PARABOLIC])
def test_shape_centroid_inside_height(shape) -> None:
    for b, h in [(1.0, 1.0), (20.0, 7.0), (250.0, 0.5)]:
        c = shape_properties(shape, b, h).centroid
        assert 0.0 < c < h


def test_shape_formulas() -> None:
    p = shape_properties("parabolic", 12.0, 8.0)
    assert p.centroid == pytest.approx(3.0)
    assert p.second_moment == pytest.approx(19 / 480 * 12.0 * 8.0**3)
    t = shape_properties("triangle", 20.0, 7.0)
    assert t.centroid == pytest.approx(7.0 / 3)
    assert t.second_moment == pytest.approx(20.0 * 343.0 / 36)


def test_shape_none_is_inert_without_validation() -> None:
    for b, h in [(float("nan"), -1.0), (0.0, 0.0), (5.0, 5.0)]:
        p = shape_properties(ShapeKind.NONE, b, h)
        assert (p.area, p.centroid, p.second_moment) == (0.0, 0.0, 0.0)
    assert shape_properties("none", None, None).area == 0.0


def test_shape_errors() -> None:
    with pytest.raises(InvalidShapeError):
        shape_properties("hexagon", 1.0, 1.0)
    with pytest.raises(InvalidInputError) as e:
        shape_properties(RECT, -2.0, 1.0)
    assert e.value.parameter == "breadth"
    with pytest.raises(InvalidInputError) as e:
        shape_properties(TRI, 2.0, float("nan"))
    assert e.value.parameter == "height"
    assert "height" in str(e.value)
    with pytest.raises(InvalidInputError):
        shape_properties(RECT, 2.0, float("inf"))


# ------------------------------
# Intercept breadth
# ------------------------------
def test_breadth_shallow_angle_fails() -> None:
    with pytest.raises(ShallowAngleError) as e:
        compute_intercept_breadth(DerivedBreadth(plan_width=10.0, angle_deg=0.01), span=500.0)
    assert "intercept breadth" in str(e.value)
    with pytest.raises(ShallowAngleError):
        compute_intercept_breadth(DerivedBreadth(plan_width=10.0, angle_deg=180.0), span=500.0)


def test_breadth_derived_at_45_deg() -> None:
    b = compute_intercept_breadth(DerivedBreadth(plan_width=10.0, angle_deg=45.0), span=500.0)
    assert b == pytest.approx(10.0 / math.sin(math.radians(45.0)))
    assert b == pytest.approx(14.142, abs=1e-3)
    assert compute_intercept_breadth(DerivedBreadth(10.0, 45.0), span=12.0) == 12.0


def test_breadth_perpendicular_equals_plan_width() -> None:
    assert compute_intercept_breadth(DerivedBreadth(20.0, 90.0), span=500.0) == 20.0


def test_breadth_direct_is_clamped_to_span() -> None:
    assert compute_intercept_breadth(DirectBreadth(600.0), span=500.0) == 500.0
    assert compute_intercept_breadth(DirectBreadth(35.0), span=500.0) == 35.0


def test_breadth_invalid_inputs() -> None:
    cases = [
        (DirectBreadth(0.0), 500.0, "brace breadth b"),
        (DerivedBreadth(0.0, 45.0), 500.0, "brace plan width"),
        (DerivedBreadth(10.0, -30.0), 500.0, "brace angle"),
        (DirectBreadth(10.0), float("nan"), "span"),
    ]
    for spec, span, name in cases:
        with pytest.raises(InvalidInputError) as e:
            compute_intercept_breadth(spec, span)
        assert e.value.parameter == name


# ------------------------------
# Brace transformer
# ------------------------------
def test_homogeneous_brace_reduces_to_rectangle() -> None:
    res = compute_brace_transformed(_rect_brace([3.0, 4.0, 5.0]), span=500.0, reference_modulus=1000.0)
    assert res.height == 12.0
    assert res.transformed_area == pytest.approx(20.0 * 12.0)
    assert res.transformed_centroid == pytest.approx(6.0)
    assert res.transformed_second_moment == pytest.approx(20.0 * 12.0**3 / 12, rel=1e-9)


def test_two_rectangles_parallel_axis() -> None:
    res = compute_brace_transformed(_rect_brace([5.0, 5.0]), span=500.0, reference_modulus=1000.0)
    assert res.transformed_area == pytest.approx(200.0)
    assert res.transformed_centroid == pytest.approx(5.0)
    # 2 * (20*5^3/12 + 100*2.5^2)
    assert res.transformed_second_moment == pytest.approx(1666.6667, rel=1e-6)
    assert [s.centroid for s in res.segments] == [2.5, 7.5]


def test_modular_ratio_scales_area() -> None:
    res = compute_brace_transformed(_rect_brace([5.0], modulus=3000.0), span=500.0, reference_modulus=1000.0)
    seg = res.segments[0]
    assert seg.modular_ratio == 3.0
    assert seg.transformed_area == pytest.approx(3.0 * 100.0)
    assert seg.transformed_second_moment == pytest.approx(3.0 * 20.0 * 125.0 / 12)


def test_skipped_segments_do_not_advance_base() -> None:
    brace = BraceSpec(
        DirectBreadth(20.0),
        bottom=Segment(RECT, 0.0, 1000.0),
        middle=Segment(ShapeKind.NONE, 4.0, 1000.0),
        top=Segment(TRI, 6.0, 1000.0),
    )
    res = compute_brace_transformed(brace, span=500.0, reference_modulus=1000.0)
    assert [s.label for s in res.segments] == ["top"]
    assert res.segments[0].base == 0.0
    assert res.height == 6.0
    assert res.transformed_centroid == pytest.approx(2.0)


def test_stack_order_matters() -> None:
    tri_top = BraceSpec(DirectBreadth(20.0), Segment(RECT, 5.0, 1.0), None, Segment(TRI, 6.0, 1.0))
    tri_bottom = BraceSpec(DirectBreadth(20.0), Segment(TRI, 6.0, 1.0), None, Segment(RECT, 5.0, 1.0))
    a = compute_brace_transformed(tri_top, 500.0, 1.0)
    b = compute_brace_transformed(tri_bottom, 500.0, 1.0)
    assert a.transformed_area == pytest.approx(b.transformed_area)
    assert a.transformed_centroid != pytest.approx(b.transformed_centroid)


def test_no_active_segments_fails() -> None:
    with pytest.raises(NoActiveSegmentsError):
        compute_brace_transformed(_rect_brace([0.0, 0.0, 0.0]), 500.0, 1000.0)
    none_brace = BraceSpec(DirectBreadth(20.0), *(Segment(ShapeKind.NONE, 5.0, 1000.0) for _ in range(3)))
    with pytest.raises(NoActiveSegmentsError):
        compute_brace_transformed(none_brace, 500.0, 1000.0)
    with pytest.raises(NoActiveSegmentsError):
        compute_brace_transformed(BraceSpec(DirectBreadth(20.0)), 500.0, 1000.0)


def test_brace_invalid_modulus_names_segment() -> None:
    brace = BraceSpec(DirectBreadth(20.0), Segment(RECT, 5.0, 1000.0), Segment(RECT, 5.0, 0.0))
    with pytest.raises(InvalidInputError) as e:
        compute_brace_transformed(brace, 500.0, 1000.0)
    assert e.value.parameter == "middle modulus"
    with pytest.raises(InvalidInputError) as e:
        compute_brace_transformed(_rect_brace([5.0]), 500.0, -1.0)
    assert e.value.parameter == "top modulus"


def test_brace_segment_height_must_be_numeric() -> None:
    for height in (None, "5", True):
        brace = BraceSpec(DirectBreadth(20.0), Segment(RECT, 5.0, 1000.0), Segment(RECT, height, 1000.0))
        with pytest.raises(InvalidInputError) as e:
            compute_brace_transformed(brace, 500.0, 1000.0)
        assert e.value.parameter == "middle height"


# ------------------------------
# Slice composer
# ------------------------------
def _scenario() -> SliceParams:
    e = 12 * 1000.0
    brace = BraceSpec(
        DerivedBreadth(plan_width=20.0, angle_deg=90.0),
        bottom=Segment(RECT, 5.0, e),
        middle=Segment(RECT, 5.0, e),
        top=Segment(TRI, 7.0, e),
    )
    return SliceParams(span=500.0, top_thickness=4.0, top_modulus=10 * 1000.0, braces=(brace,))


def test_end_to_end_scenario() -> None:
    res = compute_slice(_scenario())
    brace = res.braces[0]
    assert brace.breadth == 20.0
    assert brace.transformed_area == pytest.approx(324.0)
    assert brace.transformed_centroid == pytest.approx(2236.0 / 324.0)

    # brace about its own centroid, segment by segment
    yb = 2236.0 / 324.0
    i_brace = (
        250.0 + 120.0 * (yb - 2.5) ** 2
        + 250.0 + 120.0 * (yb - 7.5) ** 2
        + 1.2 * 20.0 * 343.0 / 36 + 84.0 * (yb - (10.0 + 7.0 / 3)) ** 2
    )
    assert brace.transformed_second_moment == pytest.approx(i_brace)

    y = 6236.0 / 2324.0
    assert res.transformed_area == pytest.approx(2324.0)
    assert res.centroid == pytest.approx(y)
    i_total = 500.0 * 64.0 / 12 + 2000.0 * (y - 2.0) ** 2 + i_brace + 324.0 * (yb - y) ** 2
    assert res.transformed_second_moment == pytest.approx(i_total)
    assert res.EI == pytest.approx(10000.0 * i_total)


def test_slice_is_deterministic() -> None:
    a = compute_slice(_scenario())
    b = compute_slice(_scenario())
    assert a == b
    assert a.EI == b.EI


def test_slice_without_braces_is_top_rectangle() -> None:
    res = compute_slice(SliceParams(span=300.0, top_thickness=6.0, top_modulus=2.0))
    assert res.centroid == pytest.approx(3.0)
    assert res.transformed_second_moment == pytest.approx(300.0 * 6.0**3 / 12)
    assert res.EI == pytest.approx(2.0 * 300.0 * 6.0**3 / 12)
    assert res.braces == ()


def test_slice_fails_when_any_brace_fails() -> None:
    good = _scenario().braces[0]
    bad = BraceSpec(DerivedBreadth(20.0, 0.01), bottom=Segment(RECT, 5.0, 1.0))
    with pytest.raises(ShallowAngleError):
        compute_slice(SliceParams(500.0, 4.0, 10000.0, braces=(good, bad)))


def test_top_section_validation() -> None:
    with pytest.raises(InvalidInputError) as e:
        compute_top_section(500.0, 0.0)
    assert e.value.parameter == "top thickness"
    with pytest.raises(InvalidInputError) as e:
        compute_slice(SliceParams(500.0, 4.0, float("nan")))
    assert e.value.parameter == "top modulus"


def test_overflowing_sections_are_invalid_input() -> None:
    # h**3 overflows
    with pytest.raises(InvalidInputError) as e:
        compute_slice(SliceParams(1e200, 1e200, 1.0))
    assert e.value.parameter == "top thickness"
    # product overflows to inf
    with pytest.raises(InvalidInputError) as e:
        compute_slice(SliceParams(1e300, 1e3, 1.0))
    assert e.value.parameter == "top thickness"
    with pytest.raises(InvalidInputError) as e:
        shape_properties(TRI, 1.0, 1e103)
    assert e.value.parameter == "height"
    with pytest.raises(InvalidInputError) as e:
        compute_brace_transformed(_rect_brace([5.0], modulus=1e308), 500.0, 1e-300)
    assert e.value.parameter == "brace section"
    with pytest.raises(InvalidInputError) as e:
        compute_slice(SliceParams(500.0, 4.0, 1e306))
    assert e.value.parameter == "slice section"


# ------------------------------
# Layout, rotation, models
# ------------------------------
def test_inclination_from_perpendicular() -> None:
    assert inclination_from_perpendicular(0.0) == 90.0
    assert inclination_from_perpendicular(30.0) == 60.0
    assert inclination_from_perpendicular(95.0) == pytest.approx(0.1)
    assert inclination_from_perpendicular(-10.0) == 90.0


def test_brace_offsets() -> None:
    offsets = compute_brace_offsets(500.0, [20.0, 20.0])
    gap = (500.0 - 40.0) / 3
    assert offsets[0] == pytest.approx(-250.0 + gap + 10.0)
    assert offsets[1] == pytest.approx(-offsets[0])
    # too wide: packed from the left end
    assert compute_brace_offsets(30.0, [20.0, 20.0]) == pytest.approx([-5.0, 15.0])
    assert compute_brace_offsets(30.0, []) == []


def test_rotation_check() -> None:
    rot = evaluate_rotation(12.0, 1.0e8, 2.0)
    assert rot.moment_nmm == 12000.0
    assert rot.rotation_deg == pytest.approx(12000.0 / 1.0e8 * 180.0 / math.pi)
    assert rot.passes is True
    assert evaluate_rotation(12.0, 1.0e3, 2.0).passes is False
    assert evaluate_rotation(12.0, 1.0e8, None).passes is None


def test_overlap_warning() -> None:
    res = compute_slice(SliceParams(30.0, 1.0, 1.0, braces=(_rect_brace([5.0], breadth=20.0),) * 2))
    assert overlap_warning(30.0, res) is not None
    assert overlap_warning(500.0, compute_slice(_scenario())) is None


def test_default_inputs_build_two_perpendicular_braces() -> None:
    params = build_slice_params(FlexuralRigidityInputs())
    assert len(params.braces) == 2
    assert params.top_modulus == 10000.0
    brace = params.braces[0]
    assert brace.breadth == DerivedBreadth(plan_width=20.0, angle_deg=90.0)
    assert brace.top.shape is ShapeKind.TRIANGLE
    assert brace.bottom.modulus == 12000.0


def test_explicit_braces_and_direct_breadth() -> None:
    model = FlexuralRigidityInputs(
        braces=[
            {"intercept_breadth_mm": 30.0, "bottom": {"height_mm": 5.0, "modulus_gpa": 12.0}},
            {"plan_width_mm": 10.0, "inclination_deg": 45.0, "top": {"shape": "Parabolic ", "height_mm": 4.0, "modulus_gpa": 8.0}},
        ]
    )
    params = build_slice_params(model)
    assert params.braces[0].breadth == DirectBreadth(30.0)
    assert params.braces[1].breadth == DerivedBreadth(10.0, 45.0)
    assert params.braces[1].top.shape is ShapeKind.PARABOLIC
    assert params.braces[1].bottom is None

    top_only = build_slice_params(FlexuralRigidityInputs(braces=[]))
    assert top_only.braces == ()


def test_model_validation() -> None:
    assert FlexuralRigidityInputs(top_shape=" TRIANGLE").top_shape == "triangle"
    with pytest.raises(ValidationError):
        BraceInput(plan_width_mm=10.0)
    with pytest.raises(ValidationError):
        FlexuralRigidityInputs(span_mm=0.0)
    with pytest.raises(ValidationError):
        FlexuralRigidityInputs(top_shape="hexagon")


# ------------------------------
# Tool (live mode) and trace
# ------------------------------
def test_compute_defaults() -> None:
    out = TOOL.compute(TOOL.default_inputs())
    assert out["ok"] is True
    assert out["EI_nm2"] == pytest.approx(out["EI_nmm2"] * 1e-6)
    assert out["brace_height_mm"] == 17.0
    assert len(out["braces"]) == 2
    assert out["rotation_status"] in ("OK", "Over limit")
    assert out["warnings"] == []


def test_compute_reports_errors_with_placeholders() -> None:
    inputs = TOOL.default_inputs()
    inputs["braces"] = [{"plan_width_mm": 10.0, "inclination_deg": 0.01, "bottom": {"height_mm": 5.0, "modulus_gpa": 12.0}}]
    out = TOOL.compute(inputs)
    assert out["ok"] is False
    assert "too shallow" in out["error"]
    assert all(out[k] is None for k in READOUT_KEYS)

    bad = TOOL.compute({"span_mm": -1.0})
    assert bad["ok"] is False
    assert "span_mm" in bad["error"]


def test_compute_rejects_overflow_and_non_finite_inputs() -> None:
    for inputs in (
        {"top_thickness_mm": 1e103},
        {"span_mm": 1e200, "top_thickness_mm": 1e200},
    ):
        out = TOOL.compute(inputs)
        assert out["ok"] is False
        assert "top thickness" in out["error"]
        assert all(out[k] is None for k in READOUT_KEYS)

    out = TOOL.compute({"applied_moment_nm": float("nan")})
    assert out["ok"] is False
    assert "applied_moment_nm" in out["error"]
    assert out["rotation_status"] is None
    with pytest.raises(ValidationError):
        BraceInput(intercept_breadth_mm=float("inf"))
    with pytest.raises(ValidationError):
        FlexuralRigidityInputs(braces=[{"intercept_breadth_mm": 20.0, "bottom": {"height_mm": float("nan"), "modulus_gpa": 12.0}}])


def test_trace_records_all_steps() -> None:
    params = _scenario()
    res = compute_slice(params)
    trace = CalcTrace.new(tool_id="flexural_rigidity", tool_version="test", inputs={"span_mm": 500.0}, units_system="SI")
    evaluate_with_trace(trace, params, res, evaluate_rotation(12.0, res.EI, 2.0))
    ids = [s.id for s in trace.steps]
    assert ids[:2] == ["T1", "T2"]
    assert next(s for s in trace.steps if s.id == "B1.1").equation == "b = min(w_plan / |sin(phi)|, L)"
    assert {"B1.1", "B1.2", "B1.3", "B1.4", "B1.c", "B1.I", "S1", "S2", "S3", "S4", "R1"} <= set(ids)
    s4 = next(s for s in trace.steps if s.id == "S4")
    assert s4.value == res.EI
    assert s4.substitution.startswith("EI = ")
    r1 = next(s for s in trace.steps if s.id == "R1")
    assert r1.checks[0].pass_fail == "PASS"
    assert trace.inputs[0].units == "mm"


def test_compute_step_and_rounding() -> None:
    trace = CalcTrace.new(tool_id="t", tool_version="0", inputs={}, units_system="SI")
    v = compute_step(
        trace,
        id="X1",
        section="S",
        title="Area",
        output_symbol="A_top",
        equation="A_top = L * t",
        variables=[
            {"symbol": "L", "description": "span", "value": 500.0, "units": "mm", "source": "input"},
            {"symbol": "t", "description": "thickness", "value": 4.0, "units": "mm", "source": "input"},
        ],
        compute_fn=lambda: 2000.0,
        units="mm^2",
        rounding=Rounding("sigfigs", 2),
    )
    assert v == 2000.0
    assert trace.steps[0].substitution == "A_top = 500 mm * 4 mm"
    assert apply_rounding(14939.57, Rounding("sigfigs", 4)) == 14940.0
    assert apply_rounding(2.683305, Rounding("decimals", 3)) == 2.683
    with pytest.raises(ValueError):
        compute_step(trace, id="", section="S", title="x", output_symbol="x", equation="x", variables=[],
                     compute_fn=lambda: 0.0, units="-", rounding=Rounding("decimals", 1))


def test_input_hash_deterministic() -> None:
    a = {"b": 2.0, "a": 1.0, "braces": [{"y": 1.0, "x": 2.0}]}
    b = {"a": 1.0, "braces": [{"x": 2.0, "y": 1.0}], "b": 2.0}
    assert compute_input_hash(a) == compute_input_hash(b)
    assert compute_input_hash(a) != compute_input_hash({"a": 1.0})


def test_trace_direct_breadth_step() -> None:
    params = SliceParams(500.0, 4.0, 1000.0, braces=(_rect_brace([5.0], breadth=30.0),))
    res = compute_slice(params)
    trace = CalcTrace.new(tool_id="flexural_rigidity", tool_version="test", inputs={}, units_system="SI")
    evaluate_with_trace(trace, params, res, evaluate_rotation(12.0, res.EI, None))
    b11 = next(s for s in trace.steps if s.id == "B1.1")
    assert b11.equation == "b = min(b_direct, L)"
    assert b11.value == 30.0
    assert next(s for s in trace.steps if s.id == "R1").checks == []
