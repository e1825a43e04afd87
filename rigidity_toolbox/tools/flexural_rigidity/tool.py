from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from rigidity_toolbox.core.schema_utils import format_validation_error
from rigidity_toolbox.core.tool_base import ToolMeta

from .calc_trace import Assumption, CalcTrace, compute_input_hash
from .calculator import SliceParams, SliceResult, compute_slice
from .constants import DEFAULT_UNITS_SYSTEM, NMM2_TO_NM2
from .errors import FlexuralRigidityError
from .evaluation import RotationCheck, brace_rigidities, evaluate_rotation, evaluate_with_trace, overlap_warning
from .exports import export_all
from .layout import build_slice_params, compute_brace_offsets
from .logging_utils import get_run_logger, remove_run_logger_sink
from .models import FlexuralRigidityInputs
from .paths import create_run_dir

# Read-outs shown by a front end; all None when the calculation fails.
READOUT_KEYS = (
    "EI_nmm2",
    "EI_nm2",
    "transformed_second_moment_mm4",
    "transformed_area_mm2",
    "centroid_mm",
    "brace_height_mm",
    "rotation_deg",
    "rotation_ok",
    "rotation_status",
)

ASSUMPTIONS = [
    Assumption(
        id="A1",
        text="Linear-elastic classical beam theory; plane sections remain plane and all layers are fully bonded.",
    ),
    Assumption(
        id="A2",
        text="Segments are transformed to the top layer modulus by their modular ratio E_seg / E_top.",
    ),
    Assumption(
        id="A3",
        text="Centroids are measured on one vertical axis from the base of the stack; the top layer "
             "and every brace share that origin.",
    ),
    Assumption(
        id="A4",
        text="Each brace breadth is clamped to the span individually; overlap between braces is not checked.",
    ),
]


@dataclass(frozen=True)
class SliceEvaluation:
    params: SliceParams
    result: SliceResult
    rotation: RotationCheck
    offsets: List[float]
    brace_EI: List[float]
    warning: Optional[str]


def evaluate_inputs(model: FlexuralRigidityInputs) -> SliceEvaluation:
    params = build_slice_params(model)
    result = compute_slice(params)
    rotation = evaluate_rotation(model.applied_moment_nm, result.EI, model.rotation_limit_deg)
    offsets = compute_brace_offsets(params.span, [b.breadth for b in result.braces])
    return SliceEvaluation(
        params=params,
        result=result,
        rotation=rotation,
        offsets=offsets,
        brace_EI=brace_rigidities(params, result),
        warning=overlap_warning(params.span, result),
    )


def _brace_rows(ev: SliceEvaluation) -> List[Dict[str, Any]]:
    rows = []
    for i, (b, offset, ei) in enumerate(zip(ev.result.braces, ev.offsets, ev.brace_EI), start=1):
        rows.append(
            {
                "index": i,
                "offset_mm": offset,
                "breadth_mm": b.breadth,
                "height_mm": b.height,
                "transformed_area_mm2": b.transformed_area,
                "transformed_centroid_mm": b.transformed_centroid,
                "transformed_second_moment_mm4": b.transformed_second_moment,
                "EI_nmm2": ei,
                "segments": [
                    {
                        "label": s.label,
                        "shape": s.shape.value,
                        "height_mm": s.height,
                        "base_mm": s.base,
                        "centroid_mm": s.centroid,
                        "modular_ratio": s.modular_ratio,
                        "transformed_area_mm2": s.transformed_area,
                        "transformed_second_moment_mm4": s.transformed_second_moment,
                    }
                    for s in b.segments
                ],
            }
        )
    return rows


def _readouts(ev: SliceEvaluation) -> Dict[str, Any]:
    r = ev.result
    rot = ev.rotation
    if rot.passes is None:
        status = None
    else:
        status = "OK" if rot.passes else "Over limit"
    return {
        "EI_nmm2": r.EI,
        "EI_nm2": r.EI * NMM2_TO_NM2,
        "transformed_second_moment_mm4": r.transformed_second_moment,
        "transformed_area_mm2": r.transformed_area,
        "centroid_mm": r.centroid,
        "brace_height_mm": r.braces[0].height if r.braces else None,
        "rotation_deg": rot.rotation_deg,
        "rotation_ok": rot.passes,
        "rotation_status": status,
    }


class FlexuralRigidityTool:
    """Flexural rigidity (EI) of a layered slice by the transformed-section method.

    - compute(): in-memory read-outs for live front ends, errors reported in the result.
    - run_batch(): full calculation package written to a run directory.
    """

    meta = ToolMeta(
        id="flexural_rigidity",
        name="Flexural Rigidity (Transformed Section)",
        category="Section Properties",
        version="0.1.0",
        description="EI of a top layer with composite braces, by modular-ratio transformation and the parallel-axis theorem.",
    )

    InputModel = FlexuralRigidityInputs

    RUNS_ON_UI_THREAD = False

    def default_inputs(self) -> dict:
        return self.InputModel().model_dump()

    def compute(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Recompute read-outs; on any input or calculation error every read-out is None."""
        try:
            model = self.InputModel.model_validate(inputs)
            ev = evaluate_inputs(model)
        except ValidationError as e:
            return self._failed(format_validation_error(e))
        except FlexuralRigidityError as e:
            return self._failed(str(e))

        out: Dict[str, Any] = {"ok": True, "error": None}
        out.update(_readouts(ev))
        out["braces"] = _brace_rows(ev)
        out["warnings"] = [ev.warning] if ev.warning else []
        return out

    @staticmethod
    def _failed(message: str) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": False, "error": message}
        out.update({k: None for k in READOUT_KEYS})
        out["braces"] = []
        out["warnings"] = []
        return out

    def run_batch(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Run the calculation and write the calc package. Raises ValidationError on bad inputs."""
        model = self.InputModel.model_validate(inputs)
        inputs_norm = model.model_dump()
        input_hash = compute_input_hash(inputs_norm)
        run_dir = create_run_dir(self.meta.id, input_hash)
        log, sink_id = get_run_logger(run_dir, self.meta.id, input_hash)

        try:
            log.info("Starting flexural rigidity batch run")
            log.info(f"Inputs (validated): {inputs_norm}")

            trace = CalcTrace.new(
                tool_id=self.meta.id,
                tool_version=self.meta.version,
                inputs=inputs_norm,
                units_system=DEFAULT_UNITS_SYSTEM,
                input_hash=input_hash,
                code_basis="Transformed-section method, classical beam theory",
                defaults=self.default_inputs(),
            )
            trace.assumptions.extend(ASSUMPTIONS)

            ev = evaluate_inputs(model)
            log.info(f"Resolved brace breadths (mm): {[b.breadth for b in ev.result.braces]}")
            for i, ei in enumerate(ev.brace_EI, start=1):
                log.debug(f"Brace {i} EI: {ei:.2f} N*mm^2")
            if ev.warning:
                log.warning(ev.warning)
                trace.warnings.append(ev.warning)

            evaluate_with_trace(trace, ev.params, ev.result, ev.rotation)

            readouts = _readouts(ev)
            braces = _brace_rows(ev)
            trace.tables["braces"] = braces
            trace.tables["top"] = {
                "area_mm2": ev.result.top.area,
                "centroid_mm": ev.result.top.centroid,
                "second_moment_mm4": ev.result.top.second_moment,
            }
            trace.summary = dict(readouts)

            results: Dict[str, Any] = {
                "ok": True,
                "run_dir": str(run_dir),
                "input_hash": input_hash,
                **readouts,
                "braces": braces,
                "warnings": list(trace.warnings),
            }

            out_paths = export_all(trace, run_dir, results)
            results["outputs"] = {k: str(v) for k, v in out_paths.items()}

            log.info(f"Batch run complete: EI = {ev.result.EI:.6g} N*mm^2")
            return results

        except Exception as e:
            log.exception("Batch run failed")
            return {
                "ok": False,
                "run_dir": str(run_dir),
                "input_hash": input_hash,
                "error": str(e),
                "traceback": traceback.format_exc(),
            }

        finally:
            remove_run_logger_sink(sink_id)

    def run(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Host entry point. This tool has no window of its own, so it runs headless."""
        return self.run_batch(inputs)


TOOL = FlexuralRigidityTool()
