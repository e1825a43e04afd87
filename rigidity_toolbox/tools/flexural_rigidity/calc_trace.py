from __future__ import annotations

import hashlib
import json
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

# suffix -> units, longest suffixes first
_UNIT_SUFFIXES = (
    ("_mm4", "mm^4"),
    ("_mm2", "mm^2"),
    ("_nmm2", "N*mm^2"),
    ("_nm2", "N*m^2"),
    ("_mm", "mm"),
    ("_gpa", "GPa"),
    ("_nm", "N*m"),
    ("_deg", "deg"),
)


@dataclass(frozen=True)
class TraceMeta:
    tool_id: str
    tool_version: str
    report_version: str
    timestamp: str
    units_system: str
    input_hash: str
    code_basis: Optional[str] = None


@dataclass(frozen=True)
class TraceInput:
    id: str
    label: str
    value: Any
    units: str
    source: str  # user/default


@dataclass(frozen=True)
class Assumption:
    id: str
    text: str


@dataclass(frozen=True)
class CalcVar:
    symbol: str
    description: str
    value: Any
    units: str
    source: str


@dataclass(frozen=True)
class Rounding:
    rule: str  # "decimals" | "sigfigs"
    digits: int


@dataclass(frozen=True)
class CheckResult:
    label: str
    demand: float
    capacity: float
    ratio: float
    pass_fail: str


@dataclass
class CalcStep:
    id: str
    section: str
    title: str
    output_symbol: str
    equation: str
    substitution: str
    variables: List[CalcVar]
    value: float
    value_rounded: float
    units: str
    rounding: Rounding
    references: List[str]
    checks: List[CheckResult] = field(default_factory=list)


@dataclass
class CalcTrace:
    """Reproducible record of one calculation run.

    All exports (HTML/PDF/Excel/JSON) are rendered from this object.
    """

    meta: TraceMeta
    inputs: List[TraceInput] = field(default_factory=list)
    assumptions: List[Assumption] = field(default_factory=list)
    steps: List[CalcStep] = field(default_factory=list)
    tables: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        *,
        tool_id: str,
        tool_version: str,
        inputs: Dict[str, Any],
        units_system: str,
        report_version: str = "1.0",
        input_hash: Optional[str] = None,
        code_basis: Optional[str] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "CalcTrace":
        """Start a trace; inputs equal to `defaults` are tagged as such."""
        meta = TraceMeta(
            tool_id=tool_id,
            tool_version=tool_version,
            report_version=report_version,
            timestamp=datetime.now().isoformat(timespec="seconds"),
            units_system=units_system,
            input_hash=input_hash or compute_input_hash(inputs),
            code_basis=code_basis,
        )
        defaults = defaults or {}
        trace_inputs = [
            TraceInput(
                id=k,
                label=k.replace("_", " "),
                value=inputs[k],
                units=infer_units(k),
                source="default" if k in defaults and defaults[k] == inputs[k] else "user",
            )
            for k in sorted(inputs)
        ]
        return cls(meta=meta, inputs=trace_inputs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def infer_units(key: str) -> str:
    for suffix, units in _UNIT_SUFFIXES:
        if key.endswith(suffix):
            return units
    return "-"


def compute_input_hash(inputs: Dict[str, Any]) -> str:
    """Deterministic short hash of normalized, sorted inputs."""

    def _norm(v: Any) -> Any:
        if isinstance(v, float):
            return float(f"{v:.12g}")
        if isinstance(v, dict):
            return {k: _norm(v[k]) for k in sorted(v)}
        if isinstance(v, (list, tuple)):
            return [_norm(x) for x in v]
        return v

    payload = json.dumps(_norm(inputs), sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]


def apply_rounding(x: float, rounding: Rounding) -> float:
    if rounding.rule == "decimals":
        return round(x, rounding.digits)
    if rounding.rule == "sigfigs":
        if x == 0 or not math.isfinite(x):
            return x
        return round(x, rounding.digits - 1 - int(math.floor(math.log10(abs(x)))))
    raise ValueError(f"Unsupported rounding rule: {rounding.rule}")


def _format_value(value: Any, units: str) -> str:
    text = f"{value:.6g}" if isinstance(value, float) else str(value)
    return f"{text} {units}" if units and units != "-" else text


def compute_step(
    trace: CalcTrace,
    *,
    id: str,
    section: str,
    title: str,
    output_symbol: str,
    equation: str,
    variables: List[Dict[str, Any]],
    compute_fn: Callable[[], float],
    units: str,
    rounding: Rounding,
    references: Optional[List[str]] = None,
    checks_builder: Optional[Callable[[float], List[CheckResult]]] = None,
) -> float:
    """Evaluate one step, append it to the trace and return the unrounded value.

    Each variable dict needs symbol, description, value, units and source.
    """
    if not id or not section or not title:
        raise ValueError("compute_step requires non-empty id/section/title.")

    var_objs: List[CalcVar] = []
    for v in variables:
        missing = [k for k in ("symbol", "description", "value", "units", "source") if k not in v]
        if missing:
            raise ValueError(f"Variable missing {missing} in step {id}.")
        var_objs.append(CalcVar(**{k: v[k] for k in ("symbol", "description", "value", "units", "source")}))

    value = float(compute_fn())

    # substitute on the right-hand side only, longest symbols first
    lhs, sep, rhs = equation.partition(" = ")
    if not sep:
        lhs, rhs = "", equation
    for var in sorted(var_objs, key=lambda x: len(x.symbol), reverse=True):
        rhs = rhs.replace(var.symbol, _format_value(var.value, var.units))
    substitution = f"{lhs}{sep}{rhs}"

    trace.steps.append(
        CalcStep(
            id=id,
            section=section,
            title=title,
            output_symbol=output_symbol,
            equation=equation,
            substitution=substitution,
            variables=var_objs,
            value=value,
            value_rounded=apply_rounding(value, rounding),
            units=units,
            rounding=rounding,
            references=list(references or []),
            checks=checks_builder(value) if checks_builder else [],
        )
    )
    return value
