from __future__ import annotations

import html
from typing import Any, Dict, Iterable, List

from .calc_trace import CalcStep, CalcTrace

CSS = """
@page { size: A4; margin: 15mm; }
body { font-family: Arial, Helvetica, sans-serif; font-size: 10.5pt; color: #111; }
h1 { font-size: 16pt; margin: 0 0 6px 0; }
h2 { font-size: 12.5pt; margin: 16px 0 6px 0; border-bottom: 1px solid #ccc; padding-bottom: 2px; }
h3 { font-size: 11pt; margin: 12px 0 4px 0; }
.meta { font-size: 9pt; color: #333; }
.box { border: 1px solid #999; padding: 8px; margin: 6px 0; }
.warn { border: 1px solid #c80; background: #fff8e6; padding: 8px; margin: 6px 0; }
.eq { font-family: "Courier New", monospace; background: #f7f7f7; padding: 6px; white-space: pre-wrap; }
table { border-collapse: collapse; width: 100%; margin: 6px 0 10px 0; }
th, td { border: 1px solid #bbb; padding: 4px 6px; vertical-align: top; }
th { background: #f1f1f1; text-align: left; }
.pass { color: #0a6; font-weight: bold; }
.fail { color: #b00; font-weight: bold; }
"""


def _h(s: Any) -> str:
    return html.escape(str(s))


def _fmt(v: Any) -> str:
    if isinstance(v, float):
        return f"{v:.6g}"
    if v is None:
        return "-"
    return str(v)


def _table(headers: Iterable[str], rows: Iterable[Iterable[Any]]) -> str:
    out = ["<table><tr>"]
    out.extend(f"<th>{_h(c)}</th>" for c in headers)
    out.append("</tr>")
    for row in rows:
        out.append("<tr>" + "".join(f"<td>{_h(_fmt(c))}</td>" for c in row) + "</tr>")
    out.append("</table>")
    return "".join(out)


def _render_step(s: CalcStep) -> List[str]:
    parts = [f"<h3>{_h(s.id)}: {_h(s.title)}</h3>", "<div class='box'>"]
    parts.append(f"<div class='eq'>{_h(s.equation)}\n{_h(s.substitution)}</div>")
    parts.append(_table(
        ["Symbol", "Description", "Value", "Units", "Source"],
        [(v.symbol, v.description, v.value, v.units, v.source) for v in s.variables],
    ))
    parts.append(
        f"<div><b>{_h(s.output_symbol)}</b> = {_h(_fmt(s.value_rounded))} {_h(s.units)}"
        f" <span class='meta'>(unrounded {_h(repr(s.value))}; {_h(s.rounding.rule)} {_h(s.rounding.digits)})</span></div>"
    )
    if s.checks:
        rows = []
        for c in s.checks:
            cls = "pass" if c.pass_fail.upper() == "PASS" else "fail"
            rows.append(
                f"<tr><td>{_h(c.label)}</td><td>{_h(_fmt(c.demand))}</td><td>{_h(_fmt(c.capacity))}</td>"
                f"<td>{_h(_fmt(c.ratio))}</td><td class='{cls}'>{_h(c.pass_fail)}</td></tr>"
            )
        parts.append("<table><tr><th>Check</th><th>Demand</th><th>Limit</th><th>Ratio</th><th>Status</th></tr>")
        parts.extend(rows)
        parts.append("</table>")
    if s.references:
        parts.append("<div class='meta'>Ref: " + _h(", ".join(s.references)) + "</div>")
    parts.append("</div>")
    return parts


def render_report_html(trace: CalcTrace) -> str:
    meta = trace.meta
    parts: List[str] = [
        "<!doctype html><html><head><meta charset='utf-8'>",
        f"<title>Flexural Rigidity - {_h(meta.input_hash)}</title>",
        f"<style>{CSS}</style></head><body>",
        "<h1>Flexural Rigidity of a Layered Slice - Calculation Package</h1>",
        "<div class='meta'>"
        f"<div><b>Tool:</b> {_h(meta.tool_id)} v{_h(meta.tool_version)} (report {_h(meta.report_version)})</div>"
        f"<div><b>Generated:</b> {_h(meta.timestamp)}</div>"
        f"<div><b>Units:</b> {_h(meta.units_system)}</div>"
        f"<div><b>Input hash:</b> {_h(meta.input_hash)}</div>"
        f"<div><b>Basis:</b> {_h(meta.code_basis or '-')}</div>"
        "</div>",
    ]

    parts.append("<h2>Inputs</h2>")
    parts.append(_table(
        ["ID", "Label", "Value", "Units", "Source"],
        [(i.id, i.label, i.value, i.units, i.source) for i in trace.inputs],
    ))

    parts.append("<h2>Assumptions</h2>")
    if trace.assumptions:
        parts.append("<ul>" + "".join(f"<li><b>{_h(a.id)}</b>: {_h(a.text)}</li>" for a in trace.assumptions) + "</ul>")
    else:
        parts.append("<div class='box'>None.</div>")

    if trace.warnings:
        parts.append("<h2>Warnings</h2>")
        parts.extend(f"<div class='warn'>{_h(w)}</div>" for w in trace.warnings)

    braces: List[Dict[str, Any]] = trace.tables.get("braces", [])
    if braces:
        parts.append("<h2>Braces</h2>")
        parts.append(_table(
            ["#", "Offset (mm)", "b (mm)", "Height (mm)", "A' (mm^2)", "y (mm)", "I' (mm^4)", "EI (N*mm^2)"],
            [
                (b["index"], b["offset_mm"], b["breadth_mm"], b["height_mm"], b["transformed_area_mm2"],
                 b["transformed_centroid_mm"], b["transformed_second_moment_mm4"], b["EI_nmm2"])
                for b in braces
            ],
        ))

    parts.append("<h2>Calculations</h2>")
    section = None
    for s in trace.steps:
        if s.section != section:
            section = s.section
            parts.append(f"<h2 style='font-size:11.5pt'>{_h(section)}</h2>")
        parts.extend(_render_step(s))

    parts.append("<h2>Summary</h2>")
    if trace.summary:
        parts.append(_table(["Key", "Value"], sorted(trace.summary.items())))
    else:
        parts.append("<div class='box'>No summary provided.</div>")

    parts.append("</body></html>")
    return "".join(parts)
