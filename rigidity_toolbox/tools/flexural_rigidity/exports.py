from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .calc_trace import CalcTrace
from .report_renderer import render_report_html


def _cell(v: Any) -> Any:
    if isinstance(v, (dict, list, tuple)):
        return json.dumps(v, ensure_ascii=False, default=str)
    return v


def _autosize(ws) -> None:
    for col in ws.columns:
        width = max(len("" if c.value is None else str(c.value)) for c in col)
        ws.column_dimensions[get_column_letter(col[0].column)].width = min(80, max(10, width + 2))


def export_html(trace: CalcTrace, out_dir: Path) -> Path:
    p = out_dir / "report.html"
    p.write_text(render_report_html(trace), encoding="utf-8")
    return p


def export_pdf(trace: CalcTrace, out_dir: Path) -> Path:
    """
    One-page style summary: metadata, warnings and key outputs. Full steps are in report.html.
    """
    p = out_dir / "report.pdf"
    c = canvas.Canvas(str(p), pagesize=A4)
    w, h = A4
    y = h - 72

    def line(text: str, font: str = "Helvetica", size: int = 9, step: int = 12) -> None:
        nonlocal y
        if y < 72:
            c.showPage()
            y = h - 72
        c.setFont(font, size)
        c.drawString(72, y, text)
        y -= step

    line("Flexural Rigidity - Calculation Package (Summary)", "Helvetica-Bold", 14, 24)
    line(f"Tool: {trace.meta.tool_id} v{trace.meta.tool_version}", size=10, step=14)
    line(f"Input hash: {trace.meta.input_hash}", size=10, step=14)
    line(f"Generated: {trace.meta.timestamp}", size=10, step=22)

    if trace.warnings:
        line("Warnings:", "Helvetica-Bold", 10, 14)
        for msg in trace.warnings:
            line(f"  {msg}")
        y -= 6

    line("Key outputs:", "Helvetica-Bold", 10, 14)
    for k, v in (trace.summary or {}).items():
        line(f"  {k}: {v:.6g}" if isinstance(v, float) else f"  {k}: {v}")

    c.showPage()
    c.save()
    return p


def export_excel(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Path:
    wb = Workbook()

    ws = wb.active
    ws.title = "Inputs"
    ws.append(["id", "label", "value", "units", "source"])
    for i in trace.inputs:
        ws.append([i.id, i.label, _cell(i.value), i.units, i.source])

    ws = wb.create_sheet("Assumptions")
    ws.append(["id", "text"])
    for a in trace.assumptions:
        ws.append([a.id, a.text])

    ws = wb.create_sheet("Calcs")
    ws.append(["id", "section", "title", "equation", "substitution", "value", "value_rounded", "units", "references"])
    for s in trace.steps:
        ws.append([s.id, s.section, s.title, s.equation, s.substitution, s.value, s.value_rounded, s.units, "; ".join(s.references)])

    ws = wb.create_sheet("Tables")
    ws.append(["table", "json"])
    for k, t in trace.tables.items():
        ws.append([k, _cell(t)])

    ws = wb.create_sheet("Results")
    ws.append(["key", "value"])
    for k, v in results.items():
        ws.append([k, _cell(v)])

    for sheet in wb.worksheets:
        _autosize(sheet)

    p = out_dir / "results.xlsx"
    wb.save(p)
    return p


def export_json(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Dict[str, Path]:
    p1 = out_dir / "calc_trace.json"
    p1.write_text(json.dumps(trace.to_dict(), indent=2, ensure_ascii=True, default=str), encoding="utf-8")

    p2 = out_dir / "results.json"
    p2.write_text(json.dumps(results, indent=2, ensure_ascii=True, default=str), encoding="utf-8")
    return {"calc_trace": p1, "results": p2}


def export_all(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Dict[str, Path]:
    outputs: Dict[str, Path] = {}
    outputs["html"] = export_html(trace, out_dir)
    outputs["pdf"] = export_pdf(trace, out_dir)
    outputs.update(export_json(trace, out_dir, results))
    outputs["excel"] = export_excel(trace, out_dir, results)
    return outputs
