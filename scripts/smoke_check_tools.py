from __future__ import annotations

import importlib
from pathlib import Path


def _check_path(label: str, path: Path) -> bool:
    ok = path.exists()
    status = "OK" if ok else "MISSING"
    print(f"[{status}] {label}: {path}")
    return ok


def _check_import(label: str, module_name: str, attr: str | None = None) -> bool:
    try:
        mod = importlib.import_module(module_name)
        if attr:
            getattr(mod, attr)
        print(f"[OK] import {label}")
        return True
    except Exception as e:
        print(f"[WARN] import {label} failed: {e}")
        return False


def main() -> int:
    root = Path(__file__).resolve().parents[1]
    ok = True

    ok &= _check_path(
        "Flexural rigidity tool",
        root / "rigidity_toolbox" / "tools" / "flexural_rigidity" / "tool.py",
    )

    ok &= _check_import("pydantic", "pydantic", "BaseModel")
    ok &= _check_import("loguru", "loguru", "logger")
    ok &= _check_import("openpyxl", "openpyxl", "Workbook")
    ok &= _check_import("reportlab", "reportlab.pdfgen.canvas", "Canvas")

    if ok:
        from rigidity_toolbox.core.loader import discover_tools

        tools = discover_tools()
        for tool in tools:
            print(f"[OK] tool {tool.meta.id} v{tool.meta.version}")
        ok &= any(t.meta.id == "flexural_rigidity" for t in tools)

    return 0 if ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
