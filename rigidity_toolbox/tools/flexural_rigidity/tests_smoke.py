from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from .paths import create_run_dir
from .tool import TOOL


@pytest.fixture(autouse=True)
def _user_data(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))


def _assert_exists(p: Path) -> None:
    assert p.exists(), f"Missing: {p}"


def _check_outputs(run_dir: Path) -> None:
    _assert_exists(run_dir / "report.html")
    _assert_exists(run_dir / "report.pdf")
    _assert_exists(run_dir / "calc_trace.json")
    _assert_exists(run_dir / "results.json")
    _assert_exists(run_dir / "results.xlsx")
    _assert_exists(run_dir / "run.log")


def test_smoke_case_1():
    inputs = TOOL.default_inputs()
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    run_dir = Path(res["run_dir"])
    _check_outputs(run_dir)

    saved = json.loads((run_dir / "results.json").read_text(encoding="utf-8"))
    assert saved["EI_nmm2"] == pytest.approx(res["EI_nmm2"])
    assert len(saved["braces"]) == 2
    assert "Batch run complete" in (run_dir / "run.log").read_text(encoding="utf-8")


def test_smoke_case_2():
    inputs = TOOL.default_inputs()
    inputs.update(
        {
            "span_mm": 60.0,
            "braces": [
                {
                    "intercept_breadth_mm": 40.0,
                    "bottom": {"shape": "rectangle", "height_mm": 6.0, "modulus_gpa": 12.0},
                    "top": {"shape": "parabolic", "height_mm": 4.0, "modulus_gpa": 8.0},
                },
                {
                    "plan_width_mm": 15.0,
                    "inclination_deg": 60.0,
                    "middle": {"shape": "triangle", "height_mm": 8.0, "modulus_gpa": 11.0},
                },
            ],
        }
    )
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    _check_outputs(Path(res["run_dir"]))
    # 40 + 17.3 mm of braces on a 60 mm span do not overlap; no warning yet
    assert res["warnings"] == []

    inputs["span_mm"] = 50.0
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    assert len(res["warnings"]) == 1
    trace = json.loads((Path(res["run_dir"]) / "calc_trace.json").read_text(encoding="utf-8"))
    assert trace["warnings"] == res["warnings"]


def test_smoke_failed_run_keeps_log():
    inputs = TOOL.default_inputs()
    inputs["braces"] = [{"plan_width_mm": 10.0, "inclination_deg": 0.01, "bottom": {"height_mm": 5.0, "modulus_gpa": 12.0}}]
    res = TOOL.run_batch(inputs)
    assert res["ok"] is False
    assert "too shallow" in res["error"]
    run_dir = Path(res["run_dir"])
    _assert_exists(run_dir / "run.log")
    assert not (run_dir / "report.html").exists()


def test_smoke_invalid_inputs_raise():
    with pytest.raises(ValidationError):
        TOOL.run_batch({"span_mm": -5.0})


def test_run_dirs_for_identical_inputs_are_distinct():
    dirs = {create_run_dir(input_hash="abcdef123456") for _ in range(20)}
    assert len(dirs) == 20
    for d in dirs:
        assert d.is_dir()
        # <ts>_<6 hash chars><8 random chars>
        assert d.name.split("_")[-1].startswith("abcdef")
        assert len(d.name.split("_")[-1]) == 14
