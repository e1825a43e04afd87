from __future__ import annotations

import json

import pytest
from loguru import logger

from rigidity_toolbox.cli import main
from rigidity_toolbox.core.loader import discover_tools, get_tool
from rigidity_toolbox.core.settings import load_settings, save_settings


@pytest.fixture(autouse=True)
def _user_data(tmp_path, monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    yield
    # drop the sinks configure_logging attached to this tmp dir
    logger.remove()


def test_discover_tools():
    ids = [t.meta.id for t in discover_tools()]
    assert "flexural_rigidity" in ids
    assert get_tool("flexural_rigidity").meta.category == "Section Properties"
    with pytest.raises(KeyError):
        get_tool("no_such_tool")


def test_cli_list(capsys):
    assert main(["list"]) == 0
    assert "flexural_rigidity" in capsys.readouterr().out


def test_cli_run_live(capsys):
    rc = main(["run", "flexural_rigidity", "--live", "--set", "span_mm=400", "--set", "top_shape=parabolic"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is True
    assert out["EI_nmm2"] > 0


def test_cli_run_batch(tmp_path, capsys):
    path = tmp_path / "inputs.json"
    path.write_text(json.dumps({"brace_count": 3, "rotation_limit_deg": None}), encoding="utf-8")
    rc = main(["run", "flexural_rigidity", "--inputs", str(path)])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert len(out["braces"]) == 3
    assert out["rotation_status"] is None
    assert (tmp_path / "RigidityToolbox" / "logs" / "toolbox.log").exists()


def test_cli_errors(capsys):
    assert main(["run", "no_such_tool"]) == 2
    assert main(["run", "flexural_rigidity", "--set", "span_mm=-1"]) == 2
    assert "span_mm" in capsys.readouterr().err
    assert main(["run", "flexural_rigidity", "--live", "--set", "applied_moment_nm=NaN"]) == 2
    assert "applied_moment_nm" in capsys.readouterr().err
    # valid model, failing calculation
    rc = main(["run", "flexural_rigidity", "--live", "--set", "bottom_height_mm=0",
               "--set", "middle_height_mm=0", "--set", "top_height_mm=0"])
    assert rc == 1
    assert json.loads(capsys.readouterr().out)["error"] == "Brace has no active segments."


def test_settings_round_trip(tmp_path):
    assert load_settings() == {}
    save_settings({"log_level": "DEBUG"})
    assert load_settings() == {"log_level": "DEBUG"}
    (tmp_path / "RigidityToolbox" / "settings.json").write_text("[1, 2]", encoding="utf-8")
    assert load_settings() == {}
