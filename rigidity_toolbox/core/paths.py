from __future__ import annotations
import os
from pathlib import Path

APP_NAME = "RigidityToolbox"

def user_data_dir() -> Path:
    """
    Writable root for logs, settings and run outputs. Never the code folder.
    Windows default: %LOCALAPPDATA%\\RigidityToolbox\\
    """
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
    p = Path(base) / APP_NAME
    p.mkdir(parents=True, exist_ok=True)
    return p

def logs_dir() -> Path:
    p = user_data_dir() / "logs"
    p.mkdir(parents=True, exist_ok=True)
    return p

def tool_runs_dir(tool_id: str) -> Path:
    p = user_data_dir() / tool_id / "runs"
    p.mkdir(parents=True, exist_ok=True)
    return p

def settings_path() -> Path:
    return user_data_dir() / "settings.json"
