from __future__ import annotations

import json
from typing import Any, Dict

from loguru import logger

from .paths import settings_path


def load_settings() -> Dict[str, Any]:
    p = settings_path()
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable settings file {p}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {p}: expected a JSON object")
        return {}
    return data


def save_settings(data: Dict[str, Any]) -> None:
    p = settings_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
