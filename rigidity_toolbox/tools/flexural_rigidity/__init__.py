"""Flexural rigidity tool plugin.

Exports:
  - TOOL: an instance of FlexuralRigidityTool
  - RUNS_ON_UI_THREAD = False (headless; safe to run in a worker thread)
"""
from __future__ import annotations

from .tool import TOOL, FlexuralRigidityTool

RUNS_ON_UI_THREAD = False

__all__ = ["TOOL", "FlexuralRigidityTool", "RUNS_ON_UI_THREAD"]
