from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Type, runtime_checkable

from pydantic import BaseModel

@dataclass(frozen=True)
class ToolMeta:
    id: str
    name: str
    category: str
    version: str
    description: str

class ToolBase(Protocol):
    """
    Tool contract.

    - `InputModel` (Pydantic) types the inputs; hosts validate with it before running.
    - `default_inputs()` returns a complete, valid input dict.
    - `run(inputs)` performs the tool's main action and returns a JSON-serializable dict
      with at least an `ok` flag.
    """
    meta: ToolMeta
    InputModel: Optional[Type[BaseModel]]

    def default_inputs(self) -> Dict[str, Any]:
        ...

    def run(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        ...

@runtime_checkable
class LiveTool(Protocol):
    """Tools that can recompute read-outs in memory, without writing a calc package."""

    def compute(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        ...
