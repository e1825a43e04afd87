from __future__ import annotations
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

def format_validation_error(err: ValidationError) -> str:
    """One 'field.path: message' line per pydantic error."""
    lines = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "inputs"
        lines.append(f"{loc}: {e.get('msg', 'invalid value')}")
    return "\n".join(lines)

def validate_inputs(model: Optional[Type[BaseModel]], raw: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Returns (validated_dict, error_message). Tools without a model get raw back unchanged.
    """
    if model is None:
        return dict(raw), None
    try:
        return model.model_validate(raw).model_dump(), None
    except ValidationError as e:
        return {}, format_validation_error(e)
