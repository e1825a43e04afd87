from __future__ import annotations

from typing import Any


class FlexuralRigidityError(ValueError):
    """Base class for transformed-section calculation errors."""


class InvalidInputError(FlexuralRigidityError):
    def __init__(self, parameter: str, message: str | None = None) -> None:
        self.parameter = parameter
        super().__init__(message or f"{parameter} must be a finite, positive number.")


class InvalidShapeError(FlexuralRigidityError):
    def __init__(self, shape: Any) -> None:
        self.shape = shape
        super().__init__(f"Unsupported shape: {shape!r}")


class ShallowAngleError(FlexuralRigidityError):
    def __init__(self, angle_deg: float) -> None:
        self.angle_deg = angle_deg
        super().__init__(
            f"Brace angle too shallow ({angle_deg:g} deg); enter intercept breadth b directly."
        )


class NoActiveSegmentsError(FlexuralRigidityError):
    def __init__(self) -> None:
        super().__init__("Brace has no active segments.")
