from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ShapeName = Literal["rectangle", "triangle", "parabolic", "none"]


class SegmentInput(BaseModel):
    """One layer of a brace. Zero height or shape 'none' leaves it out of the stack."""

    model_config = ConfigDict(allow_inf_nan=False)

    shape: ShapeName = Field("rectangle", description="Segment shape.")
    height_mm: float = Field(..., ge=0.0, description="Segment height (mm).")
    modulus_gpa: float = Field(..., gt=0.0, description="Segment elastic modulus (GPa).")

    @field_validator("shape", mode="before")
    @classmethod
    def _normalize_shape(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class BraceInput(BaseModel):
    """
    Explicit brace description.

    Breadth path:
      - intercept_breadth_mm given -> used directly (clamped to the span)
      - otherwise plan_width_mm / |sin(inclination_deg)|
    """

    model_config = ConfigDict(allow_inf_nan=False)

    intercept_breadth_mm: Optional[float] = Field(None, gt=0.0, description="Intercept breadth b (mm).")
    plan_width_mm: Optional[float] = Field(None, gt=0.0, description="Brace plan width (mm).")
    inclination_deg: Optional[float] = Field(
        None, gt=0.0, lt=180.0, description="Brace inclination to the span (deg); 90 = perpendicular."
    )

    bottom: Optional[SegmentInput] = None
    middle: Optional[SegmentInput] = None
    top: Optional[SegmentInput] = None

    @model_validator(mode="after")
    def _breadth_path(self):
        if self.intercept_breadth_mm is None and (self.plan_width_mm is None or self.inclination_deg is None):
            raise ValueError("Brace needs intercept_breadth_mm, or both plan_width_mm and inclination_deg.")
        return self


class FlexuralRigidityInputs(BaseModel):
    """
    Inputs for the flexural rigidity (EI) calculator of a layered slice.

    Section:
      - a full-width top layer (span x thickness) at the reference modulus
      - braces below it, each a stack of bottom / middle / top segments

    Braces are either `brace_count` identical braces built from the uniform fields,
    or the explicit `braces` list when it is supplied.

    Units: mm, GPa, N*m, deg.
    """

    model_config = ConfigDict(allow_inf_nan=False)

    # --- Slice
    span_mm: float = Field(500.0, gt=0.0, description="Available span AA (mm).")
    top_thickness_mm: float = Field(4.0, gt=0.0, description="Top layer thickness (mm).")
    top_modulus_gpa: float = Field(10.0, gt=0.0, description="Top layer modulus, used as reference (GPa).")

    # --- Uniform braces
    brace_count: int = Field(2, ge=1, description="Number of identical braces.")
    brace_plan_width_mm: float = Field(20.0, gt=0.0, description="Brace plan width (mm).")
    brace_angle_deg: float = Field(
        0.0, description="Brace angle from perpendicular (deg); clamped to 0..89.9."
    )
    intercept_breadth_mm: Optional[float] = Field(
        None, gt=0.0, description="Direct intercept breadth b; overrides plan width + angle (mm)."
    )
    bottom_height_mm: float = Field(5.0, ge=0.0, description="Bottom segment height (mm).")
    middle_height_mm: float = Field(5.0, ge=0.0, description="Middle segment height (mm).")
    top_height_mm: float = Field(7.0, ge=0.0, description="Top segment height (mm).")
    bottom_shape: ShapeName = Field("rectangle", description="Bottom segment shape.")
    middle_shape: ShapeName = Field("rectangle", description="Middle segment shape.")
    top_shape: ShapeName = Field("triangle", description="Top segment shape.")
    brace_modulus_gpa: float = Field(12.0, gt=0.0, description="Brace modulus for all segments (GPa).")

    # --- Explicit braces (replace the uniform set)
    braces: Optional[List[BraceInput]] = Field(None, description="Explicit brace descriptions.")

    # --- Rotation check
    applied_moment_nm: float = Field(12.0, description="Applied moment for the rotation check (N*m).")
    rotation_limit_deg: Optional[float] = Field(2.0, gt=0.0, description="Rotation limit (deg); None = no check.")

    @field_validator("bottom_shape", "middle_shape", "top_shape", mode="before")
    @classmethod
    def _normalize_shape(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def uses_explicit_braces(self) -> bool:
        return self.braces is not None
