from __future__ import annotations

import math

DEFAULT_UNITS_SYSTEM = "SI (mm, N)"

# |sin(phi)| below this cannot be inverted for a derived intercept breadth
SHALLOW_ANGLE_SIN_LIMIT = 1e-3

# Uniform braces: angle is measured from the perpendicular to the span
MAX_ANGLE_FROM_PERPENDICULAR_DEG = 89.9

# Unit conversions at the tool boundary
GPA_TO_N_PER_MM2 = 1000.0
NM_TO_NMM = 1e3
NMM2_TO_NM2 = 1e-6
RAD_TO_DEG = 180.0 / math.pi
