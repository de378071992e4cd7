"""
Neonatal reference tables.

    Gestational age → birth weight   50th centile, 24-42 weeks
    Resuscitation minute → SpO2      pre-ductal target band
    Birth weight → ETT size/depth
"""
from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from resusgps.utils import DomainError

# ── Gestational age → expected birth weight (kg) ─────────────────────────────
_GA_WEEKS = np.arange(24, 43)
_GA_WEIGHT_KG = np.array([
    0.60, 0.70, 0.80, 0.90, 1.00, 1.15, 1.30, 1.50, 1.70, 1.90,   # 24-33
    2.10, 2.40, 2.60, 2.90, 3.10, 3.30, 3.50, 3.60, 3.70,         # 34-42
])
_GA_BELOW_TABLE_KG = 0.5
_GA_ABOVE_TABLE_KG = 3.8

# ── Pre-ductal SpO2 targets by minute of life ────────────────────────────────
# Row i applies from minute _SPO2_MINUTES[i] (inclusive lower bound).
_SPO2_MINUTES = np.array([0, 1, 2, 3, 4, 5])
_SPO2_TARGETS = (
    (60.0, 65.0),     # up to 1 min
    (65.0, 70.0),     # 2 min
    (70.0, 75.0),     # 3 min
    (75.0, 80.0),     # 4 min
    (80.0, 85.0),     # 5 min
    (85.0, 95.0),     # 10 min onward
)

# Neonatal ETT by birth weight: (upper weight bound exclusive, size mm)
_NEONATAL_ETT = (
    (1.0, 2.5),
    (2.0, 3.0),
    (3.0, 3.5),
)
_NEONATAL_ETT_LARGE = 3.5
_NEONATAL_DEPTH_OFFSET_CM = 6.0


def neonatal_weight(gestational_weeks: float) -> float:
    """Expected birth weight (kg) for a gestational age, rounded to the nearest week."""
    if gestational_weeks is None or not math.isfinite(gestational_weeks) or gestational_weeks <= 0:
        raise DomainError(
            f"Gestational age must be a positive number of weeks (got {gestational_weeks})",
            calculation="neonatal_weight",
        )
    week = int(np.floor(gestational_weeks + 0.5))
    if week < _GA_WEEKS[0]:
        return _GA_BELOW_TABLE_KG
    if week > _GA_WEEKS[-1]:
        return _GA_ABOVE_TABLE_KG
    return float(_GA_WEIGHT_KG[week - _GA_WEEKS[0]])


def neonatal_spo2_target(elapsed_minutes: float) -> Tuple[float, float]:
    """
    Pre-ductal SpO2 target band for the given minute of resuscitation.

    Bucket boundaries follow the minute-of-life convention: anything up
    to and including minute 1 targets 60-65 %, up to minute 2 targets
    65-70 % and so on; past minute 5 the band is 85-95 %.
    """
    if not math.isfinite(elapsed_minutes) or elapsed_minutes < 0:
        raise DomainError(
            f"Elapsed minutes must be a non-negative number (got {elapsed_minutes})",
            calculation="neonatal_spo2_target",
        )
    # A reading taken during minute n (n-1 < t <= n) belongs to bucket n
    minute = math.ceil(elapsed_minutes) - 1 if elapsed_minutes > 0 else 0
    index = int(np.searchsorted(_SPO2_MINUTES, minute, side="right")) - 1
    return _SPO2_TARGETS[index]


def neonatal_ett(weight_kg: float) -> Tuple[float, float]:
    """Return (ETT size mm, insertion depth cm at the lip) for a newborn."""
    if not math.isfinite(weight_kg) or weight_kg <= 0:
        raise DomainError(
            f"Weight must be a positive number (got {weight_kg})",
            calculation="neonatal_ett",
        )
    size = _NEONATAL_ETT_LARGE
    for upper_kg, ett in _NEONATAL_ETT:
        if weight_kg < upper_kg:
            size = ett
            break
    return size, round(_NEONATAL_DEPTH_OFFSET_CM + weight_kg, 1)
