"""
Patient Context — Base Types

Canonical demographic record every calculator, evaluator and rule reads.
Produced by the resolver and persisted into the Session unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PatientType(str, Enum):
    """
    Patient category driving formula and range selection.

    NEONATE    – first 28 days of life (gestational-age weight table)
    INFANT     – 1 to 12 months
    CHILD      – 1 to 12 years
    ADOLESCENT – 12 to 18 years
    ADULT      – over 18 years (measured weight required)
    PREGNANT   – adult obstetric patient (measured weight required)
    """
    NEONATE    = "neonate"
    INFANT     = "infant"
    CHILD      = "child"
    ADOLESCENT = "adolescent"
    ADULT      = "adult"
    PREGNANT   = "pregnant"

    @property
    def is_pediatric(self) -> bool:
        return self not in (PatientType.ADULT, PatientType.PREGNANT)


@dataclass(frozen=True)
class PatientContext:
    """
    Canonical patient record.

    age_months is the total age (years folded in). weight_estimated is
    True when the weight came from an age formula or the gestational table
    rather than a scale.
    """
    age_months: float
    weight_kg: float
    patient_type: PatientType
    weight_estimated: bool = False
    gestational_weeks: Optional[float] = None

    @property
    def age_years(self) -> float:
        return self.age_months / 12.0

    @property
    def whole_years(self) -> int:
        return int(self.age_months // 12)

    def to_dict(self) -> dict:
        return {
            "age_months": self.age_months,
            "age_years": round(self.age_years, 2),
            "weight_kg": self.weight_kg,
            "patient_type": self.patient_type.value,
            "weight_estimated": self.weight_estimated,
            "gestational_weeks": self.gestational_weeks,
        }
