"""
Age-Banded Reference Ranges

Normal heart rate, respiratory rate and systolic blood pressure by age
band, plus the age-independent SpO2, temperature and glucose bands.

Bands are keyed by their inclusive lower bound in months; a patient whose
age equals a boundary belongs to the band that starts there (lower bound
wins). Lookup is a single ``numpy.searchsorted`` over the bound array.

    band          from     HR        RR      SBP
    neonate        0 mo  100-180   30-60   60-90
    infant         1 mo  100-160   25-50   70-100
    toddler       12 mo   90-150   20-40   80-110
    preschool     36 mo   80-140   20-30   85-115
    school_age    72 mo   70-120   18-25   90-120
    adolescent   144 mo   60-100   12-20  100-130
    adult        216 mo   60-100   12-20   90-140
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.utils import DomainError
from .neonatal import neonatal_spo2_target

Range = Tuple[float, float]

MAX_AGE_MONTHS = 1440          # 120 years; older ages have no reference band


@dataclass(frozen=True)
class VitalBand:
    """One row of the age-banded vital sign table."""
    name: str
    lower_bound_months: float
    heart_rate: Range
    respiratory_rate: Range
    systolic_bp: Range


VITAL_BANDS: Tuple[VitalBand, ...] = (
    VitalBand("neonate",      0,   (100, 180), (30, 60), (60, 90)),
    VitalBand("infant",       1,   (100, 160), (25, 50), (70, 100)),
    VitalBand("toddler",     12,   (90, 150),  (20, 40), (80, 110)),
    VitalBand("preschool",   36,   (80, 140),  (20, 30), (85, 115)),
    VitalBand("school_age",  72,   (70, 120),  (18, 25), (90, 120)),
    VitalBand("adolescent", 144,   (60, 100),  (12, 20), (100, 130)),
    VitalBand("adult",      216,   (60, 100),  (12, 20), (90, 140)),
)
_BAND_BOUNDS = np.array([b.lower_bound_months for b in VITAL_BANDS], dtype=float)
_BANDS_BY_NAME = {b.name: b for b in VITAL_BANDS}

# ── Age-independent bands ─────────────────────────────────────────────────────
TEMPERATURE_RANGE_C: Range = (36.0, 38.0)
GLUCOSE_RANGE_MMOL: Range = (3.3, 14.0)
SPO2_TARGET_DEFAULT: Range = (94.0, 100.0)
SPO2_TARGET_NEONATE: Range = (90.0, 95.0)


@dataclass(frozen=True)
class ReferenceRanges:
    """All bands the finding evaluator compares observations against."""
    band: str
    heart_rate: Range
    respiratory_rate: Range
    systolic_bp: Range
    spo2: Range
    temperature_c: Range = TEMPERATURE_RANGE_C
    glucose_mmol: Range = GLUCOSE_RANGE_MMOL

    def get(self, vital: str) -> Optional[Range]:
        return getattr(self, vital, None)

    def to_dict(self) -> dict:
        return {
            "band": self.band,
            "heart_rate": list(self.heart_rate),
            "respiratory_rate": list(self.respiratory_rate),
            "systolic_bp": list(self.systolic_bp),
            "spo2": list(self.spo2),
            "temperature_c": list(self.temperature_c),
            "glucose_mmol": list(self.glucose_mmol),
        }


def lookup_band(age_months: float) -> VitalBand:
    """
    Return the vital band whose inclusive lower bound is the greatest
    bound not exceeding ``age_months``.

    Raises:
        DomainError: age is negative, non-finite or beyond MAX_AGE_MONTHS.
    """
    if age_months is None or not math.isfinite(age_months):
        raise DomainError(f"Age must be a finite number (got {age_months})", calculation="lookup_band")
    if age_months < 0 or age_months > MAX_AGE_MONTHS:
        raise DomainError(
            f"No reference band covers {age_months} months",
            calculation="lookup_band",
            details={"age_months": age_months},
        )
    index = int(np.searchsorted(_BAND_BOUNDS, age_months, side="right")) - 1
    return VITAL_BANDS[index]


def band_for_patient(patient: PatientContext) -> VitalBand:
    """Band for a patient; neonates and adult types use their own rows regardless of age."""
    if patient.patient_type == PatientType.NEONATE:
        lookup_band(patient.age_months)        # still validates the age
        return _BANDS_BY_NAME["neonate"]
    if patient.patient_type in (PatientType.ADULT, PatientType.PREGNANT):
        lookup_band(patient.age_months)
        return _BANDS_BY_NAME["adult"]
    return lookup_band(patient.age_months)


def minimum_systolic_bp(age_years: float) -> float:
    """Hypotension threshold: 60 under one year, else 70 + 2 x age capped at 90 mmHg."""
    if not math.isfinite(age_years) or age_years < 0:
        raise DomainError(f"Age must be non-negative (got {age_years})", calculation="minimum_systolic_bp")
    if age_years < 1:
        return 60.0
    return float(min(70 + 2 * int(age_years), 90))


def reference_ranges(patient: PatientContext, elapsed_seconds: Optional[float] = None) -> ReferenceRanges:
    """
    Build the full set of reference ranges for a patient.

    Args:
        patient:         Resolved patient context.
        elapsed_seconds: Resuscitation time. For neonates it selects the
                         minute-bucketed SpO2 target; ignored otherwise.

    Raises:
        DomainError: the patient's age falls outside every band.
    """
    band = band_for_patient(patient)

    if patient.patient_type == PatientType.NEONATE:
        if elapsed_seconds is not None:
            spo2 = neonatal_spo2_target(elapsed_seconds / 60.0)
        else:
            spo2 = SPO2_TARGET_NEONATE
    else:
        spo2 = SPO2_TARGET_DEFAULT

    return ReferenceRanges(
        band=band.name,
        heart_rate=band.heart_rate,
        respiratory_rate=band.respiratory_rate,
        systolic_bp=band.systolic_bp,
        spo2=spo2,
    )
