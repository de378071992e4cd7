"""
Equipment sizing and defibrillation energy.

Endotracheal tube (pediatric):  uncuffed = age/4 + 4, cuffed = age/4 + 3.5,
insertion depth at the lip = 3 x ETT. Suction catheter = 2 x ETT (Fr) for
every protocol variant. Neonates are sized by weight instead of age.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.utils import DomainError
from .neonatal import neonatal_ett

ADULT_ETT_MM    = 7.5
PREGNANT_ETT_MM = 7.0       # airway oedema in pregnancy: one size down
ADULT_ETT_DEPTH_CM = 22.0

DEFIB_FIRST_J_PER_KG      = 2.0
DEFIB_SUBSEQUENT_J_PER_KG = 4.0
DEFIB_MAX_J_PER_KG        = 10.0
DEFIB_MAX_J               = 200.0


@dataclass(frozen=True)
class EquipmentSizes:
    ett_uncuffed_mm: float
    ett_cuffed_mm: float
    ett_depth_cm: float
    suction_catheter_fr: float

    def to_dict(self) -> dict:
        return {
            "ett_uncuffed_mm": self.ett_uncuffed_mm,
            "ett_cuffed_mm": self.ett_cuffed_mm,
            "ett_depth_cm": self.ett_depth_cm,
            "suction_catheter_fr": self.suction_catheter_fr,
        }


def ett_size(age_years: float) -> float:
    """Uncuffed ETT internal diameter (mm) = age/4 + 4, one decimal."""
    if not math.isfinite(age_years) or age_years < 0:
        raise DomainError(f"Age must be non-negative (got {age_years})", calculation="ett_size")
    return round(age_years / 4 + 4, 1)


def suction_catheter_size(ett_mm: float) -> float:
    """Suction catheter (Fr) = 2 x ETT internal diameter."""
    return round(ett_mm * 2, 1)


def equipment_sizes(patient: PatientContext) -> EquipmentSizes:
    if patient.patient_type == PatientType.NEONATE:
        size, depth = neonatal_ett(patient.weight_kg)
        return EquipmentSizes(size, size, depth, suction_catheter_size(size))

    if patient.patient_type in (PatientType.ADULT, PatientType.PREGNANT):
        size = PREGNANT_ETT_MM if patient.patient_type == PatientType.PREGNANT else ADULT_ETT_MM
        return EquipmentSizes(size, size, ADULT_ETT_DEPTH_CM, suction_catheter_size(size))

    uncuffed = ett_size(patient.whole_years)
    cuffed = round(patient.whole_years / 4 + 3.5, 1)
    return EquipmentSizes(
        ett_uncuffed_mm=uncuffed,
        ett_cuffed_mm=cuffed,
        ett_depth_cm=round(uncuffed * 3, 1),
        suction_catheter_fr=suction_catheter_size(uncuffed),
    )


def defibrillation_energy(weight_kg: float, shock_number: int = 1) -> float:
    """Joules for the nth shock: 2 J/kg first, 4 J/kg after, capped at 10 J/kg and 200 J."""
    if not math.isfinite(weight_kg) or weight_kg <= 0:
        raise DomainError(f"Weight must be positive (got {weight_kg})", calculation="defibrillation_energy")
    if shock_number < 1:
        raise DomainError(f"Shock number starts at 1 (got {shock_number})", calculation="defibrillation_energy")
    per_kg = DEFIB_FIRST_J_PER_KG if shock_number == 1 else DEFIB_SUBSEQUENT_J_PER_KG
    energy = min(per_kg * weight_kg, DEFIB_MAX_J_PER_KG * weight_kg, DEFIB_MAX_J)
    return round(energy, 1)


CARDIOVERSION_J_PER_KG = (0.5, 1.0, 2.0)


def cardioversion_energy(weight_kg: float, attempt: int = 1) -> float:
    """Synchronised cardioversion: 0.5 J/kg, then 1 J/kg, then 2 J/kg; capped at 200 J."""
    if not math.isfinite(weight_kg) or weight_kg <= 0:
        raise DomainError(f"Weight must be positive (got {weight_kg})", calculation="cardioversion_energy")
    if attempt < 1:
        raise DomainError(f"Attempt number starts at 1 (got {attempt})", calculation="cardioversion_energy")
    per_kg = CARDIOVERSION_J_PER_KG[min(attempt, len(CARDIOVERSION_J_PER_KG)) - 1]
    return round(min(per_kg * weight_kg, DEFIB_MAX_J), 1)
