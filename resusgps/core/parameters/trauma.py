"""
Trauma calculators: Parkland burn fluids, tranexamic acid, Glasgow Coma
Scale and the hemorrhage classification table.

Hemorrhage class is a manual selection. The provider picks the class
after looking at the whole patient; the table only supplies the expected
picture and the fluid guidance for the chosen row. Vital signs alone are
not used to derive it.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from resusgps.utils import DomainError, ValidationError

# ── Parkland ──────────────────────────────────────────────────────────────────
PARKLAND_ML_PER_KG_PER_TBSA = 4.0
PARKLAND_FIRST_PERIOD_H = 8.0
PARKLAND_SECOND_PERIOD_H = 16.0
BURN_RESUS_TBSA_UNDER_10Y = 10.0
BURN_RESUS_TBSA_OLDER = 15.0

# ── TXA ───────────────────────────────────────────────────────────────────────
TXA_LOADING_MG_PER_KG = 15.0
TXA_LOADING_MAX_MG = 1000.0
TXA_LOADING_MINUTES = 10
TXA_MAINTENANCE_MG_PER_KG_H = 2.0
TXA_CONCENTRATION_MG_PER_ML = 100.0

# ── GCS ───────────────────────────────────────────────────────────────────────
GCS_AIRWAY_THRESHOLD = 8
GCS_MODERATE_MAX = 12


def _require_weight(weight_kg: float, calculation: str) -> None:
    if weight_kg is None or not math.isfinite(weight_kg) or weight_kg <= 0:
        raise DomainError(
            f"Weight must be a positive finite number (got {weight_kg})",
            calculation=calculation,
        )


@dataclass(frozen=True)
class ParklandResult:
    total_24h_ml: float
    first_period_rate_ml_h: float
    second_period_rate_ml_h: float
    first_period_hours_remaining: float

    def to_dict(self) -> dict:
        return {
            "total_24h_ml": self.total_24h_ml,
            "first_period_rate_ml_h": self.first_period_rate_ml_h,
            "second_period_rate_ml_h": self.second_period_rate_ml_h,
            "first_period_hours_remaining": self.first_period_hours_remaining,
        }


def parkland_formula(weight_kg: float, tbsa_percent: float, hours_since_burn: float = 0.0) -> ParklandResult:
    """
    Total 24 h fluid = 4 mL x kg x %TBSA. Half runs over the remainder of
    the first 8 h from the time of burn, the other half over the next 16 h.
    """
    _require_weight(weight_kg, "parkland_formula")
    if not math.isfinite(tbsa_percent) or not 0 <= tbsa_percent <= 100:
        raise DomainError(f"TBSA must be 0-100 % (got {tbsa_percent})", calculation="parkland_formula")
    if not math.isfinite(hours_since_burn) or hours_since_burn < 0:
        raise DomainError(
            f"Hours since burn must be non-negative (got {hours_since_burn})",
            calculation="parkland_formula",
        )

    total = PARKLAND_ML_PER_KG_PER_TBSA * weight_kg * tbsa_percent
    half = total / 2
    remaining = max(PARKLAND_FIRST_PERIOD_H - hours_since_burn, 0.0)
    first_rate = half / remaining if remaining > 0 else 0.0
    return ParklandResult(
        total_24h_ml=round(total, 1),
        first_period_rate_ml_h=round(first_rate),
        second_period_rate_ml_h=round(half / PARKLAND_SECOND_PERIOD_H),
        first_period_hours_remaining=remaining,
    )


def needs_burn_resuscitation(tbsa_percent: float, age_years: float) -> bool:
    """Formal fluid resuscitation above 10 % TBSA under 10 years, above 15 % otherwise."""
    threshold = BURN_RESUS_TBSA_UNDER_10Y if age_years < 10 else BURN_RESUS_TBSA_OLDER
    return tbsa_percent > threshold


@dataclass(frozen=True)
class TxaDose:
    loading_mg: float
    loading_ml: float
    loading_minutes: int
    maintenance_mg_h: float
    maintenance_ml_h: float
    loading_capped: bool

    @property
    def loading_expression(self) -> str:
        return (
            f"{self.loading_mg:.0f} mg ({self.loading_ml:.1f} mL of 100 mg/mL) "
            f"over {self.loading_minutes} min"
        )

    @property
    def maintenance_expression(self) -> str:
        return f"{self.maintenance_mg_h:.1f} mg/h ({self.maintenance_ml_h:.2f} mL/h) for 8 h"


def txa_dose(weight_kg: float) -> TxaDose:
    """Loading 15 mg/kg (max 1 g) over 10 min, then 2 mg/kg/h."""
    _require_weight(weight_kg, "txa_dose")
    raw_loading = TXA_LOADING_MG_PER_KG * weight_kg
    loading = min(raw_loading, TXA_LOADING_MAX_MG)
    maintenance = TXA_MAINTENANCE_MG_PER_KG_H * weight_kg
    return TxaDose(
        loading_mg=loading,
        loading_ml=loading / TXA_CONCENTRATION_MG_PER_ML,
        loading_minutes=TXA_LOADING_MINUTES,
        maintenance_mg_h=maintenance,
        maintenance_ml_h=maintenance / TXA_CONCENTRATION_MG_PER_ML,
        loading_capped=loading < raw_loading,
    )


# ── Glasgow Coma Scale ────────────────────────────────────────────────────────

class GcsSeverity(str, Enum):
    SEVERE   = "severe"       # 3-8
    MODERATE = "moderate"     # 9-12
    MILD     = "mild"         # 13-15


@dataclass(frozen=True)
class GcsResult:
    eye: int
    verbal: int
    motor: int
    total: int
    severity: GcsSeverity
    airway_intervention_needed: bool

    def to_dict(self) -> dict:
        return {
            "eye": self.eye,
            "verbal": self.verbal,
            "motor": self.motor,
            "total": self.total,
            "severity": self.severity.value,
            "airway_intervention_needed": self.airway_intervention_needed,
        }


_GCS_LIMITS = {"eye": 4, "verbal": 5, "motor": 6}


def glasgow_coma_scale(eye: int, verbal: int, motor: int) -> GcsResult:
    for name, value in (("eye", eye), ("verbal", verbal), ("motor", motor)):
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= _GCS_LIMITS[name]:
            raise ValidationError(
                f"GCS {name} must be an integer 1-{_GCS_LIMITS[name]} (got {value!r})",
                field=f"gcs_{name}",
            )
    total = eye + verbal + motor
    if total <= GCS_AIRWAY_THRESHOLD:
        severity = GcsSeverity.SEVERE
    elif total <= GCS_MODERATE_MAX:
        severity = GcsSeverity.MODERATE
    else:
        severity = GcsSeverity.MILD
    return GcsResult(
        eye=eye,
        verbal=verbal,
        motor=motor,
        total=total,
        severity=severity,
        airway_intervention_needed=total <= GCS_AIRWAY_THRESHOLD,
    )


# ── Hemorrhage classification ─────────────────────────────────────────────────

@dataclass(frozen=True)
class HemorrhageClass:
    label: str
    blood_loss: str
    heart_rate: str
    blood_pressure: str
    capillary_refill: str
    mental_status: str
    urine_output: str
    fluid_guidance: str
    blood_products: bool

    def to_dict(self) -> dict:
        return {
            "class": self.label,
            "blood_loss": self.blood_loss,
            "heart_rate": self.heart_rate,
            "blood_pressure": self.blood_pressure,
            "capillary_refill": self.capillary_refill,
            "mental_status": self.mental_status,
            "urine_output": self.urine_output,
            "fluid_guidance": self.fluid_guidance,
        }


HEMORRHAGE_CLASSES: Dict[str, HemorrhageClass] = {
    "I": HemorrhageClass(
        "I", "< 15%", "Normal or mildly elevated", "Normal", "< 2 seconds",
        "Normal, anxious", "> 1 mL/kg/hr", "Crystalloid if symptomatic", False,
    ),
    "II": HemorrhageClass(
        "II", "15-30%", "Tachycardia", "Normal (narrowed pulse pressure)", "2-3 seconds",
        "Irritable, confused", "0.5-1 mL/kg/hr", "Crystalloid 20 mL/kg, consider blood", False,
    ),
    "III": HemorrhageClass(
        "III", "30-40%", "Marked tachycardia", "Hypotension", "> 3 seconds",
        "Confused, lethargic", "< 0.5 mL/kg/hr", "Crystalloid + blood products", True,
    ),
    "IV": HemorrhageClass(
        "IV", "> 40%", "Severe tachycardia or bradycardia", "Severe hypotension", "Absent",
        "Unresponsive", "Minimal/absent", "Massive transfusion protocol", True,
    ),
}


def hemorrhage_class(label: str) -> HemorrhageClass:
    """Look up the provider-selected hemorrhage class (I-IV)."""
    row = HEMORRHAGE_CLASSES.get(str(label).strip().upper())
    if row is None:
        raise ValidationError(
            f"Hemorrhage class must be one of I, II, III, IV (got {label!r})",
            field="hemorrhage_class",
        )
    return row
