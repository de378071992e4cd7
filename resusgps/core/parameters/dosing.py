"""
Weight-Based Drug Dosing

Every drug the rule modules can recommend is declared once in DRUG_TABLE
with its dose per kg, hard maximum (and minimum where one exists), route,
frequency and, where the stock concentration is standard, the draw-up
concentration. Rules never multiply weight by a dose themselves; they
call ``compute_dose`` and use the returned display strings.

Display rounding:
    mg, g, units   one decimal
    mcg            whole numbers
    mL             whole numbers (infusion volumes, bag/pump graduation)
    draw-up volume one decimal (0.1 mL syringe graduation)
    neonatal drugs two decimals for dose and draw-up volume

A positive dose never displays as zero: precision widens until it doesn't.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from resusgps.utils import DomainError

_UNIT_DECIMALS = {
    "mg": 1,
    "g": 1,
    "units": 1,
    "mcg": 0,
    "mL": 0,
}
_VOLUME_DECIMALS = 1
_MAX_DISPLAY_DECIMALS = 4


@dataclass(frozen=True)
class DrugSpec:
    """One row of the dosing compendium."""
    drug_id: str
    name: str
    dose_per_kg: float
    unit: str                                  # unit of the dose (mg, mcg, g, mL)
    max_dose: float
    route: str
    frequency: str
    min_dose: Optional[float] = None
    concentration_per_ml: Optional[float] = None   # dose units per mL of stock
    weight_bands: Tuple[Tuple[float, float], ...] = ()   # (upper kg exclusive, fixed dose)
    decimals: Optional[int] = None
    volume_decimals: Optional[int] = None

    @property
    def rule_text(self) -> str:
        if self.weight_bands:
            return "weight-banded fixed dose"
        text = f"{_fmt_number(self.dose_per_kg)} {self.unit}/kg, max {_fmt_number(self.max_dose)} {self.unit}"
        if self.min_dose is not None:
            text += f", min {_fmt_number(self.min_dose)} {self.unit}"
        return text


@dataclass(frozen=True)
class DoseResult:
    """Computed dose for one drug at one weight."""
    drug_id: str
    name: str
    value: float
    unit: str
    display: str
    capped: bool
    route: str
    frequency: str
    rule_text: str
    volume_ml: Optional[float] = None
    volume_display: Optional[str] = None

    @property
    def expression(self) -> str:
        """Human-readable dose line, e.g. '400 mL (20 mL/kg, max 1000 mL)'."""
        text = f"{self.display} ({self.rule_text})"
        if self.volume_display:
            text += f" = {self.volume_display}"
        return text

    def to_dict(self) -> dict:
        return {
            "drug_id": self.drug_id,
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "display": self.display,
            "capped": self.capped,
            "route": self.route,
            "frequency": self.frequency,
            "volume_ml": self.volume_ml,
            "volume_display": self.volume_display,
        }


def _fmt_number(value: float) -> str:
    return f"{value:g}"


def format_quantity(value: float, unit: str, decimals: Optional[int] = None) -> str:
    """Round for display; a positive quantity is never shown as zero."""
    places = _UNIT_DECIMALS.get(unit, 1) if decimals is None else decimals
    while value > 0 and round(value, places) == 0 and places < _MAX_DISPLAY_DECIMALS:
        places += 1
    return f"{value:.{places}f} {unit}"


# ── Compendium ────────────────────────────────────────────────────────────────

DRUG_TABLE: Dict[str, DrugSpec] = {spec.drug_id: spec for spec in (
    # Resuscitation
    DrugSpec("epinephrine_arrest", "Epinephrine (1:10,000)", 0.01, "mg", 1.0,
             "IV/IO", "every 3-5 min", concentration_per_ml=0.1),
    DrugSpec("epinephrine_im", "Epinephrine IM (1:1,000)", 0.01, "mg", 0.5,
             "IM (anterolateral thigh)", "repeat after 5 min if no improvement", concentration_per_ml=1.0),
    DrugSpec("amiodarone", "Amiodarone", 5.0, "mg", 300.0,
             "IV/IO", "after 3rd shock, may repeat once"),
    DrugSpec("adenosine_first", "Adenosine (1st dose)", 0.1, "mg", 6.0,
             "rapid IV push with flush", "once"),
    DrugSpec("adenosine_second", "Adenosine (2nd dose)", 0.2, "mg", 12.0,
             "rapid IV push with flush", "once if no conversion"),
    DrugSpec("atropine", "Atropine", 0.02, "mg", 0.5,
             "IV/IO", "may repeat once", min_dose=0.1),
    # Fluids and glucose
    DrugSpec("fluid_bolus", "Crystalloid bolus (0.9% saline or Ringer's lactate)", 20.0, "mL", 1000.0,
             "IV/IO", "over 5-10 min, reassess after each bolus"),
    DrugSpec("fluid_bolus_cautious", "Crystalloid bolus (cautious)", 10.0, "mL", 500.0,
             "IV/IO", "over 10-20 min, reassess for overload"),
    DrugSpec("dextrose_10", "Dextrose 10%", 2.0, "mL", 100.0,
             "IV/IO", "once, recheck glucose in 15 min"),
    DrugSpec("insulin_infusion", "Insulin (regular) infusion", 0.1, "units", 10.0,
             "IV infusion", "per hour, start 1 h after fluids", decimals=2),
    DrugSpec("hypertonic_saline", "Hypertonic saline 3%", 3.0, "mL", 250.0,
             "IV over 10-20 min", "once"),
    DrugSpec("mannitol", "Mannitol", 0.5, "g", 50.0,
             "IV over 20 min", "once"),
    # Respiratory and anaphylaxis
    DrugSpec("salbutamol", "Salbutamol nebulised", 0.0, "mg", 5.0,
             "nebulised with oxygen", "every 20 min x3",
             weight_bands=((20.0, 2.5), (math.inf, 5.0))),
    DrugSpec("hydrocortisone", "Hydrocortisone", 4.0, "mg", 100.0,
             "IV/IM", "every 6 h"),
    DrugSpec("magnesium_sulfate", "Magnesium sulfate", 40.0, "mg", 2000.0,
             "IV over 20 min", "once"),
    # Seizures
    DrugSpec("lorazepam", "Lorazepam", 0.1, "mg", 4.0,
             "IV/IO", "may repeat once after 5-10 min"),
    DrugSpec("diazepam_iv", "Diazepam", 0.3, "mg", 10.0,
             "IV/IO", "may repeat once after 5-10 min"),
    DrugSpec("diazepam_rectal", "Diazepam rectal", 0.5, "mg", 20.0,
             "PR", "may repeat once after 10 min"),
    DrugSpec("midazolam", "Midazolam buccal/IM", 0.2, "mg", 10.0,
             "buccal/IN/IM", "may repeat once after 10 min"),
    DrugSpec("phenobarbital", "Phenobarbital", 20.0, "mg", 1000.0,
             "IV over 20 min", "once (second-line)"),
    # Infection, toxicology, analgesia
    DrugSpec("ceftriaxone", "Ceftriaxone", 80.0, "mg", 4000.0,
             "IV/IM", "once daily"),
    DrugSpec("naloxone", "Naloxone", 0.1, "mg", 2.0,
             "IV/IM/IN", "every 2-3 min as needed"),
    DrugSpec("morphine", "Morphine", 0.1, "mg", 10.0,
             "IV", "every 2-4 h as needed"),
    DrugSpec("fentanyl", "Fentanyl", 1.0, "mcg", 100.0,
             "IV/IN", "every 1-2 h as needed"),
    DrugSpec("ketamine", "Ketamine", 1.5, "mg", 100.0,
             "IV", "once for induction/analgesia"),
    DrugSpec("paracetamol", "Paracetamol", 15.0, "mg", 1000.0,
             "PO/IV", "every 6 h"),
    # Neonatal resuscitation
    DrugSpec("epinephrine_neonatal", "Epinephrine neonatal (0.1 mg/mL)", 0.02, "mg", 0.1,
             "IV/UVC", "every 3-5 min if HR < 60", concentration_per_ml=0.1,
             decimals=2, volume_decimals=2),
    DrugSpec("epinephrine_neonatal_ett", "Epinephrine neonatal ETT (0.1 mg/mL)", 0.075, "mg", 0.1,
             "ETT", "every 3-5 min if HR < 60, follow with PPV breaths", min_dose=0.05,
             concentration_per_ml=0.1, decimals=2, volume_decimals=2),
    DrugSpec("saline_neonatal", "Normal saline (neonatal volume)", 10.0, "mL", 50.0,
             "IV/UVC over 5-10 min", "may repeat once"),
    DrugSpec("dextrose_neonatal", "Dextrose 10% (neonatal)", 2.0, "mL", 10.0,
             "IV/UVC", "once, recheck glucose in 30 min", decimals=1),
)}


def get_drug(drug_id: str) -> DrugSpec:
    spec = DRUG_TABLE.get(drug_id)
    if spec is None:
        raise DomainError(f"Unknown drug '{drug_id}'", calculation="compute_dose")
    return spec


def compute_dose(drug_id: str, weight_kg: float) -> DoseResult:
    """
    Compute the dose of ``drug_id`` for a patient weighing ``weight_kg``.

    Raises:
        DomainError: unknown drug, or weight negative, zero or non-finite.
    """
    spec = get_drug(drug_id)
    if weight_kg is None or not math.isfinite(weight_kg) or weight_kg <= 0:
        raise DomainError(
            f"Weight must be a positive finite number (got {weight_kg})",
            calculation="compute_dose",
            details={"drug_id": drug_id},
        )

    if spec.weight_bands:
        raw = next(dose for upper, dose in spec.weight_bands if weight_kg < upper)
    else:
        raw = spec.dose_per_kg * weight_kg

    value = min(raw, spec.max_dose)
    if spec.min_dose is not None:
        value = max(value, spec.min_dose)
    capped = value != raw

    volume_ml = None
    volume_display = None
    if spec.concentration_per_ml:
        volume_ml = value / spec.concentration_per_ml
        decimals = spec.volume_decimals if spec.volume_decimals is not None else _VOLUME_DECIMALS
        volume_display = format_quantity(volume_ml, "mL", decimals)

    return DoseResult(
        drug_id=spec.drug_id,
        name=spec.name,
        value=value,
        unit=spec.unit,
        display=format_quantity(value, spec.unit, spec.decimals),
        capped=capped,
        route=spec.route,
        frequency=spec.frequency,
        rule_text=spec.rule_text,
        volume_ml=volume_ml,
        volume_display=volume_display,
    )
