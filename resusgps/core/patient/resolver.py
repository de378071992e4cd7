"""
PatientContext Resolver

Normalises raw demographic input into the canonical PatientContext.

Weight estimation (pediatric, weight omitted):

    generic / extended survey          trauma survey
    < 12 months   (months + 9) / 2     <= 12 months  (months + 9) / 2
    12-59 months  (years + 4) * 2      13-60 months  2 * (years + 5)
    >= 60 months  years * 4            > 60 months   4 * years

Neonates never use an age formula: weight comes from the gestational-age
table in ``resusgps.core.parameters.neonatal``.

Usage:
    from resusgps.core.patient import resolve_patient_context

    patient = resolve_patient_context({"age_years": 2, "age_months": 0})
    patient.weight_kg   # 12.0
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from resusgps.core.parameters.neonatal import neonatal_weight
from resusgps.models.schemas import PatientContextInput
from resusgps.utils import ValidationError, get_logger
from .context import PatientContext, PatientType

logger = get_logger(__name__)

# ── Limits ────────────────────────────────────────────────────────────────────
PEDIATRIC_MAX_YEARS = 18
ADULT_MAX_YEARS     = 120
NEONATE_MAX_MONTHS  = 1.0         # 28 days
DEFAULT_GESTATION_WEEKS = 40


class WeightFormula(str, Enum):
    """Which age-to-weight formula a protocol variant uses."""
    STANDARD = "standard"     # generic and extended surveys
    TRAUMA   = "trauma"


# ── Weight formulas ───────────────────────────────────────────────────────────

def estimate_weight_standard(age_months: float) -> float:
    """Age-based estimate used by the generic and extended surveys."""
    months = int(math.floor(age_months))
    if months < 12:
        return (months + 9) / 2
    years = months // 12
    if months < 60:
        return float((years + 4) * 2)
    return float(years * 4)


def estimate_weight_trauma(age_months: float) -> float:
    """Age-based estimate used by the trauma survey."""
    months = int(math.floor(age_months))
    if months <= 12:
        return (months + 9) / 2
    years = months // 12
    if months <= 60:
        return float(2 * (years + 5))
    return float(4 * years)


_WEIGHT_FORMULAS = {
    WeightFormula.STANDARD: estimate_weight_standard,
    WeightFormula.TRAUMA:   estimate_weight_trauma,
}


def estimate_weight(age_months: float, formula: WeightFormula = WeightFormula.STANDARD) -> float:
    return _WEIGHT_FORMULAS[formula](age_months)


def infer_patient_type(age_months: float) -> PatientType:
    if age_months < NEONATE_MAX_MONTHS:
        return PatientType.NEONATE
    if age_months < 12:
        return PatientType.INFANT
    if age_months < 144:
        return PatientType.CHILD
    if age_months <= PEDIATRIC_MAX_YEARS * 12:
        return PatientType.ADOLESCENT
    return PatientType.ADULT


# ── Helpers ───────────────────────────────────────────────────────────────────

def _coerce_input(raw: Union[PatientContextInput, Mapping[str, Any]]) -> PatientContextInput:
    if isinstance(raw, PatientContextInput):
        return raw
    try:
        return PatientContextInput.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Patient input is malformed",
            field="patient",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def _check_finite(name: str, value: Optional[float]) -> None:
    if value is None:
        return
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number", field=name)
    if value < 0:
        raise ValidationError(f"{name} must not be negative (got {value})", field=name)


# ── Resolver ──────────────────────────────────────────────────────────────────

def resolve_patient_context(
    raw: Union[PatientContextInput, Mapping[str, Any]],
    formula: WeightFormula = WeightFormula.STANDARD,
) -> PatientContext:
    """
    Resolve raw patient input into a canonical PatientContext.

    Args:
        raw:     PatientContextInput (or an equivalent dict).
        formula: Age-to-weight formula of the active protocol variant.

    Returns:
        PatientContext with total age in months and a positive weight.

    Raises:
        ValidationError: negative or non-finite ages, pediatric age above
            18 years, a neonate older than one month, an adult without a
            measured weight, or a resolved weight that is not positive.
    """
    data = _coerce_input(raw)

    _check_finite("age_years", data.age_years)
    _check_finite("age_months", data.age_months)
    _check_finite("gestational_weeks", data.gestational_weeks)
    if data.weight_kg is not None and not math.isfinite(data.weight_kg):
        raise ValidationError("weight_kg must be a finite number", field="weight_kg")

    if data.age_years is None and data.age_months is None and data.patient_type != PatientType.NEONATE:
        raise ValidationError("Age is required (age_years and/or age_months)", field="age_years")

    age_months = (data.age_years or 0.0) * 12 + (data.age_months or 0.0)
    patient_type = data.patient_type or infer_patient_type(age_months)

    if patient_type.is_pediatric:
        if data.age_years is not None and data.age_years > PEDIATRIC_MAX_YEARS:
            raise ValidationError(
                f"age_years must be between 0 and {PEDIATRIC_MAX_YEARS} for pediatric flows "
                f"(got {data.age_years})",
                field="age_years",
            )
        if age_months > PEDIATRIC_MAX_YEARS * 12:
            raise ValidationError(
                f"Total age {age_months:.1f} months exceeds the pediatric limit",
                field="age_months",
            )
    elif age_months > ADULT_MAX_YEARS * 12:
        raise ValidationError(f"Age {age_months / 12:.1f} years is not plausible", field="age_years")

    if patient_type == PatientType.NEONATE and age_months >= NEONATE_MAX_MONTHS:
        raise ValidationError(
            f"A neonate must be younger than one month (got {age_months:.2f} months)",
            field="age_months",
        )

    gestational_weeks = data.gestational_weeks
    weight_estimated = data.weight_kg is None
    if data.weight_kg is not None:
        weight_kg = float(data.weight_kg)
    elif patient_type == PatientType.NEONATE:
        gestational_weeks = gestational_weeks if gestational_weeks is not None else DEFAULT_GESTATION_WEEKS
        weight_kg = neonatal_weight(gestational_weeks)
    elif patient_type.is_pediatric:
        weight_kg = estimate_weight(age_months, formula)
    else:
        raise ValidationError(
            f"Measured weight is required for {patient_type.value} patients",
            field="weight_kg",
        )

    if weight_kg <= 0:
        raise ValidationError(f"Resolved weight must be positive (got {weight_kg})", field="weight_kg")

    patient = PatientContext(
        age_months=age_months,
        weight_kg=weight_kg,
        patient_type=patient_type,
        weight_estimated=weight_estimated,
        gestational_weeks=gestational_weeks if patient_type == PatientType.NEONATE else None,
    )
    logger.debug(
        f"Resolved patient: {patient_type.value}, {age_months:.1f} months, "
        f"{weight_kg} kg ({'estimated' if weight_estimated else 'measured'})"
    )
    return patient
