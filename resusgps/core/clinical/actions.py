"""
Action builders shared by the rule modules.

Every dose in an intervention goes through ``dose_action`` so the number
the provider reads is always the calculator's number.
"""
from __future__ import annotations

from typing import Optional

from resusgps.core.parameters.dosing import compute_dose
from resusgps.core.patient.context import PatientContext
from .base import InterventionAction


def dose_action(
    drug_id: str,
    patient: PatientContext,
    action: Optional[str] = None,
    titration: Optional[str] = None,
    reassessment_criteria: Optional[str] = None,
) -> InterventionAction:
    dose = compute_dose(drug_id, patient.weight_kg)
    return InterventionAction(
        action=action or f"Give {dose.name}",
        dose_expression=dose.expression,
        route=dose.route,
        frequency=dose.frequency,
        titration=titration,
        reassessment_criteria=reassessment_criteria,
    )


def step(
    action: str,
    reassessment_criteria: Optional[str] = None,
    titration: Optional[str] = None,
) -> InterventionAction:
    """A non-drug action."""
    return InterventionAction(action=action, titration=titration, reassessment_criteria=reassessment_criteria)
