"""
Protocol Step Sequencer

Pure traversal functions over a ProtocolDefinition. Nothing here holds
state: the caller passes the current step, the patient and the answers
given so far, and gets back a step id (or None at either end).

Usage:
    from resusgps.core.protocols import get_protocol, next_step

    protocol = get_protocol("primary_survey")
    step_id = next_step(protocol, "airway-status", patient, observations)
"""
from __future__ import annotations

from typing import List, Optional, Union

from resusgps.core.patient.context import PatientContext
from resusgps.utils import ValidationError, get_logger
from .base import (
    AssessmentStep,
    EarlyExitRule,
    Observations,
    ProtocolDefinition,
    ProtocolId,
    flatten,
)
from .extended_survey import EXTENDED_SURVEY
from .neonatal import NEONATAL
from .primary_survey import PRIMARY_SURVEY
from .trauma import TRAUMA

logger = get_logger(__name__)

# ── Registry: protocol id → definition ───────────────────────────────────────
_PROTOCOLS = {
    ProtocolId.PRIMARY_SURVEY:  PRIMARY_SURVEY,
    ProtocolId.EXTENDED_SURVEY: EXTENDED_SURVEY,
    ProtocolId.NEONATAL:        NEONATAL,
    ProtocolId.TRAUMA:          TRAUMA,
}


def get_protocol(protocol: Union[ProtocolId, str]) -> ProtocolDefinition:
    try:
        return _PROTOCOLS[ProtocolId(protocol)]
    except ValueError:
        raise ValidationError(
            f"Unknown protocol '{protocol}'",
            field="protocol",
            details={"available": [p.value for p in ProtocolId]},
        ) from None


def available_protocols() -> List[ProtocolId]:
    return list(_PROTOCOLS.keys())


def applicable_steps(
    protocol: ProtocolDefinition,
    patient: PatientContext,
    observations: Observations,
) -> List[AssessmentStep]:
    """The effective ordered step list for the current answers."""
    flat = flatten(observations)
    return [step for step in protocol.steps if step.is_applicable(patient, flat)]


def first_step(
    protocol: ProtocolDefinition,
    patient: PatientContext,
    observations: Observations,
) -> Optional[str]:
    flat = flatten(observations)
    for step in protocol.steps:
        if step.is_applicable(patient, flat):
            return step.id
    return None


def next_step(
    protocol: ProtocolDefinition,
    current: str,
    patient: PatientContext,
    observations: Observations,
) -> Optional[str]:
    """
    Next applicable step after ``current``, or None when the survey is
    finished. Predicates are evaluated now, against the answers given so far.
    """
    flat = flatten(observations)
    start = protocol.index_of(current) + 1
    for step in protocol.steps[start:]:
        if step.is_applicable(patient, flat):
            return step.id
        logger.debug(f"Sequencer [{protocol.protocol_id.value}]: skipping '{step.id}' (not applicable)")
    return None


def previous_step(
    protocol: ProtocolDefinition,
    current: str,
    patient: PatientContext,
    observations: Observations,
) -> Optional[str]:
    """Closest applicable step before ``current``, or None at the first step."""
    flat = flatten(observations)
    end = protocol.index_of(current)
    for step in reversed(protocol.steps[:end]):
        if step.is_applicable(patient, flat):
            return step.id
    return None


def check_early_exit(
    protocol: ProtocolDefinition,
    observations: Observations,
    previous: Optional[Observations] = None,
    committed_field: Optional[str] = None,
) -> Optional[EarlyExitRule]:
    """
    First early-exit rule triggered by the answers, if any.

    With ``previous`` given, the check is tied to a single commit: a rule
    fires only if it was not already triggered before the commit, or if
    the committed field is one the rule reads. Stale answers carried into
    a reassessment cycle therefore do not end it again.
    """
    if not protocol.early_exits:
        return None
    flat = flatten(observations)
    before = flatten(previous) if previous is not None else None
    for rule in protocol.early_exits:
        if not rule.triggered(flat):
            continue
        if before is None or not rule.triggered(before) or committed_field in rule.fields:
            return rule
    return None
