"""
Protocol Layer

Declarative step templates for each assessment variant and the pure
sequencer that walks them.

Usage:
    from resusgps.core.protocols import get_protocol, first_step, next_step

    protocol = get_protocol("neonatal")
    step_id = first_step(protocol, patient, observations={})
"""
from .base import (
    AssessmentStep,
    EarlyExitRule,
    FieldKind,
    FieldSpec,
    Observations,
    Phase,
    ProtocolDefinition,
    ProtocolId,
    flatten,
)
from .sequencer import (
    applicable_steps,
    available_protocols,
    check_early_exit,
    first_step,
    get_protocol,
    next_step,
    previous_step,
)

__all__ = [
    "AssessmentStep",
    "EarlyExitRule",
    "FieldKind",
    "FieldSpec",
    "Observations",
    "Phase",
    "ProtocolDefinition",
    "ProtocolId",
    "flatten",
    "applicable_steps",
    "available_protocols",
    "check_early_exit",
    "first_step",
    "get_protocol",
    "next_step",
    "previous_step",
]
