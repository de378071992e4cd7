"""
Inbound/outbound interface models.
"""
from .schemas import (
    SCHEMA_VERSION,
    PatientContextInput,
    ObservationInput,
    ObservationValue,
    ActionKind,
    UserAction,
    PromptView,
    AssessmentStepView,
    ActionView,
    InterventionView,
    FindingView,
    ObservationRecord,
    InterventionLogRecord,
    SessionMeta,
    SessionExport,
)

__all__ = [
    "SCHEMA_VERSION",
    "PatientContextInput",
    "ObservationInput",
    "ObservationValue",
    "ActionKind",
    "UserAction",
    "PromptView",
    "AssessmentStepView",
    "ActionView",
    "InterventionView",
    "FindingView",
    "ObservationRecord",
    "InterventionLogRecord",
    "SessionMeta",
    "SessionExport",
]
