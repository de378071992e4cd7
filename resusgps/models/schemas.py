"""
Pydantic models for the engine's in-process interface.

Inbound models are what the presentation layer hands to the engine;
outbound models are the views and the export snapshot it renders or
ships elsewhere. Field names here are a stable contract: add fields,
never rename them.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from resusgps.core.patient.context import PatientType

SCHEMA_VERSION = "1.0"

# bool must come first so True/False are not read as 1/0
ObservationValue = Union[bool, int, float, str, List[str]]


# ---- Inbound ----

class PatientContextInput(BaseModel):
    """Raw demographic input collected on the patient-data screen."""
    age_years: Optional[float] = Field(default=None, description="Completed years of age")
    age_months: Optional[float] = Field(default=None, description="Additional months (or total months when no years given)")
    weight_kg: Optional[float] = Field(default=None, description="Measured weight; estimated from age when omitted")
    patient_type: Optional[PatientType] = Field(default=None, description="Inferred from age when omitted")
    gestational_weeks: Optional[float] = Field(default=None, description="Neonates only; drives the weight table")


class ObservationInput(BaseModel):
    """A single answer to one prompt of one assessment step."""
    step_id: str
    field: str
    value: ObservationValue


class ActionKind(str, Enum):
    CONTINUE            = "continue"
    BACK                = "back"
    SELECT_FINDING      = "select_finding"
    TOGGLE_INTERVENTION = "toggle_intervention"
    RESOLVE             = "resolve"
    ESCALATE            = "escalate"


class UserAction(BaseModel):
    """Navigation or decision input from the provider."""
    kind: ActionKind
    target: Optional[str] = Field(
        default=None,
        description="Critical finding option or intervention id for select/toggle actions",
    )


# ---- Outbound ----

class PromptView(BaseModel):
    name: str
    kind: str
    label: str
    unit: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    minimum: Optional[float] = None
    maximum: Optional[float] = None


class AssessmentStepView(BaseModel):
    """Everything the presentation layer needs to render one step."""
    id: str
    phase: str
    title: str
    prompts: List[PromptView]
    applicable_options: Dict[str, List[str]]
    values: Dict[str, ObservationValue] = Field(default_factory=dict)


class ActionView(BaseModel):
    action: str
    dose_expression: Optional[str] = None
    route: Optional[str] = None
    frequency: Optional[str] = None
    titration: Optional[str] = None
    reassessment_criteria: Optional[str] = None


class InterventionView(BaseModel):
    id: str
    severity: str
    system: str
    title: str
    evidence: List[str]
    actions: List[ActionView]
    escalation_path: Optional[str] = None
    performed: bool = False


class FindingView(BaseModel):
    code: str
    system: str
    evidence: List[str]


class ObservationRecord(BaseModel):
    step_id: str
    field: str
    value: ObservationValue


class InterventionLogRecord(BaseModel):
    elapsed_seconds: float
    cycle: int
    event: str
    intervention_id: Optional[str] = None
    detail: Optional[str] = None


class SessionMeta(BaseModel):
    session_id: str
    protocol: str
    state: str
    start_time: datetime
    elapsed_seconds: float
    current_step_id: Optional[str] = None
    completed_step_ids: List[str]
    reassessment_cycle: int
    early_exit: Optional[str] = None
    patient: Optional[Dict[str, Any]] = None


class SessionExport(BaseModel):
    """Immutable snapshot handed to export/persistence collaborators."""
    model_config = ConfigDict(frozen=True)

    schema_version: str = SCHEMA_VERSION
    session_meta: SessionMeta
    observations: List[ObservationRecord]
    findings: List[FindingView]
    interventions: List[InterventionView]
    intervention_log: List[InterventionLogRecord]
