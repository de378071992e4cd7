"""
resusgps — clinical protocol decision engine.

Guides a provider through a structured emergency assessment and turns
the answers into ordered, weight-dosed interventions.

Usage:
    from resusgps import SessionEngine, configure_logging

    configure_logging()

    engine = SessionEngine()
    session = engine.start("primary_survey")
    session = engine.submit_patient(session, {"age_years": 2})
"""
# patient first: the schemas import PatientType
from .core.patient import PatientContext, PatientType, resolve_patient_context
from .core.parameters import compute_dose, equipment_sizes, glasgow_coma_scale, reference_ranges
from .core.protocols import ProtocolId, get_protocol
from .core.clinical import Finding, Intervention, InterventionEngine, evaluate
from .core.session import Session, SessionEngine, SessionState
from .config import EngineSettings, configure_logging
from .utils import DomainError, LogicError, ProtocolEngineError, ValidationError

__version__ = "0.1.0"

__all__ = [
    "PatientContext",
    "PatientType",
    "resolve_patient_context",
    "compute_dose",
    "equipment_sizes",
    "glasgow_coma_scale",
    "reference_ranges",
    "ProtocolId",
    "get_protocol",
    "Finding",
    "Intervention",
    "InterventionEngine",
    "evaluate",
    "Session",
    "SessionEngine",
    "SessionState",
    "EngineSettings",
    "configure_logging",
    "DomainError",
    "LogicError",
    "ProtocolEngineError",
    "ValidationError",
]
