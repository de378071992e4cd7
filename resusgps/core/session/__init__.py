"""
Session Layer

Immutable Session aggregate, the resuscitation timer and the engine that
drives a case through assessment, interventions and reassessment.
"""
from .timer import TimerState
from .session import InterventionLogEntry, Session, SessionState
from .engine import SessionEngine

__all__ = [
    "TimerState",
    "InterventionLogEntry",
    "Session",
    "SessionState",
    "SessionEngine",
]
