"""
Clinical Decision Layer

Turns observations into findings and findings into dosed interventions.

Usage:
    from resusgps.core.clinical import FindingSet, InterventionEngine, evaluate

    findings = evaluate(observations, patient, ranges)
    interventions = InterventionEngine().derive(findings, patient)
"""
from .base import (
    AbcdeSystem,
    Finding,
    FindingSet,
    Intervention,
    InterventionAction,
    Severity,
)
from .findings import NO_REFERENCE_AVAILABLE, evaluate, evaluate_values
from .engine import InterventionEngine, derive_interventions

__all__ = [
    "AbcdeSystem",
    "Finding",
    "FindingSet",
    "Intervention",
    "InterventionAction",
    "Severity",
    "NO_REFERENCE_AVAILABLE",
    "evaluate",
    "evaluate_values",
    "InterventionEngine",
    "derive_interventions",
]
