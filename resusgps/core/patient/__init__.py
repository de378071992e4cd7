"""
Patient Layer

Canonical patient record and the resolver that builds it from raw input.
"""
from .context import PatientContext, PatientType
from .resolver import (
    WeightFormula,
    estimate_weight,
    estimate_weight_standard,
    estimate_weight_trauma,
    infer_patient_type,
    resolve_patient_context,
)

__all__ = [
    "PatientContext",
    "PatientType",
    "WeightFormula",
    "estimate_weight",
    "estimate_weight_standard",
    "estimate_weight_trauma",
    "infer_patient_type",
    "resolve_patient_context",
]
