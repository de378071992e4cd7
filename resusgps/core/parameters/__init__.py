"""
Parameter Calculator

Pure functions of (age, weight): reference ranges, equipment sizes,
drug doses and the trauma/neonatal calculators. Safe to share between
concurrent sessions.
"""
from .ranges import (
    ReferenceRanges,
    VitalBand,
    VITAL_BANDS,
    lookup_band,
    band_for_patient,
    minimum_systolic_bp,
    reference_ranges,
)
from .equipment import (
    EquipmentSizes,
    equipment_sizes,
    ett_size,
    suction_catheter_size,
    defibrillation_energy,
    cardioversion_energy,
)
from .dosing import DRUG_TABLE, DoseResult, DrugSpec, compute_dose, format_quantity, get_drug
from .trauma import (
    GcsResult,
    GcsSeverity,
    HemorrhageClass,
    HEMORRHAGE_CLASSES,
    ParklandResult,
    TxaDose,
    glasgow_coma_scale,
    hemorrhage_class,
    needs_burn_resuscitation,
    parkland_formula,
    txa_dose,
)
from .neonatal import neonatal_ett, neonatal_spo2_target, neonatal_weight

__all__ = [
    "ReferenceRanges",
    "VitalBand",
    "VITAL_BANDS",
    "lookup_band",
    "band_for_patient",
    "minimum_systolic_bp",
    "reference_ranges",
    "EquipmentSizes",
    "equipment_sizes",
    "ett_size",
    "suction_catheter_size",
    "defibrillation_energy",
    "cardioversion_energy",
    "DRUG_TABLE",
    "DoseResult",
    "DrugSpec",
    "compute_dose",
    "format_quantity",
    "get_drug",
    "GcsResult",
    "GcsSeverity",
    "HemorrhageClass",
    "HEMORRHAGE_CLASSES",
    "ParklandResult",
    "TxaDose",
    "glasgow_coma_scale",
    "hemorrhage_class",
    "needs_burn_resuscitation",
    "parkland_formula",
    "txa_dose",
    "neonatal_ett",
    "neonatal_spo2_target",
    "neonatal_weight",
]
