"""
Trauma primary survey (ABCDE with C-spine protection).

Steps group several measurements each, as a trauma team calls them out
together. The hemorrhage-class step opens when there is bleeding or an
unstable pelvis; the burns step only for a burn mechanism. Weight is
estimated with the trauma formula.
"""
from __future__ import annotations

from resusgps.core.patient.resolver import WeightFormula

from . import fields as f
from .base import AssessmentStep, Phase, ProtocolDefinition, ProtocolId, value_is
from .primary_survey import CARDIAC_ARREST_EXIT

TRAUMA = ProtocolDefinition(
    protocol_id=ProtocolId.TRAUMA,
    title="Trauma Primary Survey",
    weight_formula=WeightFormula.TRAUMA,
    early_exits=(CARDIAC_ARREST_EXIT,),
    steps=(
        AssessmentStep(
            "mechanism", Phase.HISTORY, "Mechanism of injury",
            prompts=(f.MECHANISM, f.C_SPINE_CONCERN),
            intervention_options=("Manual in-line stabilisation",),
        ),
        AssessmentStep(
            "trauma-airway", Phase.AIRWAY, "Airway with C-spine protection",
            prompts=(f.AIRWAY_PATENCY, f.AIRWAY_SIGNS, f.CONSCIOUSNESS),
            critical_finding_options=(
                "airway-obstruction", "severe-facial-trauma", "expanding-neck-hematoma", "stridor",
            ),
            intervention_options=(
                "Jaw thrust (no head tilt)", "Suction blood/secretions", "Remove visible foreign body",
                "Oropharyngeal airway if unconscious", "Intubation with in-line stabilisation",
            ),
        ),
        AssessmentStep(
            "trauma-breathing", Phase.BREATHING, "Breathing and ventilation",
            prompts=(f.RESPIRATORY_RATE, f.SPO2, f.BREATH_SOUNDS, f.TRACHEA, f.CHEST_FINDINGS),
            critical_finding_options=(
                "tension-pneumothorax", "open-pneumothorax", "massive-hemothorax", "flail-chest",
            ),
            intervention_options=(
                "High-flow oxygen 15 L/min", "Needle decompression", "Three-sided occlusive dressing",
                "Chest drain", "BVM ventilation",
            ),
        ),
        AssessmentStep(
            "trauma-circulation", Phase.CIRCULATION, "Circulation with hemorrhage control",
            prompts=(f.HEART_RATE, f.SYSTOLIC_BP, f.CAPILLARY_REFILL, f.PULSE, f.EXTERNAL_BLEEDING, f.PELVIS),
            critical_finding_options=("uncontrolled-hemorrhage", "pelvic-instability", "hemorrhagic-shock"),
            intervention_options=(
                "Direct pressure", "Tourniquet", "Pelvic binder", "Two large-bore IV/IO",
                "Warm crystalloid bolus", "Tranexamic acid", "Massive transfusion protocol",
            ),
        ),
        AssessmentStep(
            "hemorrhage-class", Phase.CIRCULATION, "Classify the hemorrhage",
            prompts=(f.HEMORRHAGE_CLASS, f.HOURS_SINCE_INJURY),
            applies=lambda p, o: value_is(o, "external_bleeding", "controlled", "uncontrolled")
            or value_is(o, "pelvis", "unstable"),
        ),
        AssessmentStep(
            "trauma-disability", Phase.DISABILITY, "Disability",
            prompts=(f.GCS_EYE, f.GCS_VERBAL, f.GCS_MOTOR, f.PUPILS, f.GLUCOSE),
            critical_finding_options=("gcs-severe", "anisocoria", "cushing-triad"),
            intervention_options=(
                "Protect airway if GCS <= 8", "Head up 30 degrees", "Avoid hypoxia and hypotension",
                "Neurosurgical consultation",
            ),
        ),
        AssessmentStep(
            "burns", Phase.EXPOSURE, "Burn assessment",
            prompts=(f.TBSA, f.HOURS_SINCE_BURN, f.INHALATION_INJURY),
            applies=lambda p, o: value_is(o, "mechanism", "burn"),
        ),
        AssessmentStep(
            "trauma-exposure", Phase.EXPOSURE, "Exposure and environment",
            prompts=(f.TEMPERATURE, f.EXPOSURE_FINDINGS),
            critical_finding_options=("temperature-low", "non-accidental-injury"),
            intervention_options=("Warm blankets and fluids", "Log roll", "Document all injuries"),
        ),
    ),
)
