"""
Generic ABCDE primary survey.

One question per step, airway first. The airway-observations step only
opens when the airway is at risk or obstructed, the JVP step only for
adult and pregnant patients, and the toxin-history step only once trauma
has been flagged.
"""
from __future__ import annotations

from . import fields as f
from .base import (
    AssessmentStep,
    EarlyExitRule,
    Phase,
    ProtocolDefinition,
    ProtocolId,
    is_adult_type,
    value_is,
)

CARDIAC_ARREST_EXIT = EarlyExitRule(
    name="cardiac-arrest",
    description="Unresponsive or apneic patient without a central pulse",
    triggered=f.shows_cardiac_arrest,
    fields=frozenset({"pulse", "consciousness", "breathing", "breathing_pattern", "breathing_effort"}),
)

PRIMARY_SURVEY = ProtocolDefinition(
    protocol_id=ProtocolId.PRIMARY_SURVEY,
    title="ABCDE Primary Survey",
    early_exits=(CARDIAC_ARREST_EXIT,),
    steps=(
        # ── A ──
        AssessmentStep(
            "airway-status", Phase.AIRWAY, "Is the airway open?",
            prompts=(f.AIRWAY_PATENCY,),
            critical_finding_options=("airway-obstruction",),
            intervention_options=("Head tilt-chin lift / jaw thrust", "Suction", "Airway adjunct"),
        ),
        AssessmentStep(
            "airway-observations", Phase.AIRWAY, "What do you see or hear at the airway?",
            prompts=(f.AIRWAY_SIGNS,),
            critical_finding_options=("airway-foreign-body", "stridor"),
            intervention_options=("Foreign body removal", "Back blows / chest thrusts"),
            applies=lambda p, o: value_is(o, "airway_patency", "at_risk", "obstructed"),
        ),
        # ── B ──
        AssessmentStep(
            "breathing-rate", Phase.BREATHING, "Count the respiratory rate",
            prompts=(f.RESPIRATORY_RATE,),
        ),
        AssessmentStep(
            "breathing-pattern", Phase.BREATHING, "Breathing pattern",
            prompts=(f.BREATHING_PATTERN,),
            critical_finding_options=("apnea",),
            intervention_options=("Bag-valve-mask ventilation",),
        ),
        AssessmentStep(
            "breathing-effort", Phase.BREATHING, "Work of breathing",
            prompts=(f.BREATHING_EFFORT,),
            critical_finding_options=("severe-respiratory-distress",),
        ),
        AssessmentStep(
            "spo2", Phase.BREATHING, "Oxygen saturation",
            prompts=(f.SPO2,),
            intervention_options=("Oxygen",),
        ),
        AssessmentStep(
            "lung-sounds", Phase.BREATHING, "Auscultate the chest",
            prompts=(f.BREATH_SOUNDS,),
            intervention_options=("Bronchodilator",),
        ),
        # ── C ──
        AssessmentStep(
            "heart-rate", Phase.CIRCULATION, "Heart rate and rhythm",
            prompts=(f.HEART_RATE, f.RHYTHM),
        ),
        AssessmentStep(
            "perfusion", Phase.CIRCULATION, "Perfusion",
            prompts=(f.CAPILLARY_REFILL, f.PULSE, f.SKIN_TEMPERATURE),
            critical_finding_options=("poor-perfusion",),
            intervention_options=("IV/IO access", "Fluid bolus"),
        ),
        AssessmentStep(
            "blood-pressure", Phase.CIRCULATION, "Blood pressure",
            prompts=(f.SYSTOLIC_BP,),
        ),
        AssessmentStep(
            "jvp", Phase.CIRCULATION, "Jugular venous pressure",
            prompts=(f.JVP,),
            applies=is_adult_type,
        ),
        # ── D ──
        AssessmentStep(
            "avpu", Phase.DISABILITY, "Level of consciousness (AVPU)",
            prompts=(f.CONSCIOUSNESS,),
            critical_finding_options=("altered-consciousness",),
            intervention_options=("Recovery position", "Airway protection"),
        ),
        AssessmentStep(
            "pupils", Phase.DISABILITY, "Pupils",
            prompts=(f.PUPILS,),
        ),
        AssessmentStep(
            "glucose", Phase.DISABILITY, "Blood glucose",
            prompts=(f.GLUCOSE,),
            intervention_options=("Dextrose 10%",),
        ),
        AssessmentStep(
            "seizure", Phase.DISABILITY, "Seizure activity",
            prompts=(f.SEIZURE,),
            critical_finding_options=("active-seizure",),
            intervention_options=("Benzodiazepine",),
        ),
        # ── E ──
        AssessmentStep(
            "temperature", Phase.EXPOSURE, "Temperature",
            prompts=(f.TEMPERATURE,),
        ),
        AssessmentStep(
            "skin-findings", Phase.EXPOSURE, "Skin",
            prompts=(f.RASH,),
            critical_finding_options=("petechial-rash",),
        ),
        AssessmentStep(
            "abdominal-exam", Phase.EXPOSURE, "Abdomen",
            prompts=(f.ABDOMINAL_FINDINGS,),
        ),
        # ── History ──
        AssessmentStep(
            "trauma-history", Phase.HISTORY, "Any trauma?",
            prompts=(f.TRAUMA_FLAG,),
        ),
        AssessmentStep(
            "toxin-history", Phase.HISTORY, "Possible toxin or drug exposure",
            prompts=(f.TOXIN_EXPOSURE,),
            applies=lambda p, o: o.get("trauma_flag") is True,
        ),
        AssessmentStep(
            "medical-history", Phase.HISTORY, "Relevant medical history",
            prompts=(f.MEDICAL_HISTORY,),
        ),
    ),
)
