"""
Extended step-by-step survey.

Opens with a signs-of-life check (breathing, pulse, responsiveness) before
the ABCDE phases, and adds a dedicated heart-failure screen ahead of the
circulation measurements so fluid is not pushed into a failing heart.
"""
from __future__ import annotations

from . import fields as f
from .base import AssessmentStep, Phase, ProtocolDefinition, ProtocolId
from .primary_survey import CARDIAC_ARREST_EXIT

EXTENDED_SURVEY = ProtocolDefinition(
    protocol_id=ProtocolId.EXTENDED_SURVEY,
    title="Extended ABCDE Survey",
    early_exits=(CARDIAC_ARREST_EXIT,),
    steps=(
        # ── Signs of life ──
        AssessmentStep(
            "signs-breathing", Phase.SIGNS_OF_LIFE, "Is the patient breathing?",
            prompts=(f.BREATHING_PRESENT,),
            critical_finding_options=("apnea",),
            intervention_options=("Open airway", "Bag-valve-mask ventilation"),
        ),
        AssessmentStep(
            "signs-pulse", Phase.SIGNS_OF_LIFE, "Is there a central pulse?",
            prompts=(f.PULSE,),
            critical_finding_options=("pulseless",),
            intervention_options=("Start CPR",),
        ),
        AssessmentStep(
            "signs-responsiveness", Phase.SIGNS_OF_LIFE, "Is the patient responsive?",
            prompts=(f.CONSCIOUSNESS,),
            critical_finding_options=("altered-consciousness",),
        ),
        # ── A ──
        AssessmentStep(
            "airway-patency", Phase.AIRWAY, "Airway patency",
            prompts=(f.AIRWAY_PATENCY,),
            critical_finding_options=("airway-obstruction",),
            intervention_options=("Airway positioning", "Suction"),
        ),
        AssessmentStep(
            "airway-sounds", Phase.AIRWAY, "Airway sounds",
            prompts=(f.AIRWAY_SIGNS,),
            critical_finding_options=("stridor", "airway-foreign-body"),
        ),
        # ── B ──
        AssessmentStep(
            "breathing-effort", Phase.BREATHING, "Work of breathing",
            prompts=(f.BREATHING_EFFORT,),
        ),
        AssessmentStep(
            "oxygenation", Phase.BREATHING, "Saturation and respiratory rate",
            prompts=(f.SPO2, f.RESPIRATORY_RATE),
            intervention_options=("Oxygen",),
        ),
        AssessmentStep(
            "breath-sounds", Phase.BREATHING, "Breath sounds",
            prompts=(f.BREATH_SOUNDS,),
        ),
        # ── C ──
        AssessmentStep(
            "heart-failure-signs", Phase.CIRCULATION, "Signs of heart failure",
            prompts=(f.HEART_FAILURE_SIGNS,),
            critical_finding_options=("heart-failure-signs",),
        ),
        AssessmentStep(
            "heart-rate-rhythm", Phase.CIRCULATION, "Heart rate and rhythm",
            prompts=(f.HEART_RATE, f.RHYTHM),
            critical_finding_options=("svt-suspected",),
        ),
        AssessmentStep(
            "perfusion", Phase.CIRCULATION, "Perfusion",
            prompts=(f.CAPILLARY_REFILL, f.SKIN_TEMPERATURE),
            critical_finding_options=("poor-perfusion",),
            intervention_options=("IV/IO access", "Fluid bolus"),
        ),
        AssessmentStep(
            "blood-pressure", Phase.CIRCULATION, "Blood pressure",
            prompts=(f.SYSTOLIC_BP,),
        ),
        # ── D ──
        AssessmentStep(
            "glucose", Phase.DISABILITY, "Blood glucose",
            prompts=(f.GLUCOSE,),
        ),
        AssessmentStep(
            "pupils", Phase.DISABILITY, "Pupils",
            prompts=(f.PUPILS,),
        ),
        AssessmentStep(
            "seizure", Phase.DISABILITY, "Seizure activity",
            prompts=(f.SEIZURE,),
            critical_finding_options=("active-seizure",),
        ),
        # ── E ──
        AssessmentStep(
            "temperature", Phase.EXPOSURE, "Temperature",
            prompts=(f.TEMPERATURE,),
        ),
        AssessmentStep(
            "rash", Phase.EXPOSURE, "Rash",
            prompts=(f.RASH,),
            critical_finding_options=("petechial-rash",),
        ),
    ),
)
