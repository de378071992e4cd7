"""
Neonatal resuscitation algorithm.

    initial-assessment ─ all yes ─► routine-care
        │ any no
        ▼
    initial-steps ─► breathing-check ─ apnea/gasping or HR < 100 ─► ppv ─► ppv-reassess
        │                                                              │
        │ breathing, HR >= 100                          HR 60-99 ─► mr-sopa
        ▼                                               HR < 60  ─► chest-compressions
    labored-breathing                                                  │ HR < 60
                                                                       ▼
                                                                  epinephrine
    post-resuscitation opens whenever PPV or CPAP was needed.

Heart rate answers are stored under distinct names per checkpoint so a
later reading never overwrites the one that opened a branch.
"""
from __future__ import annotations

from .base import (
    AssessmentStep,
    FlatObservations,
    Phase,
    ProtocolDefinition,
    ProtocolId,
    choice,
    multi,
    numeric,
    value_below,
    value_between,
    yes_no,
)
from . import fields as f

_VIGOUR_FIELDS = ("term_gestation", "good_tone", "breathing_or_crying")

TERM_GESTATION = yes_no("term_gestation", "Term gestation?")
GOOD_TONE = yes_no("good_tone", "Good muscle tone?")
BREATHING_OR_CRYING = yes_no("breathing_or_crying", "Breathing or crying?")
ROUTINE_CARE = multi("routine_care_done", "Routine care", "warm", "dry", "skin_to_skin", "ongoing_evaluation")
INITIAL_STEPS = multi(
    "initial_steps_done", "Initial steps",
    "warm", "dry", "stimulate", "position_airway", "suction_if_needed",
)
APNEA_OR_GASPING = yes_no("apnea_or_gasping", "Apnea or gasping?")
NEONATAL_HEART_RATE = numeric("heart_rate", "Heart rate", "bpm", 0, 300, integer=True)
LABORED = yes_no("labored_breathing_or_cyanosis", "Labored breathing or persistent cyanosis?")
PPV_CHEST_RISE = yes_no("ppv_chest_rise", "Chest rising with PPV?")
HR_AFTER_PPV = numeric("heart_rate_after_ppv", "Heart rate after 30 s of effective PPV", "bpm", 0, 300, integer=True)
MR_SOPA = multi(
    "mr_sopa_steps", "Ventilation corrective steps",
    "mask_adjust", "reposition", "suction", "open_mouth", "pressure_increase", "alternative_airway",
)
HR_AFTER_COMPRESSIONS = numeric(
    "heart_rate_after_compressions", "Heart rate after 60 s of compressions", "bpm", 0, 300, integer=True,
)
EPINEPHRINE_ROUTE = choice("epinephrine_route", "Epinephrine route", "uvc", "io", "ett")
HR_AFTER_EPINEPHRINE = numeric("heart_rate_after_epinephrine", "Heart rate after epinephrine", "bpm", 0, 300, integer=True)
POST_RESUS_CHECKS = multi(
    "post_resus_checks", "Post-resuscitation care",
    "thermoregulation", "glucose_check", "cardiorespiratory_monitoring", "family_update",
)


# ── Branch predicates ─────────────────────────────────────────────────────────

def is_vigorous(obs: FlatObservations) -> bool:
    return all(obs.get(name) is True for name in _VIGOUR_FIELDS)


def needs_initial_steps(obs: FlatObservations) -> bool:
    return any(obs.get(name) is False for name in _VIGOUR_FIELDS)


def needs_ppv(obs: FlatObservations) -> bool:
    return obs.get("apnea_or_gasping") is True or value_below(obs, "heart_rate", 100)


def needs_compressions(obs: FlatObservations) -> bool:
    return value_below(obs, "heart_rate_after_ppv", 60)


def needs_epinephrine(obs: FlatObservations) -> bool:
    return needs_compressions(obs) and value_below(obs, "heart_rate_after_compressions", 60)


NEONATAL = ProtocolDefinition(
    protocol_id=ProtocolId.NEONATAL,
    title="Neonatal Resuscitation",
    steps=(
        AssessmentStep(
            "initial-assessment", Phase.SIGNS_OF_LIFE, "Term? Tone? Breathing or crying?",
            prompts=(TERM_GESTATION, GOOD_TONE, BREATHING_OR_CRYING),
        ),
        AssessmentStep(
            "routine-care", Phase.EXPOSURE, "Routine care with mother",
            prompts=(ROUTINE_CARE,),
            applies=lambda p, o: is_vigorous(o),
        ),
        AssessmentStep(
            "initial-steps", Phase.AIRWAY, "Warm, dry, stimulate, position airway",
            prompts=(INITIAL_STEPS,),
            intervention_options=("Radiant warmer", "Suction mouth then nose if needed"),
            applies=lambda p, o: needs_initial_steps(o),
        ),
        AssessmentStep(
            "breathing-check", Phase.BREATHING, "Apnea or gasping? Heart rate below 100?",
            prompts=(APNEA_OR_GASPING, NEONATAL_HEART_RATE, f.SPO2),
            intervention_options=("Pulse oximetry (right hand)",),
            applies=lambda p, o: needs_initial_steps(o),
        ),
        AssessmentStep(
            "labored-breathing", Phase.BREATHING, "Labored breathing or persistent cyanosis?",
            prompts=(LABORED,),
            intervention_options=("CPAP", "Targeted oxygen"),
            applies=lambda p, o: needs_initial_steps(o)
            and o.get("apnea_or_gasping") is False
            and not value_below(o, "heart_rate", 100)
            and "heart_rate" in o,
        ),
        AssessmentStep(
            "ppv", Phase.BREATHING, "Positive pressure ventilation",
            prompts=(PPV_CHEST_RISE,),
            intervention_options=("PPV 40-60 breaths/min", "SpO2 monitor", "Consider ECG monitor"),
            applies=lambda p, o: needs_initial_steps(o) and needs_ppv(o),
        ),
        AssessmentStep(
            "ppv-reassess", Phase.BREATHING, "Heart rate after 30 seconds of PPV",
            prompts=(HR_AFTER_PPV,),
            applies=lambda p, o: needs_initial_steps(o) and needs_ppv(o),
        ),
        AssessmentStep(
            "mr-sopa", Phase.AIRWAY, "Ventilation corrective steps (MR SOPA)",
            prompts=(MR_SOPA,),
            applies=lambda p, o: needs_initial_steps(o) and needs_ppv(o)
            and value_between(o, "heart_rate_after_ppv", 60, 100),
        ),
        AssessmentStep(
            "chest-compressions", Phase.CIRCULATION, "Chest compressions 3:1 with 100% oxygen",
            prompts=(HR_AFTER_COMPRESSIONS,),
            intervention_options=("Intubate", "UVC placement"),
            applies=lambda p, o: needs_initial_steps(o) and needs_ppv(o) and needs_compressions(o),
        ),
        AssessmentStep(
            "epinephrine", Phase.CIRCULATION, "Epinephrine",
            prompts=(EPINEPHRINE_ROUTE, HR_AFTER_EPINEPHRINE),
            intervention_options=("Volume expansion if blood loss",),
            applies=lambda p, o: needs_initial_steps(o) and needs_ppv(o) and needs_epinephrine(o),
        ),
        AssessmentStep(
            "post-resuscitation", Phase.EXPOSURE, "Post-resuscitation care",
            prompts=(POST_RESUS_CHECKS, f.GLUCOSE, f.TEMPERATURE),
            applies=lambda p, o: needs_initial_steps(o)
            and (needs_ppv(o) or o.get("labored_breathing_or_cyanosis") is True),
        ),
    ),
)
