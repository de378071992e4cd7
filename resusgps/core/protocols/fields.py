"""
Shared observation vocabulary.

Every protocol builds its prompts from these field specs so the finding
evaluator can read one vocabulary regardless of which survey collected
the answer. Field names are unique within a protocol.
"""
from __future__ import annotations

from .base import FlatObservations, choice, multi, numeric, value_is, yes_no

# ── Airway ────────────────────────────────────────────────────────────────────
AIRWAY_PATENCY = choice("airway_patency", "Airway status", "patent", "at_risk", "obstructed", "secured")
AIRWAY_SIGNS = multi(
    "airway_signs", "Airway observations",
    "stridor", "gurgling", "snoring", "drooling", "foreign_body",
    "facial_trauma", "neck_hematoma", "blood_in_mouth", "none",
)

# ── Breathing ─────────────────────────────────────────────────────────────────
BREATHING_PRESENT = yes_no("breathing", "Is the patient breathing?")
RESPIRATORY_RATE = numeric("respiratory_rate", "Respiratory rate", "breaths/min", 0, 150, integer=True)
BREATHING_PATTERN = choice("breathing_pattern", "Breathing pattern", "normal", "apneic", "gasping", "irregular", "shallow")
BREATHING_EFFORT = choice("breathing_effort", "Work of breathing", "normal", "increased", "severe", "absent")
SPO2 = numeric("spo2", "Oxygen saturation", "%", 0, 100)
BREATH_SOUNDS = choice("breath_sounds", "Breath sounds", "clear", "wheeze", "crackles", "reduced_unilateral", "absent")
TRACHEA = choice("trachea", "Trachea position", "midline", "deviated")
CHEST_FINDINGS = multi(
    "chest_findings", "Chest wall findings",
    "asymmetric_movement", "sucking_wound", "flail_segment", "massive_hemothorax", "none",
)

# ── Circulation ───────────────────────────────────────────────────────────────
HEART_RATE = numeric("heart_rate", "Heart rate", "bpm", 0, 350, integer=True)
RHYTHM = choice("rhythm", "Rhythm", "regular", "irregular", "narrow_complex_tachycardia", "wide_complex_tachycardia")
CAPILLARY_REFILL = numeric("capillary_refill_s", "Capillary refill time", "s", 0, 20)
PULSE = choice("pulse", "Central pulse", "strong", "bounding", "weak", "absent")
SKIN_TEMPERATURE = choice("skin_temperature", "Peripheral temperature", "normal", "cool_peripheries", "cold_extremities", "warm_flushed")
SYSTOLIC_BP = numeric("systolic_bp", "Systolic blood pressure", "mmHg", 0, 300, integer=True)
JVP = choice("jvp", "Jugular venous pressure", "normal", "elevated")
HEART_FAILURE_SIGNS = multi(
    "heart_failure_signs", "Signs of heart failure",
    "jvp_elevated", "hepatomegaly", "crackles", "gallop", "none",
)
EXTERNAL_BLEEDING = choice("external_bleeding", "External bleeding", "none", "controlled", "uncontrolled")
PELVIS = choice("pelvis", "Pelvic stability", "stable", "unstable")
HEMORRHAGE_CLASS = choice("hemorrhage_class", "Hemorrhage class (provider assessment)", "I", "II", "III", "IV")
HOURS_SINCE_INJURY = numeric("hours_since_injury", "Time since injury", "h", 0, 72)

# ── Disability ────────────────────────────────────────────────────────────────
CONSCIOUSNESS = choice("consciousness", "AVPU", "alert", "voice", "pain", "unresponsive")
PUPILS = choice("pupils", "Pupils", "equal_reactive", "sluggish", "unequal", "fixed_dilated", "pinpoint")
GLUCOSE = numeric("glucose_mmol", "Blood glucose", "mmol/L", 0, 60)
SEIZURE = choice("seizure", "Seizure activity", "none", "active", "post_ictal")
GCS_EYE = numeric("gcs_eye", "GCS eye", "points", 1, 4, integer=True)
GCS_VERBAL = numeric("gcs_verbal", "GCS verbal", "points", 1, 5, integer=True)
GCS_MOTOR = numeric("gcs_motor", "GCS motor", "points", 1, 6, integer=True)

# ── Exposure ──────────────────────────────────────────────────────────────────
TEMPERATURE = numeric("temperature_c", "Temperature", "°C", 25, 45)
RASH = choice("rash", "Skin findings", "none", "petechial_purpuric", "urticarial", "other")
ABDOMINAL_FINDINGS = multi("abdominal_findings", "Abdominal examination", "distended", "tender", "rigid", "mass", "none")
TBSA = numeric("tbsa_percent", "Burned surface area", "% TBSA", 0, 100)
HOURS_SINCE_BURN = numeric("hours_since_burn", "Time since burn", "h", 0, 72)
INHALATION_INJURY = yes_no("inhalation_injury", "Signs of inhalation injury?")
EXPOSURE_FINDINGS = multi("exposure_findings", "Exposure findings", "additional_injuries", "non_accidental_concern", "none")

# ── History ───────────────────────────────────────────────────────────────────
TRAUMA_FLAG = yes_no("trauma_flag", "History of trauma?")
TOXIN_EXPOSURE = choice("toxin_exposure", "Toxin exposure", "none", "opioid", "sedative", "organophosphate", "other")
MEDICAL_HISTORY = multi(
    "medical_history", "Relevant history",
    "asthma", "cardiac_disease", "diabetes", "epilepsy", "allergy", "immunocompromised", "none",
)
MECHANISM = choice("mechanism", "Mechanism of injury", "blunt", "penetrating", "fall", "burn", "drowning", "crush")
C_SPINE_CONCERN = yes_no("c_spine_concern", "Mechanism suggests C-spine injury?")


# ── Composite signs ───────────────────────────────────────────────────────────

def shows_apnea(obs: FlatObservations) -> bool:
    return (
        obs.get("breathing") is False
        or value_is(obs, "breathing_pattern", "apneic", "gasping")
        or value_is(obs, "breathing_effort", "absent")
    )


def shows_cardiac_arrest(obs: FlatObservations) -> bool:
    """No central pulse in a patient who is unresponsive or not breathing."""
    if not value_is(obs, "pulse", "absent"):
        return False
    return value_is(obs, "consciousness", "unresponsive") or shows_apnea(obs)
