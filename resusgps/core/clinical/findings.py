"""
Finding Evaluator

Maps observations plus reference ranges to a set of Findings. Pure and
deterministic: the same answers, patient and ranges always give the same
set, so a reassessment cycle that re-runs it on unchanged answers gets an
identical result.

Finding families:
    threshold    value outside its band          "<vital>-low" / "<vital>-high"
    categorical  discrete answer matches         airway_patency=obstructed → "airway-obstruction"
    composite    several answers together        pulse absent + unresponsive → "cardiac-arrest"

When no reference band exists for the patient (ranges is None) the
threshold family is skipped and a "no-reference-available" marker is
emitted instead; the categorical and composite families still run.
"""
from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Tuple

from resusgps.core.parameters.ranges import ReferenceRanges, minimum_systolic_bp
from resusgps.core.parameters.trauma import GcsSeverity, glasgow_coma_scale, needs_burn_resuscitation
from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.core.protocols.base import (
    Observations,
    flatten,
    selected,
    value_below,
    value_is,
)
from resusgps.core.protocols.fields import shows_apnea, shows_cardiac_arrest
from resusgps.utils import get_logger
from .base import AbcdeSystem, Finding

logger = get_logger(__name__)

A = AbcdeSystem.AIRWAY
B = AbcdeSystem.BREATHING
C = AbcdeSystem.CIRCULATION
D = AbcdeSystem.DISABILITY
E = AbcdeSystem.EXPOSURE
G = AbcdeSystem.GENERAL

NO_REFERENCE_AVAILABLE = "no-reference-available"

# ── Thresholds ────────────────────────────────────────────────────────────────
CRT_POOR_PERFUSION_S   = 3.0     # capillary refill above this is poor perfusion
SPO2_HYPOXEMIA         = 90.0    # below this is hypoxemia regardless of target
HR_SVT                 = 220     # sinus tachycardia rarely exceeds this
TEMP_SEVERE_HYPOTHERMIA = 35.0
TEMP_HYPERPYREXIA      = 40.0
TXA_WINDOW_H           = 3.0

NEONATAL_HR_PPV          = 100
NEONATAL_HR_COMPRESSIONS = 60

# vital field → (finding stem, system)
_THRESHOLD_VITALS = (
    ("respiratory_rate", "respiratory-rate", B),
    ("spo2",             "spo2",             B),
    ("heart_rate",       "heart-rate",       C),
    ("systolic_bp",      "systolic-bp",      C),
    ("glucose_mmol",     "glucose",          D),
    ("temperature_c",    "temperature",      E),
)


Flat = Mapping[str, Any]


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, (list, tuple)):
        return "+".join(str(v) for v in value)
    return str(value)


def _ev(obs: Flat, *names: str) -> Tuple[str, ...]:
    return tuple(f"{name}={_fmt(obs[name])}" for name in names if name in obs)


def _number(obs: Flat, name: str) -> Optional[float]:
    value = obs.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


# ── Threshold family ──────────────────────────────────────────────────────────

def _threshold_findings(obs: Flat, patient: PatientContext, ranges: ReferenceRanges) -> List[Finding]:
    found: List[Finding] = []
    for name, stem, system in _THRESHOLD_VITALS:
        value = _number(obs, name)
        band = ranges.get(name)
        if value is None or band is None:
            continue
        low, high = band
        data = (("high", high), ("low", low), ("value", value))
        if value < low:
            found.append(Finding(f"{stem}-low", system, (f"{name}={_fmt(value)} (< {low:g})",), data))
        elif value > high:
            found.append(Finding(f"{stem}-high", system, (f"{name}={_fmt(value)} (> {high:g})",), data))

    sbp = _number(obs, "systolic_bp")
    if sbp is not None and patient.patient_type.is_pediatric and patient.patient_type != PatientType.NEONATE:
        limit = minimum_systolic_bp(patient.age_years)
        if sbp < limit:
            found.append(Finding("hypotension", C, (f"systolic_bp={_fmt(sbp)} (< {limit:g} for age)",)))
    elif sbp is not None and not patient.patient_type.is_pediatric and sbp < ranges.systolic_bp[0]:
        found.append(Finding("hypotension", C, (f"systolic_bp={_fmt(sbp)} (< {ranges.systolic_bp[0]:g})",)))
    return found


# ── Categorical / composite families ──────────────────────────────────────────

def _airway_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    found: List[Finding] = []
    if value_is(obs, "airway_patency", "obstructed"):
        found.append(Finding("airway-obstruction", A, _ev(obs, "airway_patency")))
    elif value_is(obs, "airway_patency", "at_risk"):
        found.append(Finding("airway-at-risk", A, _ev(obs, "airway_patency")))

    sign_codes = (
        ("foreign_body", "airway-foreign-body"),
        ("stridor", "stridor"),
        ("gurgling", "airway-secretions"),
        ("blood_in_mouth", "airway-secretions"),
        ("facial_trauma", "severe-facial-trauma"),
        ("neck_hematoma", "expanding-neck-hematoma"),
    )
    for option, code in sign_codes:
        if selected(obs, "airway_signs", option):
            found.append(Finding(code, A, (f"airway_signs includes {option}",)))

    if obs.get("c_spine_concern") is True:
        found.append(Finding("c-spine-risk", A, _ev(obs, "c_spine_concern", "mechanism")))
    if obs.get("inhalation_injury") is True:
        found.append(Finding("inhalation-injury", A, _ev(obs, "inhalation_injury")))
    return found


def _breathing_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    found: List[Finding] = []
    neonate = patient.patient_type == PatientType.NEONATE

    if shows_apnea(obs) and not neonate:
        found.append(Finding("apnea", B, _ev(obs, "breathing", "breathing_pattern", "breathing_effort")))
    if value_is(obs, "breathing_effort", "increased"):
        found.append(Finding("respiratory-distress", B, _ev(obs, "breathing_effort")))
    elif value_is(obs, "breathing_effort", "severe"):
        found.append(Finding("severe-respiratory-distress", B, _ev(obs, "breathing_effort")))

    if not neonate and value_below(obs, "spo2", SPO2_HYPOXEMIA):
        found.append(Finding("hypoxemia", B, (f"spo2={_fmt(obs['spo2'])} (< {SPO2_HYPOXEMIA:g})",)))

    sounds = obs.get("breath_sounds")
    if sounds == "wheeze":
        found.append(Finding("wheeze", B, _ev(obs, "breath_sounds")))
        if selected(obs, "medical_history", "asthma"):
            found.append(Finding("asthma-exacerbation", B, _ev(obs, "breath_sounds", "medical_history")))
    elif sounds == "crackles":
        found.append(Finding("crackles", B, _ev(obs, "breath_sounds")))
    elif sounds == "absent":
        found.append(Finding("absent-breath-sounds", B, _ev(obs, "breath_sounds")))
    elif sounds == "reduced_unilateral":
        found.append(Finding("unilateral-reduced-air-entry", B, _ev(obs, "breath_sounds")))

    if value_is(obs, "trachea", "deviated") and sounds in ("reduced_unilateral", "absent"):
        found.append(Finding("tension-pneumothorax", B, _ev(obs, "trachea", "breath_sounds")))
    for option, code in (
        ("sucking_wound", "open-pneumothorax"),
        ("flail_segment", "flail-chest"),
        ("massive_hemothorax", "massive-hemothorax"),
    ):
        if selected(obs, "chest_findings", option):
            found.append(Finding(code, B, (f"chest_findings includes {option}",)))
    return found


def _circulation_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    found: List[Finding] = []

    crt = _number(obs, "capillary_refill_s")
    if crt is not None and crt > CRT_POOR_PERFUSION_S:
        found.append(Finding(
            "poor-perfusion", C,
            (f"capillary_refill_s={_fmt(crt)} (> {CRT_POOR_PERFUSION_S:g} s)",),
            (("capillary_refill_s", crt),),
        ))

    pulse = obs.get("pulse")
    if pulse == "weak":
        found.append(Finding("weak-pulse", C, _ev(obs, "pulse")))
    elif pulse == "absent":
        found.append(Finding("pulseless", C, _ev(obs, "pulse")))

    if shows_cardiac_arrest(obs):
        found.append(Finding(
            "cardiac-arrest", C,
            _ev(obs, "pulse", "consciousness", "breathing", "breathing_pattern", "breathing_effort"),
        ))

    if value_is(obs, "skin_temperature", "cold_extremities"):
        found.append(Finding("cold-shock", C, _ev(obs, "skin_temperature", "capillary_refill_s")))
    if value_is(obs, "skin_temperature", "warm_flushed") or (
        pulse == "bounding" and crt is not None and crt > CRT_POOR_PERFUSION_S
    ):
        found.append(Finding("warm-shock", C, _ev(obs, "skin_temperature", "pulse")))

    heart_rate = _number(obs, "heart_rate")
    if (heart_rate is not None and heart_rate > HR_SVT) or value_is(obs, "rhythm", "narrow_complex_tachycardia"):
        found.append(Finding("svt-suspected", C, _ev(obs, "heart_rate", "rhythm")))
    if value_is(obs, "rhythm", "wide_complex_tachycardia"):
        found.append(Finding("wide-complex-tachycardia", C, _ev(obs, "rhythm")))
    elif value_is(obs, "rhythm", "irregular"):
        found.append(Finding("irregular-rhythm", C, _ev(obs, "rhythm")))

    failure_signs = [s for s in obs.get("heart_failure_signs", ()) if s != "none"]
    if value_is(obs, "jvp", "elevated") or failure_signs:
        found.append(Finding("heart-failure-signs", C, _ev(obs, "jvp", "heart_failure_signs")))

    if value_is(obs, "external_bleeding", "uncontrolled"):
        found.append(Finding("uncontrolled-hemorrhage", C, _ev(obs, "external_bleeding")))
    if value_is(obs, "pelvis", "unstable"):
        found.append(Finding("pelvic-instability", C, _ev(obs, "pelvis")))
    if selected(obs, "abdominal_findings", "distended") or selected(obs, "abdominal_findings", "rigid"):
        found.append(Finding("abdominal-distension", C, _ev(obs, "abdominal_findings")))

    label = obs.get("hemorrhage_class")
    if isinstance(label, str):
        found.append(Finding(
            f"hemorrhage-class-{label.lower()}", C, _ev(obs, "hemorrhage_class"), (("class", label),),
        ))
        if label in ("III", "IV"):
            found.append(Finding("hemorrhagic-shock", C, _ev(obs, "hemorrhage_class")))
    hours = _number(obs, "hours_since_injury")
    if hours is not None and hours > TXA_WINDOW_H:
        found.append(Finding("txa-window-missed", C, (f"hours_since_injury={_fmt(hours)} (> {TXA_WINDOW_H:g} h)",)))
    return found


def _disability_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    found: List[Finding] = []

    consciousness = obs.get("consciousness")
    if consciousness == "voice":
        found.append(Finding("reduced-consciousness", D, _ev(obs, "consciousness")))
    elif consciousness in ("pain", "unresponsive"):
        found.append(Finding("altered-consciousness", D, _ev(obs, "consciousness")))

    pupil_codes = {
        "unequal": "anisocoria",
        "fixed_dilated": "fixed-dilated-pupils",
        "pinpoint": "pinpoint-pupils",
    }
    pupils = obs.get("pupils")
    if pupils in pupil_codes:
        found.append(Finding(pupil_codes[pupils], D, _ev(obs, "pupils")))

    seizure = obs.get("seizure")
    if seizure == "active":
        found.append(Finding("active-seizure", D, _ev(obs, "seizure")))
    elif seizure == "post_ictal":
        found.append(Finding("post-ictal", D, _ev(obs, "seizure")))

    if all(isinstance(obs.get(n), int) for n in ("gcs_eye", "gcs_verbal", "gcs_motor")):
        gcs = glasgow_coma_scale(obs["gcs_eye"], obs["gcs_verbal"], obs["gcs_motor"])
        evidence = (f"GCS {gcs.total} (E{gcs.eye} V{gcs.verbal} M{gcs.motor})",)
        data = (("total", gcs.total),)
        if gcs.severity == GcsSeverity.SEVERE:
            found.append(Finding("gcs-severe", D, evidence, data))
        elif gcs.severity == GcsSeverity.MODERATE:
            found.append(Finding("gcs-moderate", D, evidence, data))

    glucose = _number(obs, "glucose_mmol")
    if glucose is not None and selected(obs, "medical_history", "diabetes") and glucose > 14.0:
        found.append(Finding("dka-suspected", D, _ev(obs, "glucose_mmol", "medical_history")))

    toxin = obs.get("toxin_exposure")
    if toxin not in (None, "none"):
        found.append(Finding("toxin-exposure", D, _ev(obs, "toxin_exposure")))
    if toxin == "opioid" or (pupils == "pinpoint" and value_below(obs, "respiratory_rate", 12)):
        found.append(Finding("opioid-toxidrome", D, _ev(obs, "toxin_exposure", "pupils", "respiratory_rate")))
    return found


def _exposure_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    found: List[Finding] = []

    temperature = _number(obs, "temperature_c")
    if temperature is not None and temperature < TEMP_SEVERE_HYPOTHERMIA:
        found.append(Finding("severe-hypothermia", E, _ev(obs, "temperature_c")))
    if temperature is not None and temperature > TEMP_HYPERPYREXIA:
        found.append(Finding("hyperpyrexia", E, _ev(obs, "temperature_c")))

    rash = obs.get("rash")
    if rash == "petechial_purpuric":
        found.append(Finding("petechial-rash", E, _ev(obs, "rash")))
    elif rash == "urticarial":
        found.append(Finding("urticarial-rash", E, _ev(obs, "rash")))
        systemic = (
            selected(obs, "airway_signs", "stridor")
            or value_is(obs, "breath_sounds", "wheeze")
            or value_below(obs, "spo2", SPO2_HYPOXEMIA)
            or selected(obs, "medical_history", "allergy")
        )
        if systemic:
            found.append(Finding("anaphylaxis", A, _ev(obs, "rash", "airway_signs", "breath_sounds", "medical_history")))

    tbsa = _number(obs, "tbsa_percent")
    if tbsa is not None and value_is(obs, "mechanism", "burn") and needs_burn_resuscitation(tbsa, patient.age_years):
        hours = _number(obs, "hours_since_burn") or 0.0
        found.append(Finding(
            "burn-resuscitation-needed", E, _ev(obs, "tbsa_percent", "hours_since_burn"),
            (("hours_since_burn", hours), ("tbsa_percent", tbsa)),
        ))

    if selected(obs, "exposure_findings", "non_accidental_concern"):
        found.append(Finding("non-accidental-injury", E, _ev(obs, "exposure_findings")))
    if obs.get("trauma_flag") is True:
        found.append(Finding("trauma-history", G, _ev(obs, "trauma_flag")))
    return found


def _neonatal_findings(obs: Flat, patient: PatientContext) -> List[Finding]:
    if patient.patient_type != PatientType.NEONATE:
        return []
    found: List[Finding] = []
    vigour = [obs.get(n) for n in ("term_gestation", "good_tone", "breathing_or_crying")]
    if any(v is False for v in vigour):
        found.append(Finding("neonate-not-vigorous", A, _ev(obs, "term_gestation", "good_tone", "breathing_or_crying")))
    elif all(v is True for v in vigour):
        found.append(Finding("vigorous-newborn", E, _ev(obs, "term_gestation", "good_tone", "breathing_or_crying")))

    if obs.get("apnea_or_gasping") is True or value_below(obs, "heart_rate", NEONATAL_HR_PPV):
        found.append(Finding("ppv-indicated", B, _ev(obs, "apnea_or_gasping", "heart_rate")))
    if obs.get("labored_breathing_or_cyanosis") is True:
        found.append(Finding("labored-breathing", B, _ev(obs, "labored_breathing_or_cyanosis")))

    after_ppv = _number(obs, "heart_rate_after_ppv")
    if after_ppv is not None:
        if after_ppv < NEONATAL_HR_COMPRESSIONS:
            found.append(Finding("compressions-indicated", C, _ev(obs, "heart_rate_after_ppv")))
        elif after_ppv < NEONATAL_HR_PPV:
            found.append(Finding("ventilation-corrective-steps", A, _ev(obs, "heart_rate_after_ppv")))
        else:
            found.append(Finding("heart-rate-recovered", E, _ev(obs, "heart_rate_after_ppv")))

    if value_below(obs, "heart_rate_after_ppv", NEONATAL_HR_COMPRESSIONS) and \
            value_below(obs, "heart_rate_after_compressions", NEONATAL_HR_COMPRESSIONS):
        route = obs.get("epinephrine_route")
        found.append(Finding(
            "epinephrine-indicated", C,
            _ev(obs, "heart_rate_after_compressions", "epinephrine_route"),
            (("route", route),) if route else (),
        ))
    if value_below(obs, "heart_rate_after_epinephrine", NEONATAL_HR_COMPRESSIONS):
        found.append(Finding("persistent-bradycardia", C, _ev(obs, "heart_rate_after_epinephrine")))
    return found


_CATEGORICAL_EVALUATORS: Tuple[Callable[[Flat, PatientContext], List[Finding]], ...] = (
    _airway_findings,
    _breathing_findings,
    _circulation_findings,
    _disability_findings,
    _exposure_findings,
    _neonatal_findings,
)


# ── Public API ────────────────────────────────────────────────────────────────

def evaluate_values(
    values: Flat,
    patient: PatientContext,
    ranges: Optional[ReferenceRanges],
) -> frozenset:
    """Evaluate a flat {field: value} mapping."""
    found: List[Finding] = []
    if ranges is None:
        found.append(Finding(
            NO_REFERENCE_AVAILABLE, G,
            (f"no reference band for age {patient.age_months:g} months; use clinical judgment",),
        ))
    else:
        found.extend(_threshold_findings(values, patient, ranges))

    for evaluator in _CATEGORICAL_EVALUATORS:
        found.extend(evaluator(values, patient))

    result = frozenset(found)
    logger.debug(f"FindingEvaluator: {len(result)} finding(s): " + ", ".join(sorted(f.code for f in result)))
    return result


def evaluate(
    observations: Observations,
    patient: PatientContext,
    ranges: Optional[ReferenceRanges],
) -> frozenset:
    """
    Evaluate per-step observations ({step_id: {field: value}}).

    Returns:
        frozenset of Finding. Compare results with ``==``; order is not meaningful.
    """
    return evaluate_values(flatten(observations), patient, ranges)
