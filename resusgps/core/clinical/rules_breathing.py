"""
Breathing Intervention Rules

Findings consumed:
    apnea, hypoxemia, spo2-low, respiratory-distress,
    severe-respiratory-distress, respiratory-rate-low, wheeze,
    asthma-exacerbation, tension-pneumothorax, open-pneumothorax,
    flail-chest, massive-hemothorax, absent-breath-sounds,
    unilateral-reduced-air-entry, crackles, opioid-toxidrome,
    ppv-indicated, labored-breathing

Rule ordering:
    1. Apnea / inadequate breathing  — bag-valve-mask ventilation
    2. Tension pneumothorax          — needle decompression
    3. Chest wall injuries           — open pneumothorax, flail, hemothorax
    4. Hypoxemia                     — oxygen to target
    5. Bronchospasm                  — salbutamol, magnesium on escalation
    6. Respiratory distress          — support and monitor
    7. Neonatal PPV
    8. Neonatal CPAP / oxygen targets
"""
from __future__ import annotations

from typing import Optional

from resusgps.core.parameters.neonatal import neonatal_spo2_target
from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.utils import get_logger
from .actions import dose_action, step
from .base import AbcdeSystem, FindingSet, Intervention, Severity

logger = get_logger(__name__)

SYSTEM = AbcdeSystem.BREATHING

NEONATAL_PPV_RATE = "40-60 breaths/min"
NEONATAL_PPV_PRESSURE_CMH2O = "20-25"


def _ventilation_rate(patient: PatientContext) -> str:
    if patient.patient_type in (PatientType.ADULT, PatientType.PREGNANT):
        return "10 breaths/min"
    if patient.age_months < 12:
        return "25 breaths/min"
    if patient.age_years < 8:
        return "20 breaths/min"
    return "15 breaths/min"


# ── Rule 1: Apnea ────────────────────────────────────────────────────────────

def rule_apnea(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """
    Not breathing, or breathing too slowly to ventilate.

    Cardiac arrest is handled by the circulation CPR rule; this rule covers
    the patient with a pulse.
    """
    evidence = findings.present("apnea", "respiratory-rate-low")
    if not evidence or "cardiac-arrest" in findings or patient.patient_type == PatientType.NEONATE:
        return None
    if evidence == ["respiratory-rate-low"] and not findings.has("altered-consciousness", "opioid-toxidrome"):
        return None
    return Intervention(
        intervention_id="bag-mask-ventilation",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Ventilate with bag-valve-mask",
        evidence=tuple(evidence),
        actions=(
            step("Open airway, two-person bag-valve-mask with 100% oxygen"),
            step(f"Ventilate at {_ventilation_rate(patient)}", "Visible chest rise and SpO2"),
            step("Check pulse every 2 min; start CPR if pulse lost"),
        ),
        escalation_path="Intubation if ventilation cannot be maintained",
    )


# ── Rule 2: Tension pneumothorax ─────────────────────────────────────────────

def rule_tension_pneumothorax(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "tension-pneumothorax" not in findings:
        return None
    site = ("2nd intercostal space mid-clavicular line" if patient.patient_type.is_pediatric
            else "4th-5th intercostal space anterior to mid-axillary line")
    return Intervention(
        intervention_id="needle-decompression",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Tension pneumothorax: decompress now",
        evidence=("tension-pneumothorax",),
        actions=(
            step(f"Needle decompression, {site}", "Breath sounds, SpO2 and blood pressure"),
            step("Chest drain after decompression"),
        ),
        escalation_path="Finger thoracostomy if needle fails",
    )


# ── Rule 3: Chest wall injuries ──────────────────────────────────────────────

def rule_chest_injuries(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("open-pneumothorax", "flail-chest", "massive-hemothorax")
    if not evidence:
        return None
    actions = [step("High-flow oxygen")]
    if "open-pneumothorax" in findings:
        actions.append(step("Three-sided occlusive dressing over sucking wound"))
    if "flail-chest" in findings:
        actions.append(step("Analgesia and positive pressure support for flail segment"))
        actions.append(dose_action("fentanyl", patient, "Analgesia: fentanyl",
                                   reassessment_criteria="Respiratory rate and pain score"))
    if "massive-hemothorax" in findings:
        actions.append(step("Large-bore chest drain; prepare blood products"))
    return Intervention(
        intervention_id="chest-injury-management",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Manage life-threatening chest injury",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="Surgical review; thoracotomy if drain output massive",
    )


# ── Rule 4: Hypoxemia ────────────────────────────────────────────────────────

def rule_hypoxemia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("hypoxemia", "spo2-low")
    if not evidence or patient.patient_type == PatientType.NEONATE:
        return None
    severity = Severity.CRITICAL if "hypoxemia" in findings else Severity.WARNING
    target = "94-98%"
    return Intervention(
        intervention_id="oxygen-therapy",
        severity=severity,
        system=SYSTEM,
        title="Give oxygen",
        evidence=tuple(evidence),
        actions=(
            step("Non-rebreather mask 15 L/min", f"SpO2 {target}", titration=f"Titrate to SpO2 {target}"),
            step("Look for cause: airway, pneumothorax, consolidation, effusion"),
        ),
        escalation_path="High-flow nasal oxygen or CPAP if SpO2 stays below target",
    )


# ── Rule 5: Bronchospasm ─────────────────────────────────────────────────────

def rule_bronchospasm(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("wheeze", "asthma-exacerbation")
    if not evidence or "anaphylaxis" in findings:
        return None
    severe = findings.has("severe-respiratory-distress", "hypoxemia")
    actions = [
        dose_action("salbutamol", patient, "Salbutamol nebulised",
                    reassessment_criteria="Work of breathing and SpO2 after each nebuliser"),
        dose_action("hydrocortisone", patient, "Systemic steroid: hydrocortisone"),
    ]
    if severe:
        actions.append(dose_action("magnesium_sulfate", patient, "Magnesium sulfate for severe bronchospasm"))
    return Intervention(
        intervention_id="bronchospasm-treatment",
        severity=Severity.CRITICAL if severe else Severity.WARNING,
        system=SYSTEM,
        title="Treat bronchospasm",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="No response after three nebulisers: IV magnesium and critical care",
    )


# ── Rule 6: Respiratory distress ─────────────────────────────────────────────

def rule_respiratory_distress(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present(
        "severe-respiratory-distress", "respiratory-distress", "respiratory-rate-high",
        "crackles", "absent-breath-sounds", "unilateral-reduced-air-entry",
    )
    if not evidence or patient.patient_type == PatientType.NEONATE:
        return None
    severe = "severe-respiratory-distress" in findings
    actions = [step("Position of comfort; oxygen if SpO2 below target")]
    if findings.has("absent-breath-sounds", "unilateral-reduced-air-entry"):
        actions.append(step("Exclude pneumothorax and effusion; chest imaging"))
    if "crackles" in findings:
        actions.append(step("Consider pneumonia or pulmonary oedema"))
    return Intervention(
        intervention_id="respiratory-support",
        severity=Severity.CRITICAL if severe else Severity.WARNING,
        system=SYSTEM,
        title="Support breathing",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="Exhaustion or rising CO2: non-invasive ventilation or intubation",
    )


# ── Rule 7: Neonatal PPV ─────────────────────────────────────────────────────

def rule_neonatal_ppv(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "ppv-indicated" not in findings:
        return None
    return Intervention(
        intervention_id="neonatal-ppv",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Positive pressure ventilation",
        evidence=("ppv-indicated",),
        actions=(
            step(f"PPV at {NEONATAL_PPV_RATE}, PIP {NEONATAL_PPV_PRESSURE_CMH2O} cmH2O, PEEP 5 cmH2O",
                 "Heart rate after 15 s and again after 30 s"),
            step("Start in 21% oxygen (30% if < 35 weeks)"),
            step("Attach pre-ductal pulse oximeter to right hand"),
        ),
        escalation_path="Heart rate not rising: ventilation corrective steps",
    )


# ── Rule 8: Neonatal CPAP / oxygen ───────────────────────────────────────────

def rule_neonatal_cpap(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "labored-breathing" not in findings or "ppv-indicated" in findings:
        return None
    target = neonatal_spo2_target(1)
    return Intervention(
        intervention_id="neonatal-cpap",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Labored breathing or cyanosis: oximetry and CPAP",
        evidence=("labored-breathing",),
        actions=(
            step("Clear airway; pre-ductal SpO2 monitoring"),
            step("CPAP 5-6 cmH2O if labored", titration=(
                f"Oxygen to minute-specific target (1 min {target[0]:g}-{target[1]:g}%, "
                f"10 min {neonatal_spo2_target(10)[0]:g}-{neonatal_spo2_target(10)[1]:g}%)"
            )),
        ),
        escalation_path="Apnea or heart rate < 100: positive pressure ventilation",
    )


RULES = (
    rule_apnea,
    rule_tension_pneumothorax,
    rule_chest_injuries,
    rule_hypoxemia,
    rule_bronchospasm,
    rule_respiratory_distress,
    rule_neonatal_ppv,
    rule_neonatal_cpap,
)
