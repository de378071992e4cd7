"""
Disability Intervention Rules

Findings consumed:
    glucose-low, glucose-high, dka-suspected, active-seizure, post-ictal,
    reduced-consciousness, altered-consciousness, gcs-severe,
    gcs-moderate, anisocoria, fixed-dilated-pupils, pinpoint-pupils,
    opioid-toxidrome, toxin-exposure

Rule ordering:
    1. Hypoglycemia          — dextrose (neonatal volume for newborns)
    2. Status epilepticus    — benzodiazepine, then phenobarbital
    3. Raised ICP            — hyperosmolar therapy, neuroprotection
    4. Opioid toxidrome      — naloxone
    5. DKA / hyperglycemia   — cautious fluids, insulin after the first hour
    6. Reduced consciousness — look for the cause
    7. Post-ictal            — recovery position, observe
    8. Toxin exposure        — poisons advice
"""
from __future__ import annotations

from typing import Optional

from resusgps.core.parameters.dosing import compute_dose
from resusgps.core.patient.context import PatientContext, PatientType
from .actions import dose_action, step
from .base import AbcdeSystem, FindingSet, Intervention, Severity

SYSTEM = AbcdeSystem.DISABILITY

ICP_SIGNS = ("fixed-dilated-pupils", "anisocoria")


# ── Rule 1: Hypoglycemia ─────────────────────────────────────────────────────

def rule_hypoglycemia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "glucose-low" not in findings:
        return None
    drug_id = "dextrose_neonatal" if patient.patient_type == PatientType.NEONATE else "dextrose_10"
    return Intervention(
        intervention_id="hypoglycemia-correction",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Correct hypoglycemia",
        evidence=("glucose-low",),
        actions=(
            dose_action(drug_id, patient, "Dextrose 10% IV",
                        reassessment_criteria="Recheck glucose in 15 min"),
            step("Oral glucose if awake and able to swallow"),
        ),
        escalation_path="Persistent hypoglycemia: dextrose infusion and look for the cause",
    )


# ── Rule 2: Status epilepticus ───────────────────────────────────────────────

def rule_status_epilepticus(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """
    Convulsive seizure in progress.

    First line is a benzodiazepine by whatever route is available; a second
    dose after 5-10 min; phenobarbital (or an equivalent second-line drug)
    if the seizure continues.
    """
    if "active-seizure" not in findings:
        return None
    return Intervention(
        intervention_id="seizure-termination",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Stop the seizure",
        evidence=("active-seizure",),
        actions=(
            step("Protect from injury; high-flow oxygen; check glucose"),
            dose_action("lorazepam", patient, "IV access: lorazepam",
                        reassessment_criteria="Seizure activity after 5 min"),
            dose_action("midazolam", patient, "No IV access: buccal/IN midazolam"),
            dose_action("phenobarbital", patient, "Still seizing after two benzodiazepine doses: phenobarbital"),
        ),
        escalation_path="Refractory status: anaesthesia and critical care for RSI",
    )


# ── Rule 3: Raised intracranial pressure ─────────────────────────────────────

def rule_raised_icp(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    signs = findings.present(*ICP_SIGNS)
    coma = findings.present("gcs-severe", "altered-consciousness")
    if not signs or not coma:
        return None
    return Intervention(
        intervention_id="raised-icp",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Signs of raised intracranial pressure",
        evidence=tuple(signs + coma),
        actions=(
            step("Head up 30 degrees, midline; avoid hypoxia, hypotension and hypercapnia"),
            dose_action("hypertonic_saline", patient, "Hypertonic saline 3%"),
            dose_action("mannitol", patient, "Or mannitol", reassessment_criteria="Pupils and GCS"),
        ),
        escalation_path="Neurosurgical review and CT",
    )


# ── Rule 4: Opioid toxidrome ─────────────────────────────────────────────────

def rule_opioid_reversal(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "opioid-toxidrome" not in findings:
        return None
    return Intervention(
        intervention_id="opioid-reversal",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Opioid toxidrome: naloxone",
        evidence=tuple(findings.present("opioid-toxidrome", "pinpoint-pupils", "respiratory-rate-low")),
        actions=(
            step("Ventilate with bag-valve-mask before naloxone"),
            dose_action("naloxone", patient, "Naloxone",
                        titration="Titrate to respiratory rate, not to full alertness"),
        ),
        escalation_path="Naloxone infusion for long-acting opioids",
    )


# ── Rule 5: DKA / hyperglycemia ──────────────────────────────────────────────

def rule_hyperglycemia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("dka-suspected", "glucose-high")
    if not evidence:
        return None
    if "dka-suspected" not in findings:
        return Intervention(
            intervention_id="hyperglycemia",
            severity=Severity.INFO,
            system=SYSTEM,
            title="Hyperglycemia: check ketones",
            evidence=tuple(evidence),
            actions=(step("Blood ketones and venous gas"),),
        )
    insulin = compute_dose("insulin_infusion", patient.weight_kg)
    return Intervention(
        intervention_id="dka-management",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Suspected DKA",
        evidence=tuple(evidence),
        actions=(
            step("Venous gas, ketones, electrolytes"),
            dose_action("fluid_bolus_cautious", patient, "Cautious fluid bolus only if shocked"),
            dose_action("insulin_infusion", patient, f"Insulin infusion {insulin.display}/h",
                        reassessment_criteria="Hourly glucose; no bolus insulin"),
        ),
        escalation_path="Critical care if pH < 7.1 or reduced consciousness",
    )


# ── Rule 6: Reduced consciousness ────────────────────────────────────────────

def rule_reduced_consciousness(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("reduced-consciousness", "altered-consciousness", "gcs-severe", "gcs-moderate")
    if not evidence or "cardiac-arrest" in findings:
        return None
    severe = findings.has("altered-consciousness", "gcs-severe")
    return Intervention(
        intervention_id="reduced-consciousness",
        severity=Severity.WARNING if severe else Severity.INFO,
        system=SYSTEM,
        title="Reduced level of consciousness: find the cause",
        evidence=tuple(evidence),
        actions=(
            step("Check glucose, pupils, temperature"),
            step("Consider hypoxia, shock, seizure, infection, toxins, head injury"),
            step("Repeat AVPU/GCS every 15 min"),
        ),
    )


# ── Rule 7: Post-ictal ───────────────────────────────────────────────────────

def rule_post_ictal(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "post-ictal" not in findings or "active-seizure" in findings:
        return None
    return Intervention(
        intervention_id="post-ictal-care",
        severity=Severity.INFO,
        system=SYSTEM,
        title="Post-ictal: observe",
        evidence=("post-ictal",),
        actions=(step("Recovery position; monitor airway and SpO2"), step("Check glucose")),
    )


# ── Rule 8: Toxin exposure ───────────────────────────────────────────────────

def rule_toxin_exposure(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "toxin-exposure" not in findings or "opioid-toxidrome" in findings:
        return None
    return Intervention(
        intervention_id="toxin-exposure",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Toxin exposure",
        evidence=("toxin-exposure",),
        actions=(
            step("Contact poisons information; identify agent, dose, time"),
            step("Decontaminate if organophosphate; atropine for cholinergic signs"),
        ),
    )


RULES = (
    rule_hypoglycemia,
    rule_status_epilepticus,
    rule_raised_icp,
    rule_opioid_reversal,
    rule_hyperglycemia,
    rule_reduced_consciousness,
    rule_post_ictal,
    rule_toxin_exposure,
)
