"""
Airway Intervention Rules

Findings consumed:
    airway-obstruction, airway-foreign-body, airway-at-risk, stridor,
    airway-secretions, severe-facial-trauma, expanding-neck-hematoma,
    c-spine-risk, inhalation-injury, altered-consciousness, gcs-severe,
    anaphylaxis, neonate-not-vigorous, ventilation-corrective-steps

Rule ordering:
    1. Obstructed airway          — open and clear it
    2. C-spine protection         — in-line stabilisation before any manoeuvre
    3. Anaphylaxis                — IM epinephrine
    4. Airway protection          — P/U on AVPU or GCS <= 8
    5. Definitive airway threats  — neck hematoma, facial trauma, inhalation injury
    6. Airway at risk             — position, suction, watch
    7. Neonatal initial steps
    8. Neonatal ventilation corrective steps (MR SOPA)
"""
from __future__ import annotations

from typing import Optional

from resusgps.core.parameters.equipment import equipment_sizes
from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.utils import get_logger
from .actions import dose_action, step
from .base import AbcdeSystem, FindingSet, Intervention, Severity

logger = get_logger(__name__)

SYSTEM = AbcdeSystem.AIRWAY


def _ett_text(patient: PatientContext) -> str:
    sizes = equipment_sizes(patient)
    return (
        f"ETT {sizes.ett_uncuffed_mm:g} mm uncuffed / {sizes.ett_cuffed_mm:g} mm cuffed, "
        f"depth {sizes.ett_depth_cm:g} cm at lip"
    )


def _suction_text(patient: PatientContext) -> str:
    return f"Suction with {equipment_sizes(patient).suction_catheter_fr:g} Fr catheter"


# ── Rule 1: Obstructed airway ─────────────────────────────────────────────────

def rule_airway_obstruction(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """Complete or foreign-body obstruction. Nothing else matters until air moves."""
    evidence = findings.present("airway-obstruction", "airway-foreign-body")
    if not evidence:
        return None

    actions = [
        step("Jaw thrust" if "c-spine-risk" in findings else "Head tilt-chin lift (neutral position in infants)"),
        step(_suction_text(patient)),
    ]
    if "airway-foreign-body" in findings:
        if patient.age_months < 12:
            actions.append(step("Foreign body: 5 back blows then 5 chest thrusts, repeat", "Air entry restored"))
        else:
            actions.append(step("Foreign body: 5 back blows then 5 abdominal thrusts, repeat", "Air entry restored"))
    actions += [
        step("Insert oropharyngeal airway if unconscious"),
        step(f"Prepare for intubation: {_ett_text(patient)}", "Chest rise and end-tidal CO2"),
    ]
    return Intervention(
        intervention_id="airway-obstruction-relief",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Relieve airway obstruction",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="Call anaesthesia/ENT; surgical airway if cannot intubate, cannot oxygenate",
    )


# ── Rule 2: C-spine ──────────────────────────────────────────────────────────

def rule_c_spine_protection(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "c-spine-risk" not in findings:
        return None
    return Intervention(
        intervention_id="c-spine-protection",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Protect the cervical spine",
        evidence=("c-spine-risk",),
        actions=(
            step("Manual in-line stabilisation"),
            step("Jaw thrust only; no head tilt"),
            step("Apply rigid collar when available; log roll for all moves"),
        ),
        escalation_path="Imaging before clearance",
    )


# ── Rule 3: Anaphylaxis ──────────────────────────────────────────────────────

def rule_anaphylaxis(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """Urticaria with airway, breathing or circulation involvement."""
    if "anaphylaxis" not in findings:
        return None
    actions = [
        dose_action("epinephrine_im", patient, "Epinephrine IM",
                    reassessment_criteria="Stridor, wheeze and perfusion after 5 min"),
        step("High-flow oxygen; lie flat with legs raised (sit up if breathing is harder)"),
    ]
    if findings.has("hypotension", "poor-perfusion"):
        actions.append(dose_action("fluid_bolus", patient, "Fluid bolus for hypotension"))
    actions.append(dose_action("hydrocortisone", patient, "Hydrocortisone after epinephrine"))
    return Intervention(
        intervention_id="anaphylaxis-epinephrine",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Anaphylaxis: IM epinephrine",
        evidence=("anaphylaxis",),
        actions=tuple(actions),
        escalation_path="Two IM doses without response: epinephrine infusion and critical care",
    )


# ── Rule 4: Airway protection for reduced consciousness ──────────────────────

def rule_airway_protection(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("altered-consciousness", "gcs-severe")
    if not evidence or "cardiac-arrest" in findings:
        return None
    return Intervention(
        intervention_id="airway-protection",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Protect the airway (responds only to pain or unresponsive / GCS <= 8)",
        evidence=tuple(evidence),
        actions=(
            step("Recovery position if no C-spine concern" if "c-spine-risk" not in findings
                 else "Keep supine with in-line stabilisation"),
            step("Oropharyngeal airway if no gag reflex"),
            step(_suction_text(patient)),
            step(f"Prepare for intubation: {_ett_text(patient)}", "Airway reflexes and GCS"),
        ),
        escalation_path="Rapid sequence intubation by most experienced operator",
    )


# ── Rule 5: Threats needing a definitive airway ──────────────────────────────

def rule_definitive_airway(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("expanding-neck-hematoma", "severe-facial-trauma", "inhalation-injury")
    if not evidence:
        return None
    return Intervention(
        intervention_id="early-definitive-airway",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Early definitive airway before swelling progresses",
        evidence=tuple(evidence),
        actions=(
            step("100% oxygen"),
            step(f"Early intubation by experienced operator: {_ett_text(patient)}"),
            step("Prepare surgical airway kit"),
        ),
        escalation_path="Difficult airway team",
    )


# ── Rule 6: Airway at risk ───────────────────────────────────────────────────

def rule_airway_at_risk(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("airway-at-risk", "stridor", "airway-secretions")
    if not evidence or "airway-obstruction" in findings:
        return None
    actions = [step("Position of comfort; keep child calm with carer")]
    if "airway-secretions" in findings:
        actions.append(step(_suction_text(patient)))
    if "stridor" in findings:
        actions.append(step("Do not examine the throat; nebulised epinephrine if severe stridor"))
    return Intervention(
        intervention_id="airway-support",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Support an airway at risk",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="Worsening stridor or fatigue: senior airway help",
    )


# ── Rule 7: Neonatal initial steps ───────────────────────────────────────────

def rule_neonatal_initial_steps(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "neonate-not-vigorous" not in findings or patient.patient_type != PatientType.NEONATE:
        return None
    return Intervention(
        intervention_id="neonatal-initial-steps",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Initial steps: warm, dry, stimulate, position airway",
        evidence=("neonate-not-vigorous",),
        actions=(
            step("Radiant warmer; dry and remove wet linen"),
            step("Position head in sniffing position"),
            step("Suction mouth then nose only if secretions obstruct"),
            step("Stimulate by rubbing back", "Breathing and heart rate within 30 s"),
        ),
    )


# ── Rule 8: MR SOPA ──────────────────────────────────────────────────────────

def rule_ventilation_corrective_steps(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "ventilation-corrective-steps" not in findings:
        return None
    size, depth = equipment_sizes(patient).ett_uncuffed_mm, equipment_sizes(patient).ett_depth_cm
    return Intervention(
        intervention_id="ventilation-corrective-steps",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Ventilation corrective steps (MR SOPA)",
        evidence=("ventilation-corrective-steps",),
        actions=(
            step("Mask adjustment and reposition head"),
            step("Suction mouth and nose; open mouth"),
            step("Increase pressure in 5-10 cmH2O steps"),
            step(f"Alternative airway: ETT {size:g} mm at {depth:g} cm or laryngeal mask",
                 "Chest rise, then heart rate after 30 s"),
        ),
    )


RULES = (
    rule_airway_obstruction,
    rule_c_spine_protection,
    rule_anaphylaxis,
    rule_airway_protection,
    rule_definitive_airway,
    rule_airway_at_risk,
    rule_neonatal_initial_steps,
    rule_ventilation_corrective_steps,
)
