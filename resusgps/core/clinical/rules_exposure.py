"""
Exposure and General Intervention Rules

Findings consumed:
    petechial-rash, urticarial-rash, severe-hypothermia, temperature-low,
    hyperpyrexia, temperature-high, burn-resuscitation-needed,
    non-accidental-injury, vigorous-newborn, heart-rate-recovered,
    trauma-history, no-reference-available

Rule ordering:
    1. Purpura               — antibiotics now
    2. Burns                 — Parkland fluids
    3. Hypothermia           — active rewarming
    4. Fever
    5. Urticaria             — antihistamine, watch for anaphylaxis
    6. Non-accidental injury — safeguarding
    7. Newborn routine / post-resuscitation care
    8. Manual judgement flag when no reference band applies
    9. Trauma history
"""
from __future__ import annotations

from typing import Optional

from resusgps.core.parameters.trauma import parkland_formula
from resusgps.core.patient.context import PatientContext
from .actions import dose_action, step
from .base import AbcdeSystem, FindingSet, Intervention, InterventionAction, Severity
from .findings import NO_REFERENCE_AVAILABLE

SYSTEM = AbcdeSystem.EXPOSURE


# ── Rule 1: Purpura ──────────────────────────────────────────────────────────

def rule_purpura(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """Non-blanching rash in an unwell patient: treat as meningococcal sepsis."""
    if "petechial-rash" not in findings:
        return None
    return Intervention(
        intervention_id="meningococcal-sepsis",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Petechial / purpuric rash: antibiotics now",
        evidence=("petechial-rash",),
        actions=(
            step("Blood culture if it does not delay antibiotics"),
            dose_action("ceftriaxone", patient, "Ceftriaxone"),
        ),
        escalation_path="Critical care; treat shock aggressively",
    )


# ── Rule 2: Burns ────────────────────────────────────────────────────────────

def rule_burn_resuscitation(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    finding = findings.get("burn-resuscitation-needed")
    if finding is None:
        return None
    tbsa = finding.datum("tbsa_percent")
    hours = finding.datum("hours_since_burn", 0.0)
    fluids = parkland_formula(patient.weight_kg, tbsa, hours)
    if fluids.first_period_hours_remaining > 0:
        first = (f"{fluids.first_period_rate_ml_h:g} mL/h for the next "
                 f"{fluids.first_period_hours_remaining:g} h")
    else:
        first = "first 8 h elapsed; give any deficit then continue second-period rate"
    return Intervention(
        intervention_id="burn-fluid-resuscitation",
        severity=Severity.WARNING,
        system=SYSTEM,
        title=f"Burn {tbsa:g}% TBSA: Parkland fluid resuscitation",
        evidence=("burn-resuscitation-needed",),
        actions=(
            InterventionAction(
                action="Ringer's lactate (Parkland 4 mL/kg/%TBSA)",
                dose_expression=f"{fluids.total_24h_ml:g} mL over 24 h from time of burn",
                route="IV",
            ),
            InterventionAction(action="First half", dose_expression=first, route="IV infusion"),
            InterventionAction(
                action="Second half",
                dose_expression=f"{fluids.second_period_rate_ml_h:g} mL/h over 16 h",
                route="IV infusion",
                titration="Titrate to urine output 1 mL/kg/h (0.5 mL/kg/h in adults)",
            ),
            step("Cool the burn with running water for 20 min; cover with cling film; keep patient warm"),
            dose_action("morphine", patient, "Analgesia: morphine"),
        ),
        escalation_path="Burns centre referral",
    )


# ── Rule 3: Hypothermia ──────────────────────────────────────────────────────

def rule_hypothermia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("severe-hypothermia", "temperature-low")
    if not evidence:
        return None
    severe = "severe-hypothermia" in findings
    return Intervention(
        intervention_id="rewarming",
        severity=Severity.WARNING if severe else Severity.INFO,
        system=SYSTEM,
        title="Hypothermia: rewarm",
        evidence=tuple(evidence),
        actions=(
            step("Remove wet clothing; forced-air warming blanket"),
            step("Warmed IV fluids" if severe else "Warm environment", "Core temperature every 15 min"),
        ),
    )


# ── Rule 4: Fever ────────────────────────────────────────────────────────────

def rule_fever(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("hyperpyrexia", "temperature-high")
    if not evidence:
        return None
    return Intervention(
        intervention_id="fever-management",
        severity=Severity.WARNING if "hyperpyrexia" in findings else Severity.INFO,
        system=SYSTEM,
        title="Fever",
        evidence=tuple(evidence),
        actions=(
            dose_action("paracetamol", patient, "Paracetamol"),
            step("Look for a source; sepsis screen if unwell"),
        ),
    )


# ── Rule 5: Urticaria ────────────────────────────────────────────────────────

def rule_urticaria(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "urticarial-rash" not in findings or "anaphylaxis" in findings:
        return None
    return Intervention(
        intervention_id="allergic-reaction",
        severity=Severity.INFO,
        system=SYSTEM,
        title="Urticaria without systemic features",
        evidence=("urticarial-rash",),
        actions=(
            step("Oral antihistamine; remove trigger"),
            step("Observe for stridor, wheeze or hypotension"),
        ),
        escalation_path="Any airway, breathing or circulation involvement: treat as anaphylaxis",
    )


# ── Rule 6: Non-accidental injury ────────────────────────────────────────────

def rule_non_accidental_injury(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "non-accidental-injury" not in findings:
        return None
    return Intervention(
        intervention_id="safeguarding",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Concern for non-accidental injury",
        evidence=("non-accidental-injury",),
        actions=(
            step("Document injuries and history verbatim"),
            step("Inform senior clinician and safeguarding team"),
        ),
    )


# ── Rule 7: Newborn care ─────────────────────────────────────────────────────

def rule_newborn_care(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("vigorous-newborn", "heart-rate-recovered")
    if not evidence:
        return None
    if "vigorous-newborn" in findings:
        return Intervention(
            intervention_id="routine-newborn-care",
            severity=Severity.INFO,
            system=SYSTEM,
            title="Vigorous newborn: routine care with mother",
            evidence=("vigorous-newborn",),
            actions=(step("Skin to skin, dry, keep warm"), step("Ongoing evaluation of breathing, activity, colour")),
        )
    return Intervention(
        intervention_id="post-resuscitation-care",
        severity=Severity.INFO,
        system=SYSTEM,
        title="Heart rate recovered: post-resuscitation care",
        evidence=tuple(evidence),
        actions=(
            step("Normothermia 36.5-37.5 C"),
            step("Check glucose"),
            step("Cardiorespiratory monitoring; update family"),
        ),
    )


# ── Rule 8: No reference band ────────────────────────────────────────────────

def rule_manual_judgement(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if NO_REFERENCE_AVAILABLE not in findings:
        return None
    return Intervention(
        intervention_id="manual-clinical-judgement",
        severity=Severity.WARNING,
        system=AbcdeSystem.GENERAL,
        title="No reference range for this patient: vital-sign thresholds not applied",
        evidence=(NO_REFERENCE_AVAILABLE,),
        actions=(step("Interpret vital signs with clinical judgement"),),
    )


# ── Rule 9: Trauma history ───────────────────────────────────────────────────

def rule_trauma_history(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "trauma-history" not in findings:
        return None
    return Intervention(
        intervention_id="trauma-survey",
        severity=Severity.INFO,
        system=AbcdeSystem.GENERAL,
        title="Trauma history: complete a secondary survey",
        evidence=("trauma-history",),
        actions=(step("Head-to-toe examination; log roll"), step("Consider the trauma protocol")),
    )


RULES = (
    rule_purpura,
    rule_burn_resuscitation,
    rule_hypothermia,
    rule_fever,
    rule_urticaria,
    rule_non_accidental_injury,
    rule_newborn_care,
    rule_manual_judgement,
    rule_trauma_history,
)
