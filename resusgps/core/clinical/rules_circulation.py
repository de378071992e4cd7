"""
Circulation Intervention Rules

Findings consumed:
    cardiac-arrest, pulseless, poor-perfusion, weak-pulse, hypotension,
    systolic-bp-low, cold-shock, warm-shock, svt-suspected,
    wide-complex-tachycardia, irregular-rhythm, heart-rate-low,
    heart-rate-high, heart-failure-signs, uncontrolled-hemorrhage,
    pelvic-instability, abdominal-distension, hemorrhage-class-i..iv,
    hemorrhagic-shock, txa-window-missed, compressions-indicated,
    epinephrine-indicated, persistent-bradycardia

Rule ordering:
    1.  Cardiac arrest             — CPR, epinephrine, shock energies
    2.  Hemorrhage control         — direct pressure, tourniquet
    3.  Pelvic binder
    4.  Fluid bolus                — shock or poor perfusion
    5.  Fluid withheld             — shock with SVT or heart failure
    6.  Cold shock / warm shock    — vasoactive choice
    7.  Hemorrhage class guidance  — provider-selected class I-IV
    8.  Tranexamic acid            — within 3 h of injury
    9.  SVT                        — vagal, adenosine, cardioversion
    10. Wide complex / irregular rhythm
    11. Bradycardia
    12. Sinus tachycardia
    13. Heart failure
    14. Abdominal injury
    15. Neonatal compressions, epinephrine, persistent bradycardia

Rules 4 and 5 form the "volume-resuscitation" exclusive group and rule 6
forms "shock-pattern". The engine resolves both; the rules here fire on
their own findings without looking at each other.
"""
from __future__ import annotations

from typing import Optional, Tuple

from resusgps.core.parameters.dosing import compute_dose
from resusgps.core.parameters.equipment import cardioversion_energy, defibrillation_energy
from resusgps.core.parameters.trauma import hemorrhage_class, txa_dose
from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.utils import get_logger
from .actions import dose_action, step
from .base import AbcdeSystem, FindingSet, Intervention, InterventionAction, Severity

logger = get_logger(__name__)

SYSTEM = AbcdeSystem.CIRCULATION

SHOCK_FINDINGS = ("poor-perfusion", "hypotension", "hemorrhagic-shock", "cold-shock", "warm-shock")
FLUID_CAUTION_FINDINGS = ("svt-suspected", "heart-failure-signs")
HEMORRHAGE_CLASS_FINDINGS = (
    "hemorrhage-class-i", "hemorrhage-class-ii", "hemorrhage-class-iii", "hemorrhage-class-iv",
)


def _compression_text(patient: PatientContext) -> str:
    if patient.patient_type in (PatientType.ADULT, PatientType.PREGNANT):
        text = "Compressions 100-120/min, depth 5-6 cm, ratio 30:2"
        if patient.patient_type == PatientType.PREGNANT:
            text += "; manual left uterine displacement"
        return text
    if patient.age_months < 12:
        return "Compressions 100-120/min, one-third chest depth (about 4 cm), two-thumb technique, 15:2"
    return "Compressions 100-120/min, one-third chest depth (about 5 cm), 15:2"


# ── Rule 1: Cardiac arrest ───────────────────────────────────────────────────

def rule_cardiac_arrest(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """
    Pulseless and unresponsive or apneic.

    Shock energies come from the calculator: first shock 2 J/kg, then 4 J/kg.
    """
    if "cardiac-arrest" not in findings:
        return None
    first = defibrillation_energy(patient.weight_kg, 1)
    second = defibrillation_energy(patient.weight_kg, 2)
    return Intervention(
        intervention_id="cardiac-arrest-cpr",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Cardiac arrest: start CPR",
        evidence=tuple(findings.present("cardiac-arrest", "pulseless")),
        actions=(
            step(_compression_text(patient), "Rhythm and pulse check every 2 min"),
            step("Attach defibrillator; check rhythm"),
            InterventionAction(
                action="Shockable rhythm (VF/pVT): defibrillate",
                dose_expression=f"1st shock {first:g} J, then {second:g} J",
                reassessment_criteria="Resume CPR immediately for 2 min after each shock",
            ),
            dose_action("epinephrine_arrest", patient, "Epinephrine",
                        reassessment_criteria="Non-shockable: give immediately; shockable: after 2nd shock"),
            dose_action("amiodarone", patient, "Amiodarone after 3rd shock (shockable rhythm)"),
            step("Treat reversible causes: hypoxia, hypovolaemia, hypo/hyperkalaemia, hypothermia, "
                 "tension pneumothorax, tamponade, toxins, thrombosis"),
        ),
        escalation_path="Return of circulation: post-resuscitation care; consider ECPR where available",
    )


# ── Rule 2: Hemorrhage control ───────────────────────────────────────────────

def rule_hemorrhage_control(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "uncontrolled-hemorrhage" not in findings:
        return None
    return Intervention(
        intervention_id="hemorrhage-control",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Stop external bleeding",
        evidence=("uncontrolled-hemorrhage",),
        actions=(
            step("Direct firm pressure with haemostatic dressing"),
            step("Limb bleeding not controlled by pressure: tourniquet, note time applied"),
            step("Two large-bore IV/IO; crossmatch blood"),
        ),
        escalation_path="Surgical control; activate massive transfusion if ongoing loss",
    )


# ── Rule 3: Pelvic binder ────────────────────────────────────────────────────

def rule_pelvic_binder(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "pelvic-instability" not in findings:
        return None
    return Intervention(
        intervention_id="pelvic-binder",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Unstable pelvis: apply pelvic binder",
        evidence=("pelvic-instability",),
        actions=(
            step("Apply pelvic binder at the level of the greater trochanters"),
            step("Do not spring the pelvis again"),
        ),
        escalation_path="Interventional radiology or pelvic packing",
    )


# ── Rule 4: Fluid bolus ──────────────────────────────────────────────────────

def rule_fluid_bolus(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """
    Shock or poor perfusion: weight-based crystalloid bolus.

    Neonates get the 10 mL/kg neonatal volume; everyone else 20 mL/kg.
    """
    evidence = findings.present(*SHOCK_FINDINGS)
    if not evidence or "cardiac-arrest" in findings:
        return None
    drug_id = "saline_neonatal" if patient.patient_type == PatientType.NEONATE else "fluid_bolus"
    dose = compute_dose(drug_id, patient.weight_kg)
    logger.debug(f"fluid-bolus: {dose.display} for {patient.weight_kg:g} kg")
    return Intervention(
        intervention_id="fluid-bolus",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title=f"Fluid bolus {dose.display}",
        evidence=tuple(evidence),
        actions=(
            step("IV/IO access (IO after 90 s or two failed attempts)"),
            dose_action(drug_id, patient, f"Bolus {dose.name}",
                        reassessment_criteria="Capillary refill, heart rate, blood pressure, liver edge and crackles"),
        ),
        escalation_path="After 40-60 mL/kg without response: vasoactive support and critical care",
    )


# ── Rule 5: Fluid withheld ───────────────────────────────────────────────────

def rule_shock_fluid_withheld(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """Shock with SVT or heart failure: a full bolus may worsen the patient."""
    shock = findings.present(*SHOCK_FINDINGS)
    caution = findings.present(*FLUID_CAUTION_FINDINGS)
    if not shock or not caution or "cardiac-arrest" in findings:
        return None
    actions = [step("Withhold 20 mL/kg bolus")]
    if "heart-failure-signs" in findings:
        actions.append(dose_action("fluid_bolus_cautious", patient, "Cautious bolus only if clearly hypovolaemic",
                                   reassessment_criteria="Stop at first sign of overload (crackles, liver edge)"))
    if "svt-suspected" in findings:
        actions.append(step("Treat the rhythm first"))
    return Intervention(
        intervention_id="shock-fluid-withheld",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Shock with SVT or heart failure: withhold fluid bolus",
        evidence=tuple(shock + caution),
        actions=tuple(actions),
        escalation_path="Inotrope support in critical care",
    )


# ── Rule 6: Shock pattern ────────────────────────────────────────────────────

def rule_cold_shock(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "cold-shock" not in findings or "cardiac-arrest" in findings:
        return None
    return Intervention(
        intervention_id="cold-shock",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Cold shock: epinephrine infusion if fluid-refractory",
        evidence=("cold-shock",),
        actions=(
            step("Epinephrine infusion 0.05-0.3 mcg/kg/min after fluid boluses",
                 titration="Titrate to capillary refill and mental status"),
            step("Check glucose and calcium"),
        ),
        escalation_path="Critical care for central access",
    )


def rule_warm_shock(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "warm-shock" not in findings or "cardiac-arrest" in findings:
        return None
    return Intervention(
        intervention_id="warm-shock",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Warm shock: norepinephrine if fluid-refractory",
        evidence=("warm-shock",),
        actions=(
            step("Norepinephrine infusion 0.05-0.3 mcg/kg/min after fluid boluses",
                 titration="Titrate to diastolic pressure and perfusion"),
            dose_action("ceftriaxone", patient, "Antibiotics within the first hour if sepsis suspected"),
        ),
        escalation_path="Critical care for central access",
    )


# ── Rule 7: Hemorrhage class ─────────────────────────────────────────────────

def rule_hemorrhage_class(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    """Fluid and blood guidance for the class the provider selected."""
    code = next(iter(findings.present(*HEMORRHAGE_CLASS_FINDINGS)), None)
    if code is None:
        return None
    row = hemorrhage_class(findings.get(code).datum("class"))
    actions = [
        step(row.fluid_guidance, f"Expected picture: HR {row.heart_rate.lower()}, BP {row.blood_pressure.lower()}, "
                                 f"CRT {row.capillary_refill}, urine {row.urine_output}"),
    ]
    if row.blood_products:
        actions.append(step("Blood 10-20 mL/kg (O negative until crossmatched)", "Repeat per response"))
    return Intervention(
        intervention_id="hemorrhage-resuscitation",
        severity=Severity.CRITICAL if row.blood_products else Severity.WARNING,
        system=SYSTEM,
        title=f"Class {row.label} hemorrhage ({row.blood_loss} blood loss)",
        evidence=(code,),
        actions=tuple(actions),
        escalation_path="Massive transfusion protocol" if row.label == "IV" else "Reclassify after each bolus",
    )


# ── Rule 8: Tranexamic acid ──────────────────────────────────────────────────

def rule_tranexamic_acid(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("hemorrhagic-shock", "uncontrolled-hemorrhage")
    if not evidence or "txa-window-missed" in findings:
        return None
    dose = txa_dose(patient.weight_kg)
    return Intervention(
        intervention_id="tranexamic-acid",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Tranexamic acid within 3 h of injury",
        evidence=tuple(evidence),
        actions=(
            InterventionAction(action="TXA loading dose", dose_expression=dose.loading_expression, route="IV"),
            InterventionAction(action="TXA maintenance infusion", dose_expression=dose.maintenance_expression,
                               route="IV infusion"),
        ),
    )


# ── Rule 9: SVT ──────────────────────────────────────────────────────────────

def rule_svt(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "svt-suspected" not in findings or "cardiac-arrest" in findings:
        return None
    unstable = findings.has("hypotension", "poor-perfusion", "altered-consciousness")
    first = cardioversion_energy(patient.weight_kg, 1)
    second = cardioversion_energy(patient.weight_kg, 2)
    cardioversion = InterventionAction(
        action="Synchronised cardioversion",
        dose_expression=f"{first:g} J, then {second:g} J",
        reassessment_criteria="Rhythm after each attempt",
    )
    if unstable:
        actions = (
            cardioversion,
            dose_action("adenosine_first", patient, "Adenosine if IV access already in place"),
        )
    else:
        actions = (
            step("Vagal manoeuvres (ice to face in infants, modified Valsalva in older children)"),
            dose_action("adenosine_first", patient, "Adenosine first dose"),
            dose_action("adenosine_second", patient, "Adenosine second dose if no conversion"),
            cardioversion,
        )
    return Intervention(
        intervention_id="svt-management",
        severity=Severity.CRITICAL if unstable else Severity.WARNING,
        system=SYSTEM,
        title="Supraventricular tachycardia" + (" with shock" if unstable else ""),
        evidence=tuple(findings.present("svt-suspected", "hypotension", "poor-perfusion", "altered-consciousness")),
        actions=actions,
        escalation_path="Cardiology advice",
    )


# ── Rule 10: Other arrhythmias ───────────────────────────────────────────────

def rule_arrhythmia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    evidence = findings.present("wide-complex-tachycardia", "irregular-rhythm")
    if not evidence or "cardiac-arrest" in findings:
        return None
    actions = [step("12-lead ECG; continuous monitoring"), step("Check potassium, calcium and magnesium")]
    if "wide-complex-tachycardia" in findings:
        actions.append(InterventionAction(
            action="Unstable: synchronised cardioversion",
            dose_expression=f"{cardioversion_energy(patient.weight_kg, 1):g} J",
        ))
        actions.append(dose_action("amiodarone", patient, "Stable: amiodarone over 20-60 min"))
    return Intervention(
        intervention_id="arrhythmia-assessment",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Arrhythmia",
        evidence=tuple(evidence),
        actions=tuple(actions),
        escalation_path="Cardiology advice",
    )


# ── Rule 11: Bradycardia ─────────────────────────────────────────────────────

def rule_bradycardia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "heart-rate-low" not in findings or "cardiac-arrest" in findings:
        return None
    if patient.patient_type == PatientType.NEONATE:
        return None
    poor = findings.present("poor-perfusion", "hypotension", "altered-consciousness")
    actions = [step("Oxygenate and ventilate first; hypoxia is the usual cause")]
    if poor:
        actions.append(step("Heart rate < 60 with poor perfusion despite ventilation: start CPR"))
        actions.append(dose_action("epinephrine_arrest", patient, "Epinephrine"))
        actions.append(dose_action("atropine", patient, "Atropine for vagal cause or AV block"))
    return Intervention(
        intervention_id="bradycardia",
        severity=Severity.CRITICAL if poor else Severity.WARNING,
        system=SYSTEM,
        title="Bradycardia",
        evidence=tuple(["heart-rate-low"] + poor),
        actions=tuple(actions),
        escalation_path="Transcutaneous pacing",
    )


# ── Rule 12: Tachycardia ─────────────────────────────────────────────────────

def rule_sinus_tachycardia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "heart-rate-high" not in findings or findings.has("svt-suspected", "wide-complex-tachycardia"):
        return None
    return Intervention(
        intervention_id="tachycardia-cause",
        severity=Severity.INFO,
        system=SYSTEM,
        title="Tachycardia: look for the cause",
        evidence=("heart-rate-high",),
        actions=(step("Consider pain, fever, fear, hypovolaemia, hypoxia"),),
    )


# ── Rule 13: Heart failure ───────────────────────────────────────────────────

def rule_heart_failure(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "heart-failure-signs" not in findings:
        return None
    return Intervention(
        intervention_id="heart-failure",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Signs of heart failure",
        evidence=("heart-failure-signs",),
        actions=(
            step("Sit up; oxygen to target"),
            step("Avoid large fluid boluses; reassess after every 5-10 mL/kg"),
            step("Echocardiogram; consider inotropes"),
        ),
        escalation_path="Cardiology and critical care",
    )


# ── Rule 14: Abdominal injury ────────────────────────────────────────────────

def rule_abdominal(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "abdominal-distension" not in findings:
        return None
    return Intervention(
        intervention_id="abdominal-assessment",
        severity=Severity.WARNING,
        system=SYSTEM,
        title="Distended or rigid abdomen",
        evidence=("abdominal-distension",),
        actions=(
            step("Gastric tube to decompress"),
            step("Bedside ultrasound (FAST) for free fluid"),
            step("Serial examination"),
        ),
        escalation_path="Surgical review",
    )


# ── Rule 15: Neonatal circulation ────────────────────────────────────────────

def rule_neonatal_compressions(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "compressions-indicated" not in findings:
        return None
    return Intervention(
        intervention_id="neonatal-compressions",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Heart rate < 60 after effective PPV: chest compressions",
        evidence=("compressions-indicated",),
        actions=(
            step("Intubate or place laryngeal mask; increase oxygen to 100%"),
            step("Two-thumb compressions, 3:1 ratio (90 compressions + 30 breaths/min)",
                 "Heart rate after 60 s"),
            step("Place umbilical venous catheter"),
        ),
        escalation_path="Heart rate stays < 60: epinephrine",
    )


def _neonatal_epinephrine(findings: FindingSet) -> Tuple[str, str]:
    """Drug row and action label for the chosen epinephrine route."""
    indicated = findings.get("epinephrine-indicated")
    if indicated is not None and indicated.datum("route") == "ett":
        return "epinephrine_neonatal_ett", "Epinephrine via ETT while UVC access is placed"
    return "epinephrine_neonatal", "Epinephrine IV/UVC"


def rule_neonatal_epinephrine(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "epinephrine-indicated" not in findings:
        return None
    drug_id, label = _neonatal_epinephrine(findings)
    return Intervention(
        intervention_id="neonatal-epinephrine",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Heart rate < 60 despite compressions: epinephrine",
        evidence=("epinephrine-indicated",),
        actions=(
            dose_action(drug_id, patient, label,
                        reassessment_criteria="Heart rate after 60 s of compressions"),
            step("Continue compressions and ventilation"),
        ),
        escalation_path="Heart rate stays < 60: volume and consider pneumothorax",
    )


def rule_neonatal_persistent_bradycardia(findings: FindingSet, patient: PatientContext) -> Optional[Intervention]:
    if "persistent-bradycardia" not in findings:
        return None
    return Intervention(
        intervention_id="neonatal-volume",
        severity=Severity.CRITICAL,
        system=SYSTEM,
        title="Persistent bradycardia: volume and reversible causes",
        evidence=("persistent-bradycardia",),
        actions=(
            dose_action("saline_neonatal", patient, "Normal saline bolus (suspected blood loss or shock)"),
            dose_action(_neonatal_epinephrine(findings)[0], patient, "Repeat epinephrine every 3-5 min"),
            step("Consider pneumothorax, airway obstruction, congenital heart disease"),
        ),
    )


RULES = (
    rule_cardiac_arrest,
    rule_hemorrhage_control,
    rule_pelvic_binder,
    rule_fluid_bolus,
    rule_shock_fluid_withheld,
    rule_cold_shock,
    rule_warm_shock,
    rule_hemorrhage_class,
    rule_tranexamic_acid,
    rule_svt,
    rule_arrhythmia,
    rule_bradycardia,
    rule_sinus_tachycardia,
    rule_heart_failure,
    rule_abdominal,
    rule_neonatal_compressions,
    rule_neonatal_epinephrine,
    rule_neonatal_persistent_bradycardia,
)
