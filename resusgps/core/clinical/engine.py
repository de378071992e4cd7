"""
Intervention Rule Engine

Central dispatcher. Takes the current finding set and the patient and
returns every intervention the registered rule modules recommend.

Usage:
    from resusgps.core.clinical import InterventionEngine

    engine = InterventionEngine()
    interventions = engine.derive(findings, patient)
    for i in interventions:
        print(i.severity.value, i.system.value, i.title)

Adding a rule:
    1. Write  rule_<name>(findings, patient) -> Optional[Intervention]
       in the rules_<system>.py module it belongs to.
    2. Append it to that module's RULES tuple.
    3. If it competes with another rule for the same decision, declare the
       pair in _EXCLUSIVE_GROUPS below.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from resusgps.core.patient.context import PatientContext
from resusgps.utils import get_logger
from .base import (
    SEVERITY_ORDER,
    SYSTEM_ORDER,
    AbcdeSystem,
    Finding,
    FindingSet,
    Intervention,
    Severity,
)
from . import rules_airway, rules_breathing, rules_circulation, rules_disability, rules_exposure

logger = get_logger(__name__)

Rule = Callable[[FindingSet, PatientContext], Optional[Intervention]]

# ── Registry: system → rules ─────────────────────────────────────────────────
_SYSTEM_RULES: Dict[AbcdeSystem, Tuple[Rule, ...]] = {
    AbcdeSystem.AIRWAY:      rules_airway.RULES,
    AbcdeSystem.BREATHING:   rules_breathing.RULES,
    AbcdeSystem.CIRCULATION: rules_circulation.RULES,
    AbcdeSystem.DISABILITY:  rules_disability.RULES,
    AbcdeSystem.EXPOSURE:    rules_exposure.RULES,
}

# ── Exclusive groups: first id present wins, the rest are dropped ────────────
_EXCLUSIVE_GROUPS: Dict[str, Tuple[str, ...]] = {
    "volume-resuscitation": ("shock-fluid-withheld", "fluid-bolus"),
    "shock-pattern":        ("cold-shock", "warm-shock"),
}


def _sort_key(intervention: Intervention) -> Tuple[int, int]:
    return (
        SEVERITY_ORDER.get(intervention.severity, 99),
        SYSTEM_ORDER.get(intervention.system, 99),
    )


class InterventionEngine:
    """
    Transforms a finding set into an ordered list of interventions.

    Stateless; safe to share between sessions.
    """

    def derive(
        self,
        findings: Iterable[Finding],
        patient: PatientContext,
    ) -> List[Intervention]:
        """
        Run every registered rule against ``findings``.

        Returns:
            Interventions sorted by severity (critical first), then ABCDE
            system, then registration order. Each intervention id appears
            at most once. An empty list is the expected result when the
            survey found nothing to act on.
        """
        finding_set = findings if isinstance(findings, FindingSet) else FindingSet(findings)
        fired: List[Intervention] = []

        for system, rules in _SYSTEM_RULES.items():
            for rule in rules:
                try:
                    intervention = rule(finding_set, patient)
                except Exception as exc:
                    # Isolate failures; one broken rule must not hide the others
                    logger.error(
                        f"InterventionEngine [{system.value}]: {rule.__name__} raised {exc}",
                        exc_info=True,
                    )
                    continue
                if intervention is not None:
                    fired.append(intervention)

        resolved = self._resolve_exclusive_groups(fired)
        resolved.sort(key=_sort_key)

        if resolved:
            logger.debug(
                f"InterventionEngine: {len(resolved)} intervention(s): "
                + ", ".join(i.intervention_id for i in resolved)
            )
        return resolved

    @staticmethod
    def _resolve_exclusive_groups(fired: List[Intervention]) -> List[Intervention]:
        ids = {i.intervention_id for i in fired}
        dropped = set()
        for group, precedence in _EXCLUSIVE_GROUPS.items():
            winners = [iid for iid in precedence if iid in ids]
            if len(winners) > 1:
                logger.debug(f"InterventionEngine: group '{group}' keeps {winners[0]}, drops {winners[1:]}")
                dropped.update(winners[1:])

        seen = set()
        result: List[Intervention] = []
        for intervention in fired:
            if intervention.intervention_id in dropped or intervention.intervention_id in seen:
                continue
            seen.add(intervention.intervention_id)
            result.append(intervention)
        return result

    def derive_system(
        self,
        system: AbcdeSystem,
        findings: Iterable[Finding],
        patient: PatientContext,
    ) -> List[Intervention]:
        """
        Run the rules of a single system without group resolution. Useful for
        unit-testing one rule module in isolation.
        """
        rules = _SYSTEM_RULES.get(system)
        if rules is None:
            logger.debug(f"InterventionEngine: no rules registered for {system.value}")
            return []
        finding_set = findings if isinstance(findings, FindingSet) else FindingSet(findings)
        return [i for i in (rule(finding_set, patient) for rule in rules) if i is not None]

    @staticmethod
    def registered_systems() -> List[AbcdeSystem]:
        return list(_SYSTEM_RULES.keys())

    @staticmethod
    def exclusive_groups() -> Dict[str, Tuple[str, ...]]:
        return dict(_EXCLUSIVE_GROUPS)

    @staticmethod
    def summarise(interventions: List[Intervention]) -> Dict:
        """
        Compact summary dict for a status line or export.

        Example output:
        {
            "total": 3,
            "critical_count": 2,
            "warning_count": 1,
            "info_count": 0,
            "interventions": [{...}, {...}, {...}]
        }
        """
        return {
            "total":          len(interventions),
            "critical_count": sum(1 for i in interventions if i.severity == Severity.CRITICAL),
            "warning_count":  sum(1 for i in interventions if i.severity == Severity.WARNING),
            "info_count":     sum(1 for i in interventions if i.severity == Severity.INFO),
            "interventions":  [i.to_dict() for i in interventions],
        }


_DEFAULT_ENGINE = InterventionEngine()


def derive_interventions(findings: Iterable[Finding], patient: PatientContext) -> List[Intervention]:
    """Module-level shortcut for ``InterventionEngine().derive``."""
    return _DEFAULT_ENGINE.derive(findings, patient)
