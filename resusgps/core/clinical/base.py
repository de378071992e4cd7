"""
Clinical Decision Layer — Base Types

Defines the data contracts shared by the finding evaluator and the
system-specific intervention rule modules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Iterator, List, Optional, Tuple


class Severity(str, Enum):
    """
    How fast an intervention must happen.

    CRITICAL – immediate life threat, act now
    WARNING  – act within this survey cycle
    INFO     – supportive care or monitoring
    """
    CRITICAL = "critical"
    WARNING  = "warning"
    INFO     = "info"


class AbcdeSystem(str, Enum):
    """Primary-survey system a finding or intervention belongs to (declared in priority order)."""
    AIRWAY      = "airway"
    BREATHING   = "breathing"
    CIRCULATION = "circulation"
    DISABILITY  = "disability"
    EXPOSURE    = "exposure"
    GENERAL     = "general"


SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.WARNING:  1,
    Severity.INFO:     2,
}

SYSTEM_ORDER = {system: rank for rank, system in enumerate(AbcdeSystem)}


@dataclass(frozen=True)
class Finding:
    """
    One derived clinical fact.

    Frozen and hashable so a finding set can be compared for equality.
    ``data`` carries the few numbers a rule needs (TBSA, GCS total, ...)
    as sorted key/value pairs.
    """
    code: str                                  # e.g. "poor-perfusion"
    system: AbcdeSystem
    evidence: Tuple[str, ...] = ()             # e.g. ("capillary_refill_s=4.0 (> 3 s)",)
    data: Tuple[Tuple[str, Any], ...] = ()

    def datum(self, key: str, default: Any = None) -> Any:
        for name, value in self.data:
            if name == key:
                return value
        return default

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "system": self.system.value,
            "evidence": list(self.evidence),
        }


class FindingSet:
    """Read-only view over a set of findings, keyed by code."""

    def __init__(self, findings: Iterable[Finding] = ()):
        self._findings: FrozenSet[Finding] = frozenset(findings)
        self._by_code = {}
        for finding in sorted(self._findings, key=lambda f: (f.code, f.evidence)):
            self._by_code.setdefault(finding.code, finding)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self._findings)

    def __len__(self) -> int:
        return len(self._findings)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    @property
    def codes(self) -> FrozenSet[str]:
        return frozenset(self._by_code)

    def has(self, *codes: str) -> bool:
        """True when any of ``codes`` is present."""
        return any(code in self._by_code for code in codes)

    def has_all(self, *codes: str) -> bool:
        return all(code in self._by_code for code in codes)

    def present(self, *codes: str) -> List[str]:
        """The subset of ``codes`` that is present, in the order given."""
        return [code for code in codes if code in self._by_code]

    def get(self, code: str) -> Optional[Finding]:
        return self._by_code.get(code)

    def frozen(self) -> FrozenSet[Finding]:
        return self._findings


@dataclass(frozen=True)
class InterventionAction:
    """One concrete thing to do, with its dose when a drug or fluid is involved."""
    action: str
    dose_expression: Optional[str] = None
    route: Optional[str] = None
    frequency: Optional[str] = None
    titration: Optional[str] = None
    reassessment_criteria: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "dose_expression": self.dose_expression,
            "route": self.route,
            "frequency": self.frequency,
            "titration": self.titration,
            "reassessment_criteria": self.reassessment_criteria,
        }


@dataclass(frozen=True)
class Intervention:
    """
    One recommended intervention. A finding set can produce 0-N of these;
    the engine orders them by severity, then ABCDE system.
    """
    # ── Core identity ─────────────────────────────────────────────────────
    intervention_id: str                       # e.g. "fluid-bolus"
    severity: Severity
    system: AbcdeSystem
    title: str

    # ── Evidence ──────────────────────────────────────────────────────────
    # Codes of the findings that triggered this intervention
    evidence: Tuple[str, ...] = ()

    # ── What to do ────────────────────────────────────────────────────────
    actions: Tuple[InterventionAction, ...] = field(default_factory=tuple)
    escalation_path: Optional[str] = None

    # ── Serialisation ─────────────────────────────────────────────────────
    def to_dict(self) -> dict:
        return {
            "id": self.intervention_id,
            "severity": self.severity.value,
            "system": self.system.value,
            "title": self.title,
            "evidence": list(self.evidence),
            "actions": [a.to_dict() for a in self.actions],
            "escalation_path": self.escalation_path,
        }
