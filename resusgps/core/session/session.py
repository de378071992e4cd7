"""
Session aggregate.

A Session is a frozen value. The SessionEngine takes one in and hands a
new one back on every call; nothing in the engine keeps a reference to
it between calls.

State machine:

    patient_data ──submit──▶ assessment ──continue (last step)──▶ interventions
                             │   ▲   early exit ────────────────▶      │ ▲
                             │   └──────── back ───────────────────────┘ │
                             │                                    continue│escalate
                             │                                           ▼ │
                             │                                      reassessment
                             │                                           │
                             └────────────── resolve ────────────▶ case_complete
                                (from interventions or reassessment only)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from resusgps.core.clinical.base import Finding, Intervention
from resusgps.core.patient.context import PatientContext
from resusgps.core.protocols.base import ProtocolId
from .timer import TimerState


class SessionState(str, Enum):
    PATIENT_DATA  = "patient_data"
    ASSESSMENT    = "assessment"
    INTERVENTIONS = "interventions"
    REASSESSMENT  = "reassessment"
    CASE_COMPLETE = "case_complete"


# States in which observations can be entered and the step cursor moves
SURVEY_STATES = (SessionState.ASSESSMENT, SessionState.REASSESSMENT)


@dataclass(frozen=True)
class InterventionLogEntry:
    elapsed_seconds: float
    cycle: int
    event: str                              # performed, undone, escalated, ...
    intervention_id: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "elapsed_seconds": self.elapsed_seconds,
            "cycle": self.cycle,
            "event": self.event,
            "intervention_id": self.intervention_id,
            "detail": self.detail,
        }


def freeze_observations(observations: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    """Read-only copy of per-step observations."""
    return MappingProxyType({step_id: MappingProxyType(dict(answers)) for step_id, answers in observations.items()})


@dataclass(frozen=True)
class Session:
    session_id: str
    protocol: ProtocolId
    start_time: datetime
    state: SessionState = SessionState.PATIENT_DATA
    patient: Optional[PatientContext] = None

    # ── Survey cursor ─────────────────────────────────────────────────────
    current_step_id: Optional[str] = None
    completed_step_ids: Tuple[str, ...] = ()
    visited_step_ids: Tuple[str, ...] = ()

    # ── Inputs ────────────────────────────────────────────────────────────
    observations: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: MappingProxyType({}))
    selected_findings: Tuple[str, ...] = ()

    # ── Derived (recomputed on every action) ──────────────────────────────
    findings: FrozenSet[Finding] = frozenset()
    interventions: Tuple[Intervention, ...] = ()

    # ── Loop bookkeeping ──────────────────────────────────────────────────
    performed_interventions: FrozenSet[str] = frozenset()
    intervention_log: Tuple[InterventionLogEntry, ...] = ()
    reassessment_cycle: int = 0
    timer: TimerState = field(default_factory=TimerState)
    early_exit: Optional[str] = None

    @property
    def elapsed_seconds(self) -> float:
        return self.timer.elapsed_seconds

    @property
    def timer_started(self) -> bool:
        return self.timer.started

    @property
    def applied_tick_ids(self) -> FrozenSet[str]:
        return self.timer.applied_tick_ids

    @property
    def is_complete(self) -> bool:
        return self.state == SessionState.CASE_COMPLETE

    @property
    def finding_codes(self) -> FrozenSet[str]:
        return frozenset(f.code for f in self.findings)

    @property
    def intervention_ids(self) -> Tuple[str, ...]:
        return tuple(i.intervention_id for i in self.interventions)

    def intervention(self, intervention_id: str) -> Optional[Intervention]:
        for intervention in self.interventions:
            if intervention.intervention_id == intervention_id:
                return intervention
        return None
