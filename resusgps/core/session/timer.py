"""
Resuscitation timer.

Elapsed time only moves forward and only after the first observation is
committed. Ticks may be redelivered or coalesced by the host: a tick id
that was already applied is ignored, and one tick of 2 s is the same as
two ticks of 1 s.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional

from resusgps.utils import ValidationError


@dataclass(frozen=True)
class TimerState:
    elapsed_seconds: float = 0.0
    started: bool = False
    applied_tick_ids: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def elapsed_minutes(self) -> float:
        return self.elapsed_seconds / 60.0

    def start(self) -> "TimerState":
        if self.started:
            return self
        return replace(self, started=True)

    def advance(self, delta_seconds: float, tick_id: Optional[str] = None) -> "TimerState":
        """
        Apply one tick.

        Raises:
            ValidationError: delta is negative, non-numeric or non-finite.
        """
        if isinstance(delta_seconds, bool) or not isinstance(delta_seconds, (int, float)):
            raise ValidationError(f"Tick delta must be a number (got {delta_seconds!r})", field="delta_seconds")
        if not math.isfinite(delta_seconds) or delta_seconds < 0:
            raise ValidationError(
                f"Tick delta must be a non-negative finite number (got {delta_seconds})",
                field="delta_seconds",
            )
        if not self.started:
            return self
        if tick_id is not None and tick_id in self.applied_tick_ids:
            return self

        applied = self.applied_tick_ids if tick_id is None else self.applied_tick_ids | {tick_id}
        return replace(self, elapsed_seconds=self.elapsed_seconds + float(delta_seconds), applied_tick_ids=applied)
