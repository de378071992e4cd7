"""
Protocol Layer — Base Types

A protocol is an ordered template of AssessmentSteps. Each step carries a
declarative applicability predicate; the sequencer evaluates predicates
at traversal time, so the effective step list depends on the answers
given so far (a trauma flag opens the toxin-history step, a neonatal
heart rate below 60 opens chest compressions, and so on).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Sequence, Tuple

from resusgps.core.patient.context import PatientContext, PatientType
from resusgps.core.patient.resolver import WeightFormula
from resusgps.utils import ValidationError

# Observations are stored per step: {step_id: {field: value}}
Observations = Mapping[str, Mapping[str, Any]]
# Predicates read a flattened {field: value} view
FlatObservations = Mapping[str, Any]
Predicate = Callable[[PatientContext, FlatObservations], bool]


class ProtocolId(str, Enum):
    PRIMARY_SURVEY  = "primary_survey"      # generic ABCDE primary survey
    EXTENDED_SURVEY = "extended_survey"     # step-by-step survey with signs-of-life check
    NEONATAL        = "neonatal"            # newborn resuscitation algorithm
    TRAUMA          = "trauma"              # trauma primary survey with C-spine


class Phase(str, Enum):
    SIGNS_OF_LIFE = "S"
    AIRWAY        = "A"
    BREATHING     = "B"
    CIRCULATION   = "C"
    DISABILITY    = "D"
    EXPOSURE      = "E"
    HISTORY       = "H"


class FieldKind(str, Enum):
    NUMERIC      = "numeric"
    CATEGORICAL  = "categorical"
    MULTI_SELECT = "multi_select"
    BOOLEAN      = "boolean"


@dataclass(frozen=True)
class FieldSpec:
    """One prompt of a step, with the rules its answer must satisfy."""
    name: str
    kind: FieldKind
    label: str
    unit: Optional[str] = None
    options: Tuple[str, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    integer: bool = False

    def validate(self, value: Any) -> Any:
        """Return the normalised value or raise ValidationError. Nothing is coerced to a default."""
        if self.kind == FieldKind.NUMERIC:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{self.name} expects a number (got {value!r})", field=self.name)
            if not math.isfinite(value):
                raise ValidationError(f"{self.name} must be finite", field=self.name)
            if self.integer and float(value) != int(value):
                raise ValidationError(f"{self.name} expects a whole number (got {value})", field=self.name)
            if (self.minimum is not None and value < self.minimum) or \
               (self.maximum is not None and value > self.maximum):
                raise ValidationError(
                    f"{self.name}={value} outside plausible range {self.minimum}-{self.maximum} {self.unit or ''}".rstrip(),
                    field=self.name,
                    details={"minimum": self.minimum, "maximum": self.maximum},
                )
            return int(value) if self.integer else float(value)

        if self.kind == FieldKind.BOOLEAN:
            if not isinstance(value, bool):
                raise ValidationError(f"{self.name} expects true/false (got {value!r})", field=self.name)
            return value

        if self.kind == FieldKind.CATEGORICAL:
            if not isinstance(value, str) or value not in self.options:
                raise ValidationError(
                    f"{self.name} must be one of {list(self.options)} (got {value!r})",
                    field=self.name,
                )
            return value

        # multi-select
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValidationError(f"{self.name} expects a list of options (got {value!r})", field=self.name)
        unknown = [v for v in value if v not in self.options]
        if unknown:
            raise ValidationError(
                f"{self.name} has unknown options {unknown}; allowed {list(self.options)}",
                field=self.name,
            )
        return tuple(dict.fromkeys(value))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "label": self.label,
            "unit": self.unit,
            "options": list(self.options),
            "minimum": self.minimum,
            "maximum": self.maximum,
        }


def _always(patient: PatientContext, obs: FlatObservations) -> bool:
    return True


@dataclass(frozen=True)
class AssessmentStep:
    id: str
    phase: Phase
    title: str
    prompts: Tuple[FieldSpec, ...]
    critical_finding_options: Tuple[str, ...] = ()
    intervention_options: Tuple[str, ...] = ()
    applies: Predicate = _always

    def is_applicable(self, patient: PatientContext, obs: FlatObservations) -> bool:
        return bool(self.applies(patient, obs))

    def prompt(self, name: str) -> Optional[FieldSpec]:
        for spec in self.prompts:
            if spec.name == name:
                return spec
        return None


@dataclass(frozen=True)
class EarlyExitRule:
    """Observation pattern that ends the survey and jumps straight to interventions."""
    name: str
    description: str
    triggered: Callable[[FlatObservations], bool]
    # Fields the predicate reads; committing one of them re-arms the rule.
    fields: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ProtocolDefinition:
    protocol_id: ProtocolId
    title: str
    steps: Tuple[AssessmentStep, ...]
    weight_formula: WeightFormula = WeightFormula.STANDARD
    early_exits: Tuple[EarlyExitRule, ...] = ()
    _index: Dict[str, int] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        seen_fields: Dict[str, str] = {}
        for position, step in enumerate(self.steps):
            if step.id in self._index:
                raise ValueError(f"Duplicate step id '{step.id}' in {self.protocol_id.value}")
            self._index[step.id] = position
            for spec in step.prompts:
                if spec.name in seen_fields:
                    raise ValueError(
                        f"Field '{spec.name}' declared by both '{seen_fields[spec.name]}' "
                        f"and '{step.id}' in {self.protocol_id.value}"
                    )
                seen_fields[spec.name] = step.id

    def has_step(self, step_id: str) -> bool:
        return step_id in self._index

    def index_of(self, step_id: str) -> int:
        try:
            return self._index[step_id]
        except KeyError:
            raise ValidationError(
                f"Unknown step '{step_id}' for protocol {self.protocol_id.value}",
                field="step_id",
            ) from None

    def step(self, step_id: str) -> AssessmentStep:
        return self.steps[self.index_of(step_id)]


# ── Observation helpers ───────────────────────────────────────────────────────

def flatten(observations: Observations, step_ids: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Merge per-step answers into one {field: value} mapping (field names are unique per protocol)."""
    allowed = None if step_ids is None else set(step_ids)
    flat: Dict[str, Any] = {}
    for step_id, answers in observations.items():
        if allowed is not None and step_id not in allowed:
            continue
        flat.update(answers)
    return flat


def value_is(obs: FlatObservations, name: str, *values: Any) -> bool:
    return name in obs and obs[name] in values


def value_below(obs: FlatObservations, name: str, limit: float) -> bool:
    value = obs.get(name)
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value < limit


def value_between(obs: FlatObservations, name: str, low: float, high: float) -> bool:
    """low <= value < high"""
    value = obs.get(name)
    return isinstance(value, (int, float)) and not isinstance(value, bool) and low <= value < high


def selected(obs: FlatObservations, name: str, option: str) -> bool:
    value = obs.get(name)
    return isinstance(value, Sequence) and not isinstance(value, str) and option in value


def is_adult_type(patient: PatientContext, obs: FlatObservations) -> bool:
    return patient.patient_type in (PatientType.ADULT, PatientType.PREGNANT)


# ── Field constructors ────────────────────────────────────────────────────────

def numeric(name: str, label: str, unit: str, minimum: float, maximum: float, integer: bool = False) -> FieldSpec:
    return FieldSpec(name, FieldKind.NUMERIC, label, unit=unit, minimum=minimum, maximum=maximum, integer=integer)


def choice(name: str, label: str, *options: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.CATEGORICAL, label, options=tuple(options))


def multi(name: str, label: str, *options: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.MULTI_SELECT, label, options=tuple(options))


def yes_no(name: str, label: str) -> FieldSpec:
    return FieldSpec(name, FieldKind.BOOLEAN, label)
