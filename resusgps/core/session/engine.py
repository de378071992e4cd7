"""
Session Engine

Drives one resuscitation case from patient data to case completion. The
engine is stateless: every public method takes a Session and returns a
new Session, having recomputed findings and interventions from scratch.

Usage:
    from resusgps.core.session import SessionEngine

    engine = SessionEngine()
    session = engine.start("primary_survey")
    session = engine.submit_patient(session, {"age_years": 2})
    session = engine.commit_observation(
        session, {"step_id": "airway-status", "field": "airway_patency", "value": "patent"}
    )
    session = engine.apply_action(session, {"kind": "continue"})

Impossible transitions (an observation after the case is closed, resolve
before any intervention was shown, ...) raise LogicError when
``strict_transitions`` is on and are logged and ignored otherwise.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from resusgps.config import EngineSettings
from resusgps.core.clinical.base import AbcdeSystem, Finding
from resusgps.core.clinical.engine import InterventionEngine
from resusgps.core.clinical.findings import evaluate
from resusgps.core.parameters.ranges import ReferenceRanges, reference_ranges
from resusgps.core.patient.resolver import resolve_patient_context
from resusgps.core.protocols.base import Phase, ProtocolDefinition, ProtocolId, flatten
from resusgps.core.protocols.sequencer import (
    applicable_steps,
    check_early_exit,
    first_step,
    get_protocol,
    next_step,
    previous_step,
)
from resusgps.models.schemas import (
    ActionKind,
    ActionView,
    AssessmentStepView,
    FindingView,
    InterventionLogRecord,
    InterventionView,
    ObservationInput,
    ObservationRecord,
    PatientContextInput,
    PromptView,
    SessionExport,
    SessionMeta,
    UserAction,
)
from resusgps.utils import DomainError, LogicError, ValidationError, get_logger
from .session import (
    SURVEY_STATES,
    InterventionLogEntry,
    Session,
    SessionState,
    freeze_observations,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_PHASE_SYSTEMS = {
    Phase.SIGNS_OF_LIFE: AbcdeSystem.GENERAL,
    Phase.AIRWAY:        AbcdeSystem.AIRWAY,
    Phase.BREATHING:     AbcdeSystem.BREATHING,
    Phase.CIRCULATION:   AbcdeSystem.CIRCULATION,
    Phase.DISABILITY:    AbcdeSystem.DISABILITY,
    Phase.EXPOSURE:      AbcdeSystem.EXPOSURE,
    Phase.HISTORY:       AbcdeSystem.GENERAL,
}


def _coerce(model: Type[ModelT], raw: Union[ModelT, Mapping[str, Any]], field: str) -> ModelT:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or field
        raise ValidationError(
            f"Invalid {field}: {first.get('msg', 'invalid input')}",
            field=loc,
            details={"errors": exc.errors(include_url=False)},
        ) from None


def _plain(value: Any) -> Any:
    return list(value) if isinstance(value, tuple) else value


class SessionEngine:
    """
    Orchestrates resolver, sequencer, finding evaluator and intervention
    engine around an immutable Session.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        intervention_engine: Optional[InterventionEngine] = None,
    ):
        self.settings = settings or EngineSettings.from_env()
        self._interventions = intervention_engine or InterventionEngine()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(
        self,
        protocol: Optional[Union[ProtocolId, str]] = None,
        session_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        definition = get_protocol(protocol or self.settings.default_protocol)
        session = Session(
            session_id=session_id or uuid.uuid4().hex,
            protocol=definition.protocol_id,
            start_time=now or datetime.now(timezone.utc),
        )
        logger.info(f"Session {session.session_id}: started ({definition.protocol_id.value})")
        return session

    def submit_patient(
        self,
        session: Session,
        raw: Union[PatientContextInput, Mapping[str, Any]],
    ) -> Session:
        """Resolve the patient and open the first applicable step."""
        if session.state != SessionState.PATIENT_DATA:
            return self._reject(session, "Patient data already submitted; use correct_patient")

        definition = get_protocol(session.protocol)
        patient = resolve_patient_context(raw, definition.weight_formula)
        first = first_step(definition, patient, session.observations)

        session = replace(
            session,
            patient=patient,
            state=SessionState.ASSESSMENT if first else SessionState.INTERVENTIONS,
            current_step_id=first,
            visited_step_ids=(first,) if first else (),
        )
        logger.info(
            f"Session {session.session_id}: patient {patient.patient_type.value}, "
            f"{patient.weight_kg:g} kg → {session.state.value}"
        )
        return self._recompute(session)

    def correct_patient(
        self,
        session: Session,
        raw: Union[PatientContextInput, Mapping[str, Any]],
    ) -> Session:
        """Replace the patient (e.g. a measured weight arrives). Observations are kept."""
        if session.state in (SessionState.PATIENT_DATA, SessionState.CASE_COMPLETE):
            return self._reject(session, f"Cannot correct patient data in state {session.state.value}")

        definition = get_protocol(session.protocol)
        patient = resolve_patient_context(raw, definition.weight_formula)
        session = replace(session, patient=patient)
        session = self._log(session, "patient-corrected", detail=f"{patient.weight_kg:g} kg")

        current = session.current_step_id
        if session.state in SURVEY_STATES and current is not None:
            step = definition.step(current)
            if not step.is_applicable(patient, flatten(session.observations)):
                session = self._move_forward(session, definition)
        logger.info(f"Session {session.session_id}: patient corrected ({patient.weight_kg:g} kg)")
        return self._recompute(session)

    # ── Observations ──────────────────────────────────────────────────────

    def commit_observation(
        self,
        session: Session,
        observation: Union[ObservationInput, Mapping[str, Any]],
    ) -> Session:
        """
        Record one answer for the current step.

        The answer is validated against the step's field spec. The timer
        starts on the first committed observation. An early-exit pattern
        (cardiac arrest) moves the session straight to interventions.

        Raises:
            ValidationError: wrong step, unknown field, or a value the field
                spec rejects.
        """
        if session.state not in SURVEY_STATES:
            return self._reject(session, f"Cannot record observations in state {session.state.value}")

        obs = _coerce(ObservationInput, observation, "observation")
        if obs.step_id != session.current_step_id:
            raise ValidationError(
                f"Observation for step '{obs.step_id}' but the current step is '{session.current_step_id}'",
                field="step_id",
            )

        definition = get_protocol(session.protocol)
        step = definition.step(obs.step_id)
        spec = step.prompt(obs.field)
        if spec is None:
            raise ValidationError(
                f"Step '{step.id}' has no field '{obs.field}'",
                field="field",
                details={"fields": [p.name for p in step.prompts]},
            )
        value = spec.validate(obs.value)

        previous = session.observations
        observations = {sid: dict(answers) for sid, answers in previous.items()}
        observations.setdefault(step.id, {})[spec.name] = value
        session = replace(session, observations=freeze_observations(observations), timer=session.timer.start())
        logger.debug(f"Session {session.session_id}: {step.id}.{spec.name} = {value!r}")

        exit_rule = check_early_exit(definition, session.observations, previous, spec.name)
        if exit_rule is not None:
            logger.warning(
                f"Session {session.session_id}: early exit '{exit_rule.name}' at step '{step.id}'"
            )
            session = replace(
                session,
                state=SessionState.INTERVENTIONS,
                current_step_id=None,
                completed_step_ids=self._with(session.completed_step_ids, step.id),
                early_exit=exit_rule.name,
            )
            session = self._log(session, "early-exit", detail=exit_rule.description)

        return self._recompute(session)

    # ── User actions ──────────────────────────────────────────────────────

    def apply_action(self, session: Session, action: Union[UserAction, Mapping[str, Any]]) -> Session:
        """Apply a navigation or decision action."""
        act = _coerce(UserAction, action, "action")
        if session.state in (SessionState.PATIENT_DATA, SessionState.CASE_COMPLETE):
            return self._reject(session, f"Action '{act.kind.value}' not allowed in state {session.state.value}")

        handler = {
            ActionKind.CONTINUE:            self._continue,
            ActionKind.BACK:                self._back,
            ActionKind.SELECT_FINDING:      self._select_finding,
            ActionKind.TOGGLE_INTERVENTION: self._toggle_intervention,
            ActionKind.RESOLVE:             self._resolve,
            ActionKind.ESCALATE:            self._escalate,
        }[act.kind]
        return handler(session, act)

    def _continue(self, session: Session, act: UserAction) -> Session:
        definition = get_protocol(session.protocol)

        if session.state in SURVEY_STATES:
            session = replace(
                session,
                completed_step_ids=self._with(session.completed_step_ids, session.current_step_id),
            )
            return self._recompute(self._move_forward(session, definition))

        # interventions → reassessment: re-walk the survey from the top
        first = first_step(definition, session.patient, session.observations)
        session = replace(
            session,
            state=SessionState.REASSESSMENT if first else SessionState.INTERVENTIONS,
            current_step_id=first,
            reassessment_cycle=session.reassessment_cycle + 1,
            visited_step_ids=self._with(session.visited_step_ids, first),
        )
        session = self._log(session, "reassessment-started")
        logger.info(f"Session {session.session_id}: reassessment cycle {session.reassessment_cycle}")
        return self._recompute(session)

    def _back(self, session: Session, act: UserAction) -> Session:
        definition = get_protocol(session.protocol)

        if session.state in SURVEY_STATES:
            previous = previous_step(definition, session.current_step_id, session.patient, session.observations)
            if previous is None:
                return self._reject(session, "Already at the first step")
            return self._recompute(replace(session, current_step_id=previous))

        # interventions → last applicable step of the survey, answers kept
        steps = applicable_steps(definition, session.patient, session.observations)
        if not steps:
            return self._reject(session, "No assessment step to return to")
        state = SessionState.REASSESSMENT if session.reassessment_cycle else SessionState.ASSESSMENT
        return self._recompute(replace(session, state=state, current_step_id=steps[-1].id))

    def _select_finding(self, session: Session, act: UserAction) -> Session:
        """Toggle a provider-selected critical finding."""
        if session.state not in SURVEY_STATES:
            return self._reject(session, f"Cannot select findings in state {session.state.value}")
        definition = get_protocol(session.protocol)
        step = definition.step(session.current_step_id)
        if act.target not in step.critical_finding_options:
            raise ValidationError(
                f"'{act.target}' is not a critical finding option of step '{step.id}'",
                field="target",
                details={"options": list(step.critical_finding_options)},
            )
        if act.target in session.selected_findings:
            selected = tuple(code for code in session.selected_findings if code != act.target)
        else:
            selected = session.selected_findings + (act.target,)
        return self._recompute(replace(session, selected_findings=selected))

    def _toggle_intervention(self, session: Session, act: UserAction) -> Session:
        if session.state not in (SessionState.INTERVENTIONS, SessionState.REASSESSMENT):
            return self._reject(session, f"Cannot mark interventions in state {session.state.value}")
        if session.intervention(act.target) is None:
            raise ValidationError(
                f"'{act.target}' is not a current intervention",
                field="target",
                details={"interventions": list(session.intervention_ids)},
            )
        if act.target in session.performed_interventions:
            session = replace(session, performed_interventions=session.performed_interventions - {act.target})
            return self._log(session, "undone", intervention_id=act.target)
        session = replace(session, performed_interventions=session.performed_interventions | {act.target})
        return self._log(session, "performed", intervention_id=act.target)

    def _resolve(self, session: Session, act: UserAction) -> Session:
        if session.state not in (SessionState.INTERVENTIONS, SessionState.REASSESSMENT):
            return self._reject(session, f"Cannot resolve from state {session.state.value}")
        session = replace(session, state=SessionState.CASE_COMPLETE, current_step_id=None)
        session = self._log(session, "resolved")
        logger.info(
            f"Session {session.session_id}: case complete after {session.elapsed_seconds:.0f} s, "
            f"{session.reassessment_cycle} reassessment cycle(s)"
        )
        return session

    def _escalate(self, session: Session, act: UserAction) -> Session:
        if session.state not in (SessionState.INTERVENTIONS, SessionState.REASSESSMENT):
            return self._reject(session, f"Cannot escalate from state {session.state.value}")
        session = replace(session, state=SessionState.INTERVENTIONS, current_step_id=None)
        session = self._log(session, "escalated", detail=act.target)
        logger.info(f"Session {session.session_id}: escalated (cycle {session.reassessment_cycle})")
        return self._recompute(session)

    # ── Timer ─────────────────────────────────────────────────────────────

    def tick(self, session: Session, delta_seconds: float, tick_id: Optional[str] = None) -> Session:
        """
        Advance the resuscitation clock.

        Ticks before the first observation and redelivered tick ids are
        ignored. Findings are refreshed while a survey is in progress so
        time-bucketed targets follow the clock.
        """
        timer = session.timer.advance(delta_seconds, tick_id)
        if timer is session.timer:
            return session
        session = replace(session, timer=timer)
        if session.state in SURVEY_STATES:
            return self._recompute(session)
        return session

    # ── Views ─────────────────────────────────────────────────────────────

    def step_view(self, session: Session) -> AssessmentStepView:
        if session.current_step_id is None:
            raise LogicError(f"No current step in state {session.state.value}", state=session.state.value)
        step = get_protocol(session.protocol).step(session.current_step_id)
        answers = session.observations.get(step.id, {})
        return AssessmentStepView(
            id=step.id,
            phase=step.phase.value,
            title=step.title,
            prompts=[PromptView(**spec.to_dict()) for spec in step.prompts],
            applicable_options={
                "critical_findings": list(step.critical_finding_options),
                "interventions": list(step.intervention_options),
            },
            values={name: _plain(value) for name, value in answers.items()},
        )

    def intervention_views(self, session: Session) -> List[InterventionView]:
        views = []
        for intervention in session.interventions:
            data = intervention.to_dict()
            data["actions"] = [ActionView(**a) for a in data["actions"]]
            views.append(InterventionView(**data, performed=intervention.intervention_id in session.performed_interventions))
        return views

    def reference_ranges(self, session: Session) -> Optional[ReferenceRanges]:
        """Ranges for the session's patient at the current elapsed time, or None on a lookup miss."""
        if session.patient is None:
            return None
        elapsed = session.elapsed_seconds if session.timer_started else None
        try:
            return reference_ranges(session.patient, elapsed)
        except DomainError as exc:
            logger.warning(f"Session {session.session_id}: {exc.message}; reference ranges unavailable")
            return None

    def export(self, session: Session) -> SessionExport:
        """Immutable snapshot with a stable field schema."""
        meta = SessionMeta(
            session_id=session.session_id,
            protocol=session.protocol.value,
            state=session.state.value,
            start_time=session.start_time,
            elapsed_seconds=session.elapsed_seconds,
            current_step_id=session.current_step_id,
            completed_step_ids=list(session.completed_step_ids),
            reassessment_cycle=session.reassessment_cycle,
            early_exit=session.early_exit,
            patient=session.patient.to_dict() if session.patient else None,
        )
        observations = [
            ObservationRecord(step_id=step_id, field=name, value=_plain(value))
            for step_id, answers in session.observations.items()
            for name, value in answers.items()
        ]
        findings = [
            FindingView(**f.to_dict())
            for f in sorted(session.findings, key=lambda f: (f.code, f.evidence))
        ]
        return SessionExport(
            session_meta=meta,
            observations=observations,
            findings=findings,
            interventions=self.intervention_views(session),
            intervention_log=[InterventionLogRecord(**e.to_dict()) for e in session.intervention_log],
        )

    # ── Internals ─────────────────────────────────────────────────────────

    def _recompute(self, session: Session) -> Session:
        """Findings and interventions from scratch: applicable-step observations plus selected findings."""
        if session.patient is None:
            return session
        definition = get_protocol(session.protocol)
        steps = applicable_steps(definition, session.patient, session.observations)
        step_ids = {step.id for step in steps}
        scoped = {sid: answers for sid, answers in session.observations.items() if sid in step_ids}

        found = set(evaluate(scoped, session.patient, self.reference_ranges(session)))
        found.update(self._selected_findings(session, definition, steps))
        findings = frozenset(found)
        interventions = tuple(self._interventions.derive(findings, session.patient))

        logger.debug(
            f"Session {session.session_id}: recomputed {len(findings)} finding(s), "
            f"{len(interventions)} intervention(s)"
        )
        return replace(session, findings=findings, interventions=interventions)

    @staticmethod
    def _selected_findings(session: Session, definition: ProtocolDefinition, steps) -> List[Finding]:
        selected = []
        for code in session.selected_findings:
            for step in steps:
                if code in step.critical_finding_options:
                    selected.append(Finding(code, _PHASE_SYSTEMS[step.phase], (f"selected at {step.id}",)))
                    break
        return selected

    def _move_forward(self, session: Session, definition: ProtocolDefinition) -> Session:
        nxt = next_step(definition, session.current_step_id, session.patient, session.observations)
        if nxt is None:
            logger.info(f"Session {session.session_id}: survey complete → interventions")
            return replace(session, state=SessionState.INTERVENTIONS, current_step_id=None)
        return replace(session, current_step_id=nxt, visited_step_ids=self._with(session.visited_step_ids, nxt))

    @staticmethod
    def _with(ids, step_id: Optional[str]):
        if step_id is None or step_id in ids:
            return ids
        return ids + (step_id,)

    @staticmethod
    def _log(
        session: Session,
        event: str,
        intervention_id: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> Session:
        entry = InterventionLogEntry(
            elapsed_seconds=session.elapsed_seconds,
            cycle=session.reassessment_cycle,
            event=event,
            intervention_id=intervention_id,
            detail=detail,
        )
        return replace(session, intervention_log=session.intervention_log + (entry,))

    def _reject(self, session: Session, message: str) -> Session:
        if self.settings.strict_transitions:
            raise LogicError(message, state=session.state.value)
        logger.warning(f"Session {session.session_id}: ignored impossible transition: {message}")
        return session
