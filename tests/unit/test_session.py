"""
Unit Tests for the Session Engine

Tests for the session state machine, the reassessment loop, the
resuscitation timer and the export snapshot.
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from resusgps.core.clinical import NO_REFERENCE_AVAILABLE
from resusgps.core.session import Session, SessionEngine, SessionState, TimerState
from resusgps.core.session.session import SURVEY_STATES
from resusgps.utils import DomainError, LogicError, ValidationError


def _commit(engine: SessionEngine, session: Session, field: str, value, step_id=None) -> Session:
    return engine.commit_observation(
        session, {"step_id": step_id or session.current_step_id, "field": field, "value": value},
    )


def _continue(engine: SessionEngine, session: Session) -> Session:
    return engine.apply_action(session, {"kind": "continue"})


def _walk_to(engine: SessionEngine, session: Session, step_id: str) -> Session:
    while session.current_step_id != step_id:
        assert session.state in SURVEY_STATES, f"survey ended before reaching {step_id}"
        session = _continue(engine, session)
    return session


def _finish_survey(engine: SessionEngine, session: Session) -> Session:
    while session.state in SURVEY_STATES:
        session = _continue(engine, session)
    return session


def _poor_perfusion_interventions(engine: SessionEngine, session: Session) -> Session:
    session = _walk_to(engine, session, "perfusion")
    session = _commit(engine, session, "capillary_refill_s", 4)
    return _finish_survey(engine, session)


class TestLifecycle:
    """Tests for starting a session and submitting the patient."""

    def test_start(self, strict_engine: SessionEngine):
        """Test a new session waits for patient data."""
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        session = strict_engine.start("trauma", session_id="abc", now=now)

        assert session.state == SessionState.PATIENT_DATA
        assert session.session_id == "abc"
        assert session.start_time == now
        assert session.patient is None

    def test_start_unknown_protocol(self, strict_engine: SessionEngine):
        """Test an unknown protocol is rejected."""
        with pytest.raises(ValidationError):
            strict_engine.start("pediatric_triage")

    def test_submit_patient(self, primary_session: Session):
        """Test submitting the patient opens the first step."""
        assert primary_session.state == SessionState.ASSESSMENT
        assert primary_session.current_step_id == "airway-status"
        assert primary_session.patient.weight_kg == 20
        assert primary_session.timer_started is False

    def test_submit_twice_strict(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a second submit raises LogicError in development."""
        with pytest.raises(LogicError) as exc_info:
            strict_engine.submit_patient(primary_session, {"age_years": 3})

        assert exc_info.value.state == "assessment"

    def test_submit_twice_production(self, production_engine: SessionEngine, primary_session: Session):
        """Test a second submit is ignored in production."""
        assert production_engine.submit_patient(primary_session, {"age_years": 3}) is primary_session

    def test_invalid_patient(self, strict_engine: SessionEngine):
        """Test resolver errors propagate."""
        session = strict_engine.start("primary_survey")

        with pytest.raises(ValidationError):
            strict_engine.submit_patient(session, {"age_years": -2})

    def test_trauma_protocol_uses_trauma_weight(self, strict_engine: SessionEngine):
        """Test the trauma survey estimates weight with its own formula."""
        session = strict_engine.submit_patient(strict_engine.start("trauma"), {"age_years": 2})

        assert session.patient.weight_kg == 14.0
        assert session.current_step_id == "mechanism"

    def test_calls_return_new_sessions(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the input session is never modified."""
        updated = _commit(strict_engine, primary_session, "airway_patency", "patent")

        assert updated is not primary_session
        assert dict(primary_session.observations) == {}
        assert updated.observations["airway-status"]["airway_patency"] == "patent"

    def test_sessions_are_independent(self, strict_engine: SessionEngine):
        """Test two sessions on one engine share nothing."""
        a = strict_engine.submit_patient(strict_engine.start(), {"age_years": 2})
        b = strict_engine.submit_patient(strict_engine.start(), {"age_years": 8, "weight_kg": 30})

        a = _commit(strict_engine, a, "airway_patency", "obstructed")

        assert "airway-status" not in b.observations
        assert a.session_id != b.session_id


class TestObservations:
    """Tests for committing observations."""

    def test_wrong_step(self, strict_engine: SessionEngine, primary_session: Session):
        """Test an observation for another step is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            _commit(strict_engine, primary_session, "respiratory_rate", 20, step_id="breathing-rate")

        assert exc_info.value.field == "step_id"

    def test_unknown_field(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a field the step does not ask for is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            _commit(strict_engine, primary_session, "heart_rate", 120)

        assert exc_info.value.field == "field"

    def test_implausible_value(self, strict_engine: SessionEngine, primary_session: Session):
        """Test values outside the field spec are rejected, not coerced."""
        with pytest.raises(ValidationError) as exc_info:
            _commit(strict_engine, primary_session, "airway_patency", "wide open")

        assert exc_info.value.field == "airway_patency"

    def test_malformed_observation(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a payload without a value is a ValidationError."""
        with pytest.raises(ValidationError):
            strict_engine.commit_observation(primary_session, {"step_id": "airway-status", "field": "airway_patency"})

    def test_first_commit_starts_timer(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the clock starts on the first committed observation."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")

        assert session.timer_started is True
        assert session.elapsed_seconds == 0.0

    def test_poor_perfusion_gives_bolus(self, strict_engine: SessionEngine, primary_session: Session):
        """Test capillary refill 4 s in a 20 kg child surfaces a 400 mL bolus."""
        session = _walk_to(strict_engine, primary_session, "perfusion")
        session = _commit(strict_engine, session, "capillary_refill_s", 4)

        assert "poor-perfusion" in session.finding_codes
        assert session.intervention("fluid-bolus").title == "Fluid bolus 400 mL"

    def test_non_applicable_answers_ignored(self, strict_engine: SessionEngine, primary_session: Session):
        """Test answers from a step that no longer applies do not raise findings."""
        session = _commit(strict_engine, primary_session, "airway_patency", "obstructed")
        session = _continue(strict_engine, session)
        assert session.current_step_id == "airway-observations"
        session = _commit(strict_engine, session, "airway_signs", ["foreign_body"])
        assert "airway-foreign-body" in session.finding_codes

        session = strict_engine.apply_action(session, {"kind": "back"})
        session = _commit(strict_engine, session, "airway_patency", "patent")

        assert "airway-foreign-body" not in session.finding_codes
        assert "airway-obstruction" not in session.finding_codes


class TestNavigation:
    """Tests for continue and back within a survey."""

    def test_continue_skips_non_applicable(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a patent airway skips straight to breathing."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")
        session = _continue(strict_engine, session)

        assert session.current_step_id == "breathing-rate"
        assert session.completed_step_ids == ("airway-status",)

    def test_back_prefills_answers(self, strict_engine: SessionEngine, primary_session: Session):
        """Test going back shows the answers already given."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")
        session = _continue(strict_engine, session)
        session = strict_engine.apply_action(session, {"kind": "back"})

        view = strict_engine.step_view(session)
        assert view.id == "airway-status"
        assert view.values == {"airway_patency": "patent"}

    def test_back_at_first_step_strict(self, strict_engine: SessionEngine, primary_session: Session):
        """Test back on the first step raises LogicError in development."""
        with pytest.raises(LogicError):
            strict_engine.apply_action(primary_session, {"kind": "back"})

    def test_back_at_first_step_production(self, production_engine: SessionEngine, primary_session: Session):
        """Test back on the first step is a no-op in production."""
        assert production_engine.apply_action(primary_session, {"kind": "back"}) is primary_session

    def test_unknown_action(self, strict_engine: SessionEngine, primary_session: Session):
        """Test an unknown action kind is a ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            strict_engine.apply_action(primary_session, {"kind": "teleport"})

        assert exc_info.value.field == "kind"

    def test_survey_end_moves_to_interventions(self, strict_engine: SessionEngine, primary_session: Session):
        """Test continuing past the last step shows interventions."""
        session = _finish_survey(strict_engine, primary_session)

        assert session.state == SessionState.INTERVENTIONS
        assert session.current_step_id is None
        assert session.completed_step_ids[-1] == "medical-history"

    def test_back_from_interventions(self, strict_engine: SessionEngine, primary_session: Session):
        """Test back from interventions returns to the last applicable step."""
        session = _finish_survey(strict_engine, primary_session)
        session = strict_engine.apply_action(session, {"kind": "back"})

        assert session.state == SessionState.ASSESSMENT
        assert session.current_step_id == "medical-history"

    def test_step_view(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the step view lists prompts and options."""
        view = strict_engine.step_view(primary_session)

        assert view.phase == "A"
        assert [p.name for p in view.prompts] == ["airway_patency"]
        assert view.applicable_options["critical_findings"] == ["airway-obstruction"]
        assert "Suction" in view.applicable_options["interventions"]

    def test_step_view_without_step(self, strict_engine: SessionEngine, primary_session: Session):
        """Test there is no step view outside a survey."""
        session = _finish_survey(strict_engine, primary_session)

        with pytest.raises(LogicError):
            strict_engine.step_view(session)


class TestEarlyExit:
    """Tests for the cardiac-arrest early exit."""

    def test_extended_survey_arrest(self, strict_engine: SessionEngine):
        """Test pulseless and unresponsive jumps straight to interventions."""
        session = strict_engine.submit_patient(strict_engine.start("extended_survey"), {"age_years": 6, "weight_kg": 20})
        session = _continue(strict_engine, session)
        session = _commit(strict_engine, session, "pulse", "absent")
        assert session.state == SessionState.ASSESSMENT

        session = _continue(strict_engine, session)
        session = _commit(strict_engine, session, "consciousness", "unresponsive")

        assert session.state == SessionState.INTERVENTIONS
        assert session.early_exit == "cardiac-arrest"
        assert session.current_step_id is None
        assert "cardiac-arrest" in session.finding_codes
        assert "airway-patency" not in session.visited_step_ids
        assert session.intervention_log[-1].event == "early-exit"
        cpr = session.intervention("cardiac-arrest-cpr")
        assert cpr is not None
        assert cpr.severity.value == "critical"

    def test_primary_survey_arrest(self, strict_engine: SessionEngine, primary_session: Session):
        """Test apnea then an absent pulse ends the primary survey early."""
        session = _walk_to(strict_engine, primary_session, "breathing-pattern")
        session = _commit(strict_engine, session, "breathing_pattern", "apneic")
        session = _walk_to(strict_engine, session, "perfusion")
        session = _commit(strict_engine, session, "pulse", "absent")

        assert session.state == SessionState.INTERVENTIONS
        assert session.early_exit == "cardiac-arrest"
        assert "avpu" not in session.visited_step_ids
        assert session.intervention_ids[0] == "cardiac-arrest-cpr"

    def test_reassessment_after_arrest(self, strict_engine: SessionEngine, primary_session: Session):
        """Test stored arrest answers do not end the reassessment survey again."""
        session = _walk_to(strict_engine, primary_session, "breathing-pattern")
        session = _commit(strict_engine, session, "breathing_pattern", "apneic")
        session = _walk_to(strict_engine, session, "perfusion")
        session = _commit(strict_engine, session, "pulse", "absent")
        assert session.state == SessionState.INTERVENTIONS

        session = _continue(strict_engine, session)
        assert session.state == SessionState.REASSESSMENT
        assert session.current_step_id == "airway-status"

        session = _commit(strict_engine, session, "airway_patency", "patent")

        assert session.state == SessionState.REASSESSMENT
        assert session.current_step_id == "airway-status"
        assert [e.event for e in session.intervention_log].count("early-exit") == 1

    def test_reassessment_arrest_confirmed(self, strict_engine: SessionEngine, primary_session: Session):
        """Test re-entering an absent pulse during reassessment exits again."""
        session = _walk_to(strict_engine, primary_session, "breathing-pattern")
        session = _commit(strict_engine, session, "breathing_pattern", "apneic")
        session = _walk_to(strict_engine, session, "perfusion")
        session = _commit(strict_engine, session, "pulse", "absent")
        session = _continue(strict_engine, session)

        session = _walk_to(strict_engine, session, "perfusion")
        session = _commit(strict_engine, session, "pulse", "absent")

        assert session.state == SessionState.INTERVENTIONS
        assert [e.event for e in session.intervention_log].count("early-exit") == 2

    def test_no_observations_after_exit(self, strict_engine: SessionEngine, primary_session: Session):
        """Test observations are refused once interventions are shown."""
        session = _finish_survey(strict_engine, primary_session)

        with pytest.raises(LogicError):
            _commit(strict_engine, session, "airway_patency", "patent", step_id="airway-status")


class TestCriticalFindingSelection:
    """Tests for provider-selected critical findings."""

    def test_select_and_unselect(self, strict_engine: SessionEngine, primary_session: Session):
        """Test selecting a critical finding option toggles it."""
        action = {"kind": "select_finding", "target": "airway-obstruction"}

        selected = strict_engine.apply_action(primary_session, action)
        assert "airway-obstruction" in selected.finding_codes
        assert "airway-obstruction-relief" in selected.intervention_ids

        cleared = strict_engine.apply_action(selected, action)
        assert "airway-obstruction" not in cleared.finding_codes

    def test_unknown_option(self, strict_engine: SessionEngine, primary_session: Session):
        """Test options not offered by the current step are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            strict_engine.apply_action(primary_session, {"kind": "select_finding", "target": "poor-perfusion"})

        assert exc_info.value.field == "target"


class TestReassessmentLoop:
    """Tests for interventions, reassessment, escalation and resolution."""

    def test_toggle_intervention(self, strict_engine: SessionEngine, primary_session: Session):
        """Test marking an intervention performed and undoing it is logged."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        action = {"kind": "toggle_intervention", "target": "fluid-bolus"}

        performed = strict_engine.apply_action(session, action)
        assert "fluid-bolus" in performed.performed_interventions
        assert performed.intervention_log[-1].event == "performed"
        assert performed.intervention_log[-1].intervention_id == "fluid-bolus"

        undone = strict_engine.apply_action(performed, action)
        assert "fluid-bolus" not in undone.performed_interventions
        assert undone.intervention_log[-1].event == "undone"

    def test_toggle_unknown_intervention(self, strict_engine: SessionEngine, primary_session: Session):
        """Test toggling an id that is not shown is rejected."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)

        with pytest.raises(ValidationError):
            strict_engine.apply_action(session, {"kind": "toggle_intervention", "target": "tranexamic-acid"})

    def test_toggle_during_assessment(self, strict_engine: SessionEngine, primary_session: Session):
        """Test interventions cannot be marked mid-survey."""
        with pytest.raises(LogicError):
            strict_engine.apply_action(primary_session, {"kind": "toggle_intervention", "target": "fluid-bolus"})

    def test_reassessment_cycle(self, strict_engine: SessionEngine, primary_session: Session):
        """Test continue from interventions re-walks the survey and comes back."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        findings_before = session.findings

        session = _continue(strict_engine, session)
        assert session.state == SessionState.REASSESSMENT
        assert session.reassessment_cycle == 1
        assert session.current_step_id == "airway-status"
        assert session.intervention_log[-1].event == "reassessment-started"

        session = _finish_survey(strict_engine, session)
        assert session.state == SessionState.INTERVENTIONS
        assert session.findings == findings_before

    def test_back_from_interventions_in_reassessment(self, strict_engine: SessionEngine, primary_session: Session):
        """Test back after a reassessment returns to the reassessment survey."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        session = _finish_survey(strict_engine, _continue(strict_engine, session))

        session = strict_engine.apply_action(session, {"kind": "back"})

        assert session.state == SessionState.REASSESSMENT
        assert session.current_step_id == "medical-history"

    def test_reassessment_picks_up_new_answers(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a changed answer during reassessment changes the interventions."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        session = _walk_to(strict_engine, _continue(strict_engine, session), "perfusion")

        session = _commit(strict_engine, session, "capillary_refill_s", 2)

        assert "poor-perfusion" not in session.finding_codes
        assert "fluid-bolus" not in session.intervention_ids

    def test_escalate_is_uncapped(self, strict_engine: SessionEngine, primary_session: Session):
        """Test escalation can repeat indefinitely."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)

        for cycle in range(1, 6):
            session = _continue(strict_engine, session)
            session = strict_engine.apply_action(session, {"kind": "escalate"})
            assert session.state == SessionState.INTERVENTIONS
            assert session.reassessment_cycle == cycle
            assert "fluid-bolus" in session.intervention_ids

        assert [e.event for e in session.intervention_log].count("escalated") == 5

    def test_resolve(self, strict_engine: SessionEngine, primary_session: Session):
        """Test resolve closes the case."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        session = strict_engine.apply_action(session, {"kind": "resolve"})

        assert session.state == SessionState.CASE_COMPLETE
        assert session.is_complete
        assert session.intervention_log[-1].event == "resolved"

    def test_resolve_during_assessment(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the case cannot be resolved mid-survey."""
        with pytest.raises(LogicError):
            strict_engine.apply_action(primary_session, {"kind": "resolve"})

    def test_case_complete_is_terminal(self, strict_engine: SessionEngine, primary_session: Session):
        """Test every action after resolution is refused."""
        session = strict_engine.apply_action(_finish_survey(strict_engine, primary_session), {"kind": "resolve"})

        for kind in ("continue", "back", "escalate", "resolve"):
            with pytest.raises(LogicError) as exc_info:
                strict_engine.apply_action(session, {"kind": kind})
            assert exc_info.value.state == "case_complete"

    def test_case_complete_production(self, production_engine: SessionEngine, primary_session: Session):
        """Test actions after resolution are ignored in production."""
        session = production_engine.apply_action(_finish_survey(production_engine, primary_session), {"kind": "resolve"})

        assert production_engine.apply_action(session, {"kind": "escalate"}) is session


class TestPatientCorrection:
    """Tests for correcting patient data mid-case."""

    def test_weight_correction_redoses(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a corrected weight re-doses the shown interventions."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)

        session = strict_engine.correct_patient(session, {"age_years": 6, "weight_kg": 25})

        assert session.intervention("fluid-bolus").title == "Fluid bolus 500 mL"
        assert session.intervention_log[-1].event == "patient-corrected"
        assert session.observations["perfusion"]["capillary_refill_s"] == 4.0

    def test_cursor_leaves_step_that_no_longer_applies(self, strict_engine: SessionEngine):
        """Test correcting an adult to a child moves off the adult-only JVP step."""
        session = strict_engine.submit_patient(strict_engine.start(), {"age_years": 40, "weight_kg": 80})
        session = _walk_to(strict_engine, session, "jvp")

        session = strict_engine.correct_patient(session, {"age_years": 6, "weight_kg": 20})

        assert session.current_step_id == "avpu"

    def test_correction_before_submit(self, strict_engine: SessionEngine):
        """Test correction needs a submitted patient."""
        with pytest.raises(LogicError):
            strict_engine.correct_patient(strict_engine.start(), {"age_years": 2})


class TestTimer:
    """Tests for the resuscitation clock."""

    def test_ticks_before_first_observation_ignored(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the clock does not run before the first commit."""
        assert strict_engine.tick(primary_session, 10) is primary_session

    def test_tick_advances(self, strict_engine: SessionEngine, primary_session: Session):
        """Test ticks add elapsed time once started."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")

        session = strict_engine.tick(session, 5)

        assert session.elapsed_seconds == 5.0

    def test_redelivered_tick_ignored(self, strict_engine: SessionEngine, primary_session: Session):
        """Test a tick id is applied at most once."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")

        once = strict_engine.tick(session, 1, tick_id="t-1")
        twice = strict_engine.tick(once, 1, tick_id="t-1")

        assert twice is once
        assert twice.elapsed_seconds == 1.0
        assert "t-1" in twice.applied_tick_ids

    def test_coalesced_ticks(self, strict_engine: SessionEngine, primary_session: Session):
        """Test one 2 s tick equals two 1 s ticks."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")

        split = strict_engine.tick(strict_engine.tick(session, 1), 1)
        merged = strict_engine.tick(session, 2)

        assert split.elapsed_seconds == merged.elapsed_seconds == 2.0

    @pytest.mark.parametrize("delta", [-1, float("nan"), float("inf"), "5", True])
    def test_invalid_delta(self, strict_engine: SessionEngine, primary_session: Session, delta):
        """Test negative, non-finite and non-numeric deltas are rejected."""
        session = _commit(strict_engine, primary_session, "airway_patency", "patent")

        with pytest.raises(ValidationError) as exc_info:
            strict_engine.tick(session, delta)

        assert exc_info.value.field == "delta_seconds"

    def test_timer_state_is_immutable(self):
        """Test advancing returns a new timer."""
        timer = TimerState().start()
        advanced = timer.advance(3)

        assert timer.elapsed_seconds == 0.0
        assert advanced.elapsed_seconds == 3.0
        assert advanced.elapsed_minutes == 0.05

    def test_log_carries_elapsed_time(self, strict_engine: SessionEngine, primary_session: Session):
        """Test log entries record the clock at the time of the event."""
        session = _walk_to(strict_engine, primary_session, "perfusion")
        session = _commit(strict_engine, session, "capillary_refill_s", 4)
        session = strict_engine.tick(session, 90)
        session = _finish_survey(strict_engine, session)

        session = strict_engine.apply_action(session, {"kind": "toggle_intervention", "target": "fluid-bolus"})

        assert session.intervention_log[-1].elapsed_seconds == 90.0
        assert session.intervention_log[-1].cycle == 0


class TestNeonatalSession:
    """Tests for time-dependent targets in the neonatal algorithm."""

    def test_spo2_target_follows_clock(self, strict_engine: SessionEngine):
        """Test the same SpO2 reading is re-judged as the clock advances."""
        session = strict_engine.submit_patient(strict_engine.start("neonatal"), {"patient_type": "neonate"})
        session = _commit(strict_engine, session, "good_tone", False)
        session = _walk_to(strict_engine, session, "breathing-check")
        session = _commit(strict_engine, session, "spo2", 70)

        assert "spo2-high" in session.finding_codes

        session = strict_engine.tick(session, 600)

        assert "spo2-high" not in session.finding_codes
        assert "spo2-low" in session.finding_codes

    def test_neonatal_initial_steps(self, strict_engine: SessionEngine):
        """Test a non-vigorous newborn gets the initial steps."""
        session = strict_engine.submit_patient(strict_engine.start("neonatal"), {"patient_type": "neonate"})
        session = _commit(strict_engine, session, "good_tone", False)

        assert "neonatal-initial-steps" in session.intervention_ids
        assert session.current_step_id == "initial-assessment"


class TestMissingReference:
    """Tests for the reference-lookup miss path."""

    def test_domain_error_becomes_marker(self, monkeypatch, strict_engine: SessionEngine):
        """Test a reference lookup miss yields the marker and manual judgement."""
        def no_band(patient, elapsed_seconds=None):
            raise DomainError("No reference band", calculation="lookup_band")

        monkeypatch.setattr("resusgps.core.session.engine.reference_ranges", no_band)

        session = strict_engine.submit_patient(strict_engine.start(), {"age_years": 6, "weight_kg": 20})

        assert NO_REFERENCE_AVAILABLE in session.finding_codes
        assert "manual-clinical-judgement" in session.intervention_ids
        assert strict_engine.reference_ranges(session) is None


class TestExport:
    """Tests for the export snapshot."""

    def test_schema(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the export carries every top-level section."""
        session = _poor_perfusion_interventions(strict_engine, primary_session)
        session = strict_engine.apply_action(session, {"kind": "toggle_intervention", "target": "fluid-bolus"})

        data = strict_engine.export(session).model_dump()

        assert set(data) == {
            "schema_version", "session_meta", "observations", "findings", "interventions", "intervention_log",
        }
        assert data["session_meta"]["session_id"] == "test-session"
        assert data["session_meta"]["state"] == "interventions"
        assert data["session_meta"]["patient"]["weight_kg"] == 20
        assert {"step_id": "perfusion", "field": "capillary_refill_s", "value": 4.0} in data["observations"]
        assert "poor-perfusion" in [f["code"] for f in data["findings"]]
        bolus = next(i for i in data["interventions"] if i["id"] == "fluid-bolus")
        assert bolus["performed"] is True
        assert data["intervention_log"][-1]["event"] == "performed"

    def test_multi_select_exported_as_list(self, strict_engine: SessionEngine, primary_session: Session):
        """Test multi-select answers serialise as lists."""
        session = _commit(strict_engine, primary_session, "airway_patency", "at_risk")
        session = _continue(strict_engine, session)
        session = _commit(strict_engine, session, "airway_signs", ["stridor"])

        records = strict_engine.export(session).observations

        assert any(r.field == "airway_signs" and r.value == ["stridor"] for r in records)

    def test_export_is_frozen(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the snapshot cannot be modified."""
        export = strict_engine.export(primary_session)

        with pytest.raises(PydanticValidationError):
            export.schema_version = "2.0"

    def test_json_round_trip(self, strict_engine: SessionEngine, primary_session: Session):
        """Test the export serialises to JSON."""
        payload = strict_engine.export(primary_session).model_dump_json()

        assert '"protocol":"primary_survey"' in payload
