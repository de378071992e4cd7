"""
Unit Tests for the Protocol Layer

Tests for step templates, field validation, applicability predicates and
the pure sequencer functions.
"""
import pytest

from resusgps.core.patient import PatientContext
from resusgps.core.protocols import (
    AssessmentStep,
    Phase,
    ProtocolDefinition,
    ProtocolId,
    applicable_steps,
    available_protocols,
    check_early_exit,
    first_step,
    get_protocol,
    next_step,
    previous_step,
)
from resusgps.core.protocols.base import numeric
from resusgps.core.protocols import fields as f
from resusgps.utils import ValidationError


def _ids(steps):
    return [s.id for s in steps]


class TestRegistry:
    """Tests for protocol lookup."""

    def test_all_variants_registered(self):
        """Test the four protocol variants are available."""
        assert set(available_protocols()) == set(ProtocolId)

    def test_lookup_by_string(self):
        """Test protocols can be looked up by their string id."""
        assert get_protocol("trauma").protocol_id == ProtocolId.TRAUMA

    def test_unknown_protocol(self):
        """Test an unknown protocol id raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            get_protocol("pediatric_triage")

        assert exc_info.value.field == "protocol"
        assert "neonatal" in exc_info.value.details["available"]

    def test_unknown_step(self):
        """Test an unknown step id raises ValidationError."""
        with pytest.raises(ValidationError):
            get_protocol("primary_survey").step("nope")

    def test_field_names_unique_per_protocol(self):
        """Test a protocol refuses two steps declaring the same field."""
        with pytest.raises(ValueError):
            ProtocolDefinition(
                protocol_id=ProtocolId.PRIMARY_SURVEY,
                title="broken",
                steps=(
                    AssessmentStep("one", Phase.AIRWAY, "One", prompts=(f.AIRWAY_PATENCY,)),
                    AssessmentStep("two", Phase.AIRWAY, "Two", prompts=(f.AIRWAY_PATENCY,)),
                ),
            )


class TestFieldValidation:
    """Tests for FieldSpec.validate."""

    def test_numeric_in_range(self):
        """Test a plausible number is accepted and normalised."""
        assert f.CAPILLARY_REFILL.validate(4) == 4.0
        assert f.HEART_RATE.validate(120.0) == 120

    def test_numeric_out_of_range(self):
        """Test implausible numbers are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            f.SPO2.validate(140)

        assert exc_info.value.field == "spo2"
        assert exc_info.value.details["maximum"] == 100

    def test_numeric_rejects_bool_and_text(self):
        """Test booleans and strings are not numbers."""
        with pytest.raises(ValidationError):
            f.HEART_RATE.validate(True)
        with pytest.raises(ValidationError):
            f.HEART_RATE.validate("120")

    def test_integer_field_rejects_fraction(self):
        """Test integer fields reject fractional values."""
        with pytest.raises(ValidationError):
            f.RESPIRATORY_RATE.validate(22.5)

    def test_non_finite_rejected(self):
        """Test NaN is never accepted."""
        with pytest.raises(ValidationError):
            numeric("x", "X", "u", 0, 10).validate(float("nan"))

    def test_categorical(self):
        """Test categorical answers must be one of the options."""
        assert f.PULSE.validate("absent") == "absent"
        with pytest.raises(ValidationError):
            f.PULSE.validate("faint")

    def test_boolean(self):
        """Test boolean fields only take True/False."""
        assert f.TRAUMA_FLAG.validate(False) is False
        with pytest.raises(ValidationError):
            f.TRAUMA_FLAG.validate("yes")

    def test_multi_select_deduplicates(self):
        """Test multi-select answers are de-duplicated in order."""
        assert f.AIRWAY_SIGNS.validate(["stridor", "drooling", "stridor"]) == ("stridor", "drooling")

    def test_multi_select_rejects_unknown(self):
        """Test unknown options and bare strings are rejected."""
        with pytest.raises(ValidationError):
            f.AIRWAY_SIGNS.validate(["wheeze"])
        with pytest.raises(ValidationError):
            f.AIRWAY_SIGNS.validate("stridor")


class TestPrimarySurveySequencing:
    """Tests for step traversal in the primary survey."""

    def test_first_step_is_airway(self, child_20kg: PatientContext):
        """Test the survey opens on airway status."""
        assert first_step(get_protocol("primary_survey"), child_20kg, {}) == "airway-status"

    def test_airway_observations_skipped_when_patent(self, child_20kg: PatientContext):
        """Test a patent airway skips the airway-observations step."""
        protocol = get_protocol("primary_survey")
        obs = {"airway-status": {"airway_patency": "patent"}}

        assert next_step(protocol, "airway-status", child_20kg, obs) == "breathing-rate"

    def test_airway_observations_open_when_obstructed(self, child_20kg: PatientContext):
        """Test an obstructed airway opens the airway-observations step."""
        protocol = get_protocol("primary_survey")
        obs = {"airway-status": {"airway_patency": "obstructed"}}

        assert next_step(protocol, "airway-status", child_20kg, obs) == "airway-observations"

    def test_jvp_only_for_adults(self, child_20kg: PatientContext, adult: PatientContext):
        """Test the JVP step applies to adult patients only."""
        protocol = get_protocol("primary_survey")

        assert next_step(protocol, "blood-pressure", child_20kg, {}) == "avpu"
        assert next_step(protocol, "blood-pressure", adult, {}) == "jvp"

    def test_toxin_history_needs_trauma_flag(self, child_20kg: PatientContext):
        """Test toxin history opens only once trauma has been flagged."""
        protocol = get_protocol("primary_survey")
        no_trauma = {"trauma-history": {"trauma_flag": False}}
        trauma = {"trauma-history": {"trauma_flag": True}}

        assert next_step(protocol, "trauma-history", child_20kg, no_trauma) == "medical-history"
        assert next_step(protocol, "trauma-history", child_20kg, trauma) == "toxin-history"

    def test_applicability_evaluated_at_traversal_time(self, child_20kg: PatientContext):
        """Test the effective step list changes as answers change."""
        protocol = get_protocol("primary_survey")
        before = _ids(applicable_steps(protocol, child_20kg, {}))
        after = _ids(applicable_steps(protocol, child_20kg, {"airway-status": {"airway_patency": "at_risk"}}))

        assert "airway-observations" not in before
        assert "airway-observations" in after

    def test_previous_step(self, child_20kg: PatientContext):
        """Test back navigation skips non-applicable steps."""
        protocol = get_protocol("primary_survey")
        obs = {"airway-status": {"airway_patency": "patent"}}

        assert previous_step(protocol, "breathing-rate", child_20kg, obs) == "airway-status"
        assert previous_step(protocol, "airway-status", child_20kg, obs) is None

    def test_last_step_has_no_next(self, child_20kg: PatientContext):
        """Test the survey ends after medical history."""
        protocol = get_protocol("primary_survey")

        assert next_step(protocol, "medical-history", child_20kg, {}) is None


class TestEarlyExit:
    """Tests for the cardiac-arrest early exit."""

    def test_pulseless_unresponsive(self):
        """Test absent pulse with unresponsiveness triggers the exit."""
        protocol = get_protocol("extended_survey")
        obs = {
            "signs-pulse": {"pulse": "absent"},
            "signs-responsiveness": {"consciousness": "unresponsive"},
        }

        rule = check_early_exit(protocol, obs)

        assert rule is not None
        assert rule.name == "cardiac-arrest"

    def test_pulseless_apneic(self):
        """Test absent pulse with apnea triggers the exit."""
        protocol = get_protocol("primary_survey")
        obs = {"breathing-pattern": {"breathing_pattern": "apneic"}, "perfusion": {"pulse": "absent"}}

        assert check_early_exit(protocol, obs).name == "cardiac-arrest"

    def test_absent_pulse_alone(self):
        """Test absent pulse alone does not end the survey."""
        protocol = get_protocol("primary_survey")

        assert check_early_exit(protocol, {"perfusion": {"pulse": "absent"}}) is None

    def test_already_triggered_unrelated_commit(self):
        """Test an unrelated answer does not re-fire an exit that was already true."""
        protocol = get_protocol("primary_survey")
        before = {"breathing-pattern": {"breathing_pattern": "apneic"}, "perfusion": {"pulse": "absent"}}
        after = dict(before, **{"airway-status": {"airway_patency": "patent"}})

        assert check_early_exit(protocol, after, before, "airway_patency") is None

    def test_commit_that_completes_pattern(self):
        """Test the commit that completes the pattern fires the exit."""
        protocol = get_protocol("primary_survey")
        before = {"breathing-pattern": {"breathing_pattern": "apneic"}}
        after = dict(before, perfusion={"pulse": "absent"})

        assert check_early_exit(protocol, after, before, "pulse").name == "cardiac-arrest"

    def test_watched_field_refires(self):
        """Test re-entering a field the rule reads fires it again."""
        protocol = get_protocol("primary_survey")
        obs = {"breathing-pattern": {"breathing_pattern": "apneic"}, "perfusion": {"pulse": "absent"}}

        assert check_early_exit(protocol, obs, obs, "pulse").name == "cardiac-arrest"

    def test_neonatal_has_no_early_exit(self):
        """Test the neonatal algorithm handles bradycardia in its own steps."""
        assert check_early_exit(get_protocol("neonatal"), {"x": {"pulse": "absent"}}) is None


class TestTraumaSequencing:
    """Tests for the trauma primary survey."""

    def test_default_steps(self, child_20kg: PatientContext):
        """Test hemorrhage class and burns stay closed without their triggers."""
        ids = _ids(applicable_steps(get_protocol("trauma"), child_20kg, {}))

        assert ids == [
            "mechanism", "trauma-airway", "trauma-breathing",
            "trauma-circulation", "trauma-disability", "trauma-exposure",
        ]

    def test_burn_mechanism_opens_burns_step(self, child_20kg: PatientContext):
        """Test the burns step opens for a burn mechanism."""
        obs = {"mechanism": {"mechanism": "burn"}}

        assert "burns" in _ids(applicable_steps(get_protocol("trauma"), child_20kg, obs))

    def test_bleeding_opens_hemorrhage_class(self, child_20kg: PatientContext):
        """Test uncontrolled bleeding opens hemorrhage classification."""
        protocol = get_protocol("trauma")
        obs = {"trauma-circulation": {"external_bleeding": "uncontrolled"}}

        assert next_step(protocol, "trauma-circulation", child_20kg, obs) == "hemorrhage-class"

    def test_unstable_pelvis_opens_hemorrhage_class(self, child_20kg: PatientContext):
        """Test an unstable pelvis opens hemorrhage classification."""
        obs = {"trauma-circulation": {"pelvis": "unstable", "external_bleeding": "none"}}

        assert "hemorrhage-class" in _ids(applicable_steps(get_protocol("trauma"), child_20kg, obs))


class TestNeonatalSequencing:
    """Tests for branching in the neonatal algorithm."""

    def test_vigorous_newborn_gets_routine_care(self, neonate: PatientContext):
        """Test a vigorous newborn goes to routine care only."""
        obs = {"initial-assessment": {"term_gestation": True, "good_tone": True, "breathing_or_crying": True}}

        assert _ids(applicable_steps(get_protocol("neonatal"), neonate, obs)) == [
            "initial-assessment", "routine-care",
        ]

    def test_poor_tone_opens_initial_steps(self, neonate: PatientContext):
        """Test any 'no' opens the initial steps and breathing check."""
        protocol = get_protocol("neonatal")
        obs = {"initial-assessment": {"term_gestation": True, "good_tone": False, "breathing_or_crying": True}}

        assert next_step(protocol, "initial-assessment", neonate, obs) == "initial-steps"
        assert next_step(protocol, "initial-steps", neonate, obs) == "breathing-check"

    def test_low_heart_rate_opens_ppv(self, neonate: PatientContext):
        """Test heart rate below 100 leads to PPV and post-resuscitation care."""
        obs = {
            "initial-assessment": {"good_tone": False},
            "breathing-check": {"apnea_or_gasping": False, "heart_rate": 80},
        }

        ids = _ids(applicable_steps(get_protocol("neonatal"), neonate, obs))

        assert "ppv" in ids
        assert "ppv-reassess" in ids
        assert "post-resuscitation" in ids
        assert "labored-breathing" not in ids
        assert "chest-compressions" not in ids

    def test_compressions_then_epinephrine(self, neonate: PatientContext):
        """Test HR < 60 after PPV opens compressions, and again after compressions opens epinephrine."""
        protocol = get_protocol("neonatal")
        obs = {
            "initial-assessment": {"good_tone": False},
            "breathing-check": {"apnea_or_gasping": True},
            "ppv-reassess": {"heart_rate_after_ppv": 50},
        }

        assert next_step(protocol, "ppv-reassess", neonate, obs) == "chest-compressions"

        obs["chest-compressions"] = {"heart_rate_after_compressions": 40}
        assert next_step(protocol, "chest-compressions", neonate, obs) == "epinephrine"

    def test_corrective_steps_between_60_and_100(self, neonate: PatientContext):
        """Test HR 60-99 after PPV opens ventilation corrective steps."""
        obs = {
            "initial-assessment": {"good_tone": False},
            "breathing-check": {"apnea_or_gasping": True},
            "ppv-reassess": {"heart_rate_after_ppv": 80},
        }

        assert next_step(get_protocol("neonatal"), "ppv-reassess", neonate, obs) == "mr-sopa"

    def test_labored_breathing_branch(self, neonate: PatientContext):
        """Test a breathing newborn with HR >= 100 is asked about labored breathing."""
        obs = {
            "initial-assessment": {"good_tone": False},
            "breathing-check": {"apnea_or_gasping": False, "heart_rate": 130},
        }

        assert next_step(get_protocol("neonatal"), "breathing-check", neonate, obs) == "labored-breathing"
