"""
Unit Tests for the Patient Layer

Tests for age-based weight estimation, patient type inference and input
validation in the PatientContext resolver.
"""
import math

import pytest

from resusgps.core.patient import (
    PatientContext,
    PatientType,
    WeightFormula,
    estimate_weight,
    estimate_weight_standard,
    estimate_weight_trauma,
    infer_patient_type,
    resolve_patient_context,
)
from resusgps.models.schemas import PatientContextInput
from resusgps.utils import ValidationError


class TestWeightEstimation:
    """Tests for the age-to-weight formulas."""

    def test_two_year_old_weighs_twelve_kg(self):
        """Test (2 + 4) x 2 = 12 kg for a two-year-old."""
        patient = resolve_patient_context({"age_years": 2, "age_months": 0})

        assert patient.weight_kg == 12.0
        assert patient.weight_estimated is True
        assert patient.patient_type == PatientType.CHILD

    def test_infant_formula(self):
        """Test (months + 9) / 2 under one year."""
        assert estimate_weight_standard(6) == 7.5
        assert estimate_weight_standard(0) == 4.5

    def test_school_age_formula(self):
        """Test years x 4 from five years."""
        assert estimate_weight_standard(60) == 20.0
        assert estimate_weight_standard(8 * 12) == 32.0

    def test_standard_formula_is_monotonic(self):
        """Test estimated weight never drops as age increases."""
        weights = [estimate_weight_standard(m) for m in range(0, 217)]

        assert all(b >= a for a, b in zip(weights, weights[1:]))

    def test_trauma_formula_is_monotonic(self):
        """Test the trauma formula never drops as age increases."""
        weights = [estimate_weight_trauma(m) for m in range(0, 217)]

        assert all(b >= a for a, b in zip(weights, weights[1:]))

    @pytest.mark.parametrize("formula", [WeightFormula.STANDARD, WeightFormula.TRAUMA])
    def test_resolved_weight_is_monotonic(self, formula):
        """Test resolved weight never drops from birth to 18 years, neonates included."""
        patients = [resolve_patient_context({"age_months": m}, formula) for m in range(0, 217)]
        weights = [p.weight_kg for p in patients]

        assert patients[0].patient_type == PatientType.NEONATE
        assert patients[-1].patient_type == PatientType.ADOLESCENT
        assert all(b >= a for a, b in zip(weights, weights[1:]))

    def test_trauma_formula_differs_for_toddlers(self):
        """Test the trauma survey uses 2 x (years + 5) between 13 and 60 months."""
        assert estimate_weight_trauma(24) == 14.0
        assert estimate_weight_trauma(12) == 10.5
        assert estimate_weight_standard(24) == 12.0

    def test_formula_selection(self):
        """Test estimate_weight dispatches on the formula."""
        assert estimate_weight(24, WeightFormula.TRAUMA) == 14.0
        assert estimate_weight(24) == 12.0

    def test_resolver_uses_protocol_formula(self):
        """Test the resolver applies the formula it is given."""
        patient = resolve_patient_context({"age_years": 2}, WeightFormula.TRAUMA)

        assert patient.weight_kg == 14.0

    def test_measured_weight_wins(self):
        """Test a measured weight is used as-is."""
        patient = resolve_patient_context({"age_years": 2, "weight_kg": 13.4})

        assert patient.weight_kg == 13.4
        assert patient.weight_estimated is False


class TestNeonates:
    """Tests for newborn weight from gestational age."""

    def test_term_newborn_weight(self, neonate: PatientContext):
        """Test a 40-week newborn resolves to 3.5 kg."""
        assert neonate.patient_type == PatientType.NEONATE
        assert neonate.weight_kg == 3.5
        assert neonate.gestational_weeks == 40

    def test_preterm_weight_from_table(self):
        """Test a 30-week newborn uses the table row for 30 weeks."""
        patient = resolve_patient_context({"age_months": 0, "patient_type": "neonate", "gestational_weeks": 30})

        assert patient.weight_kg == 1.3

    def test_gestation_defaults_to_term(self):
        """Test a neonate without gestational age is treated as term."""
        patient = resolve_patient_context({"patient_type": "neonate"})

        assert patient.gestational_weeks == 40
        assert patient.weight_kg == 3.5

    def test_neonate_older_than_one_month_rejected(self):
        """Test the neonatal type is limited to the first month."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_months": 2, "patient_type": "neonate"})

        assert exc_info.value.field == "age_months"


class TestPatientTypeInference:
    """Tests for patient type inference from age."""

    @pytest.mark.parametrize("age_months,expected", [
        (0.5, PatientType.NEONATE),
        (6, PatientType.INFANT),
        (24, PatientType.CHILD),
        (144, PatientType.ADOLESCENT),
        (216, PatientType.ADOLESCENT),
        (240, PatientType.ADULT),
    ])
    def test_bands(self, age_months, expected):
        """Test age bands map to the expected type."""
        assert infer_patient_type(age_months) == expected

    def test_total_age_folds_years_and_months(self):
        """Test age_years and age_months are summed."""
        patient = resolve_patient_context({"age_years": 1, "age_months": 6})

        assert patient.age_months == 18
        assert patient.whole_years == 1


class TestAdultPatients:
    """Tests for adult and pregnant patients."""

    def test_adult_requires_measured_weight(self):
        """Test an adult without weight is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_years": 40})

        assert exc_info.value.field == "weight_kg"

    def test_pregnant_patient(self):
        """Test a pregnant patient keeps her explicit type."""
        patient = resolve_patient_context({"age_years": 30, "patient_type": "pregnant", "weight_kg": 70})

        assert patient.patient_type == PatientType.PREGNANT
        assert patient.patient_type.is_pediatric is False


class TestResolverValidation:
    """Tests for rejected patient input."""

    def test_negative_age(self):
        """Test negative ages are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_years": -1})

        assert exc_info.value.field == "age_years"

    def test_non_finite_age(self):
        """Test NaN ages are rejected."""
        with pytest.raises(ValidationError):
            resolve_patient_context({"age_years": math.nan})

    def test_pediatric_age_above_eighteen(self):
        """Test an explicit pediatric type above 18 years is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_years": 19, "patient_type": "child"})

        assert exc_info.value.field == "age_years"

    def test_missing_age(self):
        """Test age is required outside the neonatal flow."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"weight_kg": 12})

        assert exc_info.value.field == "age_years"

    def test_zero_weight(self):
        """Test a measured weight of zero is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_years": 2, "weight_kg": 0})

        assert exc_info.value.field == "weight_kg"

    def test_malformed_input(self):
        """Test non-numeric input surfaces as a ValidationError, not a pydantic error."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_patient_context({"age_years": "two"})

        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.details["errors"]

    def test_accepts_model_instance(self):
        """Test a PatientContextInput can be passed directly."""
        patient = resolve_patient_context(PatientContextInput(age_years=2))

        assert patient.weight_kg == 12.0

    def test_context_is_frozen(self, toddler: PatientContext):
        """Test the resolved context cannot be mutated."""
        with pytest.raises(AttributeError):
            toddler.weight_kg = 99

    def test_to_dict(self, toddler: PatientContext):
        """Test the serialised form carries type and estimate flag."""
        data = toddler.to_dict()

        assert data["patient_type"] == "child"
        assert data["weight_kg"] == 12.0
        assert data["weight_estimated"] is True
        assert data["age_years"] == 2.0
