"""
Pytest Configuration and Fixtures

Shared fixtures for protocol engine tests.
"""
import pytest
from pathlib import Path
import sys

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from resusgps.config import EngineSettings, configure_logging
from resusgps.core.patient import PatientContext, resolve_patient_context
from resusgps.core.session import Session, SessionEngine

configure_logging()


@pytest.fixture
def toddler() -> PatientContext:
    """Two-year-old with weight estimated from age."""
    return resolve_patient_context({"age_years": 2, "age_months": 0})


@pytest.fixture
def child_20kg() -> PatientContext:
    """Six-year-old weighed at 20 kg."""
    return resolve_patient_context({"age_years": 6, "weight_kg": 20})


@pytest.fixture
def adult() -> PatientContext:
    """Adult with a measured weight."""
    return resolve_patient_context({"age_years": 40, "weight_kg": 80})


@pytest.fixture
def neonate() -> PatientContext:
    """Term newborn, weight from the gestational table."""
    return resolve_patient_context({"age_months": 0, "patient_type": "neonate", "gestational_weeks": 40})


@pytest.fixture
def strict_engine() -> SessionEngine:
    """Engine that raises on impossible transitions."""
    return SessionEngine(EngineSettings(environment="development", strict_transitions=True))


@pytest.fixture
def production_engine() -> SessionEngine:
    """Engine that logs and ignores impossible transitions."""
    return SessionEngine(EngineSettings(environment="production", strict_transitions=False))


@pytest.fixture
def primary_session(strict_engine: SessionEngine) -> Session:
    """Primary survey for a 20 kg child, positioned on the first step."""
    session = strict_engine.start("primary_survey", session_id="test-session")
    return strict_engine.submit_patient(session, {"age_years": 6, "weight_kg": 20})
