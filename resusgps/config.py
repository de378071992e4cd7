"""
resusgps — Configuration
========================
Centralised engine settings. Values come from the process environment,
optionally seeded from a project-level .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from resusgps.utils.logging import setup_logging

# ── Paths ───────────────────────────────────────────────────────────────
PACKAGE_DIR = Path(__file__).resolve().parent                  # resusgps/
PROJECT_ROOT = PACKAGE_DIR.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


ENVIRONMENT: str = os.getenv("RESUSGPS_ENV", "development").lower()
LOG_LEVEL: str = os.getenv("RESUSGPS_LOG_LEVEL", "INFO")
LOG_FILE: Optional[str] = os.getenv("RESUSGPS_LOG_FILE") or None

# Impossible transitions raise LogicError in development, no-op in production
STRICT_TRANSITIONS: bool = _env_flag("RESUSGPS_STRICT_TRANSITIONS", ENVIRONMENT != "production")

DEFAULT_PROTOCOL: str = os.getenv("RESUSGPS_DEFAULT_PROTOCOL", "primary_survey")


@dataclass(frozen=True)
class EngineSettings:
    """Runtime switches consumed by the session engine."""
    environment: str = ENVIRONMENT
    strict_transitions: bool = STRICT_TRANSITIONS
    default_protocol: str = DEFAULT_PROTOCOL

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Re-read the environment (useful after tests patch os.environ)."""
        environment = os.getenv("RESUSGPS_ENV", "development").lower()
        return cls(
            environment=environment,
            strict_transitions=_env_flag(
                "RESUSGPS_STRICT_TRANSITIONS", environment != "production"
            ),
            default_protocol=os.getenv("RESUSGPS_DEFAULT_PROTOCOL", "primary_survey"),
        )


def configure_logging() -> None:
    """Install the package log handlers from RESUSGPS_LOG_LEVEL and RESUSGPS_LOG_FILE."""
    setup_logging(
        os.getenv("RESUSGPS_LOG_LEVEL", "INFO"),
        os.getenv("RESUSGPS_LOG_FILE") or None,
    )
