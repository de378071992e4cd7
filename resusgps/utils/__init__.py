"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    ProtocolEngineError,
    ValidationError,
    DomainError,
    LogicError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ProtocolEngineError",
    "ValidationError",
    "DomainError",
    "LogicError",
]
