"""
Custom Exception Hierarchy

Provides specific exception types for the three failure categories of
the protocol engine, each carrying structured error information.
"""
from typing import Optional, Dict, Any


class ProtocolEngineError(Exception):
    """Base exception for all protocol engine errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for the presentation layer."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ProtocolEngineError):
    """Malformed or out-of-range patient or observation input."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})}
        )
        self.field = field


class DomainError(ProtocolEngineError):
    """Calculator input outside the domain of a formula or lookup table."""

    def __init__(
        self,
        message: str,
        calculation: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="DOMAIN_ERROR",
            details={"calculation": calculation, **(details or {})}
        )
        self.calculation = calculation


class LogicError(ProtocolEngineError):
    """Impossible state transition requested by the caller."""

    def __init__(
        self,
        message: str,
        state: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="LOGIC_ERROR",
            details={"state": state, **(details or {})}
        )
        self.state = state
