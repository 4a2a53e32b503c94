"""Crew pay claim validation: evaluator orchestration and result aggregation."""

from .models import (
    AgentInput,
    AgentResult,
    AgentStatus,
    AgentType,
    ClaimInput,
    ContractReference,
    CrewData,
    HistoricalData,
    Issue,
    OverallStatus,
    Severity,
    TripData,
    ValidationResult,
)
from .utils.errors import ConfigurationError, EvaluatorError, PayrollValidationError
from .validator import ClaimValidator, validate, validate_async

__version__ = "0.1.0"

__all__ = [
    "AgentInput",
    "AgentResult",
    "AgentStatus",
    "AgentType",
    "ClaimInput",
    "ClaimValidator",
    "ConfigurationError",
    "ContractReference",
    "CrewData",
    "EvaluatorError",
    "HistoricalData",
    "Issue",
    "OverallStatus",
    "PayrollValidationError",
    "Severity",
    "TripData",
    "ValidationResult",
    "validate",
    "validate_async",
]
