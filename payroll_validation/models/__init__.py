"""Data models for claims, context, and evaluator verdicts."""

from .claim import AgentInput, ClaimInput, CrewData, HistoricalData, TripData, normalize_claim_type
from .result import (
    AgentResult,
    AgentStatus,
    AgentType,
    ContractReference,
    Issue,
    OverallStatus,
    Severity,
    ValidationResult,
)

__all__ = [
    "AgentInput",
    "AgentResult",
    "AgentStatus",
    "AgentType",
    "ClaimInput",
    "ContractReference",
    "CrewData",
    "HistoricalData",
    "Issue",
    "OverallStatus",
    "Severity",
    "TripData",
    "ValidationResult",
    "normalize_claim_type",
]
