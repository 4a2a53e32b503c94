"""Orchestration layer: evaluator selection, dispatch, aggregation and sessions."""

from .aggregator import ResultAggregator
from .coordinator import DispatchCoordinator, DispatchOutcome
from .registry import EvaluatorRegistry
from .session import SessionState, ValidationSession

__all__ = [
    "DispatchCoordinator",
    "DispatchOutcome",
    "EvaluatorRegistry",
    "ResultAggregator",
    "SessionState",
    "ValidationSession",
]
