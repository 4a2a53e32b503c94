"""Validation session: one claim's lifecycle from dispatch to decision."""

import dataclasses
import logging
import time
import uuid
from enum import Enum
from typing import List, Optional, Tuple

from ..models.claim import AgentInput
from ..models.result import ValidationResult
from ..utils.errors import ConfigurationError
from ..utils.logging import log_context
from .aggregator import ResultAggregator
from .coordinator import DispatchCoordinator
from .registry import EvaluatorRegistry

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CREATED = "created"
    DISPATCHING = "dispatching"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TRANSITIONS = {
    SessionState.CREATED: {SessionState.DISPATCHING, SessionState.ABORTED},
    SessionState.DISPATCHING: {SessionState.AGGREGATING},
    SessionState.AGGREGATING: {SessionState.COMPLETED, SessionState.ABORTED},
    SessionState.COMPLETED: set(),
    SessionState.ABORTED: set(),
}


class ValidationSession:
    """
    Single-use state machine for validating one claim.

    created -> dispatching -> aggregating -> completed, or created -> aborted
    on a configuration error. A session yields exactly one ValidationResult
    or raises exactly one ConfigurationError, and cannot be run twice.

    Attributes:
        session_id: Short random identifier used in logs
        state: Current SessionState
        history: (state, monotonic time) for every state entered
        result: The ValidationResult once completed
    """

    def __init__(
        self,
        registry: EvaluatorRegistry,
        coordinator: DispatchCoordinator,
        aggregator: ResultAggregator,
        session_id: Optional[str] = None,
    ):
        self.registry = registry
        self.coordinator = coordinator
        self.aggregator = aggregator
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.result: Optional[ValidationResult] = None
        self._created_at = time.monotonic()
        self.state = SessionState.CREATED
        self.history: List[Tuple[SessionState, float]] = [(SessionState.CREATED, self._created_at)]

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.ABORTED)

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid session transition {self.state.value} -> {new_state.value}")
        logger.debug(f"Session {self.session_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append((new_state, time.monotonic()))

    async def run(self, agent_input: AgentInput) -> ValidationResult:
        """
        Validate one claim.

        Args:
            agent_input: Claim and context for this session

        Returns:
            ValidationResult

        Raises:
            ConfigurationError: Unknown claim type or missing claim id; the
                session ends in ABORTED and nothing is dispatched
            RuntimeError: If the session was already run
        """
        if self.state != SessionState.CREATED:
            raise RuntimeError(f"Session {self.session_id} already used (state={self.state.value})")

        claim = agent_input.claim
        with log_context(claim_id=claim.id or "-", session_id=self.session_id):
            try:
                if not claim.id:
                    raise ConfigurationError.missing_identifier("claim_id")
                agent_types = self.registry.select_evaluators(claim, agent_input.trip)
            except ConfigurationError as e:
                logger.error(f"Session {self.session_id} aborted: {e}")
                self._transition(SessionState.ABORTED)
                raise

            self._transition(SessionState.DISPATCHING)
            outcome = await self.coordinator.dispatch(agent_input, agent_types)

            self._transition(SessionState.AGGREGATING)
            try:
                result = self.aggregator.aggregate(
                    claim.id,
                    outcome.ordered_results(),
                    historical_data=agent_input.historical_data,
                    timed_out=outcome.timed_out,
                    order=outcome.order,
                )
            except ConfigurationError as e:
                logger.error(f"Session {self.session_id} aborted during aggregation: {e}")
                self._transition(SessionState.ABORTED)
                raise

            processing_time = (time.monotonic() - self._created_at) * 1000
            self.result = dataclasses.replace(result, processing_time=processing_time)
            self._transition(SessionState.COMPLETED)
            logger.info(
                f"Session {self.session_id} completed in {processing_time:.0f}ms: "
                f"{self.result.overall_status.value}"
            )
            return self.result
