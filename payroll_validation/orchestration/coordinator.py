"""Dispatch coordinator: concurrent, isolated evaluator invocation."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..agents.base import BaseEvaluator
from ..models.claim import AgentInput
from ..models.result import AgentResult, AgentStatus, AgentType
from ..utils.concurrency import ConcurrencyLimiter
from ..utils.errors import ErrorType, EvaluatorError, PayrollValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOutcome:
    """
    Everything one dispatch produced.

    Attributes:
        results: Exactly one AgentResult per requested AgentType
        order: Requested dispatch order
        timed_out: True when the session deadline fired before all reported
    """
    results: Dict[AgentType, AgentResult]
    order: Tuple[AgentType, ...]
    timed_out: bool = False

    def ordered_results(self) -> List[AgentResult]:
        """Results in dispatch order, independent of completion order."""
        return [self.results[agent_type] for agent_type in self.order]


def error_result(
    agent_type: AgentType,
    agent_name: str,
    error: PayrollValidationError,
    duration_ms: float,
    summary: Optional[str] = None,
) -> AgentResult:
    """Synthetic error AgentResult; carries no confidence."""
    return AgentResult(
        agent_type=agent_type,
        agent_name=agent_name,
        status=AgentStatus.ERROR,
        duration=duration_ms,
        summary=summary or error.context.message,
        details=(str(error),),
        confidence=None,
        data={"error": error.to_dict()},
    )


class DispatchCoordinator:
    """
    Runs the selected evaluators concurrently and returns one result each.

    Every invocation is wrapped so that a timeout, a fault or a malformed
    result becomes a synthetic error AgentResult. The session deadline bounds
    the whole dispatch, including time spent waiting for a concurrency slot.

    Attributes:
        evaluators: Evaluator per AgentType
        limiter: Process-wide limiter owned by the reasoning backend client
        evaluator_timeout_ms: Per-evaluator timeout (T_eval)
        session_timeout_ms: Global session deadline (T_session)
    """

    def __init__(
        self,
        evaluators: Mapping[AgentType, BaseEvaluator],
        limiter: ConcurrencyLimiter,
        evaluator_timeout_ms: int = 30000,
        session_timeout_ms: int = 60000,
    ):
        if evaluator_timeout_ms <= 0 or session_timeout_ms < evaluator_timeout_ms:
            raise ValueError(
                f"Require session_timeout_ms >= evaluator_timeout_ms > 0, got "
                f"{session_timeout_ms} and {evaluator_timeout_ms}"
            )
        self.evaluators = evaluators
        self.limiter = limiter
        self.evaluator_timeout_ms = evaluator_timeout_ms
        self.session_timeout_ms = session_timeout_ms

    async def dispatch(self, agent_input: AgentInput, agent_types: Sequence[AgentType]) -> DispatchOutcome:
        """
        Invoke each evaluator at most once, concurrently.

        Args:
            agent_input: Immutable bundle shared by all evaluators
            agent_types: Evaluators to run, in dispatch order

        Returns:
            DispatchOutcome with a result for every requested AgentType
        """
        order = tuple(dict.fromkeys(agent_types))
        if not order:
            return DispatchOutcome(results={}, order=())

        loop = asyncio.get_running_loop()
        started = loop.time()
        session_s = self.session_timeout_ms / 1000
        session_deadline = started + session_s

        logger.info(
            f"Dispatching {len(order)} evaluators: {[a.value for a in order]} "
            f"(T_eval={self.evaluator_timeout_ms}ms, T_session={self.session_timeout_ms}ms)"
        )

        tasks: Dict[asyncio.Task, AgentType] = {}
        for agent_type in order:
            task = asyncio.create_task(
                self._run_one(agent_type, agent_input, session_deadline),
                name=f"evaluator-{agent_type.value}",
            )
            tasks[task] = agent_type

        done, pending = await asyncio.wait(tasks.keys(), timeout=session_s)

        results: Dict[AgentType, AgentResult] = {}
        for task in done:
            agent_type = tasks[task]
            results[agent_type] = self._collect(task, agent_type, (loop.time() - started) * 1000)

        timed_out = bool(pending)
        if pending:
            elapsed_ms = (loop.time() - started) * 1000
            late = [tasks[task] for task in pending]
            logger.warning(
                f"Session deadline of {self.session_timeout_ms}ms elapsed; "
                f"{len(late)} evaluator(s) did not report: {[a.value for a in late]}"
            )
            for task in pending:
                task.cancel()
                agent_type = tasks[task]
                results[agent_type] = error_result(
                    agent_type,
                    self._name_of(agent_type),
                    EvaluatorError.session_deadline(agent_type.value, self.session_timeout_ms),
                    elapsed_ms,
                )

        logger.info(
            f"Dispatch finished in {(loop.time() - started) * 1000:.0f}ms: "
            f"{sum(1 for r in results.values() if r.status == AgentStatus.ERROR)} error(s), "
            f"timed_out={timed_out}"
        )
        return DispatchOutcome(results=results, order=order, timed_out=timed_out)

    async def _run_one(self, agent_type: AgentType, agent_input: AgentInput, session_deadline: float) -> AgentResult:
        evaluator = self.evaluators.get(agent_type)
        if evaluator is None:
            return error_result(
                agent_type,
                agent_type.value,
                EvaluatorError.fault(agent_type.value, LookupError(f"no evaluator registered for '{agent_type.value}'")),
                0.0,
            )

        loop = asyncio.get_running_loop()
        eval_s = self.evaluator_timeout_ms / 1000

        async with self.limiter.slot():
            started = loop.time()
            deadline = min(started + eval_s, session_deadline)
            try:
                result = await asyncio.wait_for(
                    self._invoke(evaluator, agent_type, agent_input, deadline), timeout=eval_s
                )
            except asyncio.TimeoutError:
                logger.warning(f"Evaluator {agent_type.value} timed out after {self.evaluator_timeout_ms}ms")
                return error_result(
                    agent_type,
                    evaluator.agent_name,
                    EvaluatorError.timed_out(agent_type.value, self.evaluator_timeout_ms),
                    float(self.evaluator_timeout_ms),
                    summary="timed out",
                )
            except EvaluatorError as e:
                logger.warning(f"Evaluator {agent_type.value} failed: {e}")
                summary = "timed out" if e.context.error_type == ErrorType.EVALUATOR_TIMEOUT else None
                return error_result(
                    agent_type, evaluator.agent_name, e, (loop.time() - started) * 1000, summary=summary
                )
            except Exception as e:
                logger.warning(f"Evaluator {agent_type.value} raised {e.__class__.__name__}: {e}", exc_info=True)
                return error_result(
                    agent_type,
                    evaluator.agent_name,
                    EvaluatorError.fault(agent_type.value, e),
                    (loop.time() - started) * 1000,
                )

        return self._normalize(agent_type, evaluator, result, (loop.time() - started) * 1000)

    @staticmethod
    async def _invoke(
        evaluator: BaseEvaluator,
        agent_type: AgentType,
        agent_input: AgentInput,
        deadline: float,
    ) -> AgentResult:
        """
        Call the evaluator, keeping its own timeouts apart from T_eval.

        asyncio.TimeoutError is the builtin TimeoutError on Python 3.11+, so a
        socket or client timeout raised by the evaluator would otherwise look
        like wait_for expiring. It is reported as a fault instead.
        """
        try:
            return await evaluator.invoke(agent_input, deadline)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise EvaluatorError.fault(agent_type.value, e) from e

    def _normalize(
        self,
        agent_type: AgentType,
        evaluator: BaseEvaluator,
        result: object,
        duration_ms: float,
    ) -> AgentResult:
        """Enforce the AgentResult invariants on whatever the evaluator returned."""
        if not isinstance(result, AgentResult):
            logger.warning(f"Evaluator {agent_type.value} returned {type(result).__name__}, not AgentResult")
            return error_result(
                agent_type,
                evaluator.agent_name,
                EvaluatorError.invalid_response(agent_type.value, f"returned {type(result).__name__}"),
                duration_ms,
            )
        if result.agent_type != agent_type:
            logger.warning(
                f"Evaluator {agent_type.value} returned a result for {result.agent_type.value}; discarding it"
            )
            return error_result(
                agent_type,
                evaluator.agent_name,
                EvaluatorError.invalid_response(
                    agent_type.value, f"result labelled '{result.agent_type.value}'"
                ),
                duration_ms,
            )
        if result.status == AgentStatus.ERROR and result.confidence is not None:
            return dataclasses.replace(result, confidence=None)
        if result.status in (AgentStatus.IDLE, AgentStatus.PROCESSING):
            logger.warning(f"Evaluator {agent_type.value} reported non-terminal status {result.status.value}")
        logger.debug(f"Evaluator {agent_type.value} reported {result.status.value} in {duration_ms:.0f}ms")
        return result

    def _collect(self, task: asyncio.Task, agent_type: AgentType, elapsed_ms: float) -> AgentResult:
        """Result of a finished task; _run_one only raises on programming errors."""
        if task.cancelled():
            return error_result(
                agent_type,
                self._name_of(agent_type),
                EvaluatorError.fault(agent_type.value, asyncio.CancelledError("evaluator task cancelled")),
                elapsed_ms,
            )
        exc = task.exception()
        if exc is not None:
            logger.error(f"Dispatch of {agent_type.value} failed unexpectedly: {exc}", exc_info=exc)
            return error_result(
                agent_type, self._name_of(agent_type), EvaluatorError.fault(agent_type.value, exc), elapsed_ms
            )
        return task.result()

    def _name_of(self, agent_type: AgentType) -> str:
        evaluator = self.evaluators.get(agent_type)
        return evaluator.agent_name if evaluator is not None else agent_type.value
