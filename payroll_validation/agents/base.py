"""Base evaluator classes for crew pay claim validation (AWS Bedrock)."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models.claim import AgentInput
from ..models.result import AgentResult, AgentStatus, AgentType
from ..utils.bedrock_client import BedrockClient
from ..utils.config import EvaluatorConfig
from ..utils.errors import EvaluatorError
from ..utils.response_formatter import ResponseFormatter
from .prompts import build_claim_prompt

logger = logging.getLogger(__name__)

# Keys of a model response that map onto AgentResult fields; the rest goes to data.
_RESULT_KEYS = {"status", "confidence", "summary", "details", "reasoning"}
REQUIRED_FIELDS = ("status", "confidence", "summary")


class BaseEvaluator(ABC):
    """
    Contract every evaluator satisfies to take part in dispatch.

    Implementations must be safe to invoke concurrently and should stop work
    early once the deadline has passed; the coordinator enforces it anyway.

    Attributes:
        agent_type: Evaluator identifier
        agent_name: Display name
    """

    agent_type: AgentType
    agent_name: str

    @abstractmethod
    async def invoke(self, agent_input: AgentInput, deadline: float) -> AgentResult:
        """
        Evaluate one claim.

        Args:
            agent_input: Immutable claim bundle for this session
            deadline: Absolute event-loop time (seconds) by which to finish

        Returns:
            AgentResult for this evaluator
        """
        pass

    @staticmethod
    def remaining_seconds(deadline: float) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, deadline - asyncio.get_running_loop().time())

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(agent_type={self.agent_type.value})"


class LLMEvaluator(BaseEvaluator):
    """
    Evaluator backed by a Bedrock model.

    Subclasses provide the system prompt and the evaluator focus; the shared
    template renders the claim, calls the model, extracts the JSON payload and
    builds the AgentResult. post_process() lets subclasses merge deterministic
    checks into the model's payload.

    Attributes:
        bedrock: BedrockClient used for model calls
        settings: Temperature and token limit for this evaluator
    """

    system_prompt: str = ""

    def __init__(self, bedrock: BedrockClient, settings: Optional[EvaluatorConfig] = None):
        self.bedrock = bedrock
        self.settings = settings or EvaluatorConfig()
        logger.info(
            f"Initialized {self.__class__.__name__}: {self.agent_type.value} "
            f"(temperature={self.settings.temperature}, max_tokens={self.settings.max_tokens})"
        )

    def build_focus(self, agent_input: AgentInput) -> str:
        """Evaluator-specific questions appended to the claim prompt."""
        return ""

    def build_prompt(self, agent_input: AgentInput) -> str:
        return build_claim_prompt(
            agent_input.claim,
            agent_input.trip,
            agent_input.crew,
            self.build_focus(agent_input),
        )

    def post_process(self, agent_input: AgentInput, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for deterministic checks; returns the (possibly amended) payload."""
        return payload

    async def invoke(self, agent_input: AgentInput, deadline: float) -> AgentResult:
        start = time.monotonic()

        if self.remaining_seconds(deadline) <= 0:
            raise EvaluatorError.timed_out(self.agent_type.value, 0)

        prompt = self.build_prompt(agent_input)
        logger.debug(f"{self.agent_name} prompt: {prompt[:100]}...")

        response = await self.bedrock.converse(
            messages=[{"role": "user", "content": [{"text": prompt}]}],
            system_prompts=[{"text": self.system_prompt}],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

        payload = ResponseFormatter.extract_json_from_response(response.get("text", ""))
        if payload is None:
            raise EvaluatorError.invalid_response(
                self.agent_type.value, "no JSON object found in model output"
            )
        missing = ResponseFormatter.validate_json_structure(payload, REQUIRED_FIELDS)
        if "summary" in missing and "status" in missing:
            raise EvaluatorError.invalid_response(
                self.agent_type.value, f"response lacks {', '.join(missing)}"
            )

        payload = self.post_process(agent_input, payload)
        duration_ms = (time.monotonic() - start) * 1000
        result = self.build_result(payload, duration_ms)
        logger.info(
            f"{self.agent_name} finished: status={result.status.value}, "
            f"confidence={result.confidence}, duration={duration_ms:.0f}ms"
        )
        return result

    def build_result(self, payload: Dict[str, Any], duration_ms: float) -> AgentResult:
        """
        Convert a model payload into an AgentResult.

        Unknown status values fall back to completed; a non-numeric confidence
        is dropped rather than guessed.
        """
        status = self._parse_status(payload.get("status"))
        confidence = self._parse_confidence(payload.get("confidence"))
        if status == AgentStatus.ERROR:
            confidence = None

        details = payload.get("details") or []
        if not isinstance(details, list):
            details = [details]

        data = {k: v for k, v in payload.items() if k not in _RESULT_KEYS}

        return AgentResult(
            agent_type=self.agent_type,
            agent_name=self.agent_name,
            status=status,
            duration=duration_ms,
            summary=str(payload.get("summary") or f"{self.agent_name} analysis complete"),
            details=tuple(str(d) for d in details),
            confidence=confidence,
            reasoning=payload.get("reasoning"),
            data=data or None,
        )

    @staticmethod
    def _parse_status(value: Any) -> AgentStatus:
        if isinstance(value, str):
            try:
                status = AgentStatus(value.strip().lower())
            except ValueError:
                return AgentStatus.COMPLETED
            if status in (AgentStatus.IDLE, AgentStatus.PROCESSING):
                return AgentStatus.COMPLETED
            return status
        return AgentStatus.COMPLETED

    @staticmethod
    def _parse_confidence(value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


def issue_entry(
    severity: str,
    title: str,
    description: str,
    suggested_action: Optional[str] = None,
) -> Dict[str, Any]:
    """Issue marker in the camelCase shape evaluators put in data["issues"]."""
    entry: Dict[str, Any] = {"severity": severity, "title": title, "description": description}
    if suggested_action:
        entry["suggestedAction"] = suggested_action
    return entry


def merge_issue_lists(first: List[Dict[str, Any]], second: Any) -> List[Dict[str, Any]]:
    """Concatenate issue markers, dropping later entries whose title repeats."""
    merged: List[Dict[str, Any]] = []
    titles = set()
    for entry in list(first) + list(second if isinstance(second, list) else []):
        if not isinstance(entry, dict):
            continue
        title = str(entry.get("title", "")).strip().lower()
        if title and title in titles:
            continue
        titles.add(title)
        merged.append(entry)
    return merged
