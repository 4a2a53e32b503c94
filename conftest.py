"""Shared fixtures: sample claims, scripted evaluators and a fake Bedrock runtime."""

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from payroll_validation.agents.base import BaseEvaluator
from payroll_validation.models.claim import AgentInput, ClaimInput, CrewData, HistoricalData, TripData
from payroll_validation.models.result import AgentResult, AgentStatus, AgentType


class ScriptedEvaluator(BaseEvaluator):
    """Evaluator whose behaviour is fixed by the test: return, sleep, or raise."""

    def __init__(
        self,
        agent_type: AgentType,
        status: AgentStatus = AgentStatus.COMPLETED,
        confidence: Optional[float] = 0.9,
        data: Optional[Dict[str, Any]] = None,
        summary: str = "ok",
        delay: float = 0.0,
        error: Optional[BaseException] = None,
        result: Any = None,
    ):
        self.agent_type = agent_type
        self.agent_name = f"Scripted {agent_type.value}"
        self.status = status
        self.confidence = confidence
        self.data = data
        self.summary = summary
        self.delay = delay
        self.error = error
        self.result = result
        self.calls = 0
        self.deadlines: List[float] = []

    async def invoke(self, agent_input: AgentInput, deadline: float) -> AgentResult:
        self.calls += 1
        self.deadlines.append(deadline)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return AgentResult(
            agent_type=self.agent_type,
            agent_name=self.agent_name,
            status=self.status,
            duration=self.delay * 1000,
            summary=self.summary,
            details=("scripted",),
            confidence=self.confidence,
            data=self.data,
        )


class FakeBedrockRuntime:
    """Stands in for the boto3 bedrock-runtime client; replies are consumed in order."""

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    def converse(self, **params):
        self.calls.append(params)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, dict) and "output" in reply:
            return reply
        text = reply if isinstance(reply, str) else json.dumps(reply)
        return {
            "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
            "stopReason": "end_turn",
            "usage": {"inputTokens": 10, "outputTokens": 20},
        }


@pytest.fixture
def make_claim():
    def _make(**overrides) -> ClaimInput:
        fields = dict(
            id="claim-1",
            claim_number="CLM-2024-1157",
            crew_member_id="CM002",
            crew_member_name="Maria Lopez",
            type="per-diem",
            trip_id="TRIP-230",
            flight_number="CM230",
            amount=150.0,
            submitted_date=datetime(2024, 11, 20, 9, 0),
            description="Portland overnight",
        )
        fields.update(overrides)
        return ClaimInput(**fields)
    return _make


@pytest.fixture
def trip():
    return TripData(
        id="TRIP-230",
        date=datetime(2024, 11, 18),
        route="PTY-PDX",
        flight_numbers="CM230",
        flight_time_hours=7.5,
        credit_hours=8.0,
        is_international=True,
        aircraft_type="B737-800",
        status="completed",
        layover_city="PDX",
    )


@pytest.fixture
def crew():
    return CrewData(
        id="CM002",
        name="Maria Lopez",
        role="First Officer",
        base="PTY",
        seniority=6,
        qualification="International B737",
        hire_date=datetime(2018, 3, 1),
        ytd_earnings=84250.0,
    )


@pytest.fixture
def historical(make_claim):
    return HistoricalData(
        similar_claims=12,
        approval_rate=0.92,
        average_amount=140.0,
        recent_claims_by_user=[
            make_claim(id="claim-0", claim_number="CLM-2024-1101", trip_id="TRIP-200", amount=75.0),
        ],
    )


@pytest.fixture
def scripted():
    """Factory for ScriptedEvaluator."""
    return ScriptedEvaluator


@pytest.fixture
def scripted_evaluators():
    """One well-behaved scripted evaluator per AgentType."""
    return {agent_type: ScriptedEvaluator(agent_type) for agent_type in AgentType}


@pytest.fixture
def make_result():
    def _make(
        agent_type: AgentType,
        status: AgentStatus = AgentStatus.COMPLETED,
        confidence: Optional[float] = 0.9,
        data: Optional[Dict[str, Any]] = None,
        summary: str = "ok",
    ) -> AgentResult:
        return AgentResult(
            agent_type=agent_type,
            agent_name=agent_type.value,
            status=status,
            duration=10.0,
            summary=summary,
            confidence=confidence,
            data=data,
        )
    return _make


@pytest.fixture
def fake_runtime():
    return FakeBedrockRuntime
