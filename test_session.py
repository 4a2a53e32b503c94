"""Tests for the validation session and the validate() boundary."""

import asyncio

import pytest

from payroll_validation.models.claim import AgentInput
from payroll_validation.models.result import AgentStatus, AgentType, OverallStatus
from payroll_validation.orchestration.aggregator import ResultAggregator
from payroll_validation.orchestration.coordinator import DispatchCoordinator
from payroll_validation.orchestration.registry import EvaluatorRegistry
from payroll_validation.orchestration.session import SessionState, ValidationSession
from payroll_validation.utils.concurrency import ConcurrencyLimiter
from payroll_validation.utils.errors import ConfigurationError, ErrorType
from payroll_validation.validator import ClaimValidator


def _validator(evaluators, eval_ms=2000, session_ms=3000):
    registry = EvaluatorRegistry(evaluators)
    coordinator = DispatchCoordinator(registry.evaluators, ConcurrencyLimiter(4), eval_ms, session_ms)
    return ClaimValidator(registry, coordinator, ResultAggregator())


def _session(validator):
    return ValidationSession(validator.registry, validator.coordinator, validator.aggregator)


@pytest.mark.asyncio
async def test_session_runs_to_completion(scripted_evaluators, make_claim, historical):
    session = _session(_validator(scripted_evaluators))
    result = await session.run(AgentInput(claim=make_claim(), historical_data=historical))

    assert session.state == SessionState.COMPLETED
    assert [state for state, _ in session.history] == [
        SessionState.CREATED,
        SessionState.DISPATCHING,
        SessionState.AGGREGATING,
        SessionState.COMPLETED,
    ]
    assert session.result is result
    assert result.claim_id == "claim-1"
    assert result.processing_time >= 0
    assert result.historical_analysis is historical
    assert [r.agent_type for r in result.agent_results] == [
        AgentType.DUTY_TIME,
        AgentType.PER_DIEM,
        AgentType.COMPLIANCE,
        AgentType.EXCESS_PAYMENT_DETECTOR,
    ]


@pytest.mark.asyncio
async def test_unknown_claim_type_aborts_before_dispatch(scripted_evaluators, make_claim):
    session = _session(_validator(scripted_evaluators))
    with pytest.raises(ConfigurationError) as exc_info:
        await session.run(AgentInput(claim=make_claim(type="bonus")))

    assert exc_info.value.context.error_type == ErrorType.CONFIG_UNKNOWN_CLAIM_TYPE
    assert session.state == SessionState.ABORTED
    assert session.result is None
    assert all(e.calls == 0 for e in scripted_evaluators.values())


@pytest.mark.asyncio
async def test_missing_claim_id_aborts(scripted_evaluators, make_claim):
    session = _session(_validator(scripted_evaluators))
    with pytest.raises(ConfigurationError) as exc_info:
        await session.run(AgentInput(claim=make_claim(id="")))

    assert exc_info.value.context.error_type == ErrorType.CONFIG_MISSING_IDENTIFIER
    assert session.state == SessionState.ABORTED


@pytest.mark.asyncio
async def test_session_is_single_use(scripted_evaluators, make_claim):
    session = _session(_validator(scripted_evaluators))
    await session.run(AgentInput(claim=make_claim()))
    with pytest.raises(RuntimeError):
        await session.run(AgentInput(claim=make_claim()))


@pytest.mark.asyncio
async def test_timeout_scenario_completes_within_session_deadline(scripted_evaluators, scripted, make_claim):
    scripted_evaluators[AgentType.PER_DIEM] = scripted(AgentType.PER_DIEM, delay=10)
    validator = _validator(scripted_evaluators, eval_ms=200, session_ms=1000)

    loop = asyncio.get_running_loop()
    started = loop.time()
    result = await validator.validate_async(make_claim())

    assert loop.time() - started < 1.0
    per_diem = next(r for r in result.agent_results if r.agent_type == AgentType.PER_DIEM)
    assert per_diem.status == AgentStatus.ERROR
    assert per_diem.summary == "timed out"
    assert AgentType.PER_DIEM in result.unverified_domains


@pytest.mark.asyncio
async def test_evaluator_faults_never_propagate(scripted_evaluators, scripted, make_claim):
    for agent_type in AgentType:
        scripted_evaluators[agent_type] = scripted(agent_type, error=RuntimeError("boom"))
    result = await _validator(scripted_evaluators).validate_async(make_claim())

    assert result.overall_status == OverallStatus.FLAGGED
    assert result.confidence == 0.0
    assert all(r.status == AgentStatus.ERROR for r in result.agent_results)


@pytest.mark.asyncio
async def test_concurrent_sessions_are_independent(scripted_evaluators, make_claim):
    validator = _validator(scripted_evaluators)
    claims = [make_claim(id=f"claim-{i}", type=t) for i, t in enumerate(["per-diem", "dispute", "other"])]
    results = await asyncio.gather(*(validator.validate_async(c) for c in claims))

    assert [r.claim_id for r in results] == ["claim-0", "claim-1", "claim-2"]
    assert AgentType.DISPUTE_RESOLUTION in [r.agent_type for r in results[1].agent_results]
    assert len(results[2].agent_results) == 2


def test_validate_is_synchronous(scripted_evaluators, make_claim):
    result = _validator(scripted_evaluators).validate(make_claim())
    assert result.overall_status == OverallStatus.APPROVED
    assert result.confidence == pytest.approx(0.9)


def test_validate_accepts_api_payloads(scripted_evaluators):
    payload = {
        "id": "claim-9",
        "claimNumber": "CLM-2024-1161",
        "crewMemberId": "CM001",
        "crewMemberName": "John Smith",
        "type": "International Premium",
        "tripId": "TRIP-450",
        "flightNumber": "CM450",
        "amount": 125.0,
        "submittedDate": "2024-11-19T10:00:00Z",
    }
    trip = {
        "id": "TRIP-450",
        "date": "2024-11-18",
        "route": "PTY-GUA",
        "flightNumbers": "CM450",
        "flightTimeHours": 2.1,
        "creditHours": 2.5,
        "isInternational": True,
        "aircraftType": "B737-MAX9",
        "status": "completed",
    }
    result = _validator(scripted_evaluators).validate(payload, trip=trip)

    assert result.claim_id == "claim-9"
    assert [r.agent_type for r in result.agent_results] == [
        AgentType.FLIGHT_TIME,
        AgentType.PREMIUM_PAY,
        AgentType.COMPLIANCE,
        AgentType.EXCESS_PAYMENT_DETECTOR,
    ]


def test_invalid_claim_input_is_configuration_error(scripted_evaluators):
    validator = _validator(scripted_evaluators)
    with pytest.raises(ConfigurationError):
        validator.validate({"id": "claim-1", "type": "per-diem", "amount": -5})
    with pytest.raises(ConfigurationError):
        validator.validate(None)


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), -0.01])
def test_non_finite_or_negative_amount_is_configuration_error(scripted_evaluators, amount):
    validator = _validator(scripted_evaluators)
    with pytest.raises(ConfigurationError) as exc_info:
        validator.validate({"id": "claim-1", "type": "per-diem", "amount": amount})
    assert exc_info.value.context.error_type == ErrorType.CONFIG_INVALID
