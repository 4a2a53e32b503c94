"""Tests for the Bedrock-backed evaluators, using a fake bedrock-runtime client."""

import asyncio
from datetime import datetime

import pytest

from payroll_validation.agents import EVALUATOR_CLASSES, build_evaluators
from payroll_validation.agents.compliance import ComplianceEvaluator, run_compliance_checks
from payroll_validation.agents.excess_payment import ExcessPaymentEvaluator, detect_excess_payments
from payroll_validation.agents.flight_time import FlightTimeEvaluator
from payroll_validation.agents.premium_pay import PremiumPayEvaluator
from payroll_validation.agents.prompts import build_claim_prompt
from payroll_validation.models.claim import AgentInput, HistoricalData
from payroll_validation.models.result import AgentStatus, AgentType
from payroll_validation.utils.bedrock_client import BedrockClient
from payroll_validation.utils.config import Config, EvaluatorConfig
from payroll_validation.utils.errors import ErrorType, EvaluatorError

CLEAN_REPLY = {
    "status": "completed",
    "confidence": 0.92,
    "summary": "Claim is consistent with the trip record",
    "details": ["Trip found", "Times match"],
    "reasoning": "All figures line up",
    "validated": True,
    "discrepancies": [],
}


def _bedrock(fake_runtime, *replies):
    return BedrockClient(runtime=fake_runtime(list(replies)), max_retries=1)


def _deadline(seconds=5.0):
    return asyncio.get_running_loop().time() + seconds


@pytest.mark.asyncio
async def test_llm_template_builds_agent_result(fake_runtime, make_claim, trip):
    bedrock = _bedrock(fake_runtime, CLEAN_REPLY)
    evaluator = FlightTimeEvaluator(bedrock, EvaluatorConfig(temperature=0.1, max_tokens=1500))

    result = await evaluator.invoke(AgentInput(claim=make_claim(), trip=trip), _deadline())

    assert result.agent_type == AgentType.FLIGHT_TIME
    assert result.agent_name == "Flight Time Calculator"
    assert result.status == AgentStatus.COMPLETED
    assert result.confidence == pytest.approx(0.92)
    assert result.details == ("Trip found", "Times match")
    assert result.data == {"validated": True, "discrepancies": []}
    assert result.duration >= 0

    params = bedrock.runtime.calls[0]
    assert params["inferenceConfig"] == {"temperature": 0.1, "maxTokens": 1500}
    assert "TRIP-230" in params["messages"][0]["content"][0]["text"]
    assert "Flight Time Calculator" in params["system"][0]["text"]


@pytest.mark.asyncio
async def test_markdown_wrapped_reply_is_parsed(fake_runtime, make_claim):
    reply = "Here is my analysis:\n```json\n" + '{"status": "flagged", "confidence": "0.7", "summary": "Late", "severity": "low"}' + "\n```"
    evaluator = FlightTimeEvaluator(_bedrock(fake_runtime, reply))

    result = await evaluator.invoke(AgentInput(claim=make_claim()), _deadline())

    assert result.status == AgentStatus.FLAGGED
    assert result.confidence == pytest.approx(0.7)
    assert result.data == {"severity": "low"}


@pytest.mark.asyncio
async def test_unparseable_reply_raises_invalid_response(fake_runtime, make_claim):
    evaluator = FlightTimeEvaluator(_bedrock(fake_runtime, "I cannot help with that."))
    with pytest.raises(EvaluatorError) as exc_info:
        await evaluator.invoke(AgentInput(claim=make_claim()), _deadline())
    assert exc_info.value.context.error_type == ErrorType.EVALUATOR_INVALID_RESPONSE


@pytest.mark.asyncio
async def test_expired_deadline_exits_early(fake_runtime, make_claim):
    bedrock = _bedrock(fake_runtime, CLEAN_REPLY)
    evaluator = FlightTimeEvaluator(bedrock)
    with pytest.raises(EvaluatorError) as exc_info:
        await evaluator.invoke(AgentInput(claim=make_claim()), _deadline(-1.0))
    assert exc_info.value.context.error_type == ErrorType.EVALUATOR_TIMEOUT
    assert bedrock.runtime.calls == []


@pytest.mark.asyncio
async def test_model_error_status_drops_confidence(fake_runtime, make_claim):
    reply = {"status": "error", "confidence": 0.4, "summary": "Could not evaluate"}
    result = await FlightTimeEvaluator(_bedrock(fake_runtime, reply)).invoke(
        AgentInput(claim=make_claim()), _deadline()
    )
    assert result.status == AgentStatus.ERROR
    assert result.confidence is None


def test_prompt_marks_missing_context_unknown(make_claim):
    prompt = build_claim_prompt(make_claim(), trip=None, crew=None)
    assert "TRIP DETAILS: not available" in prompt
    assert "CREW MEMBER INFO: not available" in prompt
    assert "$150.00" in prompt


def test_prompt_renders_trip_and_crew(make_claim, trip, crew):
    prompt = build_claim_prompt(make_claim(), trip=trip, crew=crew, focus="Check layover nights")
    assert "Route: PTY-PDX" in prompt
    assert "International: Yes" in prompt
    assert "Qualification: International B737" in prompt
    assert prompt.rstrip().endswith("Check layover nights")


def test_compliance_checks_find_late_duplicate_claims(make_claim, trip):
    prior = make_claim(id="claim-0", claim_number="CLM-2024-1100", amount=150.0)
    claim = make_claim(submitted_date=datetime(2024, 11, 30), description=None)
    history = HistoricalData(similar_claims=1, approval_rate=1.0, average_amount=150.0, recent_claims_by_user=[prior])

    findings = run_compliance_checks(AgentInput(claim=claim, trip=trip, historical_data=history))
    titles = [f["title"] for f in findings]

    assert titles == ["Filing deadline exceeded", "Duplicate claim", "Missing supporting documentation"]
    assert findings[1]["severity"] == "high"
    assert "CLM-2024-1100" in findings[1]["description"]


def test_compliance_checks_clean_claim(make_claim, trip, crew, historical):
    findings = run_compliance_checks(AgentInput(claim=make_claim(), trip=trip, crew=crew, historical_data=historical))
    assert findings == []


def test_international_premium_on_domestic_trip(make_claim, trip):
    domestic = trip.__class__(**{**trip.__dict__, "is_international": False})
    findings = run_compliance_checks(
        AgentInput(claim=make_claim(type="International Premium"), trip=domestic)
    )
    assert findings[0]["title"] == "Trip is not international"


@pytest.mark.asyncio
async def test_compliance_merges_rule_findings(fake_runtime, make_claim, trip):
    prior = make_claim(id="claim-0")
    history = HistoricalData(similar_claims=1, approval_rate=1.0, average_amount=150.0, recent_claims_by_user=[prior])
    reply = {
        "status": "completed",
        "confidence": 0.85,
        "summary": "No concerns",
        "issues": [{"severity": "low", "title": "Duplicate claim", "description": "model duplicate"}],
        "fraudRisk": "low",
    }
    evaluator = ComplianceEvaluator(_bedrock(fake_runtime, reply))

    result = await evaluator.invoke(AgentInput(claim=make_claim(), trip=trip, historical_data=history), _deadline())

    assert result.status == AgentStatus.FLAGGED
    assert result.data["compliant"] is False
    assert [i["title"] for i in result.data["issues"]] == ["Duplicate claim"]
    assert result.data["issues"][0]["severity"] == "high"
    assert result.data["contractReferences"][0]["section"] == "CBA Section 13.2"
    assert any(d.startswith("Duplicate claim:") for d in result.details)


def test_excess_detection_against_history(make_claim):
    history = HistoricalData(similar_claims=5, approval_rate=0.8, average_amount=80.0)
    findings = detect_excess_payments(AgentInput(claim=make_claim(amount=150.0), historical_data=history))

    assert len(findings) == 1
    assert findings[0]["severity"] == "high"
    assert findings[0]["excessAmount"] == pytest.approx(70.0)


def test_excess_detection_medium_band_and_duplicates(make_claim):
    prior = make_claim(id="claim-0", amount=105.0)
    history = HistoricalData(similar_claims=5, approval_rate=0.8, average_amount=80.0, recent_claims_by_user=[prior])
    findings = detect_excess_payments(AgentInput(claim=make_claim(amount=110.0), historical_data=history))

    assert [f["severity"] for f in findings] == ["medium", "medium"]
    assert findings[1]["type"] == "duplicate"


def test_excess_detection_without_history(make_claim):
    assert detect_excess_payments(AgentInput(claim=make_claim(amount=10000.0))) == []


@pytest.mark.asyncio
async def test_excess_evaluator_forces_flag(fake_runtime, make_claim):
    history = HistoricalData(similar_claims=5, approval_rate=0.8, average_amount=80.0)
    reply = {"status": "completed", "confidence": 0.9, "summary": "Looks fine", "findings": []}
    evaluator = ExcessPaymentEvaluator(_bedrock(fake_runtime, reply))

    result = await evaluator.invoke(AgentInput(claim=make_claim(amount=150.0), historical_data=history), _deadline())

    assert result.status == AgentStatus.FLAGGED
    assert result.data["totalExcessAmount"] == pytest.approx(70.0)
    assert result.summary.startswith("Amount Exceeds Historical Average")


@pytest.mark.asyncio
async def test_excess_evaluator_clean(fake_runtime, make_claim, historical):
    reply = {"status": "completed", "confidence": 0.9, "summary": "No excess", "findings": [], "totalExcessAmount": 0}
    result = await ExcessPaymentEvaluator(_bedrock(fake_runtime, reply)).invoke(
        AgentInput(claim=make_claim(amount=150.0), historical_data=historical), _deadline()
    )
    assert result.status == AgentStatus.COMPLETED
    assert result.data["totalExcessAmount"] == 0


@pytest.mark.asyncio
async def test_premium_pay_merges_catalog_references(fake_runtime, make_claim):
    reply = {
        "status": "completed",
        "confidence": 0.9,
        "summary": "International premium applies",
        "contractReferences": [
            {"section": "CBA Section 12.4", "title": "International Premium", "text": "model text", "relevance": 0.5},
            {"section": "CBA Section 7.2", "title": "Flight Time Credit", "text": "credit", "relevance": 0.3},
        ],
    }
    result = await PremiumPayEvaluator(_bedrock(fake_runtime, reply)).invoke(
        AgentInput(claim=make_claim(type="international-premium", amount=125.0)), _deadline()
    )
    sections = [(r["section"], r["relevance"]) for r in result.data["contractReferences"]]
    assert sections == [("CBA Section 12.4", 0.95), ("CBA Section 24.1", 0.5), ("CBA Section 7.2", 0.3)]


def test_build_evaluators_covers_every_agent_type(fake_runtime):
    config = Config.from_dict({"evaluators": {"compliance": {"temperature": 0.2, "max_tokens": 900}}})
    evaluators = build_evaluators(_bedrock(fake_runtime, CLEAN_REPLY), config)

    assert set(evaluators) == set(AgentType) == set(EVALUATOR_CLASSES)
    assert all(evaluators[a].agent_type == a for a in AgentType)
    assert evaluators[AgentType.COMPLIANCE].settings.max_tokens == 900
