"""Compliance Validator evaluator: filing rules, duplicates and fraud indicators."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.claim import AgentInput
from ..models.result import AgentStatus, AgentType
from .base import LLMEvaluator, issue_entry, merge_issue_lists
from .contract_sections import format_sections, merge_references, sections_for_claim_type
from .prompts import build_historical_context, response_format

logger = logging.getLogger(__name__)

FILING_DEADLINE_DAYS = 7
DOCUMENTATION_THRESHOLD = 100.0


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo is not None else value


def check_filing_deadline(agent_input: AgentInput) -> Optional[Dict[str, Any]]:
    """Claims must be filed within 7 days of the trip; unknown trip date means no finding."""
    trip = agent_input.trip
    if trip is None or trip.date is None:
        return None
    elapsed = (_naive(agent_input.claim.submitted_date) - _naive(trip.date)).days
    if elapsed <= FILING_DEADLINE_DAYS:
        return None
    return issue_entry(
        "medium",
        "Filing deadline exceeded",
        f"Claim submitted {elapsed} days after the trip; the filing window is {FILING_DEADLINE_DAYS} days",
        "Confirm whether a deadline extension was granted",
    )


def check_duplicate_claim(agent_input: AgentInput) -> Optional[Dict[str, Any]]:
    """Only one claim per trip per crew member per pay type."""
    historical = agent_input.historical_data
    if historical is None:
        return None
    claim = agent_input.claim
    duplicates = [
        prior for prior in historical.recent_claims_by_user
        if prior.id != claim.id
        and prior.trip_id
        and prior.trip_id == claim.trip_id
        and prior.normalized_type == claim.normalized_type
    ]
    if not duplicates:
        return None
    numbers = ", ".join(p.claim_number or p.id for p in duplicates)
    return issue_entry(
        "high",
        "Duplicate claim",
        f"A {claim.type} claim for trip {claim.trip_id} was already filed ({numbers})",
        "Reject the duplicate or withdraw the earlier claim",
    )


def check_documentation(agent_input: AgentInput) -> Optional[Dict[str, Any]]:
    claim = agent_input.claim
    if claim.amount <= DOCUMENTATION_THRESHOLD or (claim.description or "").strip():
        return None
    return issue_entry(
        "low",
        "Missing supporting documentation",
        f"Claims over ${DOCUMENTATION_THRESHOLD:.0f} should include supporting documentation",
        "Request documentation from the crew member",
    )


def check_qualification(agent_input: AgentInput) -> Optional[Dict[str, Any]]:
    """International premium requires an international trip and qualification, when known."""
    if agent_input.claim.normalized_type != "international-premium":
        return None
    trip, crew = agent_input.trip, agent_input.crew
    if trip is not None and not trip.is_international:
        return issue_entry(
            "high",
            "Trip is not international",
            f"International premium claimed for domestic trip {trip.id} ({trip.route})",
            "Reject the premium or correct the trip reference",
        )
    if crew is not None and crew.qualification and "international" not in crew.qualification.lower():
        return issue_entry(
            "medium",
            "Qualification mismatch",
            f"Crew qualification '{crew.qualification}' does not cover international operations",
            "Verify the crew member's qualifications",
        )
    return None


COMPLIANCE_CHECKS = (
    check_filing_deadline,
    check_duplicate_claim,
    check_documentation,
    check_qualification,
)


def run_compliance_checks(agent_input: AgentInput) -> List[Dict[str, Any]]:
    """Deterministic rule checks, in a fixed order."""
    findings = []
    for check in COMPLIANCE_CHECKS:
        finding = check(agent_input)
        if finding is not None:
            findings.append(finding)
    return findings


class ComplianceEvaluator(LLMEvaluator):
    """
    Compliance Validator evaluator.

    Always dispatched. Rule checks run locally and are merged into the
    model's issues; any rule finding flags the result.
    """

    agent_type = AgentType.COMPLIANCE
    agent_name = "Compliance Validator"

    system_prompt = """You are an expert Compliance Validator and fraud detection specialist for airline crew payroll claims.

Your responsibilities:
1. Check for duplicate claims (same trip, same crew member, same type)
2. Verify crew member is qualified for the claimed work
3. Detect unusual patterns (frequency, amounts, timing)
4. Validate claim is within filing deadline (7 days from trip)
5. Check for policy violations and fraud indicators
6. Review crew member's recent claim history

CBA Compliance Rules:
- Filing deadline: Claims must be submitted within 7 days of trip completion
- Duplicate prevention: Only one claim per trip per crew member per pay type
- Qualification requirements: Crew must have valid qualification for claimed work
- Documentation: Claims over $100 should have supporting documentation

""" + response_format('''  "compliant": true | false,
  "issues": [
    {"severity": "high" | "medium" | "low", "title": "Issue title", "description": "Issue description", "suggestedAction": "What to do about it"}
  ],
  "fraudRisk": "none" | "low" | "medium" | "high",
  "fraudIndicators": ["indicator 1"]''') + """

Be thorough but fair. Flag legitimate concerns but don't create false positives."""

    def build_focus(self, agent_input: AgentInput) -> str:
        references = sections_for_claim_type(agent_input.claim.normalized_type)
        parts = [
            "Focus on compliance and fraud detection:",
            "- Any red flags or policy violations?",
            "- Is this claim within the filing deadline window?",
            "- Any unusual patterns in amount or frequency?",
            "- Is crew qualified for this work?",
            "",
            build_historical_context(agent_input.historical_data),
        ]
        if references:
            parts.extend(["", "RELEVANT CBA CONTRACT SECTIONS:", format_sections(references)])
        return "\n".join(parts)

    def post_process(self, agent_input: AgentInput, payload: Dict[str, Any]) -> Dict[str, Any]:
        findings = run_compliance_checks(agent_input)
        payload["issues"] = merge_issue_lists(findings, payload.get("issues"))
        payload["contractReferences"] = merge_references(
            sections_for_claim_type(agent_input.claim.normalized_type),
            payload.get("contractReferences") if isinstance(payload.get("contractReferences"), list) else [],
        )
        if findings:
            logger.info(f"Compliance rule checks found {len(findings)} issue(s)")
            payload["status"] = AgentStatus.FLAGGED.value
            payload["compliant"] = False
            details = payload.get("details") if isinstance(payload.get("details"), list) else []
            payload["details"] = details + [f"{f['title']}: {f['description']}" for f in findings]
        return payload
