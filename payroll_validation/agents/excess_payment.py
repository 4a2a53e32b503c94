"""Excess Payment Detector evaluator."""

import logging
from typing import Any, Dict, List

from ..models.claim import AgentInput
from ..models.result import AgentStatus, AgentType
from .base import LLMEvaluator
from .prompts import build_historical_context, response_format

logger = logging.getLogger(__name__)

HIGH_EXCESS_RATIO = 1.5
MEDIUM_EXCESS_RATIO = 1.25
DUPLICATE_AMOUNT_TOLERANCE = 0.1


def detect_excess_payments(agent_input: AgentInput) -> List[Dict[str, Any]]:
    """
    Findings derived from the crew member's claim history.

    Without historical data nothing can be concluded, so no findings are
    returned.

    Args:
        agent_input: Claim bundle

    Returns:
        List of finding dicts (type, severity, title, description,
        excessAmount, expectedAmount, paidAmount, evidence, suggestedAction)
    """
    historical = agent_input.historical_data
    if historical is None:
        return []

    claim = agent_input.claim
    amount = claim.amount
    findings: List[Dict[str, Any]] = []

    average = historical.average_amount
    if average > 0 and amount > average * MEDIUM_EXCESS_RATIO:
        findings.append({
            "type": "anomaly",
            "severity": "high" if amount > average * HIGH_EXCESS_RATIO else "medium",
            "title": "Amount Exceeds Historical Average",
            "description": (
                f"This claim amount (${amount:.2f}) is significantly higher than the crew "
                f"member's average (${average:.2f}) for this claim type"
            ),
            "excessAmount": round(amount - average, 2),
            "expectedAmount": average,
            "paidAmount": amount,
            "evidence": [
                f"Historical average: ${average:.2f}",
                f"Current amount: ${amount:.2f}",
            ],
            "suggestedAction": "Review claim details and verify amount is correct",
        })

    similar = [
        prior for prior in historical.recent_claims_by_user
        if prior.id != claim.id
        and prior.trip_id == claim.trip_id
        and prior.normalized_type == claim.normalized_type
        and abs(prior.amount - amount) < amount * DUPLICATE_AMOUNT_TOLERANCE
    ]
    if similar:
        findings.append({
            "type": "duplicate",
            "severity": "medium",
            "title": "Potential Duplicate - Similar Claims Filed Recently",
            "description": f"Found {len(similar)} similar claim(s) for the same trip and type",
            "excessAmount": 0.0,
            "expectedAmount": amount,
            "paidAmount": amount,
            "evidence": [f"Claim {p.claim_number or p.id}: ${p.amount:.2f}" for p in similar],
            "suggestedAction": "Verify these are distinct claims and not duplicates",
        })

    return findings


def _excess_of(finding: Any) -> float:
    if not isinstance(finding, dict):
        return 0.0
    try:
        return max(0.0, float(finding.get("excessAmount") or 0.0))
    except (TypeError, ValueError):
        return 0.0


class ExcessPaymentEvaluator(LLMEvaluator):
    """
    Detects overpayments, duplicates and amounts out of line with history.

    Always dispatched. The result is flagged whenever a finding exists or any
    excess amount is computed.
    """

    agent_type = AgentType.EXCESS_PAYMENT_DETECTOR
    agent_name = "Excess Payment Detector"

    system_prompt = """You are an expert Excess Payment Detector for airline crew payroll.

Your responsibilities:
1. Detect duplicate payments for the same trip and pay type
2. Detect overpayments caused by calculation errors or wrong rates
3. Compare the claimed amount with the crew member's history
4. Quantify the excess amount for each finding

""" + response_format('''  "findings": [
    {"type": "duplicate" | "overpayment" | "anomaly", "severity": "high" | "medium" | "low", "title": "Finding title", "description": "Finding description", "excessAmount": 0.0, "suggestedAction": "What to do about it"}
  ],
  "totalExcessAmount": 0.0''')

    def build_focus(self, agent_input: AgentInput) -> str:
        return (
            "Focus on excess payment detection:\n"
            "- Is the amount in line with the crew member's history?\n"
            "- Could this claim duplicate a recent one?\n\n"
            f"{build_historical_context(agent_input.historical_data)}"
        )

    def post_process(self, agent_input: AgentInput, payload: Dict[str, Any]) -> Dict[str, Any]:
        detected = detect_excess_payments(agent_input)
        reported = payload.get("findings") if isinstance(payload.get("findings"), list) else []
        findings = detected + [f for f in reported if isinstance(f, dict)]
        total_excess = round(sum(_excess_of(f) for f in findings), 2)

        payload["findings"] = findings
        payload["totalExcessAmount"] = total_excess

        if findings or total_excess > 0:
            logger.info(
                f"Excess payment findings: {len(findings)} (${total_excess:.2f} total excess)"
            )
            payload["status"] = AgentStatus.FLAGGED.value
            summary = payload.get("summary") or f"{len(findings)} excess payment finding(s)"
            if detected:
                summary = f"{detected[0]['title']}: {summary}"
            payload["summary"] = summary
        return payload
