"""Premium Pay Calculator evaluator."""

import logging
from typing import Any, Dict

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .contract_sections import format_sections, merge_references, sections_for_claim_type
from .prompts import response_format

logger = logging.getLogger(__name__)


class PremiumPayEvaluator(LLMEvaluator):
    """
    Premium Pay Calculator evaluator.

    Checks international, holiday, night, reserve call-out and training
    premiums against the CBA rate table. Contract references for the claim
    type come from the section catalog and are merged with any the model
    cites (catalog entries win on the same section).
    """

    agent_type = AgentType.PREMIUM_PAY
    agent_name = "Premium Pay Calculator"

    system_prompt = """You are an expert Premium Pay Calculator for airline crew payroll, specializing in CBA premium pay sections and pay rules.

CBA Premium Pay Rates:
- International Premium (Section 12.4): $125 per flight segment to destinations outside the continental US
- Holiday Premium (Section 15.2): 1.5x hourly rate for work on major holidays
- Night Premium (Section 14.3): $5/hour for flights operating between 2200-0600 local
- Reserve Call-Out (Section 18.5): Minimum 4 hours pay at regular rate
- Training Premium (Section 20.2): $75/day for recurrent training days

Your responsibilities:
1. Identify which premium applies to the claim
2. Verify eligibility (e.g. the destination is international for an international premium)
3. Calculate the expected premium and compare it to the claimed amount
4. Cite the contract sections your calculation relies on

""" + response_format('''  "premiumType": "premium identified",
  "calculatedAmount": number,
  "applicableSections": ["CBA Section 12.4"],
  "contractReferences": [
    {"section": "CBA Section 12.4", "title": "International Premium", "text": "relevant excerpt", "relevance": 0.0 to 1.0}
  ]''')

    def build_focus(self, agent_input: AgentInput) -> str:
        claim = agent_input.claim
        trip = agent_input.trip
        international = "not available" if trip is None else ("Yes" if trip.is_international else "No")
        references = sections_for_claim_type(claim.normalized_type)
        return (
            "Focus on validating:\n"
            f"- Which premium does a '{claim.type}' claim of ${claim.amount:.2f} correspond to?\n"
            f"- Is the trip international: {international}\n"
            "- Does the claimed amount match the CBA rate?\n\n"
            f"RELEVANT CBA CONTRACT SECTIONS:\n{format_sections(references)}"
        )

    def post_process(self, agent_input: AgentInput, payload: Dict[str, Any]) -> Dict[str, Any]:
        catalog = sections_for_claim_type(agent_input.claim.normalized_type)
        cited = payload.get("contractReferences")
        if cited is not None and not isinstance(cited, list):
            logger.warning(f"Ignoring non-list contractReferences from model: {type(cited).__name__}")
            cited = []
        payload["contractReferences"] = merge_references(catalog, cited or [])
        return payload
