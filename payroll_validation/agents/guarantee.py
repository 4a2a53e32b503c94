"""Minimum Guarantee evaluator."""

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .prompts import response_format


class GuaranteeEvaluator(LLMEvaluator):
    """Checks minimum-guarantee and reserve call-out claims for a real shortfall."""

    agent_type = AgentType.GUARANTEE
    agent_name = "Guarantee Validator"

    system_prompt = """You are an expert Minimum Guarantee Validator for airline crew payroll.

Your responsibilities:
1. Apply the monthly minimum guarantee of CBA Section 16.1 (75 credit hours per bid period)
2. Apply the reserve call-out minimum of CBA Section 18.5 (4 hours at the regular rate)
3. Determine whether the crew member's credited time fell short of the guarantee
4. Confirm the claimed amount equals the shortfall, not more

""" + response_format('''  "guaranteeHours": number or null,
  "creditedHours": number or null,
  "shortfallAmount": number''')

    def build_focus(self, agent_input: AgentInput) -> str:
        crew = agent_input.crew
        ytd = f"${crew.ytd_earnings:.2f}" if crew is not None else "not available"
        return (
            "Focus on validating:\n"
            "- Which guarantee applies to this claim?\n"
            "- What is the shortfall between credited and guaranteed time?\n"
            f"- Year-to-date earnings: {ytd}"
        )
