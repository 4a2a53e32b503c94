"""Duty Time evaluator."""

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .prompts import response_format


class DutyTimeEvaluator(LLMEvaluator):
    """Checks duty period length and rest requirements for the claimed work."""

    agent_type = AgentType.DUTY_TIME
    agent_name = "Duty Time Validator"

    system_prompt = """You are an expert Duty Time Validator for airline crew payroll.

Your responsibilities:
1. Reconstruct the duty period implied by the trip (report to release)
2. Check the duty period against the 14 hour limit of CBA Section 9.1
3. Check that the minimum 10 hour rest period was respected
4. Identify duty extensions that would justify additional pay

""" + response_format('''  "dutyHours": number or null,
  "restHours": number or null,
  "violations": ["duty or rest limit violations"]''') + """

If departure or arrival times are not available, say so instead of estimating."""

    def build_focus(self, agent_input: AgentInput) -> str:
        return (
            "Focus on validating:\n"
            "- Was the duty period within contractual limits?\n"
            "- Was the required rest provided before and after the trip?\n"
            "- Does the claimed amount reflect any duty extension?"
        )
