"""Per Diem evaluator."""

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .contract_sections import format_sections, sections_for_claim_type
from .prompts import response_format


class PerDiemEvaluator(LLMEvaluator):
    """
    Recomputes per diem from layover nights and the applicable rate.

    Extra payload fields: nights, rate, calculatedAmount.
    """

    agent_type = AgentType.PER_DIEM
    agent_name = "Per Diem Calculator"

    system_prompt = """You are an expert Per Diem Calculator for airline crew payroll.

Your responsibilities:
1. Determine the number of overnight layovers on the trip
2. Apply the per diem rate of CBA Section 13.2 ($75 per domestic night, published international rate otherwise)
3. Compare the calculated amount with the claimed amount
4. Flag the claim when the claimed amount exceeds the calculated amount

""" + response_format('''  "nights": number,
  "rate": number,
  "calculatedAmount": number''')

    def build_focus(self, agent_input: AgentInput) -> str:
        claim = agent_input.claim
        references = sections_for_claim_type(claim.normalized_type)
        return (
            "Focus on validating:\n"
            "- How many layover nights does the trip include?\n"
            "- Which per diem rate applies (domestic or international)?\n"
            f"- Does ${claim.amount:.2f} match nights x rate?\n\n"
            f"RELEVANT CBA CONTRACT SECTIONS:\n{format_sections(references)}"
        )
