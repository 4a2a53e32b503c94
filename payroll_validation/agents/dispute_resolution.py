"""Dispute Resolution evaluator."""

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .prompts import build_historical_context, response_format


class DisputeResolutionEvaluator(LLMEvaluator):
    """Assesses the merit of a disputed pay determination."""

    agent_type = AgentType.DISPUTE_RESOLUTION
    agent_name = "Dispute Resolution Advisor"

    system_prompt = """You are an expert Pay Dispute Advisor for airline crew payroll.

Your responsibilities:
1. Identify what pay determination the crew member is disputing
2. Evaluate the merit of the dispute against the CBA and the trip record
3. Check that the dispute was raised within 30 days (CBA Section 27.3)
4. Recommend a resolution with its contract basis

""" + response_format('''  "merit": "strong" | "partial" | "none",
  "resolution": "recommended resolution",
  "contractReferences": [
    {"section": "CBA Section x.y", "title": "Section title", "text": "relevant excerpt", "relevance": 0.0 to 1.0}
  ]''')

    def build_focus(self, agent_input: AgentInput) -> str:
        description = agent_input.claim.description or "not available"
        return (
            f"Dispute description: {description}\n"
            "- Is the disputed amount supported by the trip record?\n"
            "- Which CBA sections govern the dispute?\n\n"
            f"{build_historical_context(agent_input.historical_data)}"
        )
