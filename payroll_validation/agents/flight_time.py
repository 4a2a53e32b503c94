"""Flight Time Calculator evaluator."""

from ..models.claim import AgentInput
from ..models.result import AgentType
from .base import LLMEvaluator
from .prompts import response_format


class FlightTimeEvaluator(LLMEvaluator):
    """
    Validates trip existence and flight time figures behind a claim.

    Extra payload fields: validated, discrepancies.
    """

    agent_type = AgentType.FLIGHT_TIME
    agent_name = "Flight Time Calculator"

    system_prompt = """You are an expert Flight Time Calculator for airline crew payroll, specializing in validating flight time calculations and trip data according to FAA regulations and the collective bargaining agreement (CBA).

Your responsibilities:
1. Verify that the trip exists and matches the claim
2. Validate flight time calculations are accurate for the route
3. Check that the trip date matches the claim submission timeline
4. Identify any discrepancies between claimed and actual flight times
5. Verify the flight is properly logged and completed

CBA Context:
- Flight time is measured from blocks-off to blocks-on
- Credit hours may differ from actual flight hours per CBA Section 7.2

""" + response_format('''  "validated": true | false,
  "discrepancies": ["any issues found"]''') + """

Be precise and cite specific data points in your analysis."""

    def build_focus(self, agent_input: AgentInput) -> str:
        claim = agent_input.claim
        return (
            "Focus on validating:\n"
            f"- Does trip {claim.trip_id} exist and match flight {claim.flight_number}?\n"
            "- Are the flight times accurate for this route?\n"
            "- Does the trip date align with the claim submission?"
        )
