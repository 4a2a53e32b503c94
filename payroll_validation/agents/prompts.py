"""Prompt rendering shared by the evaluators."""

from typing import Optional

from ..models.claim import ClaimInput, CrewData, HistoricalData, TripData

NOT_AVAILABLE = "not available"


def _fmt_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else NOT_AVAILABLE


def build_claim_prompt(
    claim: ClaimInput,
    trip: Optional[TripData] = None,
    crew: Optional[CrewData] = None,
    focus: Optional[str] = None,
) -> str:
    """
    Render a claim and its context as the user turn of an evaluator call.

    Missing trip or crew context is stated explicitly as not available so the
    model treats it as unknown rather than as zero.

    Args:
        claim: Claim under validation
        trip: Optional trip data
        crew: Optional crew profile
        focus: Evaluator-specific questions appended at the end

    Returns:
        Prompt text
    """
    lines = [
        "Analyze the following pay claim:",
        "",
        "CLAIM DETAILS:",
        f"- Claim Number: {claim.claim_number}",
        f"- Crew Member: {claim.crew_member_name} ({claim.crew_member_id})",
        f"- Type: {claim.type}",
        f"- Amount: ${claim.amount:.2f}",
        f"- Submitted: {_fmt_date(claim.submitted_date)}",
        f"- Trip ID: {claim.trip_id or NOT_AVAILABLE}",
        f"- Flight Number: {claim.flight_number or NOT_AVAILABLE}",
    ]
    if claim.description:
        lines.append(f"- Description: {claim.description}")

    lines.append("")
    if trip is not None:
        lines.extend([
            "TRIP DETAILS:",
            f"- Trip ID: {trip.id}",
            f"- Route: {trip.route}",
            f"- Flight Numbers: {trip.flight_numbers}",
            f"- Date: {_fmt_date(trip.date)}",
            f"- Flight Time: {trip.flight_time_hours} hours",
            f"- Credit Hours: {trip.credit_hours}",
            f"- International: {'Yes' if trip.is_international else 'No'}",
            f"- Aircraft: {trip.aircraft_type}",
            f"- Status: {trip.status}",
        ])
        if trip.departure_time:
            lines.append(f"- Departure: {trip.departure_time}")
        if trip.arrival_time:
            lines.append(f"- Arrival: {trip.arrival_time}")
        if trip.layover_city:
            lines.append(f"- Layover: {trip.layover_city}")
    else:
        lines.append(f"TRIP DETAILS: {NOT_AVAILABLE}")

    lines.append("")
    if crew is not None:
        lines.extend([
            "CREW MEMBER INFO:",
            f"- Role: {crew.role}",
            f"- Base: {crew.base}",
            f"- Seniority: {crew.seniority} years",
            f"- Qualification: {crew.qualification}",
        ])
    else:
        lines.append(f"CREW MEMBER INFO: {NOT_AVAILABLE}")

    if focus:
        lines.extend(["", "ADDITIONAL CONTEXT:", focus])

    return "\n".join(lines) + "\n"


def build_historical_context(historical: Optional[HistoricalData]) -> str:
    """Summarize claim history for prompts."""
    if historical is None:
        return f"HISTORICAL DATA: {NOT_AVAILABLE}"

    lines = [
        "HISTORICAL DATA FOR THIS CREW MEMBER:",
        f"- Similar claims filed: {historical.similar_claims}",
        f"- Historical approval rate: {historical.approval_rate * 100:.1f}%",
        f"- Average claim amount: ${historical.average_amount:.2f}",
    ]
    recent = historical.recent_claims_by_user
    if recent:
        lines.append(f"- Recent claims: {len(recent)}")
        lines.append(f"  Types: {', '.join(c.type for c in recent)}")
        lines.append(f"  Amounts: {', '.join(f'${c.amount:.2f}' for c in recent)}")
    if historical.common_patterns:
        lines.append(f"- Common patterns: {'; '.join(historical.common_patterns)}")
    return "\n".join(lines)


RESPONSE_FORMAT = """Output Requirements:
Provide a JSON response with this exact structure:
{
  "status": "completed" | "flagged",
  "confidence": 0.0 to 1.0,
  "summary": "brief summary of findings",
  "details": ["specific finding 1", "specific finding 2"],
  "reasoning": "detailed explanation of your analysis"%s
}

Use "flagged" only when you found a specific problem with the claim. When the
claim is flagged, include "severity": "high" | "medium" | "low".
Treat any context marked "not available" as unknown, never as zero."""


def response_format(extra_fields: str = "") -> str:
    """JSON output instructions, optionally with evaluator-specific fields."""
    return RESPONSE_FORMAT % ((",\n" + extra_fields) if extra_fields else "")
