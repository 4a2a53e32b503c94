"""Claim input and read-only context data models."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union


def _parse_datetime(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Accept datetime/date objects or ISO-8601 strings (a trailing 'Z' is allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def normalize_claim_type(claim_type: Optional[str]) -> str:
    """Canonical claim type: lower case, spaces and underscores become hyphens."""
    if not claim_type:
        return ""
    return "-".join(str(claim_type).strip().lower().replace("_", " ").split())


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; payloads arrive in camelCase or snake_case."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class ClaimInput:
    """
    A crew pay claim submitted for validation.

    Attributes:
        id: Claim identifier
        claim_number: Human-facing claim number (e.g. "CLM-2024-1157")
        crew_member_id: Identifier of the claiming crew member
        crew_member_name: Display name of the crew member
        type: Claim type, one of the registry's closed set (e.g. "per-diem")
        trip_id: Trip the claim refers to
        flight_number: Flight the claim refers to
        amount: Claimed amount in USD, non-negative
        submitted_date: When the claim was submitted
        description: Optional free-text description
    """
    id: str
    claim_number: str
    crew_member_id: str
    crew_member_name: str
    type: str
    trip_id: str
    flight_number: str
    amount: float
    submitted_date: datetime
    description: Optional[str] = None

    def __post_init__(self):
        if self.amount is None or not math.isfinite(self.amount) or self.amount < 0:
            raise ValueError(f"Claim amount must be a finite non-negative value, got {self.amount}")

    @property
    def normalized_type(self) -> str:
        return normalize_claim_type(self.type)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimInput":
        return cls(
            id=str(_pick(data, "id", "claimId", "claim_id", default="")),
            claim_number=str(_pick(data, "claimNumber", "claim_number", default="")),
            crew_member_id=str(_pick(data, "crewMemberId", "crew_member_id", default="")),
            crew_member_name=str(_pick(data, "crewMemberName", "crew_member_name", default="")),
            type=str(_pick(data, "type", "claimType", "claim_type", default="")),
            trip_id=str(_pick(data, "tripId", "trip_id", default="")),
            flight_number=str(_pick(data, "flightNumber", "flight_number", default="")),
            amount=float(_pick(data, "amount", default=0.0)),
            submitted_date=_parse_datetime(_pick(data, "submittedDate", "submitted_date")) or datetime.now(),
            description=_pick(data, "description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "claimNumber": self.claim_number,
            "crewMemberId": self.crew_member_id,
            "crewMemberName": self.crew_member_name,
            "type": self.type,
            "tripId": self.trip_id,
            "flightNumber": self.flight_number,
            "amount": self.amount,
            "submittedDate": self.submitted_date.isoformat(),
            "description": self.description,
        }


@dataclass(frozen=True)
class TripData:
    """Trip the claim refers to, as recorded by crew scheduling."""
    id: str
    date: datetime
    route: str
    flight_numbers: str
    flight_time_hours: float
    credit_hours: float
    is_international: bool
    aircraft_type: str
    status: str
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    layover_city: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripData":
        return cls(
            id=str(_pick(data, "id", "tripId", "trip_id", default="")),
            date=_parse_datetime(_pick(data, "date", "tripDate", "trip_date")),
            route=str(_pick(data, "route", default="")),
            flight_numbers=str(_pick(data, "flightNumbers", "flight_numbers", default="")),
            flight_time_hours=float(_pick(data, "flightTimeHours", "flight_time_hours", default=0.0)),
            credit_hours=float(_pick(data, "creditHours", "credit_hours", default=0.0)),
            is_international=bool(_pick(data, "isInternational", "is_international", default=False)),
            aircraft_type=str(_pick(data, "aircraftType", "aircraft_type", default="")),
            status=str(_pick(data, "status", default="")),
            departure_time=_pick(data, "departureTime", "departure_time"),
            arrival_time=_pick(data, "arrivalTime", "arrival_time"),
            layover_city=_pick(data, "layoverCity", "layover_city"),
        )


@dataclass(frozen=True)
class CrewData:
    """Crew member profile."""
    id: str
    name: str
    role: str
    base: str
    seniority: int
    qualification: str
    hire_date: datetime
    ytd_earnings: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrewData":
        return cls(
            id=str(_pick(data, "id", "crewMemberId", default="")),
            name=str(_pick(data, "name", default="")),
            role=str(_pick(data, "role", default="")),
            base=str(_pick(data, "base", default="")),
            seniority=int(_pick(data, "seniority", default=0)),
            qualification=str(_pick(data, "qualification", default="")),
            hire_date=_parse_datetime(_pick(data, "hireDate", "hire_date")),
            ytd_earnings=float(_pick(data, "ytdEarnings", "ytd_earnings", default=0.0)),
        )


@dataclass(frozen=True)
class HistoricalData:
    """
    Claim history for the crew member and claim type.

    Attributes:
        similar_claims: Count of similar claims on record
        approval_rate: Historical approval rate in [0, 1]
        average_amount: Average amount of similar claims
        recent_claims_by_user: Prior claims, most recent first
        common_patterns: Optional free-text patterns noted by analysts
    """
    similar_claims: int
    approval_rate: float
    average_amount: float
    recent_claims_by_user: Tuple[ClaimInput, ...] = field(default_factory=tuple)
    common_patterns: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if not 0.0 <= self.approval_rate <= 1.0:
            raise ValueError(f"approval_rate must be within [0, 1], got {self.approval_rate}")
        # Lists are accepted for convenience and frozen into tuples.
        if not isinstance(self.recent_claims_by_user, tuple):
            object.__setattr__(self, "recent_claims_by_user", tuple(self.recent_claims_by_user))
        if self.common_patterns is not None and not isinstance(self.common_patterns, tuple):
            object.__setattr__(self, "common_patterns", tuple(self.common_patterns))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalData":
        recent = _pick(data, "recentClaimsByUser", "recent_claims_by_user", default=[]) or []
        patterns = _pick(data, "commonPatterns", "common_patterns")
        return cls(
            similar_claims=int(_pick(data, "similarClaims", "similar_claims", default=0)),
            approval_rate=float(_pick(data, "approvalRate", "approval_rate", default=0.0)),
            average_amount=float(_pick(data, "averageAmount", "average_amount", default=0.0)),
            recent_claims_by_user=tuple(
                c if isinstance(c, ClaimInput) else ClaimInput.from_dict(c) for c in recent
            ),
            common_patterns=tuple(patterns) if patterns is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "similarClaims": self.similar_claims,
            "approvalRate": self.approval_rate,
            "averageAmount": self.average_amount,
            "recentClaimsByUser": [c.to_dict() for c in self.recent_claims_by_user],
        }
        if self.common_patterns is not None:
            result["commonPatterns"] = list(self.common_patterns)
        return result


@dataclass(frozen=True)
class AgentInput:
    """
    Immutable bundle handed to every evaluator in one session.

    Absent context means "unknown", never zero.
    """
    claim: ClaimInput
    trip: Optional[TripData] = None
    crew: Optional[CrewData] = None
    historical_data: Optional[HistoricalData] = None
