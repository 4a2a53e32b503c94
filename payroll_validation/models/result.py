"""Evaluator verdicts and the final validation result."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .claim import HistoricalData


class AgentType(str, Enum):
    """
    Evaluator identifiers.

    Declaration order is the canonical dispatch order.
    """
    FLIGHT_TIME = "flight-time"
    DUTY_TIME = "duty-time"
    PER_DIEM = "per-diem"
    PREMIUM_PAY = "premium-pay"
    GUARANTEE = "guarantee"
    COMPLIANCE = "compliance"
    DISPUTE_RESOLUTION = "dispute-resolution"
    EXCESS_PAYMENT_DETECTOR = "excess-payment-detector"

    @classmethod
    def canonical_order(cls) -> List["AgentType"]:
        return list(cls)


class AgentStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    FLAGGED = "flagged"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]

    @classmethod
    def parse(cls, value: Any) -> Optional["Severity"]:
        """Lenient parse of an evaluator-supplied severity; None when unrecognised."""
        if isinstance(value, Severity):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        aliases = {"critical": "high", "severe": "high", "moderate": "medium", "minor": "low"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None

    @classmethod
    def highest(cls, values: Iterable[Any]) -> Optional["Severity"]:
        parsed = [s for s in (cls.parse(v) for v in values) if s is not None]
        if not parsed:
            return None
        return max(parsed, key=lambda s: s.rank)


class OverallStatus(str, Enum):
    APPROVED = "approved"
    FLAGGED = "flagged"
    REJECTED = "rejected"


@dataclass(frozen=True)
class AgentResult:
    """
    One evaluator's verdict.

    Attributes:
        agent_type: Evaluator that produced the verdict
        agent_name: Display name of the evaluator
        status: Verdict status; error results carry no confidence
        duration: Wall-clock milliseconds spent
        summary: One-line summary
        details: Ordered findings
        confidence: Optional confidence in [0, 1]
        reasoning: Optional free-text explanation
        data: Optional evaluator-specific payload (issues, severity,
            contractReferences, ...)
    """
    agent_type: AgentType
    agent_name: str
    status: AgentStatus
    duration: float
    summary: str
    details: Tuple[str, ...] = field(default_factory=tuple)
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not isinstance(self.details, tuple):
            object.__setattr__(self, "details", tuple(str(d) for d in (self.details or ())))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "agentType": self.agent_type.value,
            "agentName": self.agent_name,
            "status": self.status.value,
            "duration": self.duration,
            "summary": self.summary,
            "details": list(self.details),
        }
        if self.confidence is not None:
            result["confidence"] = self.confidence
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass(frozen=True)
class Issue:
    """A problem surfaced by exactly one evaluator."""
    severity: Severity
    title: str
    description: str
    detected_by: AgentType
    suggested_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "detectedBy": self.detected_by.value,
        }
        if self.suggested_action:
            result["suggestedAction"] = self.suggested_action
        return result


@dataclass(frozen=True)
class ContractReference:
    """A citation of a collective bargaining agreement (CBA) section."""
    section: str
    title: str
    text: str
    relevance: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractReference":
        return cls(
            section=str(data.get("section", "")),
            title=str(data.get("title", "")),
            text=str(data.get("text", "")),
            relevance=float(data.get("relevance", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.section,
            "title": self.title,
            "text": self.text,
            "relevance": self.relevance,
        }


@dataclass(frozen=True)
class ValidationResult:
    """
    Terminal artifact of one validation session.

    agent_results follow the registry's dispatch order, independent of
    completion order.
    """
    claim_id: str
    overall_status: OverallStatus
    confidence: float
    processing_time: float
    recommendation: str
    agent_results: Tuple[AgentResult, ...]
    issues: Optional[Tuple[Issue, ...]] = None
    contract_references: Optional[Tuple[ContractReference, ...]] = None
    historical_analysis: Optional[HistoricalData] = None
    timed_out: bool = False
    unverified_domains: Tuple[AgentType, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase wire form consumed by the persistence/API layer."""
        result: Dict[str, Any] = {
            "claimId": self.claim_id,
            "overallStatus": self.overall_status.value,
            "confidence": self.confidence,
            "processingTime": self.processing_time,
            "recommendation": self.recommendation,
            "agentResults": [r.to_dict() for r in self.agent_results],
            "timedOut": self.timed_out,
            "unverifiedDomains": [a.value for a in self.unverified_domains],
        }
        if self.issues is not None:
            result["issues"] = [i.to_dict() for i in self.issues]
        if self.contract_references is not None:
            result["contractReferences"] = [c.to_dict() for c in self.contract_references]
        if self.historical_analysis is not None:
            result["historicalAnalysis"] = self.historical_analysis.to_dict()
        return result
