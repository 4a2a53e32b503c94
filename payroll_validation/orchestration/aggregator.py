"""Result aggregator: reduce evaluator verdicts to one ValidationResult."""

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..models.claim import HistoricalData
from ..models.result import (
    AgentResult,
    AgentStatus,
    AgentType,
    ContractReference,
    Issue,
    OverallStatus,
    Severity,
    ValidationResult,
)
from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

_DISPATCH_RANK = {agent_type: index for index, agent_type in enumerate(AgentType)}
_OPINION_STATUSES = (AgentStatus.COMPLETED, AgentStatus.FLAGGED)


def _clamp_unit(value: Any, label: str) -> Optional[float]:
    """Coerce to [0, 1]; out-of-range values are clamped and logged, junk is dropped."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Data quality: ignoring non-numeric {label} {value!r}")
        return None
    if math.isnan(number):
        logger.warning(f"Data quality: ignoring NaN {label}")
        return None
    if number < 0.0 or number > 1.0:
        clamped = min(1.0, max(0.0, number))
        logger.warning(f"Data quality: {label} {number} outside [0, 1], clamped to {clamped}")
        return clamped
    return number


def _dispatch_rank(order: Optional[Sequence[AgentType]]) -> Callable[[AgentType], Tuple[int, int]]:
    position = {agent_type: index for index, agent_type in enumerate(order or ())}
    return lambda agent_type: (position.get(agent_type, len(position)), _DISPATCH_RANK[agent_type])


def _markers(data: Optional[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    if not data:
        return []
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def infer_severity(result: AgentResult) -> Severity:
    """
    Severity of the issue an evaluator raised.

    Explicit data["severity"] wins, then the highest severity among
    data["issues"] and data["findings"], then medium.
    """
    data = result.data or {}
    explicit = Severity.parse(data.get("severity"))
    if explicit is not None:
        return explicit
    highest = Severity.highest(
        entry.get("severity") for entry in _markers(data, "issues") + _markers(data, "findings")
    )
    return highest or Severity.MEDIUM


class ResultAggregator:
    """
    Reduces a complete set of AgentResults into one ValidationResult.

    The reduction is a pure function of the result set: it is independent of
    input order and yields identical output for identical input.

    Attributes:
        approval_threshold: Minimum aggregate confidence for approval
    """

    def __init__(self, approval_threshold: float = 0.6):
        self.approval_threshold = approval_threshold

    def aggregate(
        self,
        claim_id: str,
        agent_results: Iterable[AgentResult],
        processing_time: float = 0.0,
        historical_data: Optional[HistoricalData] = None,
        timed_out: bool = False,
        order: Optional[Sequence[AgentType]] = None,
    ) -> ValidationResult:
        """
        Build the ValidationResult for one session.

        Args:
            claim_id: Identifier of the validated claim
            agent_results: One result per dispatched evaluator, any order
            processing_time: Session wall-clock time in ms
            historical_data: Passed through unchanged as historical_analysis
            timed_out: Whether the session deadline fired
            order: Dispatch order the results are reported in; evaluators not
                listed follow in AgentType declaration order

        Returns:
            ValidationResult

        Raises:
            ConfigurationError: If claim_id is missing
        """
        if not claim_id:
            raise ConfigurationError.missing_identifier("claim_id")

        rank = _dispatch_rank(order)
        results = sorted(agent_results, key=lambda r: rank(r.agent_type))

        confidences = self._confidences(results)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        unverified = tuple(r.agent_type for r in results if r.status not in _OPINION_STATUSES)
        errors = [r for r in results if r.status == AgentStatus.ERROR]
        issues = self.extract_issues(results)

        overall_status = self._decide(issues, errors, confidences, confidence)
        recommendation = self._recommend(
            overall_status, issues, errors, confidences, confidence, unverified, timed_out
        )

        logger.info(
            f"Claim {claim_id}: {overall_status.value} (confidence={confidence:.2f}, "
            f"issues={len(issues)}, errors={len(errors)}, timed_out={timed_out})"
        )

        return ValidationResult(
            claim_id=claim_id,
            overall_status=overall_status,
            confidence=confidence,
            processing_time=processing_time,
            recommendation=recommendation,
            agent_results=tuple(results),
            issues=tuple(issues),
            contract_references=self.collect_contract_references(results),
            historical_analysis=historical_data,
            timed_out=timed_out,
            unverified_domains=unverified,
        )

    def _confidences(self, results: Sequence[AgentResult]) -> List[float]:
        values = []
        for r in results:
            if r.status not in _OPINION_STATUSES or r.confidence is None:
                continue
            value = _clamp_unit(r.confidence, f"confidence from {r.agent_type.value}")
            if value is not None:
                values.append(value)
        return values

    def extract_issues(self, results: Sequence[AgentResult]) -> List[Issue]:
        """One Issue per flagged result, or per completed result carrying issue markers."""
        issues = []
        for r in results:
            markers = _markers(r.data, "issues")
            if r.status == AgentStatus.FLAGGED or (r.status == AgentStatus.COMPLETED and markers):
                source = markers or _markers(r.data, "findings")
                first = source[0] if source else {}
                suggested = first.get("suggestedAction") or (r.data or {}).get("suggestedAction")
                issues.append(Issue(
                    severity=infer_severity(r),
                    title=str(first.get("title") or f"{r.agent_name} flagged the claim"),
                    description=r.summary,
                    detected_by=r.agent_type,
                    suggested_action=str(suggested) if suggested else None,
                ))
        return issues

    def collect_contract_references(self, results: Sequence[AgentResult]) -> Tuple[ContractReference, ...]:
        """Union of cited references, deduplicated by (section, title), highest relevance first."""
        best: Dict[Tuple[str, str], ContractReference] = {}
        for r in results:
            for entry in _markers(r.data, "contractReferences"):
                section = str(entry.get("section") or "").strip()
                if not section:
                    continue
                relevance = _clamp_unit(
                    entry.get("relevance", 0.0), f"relevance of {section} from {r.agent_type.value}"
                )
                reference = ContractReference(
                    section=section,
                    title=str(entry.get("title") or ""),
                    text=str(entry.get("text") or ""),
                    relevance=relevance if relevance is not None else 0.0,
                )
                key = (reference.section, reference.title)
                current = best.get(key)
                if current is None or (reference.relevance, reference.text) > (current.relevance, current.text):
                    best[key] = reference
        return tuple(sorted(best.values(), key=lambda ref: (-ref.relevance, ref.section, ref.title)))

    def _decide(
        self,
        issues: Sequence[Issue],
        errors: Sequence[AgentResult],
        confidences: Sequence[float],
        confidence: float,
    ) -> OverallStatus:
        if any(issue.severity == Severity.HIGH for issue in issues):
            return OverallStatus.REJECTED
        if issues or len(errors) > 1 or not confidences or confidence < self.approval_threshold:
            return OverallStatus.FLAGGED
        return OverallStatus.APPROVED

    def _recommend(
        self,
        status: OverallStatus,
        issues: Sequence[Issue],
        errors: Sequence[AgentResult],
        confidences: Sequence[float],
        confidence: float,
        unverified: Sequence[AgentType],
        timed_out: bool,
    ) -> str:
        if status == OverallStatus.REJECTED:
            high = [i for i in issues if i.severity == Severity.HIGH]
            if len(high) == 1:
                text = f"Reject: high-severity {high[0].detected_by.value} issue detected ({high[0].title})"
            else:
                sources = ", ".join(i.detected_by.value for i in high)
                text = f"Reject: {len(high)} high-severity issues detected ({sources})"
        elif status == OverallStatus.FLAGGED:
            reasons = []
            if issues:
                counts = {}
                for issue in issues:
                    counts[issue.severity] = counts.get(issue.severity, 0) + 1
                breakdown = ", ".join(
                    f"{counts[s]} {s.value}" for s in (Severity.HIGH, Severity.MEDIUM, Severity.LOW) if s in counts
                )
                reasons.append(f"{len(issues)} issue(s) detected ({breakdown})")
            if errors:
                reasons.append(
                    f"{len(errors)} evaluator error(s) ({', '.join(r.agent_type.value for r in errors)})"
                )
            if not confidences:
                reasons.append("no evaluator reported a confidence")
            elif confidence < self.approval_threshold:
                reasons.append(f"confidence {confidence:.2f} below {self.approval_threshold:.2f}")
            text = "Review: " + "; ".join(reasons)
        else:
            text = f"Approve: all checks passed with {confidence:.2f} confidence"
            if unverified:
                text += f" ({len(unverified)} unverified: {', '.join(a.value for a in unverified)})"

        if timed_out:
            text += ". Session timed out before all evaluators reported"
        return text
