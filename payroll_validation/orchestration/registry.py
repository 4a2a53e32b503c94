"""Evaluator registry: which evaluators run for which claims."""

import logging
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from ..agents.base import BaseEvaluator
from ..models.claim import ClaimInput, TripData, normalize_claim_type
from ..models.result import AgentType
from ..utils.config import RegistryConfig
from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TYPE_RULES: Dict[str, List[str]] = {
    "per-diem": ["per-diem", "duty-time"],
    "international-premium": ["premium-pay", "flight-time"],
    "holiday-pay": ["premium-pay"],
    "night-premium": ["premium-pay"],
    "lead-premium": ["premium-pay"],
    "layover-premium": ["premium-pay"],
    "training": ["premium-pay"],
    "overtime": ["flight-time", "duty-time", "premium-pay"],
    "reserve-callout": ["guarantee", "duty-time"],
    "guarantee": ["guarantee", "flight-time"],
    "flight-time": ["flight-time"],
    "duty-time": ["duty-time"],
    "deadhead": ["flight-time", "duty-time"],
    "dispute": ["dispute-resolution", "flight-time", "premium-pay"],
    "other": [],
}
DEFAULT_TRIP_EVALUATORS: List[str] = ["flight-time"]
DEFAULT_ALWAYS_ON: List[str] = ["excess-payment-detector", "compliance"]


def _parse_agent_types(values: Iterable[str], where: str) -> FrozenSet[AgentType]:
    parsed = set()
    for value in values:
        try:
            parsed.add(AgentType(str(value).strip().lower()))
        except ValueError:
            raise ConfigurationError.invalid_registry(
                f"unknown evaluator '{value}' in {where}",
                details={"evaluator": value, "where": where},
            )
    return frozenset(parsed)


class EvaluatorRegistry:
    """
    Closed mapping from claim type to the evaluators that must run.

    Selection is claim type -> base evaluators, plus trip evaluators when trip
    data is supplied, plus the always-on evaluators. The result is returned in
    the canonical AgentType order, which is the dispatch order.

    Attributes:
        evaluators: Registered evaluator per AgentType
    """

    def __init__(
        self,
        evaluators: Mapping[AgentType, BaseEvaluator],
        claim_types: Optional[Mapping[str, Iterable[str]]] = None,
        trip_evaluators: Optional[Iterable[str]] = None,
        always_on: Optional[Iterable[str]] = None,
    ):
        """
        Initialize and validate the registry.

        Args:
            evaluators: Evaluator implementation per AgentType
            claim_types: Claim type -> base evaluator identifiers
            trip_evaluators: Evaluators added when trip data is present
            always_on: Evaluators dispatched for every claim

        Raises:
            ConfigurationError: If the rules reference unknown or unregistered
                evaluators, or compliance is not always-on
        """
        self.evaluators: Dict[AgentType, BaseEvaluator] = dict(evaluators)

        rules = DEFAULT_CLAIM_TYPE_RULES if not claim_types else claim_types
        self._rules: Dict[str, FrozenSet[AgentType]] = {}
        for claim_type, agent_types in rules.items():
            key = normalize_claim_type(claim_type)
            if not key:
                raise ConfigurationError.invalid_registry("empty claim type in rules")
            self._rules[key] = _parse_agent_types(agent_types or [], f"claim type '{key}'")

        self._trip_evaluators = _parse_agent_types(
            DEFAULT_TRIP_EVALUATORS if trip_evaluators is None else trip_evaluators,
            "trip_evaluators",
        )
        self._always_on = _parse_agent_types(
            DEFAULT_ALWAYS_ON if always_on is None else always_on,
            "always_on",
        )

        self.validate()
        logger.info(
            f"Evaluator registry ready: {len(self._rules)} claim types, "
            f"always-on={[a.value for a in self._ordered(self._always_on)]}"
        )

    @classmethod
    def from_config(
        cls,
        config: RegistryConfig,
        evaluators: Mapping[AgentType, BaseEvaluator],
    ) -> "EvaluatorRegistry":
        return cls(
            evaluators,
            claim_types=config.claim_types or None,
            trip_evaluators=config.trip_evaluators,
            always_on=config.always_on,
        )

    def validate(self) -> None:
        """Startup check that every referenced evaluator is registered."""
        if AgentType.COMPLIANCE not in self._always_on:
            raise ConfigurationError.invalid_registry("compliance must be an always-on evaluator")

        referenced = set(self._always_on) | set(self._trip_evaluators)
        for agent_types in self._rules.values():
            referenced |= agent_types

        missing = sorted(a.value for a in referenced if a not in self.evaluators)
        if missing:
            raise ConfigurationError.invalid_registry(
                f"no evaluator registered for {', '.join(missing)}",
                details={"missing": missing},
            )

        for agent_type, evaluator in self.evaluators.items():
            if evaluator.agent_type != agent_type:
                raise ConfigurationError.invalid_registry(
                    f"evaluator {evaluator} registered under '{agent_type.value}'",
                    details={"registered_as": agent_type.value, "declares": evaluator.agent_type.value},
                )

    @property
    def known_claim_types(self) -> List[str]:
        return sorted(self._rules)

    def select_evaluators(self, claim: ClaimInput, trip: Optional[TripData] = None) -> List[AgentType]:
        """
        Evaluators to dispatch for a claim.

        Args:
            claim: Claim under validation
            trip: Optional trip data; its presence adds the trip evaluators

        Returns:
            Non-empty list of AgentType in dispatch order

        Raises:
            ConfigurationError: If the claim type is outside the closed set
        """
        claim_type = normalize_claim_type(claim.type)
        if claim_type not in self._rules:
            raise ConfigurationError.unknown_claim_type(claim.type, list(self._rules))

        selected = set(self._rules[claim_type]) | set(self._always_on)
        if trip is not None:
            selected |= self._trip_evaluators

        ordered = self._ordered(selected)
        logger.debug(f"Selected evaluators for '{claim_type}': {[a.value for a in ordered]}")
        return ordered

    def get(self, agent_type: AgentType) -> BaseEvaluator:
        return self.evaluators[agent_type]

    @staticmethod
    def _ordered(agent_types: Iterable[AgentType]) -> List[AgentType]:
        chosen = set(agent_types)
        return [a for a in AgentType if a in chosen]
