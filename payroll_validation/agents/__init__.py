"""Evaluators, one per AgentType."""

import logging
from typing import Dict, Optional

from ..models.result import AgentType
from ..utils.bedrock_client import BedrockClient
from ..utils.config import Config
from .base import BaseEvaluator, LLMEvaluator
from .compliance import ComplianceEvaluator
from .dispute_resolution import DisputeResolutionEvaluator
from .duty_time import DutyTimeEvaluator
from .excess_payment import ExcessPaymentEvaluator
from .flight_time import FlightTimeEvaluator
from .guarantee import GuaranteeEvaluator
from .per_diem import PerDiemEvaluator
from .premium_pay import PremiumPayEvaluator

logger = logging.getLogger(__name__)

EVALUATOR_CLASSES = {
    AgentType.FLIGHT_TIME: FlightTimeEvaluator,
    AgentType.DUTY_TIME: DutyTimeEvaluator,
    AgentType.PER_DIEM: PerDiemEvaluator,
    AgentType.PREMIUM_PAY: PremiumPayEvaluator,
    AgentType.GUARANTEE: GuaranteeEvaluator,
    AgentType.COMPLIANCE: ComplianceEvaluator,
    AgentType.DISPUTE_RESOLUTION: DisputeResolutionEvaluator,
    AgentType.EXCESS_PAYMENT_DETECTOR: ExcessPaymentEvaluator,
}


def build_evaluators(bedrock: BedrockClient, config: Optional[Config] = None) -> Dict[AgentType, BaseEvaluator]:
    """
    Instantiate one evaluator per AgentType, sharing one Bedrock client.

    Args:
        bedrock: Reasoning backend client
        config: Optional configuration for per-evaluator model settings

    Returns:
        Mapping of AgentType to evaluator
    """
    evaluators: Dict[AgentType, BaseEvaluator] = {}
    for agent_type, evaluator_cls in EVALUATOR_CLASSES.items():
        settings = config.evaluator_settings(agent_type.value) if config is not None else None
        evaluators[agent_type] = evaluator_cls(bedrock, settings)
    logger.info(f"Built {len(evaluators)} evaluators")
    return evaluators


__all__ = [
    "BaseEvaluator",
    "ComplianceEvaluator",
    "DisputeResolutionEvaluator",
    "DutyTimeEvaluator",
    "EVALUATOR_CLASSES",
    "ExcessPaymentEvaluator",
    "FlightTimeEvaluator",
    "GuaranteeEvaluator",
    "LLMEvaluator",
    "PerDiemEvaluator",
    "PremiumPayEvaluator",
    "build_evaluators",
]
