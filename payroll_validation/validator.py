"""
Main entry point for crew pay claim validation.

This module provides validate(), which runs one claim through the applicable
evaluators and returns the aggregated ValidationResult. Evaluator failures are
absorbed into the result; only configuration errors are raised.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from .agents import build_evaluators
from .models.claim import AgentInput, ClaimInput, CrewData, HistoricalData, TripData
from .models.result import ValidationResult
from .orchestration.aggregator import ResultAggregator
from .orchestration.coordinator import DispatchCoordinator
from .orchestration.registry import EvaluatorRegistry
from .orchestration.session import ValidationSession
from .utils.bedrock_client import BedrockClient
from .utils.config import Config
from .utils.errors import ConfigurationError, ErrorContext, ErrorType
from .utils.logging import setup_logging

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _coerce(value, model):
    if value is None or isinstance(value, model):
        return value
    if isinstance(value, dict):
        return model.from_dict(value)
    raise TypeError(f"Expected {model.__name__} or dict, got {type(value).__name__}")


class ClaimValidator:
    """
    Session boundary: validates claims one session at a time.

    Attributes:
        registry: Evaluator registry
        coordinator: Dispatch coordinator
        aggregator: Result aggregator
    """

    def __init__(
        self,
        registry: EvaluatorRegistry,
        coordinator: DispatchCoordinator,
        aggregator: ResultAggregator,
    ):
        self.registry = registry
        self.coordinator = coordinator
        self.aggregator = aggregator

    @classmethod
    def from_config(cls, config: Config, bedrock: Optional[BedrockClient] = None) -> "ClaimValidator":
        """
        Wire the system from configuration.

        Args:
            config: Loaded configuration
            bedrock: Optional pre-built Bedrock client (its limiter is shared
                with the coordinator)

        Returns:
            ClaimValidator
        """
        if bedrock is None:
            bedrock = BedrockClient(
                region=config.aws_region,
                model_id=config.bedrock.model_id,
                timeout=config.bedrock.timeout,
                max_retries=config.bedrock.max_retries,
                max_concurrency=config.bedrock.max_concurrency,
            )
        evaluators = build_evaluators(bedrock, config)
        registry = EvaluatorRegistry.from_config(config.registry, evaluators)
        coordinator = DispatchCoordinator(
            registry.evaluators,
            bedrock.limiter,
            evaluator_timeout_ms=config.orchestration.evaluator_timeout_ms,
            session_timeout_ms=config.orchestration.session_timeout_ms,
        )
        aggregator = ResultAggregator(config.orchestration.approval_confidence_threshold)
        return cls(registry, coordinator, aggregator)

    async def validate_async(
        self,
        claim: Union[ClaimInput, Dict[str, Any]],
        trip: Union[TripData, Dict[str, Any], None] = None,
        crew: Union[CrewData, Dict[str, Any], None] = None,
        historical_data: Union[HistoricalData, Dict[str, Any], None] = None,
    ) -> ValidationResult:
        """
        Validate one claim inside a running event loop.

        Args:
            claim: Claim, as ClaimInput or camelCase/snake_case dict
            trip: Optional trip data
            crew: Optional crew profile
            historical_data: Optional claim history

        Returns:
            ValidationResult

        Raises:
            ConfigurationError: Unknown claim type or missing claim id
        """
        if claim is None:
            raise ConfigurationError.missing_identifier("claim")
        try:
            agent_input = AgentInput(
                claim=_coerce(claim, ClaimInput),
                trip=_coerce(trip, TripData),
                crew=_coerce(crew, CrewData),
                historical_data=_coerce(historical_data, HistoricalData),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError.invalid_config(f"Invalid claim input: {e}")
        session = ValidationSession(self.registry, self.coordinator, self.aggregator)
        return await session.run(agent_input)

    def validate(
        self,
        claim: Union[ClaimInput, Dict[str, Any]],
        trip: Union[TripData, Dict[str, Any], None] = None,
        crew: Union[CrewData, Dict[str, Any], None] = None,
        historical_data: Union[HistoricalData, Dict[str, Any], None] = None,
    ) -> ValidationResult:
        """Synchronous validate; must not be called from a running event loop."""
        return asyncio.run(self.validate_async(claim, trip, crew, historical_data))


# Global instances (initialized on first use)
_config: Optional[Config] = None
_validator: Optional[ClaimValidator] = None


def _initialize_system() -> ClaimValidator:
    """
    Initialize config, logging, Bedrock client and evaluators.

    Called lazily on the first validate() to avoid initialization overhead
    when the module is imported.
    """
    global _config, _validator

    if _validator is not None:
        return _validator

    try:
        config = Config.load()
        setup_logging(level=config.logging.level, log_format=config.logging.format, log_file=config.logging.file)
        logger.info(f"Configuration loaded: region={config.aws_region}, model={config.bedrock.model_id}")

        validator = ClaimValidator.from_config(config)
        logger.info("System initialization complete")
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(f"System initialization failed: {str(e)}", exc_info=True)
        raise ConfigurationError(
            ErrorContext(
                error_type=ErrorType.INITIALIZATION_FAILED,
                message=f"Failed to initialize claim validator: {str(e)}",
                recoverable=False,
                original_exception=e
            )
        )

    _config, _validator = config, validator
    return validator


async def validate_async(
    claim: Union[ClaimInput, Dict[str, Any]],
    trip: Union[TripData, Dict[str, Any], None] = None,
    crew: Union[CrewData, Dict[str, Any], None] = None,
    historical_data: Union[HistoricalData, Dict[str, Any], None] = None,
) -> ValidationResult:
    """Validate one claim with the process-wide validator."""
    return await _initialize_system().validate_async(claim, trip, crew, historical_data)


def validate(
    claim: Union[ClaimInput, Dict[str, Any]],
    trip: Union[TripData, Dict[str, Any], None] = None,
    crew: Union[CrewData, Dict[str, Any], None] = None,
    historical_data: Union[HistoricalData, Dict[str, Any], None] = None,
) -> ValidationResult:
    """
    Validate a crew pay claim.

    Synchronous from the caller's point of view; evaluators run concurrently
    inside. Every evaluator-level failure is reported inside the result.

    Args:
        claim: Claim, as ClaimInput or API payload dict
        trip: Optional trip data
        crew: Optional crew profile
        historical_data: Optional claim history

    Returns:
        ValidationResult

    Raises:
        ConfigurationError: Unknown claim type, missing claim id, or the
            system could not be initialized
    """
    return _initialize_system().validate(claim, trip, crew, historical_data)
