"""Configuration management for the claim validation engine."""

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError, ErrorContext, ErrorType


@dataclass
class BedrockConfig:
    """AWS Bedrock configuration."""
    model_id: str = "amazon.nova-pro-v1:0"
    timeout: int = 60
    max_retries: int = 3
    max_concurrency: int = 4


@dataclass
class OrchestrationConfig:
    """Timeouts and decision thresholds for a validation session."""
    evaluator_timeout_ms: int = 30000
    session_timeout_ms: int = 60000
    approval_confidence_threshold: float = 0.6


@dataclass
class RegistryConfig:
    """
    Data-driven evaluator selection rules.

    An empty claim_types mapping means the built-in rules in
    orchestration.registry are used.
    """
    claim_types: Dict[str, List[str]] = field(default_factory=dict)
    trip_evaluators: Optional[List[str]] = None
    always_on: Optional[List[str]] = None


@dataclass
class EvaluatorConfig:
    """Per-evaluator model settings."""
    temperature: float = 0.1
    max_tokens: int = 2000


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - [%(claim_id)s] %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    aws_region: str
    bedrock: BedrockConfig
    orchestration: OrchestrationConfig
    registry: RegistryConfig
    evaluators: Dict[str, EvaluatorConfig]
    logging: LoggingConfig

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - EVALUATOR_TIMEOUT_MS
        - SESSION_TIMEOUT_MS
        - MAX_CONCURRENT_EVALUATIONS
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings
        """
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(
                ErrorContext(
                    error_type=ErrorType.CONFIG_MISSING,
                    message=f"Configuration file not found: {config_path}",
                    recoverable=False,
                    original_exception=e
                )
            )
        except yaml.YAMLError as e:
            raise ConfigurationError.invalid_config(
                f"Configuration file {config_path} is not valid YAML: {e}"
            )

        return cls.from_dict(config_data, environ=os.environ)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> "Config":
        """
        Build configuration from an in-memory mapping.

        Args:
            config_data: Parsed configuration (same shape as config.yaml)
            environ: Optional environment mapping for overrides

        Returns:
            Config instance
        """
        environ = environ or {}
        aws = config_data.get("aws", {}) or {}
        bedrock_data = aws.get("bedrock", {}) or {}
        orchestration_data = config_data.get("orchestration", {}) or {}
        registry_data = config_data.get("registry", {}) or {}
        logging_data = config_data.get("logging", {}) or {}

        aws_region = environ.get("AWS_REGION", aws.get("region", "us-east-1"))

        try:
            bedrock_config = BedrockConfig(
                model_id=environ.get("BEDROCK_MODEL_ID", bedrock_data.get("model_id", BedrockConfig.model_id)),
                timeout=int(bedrock_data.get("timeout", BedrockConfig.timeout)),
                max_retries=int(bedrock_data.get("max_retries", BedrockConfig.max_retries)),
                max_concurrency=int(
                    environ.get(
                        "MAX_CONCURRENT_EVALUATIONS",
                        bedrock_data.get("max_concurrency", BedrockConfig.max_concurrency)
                    )
                ),
            )

            orchestration_config = OrchestrationConfig(
                evaluator_timeout_ms=int(
                    environ.get(
                        "EVALUATOR_TIMEOUT_MS",
                        orchestration_data.get("evaluator_timeout_ms", OrchestrationConfig.evaluator_timeout_ms)
                    )
                ),
                session_timeout_ms=int(
                    environ.get(
                        "SESSION_TIMEOUT_MS",
                        orchestration_data.get("session_timeout_ms", OrchestrationConfig.session_timeout_ms)
                    )
                ),
                approval_confidence_threshold=float(
                    orchestration_data.get(
                        "approval_confidence_threshold",
                        OrchestrationConfig.approval_confidence_threshold
                    )
                ),
            )

            evaluators = {
                agent_type: EvaluatorConfig(
                    temperature=float((settings or {}).get("temperature", EvaluatorConfig.temperature)),
                    max_tokens=int((settings or {}).get("max_tokens", EvaluatorConfig.max_tokens)),
                )
                for agent_type, settings in (config_data.get("evaluators", {}) or {}).items()
            }
        except (TypeError, ValueError) as e:
            raise ConfigurationError.invalid_config(f"Invalid configuration value: {e}")

        registry_config = RegistryConfig(
            claim_types={
                str(claim_type): list(agent_types or [])
                for claim_type, agent_types in (registry_data.get("claim_types", {}) or {}).items()
            },
            trip_evaluators=registry_data.get("trip_evaluators"),
            always_on=registry_data.get("always_on"),
        )

        logging_config = LoggingConfig(
            level=environ.get("LOG_LEVEL", logging_data.get("level", LoggingConfig.level)),
            format=logging_data.get("format", LoggingConfig.format),
            file=logging_data.get("file"),
        )

        config = cls(
            aws_region=aws_region,
            bedrock=bedrock_config,
            orchestration=orchestration_config,
            registry=registry_config,
            evaluators=evaluators,
            logging=logging_config,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check cross-field invariants; raises ConfigurationError on violation."""
        t_eval = self.orchestration.evaluator_timeout_ms
        t_session = self.orchestration.session_timeout_ms
        if t_eval <= 0:
            raise ConfigurationError.invalid_config(
                f"evaluator_timeout_ms must be positive, got {t_eval}"
            )
        if t_session < t_eval:
            raise ConfigurationError.invalid_config(
                f"session_timeout_ms ({t_session}) must be >= evaluator_timeout_ms ({t_eval})",
                details={"session_timeout_ms": t_session, "evaluator_timeout_ms": t_eval}
            )
        if self.bedrock.max_concurrency < 1:
            raise ConfigurationError.invalid_config(
                f"max_concurrency must be >= 1, got {self.bedrock.max_concurrency}"
            )
        threshold = self.orchestration.approval_confidence_threshold
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError.invalid_config(
                f"approval_confidence_threshold must be within [0, 1], got {threshold}"
            )

    def evaluator_settings(self, agent_type: str) -> EvaluatorConfig:
        return self.evaluators.get(agent_type, EvaluatorConfig())
