"""Error handling utilities for the payroll claim validation system."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types in the claim validation system."""

    # Configuration Errors (fatal to a session, raised before dispatch)
    CONFIG_UNKNOWN_CLAIM_TYPE = "CONFIG_UNKNOWN_CLAIM_TYPE"
    CONFIG_MISSING_IDENTIFIER = "CONFIG_MISSING_IDENTIFIER"
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_MISSING = "CONFIG_MISSING"

    # Evaluator Errors (recovered into synthetic AgentResults)
    EVALUATOR_TIMEOUT = "EVALUATOR_TIMEOUT"
    EVALUATOR_FAULT = "EVALUATOR_FAULT"
    EVALUATOR_INVALID_RESPONSE = "EVALUATOR_INVALID_RESPONSE"
    SESSION_DEADLINE_EXCEEDED = "SESSION_DEADLINE_EXCEEDED"

    # Bedrock API Errors
    BEDROCK_RATE_LIMIT = "BEDROCK_RATE_LIMIT"
    BEDROCK_TIMEOUT = "BEDROCK_TIMEOUT"
    BEDROCK_AUTH_ERROR = "BEDROCK_AUTH_ERROR"
    BEDROCK_MODEL_ERROR = "BEDROCK_MODEL_ERROR"
    BEDROCK_INVALID_REQUEST = "BEDROCK_INVALID_REQUEST"
    BEDROCK_SERVICE_ERROR = "BEDROCK_SERVICE_ERROR"

    # System Errors
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"

    # General Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """
    Context information for errors in the claim validation system.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the session can continue after this error
        fallback_action: Optional description of fallback action taken
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class PayrollValidationError(Exception):
    """
    Base exception for all claim validation errors.

    Wraps errors with an ErrorContext so callers can tell recoverable
    evaluator-level problems apart from fatal configuration problems.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class ConfigurationError(PayrollValidationError):
    """
    Fatal error raised before any evaluator is dispatched.

    This is the only error the session boundary propagates to callers.
    """

    @classmethod
    def unknown_claim_type(cls, claim_type: str, known_types: Optional[list] = None) -> "ConfigurationError":
        """
        Create error for a claim type outside the closed set.

        Args:
            claim_type: The offending claim type
            known_types: The registered claim types

        Returns:
            ConfigurationError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CONFIG_UNKNOWN_CLAIM_TYPE,
            message=f"Unknown claim type '{claim_type}'",
            recoverable=False,
            details={"claim_type": claim_type, "known_types": sorted(known_types or [])}
        )
        return cls(context)

    @classmethod
    def missing_identifier(cls, field_name: str) -> "ConfigurationError":
        """
        Create error for a missing required identifier (e.g. claim id).

        Args:
            field_name: Name of the missing field

        Returns:
            ConfigurationError instance
        """
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING_IDENTIFIER,
            message=f"Required identifier '{field_name}' is missing",
            recoverable=False,
            details={"field": field_name}
        )
        return cls(context)

    @classmethod
    def invalid_config(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=message,
            recoverable=False,
            details=details
        )
        return cls(context)

    @classmethod
    def invalid_registry(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Evaluator registry is invalid: {message}",
            recoverable=False,
            details=details
        )
        return cls(context)


class EvaluatorError(PayrollValidationError):
    """Exception for evaluator-level failures, always recovered by the coordinator."""

    @classmethod
    def timed_out(cls, agent_type: str, timeout_ms: int) -> "EvaluatorError":
        """
        Create error for an evaluator exceeding its per-evaluator timeout.

        Args:
            agent_type: Evaluator identifier
            timeout_ms: The timeout that was exceeded

        Returns:
            EvaluatorError instance
        """
        context = ErrorContext(
            error_type=ErrorType.EVALUATOR_TIMEOUT,
            message=f"Evaluator '{agent_type}' timed out after {timeout_ms}ms",
            recoverable=True,
            fallback_action="Record synthetic error result and continue",
            details={"agent_type": agent_type, "timeout_ms": timeout_ms}
        )
        return cls(context)

    @classmethod
    def fault(cls, agent_type: str, error: BaseException) -> "EvaluatorError":
        """
        Create error for an exception raised inside an evaluator.

        Args:
            agent_type: Evaluator identifier
            error: Original exception

        Returns:
            EvaluatorError instance
        """
        context = ErrorContext(
            error_type=ErrorType.EVALUATOR_FAULT,
            message=str(error) or error.__class__.__name__,
            recoverable=True,
            fallback_action="Record synthetic error result and continue",
            details={"agent_type": agent_type, "exception_type": error.__class__.__name__},
            original_exception=error
        )
        return cls(context)

    @classmethod
    def invalid_response(cls, agent_type: str, reason: str) -> "EvaluatorError":
        context = ErrorContext(
            error_type=ErrorType.EVALUATOR_INVALID_RESPONSE,
            message=f"Evaluator '{agent_type}' produced an invalid response: {reason}",
            recoverable=True,
            fallback_action="Record synthetic error result and continue",
            details={"agent_type": agent_type}
        )
        return cls(context)

    @classmethod
    def session_deadline(cls, agent_type: str, session_timeout_ms: int) -> "EvaluatorError":
        context = ErrorContext(
            error_type=ErrorType.SESSION_DEADLINE_EXCEEDED,
            message=(
                f"Session deadline of {session_timeout_ms}ms elapsed before "
                f"evaluator '{agent_type}' reported"
            ),
            recoverable=True,
            fallback_action="Return best-effort result",
            details={"agent_type": agent_type, "session_timeout_ms": session_timeout_ms}
        )
        return cls(context)


class BedrockAPIError(PayrollValidationError):
    """Exception for AWS Bedrock API errors."""

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        recoverable: bool = False,
        fallback_action: Optional[str] = None
    ) -> "BedrockAPIError":
        """
        Create BedrockAPIError from boto3 ClientError.

        Args:
            error: Original boto3 ClientError
            operation: Description of operation that failed
            recoverable: Whether error is recoverable
            fallback_action: Optional fallback action description

        Returns:
            BedrockAPIError instance
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, 'response'):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        error_type_map = {
            "ThrottlingException": ErrorType.BEDROCK_RATE_LIMIT,
            "TooManyRequestsException": ErrorType.BEDROCK_RATE_LIMIT,
            "RequestTimeout": ErrorType.BEDROCK_TIMEOUT,
            "RequestTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "UnauthorizedException": ErrorType.BEDROCK_AUTH_ERROR,
            "AccessDeniedException": ErrorType.BEDROCK_AUTH_ERROR,
            "ValidationException": ErrorType.BEDROCK_INVALID_REQUEST,
            "ModelNotReadyException": ErrorType.BEDROCK_MODEL_ERROR,
            "ModelTimeoutException": ErrorType.BEDROCK_TIMEOUT,
            "ServiceUnavailableException": ErrorType.BEDROCK_SERVICE_ERROR,
            "InternalServerException": ErrorType.BEDROCK_SERVICE_ERROR,
        }

        error_type = error_type_map.get(error_code, ErrorType.BEDROCK_SERVICE_ERROR)

        context = ErrorContext(
            error_type=error_type,
            message=f"Bedrock API error during {operation}: {error_message}",
            recoverable=recoverable,
            fallback_action=fallback_action,
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )

        return cls(context)
