"""AWS Bedrock client wrapper with retry logic, used as the evaluators' reasoning backend."""

import asyncio
import logging
import os
from typing import Dict, List, Optional, Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError
from dotenv import load_dotenv

from .concurrency import ConcurrencyLimiter
from .errors import BedrockAPIError, ErrorType, ErrorContext

load_dotenv()

logger = logging.getLogger(__name__)


class BedrockClient:
    """
    Wrapper for the AWS Bedrock Runtime Converse API.

    Provides:
    - Async invocation (the blocking SDK call runs in a worker thread)
    - Automatic retry with exponential backoff on throttling/service errors
    - The process-wide concurrency limiter shared by all evaluator calls

    Attributes:
        model_id: Bedrock model identifier
        max_retries: Maximum attempts per call
        limiter: Bounded concurrency limiter handed to the dispatch coordinator
    """

    RETRYABLE_ERRORS = frozenset({
        "ThrottlingException",
        "TooManyRequestsException",
        "ServiceUnavailableException",
        "InternalServerException",
        "RequestTimeout",
        "RequestTimeoutException",
    })

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: int = 60,
        max_retries: int = 3,
        max_concurrency: int = 4,
        runtime: Optional[Any] = None,
    ):
        """
        Initialize Bedrock client.

        Args:
            region: AWS region for Bedrock service
            model_id: Model ID used by every evaluator
            timeout: Connect/read timeout in seconds
            max_retries: Maximum number of attempts
            max_concurrency: Maximum simultaneous evaluator invocations
            runtime: Optional pre-built bedrock-runtime client
        """
        self.region = region
        self.model_id = model_id
        self.max_retries = max(1, max_retries)
        self.limiter = ConcurrencyLimiter(max_concurrency)

        if runtime is not None:
            self.runtime = runtime
        else:
            config_kwargs: Dict[str, Any] = {
                "region_name": region,
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "retries": {"max_attempts": 0},  # retries handled here
            }
            bearer_token = os.getenv("AWS_BEARER_TOKEN_BEDROCK") or os.getenv("BEDROCK_API_KEY")
            if bearer_token:
                os.environ.setdefault("AWS_BEARER_TOKEN_BEDROCK", bearer_token.strip())
                config_kwargs["signature_version"] = "bearer"
                logger.info("BedrockClient configured to use Amazon Bedrock API key authentication")
            else:
                logger.info("BedrockClient configured to use AWS IAM credentials (SigV4)")

            self.runtime = boto3.client("bedrock-runtime", config=Config(**config_kwargs))

        logger.info(
            f"Initialized BedrockClient: region={region}, model={model_id}, "
            f"max_retries={self.max_retries}, max_concurrency={max_concurrency}"
        )

    async def converse(
        self,
        messages: List[Dict[str, Any]],
        system_prompts: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.0,
        max_tokens: int = 2000,
    ) -> Dict[str, Any]:
        """
        Invoke the configured model via the Converse API with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            system_prompts: Optional system prompts
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with 'text', 'content', 'stop_reason', 'usage'

        Raises:
            BedrockAPIError: If all attempts fail or the error is not retryable
        """
        params: Dict[str, Any] = {
            "modelId": self.model_id,
            "messages": messages,
            "inferenceConfig": {
                "temperature": temperature,
                "maxTokens": max_tokens
            }
        }
        if system_prompts:
            params["system"] = system_prompts

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Invoking {self.model_id} (attempt {attempt + 1}/{self.max_retries})")
                response = await asyncio.to_thread(self.runtime.converse, **params)
                logger.debug(
                    f"Converse call succeeded: stop_reason={response.get('stopReason')}, "
                    f"usage={response.get('usage')}"
                )
                return self._parse_converse_response(response)

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                error_message = e.response.get("Error", {}).get("Message", str(e))
                logger.warning(
                    f"Bedrock API error (attempt {attempt + 1}/{self.max_retries}): "
                    f"code={error_code}, message={error_message}"
                )

                if self._is_retryable_error(error_code) and attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.info(f"Retrying in {wait_time} seconds...")
                    await asyncio.sleep(wait_time)
                    continue

                raise BedrockAPIError.from_client_error(
                    error=e,
                    operation="converse",
                    recoverable=False,
                )

        # max_retries >= 1, so the loop either returns or raises
        raise BedrockAPIError(
            ErrorContext(
                error_type=ErrorType.BEDROCK_SERVICE_ERROR,
                message=f"Failed to invoke {self.model_id} after {self.max_retries} attempts",
                recoverable=False
            )
        )

    def _parse_converse_response(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse Converse API response into a simplified format.

        Args:
            response: Raw response from Converse API

        Returns:
            Parsed response dict with 'text', 'content', 'stop_reason', 'usage'
        """
        message = response.get("output", {}).get("message", {})
        content = message.get("content", []) or []
        text_parts = [block["text"] for block in content if isinstance(block, dict) and block.get("text")]

        return {
            "content": content,
            "text": "\n".join(text_parts),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }

    def _is_retryable_error(self, error_code: str) -> bool:
        return error_code in self.RETRYABLE_ERRORS
