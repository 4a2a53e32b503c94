"""JSON extraction from reasoning backend output."""

import json
import logging
import re
from typing import Dict, Any, Iterable, List, Optional

logger = logging.getLogger(__name__)


class ResponseFormatter:
    """
    Utility class for extracting JSON verdicts from model responses.

    Models are asked for a bare JSON object but often wrap it in a markdown
    fence or surround it with prose, so several strategies are tried.
    """

    _FENCE_PATTERNS = (
        r'```json\s*\n(.*?)\n\s*```',
        r'```\s*\n(.*?)\n\s*```',
    )

    @staticmethod
    def extract_json_from_response(response_text: str) -> Optional[Dict[str, Any]]:
        """
        Extract a JSON object from various response formats.

        Tries, in order:
        1. Markdown code blocks (```json ... ```)
        2. Raw JSON (entire response)
        3. JSON embedded in text (first complete object)

        Args:
            response_text: Raw response text that may contain JSON

        Returns:
            Parsed JSON dictionary, or None if no valid JSON object found
        """
        if not response_text or not response_text.strip():
            logger.warning("Empty response text provided")
            return None

        text = response_text.strip()

        for extractor in (
            ResponseFormatter._extract_markdown_json,
            ResponseFormatter._extract_raw_json,
            ResponseFormatter._extract_embedded_json,
        ):
            data = extractor(text)
            if isinstance(data, dict):
                return data

        logger.warning(f"Failed to extract JSON from response: {text[:200]}...")
        return None

    @staticmethod
    def _extract_markdown_json(text: str) -> Optional[Dict[str, Any]]:
        for pattern in ResponseFormatter._FENCE_PATTERNS:
            match = re.search(pattern, text, re.DOTALL)
            if match:
                try:
                    return json.loads(match.group(1).strip())
                except json.JSONDecodeError:
                    continue
        return None

    @staticmethod
    def _extract_raw_json(text: str) -> Optional[Dict[str, Any]]:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None

    @staticmethod
    def _extract_embedded_json(text: str) -> Optional[Dict[str, Any]]:
        """
        Find and extract a JSON object embedded in text using brace counting.

        Args:
            text: Response text

        Returns:
            Parsed JSON dict or None
        """
        start_idx = text.find('{')
        while start_idx != -1:
            brace_count = 0
            in_string = False
            escape_next = False

            for i in range(start_idx, len(text)):
                char = text[i]
                if escape_next:
                    escape_next = False
                    continue
                if char == '\\':
                    escape_next = True
                    continue
                if char == '"':
                    in_string = not in_string
                    continue
                if in_string:
                    continue
                if char == '{':
                    brace_count += 1
                elif char == '}':
                    brace_count -= 1
                    if brace_count == 0:
                        try:
                            return json.loads(text[start_idx:i + 1])
                        except json.JSONDecodeError:
                            break

            start_idx = text.find('{', start_idx + 1)

        return None

    @staticmethod
    def validate_json_structure(
        data: Dict[str, Any],
        required_fields: Optional[Iterable[str]] = None
    ) -> List[str]:
        """
        Return the required fields missing from data (empty when valid).

        Args:
            data: JSON data to validate
            required_fields: Field names that must be present

        Returns:
            List of missing field names
        """
        if not isinstance(data, dict):
            logger.warning("JSON data is not a dictionary")
            return list(required_fields or [])

        missing = [name for name in (required_fields or []) if name not in data]
        if missing:
            logger.warning(f"Missing required fields: {missing}")
        return missing
