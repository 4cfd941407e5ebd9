# newsdesk/llm/base.py
"""
Base interface for LLM providers.
Allows swapping between OpenAI, Anthropic, or other providers.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict

from newsdesk.services.resilience import UpstreamFormatFailure


def extract_json(text: str) -> Dict[str, Any]:
    """Extract a JSON object from an LLM response, handling markdown code blocks."""
    if not text:
        raise UpstreamFormatFailure("Empty response from provider")

    code_block_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if code_block_match:
        text = code_block_match.group(1).strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        json_match = re.search(r"\{[\s\S]*\}", text)
        if not json_match:
            raise UpstreamFormatFailure(f"Could not extract JSON from response: {text[:200]}")
        try:
            data = json.loads(json_match.group())
        except json.JSONDecodeError as e:
            raise UpstreamFormatFailure(f"Malformed JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise UpstreamFormatFailure("Response JSON is not an object")
    return data


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'openai', 'anthropic')."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model being used (e.g., 'gpt-4o-mini')."""
        pass

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str, json_mode: bool = True) -> str:
        """
        Run one system+user exchange and return the raw response text.

        Args:
            system_prompt: Role and output contract
            user_prompt: The article or text to work on
            json_mode: Ask the provider to return a single JSON object

        Raises:
            TransportFailure: network error, timeout or non-2xx status
            UpstreamFormatFailure: empty or unusable response
        """
        pass
