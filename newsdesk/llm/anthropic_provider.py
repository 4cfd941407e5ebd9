# newsdesk/llm/anthropic_provider.py
"""
Anthropic LLM provider implementation.
"""

from __future__ import annotations

import logging
from typing import Optional

import anthropic

from newsdesk.llm.base import LLMProvider
from newsdesk.services.resilience import (
    ConfigurationFailure,
    TransportFailure,
    UpstreamFormatFailure,
)

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 4096


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-haiku-4-5",
        temperature: float = 0.6,
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ConfigurationFailure("Anthropic API key required. Set ANTHROPIC_API_KEY.")

        self._model = model
        self._temperature = temperature
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(self, system_prompt: str, user_prompt: str, json_mode: bool = True) -> str:
        if json_mode:
            system_prompt = f"{system_prompt}\n\nRespond with a single JSON object and nothing else."

        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=self._temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIStatusError as e:
            raise TransportFailure(f"Anthropic returned HTTP {e.status_code}: {e.message}", e.status_code) from e
        except anthropic.APIError as e:
            raise TransportFailure(f"Anthropic request failed: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        if not text.strip():
            raise UpstreamFormatFailure("Anthropic returned an empty message")
        return text
