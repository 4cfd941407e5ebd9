# newsdesk/llm/openai_provider.py
"""
OpenAI LLM provider implementation.
"""

from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import OpenAI

from newsdesk.llm.base import LLMProvider
from newsdesk.services.resilience import (
    ConfigurationFailure,
    TransportFailure,
    UpstreamFormatFailure,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI-based LLM provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.6,
        timeout: float = 60.0,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (OPENAI_API_KEY setting)
            model: Chat model, gpt-4o-mini by default for cost efficiency
            temperature: Sampling temperature
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ConfigurationFailure("OpenAI API key required. Set OPENAI_API_KEY.")

        self._model = model
        self._temperature = temperature
        # Fallback cascades live in the orchestrators, so no SDK-level retries
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    def complete(self, system_prompt: str, user_prompt: str, json_mode: bool = True) -> str:
        """Make a chat completion request."""
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._temperature,
                **kwargs,
            )
        except openai.APIStatusError as e:
            raise TransportFailure(f"OpenAI returned HTTP {e.status_code}: {e.message}", e.status_code) from e
        except openai.APIError as e:
            # Connection errors and timeouts
            raise TransportFailure(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise UpstreamFormatFailure("OpenAI returned an empty completion")
        return content
