# newsdesk/llm/__init__.py
"""
LLM provider abstraction layer.

Usage:
    from newsdesk.llm import get_llm_provider

    provider = get_llm_provider()  # Uses GENERATION_PROVIDER setting
    raw = provider.complete(system_prompt, user_prompt)
"""

from __future__ import annotations

from typing import Optional

from newsdesk.config import Settings, get_settings
from newsdesk.llm.base import LLMProvider, extract_json
from newsdesk.services.resilience import ConfigurationFailure

__all__ = [
    "LLMProvider",
    "extract_json",
    "get_llm_provider",
]


def get_llm_provider(
    provider_name: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> LLMProvider:
    """
    Factory function to get an LLM provider instance.

    Args:
        provider_name: Provider to use ('openai', 'anthropic').
                      If not provided, uses the GENERATION_PROVIDER setting.
        settings: Settings to read keys and models from (defaults to get_settings())

    Raises:
        ConfigurationFailure: the provider's API key is not set
        ConfigurationFailure: unknown provider name
    """
    settings = settings or get_settings()
    name = (provider_name or settings.GENERATION_PROVIDER).lower().strip()

    if name == "openai":
        from newsdesk.llm.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            temperature=settings.GENERATION_TEMPERATURE,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
        )

    if name == "anthropic":
        from newsdesk.llm.anthropic_provider import AnthropicProvider

        return AnthropicProvider(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            temperature=settings.GENERATION_TEMPERATURE,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
        )

    raise ConfigurationFailure(f"Unknown LLM provider: {name}. Available: openai, anthropic")
