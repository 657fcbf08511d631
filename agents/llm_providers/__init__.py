"""
LLM Providers

Uniform generate() adapters over OpenAI, Anthropic and Google chat models.
"""

from agents.llm_providers.models import CallPolicy, ProviderResult
from agents.llm_providers.providers import (
    QUERY_SYSTEM_PROMPT,
    ChatModelProvider,
    LLMProvider,
    ProviderNotConfiguredError,
    available_providers,
    build_provider,
    build_query_providers,
)


__all__ = [
    "CallPolicy",
    "ProviderResult",
    "QUERY_SYSTEM_PROMPT",
    "ChatModelProvider",
    "LLMProvider",
    "ProviderNotConfiguredError",
    "available_providers",
    "build_provider",
    "build_query_providers",
]
