"""
LLM provider adapters.

Every provider exposes the same contract, `generate(prompt) -> ProviderResult`,
over a LangChain chat model. Each adapter binds a fixed call policy
(temperature, max tokens, timeout) for its call site and converts every
failure into a normalized error code instead of raising.
"""

import logging
import threading
import time
from typing import Dict, List, Optional, Protocol, Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from agents.llm_providers.models import CallPolicy, CallPurpose, ProviderResult
from agents.llm_providers.utils import (
    classify_error,
    message_content_to_text,
    retry_with_backoff,
)
from config.settings import settings

logger = logging.getLogger(__name__)

PROVIDER_NAMES = ("openai", "anthropic", "google")

QUERY_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question directly and, "
    "where relevant, recommend specific products or services by name."
)


class LLMProvider(Protocol):
    """Uniform text-generation contract shared by all providers."""
    name: str

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProviderResult:
        ...


class ProviderNotConfiguredError(ValueError):
    """Raised when a provider is requested without credentials."""


def get_call_policy(purpose: CallPurpose) -> CallPolicy:
    """
    Get the call policy for a call site.

    Profiling is deterministic, query answering uses a small positive
    temperature to emulate real user variance, detection is near
    deterministic with a short timeout.
    """
    if purpose == "profiling":
        return CallPolicy(
            temperature=settings.PROFILING_TEMPERATURE,
            max_tokens=settings.PROFILING_MAX_TOKENS,
            timeout=settings.PROFILING_TIMEOUT,
            max_retries=settings.PROVIDER_MAX_RETRIES,
        )
    if purpose == "detection":
        return CallPolicy(
            temperature=settings.DETECTION_TEMPERATURE,
            max_tokens=settings.DETECTION_MAX_TOKENS,
            timeout=settings.DETECTION_TIMEOUT,
            max_retries=settings.DETECTION_MAX_RETRIES,
        )
    return CallPolicy(
        temperature=settings.QUERY_TEMPERATURE,
        max_tokens=settings.QUERY_MAX_TOKENS,
        timeout=settings.QUERY_TIMEOUT,
        max_retries=settings.PROVIDER_MAX_RETRIES,
    )


class ChatModelProvider:
    """
    Adapter over a LangChain chat model.

    Transient failures are retried with backoff while the policy timeout
    allows; detection policies do not retry at all by default.
    """

    def __init__(
        self,
        name: str,
        chat_model,
        policy: CallPolicy,
        max_retries: int = None,
        retry_delay: float = 2,
    ):
        self.name = name
        self.chat_model = chat_model
        self.policy = policy
        self.max_retries = (max_retries if max_retries is not None else policy.max_retries) + 1
        self.retry_delay = retry_delay

    def _invoke(self, messages) -> str:
        response = self.chat_model.invoke(messages)
        return message_content_to_text(response.content)

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProviderResult:
        """
        Generate a completion for a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system instruction
            cancel_event: When set, pending retries are abandoned

        Returns:
            ProviderResult with text, or with a normalized error code
        """
        if cancel_event is not None and cancel_event.is_set():
            return ProviderResult(text=None, error="cancelled", latency_ms=0)

        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        start = time.monotonic()
        invoke = retry_with_backoff(
            max_retries=self.max_retries,
            initial_delay=self.retry_delay,
            deadline=start + self.policy.timeout,
            cancel_event=cancel_event,
        )(self._invoke)

        try:
            text = invoke(messages)
        except Exception as e:
            code = classify_error(e)
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.warning(f"{self.name} call failed: {code} after {latency_ms}ms")
            return ProviderResult(text=None, error=code, latency_ms=latency_ms)

        latency_ms = int((time.monotonic() - start) * 1000)
        if not text or not text.strip():
            return ProviderResult(text=None, error="empty_response", latency_ms=latency_ms)

        return ProviderResult(text=text, error=None, latency_ms=latency_ms)


def available_providers() -> List[str]:
    """Providers with credentials configured, in preference order."""
    keys = {
        "openai": settings.OPENAI_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
        "google": settings.GEMINI_API_KEY,
    }
    return [name for name in PROVIDER_NAMES if keys.get(name)]


def build_chat_model(provider: str, policy: CallPolicy):
    """
    Build the LangChain chat model for a provider.

    Args:
        provider: Provider name (openai, anthropic, google)
        policy: Call policy to bind

    Returns:
        LangChain chat model instance

    Raises:
        ProviderNotConfiguredError: If credentials are missing
        ValueError: If the provider is unknown
    """
    provider = provider.lower()

    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            raise ProviderNotConfiguredError("OpenAI API key not configured")
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=settings.CHATGPT_MODEL,
            openai_api_key=settings.OPENAI_API_KEY,
            temperature=policy.temperature,
            max_tokens=policy.max_tokens,
            timeout=policy.timeout,
            max_retries=0
        )

    elif provider == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            raise ProviderNotConfiguredError("Anthropic API key not configured")
        from langchain_anthropic import ChatAnthropic
        return ChatAnthropic(
            model=settings.CLAUDE_MODEL,
            anthropic_api_key=settings.ANTHROPIC_API_KEY,
            temperature=policy.temperature,
            max_tokens=policy.max_tokens,
            timeout=policy.timeout,
            max_retries=0
        )

    elif provider == "google":
        if not settings.GEMINI_API_KEY:
            raise ProviderNotConfiguredError("Gemini API key not configured")
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model=settings.GEMINI_MODEL,
            google_api_key=settings.GEMINI_API_KEY,
            temperature=policy.temperature,
            max_output_tokens=policy.max_tokens,
            timeout=policy.timeout,
            max_retries=0
        )

    raise ValueError(f"Unknown provider: {provider}")


def build_provider(name: str, purpose: CallPurpose = "query") -> ChatModelProvider:
    """Build a provider adapter bound to the policy of a call site."""
    policy = get_call_policy(purpose)
    return ChatModelProvider(name=name, chat_model=build_chat_model(name, policy), policy=policy)


def build_query_providers(names: Sequence[str]) -> Dict[str, ChatModelProvider]:
    """
    Build query-answering providers, skipping any without credentials.

    Args:
        names: Provider names to build

    Returns:
        Mapping of provider name to adapter
    """
    providers = {}
    for name in names:
        try:
            providers[name] = build_provider(name, "query")
        except ProviderNotConfiguredError as e:
            logger.warning(f"⚠️ Skipping {name}: {e}")
    return providers
