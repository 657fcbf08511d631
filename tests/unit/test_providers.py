"""
Unit tests for LLM provider adapters.

Chat models are replaced with in-process fakes, so no credentials or
network are needed.
"""

import json
import threading
import time
from types import SimpleNamespace

import pytest

from agents.llm_providers import CallPolicy, ChatModelProvider
from agents.llm_providers import providers as provider_module
from agents.llm_providers.utils import classify_error, message_content_to_text, parse_json_response

POLICY = CallPolicy(temperature=0.3, max_tokens=100, timeout=5)


class FakeChatModel:
    """Returns or raises the next scripted outcome on each invoke()."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.messages = []

    def invoke(self, messages):
        self.messages.append(messages)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(content=outcome)


def make_provider(model, max_retries=0):
    return ChatModelProvider("openai", model, POLICY, max_retries=max_retries, retry_delay=0)


class TimingOutChatModel:
    """Fails with a timeout after `delay` seconds, then runs `on_invoke`."""

    def __init__(self, delay=0.0, on_invoke=None):
        self.delay = delay
        self.on_invoke = on_invoke
        self.attempts = 0

    def invoke(self, messages):
        self.attempts += 1
        time.sleep(self.delay)
        if self.on_invoke is not None:
            self.on_invoke()
        raise TimeoutError("Request timed out")


def test_successful_call():
    model = FakeChatModel("Try Cal.com.")
    result = make_provider(model).generate("Best scheduling tool?", system_prompt="Be helpful")

    assert result.ok
    assert result.text == "Try Cal.com."
    assert result.error is None
    assert result.latency_ms >= 0
    assert len(model.messages[0]) == 2


def test_non_retryable_error_becomes_code():
    model = FakeChatModel(ValueError("Invalid API key provided"))
    result = make_provider(model, max_retries=2).generate("hello")

    assert not result.ok
    assert result.text is None
    assert result.error == "auth_error"
    assert len(model.messages) == 1


def test_transient_error_is_retried():
    model = FakeChatModel(TimeoutError("Request timed out"), "Recovered answer")
    result = make_provider(model, max_retries=1).generate("hello")

    assert result.text == "Recovered answer"
    assert len(model.messages) == 2


def test_retries_exhausted_returns_last_code():
    model = FakeChatModel(RuntimeError("503 Service Unavailable"))
    result = make_provider(model, max_retries=1).generate("hello")

    assert result.error == "server_error"
    assert len(model.messages) == 2


def test_empty_response_is_an_error():
    result = make_provider(FakeChatModel("   ")).generate("hello")
    assert result.error == "empty_response"


def test_content_parts_are_flattened():
    parts = [{"type": "text", "text": "Cal.com "}, {"type": "image", "url": "x"}, "is great"]
    assert message_content_to_text(parts) == "Cal.com is great"


@pytest.mark.parametrize("error,code", [
    (TimeoutError("boom"), "timeout"),
    (RuntimeError("429 Too Many Requests"), "rate_limit"),
    (RuntimeError("401 Unauthorized"), "auth_error"),
    (RuntimeError("Anthropic API is overloaded"), "server_error"),
    (RuntimeError("something odd"), "provider_error"),
])
def test_classify_error(error, code):
    assert classify_error(error) == code


def test_parse_json_from_prose():
    payload = parse_json_response('Here you go:\n{"brand_mentioned": true}\nHope that helps.')
    assert payload == {"brand_mentioned": True}


def test_parse_json_raises_without_payload():
    with pytest.raises(json.JSONDecodeError):
        parse_json_response("no json here")


def test_available_providers_follow_credentials(monkeypatch):
    monkeypatch.setattr(provider_module.settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(provider_module.settings, "ANTHROPIC_API_KEY", "sk-ant")
    monkeypatch.setattr(provider_module.settings, "GEMINI_API_KEY", "g-key")

    assert provider_module.available_providers() == ["anthropic", "google"]


def test_missing_credentials_are_skipped(monkeypatch):
    monkeypatch.setattr(provider_module.settings, "OPENAI_API_KEY", "")
    monkeypatch.setattr(provider_module.settings, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(provider_module.settings, "GEMINI_API_KEY", "")

    assert provider_module.build_query_providers(["openai", "anthropic"]) == {}
    with pytest.raises(provider_module.ProviderNotConfiguredError):
        provider_module.build_provider("openai", "detection")


class TestRetryBudget:
    def test_no_retry_once_policy_timeout_has_elapsed(self):
        model = TimingOutChatModel(delay=0.3)
        policy = CallPolicy(temperature=0.1, max_tokens=100, timeout=0.3)
        provider = ChatModelProvider("openai", model, policy, max_retries=2, retry_delay=0.5)

        start = time.monotonic()
        result = provider.generate("hello")

        assert result.error == "timeout"
        assert model.attempts == 1
        assert time.monotonic() - start < 0.6

    def test_retry_fits_inside_policy_timeout(self):
        model = FakeChatModel(RuntimeError("503 Service Unavailable"), "Recovered answer")
        policy = CallPolicy(temperature=0.1, max_tokens=100, timeout=5)
        result = ChatModelProvider("openai", model, policy, max_retries=1, retry_delay=0.01).generate("hello")

        assert result.text == "Recovered answer"
        assert len(model.messages) == 2

    def test_detection_policy_does_not_retry(self):
        policy = provider_module.get_call_policy("detection")
        provider = ChatModelProvider("openai", TimingOutChatModel(), policy, retry_delay=0)

        assert policy.max_retries == 0
        assert provider.generate("hello").error == "timeout"
        assert provider.chat_model.attempts == 1

    def test_query_policy_retries(self):
        assert provider_module.get_call_policy("query").max_retries == provider_module.settings.PROVIDER_MAX_RETRIES

    def test_cancel_cuts_backoff_short(self):
        cancel = threading.Event()
        model = TimingOutChatModel(on_invoke=cancel.set)
        policy = CallPolicy(temperature=0.3, max_tokens=100, timeout=30)
        provider = ChatModelProvider("openai", model, policy, max_retries=3, retry_delay=5)

        start = time.monotonic()
        result = provider.generate("hello", cancel_event=cancel)

        assert result.error == "timeout"
        assert model.attempts == 1
        assert time.monotonic() - start < 1.0

    def test_cancelled_call_never_reaches_the_model(self):
        cancel = threading.Event()
        cancel.set()
        model = FakeChatModel("Try Cal.com.")

        result = make_provider(model).generate("hello", cancel_event=cancel)

        assert result.error == "cancelled"
        assert model.messages == []
