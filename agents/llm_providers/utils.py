"""
Utility functions for LLM provider calls.
"""

import json
import logging
import re
import time
from functools import wraps

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 2  # seconds

RATE_LIMIT_TERMS = ("rate limit", "ratelimit", "rate_limit", "too many requests", "429", "quota")
TIMEOUT_TERMS = ("timeout", "timed out")
SERVER_ERROR_TERMS = ("500", "502", "503", "overloaded", "internal server error", "service unavailable")
AUTH_TERMS = ("401", "403", "invalid api key", "authentication", "permission denied")


def classify_error(error: BaseException) -> str:
    """
    Normalize a provider exception into a short error code.

    Args:
        error: Exception raised by a provider client

    Returns:
        One of: timeout, rate_limit, server_error, auth_error, provider_error
    """
    name = type(error).__name__.lower()
    message = str(error).lower()

    if isinstance(error, TimeoutError) or "timeout" in name or any(t in message for t in TIMEOUT_TERMS):
        return "timeout"
    if "ratelimit" in name or any(t in message for t in RATE_LIMIT_TERMS):
        return "rate_limit"
    if "authentication" in name or any(t in message for t in AUTH_TERMS):
        return "auth_error"
    if any(t in message for t in SERVER_ERROR_TERMS) or "internalserver" in name:
        return "server_error"
    return "provider_error"


def is_retryable(error: BaseException) -> bool:
    """Timeouts, rate limits and transient server errors are worth retrying."""
    return classify_error(error) in ("timeout", "rate_limit", "server_error")


def retry_with_backoff(
    max_retries=MAX_RETRIES,
    initial_delay=INITIAL_RETRY_DELAY,
    should_retry=is_retryable,
    deadline=None,
    cancel_event=None,
):
    """
    Decorator for retrying functions with exponential backoff.

    No retry starts after `deadline` (a time.monotonic() value), and the
    backoff sleep ends early when `cancel_event` is set.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries):
                if last_exception is not None and cancel_event is not None and cancel_event.is_set():
                    logger.warning(f"Retry abandoned after {attempt} attempt(s): cancelled")
                    break
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e

                    if not should_retry(e):
                        raise

                    if attempt < max_retries - 1:
                        # Longer delay for rate limits
                        wait_time = delay * 3 if classify_error(e) == "rate_limit" else delay
                        if deadline is not None and time.monotonic() + wait_time >= deadline:
                            logger.warning(
                                f"Attempt {attempt + 1}/{max_retries} failed ({classify_error(e)}), "
                                f"no time left to retry"
                            )
                            break
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_retries} failed ({classify_error(e)}). "
                            f"Retrying in {wait_time}s..."
                        )
                        if cancel_event is not None:
                            cancel_event.wait(wait_time)
                        else:
                            time.sleep(wait_time)
                        delay *= 2
                    else:
                        logger.error(f"All {max_retries} attempts failed ({classify_error(e)})")

            raise last_exception
        return wrapper
    return decorator


def message_content_to_text(content) -> str:
    """Flatten a chat message content (str or list of parts) into text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content)


def strip_code_fences(text: str) -> str:
    """Strip markdown code blocks wrapped around an LLM JSON answer."""
    result_text = text.strip()
    if result_text.startswith("```"):
        if result_text.startswith("```json"):
            result_text = result_text[7:]
        else:
            result_text = result_text[3:]
        if result_text.endswith("```"):
            result_text = result_text[:-3]
        result_text = result_text.strip()
    return result_text


def parse_json_response(text: str):
    """
    Parse JSON from an LLM answer.

    Tries the whole (fence-stripped) text first, then the outermost
    object or array embedded in surrounding prose.

    Raises:
        json.JSONDecodeError: If no JSON payload can be parsed
    """
    result_text = strip_code_fences(text or "")
    try:
        return json.loads(result_text)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", result_text) or re.search(r"\[[\s\S]*\]", result_text)
        if not match:
            raise
        return json.loads(match.group(0))
