"""
lectern/openai_retry.py
========================
Shared OpenAI retry utility

Wraps ``client.chat.completions.create`` and retries transient failures
(429 rate limit, 5xx, connection errors and timeouts) with exponential
back-off. Anything else is re-raised on the first attempt.

The default attempt count is small. The translation chain falls through to
the next provider rather than waiting out a long back-off.

Usage::

    from lectern.openai_retry import chat_completions_with_retry

    response = chat_completions_with_retry(
        client,
        max_retries=1,
        model="gpt-4o-mini",
        messages=[...],
    )
"""

import logging
import time
from typing import Any

logger = logging.getLogger("lectern.openai_retry")

DEFAULT_MAX_RETRIES: int = 1    # total attempts = max_retries + 1
BASE_DELAY: float = 0.5         # seconds before the first retry
MAX_DELAY: float = 4.0
BACKOFF_FACTOR: float = 2.0

_RETRYABLE_STATUS_CODES: set[int] = {429, 500, 502, 503, 504}
_RETRYABLE_ERROR_NAMES: set[str] = {
    "RateLimitError",
    "APITimeoutError",
    "APIConnectionError",
}


def _is_retryable(exc: Exception) -> bool:
    """Return True if the exception is a transient OpenAI error."""
    if type(exc).__name__ in _RETRYABLE_ERROR_NAMES:
        return True
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code in _RETRYABLE_STATUS_CODES
    return False


def chat_completions_with_retry(
    client: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    **kwargs: Any,
) -> Any:
    """
    Call ``client.chat.completions.create(**kwargs)`` with automatic retry.

    Args:
        client:      An instantiated ``openai.OpenAI`` client.
        max_retries: Extra attempts after the first one for transient errors.
        **kwargs:    Passed directly to ``client.chat.completions.create()``.

    Returns:
        The ChatCompletion response object.

    Raises:
        The last exception once retries are exhausted, or the first
        non-retryable one.
    """
    delay = BASE_DELAY
    attempts = max(0, max_retries) + 1

    for attempt in range(1, attempts + 1):
        try:
            return client.chat.completions.create(**kwargs)
        except Exception as exc:
            if not _is_retryable(exc):
                logger.warning("OpenAI call failed with non-retryable error: %s", exc)
                raise
            if attempt >= attempts:
                logger.error("OpenAI call failed after %d attempts: %s", attempts, exc)
                raise
            logger.warning(
                "OpenAI call failed (attempt %d/%d): %s, retrying in %.1fs",
                attempt, attempts, exc, delay,
            )
            time.sleep(delay)
            delay = min(delay * BACKOFF_FACTOR, MAX_DELAY)

    raise RuntimeError("unreachable")  # pragma: no cover
