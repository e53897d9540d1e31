"""Exponential-backoff retry for idempotent HTTP reads.

Chat completions are never wrapped with this: a failed generation is
surfaced to the user, who decides whether to spend another request.
"""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Tuple, Type

import requests

from applyhawk.log import get_logger

log = get_logger(__name__)

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    OSError,
)


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 20.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
    sleep: Callable[[float], None] | None = None,
) -> Callable:
    """Retry the wrapped call on *retryable* errors, doubling the delay each time."""

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == max_attempts:
                        log.error("%s gave up after %d attempts: %s", fn.__qualname__, attempt, exc)
                        raise
                    delay = min(base_delay * backoff_factor ** (attempt - 1), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    (sleep or time.sleep)(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
