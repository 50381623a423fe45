"""account_lifecycle.infrastructure.services.retry

Name: Retry helper with exponential backoff + jitter

What it is
----------
Resilience utility for writes to external storage (audit log, queue):
  - Error classification: **transient** (retry) vs **permanent** (fail fast)
  - A `tenacity` decorator with exponential backoff + jitter
  - Structured logging of every retry

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decide which errors are retryable
  - Provide a standard tenacity decorator
  - Log attempts with useful context
Collaborators:
  - tenacity (retry engine)
  - crosscutting.config.get_settings (attempts/delays)
  - crosscutting.logger
Constraints:
  - Retry ONLY transient errors (DB/driver outages, timeouts, connection issues)
  - Never retry validation errors (a bad entry stays bad)
  - Jitter to avoid thundering herds
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import DatabaseError
from ...crosscutting.logger import logger
from ...domain.errors import ValidationError

T = TypeVar("T")

_TRANSIENT_NAME_PATTERNS = (
    "timeout",
    "timedout",
    "connection",
    "operational",
    "unavailable",
    "pool",
)


def is_transient_error(exception: BaseException) -> bool:
    """
    Rules (in order):
      1) Lifecycle validation errors are permanent.
      2) DatabaseError wraps driver/pool failures: transient.
      3) Built-in timeout/connection errors: transient.
      4) Class-name heuristic for driver exceptions that are not wrapped.
      5) Default: fail fast.
    """
    if isinstance(exception, ValidationError):
        return False

    if isinstance(exception, DatabaseError):
        return True

    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True

    exception_name = type(exception).__name__.lower()
    return any(p in exception_name for p in _TRANSIENT_NAME_PATTERNS)


def _log_retry(retry_state: RetryCallState) -> None:
    """before_sleep hook: one warning per retry."""
    fn = retry_state.fn
    fn_name = getattr(fn, "__name__", "unknown")
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

    exc: Optional[BaseException] = None
    if retry_state.outcome is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Retrying storage write",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    tenacity decorator with exponential backoff + jitter.

      - stop: stop_after_attempt(max_attempts)
      - wait: wait_exponential_jitter(initial=base_delay, max=max_delay)
      - retry: only when is_transient_error(exception)
      - reraise: True (the last exception propagates)
    """
    settings = get_settings()

    _max_attempts = (
        settings.retry_max_attempts if max_attempts is None else max_attempts
    )
    _base_delay = (
        settings.retry_base_delay_seconds if base_delay is None else float(base_delay)
    )
    _max_delay = (
        settings.retry_max_delay_seconds if max_delay is None else float(max_delay)
    )

    if _max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if _base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if _max_delay <= 0:
        raise ValueError("max_delay must be > 0")

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay,
            max=_max_delay,
            jitter=_base_delay,
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
