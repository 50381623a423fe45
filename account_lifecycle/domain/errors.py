"""
===============================================================================
CRC CARD — domain/errors.py
===============================================================================

Component:
  Typed lifecycle errors

Responsibilities:
  - Stable error_code per failure category (clients branch on it).
  - error_id for correlating a response with its log line.
  - Human message without internals.

Collaborators:
  - application.usecases.deletion (raises)
  - api/exception_handlers.py (maps to RFC 7807)
  - application.grace_period_scheduler (PurgeError is retried, never surfaced)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class LifecycleError(Exception):
    """Base for errors raised by the deletion lifecycle."""

    error_code: str = "LIFECYCLE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class ConflictError(LifecycleError):
    """A pending deletion request already exists for the account."""

    error_code: str = "CONFLICT"


class NotFoundError(LifecycleError):
    """Unknown account, or no request in a state the operation applies to."""

    error_code: str = "NOT_FOUND"


class InvalidStateError(LifecycleError):
    """The request is not in a state that allows the transition."""

    error_code: str = "INVALID_STATE"


class ValidationError(LifecycleError):
    """Input outside the accepted vocabulary or limits."""

    error_code: str = "VALIDATION_ERROR"


class PurgeError(LifecycleError):
    """The purge collaborator failed or timed out. Retryable."""

    error_code: str = "PURGE_ERROR"
