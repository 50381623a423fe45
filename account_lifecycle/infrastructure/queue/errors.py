"""
===============================================================================
CRC CARD — infrastructure/queue/errors.py
===============================================================================

Responsibilities:
    - Typed exceptions for the queue adapter so callers can log, count and
      map them without catching bare Exception.

Collaborators:
    - rq_queue.RQSweepQueue
    - worker.scheduler (falls back to an inline sweep on enqueue failure)
===============================================================================
"""

from __future__ import annotations


class QueueError(Exception):
    """Base error of the queue subsystem."""

    code: str = "QUEUE_ERROR"


class QueueConfigurationError(QueueError):
    """Queue is misconfigured (bad job path, rq missing, invalid limits)."""

    code = "QUEUE_CONFIGURATION_ERROR"


class QueueEnqueueError(QueueError):
    """Enqueueing a job failed."""

    code = "QUEUE_ENQUEUE_ERROR"

    def __init__(
        self, message: str, *, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error
