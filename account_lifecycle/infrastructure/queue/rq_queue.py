"""
===============================================================================
CRC CARD — infrastructure/queue/rq_queue.py
===============================================================================

Class:
    RQSweepQueue (Adapter)

Responsibilities:
    - Implement domain.services.DeletionSweepQueue on top of RQ.
    - Validate configuration (queue name, importable job path) up front.
    - Keep rq/redis out of the domain and application layers.

Collaborators:
    - job_paths.RUN_DELETION_SWEEP_JOB_PATH
    - import_utils.is_importable_dotted_path
    - errors.QueueConfigurationError / QueueEnqueueError
    - crosscutting.logger

Notes:
    - Sweeps carry no arguments; the worker reads everything it needs from
      the repository, so a duplicate sweep job is harmless.
    - rq is imported lazily so the API process can start without it when the
      memory backend is used.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...crosscutting.logger import logger
from .errors import QueueConfigurationError, QueueEnqueueError
from .import_utils import is_importable_dotted_path
from .job_paths import DELETIONS_QUEUE_NAME, RUN_DELETION_SWEEP_JOB_PATH


@dataclass(frozen=True)
class RQQueueConfig:
    """RQ adapter settings.

    queue_name:
        Redis queue name.
    retry_max_attempts:
        Automatic RQ retries when the job itself crashes.
    job_timeout_seconds:
        Hard limit for one sweep in the worker.
    result_ttl_seconds:
        How long the job result (SweepReport dict) stays in Redis.
    """

    queue_name: str = DELETIONS_QUEUE_NAME
    retry_max_attempts: int = 1
    job_timeout_seconds: int = 1800
    result_ttl_seconds: int = 86400


class RQSweepQueue:
    """RQ adapter that enqueues deletion sweeps."""

    def __init__(self, *, redis: Any, config: RQQueueConfig) -> None:
        self._redis = redis
        self._config = _validate_config(config)

        if not is_importable_dotted_path(RUN_DELETION_SWEEP_JOB_PATH):
            raise QueueConfigurationError(
                f"RQ job path is not importable: {RUN_DELETION_SWEEP_JOB_PATH}"
            )

        self._rq = _lazy_import_rq()
        self._queue = self._rq.Queue(name=self._config.queue_name, connection=redis)

        self._retry = None
        if self._config.retry_max_attempts > 0:
            self._retry = self._rq.Retry(max=self._config.retry_max_attempts)

        logger.info(
            "RQ sweep queue initialized",
            extra={
                "queue": self._config.queue_name,
                "retry_max_attempts": self._config.retry_max_attempts,
                "job_timeout_seconds": self._config.job_timeout_seconds,
            },
        )

    @property
    def queue_name(self) -> str:
        return self._config.queue_name

    def enqueue_sweep(self) -> str:
        try:
            job = self._queue.enqueue(
                RUN_DELETION_SWEEP_JOB_PATH,
                retry=self._retry,
                job_timeout=self._config.job_timeout_seconds,
                result_ttl=self._config.result_ttl_seconds,
                description="deletion_sweep",
            )
        except Exception as exc:
            logger.exception(
                "Failed to enqueue deletion sweep",
                extra={"queue": self._config.queue_name},
            )
            raise QueueEnqueueError(
                "Could not enqueue deletion sweep", original_error=exc
            ) from exc

        job_id = str(getattr(job, "id", "") or "")
        logger.info(
            "Deletion sweep enqueued",
            extra={"job_id": job_id, "queue": self._config.queue_name},
        )
        return job_id


def _validate_config(config: RQQueueConfig) -> RQQueueConfig:
    queue_name = (config.queue_name or "").strip() or DELETIONS_QUEUE_NAME
    retry_max_attempts = int(config.retry_max_attempts)
    job_timeout_seconds = int(config.job_timeout_seconds)
    result_ttl_seconds = int(config.result_ttl_seconds)

    if retry_max_attempts < 0:
        raise QueueConfigurationError("retry_max_attempts cannot be negative")
    if job_timeout_seconds <= 0:
        raise QueueConfigurationError("job_timeout_seconds must be > 0")
    if result_ttl_seconds < 0:
        raise QueueConfigurationError("result_ttl_seconds cannot be negative")

    return RQQueueConfig(
        queue_name=queue_name,
        retry_max_attempts=retry_max_attempts,
        job_timeout_seconds=job_timeout_seconds,
        result_ttl_seconds=result_ttl_seconds,
    )


def _lazy_import_rq():
    try:
        import rq

        _ = rq.Queue
        _ = rq.Retry
        return rq
    except Exception as exc:
        raise QueueConfigurationError(
            "rq is not available; install the 'rq' package to use the sweep queue"
        ) from exc
