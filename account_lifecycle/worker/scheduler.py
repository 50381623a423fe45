"""
===============================================================================
CRC CARD — worker/scheduler.py (sweep ticker process)
===============================================================================

Responsibilities:
  - Every DELETION_SWEEP_INTERVAL_SECONDS, enqueue one sweep job on RQ.
  - Without Redis, run the sweep inline in this process.
  - If enqueueing fails, run that tick's sweep inline (sweeps are idempotent).
  - Stop cleanly on SIGINT / SIGTERM.

Collaborators:
  - container.get_sweep_queue / get_grace_period_scheduler
  - infrastructure.queue.QueueEnqueueError
  - infrastructure.db.pool (postgres backend)
===============================================================================
"""

from __future__ import annotations

import signal
from threading import Event

from ..application import GracePeriodScheduler
from ..container import (
    get_grace_period_scheduler,
    get_sweep_queue,
    shutdown_container,
)
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.tracing import init_tracing
from ..domain.services import DeletionSweepQueue
from ..infrastructure.db.pool import close_pool, init_pool
from ..infrastructure.queue import QueueEnqueueError


def tick(
    queue: DeletionSweepQueue | None, scheduler: GracePeriodScheduler
) -> str:
    """One tick. Returns "queued" or "inline"."""
    if queue is not None:
        try:
            queue.enqueue_sweep()
            return "queued"
        except QueueEnqueueError as exc:
            logger.warning(
                "Sweep enqueue failed; running inline",
                extra={"error": str(exc)},
            )

    scheduler.run_sweep()
    return "inline"


def run_ticker(
    stop_event: Event,
    interval_seconds: float,
    *,
    queue: DeletionSweepQueue | None,
    scheduler: GracePeriodScheduler,
) -> None:
    if queue is None:
        scheduler.run_forever(stop_event, interval_seconds)
        return

    logger.info(
        "Sweep ticker started",
        extra={"interval_seconds": interval_seconds, "queue": True},
    )
    while not stop_event.is_set():
        try:
            tick(queue, scheduler)
        except Exception:
            logger.exception("Sweep tick failed")
        stop_event.wait(interval_seconds)
    logger.info("Sweep ticker stopped")


def _install_signal_handlers(stop_event: Event) -> None:
    def _stop(signum, _frame) -> None:
        logger.info("Sweep ticker received signal", extra={"signal": signum})
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)


def main() -> None:
    settings = get_settings()

    if settings.uses_postgres():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    init_tracing(settings.otel_enabled)

    stop_event = Event()
    _install_signal_handlers(stop_event)

    try:
        run_ticker(
            stop_event,
            settings.deletion_sweep_interval_seconds,
            queue=get_sweep_queue(),
            scheduler=get_grace_period_scheduler(),
        )
    finally:
        shutdown_container()
        if settings.uses_postgres():
            close_pool()


if __name__ == "__main__":
    main()
