"""
===============================================================================
CRC CARD — application/grace_period_scheduler.py (Grace-Period Scheduler)
===============================================================================

Responsibilities:
  - Find pending requests whose grace period has elapsed (oldest first).
  - Claim each one with a short execution lease, purge the account's data,
    then mark it executed and record the audit entry.
  - Count purge failures per request; after max_attempts flag the request for
    manual review and raise an operator alert.
  - Report what a sweep did (SweepReport).

Collaborators:
  - DeletionRequestRepository: list_due / claim / mark_executed /
    record_purge_failure
  - PurgeExecutor: idempotent account purge (timeout enforced by the caller's
    wiring, see container.get_purge_executor)
  - AuditLogRecorder, Clock
  - crosscutting.metrics / crosscutting.tracing

Execution protocol (per request):
  1) claim(request_id, claim_id, until=now+claim_ttl)  -> skipped if lost
  2) purge_account_data(account_id)
  3a) ok   -> mark_executed(claim_id) -> audit (system actor)
  3b) fail -> record_purge_failure(claim_id) -> lease released, attempts+1,
              needs_review when attempts reach max_attempts
  3c) timeout -> same as 3b but the lease is kept until it expires, since the
              abandoned purge may still finish; cancel stays blocked meanwhile

Crash safety:
  - A crash between 1 and 3 leaves only an expired lease; the next sweep
    claims the request again and the idempotent purge runs once more.
  - The request stays pending until 3a, so a failed purge never produces an
    executed request.
===============================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Event
from uuid import UUID, uuid4

from ..audit import AuditLogRecorder
from ..crosscutting.logger import logger
from ..crosscutting.metrics import (
    observe_sweep_duration,
    record_purge_outcome,
    record_review_flagged,
)
from ..crosscutting.tracing import span
from ..domain.audit import ActorType
from ..domain.entities import DeletionRequest, DeletionStatus
from ..domain.errors import PurgeError
from ..domain.repositories import DeletionRequestRepository
from ..domain.services import Clock, PurgeExecutor
from .usecases.deletion.audit_events import record_transition

REVIEW_ALERT = "deletion_review_required"
_MAX_ERROR_CHARS = 500


@dataclass
class SweepReport:
    started_at: datetime
    finished_at: datetime | None = None
    scanned: int = 0
    executed: int = 0
    failed: int = 0
    flagged: int = 0
    skipped: int = 0
    executed_ids: list[UUID] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "scanned": self.scanned,
            "executed": self.executed,
            "failed": self.failed,
            "flagged": self.flagged,
            "skipped": self.skipped,
        }


class GracePeriodScheduler:
    def __init__(
        self,
        repository: DeletionRequestRepository,
        purger: PurgeExecutor,
        recorder: AuditLogRecorder,
        clock: Clock,
        *,
        max_attempts: int = 3,
        batch_size: int = 100,
        claim_ttl_seconds: int = 300,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._requests = repository
        self._purger = purger
        self._recorder = recorder
        self._clock = clock
        self._max_attempts = max_attempts
        self._batch_size = batch_size
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)

    def run_sweep(self) -> SweepReport:
        """Execute every due request once. Safe to run concurrently."""
        t0 = time.perf_counter()
        report = SweepReport(started_at=self._clock.now())

        with span("deletion.sweep", {"batch_size": self._batch_size}):
            due = self._requests.list_due(report.started_at, limit=self._batch_size)
            report.scanned = len(due)
            for request in due:
                self._execute_one(request, report)

        report.finished_at = self._clock.now()
        observe_sweep_duration(time.perf_counter() - t0)

        log = logger.info if report.scanned else logger.debug
        log("Deletion sweep finished", extra=report.to_dict())
        return report

    def run_forever(self, stop_event: Event, interval_seconds: float) -> None:
        """Sweep every interval until stop_event is set."""
        logger.info(
            "Deletion scheduler started", extra={"interval_seconds": interval_seconds}
        )
        while not stop_event.is_set():
            try:
                self.run_sweep()
            except Exception:
                # Keep ticking: the next sweep picks up whatever this one missed.
                logger.exception("Deletion sweep crashed")
            stop_event.wait(interval_seconds)
        logger.info("Deletion scheduler stopped")

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------
    def _execute_one(self, request: DeletionRequest, report: SweepReport) -> None:
        claim_id = uuid4()
        now = self._clock.now()
        claimed = self._requests.claim(
            request.id, claim_id=claim_id, now=now, until=now + self._claim_ttl
        )
        if not claimed:
            # Cancelled meanwhile, or another sweep holds it.
            report.skipped += 1
            return

        with span("deletion.purge", {"deletion_request_id": str(request.id)}):
            try:
                self._purger.purge_account_data(request.account_id)
            except Exception as exc:
                self._handle_failure(request, claim_id, exc, report)
                return

        executed = self._requests.mark_executed(
            request.id, claim_id=claim_id, executed_at=self._clock.now()
        )
        if executed is None:
            logger.warning(
                "Deletion lease lost before completion",
                extra={"deletion_request_id": str(request.id)},
            )
            report.skipped += 1
            return

        record_purge_outcome("executed")
        report.executed += 1
        report.executed_ids.append(executed.id)
        logger.info(
            "Account deletion executed",
            extra={
                "deletion_request_id": str(executed.id),
                "account_id": executed.account_id,
            },
        )
        record_transition(
            self._recorder,
            executed,
            status=DeletionStatus.EXECUTED,
            actor_type=ActorType.SYSTEM,
            actor_id=None,
            metadata={
                "scheduled_for": executed.scheduled_for.isoformat(),
                "purge_attempts": executed.purge_attempts + 1,
            },
        )

    def _handle_failure(
        self,
        request: DeletionRequest,
        claim_id: UUID,
        exc: Exception,
        report: SweepReport,
    ) -> None:
        timed_out = isinstance(exc, PurgeError) and isinstance(
            exc.original_error, TimeoutError
        )
        record_purge_outcome("timeout" if timed_out else "failed")
        report.failed += 1

        updated = self._requests.record_purge_failure(
            request.id,
            claim_id=claim_id,
            error=str(exc)[:_MAX_ERROR_CHARS],
            max_attempts=self._max_attempts,
            keep_lease=timed_out,
        )
        attempts = updated.purge_attempts if updated else request.purge_attempts + 1

        if updated is not None and updated.needs_review:
            report.flagged += 1
            record_review_flagged()
            logger.error(
                "Deletion request requires manual review",
                extra={
                    "alert": REVIEW_ALERT,
                    "deletion_request_id": str(request.id),
                    "account_id": request.account_id,
                    "purge_attempts": attempts,
                    "error": str(exc),
                },
            )
            return

        logger.warning(
            "Account purge failed; will retry",
            extra={
                "deletion_request_id": str(request.id),
                "account_id": request.account_id,
                "purge_attempts": attempts,
                "max_attempts": self._max_attempts,
                "error": str(exc),
            },
        )
