"""
============================================================
CRC CARD — infrastructure/services/audit_sink.py
============================================================
Classes: DirectAuditSink, BufferedAuditSink

Responsibilities:
  - Deliver validated audit entries to the AuditLogRepository.
  - DirectAuditSink: synchronous write with retries; failures propagate to
    the recorder, which swallows them.
  - BufferedAuditSink: bounded queue drained by one daemon thread so the
    request path never waits on audit storage. Transient failures are retried
    with backoff; entries that still fail, or that find the buffer full, are
    logged and counted, never raised.

Collaborators:
  - domain.repositories.AuditLogRepository
  - infrastructure.services.retry.create_retry_decorator (tenacity)
  - crosscutting.metrics (written / failed / dropped)
  - crosscutting.logger

Notes:
  - Entry order is preserved per process (single consumer thread).
  - flush() waits for everything submitted so far; close() flushes and stops.
============================================================
"""

from __future__ import annotations

import queue
import threading
import time
from typing import Protocol

from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_audit_dropped, record_audit_write
from ...domain.audit import AuditLogEntry
from ...domain.repositories import AuditLogRepository
from .retry import create_retry_decorator


class AuditSink(Protocol):
    def submit(self, entry: AuditLogEntry) -> bool:
        """True when the entry was written or accepted for writing."""
        ...


class DirectAuditSink:
    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> None:
        self._repository = repository
        self._append = create_retry_decorator(
            max_attempts=max_attempts, base_delay=base_delay
        )(repository.append)

    def submit(self, entry: AuditLogEntry) -> bool:
        self._append(entry)
        record_audit_write("written")
        return True


_STOP = object()


class BufferedAuditSink:
    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        max_size: int = 1000,
        max_attempts: int | None = None,
        base_delay: float | None = None,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        self._repository = repository
        self._queue: queue.Queue = queue.Queue(maxsize=max_size)
        self._append = create_retry_decorator(
            max_attempts=max_attempts, base_delay=base_delay
        )(repository.append)

        self._pending = 0
        self._pending_cond = threading.Condition()
        self._closed = False

        self._thread = threading.Thread(
            target=self._drain, name="audit-sink", daemon=True
        )
        self._thread.start()

    # ------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------
    def submit(self, entry: AuditLogEntry) -> bool:
        # The closed check and the enqueue share the lock with close(), so no
        # entry can land behind the stop marker.
        with self._pending_cond:
            closed = self._closed
            full = False
            if not closed:
                self._pending += 1
                try:
                    self._queue.put_nowait(entry)
                except queue.Full:
                    full = True
                    self._pending -= 1
                    if self._pending <= 0:
                        self._pending_cond.notify_all()

        if closed:
            logger.warning(
                "Audit sink closed; entry dropped",
                extra={"audit_entry_id": str(entry.id)},
            )
            record_audit_dropped()
            return False
        if full:
            logger.warning(
                "Audit buffer full; entry dropped",
                extra={
                    "audit_entry_id": str(entry.id),
                    "entity_type": entry.entity_type.value,
                    "audit_action": entry.action.value,
                },
            )
            record_audit_dropped()
            return False
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every accepted entry was written or given up on."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._pending_cond:
            while self._pending > 0:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._pending_cond.wait(remaining)
        return True

    def close(self, timeout: float | None = 5.0) -> None:
        with self._pending_cond:
            if self._closed:
                return
            self._closed = True
        self.flush(timeout)
        self._queue.put(_STOP)
        self._thread.join(timeout)

    @property
    def pending(self) -> int:
        with self._pending_cond:
            return self._pending

    # ------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------
    def _task_done(self) -> None:
        with self._pending_cond:
            self._pending -= 1
            if self._pending <= 0:
                self._pending_cond.notify_all()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                self._append(item)
                record_audit_write("written")
            except Exception as exc:  # noqa: BLE001
                record_audit_write("failed")
                logger.warning(
                    "Audit write failed after retries",
                    extra={
                        "audit_entry_id": str(item.id),
                        "entity_type": item.entity_type.value,
                        "audit_action": item.action.value,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
            finally:
                self._task_done()
