"""
Name: Audit Sink Tests

Responsibilities:
  - Validate synchronous writes with retry (DirectAuditSink)
  - Validate buffered delivery, drop-on-full, flush and close (BufferedAuditSink)
"""

import threading
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from account_lifecycle.domain.audit import (
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
)
from account_lifecycle.infrastructure.repositories import InMemoryAuditLogRepository
from account_lifecycle.infrastructure.services import (
    BufferedAuditSink,
    DirectAuditSink,
)

pytestmark = pytest.mark.unit


def _entry(entity_id: str = "acct-1") -> AuditLogEntry:
    return AuditLogEntry(
        id=uuid4(),
        occurred_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        actor_type=ActorType.SYSTEM,
        actor_id="system",
        tenant_id="system",
        entity_type=AuditEntityType.ACCOUNT,
        entity_id=entity_id,
        action=AuditAction.DELETE,
        request_id="req-1",
    )


class _FlakyRepository(InMemoryAuditLogRepository):
    """Fails with a transient error the first `failures` times."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def append(self, entry: AuditLogEntry) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("audit store unreachable")
        super().append(entry)


class _BlockingRepository(InMemoryAuditLogRepository):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def append(self, entry: AuditLogEntry) -> None:
        self.release.wait(5)
        super().append(entry)


class TestDirectAuditSink:
    def test_writes_synchronously(self):
        repo = InMemoryAuditLogRepository()
        sink = DirectAuditSink(repo, max_attempts=1, base_delay=0)

        assert sink.submit(_entry()) is True
        assert len(repo) == 1

    def test_retries_transient_errors(self):
        repo = _FlakyRepository(failures=2)
        sink = DirectAuditSink(repo, max_attempts=3, base_delay=0)

        sink.submit(_entry())

        assert repo.attempts == 3
        assert len(repo) == 1

    def test_gives_up_after_max_attempts(self):
        repo = _FlakyRepository(failures=5)
        sink = DirectAuditSink(repo, max_attempts=2, base_delay=0)

        with pytest.raises(ConnectionError):
            sink.submit(_entry())

        assert repo.attempts == 2


class TestBufferedAuditSink:
    def test_flush_waits_for_writes(self):
        repo = InMemoryAuditLogRepository()
        sink = BufferedAuditSink(repo, max_size=10, max_attempts=1, base_delay=0)
        try:
            for i in range(5):
                assert sink.submit(_entry(f"acct-{i}")) is True

            assert sink.flush(timeout=5) is True
            assert len(repo) == 5
            assert sink.pending == 0
        finally:
            sink.close()

    def test_preserves_submission_order(self):
        repo = InMemoryAuditLogRepository()
        sink = BufferedAuditSink(repo, max_size=10, max_attempts=1, base_delay=0)
        try:
            for i in range(3):
                sink.submit(_entry(f"acct-{i}"))
            sink.flush(timeout=5)
        finally:
            sink.close()

        # Same timestamp: newest-first falls back to reverse insertion order.
        assert [e.entity_id for e in repo.list_entries()] == [
            "acct-2",
            "acct-1",
            "acct-0",
        ]

    def test_full_buffer_drops_entries(self):
        repo = _BlockingRepository()
        sink = BufferedAuditSink(repo, max_size=1, max_attempts=1, base_delay=0)
        try:
            results = [sink.submit(_entry(f"acct-{i}")) for i in range(4)]

            assert results[0] is True
            assert False in results
        finally:
            repo.release.set()
            sink.close()

    def test_failed_write_is_not_raised(self):
        repo = _FlakyRepository(failures=10)
        sink = BufferedAuditSink(repo, max_size=10, max_attempts=2, base_delay=0)
        try:
            assert sink.submit(_entry()) is True
            assert sink.flush(timeout=5) is True
        finally:
            sink.close()

        assert len(repo) == 0
        assert repo.attempts == 2

    def test_close_flushes_and_rejects_new_entries(self):
        repo = InMemoryAuditLogRepository()
        sink = BufferedAuditSink(repo, max_size=10, max_attempts=1, base_delay=0)
        sink.submit(_entry())

        sink.close()
        sink.close()

        assert len(repo) == 1
        assert sink.submit(_entry()) is False

    def test_submit_racing_close_leaves_nothing_pending(self):
        repo = InMemoryAuditLogRepository()
        sink = BufferedAuditSink(repo, max_size=1000, max_attempts=1, base_delay=0)
        barrier = threading.Barrier(9)
        accepted: list[bool] = []
        lock = threading.Lock()

        def _producer():
            barrier.wait()
            for _ in range(50):
                ok = sink.submit(_entry())
                with lock:
                    accepted.append(ok)

        def _closer():
            barrier.wait()
            sink.close()

        threads = [threading.Thread(target=_producer) for _ in range(8)]
        threads.append(threading.Thread(target=_closer))
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert sink.pending == 0
        assert sink.flush(timeout=0.1) is True
        assert len(repo) == sum(accepted)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            BufferedAuditSink(InMemoryAuditLogRepository(), max_size=0)
