"""
Name: PostgreSQL Deletion Lifecycle Repository Integration Tests

Responsibilities:
  - Verify the single-pending rule against the partial unique index
  - Verify claim / cancel / mark_executed lease predicates in SQL
  - Verify failure bookkeeping (attempts, review flag, kept lease)
  - Verify the audit_log table rejects UPDATE and DELETE

Collaborators:
  - infrastructure.repositories.postgres: repositories being tested
  - PostgreSQL: database under test (schema from alembic/versions)

Notes:
  - Requires a running PostgreSQL instance
  - Every test uses fresh account ids, so no cleanup is needed

Setup:
  RUN_INTEGRATION=1 DATABASE_URL=postgresql://... pytest tests/integration
"""

import os

import pytest

# Skip BEFORE importing account_lifecycle.* to avoid env validation during collection
if os.getenv("RUN_INTEGRATION") != "1" or not os.getenv("DATABASE_URL"):
    pytest.skip(
        "Set RUN_INTEGRATION=1 and DATABASE_URL to run integration tests",
        allow_module_level=True,
    )

import threading
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import psycopg

from account_lifecycle.domain.audit import (
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
)
from account_lifecycle.domain.entities import DeletionRequest, DeletionStatus
from account_lifecycle.infrastructure.repositories.postgres import (
    PostgresAuditLogRepository,
    PostgresDeletionRequestRepository,
)

pytestmark = pytest.mark.integration

DATABASE_URL = os.environ["DATABASE_URL"]


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _due_request(account_id: str, now: datetime) -> DeletionRequest:
    requested_at = now - timedelta(days=31)
    return DeletionRequest(
        id=uuid4(),
        account_id=account_id,
        requested_at=requested_at,
        scheduled_for=requested_at + timedelta(days=30),
        reason="integration",
    )


@pytest.fixture(scope="module")
def repo():
    return PostgresDeletionRequestRepository()


@pytest.fixture
def account_id() -> str:
    return f"acct-{uuid4()}"


@pytest.fixture
def stored(repo, account_id):
    now = _now()
    request = _due_request(account_id, now)
    assert repo.create_pending(request) is True
    return request, now


# =============================================================================
# Single pending request
# =============================================================================


def test_duplicate_pending_insert_is_rejected(repo, stored, account_id):
    request, now = stored

    assert repo.create_pending(_due_request(account_id, now)) is False
    assert repo.get_pending_for_account(account_id).id == request.id


def test_new_request_allowed_after_cancel(repo, stored, account_id):
    request, now = stored
    assert repo.cancel(request.id, cancelled_at=now) is not None

    second = _due_request(account_id, now)

    assert repo.create_pending(second) is True
    assert repo.get_latest_for_account(account_id).id == second.id


# =============================================================================
# Leases
# =============================================================================


def test_concurrent_claims_have_one_winner(repo, stored):
    request, now = stored
    workers = 8
    barrier = threading.Barrier(workers)
    results: list[bool] = []
    lock = threading.Lock()

    def _claim():
        barrier.wait()
        won = repo.claim(
            request.id,
            claim_id=uuid4(),
            now=now,
            until=now + timedelta(minutes=5),
        )
        with lock:
            results.append(won)

    threads = [threading.Thread(target=_claim) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert results.count(True) == 1
    assert len(results) == workers


def test_cancel_under_live_lease_is_rejected(repo, stored):
    request, now = stored
    until = now + timedelta(minutes=5)
    assert repo.claim(request.id, claim_id=uuid4(), now=now, until=until)

    assert repo.cancel(request.id, cancelled_at=now) is None
    assert all(r.id != request.id for r in repo.list_due(now, limit=1000))

    cancelled = repo.cancel(request.id, cancelled_at=until)
    assert cancelled.status == DeletionStatus.CANCELLED
    assert cancelled.claim_id is None


def test_mark_executed_requires_the_claim_holder(repo, stored):
    request, now = stored
    claim_id = uuid4()
    assert repo.claim(request.id, claim_id=claim_id, now=now, until=now + timedelta(minutes=5))

    assert repo.mark_executed(request.id, claim_id=uuid4(), executed_at=now) is None

    executed = repo.mark_executed(request.id, claim_id=claim_id, executed_at=now)
    assert executed.status == DeletionStatus.EXECUTED
    assert executed.executed_at == now
    assert executed.claim_id is None
    assert repo.mark_executed(request.id, claim_id=claim_id, executed_at=now) is None
    assert repo.cancel(request.id, cancelled_at=now) is None


# =============================================================================
# Purge failures
# =============================================================================


def test_purge_failures_flag_for_review_at_max_attempts(repo, stored):
    request, now = stored

    for attempt in (1, 2):
        claim_id = uuid4()
        assert repo.claim(
            request.id, claim_id=claim_id, now=now, until=now + timedelta(minutes=5)
        )
        updated = repo.record_purge_failure(
            request.id, claim_id=claim_id, error="db down", max_attempts=2
        )
        assert updated.purge_attempts == attempt
        assert updated.claim_id is None

    assert updated.needs_review is True
    assert updated.status == DeletionStatus.PENDING
    assert repo.claim(request.id, claim_id=uuid4(), now=now, until=now) is False

    released = repo.release_for_retry(request.id)
    assert released.needs_review is False
    assert released.purge_attempts == 0


def test_purge_failure_can_keep_the_lease(repo, stored):
    request, now = stored
    claim_id = uuid4()
    until = now + timedelta(minutes=5)
    assert repo.claim(request.id, claim_id=claim_id, now=now, until=until)

    updated = repo.record_purge_failure(
        request.id, claim_id=claim_id, error="timeout", max_attempts=3, keep_lease=True
    )

    assert updated.purge_attempts == 1
    assert updated.claim_id == claim_id
    assert updated.claimed_until == until
    assert repo.cancel(request.id, cancelled_at=now) is None


def test_purge_failure_with_stale_claim_is_ignored(repo, stored):
    request, now = stored
    assert repo.claim(request.id, claim_id=uuid4(), now=now, until=now + timedelta(minutes=5))

    assert (
        repo.record_purge_failure(
            request.id, claim_id=uuid4(), error="x", max_attempts=3
        )
        is None
    )
    assert repo.get(request.id).purge_attempts == 0


# =============================================================================
# Audit log
# =============================================================================


def test_audit_log_is_append_only(account_id):
    audit_repo = PostgresAuditLogRepository()
    entry = AuditLogEntry(
        id=uuid4(),
        occurred_at=_now(),
        actor_type=ActorType.SYSTEM,
        actor_id="system",
        tenant_id="system",
        entity_type=AuditEntityType.ACCOUNT,
        entity_id=account_id,
        action=AuditAction.DELETE,
        request_id="integration",
        diff={"status": "executed"},
    )
    audit_repo.append(entry)

    assert audit_repo.list_entries(entity_id=account_id) == [entry]

    with psycopg.connect(DATABASE_URL, autocommit=True) as conn:
        with pytest.raises(psycopg.Error):
            conn.execute(
                "UPDATE audit_log SET actor_id = 'tampered' WHERE id = %s", (entry.id,)
            )
        with pytest.raises(psycopg.Error):
            conn.execute("DELETE FROM audit_log WHERE id = %s", (entry.id,))

    assert audit_repo.list_entries(entity_id=account_id) == [entry]
