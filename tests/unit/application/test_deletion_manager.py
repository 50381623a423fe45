"""
Name: Deletion Request Manager Tests

Responsibilities:
  - Validate request / cancel / status semantics
  - Validate the single-pending invariant under concurrency
  - Validate one audit entry per transition
"""

import threading
from datetime import timedelta

import pytest

from account_lifecycle.application.usecases.deletion import DeletionRequestManager
from account_lifecycle.domain.audit import ActorType, AuditAction, AuditEntityType
from account_lifecycle.domain.entities import DeletionStatus
from account_lifecycle.domain.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.unit


# =============================================================================
# request_deletion
# =============================================================================


def test_request_deletion_schedules_after_grace_period(manager, clock):
    request = manager.request_deletion("acct-1", "  moving to another service  ")

    assert request.status == DeletionStatus.PENDING
    assert request.requested_at == clock.now()
    assert request.scheduled_for == clock.now() + timedelta(days=30)
    assert request.reason == "moving to another service"
    assert request.tenant_id == "tenant-a"
    assert request.can_cancel is True


def test_request_deletion_without_tenant_uses_system(manager):
    request = manager.request_deletion("acct-3")

    assert request.tenant_id == "system"


def test_blank_reason_is_stored_as_none(manager):
    request = manager.request_deletion("acct-1", "   ")

    assert request.reason is None


def test_reason_over_limit_is_rejected(manager, request_repo):
    with pytest.raises(ValidationError):
        manager.request_deletion("acct-1", "x" * 501)

    assert request_repo.get_pending_for_account("acct-1") is None


def test_reason_at_limit_is_accepted(manager):
    request = manager.request_deletion("acct-1", "x" * 500)

    assert len(request.reason) == 500


def test_unknown_account_raises_not_found(manager):
    with pytest.raises(NotFoundError):
        manager.request_deletion("ghost")


def test_second_request_while_pending_conflicts(manager):
    manager.request_deletion("acct-1")

    with pytest.raises(ConflictError):
        manager.request_deletion("acct-1")


def test_new_request_allowed_after_cancel(manager):
    first = manager.request_deletion("acct-1")
    manager.cancel_deletion("acct-1")

    second = manager.request_deletion("acct-1")

    assert second.id != first.id
    assert second.status == DeletionStatus.PENDING


def test_request_records_client_metadata(manager):
    request = manager.request_deletion(
        "acct-1", ip_address="203.0.113.7", user_agent="pytest"
    )

    assert request.ip_address == "203.0.113.7"
    assert request.user_agent == "pytest"


def test_concurrent_requests_create_exactly_one_pending(manager, request_repo):
    workers = 8
    barrier = threading.Barrier(workers)
    successes: list = []
    conflicts: list = []
    lock = threading.Lock()

    def _submit():
        barrier.wait()
        try:
            request = manager.request_deletion("acct-1")
        except ConflictError as exc:
            with lock:
                conflicts.append(exc)
        else:
            with lock:
                successes.append(request)

    threads = [threading.Thread(target=_submit) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(successes) == 1
    assert len(conflicts) == workers - 1
    assert request_repo.count_requests(status=DeletionStatus.PENDING) == 1


def test_grace_period_must_be_positive(request_repo, accounts, recorder, clock):
    with pytest.raises(ValueError):
        DeletionRequestManager(
            request_repo, accounts, recorder, clock, grace_period_days=0
        )


# =============================================================================
# cancel_deletion
# =============================================================================


def test_cancel_pending_request(manager, request_repo, clock):
    created = manager.request_deletion("acct-1")
    clock.advance(days=3)

    assert manager.cancel_deletion("acct-1") is None

    stored = request_repo.get(created.id)
    assert stored.status == DeletionStatus.CANCELLED
    assert stored.cancelled_at == clock.now()
    assert stored.can_cancel is False
    assert manager.get_active_request("acct-1") is None


def test_cancel_without_request_raises_not_found(manager):
    with pytest.raises(NotFoundError):
        manager.cancel_deletion("acct-1")


def test_cancel_twice_raises_not_found(manager):
    manager.request_deletion("acct-1")
    manager.cancel_deletion("acct-1")

    with pytest.raises(NotFoundError):
        manager.cancel_deletion("acct-1")


def test_cancel_after_execution_raises_invalid_state(
    manager, scheduler, clock, request_repo, audit_repo
):
    created = manager.request_deletion("acct-1")
    clock.advance(days=30, seconds=1)
    scheduler.run_sweep()
    before = request_repo.get(created.id)
    audit_count = len(audit_repo)

    with pytest.raises(InvalidStateError):
        manager.cancel_deletion("acct-1")

    assert request_repo.get(created.id) == before
    assert before.status == DeletionStatus.EXECUTED
    assert len(audit_repo) == audit_count


# =============================================================================
# get_active_request
# =============================================================================


def test_get_active_request_returns_pending_only(manager):
    assert manager.get_active_request("acct-1") is None

    created = manager.request_deletion("acct-1")
    assert manager.get_active_request("acct-1").id == created.id

    manager.cancel_deletion("acct-1")
    assert manager.get_active_request("acct-1") is None


# =============================================================================
# Audit
# =============================================================================


def test_request_then_cancel_records_two_audit_entries(manager, audit_repo):
    manager.request_deletion("acct-1", "privacy", ip_address="198.51.100.1")
    manager.cancel_deletion("acct-1")

    entries = audit_repo.list_entries(entity_id="acct-1")
    assert len(entries) == 2

    statuses = sorted(e.diff["status"] for e in entries)
    assert statuses == ["cancelled", "pending"]
    for entry in entries:
        assert entry.entity_type == AuditEntityType.ACCOUNT
        assert entry.action == AuditAction.DELETE
        assert entry.actor_type == ActorType.USER
        assert entry.actor_id == "acct-1"
        assert entry.tenant_id == "tenant-a"
        assert "recorded_at" in entry.metadata


def test_rejected_operations_record_nothing(manager, audit_repo):
    manager.request_deletion("acct-1")
    with pytest.raises(ConflictError):
        manager.request_deletion("acct-1")
    with pytest.raises(NotFoundError):
        manager.cancel_deletion("acct-2")

    assert len(audit_repo) == 1


def test_audit_failure_does_not_undo_transition(
    request_repo, accounts, clock, audit_repo
):
    from account_lifecycle.audit import AuditLogRecorder

    class _BrokenSink:
        def submit(self, entry):
            raise RuntimeError("audit store down")

    manager = DeletionRequestManager(
        request_repo, accounts, AuditLogRecorder(_BrokenSink(), clock), clock
    )

    request = manager.request_deletion("acct-1")

    assert request_repo.get(request.id).status == DeletionStatus.PENDING
