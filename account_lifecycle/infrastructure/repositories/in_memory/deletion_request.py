"""
============================================================
CRC CARD — infrastructure/repositories/in_memory/deletion_request.py
============================================================
Class: InMemoryDeletionRequestRepository

Responsibilities:
  - Store deletion requests in memory (tests / local dev).
  - Implement every conditional transition atomically under one lock so the
    single-pending and first-transition-wins rules hold across threads.
  - Keep ordering aligned with Postgres:
      ORDER BY requested_at DESC, id DESC

Collaborators:
  - domain.entities.DeletionRequest, DeletionStatus, DeletionStats
  - domain.repositories.DeletionRequestRepository (contract)

Constraints / Notes:
  - Thread-safe: every read/write holds the Lock.
  - Defensive copies: callers never share mutable state with the store.
============================================================
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, Iterable, List
from uuid import UUID

from ....domain.entities import (
    DeletionRequest,
    DeletionStats,
    DeletionStatus,
    ReasonCount,
)
from ....domain.repositories import DeletionRequestRepository

_TOP_REASONS_LIMIT = 10


class InMemoryDeletionRequestRepository(DeletionRequestRepository):
    """In-memory, thread-safe deletion request store."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._requests: Dict[UUID, DeletionRequest] = {}

    # =========================================================
    # Internal helpers
    # =========================================================
    @staticmethod
    def _copy(request: DeletionRequest | None) -> DeletionRequest | None:
        return replace(request) if request is not None else None

    @staticmethod
    def _sorted(items: Iterable[DeletionRequest]) -> List[DeletionRequest]:
        return sorted(
            items, key=lambda r: (r.requested_at, str(r.id)), reverse=True
        )

    def _pending_for(self, account_id: str) -> DeletionRequest | None:
        for request in self._requests.values():
            if request.account_id == account_id and request.is_pending:
                return request
        return None

    def ping(self) -> bool:
        return True

    # =========================================================
    # Creation / reads
    # =========================================================
    def create_pending(self, request: DeletionRequest) -> bool:
        with self._lock:
            if self._pending_for(request.account_id) is not None:
                return False
            self._requests[request.id] = replace(request)
            return True

    def get(self, request_id: UUID) -> DeletionRequest | None:
        with self._lock:
            return self._copy(self._requests.get(request_id))

    def get_pending_for_account(self, account_id: str) -> DeletionRequest | None:
        with self._lock:
            return self._copy(self._pending_for(account_id))

    def get_latest_for_account(self, account_id: str) -> DeletionRequest | None:
        with self._lock:
            mine = [r for r in self._requests.values() if r.account_id == account_id]
            if not mine:
                return None
            return self._copy(self._sorted(mine)[0])

    # =========================================================
    # Conditional transitions
    # =========================================================
    def cancel(
        self,
        request_id: UUID,
        *,
        cancelled_at: datetime,
        by_admin: bool = False,
        admin_user_id: str | None = None,
        admin_notes: str | None = None,
    ) -> DeletionRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or not current.is_pending:
                return None
            if current.is_claimed(cancelled_at):
                return None

            current.status = DeletionStatus.CANCELLED
            current.cancelled_at = cancelled_at
            current.claim_id = None
            current.claimed_until = None
            if by_admin:
                current.cancelled_by_admin = True
                current.admin_user_id = admin_user_id
                if admin_notes is not None:
                    current.admin_notes = admin_notes
            return self._copy(current)

    def list_due(self, now: datetime, *, limit: int) -> list[DeletionRequest]:
        with self._lock:
            due = [
                r
                for r in self._requests.values()
                if r.is_due(now) and not r.needs_review and not r.is_claimed(now)
            ]
            due.sort(key=lambda r: (r.scheduled_for, str(r.id)))
            return [replace(r) for r in due[:limit]]

    def claim(
        self, request_id: UUID, *, claim_id: UUID, now: datetime, until: datetime
    ) -> bool:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or not current.is_due(now) or current.needs_review:
                return False
            if current.is_claimed(now):
                return False
            current.claim_id = claim_id
            current.claimed_until = until
            return True

    def mark_executed(
        self, request_id: UUID, *, claim_id: UUID, executed_at: datetime
    ) -> DeletionRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or not current.is_pending:
                return None
            if current.claim_id != claim_id:
                return None
            current.status = DeletionStatus.EXECUTED
            current.executed_at = executed_at
            current.claim_id = None
            current.claimed_until = None
            return self._copy(current)

    def record_purge_failure(
        self,
        request_id: UUID,
        *,
        claim_id: UUID,
        error: str,
        max_attempts: int,
        keep_lease: bool = False,
    ) -> DeletionRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or not current.is_pending:
                return None
            if current.claim_id != claim_id:
                return None
            current.purge_attempts += 1
            current.last_purge_error = error
            current.needs_review = current.purge_attempts >= max_attempts
            if not keep_lease:
                current.claim_id = None
                current.claimed_until = None
            return self._copy(current)

    def release_for_retry(self, request_id: UUID) -> DeletionRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None or not current.is_pending or not current.needs_review:
                return None
            current.needs_review = False
            current.purge_attempts = 0
            current.last_purge_error = None
            return self._copy(current)

    def update_admin_notes(
        self, request_id: UUID, *, notes: str | None, admin_user_id: str
    ) -> DeletionRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                return None
            current.admin_notes = notes
            current.admin_user_id = admin_user_id
            return self._copy(current)

    # =========================================================
    # Admin reads
    # =========================================================
    def list_requests(
        self,
        *,
        status: DeletionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DeletionRequest]:
        if limit <= 0:
            return []
        offset = max(offset, 0)
        with self._lock:
            items = [
                r
                for r in self._requests.values()
                if status is None or r.status == status
            ]
            return [replace(r) for r in self._sorted(items)[offset : offset + limit]]

    def count_requests(self, *, status: DeletionStatus | None = None) -> int:
        with self._lock:
            return sum(
                1
                for r in self._requests.values()
                if status is None or r.status == status
            )

    def stats(self, now: datetime) -> DeletionStats:
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        week_ahead = now + timedelta(days=7)

        with self._lock:
            items = [replace(r) for r in self._requests.values()]

        by_status = Counter(r.status for r in items)
        reasons = Counter(r.reason for r in items if r.reason)

        return DeletionStats(
            pending_count=by_status[DeletionStatus.PENDING],
            cancelled_count=by_status[DeletionStatus.CANCELLED],
            executed_count=by_status[DeletionStatus.EXECUTED],
            needs_review_count=sum(1 for r in items if r.is_pending and r.needs_review),
            last_7_days=sum(1 for r in items if r.requested_at >= week_ago),
            last_30_days=sum(1 for r in items if r.requested_at >= month_ago),
            expiring_in_7_days=sum(
                1
                for r in items
                if r.is_pending and now <= r.scheduled_for <= week_ahead
            ),
            top_reasons=[
                ReasonCount(reason=reason, count=count)
                for reason, count in reasons.most_common(_TOP_REASONS_LIMIT)
            ],
        )
