"""
===============================================================================
CRC CARD — domain/repositories.py
===============================================================================

Module:
    Persistence ports (domain)

Responsibilities:
    - DeletionRequestRepository: storage of deletion requests with conditional
      (compare-and-swap) transitions so concurrent callers never both win.
    - AuditLogRepository: append-only audit storage plus filtered reads.

Collaborators:
    - infrastructure.repositories.in_memory.* (tests / local dev)
    - infrastructure.repositories.postgres.* (production)

Rules:
    - Every state-changing method returns whether it took effect (bool) or the
      updated entity (None when the guard did not match). Callers decide what a
      lost race means.
    - No update/delete path exists for audit entries.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from .audit import AuditAction, AuditEntityType, AuditLogEntry
from .entities import DeletionRequest, DeletionStats, DeletionStatus


class DeletionRequestRepository(Protocol):
    """Port for deletion request persistence."""

    def create_pending(self, request: DeletionRequest) -> bool:
        """Insert a pending request unless the account already has one."""
        ...

    def get(self, request_id: UUID) -> DeletionRequest | None: ...

    def get_pending_for_account(self, account_id: str) -> DeletionRequest | None: ...

    def get_latest_for_account(self, account_id: str) -> DeletionRequest | None:
        """Most recently requested request, any status."""
        ...

    def cancel(
        self,
        request_id: UUID,
        *,
        cancelled_at: datetime,
        by_admin: bool = False,
        admin_user_id: str | None = None,
        admin_notes: str | None = None,
    ) -> DeletionRequest | None:
        """pending (and not leased) -> cancelled."""
        ...

    def list_due(self, now: datetime, *, limit: int) -> list[DeletionRequest]:
        """Pending, scheduled_for <= now, not flagged, lease free or expired."""
        ...

    def claim(
        self, request_id: UUID, *, claim_id: UUID, now: datetime, until: datetime
    ) -> bool:
        """Take the execution lease on a due pending request."""
        ...

    def mark_executed(
        self, request_id: UUID, *, claim_id: UUID, executed_at: datetime
    ) -> DeletionRequest | None:
        """pending -> executed, only for the holder of claim_id."""
        ...

    def record_purge_failure(
        self,
        request_id: UUID,
        *,
        claim_id: UUID,
        error: str,
        max_attempts: int,
        keep_lease: bool = False,
    ) -> DeletionRequest | None:
        """
        Count a failed attempt and flag the request at max_attempts.

        The lease is released unless keep_lease is set; a timed-out purge may
        still be running, so its lease must run out before anyone else acts.
        """
        ...

    def release_for_retry(self, request_id: UUID) -> DeletionRequest | None:
        """Clear the review flag and attempt counter of a pending request."""
        ...

    def update_admin_notes(
        self, request_id: UUID, *, notes: str | None, admin_user_id: str
    ) -> DeletionRequest | None: ...

    def list_requests(
        self,
        *,
        status: DeletionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DeletionRequest]: ...

    def count_requests(self, *, status: DeletionStatus | None = None) -> int: ...

    def stats(self, now: datetime) -> DeletionStats: ...


class AuditLogRepository(Protocol):
    """Port for the append-only audit log."""

    def append(self, entry: AuditLogEntry) -> None: ...

    def list_entries(
        self,
        *,
        tenant_id: str | None = None,
        actor_id: str | None = None,
        entity_type: AuditEntityType | None = None,
        entity_id: str | None = None,
        action: AuditAction | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """Newest first."""
        ...
