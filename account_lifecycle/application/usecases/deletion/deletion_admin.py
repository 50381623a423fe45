"""
===============================================================================
USE CASE: Deletion administration
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Class:
    DeletionAdminService

Responsibilities:
    - List requests with status filter and offset pagination.
    - Dashboard aggregates (counts, recent volume, expiring soon, top reasons).
    - Cancel a pending request on the owner's behalf, with notes.
    - Annotate a request (notes only, any state).
    - Release a request flagged for review so the next sweep retries it.

Collaborators:
    - DeletionRequestRepository
    - AuditLogRecorder
    - Clock
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from ....audit import AuditLogRecorder
from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_deletion_cancelled
from ....domain.audit import ActorType
from ....domain.entities import (
    DeletionRequest,
    DeletionRequestPage,
    DeletionStats,
    DeletionStatus,
)
from ....domain.errors import InvalidStateError, NotFoundError, ValidationError
from ....domain.repositories import DeletionRequestRepository
from ....domain.services import Clock
from .audit_events import record_admin_update, record_transition

_MAX_NOTES_CHARS = 2000


def _normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    cleaned = notes.strip()
    if len(cleaned) > _MAX_NOTES_CHARS:
        raise ValidationError(f"admin_notes must be at most {_MAX_NOTES_CHARS} characters")
    return cleaned or None


class DeletionAdminService:
    def __init__(
        self,
        repository: DeletionRequestRepository,
        recorder: AuditLogRecorder,
        clock: Clock,
    ) -> None:
        self._requests = repository
        self._recorder = recorder
        self._clock = clock

    def _get_or_raise(self, request_id: UUID) -> DeletionRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFoundError("Deletion request not found")
        return request

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def list_requests(
        self,
        status: DeletionStatus | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> DeletionRequestPage:
        items = self._requests.list_requests(status=status, limit=limit, offset=offset)
        total = self._requests.count_requests(status=status)
        return DeletionRequestPage(items=items, total=total)

    def get_stats(self) -> DeletionStats:
        return self._requests.stats(self._clock.now())

    # ------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------
    def admin_cancel(
        self,
        request_id: UUID,
        *,
        admin_user_id: str,
        notes: str | None = None,
    ) -> DeletionRequest:
        current = self._get_or_raise(request_id)
        if not current.can_cancel:
            raise InvalidStateError(
                f"Deletion request is {current.status.value}; only pending requests can be cancelled"
            )

        cancelled = self._requests.cancel(
            request_id,
            cancelled_at=self._clock.now(),
            by_admin=True,
            admin_user_id=admin_user_id,
            admin_notes=_normalize_notes(notes),
        )
        if cancelled is None:
            raise InvalidStateError("Deletion request can no longer be cancelled")

        record_deletion_cancelled("admin")
        logger.info(
            "Account deletion cancelled by admin",
            extra={
                "deletion_request_id": str(request_id),
                "account_id": cancelled.account_id,
                "admin_user_id": admin_user_id,
            },
        )
        record_transition(
            self._recorder,
            cancelled,
            status=DeletionStatus.CANCELLED,
            actor_type=ActorType.USER,
            actor_id=admin_user_id,
            metadata={"cancelled_by_admin": True},
        )
        return cancelled

    def annotate(
        self, request_id: UUID, *, admin_user_id: str, notes: str | None
    ) -> DeletionRequest:
        updated = self._requests.update_admin_notes(
            request_id, notes=_normalize_notes(notes), admin_user_id=admin_user_id
        )
        if updated is None:
            raise NotFoundError("Deletion request not found")

        record_admin_update(
            self._recorder,
            updated,
            admin_user_id=admin_user_id,
            diff={"admin_notes": "updated" if updated.admin_notes else "cleared"},
        )
        return updated

    def release_for_retry(
        self, request_id: UUID, *, admin_user_id: str
    ) -> DeletionRequest:
        current = self._get_or_raise(request_id)
        if not (current.is_pending and current.needs_review):
            raise InvalidStateError("Only pending requests flagged for review can be released")

        released = self._requests.release_for_retry(request_id)
        if released is None:
            raise InvalidStateError("Deletion request is no longer flagged for review")

        logger.info(
            "Deletion request released for retry",
            extra={
                "deletion_request_id": str(request_id),
                "account_id": released.account_id,
                "admin_user_id": admin_user_id,
            },
        )
        record_admin_update(
            self._recorder,
            released,
            admin_user_id=admin_user_id,
            diff={"needs_review": False, "purge_attempts": 0},
        )
        return released
