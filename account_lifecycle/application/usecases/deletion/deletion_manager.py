"""
===============================================================================
USE CASE: Deletion Request Manager (self-service)
===============================================================================

Business Goal:
    Let an account owner request deletion of their account, change their mind
    within the grace period, and see the request that is currently active.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    DeletionRequestManager

Responsibilities:
    - Create a pending request scheduled grace_period_days after now.
    - Cancel the pending request (pending -> cancelled).
    - Read the active (pending) request.
    - Emit one audit entry per transition.

Collaborators:
    - DeletionRequestRepository: conditional create/cancel
    - AccountDirectory: account must exist
    - AuditLogRecorder: best-effort audit
    - Clock: injectable time

-------------------------------------------------------------------------------
BUSINESS RULES
-------------------------------------------------------------------------------
R1) At most one pending request per account. The repository's conditional
    insert is the arbiter; the pre-check only gives a faster answer.
R2) Cancel only from pending. Executed -> InvalidStateError. Cancelled or
    never requested -> NotFoundError.
R3) A sweep holding the execution lease wins over a concurrent cancel.
===============================================================================
"""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from ....audit import AuditLogRecorder
from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_deletion_cancelled, record_deletion_requested
from ....domain.audit import ActorType
from ....domain.entities import DeletionRequest, DeletionStatus
from ....domain.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ....domain.repositories import DeletionRequestRepository
from ....domain.services import AccountDirectory, Clock
from .audit_events import record_transition

DEFAULT_GRACE_PERIOD_DAYS = 30
DEFAULT_REASON_MAX_CHARS = 500


def normalize_reason(reason: str | None, max_chars: int) -> str | None:
    if reason is None:
        return None
    cleaned = reason.strip()
    if not cleaned:
        return None
    if len(cleaned) > max_chars:
        raise ValidationError(f"reason must be at most {max_chars} characters")
    return cleaned


class DeletionRequestManager:
    def __init__(
        self,
        repository: DeletionRequestRepository,
        accounts: AccountDirectory,
        recorder: AuditLogRecorder,
        clock: Clock,
        *,
        grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
        reason_max_chars: int = DEFAULT_REASON_MAX_CHARS,
    ) -> None:
        if grace_period_days <= 0:
            raise ValueError("grace_period_days must be > 0")
        self._requests = repository
        self._accounts = accounts
        self._recorder = recorder
        self._clock = clock
        self._grace = timedelta(days=grace_period_days)
        self._reason_max_chars = reason_max_chars

    @property
    def grace_period_days(self) -> int:
        return self._grace.days

    def request_deletion(
        self,
        account_id: str,
        reason: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> DeletionRequest:
        """
        Raises:
            NotFoundError: unknown account
            ValidationError: reason too long
            ConflictError: a pending request already exists
        """
        account = self._accounts.lookup_account(account_id)
        if account is None:
            raise NotFoundError("Account not found")

        cleaned_reason = normalize_reason(reason, self._reason_max_chars)

        if self._requests.get_pending_for_account(account_id) is not None:
            raise ConflictError("A deletion request is already pending")

        now = self._clock.now()
        request = DeletionRequest(
            id=uuid4(),
            account_id=account_id,
            tenant_id=account.tenant_id or "system",
            requested_at=now,
            scheduled_for=now + self._grace,
            reason=cleaned_reason,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        # Two concurrent callers can both pass the pre-check; the conditional
        # insert lets exactly one through.
        if not self._requests.create_pending(request):
            raise ConflictError("A deletion request is already pending")

        record_deletion_requested()
        logger.info(
            "Account deletion requested",
            extra={
                "account_id": account_id,
                "deletion_request_id": str(request.id),
                "scheduled_for": request.scheduled_for.isoformat(),
            },
        )

        record_transition(
            self._recorder,
            request,
            status=DeletionStatus.PENDING,
            actor_type=ActorType.USER,
            actor_id=account_id,
            ip=ip_address,
            user_agent=user_agent,
            metadata={
                "scheduled_for": request.scheduled_for.isoformat(),
                "grace_period_days": self.grace_period_days,
                "has_reason": cleaned_reason is not None,
            },
        )
        return request

    def cancel_deletion(
        self,
        account_id: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """
        Raises:
            NotFoundError: nothing pending to cancel
            InvalidStateError: already executed, being executed, or lost a race
        """
        latest = self._requests.get_latest_for_account(account_id)
        if latest is None or latest.status == DeletionStatus.CANCELLED:
            raise NotFoundError("No pending deletion request")
        if latest.status == DeletionStatus.EXECUTED:
            raise InvalidStateError("Deletion request was already executed")

        cancelled = self._requests.cancel(latest.id, cancelled_at=self._clock.now())
        if cancelled is None:
            raise InvalidStateError("Deletion request can no longer be cancelled")

        record_deletion_cancelled("user")
        logger.info(
            "Account deletion cancelled",
            extra={"account_id": account_id, "deletion_request_id": str(latest.id)},
        )

        record_transition(
            self._recorder,
            cancelled,
            status=DeletionStatus.CANCELLED,
            actor_type=ActorType.USER,
            actor_id=account_id,
            ip=ip_address,
            user_agent=user_agent,
        )

    def get_active_request(self, account_id: str) -> DeletionRequest | None:
        return self._requests.get_pending_for_account(account_id)
