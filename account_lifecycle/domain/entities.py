"""
===============================================================================
CRC CARD — domain/entities.py
===============================================================================

Module:
    Deletion lifecycle entities

Responsibilities:
    - DeletionRequest: one account's request to be deleted after a grace period.
    - DeletionStatus: closed lifecycle vocabulary (pending -> cancelled | executed).
    - Read models used by admin views (DeletionRequestPage, DeletionStats).
    - Account: the minimal view of an account this service needs.

Collaborators:
    - domain.repositories.DeletionRequestRepository (persistence port)
    - application.usecases.deletion (state transitions)
    - application.grace_period_scheduler (execution)

Invariants:
    - At most one pending request per account (enforced by the repository).
    - Terminal states (cancelled, executed) are never left.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class DeletionStatus(str, Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    EXECUTED = "executed"

    @property
    def is_terminal(self) -> bool:
        return self is not DeletionStatus.PENDING


@dataclass(frozen=True, slots=True)
class Account:
    """Account as seen by the lifecycle (lookup only, never mutated here)."""

    id: str
    tenant_id: str | None = None
    email: str | None = None


@dataclass(slots=True)
class DeletionRequest:
    """
    Account deletion request.

    claim_id / claimed_until form the execution lease a sweep holds while it
    calls the purge collaborator. A request with a live lease cannot be
    cancelled or claimed by another sweep.
    """

    id: UUID
    account_id: str
    requested_at: datetime
    scheduled_for: datetime
    status: DeletionStatus = DeletionStatus.PENDING
    tenant_id: str = "system"
    reason: str | None = None
    cancelled_at: datetime | None = None
    executed_at: datetime | None = None

    ip_address: str | None = None
    user_agent: str | None = None
    cancelled_by_admin: bool = False
    admin_user_id: str | None = None
    admin_notes: str | None = None

    purge_attempts: int = 0
    last_purge_error: str | None = None
    needs_review: bool = False
    claim_id: UUID | None = None
    claimed_until: datetime | None = None

    @property
    def can_cancel(self) -> bool:
        return self.status == DeletionStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status == DeletionStatus.PENDING

    def is_due(self, now: datetime) -> bool:
        return self.is_pending and now >= self.scheduled_for

    def is_claimed(self, now: datetime) -> bool:
        """True while a sweep holds an unexpired execution lease."""
        return (
            self.claim_id is not None
            and self.claimed_until is not None
            and self.claimed_until > now
        )


@dataclass(slots=True)
class DeletionRequestPage:
    items: list[DeletionRequest]
    total: int


@dataclass(slots=True)
class ReasonCount:
    reason: str
    count: int


@dataclass(slots=True)
class DeletionStats:
    """Aggregates for the admin dashboard."""

    pending_count: int = 0
    cancelled_count: int = 0
    executed_count: int = 0
    needs_review_count: int = 0
    last_7_days: int = 0
    last_30_days: int = 0
    expiring_in_7_days: int = 0
    top_reasons: list[ReasonCount] = field(default_factory=list)
