"""
===============================================================================
CRC CARD — schemas/admin.py
===============================================================================

Module:
    HTTP schemas for deletion administration and audit browsing

Responsibilities:
    - Full request view for operators (bookkeeping fields included).
    - List, stats, update, sweep and audit DTOs.

Collaborators:
    - domain.entities / domain.audit
    - routers.admin
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .....domain.audit import ActorType, AuditAction, AuditEntityType
from .....domain.entities import DeletionStatus


# -----------------------------------------------------------------------------
# Deletion requests
# -----------------------------------------------------------------------------
class AdminDeletionRequestRes(BaseModel):
    id: UUID
    account_id: str
    tenant_id: str
    status: DeletionStatus
    requested_at: datetime
    scheduled_for: datetime
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


class AdminDeletionListRes(BaseModel):
    items: list[AdminDeletionRequestRes]
    total: int
    limit: int
    offset: int


class ReasonCountRes(BaseModel):
    reason: str
    count: int


class DeletionStatsRes(BaseModel):
    pending_count: int
    cancelled_count: int
    executed_count: int
    needs_review_count: int
    last_7_days: int
    last_30_days: int
    expiring_in_7_days: int
    top_reasons: list[ReasonCountRes] = Field(default_factory=list)


class UpdateDeletionRequestReq(BaseModel):
    """
    cancel: pending -> cancelled on the owner's behalf (notes optional)
    note:   replace admin notes
    retry:  release a request flagged for review
    """

    action: Literal["cancel", "note", "retry"]
    admin_notes: str | None = Field(default=None, max_length=2000)


# -----------------------------------------------------------------------------
# Sweeps
# -----------------------------------------------------------------------------
class SweepReportRes(BaseModel):
    started_at: datetime
    finished_at: datetime | None = None
    scanned: int
    executed: int
    failed: int
    flagged: int
    skipped: int


class SweepRes(BaseModel):
    mode: Literal["inline", "queued"]
    job_id: str | None = None
    report: SweepReportRes | None = None


# -----------------------------------------------------------------------------
# Audit
# -----------------------------------------------------------------------------
class AuditEntryRes(BaseModel):
    id: UUID
    occurred_at: datetime
    actor_type: ActorType
    actor_id: str
    tenant_id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    request_id: str
    diff: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    ip: str | None = None
    user_agent: str | None = None


class AuditListRes(BaseModel):
    entries: list[AuditEntryRes]
    limit: int
    offset: int
    next_offset: int | None = None
