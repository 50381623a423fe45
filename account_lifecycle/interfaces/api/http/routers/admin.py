"""
===============================================================================
CRC CARD — interfaces/api/http/routers/admin.py
===============================================================================

Module:
    Admin router: deletion requests, sweeps, audit trail

Responsibilities:
    - List / stats / update (cancel, note, retry) deletion requests.
    - Trigger a sweep (inline, or enqueued on RQ).
    - Browse the audit trail with filters.
    - Require an API key with the "admin" scope.

Collaborators:
    - application.usecases.deletion.DeletionAdminService
    - application.GracePeriodScheduler
    - domain.repositories.AuditLogRepository (read side)
    - identity.auth (require_scope, get_admin_actor)
    - container (factories)
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from account_lifecycle.application import GracePeriodScheduler
from account_lifecycle.application.usecases.deletion import DeletionAdminService
from account_lifecycle.container import (
    get_audit_log_repository,
    get_deletion_admin_service,
    get_grace_period_scheduler,
    get_sweep_queue,
)
from account_lifecycle.crosscutting.error_responses import (
    service_unavailable,
    validation_error,
)
from account_lifecycle.domain.audit import AuditAction, AuditEntityType, AuditLogEntry
from account_lifecycle.domain.entities import DeletionRequest, DeletionStatus
from account_lifecycle.domain.repositories import AuditLogRepository
from account_lifecycle.domain.services import DeletionSweepQueue
from account_lifecycle.identity.auth import ADMIN_SCOPE, get_admin_actor, require_scope
from fastapi import APIRouter, Depends, Query

from ..schemas.admin import (
    AdminDeletionListRes,
    AdminDeletionRequestRes,
    AuditEntryRes,
    AuditListRes,
    DeletionStatsRes,
    ReasonCountRes,
    SweepReportRes,
    SweepRes,
    UpdateDeletionRequestReq,
)

router = APIRouter(dependencies=[Depends(require_scope(ADMIN_SCOPE))])


def _to_admin_res(request: DeletionRequest) -> AdminDeletionRequestRes:
    return AdminDeletionRequestRes(
        id=request.id,
        account_id=request.account_id,
        tenant_id=request.tenant_id,
        status=request.status,
        requested_at=request.requested_at,
        scheduled_for=request.scheduled_for,
        reason=request.reason,
        cancelled_at=request.cancelled_at,
        executed_at=request.executed_at,
        ip_address=request.ip_address,
        user_agent=request.user_agent,
        cancelled_by_admin=request.cancelled_by_admin,
        admin_user_id=request.admin_user_id,
        admin_notes=request.admin_notes,
        purge_attempts=request.purge_attempts,
        last_purge_error=request.last_purge_error,
        needs_review=request.needs_review,
    )


def _to_audit_res(entry: AuditLogEntry) -> AuditEntryRes:
    return AuditEntryRes(
        id=entry.id,
        occurred_at=entry.occurred_at,
        actor_type=entry.actor_type,
        actor_id=entry.actor_id,
        tenant_id=entry.tenant_id,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        action=entry.action,
        request_id=entry.request_id,
        diff=dict(entry.diff or {}),
        metadata=dict(entry.metadata or {}),
        ip=entry.ip,
        user_agent=entry.user_agent,
    )


# =============================================================================
# Deletion requests
# =============================================================================


@router.get(
    "/admin/deletion-requests",
    response_model=AdminDeletionListRes,
    tags=["admin"],
)
def list_deletion_requests(
    status: DeletionStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: DeletionAdminService = Depends(get_deletion_admin_service),
):
    page = service.list_requests(status, limit=limit, offset=offset)
    return AdminDeletionListRes(
        items=[_to_admin_res(r) for r in page.items],
        total=page.total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/admin/deletion-requests/stats",
    response_model=DeletionStatsRes,
    tags=["admin"],
)
def get_deletion_stats(
    service: DeletionAdminService = Depends(get_deletion_admin_service),
):
    stats = service.get_stats()
    return DeletionStatsRes(
        pending_count=stats.pending_count,
        cancelled_count=stats.cancelled_count,
        executed_count=stats.executed_count,
        needs_review_count=stats.needs_review_count,
        last_7_days=stats.last_7_days,
        last_30_days=stats.last_30_days,
        expiring_in_7_days=stats.expiring_in_7_days,
        top_reasons=[
            ReasonCountRes(reason=r.reason, count=r.count) for r in stats.top_reasons
        ],
    )


@router.put(
    "/admin/deletion-requests/{request_id}",
    response_model=AdminDeletionRequestRes,
    tags=["admin"],
)
def update_deletion_request(
    request_id: UUID,
    req: UpdateDeletionRequestReq,
    admin_user_id: str = Depends(get_admin_actor),
    service: DeletionAdminService = Depends(get_deletion_admin_service),
):
    if req.action == "cancel":
        updated = service.admin_cancel(
            request_id, admin_user_id=admin_user_id, notes=req.admin_notes
        )
    elif req.action == "note":
        updated = service.annotate(
            request_id, admin_user_id=admin_user_id, notes=req.admin_notes
        )
    else:
        updated = service.release_for_retry(request_id, admin_user_id=admin_user_id)
    return _to_admin_res(updated)


# =============================================================================
# Sweeps
# =============================================================================


@router.post(
    "/admin/deletion-sweeps",
    response_model=SweepRes,
    tags=["admin"],
)
def trigger_deletion_sweep(
    enqueue: bool = Query(False),
    scheduler: GracePeriodScheduler = Depends(get_grace_period_scheduler),
    queue: DeletionSweepQueue | None = Depends(get_sweep_queue),
):
    if enqueue:
        if queue is None:
            raise service_unavailable("Sweep queue")
        return SweepRes(mode="queued", job_id=queue.enqueue_sweep())

    report = scheduler.run_sweep()
    return SweepRes(
        mode="inline",
        report=SweepReportRes(
            started_at=report.started_at,
            finished_at=report.finished_at,
            scanned=report.scanned,
            executed=report.executed,
            failed=report.failed,
            flagged=report.flagged,
            skipped=report.skipped,
        ),
    )


# =============================================================================
# Audit trail
# =============================================================================


@router.get(
    "/admin/audit",
    response_model=AuditListRes,
    tags=["admin"],
)
def list_audit_entries(
    tenant_id: str | None = Query(None),
    actor_id: str | None = Query(None),
    entity_type: AuditEntityType | None = Query(None),
    entity_id: str | None = Query(None),
    action: AuditAction | None = Query(None),
    start_at: datetime | None = Query(None),
    end_at: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    audit_repo: AuditLogRepository = Depends(get_audit_log_repository),
):
    if start_at and end_at and start_at > end_at:
        raise validation_error("start_at must be before end_at")

    entries = audit_repo.list_entries(
        tenant_id=tenant_id,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        start_at=start_at,
        end_at=end_at,
        limit=limit,
        offset=offset,
    )
    next_offset = offset + limit if len(entries) == limit else None
    return AuditListRes(
        entries=[_to_audit_res(e) for e in entries],
        limit=limit,
        offset=offset,
        next_offset=next_offset,
    )
