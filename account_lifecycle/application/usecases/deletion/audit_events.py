"""
===============================================================================
Deletion lifecycle audit events
===============================================================================

Every lifecycle transition of a DeletionRequest produces exactly one audit
entry with entity_type=account, action=delete and diff.status set to the new
status. Admin bookkeeping (notes, review release) is recorded as action=update.

Collaborators:
    - audit.AuditLogRecorder
    - domain.audit (vocabularies)
===============================================================================
"""

from __future__ import annotations

from typing import Any

from ....audit import AuditLogRecorder
from ....domain.audit import (
    SYSTEM_ACTOR_ID,
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    AuditLogEntryInput,
)
from ....domain.entities import DeletionRequest, DeletionStatus


def record_transition(
    recorder: AuditLogRecorder,
    request: DeletionRequest,
    *,
    status: DeletionStatus,
    actor_type: ActorType,
    actor_id: str | None,
    ip: str | None = None,
    user_agent: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLogEntry | None:
    diff: dict[str, Any] = {"status": status.value}
    if status is not DeletionStatus.PENDING:
        diff["previous_status"] = DeletionStatus.PENDING.value

    return recorder.record(
        AuditLogEntryInput(
            actor_type=actor_type,
            actor_id=actor_id if actor_type is not ActorType.SYSTEM else SYSTEM_ACTOR_ID,
            tenant_id=request.tenant_id,
            entity_type=AuditEntityType.ACCOUNT,
            entity_id=request.account_id,
            action=AuditAction.DELETE,
            diff=diff,
            metadata={"deletion_request_id": str(request.id), **(metadata or {})},
            ip=ip,
            user_agent=user_agent,
        )
    )


def record_admin_update(
    recorder: AuditLogRecorder,
    request: DeletionRequest,
    *,
    admin_user_id: str,
    diff: dict[str, Any],
) -> AuditLogEntry | None:
    return recorder.record(
        AuditLogEntryInput(
            actor_type=ActorType.USER,
            actor_id=admin_user_id,
            tenant_id=request.tenant_id,
            entity_type=AuditEntityType.ACCOUNT,
            entity_id=request.account_id,
            action=AuditAction.UPDATE,
            diff=diff,
            metadata={"deletion_request_id": str(request.id), "admin": True},
        )
    )
