"""
===============================================================================
CRC CARD — account_lifecycle/audit.py (Audit Log Recorder)
===============================================================================

Responsibilities:
  - Validate audit input against the closed vocabularies (actor type, entity
    type, action). Unknown values are rejected, never coerced.
  - Fill defaults: actor_id ("anonymous" / "system"), tenant_id ("system"),
    request_id (from context, generated when absent), metadata.recorded_at.
  - Sanitize diff/metadata into JSON-safe values.
  - Hand the entry to a sink. Storage failures never reach the caller.

Collaborators:
  - domain.audit (vocabularies, AuditLogEntryInput, AuditLogEntry)
  - infrastructure.services.audit_sink (Direct / Buffered)
  - context.request_id_var
  - crosscutting.logger / crosscutting.metrics

Rule:
  - Audit is best-effort relative to the business operation: a failed write
    is logged and counted; the deletion transition it describes stands.
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar
from uuid import uuid4

from .context import request_id_var
from .crosscutting.logger import logger
from .crosscutting.metrics import record_audit_write
from .domain.audit import (
    ANONYMOUS_ACTOR_ID,
    SYSTEM_ACTOR_ID,
    SYSTEM_TENANT_ID,
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    AuditLogEntryInput,
)
from .domain.errors import ValidationError
from .domain.services import Clock
from .infrastructure.services.audit_sink import AuditSink

E = TypeVar("E", bound=Enum)


def _sanitize(value: Any) -> Any:
    """
    JSON-safe copy:
    - primitives -> as is
    - dict/list/tuple -> recursive
    - anything else -> str(value)
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, Enum):
        return _sanitize(value.value)

    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]

    return str(value)


def _parse_vocabulary(enum_cls: type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}"
        ) from None


class AuditLogRecorder:
    def __init__(self, sink: AuditSink, clock: Clock) -> None:
        self._sink = sink
        self._clock = clock

    def build_entry(self, data: AuditLogEntryInput) -> AuditLogEntry:
        """Validate and normalize without writing. Raises ValidationError."""
        actor_type = _parse_vocabulary(ActorType, data.actor_type, "actor_type")
        entity_type = _parse_vocabulary(
            AuditEntityType, data.entity_type, "entity_type"
        )
        action = _parse_vocabulary(AuditAction, data.action, "action")

        entity_id = (str(data.entity_id) if data.entity_id is not None else "").strip()
        if not entity_id:
            raise ValidationError("entity_id is required")

        actor_id = (data.actor_id or "").strip()
        if not actor_id:
            if actor_type is ActorType.USER:
                actor_id = ANONYMOUS_ACTOR_ID
            elif actor_type is ActorType.SYSTEM:
                actor_id = SYSTEM_ACTOR_ID
            else:
                raise ValidationError("actor_id is required for integration actors")

        now = self._clock.now()
        metadata = _sanitize(dict(data.metadata or {}))
        metadata["recorded_at"] = now.isoformat()

        return AuditLogEntry(
            id=uuid4(),
            occurred_at=now,
            actor_type=actor_type,
            actor_id=actor_id,
            tenant_id=(data.tenant_id or "").strip() or SYSTEM_TENANT_ID,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            request_id=data.request_id or request_id_var.get() or str(uuid4()),
            diff=_sanitize(dict(data.diff or {})),
            metadata=metadata,
            ip=data.ip,
            user_agent=data.user_agent,
        )

    def record(self, data: AuditLogEntryInput) -> AuditLogEntry | None:
        """
        Record one audit entry.

        Returns the entry when the sink accepted it, None when the write
        failed or was dropped. Raises ValidationError for invalid input.
        """
        try:
            entry = self.build_entry(data)
        except ValidationError:
            record_audit_write("rejected")
            raise

        try:
            accepted = self._sink.submit(entry)
        except Exception as exc:  # noqa: BLE001
            record_audit_write("failed")
            logger.warning(
                "Audit entry write failed",
                extra={
                    "audit_entry_id": str(entry.id),
                    "entity_type": entry.entity_type.value,
                    "entity_id": entry.entity_id,
                    "audit_action": entry.action.value,
                    "error": str(exc),
                },
            )
            return None

        return entry if accepted else None
