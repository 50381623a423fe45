"""
============================================================
CRC CARD — infrastructure/repositories/postgres/audit_log.py
============================================================
Class: PostgresAuditLogRepository

Responsibilities:
  - Append audit entries to PostgreSQL (table audit_log).
  - List entries with optional filters (tenant, actor, entity, action, dates).
  - Deterministic ordering for APIs/tests: occurred_at DESC, id DESC.

Collaborators:
  - domain.audit.AuditLogEntry
  - psycopg_pool.ConnectionPool
  - psycopg.types.json.Json (JSONB parameters)
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Append-only: there is no update/delete method, and the migration installs
    a trigger that rejects UPDATE/DELETE on audit_log.
  - Failures propagate as DatabaseError; the recorder decides to swallow.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import ActorType, AuditAction, AuditEntityType, AuditLogEntry

_COLUMNS = """
    id, occurred_at, actor_type, actor_id, tenant_id, entity_type, entity_id,
    action, request_id, ip, user_agent, diff, metadata, pii_scrubbed
"""


def _row_to_entry(row: tuple) -> AuditLogEntry:
    return AuditLogEntry(
        id=row[0],
        occurred_at=row[1],
        actor_type=ActorType(row[2]),
        actor_id=row[3],
        tenant_id=row[4],
        entity_type=AuditEntityType(row[5]),
        entity_id=row[6],
        action=AuditAction(row[7]),
        request_id=row[8],
        ip=row[9],
        user_agent=row[10],
        diff=row[11] or {},
        metadata=row[12] or {},
        pii_scrubbed=bool(row[13]),
    )


class PostgresAuditLogRepository:
    """PostgreSQL repository for the audit log."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> list[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    # ------------------------------------------------------------
    # Write (append-only)
    # ------------------------------------------------------------
    def append(self, entry: AuditLogEntry) -> None:
        try:
            with self._get_pool().connection() as conn:
                conn.execute(
                    f"""
                    INSERT INTO audit_log ({_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        entry.id,
                        entry.occurred_at,
                        entry.actor_type.value,
                        entry.actor_id,
                        entry.tenant_id,
                        entry.entity_type.value,
                        entry.entity_id,
                        entry.action.value,
                        entry.request_id,
                        entry.ip,
                        entry.user_agent,
                        Json(entry.diff or {}),
                        Json(entry.metadata or {}),
                        entry.pii_scrubbed,
                    ),
                )
        except Exception as exc:
            logger.exception(
                "PostgresAuditLogRepository: Failed to append audit entry",
                extra={
                    "audit_entry_id": str(entry.id),
                    "entity_type": entry.entity_type.value,
                    "audit_action": entry.action.value,
                    "error": str(exc),
                },
            )
            raise DatabaseError(f"Failed to append audit entry: {exc}") from exc

    # ------------------------------------------------------------
    # Read (filtered listing)
    # ------------------------------------------------------------
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
        """
        Start/end are inclusive. Ordering is occurred_at DESC, id DESC, stable
        even when timestamps collide.
        """
        if limit <= 0:
            return []
        if offset < 0:
            offset = 0

        conditions: list[str] = []
        params: list[object] = []

        if tenant_id is not None:
            conditions.append("tenant_id = %s")
            params.append(tenant_id)
        if actor_id is not None:
            conditions.append("actor_id = %s")
            params.append(actor_id)
        if entity_type is not None:
            conditions.append("entity_type = %s")
            params.append(entity_type.value)
        if entity_id is not None:
            conditions.append("entity_id = %s")
            params.append(entity_id)
        if action is not None:
            conditions.append("action = %s")
            params.append(action.value)
        if start_at is not None:
            conditions.append("occurred_at >= %s")
            params.append(start_at)
        if end_at is not None:
            conditions.append("occurred_at <= %s")
            params.append(end_at)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.extend([limit, offset])

        rows = self._fetchall(
            query=f"""
                SELECT {_COLUMNS}
                FROM audit_log
                {where}
                ORDER BY occurred_at DESC, id DESC
                LIMIT %s OFFSET %s
            """,
            params=params,
            error_message="PostgresAuditLogRepository: Failed to list audit entries",
            extra={"limit": limit, "offset": offset},
        )
        return [_row_to_entry(r) for r in rows]
