"""
============================================================
CRC CARD — infrastructure/repositories/in_memory/audit_log.py
============================================================
Class: InMemoryAuditLogRepository

Responsibilities:
  - Append-only audit storage in memory (tests / local dev).
  - Filtered listing, newest first (aligned with Postgres ordering).

Collaborators:
  - domain.audit.AuditLogEntry
  - domain.repositories.AuditLogRepository

Notes:
  - Entries are frozen dataclasses; the store is a list that only grows.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from threading import Lock

from ....domain.audit import AuditAction, AuditEntityType, AuditLogEntry
from ....domain.repositories import AuditLogRepository


class InMemoryAuditLogRepository(AuditLogRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: list[AuditLogEntry] = []

    def append(self, entry: AuditLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

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
        if limit <= 0:
            return []
        offset = max(offset, 0)

        with self._lock:
            snapshot = list(self._entries)

        def matches(e: AuditLogEntry) -> bool:
            if tenant_id is not None and e.tenant_id != tenant_id:
                return False
            if actor_id is not None and e.actor_id != actor_id:
                return False
            if entity_type is not None and e.entity_type != entity_type:
                return False
            if entity_id is not None and e.entity_id != entity_id:
                return False
            if action is not None and e.action != action:
                return False
            if start_at is not None and e.occurred_at < start_at:
                return False
            if end_at is not None and e.occurred_at > end_at:
                return False
            return True

        # Stable newest-first: reverse insertion order breaks timestamp ties.
        ordered = sorted(
            enumerate(snapshot),
            key=lambda pair: (pair[1].occurred_at, pair[0]),
            reverse=True,
        )
        filtered = [e for _, e in ordered if matches(e)]
        return filtered[offset : offset + limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
