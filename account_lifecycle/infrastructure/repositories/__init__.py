"""
============================================================
CRC CARD
============================================================
Module: account_lifecycle.infrastructure.repositories (package exports)

Responsibilities:
- Expose the concrete repositories (Postgres and in-memory) from one place.

Collaborators:
- Postgres repositories (raw SQL over psycopg_pool)
- In-memory repositories (tests / local dev; nothing survives a restart)
============================================================
"""

from .in_memory import InMemoryAuditLogRepository, InMemoryDeletionRequestRepository
from .postgres import PostgresAuditLogRepository, PostgresDeletionRequestRepository

__all__ = [
    "InMemoryAuditLogRepository",
    "InMemoryDeletionRequestRepository",
    "PostgresAuditLogRepository",
    "PostgresDeletionRequestRepository",
]
