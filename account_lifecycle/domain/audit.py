"""
===============================================================================
CRC CARD — domain/audit.py
===============================================================================

Module:
    Audit log models (domain)

Responsibilities:
    - Closed vocabularies for actor type, entity type and action.
    - AuditLogEntryInput: what a caller hands to the recorder.
    - AuditLogEntry: the immutable, stored record.

Collaborators:
    - audit.AuditLogRecorder (validates and builds entries)
    - domain.repositories.AuditLogRepository (append-only storage)

Notes:
    - Entries are append-only: never edited, never deleted.
    - diff carries what changed; metadata is open-ended context.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ActorType(str, Enum):
    USER = "user"
    SYSTEM = "system"
    INTEGRATION = "integration"


class AuditEntityType(str, Enum):
    INVENTORY_ITEM = "inventory_item"
    TENANT = "tenant"
    POLICY = "policy"
    OAUTH = "oauth"
    ACCOUNT = "account"
    OTHER = "other"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SYNC = "sync"
    POLICY_APPLY = "policy_apply"
    OAUTH_CONNECT = "oauth_connect"
    OAUTH_REFRESH = "oauth_refresh"


# Defaults applied when a caller leaves identity fields empty.
ANONYMOUS_ACTOR_ID = "anonymous"
SYSTEM_ACTOR_ID = "system"
SYSTEM_TENANT_ID = "system"


@dataclass(slots=True)
class AuditLogEntryInput:
    """
    Raw audit input. Vocabulary fields accept enum members or their string
    values; anything else is rejected by the recorder.
    """

    actor_type: ActorType | str
    entity_type: AuditEntityType | str
    entity_id: str
    action: AuditAction | str
    actor_id: str | None = None
    tenant_id: str | None = None
    request_id: str | None = None
    diff: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """Stored audit record (immutable)."""

    id: UUID
    occurred_at: datetime
    actor_type: ActorType
    actor_id: str
    tenant_id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    request_id: str
    diff: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    ip: str | None = None
    user_agent: str | None = None
    pii_scrubbed: bool = True
