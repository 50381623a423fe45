"""
===============================================================================
CRC CARD — domain/__init__.py
===============================================================================

Module:
    Domain layer exports

Responsibilities:
    - Single import point for entities, audit models, errors and ports.

Rules:
    - Re-exports domain contracts only. No infrastructure imports here.
===============================================================================
"""

from .audit import (
    ActorType,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    AuditLogEntryInput,
)
from .entities import (
    Account,
    DeletionRequest,
    DeletionRequestPage,
    DeletionStats,
    DeletionStatus,
    ReasonCount,
)
from .errors import (
    ConflictError,
    InvalidStateError,
    LifecycleError,
    NotFoundError,
    PurgeError,
    ValidationError,
)
from .repositories import AuditLogRepository, DeletionRequestRepository
from .services import AccountDirectory, Clock, DeletionSweepQueue, PurgeExecutor

__all__ = [
    "Account",
    "AccountDirectory",
    "ActorType",
    "AuditAction",
    "AuditEntityType",
    "AuditLogEntry",
    "AuditLogEntryInput",
    "AuditLogRepository",
    "Clock",
    "ConflictError",
    "DeletionRequest",
    "DeletionRequestPage",
    "DeletionRequestRepository",
    "DeletionStats",
    "DeletionStatus",
    "DeletionSweepQueue",
    "InvalidStateError",
    "LifecycleError",
    "NotFoundError",
    "PurgeError",
    "ReasonCount",
    "ValidationError",
]
