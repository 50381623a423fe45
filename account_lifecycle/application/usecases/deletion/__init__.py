"""
===============================================================================
DELETION USE CASES PACKAGE (Public API / Exports)
===============================================================================

Exports:
  - DeletionRequestManager: self-service request / cancel / status
  - DeletionAdminService: admin listing, stats, cancel, notes, review release
  - record_transition: one audit entry per lifecycle transition
===============================================================================
"""

from .audit_events import record_admin_update, record_transition
from .deletion_admin import DeletionAdminService
from .deletion_manager import (
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_REASON_MAX_CHARS,
    DeletionRequestManager,
    normalize_reason,
)

__all__ = [
    "DEFAULT_GRACE_PERIOD_DAYS",
    "DEFAULT_REASON_MAX_CHARS",
    "DeletionAdminService",
    "DeletionRequestManager",
    "normalize_reason",
    "record_admin_update",
    "record_transition",
]
