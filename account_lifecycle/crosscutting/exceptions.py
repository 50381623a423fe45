"""
===============================================================================
MODULE: Infrastructure-facing typed exceptions
===============================================================================

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  DatabaseError

Responsibilities:
  - Wrap driver/pool failures so adapters never leak psycopg types upward
  - Share the LifecycleError contract (error_code + error_id + message)

Collaborators:
  - infrastructure/repositories/postgres/* (raise)
  - api/exception_handlers.py (maps to 503)
===============================================================================
"""

from __future__ import annotations

from ..domain.errors import LifecycleError


class DatabaseError(LifecycleError):
    """DB errors (connection, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


__all__ = ["DatabaseError", "LifecycleError"]
