"""
===============================================================================
CRC CARD — domain/services.py
===============================================================================

Module:
    External collaborator ports

Responsibilities:
    - AccountDirectory: resolve an account reference.
    - PurgeExecutor: remove or anonymize all data of an account. Idempotent;
      raises PurgeError on failure.
    - Clock: injectable time source (tests freeze it).
    - DeletionSweepQueue: hand a sweep to background workers.

Collaborators:
    - infrastructure.services.* (implementations)
    - infrastructure.queue.rq_queue (DeletionSweepQueue)
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .entities import Account


class AccountDirectory(Protocol):
    def lookup_account(self, account_id: str) -> Account | None: ...


class PurgeExecutor(Protocol):
    def purge_account_data(self, account_id: str) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware UTC now."""
        ...


class DeletionSweepQueue(Protocol):
    def enqueue_sweep(self) -> str:
        """Returns the job id."""
        ...
