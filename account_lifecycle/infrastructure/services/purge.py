"""
============================================================
CRC CARD — infrastructure/services/purge.py
============================================================
Classes:
  - PostgresAccountPurger: anonymize/remove one account's data in a single
    transaction.
  - RecordingPurger: in-memory purger for local runs (remembers purged ids).
  - TimeoutPurgeExecutor: wraps any purger with a deadline.

Responsibilities:
  - Implement domain.services.PurgeExecutor.
  - Report every failure (driver error, timeout) as PurgeError so the
    scheduler can count and retry it.

Collaborators:
  - psycopg_pool.ConnectionPool
  - concurrent.futures (deadline enforcement)
  - crosscutting.logger

Notes:
  - Purges are idempotent: re-running a statement list on an already
    anonymized account leaves it unchanged.
  - A timed-out purge thread cannot be killed; it is abandoned and the
    attempt is counted as failed. The scheduler keeps the lease on a timeout
    so the request cannot be cancelled while that thread may still finish.
============================================================
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from threading import Lock
from typing import Sequence

from psycopg_pool import ConnectionPool

from ...crosscutting.logger import logger
from ...domain.errors import PurgeError
from ...domain.services import PurgeExecutor

# Each statement receives the account id as its only parameter.
DEFAULT_PURGE_STATEMENTS: tuple[str, ...] = (
    """
    UPDATE accounts
    SET email = NULL,
        display_name = NULL,
        status = 'deleted',
        deleted_at = COALESCE(deleted_at, now())
    WHERE id::text = %s
    """,
    "DELETE FROM account_sessions WHERE account_id::text = %s",
    "DELETE FROM account_credentials WHERE account_id::text = %s",
)


class PostgresAccountPurger:
    def __init__(
        self,
        pool: ConnectionPool | None = None,
        *,
        statements: Sequence[str] = DEFAULT_PURGE_STATEMENTS,
    ) -> None:
        self._pool = pool
        self._statements = tuple(statements)

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ..db.pool import get_pool

        return get_pool()

    def purge_account_data(self, account_id: str) -> None:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    for statement in self._statements:
                        conn.execute(statement, (account_id,))
        except Exception as exc:
            logger.exception(
                "PostgresAccountPurger: purge failed",
                extra={"account_id": account_id, "error": str(exc)},
            )
            raise PurgeError(f"Purge failed: {exc}", original_error=exc) from exc

        logger.info("Account data purged", extra={"account_id": account_id})


class RecordingPurger:
    """Purger for the memory backend: records which accounts were purged."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._purged: list[str] = []

    def purge_account_data(self, account_id: str) -> None:
        with self._lock:
            if account_id not in self._purged:
                self._purged.append(account_id)

    @property
    def purged(self) -> list[str]:
        with self._lock:
            return list(self._purged)


class TimeoutPurgeExecutor:
    """
    Enforce a deadline on a purge call.

    Any exception from the inner purger is normalized to PurgeError.
    """

    def __init__(
        self,
        inner: PurgeExecutor,
        *,
        timeout_seconds: float,
        max_workers: int = 4,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._inner = inner
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="purge"
        )

    def purge_account_data(self, account_id: str) -> None:
        future = self._executor.submit(self._inner.purge_account_data, account_id)
        try:
            future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.warning(
                "Purge timed out",
                extra={"account_id": account_id, "timeout_seconds": self._timeout},
            )
            raise PurgeError(
                f"Purge timed out after {self._timeout}s", original_error=exc
            ) from exc
        except PurgeError:
            raise
        except Exception as exc:
            raise PurgeError(f"Purge failed: {exc}", original_error=exc) from exc

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
