"""
============================================================
CRC CARD — infrastructure/services/account_directory.py
============================================================
Classes: InMemoryAccountDirectory, PostgresAccountDirectory

Responsibilities:
  - Resolve an account reference to the minimal Account view.
  - Never mutate accounts (purging is PurgeExecutor's job).

Collaborators:
  - domain.services.AccountDirectory (port)
  - psycopg_pool.ConnectionPool (Postgres variant)

Notes:
  - The accounts table belongs to the host platform; only id, tenant_id and
    email are read.
============================================================
"""

from __future__ import annotations

from psycopg_pool import ConnectionPool

from ...crosscutting.exceptions import DatabaseError
from ...crosscutting.logger import logger
from ...domain.entities import Account


class InMemoryAccountDirectory:
    """
    Account directory for tests and local runs.

    accept_unknown=True resolves any id to a bare Account, which lets a local
    API run without seeding accounts first.
    """

    def __init__(
        self,
        accounts: list[Account] | None = None,
        *,
        accept_unknown: bool = False,
    ) -> None:
        self._accounts: dict[str, Account] = {a.id: a for a in accounts or []}
        self._accept_unknown = accept_unknown

    def lookup_account(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        if account is None and self._accept_unknown and account_id:
            return Account(id=account_id)
        return account


class PostgresAccountDirectory:
    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ..db.pool import get_pool

        return get_pool()

    def lookup_account(self, account_id: str) -> Account | None:
        try:
            with self._get_pool().connection() as conn:
                row = conn.execute(
                    """
                    SELECT id::text, tenant_id::text, email
                    FROM accounts
                    WHERE id::text = %s
                    """,
                    (account_id,),
                ).fetchone()
        except Exception as exc:
            logger.exception(
                "PostgresAccountDirectory: Failed to look up account",
                extra={"account_id": account_id, "error": str(exc)},
            )
            raise DatabaseError(f"Failed to look up account: {exc}") from exc

        if row is None:
            return None
        return Account(id=row[0], tenant_id=row[1], email=row[2])
