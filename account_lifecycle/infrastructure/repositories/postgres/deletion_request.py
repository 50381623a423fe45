"""
============================================================
CRC CARD — infrastructure/repositories/postgres/deletion_request.py
============================================================
Class: PostgresDeletionRequestRepository

Responsibilities:
  - Persist deletion requests in PostgreSQL (table account_deletion_requests).
  - Express every lifecycle transition as a single conditional UPDATE
    (WHERE status = 'pending' ...) so concurrent API instances and sweeps
    resolve races in the database, first writer wins.
  - Admin reads: filtered listing, counts and dashboard aggregates.

Collaborators:
  - psycopg_pool.ConnectionPool (injected or the process pool)
  - domain.entities.DeletionRequest / DeletionStats
  - crosscutting.exceptions.DatabaseError (infra error contract)
  - crosscutting.logger

Constraints / Notes:
  - Queries are always parameterized.
  - The partial unique index uq_account_deletion_requests_pending_account
    (account_id WHERE status = 'pending') backs create_pending().
============================================================
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable
from uuid import UUID

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import (
    DeletionRequest,
    DeletionStats,
    DeletionStatus,
    ReasonCount,
)

_COLUMNS = """
    id, account_id, tenant_id, requested_at, scheduled_for, reason, status,
    cancelled_at, executed_at, ip_address, user_agent, cancelled_by_admin,
    admin_user_id, admin_notes, purge_attempts, last_purge_error, needs_review,
    claim_id, claimed_until
"""

_TOP_REASONS_LIMIT = 10


def _row_to_request(row: tuple) -> DeletionRequest:
    return DeletionRequest(
        id=row[0],
        account_id=row[1],
        tenant_id=row[2],
        requested_at=row[3],
        scheduled_for=row[4],
        reason=row[5],
        status=DeletionStatus(row[6]),
        cancelled_at=row[7],
        executed_at=row[8],
        ip_address=row[9],
        user_agent=row[10],
        cancelled_by_admin=bool(row[11]),
        admin_user_id=row[12],
        admin_notes=row[13],
        purge_attempts=int(row[14] or 0),
        last_purge_error=row[15],
        needs_review=bool(row[16]),
        claim_id=row[17],
        claimed_until=row[18],
    )


class PostgresDeletionRequestRepository:
    """PostgreSQL repository for account deletion requests."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # ------------------------------------------------------------
    # Internal helpers (consistent errors/logging)
    # ------------------------------------------------------------
    def _fetchall(
        self,
        query: str,
        params: Iterable[object],
        *,
        error_message: str,
        extra: dict[str, object] | None = None,
    ) -> list[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**(extra or {}), "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def _fetchone(
        self,
        query: str,
        params: Iterable[object],
        *,
        error_message: str,
        extra: dict[str, object] | None = None,
    ) -> tuple | None:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchone()
        except Exception as exc:
            logger.exception(error_message, extra={**(extra or {}), "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def _update_returning(
        self,
        query: str,
        params: Iterable[object],
        *,
        error_message: str,
        request_id: UUID,
    ) -> DeletionRequest | None:
        row = self._fetchone(
            query,
            params,
            error_message=error_message,
            extra={"deletion_request_id": str(request_id)},
        )
        return _row_to_request(row) if row else None

    # ------------------------------------------------------------
    # Creation / reads
    # ------------------------------------------------------------
    def create_pending(self, request: DeletionRequest) -> bool:
        row = self._fetchone(
            f"""
            INSERT INTO account_deletion_requests ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (account_id) WHERE status = 'pending' DO NOTHING
            RETURNING id
            """,
            (
                request.id,
                request.account_id,
                request.tenant_id,
                request.requested_at,
                request.scheduled_for,
                request.reason,
                DeletionStatus.PENDING.value,
                None,
                None,
                request.ip_address,
                request.user_agent,
                False,
                None,
                None,
                0,
                None,
                False,
                None,
                None,
            ),
            error_message="PostgresDeletionRequestRepository: Failed to create request",
            extra={"account_id": request.account_id},
        )
        return row is not None

    def get(self, request_id: UUID) -> DeletionRequest | None:
        row = self._fetchone(
            f"SELECT {_COLUMNS} FROM account_deletion_requests WHERE id = %s",
            (request_id,),
            error_message="PostgresDeletionRequestRepository: Failed to get request",
            extra={"deletion_request_id": str(request_id)},
        )
        return _row_to_request(row) if row else None

    def get_pending_for_account(self, account_id: str) -> DeletionRequest | None:
        row = self._fetchone(
            f"""
            SELECT {_COLUMNS} FROM account_deletion_requests
            WHERE account_id = %s AND status = 'pending'
            """,
            (account_id,),
            error_message="PostgresDeletionRequestRepository: Failed to get pending request",
            extra={"account_id": account_id},
        )
        return _row_to_request(row) if row else None

    def get_latest_for_account(self, account_id: str) -> DeletionRequest | None:
        row = self._fetchone(
            f"""
            SELECT {_COLUMNS} FROM account_deletion_requests
            WHERE account_id = %s
            ORDER BY requested_at DESC, id DESC
            LIMIT 1
            """,
            (account_id,),
            error_message="PostgresDeletionRequestRepository: Failed to get latest request",
            extra={"account_id": account_id},
        )
        return _row_to_request(row) if row else None

    # ------------------------------------------------------------
    # Conditional transitions
    # ------------------------------------------------------------
    def cancel(
        self,
        request_id: UUID,
        *,
        cancelled_at: datetime,
        by_admin: bool = False,
        admin_user_id: str | None = None,
        admin_notes: str | None = None,
    ) -> DeletionRequest | None:
        return self._update_returning(
            f"""
            UPDATE account_deletion_requests
            SET status = 'cancelled',
                cancelled_at = %s,
                claim_id = NULL,
                claimed_until = NULL,
                cancelled_by_admin = cancelled_by_admin OR %s,
                admin_user_id = COALESCE(%s, admin_user_id),
                admin_notes = COALESCE(%s, admin_notes),
                updated_at = now()
            WHERE id = %s
              AND status = 'pending'
              AND (claimed_until IS NULL OR claimed_until <= %s)
            RETURNING {_COLUMNS}
            """,
            (
                cancelled_at,
                by_admin,
                admin_user_id if by_admin else None,
                admin_notes if by_admin else None,
                request_id,
                cancelled_at,
            ),
            error_message="PostgresDeletionRequestRepository: Failed to cancel request",
            request_id=request_id,
        )

    def list_due(self, now: datetime, *, limit: int) -> list[DeletionRequest]:
        rows = self._fetchall(
            f"""
            SELECT {_COLUMNS} FROM account_deletion_requests
            WHERE status = 'pending'
              AND scheduled_for <= %s
              AND needs_review = false
              AND (claimed_until IS NULL OR claimed_until <= %s)
            ORDER BY scheduled_for ASC, id ASC
            LIMIT %s
            """,
            (now, now, limit),
            error_message="PostgresDeletionRequestRepository: Failed to list due requests",
        )
        return [_row_to_request(r) for r in rows]

    def claim(
        self, request_id: UUID, *, claim_id: UUID, now: datetime, until: datetime
    ) -> bool:
        row = self._fetchone(
            """
            UPDATE account_deletion_requests
            SET claim_id = %s, claimed_until = %s, updated_at = now()
            WHERE id = %s
              AND status = 'pending'
              AND scheduled_for <= %s
              AND needs_review = false
              AND (claimed_until IS NULL OR claimed_until <= %s)
            RETURNING id
            """,
            (claim_id, until, request_id, now, now),
            error_message="PostgresDeletionRequestRepository: Failed to claim request",
            extra={"deletion_request_id": str(request_id)},
        )
        return row is not None

    def mark_executed(
        self, request_id: UUID, *, claim_id: UUID, executed_at: datetime
    ) -> DeletionRequest | None:
        return self._update_returning(
            f"""
            UPDATE account_deletion_requests
            SET status = 'executed',
                executed_at = %s,
                claim_id = NULL,
                claimed_until = NULL,
                updated_at = now()
            WHERE id = %s AND status = 'pending' AND claim_id = %s
            RETURNING {_COLUMNS}
            """,
            (executed_at, request_id, claim_id),
            error_message="PostgresDeletionRequestRepository: Failed to mark executed",
            request_id=request_id,
        )

    def record_purge_failure(
        self,
        request_id: UUID,
        *,
        claim_id: UUID,
        error: str,
        max_attempts: int,
        keep_lease: bool = False,
    ) -> DeletionRequest | None:
        return self._update_returning(
            f"""
            UPDATE account_deletion_requests
            SET purge_attempts = purge_attempts + 1,
                last_purge_error = %s,
                needs_review = (purge_attempts + 1) >= %s,
                claim_id = CASE WHEN %s THEN claim_id END,
                claimed_until = CASE WHEN %s THEN claimed_until END,
                updated_at = now()
            WHERE id = %s AND status = 'pending' AND claim_id = %s
            RETURNING {_COLUMNS}
            """,
            (error, max_attempts, keep_lease, keep_lease, request_id, claim_id),
            error_message="PostgresDeletionRequestRepository: Failed to record purge failure",
            request_id=request_id,
        )

    def release_for_retry(self, request_id: UUID) -> DeletionRequest | None:
        return self._update_returning(
            f"""
            UPDATE account_deletion_requests
            SET needs_review = false,
                purge_attempts = 0,
                last_purge_error = NULL,
                updated_at = now()
            WHERE id = %s AND status = 'pending' AND needs_review = true
            RETURNING {_COLUMNS}
            """,
            (request_id,),
            error_message="PostgresDeletionRequestRepository: Failed to release request",
            request_id=request_id,
        )

    def update_admin_notes(
        self, request_id: UUID, *, notes: str | None, admin_user_id: str
    ) -> DeletionRequest | None:
        return self._update_returning(
            f"""
            UPDATE account_deletion_requests
            SET admin_notes = %s, admin_user_id = %s, updated_at = now()
            WHERE id = %s
            RETURNING {_COLUMNS}
            """,
            (notes, admin_user_id, request_id),
            error_message="PostgresDeletionRequestRepository: Failed to update notes",
            request_id=request_id,
        )

    # ------------------------------------------------------------
    # Admin reads
    # ------------------------------------------------------------
    def list_requests(
        self,
        *,
        status: DeletionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DeletionRequest]:
        if limit <= 0:
            return []
        offset = max(offset, 0)

        where = ""
        params: list[object] = []
        if status is not None:
            where = "WHERE status = %s"
            params.append(status.value)
        params.extend([limit, offset])

        rows = self._fetchall(
            f"""
            SELECT {_COLUMNS} FROM account_deletion_requests
            {where}
            ORDER BY requested_at DESC, id DESC
            LIMIT %s OFFSET %s
            """,
            params,
            error_message="PostgresDeletionRequestRepository: Failed to list requests",
        )
        return [_row_to_request(r) for r in rows]

    def count_requests(self, *, status: DeletionStatus | None = None) -> int:
        if status is None:
            row = self._fetchone(
                "SELECT COUNT(*) FROM account_deletion_requests",
                (),
                error_message="PostgresDeletionRequestRepository: Failed to count requests",
            )
        else:
            row = self._fetchone(
                "SELECT COUNT(*) FROM account_deletion_requests WHERE status = %s",
                (status.value,),
                error_message="PostgresDeletionRequestRepository: Failed to count requests",
            )
        return int(row[0]) if row else 0

    def stats(self, now: datetime) -> DeletionStats:
        row = self._fetchone(
            """
            SELECT
              COUNT(*) FILTER (WHERE status = 'pending'),
              COUNT(*) FILTER (WHERE status = 'cancelled'),
              COUNT(*) FILTER (WHERE status = 'executed'),
              COUNT(*) FILTER (WHERE status = 'pending' AND needs_review),
              COUNT(*) FILTER (WHERE requested_at >= %s),
              COUNT(*) FILTER (WHERE requested_at >= %s),
              COUNT(*) FILTER (
                WHERE status = 'pending' AND scheduled_for BETWEEN %s AND %s
              )
            FROM account_deletion_requests
            """,
            (
                now - timedelta(days=7),
                now - timedelta(days=30),
                now,
                now + timedelta(days=7),
            ),
            error_message="PostgresDeletionRequestRepository: Failed to compute stats",
        )
        reasons = self._fetchall(
            """
            SELECT reason, COUNT(*) AS n
            FROM account_deletion_requests
            WHERE reason IS NOT NULL AND reason <> ''
            GROUP BY reason
            ORDER BY n DESC, reason ASC
            LIMIT %s
            """,
            (_TOP_REASONS_LIMIT,),
            error_message="PostgresDeletionRequestRepository: Failed to compute top reasons",
        )

        counts = [int(v or 0) for v in (row or (0,) * 7)]
        return DeletionStats(
            pending_count=counts[0],
            cancelled_count=counts[1],
            executed_count=counts[2],
            needs_review_count=counts[3],
            last_7_days=counts[4],
            last_30_days=counts[5],
            expiring_in_7_days=counts[6],
            top_reasons=[ReasonCount(reason=r[0], count=int(r[1])) for r in reasons],
        )

    def ping(self) -> bool:
        row = self._fetchone(
            "SELECT 1", (), error_message="PostgresDeletionRequestRepository: ping failed"
        )
        return row is not None
