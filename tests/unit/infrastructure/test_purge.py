"""
Name: Purge Executor Tests

Responsibilities:
  - Validate the purge deadline (TimeoutPurgeExecutor)
  - Validate error normalization to PurgeError
  - Validate the Postgres purger runs every statement in one transaction
"""

import threading
from unittest.mock import MagicMock

import pytest

from account_lifecycle.domain.errors import PurgeError
from account_lifecycle.infrastructure.services import (
    PostgresAccountPurger,
    RecordingPurger,
    TimeoutPurgeExecutor,
)

pytestmark = pytest.mark.unit


class _SlowPurger:
    def __init__(self):
        self.release = threading.Event()

    def purge_account_data(self, account_id: str) -> None:
        self.release.wait(5)


class _FailingPurger:
    def purge_account_data(self, account_id: str) -> None:
        raise OSError("disk unavailable")


def test_recording_purger_is_idempotent():
    purger = RecordingPurger()

    purger.purge_account_data("acct-1")
    purger.purge_account_data("acct-1")

    assert purger.purged == ["acct-1"]


def test_timeout_executor_passes_through_success():
    inner = RecordingPurger()
    executor = TimeoutPurgeExecutor(inner, timeout_seconds=5)
    try:
        executor.purge_account_data("acct-1")
    finally:
        executor.shutdown()

    assert inner.purged == ["acct-1"]


def test_timeout_executor_raises_purge_error_on_deadline():
    inner = _SlowPurger()
    executor = TimeoutPurgeExecutor(inner, timeout_seconds=0.05)
    try:
        with pytest.raises(PurgeError, match="timed out") as exc_info:
            executor.purge_account_data("acct-1")
    finally:
        inner.release.set()
        executor.shutdown()

    assert isinstance(exc_info.value.original_error, TimeoutError)


def test_timeout_executor_wraps_inner_errors():
    executor = TimeoutPurgeExecutor(_FailingPurger(), timeout_seconds=5)
    try:
        with pytest.raises(PurgeError) as exc_info:
            executor.purge_account_data("acct-1")
    finally:
        executor.shutdown()

    assert isinstance(exc_info.value.original_error, OSError)


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        TimeoutPurgeExecutor(RecordingPurger(), timeout_seconds=0)


def test_postgres_purger_runs_statements_in_transaction():
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value

    purger = PostgresAccountPurger(pool, statements=["DELETE A %s", "DELETE B %s"])
    purger.purge_account_data("acct-1")

    conn.transaction.assert_called_once()
    assert [c.args for c in conn.execute.call_args_list] == [
        ("DELETE A %s", ("acct-1",)),
        ("DELETE B %s", ("acct-1",)),
    ]


def test_postgres_purger_wraps_driver_errors():
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value
    conn.execute.side_effect = RuntimeError("relation does not exist")

    purger = PostgresAccountPurger(pool, statements=["DELETE A %s"])

    with pytest.raises(PurgeError):
        purger.purge_account_data("acct-1")
