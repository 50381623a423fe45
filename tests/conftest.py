"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (no .env, APP_ENV=test)
  - Provide fakes: frozen clock, scripted purger, seeded account directory
  - Wire the deletion lifecycle on in-memory adapters

Notes:
  - Fixtures are function scoped for isolation
  - Audit writes go through DirectAuditSink so assertions see them at once
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from account_lifecycle.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

os.environ.setdefault("APP_ENV", "test")

from account_lifecycle.application import GracePeriodScheduler  # noqa: E402
from account_lifecycle.application.usecases.deletion import (  # noqa: E402
    DeletionAdminService,
    DeletionRequestManager,
)
from account_lifecycle.audit import AuditLogRecorder  # noqa: E402
from account_lifecycle.domain.entities import Account  # noqa: E402
from account_lifecycle.domain.errors import PurgeError  # noqa: E402
from account_lifecycle.infrastructure.repositories import (  # noqa: E402
    InMemoryAuditLogRepository,
    InMemoryDeletionRequestRepository,
)
from account_lifecycle.infrastructure.services import (  # noqa: E402
    DirectAuditSink,
    InMemoryAccountDirectory,
)


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


# ============================================================================
# Fakes
# ============================================================================


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class ScriptedPurger:
    """
    Purger whose outcomes are scripted per call.

    Each script item is None (success) or an exception to raise. When the
    script runs out, calls succeed.
    """

    def __init__(self, script: list | None = None):
        self.script = list(script or [])
        self.calls: list[str] = []
        self.on_call: Callable[[str], None] | None = None

    def purge_account_data(self, account_id: str) -> None:
        self.calls.append(account_id)
        if self.on_call is not None:
            self.on_call(account_id)
        if self.script:
            outcome = self.script.pop(0)
            if outcome is not None:
                raise outcome


# ============================================================================
# Fixtures
# ============================================================================

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def request_repo() -> InMemoryDeletionRequestRepository:
    return InMemoryDeletionRequestRepository()


@pytest.fixture
def audit_repo() -> InMemoryAuditLogRepository:
    return InMemoryAuditLogRepository()


@pytest.fixture
def recorder(audit_repo, clock) -> AuditLogRecorder:
    sink = DirectAuditSink(audit_repo, max_attempts=1, base_delay=0)
    return AuditLogRecorder(sink, clock)


@pytest.fixture
def accounts() -> InMemoryAccountDirectory:
    return InMemoryAccountDirectory(
        [
            Account(id="acct-1", tenant_id="tenant-a", email="one@example.com"),
            Account(id="acct-2", tenant_id="tenant-a", email="two@example.com"),
            Account(id="acct-3", tenant_id=None, email="three@example.com"),
        ]
    )


@pytest.fixture
def manager(request_repo, accounts, recorder, clock) -> DeletionRequestManager:
    return DeletionRequestManager(
        repository=request_repo,
        accounts=accounts,
        recorder=recorder,
        clock=clock,
        grace_period_days=30,
    )


@pytest.fixture
def admin_service(request_repo, recorder, clock) -> DeletionAdminService:
    return DeletionAdminService(request_repo, recorder, clock)


@pytest.fixture
def purger() -> ScriptedPurger:
    return ScriptedPurger()


@pytest.fixture
def scheduler(request_repo, purger, recorder, clock) -> GracePeriodScheduler:
    return GracePeriodScheduler(
        repository=request_repo,
        purger=purger,
        recorder=recorder,
        clock=clock,
        max_attempts=3,
        batch_size=100,
        claim_ttl_seconds=300,
    )


@pytest.fixture
def purge_failure() -> Callable[[str], PurgeError]:
    return lambda msg="downstream unavailable": PurgeError(msg)
