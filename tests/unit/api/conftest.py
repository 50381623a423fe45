"""
Name: API Test Fixtures

Responsibilities:
  - Build a TestClient over the real FastAPI app
  - Override container factories with in-memory collaborators bound to the
    shared fakes (frozen clock, scripted purger)
  - Reset cached settings and API key config between tests
"""

import pytest
from fastapi.testclient import TestClient

from account_lifecycle.api.main import app
from account_lifecycle.container import (
    get_audit_log_repository,
    get_clock,
    get_deletion_admin_service,
    get_deletion_manager,
    get_grace_period_scheduler,
    get_sweep_queue,
)
from account_lifecycle.crosscutting.config import get_settings
from account_lifecycle.identity.auth import clear_keys_cache


@pytest.fixture
def reset_auth(monkeypatch):
    monkeypatch.delenv("API_KEYS_CONFIG", raising=False)
    monkeypatch.delenv("METRICS_REQUIRE_AUTH", raising=False)
    get_settings.cache_clear()
    clear_keys_cache()
    yield
    get_settings.cache_clear()
    clear_keys_cache()


@pytest.fixture
def sweep_queue():
    """None means no Redis configured."""
    return {"queue": None}


@pytest.fixture
def client(
    reset_auth, manager, admin_service, scheduler, clock, audit_repo, sweep_queue
):
    app.dependency_overrides[get_deletion_manager] = lambda: manager
    app.dependency_overrides[get_deletion_admin_service] = lambda: admin_service
    app.dependency_overrides[get_grace_period_scheduler] = lambda: scheduler
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_audit_log_repository] = lambda: audit_repo
    app.dependency_overrides[get_sweep_queue] = lambda: sweep_queue["queue"]
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
