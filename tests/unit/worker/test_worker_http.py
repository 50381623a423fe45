"""
Name: Worker HTTP Endpoint Tests

Responsibilities:
  - Validate /metrics authorization decisions
  - Validate readiness payloads per backend
"""

from unittest.mock import patch

import pytest

from account_lifecycle.crosscutting.config import get_settings
from account_lifecycle.identity.auth import clear_keys_cache
from account_lifecycle.worker.worker_health import health_payload, readiness_payload
from account_lifecycle.worker.worker_server import metrics_authorized

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    clear_keys_cache()
    yield
    get_settings.cache_clear()
    clear_keys_cache()


def _configure(monkeypatch, *, require_auth: bool, keys: str = ""):
    monkeypatch.setenv("METRICS_REQUIRE_AUTH", "1" if require_auth else "0")
    monkeypatch.setenv("API_KEYS_CONFIG", keys)
    get_settings.cache_clear()
    clear_keys_cache()


def test_metrics_open_when_auth_disabled(monkeypatch):
    _configure(monkeypatch, require_auth=False)

    assert metrics_authorized(None) == (True, 200)


def test_metrics_missing_key(monkeypatch):
    _configure(monkeypatch, require_auth=True, keys='{"m": ["metrics"]}')

    assert metrics_authorized("  ") == (False, 401)


def test_metrics_key_scope(monkeypatch):
    _configure(
        monkeypatch, require_auth=True, keys='{"m": ["metrics"], "a": ["admin"]}'
    )

    assert metrics_authorized("m") == (True, 200)
    assert metrics_authorized("a") == (False, 403)
    assert metrics_authorized("zzz") == (False, 403)


def test_metrics_required_but_no_keys(monkeypatch):
    _configure(monkeypatch, require_auth=True)

    assert metrics_authorized("m") == (False, 403)


def test_health_payload():
    payload = health_payload()

    assert payload["ok"] is True
    assert payload["uptime_seconds"] >= 0


def test_readiness_memory_backend(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    get_settings.cache_clear()

    with patch(
        "account_lifecycle.worker.worker_health._check_redis", return_value=True
    ):
        payload = readiness_payload()

    assert payload == {"redis": "connected", "db": "memory", "ok": True}


def test_readiness_postgres_down(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "postgres")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/accounts")
    get_settings.cache_clear()

    with patch(
        "account_lifecycle.worker.worker_health._check_redis", return_value=True
    ):
        with patch(
            "account_lifecycle.worker.worker_health._check_db", return_value=False
        ):
            payload = readiness_payload()

    assert payload["db"] == "disconnected"
    assert payload["ok"] is False
