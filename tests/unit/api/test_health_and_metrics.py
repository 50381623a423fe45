"""
Name: Health and Metrics Endpoint Tests

Responsibilities:
  - Validate /healthz reports storage status
  - Validate /metrics exposure and its optional API key guard
"""

import pytest

from account_lifecycle.crosscutting.config import get_settings
from account_lifecycle.identity.auth import clear_keys_cache

pytestmark = pytest.mark.unit


def test_healthz_memory_backend(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["db"] == "connected"
    assert body["store_backend"] == "memory"
    assert body["request_id"]


def test_metrics_public_by_default(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "deletion" in response.text


def test_metrics_requires_key_when_enabled(client, monkeypatch):
    monkeypatch.setenv("METRICS_REQUIRE_AUTH", "1")
    monkeypatch.setenv("API_KEYS_CONFIG", '{"metrics-key": ["metrics"]}')
    get_settings.cache_clear()
    clear_keys_cache()

    assert client.get("/metrics").status_code == 401
    assert (
        client.get("/metrics", headers={"X-API-Key": "metrics-key"}).status_code
        == 200
    )
