"""
===============================================================================
CRC CARD — worker/worker_health.py (worker health & readiness)
===============================================================================

Responsibilities:
  - Check Redis and Postgres connectivity for worker readiness.
  - Payloads for /readyz and /healthz.
  - CLI healthcheck for containers (exit code 0/1).

Notes:
  - Checks never raise; they report state.
  - Postgres is only checked when STORE_BACKEND=postgres.

Collaborators:
  - crosscutting.config.get_settings
  - redis.Redis
  - psycopg (direct connection for a quick check)
===============================================================================
"""

from __future__ import annotations

import json
import time
from typing import Any

import psycopg
from redis import Redis

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger

_START_TIME = time.time()


def _check_db(database_url: str) -> bool:
    if not database_url:
        return False
    try:
        with psycopg.connect(database_url, connect_timeout=2) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
        return True
    except Exception as exc:
        logger.warning("Worker readiness: DB unavailable", extra={"error": str(exc)})
        return False


def _check_redis(redis_url: str) -> bool:
    if not redis_url:
        return False
    try:
        redis = Redis.from_url(
            redis_url,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        return bool(redis.ping())
    except Exception as exc:
        logger.warning(
            "Worker readiness: Redis unavailable", extra={"error": str(exc)}
        )
        return False


def readiness_payload() -> dict[str, Any]:
    settings = get_settings()
    redis_ok = _check_redis(settings.redis_url or "")
    payload: dict[str, Any] = {
        "redis": "connected" if redis_ok else "disconnected",
    }

    ok = redis_ok
    if settings.uses_postgres():
        db_ok = _check_db(settings.database_url)
        payload["db"] = "connected" if db_ok else "disconnected"
        ok = ok and db_ok
    else:
        payload["db"] = "memory"

    payload["ok"] = bool(ok)
    return payload


def health_payload() -> dict[str, Any]:
    """Liveness only; dependencies are not checked."""
    return {
        "ok": True,
        "uptime_seconds": int(time.time() - _START_TIME),
    }


def main() -> None:
    payload = readiness_payload()
    print(json.dumps(payload))
    raise SystemExit(0 if payload.get("ok") else 1)


if __name__ == "__main__":
    main()
