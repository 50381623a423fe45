"""
===============================================================================
CRC CARD — worker/worker_server.py (lightweight worker HTTP)
===============================================================================

Responsibilities:
  - Operational endpoints for worker processes:
      * GET /healthz  (liveness)
      * GET /readyz   (readiness: Redis + DB)
      * GET /metrics  (Prometheus; optionally behind an API key)
  - Never log API keys.

Notes:
  - http.server keeps the worker free of an ASGI stack.
  - Failing to bind the port is logged; the worker keeps running.

Collaborators:
  - worker_health.health_payload / readiness_payload
  - crosscutting.metrics.get_metrics_response
  - identity.auth.APIKeyValidator / get_keys_config
===============================================================================
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlparse

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..identity.auth import METRICS_SCOPE, APIKeyValidator, get_keys_config
from .worker_health import health_payload, readiness_payload


def metrics_authorized(api_key: str | None) -> tuple[bool, int]:
    """Return (allowed, http_status) for a /metrics request."""
    if not get_settings().metrics_require_auth:
        return True, 200

    api_key = (api_key or "").strip()
    if not api_key:
        return False, 401

    keys_config = get_keys_config()
    if not keys_config:
        return False, 403

    validator = APIKeyValidator(keys_config)
    if validator.validate_key(api_key) and validator.validate_scope(
        api_key, METRICS_SCOPE
    ):
        return True, 200
    return False, 403


class _WorkerHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        path = urlparse(self.path).path

        if path == "/healthz":
            self._write_json(200, health_payload())
            return

        if path == "/readyz":
            payload = readiness_payload()
            status = 200 if payload.get("ok") else 503
            self._write_json(status, payload)
            return

        if path == "/metrics":
            allowed, status = metrics_authorized(self.headers.get("X-API-Key"))
            if not allowed:
                self._write_json(status, {"detail": "Metrics access denied"})
                return

            body, content_type = get_metrics_response()
            self.send_response(200)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return

        self.send_response(404)
        self.end_headers()

    def log_message(self, format: str, *args) -> None:
        logger.debug(
            "Worker HTTP request",
            extra={
                "client": self.client_address[0] if self.client_address else None,
                "path": getattr(self, "path", None),
            },
        )

    def _write_json(self, status: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def start_worker_http_server(port: int) -> ThreadingHTTPServer | None:
    """Serve on a daemon thread. Returns None when the port cannot be bound."""
    try:
        server = ThreadingHTTPServer(("0.0.0.0", port), _WorkerHandler)
    except OSError as exc:
        logger.warning("Worker HTTP server failed to start", extra={"error": str(exc)})
        return None

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info("Worker HTTP server started", extra={"port": port})
    return server


__all__ = ["metrics_authorized", "start_worker_http_server"]
