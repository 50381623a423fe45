"""
===============================================================================
FILE: crosscutting/metrics.py
===============================================================================

CRC CARD (Module)
-------------------------------------------------------------------------------
Name:
    Metrics (Prometheus)

Responsibilities:
    - Define the Prometheus metrics of the service on a dedicated registry.
    - Small, stable record_* helpers so callers never touch metric objects.
    - Keep cardinality low (no account ids, no request ids).
    - Build the /metrics response.

Collaborators:
    - crosscutting.middleware: HTTP latency and counts.
    - application.usecases.deletion: created/cancelled counters.
    - application.grace_period_scheduler: purge outcomes, review flags, sweep time.
    - audit / infrastructure.services.audit_sink: audit write outcomes, drops.
    - worker/jobs: sweep job outcomes.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# ------------------------
# HTTP
# ------------------------
_requests_total = Counter(
    "account_lifecycle_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "account_lifecycle_request_latency_seconds",
    "HTTP request latency (seconds)",
    ["endpoint", "method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=_registry,
)

# ------------------------
# Deletion lifecycle
# ------------------------
_deletion_requests_created_total = Counter(
    "deletion_requests_created_total",
    "Deletion requests created",
    registry=_registry,
)

_deletion_requests_cancelled_total = Counter(
    "deletion_requests_cancelled_total",
    "Deletion requests cancelled",
    ["by"],
    registry=_registry,
)

_deletion_purge_total = Counter(
    "deletion_purge_total",
    "Purge attempts by outcome",
    ["outcome"],
    registry=_registry,
)

_deletion_review_flagged_total = Counter(
    "deletion_review_flagged_total",
    "Deletion requests flagged for manual review after exhausting retries",
    registry=_registry,
)

_deletion_sweep_duration = Histogram(
    "deletion_sweep_duration_seconds",
    "Duration of one grace-period sweep (seconds)",
    buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0),
    registry=_registry,
)

_worker_jobs_total = Counter(
    "deletion_worker_jobs_total",
    "Sweep jobs executed by the worker",
    ["status"],
    registry=_registry,
)

# ------------------------
# Audit
# ------------------------
_audit_writes_total = Counter(
    "audit_writes_total",
    "Audit log writes by outcome",
    ["outcome"],
    registry=_registry,
)

_audit_buffer_dropped_total = Counter(
    "audit_buffer_dropped_total",
    "Audit entries dropped because the write buffer was full",
    registry=_registry,
)


def record_request_metrics(
    *, endpoint: str, method: str, status_code: int, latency_seconds: float
) -> None:
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized, method=method, status=_status_bucket(status_code)
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_deletion_requested() -> None:
    _deletion_requests_created_total.inc()


def record_deletion_cancelled(by: str) -> None:
    """by: "user" or "admin"."""
    _deletion_requests_cancelled_total.labels(by=by).inc()


def record_purge_outcome(outcome: str) -> None:
    """outcome: "executed", "failed" or "timeout"."""
    _deletion_purge_total.labels(outcome=outcome).inc()


def record_review_flagged(count: int = 1) -> None:
    _deletion_review_flagged_total.inc(count)


def observe_sweep_duration(seconds: float) -> None:
    _deletion_sweep_duration.observe(seconds)


def record_worker_job(status: str) -> None:
    _worker_jobs_total.labels(status=status).inc()


def record_audit_write(outcome: str) -> None:
    """outcome: "written", "failed" or "rejected"."""
    _audit_writes_total.labels(outcome=outcome).inc()


def record_audit_dropped(count: int = 1) -> None:
    _audit_buffer_dropped_total.inc(count)


# -----------------------------------------------------------------------------
# Internal helpers
# -----------------------------------------------------------------------------


def _normalize_endpoint(path: str) -> str:
    """Replace UUIDs and numeric ids with `{id}` to bound cardinality."""
    path = re.sub(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "{id}",
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r"/\d+", "/{id}", path)
    return path


def _status_bucket(code: int) -> str:
    if 200 <= code < 300:
        return "2xx"
    if 400 <= code < 500:
        return "4xx"
    if 500 <= code < 600:
        return "5xx"
    return "other"


def get_metrics_response() -> tuple[bytes, str]:
    """Body and content-type for /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
