"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Initialize the FastAPI application (title, version, lifespan)
  - Configure middleware (request context)
  - Mount the deletion + admin router under /v1
  - Expose health check and metrics endpoints

Collaborators:
  - FastAPI: ASGI web framework
  - RequestContextMiddleware: request id, logging context, HTTP metrics
  - interfaces.api.http.router: self-service and admin endpoints
  - container: repositories / audit sink lifecycle

Notes:
  - /v1 prefix allows API versioning
  - /healthz follows the Kubernetes health check convention
  - /metrics exposes Prometheus metrics (optionally behind an API key)
  - The DB pool is only opened with STORE_BACKEND=postgres
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response

from ..container import get_deletion_request_repository, shutdown_container
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import RequestContextMiddleware
from ..crosscutting.tracing import init_tracing
from ..identity.auth import is_auth_enabled, require_metrics_auth
from ..infrastructure.db.pool import close_pool, init_pool
from ..interfaces.api.http.router import router
from .exception_handlers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: pool, tracing, audit sink flush."""
    settings = get_settings()

    if settings.uses_postgres():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    init_tracing(settings.otel_enabled)

    try:
        logger.info(
            "Account lifecycle API starting up",
            extra={
                "store_backend": settings.store_backend,
                "grace_period_days": settings.deletion_grace_period_days,
                "audit_async_writes": settings.audit_async_writes,
                "otel_enabled": settings.otel_enabled,
                "auth_enabled": is_auth_enabled(),
            },
        )
        yield
    finally:
        shutdown_container()
        if settings.uses_postgres():
            close_pool()
        logger.info("Account lifecycle API shutting down")


app = FastAPI(
    title="Account Lifecycle API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "account",
            "description": "Self-service account deletion (X-Account-Id)",
        },
        {
            "name": "admin",
            "description": "Deletion administration and audit (requires 'admin' scope)",
        },
    ],
)

app.add_middleware(RequestContextMiddleware)

app.include_router(router, prefix="/v1")

register_exception_handlers(app)


@app.get("/healthz")
def healthz(request: Request):
    """
    Liveness + storage check.

    Returns:
        ok: True if the request store answers
        db: "connected" or "disconnected"
        request_id: correlation id for this request
    """
    db_status = "disconnected"
    try:
        if get_deletion_request_repository().ping():
            db_status = "connected"
    except Exception as e:
        logger.warning("Health check: storage unavailable", extra={"error": str(e)})

    return {
        "ok": db_status == "connected",
        "db": db_status,
        "store_backend": get_settings().store_backend,
        "request_id": getattr(request.state, "request_id", None),
    }


@app.get("/metrics")
def metrics(_auth: None = Depends(require_metrics_auth())):
    """Prometheus text format metrics."""
    from ..crosscutting.metrics import get_metrics_response

    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)
