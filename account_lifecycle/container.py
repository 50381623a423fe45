"""
===============================================================================
CRC CARD — account_lifecycle/container.py (Composition Root / manual DI)
===============================================================================

Responsibilities:
  - Build repositories, services and adapters from Settings.
  - Expose factories for FastAPI (Depends), the worker and scripts.
  - Keep heavy resources as lru_cache singletons.

Collaborators:
  - crosscutting.config.get_settings
  - domain.repositories / domain.services (ports)
  - infrastructure.* (implementations)
  - application.* (use cases, scheduler)

Runtime decisions:
  - STORE_BACKEND=postgres -> Postgres repositories, directory and purger;
    otherwise in-memory adapters (nothing survives a restart).
  - AUDIT_ASYNC_WRITES -> BufferedAuditSink, except in test environments where
    writes stay synchronous so assertions see them immediately.
  - REDIS_URL set -> RQ sweep queue; otherwise sweeps run inline.

Notes:
  - No business logic here and no FastAPI import.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from redis import Redis

from .application import GracePeriodScheduler
from .application.usecases.deletion import DeletionAdminService, DeletionRequestManager
from .audit import AuditLogRecorder
from .crosscutting.config import get_settings
from .crosscutting.logger import logger
from .domain.repositories import AuditLogRepository, DeletionRequestRepository
from .domain.services import AccountDirectory, Clock, DeletionSweepQueue, PurgeExecutor
from .infrastructure.queue import RQQueueConfig, RQSweepQueue
from .infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryDeletionRequestRepository,
    PostgresAuditLogRepository,
    PostgresDeletionRequestRepository,
)
from .infrastructure.services import (
    AuditSink,
    BufferedAuditSink,
    DirectAuditSink,
    InMemoryAccountDirectory,
    PostgresAccountDirectory,
    PostgresAccountPurger,
    RecordingPurger,
    SystemClock,
    TimeoutPurgeExecutor,
)


def _is_test_env() -> bool:
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


# =============================================================================
# Repositories (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_deletion_request_repository() -> DeletionRequestRepository:
    if get_settings().uses_postgres():
        return PostgresDeletionRequestRepository()
    return InMemoryDeletionRequestRepository()


@lru_cache(maxsize=1)
def get_audit_log_repository() -> AuditLogRepository:
    if get_settings().uses_postgres():
        return PostgresAuditLogRepository()
    return InMemoryAuditLogRepository()


# =============================================================================
# Services (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_account_directory() -> AccountDirectory:
    """Postgres lookup, or an in-memory directory that accepts any id."""
    if get_settings().uses_postgres():
        return PostgresAccountDirectory()
    return InMemoryAccountDirectory(accept_unknown=True)


@lru_cache(maxsize=1)
def get_purge_executor() -> PurgeExecutor:
    """Purger wrapped with the configured deadline."""
    settings = get_settings()
    inner: PurgeExecutor = (
        PostgresAccountPurger() if settings.uses_postgres() else RecordingPurger()
    )
    return TimeoutPurgeExecutor(inner, timeout_seconds=settings.purge_timeout_seconds)


@lru_cache(maxsize=1)
def get_audit_sink() -> AuditSink:
    settings = get_settings()
    repository = get_audit_log_repository()
    if settings.audit_async_writes and not _is_test_env():
        return BufferedAuditSink(
            repository,
            max_size=settings.audit_buffer_size,
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
        )
    return DirectAuditSink(
        repository,
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_audit_recorder() -> AuditLogRecorder:
    return AuditLogRecorder(get_audit_sink(), get_clock())


@lru_cache(maxsize=1)
def get_redis_connection() -> Redis | None:
    settings = get_settings()
    if not settings.redis_url.strip():
        return None
    return Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=2,
        socket_timeout=5,
        health_check_interval=30,
    )


@lru_cache(maxsize=1)
def get_sweep_queue() -> DeletionSweepQueue | None:
    """RQ sweep queue when REDIS_URL is configured, else None (inline sweeps)."""
    redis_conn = get_redis_connection()
    if redis_conn is None:
        return None
    config = RQQueueConfig(queue_name=get_settings().deletion_queue_name)
    return RQSweepQueue(redis=redis_conn, config=config)


# =============================================================================
# Use cases (built per call; collaborators are singletons)
# =============================================================================


def get_deletion_manager() -> DeletionRequestManager:
    settings = get_settings()
    return DeletionRequestManager(
        repository=get_deletion_request_repository(),
        accounts=get_account_directory(),
        recorder=get_audit_recorder(),
        clock=get_clock(),
        grace_period_days=settings.deletion_grace_period_days,
        reason_max_chars=settings.deletion_reason_max_chars,
    )


def get_deletion_admin_service() -> DeletionAdminService:
    return DeletionAdminService(
        repository=get_deletion_request_repository(),
        recorder=get_audit_recorder(),
        clock=get_clock(),
    )


def get_grace_period_scheduler() -> GracePeriodScheduler:
    settings = get_settings()
    return GracePeriodScheduler(
        repository=get_deletion_request_repository(),
        purger=get_purge_executor(),
        recorder=get_audit_recorder(),
        clock=get_clock(),
        max_attempts=settings.purge_max_attempts,
        batch_size=settings.deletion_sweep_batch_size,
        claim_ttl_seconds=settings.deletion_claim_ttl_seconds,
    )


# =============================================================================
# Lifecycle
# =============================================================================


def shutdown_container() -> None:
    """Flush audit writes, stop purge threads and drop cached singletons."""
    if get_audit_sink.cache_info().currsize:
        sink = get_audit_sink()
        close = getattr(sink, "close", None)
        if close is not None:
            close()
    if get_purge_executor.cache_info().currsize:
        executor = get_purge_executor()
        shutdown = getattr(executor, "shutdown", None)
        if shutdown is not None:
            shutdown()

    for factory in (
        get_deletion_request_repository,
        get_audit_log_repository,
        get_clock,
        get_account_directory,
        get_purge_executor,
        get_audit_sink,
        get_audit_recorder,
        get_redis_connection,
        get_sweep_queue,
    ):
        factory.cache_clear()
    logger.debug("Container reset")
