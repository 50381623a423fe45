"""
===============================================================================
CRC CARD — worker/worker.py (RQ worker process)
===============================================================================

Responsibilities:
  - Run an RQ worker consuming the deletions queue.
  - Initialize process resources (Redis, DB pool, tracing).
  - Serve /healthz /readyz /metrics for orchestrators.
  - Release resources on shutdown.

Collaborators:
  - crosscutting.config.get_settings
  - infrastructure.db.pool.init_pool / close_pool
  - redis.Redis + rq.Worker
  - worker_server.start_worker_http_server
  - container.shutdown_container (flush buffered audit writes)
===============================================================================
"""

from __future__ import annotations

from redis import Redis
from rq import Queue, Worker

from ..container import shutdown_container
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.tracing import init_tracing
from ..infrastructure.db.pool import close_pool, init_pool
from .worker_server import start_worker_http_server


def _build_redis_connection(redis_url: str) -> Redis:
    return Redis.from_url(
        redis_url,
        socket_connect_timeout=2,
        socket_timeout=5,
        health_check_interval=30,
    )


def main() -> None:
    settings = get_settings()

    redis_url = settings.redis_url.strip()
    if not redis_url:
        raise SystemExit("REDIS_URL is required to run the worker.")

    redis_conn = _build_redis_connection(redis_url)
    try:
        redis_conn.ping()
    except Exception as exc:
        logger.error("Redis unavailable for worker", extra={"error": str(exc)})
        raise SystemExit("Redis unavailable.")

    if settings.uses_postgres():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    init_tracing(settings.otel_enabled)

    server = None
    try:
        server = start_worker_http_server(settings.worker_http_port)

        logger.info(
            "Worker starting",
            extra={
                "queue": settings.deletion_queue_name,
                "http_port": settings.worker_http_port,
                "store_backend": settings.store_backend,
            },
        )

        queue = Queue(name=settings.deletion_queue_name, connection=redis_conn)
        worker = Worker([queue], connection=redis_conn)
        worker.work(with_scheduler=False)

    except KeyboardInterrupt:
        logger.info("Worker stopped by signal (KeyboardInterrupt)")
    finally:
        if server is not None:
            server.shutdown()
            server.server_close()

        shutdown_container()
        if settings.uses_postgres():
            close_pool()
        logger.info("Worker shut down")


if __name__ == "__main__":
    main()
