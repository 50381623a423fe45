"""
===============================================================================
CRC CARD — worker/jobs.py (RQ jobs)
===============================================================================

Responsibilities:
  - RQ entry point for one deletion sweep.
  - Build the scheduler from the container (no infrastructure knowledge here).
  - Logs / metrics / tracing with job context; context cleared on exit.

Collaborators:
  - application.GracePeriodScheduler
  - container.get_grace_period_scheduler
  - crosscutting.metrics.record_worker_job
  - crosscutting.tracing.span
  - context (request_id_var, http_method_var, http_path_var, clear_context)
===============================================================================
"""

from __future__ import annotations

import time
from uuid import uuid4

from rq import get_current_job

from ..container import get_grace_period_scheduler
from ..context import clear_context, http_method_var, http_path_var, request_id_var
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_worker_job
from ..crosscutting.tracing import span


def run_deletion_sweep_job() -> dict:
    """
    RQ job: run one sweep and return the report as a dict (stored as the job
    result). Exceptions propagate so RQ applies its retry policy.
    """
    job = get_current_job()
    job_id = getattr(job, "id", None)

    request_id_var.set(job_id or str(uuid4()))
    http_method_var.set("WORKER")
    http_path_var.set("rq.run_deletion_sweep_job")

    start = time.perf_counter()
    status = "failed"
    report_dict: dict = {}

    try:
        logger.info("Deletion sweep job started", extra={"job_id": job_id})
        scheduler = get_grace_period_scheduler()

        with span("worker.deletion_sweep", {"job_id": job_id or ""}):
            report = scheduler.run_sweep()

        report_dict = report.to_dict()
        status = "success"
        return report_dict

    except Exception as exc:
        logger.exception(
            "Deletion sweep job failed",
            extra={"job_id": job_id, "error": str(exc)},
        )
        raise

    finally:
        record_worker_job(status)
        logger.info(
            "Deletion sweep job finished",
            extra={
                "job_id": job_id,
                "status": status,
                "duration_seconds": round(time.perf_counter() - start, 3),
                **report_dict,
            },
        )
        clear_context()


__all__ = ["run_deletion_sweep_job"]
