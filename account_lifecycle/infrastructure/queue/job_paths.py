"""
===============================================================================
CRC CARD — infrastructure/queue/job_paths.py
===============================================================================

Responsibilities:
    - Single place for queue names and importable job paths.

Notes:
    - Paths must be importable by the RQ worker; RQSweepQueue validates
      them at construction.
===============================================================================
"""

from __future__ import annotations

DELETIONS_QUEUE_NAME: str = "deletions"

RUN_DELETION_SWEEP_JOB_PATH: str = "account_lifecycle.worker.jobs.run_deletion_sweep_job"
