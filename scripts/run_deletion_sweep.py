"""
Name: One-shot Deletion Sweep

Responsibilities:
  - Execute every due account deletion request once and exit (cron friendly)
  - Optionally enqueue the sweep on RQ instead of running it here
  - Print the sweep report as JSON; exit 1 when any request was flagged
"""

from __future__ import annotations

import argparse
import json
import os
import sys

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from account_lifecycle.container import (  # noqa: E402
    get_grace_period_scheduler,
    get_sweep_queue,
    shutdown_container,
)
from account_lifecycle.crosscutting.config import get_settings  # noqa: E402
from account_lifecycle.infrastructure.db.pool import close_pool, init_pool  # noqa: E402


def _parse_args() -> argparse.Namespace:
    argv = sys.argv[1:]
    if argv and argv[0] == "--":
        argv = argv[1:]
    parser = argparse.ArgumentParser(
        description="Run one account deletion sweep (idempotent)."
    )
    parser.add_argument(
        "--enqueue",
        action="store_true",
        help="Enqueue the sweep on RQ (requires REDIS_URL) instead of running it",
    )
    return parser.parse_args(argv)


def main() -> None:
    args = _parse_args()
    settings = get_settings()

    if args.enqueue:
        queue = get_sweep_queue()
        if queue is None:
            raise SystemExit("REDIS_URL is required to enqueue a sweep.")
        print(json.dumps({"mode": "queued", "job_id": queue.enqueue_sweep()}))
        return

    if settings.uses_postgres():
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    try:
        report = get_grace_period_scheduler().run_sweep()
    finally:
        shutdown_container()
        if settings.uses_postgres():
            close_pool()

    print(json.dumps({"mode": "inline", **report.to_dict()}))
    if report.flagged:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
