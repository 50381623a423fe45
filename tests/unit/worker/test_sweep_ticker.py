"""
Name: Sweep Ticker Tests

Responsibilities:
  - Validate enqueue vs inline decisions per tick
  - Validate the ticker loop stops on its event
"""

from threading import Event
from unittest.mock import MagicMock

import pytest

from account_lifecycle.infrastructure.queue import QueueEnqueueError
from account_lifecycle.worker.scheduler import run_ticker, tick

pytestmark = pytest.mark.unit


def test_tick_enqueues_when_queue_available():
    queue = MagicMock()
    scheduler = MagicMock()

    assert tick(queue, scheduler) == "queued"
    queue.enqueue_sweep.assert_called_once()
    scheduler.run_sweep.assert_not_called()


def test_tick_runs_inline_without_queue():
    scheduler = MagicMock()

    assert tick(None, scheduler) == "inline"
    scheduler.run_sweep.assert_called_once()


def test_tick_falls_back_inline_when_enqueue_fails():
    queue = MagicMock()
    queue.enqueue_sweep.side_effect = QueueEnqueueError("redis down")
    scheduler = MagicMock()

    assert tick(queue, scheduler) == "inline"
    scheduler.run_sweep.assert_called_once()


def test_ticker_without_queue_delegates_to_scheduler_loop():
    scheduler = MagicMock()
    stop = Event()

    run_ticker(stop, 5, queue=None, scheduler=scheduler)

    scheduler.run_forever.assert_called_once_with(stop, 5)


def test_ticker_loops_until_stopped():
    stop = Event()
    queue = MagicMock()

    def _enqueue():
        if queue.enqueue_sweep.call_count >= 2:
            stop.set()
        return "job"

    queue.enqueue_sweep.side_effect = _enqueue

    run_ticker(stop, 0.01, queue=queue, scheduler=MagicMock())

    assert queue.enqueue_sweep.call_count == 2


def test_ticker_survives_failing_tick():
    stop = Event()
    queue = MagicMock()
    scheduler = MagicMock()
    queue.enqueue_sweep.side_effect = QueueEnqueueError("redis down")

    def _sweep():
        stop.set()
        raise RuntimeError("store down")

    scheduler.run_sweep.side_effect = _sweep

    run_ticker(stop, 0.01, queue=queue, scheduler=scheduler)

    assert scheduler.run_sweep.call_count == 1
