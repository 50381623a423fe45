"""
Name: RQ Sweep Queue Tests

Responsibilities:
  - Validate configuration checks (fail fast)
  - Validate enqueue arguments and error wrapping
"""

from unittest.mock import MagicMock, patch

import pytest

from account_lifecycle.infrastructure.queue import (
    RUN_DELETION_SWEEP_JOB_PATH,
    QueueConfigurationError,
    QueueEnqueueError,
    RQQueueConfig,
    RQSweepQueue,
)

pytestmark = pytest.mark.unit

_MODULE = "account_lifecycle.infrastructure.queue.rq_queue"


def _build(config: RQQueueConfig | None = None):
    fake_rq = MagicMock()
    with patch(f"{_MODULE}._lazy_import_rq", return_value=fake_rq):
        queue = RQSweepQueue(redis=MagicMock(), config=config or RQQueueConfig())
    return queue, fake_rq


def test_enqueue_uses_job_path_and_limits():
    queue, fake_rq = _build(RQQueueConfig(job_timeout_seconds=60, result_ttl_seconds=10))
    fake_rq.Queue.return_value.enqueue.return_value = MagicMock(id="job-1")

    job_id = queue.enqueue_sweep()

    assert job_id == "job-1"
    args, kwargs = fake_rq.Queue.return_value.enqueue.call_args
    assert args == (RUN_DELETION_SWEEP_JOB_PATH,)
    assert kwargs["job_timeout"] == 60
    assert kwargs["result_ttl"] == 10
    assert kwargs["description"] == "deletion_sweep"
    fake_rq.Retry.assert_called_once_with(max=1)


def test_blank_queue_name_falls_back_to_default():
    queue, fake_rq = _build(RQQueueConfig(queue_name="  "))

    assert queue.queue_name == "deletions"
    assert fake_rq.Queue.call_args.kwargs["name"] == "deletions"


def test_zero_retries_disables_rq_retry():
    queue, fake_rq = _build(RQQueueConfig(retry_max_attempts=0))
    queue.enqueue_sweep()

    fake_rq.Retry.assert_not_called()
    assert fake_rq.Queue.return_value.enqueue.call_args.kwargs["retry"] is None


def test_enqueue_failure_is_wrapped():
    queue, fake_rq = _build()
    boom = ConnectionError("redis down")
    fake_rq.Queue.return_value.enqueue.side_effect = boom

    with pytest.raises(QueueEnqueueError) as exc_info:
        queue.enqueue_sweep()

    assert exc_info.value.original_error is boom


@pytest.mark.parametrize(
    "config",
    [
        RQQueueConfig(retry_max_attempts=-1),
        RQQueueConfig(job_timeout_seconds=0),
        RQQueueConfig(result_ttl_seconds=-5),
    ],
)
def test_invalid_config_fails_fast(config):
    with pytest.raises(QueueConfigurationError):
        _build(config)


def test_unimportable_job_path_fails_fast():
    with patch(f"{_MODULE}.is_importable_dotted_path", return_value=False):
        with pytest.raises(QueueConfigurationError, match="not importable"):
            RQSweepQueue(redis=MagicMock(), config=RQQueueConfig())
