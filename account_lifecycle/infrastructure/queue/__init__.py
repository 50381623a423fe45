from .errors import QueueConfigurationError, QueueEnqueueError, QueueError
from .job_paths import DELETIONS_QUEUE_NAME, RUN_DELETION_SWEEP_JOB_PATH
from .rq_queue import RQQueueConfig, RQSweepQueue

__all__ = [
    "DELETIONS_QUEUE_NAME",
    "QueueConfigurationError",
    "QueueEnqueueError",
    "QueueError",
    "RQQueueConfig",
    "RQSweepQueue",
    "RUN_DELETION_SWEEP_JOB_PATH",
]
