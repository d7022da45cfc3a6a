"""Queue scheduler for paced video-generation jobs.

The scheduler drains a FIFO queue of jobs through an executor, one job at
a time, with a random delay between jobs and a periodic cooldown.
"""

from flow_automator.scheduler.events import RunProgress, RunState
from flow_automator.scheduler.job_executor import (
    DryRunExecutor,
    ExecutionResult,
    HttpBridgeExecutor,
    JobExecutor,
    create_executor,
)
from flow_automator.scheduler.job_queue import JobQueue
from flow_automator.scheduler.job_scheduler import (
    CooldownConfig,
    DelayConfig,
    QueueScheduler,
    RunSummary,
)
from flow_automator.scheduler.jobs import Job, JobKind
from flow_automator.scheduler.queue_store import QueueStore

__all__ = [
    "CooldownConfig",
    "DelayConfig",
    "DryRunExecutor",
    "ExecutionResult",
    "HttpBridgeExecutor",
    "Job",
    "JobExecutor",
    "JobKind",
    "JobQueue",
    "QueueScheduler",
    "QueueStore",
    "RunProgress",
    "RunState",
    "RunSummary",
    "create_executor",
]
