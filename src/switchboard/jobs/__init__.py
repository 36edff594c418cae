"""Deferred work: job records, the SQLite store and the worker queue."""

from switchboard.jobs.models import BackoffOptions, JobOptions, JobRecord, JobResult, JobStatus
from switchboard.jobs.queue import JobQueue
from switchboard.jobs.store import JobStore

__all__ = [
    "BackoffOptions",
    "JobOptions",
    "JobQueue",
    "JobRecord",
    "JobResult",
    "JobStatus",
    "JobStore",
]
