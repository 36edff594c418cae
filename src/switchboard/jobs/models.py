"""Job records and submission options."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

JobStatus = Literal["waiting", "active", "completed", "failed", "delayed", "paused"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


class BackoffOptions(BaseModel):
    type: Literal["fixed", "exponential"] = "exponential"
    delay: int = Field(default=5000, ge=0, description="Base retry delay in ms")

    def delay_for(self, attempts_made: int) -> int:
        """Delay before the next try, given how many attempts already failed."""
        if self.type == "fixed":
            return self.delay
        return self.delay * (2 ** max(0, attempts_made - 1))


class JobOptions(BaseModel):
    """Per-job options. Camel-case keys from event payloads are accepted."""

    priority: int = Field(default=0, ge=0, description="Lower runs first")
    delay: int = Field(default=0, ge=0, description="Delay before first run in ms")
    attempts: int | None = Field(default=None, gt=0)
    backoff: BackoffOptions | None = None
    job_id: str | None = Field(default=None, alias="jobId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


@dataclass
class JobRecord:
    id: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    status: JobStatus = "waiting"
    priority: int = 0
    attempts_made: int = 0
    max_attempts: int = 3
    backoff_type: str = "exponential"
    backoff_delay_ms: int = 5000
    run_at_ms: int = 0
    result: Any = None
    error: str | None = None
    created_at_ms: int = 0
    started_at_ms: int | None = None
    finished_at_ms: int | None = None

    @property
    def duration_ms(self) -> int | None:
        if self.started_at_ms is None or self.finished_at_ms is None:
            return None
        return self.finished_at_ms - self.started_at_ms

    @property
    def backoff(self) -> BackoffOptions:
        return BackoffOptions(type=self.backoff_type, delay=self.backoff_delay_ms)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> JobRecord:
        return cls(
            id=row["id"],
            name=row["name"],
            data=json.loads(row["data"]) if row["data"] else {},
            status=row["status"],
            priority=row["priority"],
            attempts_made=row["attempts_made"],
            max_attempts=row["max_attempts"],
            backoff_type=row["backoff_type"],
            backoff_delay_ms=row["backoff_delay_ms"],
            run_at_ms=row["run_at_ms"],
            result=json.loads(row["result"]) if row["result"] is not None else None,
            error=row["error"],
            created_at_ms=row["created_at_ms"],
            started_at_ms=row["started_at_ms"],
            finished_at_ms=row["finished_at_ms"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "data": self.data,
            "status": self.status,
            "priority": self.priority,
            "attempts_made": self.attempts_made,
            "max_attempts": self.max_attempts,
            "result": self.result,
            "error": self.error,
            "created_at": self.created_at_ms,
            "duration": self.duration_ms,
        }


@dataclass
class JobResult:
    """Terminal outcome of a job as reported to callers."""

    id: str
    name: str
    status: JobStatus
    result: Any = None
    error: str | None = None
    duration: int | None = None
    completed_at: int | None = None

    @classmethod
    def from_record(cls, record: JobRecord) -> JobResult:
        return cls(
            id=record.id,
            name=record.name,
            status=record.status,
            result=record.result,
            error=record.error,
            duration=record.duration_ms,
            completed_at=record.finished_at_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "result": self.result,
            "error": self.error,
            "duration": self.duration,
            "completed_at": self.completed_at,
        }
