"""Job, render task and recording data models."""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    STARTED = "started"
    SATISFIED = "satisfied"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SATISFIED, JobStatus.FAILED)


# Statuses a job may hold immediately before moving to the key status.
ALLOWED_PREDECESSORS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset(),
    JobStatus.STARTED: frozenset({JobStatus.PENDING}),
    JobStatus.SATISFIED: frozenset({JobStatus.STARTED}),
    JobStatus.FAILED: frozenset({JobStatus.PENDING, JobStatus.STARTED}),
}


def can_transition(current: JobStatus, requested: JobStatus) -> bool:
    return current in ALLOWED_PREDECESSORS[requested]


class RecordingFormat(str, Enum):
    AIFF = "aiff"
    MP3 = "mp3"


class Job(BaseModel):
    """One requested render. Status is owned by the scheduler."""
    id: int
    input_file: str
    out_file: str
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RenderTask(BaseModel):
    """Ties a job to a performance and names its output artifacts."""
    id: int
    name: str
    performance_id: int
    job_id: int


class Recording(BaseModel):
    id: int
    uri: str
    performance_id: int
    label: str = "deterministic"
    format: RecordingFormat
    created_at: datetime = Field(default_factory=datetime.utcnow)
