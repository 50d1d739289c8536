"""In-process job store for local development and tests.

Keeps jobs, tasks and recordings in dictionaries. No external dependencies
(Supabase) needed. Not durable across restarts.
"""

import itertools
import logging
from datetime import datetime
from typing import Dict, List, Optional

from wendy.errors import InvalidTransition, JobNotFound
from wendy.jobs.models import (
    Job,
    JobStatus,
    Recording,
    RecordingFormat,
    RenderTask,
    can_transition,
)
from wendy.jobs.store import JobStore

logger = logging.getLogger(__name__)


class InMemoryJobStore(JobStore):
    """Dictionary-backed store. Safe for use from a single event loop."""

    def __init__(self, pickup_order: str = "newest"):
        super().__init__(pickup_order)
        self._jobs: Dict[int, Job] = {}
        self._tasks: Dict[int, RenderTask] = {}
        self._recordings: List[Recording] = []
        self._job_ids = itertools.count(1)
        self._task_ids = itertools.count(1)
        self._recording_ids = itertools.count(1)

    async def find_next_pending(self) -> Optional[Job]:
        pending = [j for j in self._jobs.values() if j.status == JobStatus.PENDING]
        if not pending:
            return None
        # id breaks ties between jobs created within the same clock tick
        key = lambda j: (j.created_at, j.id)
        if self.pickup_order == "newest":
            return max(pending, key=key).model_copy()
        return min(pending, key=key).model_copy()

    async def update_status(self, job_id: int, status: JobStatus) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        if not can_transition(job.status, status):
            raise InvalidTransition(job_id, job.status.value, status.value)
        job.status = status
        job.updated_at = datetime.utcnow()
        return job.model_copy()

    async def find_task_by_job_id(self, job_id: int) -> Optional[RenderTask]:
        for task in self._tasks.values():
            if task.job_id == job_id:
                return task
        return None

    async def create_recording(
        self,
        uri: str,
        performance_id: int,
        format: RecordingFormat,
        label: str = "deterministic",
    ) -> Recording:
        recording = Recording(
            id=next(self._recording_ids),
            uri=uri,
            performance_id=performance_id,
            label=label,
            format=format,
        )
        self._recordings.append(recording)
        return recording

    async def create_job(self, input_file: str, out_file: str) -> Job:
        job = Job(id=next(self._job_ids), input_file=input_file, out_file=out_file)
        self._jobs[job.id] = job
        return job.model_copy()

    async def create_task(self, name: str, performance_id: int, job_id: int) -> RenderTask:
        task = RenderTask(
            id=next(self._task_ids), name=name, performance_id=performance_id, job_id=job_id
        )
        self._tasks[task.id] = task
        return task

    async def get_job(self, job_id: int) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.model_copy() if job else None

    async def delete_job(self, job_id: int) -> None:
        if self._jobs.pop(job_id, None) is None:
            raise JobNotFound(job_id)
        logger.debug("Deleted job %s", job_id)

    async def find_recording(
        self, performance_id: int, format: RecordingFormat
    ) -> Optional[Recording]:
        for recording in self._recordings:
            if recording.performance_id == performance_id and recording.format == format:
                return recording
        return None

    def recordings(self) -> List[Recording]:
        return list(self._recordings)
