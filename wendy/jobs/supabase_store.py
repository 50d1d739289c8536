"""Supabase-backed job store.

Tables:
    jobs            (id, input_file, out_file, status, created_at, updated_at)
    render_tasks    (id, name, performance_id, job_id)
    recordings      (id, uri, performance_id, label, format, created_at)

The supabase client is synchronous, so every query runs in the default
thread executor to keep the scheduler's event loop responsive.
"""

import asyncio
import functools
from datetime import datetime
from typing import Any, Callable, Optional

from supabase import Client

from wendy.db.supabase_client import get_supabase
from wendy.errors import InvalidTransition, JobNotFound, JobStoreError
from wendy.jobs.models import (
    ALLOWED_PREDECESSORS,
    Job,
    JobStatus,
    Recording,
    RecordingFormat,
    RenderTask,
)
from wendy.jobs.store import JobStore

JOBS = "jobs"
TASKS = "render_tasks"
RECORDINGS = "recordings"


def _execute(query):
    try:
        return query.execute()
    except Exception as exc:
        raise JobStoreError(f"Supabase query failed: {exc}") from exc


class SupabaseJobStore(JobStore):

    def __init__(self, client: Optional[Client] = None, pickup_order: str = "newest"):
        super().__init__(pickup_order)
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            try:
                self._client = get_supabase()
            except RuntimeError as exc:
                raise JobStoreError(str(exc)) from exc
        return self._client

    async def _run(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    # ------------------------------------------------------------------
    # Scheduler operations
    # ------------------------------------------------------------------

    async def find_next_pending(self) -> Optional[Job]:
        return await self._run(self._find_next_pending)

    def _find_next_pending(self) -> Optional[Job]:
        response = _execute(
            self.client.table(JOBS)
            .select("*")
            .eq("status", JobStatus.PENDING.value)
            .order("created_at", desc=self.pickup_order == "newest")
            .limit(1)
        )
        if not response.data:
            return None
        return Job(**response.data[0])

    async def update_status(self, job_id: int, status: JobStatus) -> Job:
        return await self._run(self._update_status, job_id, status)

    def _update_status(self, job_id: int, status: JobStatus) -> Job:
        allowed = [s.value for s in ALLOWED_PREDECESSORS[status]]
        # Conditional update: the row only changes if its current status is a
        # legal predecessor, so terminal statuses are never overwritten.
        response = _execute(
            self.client.table(JOBS)
            .update({"status": status.value, "updated_at": datetime.utcnow().isoformat()})
            .eq("id", job_id)
            .in_("status", allowed)
        )
        if response.data:
            return Job(**response.data[0])

        current = _execute(
            self.client.table(JOBS).select("status").eq("id", job_id).limit(1)
        )
        if not current.data:
            raise JobNotFound(job_id)
        raise InvalidTransition(job_id, current.data[0]["status"], status.value)

    async def find_task_by_job_id(self, job_id: int) -> Optional[RenderTask]:
        return await self._run(self._find_task_by_job_id, job_id)

    def _find_task_by_job_id(self, job_id: int) -> Optional[RenderTask]:
        response = _execute(
            self.client.table(TASKS).select("*").eq("job_id", job_id).limit(1)
        )
        if not response.data:
            return None
        return RenderTask(**response.data[0])

    async def create_recording(
        self,
        uri: str,
        performance_id: int,
        format: RecordingFormat,
        label: str = "deterministic",
    ) -> Recording:
        return await self._run(self._insert_recording, uri, performance_id, format, label)

    def _insert_recording(
        self, uri: str, performance_id: int, format: RecordingFormat, label: str
    ) -> Recording:
        response = _execute(
            self.client.table(RECORDINGS).insert({
                "uri": uri,
                "performance_id": performance_id,
                "label": label,
                "format": RecordingFormat(format).value,
            })
        )
        return Recording(**response.data[0])

    # ------------------------------------------------------------------
    # HTTP layer operations
    # ------------------------------------------------------------------

    async def create_job(self, input_file: str, out_file: str) -> Job:
        return await self._run(self._insert_job, input_file, out_file)

    def _insert_job(self, input_file: str, out_file: str) -> Job:
        response = _execute(
            self.client.table(JOBS).insert({
                "input_file": input_file,
                "out_file": out_file,
                "status": JobStatus.PENDING.value,
            })
        )
        return Job(**response.data[0])

    async def create_task(self, name: str, performance_id: int, job_id: int) -> RenderTask:
        return await self._run(self._insert_task, name, performance_id, job_id)

    def _insert_task(self, name: str, performance_id: int, job_id: int) -> RenderTask:
        response = _execute(
            self.client.table(TASKS).insert({
                "name": name,
                "performance_id": performance_id,
                "job_id": job_id,
            })
        )
        return RenderTask(**response.data[0])

    async def get_job(self, job_id: int) -> Optional[Job]:
        return await self._run(self._get_job, job_id)

    def _get_job(self, job_id: int) -> Optional[Job]:
        response = _execute(self.client.table(JOBS).select("*").eq("id", job_id).limit(1))
        if not response.data:
            return None
        return Job(**response.data[0])

    async def delete_job(self, job_id: int) -> None:
        await self._run(self._delete_job, job_id)

    def _delete_job(self, job_id: int) -> None:
        response = _execute(self.client.table(JOBS).delete().eq("id", job_id))
        if not response.data:
            raise JobNotFound(job_id)

    async def find_recording(
        self, performance_id: int, format: RecordingFormat
    ) -> Optional[Recording]:
        return await self._run(self._find_recording, performance_id, format)

    def _find_recording(self, performance_id: int, format: RecordingFormat) -> Optional[Recording]:
        response = _execute(
            self.client.table(RECORDINGS)
            .select("*")
            .eq("performance_id", performance_id)
            .eq("format", RecordingFormat(format).value)
            .limit(1)
        )
        if not response.data:
            return None
        return Recording(**response.data[0])
