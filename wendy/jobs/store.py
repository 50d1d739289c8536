"""Job store interface consumed by the scheduler and the HTTP layer."""

from abc import ABC, abstractmethod
from typing import Optional

from wendy.jobs.models import Job, JobStatus, Recording, RecordingFormat, RenderTask


class JobStore(ABC):
    """Abstract interface over durable job/task/recording records.

    Implementations must raise JobStoreError (or a subclass) for any backend
    failure, and InvalidTransition for a status change that would move a job
    backwards or out of a terminal status.
    """

    def __init__(self, pickup_order: str = "newest"):
        if pickup_order not in ("newest", "oldest"):
            raise ValueError(f"Unknown pickup order '{pickup_order}'")
        self.pickup_order = pickup_order

    @abstractmethod
    async def find_next_pending(self) -> Optional[Job]:
        """Return the next pending job according to pickup_order, if any."""
        ...

    @abstractmethod
    async def update_status(self, job_id: int, status: JobStatus) -> Job:
        """Move a job to a new status. Returns the updated job."""
        ...

    @abstractmethod
    async def find_task_by_job_id(self, job_id: int) -> Optional[RenderTask]:
        ...

    @abstractmethod
    async def create_recording(
        self,
        uri: str,
        performance_id: int,
        format: RecordingFormat,
        label: str = "deterministic",
    ) -> Recording:
        ...

    @abstractmethod
    async def create_job(self, input_file: str, out_file: str) -> Job:
        """Create a job in status pending."""
        ...

    @abstractmethod
    async def create_task(self, name: str, performance_id: int, job_id: int) -> RenderTask:
        ...

    @abstractmethod
    async def get_job(self, job_id: int) -> Optional[Job]:
        ...

    @abstractmethod
    async def delete_job(self, job_id: int) -> None:
        """Delete a job. Raises JobNotFound if it does not exist."""
        ...

    @abstractmethod
    async def find_recording(
        self, performance_id: int, format: RecordingFormat
    ) -> Optional[Recording]:
        ...
