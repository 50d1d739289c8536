"""Exception types raised across the render pipeline."""

from typing import Optional


class WendyError(Exception):
    """Base class for all service errors."""


class JobStoreError(WendyError):
    """The job store could not complete a query or mutation."""


class JobNotFound(JobStoreError):
    def __init__(self, job_id: int):
        super().__init__(f"No job found for id {job_id}")
        self.job_id = job_id


class InvalidTransition(JobStoreError):
    """A status update would move a job backwards or out of a terminal state."""

    def __init__(self, job_id: int, current: Optional[str], requested: str):
        super().__init__(
            f"Job {job_id} cannot move from '{current}' to '{requested}'"
        )
        self.job_id = job_id
        self.current = current
        self.requested = requested


class RenderFailed(WendyError):
    """A render or transcode step did not produce a usable artifact."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TemplateError(WendyError):
    """The renderer input file could not be written."""
