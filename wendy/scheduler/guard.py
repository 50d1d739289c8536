"""Single-slot run guard owned by one scheduler instance."""

from dataclasses import dataclass
from typing import Optional

from wendy.settle import SettleOnce


@dataclass
class RunGuard:
    """Holds at most one running job id at a time.

    last_refresh is a monotonic timestamp taken when the slot was filled;
    the watchdog measures the running job's age from it.
    """
    running_job_id: Optional[int] = None
    last_refresh: float = 0.0
    resolution: Optional[SettleOnce] = None

    @property
    def occupied(self) -> bool:
        return self.running_job_id is not None

    def acquire(self, job_id: int, now: float, resolution: SettleOnce) -> None:
        if self.occupied:
            raise RuntimeError(
                f"Run guard already holds job {self.running_job_id}, cannot take job {job_id}"
            )
        self.running_job_id = job_id
        self.last_refresh = now
        self.resolution = resolution

    def release(self, job_id: int) -> bool:
        """Empty the slot if it still belongs to job_id."""
        if self.running_job_id != job_id:
            return False
        self.running_job_id = None
        self.resolution = None
        return True

    def age(self, now: float) -> float:
        return now - self.last_refresh if self.occupied else 0.0
