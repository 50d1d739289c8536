"""Render scheduler: a self-rescheduling poller with a single run slot.

One asyncio task drives serialized ticks. Each tick either watchdog-checks
the job in the run guard or picks the next pending job and launches the
render executor in a background task, so ticks (and the watchdog) keep
running while a render is in flight.

Whichever of the executor's outcome and the watchdog arrives first decides
the job's terminal status; the other is a logged no-op. Resolving a run
clears the guard and wakes the loop so the next tick runs immediately.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Set

from wendy.config import settings
from wendy.errors import JobStoreError, RenderFailed
from wendy.jobs.models import Job, JobStatus, RenderTask
from wendy.jobs.store import JobStore
from wendy.render.executor import RenderExecutor
from wendy.scheduler.guard import RunGuard
from wendy.scheduler.notify import PerformanceNotifier
from wendy.settle import SettleOnce

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    status: JobStatus
    reason: Optional[str] = None
    source: str = ""


class Scheduler:

    def __init__(
        self,
        store: JobStore,
        executor: RenderExecutor,
        notifier: PerformanceNotifier,
        poll_interval_ms: Optional[int] = None,
        max_render_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.executor = executor
        self.notifier = notifier
        self.interval = (poll_interval_ms or settings.poll_interval_ms) / 1000
        self.max_render_seconds = max_render_seconds or settings.max_render_seconds
        self.guard = RunGuard()
        self._clock = clock
        self._wake = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()
        self._running = False

    @property
    def running_job_id(self) -> Optional[int]:
        return self.guard.running_job_id

    async def start(self) -> None:
        self._running = True
        self._loop_task = asyncio.create_task(self._poll_loop())
        logger.info(
            "Scheduler started (interval %.3fs, max render %.1fs)",
            self.interval, self.max_render_seconds,
        )

    async def stop(self) -> None:
        """Stop polling and abort any render in flight.

        A job still running is resolved as failed first; a cancelled run
        never gets to write its own outcome.
        """
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        job_id = self.guard.running_job_id
        resolution = self.guard.resolution
        if job_id is not None and resolution is not None and not resolution.settled:
            logger.warning("Stopping with job %s still running, marking it failed", job_id)
            self.executor.abort()
            await self._resolve(
                job_id, resolution, RunOutcome(JobStatus.FAILED, "Scheduler stopped", "shutdown")
            )
        if self._runs:
            self.executor.abort()
            for run in list(self._runs):
                run.cancel()
            await asyncio.gather(*self._runs, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for renders in flight, and their notifications, to finish."""
        while self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    def wake(self) -> None:
        """Run the next tick now instead of waiting for the timer."""
        self._wake.set()

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception:
                logger.exception("Unexpected error during scheduler tick")
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    async def tick(self) -> None:
        if self.guard.occupied:
            await self._check_watchdog()
            return

        job = await self._next_job()
        if job is None:
            return

        try:
            job = await self.store.update_status(job.id, JobStatus.STARTED)
        except JobStoreError as exc:
            logger.error("Could not mark job %s as started: %s", job.id, exc)
            return

        try:
            task = await self.store.find_task_by_job_id(job.id)
        except JobStoreError as exc:
            # Job stays 'started'; not corrected automatically
            logger.error("Unexpected store error looking up the task for job %s: %s", job.id, exc)
            return

        if task is None:
            logger.error("Job %s has no render task, marking it failed", job.id)
            await self._mark(job.id, JobStatus.FAILED)
            self._wake.set()
            return

        resolution = SettleOnce(f"job {job.id}")
        self.guard.acquire(job.id, self._clock(), resolution)
        logger.info("Starting render for job %s (task %s)", job.id, task.name)
        run = asyncio.create_task(self._run(task, job, resolution))
        self._runs.add(run)
        run.add_done_callback(self._runs.discard)

    async def _next_job(self) -> Optional[Job]:
        try:
            return await self.store.find_next_pending()
        except JobStoreError as exc:
            logger.error("Error while looking for an unstarted job: %s", exc)
            return None

    async def _check_watchdog(self) -> None:
        job_id = self.guard.running_job_id
        resolution = self.guard.resolution
        age = self.guard.age(self._clock())
        if age <= self.max_render_seconds or resolution is None or resolution.settled:
            return

        logger.warning(
            "Job %s has been rendering for %.1fs, over the %.1fs limit",
            job_id, age, self.max_render_seconds,
        )
        if self.executor.abort():
            logger.info("Killed the render process for job %s", job_id)
        await self._resolve(
            job_id,
            resolution,
            RunOutcome(JobStatus.FAILED, f"Render exceeded {self.max_render_seconds}s", "watchdog"),
        )

    async def _run(self, task: RenderTask, job: Job, resolution: SettleOnce) -> None:
        try:
            recording = await self.executor.execute(task, job)
        except RenderFailed as exc:
            logger.error("Error while rendering job %s: %s", job.id, exc.reason)
            await self._resolve(job.id, resolution, RunOutcome(JobStatus.FAILED, exc.reason, "executor"))
            return
        except Exception as exc:
            logger.exception("Unexpected error while rendering job %s", job.id)
            await self._resolve(job.id, resolution, RunOutcome(JobStatus.FAILED, str(exc), "executor"))
            return

        won = await self._resolve(job.id, resolution, RunOutcome(JobStatus.SATISFIED, source="executor"))
        if won:
            url = self.executor.artifacts.public_url(recording.uri)
            await self.notifier.job_completed(task.performance_id, url)

    async def _resolve(self, job_id: int, resolution: SettleOnce, outcome: RunOutcome) -> bool:
        """Record a run's terminal status if nothing else got there first.

        Returns True when this outcome won and was written to the store.
        """
        if not resolution.settle(outcome, outcome.source):
            winner = resolution.result()
            logger.warning(
                "Job %s was already resolved as %s by %s, ignoring %s result from %s",
                job_id, winner.status.value, winner.source, outcome.status.value, outcome.source,
            )
            return False
        try:
            return await self._mark(job_id, outcome.status)
        finally:
            self.guard.release(job_id)
            self._wake.set()

    async def _mark(self, job_id: int, status: JobStatus) -> bool:
        try:
            await self.store.update_status(job_id, status)
        except JobStoreError as exc:
            logger.error("Unexpected store error marking job %s as %s: %s", job_id, status.value, exc)
            return False
        logger.info("Marked job %s as %s", job_id, status.value)
        return True
