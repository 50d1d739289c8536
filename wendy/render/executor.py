"""Render executor: renderer → completion check → transcoder → recordings.

Runs one job end to end. Temporary files are cleaned up on every exit path.
Failures are raised as RenderFailed with a human-readable reason.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from wendy.config import settings
from wendy.errors import RenderFailed
from wendy.jobs.models import Job, Recording, RecordingFormat, RenderTask
from wendy.jobs.store import JobStore
from wendy.render.markers import check_completed
from wendy.render.process import ProcessRunner, ProcessStatus
from wendy.storage.artifacts import COMPRESSED_EXT, ArtifactStore

logger = logging.getLogger(__name__)

RECORDING_LABEL = "deterministic"


@dataclass
class _RunState:
    job_id: int
    aborted: bool = False


class RenderExecutor:

    def __init__(
        self,
        store: JobStore,
        artifacts: ArtifactStore,
        renderer_bin: Optional[str] = None,
        renderer_script: Optional[str] = None,
        transcoder_bin: Optional[str] = None,
        render_timeout_seconds: Optional[float] = None,
        transcode_timeout_seconds: Optional[float] = None,
    ):
        self.store = store
        self.artifacts = artifacts
        self.renderer_bin = renderer_bin or settings.renderer_bin
        self.renderer_script = os.path.abspath(renderer_script or settings.renderer_script)
        self.transcoder_bin = transcoder_bin or settings.transcoder_bin
        self.render_timeout_seconds = render_timeout_seconds or settings.render_timeout_seconds
        self.transcode_timeout_seconds = (
            transcode_timeout_seconds or settings.transcode_timeout_seconds
        )
        self.renderer = ProcessRunner("renderer")
        self.transcoder = ProcessRunner("transcoder")
        self._current: Optional[_RunState] = None

    async def execute(self, task: RenderTask, job: Job) -> Recording:
        """Render a job and return the compressed recording.

        Raises:
            RenderFailed: renderer or transcoder failed, timed out, or the
                renderer never confirmed completion.
        """
        hires_path = self.artifacts.hires_path(task.name)
        state = _RunState(job.id)
        self._current = state
        try:
            await self._render(job.input_file, hires_path)
            # abort() may land between the two processes, when nothing is running to kill
            if state.aborted:
                raise RenderFailed(f"Render for job {job.id} was aborted")
            await self._transcode(hires_path)
        finally:
            if self._current is state:
                self._current = None
            logger.info("Removing temporary assets for job %s", job.id)
            self.artifacts.cleanup_template(job.input_file)
            self.artifacts.cleanup_hires(hires_path)

        await self.store.create_recording(
            uri=hires_path,
            performance_id=task.performance_id,
            format=RecordingFormat.AIFF,
            label=RECORDING_LABEL,
        )
        compressed = await self.store.create_recording(
            uri=task.name + COMPRESSED_EXT,
            performance_id=task.performance_id,
            format=RecordingFormat.MP3,
            label=RECORDING_LABEL,
        )
        logger.info("Completed render for job %s at %s", job.id, compressed.uri)
        return compressed

    def abort(self) -> bool:
        """Kill whichever external process is currently running.

        The current run is also flagged, so it will not start the transcoder
        if the renderer has already exited.
        """
        if self._current is not None:
            self._current.aborted = True
        killed = self.renderer.kill()
        return self.transcoder.kill() or killed

    async def _render(self, input_file: str, hires_path: str) -> None:
        result = await self.renderer.run(
            self.renderer_bin,
            [self.renderer_script, input_file, hires_path],
            self.render_timeout_seconds,
        )
        if result.status == ProcessStatus.TIMED_OUT:
            raise RenderFailed(result.error or "Renderer timed out")
        if not result.ok:
            logger.error("Renderer failed: %s", result.error)
            raise RenderFailed(result.error or "Failed to render audio for composition")

        # A zero exit code alone does not prove the file was written
        reason = check_completed(result.stdout)
        if reason is not None:
            logger.error("Renderer did not confirm completion: %s", reason)
            raise RenderFailed(reason)

    async def _transcode(self, hires_path: str) -> str:
        compressed_path = self.artifacts.compressed_path(hires_path)
        logger.info("mp3 conversion on %s", hires_path)
        result = await self.transcoder.run(
            self.transcoder_bin,
            [hires_path, compressed_path],
            self.transcode_timeout_seconds,
        )
        if not result.ok:
            logger.error("Unexpected error during conversion: %s", result.error)
            raise RenderFailed(f"Transcoding failed: {result.error}")
        return compressed_path
