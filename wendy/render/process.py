"""Async external process runner with a hard wall-clock timeout.

Used for both the renderer and the transcoder:
- stdout lines are buffered for completion-marker parsing
- stderr lines are buffered separately; error-marker lines are logged at once
- on timeout the process gets SIGKILL and the caller is answered immediately,
  without waiting for the kill to be observed
- the outcome is settled once; late output or a late exit is dropped
"""

import asyncio
import logging
from asyncio.subprocess import DEVNULL, PIPE
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Set

from wendy.render.markers import has_error, parse_error
from wendy.settle import SettleOnce

logger = logging.getLogger(__name__)

# asyncio's default 64 KiB line limit is too small for chatty renderers
_STREAM_LIMIT = 1024 * 1024


class ProcessStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class ProcessResult:
    status: ProcessStatus
    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ProcessStatus.SUCCEEDED


class ProcessRunner:
    """Runs one external program at a time and reports a single outcome."""

    def __init__(self, name: str):
        self.name = name
        self._proc: Optional[asyncio.subprocess.Process] = None
        # Watchers outlive run() after a timeout; hold references until they finish
        self._watchers: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def run(
        self, command: str, args: Sequence[str], max_run_seconds: float
    ) -> ProcessResult:
        argv = [command, *args]
        logger.info("%s %s", self.name, " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv, stdin=DEVNULL, stdout=PIPE, stderr=PIPE, limit=_STREAM_LIMIT
            )
        except OSError as exc:
            logger.error("Failed to start %s: %s", self.name, exc)
            return ProcessResult(ProcessStatus.FAILED, error=f"Failed to start {self.name}: {exc}")

        self._proc = proc
        outcome = SettleOnce(f"{self.name} (pid {proc.pid})")
        stdout: List[str] = []
        stderr: List[str] = []
        watcher = asyncio.create_task(self._watch(proc, outcome, stdout, stderr))
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)

        try:
            return await asyncio.wait_for(outcome.wait(), timeout=max_run_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "No response from %s, exceeded the %ss time limit. Killing pid %s",
                self.name, max_run_seconds, proc.pid,
            )
            self._kill(proc)
            outcome.settle(
                ProcessResult(
                    ProcessStatus.TIMED_OUT,
                    stdout=list(stdout),
                    stderr=list(stderr),
                    error=f"{self.name} exceeded the {max_run_seconds}s time limit",
                ),
                "timeout",
            )
            return outcome.result()
        except asyncio.CancelledError:
            self._kill(proc)
            raise
        finally:
            if self._proc is proc:
                self._proc = None

    def kill(self) -> bool:
        """Forcefully kill the live process, if any. Returns True if a signal was sent."""
        if self._proc is None:
            return False
        return self._kill(self._proc)

    def _kill(self, proc: asyncio.subprocess.Process) -> bool:
        if proc.returncode is not None:
            return False
        try:
            proc.kill()
        except ProcessLookupError:
            return False
        logger.info("Sent SIGKILL to %s pid %s", self.name, proc.pid)
        return True

    async def _watch(
        self,
        proc: asyncio.subprocess.Process,
        outcome: SettleOnce,
        stdout: List[str],
        stderr: List[str],
    ) -> None:
        await asyncio.gather(
            self._pump(proc.stdout, stdout, outcome, "stdout"),
            self._pump(proc.stderr, stderr, outcome, "stderr"),
        )
        code = await proc.wait()
        if outcome.settled:
            logger.debug("%s pid %s exited with %s after resolution", self.name, proc.pid, code)
            return
        outcome.settle(self._result(code, stdout, stderr), "exit")

    async def _pump(
        self,
        stream: asyncio.StreamReader,
        lines: List[str],
        outcome: SettleOnce,
        label: str,
    ) -> None:
        async for raw in stream:
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if outcome.settled:
                logger.debug("Dropping %s %s after resolution: %s", self.name, label, line)
                continue
            lines.append(line)
            if label == "stderr" and has_error(line):
                logger.error("%s reported an error: %s", self.name, line)
            else:
                logger.debug("%s %s: %s", self.name, label, line)

    def _result(self, code: Optional[int], stdout: List[str], stderr: List[str]) -> ProcessResult:
        if code == 0 or code is None:
            return ProcessResult(
                ProcessStatus.SUCCEEDED, stdout=list(stdout), stderr=list(stderr), exit_code=code
            )
        logger.error("Unexpected exit code %s from %s", code, self.name)
        return ProcessResult(
            ProcessStatus.FAILED,
            stdout=list(stdout),
            stderr=list(stderr),
            exit_code=code,
            error=parse_error(stderr) or f"{self.name} exited with code {code}",
        )
