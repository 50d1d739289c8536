"""Process runner: stream capture, exit-code handling, timeouts."""

import asyncio
import logging
import sys
import time

from wendy.render.process import ProcessRunner, ProcessStatus


def _python(code):
    return sys.executable, ["-c", code]


def _run(code, timeout=10.0, name="renderer"):
    command, args = _python(code)
    return asyncio.run(ProcessRunner(name).run(command, args, timeout))


def test_success_buffers_stdout_lines():
    result = _run("print('one'); print('xsynx completed xsynx')")
    assert result.status == ProcessStatus.SUCCEEDED
    assert result.ok
    assert result.exit_code == 0
    assert result.stdout == ["one", "xsynx completed xsynx"]
    assert result.error is None


def test_nonzero_exit_reports_error_marker_payloads():
    code = (
        "import sys\n"
        "sys.stderr.write('xsynxerror Bad template xsynxerror\\n')\n"
        "sys.stderr.write('noise\\n')\n"
        "sys.stderr.write('xsynxerror Missing part xsynxerror\\n')\n"
        "sys.exit(1)\n"
    )
    result = _run(code)
    assert result.status == ProcessStatus.FAILED
    assert result.exit_code == 1
    assert result.error == "Bad template, Missing part"
    assert len(result.stderr) == 3


def test_nonzero_exit_without_marker_names_the_exit_code():
    result = _run("import sys; sys.exit(3)", name="transcoder")
    assert result.status == ProcessStatus.FAILED
    assert result.error == "transcoder exited with code 3"


def test_stderr_error_marker_is_logged_but_exit_code_decides(caplog):
    code = "import sys; sys.stderr.write('xsynxerror soft warning xsynxerror\\n')"
    with caplog.at_level(logging.ERROR, logger="wendy.render.process"):
        result = _run(code)
    assert result.ok
    assert any("soft warning" in r.getMessage() for r in caplog.records)


def test_missing_executable_fails_without_raising():
    result = asyncio.run(
        ProcessRunner("renderer").run("/nonexistent/sclang-binary", ["a", "b"], 5)
    )
    assert result.status == ProcessStatus.FAILED
    assert "Failed to start renderer" in result.error


def test_timeout_kills_and_reports_immediately():
    async def scenario():
        runner = ProcessRunner("renderer")
        command, args = _python("import time; print('xsynx started xsynx', flush=True); time.sleep(30)")
        started = time.monotonic()
        result = await runner.run(command, args, 0.5)
        elapsed = time.monotonic() - started
        return runner, result, elapsed

    runner, result, elapsed = asyncio.run(scenario())
    assert result.status == ProcessStatus.TIMED_OUT
    assert not result.ok
    assert "time limit" in result.error
    assert elapsed < 5
    assert not runner.running


def test_kill_terminates_a_running_process():
    async def scenario():
        runner = ProcessRunner("renderer")
        command, args = _python("import time; time.sleep(30)")
        run = asyncio.create_task(runner.run(command, args, 20))
        while not runner.running:
            await asyncio.sleep(0.01)
        assert runner.kill()
        return await asyncio.wait_for(run, 5)

    result = asyncio.run(scenario())
    assert result.status == ProcessStatus.FAILED
    assert result.exit_code is not None and result.exit_code < 0


def test_kill_without_process_is_a_noop():
    assert ProcessRunner("renderer").kill() is False
