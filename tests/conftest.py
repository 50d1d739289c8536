import json
import stat
import sys
import textwrap

import pytest

from wendy.jobs.memory_store import InMemoryJobStore
from wendy.render.executor import RenderExecutor
from wendy.storage.artifacts import ArtifactStore


# Stand-in for the synthesizer. Behaviour is picked by the "mode" key of the
# input template it is handed: <script> <input.json> <output.aiff>
FAKE_RENDERER = textwrap.dedent("""
    import json, sys, time
    _, input_path, output_path = sys.argv
    with open(input_path) as f:
        mode = json.load(f).get("mode", "ok")

    def write_output(content="FORM"):
        with open(output_path, "w") as out:
            out.write(content)

    if mode == "ok":
        write_output()
        print("rendering", flush=True)
        print("xsynx completed xsynx", flush=True)
    elif mode == "bad_audio":
        write_output("bad")
        print("xsynx completed xsynx", flush=True)
    elif mode == "no_marker":
        write_output()
        print("done", flush=True)
    elif mode == "wrong_marker":
        write_output()
        print("xsynx aborted xsynx", flush=True)
    elif mode == "stdout_error":
        write_output()
        print("xsynxerror Buffer overflow xsynxerror", flush=True)
        print("xsynx completed xsynx", flush=True)
    elif mode == "error":
        write_output()
        print("xsynxerror Bad template xsynxerror", file=sys.stderr, flush=True)
        sys.exit(1)
    elif mode == "hang":
        time.sleep(60)
""")

# Stand-in for the transcoder: <src.aiff> <dst.mp3>. Fails on "bad" input.
FAKE_TRANSCODER = textwrap.dedent("""
    import sys
    _, src, dst = sys.argv
    with open(src) as f:
        content = f.read()
    if content == "bad":
        print("cannot decode " + src, file=sys.stderr)
        sys.exit(1)
    with open(dst, "w") as out:
        out.write("ID3" + content)
""")


@pytest.fixture()
def out_dir(tmp_path):
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture()
def work_tmp(tmp_path):
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture()
def artifacts(out_dir, work_tmp):
    return ArtifactStore(
        out_dir=str(out_dir), tmp_dir=str(work_tmp), public_base_url="http://wendy.test"
    )


@pytest.fixture()
def fake_renderer(tmp_path):
    path = tmp_path / "fake_renderer.py"
    path.write_text(FAKE_RENDERER)
    return str(path)


@pytest.fixture()
def fake_transcoder(tmp_path):
    path = tmp_path / "fake_transcoder"
    path.write_text(f"#!{sys.executable}\n" + FAKE_TRANSCODER)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture()
def store():
    return InMemoryJobStore()


@pytest.fixture()
def make_executor(store, artifacts, fake_renderer, fake_transcoder):
    def _make(render_timeout=10.0, transcode_timeout=10.0, job_store=None):
        return RenderExecutor(
            job_store or store,
            artifacts,
            renderer_bin=sys.executable,
            renderer_script=fake_renderer,
            transcoder_bin=fake_transcoder,
            render_timeout_seconds=render_timeout,
            transcode_timeout_seconds=transcode_timeout,
        )
    return _make


@pytest.fixture()
def write_input(work_tmp):
    counter = {"n": 0}

    def _write(mode="ok"):
        counter["n"] += 1
        path = work_tmp / f"input-{counter['n']}.json"
        path.write_text(json.dumps({"mode": mode}))
        return str(path)
    return _write


@pytest.fixture()
def queue_job(store, write_input):
    """Create a pending job plus its render task, like the HTTP layer does."""
    async def _queue(mode="ok", performance_id=7, name=None):
        input_file = write_input(mode)
        job = await store.create_job(input_file=input_file, out_file="out.mp3")
        task_name = name or f"render-{job.id}"
        task = await store.create_task(name=task_name, performance_id=performance_id, job_id=job.id)
        return job, task
    return _queue


@pytest.fixture()
def composition_payload():
    return {
        "conf": {"cps": 1.5, "root": 220.0},
        "parts": [
            {
                "sound": {"baseOsc": "sine", "duty": [1, 2], "minFreq": 40, "maxFreq": 8000},
                "motes": [[[0.5, 440.0, 0.8], [0.25, 660.0, 0.5]]],
            },
            {
                "sound": {"baseOsc": "noise", "duty": [1, 1], "minFreq": 100, "maxFreq": 12000},
                "motes": [[[1.0, 110.0, 0.1]]],
            },
        ],
    }
