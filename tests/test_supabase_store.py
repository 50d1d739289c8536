"""Supabase store against a recording fake of the query builder chain."""

import asyncio
from types import SimpleNamespace

import pytest

from wendy.errors import InvalidTransition, JobNotFound, JobStoreError
from wendy.jobs.models import JobStatus, RecordingFormat
from wendy.jobs.supabase_store import SupabaseJobStore

JOB_ROW = {
    "id": 5,
    "input_file": "/tmp/a.json",
    "out_file": "a.mp3",
    "status": "pending",
    "created_at": "2024-01-01T00:00:00",
    "updated_at": "2024-01-01T00:00:00",
}


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.calls = [("table", table)]

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs) if kwargs else (name, args))
            return self
        return method

    def execute(self):
        self.client.queries.append(self.calls)
        response = self.client.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(data=response)


class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.queries = []

    def table(self, name):
        return FakeQuery(self, name)


def _store(*responses, **kwargs):
    client = FakeClient(*responses)
    return client, SupabaseJobStore(client=client, **kwargs)


def test_find_next_pending_orders_newest_first():
    client, store = _store([JOB_ROW])
    job = asyncio.run(store.find_next_pending())
    assert job.id == 5
    assert job.status == JobStatus.PENDING
    calls = client.queries[0]
    assert ("eq", ("status", "pending")) in calls
    assert ("order", ("created_at",), {"desc": True}) in calls


def test_find_next_pending_oldest_first_and_empty():
    client, store = _store([], pickup_order="oldest")
    assert asyncio.run(store.find_next_pending()) is None
    assert ("order", ("created_at",), {"desc": False}) in client.queries[0]


def test_update_status_is_conditional_on_predecessor():
    client, store = _store([{**JOB_ROW, "status": "started"}])
    job = asyncio.run(store.update_status(5, JobStatus.STARTED))
    assert job.status == JobStatus.STARTED
    assert ("in_", ("status", ["pending"])) in client.queries[0]


def test_update_status_rejected_for_terminal_job():
    client, store = _store([], [{"status": "failed"}])
    with pytest.raises(InvalidTransition) as exc_info:
        asyncio.run(store.update_status(5, JobStatus.SATISFIED))
    assert exc_info.value.current == "failed"


def test_update_status_unknown_job():
    _, store = _store([], [])
    with pytest.raises(JobNotFound):
        asyncio.run(store.update_status(5, JobStatus.STARTED))


def test_backend_errors_become_job_store_errors():
    _, store = _store(ConnectionError("refused"))
    with pytest.raises(JobStoreError, match="refused"):
        asyncio.run(store.find_next_pending())


def test_create_recording():
    row = {"id": 1, "uri": "a.mp3", "performance_id": 3, "label": "deterministic", "format": "mp3"}
    client, store = _store([row])
    recording = asyncio.run(store.create_recording("a.mp3", 3, RecordingFormat.MP3))
    assert recording.format == RecordingFormat.MP3
    insert = [c for c in client.queries[0] if c[0] == "insert"][0]
    assert insert[1][0] == {"uri": "a.mp3", "performance_id": 3, "label": "deterministic", "format": "mp3"}


def test_delete_missing_job():
    _, store = _store([])
    with pytest.raises(JobNotFound):
        asyncio.run(store.delete_job(9))


def test_missing_credentials(monkeypatch):
    from wendy.db import supabase_client

    monkeypatch.setattr(supabase_client, "_client", None)
    monkeypatch.setattr(supabase_client.settings, "supabase_url", "")
    store = SupabaseJobStore()
    with pytest.raises(JobStoreError, match="needs SUPABASE_URL"):
        asyncio.run(store.get_job(1))
