"""Render job API: create render jobs, inspect and manage them, fetch results."""

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Response
from fastapi.responses import FileResponse
from pydantic import BaseModel, ValidationError

from wendy.errors import InvalidTransition, JobNotFound, JobStoreError, TemplateError
from wendy.jobs.models import JobStatus, RecordingFormat
from wendy.render.template import write_template
from wendy.storage.artifacts import COMPRESSED_EXT
from wendy.validation.composition import describe_errors, is_performance_id, validate_composition

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be set by main.py during lifespan
_store = None
_artifacts = None
_scheduler = None


def set_store(store):
    global _store
    _store = store


def set_artifacts(artifacts):
    global _artifacts
    _artifacts = artifacts


def set_scheduler(scheduler):
    global _scheduler
    _scheduler = scheduler


class JobStatusUpdate(BaseModel):
    status: JobStatus


def _require_store():
    if _store is None:
        raise HTTPException(status_code=503, detail="Job store not initialized")
    return _store


def _require_id(value: int, name: str = "id") -> int:
    if not is_performance_id(value):
        raise HTTPException(status_code=400, detail=f"{name} must be a positive int in the path param")
    return value


@router.post("/render/performance/{performance_id}", status_code=201)
async def render_performance(performance_id: int, payload: Dict[str, Any] = Body(...)):
    """Validate a composition, write its template, and queue a render job."""
    store = _require_store()
    _require_id(performance_id, "performanceId")

    try:
        composition = validate_composition(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"error": "Must provide a valid composition", "errors": describe_errors(exc)},
        )

    try:
        input_file = write_template(
            composition, tmp_dir=_artifacts.tmp_dir if _artifacts else None
        )
    except TemplateError as exc:
        logger.error("Error writing template to disk: %s", exc)
        raise HTTPException(status_code=500, detail="Unable to create template")

    name = uuid.uuid4().hex
    try:
        job = await store.create_job(input_file=input_file, out_file=name + COMPRESSED_EXT)
        task = await store.create_task(name=name, performance_id=performance_id, job_id=job.id)
    except JobStoreError as exc:
        logger.error("Unexpected error creating render job: %s", exc)
        raise HTTPException(status_code=500, detail="Unexpected server error while creating job")

    logger.info("Queued job %s for performance %s", job.id, performance_id)
    if _scheduler is not None:
        _scheduler.wake()
    return {"created": {"resource": "task-async-render", "id": task.id}}


@router.get("/job/{job_id}")
async def get_job(job_id: int):
    store = _require_store()
    _require_id(job_id)
    try:
        job = await store.get_job(job_id)
    except JobStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if job is None:
        raise HTTPException(status_code=404, detail=f"No job found for id {job_id}")
    return job.model_dump(mode="json")


@router.patch("/job/{job_id}")
async def update_job(job_id: int, update: JobStatusUpdate):
    store = _require_store()
    _require_id(job_id)
    try:
        job = await store.update_status(job_id, update.status)
    except JobNotFound:
        raise HTTPException(status_code=404, detail=f"No job found for id {job_id}")
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except JobStoreError as exc:
        logger.error("Unexpected error updating job %s: %s", job_id, exc)
        raise HTTPException(status_code=500, detail="Unexpected server error while updating job")
    return {"updated": {"resource": "job-wendy-render-raw", "id": job.id}}


@router.delete("/job/{job_id}", status_code=204)
async def delete_job(job_id: int):
    store = _require_store()
    _require_id(job_id)
    try:
        await store.delete_job(job_id)
    except JobNotFound:
        raise HTTPException(status_code=404, detail=f"No job found for id {job_id}")
    except JobStoreError as exc:
        logger.error("Unexpected error deleting job %s: %s", job_id, exc)
        raise HTTPException(status_code=500, detail="Unexpected error while removing a job record")
    return Response(status_code=204)


@router.get("/download/performance/{performance_id}")
async def download_performance(performance_id: int, format: RecordingFormat = RecordingFormat.MP3):
    """Public URL of a performance's recording in the requested format."""
    store = _require_store()
    _require_id(performance_id, "performanceId")
    if format == RecordingFormat.AIFF:
        # The lossless render is deleted after transcoding; its row is a record only
        raise HTTPException(status_code=404, detail="aiff recordings are not kept for download")
    try:
        recording = await store.find_recording(performance_id, format)
    except JobStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if recording is None:
        raise HTTPException(
            status_code=400,
            detail=f"No recording with that format found for performance {performance_id}",
        )
    if _artifacts is None:
        return recording.uri
    return _artifacts.public_url(recording.uri)


# Registered last: a single-segment catch-all for the public recording URLs
@router.get("/{filename}")
async def serve_recording(filename: str):
    """Serve a finished mp3 from the output directory."""
    if _artifacts is None:
        raise HTTPException(status_code=503, detail="Artifact store not initialized")
    if not filename.endswith(COMPRESSED_EXT) or filename.startswith("."):
        raise HTTPException(status_code=404, detail="Not found")

    path = _artifacts.recording_path(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    return FileResponse(path, media_type="audio/mpeg", filename=filename)
