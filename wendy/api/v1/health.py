"""Health check endpoints."""

import platform
import shutil
import sys

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from wendy.config import settings

router = APIRouter()

APP_VERSION = "wendy-0.9.0"


@router.get("/health")
async def health_check():
    """Service health and availability of the external programs."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "renderer_available": shutil.which(settings.renderer_bin) is not None,
        "transcoder_available": shutil.which(settings.transcoder_bin) is not None,
        "job_store": settings.job_store,
        "python_version": sys.version,
        "platform": platform.platform(),
    }


@router.post("/smoke", response_class=PlainTextResponse)
async def smoke():
    return "puff"
