"""Wendy render service - FastAPI application plus the render scheduler."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wendy.config import settings
from wendy.api.v1.router import v1_router, jobs_router_compat
from wendy.api.v1.health import router as health_root_router
from wendy.api.v1 import jobs as jobs_api
from wendy.jobs.memory_store import InMemoryJobStore
from wendy.jobs.store import JobStore
from wendy.jobs.supabase_store import SupabaseJobStore
from wendy.logging_config import setup_logging
from wendy.render.executor import RenderExecutor
from wendy.scheduler.notify import PerformanceNotifier
from wendy.scheduler.poller import Scheduler
from wendy.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


def build_store(kind: Optional[str] = None) -> JobStore:
    kind = kind or settings.job_store
    if kind == "supabase":
        return SupabaseJobStore(pickup_order=settings.pickup_order)
    if kind == "memory":
        return InMemoryJobStore(pickup_order=settings.pickup_order)
    raise ValueError(f"Unknown job store '{kind}' (expected 'memory' or 'supabase')")


# Global scheduler reference
_scheduler = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    global _scheduler

    setup_logging()
    logger.info("Starting wendy render service on port %s", settings.app_port)
    logger.info("Job store: %s, output dir: %s", settings.job_store, settings.out_dir)

    store = build_store()
    artifacts = ArtifactStore()
    artifacts.ensure_dirs()
    executor = RenderExecutor(store, artifacts)
    _scheduler = Scheduler(store, executor, PerformanceNotifier())
    await _scheduler.start()

    # Wire store and scheduler into API endpoints
    jobs_api.set_store(store)
    jobs_api.set_artifacts(artifacts)
    jobs_api.set_scheduler(_scheduler)

    yield

    logger.info("Shutting down wendy render service")
    await _scheduler.stop()


app = FastAPI(
    title="Wendy Render Service",
    description="Renders compositions to audio with an external synthesizer and transcoder",
    version="0.9.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(health_root_router, tags=["health"])  # GET /health, POST /smoke at root
app.include_router(v1_router)  # All /api/v1/* endpoints
app.include_router(jobs_router_compat)  # /render, /job, /download at root


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wendy.main:app", host="0.0.0.0", port=settings.app_port)
