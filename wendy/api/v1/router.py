"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from wendy.api.v1.health import router as health_router
from wendy.api.v1.jobs import router as jobs_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(jobs_router, tags=["jobs"])

# Compatibility shim: mounts /render, /job, /download at root for existing clients
jobs_router_compat = APIRouter()
jobs_router_compat.include_router(jobs_router, tags=["jobs"])
