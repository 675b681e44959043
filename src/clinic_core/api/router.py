"""Top-level router: health checks and metadata at the root, feature routes under ``/api/v1``.

The health and ``/info`` paths are in the default tenant-exempt list, so
they answer without a tenant header.
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_core import __version__
from clinic_core.api.dependencies import DBSession
from clinic_core.config import settings
from clinic_core.core.auth.routes import router as auth_router
from clinic_core.core.jobs.registry import check_arq_pool
from clinic_core.modules import discover_modules


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """``checks`` maps each dependency to "ok" or the error class that failed it."""

    status: str
    checks: dict[str, str]


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return type(e).__name__
    return "ok"


health_router = APIRouter(tags=["health"])


@health_router.get("/health/live", response_model=LivenessResponse, summary="Liveness check")
async def liveness() -> LivenessResponse:
    """200 while the process can serve requests; touches no dependency."""
    return LivenessResponse(status="alive")


@health_router.get("/health/ready", response_model=ReadinessResponse, summary="Readiness check")
async def readiness(db: DBSession) -> JSONResponse:
    """503 with ``status="degraded"`` unless PostgreSQL and Redis both answer."""
    checks = {
        "database": await _check_database(db),
        "redis": await check_arq_pool(),
    }
    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )


@health_router.get("/info", summary="Application info")
async def info() -> dict[str, Any]:
    """Version, environment, and how clients select their clinic."""
    return {
        "app": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "tenant_header": settings.tenant_header_name,
        "tenant_query_param": settings.tenant_query_param,
    }


v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(auth_router)
for module_router in discover_modules():
    v1_router.include_router(module_router)

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(v1_router)
