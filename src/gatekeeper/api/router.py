"""Root API router with health endpoints and module mounting."""

from typing import Any

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gatekeeper.core.auth import auth_router
from gatekeeper.core.cache import StoreUnavailableError
from gatekeeper.core.rate_limit import rate_limit_router


logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    checks: dict[str, str]


# Create root API router
api_router = APIRouter()

# Health check endpoints (no /api prefix)
health_router = APIRouter(tags=["health"])


@health_router.get(
    "/health/live",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns 200 if the process is running.",
)
async def liveness() -> HealthResponse:
    """Liveness probe endpoint."""
    return HealthResponse(status="alive")


@health_router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Checks coordination store connectivity.",
)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint."""
    checks: dict[str, str] = {}

    try:
        await request.app.state.store.ping()
        checks["store"] = "ok"
    except StoreUnavailableError as exc:
        logger.warning("readiness_store_unavailable", error=exc.reason)
        checks["store"] = "unavailable"

    all_ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK
        if all_ok
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_ok else "degraded",
            "checks": checks,
        },
    )


@health_router.get(
    "/info",
    summary="Application info",
    description="Returns application metadata.",
)
async def info(request: Request) -> dict[str, Any]:
    """Application info endpoint."""
    settings = request.app.state.settings
    return {
        "app": settings.app_name,
        "environment": settings.environment,
        "debug": settings.debug,
    }


# API router for the gated endpoints
public_router = APIRouter(prefix="/api")
public_router.include_router(auth_router)
public_router.include_router(rate_limit_router)

api_router.include_router(health_router)
api_router.include_router(public_router)
