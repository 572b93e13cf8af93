"""Health check endpoints.

- /health: component verification (catalog, templates, sign-in configuration)
- /liveness, /readiness: container health probes
"""

import time
from datetime import datetime, timezone
from typing import Literal

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from lessonboard import __version__
from lessonboard.api.schemas import (
    ComponentHealth,
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)
from lessonboard.core.rendering import TEMPLATES_DIR

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])

REQUIRED_TEMPLATES = (
    "base.html",
    "login.html",
    "video_detail.html",
    "not_found.html",
    "error.html",
)

# Track application start time for uptime calculation
_start_time: float = time.time()


def reset_start_time() -> None:
    """Reset the start time (for testing)."""
    global _start_time
    _start_time = time.time()


def _check_catalog(request: Request) -> ComponentHealth:
    """Check that the video catalog is loaded and holds valid records."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        return ComponentHealth(status="unhealthy", details={"error": "Catalog not loaded"})

    valid = len(catalog.list_videos())
    details = {"records": len(catalog), "videos": valid}
    if valid == 0:
        details["error"] = "Catalog has no valid videos"
        return ComponentHealth(status="unhealthy", details=details)
    return ComponentHealth(status="healthy", details=details)


def _check_templates() -> ComponentHealth:
    """Check that page templates are present."""
    missing = [name for name in REQUIRED_TEMPLATES if not (TEMPLATES_DIR / name).is_file()]
    if missing:
        return ComponentHealth(status="unhealthy", details={"missing": missing})
    return ComponentHealth(status="healthy", details={"templates": len(REQUIRED_TEMPLATES)})


def _check_auth(request: Request) -> ComponentHealth:
    """Check that sign-in is configured or anonymous access is enabled."""
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is not None:
        return ComponentHealth(status="healthy", details={"provider": provider.name})

    if getattr(request.app.state, "allow_anonymous", False):
        return ComponentHealth(status="healthy", details={"mode": "anonymous"})

    return ComponentHealth(
        status="unhealthy",
        details={"error": "Identity provider not configured"},
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All components healthy"},
        503: {"description": "One or more components unhealthy"},
    },
)
async def health_check(request: Request) -> JSONResponse:
    """
    Detailed health check endpoint.

    Returns HTTP 200 if all components are healthy,
    HTTP 503 if any component is unhealthy.
    """
    components = {
        "catalog": _check_catalog(request),
        "templates": _check_templates(),
        "auth": _check_auth(request),
    }

    all_healthy = all(c.status == "healthy" for c in components.values())
    overall_status: Literal["healthy", "unhealthy"] = "healthy" if all_healthy else "unhealthy"

    response = HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        components=components,
    )

    status_code = status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info(
        "health_check_completed",
        status=overall_status,
        components={k: v.status for k, v in components.items()},
    )

    return JSONResponse(content=response.model_dump(), status_code=status_code)


@router.get("/liveness", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """Liveness probe. Returns HTTP 200 while the process is alive."""
    return LivenessResponse(status="alive")


@router.get(
    "/readiness",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready to accept traffic"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_check(request: Request) -> JSONResponse:
    """
    Readiness probe.

    The service is ready once the catalog is loaded.
    """
    if _check_catalog(request).status != "healthy":
        response = ReadinessResponse(status="not_ready", ready=False, message="Catalog not loaded")
        return JSONResponse(
            content=response.model_dump(),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return JSONResponse(
        content=ReadinessResponse(status="ready", ready=True).model_dump(),
        status_code=status.HTTP_200_OK,
    )
