"""
Health check endpoint.

GET /health - checks MongoDB connectivity and the storage root.
Rules:
- MongoDB failure → "unhealthy" (503) - no metadata, no service.
- Storage root missing or not writable → "unhealthy" (503) - uploads would fail.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

router = APIRouter(tags=["health"])

log = get_logger(__name__)


@router.get(
    "/health",
    responses={200: {"model": HealthResponse}, 503: {"model": HealthResponse}},
)
def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        request.app.state.db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.warning("health_check_failed", check="mongodb", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    root = request.app.state.storage.root
    if root.is_dir() and os.access(root, os.W_OK):
        checks["storage"] = "ok"
    else:
        log.warning("health_check_failed", check="storage", root=str(root))
        checks["storage"] = "error"
        overall = "unhealthy"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
