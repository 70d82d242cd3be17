"""
Health check endpoint.

Lightweight probe for load balancers and uptime monitors. Also reports how
the access log is wired so operators can confirm buffering and format.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends

from accesslog.config import Settings, get_settings

router = APIRouter(tags=["Health"])

# Record server start time for uptime calculation
_start_time = time.time()


@router.get(
    "/health",
    summary="Health Check",
    description="Returns service health and the active access-log configuration.",
    response_model=dict[str, Any],
)
async def health_check(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Return service health, version, uptime, and access-log wiring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime_seconds": round(time.time() - _start_time, 2),
        "access_log": {
            "format": settings.access_log_format or "default",
            "stream": settings.access_log_stream,
            "buffer": settings.access_log_buffer,
        },
    }
