"""
Liveness and health endpoints.
"""

import time
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..models.common import HealthStatus
from ..dependencies.state import get_model_manager
from gemini_gateway.models.manager import ModelManager

API_VERSION = "1.0.0"

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

@router.get("/", response_class=PlainTextResponse)
async def liveness():
    """Plain-text liveness check."""
    return "OK"

@router.get("/health", response_model=HealthStatus)
async def health_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Health check with per-task call statistics.

    Does not call the upstream provider, so it stays cheap enough for
    load balancer health checks.
    """
    return HealthStatus(
        status="healthy",
        version=API_VERSION,
        uptime=time.time() - _server_start_time,
        tasks=model_manager.get_stats()
    )
