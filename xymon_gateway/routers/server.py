"""Daemon liveness and gateway identity endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from xymon_gateway import __title__, __version__
from xymon_gateway.models.responses import HealthResponse, VersionResponse
from xymon_gateway.services.dispatch import relay_request

router = APIRouter(tags=["server"])


@router.get("/ping")
async def ping_daemon(request: Request) -> StreamingResponse:
    """Contact the daemon and report its version string."""
    return await relay_request("ping", request)


@router.get("/version", response_model=VersionResponse)
async def gateway_version() -> VersionResponse:
    return VersionResponse(name=__title__, version=__version__)


@router.get("/health", response_model=HealthResponse)
async def service_health() -> HealthResponse:
    """Basic liveness probe (does not contact the daemon)."""
    return HealthResponse(status="ok", version=__version__)
