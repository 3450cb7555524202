"""Scheduled command endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from xymon_gateway.services.dispatch import relay_request

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("")
async def list_scheduled(request: Request) -> StreamingResponse:
    """Pending tasks as ``{id, timestamp, sender, command}`` objects."""
    return await relay_request("schedule_list", request)


@router.delete("/{id}")
async def cancel_scheduled(id: str, request: Request) -> StreamingResponse:
    return await relay_request("schedule_cancel", request)


@router.post("/{timestamp}")
async def add_scheduled(timestamp: str, request: Request) -> StreamingResponse:
    """Run the command in the request body at epoch *timestamp*."""
    return await relay_request("schedule_add", request)
