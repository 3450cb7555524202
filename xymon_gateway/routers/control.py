"""State-changing endpoints: enable/disable, notify, drop and rename."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from xymon_gateway.services.dispatch import relay_request

router = APIRouter(tags=["control"])


@router.post("/enable/{hostname}/{testname}")
async def enable_test(hostname: str, testname: str, request: Request) -> StreamingResponse:
    """Re-enable a disabled test. ``*`` as testname means every test of the host."""
    return await relay_request("enable", request)


@router.post("/disable/{hostname}/{testname}")
async def disable_test(
    hostname: str,
    testname: str,
    request: Request,
    duration: Optional[str] = Query(
        None,
        description="N, or N followed by s/m/h/d. Omit (-1) to disable until re-enabled",
    ),
) -> StreamingResponse:
    """Disable a test; the request body is the reason."""
    return await relay_request("disable", request)


@router.post("/notify/{hostname}/{testname}")
async def notify_test(hostname: str, testname: str, request: Request) -> StreamingResponse:
    """Send the request body as an informational message."""
    return await relay_request("notify", request)


@router.delete("/drop/{hostname}")
@router.delete("/drop/{hostname}/{testname}")
async def drop_data(hostname: str, request: Request) -> StreamingResponse:
    """Remove stored data for a host, or for one of its tests."""
    return await relay_request("drop", request)


@router.post("/rename/{source}/{target}")
async def rename_host(source: str, target: str, request: Request) -> StreamingResponse:
    return await relay_request("rename_host", request)


@router.post("/rename/{hostname}/{source}/{target}")
async def rename_test(
    hostname: str, source: str, target: str, request: Request,
) -> StreamingResponse:
    return await relay_request("rename_test", request)
