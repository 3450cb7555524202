"""Read-only status endpoints: board, logs, host info, client data."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from xymon_gateway.services.dispatch import relay_request

router = APIRouter(tags=["status"])


@router.get("/board")
@router.get("/xymondboard", include_in_schema=False)
async def get_board(
    request: Request,
    fields: Optional[str] = Query(
        None,
        description=(
            "Comma separated field list. Defaults to hostname, testname, color, "
            "flags, lastchange, logtime, validtime, acktime, disabletime, sender, "
            "cookie, line1"
        ),
    ),
    page: Optional[str] = Query(None, description="include only tests on PAGEPATH"),
    net: Optional[str] = Query(None, description="include only hosts in NETWORK"),
    ip: Optional[str] = Query(None, description="include only the host with IP"),
    host: Optional[str] = Query(None, description="include only HOSTNAME"),
    test: Optional[str] = Query(None, description="include only TESTNAME"),
    color: Optional[str] = Query(None, description="comma separated status colors"),
    tag: Optional[str] = Query(None, description="include only tests with TAGNAME"),
) -> StreamingResponse:
    """Status of every known test.

    All query parameters, including ones not listed here, are forwarded to
    the daemon as ``key=value`` filters in the order given.
    """
    return await relay_request("board", request)


@router.get("/log/{hostname}/{testname}")
@router.get("/xymondlog/{hostname}/{testname}", include_in_schema=False)
async def get_status_log(hostname: str, testname: str, request: Request) -> StreamingResponse:
    """The status log of a single test."""
    return await relay_request("log", request)


@router.get("/hostinfo")
async def get_hostinfo(
    request: Request,
    page: Optional[str] = Query(None),
    net: Optional[str] = Query(None),
    ip: Optional[str] = Query(None),
    host: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
) -> StreamingResponse:
    """Configuration of matching hosts; host tags appear as ``field3``, ``field4``..."""
    return await relay_request("hostinfo", request)


@router.get("/ghostlist")
@router.get("/ghosts", include_in_schema=False)
async def get_ghosts(request: Request) -> StreamingResponse:
    """Clients reporting to the daemon that are not in its host list."""
    return await relay_request("ghostlist", request)


@router.get("/clientlog/{hostname}")
@router.get("/clientlog/{hostname}/{section:path}")
async def get_client_log(hostname: str, request: Request) -> StreamingResponse:
    """Raw client message last sent by a host, optionally one section.

    Served as text/plain unless the client only accepts JSON.
    """
    return await relay_request("clientlog", request)


@router.get("/query/{hostname}/{testname}")
async def query_status(hostname: str, testname: str, request: Request) -> StreamingResponse:
    return await relay_request("query", request)
