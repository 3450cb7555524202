"""Glue between HTTP requests and the relay/transcode pipeline."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from xymon_gateway.config import Settings, settings
from xymon_gateway.errors import GatewayError
from xymon_gateway.models.commands import RequestParams
from xymon_gateway.models.operations import get_operation
from xymon_gateway.services.command_builder import build_command, resolve_fields
from xymon_gateway.services.relay import RelaySession, xymon_client
from xymon_gateway.utils.logging import get_logger
from xymon_gateway.utils.transcoder import OutputFormat, transcode

log = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

# Ranges that match text/plain, by specificity
_TEXT_RANGES = {"text/plain": 2, "text/*": 1, "*/*": 0}


def negotiate_format(accept: str | None, raw_capable: bool) -> OutputFormat:
    """Raw text when the operation allows it and the client accepts text/plain.

    The most specific range matching text/plain decides, so
    ``text/plain;q=0, */*`` still refuses raw text.
    """
    if not raw_capable:
        return OutputFormat.structured
    if not accept or not accept.strip():
        return OutputFormat.raw
    best: tuple[int, float] | None = None
    for media_range in accept.split(","):
        parts = [p.strip() for p in media_range.split(";")]
        specificity = _TEXT_RANGES.get(parts[0].lower())
        if specificity is None:
            continue
        quality = 1.0
        for param in parts[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if best is None or (specificity, quality) > best:
            best = (specificity, quality)
    if best is not None and best[1] > 0:
        return OutputFormat.raw
    return OutputFormat.structured


async def params_from_request(request: Request) -> RequestParams:
    """Path segments, ordered query pairs and body text of *request*."""
    raw_body = await request.body()
    return RequestParams(
        path={k: str(v) for k, v in request.path_params.items()},
        query=list(request.query_params.multi_items()),
        body=raw_body.decode("utf-8", errors="replace") if raw_body else None,
    )


async def _reply_chunks(first: bytes, session: RelaySession) -> AsyncIterator[bytes]:
    if first:
        yield first
    async for chunk in session:
        yield chunk


async def _guarded(
    body: AsyncIterator[bytes], operation: str, session: RelaySession,
) -> AsyncIterator[bytes]:
    """Log failures after the status line was sent; always release the session."""
    try:
        async for chunk in body:
            yield chunk
    except GatewayError as exc:
        log.error("dispatch.aborted", operation=operation, error=exc.code, detail=exc.message)
        raise
    except (asyncio.CancelledError, GeneratorExit):
        log.warning("dispatch.client_gone", operation=operation)
        raise
    finally:
        await session.aclose()


async def dispatch(
    name: str,
    params: RequestParams,
    *,
    accept: str | None = None,
    cfg: Settings | None = None,
) -> StreamingResponse:
    """Relay operation *name* and stream its (transcoded) reply.

    Errors raised before the first reply chunk arrives propagate as
    GatewayError so they can become a proper HTTP status.
    """
    _cfg = cfg or settings
    op = get_operation(name)
    command = build_command(op, params)
    fields = resolve_fields(op, params)
    fmt = negotiate_format(accept, op.raw_capable)
    log.info("dispatch.command", operation=op.name, verb=op.verb, format=fmt.value)

    session = await xymon_client.open(command)
    try:
        first = await session.read_chunk()
    except BaseException:
        await session.aclose()
        raise

    body = transcode(
        _reply_chunks(first, session),
        fmt,
        fields,
        shape=op.shape,
        delimiter=_cfg.xymond_field_delimiter,
        max_line_bytes=_cfg.xymond_max_line_bytes,
        record_model=op.record_model,
    )
    return StreamingResponse(
        _guarded(body, op.name, session),
        media_type=TEXT_MEDIA_TYPE if fmt == OutputFormat.raw else JSON_MEDIA_TYPE,
        # Runs even if the body iterator was never started
        background=BackgroundTask(session.aclose),
    )


async def relay_request(name: str, request: Request) -> StreamingResponse:
    """Route handler helper: dispatch *name* with the values of *request*."""
    params = await params_from_request(request)
    return await dispatch(name, params, accept=request.headers.get("accept"))
