"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from xymon_gateway import __version__
from xymon_gateway.config import settings
from xymon_gateway.errors import GatewayError
from xymon_gateway.models.responses import ErrorResponse
from xymon_gateway.routers import control, schedule, server, status
from xymon_gateway.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    log.info(
        "gateway.started",
        version=__version__,
        xymond_host=settings.xymond_host,
        xymond_port=settings.xymond_port,
    )
    yield
    log.info("gateway.stopped")


app = FastAPI(
    title="Xymon Gateway",
    description="HTTP resource API for the Xymon daemon line protocol",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", path=request.url.path, error=exc.code, detail=exc.message)
    else:
        log.info("request.rejected", path=request.url.path, error=exc.code, detail=exc.message)
    body = ErrorResponse(detail=exc.message, error=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


app.include_router(server.router)
app.include_router(status.router)
app.include_router(control.router)
app.include_router(schedule.router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "xymon_gateway.main:app",
        host=settings.gateway_host,
        port=settings.gateway_port,
        log_config=None,
    )
