"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("XYMOND_HOST", "127.0.0.1")
os.environ.setdefault("XYMOND_PORT", "1984")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from httpx import ASGITransport, AsyncClient

from tests.mock_xymond import MockXymonClient


@pytest.fixture
def mock_xymond():
    """Provide a fresh MockXymonClient."""
    return MockXymonClient()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(mock_xymond):
    """Async test client with the mock xymon client injected."""
    import xymon_gateway.services.dispatch as dispatch_mod
    import xymon_gateway.services.relay as relay_mod

    original = relay_mod.xymon_client
    relay_mod.xymon_client = mock_xymond
    dispatch_mod.xymon_client = mock_xymond

    from xymon_gateway.main import app as fastapi_app

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Restore
    relay_mod.xymon_client = original
    dispatch_mod.xymon_client = original


class FakeXymond:
    """Minimal in-process xymond: reads a request until EOF, then replies.

    ``stream_forever`` keeps writing board lines until the client goes away,
    which sets ``client_gone``.
    """

    def __init__(
        self,
        reply: bytes = b"",
        *,
        pieces: list[bytes] | None = None,
        delay: float = 0.0,
        stall: bool = False,
        stream_forever: bool = False,
    ) -> None:
        self.pieces = pieces if pieces is not None else ([reply] if reply else [])
        self.delay = delay
        self.stall = stall
        self.stream_forever = stream_forever
        self.received: list[bytes] = []
        self.connections = 0
        self.client_gone = asyncio.Event()
        self.server: asyncio.AbstractServer | None = None
        self.port = 0
        self._tasks: set[asyncio.Task] = set()

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.connections += 1
        self._tasks.add(asyncio.current_task())
        try:
            self.received.append(await reader.read())
            if self.delay:
                await asyncio.sleep(self.delay)
            for piece in self.pieces:
                writer.write(piece)
                await writer.drain()
            if self.stall:
                await asyncio.sleep(3600)
            while self.stream_forever:
                if writer.transport.is_closing():
                    break
                writer.write(b"hostX|cpu|green|||||||||ok\n" * 64)
                await writer.drain()
                await asyncio.sleep(0.01)
        except (ConnectionError, OSError):
            pass
        finally:
            self.client_gone.set()
            writer.close()

    async def start(self) -> "FakeXymond":
        self.server = await asyncio.start_server(self.handle, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]
        return self

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self.server is not None:
            self.server.close()


@pytest.fixture
async def fake_xymond():
    """Factory for in-process daemons; all are stopped at teardown."""
    started: list[FakeXymond] = []

    async def _make(*args, **kwargs) -> FakeXymond:
        srv = await FakeXymond(*args, **kwargs).start()
        started.append(srv)
        return srv

    yield _make
    for srv in started:
        await srv.stop()
