"""Connection-per-request relay to the Xymon daemon.

The daemon reads one request until the client half-closes, writes its reply
and then closes the connection; there is no length prefix and no pipelining.
Every relay therefore opens a fresh TCP connection, writes the command line,
signals EOF and streams the reply until the daemon hangs up.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import AsyncIterator, Optional

from xymon_gateway.config import Settings, settings
from xymon_gateway.errors import ConnectFailed, RelayTimeout
from xymon_gateway.models.commands import Command
from xymon_gateway.utils.logging import get_logger

log = get_logger(__name__)


class RelayState(str, Enum):
    idle = "idle"
    connecting = "connecting"
    sent = "sent"
    streaming = "streaming"
    closed = "closed"
    failed = "failed"


_TERMINAL = frozenset({RelayState.closed, RelayState.failed})


class RelaySession:
    """One command/reply exchange over a dedicated connection.

    Use as an async context manager; the connection is released on every
    exit path, including cancellation by the consumer.
    """

    def __init__(
        self,
        command: Command,
        host: str,
        port: int,
        *,
        connect_timeout: float,
        read_timeout: float,
        chunk_size: int,
    ) -> None:
        self.command = command
        self.host = host
        self.port = port
        self.state = RelayState.idle
        self.bytes_received = 0
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._chunk_size = chunk_size
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    # ── lifecycle ─────────────────────────────────────────────────────

    async def open(self) -> RelaySession:
        """Connect and send the command line, then half-close."""
        if self.state != RelayState.idle:
            raise RuntimeError(f"relay session already {self.state.value}")
        self.state = RelayState.connecting
        log.info(
            "relay.connecting",
            host=self.host,
            port=self.port,
            operation=self.command.operation,
        )
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError:
            self._fail("connect")
            raise RelayTimeout(
                f"timed out connecting to xymond at {self.host}:{self.port}",
            ) from None
        except OSError as exc:
            self._fail("connect", error=str(exc))
            raise ConnectFailed(
                f"cannot connect to xymond at {self.host}:{self.port}: {exc}",
            ) from exc
        except asyncio.CancelledError:
            self._fail("connect", cancelled=True)
            raise

        try:
            self._writer.write(self.command.encode())
            await asyncio.wait_for(self._writer.drain(), timeout=self._read_timeout)
            if self._writer.can_write_eof():
                self._writer.write_eof()
        except asyncio.TimeoutError:
            self._fail("send")
            raise RelayTimeout("timed out sending command to xymond") from None
        except OSError as exc:
            self._fail("send", error=str(exc))
            raise ConnectFailed(f"connection to xymond lost while sending: {exc}") from exc
        except asyncio.CancelledError:
            self._fail("send", cancelled=True)
            raise

        self.state = RelayState.sent
        return self

    async def read_chunk(self) -> bytes:
        """Next piece of the reply, or ``b""`` once the daemon has closed."""
        if self.state in _TERMINAL:
            return b""
        if self._reader is None:
            raise RuntimeError("relay session is not open")
        try:
            data = await asyncio.wait_for(
                self._reader.read(self._chunk_size),
                timeout=self._read_timeout,
            )
        except asyncio.TimeoutError:
            self._fail("read")
            raise RelayTimeout(
                f"xymond sent nothing for {self._read_timeout:g}s",
            ) from None
        except OSError as exc:
            self._fail("read", error=str(exc))
            raise ConnectFailed(f"connection to xymond lost while reading: {exc}") from exc
        except asyncio.CancelledError:
            self._fail("read", cancelled=True)
            raise

        self.state = RelayState.streaming
        if data:
            self.bytes_received += len(data)
            return data

        self.state = RelayState.closed
        await self._close_transport()
        log.info(
            "relay.closed",
            operation=self.command.operation,
            bytes=self.bytes_received,
        )
        return b""

    async def aclose(self) -> None:
        """Release the connection; a session not yet drained counts as failed."""
        if self.state in _TERMINAL:
            return
        if self.state != RelayState.idle:
            log.warning(
                "relay.abandoned",
                operation=self.command.operation,
                state=self.state.value,
                bytes=self.bytes_received,
            )
        self._fail(None)

    # ── helpers ───────────────────────────────────────────────────────

    def _fail(self, phase: Optional[str], *, cancelled: bool = False, **kw) -> None:
        """Force-close the connection and mark the session failed."""
        self.state = RelayState.failed
        if cancelled:
            log.warning(
                "relay.cancelled",
                phase=phase,
                operation=self.command.operation,
                bytes=self.bytes_received,
            )
        elif phase is not None:
            log.error(
                "relay.failed",
                phase=phase,
                host=self.host,
                port=self.port,
                operation=self.command.operation,
                **kw,
            )
        if self._writer is not None:
            self._writer.transport.abort()
            self._writer = None
        self._reader = None

    async def _close_transport(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # Peer already gone; the socket is closed either way
            pass

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    async def __aenter__(self) -> RelaySession:
        return await self.open()

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class XymonClient:
    """Factory for relay sessions against the configured daemon."""

    def __init__(self, cfg: Settings | None = None) -> None:
        self._cfg = cfg or settings

    @property
    def address(self) -> tuple[str, int]:
        return self._cfg.xymond_host, self._cfg.xymond_port

    def session(self, command: Command) -> RelaySession:
        return RelaySession(
            command,
            self._cfg.xymond_host,
            self._cfg.xymond_port,
            connect_timeout=self._cfg.xymond_connect_timeout_seconds,
            read_timeout=self._cfg.xymond_read_timeout_seconds,
            chunk_size=self._cfg.xymond_read_chunk_bytes,
        )

    async def open(self, command: Command) -> RelaySession:
        """Return a session whose command has already been sent."""
        return await self.session(command).open()

    async def relay(self, command: Command) -> AsyncIterator[bytes]:
        """Stream the reply to *command*; the connection closes with the iterator."""
        async with self.session(command) as session:
            async for chunk in session:
                yield chunk


# ── Singleton instance ────────────────────────────────────────────────────

xymon_client = XymonClient()
