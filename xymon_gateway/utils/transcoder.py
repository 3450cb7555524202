"""Streaming transcoding of daemon replies.

Replies arrive as arbitrary byte chunks. In raw mode they are forwarded
as-is; in structured mode they are reframed into newline-delimited records,
split on the daemon's field delimiter and serialised to JSON piece by piece,
so the HTTP response starts flowing before the daemon has finished.
"""

from __future__ import annotations

import codecs
import json
import re
from enum import Enum
from typing import Any, AsyncIterator, Optional

from pydantic import BaseModel, ValidationError

from xymon_gateway.errors import TranscodeFailure
from xymon_gateway.models.operations import OutputShape
from xymon_gateway.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_DELIMITER = "|"
DEFAULT_MAX_LINE_BYTES = 16 * 1024 * 1024


class OutputFormat(str, Enum):
    raw = "raw"
    structured = "structured"


# ---------------------------------------------------------------------------
# Field decoding
# ---------------------------------------------------------------------------

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_ESCAPES = {"p": "|", "n": "\n", "r": "\r", "t": "\t", "\\": "\\"}


def unescape_field(value: str) -> str:
    """Undo the daemon's escaping of free-text fields (``\\p`` is ``|``)."""
    if "\\" not in value:
        return value
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), value)


def decode_line(
    line: str,
    fields: tuple[str, ...] | list[str],
    delimiter: str = DEFAULT_DELIMITER,
) -> dict[str, str]:
    """Map one delimited reply line onto *fields*, in order.

    Missing trailing columns decode as ``""``; columns beyond the field list,
    and columns whose name was already used, are kept as ``field<N>``
    (1-based column position).
    """
    columns = line.split(delimiter)
    record: dict[str, str] = {}
    for idx, name in enumerate(fields):
        if name in record:
            name = f"field{idx + 1}"
        record[name] = unescape_field(columns[idx]) if idx < len(columns) else ""
    for idx in range(len(fields), len(columns)):
        record[f"field{idx + 1}"] = unescape_field(columns[idx])
    return record


def _text(line: bytes) -> str:
    return line.decode("utf-8", errors="replace").rstrip("\r")


# ---------------------------------------------------------------------------
# Reframing state machine
# ---------------------------------------------------------------------------


class LineReframer:
    """Split a chunked byte stream into complete lines.

    Only the unterminated tail of the current line is held between chunks.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES) -> None:
        self._pending = bytearray()
        self._max_line_bytes = max_line_bytes

    @property
    def pending(self) -> int:
        return len(self._pending)

    def feed(self, chunk: bytes) -> list[bytes]:
        """Add *chunk*; return the lines it completed (without newlines)."""
        self._pending += chunk
        if b"\n" not in chunk:
            self._check()
            return []
        *lines, tail = bytes(self._pending).split(b"\n")
        self._pending = bytearray(tail)
        self._check()
        return lines

    def flush(self) -> list[bytes]:
        """Return the final unterminated line, if any."""
        if not self._pending:
            return []
        tail = bytes(self._pending)
        self._pending.clear()
        return [tail]

    def _check(self) -> None:
        if len(self._pending) > self._max_line_bytes:
            raise TranscodeFailure(
                f"reply line exceeds {self._max_line_bytes} bytes",
            )


class _JsonStringWriter:
    """Incrementally encode bytes as the inside of a JSON string.

    Multi-byte characters split across chunks are reassembled, and trailing
    newlines are held back so the finished string never ends with one.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._held = ""

    def _emit(self, text: str) -> bytes:
        text = self._held + text
        body = text.rstrip("\r\n")
        self._held = text[len(body):]
        if not body:
            return b""
        return json.dumps(body)[1:-1].encode("ascii")

    def feed(self, chunk: bytes) -> bytes:
        return self._emit(self._decoder.decode(chunk))

    def finish(self) -> bytes:
        out = self._emit(self._decoder.decode(b"", final=True))
        self._held = ""
        return out


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------


async def passthrough(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    async for chunk in chunks:
        yield chunk


def _coerce(record: dict[str, str], model: Optional[type[BaseModel]]) -> dict[str, Any]:
    if model is None:
        return record
    try:
        return model.model_validate(record).model_dump()
    except ValidationError as exc:
        log.warning(
            "transcode.bad_record",
            model=model.__name__,
            errors=exc.error_count(),
        )
        return record


async def encode_records(
    chunks: AsyncIterator[bytes],
    fields: tuple[str, ...] | list[str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    record_model: Optional[type[BaseModel]] = None,
) -> AsyncIterator[bytes]:
    """Reply lines -> JSON array of field objects, one element per line."""
    reframer = LineReframer(max_line_bytes)
    first = True

    def _element(raw_line: bytes) -> bytes:
        nonlocal first
        record = _coerce(decode_line(_text(raw_line), fields, delimiter), record_model)
        sep = b"" if first else b","
        first = False
        return sep + json.dumps(record).encode("utf-8")

    yield b"["
    async for chunk in chunks:
        out = b"".join(_element(line) for line in reframer.feed(chunk) if line.strip())
        if out:
            yield out
    out = b"".join(_element(line) for line in reframer.flush() if line.strip())
    if out:
        yield out
    yield b"]"


async def encode_record(
    chunks: AsyncIterator[bytes],
    fields: tuple[str, ...] | list[str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    body_field: str = "msg",
) -> AsyncIterator[bytes]:
    """Header line + message body -> one JSON object.

    The first line is decoded with *fields*; everything after it is
    streamed into *body_field*. An empty reply produces ``{}``.
    """
    it = chunks.__aiter__()
    head = bytearray()
    rest = b""
    while True:
        try:
            chunk = await it.__anext__()
        except StopAsyncIteration:
            break
        head += chunk
        idx = head.find(b"\n")
        if idx >= 0:
            rest = bytes(head[idx + 1:])
            del head[idx:]
            break
        if len(head) > max_line_bytes:
            raise TranscodeFailure(f"reply line exceeds {max_line_bytes} bytes")

    if not head.strip():
        # Drain whatever is left so the caller sees a clean end of stream
        async for _ in it:
            pass
        yield b"{}"
        return

    record = decode_line(_text(bytes(head)), fields, delimiter)
    record.pop(body_field, None)
    prefix = json.dumps(record)[:-1]
    sep = ", " if record else ""
    yield f'{prefix}{sep}"{body_field}": "'.encode("utf-8")

    writer = _JsonStringWriter()
    out = writer.feed(rest)
    if out:
        yield out
    async for chunk in it:
        out = writer.feed(chunk)
        if out:
            yield out
    yield writer.finish() + b'"}'


async def encode_text(
    chunks: AsyncIterator[bytes],
    *,
    key: str = "result",
) -> AsyncIterator[bytes]:
    """Whole reply -> ``{"result": "<text>"}``, streamed."""
    writer = _JsonStringWriter()
    yield b"{" + json.dumps(key).encode("utf-8") + b': "'
    async for chunk in chunks:
        out = writer.feed(chunk)
        if out:
            yield out
    yield writer.finish() + b'"}'


def transcode(
    chunks: AsyncIterator[bytes],
    fmt: OutputFormat,
    fields: tuple[str, ...] | list[str] = (),
    *,
    shape: OutputShape = OutputShape.records,
    delimiter: str = DEFAULT_DELIMITER,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    record_model: Optional[type[BaseModel]] = None,
) -> AsyncIterator[bytes]:
    """Pick the encoder for *fmt* and *shape* and wrap *chunks* with it."""
    if fmt == OutputFormat.raw:
        return passthrough(chunks)
    if shape == OutputShape.records:
        return encode_records(
            chunks,
            fields,
            delimiter=delimiter,
            max_line_bytes=max_line_bytes,
            record_model=record_model,
        )
    if shape == OutputShape.record:
        return encode_record(
            chunks,
            fields,
            delimiter=delimiter,
            max_line_bytes=max_line_bytes,
        )
    return encode_text(chunks)
