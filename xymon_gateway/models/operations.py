"""Operation descriptors: how each HTTP resource maps to a daemon command."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from xymon_gateway.models.records import ScheduledTaskRecord


class ParamSource(str, Enum):
    path = "path"
    query = "query"
    body = "body"
    literal = "literal"


class Encoding(str, Enum):
    """How a slot's value becomes command text."""

    plain = "plain"            # the value as a token
    dotted = "dotted"          # joined onto the preceding token with "."
    keyword = "keyword"        # key=value, left out when empty
    duration = "duration"      # N or N{s,m,h,d}; default "-1"
    text = "text"              # trimmed free text, always the last token
    query_all = "query_all"    # every query pair as key=value, in request order


class OutputShape(str, Enum):
    records = "records"        # JSON array of field objects
    record = "record"          # one object: header line + message body
    text = "text"              # {"result": "..."}


class ParamSlot(BaseModel):
    source: ParamSource
    key: str = ""
    required: bool = True
    encoding: Encoding = Encoding.plain
    default: Optional[str] = None

    model_config = {"frozen": True}


class Operation(BaseModel):
    """Immutable descriptor of one daemon command verb and its parameters."""

    name: str
    verb: str
    slots: tuple[ParamSlot, ...] = ()
    shape: OutputShape = OutputShape.text
    fields: tuple[str, ...] = ()
    fields_param: Optional[str] = None
    raw_capable: bool = False
    record_model: Optional[type[BaseModel]] = None

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Well-known daemon field orderings
# ---------------------------------------------------------------------------

BOARD_FIELDS: tuple[str, ...] = (
    "hostname",
    "testname",
    "color",
    "flags",
    "lastchange",
    "logtime",
    "validtime",
    "acktime",
    "disabletime",
    "sender",
    "cookie",
    "line1",
)

LOG_FIELDS: tuple[str, ...] = (
    "hostname",
    "testname",
    "color",
    "flags",
    "lastchange",
    "logtime",
    "validtime",
    "acktime",
    "disabletime",
    "sender",
    "cookie",
    "ackmsg",
    "dismsg",
    "client",
)

HOSTINFO_FIELDS: tuple[str, ...] = ("hostname", "ip")
GHOST_FIELDS: tuple[str, ...] = ("hostname", "ip", "lastchange")
SCHEDULE_FIELDS: tuple[str, ...] = ("id", "timestamp", "sender", "command")

# Query keys whose value is a comma-separated list
LIST_QUERY_KEYS: frozenset[str] = frozenset({"fields", "color"})


# ---------------------------------------------------------------------------
# Slot shorthands
# ---------------------------------------------------------------------------

_HOST = ParamSlot(source=ParamSource.path, key="hostname")
_TEST = ParamSlot(source=ParamSource.path, key="testname", encoding=Encoding.dotted)
_FILTERS = ParamSlot(source=ParamSource.query, encoding=Encoding.query_all, required=False)


def _op(name: str, verb: str, *slots: ParamSlot, **kwargs) -> Operation:
    return Operation(name=name, verb=verb, slots=slots, **kwargs)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        _op(
            "board", "xymondboard", _FILTERS,
            shape=OutputShape.records, fields=BOARD_FIELDS, fields_param="fields",
        ),
        _op("log", "xymondlog", _HOST, _TEST, shape=OutputShape.record, fields=LOG_FIELDS),
        _op(
            "hostinfo", "hostinfo", _FILTERS,
            shape=OutputShape.records, fields=HOSTINFO_FIELDS,
        ),
        _op("ghostlist", "ghostlist", shape=OutputShape.records, fields=GHOST_FIELDS),
        _op("ping", "ping"),
        _op(
            "clientlog", "clientlog", _HOST,
            ParamSlot(
                source=ParamSource.path, key="section",
                required=False, encoding=Encoding.keyword,
            ),
            raw_capable=True,
        ),
        _op("query", "query", _HOST, _TEST),
        _op("enable", "enable", _HOST, _TEST),
        _op(
            "disable", "disable", _HOST, _TEST,
            ParamSlot(
                source=ParamSource.query, key="duration",
                required=False, encoding=Encoding.duration, default="-1",
            ),
            ParamSlot(source=ParamSource.body, required=False, encoding=Encoding.text),
        ),
        _op(
            "notify", "notify", _HOST, _TEST,
            ParamSlot(source=ParamSource.body, encoding=Encoding.text),
        ),
        _op(
            "drop", "drop", _HOST,
            ParamSlot(source=ParamSource.path, key="testname", required=False),
        ),
        _op(
            "rename_host", "rename",
            ParamSlot(source=ParamSource.path, key="source"),
            ParamSlot(source=ParamSource.path, key="target"),
        ),
        _op(
            "rename_test", "rename", _HOST,
            ParamSlot(source=ParamSource.path, key="source"),
            ParamSlot(source=ParamSource.path, key="target"),
        ),
        _op(
            "schedule_list", "schedule",
            shape=OutputShape.records, fields=SCHEDULE_FIELDS,
            record_model=ScheduledTaskRecord,
        ),
        _op(
            "schedule_cancel", "schedule",
            ParamSlot(source=ParamSource.literal, key="cancel"),
            ParamSlot(source=ParamSource.path, key="id"),
        ),
        _op(
            "schedule_add", "schedule",
            ParamSlot(source=ParamSource.path, key="timestamp"),
            ParamSlot(source=ParamSource.body, required=False, encoding=Encoding.text),
        ),
    )
}


def get_operation(name: str) -> Operation:
    op = OPERATIONS.get(name)
    if op is None:
        raise KeyError(f"Unknown operation: {name}")
    return op
