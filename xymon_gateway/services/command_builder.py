"""Encode an operation and its request values into one daemon command line.

Every operation is described by the registry in
:mod:`xymon_gateway.models.operations`; this module only knows how to apply
each slot encoding, so new operations are added to the table, not here.
"""

from __future__ import annotations

import re
from typing import Optional

from xymon_gateway.errors import InvalidParameter
from xymon_gateway.models.commands import Command, RequestParams
from xymon_gateway.models.operations import (
    LIST_QUERY_KEYS,
    Encoding,
    Operation,
    ParamSlot,
    ParamSource,
)

_DURATION_RE = re.compile(r"^(?:-1|\d+[smhd]?)$")
_WHITESPACE_RE = re.compile(r"\s")

UNTIL_CLEARED = "-1"


def normalize_list(value: str) -> str:
    """``"a, b,,c,a"`` -> ``"a,b,c"`` (the daemon's field-list syntax).

    Repeated names are dropped so every requested field decodes to its own key.
    """
    parts = (part.strip() for part in value.split(","))
    return ",".join(dict.fromkeys(part for part in parts if part))


def merge_query(query: list[tuple[str, str]]) -> list[tuple[str, str]]:
    """Normalise list-valued keys, folding repeats into the first occurrence.

    Other keys keep their position and multiplicity.
    """
    merged: list[tuple[str, str]] = []
    list_pos: dict[str, int] = {}
    for key, value in query:
        if key not in LIST_QUERY_KEYS:
            merged.append((key, value))
            continue
        value = normalize_list(value)
        if key in list_pos:
            idx = list_pos[key]
            joined = normalize_list(f"{merged[idx][1]},{value}")
            merged[idx] = (key, joined)
        else:
            list_pos[key] = len(merged)
            merged.append((key, value))
    return merged


def resolve_fields(op: Operation, params: RequestParams) -> tuple[str, ...]:
    """Field names used to decode the reply: the caller's list or the default."""
    if op.fields_param:
        for key, value in merge_query(params.query):
            if key == op.fields_param and value:
                return tuple(value.split(","))
    return op.fields


def _query_value(params: RequestParams, key: str) -> Optional[str]:
    for k, v in params.query:
        if k == key:
            return v
    return None


def _lookup(slot: ParamSlot, params: RequestParams) -> str:
    if slot.source == ParamSource.path:
        return params.path.get(slot.key) or ""
    if slot.source == ParamSource.query:
        return (_query_value(params, slot.key) or "").strip()
    if slot.source == ParamSource.body:
        return (params.body or "").strip()
    return slot.key


def _check_token(slot: ParamSlot, value: str) -> str:
    if slot.required and not value:
        raise InvalidParameter(f"missing required parameter '{slot.key or slot.source.value}'")
    if _WHITESPACE_RE.search(value):
        raise InvalidParameter(f"parameter '{slot.key}' must not contain whitespace")
    return value


def build_command(op: Operation, params: RequestParams) -> Command:
    """Build the command text for *op* from concrete request values.

    Raises InvalidParameter when a required value is missing or a value
    cannot be encoded; unknown query keys are forwarded untouched.
    """
    tokens: list[str] = [op.verb]

    for slot in op.slots:
        if slot.source == ParamSource.literal:
            tokens.append(slot.key)
            continue

        if slot.encoding == Encoding.query_all:
            tokens.extend(f"{k}={v}" for k, v in merge_query(params.query))
            continue

        value = _lookup(slot, params)

        if slot.encoding == Encoding.text:
            if slot.required and not value:
                raise InvalidParameter("message body is required")
            tokens.append(value)
        elif slot.encoding == Encoding.duration:
            value = value or slot.default or UNTIL_CLEARED
            if not _DURATION_RE.match(value):
                raise InvalidParameter(
                    f"invalid {slot.key} '{value}': expected N or N followed by s, m, h or d",
                )
            tokens.append(value)
        elif slot.encoding == Encoding.dotted:
            tokens[-1] = f"{tokens[-1]}.{_check_token(slot, value)}"
        elif slot.encoding == Encoding.keyword:
            if _check_token(slot, value):
                tokens.append(f"{slot.key}={value}")
        else:
            tokens.append(_check_token(slot, value))

    return Command(operation=op.name, text=" ".join(tokens))
