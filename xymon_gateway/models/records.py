"""Typed records decoded from daemon replies."""

from __future__ import annotations

from pydantic import BaseModel


class ScheduledTaskRecord(BaseModel):
    """One entry of the daemon's scheduled-task listing.

    Columns beyond the known four arrive as ``field<N>`` and are kept.
    """

    id: int
    timestamp: int
    sender: str = ""
    command: str = ""

    model_config = {"extra": "allow"}
