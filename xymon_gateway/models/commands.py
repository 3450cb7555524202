"""Command-related data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class RequestParams(BaseModel):
    """Concrete values pulled from one HTTP request."""

    path: dict[str, str] = Field(default_factory=dict)
    query: list[tuple[str, str]] = Field(default_factory=list)
    body: Optional[str] = None


class Command(BaseModel):
    """One fully encoded daemon request line."""

    operation: str
    text: str

    model_config = {"frozen": True}

    def encode(self) -> bytes:
        return f"{self.text}\n".encode("utf-8")

    def __str__(self) -> str:
        return self.text
