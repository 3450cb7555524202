"""Common API response models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str


class VersionResponse(BaseModel):
    name: str
    version: str


class ErrorResponse(BaseModel):
    detail: str
    error: str
