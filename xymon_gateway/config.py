"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is driven by environment variables."""

    # Daemon connection
    xymond_host: str = "127.0.0.1"
    xymond_port: int = 1984

    # Relay timeouts (seconds)
    xymond_connect_timeout_seconds: float = Field(default=10.0, gt=0)
    xymond_read_timeout_seconds: float = Field(default=30.0, gt=0)

    # Reply framing
    xymond_read_chunk_bytes: int = Field(default=65536, gt=0)
    xymond_max_line_bytes: int = Field(default=16 * 1024 * 1024, gt=0)
    xymond_field_delimiter: str = Field(default="|", min_length=1)

    # Listen address for the console entry point
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 8081

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton – import this from anywhere
settings = Settings()
