"""HTTP service configuration models."""

from __future__ import annotations

from pydantic import Field

from docbridge.config.base import BaseConfig


class WebConfig(BaseConfig):
    """Bind address for the PDF delivery service."""

    host: str = Field("127.0.0.1", min_length=1, description="Interface to bind")
    port: int = Field(8000, ge=1, le=65535, description="TCP port to bind")


__all__ = ["WebConfig"]
