"""Application-level configuration models."""

from __future__ import annotations

from pydantic import Field

from docbridge.config.base import BaseConfig
from docbridge.config.conversion import ConversionConfig
from docbridge.config.storage import RetrievalConfig, StorageConfig
from docbridge.config.web import WebConfig


class AppConfig(BaseConfig):
    """Top-level runtime configuration for the entire application."""

    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    storage: StorageConfig | None = Field(None, description="Source document location and credentials")
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig, description="Download retry policy")
    conversion: ConversionConfig = Field(default_factory=ConversionConfig, description="PDF synthesis settings")
    web: WebConfig | None = Field(None, description="HTTP service settings")


__all__ = ["AppConfig"]
