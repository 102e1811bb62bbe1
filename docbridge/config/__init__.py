"""Configuration namespace for docbridge."""

from __future__ import annotations

from .app import AppConfig
from .base import BaseConfig, load_config
from .conversion import ConversionConfig, LayoutConfig
from .storage import RetrievalConfig, StorageConfig
from .utils import mask_secret, resolve_env_reference
from .web import WebConfig

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "ConversionConfig",
    "LayoutConfig",
    "RetrievalConfig",
    "StorageConfig",
    "WebConfig",
    "mask_secret",
    "resolve_env_reference",
]
