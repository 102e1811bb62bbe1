"""Base configuration model and TOML loader."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

ConfigT = TypeVar("ConfigT", bound="BaseConfig")


class BaseConfig(BaseModel):
    """Strict base model shared by every configuration section."""

    model_config = ConfigDict(extra="forbid")


def load_config(config_cls: type[ConfigT], path: Path) -> ConfigT:
    """Load ``path`` as TOML and validate it against ``config_cls``.

    Raises :class:`FileNotFoundError` when the file does not exist and
    :class:`pydantic.ValidationError` when the content does not match the model.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    return config_cls.model_validate(data)


__all__ = ["BaseConfig", "load_config"]
