"""Value objects shared by the signing and retrieval layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Mapping


@dataclass(frozen=True, slots=True)
class ObjectLocator:
    """Identifies a single object in S3."""

    bucket: str
    key: str
    region: str

    @property
    def host(self) -> str:
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"

    @property
    def filename(self) -> str:
        return PurePosixPath(self.key).name or self.key

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Session credentials; read-only and safe to share between threads."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.access_key_id or not self.secret_access_key:
            raise ValueError("Credentials require both an access key id and a secret access key")


@dataclass(frozen=True, slots=True)
class SignedRequest:
    """A request ready to be sent exactly once by a download strategy."""

    method: str
    url: str
    headers: Mapping[str, str]
    strategy: str
    expiry: datetime | None = None


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Raw bytes of a downloaded object plus transport metadata."""

    body: bytes = field(repr=False)
    content_type: str
    size_bytes: int
    source_url: str
    strategy: str


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress notification emitted while a document is being retrieved."""

    percentage: int
    message: str
    signed_url: str | None = None


__all__ = [
    "ObjectLocator",
    "Credentials",
    "SignedRequest",
    "DownloadResult",
    "ProgressEvent",
]
