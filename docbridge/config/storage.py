"""Object storage and retrieval configuration models."""

from __future__ import annotations

from pydantic import Field, field_validator

from docbridge.config.base import BaseConfig
from docbridge.config.utils import resolve_env_reference
from docbridge.storage.models import Credentials, ObjectLocator


class StorageConfig(BaseConfig):
    """Location of the source document and the credentials used to read it."""

    bucket: str = Field(..., min_length=1, description="S3 bucket holding the document")
    key: str = Field(..., min_length=1, description="Object key of the document")
    region: str = Field("us-east-1", min_length=1, description="AWS region of the bucket")
    access_key_id: str = Field(..., description="Access key id or 'env:VAR_NAME' reference")
    secret_access_key: str = Field(..., description="Secret access key or 'env:VAR_NAME' reference")
    session_token: str | None = Field(
        None,
        description="Optional session token or 'env:VAR_NAME' reference",
    )

    @field_validator("key")
    @classmethod
    def _strip_leading_slash(cls, key: str) -> str:
        stripped = key.lstrip("/")
        if not stripped:
            raise ValueError("Object key must not be empty")
        return stripped

    def locator(self, *, key: str | None = None) -> ObjectLocator:
        return ObjectLocator(bucket=self.bucket, key=key or self.key, region=self.region)

    def credentials(self) -> Credentials:
        """Resolve ``env:`` references and build the session credentials."""

        access_key = resolve_env_reference(self.access_key_id)
        secret_key = resolve_env_reference(self.secret_access_key)
        token = resolve_env_reference(self.session_token, required=False)
        if not access_key or not secret_key:
            raise EnvironmentError("Storage credentials resolved to an empty value")
        return Credentials(
            access_key_id=access_key,
            secret_access_key=secret_key,
            session_token=token,
        )


class RetrievalConfig(BaseConfig):
    """Retry and timeout settings for the download strategies."""

    max_attempts: int = Field(3, ge=1, description="Attempts per strategy before moving on")
    backoff_seconds: float = Field(1.0, ge=0, description="Linear backoff step between attempts")
    timeout: float = Field(30.0, gt=0, description="Per-request timeout in seconds")
    presign_expires: int = Field(
        3600,
        ge=1,
        le=604800,
        description="Lifetime of presigned URLs in seconds",
    )


__all__ = ["StorageConfig", "RetrievalConfig"]
