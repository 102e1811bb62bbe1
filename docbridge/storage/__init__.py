"""Signed retrieval of documents from S3."""

from __future__ import annotations

from .cancellation import CancellationToken
from .errors import (
    AllStrategiesFailedError,
    AttemptRecord,
    AuthError,
    NetworkError,
    OperationCancelledError,
    RetrievalError,
)
from .keys import encode_key
from .models import Credentials, DownloadResult, ObjectLocator, ProgressEvent, SignedRequest
from .retrieval import ConnectionCheck, ProgressReporter, RetrievalCoordinator, default_strategies
from .signing import CredentialSigner
from .transport import HttpTransport, RequestsTransport, TransportResponse

__all__ = [
    "AllStrategiesFailedError",
    "AttemptRecord",
    "AuthError",
    "CancellationToken",
    "ConnectionCheck",
    "CredentialSigner",
    "Credentials",
    "DownloadResult",
    "HttpTransport",
    "NetworkError",
    "ObjectLocator",
    "OperationCancelledError",
    "ProgressEvent",
    "ProgressReporter",
    "RequestsTransport",
    "RetrievalCoordinator",
    "RetrievalError",
    "SignedRequest",
    "TransportResponse",
    "default_strategies",
    "encode_key",
]
