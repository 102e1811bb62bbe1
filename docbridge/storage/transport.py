"""HTTP transport used by the download strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol
from xml.etree import ElementTree as ET

import requests
from loguru import logger

from .errors import AuthError, NetworkError, is_auth_failure
from .models import SignedRequest

USER_AGENT = "DocBridge/0.1"
ACCEPT = "application/pdf,*/*"


@dataclass(slots=True)
class TransportResponse:
    """Structured HTTP response: status code, headers and raw body."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> str | None:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None


class HttpTransport(Protocol):
    def send(self, request: SignedRequest, *, timeout: float) -> TransportResponse:
        """Send ``request`` once. Raise :class:`NetworkError` on transport failure."""

    def close(self) -> None:
        """Release any pooled connections."""


def parse_s3_error_code(body: bytes) -> str | None:
    """Extract ``<Code>`` from an S3 XML error document, if present."""

    if not body or b"<Error" not in body[:512]:
        return None
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None
    code = root.findtext("Code")
    return code.strip() if code else None


def raise_for_status(response: TransportResponse, request: SignedRequest) -> None:
    """Translate a non-2xx response into :class:`AuthError` or :class:`NetworkError`."""

    if response.ok:
        return
    error_code = parse_s3_error_code(response.body)
    detail = f"{response.status_code} {response.reason}".strip()
    if error_code:
        detail = f"{detail} ({error_code})"
    message = f"{request.strategy} download failed: {detail}"
    if is_auth_failure(response.status_code, error_code):
        raise AuthError(message, status_code=response.status_code, error_code=error_code)
    raise NetworkError(message, status_code=response.status_code, error_code=error_code)


class RequestsTransport:
    """:class:`HttpTransport` backed by a shared :class:`requests.Session`."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def send(self, request: SignedRequest, *, timeout: float) -> TransportResponse:
        headers = {"Accept": ACCEPT, **request.headers}
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=headers,
                timeout=timeout,
            )
        except requests.Timeout as exc:
            raise NetworkError(f"{request.strategy} request timed out after {timeout}s: {exc}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{request.strategy} request failed: {exc}") from exc

        logger.debug(
            "{} {} -> {} ({} bytes)",
            request.method,
            request.url[:100],
            response.status_code,
            len(response.content),
        )
        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            reason=response.reason or "",
        )

    def close(self) -> None:
        self.session.close()


__all__ = [
    "TransportResponse",
    "HttpTransport",
    "RequestsTransport",
    "parse_s3_error_code",
    "raise_for_status",
]
