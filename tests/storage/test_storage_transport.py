from __future__ import annotations

from typing import Any

import pytest
import requests

from docbridge.storage import AuthError, NetworkError, SignedRequest
from docbridge.storage.transport import RequestsTransport, parse_s3_error_code, raise_for_status
from tests.utils import S3_ACCESS_DENIED, S3_NO_SUCH_KEY, S3_SIGNATURE_MISMATCH, error, ok


@pytest.fixture()
def request_() -> SignedRequest:
    return SignedRequest(
        method="GET",
        url="https://example-documents.s3.eu-west-1.amazonaws.com/file.pdf",
        headers={"Authorization": "Basic abc"},
        strategy="basic-auth",
    )


def test_parse_s3_error_code() -> None:
    assert parse_s3_error_code(S3_ACCESS_DENIED) == "AccessDenied"
    assert parse_s3_error_code(b"not xml at all") is None
    assert parse_s3_error_code(b"<Error><Code>broken") is None
    assert parse_s3_error_code(b"") is None


def test_raise_for_status_accepts_success(request_: SignedRequest) -> None:
    raise_for_status(ok(b"%PDF-1.4"), request_)


@pytest.mark.parametrize("status_code", [401, 403])
def test_raise_for_status_maps_auth_statuses(request_: SignedRequest, status_code: int) -> None:
    with pytest.raises(AuthError) as excinfo:
        raise_for_status(error(status_code), request_)
    assert excinfo.value.status_code == status_code
    assert excinfo.value.retryable is False


def test_raise_for_status_uses_s3_error_code(request_: SignedRequest) -> None:
    with pytest.raises(AuthError) as excinfo:
        raise_for_status(error(400, S3_SIGNATURE_MISMATCH, "Bad Request"), request_)
    assert excinfo.value.error_code == "SignatureDoesNotMatch"


def test_raise_for_status_not_found_is_not_retryable(request_: SignedRequest) -> None:
    with pytest.raises(NetworkError) as excinfo:
        raise_for_status(error(404, S3_NO_SUCH_KEY, "Not Found"), request_)
    exc = excinfo.value
    assert exc.retryable is False
    assert exc.error_code == "NoSuchKey"
    assert "Verify the file exists in the S3 bucket" in exc.troubleshooting


@pytest.mark.parametrize("status_code", [429, 500, 503])
def test_raise_for_status_server_errors_are_retryable(request_: SignedRequest, status_code: int) -> None:
    with pytest.raises(NetworkError) as excinfo:
        raise_for_status(error(status_code), request_)
    assert excinfo.value.retryable is True


class _FakeResponse:
    def __init__(self, status_code: int, content: bytes, headers: dict[str, str]) -> None:
        self.status_code = status_code
        self.content = content
        self.headers = headers
        self.reason = "OK"


def test_requests_transport_sends_signed_headers(
    monkeypatch: pytest.MonkeyPatch,
    request_: SignedRequest,
) -> None:
    calls: dict[str, Any] = {}
    session = requests.Session()

    def fake_request(method: str, url: str, **kwargs: Any) -> _FakeResponse:
        calls.update(method=method, url=url, **kwargs)
        return _FakeResponse(200, b"%PDF-1.4", {"Content-Type": "application/pdf"})

    monkeypatch.setattr(session, "request", fake_request)
    response = RequestsTransport(session).send(request_, timeout=7.5)

    assert calls["method"] == "GET"
    assert calls["url"] == request_.url
    assert calls["timeout"] == 7.5
    assert calls["headers"]["Authorization"] == "Basic abc"
    assert calls["headers"]["Accept"] == "application/pdf,*/*"
    assert response.ok
    assert response.content_type == "application/pdf"
    assert response.body == b"%PDF-1.4"


@pytest.mark.parametrize("failure", [requests.Timeout("slow"), requests.ConnectionError("refused")])
def test_requests_transport_wraps_transport_failures(
    monkeypatch: pytest.MonkeyPatch,
    request_: SignedRequest,
    failure: requests.RequestException,
) -> None:
    session = requests.Session()

    def fake_request(*_: Any, **__: Any) -> None:
        raise failure

    monkeypatch.setattr(session, "request", fake_request)

    with pytest.raises(NetworkError) as excinfo:
        RequestsTransport(session).send(request_, timeout=1)
    assert excinfo.value.status_code is None
    assert excinfo.value.retryable is True
    assert excinfo.value.__cause__ is failure
