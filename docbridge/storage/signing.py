"""AWS Signature Version 4 signing for single-object GET requests.

The helpers at module level are pure functions so they can be exercised with
fixed timestamps; :class:`CredentialSigner` combines them into presigned URLs
or signed header sets for one :class:`~docbridge.storage.models.ObjectLocator`.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping
from urllib.parse import quote

from loguru import logger

from .keys import encode_key
from .models import Credentials, ObjectLocator, SignedRequest

ALGORITHM = "AWS4-HMAC-SHA256"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
DEFAULT_EXPIRES = 3600
MAX_EXPIRES = 604800

STRATEGY_PRESIGNED = "presigned-url"
STRATEGY_SIGNED_HEADERS = "signed-headers"
STRATEGY_BASIC_AUTH = "basic-auth"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def amz_timestamp(moment: datetime) -> tuple[str, str]:
    """Return ``(amz_date, date_stamp)`` in ISO-8601 basic format."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    amz_date = moment.strftime("%Y%m%dT%H%M%SZ")
    return amz_date, amz_date[:8]


def _uri_encode(value: str) -> str:
    return quote(value, safe="-_.~")


def canonical_query_string(params: Mapping[str, str]) -> str:
    pairs = sorted((_uri_encode(name), _uri_encode(value)) for name, value in params.items())
    return "&".join(f"{name}={value}" for name, value in pairs)


def canonical_headers(headers: Mapping[str, str]) -> tuple[str, str]:
    """Return ``(canonical_headers, signed_headers)`` for ``headers``."""

    normalised = sorted((name.lower().strip(), " ".join(value.split())) for name, value in headers.items())
    if "host" not in {name for name, _ in normalised}:
        raise ValueError("Canonical headers must include 'host'")
    block = "".join(f"{name}:{value}\n" for name, value in normalised)
    signed = ";".join(name for name, _ in normalised)
    return block, signed


def canonical_request(
    method: str,
    canonical_uri: str,
    query_string: str,
    headers_block: str,
    signed_headers: str,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    return "\n".join(
        [method.upper(), canonical_uri, query_string, headers_block, signed_headers, payload_hash]
    )


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f"{date_stamp}/{region}/{service}/aws4_request"


def string_to_sign(amz_date: str, scope: str, request: str) -> str:
    digest = hashlib.sha256(request.encode("utf-8")).hexdigest()
    return "\n".join([ALGORITHM, amz_date, scope, digest])


def _hmac(key: bytes, data: str) -> bytes:
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def compute_signature(signing_key: bytes, to_sign: str) -> str:
    return hmac.new(signing_key, to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


class CredentialSigner:
    """Produce SigV4 presigned URLs and header sets for GET/HEAD requests."""

    def __init__(
        self,
        credentials: Credentials,
        region: str,
        *,
        service: str = "s3",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.credentials = credentials
        self.region = region
        self.service = service
        self._clock = clock

    # ------------------------------------------------------------------
    def object_url(self, locator: ObjectLocator) -> str:
        return f"https://{locator.host}/{encode_key(locator.key)}"

    def presign(
        self,
        locator: ObjectLocator,
        *,
        expires: int = DEFAULT_EXPIRES,
        now: datetime | None = None,
        method: str = "GET",
    ) -> SignedRequest:
        """Build a presigned URL valid for ``expires`` seconds."""

        if not 1 <= expires <= MAX_EXPIRES:
            raise ValueError(f"Presigned URL expiry must be between 1 and {MAX_EXPIRES} seconds")

        moment = now or self._clock()
        amz_date, date_stamp = amz_timestamp(moment)
        scope = credential_scope(date_stamp, self._region_for(locator), self.service)
        canonical_uri = f"/{encode_key(locator.key)}"

        params = {
            "X-Amz-Algorithm": ALGORITHM,
            "X-Amz-Credential": f"{self.credentials.access_key_id}/{scope}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires),
            "X-Amz-SignedHeaders": "host",
        }
        if self.credentials.session_token:
            params["X-Amz-Security-Token"] = self.credentials.session_token

        query = canonical_query_string(params)
        headers_block, signed_headers = canonical_headers({"host": locator.host})
        request = canonical_request(method, canonical_uri, query, headers_block, signed_headers)
        signature = self._sign(date_stamp, locator, amz_date, scope, request)

        url = f"https://{locator.host}{canonical_uri}?{query}&X-Amz-Signature={signature}"
        logger.debug("Presigned {} URL for {} (expires in {}s)", method, locator, expires)
        return SignedRequest(
            method=method,
            url=url,
            headers={},
            strategy=STRATEGY_PRESIGNED,
            expiry=_as_utc(moment) + timedelta(seconds=expires),
        )

    def sign_headers(
        self,
        locator: ObjectLocator,
        *,
        method: str = "GET",
        now: datetime | None = None,
    ) -> SignedRequest:
        """Build an ``Authorization`` header set for a single request."""

        moment = now or self._clock()
        amz_date, date_stamp = amz_timestamp(moment)
        scope = credential_scope(date_stamp, self._region_for(locator), self.service)
        canonical_uri = f"/{encode_key(locator.key)}"

        headers = {
            "Host": locator.host,
            "X-Amz-Content-Sha256": UNSIGNED_PAYLOAD,
            "X-Amz-Date": amz_date,
        }
        if self.credentials.session_token:
            headers["X-Amz-Security-Token"] = self.credentials.session_token

        headers_block, signed_headers = canonical_headers(headers)
        request = canonical_request(method, canonical_uri, "", headers_block, signed_headers)
        signature = self._sign(date_stamp, locator, amz_date, scope, request)

        authorization = (
            f"{ALGORITHM} Credential={self.credentials.access_key_id}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        outgoing = {name: value for name, value in headers.items() if name != "Host"}
        outgoing["Authorization"] = authorization
        return SignedRequest(
            method=method,
            url=f"https://{locator.host}{canonical_uri}",
            headers=outgoing,
            strategy=STRATEGY_SIGNED_HEADERS,
        )

    def basic_auth(self, locator: ObjectLocator, *, method: str = "GET") -> SignedRequest:
        """Last-resort request carrying HTTP basic credentials."""

        token = base64.b64encode(
            f"{self.credentials.access_key_id}:{self.credentials.secret_access_key}".encode("utf-8")
        ).decode("ascii")
        return SignedRequest(
            method=method,
            url=self.object_url(locator),
            headers={"Authorization": f"Basic {token}"},
            strategy=STRATEGY_BASIC_AUTH,
        )

    # ------------------------------------------------------------------
    def _region_for(self, locator: ObjectLocator) -> str:
        return locator.region or self.region

    def _sign(
        self,
        date_stamp: str,
        locator: ObjectLocator,
        amz_date: str,
        scope: str,
        request: str,
    ) -> str:
        key = derive_signing_key(
            self.credentials.secret_access_key,
            date_stamp,
            self._region_for(locator),
            self.service,
        )
        return compute_signature(key, string_to_sign(amz_date, scope, request))


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


__all__ = [
    "ALGORITHM",
    "UNSIGNED_PAYLOAD",
    "DEFAULT_EXPIRES",
    "STRATEGY_PRESIGNED",
    "STRATEGY_SIGNED_HEADERS",
    "STRATEGY_BASIC_AUTH",
    "CredentialSigner",
    "amz_timestamp",
    "canonical_query_string",
    "canonical_headers",
    "canonical_request",
    "credential_scope",
    "string_to_sign",
    "derive_signing_key",
    "compute_signature",
]
