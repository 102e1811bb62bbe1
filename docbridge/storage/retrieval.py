"""Multi-strategy retrieval of a single S3 object.

Strategies are attempted strictly in order: presigned URL, SigV4 signed
headers, then HTTP basic auth. Retryable failures are retried with a linear
backoff before moving on; an authentication rejection stops the whole run
because the remaining strategies use the same credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from loguru import logger

from .cancellation import CancellationToken
from .errors import (
    AllStrategiesFailedError,
    AttemptRecord,
    AuthError,
    NetworkError,
    RetrievalError,
    is_auth_failure,
)
from .models import DownloadResult, ObjectLocator, ProgressEvent, SignedRequest
from .signing import DEFAULT_EXPIRES, CredentialSigner
from .transport import HttpTransport, RequestsTransport, raise_for_status

ProgressCallback = Callable[[ProgressEvent], None]

DEFAULT_CONTENT_TYPE = "application/octet-stream"
CONNECTION_PROBE_KEY = "test-connection-file.txt"


class DownloadStrategy(Protocol):
    name: str
    preparing_message: str
    downloading_message: str

    def build_request(self, signer: CredentialSigner, locator: ObjectLocator) -> SignedRequest:
        """Return a freshly signed request for ``locator``."""


@dataclass(frozen=True, slots=True)
class PresignedUrlStrategy:
    expires: int = DEFAULT_EXPIRES
    name: str = "presigned-url"
    preparing_message: str = "Creating pre-signed URL..."
    downloading_message: str = "Downloading via pre-signed URL..."

    def build_request(self, signer: CredentialSigner, locator: ObjectLocator) -> SignedRequest:
        return signer.presign(locator, expires=self.expires)


@dataclass(frozen=True, slots=True)
class SignedHeadersStrategy:
    name: str = "signed-headers"
    preparing_message: str = "Creating direct signed request..."
    downloading_message: str = "Downloading with signed headers..."

    def build_request(self, signer: CredentialSigner, locator: ObjectLocator) -> SignedRequest:
        return signer.sign_headers(locator)


@dataclass(frozen=True, slots=True)
class BasicAuthStrategy:
    name: str = "basic-auth"
    preparing_message: str = "Trying simple authentication..."
    downloading_message: str = "Downloading with basic auth..."

    def build_request(self, signer: CredentialSigner, locator: ObjectLocator) -> SignedRequest:
        return signer.basic_auth(locator)


def default_strategies(*, presign_expires: int = DEFAULT_EXPIRES) -> tuple[DownloadStrategy, ...]:
    return (
        PresignedUrlStrategy(expires=presign_expires),
        SignedHeadersStrategy(),
        BasicAuthStrategy(),
    )


class ProgressReporter:
    """Forward progress to a callback, never letting the percentage go backwards."""

    def __init__(self, callback: ProgressCallback | None = None, *, start: int = 0, end: int = 100) -> None:
        self._callback = callback
        self._start = start
        self._end = end
        self._current = start

    def emit(self, percentage: float, message: str, signed_url: str | None = None) -> None:
        span = self._end - self._start
        scaled = self._start + span * max(0.0, min(float(percentage), 100.0)) / 100.0
        self._current = max(self._current, int(round(scaled)))
        if self._callback is not None:
            self._callback(ProgressEvent(self._current, message, signed_url))

    def note(self, message: str, signed_url: str | None = None) -> None:
        """Report a status message without advancing the percentage."""

        if self._callback is not None:
            self._callback(ProgressEvent(self._current, message, signed_url))

    def scoped(self, start: int, end: int) -> "ProgressReporter":
        """Return a reporter mapping 0-100 onto ``[start, end]`` of this one."""

        child = ProgressReporter(self._forward, start=start, end=end)
        child._current = max(start, self._current)
        return child

    def _forward(self, event: ProgressEvent) -> None:
        self._current = max(self._current, event.percentage)
        if self._callback is not None:
            self._callback(ProgressEvent(self._current, event.message, event.signed_url))


@dataclass(frozen=True, slots=True)
class ConnectionCheck:
    success: bool
    message: str
    status_code: int | None = None


class RetrievalCoordinator:
    """Download one object by walking the strategy list."""

    def __init__(
        self,
        signer: CredentialSigner,
        transport: HttpTransport | None = None,
        *,
        strategies: Sequence[DownloadStrategy] | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.signer = signer
        self.transport = transport or RequestsTransport()
        self.strategies: tuple[DownloadStrategy, ...] = tuple(strategies or default_strategies())
        self.max_attempts = max_attempts
        self.backoff_seconds = max(backoff_seconds, 0.0)
        self.timeout = timeout
        self._sleep = sleep

    def download(
        self,
        locator: ObjectLocator,
        *,
        on_progress: ProgressCallback | ProgressReporter | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DownloadResult:
        token = cancel_token or CancellationToken()
        progress = on_progress if isinstance(on_progress, ProgressReporter) else ProgressReporter(on_progress)
        attempts: list[AttemptRecord] = []

        logger.info("Downloading {} ({} strategies)", locator, len(self.strategies))
        progress.emit(5, "Initializing download...")

        for index, strategy in enumerate(self.strategies, start=1):
            token.raise_if_cancelled("retrieval")
            progress.emit(5 + index * 5, f"Trying download method {index}...")

            last_error: NetworkError | None = None
            tries = 0
            for attempt in range(1, self.max_attempts + 1):
                token.raise_if_cancelled("retrieval")
                tries = attempt
                try:
                    return self._attempt(strategy, locator, progress, index)
                except AuthError as exc:
                    attempts.append(_record(strategy.name, exc, tries))
                    logger.error("Download method {} ({}) rejected credentials: {}", index, strategy.name, exc)
                    raise exc.with_attempts(tuple(attempts))
                except NetworkError as exc:
                    last_error = exc
                    logger.warning(
                        "Download method {} ({}) attempt {}/{} failed: {}",
                        index,
                        strategy.name,
                        attempt,
                        self.max_attempts,
                        exc,
                    )
                    if not exc.retryable or attempt == self.max_attempts:
                        break
                    self._backoff(attempt, token, progress, strategy.name)

            if last_error is not None:
                attempts.append(_record(strategy.name, last_error, tries))

        summary = "; ".join(f"{record.strategy}: {record.error}" for record in attempts)
        raise AllStrategiesFailedError(
            f"All download methods failed for {locator}: {summary}",
            status_code=attempts[-1].status_code if attempts else None,
            attempts=tuple(attempts),
        )

    def check_connection(self, bucket: str, region: str | None = None) -> ConnectionCheck:
        """Probe the bucket with short-lived HEAD requests.

        A presigned URL is tried first, then signed headers. A 200 or 404 from
        either proves the credentials are accepted; 401/403 means they are
        not. The result of the last probe is reported when none succeeds.
        """

        locator = ObjectLocator(bucket=bucket, key=CONNECTION_PROBE_KEY, region=region or self.signer.region)
        probes = (
            ("pre-signed URL", self.signer.presign(locator, expires=60, method="HEAD")),
            ("signed headers", self.signer.sign_headers(locator, method="HEAD")),
        )
        failure = ConnectionCheck(False, "Connection test failed")
        for label, request in probes:
            try:
                response = self.transport.send(request, timeout=self.timeout)
            except NetworkError as exc:
                logger.warning("Connection probe via {} failed: {}", label, exc)
                failure = ConnectionCheck(False, f"Connection test failed: {exc}")
                continue

            if response.status_code in (200, 404):
                return ConnectionCheck(True, f"AWS credentials valid ({label})", response.status_code)
            logger.warning("Connection probe via {} returned {}", label, response.status_code)
            if is_auth_failure(response.status_code, None):
                message = f"Access denied to bucket '{bucket}' ({response.status_code})"
            else:
                message = f"Unexpected response from bucket '{bucket}': {response.status_code} {response.reason}"
            failure = ConnectionCheck(False, message.strip(), response.status_code)
        return failure

    def close(self) -> None:
        self.transport.close()

    # ------------------------------------------------------------------
    def _attempt(
        self,
        strategy: DownloadStrategy,
        locator: ObjectLocator,
        progress: ProgressReporter,
        index: int,
    ) -> DownloadResult:
        progress.emit(20, strategy.preparing_message)
        request = strategy.build_request(self.signer, locator)
        progress.emit(40, strategy.downloading_message, request.url)

        try:
            response = self.transport.send(request, timeout=self.timeout)
            raise_for_status(response, request)
        except RetrievalError as exc:
            exc.url = request.url
            raise

        progress.emit(80, "Processing downloaded data...", request.url)
        body = response.body
        result = DownloadResult(
            body=body,
            content_type=response.content_type or DEFAULT_CONTENT_TYPE,
            size_bytes=len(body),
            source_url=request.url,
            strategy=strategy.name,
        )
        progress.emit(100, "Download completed", request.url)
        logger.info(
            "Downloaded {} with method {} ({}): {} bytes, {}",
            locator,
            index,
            strategy.name,
            result.size_bytes,
            result.content_type,
        )
        return result

    def _backoff(
        self,
        attempt: int,
        token: CancellationToken,
        progress: ProgressReporter,
        strategy_name: str,
    ) -> None:
        delay = self.backoff_seconds * attempt
        progress.note(f"Retrying {strategy_name} in {delay:.1f}s (attempt {attempt + 1}/{self.max_attempts})...")
        if self._sleep is not None:
            self._sleep(delay)
        else:
            token.wait(delay)
        token.raise_if_cancelled("retry backoff")


def _record(strategy: str, error: RetrievalError, tries: int) -> AttemptRecord:
    return AttemptRecord(
        strategy=strategy,
        url=error.url,
        tries=tries,
        error=str(error),
        status_code=error.status_code,
        error_code=error.error_code,
    )


__all__ = [
    "DownloadStrategy",
    "PresignedUrlStrategy",
    "SignedHeadersStrategy",
    "BasicAuthStrategy",
    "default_strategies",
    "ProgressCallback",
    "ProgressReporter",
    "ConnectionCheck",
    "RetrievalCoordinator",
]
