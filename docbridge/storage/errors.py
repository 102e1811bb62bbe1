"""Retrieval error taxonomy.

Every failure carries the structured HTTP status (when one exists) and the S3
error code parsed from the response body, so callers never have to inspect
human-readable messages to tell an authentication problem from a flaky
network.
"""

from __future__ import annotations

from dataclasses import dataclass

AUTH_STATUS_CODES = frozenset({401, 403})
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# S3 error codes that mean the credentials or signature were rejected.
AUTH_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AllAccessDisabled",
        "AuthorizationHeaderMalformed",
        "ExpiredToken",
        "InvalidAccessKeyId",
        "InvalidToken",
        "SignatureDoesNotMatch",
        "TokenRefreshRequired",
    }
)

AUTH_TROUBLESHOOTING = (
    "Verify IAM permissions for s3:GetObject",
    "Check bucket policy allows access",
    "Ensure bucket and file exist",
    "Verify CORS configuration on S3 bucket",
)
NOT_FOUND_TROUBLESHOOTING = (
    "Verify the file exists in the S3 bucket",
    "Check the file path is correct",
    "Ensure you're using the right bucket",
)
NETWORK_TROUBLESHOOTING = (
    "Check your internet connection",
    "Verify AWS region is correct",
    "Try again in a few minutes",
)


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """Outcome of the last try of a single download strategy."""

    strategy: str
    url: str | None
    tries: int
    error: str
    status_code: int | None = None
    error_code: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "strategy": self.strategy,
            "url": self.url,
            "tries": self.tries,
            "error": self.error,
            "status_code": self.status_code,
            "error_code": self.error_code,
        }


class RetrievalError(RuntimeError):
    """Base class for failures while downloading a document."""

    default_troubleshooting: tuple[str, ...] = NETWORK_TROUBLESHOOTING

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        attempts: tuple[AttemptRecord, ...] = (),
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.status_code = status_code
        self.error_code = error_code
        self.attempts = attempts

    @property
    def retryable(self) -> bool:
        return False

    @property
    def troubleshooting(self) -> tuple[str, ...]:
        return self.default_troubleshooting

    def with_attempts(self, attempts: tuple[AttemptRecord, ...]) -> "RetrievalError":
        self.attempts = attempts
        return self


class AuthError(RetrievalError):
    """Credentials or signature were rejected; never retried."""

    default_troubleshooting = AUTH_TROUBLESHOOTING


class NetworkError(RetrievalError):
    """Transport failure or an HTTP status that is not an auth rejection."""

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code in RETRYABLE_STATUS_CODES

    @property
    def troubleshooting(self) -> tuple[str, ...]:
        if self.status_code == 404:
            return NOT_FOUND_TROUBLESHOOTING
        return NETWORK_TROUBLESHOOTING


class AllStrategiesFailedError(RetrievalError):
    """Every download strategy was exhausted without success."""

    @property
    def troubleshooting(self) -> tuple[str, ...]:
        codes = {attempt.status_code for attempt in self.attempts}
        if codes == {404}:
            return NOT_FOUND_TROUBLESHOOTING
        return NETWORK_TROUBLESHOOTING


class OperationCancelledError(RetrievalError):
    """The caller cancelled the operation through its cancellation token."""

    default_troubleshooting = ()


def is_auth_failure(status_code: int | None, error_code: str | None) -> bool:
    if status_code in AUTH_STATUS_CODES:
        return True
    return error_code in AUTH_ERROR_CODES


__all__ = [
    "AUTH_ERROR_CODES",
    "AUTH_STATUS_CODES",
    "RETRYABLE_STATUS_CODES",
    "AttemptRecord",
    "RetrievalError",
    "AuthError",
    "NetworkError",
    "AllStrategiesFailedError",
    "OperationCancelledError",
    "is_auth_failure",
]
