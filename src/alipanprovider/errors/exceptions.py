"""Exception hierarchy and HTTP error mapping for alipanprovider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class AlipanProviderError(Exception):
    """
    Base exception for alipanprovider.

    Attributes:
        details: Optional structured information (e.g., HTTP status, document id).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class NotAuthenticatedError(AlipanProviderError):
    """Raised when no refresh token is stored; the user must enter one first."""


class CredentialExchangeFailedError(AlipanProviderError):
    """Raised when exchanging the refresh token for an access token fails."""


class ListingTruncatedError(AlipanProviderError):
    """Raised when a paginated listing never returns an empty marker."""


class DownloadFailedError(AlipanProviderError):
    """Raised when a ranged download request fails."""


class UploadFailedError(AlipanProviderError):
    """Raised when the upload PUT or the complete-upload call fails."""


class NoUploadSessionError(AlipanProviderError):
    """Raised when a document is opened for write without a prior create."""


class RemoteCreateFailedError(AlipanProviderError):
    """Raised when the remote create-with-folders call fails."""


class RemoteDeleteFailedError(AlipanProviderError):
    """Raised when moving a document to the recycle bin fails."""


class InvalidStateError(AlipanProviderError):
    """Raised when the library is used in an invalid state (e.g., write after close)."""


class AuthError(AlipanProviderError):
    """Raised when the remote API rejects the access token (HTTP 401)."""


class PermissionError(AlipanProviderError):
    """Raised when access is denied (HTTP 403)."""


class InvalidArgumentError(AlipanProviderError):
    """Raised when request arguments are invalid (HTTP 400, etc.)."""


class NotFoundError(AlipanProviderError):
    """Raised when a remote file or drive is not found (HTTP 404)."""


class ConflictError(AlipanProviderError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(AlipanProviderError):
    """Raised when rate-limited (HTTP 429)."""


class NetworkError(AlipanProviderError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(AlipanProviderError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to alipanprovider exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_NOT_FOUND_REASONS: tuple[str, ...] = (
    "NotFound.File",
    "NotFound.Drive",
    "NotFound.FileId",
    "NotFound.ParentFileId",
)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> AlipanProviderError:
    """
    Map an HTTP error to an alipanprovider exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError
        - 404 -> NotFoundError (also any 4xx whose reason code is a NotFound.* code)
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.reason in _NOT_FOUND_REASONS and 400 <= info.status_code <= 499:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)
