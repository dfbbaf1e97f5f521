"""Public error exports for alipanprovider."""

from __future__ import annotations

from .exceptions import (
    AlipanProviderError,
    ApiError,
    AuthError,
    ConflictError,
    CredentialExchangeFailedError,
    DownloadFailedError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    ListingTruncatedError,
    NetworkError,
    NotAuthenticatedError,
    NotFoundError,
    NoUploadSessionError,
    PermissionError,
    RateLimitError,
    RemoteCreateFailedError,
    RemoteDeleteFailedError,
    UploadFailedError,
    map_http_error,
)

__all__ = [
    "AlipanProviderError",
    "NotAuthenticatedError",
    "CredentialExchangeFailedError",
    "ListingTruncatedError",
    "DownloadFailedError",
    "UploadFailedError",
    "NoUploadSessionError",
    "RemoteCreateFailedError",
    "RemoteDeleteFailedError",
    "InvalidStateError",
    "AuthError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "NetworkError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
]
