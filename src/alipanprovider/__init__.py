"""alipanprovider public API."""

from __future__ import annotations

from alipanprovider.auth import SessionManager
from alipanprovider.cache import DirectoryCache, UploadSessionTable
from alipanprovider.client import AliyunpanClient
from alipanprovider.config import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    ProviderSettings,
)
from alipanprovider.errors import (
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
from alipanprovider.listing import list_all
from alipanprovider.models import (
    DocumentFlag,
    DocumentRow,
    QueryResult,
    RemoteEntry,
    RootFlag,
    RootRow,
    UploadSession,
)
from alipanprovider.notify import ChangeNotifier
from alipanprovider.provider import AlipanDocumentsProvider
from alipanprovider.tasks import (
    DeferredTaskRunner,
    InlineTaskRunner,
    TaskRunner,
    ThreadPerTaskRunner,
    ThreadPoolTaskRunner,
)
from alipanprovider.transfer import ByteChannel, RangeReadHandle, WriteHandle

__all__ = [
    # High-level
    "AlipanDocumentsProvider",
    "AliyunpanClient",
    "SessionManager",
    # Core services
    "DirectoryCache",
    "UploadSessionTable",
    "ChangeNotifier",
    "list_all",
    "ByteChannel",
    "RangeReadHandle",
    "WriteHandle",
    "TaskRunner",
    "ThreadPoolTaskRunner",
    "ThreadPerTaskRunner",
    "InlineTaskRunner",
    "DeferredTaskRunner",
    # Config
    "ProviderSettings",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Models
    "RemoteEntry",
    "UploadSession",
    "RootRow",
    "DocumentRow",
    "RootFlag",
    "DocumentFlag",
    "QueryResult",
    # Errors
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
