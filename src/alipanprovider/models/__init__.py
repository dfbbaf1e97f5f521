"""Public model exports for alipanprovider."""

from __future__ import annotations

from .remote import (
    AccessToken,
    DownloadUrl,
    DriveUser,
    ListPage,
    RemoteEntry,
    UploadSession,
)
from .rows import DocumentFlag, DocumentRow, QueryResult, RootFlag, RootRow

__all__ = [
    "RemoteEntry",
    "ListPage",
    "AccessToken",
    "DriveUser",
    "DownloadUrl",
    "UploadSession",
    "RootFlag",
    "DocumentFlag",
    "RootRow",
    "DocumentRow",
    "QueryResult",
]
