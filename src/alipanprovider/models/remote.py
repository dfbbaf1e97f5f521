"""Data models for values returned by the remote drive API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from alipanprovider.util.mime import is_folder


@dataclass(slots=True, frozen=True)
class RemoteEntry:
    """
    A single listing item.

    Notes:
        - mime_type is None for folders.
        - kind is "file" or "folder".
    """

    file_id: str
    drive_id: str
    name: str
    kind: str

    parent_file_id: Optional[str] = None
    mime_type: Optional[str] = None
    size: int = 0
    updated_at: Optional[datetime] = None
    thumbnail_url: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return is_folder(self.kind)


@dataclass(slots=True, frozen=True)
class ListPage:
    """One page of a paginated listing; next_marker is "" on the last page."""

    items: list[RemoteEntry] = field(default_factory=list)
    next_marker: str = ""


@dataclass(slots=True, frozen=True)
class AccessToken:
    """Short-lived credential returned by the refresh-token exchange."""

    authorization: str
    expires_in: int
    refresh_token: Optional[str] = None


@dataclass(slots=True, frozen=True)
class DriveUser:
    backup_drive_id: str
    resource_drive_id: str
    default_drive_id: Optional[str] = None


@dataclass(slots=True, frozen=True)
class DownloadUrl:
    """Signed, time-limited download URL plus the file's total size."""

    url: str
    size: int
    expiration: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class UploadSession:
    """Server-issued upload target for a file created by create_with_folders."""

    file_id: str
    upload_id: str
    part_upload_url: str
