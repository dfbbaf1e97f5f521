"""Row models returned to the host document tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Optional


class RootFlag(IntFlag):
    SUPPORTS_CREATE = 1
    SUPPORTS_SEARCH = 8
    SUPPORTS_IS_CHILD = 16


class DocumentFlag(IntFlag):
    SUPPORTS_DELETE = 4
    DIR_SUPPORTS_CREATE = 8
    SUPPORTS_THUMBNAIL = 1


@dataclass(slots=True, frozen=True)
class RootRow:
    root_id: str
    document_id: str
    title: str
    flags: RootFlag
    mime_types: str = "*/*"


@dataclass(slots=True, frozen=True)
class DocumentRow:
    document_id: str
    mime_type: str
    display_name: str
    flags: DocumentFlag
    size: Optional[int] = None
    last_modified: Optional[int] = None


@dataclass(slots=True)
class QueryResult:
    """
    Result of a query against the document tree.

    When loading is True the rows are a placeholder; the host should watch
    notification_topic and query again once it is signalled.
    """

    rows: list[Any] = field(default_factory=list)
    loading: bool = False
    notification_topic: Optional[str] = None

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)
