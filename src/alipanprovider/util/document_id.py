"""
Document id codec.

A document id is the parent's document id joined with the remote file id by "/".
Drive roots are their bare drive id, so every id starts with the drive it lives
in and its parent is everything before the last separator:

    drive_1                 -> ("drive_1", None, None)
    drive_1/file_a          -> ("drive_1", "drive_1", "file_a")
    drive_1/file_a/file_b   -> ("drive_1", "drive_1/file_a", "file_b")
"""

from __future__ import annotations

from typing import NamedTuple, Optional

SEPARATOR: str = "/"
NULL_ID: str = "null"
REMOTE_ROOT_FILE_ID: str = "root"


class DocumentKey(NamedTuple):
    drive_id: Optional[str]
    parent_id: Optional[str]
    file_id: Optional[str]


_EMPTY_KEY = DocumentKey(None, None, None)


def encode(
    drive_id: Optional[str],
    parent_id: Optional[str],
    file_id: Optional[str],
) -> str:
    """
    Build a document id.

    Args:
        drive_id: Remote drive id.
        parent_id: Parent *document id*; None means the drive root.
        file_id: Remote file id; None encodes the drive root itself.
    """
    if file_id is None:
        return drive_id if drive_id is not None else NULL_ID
    parent = parent_id if parent_id is not None else drive_id
    if parent is None:
        parent = NULL_ID
    return f"{parent}{SEPARATOR}{file_id}"


def decode(document_id: Optional[str]) -> DocumentKey:
    """Split a document id into (drive_id, parent_id, file_id). Never raises."""
    if not isinstance(document_id, str) or not document_id or document_id == NULL_ID:
        return _EMPTY_KEY

    if SEPARATOR not in document_id:
        return DocumentKey(document_id, None, None)

    parts = document_id.split(SEPARATOR)
    return DocumentKey(
        _nullable(parts[0]),
        _nullable(SEPARATOR.join(parts[:-1])),
        _nullable(parts[-1]),
    )


def remote_folder_id(key: DocumentKey) -> str:
    """Remote parent_file_id used to list a directory key."""
    return key.file_id if key.file_id is not None else REMOTE_ROOT_FILE_ID


def _nullable(component: str) -> Optional[str]:
    if not component or component == NULL_ID:
        return None
    return component
