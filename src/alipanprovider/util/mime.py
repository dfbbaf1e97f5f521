from __future__ import annotations

# Directory MIME type understood by the host document tree.
MIME_TYPE_DIR: str = "vnd.android.document/directory"

FOLDER_KIND: str = "folder"
FILE_KIND: str = "file"


def is_folder(kind: str) -> bool:
    return kind == FOLDER_KIND


def display_mime_type(mime_type: str | None) -> str:
    """Remote entries without a MIME type are directories."""
    return mime_type if mime_type else MIME_TYPE_DIR
