from .document_id import (
    NULL_ID,
    REMOTE_ROOT_FILE_ID,
    SEPARATOR,
    DocumentKey,
    decode,
    encode,
    remote_folder_id,
)
from .mime import FILE_KIND, FOLDER_KIND, MIME_TYPE_DIR, display_mime_type, is_folder
from .time import normalize_dt, parse_rfc3339, to_epoch_ms

__all__ = [
    "SEPARATOR",
    "NULL_ID",
    "REMOTE_ROOT_FILE_ID",
    "DocumentKey",
    "encode",
    "decode",
    "remote_folder_id",
    "MIME_TYPE_DIR",
    "FOLDER_KIND",
    "FILE_KIND",
    "is_folder",
    "display_mime_type",
    "parse_rfc3339",
    "normalize_dt",
    "to_epoch_ms",
]
