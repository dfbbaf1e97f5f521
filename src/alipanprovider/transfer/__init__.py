"""Content transfer adapters (range reads, streaming uploads)."""

from __future__ import annotations

from .channel import ByteChannel
from .range_reader import RangeReadHandle, RangeReadStream
from .stream_writer import UploadJob, WriteHandle

__all__ = [
    "ByteChannel",
    "RangeReadHandle",
    "RangeReadStream",
    "UploadJob",
    "WriteHandle",
]
