"""Bounded in-process byte channel between a writer and an uploader."""

from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from alipanprovider.errors import InvalidStateError


class ByteChannel:
    """
    Bounded queue of byte chunks.

    Contract:
        - write() blocks while max_chunks chunks are pending.
        - close() marks end of input; readers drain what is left, then see EOF.
        - abort() fails the channel for both ends; pending and future writes
          and reads raise InvalidStateError instead of blocking.
    """

    def __init__(self, max_chunks: int = 64) -> None:
        if max_chunks < 1:
            raise ValueError("max_chunks must be positive")
        self._max_chunks = max_chunks
        self._chunks: deque[bytes] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._aborted: Optional[BaseException] = None
        self._total = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def bytes_written(self) -> int:
        return self._total

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        with self._cond:
            while (
                len(self._chunks) >= self._max_chunks
                and not self._closed
                and self._aborted is None
            ):
                self._cond.wait()
            if self._aborted is not None:
                raise InvalidStateError("Channel reader aborted", cause=self._aborted)
            if self._closed:
                raise InvalidStateError("Channel is closed")
            self._chunks.append(bytes(data))
            self._total += len(data)
            self._cond.notify_all()
        return len(data)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abort(self, exc: Optional[BaseException] = None) -> None:
        with self._cond:
            self._aborted = exc or InvalidStateError("Channel aborted")
            self._chunks.clear()
            self._cond.notify_all()

    def read_chunk(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Return the next chunk, or None once the channel is closed and empty."""
        with self._cond:
            while not self._chunks and not self._closed and self._aborted is None:
                if not self._cond.wait(timeout):
                    raise TimeoutError("Timed out waiting for channel data")
            if self._aborted is not None:
                raise InvalidStateError("Channel aborted", cause=self._aborted)
            if not self._chunks:
                return None
            chunk = self._chunks.popleft()
            self._cond.notify_all()
            return chunk

    def read_all(self) -> bytes:
        """Block until the writer closes the channel and return everything written."""
        buffer = bytearray()
        while True:
            chunk = self.read_chunk()
            if chunk is None:
                return bytes(buffer)
            buffer.extend(chunk)
