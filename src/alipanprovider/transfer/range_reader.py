"""Random-access reads over HTTP range requests."""

from __future__ import annotations

import io
import logging
import threading
from typing import Optional

import httpx

from alipanprovider.errors import DownloadFailedError, InvalidStateError
from alipanprovider.models import DownloadUrl

logger = logging.getLogger(__name__)


class RangeReadHandle:
    """
    Fixed-size, randomly readable view of one remote file.

    Every read issues its own ranged GET against the signed URL; nothing is
    cached between reads. Reads are independent and may run concurrently.
    """

    def __init__(
        self,
        http: httpx.Client,
        download: DownloadUrl,
        *,
        document_id: str = "",
        referer: Optional[str] = None,
    ) -> None:
        self._http = http
        self._url = download.url
        self._size = download.size
        self._document_id = document_id
        self._headers = {"Referer": referer} if referer else {}
        self._lock = threading.Lock()
        self._responses: set[httpx.Response] = set()
        self._released = False

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def released(self) -> bool:
        return self._released

    def get_size(self) -> int:
        return self._size

    def read(self, offset: int, length: int) -> bytes:
        """Read up to length bytes at offset. A short result means end of file."""
        buffer = bytearray(max(length, 0))
        count = self.readinto(offset, buffer)
        return bytes(buffer[:count])

    def readinto(self, offset: int, buffer) -> int:
        """
        Fill buffer with bytes starting at offset.

        Returns:
            Number of bytes copied; fewer than len(buffer) when the remote
            stream ends early.

        Raises:
            DownloadFailedError: on a non-2xx response or transport failure.
            InvalidStateError: if the handle is released before or during the read.
        """
        if self._released:
            raise InvalidStateError("Read handle already released")
        if offset < 0:
            raise ValueError("offset must be non-negative")

        view = memoryview(buffer).cast("B")
        length = len(view)
        if length == 0 or offset >= self._size:
            return 0

        logger.debug("read %s %d-%d", self._document_id, offset, length)
        headers = dict(self._headers)
        headers["Range"] = f"bytes={offset}-{offset + length - 1}"

        try:
            with self._http.stream("GET", self._url, headers=headers) as response:
                self._track(response)
                try:
                    return self._copy(response, offset, view)
                finally:
                    self._untrack(response)
        except httpx.StreamError as exc:
            if self._released:
                raise InvalidStateError(
                    "Read handle released during read",
                    details={"document_id": self._document_id, "offset": offset},
                    cause=exc,
                ) from exc
            logger.error("Stream of %s broke at %d", self._document_id, offset)
            raise DownloadFailedError(
                "Ranged download stream failed",
                details={"document_id": self._document_id, "offset": offset},
                cause=exc,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Failed to read %s at %d", self._document_id, offset)
            raise DownloadFailedError(
                "Ranged download failed",
                details={"document_id": self._document_id, "offset": offset},
                cause=exc,
            ) from exc

    def release(self) -> None:
        with self._lock:
            self._released = True
            responses = list(self._responses)
            self._responses.clear()
        for response in responses:
            response.close()
        logger.debug("released %s", self._document_id)

    def open_stream(self, buffer_size: int = io.DEFAULT_BUFFER_SIZE) -> io.BufferedReader:
        """Seekable, buffered file object backed by this handle."""
        return io.BufferedReader(RangeReadStream(self), buffer_size=buffer_size)

    def _copy(self, response: httpx.Response, offset: int, view: memoryview) -> int:
        if not response.is_success:
            response.read()
            logger.error(
                "Ranged download of %s failed with HTTP %d",
                self._document_id,
                response.status_code,
            )
            raise DownloadFailedError(
                f"Failed to read file: HTTP {response.status_code}",
                details={
                    "document_id": self._document_id,
                    "status_code": response.status_code,
                    "offset": offset,
                },
            )

        # A plain 200 means the server ignored the Range header.
        skip = offset if response.status_code == 200 else 0
        length = len(view)
        copied = 0
        for chunk in response.iter_bytes():
            if skip:
                if len(chunk) <= skip:
                    skip -= len(chunk)
                    continue
                chunk = chunk[skip:]
                skip = 0
            n = min(len(chunk), length - copied)
            view[copied:copied + n] = chunk[:n]
            copied += n
            if copied >= length:
                break
        return copied

    def _track(self, response: httpx.Response) -> None:
        with self._lock:
            self._responses.add(response)

    def _untrack(self, response: httpx.Response) -> None:
        with self._lock:
            self._responses.discard(response)


class RangeReadStream(io.RawIOBase):
    """io.RawIOBase adapter giving read/seek/tell over a RangeReadHandle."""

    def __init__(self, handle: RangeReadHandle) -> None:
        super().__init__()
        self._handle = handle
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = self._handle.get_size() + offset
        else:
            raise ValueError(f"invalid whence: {whence}")
        if position < 0:
            raise ValueError("negative seek position")
        self._position = position
        return position

    def readinto(self, buffer) -> int:
        count = self._handle.readinto(self._position, buffer)
        self._position += count
        return count

    def close(self) -> None:
        if not self.closed:
            self._handle.release()
        super().close()
