"""Pipe-backed writes finalized as a single upload."""

from __future__ import annotations

import io
import logging
from concurrent.futures import Future
from typing import Callable, Optional

import httpx

from alipanprovider.errors import AlipanProviderError, UploadFailedError
from alipanprovider.models import RemoteEntry, UploadSession

from .channel import ByteChannel

logger = logging.getLogger(__name__)


class UploadJob:
    """
    Drain a channel, PUT the bytes to the session's upload URL, then complete.

    The upload URL requires Content-Length up front, so the whole payload is
    buffered in memory before the PUT.
    """

    def __init__(
        self,
        *,
        http: httpx.Client,
        client,
        channel: ByteChannel,
        session: UploadSession,
        drive_id: str,
        document_id: str,
        authorization: Callable[[], str],
        on_complete: Optional[Callable[[RemoteEntry], None]] = None,
    ) -> None:
        self._http = http
        self._client = client
        self._channel = channel
        self._session = session
        self._drive_id = drive_id
        self._document_id = document_id
        self._authorization = authorization
        self._on_complete = on_complete

    def run(self) -> RemoteEntry:
        try:
            data = self._channel.read_all()
        except AlipanProviderError as exc:
            raise UploadFailedError(
                "Write stream aborted",
                details={"document_id": self._document_id},
                cause=exc,
            ) from exc

        try:
            entry = self._upload(data)
        except UploadFailedError:
            logger.exception("Failed to write document %s", self._document_id)
            raise

        logger.info("Uploaded %s (%d bytes)", self._document_id, len(data))
        if self._on_complete is not None:
            self._on_complete(entry)
        return entry

    def _upload(self, data: bytes) -> RemoteEntry:
        details = {"document_id": self._document_id, "size": len(data)}
        try:
            response = self._http.put(
                self._session.part_upload_url,
                content=data,
                headers={"Content-Length": str(len(data))},
            )
        except httpx.HTTPError as exc:
            raise UploadFailedError("Upload request failed", details=details, cause=exc) from exc

        if not response.is_success:
            details["status_code"] = response.status_code
            raise UploadFailedError(
                f"Failed to upload document: HTTP {response.status_code}",
                details=details,
            )

        try:
            return self._client.complete_file(
                self._authorization(),
                self._drive_id,
                self._session.upload_id,
                self._session.file_id,
            )
        except AlipanProviderError as exc:
            raise UploadFailedError(
                "Failed to complete upload",
                details=details,
                cause=exc,
            ) from exc


class WriteHandle(io.RawIOBase):
    """
    Writable file object feeding a ByteChannel.

    close() ends the stream; result() waits for the upload to finish and
    re-raises UploadFailedError if it did not.
    """

    def __init__(self, channel: ByteChannel, future: Future, *, document_id: str = "") -> None:
        super().__init__()
        self._channel = channel
        self._future = future
        self._document_id = document_id

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def future(self) -> Future:
        return self._future

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        return self._channel.write(bytes(b))

    def close(self) -> None:
        if not self.closed:
            self._channel.close()
        super().close()

    def result(self, timeout: Optional[float] = None) -> RemoteEntry:
        return self._future.result(timeout)
