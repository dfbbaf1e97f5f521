"""On-disk thumbnail cache filled in the background."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from typing import Callable, Optional
from urllib.parse import quote

import httpx

from alipanprovider.errors import DownloadFailedError, NotFoundError
from alipanprovider.notify import ChangeNotifier
from alipanprovider.tasks import TaskRunner

logger = logging.getLogger(__name__)

THUMBNAIL_SUFFIX = ".thumbnail"


class ThumbnailCache:
    """
    Thumbnails stored as files under cache_dir, one per document id.

    A miss creates an empty placeholder file immediately, downloads in the
    background, and notifies the document's topic when the image is in place.
    """

    def __init__(
        self,
        cache_dir: str,
        *,
        http: httpx.Client,
        runner: TaskRunner,
        notifier: ChangeNotifier,
        referer: Optional[str] = None,
    ) -> None:
        self._cache_dir = cache_dir
        self._http = http
        self._runner = runner
        self._notifier = notifier
        self._headers = {"Referer": referer} if referer else {}
        self._lock = threading.Lock()

    def path_for(self, document_id: str) -> str:
        return os.path.join(self._cache_dir, quote(document_id, safe="") + THUMBNAIL_SUFFIX)

    def get(self, document_id: str, resolve_url: Callable[[], Optional[str]]) -> str:
        """Return the cache file path, scheduling a download on a miss."""
        path = self.path_for(document_id)
        with self._lock:
            if os.path.exists(path):
                return path
            os.makedirs(self._cache_dir, exist_ok=True)
            with open(path, "wb"):
                pass

        self._runner.submit(self._fill, document_id, path, resolve_url)
        return path

    def _fill(
        self,
        document_id: str,
        path: str,
        resolve_url: Callable[[], Optional[str]],
    ) -> None:
        try:
            url = resolve_url()
            if not url:
                raise NotFoundError(
                    "Document has no thumbnail",
                    details={"document_id": document_id},
                )
            self._download(url, path)
        except Exception:
            logger.exception("Failed to get thumbnail %s", document_id)
            with self._lock:
                if os.path.exists(path):
                    os.remove(path)
            return

        logger.debug("Thumbnail cached for %s", document_id)
        self._notifier.notify(document_id)

    def _download(self, url: str, path: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self._cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                with self._http.stream("GET", url, headers=self._headers) as response:
                    if not response.is_success:
                        raise DownloadFailedError(
                            f"Failed to download thumbnail: HTTP {response.status_code}",
                            details={"status_code": response.status_code},
                        )
                    for chunk in response.iter_bytes():
                        f.write(chunk)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
