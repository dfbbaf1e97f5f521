"""Directory listing cache and upload-session table."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from alipanprovider.models import RemoteEntry, UploadSession
from alipanprovider.util.document_id import SEPARATOR

logger = logging.getLogger(__name__)


class DirectoryCache:
    """
    Snapshot of each directory's entries, keyed by the directory's document id.

    Entries never expire; they are removed only by invalidate(). Each
    invalidate() bumps the directory's generation and put() with a stale
    generation is dropped, so a fetch that started before a mutation never
    lands in the cache after it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[RemoteEntry, ...]] = {}
        self._generations: dict[str, int] = {}

    def get(self, directory_key: str) -> Optional[list[RemoteEntry]]:
        with self._lock:
            entries = self._entries.get(directory_key)
        return list(entries) if entries is not None else None

    def generation(self, directory_key: str) -> int:
        with self._lock:
            return self._generations.get(directory_key, 0)

    def put(
        self,
        directory_key: str,
        entries: Sequence[RemoteEntry],
        *,
        generation: Optional[int] = None,
    ) -> bool:
        with self._lock:
            if generation is not None and generation != self._generations.get(directory_key, 0):
                logger.debug("Dropped stale listing for %s", directory_key)
                return False
            self._entries[directory_key] = tuple(entries)
        logger.debug("Cached %d entries for %s", len(entries), directory_key)
        return True

    def invalidate(self, directory_key: str) -> bool:
        with self._lock:
            self._generations[directory_key] = self._generations.get(directory_key, 0) + 1
            removed = self._entries.pop(directory_key, None) is not None
        if removed:
            logger.debug("Invalidated %s", directory_key)
        return removed

    def find(self, directory_key: str, file_id: str) -> Optional[RemoteEntry]:
        with self._lock:
            entries = self._entries.get(directory_key) or ()
        for entry in entries:
            if entry.file_id == file_id:
                return entry
        return None

    def directories_containing(self, file_id: str) -> list[str]:
        """Keys of cached directories that list file_id."""
        with self._lock:
            items = list(self._entries.items())
        return [key for key, entries in items if any(e.file_id == file_id for e in entries)]

    def invalidate_subtree(self, directory_key: str) -> list[str]:
        """Invalidate directory_key and every cached directory below it."""
        prefix = directory_key + SEPARATOR
        with self._lock:
            keys = [k for k in self._entries if k == directory_key or k.startswith(prefix)]
        if directory_key not in keys:
            keys.insert(0, directory_key)
        for key in keys:
            self.invalidate(key)
        return keys

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, directory_key: object) -> bool:
        with self._lock:
            return directory_key in self._entries


class UploadSessionTable:
    """Upload sessions registered at create time, consumed by open-for-write."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, UploadSession] = {}

    def put(self, document_id: str, session: UploadSession) -> None:
        with self._lock:
            self._sessions[document_id] = session

    def get(self, document_id: str) -> Optional[UploadSession]:
        with self._lock:
            return self._sessions.get(document_id)

    def pop(self, document_id: str) -> Optional[UploadSession]:
        with self._lock:
            return self._sessions.pop(document_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
