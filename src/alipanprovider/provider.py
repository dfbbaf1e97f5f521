"""Document tree facade: the operation surface the host framework calls."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
import time
from typing import Callable, Optional, Union

import httpx

from alipanprovider.auth import SessionManager
from alipanprovider.cache import DirectoryCache, UploadSessionTable
from alipanprovider.client import AliyunpanClient
from alipanprovider.config import (
    KEY_BACKUP_DRIVE_ID,
    KEY_RESOURCE_DRIVE_ID,
    KeyValueStore,
    ProviderSettings,
)
from alipanprovider.errors import (
    AlipanProviderError,
    CredentialExchangeFailedError,
    InvalidArgumentError,
    InvalidStateError,
    NotAuthenticatedError,
    NotFoundError,
    NoUploadSessionError,
    RemoteCreateFailedError,
    RemoteDeleteFailedError,
)
from alipanprovider.listing import list_all
from alipanprovider.models import (
    DocumentFlag,
    DocumentRow,
    QueryResult,
    RemoteEntry,
    RootFlag,
    RootRow,
)
from alipanprovider.notify import ROOTS_TOPIC, ChangeNotifier
from alipanprovider.tasks import TaskRunner, ThreadPerTaskRunner, ThreadPoolTaskRunner
from alipanprovider.thumbnails import ThumbnailCache
from alipanprovider.transfer import ByteChannel, RangeReadHandle, UploadJob, WriteHandle
from alipanprovider.util.document_id import (
    NULL_ID,
    DocumentKey,
    decode,
    encode,
    remote_folder_id,
)
from alipanprovider.util.mime import MIME_TYPE_DIR, display_mime_type
from alipanprovider.util.time import to_epoch_ms

logger = logging.getLogger(__name__)

BACKUP_ROOT_ID = "backup"
RESOURCE_ROOT_ID = "resource"

_ROOT_FLAGS = RootFlag.SUPPORTS_CREATE | RootFlag.SUPPORTS_SEARCH | RootFlag.SUPPORTS_IS_CHILD
_DRIVE_DOCUMENT_FLAGS = DocumentFlag.DIR_SUPPORTS_CREATE | DocumentFlag.SUPPORTS_DELETE

# Raised as-is by every operation; everything else remote is wrapped.
_SESSION_ERRORS = (NotAuthenticatedError, CredentialExchangeFailedError)


class AlipanDocumentsProvider:
    """
    Expose the backup and resource drives of one account as a document tree.

    Listing entry points never block on the network: a directory that is not
    cached yields a loading result and a background fetch, and its topic is
    notified once the cache is filled. Mutations invalidate the parent
    directory and notify its topic.
    """

    def __init__(
        self,
        client,
        store: KeyValueStore,
        *,
        http: Optional[httpx.Client] = None,
        settings: Optional[ProviderSettings] = None,
        runner: Optional[TaskRunner] = None,
        upload_runner: Optional[TaskRunner] = None,
        notifier: Optional[ChangeNotifier] = None,
        directory_cache: Optional[DirectoryCache] = None,
        upload_sessions: Optional[UploadSessionTable] = None,
        session: Optional[SessionManager] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or ProviderSettings()
        self._client = client
        self._store = store
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=self._settings.timeout_sec)
        self._runner = runner or ThreadPoolTaskRunner(self._settings.max_workers)
        self._upload_runner = upload_runner or ThreadPerTaskRunner("alipanprovider-upload")
        self._notifier = notifier or ChangeNotifier()
        self._cache = directory_cache or DirectoryCache()
        self._upload_sessions = upload_sessions or UploadSessionTable()
        self._session = session or SessionManager(client, store, clock=clock)

        cache_dir = self._settings.cache_dir or os.path.join(
            tempfile.gettempdir(), "alipanprovider"
        )
        self._thumbnails = ThumbnailCache(
            cache_dir,
            http=self._http,
            runner=self._runner,
            notifier=self._notifier,
            referer=self._settings.referer,
        )

        self._inflight_lock = threading.Lock()
        self._inflight: set[tuple[str, int]] = set()
        self._resolving_drives = False
        self._open_channels: set[ByteChannel] = set()

    @classmethod
    def from_settings(
        cls,
        store: KeyValueStore,
        settings: Optional[ProviderSettings] = None,
    ) -> "AlipanDocumentsProvider":
        """Build a provider with its own HTTP client and thread pool."""
        use_settings = settings or ProviderSettings()
        http = httpx.Client(timeout=use_settings.timeout_sec, follow_redirects=True)
        client = AliyunpanClient(http, settings=use_settings)
        obj = cls(client, store, http=http, settings=use_settings)
        obj._owns_http = True
        return obj

    def close(self) -> None:
        """Stop background work; write handles still open fail instead of blocking."""
        with self._inflight_lock:
            channels = list(self._open_channels)
            self._open_channels.clear()
        for channel in channels:
            channel.abort(InvalidStateError("Provider closed"))
        self._runner.shutdown(wait=False)
        self._upload_runner.shutdown(wait=False)
        if self._owns_http:
            self._http.close()

    # ----------------------------
    # Properties
    # ----------------------------
    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def directory_cache(self) -> DirectoryCache:
        return self._cache

    @property
    def backup_drive_id(self) -> Optional[str]:
        return self._store.get(KEY_BACKUP_DRIVE_ID)

    @property
    def resource_drive_id(self) -> Optional[str]:
        return self._store.get(KEY_RESOURCE_DRIVE_ID)

    # ----------------------------
    # Public API
    # ----------------------------
    def on_create(self) -> bool:
        """Return True if a refresh token is stored and the provider can serve."""
        return self._session.is_authenticated()

    def query_roots(self) -> QueryResult:
        if not self._session.is_authenticated():
            return QueryResult()

        backup, resource = self.backup_drive_id, self.resource_drive_id
        if backup and resource:
            return QueryResult(
                rows=[
                    RootRow(BACKUP_ROOT_ID, backup, self._settings.backup_title, _ROOT_FLAGS),
                    RootRow(RESOURCE_ROOT_ID, resource, self._settings.resource_title, _ROOT_FLAGS),
                ],
                notification_topic=ROOTS_TOPIC,
            )

        with self._inflight_lock:
            start = not self._resolving_drives
            self._resolving_drives = True
        if start:
            self._runner.submit(self._resolve_drives)
        return QueryResult(loading=True, notification_topic=ROOTS_TOPIC)

    def query_document(self, document_id: Optional[str]) -> QueryResult:
        """
        Return the row for one document.

        Served from the parent directory's cached listing when present.
        Otherwise this makes one blocking get_file call, because the host
        has no loading state for a single document. Remote failures yield an
        empty result.
        """
        logger.debug("query_document: %s", document_id)

        if document_id == NULL_ID:
            return QueryResult()

        key = decode(document_id)
        if key.drive_id is None:
            return QueryResult()

        if key.file_id is None:
            title = self._drive_title(key.drive_id)
            if title is None:
                return QueryResult()
            row = DocumentRow(
                document_id=key.drive_id,
                mime_type=MIME_TYPE_DIR,
                display_name=title,
                flags=_DRIVE_DOCUMENT_FLAGS,
            )
            return QueryResult(rows=[row])

        parent_id = key.parent_id or key.drive_id
        entry = self._cache.find(parent_id, key.file_id)
        if entry is None:
            try:
                entry = self._client.get_file(
                    self._session.get_authorization(), key.drive_id, key.file_id
                )
            except AlipanProviderError:
                logger.exception("Failed to get file %s", document_id)
                return QueryResult()

        return QueryResult(rows=[_document_row(key.drive_id, parent_id, entry)])

    def query_child_documents(self, parent_document_id: Optional[str]) -> QueryResult:
        logger.debug("query_child_documents: %s", parent_document_id)

        key = decode(parent_document_id)
        if key.drive_id is None:
            return QueryResult()

        directory_id = parent_document_id  # type: ignore[assignment]
        entries = self._cache.get(directory_id)
        if entries is None:
            self._schedule_fill(directory_id, key)
            return QueryResult(loading=True, notification_topic=directory_id)

        rows = [_document_row(key.drive_id, directory_id, e) for e in entries]
        return QueryResult(rows=rows, notification_topic=directory_id)

    def is_child_document(
        self,
        parent_document_id: Optional[str],
        document_id: Optional[str],
    ) -> bool:
        parent_drive = decode(parent_document_id).drive_id
        return parent_drive is not None and parent_drive == decode(document_id).drive_id

    def open_document(
        self,
        document_id: str,
        mode: str = "r",
    ) -> Union[RangeReadHandle, WriteHandle]:
        """Open for write when mode contains "w", otherwise for read."""
        if "w" in (mode or ""):
            return self.open_write(document_id)
        return self.open_read(document_id)

    def open_read(self, document_id: str) -> RangeReadHandle:
        """
        Open a random-access read handle.

        Raises:
            NotFoundError: if the document is not a file or the download URL
                cannot be obtained.
        """
        logger.debug("open_read: %s", document_id)

        key = decode(document_id)
        if key.drive_id is None or key.file_id is None:
            raise NotFoundError("Not a file document", details={"document_id": document_id})

        try:
            download = self._client.get_download_url(
                self._session.get_authorization(), key.drive_id, key.file_id
            )
        except _SESSION_ERRORS:
            raise
        except AlipanProviderError as exc:
            logger.error("Failed to open document %s", document_id)
            if isinstance(exc, NotFoundError):
                raise
            raise NotFoundError(
                "Failed to open document",
                details={"document_id": document_id, **exc.details},
                cause=exc,
            ) from exc

        return RangeReadHandle(
            self._http,
            download,
            document_id=document_id,
            referer=self._settings.referer,
        )

    def open_write(self, document_id: str) -> WriteHandle:
        """
        Open a write handle for a document returned by create_document().

        Each handle gets its own drain on the upload runner, outside the
        pool that serves listings and thumbnails. The upload starts once the
        handle is closed. The upload runner must not execute tasks inline on
        the calling thread.

        Raises:
            NoUploadSessionError: if create_document() was not called first.
        """
        logger.debug("open_write: %s", document_id)

        upload_session = self._upload_sessions.pop(document_id)
        if upload_session is None:
            raise NoUploadSessionError(
                "No upload session for document",
                details={"document_id": document_id},
            )

        key = decode(document_id)
        parent_id = key.parent_id or key.drive_id
        channel = ByteChannel()
        job = UploadJob(
            http=self._http,
            client=self._client,
            channel=channel,
            session=upload_session,
            drive_id=key.drive_id,  # type: ignore[arg-type]
            document_id=document_id,
            authorization=self._session.get_authorization,
            on_complete=lambda _entry: self._invalidate(parent_id),  # type: ignore[arg-type]
        )
        with self._inflight_lock:
            self._open_channels.add(channel)
        future = self._upload_runner.submit(job.run)
        future.add_done_callback(lambda _f: self._forget_channel(channel))
        return WriteHandle(channel, future, document_id=document_id)

    def create_document(
        self,
        parent_document_id: str,
        mime_type: Optional[str],
        display_name: str,
    ) -> str:
        """
        Create an empty remote file and register its upload session.

        Returns:
            The new document id; open it for write to upload the content.
        """
        logger.debug("create_document: %s %s (%s)", parent_document_id, display_name, mime_type)

        key = decode(parent_document_id)
        if key.drive_id is None:
            raise InvalidArgumentError(
                "Invalid parent document",
                details={"parent_document_id": parent_document_id},
            )

        try:
            upload_session = self._client.create_with_folders(
                self._session.get_authorization(),
                key.drive_id,
                remote_folder_id(key),
                display_name,
            )
        except _SESSION_ERRORS:
            raise
        except AlipanProviderError as exc:
            logger.error("Failed to create document in %s", parent_document_id)
            raise RemoteCreateFailedError(
                "Failed to create document",
                details={"parent_document_id": parent_document_id, "name": display_name},
                cause=exc,
            ) from exc

        document_id = encode(key.drive_id, parent_document_id, upload_session.file_id)
        self._upload_sessions.put(document_id, upload_session)
        self._invalidate(parent_document_id)
        return document_id

    def delete_document(self, document_id: str) -> None:
        """Move a document to the recycle bin and invalidate its parent."""
        logger.debug("delete_document: %s", document_id)

        key = decode(document_id)
        if key.drive_id is None or key.file_id is None:
            raise InvalidArgumentError(
                "Drive roots cannot be deleted",
                details={"document_id": document_id},
            )

        try:
            self._client.trash(self._session.get_authorization(), key.drive_id, key.file_id)
        except _SESSION_ERRORS:
            raise
        except AlipanProviderError as exc:
            logger.error("Failed to delete document %s", document_id)
            raise RemoteDeleteFailedError(
                "Failed to delete document",
                details={"document_id": document_id},
                cause=exc,
            ) from exc

        parent_id = key.parent_id or key.drive_id
        self._invalidate(parent_id)
        # Search hits carry the drive root as parent; drop the real one too.
        for directory_id in self._cache.directories_containing(key.file_id):
            if directory_id != parent_id:
                self._invalidate(directory_id)
        self._cache.invalidate_subtree(document_id)

    def query_search_documents(self, root_id: str, query: str) -> QueryResult:
        """
        Search one drive by name.

        Only the first page of results is returned. Hits are addressed as
        direct children of the drive root because their path is unknown.
        """
        logger.debug("query_search_documents: %s %s", root_id, query)

        drive_id = self.backup_drive_id if root_id == BACKUP_ROOT_ID else self.resource_drive_id
        if not drive_id or not query:
            return QueryResult()

        page = self._client.search_file(self._session.get_authorization(), [drive_id], query)
        return QueryResult(rows=[_document_row(drive_id, drive_id, e) for e in page.items])

    def open_document_thumbnail(self, document_id: str) -> str:
        """Return the thumbnail cache file path; a miss schedules a download."""
        logger.debug("open_document_thumbnail: %s", document_id)

        key = decode(document_id)
        if key.drive_id is None or key.file_id is None:
            raise NotFoundError("Not a file document", details={"document_id": document_id})

        def resolve_url() -> Optional[str]:
            entry = self._client.get_file(
                self._session.get_authorization(), key.drive_id, key.file_id
            )
            return entry.thumbnail_url

        return self._thumbnails.get(document_id, resolve_url)

    # ----------------------------
    # Internals
    # ----------------------------
    def _drive_title(self, drive_id: str) -> Optional[str]:
        if drive_id == self.backup_drive_id:
            return self._settings.backup_title
        if drive_id == self.resource_drive_id:
            return self._settings.resource_title
        return None

    def _resolve_drives(self) -> None:
        try:
            user = self._client.get_user(self._session.get_authorization())
            self._store.set(KEY_BACKUP_DRIVE_ID, user.backup_drive_id)
            self._store.set(KEY_RESOURCE_DRIVE_ID, user.resource_drive_id)
            logger.info(
                "Resolved drives backup=%s resource=%s",
                user.backup_drive_id,
                user.resource_drive_id,
            )
        except Exception:
            logger.exception("Failed to get user")
            return
        finally:
            with self._inflight_lock:
                self._resolving_drives = False
        self._notifier.notify(ROOTS_TOPIC)

    def _schedule_fill(self, directory_id: str, key: DocumentKey) -> None:
        generation = self._cache.generation(directory_id)
        token = (directory_id, generation)
        with self._inflight_lock:
            if token in self._inflight:
                return
            self._inflight.add(token)
        self._runner.submit(self._fill_directory, directory_id, key, generation)

    def _fill_directory(self, directory_id: str, key: DocumentKey, generation: int) -> None:
        try:
            entries = list_all(
                self._client,
                self._session.get_authorization(),
                key.drive_id,  # type: ignore[arg-type]
                remote_folder_id(key),
                max_pages=self._settings.max_list_pages,
            )
            stored = self._cache.put(directory_id, entries, generation=generation)
        except Exception:
            logger.exception("Failed to list %s", directory_id)
            return
        finally:
            with self._inflight_lock:
                self._inflight.discard((directory_id, generation))

        if stored:
            logger.info("Listed %s (%d entries)", directory_id, len(entries))
            self._notifier.notify(directory_id)

    def _forget_channel(self, channel: ByteChannel) -> None:
        with self._inflight_lock:
            self._open_channels.discard(channel)

    def _invalidate(self, directory_id: str) -> None:
        self._cache.invalidate(directory_id)
        self._notifier.notify(directory_id)


def _document_row(drive_id: str, parent_document_id: str, entry: RemoteEntry) -> DocumentRow:
    flags = DocumentFlag.SUPPORTS_DELETE
    if entry.is_folder:
        flags |= DocumentFlag.DIR_SUPPORTS_CREATE
    if entry.thumbnail_url:
        flags |= DocumentFlag.SUPPORTS_THUMBNAIL

    return DocumentRow(
        document_id=encode(drive_id, parent_document_id, entry.file_id),
        mime_type=display_mime_type(entry.mime_type),
        display_name=entry.name,
        flags=flags,
        size=entry.size,
        last_modified=to_epoch_ms(entry.updated_at) if entry.updated_at else None,
    )
