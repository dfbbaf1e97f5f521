"""Remote drive API client (JSON over HTTP)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

import httpx

from alipanprovider.config import ProviderSettings
from alipanprovider.errors import (
    AlipanProviderError,
    ApiError,
    HttpErrorInfo,
    InvalidArgumentError,
    NetworkError,
    RateLimitError,
    map_http_error,
)
from alipanprovider.models import (
    AccessToken,
    DownloadUrl,
    DriveUser,
    ListPage,
    RemoteEntry,
    UploadSession,
)
from alipanprovider.util.document_id import REMOTE_ROOT_FILE_ID
from alipanprovider.util.mime import FILE_KIND
from alipanprovider.util.time import parse_rfc3339

from . import endpoints

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 3
    initial_delay_sec: float = 1.0


class AliyunpanClient:
    """
    Remote drive API client.

    Notes:
        - Every call takes the `authorization` header value explicitly; token
          lifetime is owned by SessionManager, not by this client.
        - The injected httpx.Client is not closed by this class unless it
          was created here.
    """

    def __init__(
        self,
        http: Optional[httpx.Client] = None,
        *,
        settings: Optional[ProviderSettings] = None,
    ) -> None:
        self._settings = settings or ProviderSettings()
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=self._settings.timeout_sec)
        self._retry_policy = _RetryPolicy()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    # ----------------------------
    # Public API
    # ----------------------------
    def get_access_token(self, refresh_token: str) -> AccessToken:
        if not isinstance(refresh_token, str) or not refresh_token.strip():
            raise InvalidArgumentError("refresh_token must be a non-empty string")

        data = self._post(
            self._settings.auth_base_url + endpoints.ACCESS_TOKEN_PATH,
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        token_type = data.get("token_type") or "Bearer"
        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ApiError("Token response is missing access_token")

        return AccessToken(
            authorization=f"{token_type} {access_token}",
            expires_in=_as_int(data.get("expires_in")),
            refresh_token=data.get("refresh_token") or None,
        )

    def get_user(self, authorization: str) -> DriveUser:
        data = self._post(
            self._settings.user_base_url + endpoints.USER_GET_PATH,
            {},
            authorization=authorization,
        )
        backup = data.get("backup_drive_id") or data.get("default_drive_id")
        resource = data.get("resource_drive_id")
        if not backup or not resource:
            raise ApiError(
                "User response is missing drive ids",
                details={"keys": sorted(data)},
            )
        return DriveUser(
            backup_drive_id=str(backup),
            resource_drive_id=str(resource),
            default_drive_id=data.get("default_drive_id"),
        )

    def get_file(self, authorization: str, drive_id: str, file_id: str) -> RemoteEntry:
        data = self._post(
            self._api(endpoints.FILE_GET_PATH),
            {"drive_id": drive_id, "file_id": file_id},
            authorization=authorization,
        )
        return _item_dict_to_entry(data)

    def list_file(
        self,
        authorization: str,
        drive_id: str,
        parent_file_id: Optional[str],
        marker: Optional[str] = None,
    ) -> ListPage:
        body: dict[str, Any] = {
            "drive_id": drive_id,
            "parent_file_id": parent_file_id or REMOTE_ROOT_FILE_ID,
            "limit": self._settings.list_page_limit,
        }
        if marker:
            body["marker"] = marker

        data = self._post(
            self._api(endpoints.FILE_LIST_PATH),
            body,
            authorization=authorization,
        )
        return _page_dict_to_list_page(data)

    def get_download_url(
        self,
        authorization: str,
        drive_id: str,
        file_id: str,
    ) -> DownloadUrl:
        data = self._post(
            self._api(endpoints.DOWNLOAD_URL_PATH),
            {"drive_id": drive_id, "file_id": file_id},
            authorization=authorization,
        )
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise ApiError("Download URL response is missing url", details={"file_id": file_id})

        expiration = None
        if isinstance(data.get("expiration"), str):
            try:
                expiration = parse_rfc3339(data["expiration"])
            except ValueError:
                expiration = None

        return DownloadUrl(url=url, size=_as_int(data.get("size")), expiration=expiration)

    def create_with_folders(
        self,
        authorization: str,
        drive_id: str,
        parent_file_id: Optional[str],
        name: str,
    ) -> UploadSession:
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgumentError("name must be a non-empty string")

        body = {
            "drive_id": drive_id,
            "parent_file_id": parent_file_id or REMOTE_ROOT_FILE_ID,
            "name": name,
            "type": FILE_KIND,
            "check_name_mode": endpoints.CHECK_NAME_MODE,
            "part_info_list": [{"part_number": 1}],
        }
        data = self._post(
            self._api(endpoints.CREATE_WITH_FOLDERS_PATH),
            body,
            authorization=authorization,
        )

        parts = data.get("part_info_list") or []
        upload_url = parts[0].get("upload_url") if parts and isinstance(parts[0], dict) else None
        file_id = data.get("file_id")
        upload_id = data.get("upload_id")
        if not file_id or not upload_id or not upload_url:
            raise ApiError(
                "Create response is missing upload session fields",
                details={"name": name, "drive_id": drive_id},
            )
        return UploadSession(
            file_id=str(file_id),
            upload_id=str(upload_id),
            part_upload_url=str(upload_url),
        )

    def complete_file(
        self,
        authorization: str,
        drive_id: str,
        upload_id: str,
        file_id: str,
    ) -> RemoteEntry:
        data = self._post(
            self._api(endpoints.COMPLETE_PATH),
            {"drive_id": drive_id, "file_id": file_id, "upload_id": upload_id},
            authorization=authorization,
        )
        return _item_dict_to_entry(data)

    def trash(self, authorization: str, drive_id: str, file_id: str) -> None:
        self._post(
            self._api(endpoints.TRASH_PATH),
            {"drive_id": drive_id, "file_id": file_id},
            authorization=authorization,
        )

    def search_file(
        self,
        authorization: str,
        drive_ids: Sequence[str],
        query: str,
    ) -> ListPage:
        escaped = query.replace("\\", "\\\\").replace('"', '\\"')
        body = {
            "drive_id_list": list(drive_ids),
            "query": f'name match "{escaped}"',
            "limit": self._settings.list_page_limit,
        }
        data = self._post(
            self._api(endpoints.FILE_SEARCH_PATH),
            body,
            authorization=authorization,
        )
        return _page_dict_to_list_page(data)

    # ----------------------------
    # Internals
    # ----------------------------
    def _api(self, path: str) -> str:
        return self._settings.api_base_url + path

    def _post(
        self,
        url: str,
        body: dict[str, Any],
        *,
        authorization: Optional[str] = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": authorization} if authorization else {}

        def send() -> dict[str, Any]:
            response = self._http.post(url, json=body, headers=headers)
            response.raise_for_status()
            if not response.content:
                return {}
            payload = response.json()
            return payload if isinstance(payload, dict) else {}

        return self._execute(send)

    def _execute(self, func: Callable[[], T]) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < self._retry_policy.max_retries:
                    logger.warning(
                        "Retrying remote call after %s (attempt %d)",
                        mapped.__class__.__name__,
                        attempt + 1,
                    )
                    time.sleep(delay)
                    delay *= 2
                    continue
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, AlipanProviderError):
            return exc

        if isinstance(exc, httpx.HTTPStatusError):
            info = _response_to_info(exc.response)
            return map_http_error(info, cause=exc)

        if isinstance(exc, httpx.TransportError):
            return NetworkError("Network error", details={"error": str(exc)}, cause=exc)

        if isinstance(exc, ValueError):
            return ApiError("Malformed response body", cause=exc)

        return ApiError("Remote API error", cause=exc)


def _page_dict_to_list_page(data: dict[str, Any]) -> ListPage:
    items = data.get("items") or []
    entries = [_item_dict_to_entry(item) for item in items if isinstance(item, dict)]
    next_marker = data.get("next_marker")
    return ListPage(
        items=entries,
        next_marker=next_marker if isinstance(next_marker, str) else "",
    )


def _item_dict_to_entry(data: dict[str, Any]) -> RemoteEntry:
    updated_at = None
    if isinstance(data.get("updated_at"), str):
        try:
            updated_at = parse_rfc3339(data["updated_at"])
        except ValueError:
            updated_at = None

    mime_type = data.get("mime_type")
    thumbnail = data.get("thumbnail")
    kind = data.get("type")

    return RemoteEntry(
        file_id=str(data.get("file_id", "")),
        drive_id=str(data.get("drive_id", "")),
        name=data.get("name", "") if isinstance(data.get("name"), str) else "",
        kind=kind if isinstance(kind, str) else FILE_KIND,
        parent_file_id=data.get("parent_file_id"),
        mime_type=mime_type if isinstance(mime_type, str) and mime_type else None,
        size=_as_int(data.get("size")),
        updated_at=updated_at,
        thumbnail_url=thumbnail if isinstance(thumbnail, str) and thumbnail else None,
    )


def _response_to_info(response: httpx.Response) -> HttpErrorInfo:
    reason = None
    message = None
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        code = payload.get("code")
        reason = code if isinstance(code, str) else None
        msg = payload.get("message")
        message = msg if isinstance(msg, str) and msg else None

    return HttpErrorInfo(
        status_code=response.status_code,
        reason=reason or response.reason_phrase or None,
        message=message,
        details={"url": str(response.request.url)},
    )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0
