"""Provider settings and persisted key-value configuration."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from dataclasses import dataclass
from typing import Any, Optional

from alipanprovider.errors import InvalidArgumentError, InvalidStateError

# Persisted keys.
KEY_REFRESH_TOKEN = "refreshToken"
KEY_AUTHORIZATION = "authorization"
KEY_EXPIRED_AT = "expiredAt"
KEY_BACKUP_DRIVE_ID = "backupDriveId"
KEY_RESOURCE_DRIVE_ID = "resourceDriveId"


@dataclass(slots=True, frozen=True)
class ProviderSettings:
    """
    Static provider settings.

    Notes:
        - max_list_pages bounds the listing aggregator; exceeding it raises
          ListingTruncatedError.
        - timeout_sec only applies to HTTP clients the library builds itself.
    """

    api_base_url: str = "https://api.aliyundrive.com"
    auth_base_url: str = "https://auth.aliyundrive.com"
    user_base_url: str = "https://user.aliyundrive.com"
    referer: str = "https://www.alipan.com/"
    list_page_limit: int = 100
    max_list_pages: int = 1000
    max_workers: int = 4
    timeout_sec: float = 30.0
    cache_dir: Optional[str] = None
    backup_title: str = "阿里云盘(备份盘)"
    resource_title: str = "阿里云盘(资源盘)"

    def __post_init__(self) -> None:
        for key in ("api_base_url", "auth_base_url", "user_base_url"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                raise ValueError(f"ProviderSettings.{key} must be an http(s) URL")

        for key in ("list_page_limit", "max_list_pages", "max_workers"):
            value = getattr(self, key)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"ProviderSettings.{key} must be a positive int")

        if self.timeout_sec <= 0:
            raise ValueError("ProviderSettings.timeout_sec must be positive")


class KeyValueStore:
    """Minimal get/set store used to persist credentials and drive ids."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store persisted as a single JSON object.

    The whole document is rewritten through a temp file and os.replace on
    every mutation, so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str) -> None:
        if not isinstance(path, str) or not path.strip():
            raise InvalidArgumentError("path must be a non-empty string")
        self._path = path
        self._lock = threading.Lock()
        self._data = self._load()

    @property
    def path(self) -> str:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._save()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._save()

    def _load(self) -> dict[str, Any]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise InvalidStateError(
                "Failed to load settings file",
                details={"path": self._path},
                cause=exc,
            ) from exc
        if not isinstance(data, dict):
            raise InvalidStateError(
                "Settings file must contain a JSON object",
                details={"path": self._path},
            )
        return data

    def _save(self) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory or None, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise InvalidStateError(
                "Failed to save settings file",
                details={"path": self._path},
                cause=exc,
            ) from exc
