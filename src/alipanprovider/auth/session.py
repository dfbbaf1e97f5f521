"""Refresh-token session management."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from alipanprovider.config import (
    KEY_AUTHORIZATION,
    KEY_EXPIRED_AT,
    KEY_REFRESH_TOKEN,
    KeyValueStore,
)
from alipanprovider.errors import (
    AlipanProviderError,
    CredentialExchangeFailedError,
    InvalidArgumentError,
    NotAuthenticatedError,
)
from alipanprovider.models import AccessToken

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Own the refresh token and hand out a valid access token.

    The access token and its expiry (epoch ms) are persisted in the store on
    every refresh. Refresh happens lazily on the first call after expiry; the
    check-refresh-store sequence runs under a lock so concurrent callers share
    one exchange.
    """

    def __init__(
        self,
        client,
        store: KeyValueStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def refresh_token(self) -> Optional[str]:
        return self._store.get(KEY_REFRESH_TOKEN)

    def is_authenticated(self) -> bool:
        return bool(self.refresh_token)

    def get_authorization(self) -> str:
        """
        Return a valid access token, exchanging the refresh token if needed.

        Raises:
            NotAuthenticatedError: if no refresh token is stored.
            CredentialExchangeFailedError: if the exchange call fails.
        """
        refresh_token = self.refresh_token
        if not refresh_token:
            raise NotAuthenticatedError("No refresh token stored")

        with self._lock:
            authorization = self._store.get(KEY_AUTHORIZATION)
            expired_at = self._store.get(KEY_EXPIRED_AT, 0) or 0
            if authorization and self._now_ms() < int(expired_at):
                return authorization

            token = self._exchange(refresh_token)
            self._persist(token)
            return token.authorization

    def update_refresh_token(self, refresh_token: str) -> str:
        """
        Verify a user-supplied refresh token and store it.

        The token is only persisted if one exchange with it succeeds.
        """
        if not isinstance(refresh_token, str) or not refresh_token.strip():
            raise InvalidArgumentError("refresh_token must be a non-empty string")

        with self._lock:
            token = self._exchange(refresh_token.strip())
            self._store.set(KEY_REFRESH_TOKEN, refresh_token.strip())
            self._persist(token)
            logger.info("Refresh token updated")
            return token.authorization

    def clear_refresh_token(self) -> None:
        with self._lock:
            self._store.remove(KEY_REFRESH_TOKEN)
            self._store.remove(KEY_AUTHORIZATION)
            self._store.remove(KEY_EXPIRED_AT)
        logger.info("Refresh token cleared")

    def _exchange(self, refresh_token: str) -> AccessToken:
        try:
            return self._client.get_access_token(refresh_token)
        except AlipanProviderError as exc:
            raise CredentialExchangeFailedError(
                "Failed to refresh access token",
                details=dict(exc.details),
                cause=exc,
            ) from exc

    def _persist(self, token: AccessToken) -> None:
        expired_at = self._now_ms() + token.expires_in * 1000
        self._store.set(KEY_AUTHORIZATION, token.authorization)
        self._store.set(KEY_EXPIRED_AT, expired_at)
        # The remote API rotates refresh tokens on exchange.
        if token.refresh_token and token.refresh_token != self.refresh_token:
            self._store.set(KEY_REFRESH_TOKEN, token.refresh_token)
        logger.debug("Access token refreshed, expires in %ds", token.expires_in)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
