import threading
import unittest

from alipanprovider.auth import SessionManager
from alipanprovider.config import (
    KEY_AUTHORIZATION,
    KEY_EXPIRED_AT,
    KEY_REFRESH_TOKEN,
    InMemoryKeyValueStore,
)
from alipanprovider.errors import (
    CredentialExchangeFailedError,
    InvalidArgumentError,
    NetworkError,
    NotAuthenticatedError,
)
from alipanprovider.models import AccessToken


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeTokenClient:
    def __init__(self) -> None:
        self.calls = []
        self.fail = False
        self.rotate_to = None

    def get_access_token(self, refresh_token: str) -> AccessToken:
        self.calls.append(refresh_token)
        if self.fail:
            raise NetworkError("down")
        return AccessToken(
            authorization=f"Bearer token-{len(self.calls)}",
            expires_in=7200,
            refresh_token=self.rotate_to,
        )


class TestSessionManager(unittest.TestCase):
    def setUp(self) -> None:
        self.client = FakeTokenClient()
        self.store = InMemoryKeyValueStore({KEY_REFRESH_TOKEN: "rt"})
        self.clock = FakeClock()
        self.session = SessionManager(self.client, self.store, clock=self.clock)

    def test_no_refresh_token_fails_without_network(self) -> None:
        session = SessionManager(self.client, InMemoryKeyValueStore(), clock=self.clock)
        self.assertFalse(session.is_authenticated())
        with self.assertRaises(NotAuthenticatedError):
            session.get_authorization()
        self.assertEqual(self.client.calls, [])

    def test_exchange_persists_token_and_expiry(self) -> None:
        authorization = self.session.get_authorization()

        self.assertEqual(authorization, "Bearer token-1")
        self.assertEqual(self.client.calls, ["rt"])
        self.assertEqual(self.store.get(KEY_AUTHORIZATION), "Bearer token-1")
        self.assertEqual(self.store.get(KEY_EXPIRED_AT), (1_000 + 7200) * 1000)

    def test_cached_token_reused_before_expiry(self) -> None:
        first = self.session.get_authorization()
        self.clock.now += 7199
        second = self.session.get_authorization()

        self.assertEqual(first, second)
        self.assertEqual(len(self.client.calls), 1)

    def test_expired_token_is_refreshed(self) -> None:
        self.session.get_authorization()
        self.clock.now += 7200
        authorization = self.session.get_authorization()

        self.assertEqual(authorization, "Bearer token-2")
        self.assertEqual(len(self.client.calls), 2)

    def test_token_survives_restart_through_store(self) -> None:
        self.session.get_authorization()
        restarted = SessionManager(self.client, self.store, clock=self.clock)

        self.assertEqual(restarted.get_authorization(), "Bearer token-1")
        self.assertEqual(len(self.client.calls), 1)

    def test_exchange_failure_leaves_store_unchanged(self) -> None:
        self.client.fail = True
        with self.assertRaises(CredentialExchangeFailedError) as ctx:
            self.session.get_authorization()

        self.assertIsInstance(ctx.exception.cause, NetworkError)
        self.assertIsNone(self.store.get(KEY_AUTHORIZATION))

        self.client.fail = False
        self.assertEqual(self.session.get_authorization(), "Bearer token-2")

    def test_rotated_refresh_token_is_persisted(self) -> None:
        self.client.rotate_to = "rt-2"
        self.session.get_authorization()
        self.assertEqual(self.store.get(KEY_REFRESH_TOKEN), "rt-2")

    def test_concurrent_callers_share_one_exchange(self) -> None:
        results = []

        def worker() -> None:
            results.append(self.session.get_authorization())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(self.client.calls), 1)
        self.assertEqual(set(results), {"Bearer token-1"})

    def test_update_refresh_token_verifies_before_storing(self) -> None:
        store = InMemoryKeyValueStore()
        session = SessionManager(self.client, store, clock=self.clock)

        self.client.fail = True
        with self.assertRaises(CredentialExchangeFailedError):
            session.update_refresh_token("new-rt")
        self.assertIsNone(store.get(KEY_REFRESH_TOKEN))

        self.client.fail = False
        session.update_refresh_token(" new-rt ")
        self.assertEqual(store.get(KEY_REFRESH_TOKEN), "new-rt")
        self.assertTrue(session.is_authenticated())

    def test_update_refresh_token_rejects_blank(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.session.update_refresh_token("  ")

    def test_clear_refresh_token(self) -> None:
        self.session.get_authorization()
        self.session.clear_refresh_token()

        self.assertIsNone(self.store.get(KEY_REFRESH_TOKEN))
        self.assertIsNone(self.store.get(KEY_AUTHORIZATION))
        with self.assertRaises(NotAuthenticatedError):
            self.session.get_authorization()


if __name__ == "__main__":
    unittest.main()
