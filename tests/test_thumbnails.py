import os
import tempfile
import unittest

import httpx

from alipanprovider.errors import ApiError
from alipanprovider.notify import ChangeNotifier
from alipanprovider.tasks import DeferredTaskRunner
from alipanprovider.thumbnails import ThumbnailCache


class ThumbnailServer:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=b"JPEG")


class TestThumbnailCache(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.cache_dir = os.path.join(self.tmp.name, "thumbs")
        self.server = ThumbnailServer()
        self.http = httpx.Client(transport=httpx.MockTransport(self.server))
        self.runner = DeferredTaskRunner()
        self.notifier = ChangeNotifier()
        self.notified = []
        self.notifier.subscribe_all(self.notified.append)
        self.cache = ThumbnailCache(
            self.cache_dir,
            http=self.http,
            runner=self.runner,
            notifier=self.notifier,
            referer="https://www.aliyundrive.com/",
        )

    def tearDown(self) -> None:
        self.http.close()
        self.tmp.cleanup()

    def test_path_is_flat_per_document(self) -> None:
        path = self.cache.path_for("d1/f1/f2")

        self.assertEqual(os.path.dirname(path), self.cache_dir)
        self.assertTrue(path.endswith("d1%2Ff1%2Ff2.thumbnail"))

    def test_miss_creates_placeholder_then_fills(self) -> None:
        path = self.cache.get("d1/f1", lambda: "https://img.example/f1")

        self.assertEqual(os.path.getsize(path), 0)
        self.assertEqual(self.notified, [])

        self.runner.run_pending()

        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"JPEG")
        self.assertEqual(self.notified, ["d1/f1"])
        self.assertEqual(
            self.server.requests[0].headers["Referer"], "https://www.aliyundrive.com/"
        )
        self.assertEqual(os.listdir(self.cache_dir), [os.path.basename(path)])

    def test_hit_does_not_download_again(self) -> None:
        self.cache.get("d1/f1", lambda: "https://img.example/f1")
        self.runner.run_pending()

        self.cache.get("d1/f1", lambda: "https://img.example/f1")

        self.assertEqual(self.runner.pending_count, 0)
        self.assertEqual(len(self.server.requests), 1)

    def test_http_failure_removes_placeholder(self) -> None:
        self.server.status_code = 404
        path = self.cache.get("d1/f1", lambda: "https://img.example/f1")

        with self.assertLogs("alipanprovider.thumbnails", level="ERROR"):
            self.runner.run_pending()

        self.assertFalse(os.path.exists(path))
        self.assertEqual(os.listdir(self.cache_dir), [])
        self.assertEqual(self.notified, [])

    def test_resolve_failure_removes_placeholder(self) -> None:
        def resolve_url():
            raise ApiError("boom")

        path = self.cache.get("d1/f1", resolve_url)
        with self.assertLogs("alipanprovider.thumbnails", level="ERROR"):
            self.runner.run_pending()

        self.assertFalse(os.path.exists(path))
        self.assertEqual(self.server.requests, [])


if __name__ == "__main__":
    unittest.main()
