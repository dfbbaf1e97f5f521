import unittest

from alipanprovider.errors import ListingTruncatedError, NetworkError
from alipanprovider.listing import list_all
from alipanprovider.models import ListPage, RemoteEntry


def _entry(file_id: str) -> RemoteEntry:
    return RemoteEntry(file_id=file_id, drive_id="d1", name=file_id, kind="file")


class PagedClient:
    def __init__(self, pages) -> None:
        self.pages = list(pages)
        self.calls = []

    def list_file(self, authorization, drive_id, parent_file_id, marker=None):
        self.calls.append((authorization, drive_id, parent_file_id, marker))
        items, next_marker = self.pages[len(self.calls) - 1]
        return ListPage(items=[_entry(i) for i in items], next_marker=next_marker)


class EndlessClient:
    def __init__(self) -> None:
        self.calls = 0

    def list_file(self, authorization, drive_id, parent_file_id, marker=None):
        self.calls += 1
        return ListPage(items=[_entry(f"x{self.calls}")], next_marker=f"m{self.calls}")


class TestListAll(unittest.TestCase):
    def test_concatenates_pages_in_order(self) -> None:
        client = PagedClient([(["A", "B"], "m1"), (["C"], "")])

        entries = list_all(client, "auth", "d1", "root")

        self.assertEqual([e.file_id for e in entries], ["A", "B", "C"])
        self.assertEqual(len(client.calls), 2)

    def test_markers_are_threaded_through(self) -> None:
        client = PagedClient([(["A"], "m1"), (["B"], "m2"), ([], "")])

        entries = list_all(client, "auth", "d1", "dir")

        self.assertEqual([c[3] for c in client.calls], [None, "m1", "m2"])
        self.assertEqual([c[2] for c in client.calls], ["dir", "dir", "dir"])
        self.assertEqual(len(entries), 2)

    def test_empty_directory(self) -> None:
        client = PagedClient([([], "")])
        self.assertEqual(list_all(client, "auth", "d1", "root"), [])
        self.assertEqual(len(client.calls), 1)

    def test_non_terminating_listing_is_truncated(self) -> None:
        client = EndlessClient()

        with self.assertRaises(ListingTruncatedError) as ctx:
            list_all(client, "auth", "d1", "root", max_pages=5)

        self.assertEqual(client.calls, 5)
        self.assertEqual(ctx.exception.details["items"], 5)

    def test_remote_errors_propagate(self) -> None:
        class FailingClient:
            def list_file(self, *args, **kwargs):
                raise NetworkError("down")

        with self.assertRaises(NetworkError):
            list_all(FailingClient(), "auth", "d1", "root")


if __name__ == "__main__":
    unittest.main()
