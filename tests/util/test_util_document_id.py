import unittest

from alipanprovider.util.document_id import (
    DocumentKey,
    decode,
    encode,
    remote_folder_id,
)


class TestDocumentId(unittest.TestCase):
    def test_drive_root_is_bare_drive_id(self) -> None:
        self.assertEqual(encode("d1", None, None), "d1")
        self.assertEqual(decode("d1"), DocumentKey("d1", None, None))

    def test_top_level_file(self) -> None:
        doc_id = encode("d1", None, "f1")
        self.assertEqual(doc_id, "d1/f1")
        self.assertEqual(decode(doc_id), DocumentKey("d1", "d1", "f1"))

    def test_nested_file_keeps_parent_path(self) -> None:
        doc_id = encode("d1", "d1/a/b", "f1")
        self.assertEqual(doc_id, "d1/a/b/f1")
        drive_id, parent_id, file_id = decode(doc_id)
        self.assertEqual(drive_id, "d1")
        self.assertEqual(parent_id, "d1/a/b")
        self.assertEqual(file_id, "f1")

    def test_round_trip(self) -> None:
        cases = [
            ("d1", None, None),
            ("d1", "d1", "f1"),
            ("d1", "d1/a", "f2"),
            ("drive_9", "drive_9/x/y/z", "file_0"),
        ]
        for case in cases:
            with self.subTest(case=case):
                self.assertEqual(decode(encode(*case)), case)

    def test_decode_absent_and_null(self) -> None:
        self.assertEqual(decode(None), DocumentKey(None, None, None))
        self.assertEqual(decode(""), DocumentKey(None, None, None))
        self.assertEqual(decode("null"), DocumentKey(None, None, None))

    def test_decode_null_parent(self) -> None:
        self.assertEqual(decode("null/f1"), DocumentKey(None, None, "f1"))

    def test_decode_never_raises(self) -> None:
        for value in ("/", "//", "a//b", 42, object()):
            with self.subTest(value=value):
                key = decode(value)  # type: ignore[arg-type]
                self.assertIsInstance(key, DocumentKey)

    def test_remote_folder_id_defaults_to_root(self) -> None:
        self.assertEqual(remote_folder_id(decode("d1")), "root")
        self.assertEqual(remote_folder_id(decode("d1/f1")), "f1")


if __name__ == "__main__":
    unittest.main()
