import unittest

from alipanprovider.util.mime import MIME_TYPE_DIR, display_mime_type, is_folder


class TestUtilMime(unittest.TestCase):
    def test_is_folder(self) -> None:
        self.assertTrue(is_folder("folder"))
        self.assertFalse(is_folder("file"))

    def test_missing_mime_type_is_directory(self) -> None:
        self.assertEqual(display_mime_type(None), MIME_TYPE_DIR)
        self.assertEqual(display_mime_type(""), MIME_TYPE_DIR)
        self.assertEqual(display_mime_type("text/plain"), "text/plain")


if __name__ == "__main__":
    unittest.main()
