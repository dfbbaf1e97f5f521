import threading
import unittest

from alipanprovider.errors import InvalidStateError
from alipanprovider.transfer.channel import ByteChannel


class TestByteChannel(unittest.TestCase):
    def test_close_drains_everything_written(self) -> None:
        channel = ByteChannel()
        channel.write(b"hello ")
        channel.write(b"")
        channel.write(b"world")
        channel.close()

        self.assertEqual(channel.read_all(), b"hello world")
        self.assertEqual(channel.bytes_written, 11)
        self.assertIsNone(channel.read_chunk())

    def test_write_after_close_fails(self) -> None:
        channel = ByteChannel()
        channel.close()
        with self.assertRaises(InvalidStateError):
            channel.write(b"x")

    def test_bounded_writer_waits_for_reader(self) -> None:
        channel = ByteChannel(max_chunks=2)
        result = {}

        def reader() -> None:
            result["data"] = channel.read_all()

        thread = threading.Thread(target=reader)
        thread.start()
        for i in range(20):
            channel.write(bytes([i]))
        channel.close()
        thread.join(timeout=5)

        self.assertFalse(thread.is_alive())
        self.assertEqual(result["data"], bytes(range(20)))

    def test_abort_unblocks_writer(self) -> None:
        channel = ByteChannel(max_chunks=1)
        channel.write(b"a")
        errors = []

        def writer() -> None:
            try:
                channel.write(b"b")
            except InvalidStateError as exc:
                errors.append(exc)

        thread = threading.Thread(target=writer)
        thread.start()
        channel.abort(RuntimeError("upload gone"))
        thread.join(timeout=5)

        self.assertFalse(thread.is_alive())
        self.assertEqual(len(errors), 1)
        with self.assertRaises(InvalidStateError):
            channel.read_chunk()

    def test_read_chunk_timeout(self) -> None:
        channel = ByteChannel()
        with self.assertRaises(TimeoutError):
            channel.read_chunk(timeout=0.01)

    def test_rejects_invalid_capacity(self) -> None:
        with self.assertRaises(ValueError):
            ByteChannel(max_chunks=0)


if __name__ == "__main__":
    unittest.main()
