from io import BytesIO
import struct
import unittest

from adb_host import constants, exceptions
from adb_host.hidden_helpers import RemoteFileRecord, RemoteFileRecordV2, StatResult
from adb_host.transport import Transport

from .patchers import FakeConnection
from .sync_helpers import dent, dnt2, list_done, stat_reply, sync_packet, sync_status


class TestSyncTransport(unittest.TestCase):
    def setUp(self):
        self.connection = FakeConnection(chunk_size=5)
        self.connection.bulk_read_data = b'OKAY'
        self.sync = Transport(self.connection).start_sync()
        self.connection.bulk_write_data = b''

    def test_send(self):
        self.sync.send(constants.LIST, '/sdcard')
        self.assertEqual(self.connection.bulk_write_data, b'LIST\x07\x00\x00\x00/sdcard')

    def test_send_stream(self):
        chunks = []
        self.sync.send_stream(BytesIO(b'a' * (constants.MAX_SYNC_DATA + 1)), chunks.append)

        expected = sync_packet(constants.DATA, b'a' * constants.MAX_SYNC_DATA) + sync_packet(constants.DATA, b'a')
        self.assertEqual(self.connection.bulk_write_data, expected)
        self.assertEqual(chunks, [constants.MAX_SYNC_DATA, 1])

    def test_send_stream_empty(self):
        self.sync.send_stream(BytesIO(b''))
        self.assertEqual(self.connection.bulk_write_data, b'')

    def test_send_status_truncates(self):
        self.sync.send_status(constants.DONE, 2 ** 32 + 5)
        self.assertEqual(self.connection.bulk_write_data, b'DONE\x05\x00\x00\x00')

    def test_verify_status_okay(self):
        self.connection.bulk_read_data = sync_status(constants.OKAY)
        self.sync.verify_status()
        self.assertEqual(self.connection.bulk_read_data, b'')

    def test_verify_status_fail(self):
        self.connection.bulk_read_data = sync_packet(constants.FAIL, b'Read-only file system')
        with self.assertRaises(exceptions.AdbCommandFailureException) as context:
            self.sync.verify_status()

        self.assertEqual(str(context.exception), 'Read-only file system')

    def test_verify_status_unexpected(self):
        self.connection.bulk_read_data = sync_status(constants.DATA)
        with self.assertRaises(exceptions.InvalidResponseError):
            self.sync.verify_status()

    def test_read_chunks_to(self):
        self.connection.bulk_read_data = sync_packet(constants.DATA, b'abc') + sync_packet(constants.DATA, b'def') + sync_status(constants.DONE)
        sink = BytesIO()
        chunks = []
        self.sync.read_chunks_to(sink, chunks.append)

        self.assertEqual(sink.getvalue(), b'abcdef')
        self.assertEqual(chunks, [3, 3])
        self.assertEqual(self.connection.bulk_read_data, b'')

    def test_read_chunks_to_fail(self):
        self.connection.bulk_read_data = sync_packet(constants.FAIL, b'no such file')
        with self.assertRaises(exceptions.AdbCommandFailureException) as context:
            self.sync.read_chunks_to(BytesIO())

        self.assertEqual(str(context.exception), 'no such file')

    def test_read_chunks_to_unexpected(self):
        self.connection.bulk_read_data = sync_status(constants.DENT)
        with self.assertRaises(exceptions.InvalidResponseError):
            self.sync.read_chunks_to(BytesIO())

    def test_read_chunks_to_truncated(self):
        self.connection.bulk_read_data = constants.DATA + struct.pack(b'<I', 10) + b'abc'
        with self.assertRaises(exceptions.AdbConnectionError):
            self.sync.read_chunks_to(BytesIO())

    def test_read_directory_entry(self):
        self.connection.bulk_read_data = dent(b'file.txt', 0o100644, 5, 1234) + list_done()

        self.assertEqual(self.sync.read_directory_entry(), RemoteFileRecord('file.txt', 0o100644, 5, 1234))
        self.assertEqual(self.sync.read_directory_entry(), RemoteFileRecord.DONE)

    def test_read_directory_entry_v2(self):
        self.connection.bulk_read_data = dnt2(b'big.img', 0o100644, 5 * 2 ** 32, 2 ** 33) + list_done()

        entry = self.sync.read_directory_entry_v2()
        self.assertIsInstance(entry, RemoteFileRecordV2)
        self.assertEqual(entry.size, 5 * 2 ** 32)
        self.assertEqual(entry.mtime, 2 ** 33)
        self.assertEqual(self.sync.read_directory_entry_v2(), RemoteFileRecordV2.DONE)

    def test_read_directory_entry_fail(self):
        self.connection.bulk_read_data = sync_packet(constants.FAIL, b'Permission denied')
        with self.assertRaises(exceptions.AdbCommandFailureException) as context:
            self.sync.read_directory_entry()

        self.assertEqual(str(context.exception), 'Permission denied')

    def test_read_directory_entry_wrong_variant(self):
        self.connection.bulk_read_data = dnt2(b'file.txt', 0o100644, 5, 1234)
        with self.assertRaises(exceptions.InvalidResponseError):
            self.sync.read_directory_entry()

    def test_read_stat(self):
        self.connection.bulk_read_data = stat_reply(0o100644, 5, 1234)
        self.assertEqual(self.sync.read_stat(), StatResult(0o100644, 5, 1234))

    def test_read_stat_unexpected(self):
        self.connection.bulk_read_data = sync_status(constants.DENT) + b'\0' * 8
        with self.assertRaises(exceptions.InvalidResponseError):
            self.sync.read_stat()


if __name__ == '__main__':
    unittest.main()
