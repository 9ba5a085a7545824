from io import BytesIO
import unittest
from unittest.mock import patch

from adb_host import constants, exceptions
from adb_host.sync_transport import SyncTransport
from adb_host.transport import Transport, encode_command

from .patchers import FakeConnection, fail, host_message, host_string, okay


class TestTransport(unittest.TestCase):
    def setUp(self):
        self.connection = FakeConnection(chunk_size=3)
        self.transport = Transport(self.connection)

    def test_send(self):
        self.transport.send('host:version')
        self.assertEqual(self.connection.bulk_write_data, b'000chost:version')

    def test_send_bytes(self):
        self.transport.send(b'host:transport-any')
        self.assertEqual(self.connection.bulk_write_data, host_message(b'host:transport-any'))

    def test_send_max_length(self):
        self.transport.send(b'a' * constants.MAX_COMMAND_LENGTH)
        self.assertEqual(self.connection.bulk_write_data[:4], b'ffff')
        self.assertEqual(len(self.connection.bulk_write_data), 4 + constants.MAX_COMMAND_LENGTH)

    def test_send_too_long(self):
        with self.assertRaises(exceptions.CommandTooLongError):
            self.transport.send('a' * (constants.MAX_COMMAND_LENGTH + 1))

        self.assertEqual(self.connection.bulk_write_data, b'')

    def test_send_too_long_is_value_error(self):
        # The limit applies to the encoded command
        with self.assertRaises(ValueError):
            self.transport.send('é' * 40000)

        self.assertEqual(self.connection.bulk_write_data, b'')

    def test_encode_command(self):
        self.assertEqual(encode_command('host:version'), b'host:version')
        self.assertEqual(encode_command(b'sync:'), b'sync:')
        self.assertEqual(len(encode_command('a' * constants.MAX_COMMAND_LENGTH)), constants.MAX_COMMAND_LENGTH)

        with self.assertRaises(exceptions.CommandTooLongError):
            encode_command(b'a' * (constants.MAX_COMMAND_LENGTH + 1))

    def test_write_not_accepted(self):
        with patch.object(self.connection, 'bulk_write', return_value=0):
            with self.assertRaises(exceptions.AdbConnectionError):
                self.transport.write(b'data')

    def test_write_partial(self):
        sent = []

        def _bulk_write(data):
            sent.append(bytes(data[:2]))
            return min(len(data), 2)

        with patch.object(self.connection, 'bulk_write', side_effect=_bulk_write):
            self.transport.write(b'12345')

        self.assertEqual(sent, [b'12', b'34', b'5'])

    def test_verify_response_okay(self):
        self.connection.bulk_read_data = okay()
        self.transport.verify_response()
        self.assertEqual(self.connection.bulk_read_data, b'')

    def test_verify_response_fail(self):
        self.connection.bulk_read_data = fail(b'no such file')
        with self.assertRaises(exceptions.AdbCommandFailureException) as context:
            self.transport.verify_response()

        self.assertEqual(str(context.exception), 'no such file')

    def test_verify_response_unexpected(self):
        self.connection.bulk_read_data = b'WHAT'
        with self.assertRaises(exceptions.InvalidResponseError):
            self.transport.verify_response()

    def test_verify_response_connection_closed(self):
        self.connection.bulk_read_data = b'OK'
        with self.assertRaises(exceptions.AdbConnectionError):
            self.transport.verify_response()

    def test_read_string(self):
        self.connection.bulk_read_data = host_string(b'device')
        self.assertEqual(self.transport.read_string(), 'device')

    def test_read_string_invalid_length(self):
        self.connection.bulk_read_data = b'zzzzdevice'
        with self.assertRaises(exceptions.InvalidResponseError):
            self.transport.read_string()

    def test_read_string_truncated(self):
        self.connection.bulk_read_data = b'0010device'
        with self.assertRaises(exceptions.AdbConnectionError):
            self.transport.read_string()

    def test_read_response_to(self):
        self.connection.bulk_read_data = b'restarting adbd as root\n'
        sink = BytesIO()
        self.transport.read_response_to(sink)
        self.assertEqual(sink.getvalue(), b'restarting adbd as root\n')
        self.assertFalse(self.transport.closed)

    def test_start_sync(self):
        self.connection.bulk_read_data = okay()
        sync = self.transport.start_sync()
        self.assertIsInstance(sync, SyncTransport)
        self.assertEqual(self.connection.bulk_write_data, host_message(b'sync:'))

    def test_start_sync_fail(self):
        self.connection.bulk_read_data = fail(b'device offline')
        with self.assertRaises(exceptions.AdbCommandFailureException):
            self.transport.start_sync()

    def test_get_raw_stream(self):
        self.connection.bulk_read_data = b'\x89PNG\r\n\x1a\n'
        stream = self.transport.get_raw_stream()
        self.assertEqual(stream.read(), b'\x89PNG\r\n\x1a\n')
        self.assertFalse(self.connection.closed)

        stream.close()
        self.assertTrue(self.transport.closed)
        self.assertEqual(self.connection.close_count, 1)

    def test_close_idempotent(self):
        self.transport.close()
        self.transport.close()
        self.assertTrue(self.transport.closed)
        self.assertEqual(self.connection.close_count, 1)

    def test_context_manager(self):
        with self.transport as transport:
            self.assertIs(transport, self.transport)
            self.assertFalse(self.connection.closed)

        self.assertEqual(self.connection.close_count, 1)

    def test_context_manager_exception(self):
        with self.assertRaises(exceptions.InvalidResponseError):
            with self.transport:
                raise exceptions.InvalidResponseError('test')

        self.assertEqual(self.connection.close_count, 1)


if __name__ == '__main__':
    unittest.main()
