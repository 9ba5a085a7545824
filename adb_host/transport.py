# Copyright (c) 2021 Jeff Irion and contributors
#
# This file is part of the adb-host package.  It incorporates work
# covered by the following license notice:
#
#
#   Copyright 2014 Google Inc. All rights reserved.
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""Frame host protocol requests and responses over a single connection to the ADB server.

A request is a 4 hex digit length followed by the command; the response starts with ``b'OKAY'`` or ``b'FAIL'``.

.. rubric:: Contents

* :class:`_TransportReader`

    * :meth:`_TransportReader.close`
    * :meth:`_TransportReader.readable`
    * :meth:`_TransportReader.readinto`

* :func:`encode_command`

* :class:`Transport`

    * :meth:`Transport._read_length`
    * :meth:`Transport.bulk_read`
    * :meth:`Transport.close`
    * :meth:`Transport.get_raw_stream`
    * :meth:`Transport.read`
    * :meth:`Transport.read_response_to`
    * :meth:`Transport.read_string`
    * :meth:`Transport.send`
    * :meth:`Transport.start_sync`
    * :meth:`Transport.verify_response`
    * :meth:`Transport.write`

"""


import io
import logging

from . import constants
from . import exceptions
from .sync_transport import SyncTransport


_LOGGER = logging.getLogger(__name__)

_DECODE_ERRORS = "backslashreplace"


def encode_command(command):
    """Encode a host protocol command and check that it fits in a request.

    Parameters
    ----------
    command : str, bytes
        The command, e.g., ``'host:transport-any'``

    Returns
    -------
    bytes
        The UTF-8 encoded command

    Raises
    ------
    adb_host.exceptions.CommandTooLongError
        The encoded command is longer than :const:`adb_host.constants.MAX_COMMAND_LENGTH` bytes

    """
    if not isinstance(command, bytes):
        command = command.encode('utf-8')

    if len(command) > constants.MAX_COMMAND_LENGTH:
        raise exceptions.CommandTooLongError('Command is {} bytes long; the maximum is {}'.format(len(command), constants.MAX_COMMAND_LENGTH))

    return command


class _TransportReader(io.RawIOBase):
    """A raw binary stream over everything the server sends after a successful response.

    Parameters
    ----------
    transport : Transport
        The transport whose connection will be read; it is closed along with this reader

    """
    def __init__(self, transport):
        super().__init__()
        self._transport = transport

    def close(self):
        """Close this reader and the transport.

        """
        if not self.closed:
            self._transport.close()
        super().close()

    def readable(self):
        return True

    def readinto(self, buffer):
        data = self._transport.bulk_read(len(buffer))
        buffer[:len(data)] = data
        return len(data)


class Transport(object):
    """One framed exchange with the ADB server.

    The transport takes ownership of ``connection``; :meth:`Transport.close` must be called exactly once on every
    code path, unless the connection was handed over via :meth:`Transport.get_raw_stream`.

    Parameters
    ----------
    connection : adb_host.connection.base_connection.BaseConnection
        A connected connection to the ADB server

    Attributes
    ----------
    _connection : adb_host.connection.base_connection.BaseConnection, None
        The connection to the ADB server, or ``None`` once this transport has been closed

    """
    def __init__(self, connection):
        self._connection = connection

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def closed(self):
        """Whether this transport has been closed.

        Returns
        -------
        bool
            Whether the connection has been released

        """
        return self._connection is None

    def close(self):
        """Close the connection.

        """
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    # ======================================================================= #
    #                                                                         #
    #                              Host protocol                              #
    #                                                                         #
    # ======================================================================= #
    def send(self, command):
        """Send a length-prefixed command.

        Parameters
        ----------
        command : str, bytes
            The command, e.g., ``'host:transport-any'``

        Raises
        ------
        adb_host.exceptions.CommandTooLongError
            The encoded command is longer than :const:`adb_host.constants.MAX_COMMAND_LENGTH` bytes; nothing was sent

        """
        command = encode_command(command)
        _LOGGER.debug("send: %.1000r", command)
        self.write(b'%04x' % len(command) + command)

    def verify_response(self):
        """Read the status of the last command.

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            The server responded with ``b'FAIL'``; the exception message is the one sent by the server
        adb_host.exceptions.InvalidResponseError
            The server responded with something other than ``b'OKAY'`` or ``b'FAIL'``

        """
        status = self.read(4)
        if status == constants.OKAY:
            return

        if status == constants.FAIL:
            raise exceptions.AdbCommandFailureException(self.read_string())

        raise exceptions.InvalidResponseError('Unexpected response: {!r}'.format(status))

    def read_string(self):
        """Read a length-prefixed string.

        Returns
        -------
        str
            The decoded string

        """
        return self.read(self._read_length()).decode('utf-8', _DECODE_ERRORS)

    def start_sync(self):
        """Switch this connection to the FileSync protocol.

        Returns
        -------
        SyncTransport
            A FileSync handle bound to this transport's connection

        """
        self.send(b'sync:')
        self.verify_response()
        return SyncTransport(self)

    def get_raw_stream(self):
        """Hand over the rest of the connection as a binary stream.

        Closing the returned stream closes this transport.

        Returns
        -------
        io.BufferedReader
            Everything that the server sends from now on

        """
        return io.BufferedReader(_TransportReader(self), constants.MAX_SYNC_DATA)

    def read_response_to(self, sink):
        """Copy everything that the server sends from now on into ``sink``.

        Parameters
        ----------
        sink : io.BufferedIOBase
            A writable binary stream

        """
        while True:
            data = self.bulk_read(constants.MAX_SYNC_DATA)
            if not data:
                break

            sink.write(data)

    # ======================================================================= #
    #                                                                         #
    #                                 Raw I/O                                 #
    #                                                                         #
    # ======================================================================= #
    def bulk_read(self, numbytes):
        """Read up to ``numbytes`` bytes from the connection.

        Parameters
        ----------
        numbytes : int
            The maximum amount of data to read

        Returns
        -------
        bytes
            The data that was read; empty if the server closed the connection

        """
        data = self._connection.bulk_read(numbytes)
        if data:
            # Only log if `data` is not empty
            _LOGGER.debug("bulk_read(%d): %.1000r", numbytes, data)
        return data

    def read(self, length):
        """Read exactly ``length`` bytes from the connection.

        Parameters
        ----------
        length : int
            The amount of data to read

        Returns
        -------
        bytes
            The data that was read

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            The server closed the connection before ``length`` bytes were received

        """
        data = bytearray()

        while len(data) < length:
            temp = self.bulk_read(length - len(data))
            if not temp:
                raise exceptions.AdbConnectionError('Connection closed by the ADB server: read {} of {} bytes'.format(len(data), length))

            data += temp

        return bytes(data)

    def write(self, data):
        """Write all of ``data`` to the connection.

        Parameters
        ----------
        data : bytes
            The data to be sent

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            The connection did not accept any data

        """
        _LOGGER.debug("bulk_write(%d): %.1000r", len(data), data)
        view = memoryview(data)

        while view:
            sent = self._connection.bulk_write(view)
            if not sent:
                raise exceptions.AdbConnectionError('Connection closed by the ADB server: {} bytes were not sent'.format(len(view)))

            view = view[sent:]

    def _read_length(self):
        """Read a 4 hex digit length.

        Returns
        -------
        int
            The length

        Raises
        ------
        adb_host.exceptions.InvalidResponseError
            The length is not a hexadecimal number

        """
        length = self.read(4)
        try:
            return int(length, 16)
        except ValueError as exc:
            raise exceptions.InvalidResponseError('Invalid length: {!r}'.format(length)) from exc
