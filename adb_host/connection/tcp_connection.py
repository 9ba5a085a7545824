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

"""Classes for creating a socket connection with the ADB server and sending and receiving data.

* :class:`TcpConnection`

    * :attr:`TcpConnection._address`
    * :meth:`TcpConnection._wait_until_ready`
    * :meth:`TcpConnection.bulk_read`
    * :meth:`TcpConnection.bulk_write`
    * :meth:`TcpConnection.close`
    * :meth:`TcpConnection.connect`

* :class:`TcpConnectionFactory`

    * :meth:`TcpConnectionFactory.create_connection`

"""


import logging
import select
import socket

from .base_connection import BaseConnection, BaseConnectionFactory
from .. import constants
from ..exceptions import AdbConnectionError, TcpTimeoutException


_LOGGER = logging.getLogger(__name__)


class TcpConnection(BaseConnection):
    """TCP connection to the ADB server.

    Parameters
    ----------
    host : str
        The address of the ADB server
    port : int
        The port on which the ADB server listens
    timeout_s : float, None
        Timeout in seconds for connecting, sending, and receiving data, or ``None`` to block indefinitely

    Attributes
    ----------
    _connection : socket.socket, None
        A socket connection to the ADB server
    _host : str
        The address of the ADB server
    _port : int
        The port on which the ADB server listens
    _timeout_s : float, None
        Timeout in seconds for connecting, sending, and receiving data, or ``None`` to block indefinitely

    """
    def __init__(self, host=constants.DEFAULT_ADB_HOST, port=constants.DEFAULT_ADB_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
        self._host = host
        self._port = port
        self._timeout_s = timeout_s

        self._connection = None

    def close(self):
        """Close the socket connection.

        The ADB server treats the end of the connection as the end of the request, so the socket is shut down in both
        directions before it is closed.

        """
        sock, self._connection = self._connection, None
        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # The server may have already hung up
            pass

        sock.close()

    def connect(self):
        """Create a socket connection to the ADB server.

        Raises
        ------
        AdbConnectionError
            The ADB server could not be reached

        """
        try:
            self._connection = socket.create_connection((self._host, self._port), timeout=self._timeout_s)
        except OSError as exc:
            raise AdbConnectionError('Unable to connect to the ADB server at {} ({})'.format(self._address, exc)) from exc

        if self._timeout_s:
            # `select` enforces the timeout from now on
            self._connection.setblocking(False)

    def bulk_read(self, numbytes):
        """Receive data from the ADB server.

        Parameters
        ----------
        numbytes : int
            The maximum amount of data to be received

        Returns
        -------
        bytes
            The received data; empty if the server closed the connection

        Raises
        ------
        AdbConnectionError
            The connection is not open, or it was reset by the server
        TcpTimeoutException
            The server did not send anything within ``timeout_s`` seconds

        """
        self._wait_until_ready(readable=True)
        try:
            return self._connection.recv(numbytes)
        except OSError as exc:
            raise AdbConnectionError('Lost the connection to the ADB server at {} ({})'.format(self._address, exc)) from exc

    def bulk_write(self, data):
        """Send data to the ADB server.

        Parameters
        ----------
        data : bytes
            The data to be sent

        Returns
        -------
        int
            The number of bytes sent

        Raises
        ------
        AdbConnectionError
            The connection is not open, or it was reset by the server
        TcpTimeoutException
            The server did not accept any data within ``timeout_s`` seconds; no data was sent

        """
        self._wait_until_ready(readable=False)
        try:
            return self._connection.send(data)
        except OSError as exc:
            raise AdbConnectionError('Lost the connection to the ADB server at {} ({})'.format(self._address, exc)) from exc

    @property
    def _address(self):
        return '{}:{}'.format(self._host, self._port)

    def _wait_until_ready(self, readable):
        """Wait until the socket can be read from (or written to).

        Parameters
        ----------
        readable : bool
            Whether to wait for incoming data rather than for room to send

        Raises
        ------
        AdbConnectionError
            The connection is not open
        TcpTimeoutException
            The socket did not become ready within ``timeout_s`` seconds

        """
        if self._connection is None:
            raise AdbConnectionError('Not connected to the ADB server at {}'.format(self._address))

        if readable:
            ready, _, _ = select.select([self._connection], [], [], self._timeout_s)
        else:
            _, ready, _ = select.select([], [self._connection], [], self._timeout_s)

        if not ready:
            action = 'send a response' if readable else 'accept data'
            raise TcpTimeoutException('The ADB server at {} did not {} within {} seconds'.format(self._address, action, self._timeout_s))


class TcpConnectionFactory(BaseConnectionFactory):
    """Create :class:`TcpConnection` connections to a local ADB server.

    Parameters
    ----------
    host : str
        The address of the ADB server
    port : int
        The port on which the ADB server listens
    timeout_s : float, None
        Timeout in seconds for each connection, or ``None``

    """
    def __init__(self, host=constants.DEFAULT_ADB_HOST, port=constants.DEFAULT_ADB_PORT, timeout_s=constants.DEFAULT_TIMEOUT_S):
        self.host = host
        self.port = port
        self.timeout_s = timeout_s

    def create_connection(self):
        """Open a new connection to the ADB server.

        Returns
        -------
        TcpConnection
            A connected :class:`TcpConnection`; the caller is responsible for closing it

        """
        _LOGGER.debug("Connecting to the ADB server at %s:%s", self.host, self.port)
        connection = TcpConnection(self.host, self.port, self.timeout_s)
        connection.connect()
        return connection
