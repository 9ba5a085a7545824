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

"""Implement the :class:`AdbDevice` class, which runs commands on a device through the local ADB server.

.. rubric:: Contents

* :func:`_open_passthrough`

* :class:`AdbDevice`

    * :meth:`AdbDevice._create_transport`
    * :meth:`AdbDevice._forward`
    * :meth:`AdbDevice._get_transport`
    * :meth:`AdbDevice._list_forwardings`
    * :meth:`AdbDevice._open_stream`
    * :meth:`AdbDevice._progress`
    * :meth:`AdbDevice._push`
    * :meth:`AdbDevice._run`
    * :meth:`AdbDevice._send`
    * :meth:`AdbDevice.enable_adb_over_tcp`
    * :meth:`AdbDevice.execute`
    * :meth:`AdbDevice.execute_shell`
    * :meth:`AdbDevice.execute_shell_to`
    * :meth:`AdbDevice.forward_port`
    * :meth:`AdbDevice.get_state`
    * :meth:`AdbDevice.list`
    * :meth:`AdbDevice.list_forwarded_ports`
    * :meth:`AdbDevice.list_reversed_ports`
    * :meth:`AdbDevice.pull`
    * :meth:`AdbDevice.push`
    * :meth:`AdbDevice.reboot`
    * :meth:`AdbDevice.remove_all_forwarded_ports`
    * :meth:`AdbDevice.remove_all_reversed_ports`
    * :meth:`AdbDevice.remove_forwarded_port`
    * :meth:`AdbDevice.remove_reversed_port`
    * :meth:`AdbDevice.reverse_port`
    * :meth:`AdbDevice.root`
    * :attr:`AdbDevice.serial`
    * :meth:`AdbDevice.stat`

"""


from contextlib import contextmanager
from io import BufferedReader, BytesIO
import logging
import os
import shutil
import time
import warnings

from . import constants
from . import exceptions
from .adb_filter import AdbFilterReader
from .connection.base_connection import BaseConnectionFactory
from .connection.tcp_connection import TcpConnectionFactory
from .constants import DeviceState
from .hidden_helpers import PortForwarding, RemoteFileRecord, RemoteFileRecordV2, build_cmd_line, is_forward_target_valid
from .transport import Transport, encode_command


_LOGGER = logging.getLogger(__name__)

_DECODE_ERRORS = "backslashreplace"


@contextmanager
def _open_passthrough(stream, *args, **kwargs):  # pylint: disable=unused-argument
    """A context manager for a caller-provided stream that does nothing.

    The stream belongs to the caller, so it is not closed.

    Parameters
    ----------
    stream : io.IOBase
        The stream
    args : list
        Unused positional arguments
    kwargs : dict
        Unused keyword arguments

    Yields
    ------
    stream : io.IOBase
        The `stream` input parameter

    """
    yield stream


class AdbDevice(object):
    """A device (or "any device") that is reached through the local ADB server.

    The device holds no connection; every method opens its own connection and closes it before returning (or hands
    it over to the stream that it returns).

    Parameters
    ----------
    serial : str, None
        The serial of the device, or ``None`` for whichever single device the server has
    connection_factory : adb_host.connection.base_connection.BaseConnectionFactory, None
        Creates connections to the ADB server; if ``None``, a :class:`~adb_host.connection.tcp_connection.TcpConnectionFactory`
        for ``127.0.0.1:5037`` is used

    Raises
    ------
    adb_host.exceptions.InvalidConnectionFactoryError
        The passed ``connection_factory`` is not an instance of a subclass of :class:`~adb_host.connection.base_connection.BaseConnectionFactory`

    Attributes
    ----------
    _connection_factory : adb_host.connection.base_connection.BaseConnectionFactory
        Creates connections to the ADB server
    _serial : str, None
        The serial of the device, or ``None`` for any device

    """

    def __init__(self, serial=None, connection_factory=None):
        if connection_factory is None:
            connection_factory = TcpConnectionFactory()

        if not isinstance(connection_factory, BaseConnectionFactory):
            raise exceptions.InvalidConnectionFactoryError("`connection_factory` must be an instance of a subclass of `BaseConnectionFactory`")

        self._serial = serial
        self._connection_factory = connection_factory

    # ======================================================================= #
    #                                                                         #
    #                       Properties & simple methods                       #
    #                                                                         #
    # ======================================================================= #
    @property
    def serial(self):
        """The serial of the device.

        Returns
        -------
        str, None
            ``self._serial``, or ``None`` for any device

        """
        return self._serial

    def __eq__(self, other):
        if not isinstance(other, AdbDevice):
            return NotImplemented
        return self._serial == other._serial

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self._serial)

    def __repr__(self):
        return '{}(serial={!r})'.format(type(self).__name__, self._serial)

    def __str__(self):
        return 'Android device with serial {}'.format(self._serial)

    def get_state(self):
        """Get the connectivity state of the device.

        Returns
        -------
        adb_host.constants.DeviceState
            The state reported by the server; :attr:`~adb_host.constants.DeviceState.UNKNOWN` if the server sent a state that is not recognized

        """
        command = encode_command('host:get-state' if self._serial is None else 'host-serial:{}:get-state'.format(self._serial))

        with self._create_transport() as transport:
            self._send(transport, command)
            return DeviceState.from_token(transport.read_string())

    # ======================================================================= #
    #                                                                         #
    #                            Shell & services                             #
    #                                                                         #
    # ======================================================================= #
    def execute_shell(self, command, *args):
        """Run a shell command.

        For Android 5.0 and later, use :meth:`AdbDevice.execute` for binary output.

        Parameters
        ----------
        command : str
            The main command, e.g., ``'ls'``; it is not quoted
        args : str
            Arguments to the command; each one is quoted

        Returns
        -------
        io.BufferedReader
            The combined stdout/stderr, with ``\\r\\n`` replaced by ``\\n``; closing it closes the connection

        """
        return BufferedReader(AdbFilterReader(self._open_stream('shell:' + build_cmd_line(command, args))))

    def execute_shell_to(self, output, command, *args):
        """Run a shell command and copy its output into ``output``.

        .. deprecated::

           Use :meth:`AdbDevice.execute_shell` and ``shutil.copyfileobj`` instead.


        Parameters
        ----------
        output : io.BufferedIOBase, None
            A writable binary stream, or ``None`` to discard the output
        command : str
            The main command, e.g., ``'ls'``; it is not quoted
        args : str
            Arguments to the command; each one is quoted

        """
        warnings.warn("`execute_shell_to` is deprecated; use `execute_shell` and `shutil.copyfileobj` instead", DeprecationWarning, stacklevel=2)

        with self.execute_shell(command, *args) as stream:
            if output is not None:
                shutil.copyfileobj(stream, output)

    def execute(self, command, *args):
        """Run a command with raw binary output.

        This uses the ``exec:`` service, which was added in Android 5.0; for earlier versions, use
        :meth:`AdbDevice.execute_shell`.

        Parameters
        ----------
        command : str
            The main command, e.g., ``'screencap'``; it is not quoted
        args : str
            Arguments to the command, e.g., ``'-p'``; each one is quoted

        Returns
        -------
        io.BufferedReader
            The combined stdout/stderr, unmodified; closing it closes the connection

        """
        return self._open_stream('exec:' + build_cmd_line(command, args))

    def enable_adb_over_tcp(self, port=constants.DEFAULT_TCPIP_PORT):
        """Restart the ADB daemon on the device in TCP mode.

        Parameters
        ----------
        port : int
            The port on which the daemon will listen

        """
        self._run('tcpip:{:d}'.format(port))

    def reboot(self, fastboot=False):
        """Reboot the device.

        Parameters
        ----------
        fastboot : bool
            Whether to reboot the device into the bootloader

        """
        self._run('reboot:bootloader' if fastboot else 'reboot:')

    def root(self):
        """Restart the ADB daemon on the device with root permissions.

        The device must be rooted in order for this to work.

        Returns
        -------
        str
            The message from the daemon, e.g., ``'restarting adbd as root\\n'``

        """
        output = BytesIO()

        with self._get_transport() as transport:
            self._send(transport, 'root:')
            transport.read_response_to(output)

        return output.getvalue().decode('utf-8', _DECODE_ERRORS)

    # ======================================================================= #
    #                                                                         #
    #                                 FileSync                                #
    #                                                                         #
    # ======================================================================= #
    def list(self, device_path, wide=False):
        """Return a directory listing of the given path.

        Parameters
        ----------
        device_path : str
            Directory to list.
        wide : bool
            Whether to use the ``b'LIS2'`` command, whose entries have 64-bit sizes and timestamps

        Returns
        -------
        files : list[RemoteFileRecord], list[RemoteFileRecordV2]
            Name, mode, size, and mtime info for the files in the directory

        """
        if not device_path:
            raise exceptions.DevicePathInvalidError("Cannot list an empty device path")

        with self._get_transport() as transport:
            sync = transport.start_sync()

            if wide:
                sync.send(constants.LIS2, device_path)
                return list(iter(sync.read_directory_entry_v2, RemoteFileRecordV2.DONE))

            sync.send(constants.LIST, device_path)
            return list(iter(sync.read_directory_entry, RemoteFileRecord.DONE))

    def stat(self, device_path):
        """Get a file's ``stat()`` information.

        Parameters
        ----------
        device_path : str
            The file on the device for which we will get information.

        Returns
        -------
        adb_host.hidden_helpers.StatResult
            The mode, size, and mtime of the file; all three are 0 if the file does not exist

        """
        if not device_path:
            raise exceptions.DevicePathInvalidError("Cannot stat an empty device path")

        with self._get_transport() as transport:
            sync = transport.start_sync()
            sync.send(constants.STAT, device_path)
            return sync.read_stat()

    def pull(self, device_path, local_path, progress_callback=None):
        """Pull a file from the device.

        Parameters
        ----------
        device_path : str
            The file on the device that will be pulled
        local_path : str, io.BufferedIOBase
            The path or writable binary stream where the file will be downloaded
        progress_callback : function, None
            Callback method that accepts ``device_path``, ``bytes_written``, and ``total_bytes``

        """
        if not device_path:
            raise exceptions.DevicePathInvalidError("Cannot pull from an empty device path")

        total_bytes = self.stat(device_path).size if progress_callback else None

        def _chunk_callback(num_bytes):
            self._progress(progress_callback, device_path, num_bytes, total_bytes)

        opener = _open_passthrough if hasattr(local_path, 'write') else open
        with opener(local_path, 'wb') as stream:
            with self._get_transport() as transport:
                sync = transport.start_sync()
                sync.send(constants.RECV, device_path)
                sync.read_chunks_to(stream, _chunk_callback if progress_callback else None)

    def push(self, local_path, device_path, st_mode=constants.DEFAULT_PUSH_MODE, mtime=0, progress_callback=None):
        """Push a file to the device.

        Parameters
        ----------
        local_path : str, io.BufferedIOBase
            A filename or readable binary stream to push to the device
        device_path : str
            Destination on the device to write to.
        st_mode : int
            Permissions for the file on the device
        mtime : int
            Modification time to set on the file; if 0, the modification time of ``local_path`` is used for a
            filename and the current time for a stream
        progress_callback : function, None
            Callback method that accepts ``device_path``, ``bytes_written``, and ``total_bytes``

        """
        if not device_path:
            raise exceptions.DevicePathInvalidError("Cannot push to an empty device path")

        is_stream = hasattr(local_path, 'read')

        if mtime == 0:
            mtime = int(time.time()) if is_stream else int(os.path.getmtime(local_path))

        total_bytes = None if is_stream else os.path.getsize(local_path)

        opener = _open_passthrough if is_stream else open
        with opener(local_path, 'rb') as stream:
            with self._get_transport() as transport:
                self._push(transport.start_sync(), stream, device_path, st_mode, mtime, progress_callback, total_bytes)

    def _push(self, sync, stream, device_path, st_mode, mtime, progress_callback, total_bytes):
        """Push a file-like object to the device.

        Parameters
        ----------
        sync : adb_host.sync_transport.SyncTransport
            The FileSync session
        stream : io.BufferedIOBase
            File-like object for reading from
        device_path : str
            Destination on the device to write to
        st_mode : int
            Permissions for the file
        mtime : int
            Modification time
        progress_callback : function, None
            Callback method that accepts ``device_path``, ``bytes_written``, and ``total_bytes``
        total_bytes : int, None
            The size of the file, if known

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            The device refused the file

        """
        def _chunk_callback(num_bytes):
            self._progress(progress_callback, device_path, num_bytes, total_bytes)

        sync.send(constants.SEND, '{},{:d}'.format(device_path, st_mode))
        sync.send_stream(stream, _chunk_callback if progress_callback else None)

        # DONE doesn't send data, but it hides the modification time in the size field.
        sync.send_status(constants.DONE, mtime)
        sync.verify_status()

    # ======================================================================= #
    #                                                                         #
    #                             Port forwarding                             #
    #                                                                         #
    # ======================================================================= #
    def list_forwarded_ports(self):
        """List the forward rules for this device.

        Returns
        -------
        list[adb_host.hidden_helpers.PortForwarding]
            The rules, in the order listed by the server

        """
        return self._list_forwardings(False)

    def list_reversed_ports(self):
        """List the reverse rules for this device.

        Returns
        -------
        list[adb_host.hidden_helpers.PortForwarding]
            The rules, in the order listed by the server

        """
        return self._list_forwardings(True)

    def forward_port(self, local, remote, no_rebind=False):
        """Forward connections on the host to the device.

        Parameters
        ----------
        local : str
            The endpoint on the host, e.g., ``'tcp:8080'``
        remote : str
            The endpoint on the device, e.g., ``'tcp:80'`` or ``'localabstract:name'``
        no_rebind : bool
            Whether to fail if ``local`` is already forwarded

        Raises
        ------
        adb_host.exceptions.InvalidForwardTargetError
            ``local`` or ``remote`` has an invalid ``tcp:`` port; nothing was sent

        """
        self._forward('host:', local, remote, no_rebind)

    def reverse_port(self, remote, local, no_rebind=False):
        """Forward connections on the device to the host.

        Parameters
        ----------
        remote : str
            The endpoint on the device, e.g., ``'tcp:9999'``
        local : str
            The endpoint on the host, e.g., ``'tcp:9997'``
        no_rebind : bool
            Whether to fail if ``remote`` is already reversed

        Raises
        ------
        adb_host.exceptions.InvalidForwardTargetError
            ``remote`` or ``local`` has an invalid ``tcp:`` port; nothing was sent

        """
        self._forward('reverse:', remote, local, no_rebind)

    def remove_forwarded_port(self, local):
        """Remove the forward rule for ``local``.

        """
        self._run('host:killforward:' + local)

    def remove_reversed_port(self, local):
        """Remove the reverse rule for ``local``.

        """
        self._run('reverse:killforward:' + local)

    def remove_all_forwarded_ports(self):
        """Remove all forward rules.

        """
        self._run('host:killforward-all')

    def remove_all_reversed_ports(self):
        """Remove all reverse rules.

        """
        self._run('reverse:killforward-all')

    def _forward(self, host_prefix, first, second, no_rebind):
        for target in (first, second):
            if not is_forward_target_valid(target):
                raise exceptions.InvalidForwardTargetError('Invalid port: {}'.format(target))

        self._run('{}{}{};{}'.format(host_prefix, 'forward:norebind:' if no_rebind else 'forward:', first, second))

    def _list_forwardings(self, reverse):
        """Send a ``list-forward`` command and parse the response.

        The response is a 4 hex digit length followed by one rule per line.

        Parameters
        ----------
        reverse : bool
            Whether to list reverse rules instead of forward rules

        Returns
        -------
        list[adb_host.hidden_helpers.PortForwarding]
            The rules, in the order listed by the server

        """
        output = BytesIO()

        with self._get_transport() as transport:
            self._send(transport, ('reverse:' if reverse else 'host:') + 'list-forward')
            transport.read_response_to(output)

        lines = output.getvalue().decode('utf-8', _DECODE_ERRORS)[4:].splitlines()
        return [PortForwarding.from_line(line, reverse) for line in lines]

    # ======================================================================= #
    #                                                                         #
    #                              Hidden Methods                             #
    #                                                                         #
    # ======================================================================= #
    def _create_transport(self):
        return Transport(self._connection_factory.create_connection())

    def _get_transport(self):
        """Open a transport that is bound to this device.

        1. Check that the handshake command fits in a request
        2. Create a new connection to the ADB server
        3. Send ``host:transport:<serial>`` (or ``host:transport-any``) and verify the response
        4. If either of the last two steps fails, close the connection and re-raise the exception

        .. warning::

           On success, the caller owns the returned transport and must close it.


        Returns
        -------
        adb_host.transport.Transport
            A transport on which device commands can be sent

        """
        handshake = encode_command('host:transport-any' if self._serial is None else 'host:transport:' + self._serial)
        transport = self._create_transport()

        try:
            self._send(transport, handshake)
        except BaseException:
            transport.close()
            raise

        return transport

    def _open_stream(self, command):
        """Send a device command and hand over the connection as a binary stream.

        Parameters
        ----------
        command : str
            The command, e.g., ``'exec:screencap -p'``

        Returns
        -------
        io.BufferedReader
            Everything that the server sends after the response; closing it closes the connection

        """
        command = encode_command(command)
        transport = self._get_transport()

        try:
            self._send(transport, command)
        except BaseException:
            transport.close()
            raise

        return transport.get_raw_stream()

    def _run(self, command):
        """Send a device command that has no output.

        Parameters
        ----------
        command : str
            The command, e.g., ``'tcpip:5555'``

        """
        command = encode_command(command)

        with self._get_transport() as transport:
            self._send(transport, command)

    @staticmethod
    def _send(transport, command):
        transport.send(command)
        transport.verify_response()

    @staticmethod
    def _progress(progress_callback, device_path, bytes_written, total_bytes):
        """Call ``progress_callback``, logging (and otherwise ignoring) any exception that it raises.

        """
        try:
            progress_callback(device_path, bytes_written, total_bytes)
        except Exception:  # pylint: disable=broad-except
            _LOGGER.debug("Progress callback for %s raised an exception", device_path, exc_info=True)
