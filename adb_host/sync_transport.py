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

"""The FileSync protocol, used for listing directories and transferring files.

Every FileSync packet is a 4 byte ID followed by a little-endian 32-bit length (or value) and, for most IDs, that many
bytes of data.

.. rubric:: Contents

* :class:`SyncTransport`

    * :meth:`SyncTransport._read_directory_entry`
    * :meth:`SyncTransport._read_failure`
    * :meth:`SyncTransport._read_id`
    * :meth:`SyncTransport._read_uint32`
    * :meth:`SyncTransport.read_chunks_to`
    * :meth:`SyncTransport.read_directory_entry`
    * :meth:`SyncTransport.read_directory_entry_v2`
    * :meth:`SyncTransport.read_stat`
    * :meth:`SyncTransport.send`
    * :meth:`SyncTransport.send_status`
    * :meth:`SyncTransport.send_stream`
    * :meth:`SyncTransport.verify_status`

"""


import struct

from . import constants
from . import exceptions
from .hidden_helpers import RemoteFileRecord, RemoteFileRecordV2, StatResult


_DECODE_ERRORS = "backslashreplace"


class SyncTransport(object):
    """A FileSync session on a connection that has already been switched via ``sync:``.

    The session does not own the connection; the :class:`~adb_host.transport.Transport` that created it does.

    Parameters
    ----------
    transport : adb_host.transport.Transport
        The transport that sent the ``sync:`` command

    """
    def __init__(self, transport):
        self._transport = transport

    def send(self, command_id, argument):
        """Send a FileSync request.

        Parameters
        ----------
        command_id : bytes
            The FileSync ID, e.g., :const:`adb_host.constants.LIST`
        argument : str, bytes
            The data that will be sent, e.g., a path on the device

        """
        if not isinstance(argument, bytes):
            argument = argument.encode('utf-8')

        self._transport.write(command_id + struct.pack(constants.FILESYNC_LENGTH_FORMAT, len(argument)) + argument)

    def send_stream(self, stream, progress_callback=None):
        """Send the contents of ``stream`` as ``b'DATA'`` packets.

        Parameters
        ----------
        stream : io.BufferedIOBase
            A readable binary stream
        progress_callback : function, None
            Called with the size of each chunk after it is sent

        """
        while True:
            data = stream.read(constants.MAX_SYNC_DATA)
            if not data:
                break

            self.send(constants.DATA, data)
            if progress_callback:
                progress_callback(len(data))

    def send_status(self, status_id, value):
        """Send a FileSync ID followed by a 32-bit value.

        Values that do not fit in 32 bits are truncated.

        Parameters
        ----------
        status_id : bytes
            The FileSync ID, e.g., :const:`adb_host.constants.DONE`
        value : int
            The value, e.g., a modification time

        """
        self._transport.write(status_id + struct.pack(constants.FILESYNC_LENGTH_FORMAT, value & constants.UINT32_MASK))

    def verify_status(self):
        """Read the status of a completed request.

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            The server responded with ``b'FAIL'``
        adb_host.exceptions.InvalidResponseError
            The server responded with something other than ``b'OKAY'`` or ``b'FAIL'``

        """
        status_id = self._read_id()
        length = self._read_uint32()

        if status_id == constants.FAIL:
            self._read_failure(length)

        if status_id != constants.OKAY:
            raise exceptions.InvalidResponseError('Expected {!r}, got {!r}'.format(constants.OKAY, status_id))

    def read_chunks_to(self, stream, progress_callback=None):
        """Copy ``b'DATA'`` packets into ``stream`` until a ``b'DONE'`` packet is received.

        Parameters
        ----------
        stream : io.BufferedIOBase
            A writable binary stream
        progress_callback : function, None
            Called with the size of each chunk after it is written

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            The server responded with ``b'FAIL'``
        adb_host.exceptions.InvalidResponseError
            The server responded with an unexpected FileSync ID

        """
        while True:
            command_id = self._read_id()
            length = self._read_uint32()

            if command_id == constants.DONE:
                return

            if command_id == constants.FAIL:
                self._read_failure(length)

            if command_id != constants.DATA:
                raise exceptions.InvalidResponseError('Expected {!r} or {!r}, got {!r}'.format(constants.DATA, constants.DONE, command_id))

            stream.write(self._transport.read(length))
            if progress_callback:
                progress_callback(length)

    def read_directory_entry(self):
        """Read an entry of a ``b'LIST'`` response.

        Returns
        -------
        RemoteFileRecord
            The entry, or :attr:`RemoteFileRecord.DONE` at the end of the listing

        """
        return self._read_directory_entry(constants.DENT, constants.FILESYNC_LIST_FORMAT, RemoteFileRecord)

    def read_directory_entry_v2(self):
        """Read an entry of a ``b'LIS2'`` response.

        Returns
        -------
        RemoteFileRecordV2
            The entry, or :attr:`RemoteFileRecordV2.DONE` at the end of the listing

        """
        return self._read_directory_entry(constants.DNT2, constants.FILESYNC_LIST2_FORMAT, RemoteFileRecordV2)

    def read_stat(self):
        """Read the response to a ``b'STAT'`` request.

        Returns
        -------
        StatResult
            The mode, size, and modification time of the file

        """
        command_id = self._read_id()
        if command_id != constants.STAT:
            raise exceptions.InvalidResponseError('Expected {!r}, got {!r}'.format(constants.STAT, command_id))

        header = self._transport.read(struct.calcsize(constants.FILESYNC_STAT_FORMAT))
        return StatResult(*struct.unpack(constants.FILESYNC_STAT_FORMAT, header))

    def _read_directory_entry(self, entry_id, entry_format, record_cls):
        """Read one directory entry.

        Parameters
        ----------
        entry_id : bytes
            The FileSync ID of an entry, i.e., :const:`adb_host.constants.DENT` or :const:`adb_host.constants.DNT2`
        entry_format : bytes
            The ``struct`` format of the ``mode``, ``size``, and ``mtime`` fields
        record_cls : type
            :class:`RemoteFileRecord` or :class:`RemoteFileRecordV2`

        Returns
        -------
        RemoteFileRecord, RemoteFileRecordV2
            The entry, or ``record_cls.DONE`` at the end of the listing

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            The server responded with ``b'FAIL'``
        adb_host.exceptions.InvalidResponseError
            The server responded with an unexpected FileSync ID

        """
        command_id = self._read_id()
        if command_id == constants.DONE:
            return record_cls.DONE

        if command_id == constants.FAIL:
            self._read_failure(self._read_uint32())

        if command_id != entry_id:
            raise exceptions.InvalidResponseError('Expected {!r} or {!r}, got {!r}'.format(entry_id, constants.DONE, command_id))

        mode, size, mtime = struct.unpack(entry_format, self._transport.read(struct.calcsize(entry_format)))
        name = self._transport.read(self._read_uint32()).decode('utf-8', _DECODE_ERRORS)
        return record_cls(name, mode, size, mtime)

    def _read_failure(self, length):
        """Read the message of a ``b'FAIL'`` packet and raise it.

        Parameters
        ----------
        length : int
            The length of the message

        Raises
        ------
        adb_host.exceptions.AdbCommandFailureException
            Always

        """
        raise exceptions.AdbCommandFailureException(self._transport.read(length).decode('utf-8', _DECODE_ERRORS))

    def _read_id(self):
        return self._transport.read(4)

    def _read_uint32(self):
        return struct.unpack(constants.FILESYNC_LENGTH_FORMAT, self._transport.read(4))[0]
