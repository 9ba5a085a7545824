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

"""Implement helpers for the :class:`~adb_host.adb_device.AdbDevice` class.

.. rubric:: Contents

* :class:`PortForwarding`

    * :meth:`PortForwarding.from_line`

* :class:`RemoteFileRecord`
* :class:`RemoteFileRecordV2`
* :class:`StatResult`
* :func:`build_cmd_line`
* :func:`is_forward_target_valid`

"""


from collections import namedtuple
import re
import shlex

from . import constants
from .exceptions import InvalidResponseError


_PORT_PATTERN = re.compile(r'[+-]?[0-9]+')

_MAX_PORT_VALUE = 0x7FFFFFFF


StatResult = namedtuple('StatResult', ['mode', 'size', 'mtime'])


class RemoteFileRecord(namedtuple('RemoteFileRecord', ['name', 'mode', 'size', 'mtime'])):
    """A directory entry returned by the FileSync ``b'LIST'`` command.

    The ``mode``, ``size``, and ``mtime`` fields were sent as 32-bit values, so sizes of files larger than 4 GiB and
    timestamps after 2106 are truncated.  :attr:`RemoteFileRecord.DONE` marks the end of a listing.

    """
    __slots__ = ()

    @property
    def is_directory(self):
        """Whether the ``S_IFDIR`` bit of ``mode`` is set.

        Returns
        -------
        bool
            Whether this entry is a directory

        """
        return self.mode & constants.S_IFDIR == constants.S_IFDIR


class RemoteFileRecordV2(namedtuple('RemoteFileRecordV2', ['name', 'mode', 'size', 'mtime'])):
    """A directory entry returned by the FileSync ``b'LIS2'`` command, with 64-bit ``mode``, ``size``, and ``mtime``.

    :attr:`RemoteFileRecordV2.DONE` marks the end of a listing.

    """
    __slots__ = ()

    @property
    def is_directory(self):
        """Whether the ``S_IFDIR`` bit of ``mode`` is set.

        Returns
        -------
        bool
            Whether this entry is a directory

        """
        return self.mode & constants.S_IFDIR == constants.S_IFDIR


RemoteFileRecord.DONE = RemoteFileRecord(None, 0, 0, 0)
RemoteFileRecordV2.DONE = RemoteFileRecordV2(None, 0, 0, 0)


class PortForwarding(namedtuple('PortForwarding', ['device', 'local', 'remote', 'reverse'])):
    """A forward or reverse rule, as listed by the ADB server.

    This is a snapshot of one ``list-forward`` response, not live state.

    """
    __slots__ = ()

    @classmethod
    def from_line(cls, line, reverse):
        """Parse one line of a ``list-forward`` response.

        The line has the form ``<serial> <first> <second>``.  For a reverse rule, ``local`` is ``first`` and
        ``remote`` is ``second``; for a forward rule it is the other way around.

        .. note::

           This mapping follows the order observed in the server's listings; it has not been checked against the
           ADB server sources.


        Parameters
        ----------
        line : str
            A line from the server's response
        reverse : bool
            Whether the line came from a ``reverse:list-forward`` command

        Returns
        -------
        PortForwarding
            The parsed rule

        Raises
        ------
        adb_host.exceptions.InvalidResponseError
            The line is malformed

        """
        tokens = line.split(' ')
        if len(tokens) != 3:
            raise InvalidResponseError('Malformed port forwarding line: {!r}'.format(line))

        device, first, second = tokens
        for endpoint in (first, second):
            if not is_forward_target_valid(endpoint):
                raise InvalidResponseError('Invalid port in port forwarding line: {!r}'.format(line))

        if reverse:
            return cls(device, first, second, True)

        return cls(device, second, first, False)


def build_cmd_line(command, args):
    """Join a command and its arguments into a single command line.

    Each argument is quoted; the command itself is not.

    Parameters
    ----------
    command : str
        The main command, e.g., ``'ls'``
    args : tuple[str], list[str]
        The arguments to the command

    Returns
    -------
    str
        The command line

    """
    return ' '.join([command] + [shlex.quote(arg) for arg in args])


def is_forward_target_valid(target):
    """Check the port of a ``tcp:<port>`` forwarding endpoint.

    The port must be an optionally signed decimal number that fits in a signed 32-bit integer and is not negative.
    Other kinds of endpoints (e.g., ``localabstract:<name>``) are not checked.

    Parameters
    ----------
    target : str
        The endpoint

    Returns
    -------
    bool
        Whether ``target`` is acceptable

    """
    if not target.startswith('tcp:'):
        return True

    port = target[4:]
    if not _PORT_PATTERN.fullmatch(port):
        return False

    return 0 <= int(port) <= _MAX_PORT_VALUE
