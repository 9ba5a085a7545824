# Copyright (c) 2021 Jeff Irion and contributors
#
# This file is part of the adb-host package.

"""Constants used throughout the code.

* :class:`DeviceState`

    * :meth:`DeviceState.from_token`

"""


from enum import Enum


#: Address of the local ADB server
DEFAULT_ADB_HOST = '127.0.0.1'

#: Port of the local ADB server
DEFAULT_ADB_PORT = 5037

#: Default timeout in seconds for :meth:`adb_host.connection.tcp_connection.TcpConnection.bulk_read` and :meth:`adb_host.connection.tcp_connection.TcpConnection.bulk_write`
DEFAULT_TIMEOUT_S = 10.

#: Port used by :meth:`adb_host.adb_device.AdbDevice.enable_adb_over_tcp` when none is given
DEFAULT_TCPIP_PORT = 5555

#: Permissions used by :meth:`adb_host.adb_device.AdbDevice.push` when none are given
DEFAULT_PUSH_MODE = 0o664

#: The length of a host command is sent as 4 hex digits
MAX_COMMAND_LENGTH = 0xFFFF

#: Maximum amount of data in a FileSync ``b'DATA'`` packet
MAX_SYNC_DATA = 64 * 1024

#: The POSIX ``S_IFDIR`` bit
S_IFDIR = 1 << 14

#: Mask for the 32-bit fields of the FileSync protocol
UINT32_MASK = 0xFFFFFFFF

# Host protocol status tokens
OKAY = b'OKAY'
FAIL = b'FAIL'

# FileSync IDs
DATA = b'DATA'
DENT = b'DENT'
DNT2 = b'DNT2'
DONE = b'DONE'
LIS2 = b'LIS2'
LIST = b'LIST'
RECV = b'RECV'
SEND = b'SEND'
STAT = b'STAT'

#: The length word that follows a FileSync ID
FILESYNC_LENGTH_FORMAT = b'<I'

#: ``mode``, ``size``, ``mtime`` of a ``b'DENT'`` entry
FILESYNC_LIST_FORMAT = b'<3I'

#: ``mode``, ``size``, ``mtime`` of a ``b'DNT2'`` entry
FILESYNC_LIST2_FORMAT = b'<3Q'

#: ``mode``, ``size``, ``mtime`` of a ``b'STAT'`` response
FILESYNC_STAT_FORMAT = b'<3I'


class DeviceState(Enum):
    """The connectivity state of a device, as reported by the ADB server.

    The values are the tokens that the server sends.

    """
    UNKNOWN = 'unknown'
    OFFLINE = 'offline'
    DEVICE = 'device'
    RECOVERY = 'recovery'
    BOOTLOADER = 'bootloader'
    UNAUTHORIZED = 'unauthorized'
    AUTHORIZING = 'authorizing'
    SIDELOAD = 'sideload'
    CONNECTING = 'connecting'
    RESCUE = 'rescue'

    @classmethod
    def from_token(cls, token):
        """Convert a state token received from the server.

        Parameters
        ----------
        token : str
            The token, e.g., ``'device'``

        Returns
        -------
        DeviceState
            The matching state, or :attr:`DeviceState.UNKNOWN` if ``token`` is not recognized

        """
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN
