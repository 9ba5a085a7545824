# Copyright (c) 2020 Jeff Irion and contributors
#
# This file is part of the adb-host package.

"""Base classes for the connections used to talk to the ADB server.

* :class:`BaseConnection`

    * :meth:`BaseConnection.bulk_read`
    * :meth:`BaseConnection.bulk_write`
    * :meth:`BaseConnection.close`
    * :meth:`BaseConnection.connect`

* :class:`BaseConnectionFactory`

    * :meth:`BaseConnectionFactory.create_connection`

"""


from abc import ABC, abstractmethod


class BaseConnection(ABC):
    """A base class for a duplex byte channel to the ADB server.

    """

    @abstractmethod
    def close(self):
        """Close the connection.

        """

    @abstractmethod
    def connect(self):
        """Create a connection to the ADB server.

        """

    @abstractmethod
    def bulk_read(self, numbytes):
        """Read data from the ADB server.

        Parameters
        ----------
        numbytes : int
            The maximum amount of data to be received

        Returns
        -------
        bytes
            The received data; empty if the server closed the connection

        """

    @abstractmethod
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

        """


class BaseConnectionFactory(ABC):
    """A base class for creating connections to the ADB server.

    Every protocol operation asks for its own connection; connections are never reused.

    """

    @abstractmethod
    def create_connection(self):
        """Open a new connection to the ADB server.

        Returns
        -------
        BaseConnection
            A connected connection; the caller is responsible for closing it

        Raises
        ------
        adb_host.exceptions.AdbConnectionError
            The ADB server could not be reached

        """
