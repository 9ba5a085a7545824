# Copyright (c) 2021 Jeff Irion and contributors
#
# This file is part of the adb-host package.

"""Remove the line ending conversion that the ``shell:`` service applies to its output.

Older devices run ``shell:`` commands in a pty, which turns every ``b'\\n'`` into ``b'\\r\\n'``.

* :class:`AdbFilterReader`

    * :meth:`AdbFilterReader.close`
    * :meth:`AdbFilterReader.readable`
    * :meth:`AdbFilterReader.readinto`

"""


import io

from . import constants


class AdbFilterReader(io.RawIOBase):
    """A binary reader that replaces ``b'\\r\\n'`` with ``b'\\n'``.

    A ``b'\\r'`` at the end of a chunk is held back until the next chunk shows whether it is followed by ``b'\\n'``.

    Parameters
    ----------
    stream : io.BufferedIOBase
        The stream that will be filtered; it is closed along with this reader

    Attributes
    ----------
    _carry : bytes
        A trailing ``b'\\r'`` that has not been returned yet
    _filtered : bytes
        Filtered data that has not been returned yet
    _stream : io.BufferedIOBase
        The stream that is being filtered

    """
    def __init__(self, stream):
        super().__init__()
        self._stream = stream
        self._carry = b''
        self._filtered = b''

    def close(self):
        """Close this reader and the underlying stream.

        """
        if not self.closed:
            self._stream.close()
        super().close()

    def readable(self):
        return True

    def readinto(self, buffer):
        """Read filtered data into ``buffer``.

        Parameters
        ----------
        buffer : bytearray, memoryview
            The buffer to fill

        Returns
        -------
        int
            The number of bytes read; 0 at the end of the stream

        """
        while not self._filtered:
            chunk = self._stream.read1(constants.MAX_SYNC_DATA)
            if not chunk:
                self._filtered, self._carry = self._carry, b''
                if not self._filtered:
                    return 0
                break

            data = self._carry + chunk
            self._carry = b''
            if data.endswith(b'\r'):
                data, self._carry = data[:-1], b'\r'

            self._filtered = data.replace(b'\r\n', b'\n')

        size = min(len(buffer), len(self._filtered))
        buffer[:size] = self._filtered[:size]
        self._filtered = self._filtered[size:]
        return size
