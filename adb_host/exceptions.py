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

"""ADB-related exceptions.

"""


class AdbConnectionError(Exception):
    """A connection to the ADB server could not be established, or the server closed it unexpectedly.

    """


class AdbProtocolError(Exception):
    """The ADB server did not respond as the protocol requires.

    """


class AdbCommandFailureException(AdbProtocolError):
    """A ``b'FAIL'`` response was received; the message is the one sent by the server.

    """


class InvalidResponseError(AdbProtocolError):
    """Got an invalid response to our command.

    """


class AdbValidationError(Exception):
    """An argument was rejected before anything was sent to the server.

    """


class DevicePathInvalidError(AdbValidationError):
    """A file command was passed an invalid path.

    """


class InvalidForwardTargetError(AdbValidationError):
    """A ``tcp:<port>`` forwarding endpoint does not have a valid port.

    """


class CommandTooLongError(ValueError):
    """The command does not fit in a host protocol message.

    """


class InvalidConnectionFactoryError(Exception):
    """The provided connection factory is not an instance of a subclass of ``BaseConnectionFactory``.

    """


class TcpTimeoutException(Exception):
    """TCP connection timed read/write operation exceeded the allowed time.

    """
