# Copyright (c) 2021 Jeff Irion and contributors
#
# This file is part of the adb-host package.

"""ADB host protocol client: run commands on Android devices through a local ADB server.

"""


__version__ = '0.1.0'
