# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS emulator.

Provides a simple emulation of a HEOS controller on TCP/IP.
"""

from .emulator_impl import (
    HeosEmulator,
    HeosEmulatorFailure,
    DEFAULT_PLAYERS,
    DEFAULT_STATIONS,
    DEFAULT_PLAYLISTS,
    DEFAULT_USERNAME,
    DEFAULT_PASSWORD,
  )
