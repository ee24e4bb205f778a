# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS emulator session.

One session per client connection. Splits the incoming byte stream into
command lines and hands each one to the emulator.
"""

from __future__ import annotations

import asyncio
from enum import Enum

from ..internal_types import *
from ..pkg_logging import logger
from ..protocol import END_OF_LINE

if TYPE_CHECKING:
    from .emulator_impl import HeosEmulator

class EmulatorSessionState(Enum):
    UNCONNECTED = 0
    READING_COMMAND = 1
    SHUTTING_DOWN = 2
    CLOSED = 3

class HeosEmulatorSession(asyncio.Protocol):
    session_id: int = -1
    emulator: HeosEmulator
    transport: Optional[asyncio.Transport] = None
    peer_name: str = "<unconnected>"
    description: str = "EmulatorSession(<unconnected>)"
    state: EmulatorSessionState = EmulatorSessionState.UNCONNECTED
    partial_data: bytes = b""
    transport_closed: bool = True

    def __init__(self, emulator: HeosEmulator):
        self.emulator = emulator
        self.session_id = emulator.alloc_session_id(self)
        self.description = f"EmulatorSession(id={self.session_id}, from=<unconnected>)"

    def write_line(self, line: str) -> None:
        if self.transport is None or self.transport_closed:
            logger.debug(f"{self}: Attempt to write to closed session; ignored")
            return
        self.transport.write((line + END_OF_LINE).encode('utf-8'))

    def connection_made(self, transport: asyncio.BaseTransport):
        """Called when a connection is made."""
        assert isinstance(transport, asyncio.Transport)
        assert self.state == EmulatorSessionState.UNCONNECTED
        self.transport = transport
        self.transport_closed = False
        self.peer_name = transport.get_extra_info('peername')
        self.description = f"EmulatorSession(id={self.session_id}, from='{self.peer_name}')"
        logger.debug(f"EmulatorSession: Connection from {self.peer_name}")
        self.state = EmulatorSessionState.READING_COMMAND

    def close(self) -> None:
        if not self.state in (EmulatorSessionState.CLOSED, EmulatorSessionState.SHUTTING_DOWN):
            self.state = EmulatorSessionState.SHUTTING_DOWN
            if not self.transport_closed and not self.transport is None:
                self.transport_closed = True
                self.transport.close()
            self.state = EmulatorSessionState.CLOSED
            self.emulator.free_session_id(self.session_id)

    def data_received(self, data: bytes) -> None:
        """Called when some data is received. Each complete line is a command."""
        self.partial_data += data
        while self.state == EmulatorSessionState.READING_COMMAND:
            i_eol = self.partial_data.find(b'\n')
            if i_eol < 0:
                break
            line_bytes = self.partial_data[:i_eol]
            self.partial_data = self.partial_data[i_eol + 1:]
            line = line_bytes.decode('utf-8', errors='replace').rstrip('\r')
            if line.strip() == '':
                continue
            self.emulator.on_line_received(self, line)

    def connection_lost(self, exc: Optional[BaseException]) -> None:
        """Called when the connection is lost or closed."""
        logger.debug(f"{self}: Connection lost, exception={exc}; closing connection")
        self.transport_closed = True
        self.close()

    def eof_received(self) -> bool:
        """Called when the other end calls write_eof() or equivalent."""
        logger.debug(f"{self}: EOF received; closing connection")
        self.close()
        return True

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return str(self)
