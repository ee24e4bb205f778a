# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS client transport transaction context manager.
"""

from __future__ import annotations

from ..internal_types import *
from ..protocol import HeosCommand
if TYPE_CHECKING:
    from .client_transport import HeosClientTransport

class HeosClientTransportTransaction():
    """A context manager that holds a transaction lock on a transport and allows one or
       more send_command() calls to be made with the lock held."""
    transport: HeosClientTransport
    context_entered: bool = False

    def __init__(self, transport: HeosClientTransport) -> None:
        self.transport = transport

    async def __aenter__(self) -> HeosClientTransportTransaction:
        """Enters a context that will release the transaction lock on exit."""
        assert not self.context_entered
        await self.transport.begin_transaction()
        self.context_entered = True
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        """Exits the context, releases the transaction lock."""
        assert self.context_entered
        self.context_entered = False
        await self.transport.end_transaction()

    async def send_command(self, command: HeosCommand) -> Optional[str]:
        """Writes a command and returns its final response line, or None on failure.

        A transaction lock is held during the exchange to ensure that only one
        command is in flight at a time.
        """
        if not self.context_entered:
            async with self:
                return await self.transport.send_command_no_lock(command)
        else:
            return await self.transport.send_command_no_lock(command)

    async def connect(self) -> None:
        """Closes any open stream and opens a new one, with the transaction lock held."""
        if not self.context_entered:
            async with self:
                await self.transport.connect_no_lock()
        else:
            await self.transport.connect_no_lock()
