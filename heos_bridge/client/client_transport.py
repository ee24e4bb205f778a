# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS client abstract transport interface.

Provides a low-level abstract interface for sending HEOS command lines to a
controller and correlating the response line that answers each of them. Does
not provide any higher-level abstractions such as sign-in or grouping checks;
see HeosConnector for those.

Every exchange is one command written followed by one awaited response, and
only one exchange is in flight at a time. Callers that need several exchanges
in a row without another caller slipping in between use transaction().
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..internal_types import *
from ..exceptions import HeosBridgeError
from ..pkg_logging import logger
from ..protocol import HeosCommand

from .client_transport_transaction import HeosClientTransportTransaction

class HeosClientTransport(ABC):
    """Abstract base class for HEOS client transports."""

    @abstractmethod
    async def begin_transaction(self) -> None:
        """Acquires the transaction lock.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    @abstractmethod
    async def end_transaction(self) -> None:
        """Releases the transaction lock.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    def transaction(self) -> HeosClientTransportTransaction:
        """Returns an async context manager that while entered will
           hold the transaction lock for this transport and provide
           a safe send_command() method.

        Example:

           async with transport.transaction() as transaction:
               groups = await transaction.send_command(HeosCommand("group/get_groups"))
               result = await transaction.send_command(play_command)
        """
        return HeosClientTransportTransaction(self)

    @abstractmethod
    async def connect_no_lock(self) -> None:
        """Closes any open stream and opens a new one.

        Never raises on connection failure; the transport is simply left
        disconnected. The caller must be holding the transaction lock.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    async def connect(self) -> None:
        """Closes any open stream and opens a new one, holding the transaction lock.

        Never raises on connection failure; the transport is simply left
        disconnected, which will be observed by the next command.
        """
        async with self.transaction() as transaction:
            await transaction.connect()

    @abstractmethod
    async def exchange_no_lock(self, command: HeosCommand) -> str:
        """Writes a command and waits for its final response line.

        Raises a HeosBridgeError subclass if the exchange fails (not connected,
        desynchronized reply, timeout, I/O error).

        The caller must be holding the transaction lock.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    async def send_command_no_lock(self, command: HeosCommand) -> Optional[str]:
        """Writes a command and returns its final response line, or None if
        the exchange failed for any reason. Failures are logged, never raised.

        The caller must be holding the transaction lock. Ordinary users
        should use the transaction() context manager or call send_command()
        instead.
        """
        try:
            return await self.exchange_no_lock(command)
        except HeosBridgeError as e:
            logger.warning(f"{self}: {command.wire_form} failed: {e}")
            return None

    async def send_command(self, command: HeosCommand) -> Optional[str]:
        """Writes a command and returns its final response line, or None if
        the exchange failed for any reason.

        A transaction lock is held during the exchange to ensure that only one
        command is in flight at a time.
        """
        async with self.transaction() as transaction:
            return await transaction.send_command(command)

    @abstractmethod
    def is_open(self) -> bool:
        """Returns True if a stream is currently open. An open stream may still
           be unresponsive; use a heartbeat command to check connectivity."""
        raise NotImplementedError()

    @abstractmethod
    async def aclose(self) -> None:
        """Closes the current stream, if any, and waits for it to close.
        The transport may be connected again afterwards.

        Must be implemented by subclasses.
        """
        raise NotImplementedError()

    async def __aenter__(self) -> HeosClientTransport:
        """Enters a context that will close the transport on exit."""
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        """Exits the context and closes the transport."""
        await self.aclose()
