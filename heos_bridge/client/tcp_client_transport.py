# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS TCP/IP client transport.

Provides an implementation of HeosClientTransport over a TCP/IP socket.

The controller answers every command with one JSON line, possibly preceded by
any number of "command under process" lines. A line that answers some other
command means the exchange is out of sync; the exchange is abandoned at once,
and any late lines are discarded before the next command is written.
"""

from __future__ import annotations

import time
import socket
import asyncio

from ..internal_types import *
from ..exceptions import (
    HeosNotConnectedError,
    HeosProtocolError,
    HeosTimeoutError,
  )
from ..constants import STREAM_LIMIT
from ..pkg_logging import logger
from ..protocol import HeosCommand, ResponseKind, classify_response
from ..util import error_description

from .client_config import HeosClientConfig
from .client_transport import HeosClientTransport

class TcpHeosClientTransport(HeosClientTransport):
    """HEOS TCP/IP client transport."""

    reader: Optional[asyncio.StreamReader] = None
    writer: Optional[asyncio.StreamWriter] = None
    config: HeosClientConfig

    stale: bool = False
    """True if an abandoned exchange may have left unread response lines in the stream."""

    _transaction_lock: asyncio.Lock
    """A mutex to ensure that only one exchange (or reconnect) is in progress at a
    time; this allows multiple callers to use the same transport without mixing up
    response lines."""

    def __init__(
            self,
            host: Optional[str]=None,
            username: Optional[str]=None,
            password: Optional[str]=None,
            *,
            config: Optional[HeosClientConfig]=None,
          ) -> None:
        """Initializes the transport. Does not connect; call connect()."""
        super().__init__()
        self.config = HeosClientConfig(
            host=host,
            username=username,
            password=password,
            base_config=config,
          )
        self._transaction_lock = asyncio.Lock()

    @property
    def host(self) -> str:
        """Returns the TCP/IP host of the controller."""
        return self.config.host

    @property
    def port(self) -> int:
        """Returns the TCP/IP port of the controller."""
        return self.config.port

    @property
    def timeout_secs(self) -> float:
        """Returns the per-exchange timeout in seconds."""
        return self.config.timeout_secs

    @property
    def poll_interval_secs(self) -> float:
        return self.config.poll_interval_secs

    # @abstractmethod
    async def begin_transaction(self) -> None:
        """Acquires the transaction lock.
        """
        await self._transaction_lock.acquire()

    # @abstractmethod
    async def end_transaction(self) -> None:
        """Releases the transaction lock.
        """
        self._transaction_lock.release()

    # @abstractmethod
    def is_open(self) -> bool:
        return self.reader is not None and self.writer is not None

    async def _close_stream(self) -> None:
        """Closes the current stream, if any. Failures are logged, never raised."""
        writer = self.writer
        self.reader = None
        self.writer = None
        self.stale = False
        if writer is None:
            return
        logger.debug(f"{self}: Closing connection")
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning(f"{self}: Error while closing connection: {error_description(e)}")

    # @abstractmethod
    async def connect_no_lock(self) -> None:
        """Closes any open stream and opens a new one with TCP keepalive enabled.

        Never raises on connection failure; the transport is left disconnected
        and the next command returns None.
        """
        await self._close_stream()
        logger.debug(f"{self}: Connecting with timeout={self.config.connect_timeout_secs}")
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, limit=STREAM_LIMIT),
                timeout=self.config.connect_timeout_secs,
              )
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"{self}: Could not connect: {error_description(e)}")
            return
        sock = writer.get_extra_info('socket')
        if sock is not None:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            except OSError as e:
                logger.debug(f"{self}: Could not enable keepalive: {error_description(e)}")
        self.reader = reader
        self.writer = writer
        logger.info(f"{self}: Connected")

    async def _read_line(self, timeout: float) -> str:
        """Reads one line, without its terminator (nonlocking).

        Raises asyncio.TimeoutError if no complete line arrives in time, and
        HeosNotConnectedError (after closing the stream) on EOF or I/O error.
        """
        assert self.reader is not None
        try:
            line_bytes = await asyncio.wait_for(self.reader.readline(), timeout)
        except asyncio.TimeoutError:
            raise
        except (OSError, ValueError) as e:
            # ValueError is raised by readline() for a line longer than the stream limit
            await self._close_stream()
            raise HeosNotConnectedError(f"Read failed: {error_description(e)}") from e
        if len(line_bytes) == 0 or not line_bytes.endswith(b'\n'):
            await self._close_stream()
            raise HeosNotConnectedError("Connection closed by controller")
        return line_bytes.decode('utf-8', errors='replace').rstrip('\r\n')

    async def _discard_stale_lines(self, end_time: float) -> None:
        """Reads and discards lines until the stream has been quiet for one poll
        interval, or until end_time (nonlocking)."""
        discarded = 0
        while True:
            remaining = end_time - time.monotonic()
            if remaining <= 0:
                logger.warning(f"{self}: Stream still busy after discarding {discarded} stale lines")
                break
            try:
                line = await self._read_line(min(self.poll_interval_secs, remaining))
            except asyncio.TimeoutError:
                break
            discarded += 1
            logger.debug(f"{self}: Discarding stale line: {line}")
        self.stale = False

    # @abstractmethod
    async def exchange_no_lock(self, command: HeosCommand) -> str:
        """Writes a command and waits for its final response line.

        "command under process" lines are skipped. A line for a different
        command raises HeosProtocolError without any further reads. Raises
        HeosTimeoutError if no final response arrives within timeout_secs.

        The caller must be holding the transaction lock.
        """
        if self.writer is None or self.reader is None:
            raise HeosNotConnectedError("Not connected to HEOS controller")
        # The drain counts against the same budget as the response
        deadline = time.monotonic() + self.timeout_secs
        if self.stale:
            await self._discard_stale_lines(deadline)
            if self.writer is None:
                raise HeosNotConnectedError("Connection closed by controller")

        completed = False
        try:
            logger.debug(f"{self}: Sending {command.wire_form}")
            try:
                self.writer.write(command.raw_data)
                await self.writer.drain()
            except OSError as e:
                await self._close_stream()
                raise HeosNotConnectedError(f"Write failed: {error_description(e)}") from e

            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning(f"{self}: Timeout waiting for response to {command.name}")
                    raise HeosTimeoutError(f"No response to {command.name} within {self.timeout_secs} seconds")
                try:
                    line = await self._read_line(remaining)
                except asyncio.TimeoutError:
                    continue
                logger.debug(f"{self}: Received {line}")
                kind = classify_response(line, command.name)
                if kind == ResponseKind.NOT_AVAILABLE:
                    continue
                if kind == ResponseKind.MISMATCH:
                    logger.error(f"{self}: Response does not match command {command.name}: {line}")
                    raise HeosProtocolError(f"Out of sync response to {command.name}: {line}")
                if kind == ResponseKind.PENDING:
                    logger.debug(f"{self}: {command.name} is under process")
                    continue
                completed = True
                return line
        finally:
            if not completed and self.writer is not None:
                self.stale = True

    # @abstractmethod
    async def aclose(self) -> None:
        """Closes the current stream, if any. The transport may be connected again."""
        await self._close_stream()

    # @override
    async def __aenter__(self) -> TcpHeosClientTransport:
        """Enters a context that will close the transport on exit."""
        return self

    def __str__(self) -> str:
        return f"TcpHeosClientTransport({self.host}:{self.port})"
