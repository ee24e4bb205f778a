# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS connector.

Provides the high-level operations used to control HEOS players (play, stop,
volume, station/playlist/input selection) on top of a HeosClientTransport,
along with the session-state checks they depend on (grouped, signed in) and
the catalogs of players, favorite stations and playlists.

No operation raises on device trouble. Connection failures, desynchronized
replies, timeouts and malformed payloads are logged and reported as False,
an empty string or an empty mapping.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import HeosInvalidCommandError
from ..pkg_logging import logger
from ..protocol import (
    HeosCommand,
    FAVORITES_SID,
    PLAYLISTS_SID,
    RESULT_SUCCESS,
    RESULT_STATE_PLAY,
    validate_result,
    contains_player_id,
    signed_in_token,
    parse_players,
    parse_stations,
    parse_playlists,
    parse_now_playing,
    entries_sorted_by_values,
  )
from ..protocol.constants import (
    ADD_CRITERIA_REPLACE_AND_PLAY,
    CMD_HEART_BEAT,
    CMD_CHECK_ACCOUNT,
    CMD_SIGN_IN,
    CMD_GET_PLAYERS,
    CMD_GET_PLAY_STATE,
    CMD_SET_PLAY_STATE,
    CMD_SET_VOLUME,
    CMD_GET_NOW_PLAYING_MEDIA,
    CMD_GET_GROUPS,
    CMD_SET_GROUP,
    CMD_BROWSE,
    CMD_PLAY_STREAM,
    CMD_ADD_TO_QUEUE,
    CMD_PLAY_INPUT,
  )

from .client_config import HeosClientConfig
from .client_transport import HeosClientTransport
from .client_transport_transaction import HeosClientTransportTransaction
from .tcp_client_transport import TcpHeosClientTransport

PlayerId = Union[str, int]
"""A HEOS player id. Ids are signed integers on the wire; either form is accepted."""

class HeosConnector:
    """High-level HEOS client."""

    transport: HeosClientTransport
    config: HeosClientConfig

    players: Dict[str, str]
    """The last rebuilt players catalog, pid -> name."""

    stations: Dict[str, str]
    """The last rebuilt favorite stations catalog, mid -> name."""

    playlists: Dict[str, str]
    """The last rebuilt playlists catalog, cid -> name."""

    def __init__(
            self,
            transport: Optional[HeosClientTransport]=None,
            *,
            config: Optional[HeosClientConfig]=None,
          ) -> None:
        """Creates a connector.

        Args:
            transport: The transport to use. If None, a TcpHeosClientTransport
                       is created from the configuration.
            config:    The client configuration, which supplies the HEOS
                       account credentials. If None, a default config is
                       created (config file and environment).
        """
        self.config = HeosClientConfig(base_config=config)
        if transport is None:
            transport = TcpHeosClientTransport(config=self.config)
        self.transport = transport
        self.players = {}
        self.stations = {}
        self.playlists = {}

    async def start(self) -> None:
        """Connects to the controller and rebuilds all catalogs."""
        await self.connect()
        await self.refresh_catalogs()

    async def connect(self) -> None:
        """Closes any open connection and opens a new one. Never raises."""
        await self.transport.connect()

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> HeosConnector:
        logger.debug(f"{self}: Entering async context manager")
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
          ) -> None:
        logger.debug(f"{self}: Exiting async context manager, exc={exc_val}")
        await self.aclose()

    def _build(self, name: str, **params: PlayerId) -> Optional[HeosCommand]:
        try:
            return HeosCommand.create(name, **params)
        except HeosInvalidCommandError as e:
            logger.error(f"{self}: Invalid command: {e}")
            return None

    async def _send(
            self,
            transaction: HeosClientTransportTransaction,
            name: str,
            **params: PlayerId,
          ) -> Optional[str]:
        command = self._build(name, **params)
        if command is None:
            return None
        return await transaction.send_command(command)

    async def send_raw(self, name: str, arguments: Optional[str]="") -> Optional[str]:
        """Sends a raw command (arguments sent verbatim) and returns the final
        response line, or None if the command is invalid or the exchange failed."""
        try:
            command = HeosCommand(name, arguments)
        except HeosInvalidCommandError as e:
            logger.error(f"{self}: Invalid command: {e}")
            return None
        return await self.transport.send_command(command)

    async def is_connected(self) -> bool:
        """Sends a heartbeat. Returns True if the controller answered with success."""
        async with self.transport.transaction() as transaction:
            response = await self._send(transaction, CMD_HEART_BEAT)
        return validate_result(response, RESULT_SUCCESS)

    # Session state checks and corrections. The "_in" variants run inside a
    # transaction that the caller already holds.

    async def _is_grouped_in(self, transaction: HeosClientTransportTransaction, pid: PlayerId) -> bool:
        response = await self._send(transaction, CMD_GET_GROUPS)
        return contains_player_id(response, str(pid))

    async def _ungroup_in(self, transaction: HeosClientTransportTransaction, pid: PlayerId) -> bool:
        response = await self._send(transaction, CMD_SET_GROUP, pid=pid)
        return validate_result(response, RESULT_SUCCESS)

    async def _ungroup_if_grouped_in(self, transaction: HeosClientTransportTransaction, pid: PlayerId) -> None:
        if await self._is_grouped_in(transaction, pid):
            logger.info(f"{self}: Player {pid} is grouped; ungrouping")
            if not await self._ungroup_in(transaction, pid):
                logger.warning(f"{self}: Could not ungroup player {pid}")

    async def _is_user_signed_in_in(
            self,
            transaction: HeosClientTransportTransaction,
            username: Optional[str]=None,
          ) -> bool:
        if username is None:
            username = self.config.username
        response = await self._send(transaction, CMD_CHECK_ACCOUNT)
        return validate_result(response, signed_in_token(username))

    async def _sign_in_in(self, transaction: HeosClientTransportTransaction) -> bool:
        response = await self._send(
            transaction, CMD_SIGN_IN, un=self.config.username, pw=self.config.password)
        return validate_result(response, RESULT_SUCCESS)

    async def _sign_in_if_needed_in(self, transaction: HeosClientTransportTransaction) -> None:
        if not await self._is_user_signed_in_in(transaction):
            logger.info(f"{self}: Signing in as {self.config.username!r}")
            if not await self._sign_in_in(transaction):
                logger.warning(f"{self}: Could not sign in as {self.config.username!r}")

    async def is_grouped(self, pid: PlayerId) -> bool:
        """Returns True if the player is a member of a group."""
        async with self.transport.transaction() as transaction:
            return await self._is_grouped_in(transaction, pid)

    async def ungroup(self, pid: PlayerId) -> bool:
        """Removes the player from its group. Returns True on success."""
        async with self.transport.transaction() as transaction:
            return await self._ungroup_in(transaction, pid)

    async def is_user_signed_in(self, username: Optional[str]=None) -> bool:
        """Returns True if the given HEOS account (default: the configured one) is signed in."""
        async with self.transport.transaction() as transaction:
            return await self._is_user_signed_in_in(transaction, username)

    async def sign_in(self) -> bool:
        """Signs in with the configured HEOS account. Returns True on success."""
        async with self.transport.transaction() as transaction:
            return await self._sign_in_in(transaction)

    # Playback operations

    async def _set_play_state(self, pid: PlayerId, state: str) -> bool:
        async with self.transport.transaction() as transaction:
            await self._ungroup_if_grouped_in(transaction, pid)
            response = await self._send(transaction, CMD_SET_PLAY_STATE, pid=pid, state=state)
        return validate_result(response, RESULT_SUCCESS)

    async def play(self, pid: PlayerId) -> bool:
        """Starts playback on the player, ungrouping it first if necessary."""
        return await self._set_play_state(pid, "play")

    async def stop(self, pid: PlayerId) -> bool:
        """Stops playback on the player, ungrouping it first if necessary."""
        return await self._set_play_state(pid, "stop")

    async def volume(self, pid: PlayerId, level: int) -> bool:
        """Sets the player volume, 0 to 100. Out-of-range levels are rejected with False."""
        if isinstance(level, bool) or not isinstance(level, int) or level < 0 or level > 100:
            logger.warning(f"{self}: Invalid volume level for player {pid}: {level!r}")
            return False
        async with self.transport.transaction() as transaction:
            response = await self._send(transaction, CMD_SET_VOLUME, pid=pid, level=level)
        return validate_result(response, RESULT_SUCCESS)

    async def station(self, pid: PlayerId, mid: str) -> bool:
        """Plays a favorite station (by media id) on the player.

        Ungroups the player and signs in first if necessary.
        """
        async with self.transport.transaction() as transaction:
            await self._ungroup_if_grouped_in(transaction, pid)
            await self._sign_in_if_needed_in(transaction)
            response = await self._send(
                transaction, CMD_PLAY_STREAM, pid=pid, sid=FAVORITES_SID, mid=mid)
        result = validate_result(response, RESULT_SUCCESS)
        if not result:
            logger.warning(f"{self}: Could not play station {mid} on player {pid}: {response}")
        return result

    async def playlist(self, pid: PlayerId, cid: str) -> bool:
        """Replaces the player's queue with a playlist (by container id) and plays it.

        Ungroups the player and signs in first if necessary.
        """
        async with self.transport.transaction() as transaction:
            await self._ungroup_if_grouped_in(transaction, pid)
            await self._sign_in_if_needed_in(transaction)
            response = await self._send(
                transaction, CMD_ADD_TO_QUEUE,
                pid=pid, sid=PLAYLISTS_SID, cid=cid, aid=ADD_CRITERIA_REPLACE_AND_PLAY)
        result = validate_result(response, RESULT_SUCCESS)
        if not result:
            logger.warning(f"{self}: Could not play playlist {cid} on player {pid}: {response}")
        return result

    async def input(self, pid: PlayerId, input_pid: PlayerId, input_name: str) -> bool:
        """Plays an input (e.g., "inputs/aux_in_1") of player input_pid on player pid.

        Ungroups the player first if necessary.
        """
        command = self._build(CMD_PLAY_INPUT, pid=pid, spid=input_pid, input=input_name)
        if command is None:
            return False
        async with self.transport.transaction() as transaction:
            await self._ungroup_if_grouped_in(transaction, pid)
            response = await transaction.send_command(command)
        result = validate_result(response, RESULT_SUCCESS)
        if not result:
            logger.warning(f"{self}: Could not play input {input_name} of player {input_pid} on player {pid}: {response}")
        return result

    async def is_playing(self, pid: PlayerId) -> bool:
        """Returns True if the player's play state is "play"."""
        async with self.transport.transaction() as transaction:
            response = await self._send(transaction, CMD_GET_PLAY_STATE, pid=pid)
        return validate_result(response, RESULT_STATE_PLAY)

    async def get_now_playing(self, pid: PlayerId) -> str:
        """Returns the station name, else the song title, of the player's
        current media, or an empty string."""
        async with self.transport.transaction() as transaction:
            response = await self._send(transaction, CMD_GET_NOW_PLAYING_MEDIA, pid=pid)
        return parse_now_playing(response)

    # Catalogs

    async def update_players(self) -> Dict[str, str]:
        """Rebuilds and returns the players catalog, pid -> name."""
        async with self.transport.transaction() as transaction:
            response = await self._send(transaction, CMD_GET_PLAYERS)
        self.players = parse_players(response)
        return self.players

    async def update_stations(self) -> Dict[str, str]:
        """Rebuilds and returns the favorite stations catalog, mid -> name.

        Signs in first if necessary.
        """
        async with self.transport.transaction() as transaction:
            await self._sign_in_if_needed_in(transaction)
            response = await self._send(transaction, CMD_BROWSE, sid=FAVORITES_SID)
        self.stations = parse_stations(response)
        return self.stations

    async def update_playlists(self) -> Dict[str, str]:
        """Rebuilds and returns the playlists catalog, cid -> name.

        Signs in first if necessary.
        """
        async with self.transport.transaction() as transaction:
            await self._sign_in_if_needed_in(transaction)
            response = await self._send(transaction, CMD_BROWSE, sid=PLAYLISTS_SID)
        self.playlists = parse_playlists(response)
        return self.playlists

    async def refresh_catalogs(self) -> None:
        """Rebuilds the players, stations and playlists catalogs."""
        await self.update_players()
        await self.update_stations()
        await self.update_playlists()
        logger.info(
            f"{self}: {len(self.players)} players, {len(self.stations)} stations, "
            f"{len(self.playlists)} playlists"
          )

    def get_players(self) -> Dict[str, str]:
        return self.players

    def get_stations(self) -> Dict[str, str]:
        return self.stations

    def get_playlists(self) -> Dict[str, str]:
        return self.playlists

    @staticmethod
    def entries_sorted_by_values(mapping: Mapping[str, str]) -> List[CatalogEntry]:
        """Returns the (id, name) pairs of a catalog sorted by name."""
        return entries_sorted_by_values(mapping)

    def __str__(self) -> str:
        return f"HeosConnector({self.transport})"
