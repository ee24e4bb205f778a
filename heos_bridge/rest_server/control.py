# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Request handling for the /control endpoint.

A control request names a player and a command, plus command-specific
parameters. Requests that reference unknown players, stations, playlists or
an invalid volume are rejected before anything is sent to the controller.
When a Fibaro virtual device is named (vd=...), a successful command also
updates the device's label (and, for alarms, its volume slider).
"""

from __future__ import annotations

import asyncio
from enum import Enum

from ..internal_types import *
from ..client import HeosConnector
from ..constants import DEFAULT_VOLUME, DEFAULT_FIBARO_LABEL_ID, DEFAULT_FIBARO_SLIDER_ID
from ..notifier import FibaroNotifier
from .heartbeat import ensure_connected
from .logger import logger
from .state import BridgeState

PARAM_PLAYER = "player"
PARAM_COMMAND = "command"
PARAM_STATION = "station"
PARAM_PLAYLIST = "playlist"
PARAM_VOLUME = "volume"
PARAM_INPUT_PLAYER = "inputplayer"
PARAM_INPUT_NAME = "inputname"
PARAM_VIRTUAL_DEVICE = "vd"
PARAM_LABEL_TEXT = "labeltext"

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500

class ControlCommand(Enum):
    PLAY = "play"
    STOP = "stop"
    STATION = "station"
    PLAYLIST = "playlist"
    INPUT = "input"
    VOLUME = "volume"
    ALARM = "alarm"
    TRIGGER = "trigger"

ControlResult = Tuple[int, bool]
"""(HTTP status code, success)."""

class InvalidControlRequest(Exception):
    """Raised while validating a control request; becomes a 400 response."""
    pass

def _parse_volume(value: Optional[str], default: Optional[int]=None) -> int:
    if (value is None or value == '') and default is not None:
        return default
    try:
        volume = int(value if value is not None else '')
    except ValueError:
        raise InvalidControlRequest(f"Invalid request, invalid volume: {value!r}")
    if volume < 0 or volume > 100:
        raise InvalidControlRequest(f"Invalid request, invalid volume: {volume}")
    return volume

class ControlRequestHandler:
    """Executes one control request against a connector."""
    connector: HeosConnector
    notifier: Optional[FibaroNotifier]
    state: BridgeState
    params: Mapping[str, str]

    def __init__(
            self,
            connector: HeosConnector,
            notifier: Optional[FibaroNotifier],
            state: BridgeState,
            params: Mapping[str, str],
          ) -> None:
        self.connector = connector
        self.notifier = notifier
        self.state = state
        self.params = params

    def param(self, name: str) -> str:
        return self.params.get(name) or ""

    @property
    def virtual_device(self) -> str:
        return self.param(PARAM_VIRTUAL_DEVICE)

    async def _set_label(self, text: str) -> None:
        if self.notifier is None or self.virtual_device == "":
            return
        await asyncio.to_thread(
            self.notifier.set_text_label, self.virtual_device, DEFAULT_FIBARO_LABEL_ID, text)

    async def _set_label_from_request(self) -> None:
        label_text = self.param(PARAM_LABEL_TEXT)
        if label_text != "":
            await self._set_label(label_text)

    async def _set_slider(self, volume: int) -> None:
        if self.notifier is None or self.virtual_device == "":
            return
        await asyncio.to_thread(
            self.notifier.set_volume_slider, self.virtual_device, DEFAULT_FIBARO_SLIDER_ID, volume)

    def _require_station(self) -> str:
        station = self.param(PARAM_STATION)
        if station not in self.connector.get_stations():
            raise InvalidControlRequest(f"Invalid request, invalid station: {station!r}")
        return station

    async def execute(self) -> ControlResult:
        player = self.param(PARAM_PLAYER)
        command_name = self.param(PARAM_COMMAND)
        try:
            if player == "" or command_name == "":
                raise InvalidControlRequest("Invalid request, missing parameters for player and command")
            if player not in self.connector.get_players():
                raise InvalidControlRequest(f"Invalid request, invalid player: {player!r}")
            try:
                command = ControlCommand(command_name.lower())
            except ValueError:
                raise InvalidControlRequest(f"Invalid request, invalid command: {command_name!r}")

            if not await ensure_connected(self.connector, self.state):
                logger.error("Not connected to the HEOS system")
                return (HTTP_INTERNAL_SERVER_ERROR, False)

            result = await self._run(command, player)
        except InvalidControlRequest as e:
            logger.warning(str(e))
            return (HTTP_BAD_REQUEST, False)

        logger.info(
            f"{command.name} requested on player {self.connector.get_players().get(player)}, "
            f"result: {'SUCCESS' if result else 'FAILED'}"
          )
        if result:
            self.state.mark_contact()
        return (HTTP_OK, result)

    async def _run(self, command: ControlCommand, player: str) -> bool:
        connector = self.connector
        result = False
        if command == ControlCommand.PLAY:
            result = await connector.play(player)
            if result:
                await self._set_label(await connector.get_now_playing(player))
        elif command == ControlCommand.STOP:
            result = await connector.stop(player)
            if result:
                await self._set_label("")
        elif command == ControlCommand.STATION:
            station = self._require_station()
            result = await connector.station(player, station)
            if result:
                await self._set_label_from_request()
        elif command == ControlCommand.PLAYLIST:
            playlist = self.param(PARAM_PLAYLIST)
            if playlist not in connector.get_playlists():
                raise InvalidControlRequest(f"Invalid request, invalid playlist: {playlist!r}")
            result = await connector.playlist(player, playlist)
            if result:
                await self._set_label(connector.get_playlists()[playlist])
        elif command == ControlCommand.INPUT:
            input_player = self.param(PARAM_INPUT_PLAYER)
            if input_player not in connector.get_players():
                raise InvalidControlRequest(f"Invalid request, invalid input player: {input_player!r}")
            result = await connector.input(player, input_player, self.param(PARAM_INPUT_NAME))
            if result:
                await self._set_label_from_request()
        elif command == ControlCommand.VOLUME:
            volume = _parse_volume(self.params.get(PARAM_VOLUME))
            result = await connector.volume(player, volume)
        else:
            # alarm and trigger: set volume, then play a station
            if command == ControlCommand.TRIGGER and await connector.is_playing(player):
                return True
            station = self._require_station()
            # A missing volume plays at DEFAULT_VOLUME rather than rejecting the request
            volume = _parse_volume(self.params.get(PARAM_VOLUME), default=DEFAULT_VOLUME)
            result = await connector.volume(player, volume) and await connector.station(player, station)
            if result:
                await self._set_label_from_request()
                await self._set_slider(volume)
        return result

async def execute_control(
        connector: HeosConnector,
        notifier: Optional[FibaroNotifier],
        state: BridgeState,
        params: Mapping[str, str],
      ) -> ControlResult:
    """Executes a control request and returns (HTTP status code, success)."""
    return await ControlRequestHandler(connector, notifier, state, params).execute()
