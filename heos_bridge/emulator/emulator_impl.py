# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS emulator.

Provides a simple emulation of a HEOS controller on TCP/IP: a handful of
players, groups, a HEOS account with favorite stations and playlists, play
states, volumes and now-playing media.

The emulator can also be scripted to misbehave the way real controllers do:
a command can be answered after some "command under process" lines, after a
delay, never, or with a line that answers some other command.
"""

from __future__ import annotations

import json
import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..protocol import (
    HeosCommand,
    FAVORITES_SID,
    PLAYLISTS_SID,
    TYPE_STATION,
    TYPE_PLAYLIST,
  )
from ..protocol.constants import (
    CMD_HEART_BEAT,
    CMD_CHECK_ACCOUNT,
    CMD_SIGN_IN,
    CMD_SIGN_OUT,
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
from ..constants import DEFAULT_PORT
from ..exceptions import HeosBridgeError, HeosInvalidCommandError

from .session import HeosEmulatorSession

CMD_GET_VOLUME = "player/get_volume"

DEFAULT_PLAYERS: Dict[str, str] = {
    "1001": "Living Room",
    "1002": "Kitchen",
    "1003": "Bedroom",
  }

DEFAULT_STATIONS: Dict[str, str] = {
    "s6707": "Radio Paradise",
    "s24861": "BBC Radio 4",
    "s17488": "Jazz24",
  }

DEFAULT_PLAYLISTS: Dict[str, str] = {
    "101": "Morning",
    "102": "Dinner",
  }

DEFAULT_USERNAME = "user@example.com"
DEFAULT_PASSWORD = "secret"

# HEOS error ids used in failure messages
EID_UNRECOGNIZED_COMMAND = 1
EID_INVALID_ID = 2
EID_WRONG_ARGUMENTS = 3
EID_USER_NOT_LOGGED_IN = 8
EID_USER_NOT_FOUND = 10

class HeosEmulatorFailure(HeosBridgeError):
    """Raised by command handlers to send a failure response."""
    eid: int

    def __init__(self, eid: int, text: str):
        super().__init__(text)
        self.eid = eid

class HeosEmulator(AsyncContextManager['HeosEmulator']):
    username: str
    password: str
    bind_addr: str
    port: int
    sessions: Dict[int, HeosEmulatorSession]
    next_session_id: int = 0
    requests: asyncio.Queue[Optional[Tuple[HeosEmulatorSession, str]]]
    server: Optional[asyncio.Server] = None
    handler_task: Optional[asyncio.Task[None]] = None
    final_result: asyncio.Future[None]

    players: Dict[str, str]
    stations: Dict[str, str]
    playlists: Dict[str, str]
    play_states: Dict[str, str]
    volumes: Dict[str, int]
    now_playing: Dict[str, JsonableDict]
    groups: List[List[str]]
    """Each group is a list of pids; the first is the leader."""
    signed_in_user: Optional[str]

    under_process_counts: Dict[str, int]
    """Command name -> number of "command under process" lines sent before the final response."""
    silent_commands: Set[str]
    """Names of commands that are never answered."""
    mismatch_commands: Dict[str, str]
    """Command name -> name of another command whose response is sent instead."""
    response_delays: Dict[str, float]
    """Command name -> seconds to wait before sending the final response."""

    received_commands: List[HeosCommand]
    sent_lines: List[str]

    def __init__(
            self,
            bind_addr: Optional[str] = None,
            port: int = DEFAULT_PORT,
            username: str = DEFAULT_USERNAME,
            password: str = DEFAULT_PASSWORD,
            players: Optional[Mapping[str, str]] = None,
            stations: Optional[Mapping[str, str]] = None,
            playlists: Optional[Mapping[str, str]] = None,
            signed_in: bool = False,
          ):
        self.bind_addr = '0.0.0.0' if bind_addr is None else bind_addr
        self.port = port
        self.username = username
        self.password = password
        self.sessions = {}
        self.requests = asyncio.Queue()
        self.final_result = asyncio.get_running_loop().create_future()
        self.players = dict(DEFAULT_PLAYERS if players is None else players)
        self.stations = dict(DEFAULT_STATIONS if stations is None else stations)
        self.playlists = dict(DEFAULT_PLAYLISTS if playlists is None else playlists)
        self.play_states = { pid: "stop" for pid in self.players }
        self.volumes = { pid: 20 for pid in self.players }
        self.now_playing = {}
        self.groups = []
        self.signed_in_user = username if signed_in else None
        self.under_process_counts = {}
        self.silent_commands = set()
        self.mismatch_commands = {}
        self.response_delays = {}
        self.received_commands = []
        self.sent_lines = []

    def alloc_session_id(self, session: HeosEmulatorSession) -> int:
        result = self.next_session_id
        self.next_session_id += 1
        self.sessions[result] = session
        return result

    def free_session_id(self, session_id: int) -> None:
        self.sessions.pop(session_id, None)

    def on_line_received(self, session: HeosEmulatorSession, line: str) -> None:
        """Called when a command line is received from a session."""
        self.requests.put_nowait((session, line))

    # State helpers

    def group_of(self, pid: str) -> Optional[List[str]]:
        for group in self.groups:
            if pid in group:
                return group
        return None

    def set_group(self, pids: Sequence[str]) -> None:
        """Makes a group of pids (leader first). A single pid is ungrouped."""
        for pid in pids:
            group = self.group_of(pid)
            if group is not None:
                group.remove(pid)
        self.groups = [ group for group in self.groups if len(group) > 1 ]
        if len(pids) > 1:
            self.groups.append(list(pids))

    def _write(self, session: HeosEmulatorSession, line: str) -> None:
        logger.debug(f"{session}: Emulator sending: {line}")
        self.sent_lines.append(line)
        session.write_line(line)

    def send_event(self, event_name: str, message: str = "") -> None:
        """Sends an unsolicited event line (e.g., "event/player_state_changed") to all sessions."""
        line = json.dumps({"heos": {"command": event_name, "message": message}})
        for session in list(self.sessions.values()):
            self._write(session, line)

    @staticmethod
    def response_line(
            command_name: str,
            message: str = "",
            payload: Optional[Jsonable] = None,
            result: str = "success",
          ) -> str:
        """Formats a response line the way a HEOS controller does."""
        jsonable: JsonableDict = {"heos": {"command": command_name, "result": result, "message": message}}
        if payload is not None:
            jsonable["payload"] = payload
        return json.dumps(jsonable)

    # Command handlers. Each returns (message, payload) or raises HeosEmulatorFailure.

    def _require_player(self, params: Mapping[str, str], key: str = "pid") -> str:
        pid = params.get(key)
        if pid is None or pid not in self.players:
            raise HeosEmulatorFailure(EID_INVALID_ID, "ID Not Valid")
        return pid

    def _require_signed_in(self) -> None:
        if self.signed_in_user is None:
            raise HeosEmulatorFailure(EID_USER_NOT_LOGGED_IN, "User not logged in")

    def _handle_check_account(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        if self.signed_in_user is None:
            return "signed_out", None
        return f"signed_in&un={self.signed_in_user}", None

    def _handle_sign_in(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        if params.get("un") != self.username or params.get("pw") != self.password:
            raise HeosEmulatorFailure(EID_USER_NOT_FOUND, "User not found")
        self.signed_in_user = self.username
        return f"signed_in&un={self.username}", None

    def _handle_sign_out(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        self.signed_in_user = None
        return "signed_out", None

    def _handle_get_players(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        payload: List[Jsonable] = []
        for pid, name in self.players.items():
            entry: JsonableDict = {"name": name, "pid": int(pid), "model": "HEOS 1", "version": "1.583.147"}
            group = self.group_of(pid)
            if group is not None:
                entry["gid"] = int(group[0])
            payload.append(entry)
        return "", payload

    def _handle_get_play_state(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        return f"pid={pid}&state={self.play_states[pid]}", None

    def _handle_set_play_state(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        state = params.get("state")
        if state not in ("play", "pause", "stop"):
            raise HeosEmulatorFailure(EID_WRONG_ARGUMENTS, "Invalid Argument")
        self.play_states[pid] = state
        return f"pid={pid}&state={state}", None

    def _handle_get_volume(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        return f"pid={pid}&level={self.volumes[pid]}", None

    def _handle_set_volume(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        try:
            level = int(params.get("level", ""))
        except ValueError:
            raise HeosEmulatorFailure(EID_WRONG_ARGUMENTS, "Invalid Argument")
        if level < 0 or level > 100:
            raise HeosEmulatorFailure(EID_WRONG_ARGUMENTS, "Invalid Argument")
        self.volumes[pid] = level
        return f"pid={pid}&level={level}", None

    def _handle_get_now_playing_media(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        return f"pid={pid}", self.now_playing.get(pid, {})

    def _handle_get_groups(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        payload: List[Jsonable] = []
        for group in self.groups:
            members: List[Jsonable] = [
                {"name": self.players[pid], "pid": int(pid), "role": "leader" if i == 0 else "member"}
                for i, pid in enumerate(group)
              ]
            payload.append({"name": " + ".join(self.players[pid] for pid in group), "gid": int(group[0]), "players": members})
        return "", payload

    def _handle_set_group(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pids = [ pid for pid in params.get("pid", "").split(",") if pid != "" ]
        if len(pids) == 0:
            raise HeosEmulatorFailure(EID_WRONG_ARGUMENTS, "Invalid Argument")
        for pid in pids:
            if pid not in self.players:
                raise HeosEmulatorFailure(EID_INVALID_ID, "ID Not Valid")
        self.set_group(pids)
        return f"pid={','.join(pids)}", None

    def _handle_browse(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        sid = params.get("sid")
        payload: List[Jsonable]
        if sid == FAVORITES_SID:
            self._require_signed_in()
            payload = [
                {"container": "no", "mid": mid, "type": TYPE_STATION, "playable": "yes", "name": name}
                for mid, name in self.stations.items()
              ]
        elif sid == PLAYLISTS_SID:
            self._require_signed_in()
            payload = [
                {"container": "yes", "cid": cid, "type": TYPE_PLAYLIST, "playable": "yes", "name": name}
                for cid, name in self.playlists.items()
              ]
        else:
            raise HeosEmulatorFailure(EID_INVALID_ID, "ID Not Valid")
        return f"sid={sid}&returned={len(payload)}&count={len(payload)}", payload

    def _handle_play_stream(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        self._require_signed_in()
        mid = params.get("mid")
        if params.get("sid") != FAVORITES_SID or mid is None or mid not in self.stations:
            raise HeosEmulatorFailure(EID_INVALID_ID, "ID Not Valid")
        self.now_playing[pid] = {"type": TYPE_STATION, "song": "", "station": self.stations[mid], "mid": mid}
        self.play_states[pid] = "play"
        return f"pid={pid}&sid={FAVORITES_SID}&mid={mid}", None

    def _handle_add_to_queue(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        self._require_signed_in()
        cid = params.get("cid")
        if params.get("sid") != PLAYLISTS_SID or cid is None or cid not in self.playlists:
            raise HeosEmulatorFailure(EID_INVALID_ID, "ID Not Valid")
        self.now_playing[pid] = {"type": "song", "song": f"{self.playlists[cid]} - Track 1", "album": self.playlists[cid]}
        self.play_states[pid] = "play"
        return f"pid={pid}&sid={PLAYLISTS_SID}&cid={cid}&aid={params.get('aid', '')}", None

    def _handle_play_input(self, params: Mapping[str, str]) -> Tuple[str, Optional[Jsonable]]:
        pid = self._require_player(params)
        spid = self._require_player(params, "spid") if "spid" in params else pid
        input_name = params.get("input", "")
        if not input_name.startswith("inputs/"):
            raise HeosEmulatorFailure(EID_WRONG_ARGUMENTS, "Invalid Argument")
        self.now_playing[pid] = {"type": TYPE_STATION, "song": "", "station": f"{self.players[spid]} {input_name[len('inputs/'):]}"}
        self.play_states[pid] = "play"
        return f"pid={pid}&spid={spid}&input={input_name}", None

    def handle_command(self, command: HeosCommand) -> str:
        """Handles a single command, updating emulator state, and returns the final response line."""
        handlers: Dict[str, Callable[[Mapping[str, str]], Tuple[str, Optional[Jsonable]]]] = {
            CMD_HEART_BEAT: lambda params: ("", None),
            CMD_CHECK_ACCOUNT: self._handle_check_account,
            CMD_SIGN_IN: self._handle_sign_in,
            CMD_SIGN_OUT: self._handle_sign_out,
            CMD_GET_PLAYERS: self._handle_get_players,
            CMD_GET_PLAY_STATE: self._handle_get_play_state,
            CMD_SET_PLAY_STATE: self._handle_set_play_state,
            CMD_GET_VOLUME: self._handle_get_volume,
            CMD_SET_VOLUME: self._handle_set_volume,
            CMD_GET_NOW_PLAYING_MEDIA: self._handle_get_now_playing_media,
            CMD_GET_GROUPS: self._handle_get_groups,
            CMD_SET_GROUP: self._handle_set_group,
            CMD_BROWSE: self._handle_browse,
            CMD_PLAY_STREAM: self._handle_play_stream,
            CMD_ADD_TO_QUEUE: self._handle_add_to_queue,
            CMD_PLAY_INPUT: self._handle_play_input,
          }
        handler = handlers.get(command.name)
        try:
            if handler is None:
                raise HeosEmulatorFailure(EID_UNRECOGNIZED_COMMAND, "Unrecognized Command")
            message, payload = handler(command.params)
        except HeosEmulatorFailure as e:
            return self.response_line(command.name, f"eid={e.eid}&text={e}", result="fail")
        return self.response_line(command.name, message, payload)

    async def handle_request_line(self, session: HeosEmulatorSession, line: str) -> None:
        """Handles a single command line, writing any response lines to the session."""
        try:
            command = HeosCommand.from_wire(line)
        except HeosInvalidCommandError:
            logger.debug(f"{session}: Ignoring invalid command line: {line}")
            return
        logger.debug(f"{session}: Received command: {command}")
        self.received_commands.append(command)
        name = command.name
        if name in self.silent_commands:
            logger.debug(f"{session}: Sending NO response to command {command}")
            return
        if name in self.mismatch_commands:
            self._write(session, self.response_line(self.mismatch_commands[name]))
            return
        for _ in range(self.under_process_counts.get(name, 0)):
            self._write(session, self.response_line(name, f"command under process&{command.arguments.lstrip('?')}"))
        delay = self.response_delays.get(name, 0.0)
        if delay > 0.0:
            await asyncio.sleep(delay)
        self._write(session, self.handle_command(command))

    async def handle_requests(self) -> None:
        """Handle requests from sessions."""
        while True:
            session_and_line = await self.requests.get()
            try:
                if session_and_line is None:
                    logger.debug("Emulator handler: Received EOF; exiting")
                    break
                session, line = session_and_line
                try:
                    await self.handle_request_line(session, line)
                except asyncio.CancelledError:
                    logger.debug(f"{session}: Handler task cancelled; exiting")
                    break
                except Exception as e:
                    logger.exception(f"{session}: Handler task: Exception while handling request; killing session: {e}")
                    session.close()
            finally:
                self.requests.task_done()

    def close_sessions(self) -> None:
        """Drops every client connection; clients will see EOF."""
        for session in list(self.sessions.values()):
            session.close()

    async def run(self) -> None:
        """Runs the Emulator until it is closed."""
        async with self:
            await self.wait_closed()

    async def start(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            self.handler_task = asyncio.create_task(self.handle_requests())
            self.server = await loop.create_server(
                lambda: HeosEmulatorSession(self),
                host=self.bind_addr,
                port=self.port)
            if self.port == 0:
                self.port = self.server.sockets[0].getsockname()[1]
            logger.debug(f"Emulator: Listening on {self.bind_addr}:{self.port}")
            await self.server.start_serving()
        except BaseException as e:
            self.set_final_result(e)
            try:
                await self.wait_closed()
            except BaseException as e2:
                logger.debug(f"Emulator: Error while closing after failed start: {e2}")
            raise

    def close(self, exc: Optional[BaseException]=None) -> None:
        """Stops the Emulator."""
        self.set_final_result(exc)

    async def wait_closed(self) -> None:
        """Waits for the emulator to be fully closed. Does not initiate shutdown."""
        try:
            await self.final_result
        finally:
            try:
                if self.server is not None:
                    try:
                        self.server.close()
                        self.close_sessions()
                    finally:
                        await self.server.wait_closed()
            finally:
                self.server = None
                if self.handler_task is not None:
                    try:
                        await self.handler_task
                    finally:
                        self.handler_task = None

    async def close_and_wait(self, exc: Optional[BaseException]=None) -> None:
        self.close(exc)
        await self.wait_closed()

    def set_final_result(self, exc: Optional[BaseException]=None) -> None:
        if not self.final_result.done():
            if exc is None:
                logger.debug(f"Emulator: Setting final result to success")
                self.final_result.set_result(None)
            else:
                logger.debug(f"Emulator: Setting final exception: {exc}")
                self.final_result.set_exception(exc)
            self.requests.put_nowait(None)
            if self.server is not None:
                self.server.close()

    async def __aenter__(self) -> HeosEmulator:
        await self.start()
        return self

    async def __aexit__(self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> None:
        self.set_final_result(exc)
        try:
            # ensure that final_result has been awaited
            await self.wait_closed()
        except Exception as e:
            logger.debug(f"Emulator: Closed with exception: {e}")
