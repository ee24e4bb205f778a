"""Test fixtures for heos_bridge tests."""

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Optional

import pytest

from heos_bridge.client import HeosClientConfig, HeosConnector, TcpHeosClientTransport
from heos_bridge.emulator import HeosEmulator, DEFAULT_USERNAME, DEFAULT_PASSWORD
from heos_bridge.protocol import HeosCommand

HEOS_ENV_VARS = (
    "HEOS_BRIDGE_HOST",
    "HEOS_BRIDGE_PORT",
    "HEOS_BRIDGE_USERNAME",
    "HEOS_BRIDGE_PASSWORD",
    "HEOS_BRIDGE_TIMEOUT",
    "HEOS_BRIDGE_CONFIG_FILE",
    "HEOS_BRIDGE_CONFIG",
)


def response_line(command_name: str, message: str = "", result: str = "success", payload=None) -> str:
    """Builds a HEOS response line."""
    data = {"heos": {"command": command_name, "result": result, "message": message}}
    if payload is not None:
        data["payload"] = payload
    return json.dumps(data)


def under_process_line(command_name: str) -> str:
    """Builds a "command under process" line."""
    return response_line(command_name, "command under process&pid=1")


class FakeWriter:
    """Stands in for an asyncio.StreamWriter and reports each write to the device."""

    def __init__(self, device: "FakeHeosDevice") -> None:
        self.device = device
        self.written: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        self.written.append(data)
        self.device.on_write(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def get_extra_info(self, name: str, default: object = None) -> object:
        return default


class FakeHeosDevice:
    """A scripted HEOS controller behind an in-memory stream.

    By default every command is answered with one success line. Scripted
    replies (a list of lines, possibly empty) are used once each, in order.
    """

    def __init__(self) -> None:
        self.reader = asyncio.StreamReader()
        self.writer = FakeWriter(self)
        self.replies: dict[str, list[list[str]]] = {}
        self.delays: dict[str, float] = {}
        self.commands: list[HeosCommand] = []
        self.events: list[tuple[str, str]] = []

    def reply(self, command_name: str, *lines: str) -> None:
        self.replies.setdefault(command_name, []).append(list(lines))

    def feed(self, *lines: str) -> None:
        for line in lines:
            self.reader.feed_data((line + "\r\n").encode("utf-8"))

    def _send_reply(self, command_name: str, lines: list[str]) -> None:
        self.events.append(("reply", command_name))
        self.feed(*lines)

    def on_write(self, data: bytes) -> None:
        command = HeosCommand.from_wire(data.decode("utf-8"))
        self.commands.append(command)
        self.events.append(("write", command.name))
        scripted = self.replies.get(command.name)
        if scripted:
            lines = scripted.pop(0)
        else:
            lines = [response_line(command.name)]
        delay = self.delays.get(command.name, 0.0)
        if delay > 0.0:
            asyncio.get_running_loop().call_later(delay, self._send_reply, command.name, lines)
        else:
            self._send_reply(command.name, lines)

    @property
    def command_names(self) -> list[str]:
        return [command.name for command in self.commands]


@pytest.fixture(autouse=True)
def clean_heos_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keeps HEOS_BRIDGE_* environment variables from leaking into configs."""
    for name in HEOS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client_config() -> HeosClientConfig:
    """A config with short timeouts for the in-memory device."""
    return HeosClientConfig(
        host="127.0.0.1",
        username=DEFAULT_USERNAME,
        password=DEFAULT_PASSWORD,
        timeout_secs=0.3,
        poll_interval_secs=0.05,
        use_config_file=False,
    )


@pytest.fixture
async def device() -> FakeHeosDevice:
    """An in-memory scripted HEOS controller."""
    return FakeHeosDevice()


@pytest.fixture
async def transport(
    client_config: HeosClientConfig, device: FakeHeosDevice
) -> AsyncGenerator[TcpHeosClientTransport, None]:
    """A TCP transport attached to the in-memory device."""
    transport = TcpHeosClientTransport(config=client_config)
    transport.reader = device.reader
    transport.writer = device.writer  # type: ignore[assignment]
    yield transport
    await transport.aclose()


@pytest.fixture
async def emulator() -> AsyncGenerator[HeosEmulator, None]:
    """A HEOS emulator listening on an ephemeral localhost port."""
    async with HeosEmulator(bind_addr="127.0.0.1", port=0) as emulator:
        yield emulator


def emulator_config(emulator: HeosEmulator, timeout_secs: Optional[float] = 1.0) -> HeosClientConfig:
    return HeosClientConfig(
        host="127.0.0.1",
        port=emulator.port,
        username=DEFAULT_USERNAME,
        password=DEFAULT_PASSWORD,
        timeout_secs=timeout_secs,
        poll_interval_secs=0.05,
        use_config_file=False,
    )


@pytest.fixture
async def connector(emulator: HeosEmulator) -> AsyncGenerator[HeosConnector, None]:
    """A HeosConnector connected to the emulator."""
    connector = HeosConnector(config=emulator_config(emulator))
    await connector.connect()
    yield connector
    await connector.aclose()
