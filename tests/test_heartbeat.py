"""Tests for the REST server heartbeat."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from heos_bridge.client import HeosConnector
from heos_bridge.rest_server.heartbeat import ensure_connected, heartbeat_once, run_heartbeat
from heos_bridge.rest_server.state import BridgeState


def mock_connector(*connected: bool) -> MagicMock:
    connector = MagicMock(spec=HeosConnector)
    connector.is_connected = AsyncMock(side_effect=list(connected))
    connector.connect = AsyncMock()
    return connector


class TestEnsureConnected:
    """Tests for ensure_connected."""

    @pytest.mark.asyncio
    async def test_connected(self) -> None:
        """A live connection is not reopened, and the contact time is recorded."""
        connector = mock_connector(True)
        state = BridgeState()
        assert await ensure_connected(connector, state)
        connector.connect.assert_not_awaited()
        assert state.last_contact is not None

    @pytest.mark.asyncio
    async def test_reconnects_once(self) -> None:
        """A silent controller gets one reconnect."""
        connector = mock_connector(False, True)
        state = BridgeState()
        assert await ensure_connected(connector, state)
        connector.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up(self) -> None:
        """If the reconnect does not help, the contact time is left alone."""
        connector = mock_connector(False, False)
        state = BridgeState()
        assert not await ensure_connected(connector, state)
        assert state.last_contact is None
        assert state.last_contact_str() is None


@pytest.mark.asyncio
async def test_heartbeat_once_warns(caplog: pytest.LogCaptureFixture) -> None:
    """A failed heartbeat is logged."""
    assert not await heartbeat_once(mock_connector(False, False), BridgeState())
    assert "HEOS-system did not respond" in caplog.text


@pytest.mark.asyncio
async def test_run_heartbeat_repeats_until_cancelled() -> None:
    """The heartbeat runs every interval until its task is cancelled."""
    connector = MagicMock(spec=HeosConnector)
    connector.is_connected = AsyncMock(return_value=True)
    state = BridgeState()
    task = asyncio.create_task(run_heartbeat(connector, state, 0.02))
    await asyncio.sleep(0.11)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert connector.is_connected.await_count >= 3
    assert state.last_contact_str() is not None
