"""Tests for the REST server, with a mocked HEOS connector."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from heos_bridge import __version__
from heos_bridge.client import HeosClientConfig, HeosConnector
from heos_bridge.notifier import FibaroNotifier
from heos_bridge.rest_server.app import create_app, load_raw_config

PLAYERS = {"1001": "Living Room", "1002": "Kitchen"}
STATIONS = {"s6707": "Radio Paradise"}
PLAYLISTS = {"101": "Morning"}


@pytest.fixture
def connector() -> MagicMock:
    connector = MagicMock(spec=HeosConnector)
    connector.config = HeosClientConfig(
        host="10.0.0.5", username="user@example.com", password="secret", use_config_file=False)
    connector.start = AsyncMock()
    connector.aclose = AsyncMock()
    connector.connect = AsyncMock()
    connector.is_connected = AsyncMock(return_value=True)
    connector.is_user_signed_in = AsyncMock(return_value=True)
    connector.is_playing = AsyncMock(return_value=False)
    for name in ("play", "stop", "station", "playlist", "input", "volume"):
        setattr(connector, name, AsyncMock(return_value=True))
    connector.get_now_playing = AsyncMock(return_value="Radio Paradise")
    connector.get_players.return_value = PLAYERS
    connector.get_stations.return_value = STATIONS
    connector.get_playlists.return_value = PLAYLISTS
    connector.update_players = AsyncMock(return_value=PLAYERS)
    connector.update_stations = AsyncMock(return_value=STATIONS)
    connector.update_playlists = AsyncMock(return_value=PLAYLISTS)
    connector.entries_sorted_by_values.side_effect = HeosConnector.entries_sorted_by_values
    return connector


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock(spec=FibaroNotifier)
    notifier.host = "hc2.local"
    return notifier


@pytest.fixture
def client(connector: MagicMock, notifier: MagicMock) -> Iterator[TestClient]:
    app = create_app(raw_config={}, connector=connector, notifier=notifier)
    with TestClient(app) as client:
        yield client


def control(client: TestClient, **params: str):
    return client.get("/api/v1/control", params=params)


class TestLifespan:
    """Tests for server startup and shutdown."""

    def test_connector_started_and_closed(self, connector: MagicMock, notifier: MagicMock) -> None:
        """The connector is started with the app and closed with it."""
        with TestClient(create_app(raw_config={}, connector=connector, notifier=notifier)):
            connector.start.assert_awaited_once()
            connector.aclose.assert_not_awaited()
        connector.aclose.assert_awaited_once()

    def test_notifier_from_config(self, connector: MagicMock) -> None:
        """A "fibaro" section creates the notifier."""
        app = create_app(raw_config={"fibaro": {"host": "hc2.local"}}, connector=connector)
        with TestClient(app) as client:
            assert client.get("/api/v1/info").json()["fibaro_host"] == "hc2.local"


class TestInfoEndpoints:
    """Tests for version, config, ping and info."""

    def test_version(self, client: TestClient) -> None:
        assert client.get("/api/v1/version").json() == {"version": __version__}

    def test_config_hides_password(self, client: TestClient) -> None:
        """The password is not revealed."""
        config = client.get("/api/v1/config").json()["config"]
        assert config["host"] == "10.0.0.5"
        assert config["username"] == "user@example.com"
        assert "password" not in config

    def test_ping(self, client: TestClient, connector: MagicMock) -> None:
        result = client.get("/api/v1/ping").json()
        assert result["server_status"] == "OK"
        assert result["heos_status"] == "OK"
        connector.is_connected.return_value = False
        assert client.get("/api/v1/ping").json()["heos_status"] == "DISCONNECTED"

    def test_info(self, client: TestClient) -> None:
        """Players, stations and playlists are listed sorted by name."""
        info = client.get("/api/v1/info").json()
        assert info["connected"] is True
        assert info["signed_in"] is True
        assert info["last_contact"] is not None
        assert info["players"] == [
            {"pid": "1002", "name": "Kitchen", "now_playing": "Radio Paradise"},
            {"pid": "1001", "name": "Living Room", "now_playing": "Radio Paradise"},
        ]
        assert info["stations"] == [{"mid": "s6707", "name": "Radio Paradise"}]
        assert info["playlists"] == [{"cid": "101", "name": "Morning"}]


class TestControlValidation:
    """Tests for rejected control requests."""

    @pytest.mark.parametrize("params", [
        {},
        {"player": "1001"},
        {"command": "play"},
        {"player": "9999", "command": "play"},
        {"player": "1001", "command": "dance"},
        {"player": "1001", "command": "station", "station": "nope"},
        {"player": "1001", "command": "playlist", "playlist": "nope"},
        {"player": "1001", "command": "input", "inputplayer": "nope", "inputname": "inputs/aux_in_1"},
        {"player": "1001", "command": "volume", "volume": "loud"},
        {"player": "1001", "command": "volume", "volume": "101"},
        {"player": "1001", "command": "volume"},
        {"player": "1001", "command": "alarm", "station": "s6707", "volume": "-1"},
    ])
    def test_bad_request(self, client: TestClient, connector: MagicMock, params: dict) -> None:
        """Invalid requests get 400 and send nothing to the players."""
        response = control(client, **params)
        assert response.status_code == 400
        assert response.text == "FAILED"
        for name in ("play", "stop", "station", "playlist", "input", "volume"):
            getattr(connector, name).assert_not_awaited()

    def test_not_connected(self, client: TestClient, connector: MagicMock) -> None:
        """A controller that stays silent after a reconnect gives 500."""
        connector.is_connected.return_value = False
        response = control(client, player="1001", command="play")
        assert response.status_code == 500
        assert response.text == "FAILED"
        connector.connect.assert_awaited()
        connector.play.assert_not_awaited()

    def test_unexpected_error(self, client: TestClient, connector: MagicMock) -> None:
        """An unexpected exception gives 500."""
        connector.play.side_effect = RuntimeError("boom")
        response = control(client, player="1001", command="play")
        assert response.status_code == 500
        assert response.text == "FAILED"


class TestControlCommands:
    """Tests for accepted control requests."""

    def test_play_sets_label(self, client: TestClient, connector: MagicMock, notifier: MagicMock) -> None:
        """play updates the label with what is now playing."""
        response = control(client, player="1001", command="play", vd="42")
        assert (response.status_code, response.text) == (200, "SUCCESS")
        connector.play.assert_awaited_once_with("1001")
        notifier.set_text_label.assert_called_once_with("42", "label", "Radio Paradise")

    def test_command_is_case_insensitive(self, client: TestClient, connector: MagicMock) -> None:
        assert control(client, player="1001", command="STOP").text == "SUCCESS"
        connector.stop.assert_awaited_once_with("1001")

    def test_stop_clears_label(self, client: TestClient, notifier: MagicMock) -> None:
        control(client, player="1001", command="stop", vd="42")
        notifier.set_text_label.assert_called_once_with("42", "label", "")

    def test_no_virtual_device_no_notification(self, client: TestClient, notifier: MagicMock) -> None:
        """Without vd, Fibaro is not contacted."""
        control(client, player="1001", command="play")
        notifier.set_text_label.assert_not_called()

    def test_failed_command(self, client: TestClient, connector: MagicMock, notifier: MagicMock) -> None:
        """A command the controller rejects gives 200 FAILED and no label update."""
        connector.station.return_value = False
        response = control(client, player="1001", command="station", station="s6707", vd="42", labeltext="x")
        assert (response.status_code, response.text) == (200, "FAILED")
        notifier.set_text_label.assert_not_called()

    def test_station(self, client: TestClient, connector: MagicMock, notifier: MagicMock) -> None:
        response = control(client, player="1001", command="station", station="s6707", vd="42", labeltext="Paradise")
        assert response.text == "SUCCESS"
        connector.station.assert_awaited_once_with("1001", "s6707")
        notifier.set_text_label.assert_called_once_with("42", "label", "Paradise")

    def test_playlist(self, client: TestClient, connector: MagicMock, notifier: MagicMock) -> None:
        """The label shows the playlist name."""
        response = control(client, player="1002", command="playlist", playlist="101", vd="42")
        assert response.text == "SUCCESS"
        connector.playlist.assert_awaited_once_with("1002", "101")
        notifier.set_text_label.assert_called_once_with("42", "label", "Morning")

    def test_input(self, client: TestClient, connector: MagicMock) -> None:
        response = control(client, player="1001", command="input", inputplayer="1002", inputname="inputs/aux_in_1")
        assert response.text == "SUCCESS"
        connector.input.assert_awaited_once_with("1001", "1002", "inputs/aux_in_1")

    def test_volume(self, client: TestClient, connector: MagicMock) -> None:
        assert control(client, player="1001", command="volume", volume="30").text == "SUCCESS"
        connector.volume.assert_awaited_once_with("1001", 30)

    def test_alarm(self, client: TestClient, connector: MagicMock, notifier: MagicMock) -> None:
        """alarm sets the volume, plays the station and updates label and slider."""
        response = control(
            client, player="1001", command="alarm", station="s6707", volume="25", vd="42", labeltext="Wake up")
        assert response.text == "SUCCESS"
        connector.volume.assert_awaited_once_with("1001", 25)
        connector.station.assert_awaited_once_with("1001", "s6707")
        notifier.set_text_label.assert_called_once_with("42", "label", "Wake up")
        notifier.set_volume_slider.assert_called_once_with("42", "3", 25)

    def test_alarm_default_volume(self, client: TestClient, connector: MagicMock) -> None:
        """Without a volume, alarms play at 10."""
        control(client, player="1001", command="alarm", station="s6707")
        connector.volume.assert_awaited_once_with("1001", 10)

    def test_trigger_while_playing(self, client: TestClient, connector: MagicMock) -> None:
        """trigger leaves a playing player alone."""
        connector.is_playing.return_value = True
        assert control(client, player="1001", command="trigger", station="s6707").text == "SUCCESS"
        connector.station.assert_not_awaited()
        connector.volume.assert_not_awaited()

    def test_trigger_while_stopped(self, client: TestClient, connector: MagicMock) -> None:
        assert control(client, player="1001", command="trigger", station="s6707").text == "SUCCESS"
        connector.station.assert_awaited_once_with("1001", "s6707")


class TestServerConfigFile:
    """Tests for load_raw_config."""

    def test_named_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "server.json"
        config_file.write_text('{"host": "10.0.0.5", "heartbeat_interval_secs": 60}')
        monkeypatch.setenv("HEOS_BRIDGE_CONFIG", str(config_file))
        assert load_raw_config() == {"host": "10.0.0.5", "heartbeat_interval_secs": 60}

    def test_no_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a config file the server config is empty."""
        monkeypatch.chdir(tmp_path)
        assert load_raw_config() == {}
