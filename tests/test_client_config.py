"""Tests for HeosClientConfig."""

import json
from pathlib import Path

import pytest

from heos_bridge.client import HeosClientConfig
from heos_bridge.exceptions import HeosBridgeError


class TestHeosClientConfig:
    """Tests for config layering and serialization."""

    def test_defaults(self) -> None:
        """Built-in defaults apply when nothing is configured."""
        config = HeosClientConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 1255
        assert config.timeout_secs == 5.0
        assert config.poll_interval_secs == 0.1
        assert config.username == ""

    def test_host_with_port(self) -> None:
        """A :port suffix on the host overrides the port."""
        config = HeosClientConfig(host="tcp://10.0.0.5:1300")
        assert config.host == "10.0.0.5"
        assert config.port == 1300

    def test_other_protocols_rejected(self) -> None:
        """Only tcp:// is accepted as a host prefix."""
        with pytest.raises(HeosBridgeError):
            HeosClientConfig(host="http://10.0.0.5")

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """HEOS_BRIDGE_* variables override the defaults."""
        monkeypatch.setenv("HEOS_BRIDGE_HOST", "10.0.0.7")
        monkeypatch.setenv("HEOS_BRIDGE_USERNAME", "me@example.com")
        monkeypatch.setenv("HEOS_BRIDGE_TIMEOUT", "2.5")
        config = HeosClientConfig()
        assert config.host == "10.0.0.7"
        assert config.username == "me@example.com"
        assert config.timeout_secs == 2.5

    def test_arguments_override_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Explicit arguments win over the environment."""
        monkeypatch.setenv("HEOS_BRIDGE_HOST", "10.0.0.7")
        config = HeosClientConfig(host="10.0.0.8", timeout_secs=1.0)
        assert config.host == "10.0.0.8"
        assert config.timeout_secs == 1.0

    def test_invalid_environment_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A non-integer port is a configuration error."""
        monkeypatch.setenv("HEOS_BRIDGE_PORT", "abc")
        with pytest.raises(HeosBridgeError):
            HeosClientConfig()

    def test_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The file named by HEOS_BRIDGE_CONFIG_FILE is applied under the environment."""
        config_file = tmp_path / "heos.json"
        config_file.write_text(json.dumps({"host": "10.0.0.9", "port": 1400, "username": "file-user", "fibaro": {}}))
        monkeypatch.setenv("HEOS_BRIDGE_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("HEOS_BRIDGE_USERNAME", "env-user")
        config = HeosClientConfig()
        assert config.host == "10.0.0.9"
        assert config.port == 1400
        assert config.username == "env-user"

    def test_base_config(self) -> None:
        """A base config replaces the defaults; arguments still override it."""
        base = HeosClientConfig(host="10.0.0.1", username="u", password="p", timeout_secs=3.0)
        config = HeosClientConfig(base_config=base, timeout_secs=4.0)
        assert config.host == "10.0.0.1"
        assert config.password == "p"
        assert config.timeout_secs == 4.0

    def test_json_round_trip(self) -> None:
        """to_json()/from_json() preserve every setting."""
        config = HeosClientConfig(host="10.0.0.2", username="u", password="p", port=1256, timeout_secs=2.0)
        copy = HeosClientConfig.from_json(config.to_json(), use_config_file=False)
        assert copy.to_jsonable() == config.to_jsonable()

    def test_invalid_numbers_in_jsonable(self) -> None:
        """Bad numeric values raise HeosBridgeError."""
        config = HeosClientConfig()
        with pytest.raises(HeosBridgeError):
            config.update_from_jsonable({"timeout_secs": "soon"})

    def test_str_hides_password(self) -> None:
        """The password is not part of the string form."""
        config = HeosClientConfig(username="u", password="hunter2")
        assert "hunter2" not in str(config)

    def test_from_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """from_config_file() reads only the named file, plus the environment."""
        other = tmp_path / "other.json"
        other.write_text(json.dumps({"host": "10.0.0.7"}))
        monkeypatch.setenv("HEOS_BRIDGE_CONFIG_FILE", str(other))
        config_file = tmp_path / "heos.json"
        config_file.write_text(json.dumps({"port": 1300, "poll_interval_secs": 0.2}))
        config = HeosClientConfig.from_config_file(str(config_file))
        assert config.host == "127.0.0.1"
        assert config.port == 1300
        assert config.poll_interval_secs == 0.2
