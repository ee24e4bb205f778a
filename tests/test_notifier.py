"""Tests for the Fibaro notifier."""

from unittest.mock import MagicMock, patch

import requests

from heos_bridge.notifier import FibaroNotifier


def fibaro_response(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason = "Accepted" if status_code == 202 else "Error"
    return response


class TestFromJsonable:
    """Tests for FibaroNotifier.from_jsonable."""

    def test_no_host(self) -> None:
        """A section without a host disables notifications."""
        assert FibaroNotifier.from_jsonable({}) is None
        assert FibaroNotifier.from_jsonable({"host": ""}) is None

    def test_full_section(self) -> None:
        """All keys of the section are applied."""
        notifier = FibaroNotifier.from_jsonable(
            {"host": "hc2.local", "username": "admin", "password": "pw", "timeout_secs": 2, "slider_id": "5"})
        assert notifier is not None
        assert notifier.host == "hc2.local"
        assert notifier.username == "admin"
        assert notifier.password == "pw"
        assert notifier.timeout_secs == 2.0
        assert notifier.slider_arg == "5"


class TestCallAction:
    """Tests for the callAction requests."""

    def setup_method(self) -> None:
        self.notifier = FibaroNotifier("hc2.local", "admin", "pw", timeout_secs=3.0)

    def test_set_text_label(self) -> None:
        """Labels are set with setProperty on ui.<label>.value."""
        with patch("requests.get", return_value=fibaro_response(202)) as get:
            assert self.notifier.set_text_label("42", "label", "Radio Paradise")
        get.assert_called_once_with(
            "http://hc2.local/api/callAction",
            params={"deviceID": "42", "name": "setProperty", "arg1": "ui.label.value", "arg2": "Radio Paradise"},
            auth=("admin", "pw"),
            timeout=3.0,
        )

    def test_set_volume_slider(self) -> None:
        """Sliders are set with setSlider on the configured element number."""
        with patch("requests.get", return_value=fibaro_response(202)) as get:
            assert self.notifier.set_volume_slider("42", "3", 25)
        assert get.call_args.kwargs["params"] == {"deviceID": "42", "name": "setSlider", "arg1": "3", "arg2": "25"}

    def test_non_accepted_status_fails(self) -> None:
        """Only 202 counts as success."""
        with patch("requests.get", return_value=fibaro_response(200)):
            assert not self.notifier.set_text_label("42", "label", "x")

    def test_request_error_fails(self) -> None:
        """A connection error is reported as False, not raised."""
        with patch("requests.get", side_effect=requests.ConnectionError("unreachable")):
            assert not self.notifier.set_volume_slider("42", "3", 10)
