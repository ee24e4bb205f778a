# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Fibaro home-automation notifier.

Updates the now-playing label and the volume slider of a Fibaro virtual
device through the Fibaro HTTP API (GET /api/callAction with basic auth).
Fibaro answers an accepted action with 202; anything else is a failure.
"""

from __future__ import annotations

import requests

from ..internal_types import *
from ..constants import FIBARO_TIMEOUT, DEFAULT_FIBARO_SLIDER_ID
from ..pkg_logging import logger
from ..util import error_description

HTTP_ACCEPTED = 202

class FibaroNotifier:
    """Sends label and slider updates to a Fibaro controller."""
    host: str
    username: str
    password: str
    timeout_secs: float
    slider_arg: str
    """The slider element number sent as arg1 of setSlider."""

    def __init__(
            self,
            host: str,
            username: str="",
            password: str="",
            *,
            timeout_secs: float=FIBARO_TIMEOUT,
            slider_arg: str=DEFAULT_FIBARO_SLIDER_ID,
          ) -> None:
        self.host = host
        self.username = username
        self.password = password
        self.timeout_secs = timeout_secs
        self.slider_arg = slider_arg

    @classmethod
    def from_jsonable(cls, jsonable: Mapping[str, Any]) -> Optional[FibaroNotifier]:
        """Creates a notifier from the "fibaro" section of a config file, or
        returns None if the section has no host."""
        host = jsonable.get('host')
        if host is None or host == '':
            return None
        return cls(
            str(host),
            str(jsonable.get('username', '')),
            str(jsonable.get('password', '')),
            timeout_secs=float(jsonable.get('timeout_secs', FIBARO_TIMEOUT)),
            slider_arg=str(jsonable.get('slider_id', DEFAULT_FIBARO_SLIDER_ID)),
          )

    @property
    def call_action_url(self) -> str:
        return f"http://{self.host}/api/callAction"

    def set_volume_slider(self, virtual_device_id: str, slider_id: str, volume: int) -> bool:
        """Sets the volume slider of a virtual device. Returns True if Fibaro accepted it.

        slider_id names the slider for logging; the element number sent is slider_arg.
        """
        logger.debug(f"{self}: Setting slider {slider_id} of device {virtual_device_id} to {volume}")
        return self._call_action(dict(
            deviceID=virtual_device_id,
            name="setSlider",
            arg1=self.slider_arg,
            arg2=str(volume),
          ))

    def set_text_label(self, virtual_device_id: str, label_id: str, text: str) -> bool:
        """Sets the text of a label of a virtual device. Returns True if Fibaro accepted it."""
        return self._call_action(dict(
            deviceID=virtual_device_id,
            name="setProperty",
            arg1=f"ui.{label_id}.value",
            arg2=text,
          ))

    def _call_action(self, params: Dict[str, str]) -> bool:
        url = self.call_action_url
        logger.info(f"{self}: Sending command: {url} {params}")
        try:
            response = requests.get(
                url,
                params=params,
                auth=(self.username, self.password),
                timeout=self.timeout_secs,
              )
        except requests.RequestException as e:
            logger.error(f"{self}: Error while sending command {params}: {error_description(e)}")
            return False
        logger.info(f"{self}: Received response: {response.status_code} {response.reason}")
        return response.status_code == HTTP_ACCEPTED

    def __str__(self) -> str:
        return f"FibaroNotifier({self.host})"
