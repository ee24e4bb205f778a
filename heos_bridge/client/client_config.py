# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS client configuration.

Provides a general config object for HEOS client transports and connectors.
"""

from __future__ import annotations

import os
import json

from ..internal_types import *
from ..exceptions import HeosBridgeError
from ..constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    CONNECT_TIMEOUT,
  )
from ..pkg_logging import logger

def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise HeosBridgeError(f"Invalid integer value for {name}: {value!r}") from e

def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise HeosBridgeError(f"Invalid numeric value for {name}: {value!r}") from e

class HeosClientConfig:
    """HEOS client configuration."""
    host: str
    port: int
    username: str
    password: str
    timeout_secs: float
    poll_interval_secs: float
    connect_timeout_secs: float

    def __init__(
            self,
            host: Optional[str]=None,
            username: Optional[str]=None,
            password: Optional[str]=None,
            *,
            port: Optional[int]=None,
            timeout_secs: Optional[float]=None,
            poll_interval_secs: Optional[float]=None,
            connect_timeout_secs: Optional[float]=None,
            base_config: Optional[HeosClientConfig]=None,
            use_config_file: bool=True,
          ) -> None:
        """Creates a configuration for a HEOS client.

           Args:
             host: The hostname or IPV4 address of the HEOS controller (any
                   HEOS speaker on the network). May be suffixed with ":<port>"
                   to specify a non-default port, which will override the port
                   argument. If None, the host will be taken from the base
                   config, or the HEOS_BRIDGE_HOST environment variable.
             username:
                   The HEOS account username used to sign in. If None, taken
                   from the base config, or HEOS_BRIDGE_USERNAME.
             password:
                   The HEOS account password. If None, taken from the base
                   config, or HEOS_BRIDGE_PASSWORD.
             port: The TCP/IP port. If None, taken from the base config, or
                   HEOS_BRIDGE_PORT, or DEFAULT_PORT (1255).
             timeout_secs:
                   The timeout for a single command exchange, in seconds.
                   If None, taken from the base config, or HEOS_BRIDGE_TIMEOUT,
                   or DEFAULT_TIMEOUT (5 seconds).
             poll_interval_secs:
                   The quiet period used when discarding stale response lines
                   after a desynchronized or timed-out exchange, in seconds.
             connect_timeout_secs:
                   The timeout for opening the TCP/IP connection, in seconds.
             base_config:
                   An optional base configuration to use instead of the
                   defaults/config file/environment.
             use_config_file:
                   If True and there is no base config, the JSON file named by
                   HEOS_BRIDGE_CONFIG_FILE (if any) is applied over the defaults.
        """
        if base_config is None:
            self.init_from_defaults(use_config_file=use_config_file)
        else:
            self.init_from_base_config(base_config)

        if host is not None and host != '':
            self.set_host(host)

        if port is not None and port > 0:
            self.port = port

        if username is not None:
            self.username = username

        if password is not None:
            self.password = password

        if timeout_secs is not None:
            self.timeout_secs = timeout_secs

        if poll_interval_secs is not None:
            self.poll_interval_secs = poll_interval_secs

        if connect_timeout_secs is not None:
            self.connect_timeout_secs = connect_timeout_secs

    def set_host(self, host: str) -> None:
        """Sets the host, splitting off a ":<port>" suffix if present."""
        if host.startswith('tcp://'):
            host = host[len('tcp://'):]
        if '://' in host:
            raise HeosBridgeError(f"Invalid host protocol specifier for HEOS: '{host}'")
        if ':' in host:
            host, port_str = host.rsplit(':', 1)
            self.port = _parse_int('port', port_str)
        self.host = host

    def init_from_defaults(self, use_config_file: bool=True) -> None:
        """Initializes the configuration from defaults."""
        self.host = DEFAULT_HOST
        self.port = DEFAULT_PORT
        self.username = ''
        self.password = ''
        self.timeout_secs = DEFAULT_TIMEOUT
        self.poll_interval_secs = DEFAULT_POLL_INTERVAL
        self.connect_timeout_secs = CONNECT_TIMEOUT

        if use_config_file:
            config_file = os.environ.get('HEOS_BRIDGE_CONFIG_FILE')
            if config_file is not None and config_file != '':
                logger.debug(f"Loading HEOS client config from {config_file}")
                with open(config_file, 'r') as f:
                    config_jsonable = json.load(f)
                self.update_from_jsonable(config_jsonable)

        host = os.environ.get('HEOS_BRIDGE_HOST')
        if host is not None and host != '':
            self.set_host(host)
        port_str = os.environ.get('HEOS_BRIDGE_PORT')
        if port_str is not None and port_str != '':
            self.port = _parse_int('HEOS_BRIDGE_PORT', port_str)
        username = os.environ.get('HEOS_BRIDGE_USERNAME')
        if username is not None and username != '':
            self.username = username
        password = os.environ.get('HEOS_BRIDGE_PASSWORD')
        if password is not None and password != '':
            self.password = password
        timeout_str = os.environ.get('HEOS_BRIDGE_TIMEOUT')
        if timeout_str is not None and timeout_str != '':
            self.timeout_secs = _parse_float('HEOS_BRIDGE_TIMEOUT', timeout_str)

    def init_from_base_config(self, base_config: HeosClientConfig) -> None:
        """Initializes the configuration from a base configuration."""
        self.host = base_config.host
        self.port = base_config.port
        self.username = base_config.username
        self.password = base_config.password
        self.timeout_secs = base_config.timeout_secs
        self.poll_interval_secs = base_config.poll_interval_secs
        self.connect_timeout_secs = base_config.connect_timeout_secs

    def to_jsonable(self) -> JsonableDict:
        """Returns a JSON-serializable representation of the configuration."""
        result: JsonableDict = dict(
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            timeout_secs=self.timeout_secs,
            poll_interval_secs=self.poll_interval_secs,
            connect_timeout_secs=self.connect_timeout_secs,
          )
        return result

    def to_json(self) -> str:
        """Returns a JSON representation of the configuration."""
        return json.dumps(self.to_jsonable())

    def update_from_jsonable(self, jsonable: Mapping[str, Any]) -> None:
        """Updates the configuration from a JSON-serializable representation.

        Unknown keys are ignored, so a larger config file (e.g., the REST
        server's) can be used directly.
        """
        host = jsonable.get('host')
        if host is not None and host != '':
            self.set_host(str(host))
        port = jsonable.get('port')
        if port is not None and port != '':
            self.port = _parse_int('port', port)
        username = jsonable.get('username')
        if username is not None and username != '':
            self.username = str(username)
        password = jsonable.get('password')
        if password is not None and password != '':
            self.password = str(password)
        timeout_secs = jsonable.get('timeout_secs')
        if timeout_secs is not None and timeout_secs != '':
            self.timeout_secs = _parse_float('timeout_secs', timeout_secs)
        poll_interval_secs = jsonable.get('poll_interval_secs')
        if poll_interval_secs is not None and poll_interval_secs != '':
            self.poll_interval_secs = _parse_float('poll_interval_secs', poll_interval_secs)
        connect_timeout_secs = jsonable.get('connect_timeout_secs')
        if connect_timeout_secs is not None and connect_timeout_secs != '':
            self.connect_timeout_secs = _parse_float('connect_timeout_secs', connect_timeout_secs)

    @classmethod
    def from_jsonable(cls, jsonable: Mapping[str, Any], use_config_file: bool=True) -> HeosClientConfig:
        """Creates a configuration from a JSON-serializable representation."""
        result = cls(use_config_file=use_config_file)
        result.update_from_jsonable(jsonable)
        return result

    @classmethod
    def from_json(cls, json_str: str, use_config_file: bool=True) -> HeosClientConfig:
        """Creates a configuration from a JSON representation."""
        jsonable = json.loads(json_str)
        return cls.from_jsonable(jsonable, use_config_file=use_config_file)

    @classmethod
    def from_config_file(cls, filename: str) -> HeosClientConfig:
        """Creates a configuration from a JSON-serialized config file."""
        with open(filename, 'r') as f:
            jsonable: JsonableDict = json.load(f)

        result = cls.from_jsonable(jsonable, use_config_file=False)
        return result

    def __str__(self) -> str:
        return (
            f"HeosClientConfig("
            f"host={self.host}, "
            f"port={self.port}, "
            f"username={self.username!r}, "
            f"timeout_secs={self.timeout_secs!r})"
          )

    def __repr__(self) -> str:
        return str(self)
