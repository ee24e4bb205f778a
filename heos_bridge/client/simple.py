# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
HEOS simple client connection API.

Provides a simple API for creating a connected HeosConnector.
"""

from __future__ import annotations

from ..internal_types import *
from .client_config import HeosClientConfig
from .client_impl import HeosConnector

async def heos_connect(
        host: Optional[str]=None,
        username: Optional[str]=None,
        password: Optional[str]=None,
        config: Optional[HeosClientConfig]=None,
        refresh_catalogs: bool=False,
      ) -> HeosConnector:
    """Creates a HeosConnector and connects it to a HEOS controller.

    Args:
        host: The hostname or IPV4 address of the controller (any HEOS
                speaker). May be suffixed with ":<port>" to specify a
                non-default port. If None, the host will be taken from
                the config or the HEOS_BRIDGE_HOST environment variable.
        username:
                The HEOS account username. If None, taken from the config.
        password:
                The HEOS account password. If None, taken from the config.
        config: A HeosClientConfig object that specifies the default
                host, port, credentials and timeouts to use. If None, a
                default config will be created.
        refresh_catalogs:
                If True, the players, stations and playlists catalogs are
                rebuilt after connecting.

    A connection failure is logged, not raised; the returned connector
    will report is_connected() == False.
    """
    config = HeosClientConfig(
        host=host,
        username=username,
        password=password,
        base_config=config,
      )
    connector = HeosConnector(config=config)
    if refresh_catalogs:
        await connector.start()
    else:
        await connector.connect()
    return connector
