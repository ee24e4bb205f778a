#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls HEOS players.
"""

from __future__ import annotations

from fastapi import FastAPI

import time
import os
import json
import asyncio

from contextlib import asynccontextmanager

from .logger import logger
from ..internal_types import *
from ..constants import HEARTBEAT_INTERVAL
from .. import (
    HeosConnector,
    HeosClientConfig,
  )
from ..notifier import FibaroNotifier

from .api import router as api_router
from .heartbeat import run_heartbeat
from .state import BridgeState

DEFAULT_CONFIG_FILE = "heos_bridge_config.json"

def load_raw_config() -> JsonableDict:
    """Loads the server config file named by HEOS_BRIDGE_CONFIG, or
    heos_bridge_config.json if it exists, or returns an empty config."""
    config_file = os.environ.get("HEOS_BRIDGE_CONFIG", None)
    if config_file is None:
        if os.path.exists(DEFAULT_CONFIG_FILE):
            config_file = DEFAULT_CONFIG_FILE
    if config_file is None:
        return {}
    logger.info(f"Loading server config from {config_file}")
    with open(config_file, "r") as f:
        raw_config: JsonableDict = json.load(f)
    return raw_config

def create_app(
        raw_config: Optional[JsonableDict]=None,
        connector: Optional[HeosConnector]=None,
        notifier: Optional[FibaroNotifier]=None,
      ) -> FastAPI:
    """Creates the FastAPI application.

    Args:
        raw_config: The server configuration. If None, it is loaded at startup
                    with load_raw_config().
        connector:  The HEOS connector to serve. If None, one is created from
                    the configuration at startup.
        notifier:   The Fibaro notifier. If None, one is created from the
                    "fibaro" section of the configuration, if present.
    """

    @asynccontextmanager
    async def fastapi_lifetime(app: FastAPI) -> AsyncIterator[None]:
        """
        A context manager that initializes and cleans up for FastAPI.
        """
        logger.info("HEOS REST server starting up--initializing...")
        config = load_raw_config() if raw_config is None else raw_config
        app.state.raw_config = config
        heos_connector = connector
        if heos_connector is None:
            heos_connector = HeosConnector(config=HeosClientConfig.from_jsonable(config))
        app.state.heos_connector = heos_connector
        fibaro_notifier = notifier
        if fibaro_notifier is None:
            fibaro_config = config.get("fibaro")
            if isinstance(fibaro_config, dict):
                fibaro_notifier = FibaroNotifier.from_jsonable(fibaro_config)
        app.state.fibaro_notifier = fibaro_notifier
        bridge_state = BridgeState()
        app.state.bridge_state = bridge_state
        app.state.launch_time = time.monotonic()

        await heos_connector.start()
        logger.info(f"Serving API for HEOS at {heos_connector}...")

        heartbeat_interval = float(cast(Any, config.get("heartbeat_interval_secs", HEARTBEAT_INTERVAL)))
        heartbeat_task = asyncio.create_task(run_heartbeat(heos_connector, bridge_state, heartbeat_interval))
        try:
            logger.info("HEOS REST server initialization done; starting server...")
            yield
        finally:
            logger.info("HEOS REST server shutting down--cleaning up...")
            heartbeat_task.cancel()
            try:
                await heartbeat_task
            except asyncio.CancelledError:
                pass
            await heos_connector.aclose()

    app = FastAPI(lifespan=fastapi_lifetime)
    app.include_router(api_router)
    return app

proj_api = create_app()
