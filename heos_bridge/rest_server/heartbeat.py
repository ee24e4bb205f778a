# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Periodic heartbeat that keeps the HEOS connection alive and reconnects it
when the controller stops answering.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..client import HeosConnector
from .logger import logger
from .state import BridgeState

async def ensure_connected(connector: HeosConnector, state: BridgeState) -> bool:
    """Checks the connection, reconnecting once if the controller does not answer.

    Records the contact time in state on success.
    """
    connected = await connector.is_connected()
    if not connected:
        logger.info("HEOS controller did not answer; reconnecting")
        await connector.connect()
        connected = await connector.is_connected()
    if connected:
        state.mark_contact()
    return connected

async def heartbeat_once(connector: HeosConnector, state: BridgeState) -> bool:
    connected = await ensure_connected(connector, state)
    if not connected:
        logger.warning("HEOS-system did not respond")
    return connected

async def run_heartbeat(connector: HeosConnector, state: BridgeState, interval_secs: float) -> None:
    """Sends a heartbeat every interval_secs until cancelled. The first one is
    sent after one interval."""
    while True:
        await asyncio.sleep(interval_secs)
        await heartbeat_once(connector, state)
