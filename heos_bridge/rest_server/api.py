#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls HEOS players.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

import time

from .logger import logger
from ..internal_types import *
from .. import (
    __version__ as pkg_version,
    HeosConnector,
    full_class_name,
  )
from ..notifier import FibaroNotifier
from .control import execute_control
from .state import BridgeState

router = APIRouter(prefix="/api/v1")

def _connector(request: Request) -> HeosConnector:
    return request.app.state.heos_connector

def _bridge_state(request: Request) -> BridgeState:
    return request.app.state.bridge_state

@router.get("/version")
async def version():
    """Returns the heos-bridge package version"""
    return { "version": pkg_version }

@router.get("/config")
async def config_data(request: Request) -> Dict[str, Any]:
    """Returns the current HEOS client configuration.

    The password is not included.
    """
    connector = _connector(request)
    config_data = connector.config.to_jsonable()
    # don't reveal the configured password
    config_data.pop("password", None)
    return dict(config=config_data)

@router.get("/control", response_class=PlainTextResponse)
async def control(request: Request) -> PlainTextResponse:
    """Executes a player command. Responds with SUCCESS or FAILED.

    Query parameters: player, command (play, stop, station, playlist, input,
    volume, alarm, trigger), station, playlist, volume, inputplayer, inputname,
    vd (Fibaro virtual device id), labeltext.
    """
    notifier: Optional[FibaroNotifier] = request.app.state.fibaro_notifier
    params = dict(request.query_params)
    try:
        status_code, success = await execute_control(
            _connector(request), notifier, _bridge_state(request), params)
    except Exception as exc:
        logger.exception(f"Error while processing request {params}: {exc}")
        return PlainTextResponse("FAILED", status_code=500)
    return PlainTextResponse("SUCCESS" if success else "FAILED", status_code=status_code)

@router.get("/info")
async def info(request: Request) -> Dict[str, Any]:
    """Returns the connection status and the players, favorite stations and playlists."""
    connector = _connector(request)
    state = _bridge_state(request)
    notifier: Optional[FibaroNotifier] = request.app.state.fibaro_notifier

    connected = await connector.is_connected()
    if connected:
        state.mark_contact()
    signed_in = await connector.is_user_signed_in()

    players: List[JsonableDict] = []
    for pid, name in connector.entries_sorted_by_values(await connector.update_players()):
        players.append(dict(pid=pid, name=name, now_playing=await connector.get_now_playing(pid)))
    stations = [
        dict(mid=mid, name=name)
        for mid, name in connector.entries_sorted_by_values(await connector.update_stations())
      ]
    playlists = [
        dict(cid=cid, name=name)
        for cid, name in connector.entries_sorted_by_values(await connector.update_playlists())
      ]
    return dict(
        version=pkg_version,
        heos_host=connector.config.host,
        connected=connected,
        username=connector.config.username,
        signed_in=signed_in,
        last_contact=state.last_contact_str(),
        fibaro_host=None if notifier is None else notifier.host,
        players=players,
        stations=stations,
        playlists=playlists,
      )

@router.get("/ping")
async def ping(
        request: Request
      ) -> Dict[str, Any]:
    """Returns the health status of the API server and the HEOS controller."""
    connector = _connector(request)
    launch_time: float = request.app.state.launch_time
    up_time = time.monotonic() - launch_time
    result: Dict[str, Any] = dict(server_status="OK", up_time=up_time)
    try:
        connected = await connector.is_connected()
    except Exception as exc:
        logger.exception(f"Error while pinging HEOS controller: {exc}")
        result["heos_status"] = "ERROR"
        result["heos_error"] = full_class_name(exc)
    else:
        if connected:
            _bridge_state(request).mark_contact()
        result["heos_status"] = "OK" if connected else "DISCONNECTED"
    return result
