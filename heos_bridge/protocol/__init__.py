# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Low-level protocol definitions for HEOS controllers.

This module defines the line-oriented command protocol used by HEOS
controllers for TCP/IP control ("HEOS CLI"). It does not contain protocol
implementations; see heos_bridge.client for the transport.
"""

from .constants import (
    HEOS_PREFIX,
    END_OF_LINE,
    FAVORITES_SID,
    PLAYLISTS_SID,
    TYPE_STATION,
    TYPE_PLAYLIST,
    RESULT_SUCCESS,
    RESULT_STATE_PLAY,
    CMD_UNDER_PROCESS,
    signed_in_token,
  )

from .command import HeosCommand, escape_argument

from .response import (
    ResponseKind,
    classify_response,
    validate_result,
    contains_player_id,
    is_response_to,
    is_under_process,
  )

from .catalog import (
    parse_catalog,
    parse_players,
    parse_stations,
    parse_playlists,
    parse_now_playing,
    entries_sorted_by_values,
  )
