# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Protocol-specific constants
"""

from __future__ import annotations

HEOS_PREFIX = "heos://"
"""The prefix of every command line sent to a HEOS controller."""

END_OF_LINE = "\r\n"
"""The terminator written after every command line."""

FAVORITES_SID = "1028"
"""The browse source id of the signed-in user's favorites."""

PLAYLISTS_SID = "1025"
"""The browse source id of the signed-in user's playlists."""

TYPE_STATION = "station"
"""The browse entry type of a favorite station."""

TYPE_PLAYLIST = "playlist"
"""The browse entry type of a playlist container."""

ADD_CRITERIA_REPLACE_AND_PLAY = "4"
"""add_to_queue criteria: replace the queue and start playing."""

RESULT_SUCCESS = '"result": "success"'
"""Token found in every successful response."""

RESULT_STATE_PLAY = "state=play"
"""Token found in a play-state response when the player is playing."""

CMD_UNDER_PROCESS = '"message": "command under process'
"""Token found in intermediate responses while the controller executes a command."""

# Command names used by this package
CMD_HEART_BEAT = "system/heart_beat"
CMD_CHECK_ACCOUNT = "system/check_account"
CMD_SIGN_IN = "system/sign_in"
CMD_SIGN_OUT = "system/sign_out"
CMD_GET_PLAYERS = "player/get_players"
CMD_GET_PLAY_STATE = "player/get_play_state"
CMD_SET_PLAY_STATE = "player/set_play_state"
CMD_SET_VOLUME = "player/set_volume"
CMD_GET_NOW_PLAYING_MEDIA = "player/get_now_playing_media"
CMD_GET_GROUPS = "group/get_groups"
CMD_SET_GROUP = "group/set_group"
CMD_BROWSE = "browse/browse"
CMD_PLAY_STREAM = "browse/play_stream"
CMD_ADD_TO_QUEUE = "browse/add_to_queue"
CMD_PLAY_INPUT = "browse/play_input"

def signed_in_token(username: str) -> str:
    """Returns the token found in a check_account response when `username` is signed in."""
    return f"signed_in&un={username}"
