# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Matching and validation of HEOS response lines.

A HEOS response line is a JSON object such as

    {"heos": {"command": "player/get_play_state", "result": "success", "message": "pid=12&state=play"}}

These helpers deliberately do not parse the JSON. The controller's key order
and whitespace are not guaranteed, and success/failure is decided by looking
for tokens in the raw line. Only the catalog queries parse the payload (see
catalog.py).
"""

from __future__ import annotations

import re
from enum import Enum

from ..internal_types import *
from .constants import CMD_UNDER_PROCESS

# Same token as CMD_UNDER_PROCESS, with any whitespace around the colon
_UNDER_PROCESS_RE = re.compile(r"\s*:\s*".join(re.escape(part) for part in CMD_UNDER_PROCESS.split(": ", 1)))

class ResponseKind(Enum):
    """Classification of a line read while waiting for a command's response."""
    NOT_AVAILABLE = 0
    """No line (or an empty line) was available."""
    MISMATCH = 1
    """The line answers some other command; the exchange is out of sync."""
    PENDING = 2
    """The controller accepted the command but is still executing it."""
    FINAL = 3
    """The final response to the command."""

def command_pattern(command_name: str) -> re.Pattern[str]:
    """Returns a pattern that finds the '"command": "<command_name>"' token in a response line."""
    return re.compile(r'"command"\s*:\s*"' + re.escape(command_name) + r'"')

def is_response_to(line: str, command_name: str) -> bool:
    """Returns True if the response line carries the command name token for command_name."""
    return command_pattern(command_name).search(line) is not None

def is_under_process(line: str) -> bool:
    """Returns True if the response line is a "command under process" acknowledgement."""
    return _UNDER_PROCESS_RE.search(line) is not None

def classify_response(line: Optional[str], command_name: str) -> ResponseKind:
    """Decides what a line read from the controller means for the pending command."""
    if line is None or line.strip() == "":
        return ResponseKind.NOT_AVAILABLE
    if not is_response_to(line, command_name):
        return ResponseKind.MISMATCH
    if is_under_process(line):
        return ResponseKind.PENDING
    return ResponseKind.FINAL

def validate_result(response: Optional[str], expected_result: Optional[str]) -> bool:
    """Returns True if the response contains the expected token (substring match)."""
    return response is not None and expected_result is not None and expected_result in response

def contains_player_id(response: Optional[str], player_id: str) -> bool:
    """Returns True if the response mentions '"pid": <player_id>'.

    The id must not be followed by another digit, so player 12 is not
    reported when only player 123 is present.
    """
    if response is None or player_id == "":
        return False
    pattern = r'"pid"\s*:\s*"?' + re.escape(player_id) + r'(?![0-9])'
    return re.search(pattern, response) is not None
