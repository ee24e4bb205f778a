# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

from urllib.parse import unquote

from ..internal_types import *
from ..exceptions import HeosInvalidCommandError
from .constants import HEOS_PREFIX, END_OF_LINE

_ESCAPES = (("%", "%25"), ("&", "%26"), ("=", "%3D"))

def escape_argument(value: str) -> str:
    """Escapes the characters that HEOS treats as argument delimiters."""
    for char, escaped in _ESCAPES:
        value = value.replace(char, escaped)
    return value

class HeosCommand:
    """A command to a HEOS controller.

    A command is a name such as "player/get_players" and an argument string
    such as "?pid=12&state=play" (possibly empty). The wire form is the
    protocol prefix followed by the name and the argument string, exactly:

        heos://player/set_play_state?pid=12&state=play

    Commands are immutable; a fresh one is built for every exchange.
    """
    _name: str
    _arguments: str

    def __init__(self, name: str, arguments: Optional[str]=""):
        if name is None or name == "":
            raise HeosInvalidCommandError("HEOS command name must not be empty")
        if arguments is None:
            raise HeosInvalidCommandError(f"HEOS command {name} requires an argument string (may be empty)")
        if any(char in name or char in arguments for char in "\r\n"):
            raise HeosInvalidCommandError(f"HEOS command {name!r} must not contain line terminators")
        self._name = name
        self._arguments = arguments

    @classmethod
    def create(cls, name: str, **params: Union[str, int]) -> HeosCommand:
        """Creates a command from a name and keyword arguments, in the order given.

        Argument values are converted to strings and escaped.

        Example:
            HeosCommand.create("player/set_volume", pid=12, level=30)
              -> heos://player/set_volume?pid=12&level=30
        """
        if len(params) == 0:
            return cls(name, "")
        arguments = "?" + "&".join(f"{key}={escape_argument(str(value))}" for key, value in params.items())
        return cls(name, arguments)

    @classmethod
    def from_wire(cls, line: str) -> HeosCommand:
        """Parses a command line as received by a controller (prefix optional)."""
        line = line.strip()
        if line.startswith(HEOS_PREFIX):
            line = line[len(HEOS_PREFIX):]
        name, sep, query = line.partition("?")
        return cls(name, sep + query)

    @property
    def name(self) -> str:
        """Returns the command name; e.g., "player/get_players"."""
        return self._name

    @property
    def arguments(self) -> str:
        """Returns the raw argument string, including the leading '?' if not empty."""
        return self._arguments

    @property
    def params(self) -> Dict[str, str]:
        """Returns the decoded arguments as a dictionary."""
        query = self._arguments[1:] if self._arguments.startswith("?") else self._arguments
        result: Dict[str, str] = {}
        for part in query.split("&"):
            if part == "":
                continue
            key, _, value = part.partition("=")
            result[unquote(key)] = unquote(value)
        return result

    @property
    def wire_form(self) -> str:
        """Returns the command line as sent to the controller, without line terminator."""
        return HEOS_PREFIX + self._name + self._arguments

    @property
    def raw_data(self) -> bytes:
        """Returns the bytes written to the controller, including the line terminator."""
        return (self.wire_form + END_OF_LINE).encode("utf-8")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeosCommand):
            return NotImplemented
        return self._name == other._name and self._arguments == other._arguments

    def __hash__(self) -> int:
        return hash((self._name, self._arguments))

    def __str__(self) -> str:
        return f"HeosCommand({self.wire_form})"

    def __repr__(self) -> str:
        return str(self)
