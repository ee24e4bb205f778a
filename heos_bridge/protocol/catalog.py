# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Parsing of HEOS catalog payloads (players, favorite stations, playlists) and
now-playing media.

Every parser takes a raw response line and returns a fresh mapping from
identifier to display name. A response that is missing, is not JSON, or has a
payload of the wrong shape yields an empty mapping; the problem is logged,
never raised. Individual entries without an identifier or name are skipped.
"""

from __future__ import annotations

import json

from ..internal_types import *
from ..pkg_logging import logger
from .constants import TYPE_STATION, TYPE_PLAYLIST

def _load_payload(response: Optional[str], what: str) -> Optional[Any]:
    if response is None:
        logger.warning(f"Could not get {what}")
        return None
    try:
        root = json.loads(response)
    except ValueError as e:
        logger.error(f"Could not parse result when getting {what}: {e}")
        return None
    if not isinstance(root, dict):
        logger.error(f"Unexpected result when getting {what}: not a JSON object")
        return None
    return root.get("payload")

def _id_to_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        result = str(value)
        return result if result != "" else None
    return None

def parse_catalog(
        response: Optional[str],
        id_field: str,
        entry_type: Optional[str]=None,
        what: str="catalog",
      ) -> Dict[str, str]:
    """Parses a response whose payload is an array of objects into an id->name mapping.

    Args:
        response:    The raw response line, or None if the command failed.
        id_field:    The element field holding the identifier (e.g., "pid", "mid", "cid").
        entry_type:  If not None, only elements whose "type" equals this value are included.
        what:        A description of the catalog, for log messages.
    """
    result: Dict[str, str] = {}
    payload = _load_payload(response, what)
    if payload is None:
        return result
    if not isinstance(payload, list):
        logger.error(f"Unexpected payload when getting {what}: not an array")
        return result
    for element in payload:
        if not isinstance(element, dict):
            logger.debug(f"Skipping malformed {what} entry: {element!r}")
            continue
        if entry_type is not None and element.get("type") != entry_type:
            continue
        entry_id = _id_to_str(element.get(id_field))
        name = element.get("name")
        if entry_id is None or not isinstance(name, str):
            logger.debug(f"Skipping incomplete {what} entry: {element!r}")
            continue
        result[entry_id] = name
    return result

def parse_players(response: Optional[str]) -> Dict[str, str]:
    """Parses a player/get_players response into a pid->name mapping."""
    return parse_catalog(response, "pid", what="players")

def parse_stations(response: Optional[str]) -> Dict[str, str]:
    """Parses a favorites browse response into a mid->name mapping of stations only."""
    return parse_catalog(response, "mid", entry_type=TYPE_STATION, what="stations")

def parse_playlists(response: Optional[str]) -> Dict[str, str]:
    """Parses a playlists browse response into a cid->name mapping of playlists only."""
    return parse_catalog(response, "cid", entry_type=TYPE_PLAYLIST, what="playlists")

def parse_now_playing(response: Optional[str]) -> str:
    """Parses a player/get_now_playing_media response.

    Returns the station name if there is one, otherwise the song title,
    otherwise an empty string.
    """
    payload = _load_payload(response, "now playing")
    if not isinstance(payload, dict):
        return ""
    for field in ("station", "song"):
        value = payload.get(field)
        if isinstance(value, str) and value != "":
            return value
    return ""

def entries_sorted_by_values(mapping: Mapping[str, str]) -> List[CatalogEntry]:
    """Returns the (id, name) pairs of a catalog sorted by name.

    Entries with equal names are all kept, in the mapping's iteration order.
    """
    return sorted(mapping.items(), key=lambda entry: entry[1])
