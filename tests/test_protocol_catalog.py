"""Tests for catalog parsing."""

import json

from heos_bridge.protocol import (
    entries_sorted_by_values,
    parse_now_playing,
    parse_players,
    parse_playlists,
    parse_stations,
)


def _response(command: str, payload: object) -> str:
    return json.dumps({"heos": {"command": command, "result": "success", "message": ""}, "payload": payload})


class TestParseCatalogs:
    """Tests for players/stations/playlists parsing."""

    def test_players(self) -> None:
        """Integer pids become string keys."""
        response = _response("player/get_players", [
            {"name": "Kitchen", "pid": 1002, "model": "HEOS 1"},
            {"name": "Living Room", "pid": -1001},
        ])
        assert parse_players(response) == {"1002": "Kitchen", "-1001": "Living Room"}

    def test_stations_only_include_stations(self) -> None:
        """Favorites of other types are skipped."""
        response = _response("browse/browse", [
            {"container": "no", "mid": "s1", "type": "station", "name": "Jazz"},
            {"container": "yes", "cid": "c1", "type": "container", "name": "Folder"},
        ])
        assert parse_stations(response) == {"s1": "Jazz"}

    def test_playlists_only_include_playlists(self) -> None:
        """Playlist entries are keyed by cid."""
        response = _response("browse/browse", [
            {"container": "yes", "cid": "101", "type": "playlist", "name": "Morning"},
            {"container": "no", "mid": "s1", "type": "station", "name": "Jazz"},
        ])
        assert parse_playlists(response) == {"101": "Morning"}

    def test_incomplete_entries_are_skipped(self) -> None:
        """Entries without an id or a name are dropped, the rest kept."""
        response = _response("player/get_players", [
            {"name": "No Pid"},
            {"pid": 5},
            "garbage",
            {"name": "Good", "pid": 6},
        ])
        assert parse_players(response) == {"6": "Good"}

    def test_malformed_payloads_yield_empty(self) -> None:
        """Non-JSON, missing payload or a non-array payload give an empty mapping."""
        assert parse_players(None) == {}
        assert parse_players("not json") == {}
        assert parse_players('{"heos": {"command": "player/get_players"}}') == {}
        assert parse_players(_response("player/get_players", {"pid": 1})) == {}

    def test_fresh_mapping_each_time(self) -> None:
        """Every parse returns a new dictionary."""
        response = _response("player/get_players", [{"name": "A", "pid": 1}])
        first = parse_players(response)
        second = parse_players(response)
        assert first == second
        assert first is not second


class TestParseNowPlaying:
    """Tests for parse_now_playing()."""

    def test_station_preferred(self) -> None:
        """The station name wins over the song."""
        response = _response("player/get_now_playing_media", {"song": "Tune", "station": "Jazz24"})
        assert parse_now_playing(response) == "Jazz24"

    def test_song_fallback(self) -> None:
        """The song is used when there is no station."""
        response = _response("player/get_now_playing_media", {"song": "Tune", "station": ""})
        assert parse_now_playing(response) == "Tune"

    def test_nothing_playing(self) -> None:
        """An empty or unparseable payload yields an empty string."""
        assert parse_now_playing(_response("player/get_now_playing_media", {})) == ""
        assert parse_now_playing("{") == ""
        assert parse_now_playing(None) == ""


class TestEntriesSortedByValues:
    """Tests for entries_sorted_by_values()."""

    def test_sorted_by_name_with_ties_kept(self) -> None:
        """Equal names are all kept, in insertion order."""
        mapping = {"2": "Bravo", "1": "Alpha", "3": "Alpha"}
        assert entries_sorted_by_values(mapping) == [("1", "Alpha"), ("3", "Alpha"), ("2", "Bravo")]

    def test_empty(self) -> None:
        """An empty catalog sorts to an empty list."""
        assert entries_sorted_by_values({}) == []
