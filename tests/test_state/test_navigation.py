"""Tests for location parsing and the in-memory navigator."""

from src.state.navigation import Navigator, build_location, parse_location


class TestLocations:
    def test_parse_with_query(self) -> None:
        assert parse_location("/inbox?folder=sent&label=x") == (
            "/inbox",
            {"folder": "sent", "label": "x"},
        )

    def test_parse_bare_path(self) -> None:
        assert parse_location("/digest") == ("/digest", {})

    def test_build_skips_none(self) -> None:
        assert build_location("/inbox", folder=None) == "/inbox"
        assert build_location("/inbox", label="needs-reply") == "/inbox?label=needs-reply"


class TestNavigator:
    def test_push_and_back(self) -> None:
        nav = Navigator()
        assert nav.current == "/inbox"
        nav.push("/settings")
        assert nav.current == "/settings"
        assert nav.back() == "/inbox"
        assert nav.back() == "/inbox"
