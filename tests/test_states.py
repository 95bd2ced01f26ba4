"""
Tests for raw state and numeric value parsing.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

import pytest

from fuelmon.services.states import ON_TOKENS, is_on, parse_float


class TestIsOn:
    """Tests for the ON token check."""

    @pytest.mark.parametrize("value", ["1", "1.0", "on", "true", "ON", " True ", "On\n"])
    def test_on_tokens(self, value: str) -> None:
        assert is_on(value) is True

    @pytest.mark.parametrize("value", ["0", "0.0", "off", "false", "", "yes", "2", "garbage"])
    def test_everything_else_is_off(self, value: str) -> None:
        assert is_on(value) is False

    def test_none_is_off(self) -> None:
        assert is_on(None) is False

    def test_token_set_is_lowercase(self) -> None:
        """The SQL filter lowercases values, so every token must be lowercase."""
        assert all(token == token.lower() for token in ON_TOKENS)


class TestParseFloat:
    """Tests for lenient numeric parsing."""

    def test_parses_number(self) -> None:
        assert parse_float("48.5") == 48.5

    def test_strips_whitespace(self) -> None:
        assert parse_float(" 12 ") == 12.0

    @pytest.mark.parametrize("value", [None, "", "abc", "nan", "inf", "-inf", "1,5"])
    def test_malformed_is_none(self, value: str | None) -> None:
        assert parse_float(value) is None
