"""Unit tests for duration parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from nuker.utils.duration import parse_duration


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("30s", timedelta(seconds=30)),
            ("15m", timedelta(minutes=15)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("7d", timedelta(days=7)),
            ("2w", timedelta(weeks=2)),
            ("2 days 3 hours", timedelta(days=2, hours=3)),
            ("1.5h", timedelta(minutes=90)),
            ("3600", timedelta(hours=1)),
            (" 12H ", timedelta(hours=12)),
        ],
    )
    def test_valid(self, text: str, expected: timedelta) -> None:
        """Test parsing valid duration strings."""
        assert parse_duration(text) == expected

    def test_numbers_are_seconds(self) -> None:
        """Test that numeric values are read as seconds."""
        assert parse_duration(90) == timedelta(seconds=90)
        assert parse_duration(timedelta(minutes=1)) == timedelta(minutes=1)

    @pytest.mark.parametrize("value", ["", "abc", "5 parsecs", "1h junk", -5, True])
    def test_invalid(self, value) -> None:
        """Test that malformed durations are rejected."""
        with pytest.raises(ValueError):
            parse_duration(value)
