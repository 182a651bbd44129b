"""Human-readable duration parsing.

Accepts strings such as ``"30s"``, ``"15m"``, ``"1h30m"``, ``"7d"`` or
``"2 days 3 hours"``. A bare number is read as seconds.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Union

_UNITS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

_PART = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-z]+)\s*")


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """Parse a duration into a timedelta.

    Args:
        value: Duration string, number of seconds, or timedelta

    Returns:
        Parsed duration

    Raises:
        ValueError: If the value is empty, negative or uses an unknown unit
    """
    if isinstance(value, timedelta):
        return value

    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration cannot be negative: {value}")
        return timedelta(seconds=value)

    text = str(value).strip().lower()
    if not text:
        raise ValueError("Duration cannot be empty")

    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return timedelta(seconds=float(text))

    seconds = 0.0
    position = 0
    for match in _PART.finditer(text):
        if match.start() != position:
            break
        amount, unit = match.groups()
        if unit not in _UNITS:
            raise ValueError(f"Unknown duration unit '{unit}' in '{value}'")
        seconds += float(amount) * _UNITS[unit]
        position = match.end()

    if position != len(text):
        raise ValueError(f"Invalid duration: '{value}'")

    return timedelta(seconds=seconds)
