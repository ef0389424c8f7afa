"""
Argument and command parsing utilities.

Cross-cutting utilities for parsing user input and command arguments.
"""

import re
from datetime import timedelta
from typing import List, Optional, Tuple

# d.hh:mm[:ss[.fff]] with optional day prefix, or a bare number of days
_CLOCK_PATTERN = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d+):(?P<minutes>\d+)(?::(?P<seconds>\d+(?:\.\d+)?))?$"
)
_DAYS_PATTERN = re.compile(r"^\d+$")


def parse_duration(text: str) -> Optional[timedelta]:
    """
    Parse a time interval the way the filter commands expect it.

    A bare number is a count of days, otherwise the interval is written as a
    clock value with an optional day prefix.

    Args:
        text: User input

    Returns:
        Parsed interval, or None if the text is not a valid interval

    Example:
        '4'        -> 4 days
        '8:00'     -> 8 hours
        '1:30:15'  -> 1 hour, 30 minutes, 15 seconds
        '2.06:00'  -> 2 days, 6 hours
    """
    text = text.strip()
    if _DAYS_PATTERN.match(text):
        return timedelta(days=int(text))

    match = _CLOCK_PATTERN.match(text)
    if not match:
        return None

    days = int(match.group("days") or 0)
    hours = int(match.group("hours"))
    minutes = int(match.group("minutes"))
    seconds = float(match.group("seconds") or 0)
    if hours > 23 or minutes > 59 or seconds >= 60:
        return None
    return timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)


def parse_command(text: str) -> Tuple[bool, str, str]:
    """
    Split a filter command into negation flag, command word and argument text.

    Args:
        text: Raw command line, e.g. '!stars 6.3'

    Returns:
        Tuple of (negated, command, remainder). The command is lowercased,
        the remainder keeps its original case with surrounding whitespace removed.

    Example:
        '!author RLC, Nathan' -> (True, 'author', 'RLC, Nathan')
    """
    text = text.strip()
    negated = text.startswith("!")
    if negated:
        text = text[1:].lstrip()

    parts = text.split(None, 1)
    if not parts:
        return negated, "", ""
    command = parts[0].lower()
    remainder = parts[1].strip() if len(parts) > 1 else ""
    return negated, command, remainder


def split_words(text: str) -> List[str]:
    """Split a management command ('remove 2') into words."""
    return text.strip().split()
