"""
String helpers for user input and output filenames.
"""

from typing import List

# Characters that are not allowed in Windows file names
FORBIDDEN_FILENAME_CHARACTERS = '"*<>:/\\|?'


def trunc(text: str, length: int) -> str:
    """Truncate text to at most `length` characters."""
    if not text:
        return text
    return text[:length]


def remove_filename_characters(text: str) -> str:
    """Remove characters that should not appear in a file name."""
    return "".join(ch for ch in text if ch not in FORBIDDEN_FILENAME_CHARACTERS)


def comma_separated_arg(text: str) -> List[str]:
    """
    Split a comma-separated argument, trimming whitespace around each element.

    Empty elements are dropped.

    Example:
        'RLC, Nathan' -> ['RLC', 'Nathan']
    """
    return [part.strip() for part in text.split(",") if part.strip()]
