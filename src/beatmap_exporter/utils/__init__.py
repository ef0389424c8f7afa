"""
Cross-cutting utilities for Beatmap Exporter.

Contains:
- parsers: Command and duration parsing
- strings: Filename and comma-list helpers
"""

from .parsers import parse_command, parse_duration, split_words
from .strings import comma_separated_arg, remove_filename_characters, trunc

__all__ = [
    # From parsers
    'parse_command',
    'parse_duration',
    'split_words',
    # From strings
    'comma_separated_arg',
    'remove_filename_characters',
    'trunc',
]
