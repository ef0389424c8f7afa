"""
Filter command parsing.

Turns text commands such as '!stars 6.3' or 'author RLC, Nathan' into
BeatmapFilter objects using the template registry. Invalid input is reported
as a message instead of raised, so callers can display it and carry on.
"""

from typing import Optional, Tuple

from loguru import logger

from beatmap_exporter.exceptions import FilterValidationError
from beatmap_exporter.utils.parsers import parse_command

from .models import BeatmapFilter
from .templates import get_template, list_templates


def build_filter(short_name: str, user_input: str, negated: bool = False) -> BeatmapFilter:
    """Build a filter from a template short name and its argument text.

    Raises:
        FilterValidationError: If the template is unknown or the input is invalid
    """
    template = get_template(short_name)
    if template is None:
        known = ", ".join(t.short_name for t in list_templates())
        raise FilterValidationError(f"Invalid filter '{short_name}'. Known filters: {known}")
    if not user_input.strip():
        raise FilterValidationError("Please include both the filter name and filter conditions.")
    return template.construct(user_input, negated)


def parse_filter_command(text: str) -> Tuple[Optional[BeatmapFilter], Optional[str]]:
    """
    Parse a filter command line.

    Args:
        text: Command such as 'stars 6.3', '!length 90' or 'collection #1'

    Returns:
        (filter, None) on success, (None, reason) if the command was rejected

    Example:
        parse_filter_command('!stars 6.3') -> (BeatmapFilter(negated=True, ...), None)
        parse_filter_command('stars hard') -> (None, 'Invalid star rating: hard')
    """
    negated, command, remainder = parse_command(text)
    try:
        return build_filter(command, remainder, negated), None
    except FilterValidationError as e:
        logger.debug(f"Rejected filter command '{text}': {e}")
        return None, str(e)
