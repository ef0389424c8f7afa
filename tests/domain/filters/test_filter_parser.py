"""
Tests for filter command parsing.
"""

import pytest

from beatmap_exporter.domain.filters import build_filter, parse_filter_command
from beatmap_exporter.exceptions import FilterValidationError


class TestParseFilterCommand:
    """Test parse_filter_command results and rejection reasons."""

    def test_simple_command(self):
        beatmap_filter, reason = parse_filter_command("stars 6.3")
        assert reason is None
        assert beatmap_filter.template.short_name == "stars"
        assert beatmap_filter.input == "6.3"
        assert not beatmap_filter.negated

    def test_negated_command(self):
        beatmap_filter, reason = parse_filter_command("!length 90")
        assert reason is None
        assert beatmap_filter.negated
        assert beatmap_filter.description == "Song length (seconds) shorter than: 90"

    def test_command_word_case_insensitive(self):
        beatmap_filter, _ = parse_filter_command("AUTHOR RLC, Nathan")
        assert beatmap_filter.template.short_name == "author"
        assert beatmap_filter.input == "RLC, Nathan"

    def test_missing_argument(self):
        beatmap_filter, reason = parse_filter_command("stars")
        assert beatmap_filter is None
        assert reason == "Please include both the filter name and filter conditions."

    def test_unknown_filter(self):
        beatmap_filter, reason = parse_filter_command("difficulty 5")
        assert beatmap_filter is None
        assert reason.startswith("Invalid filter 'difficulty'")

    def test_invalid_argument(self):
        beatmap_filter, reason = parse_filter_command("stars hard")
        assert beatmap_filter is None
        assert reason == "Invalid star rating: hard"

    def test_blank(self):
        beatmap_filter, reason = parse_filter_command("   ")
        assert beatmap_filter is None
        assert reason


class TestBuildFilter:
    """Test building filters from saved (type, input, negated) entries."""

    def test_builds(self):
        beatmap_filter = build_filter("collection", "Favorites", True)
        assert beatmap_filter.is_collection_filter
        assert beatmap_filter.negated

    def test_raises_for_unknown_type(self):
        with pytest.raises(FilterValidationError):
            build_filter("nope", "1")

    def test_raises_for_empty_input(self):
        with pytest.raises(FilterValidationError):
            build_filter("stars", "  ")
