"""
Tests for parsing, string and name-keyed mapping helpers.
"""

from datetime import timedelta

import pytest

from beatmap_exporter.utils import (
    comma_separated_arg,
    parse_command,
    parse_duration,
    remove_filename_characters,
    split_words,
    trunc,
)
from beatmap_exporter.utils.names import NameKeyedDict


class TestParseDuration:
    """Test interval parsing for time-based filters."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("4", timedelta(days=4)),
            ("8:00", timedelta(hours=8)),
            ("1:30:15", timedelta(hours=1, minutes=30, seconds=15)),
            ("2.06:00", timedelta(days=2, hours=6)),
            (" 0:45 ", timedelta(minutes=45)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "24:00", "1:60", "-3", "1.5"])
    def test_invalid(self, text):
        assert parse_duration(text) is None


class TestParseCommand:
    """Test splitting filter commands."""

    def test_negated(self):
        assert parse_command("!author RLC, Nathan") == (True, "author", "RLC, Nathan")

    def test_lowercases_command_only(self):
        assert parse_command("  Artist  Camellia ") == (False, "artist", "Camellia")

    def test_negation_with_space(self):
        assert parse_command("! stars 5") == (True, "stars", "5")

    def test_no_argument(self):
        assert parse_command("reset") == (False, "reset", "")

    def test_empty(self):
        assert parse_command("!") == (True, "", "")

    def test_split_words(self):
        assert split_words("  remove   2 ") == ["remove", "2"]


class TestStrings:
    """Test string helpers."""

    def test_trunc(self):
        assert trunc("abcdef", 3) == "abc"
        assert trunc("ab", 3) == "ab"
        assert trunc("", 3) == ""

    def test_remove_filename_characters(self):
        assert remove_filename_characters('a<b>c:d"e/f\\g|h?i*j') == "abcdefghij"

    def test_comma_separated_arg(self):
        assert comma_separated_arg(" RLC ,Nathan,, ") == ["RLC", "Nathan"]


class TestNameKeyedDict:
    """Test case-aware name lookups."""

    def test_case_insensitive_keeps_first_spelling(self):
        names = NameKeyedDict(case_insensitive=True)
        names["Favorites"] = 1
        names["FAVORITES"] = 2
        assert list(names.items()) == [("Favorites", 2)]
        assert names.display_name("favorites") == "Favorites"
        assert "fAvOrItEs" in names

    def test_case_sensitive(self):
        names = NameKeyedDict()
        names["Favorites"] = 1
        names["favorites"] = 2
        assert len(names) == 2
        assert names.get("FAVORITES") is None

    def test_delete(self):
        names = NameKeyedDict(case_insensitive=True)
        names["Stream"] = 1
        del names["stream"]
        assert len(names) == 0
        with pytest.raises(KeyError):
            names.display_name("Stream")

    def test_non_string_membership(self):
        assert 1 not in NameKeyedDict()
