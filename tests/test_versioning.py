"""
Tests for agegate.versioning module.

Tests version parsing and comparison including:
- 3- and 4-component numeric versions
- Zero-padded equality and hashing
- Strict release tag parsing
- is_newer semantics
"""

from __future__ import annotations

import pytest

from agegate.versioning import (
    Version,
    compare_versions,
    is_newer,
    parse_release_tag,
    parse_version,
    try_parse_version,
)


class TestParseVersion:
    """Tests for parse_version."""

    def test_three_and_four_components(self):
        """Test that 3- and 4-part versions parse."""
        assert parse_version("1.2.3").parts == (1, 2, 3)
        assert parse_version("10.0.19041.1").parts == (10, 0, 19041, 1)

    def test_v_prefix_and_whitespace(self):
        """Test that a leading 'v' and whitespace are ignored."""
        assert parse_version(" v1.72.1 ") == parse_version("1.72.1")

    @pytest.mark.parametrize(
        "text", ["", "1.2", "1.2.3.4.5", "1.2a.3", "1..3", "1.2.3-rc1", "latest"]
    )
    def test_invalid_versions_raise(self, text):
        """Test that malformed versions raise ValueError."""
        with pytest.raises(ValueError):
            parse_version(text)

    def test_try_parse_returns_none(self):
        """Test try_parse_version on invalid and missing input."""
        assert try_parse_version("garbage") is None
        assert try_parse_version(None) is None
        assert try_parse_version("2.0.0") == Version((2, 0, 0))

    def test_str_round_trips(self):
        """Test that str() gives the dotted form back."""
        assert str(parse_version("1.72.1")) == "1.72.1"


class TestComparison:
    """Tests for ordering and equality."""

    def test_component_ordering(self):
        """Test numeric (not lexicographic) component ordering."""
        assert parse_version("1.10.0") > parse_version("1.9.0")
        assert parse_version("2.0.0") > parse_version("1.99.99")
        assert parse_version("1.0.10") > parse_version("1.0.9")

    def test_zero_padding_equality(self):
        """Test that 1.2.0 equals 1.2.0.0 and hashes the same."""
        a = parse_version("1.2.0")
        b = parse_version("1.2.0.0")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_four_part_newer_than_three_part(self):
        """Test that 1.2.3.1 is newer than 1.2.3."""
        assert parse_version("1.2.3.1") > parse_version("1.2.3")

    def test_compare_versions(self):
        """Test the -1/0/1 comparison helper."""
        assert compare_versions(parse_version("1.2.0"), parse_version("1.1.9")) == 1
        assert compare_versions(parse_version("1.1.9"), parse_version("1.2.0")) == -1
        assert compare_versions(parse_version("1.2.0"), parse_version("1.2.0")) == 0


class TestIsNewer:
    """Tests for is_newer."""

    def test_newer_remote(self):
        assert is_newer(parse_version("1.3.0"), parse_version("1.2.0"))

    def test_equal_is_not_newer(self):
        assert not is_newer(parse_version("1.2.0"), parse_version("1.2.0"))

    def test_older_remote(self):
        assert not is_newer(parse_version("1.1.0"), parse_version("1.2.0"))

    def test_missing_current_is_never_upgraded(self):
        """Test that a missing current version never counts as outdated."""
        assert not is_newer(parse_version("9.9.9"), None)


class TestParseReleaseTag:
    """Tests for strict release tag parsing."""

    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("v1.2.3", (1, 2, 3)),
            ("1.2.3", (1, 2, 3)),
            ("release-0.4.10", (0, 4, 10)),
            ("agegate-v2.0.0", (2, 0, 0)),
        ],
    )
    def test_prefixes_are_stripped(self, tag, expected):
        """Test that any leading non-numeric prefix is stripped."""
        assert parse_release_tag(tag).parts == expected

    @pytest.mark.parametrize("tag", ["v1.2", "v1.2.3.4", "v1.2.3-beta", "nightly", ""])
    def test_non_xyz_tags_raise(self, tag):
        """Test that tags that are not X.Y.Z raise ValueError."""
        with pytest.raises(ValueError):
            parse_release_tag(tag)
