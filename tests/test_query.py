"""Tests for filter input normalization."""

from datetime import datetime, timezone

import pytest

from pai.errors import InvalidArgumentError, UnknownSourceKindError
from pai.models import SourceKind
from pai.query import (
    build_filter, ensure_positive_limit, normalize_optional_string, normalize_since,
)


NOW = datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


class TestNormalizeSince:

    @pytest.mark.parametrize("value, expected", [
        ("30m", "2024-01-10T11:30:00+00:00"),
        ("24h", "2024-01-09T12:00:00+00:00"),
        ("7d", "2024-01-03T12:00:00+00:00"),
        ("1w", "2024-01-03T12:00:00+00:00"),
        ("7D", "2024-01-03T12:00:00+00:00"),
    ])
    def test_relative(self, value, expected):
        assert normalize_since(value, now=NOW) == expected

    @pytest.mark.parametrize("value, expected", [
        ("2024-01-01T00:00:00Z", "2024-01-01T00:00:00+00:00"),
        ("2024-01-01T02:00:00+02:00", "2024-01-01T00:00:00+00:00"),
        ("2024-01-01T00:00:00", "2024-01-01T00:00:00+00:00"),
        ("2024-01-01", "2024-01-01T00:00:00+00:00"),
        ("Mon, 01 Jan 2024 12:00:00 +0000", "2024-01-01T12:00:00+00:00"),
    ])
    def test_absolute(self, value, expected):
        assert normalize_since(value) == expected

    def test_blank_is_none(self):
        assert normalize_since(None) is None
        assert normalize_since("   ") is None

    def test_invalid(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            normalize_since("last tuesday")
        assert "Invalid since value 'last tuesday'" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["99999999w", "0001-01-01T00:00:00+01:00"])
    def test_out_of_range(self, value):
        with pytest.raises(InvalidArgumentError) as exc_info:
            normalize_since(value, now=NOW)
        assert "out of range" in str(exc_info.value)

    def test_fractional_seconds_round_up(self):
        assert normalize_since("2024-01-01T12:00:00.5Z") == "2024-01-01T12:00:01+00:00"
        assert normalize_since("2024-01-01T12:00:00Z") == "2024-01-01T12:00:00+00:00"


def test_normalize_optional_string():
    assert normalize_optional_string("  hi ") == "hi"
    assert normalize_optional_string("") is None
    assert normalize_optional_string("  ") is None
    assert normalize_optional_string(None) is None


def test_ensure_positive_limit():
    assert ensure_positive_limit(5) == 5
    assert ensure_positive_limit(None) is None
    with pytest.raises(InvalidArgumentError):
        ensure_positive_limit(0)
    with pytest.raises(InvalidArgumentError):
        ensure_positive_limit(-3)


class TestBuildFilter:

    def test_all_fields(self):
        f = build_filter("Substack", " me.substack.com ", 5, "2024-01-01T00:00:00Z", " rust ")
        assert f.source_kind == SourceKind.SUBSTACK
        assert f.source_id == "me.substack.com"
        assert f.limit == 5
        assert f.since == "2024-01-01T00:00:00+00:00"
        assert f.query == "rust"

    def test_empty(self):
        f = build_filter()
        assert f.source_kind is None
        assert f.source_id is None
        assert f.limit is None
        assert f.since is None
        assert f.query is None

    def test_blank_strings_are_unset(self):
        f = build_filter("", "", None, "", "")
        assert f.source_kind is None
        assert f.source_id is None
        assert f.query is None

    def test_zero_limit(self):
        with pytest.raises(InvalidArgumentError, match="Limit must be greater than zero"):
            build_filter(limit=0)

    def test_unknown_kind(self):
        with pytest.raises(UnknownSourceKindError):
            build_filter("tumblr")
