"""Tests for compact time formatting and parsing."""

from __future__ import annotations

import pytest

from earmark.timefmt import format_time, format_with_offset, parse_time


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0s"),
        (59, "59s"),
        (61, "1m1s"),
        (3661, "1h1m1s"),
        (8217, "2h16m57s"),
        (3600, "1h0m0s"),
        (3725, "1h2m5s"),
        (90061, "25h1m1s"),
    ],
)
def test_format_time(seconds: int, expected: str) -> None:
    assert format_time(seconds) == expected


def test_format_time_rejects_negative() -> None:
    with pytest.raises(ValueError):
        format_time(-1)


def test_format_with_offset_without_start() -> None:
    assert format_with_offset(61) == "1m1s"


def test_format_with_offset_shows_relative_and_absolute() -> None:
    assert format_with_offset(3605, 3600) == "5s(1h0m5s)"


def test_format_with_offset_zero_start_keeps_both_forms() -> None:
    assert format_with_offset(8217, 0) == "2h16m57s(2h16m57s)"


def test_format_with_offset_rejects_position_before_start() -> None:
    with pytest.raises(ValueError):
        format_with_offset(10, 20)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1h2m3s", 3723),
        ("2m", 120),
        ("45s", 45),
        ("1h", 3600),
        ("1h30s", 3630),
        ("90m", 5400),
    ],
)
def test_parse_time_valid(text: str, expected: int) -> None:
    assert parse_time(text) == expected


@pytest.mark.parametrize(
    "text", ["", "abc", "1x", "3s2m", "1h 2m", "1m1m", "-5s", "1.5m"]
)
def test_parse_time_invalid(text: str) -> None:
    assert parse_time(text) is None


def test_parse_time_zero_is_rejected() -> None:
    assert parse_time("0s") is None
    assert parse_time("0h0m") is None


def test_parse_inverts_format() -> None:
    for seconds in (1, 59, 61, 3599, 3600, 3725):
        assert parse_time(format_time(seconds)) == seconds
