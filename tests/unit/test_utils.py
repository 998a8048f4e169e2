"""Unit tests for utility functions."""

import pytest

from beenaround.utils import (
    continent_of,
    like_pattern,
    location_tokens,
    normalize_phone,
    normalize_value,
    parse_bool,
    round_half_up,
    total_pages,
)


def test_normalize_value():
    assert normalize_value("  New York ") == "new york"
    assert normalize_value(None) == ""


def test_normalize_phone():
    assert normalize_phone("+1 (555) 123-4567") == "15551234567"
    assert normalize_phone("") == ""


def test_location_tokens():
    assert location_tokens("Paris, France") == ["paris", "france"]
    assert location_tokens(" , ,") == []
    assert location_tokens(None) == []


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_off") == "%50\\%\\_off%"


@pytest.mark.parametrize("country,continent", [
    ("France", "Europe"),
    ("  usa ", "North America"),
    ("UAE", "Asia"),
    ("Brazil", "South America"),
    ("Kenya", "Africa"),
    ("New Zealand", "Oceania"),
    ("Atlantis", None),
    (None, None),
])
def test_continent_of(country, continent):
    assert continent_of(country) == continent


def test_round_half_up():
    assert round_half_up(49.5) == 50
    assert round_half_up(33.333) == 33
    assert round_half_up(66.6667) == 67


def test_total_pages():
    assert total_pages(0, 10) == 0
    assert total_pages(21, 10) == 3
    assert total_pages(5, 0) == 0


@pytest.mark.parametrize("value,expected", [
    (True, True),
    ("true", True),
    (" FALSE ", False),
    ("yes", None),
    (1, None),
])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected
