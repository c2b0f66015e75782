from __future__ import annotations

import pytest

from csv_insight.models.cells import (
    is_blank,
    is_blank_row,
    is_missing,
    is_numeric,
    parse_number,
    stringify,
)


@pytest.mark.parametrize(
    "value,expected",
    [(1, True), (2.5, True), (-0.0, True), (float("nan"), False), (True, False), ("3", False), (None, False)],
)
def test_is_numeric(value, expected):
    assert is_numeric(value) is expected


def test_is_missing():
    assert is_missing(None)
    assert is_missing(float("nan"))
    assert not is_missing("")
    assert not is_missing(0)


def test_blank_values_and_rows():
    assert is_blank("   ")
    assert is_blank("")
    assert not is_blank(0)
    assert is_blank_row({"a": None, "b": " "})
    assert is_blank_row({})
    assert not is_blank_row({"a": None, "b": "x"})


def test_stringify():
    assert stringify(10.0) == "10"
    assert stringify(10.5) == "10.5"
    assert stringify(7) == "7"
    assert stringify("Paris") == "Paris"


@pytest.mark.parametrize(
    "text,expected",
    [(" 42 ", 42), ("+5", 5), ("-0.5", -0.5), (".5", 0.5), ("3.", 3.0), ("1e3", 1000.0), ("2E-2", 0.02)],
)
def test_parse_number(text, expected):
    value = parse_number(text)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize(
    "text", ["", "1_000", "inf", "-Infinity", "nan", "1e999", "0x10", "1,5", "12abc", "1 000", "."]
)
def test_parse_number_rejects(text):
    assert parse_number(text) is None
