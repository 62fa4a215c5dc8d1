# tests/test_parsing.py
"""Tests for model output parsing."""

import pytest

from cardsmith.drafting.parsing import extract_first_object, parse_confidence, parse_json_object


def test_plain_object():
    assert parse_json_object('{"sections": []}') == {"sections": []}


def test_object_inside_code_fence():
    text = 'Here you go:\n```json\n{"sections": [{"title": "A", "body": "b"}]}\n```'
    assert parse_json_object(text) == {"sections": [{"title": "A", "body": "b"}]}


def test_braces_inside_strings_are_ignored():
    assert extract_first_object('noise {"a": "}{"} tail') == '{"a": "}{"}'


def test_unbalanced_prefix_skipped():
    assert parse_json_object('{ broken {"a": 1}') == {"a": 1}


@pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2]", '{"a": '])
def test_unparseable_returns_none(text):
    assert parse_json_object(text) is None


@pytest.mark.parametrize("value,expected", [
    (85, 85.0),
    ("72.5", 72.5),
    (150, 100.0),
    (-3, 0.0),
])
def test_confidence_clamped(value, expected):
    assert parse_confidence({"quality": {"confidence": value}}) == expected


@pytest.mark.parametrize("data", [
    None,
    {},
    {"quality": "high"},
    {"quality": {"confidence": "high"}},
    {"quality": {"confidence": True}},
    {"quality": {"confidence": "nan"}},
    {"quality": {"confidence": None}},
])
def test_confidence_absent_or_invalid(data):
    assert parse_confidence(data) is None
