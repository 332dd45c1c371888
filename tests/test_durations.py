from datetime import timedelta

import pytest

from proxyweave.durations import parse_duration


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10s", timedelta(seconds=10)),
        ("0", timedelta(0)),
        ("-0", timedelta(0)),
        ("+5s", timedelta(seconds=5)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("300ms", timedelta(milliseconds=300)),
        ("1.5h", timedelta(hours=1.5)),
        ("-2m", -timedelta(minutes=2)),
        (".5s", timedelta(seconds=0.5)),
        ("1.s", timedelta(seconds=1)),
        ("2us", timedelta(microseconds=2)),
        ("2\u00b5s", timedelta(microseconds=2)),
        ("2\u03bcs", timedelta(microseconds=2)),
        ("1000ns", timedelta(microseconds=1)),
    ],
)
def test_parse_valid(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize(
    "text",
    ["", "1", "1x", ".s", "-", "s", "1h-2m", "1.2.3s", "3000000h", "10 s", "1e3s"],
)
def test_parse_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_missing_unit_message():
    with pytest.raises(ValueError, match="missing unit"):
        parse_duration("5")


def test_unknown_unit_message():
    with pytest.raises(ValueError, match="unknown unit"):
        parse_duration("5d")


def test_components_add_up():
    combined = parse_duration("1h2m3s")
    parts = parse_duration("1h") + parse_duration("2m") + parse_duration("3s")
    assert combined == parts


@pytest.mark.parametrize("text", ["1h", "250ms", "3m15s", "7us"])
def test_sign_negates(text):
    assert parse_duration("-" + text) == -parse_duration(text)
    assert parse_duration("+" + text) == parse_duration(text)


@pytest.mark.parametrize("seconds", [1, 59, 3600, 86400])
def test_seconds_match_timedelta(seconds):
    assert parse_duration(f"{seconds}s") == timedelta(seconds=seconds)