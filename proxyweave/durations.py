"""Parsing of duration strings such as "10s", "1h30m" or "1.5ms"."""

from __future__ import annotations

import re
from datetime import timedelta
from fractions import Fraction

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_DIGITS = "0123456789."


def parse_duration(s: str) -> timedelta:
    """Parse a signed sequence of decimal numbers each with a unit suffix.

    Valid units are "ns", "us" (or "µs"), "ms", "s", "m" and "h".
    Raises ValueError on malformed input or overflow.
    """
    original = s
    invalid = ValueError(f'time: invalid duration "{original}"')

    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise invalid

    total = 0
    position = 0
    while position < len(s):
        if s[position] not in _DIGITS:
            raise invalid
        match = _COMPONENT.match(s, position)
        whole, fraction, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not fraction:
            raise invalid
        if not unit:
            raise ValueError(f'time: missing unit in duration "{original}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{original}"')

        scale = _UNITS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        position = match.end()

    limit = 1 << 63 if negative else (1 << 63) - 1
    if total > limit:
        raise invalid

    nanoseconds = -total if negative else total
    return timedelta(microseconds=round(Fraction(nanoseconds, 1000)))