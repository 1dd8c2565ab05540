"""Length grammar for margins, sizes, and tab geometry.

Everything is stored in points internally::

    length := [sign] number [unit]
    sign   := "+" | "-"          (relative to the current value)
    number := digits ["." digits] | "." digits
    unit   := "pt" | "P" | "in" | "mm" | "cm"   (default: pt)

A lone ``-`` is the reset marker and is handled by the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

POINTS_PER_UNIT: dict[str, float] = {
    "": 1.0,
    "pt": 1.0,
    "P": 12.0,
    "in": 72.0,
    "mm": 72.0 / 25.4,
    "cm": 72.0 / 2.54,
}

_LENGTH_RE = re.compile(r"^(?P<sign>[+-]?)(?P<num>\d+(?:\.\d+)?|\.\d+)(?P<unit>[A-Za-z]*)$")


@dataclass(frozen=True, slots=True)
class Length:
    """A length in points, either absolute or an offset from the current value."""

    points: float
    relative: bool = False

    def resolve(self, current: float) -> float:
        """Return the absolute value given the value currently in effect."""
        if self.relative:
            return current + self.points
        return self.points


def parse_length(text: str) -> Length:
    """Parse a length literal, raising ValueError on malformed input."""
    m = _LENGTH_RE.match(text.strip())
    if m is None:
        raise ValueError(f"invalid length '{text}'")
    unit = m.group("unit")
    if unit not in POINTS_PER_UNIT:
        raise ValueError(f"unknown unit '{unit}' in length '{text}'")
    points = float(m.group("num")) * POINTS_PER_UNIT[unit]
    sign = m.group("sign")
    if sign == "-":
        points = -points
    return Length(points, relative=bool(sign))
