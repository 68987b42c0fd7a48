"""Decode raw device text into a numeric reading.

Accepted input (one line per reading):
  23.5
  TEMP=23.5
  TEMP=23,5
  23.5C

NUL bytes and surrounding whitespace are removed, a ``TEMP=`` tag is
dropped and a comma is accepted as the decimal separator. The leading
decimal number is used; trailing unit text is ignored.
"""

from __future__ import annotations

import re

__all__ = [
    "READING_PREFIX",
    "ReadingParseError",
    "parse_reading",
]

READING_PREFIX = "TEMP="

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class ReadingParseError(ValueError):
    """Raised when a line holds no usable numeric reading."""

    pass


def parse_reading(line: str) -> float:
    """Extract the reading value from one line of device output.

    Parameters
    ----------
    line
        Raw line as received from the reading source

    Returns
    -------
    float
        Parsed value

    Raises
    ------
    ReadingParseError
        If no leading number can be found
    """
    text = line.replace("\0", "").strip()

    if text.startswith(READING_PREFIX):
        text = text[len(READING_PREFIX):].lstrip()

    text = text.replace(",", ".")

    match = _LEADING_NUMBER.match(text)
    if match is None:
        raise ReadingParseError(f"No numeric reading in line: {line!r}")

    return float(match.group(0))
