"""
Duration strings in the "1m30s" / "500ms" / "2.5s" style.

A bare number is read as seconds.
"""

import math
import re
from typing import Optional

DEFAULT_TIMEOUT_SECONDS = 10.0

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_COMPONENT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: Optional[str]) -> float:
    """
    Parse a duration string into seconds.

    Raises ValueError when the string is empty or malformed.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration: {value!r}")
        return seconds

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    pos = 0
    total = 0.0
    while pos < len(text):
        match = _COMPONENT_RE.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


def parse_timeout(value: Optional[str], default: float = DEFAULT_TIMEOUT_SECONDS) -> float:
    """Parse a timeout duration, falling back to `default` when unusable."""
    try:
        seconds = parse_duration(value)
    except ValueError:
        return default
    if seconds <= 0:
        return default
    return seconds
