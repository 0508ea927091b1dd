"""Parsing of human friendly durations used by the command line."""

from __future__ import annotations

import math
import re

_UNIT_RE = re.compile(r"^(?P<value>\d+(?:\.\d*)?|\.\d+)\s*(?P<unit>ms|s|m|h)$")
_UNIT_SCALE = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_time(text: str) -> float:
    """Parse ``text`` as a non-negative duration in seconds.

    Accepted formats are:

    * ``SS`` or ``SS.fff``
    * ``MM:SS`` and ``HH:MM:SS``
    * a number with a unit suffix: ``250ms``, ``1.5s``, ``2m``, ``1h``

    ``ValueError`` is raised on malformed, negative or non-finite input such
    as ``inf`` and ``nan``.
    """

    raw = text.strip().lower()
    if not raw:
        raise ValueError("empty time string")

    m = _UNIT_RE.match(raw)
    if m:
        return float(m.group("value")) * _UNIT_SCALE[m.group("unit")]

    parts = raw.split(":")
    if len(parts) > 3:
        raise ValueError(f"too many components in time string: {text!r}")
    try:
        values = [float(p) for p in parts]
    except ValueError as exc:
        raise ValueError(f"invalid time value: {text!r}") from exc
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"time must be finite: {text!r}")
    if any(v < 0 for v in values):
        raise ValueError(f"time must not be negative: {text!r}")

    seconds = 0.0
    for value in values:
        seconds = seconds * 60 + value
    return seconds
