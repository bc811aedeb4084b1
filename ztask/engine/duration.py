"""Deterministic parser for sleep durations.

Converts short human duration strings ("3h", "2m 10s", "-5s", "0") into a
signed number of seconds. It must be deterministic: same input -> same output
(or the same DurationParseError).
"""

import re
from typing import Dict, List, Tuple

from ztask.exceptions import DurationParseError


_UNIT_SECONDS: Dict[str, int] = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 60 * 60,
    "hr": 60 * 60,
    "hrs": 60 * 60,
    "hour": 60 * 60,
    "hours": 60 * 60,
    "d": 60 * 60 * 24,
    "day": 60 * 60 * 24,
    "days": 60 * 60 * 24,
    "w": 60 * 60 * 24 * 7,
    "wk": 60 * 60 * 24 * 7,
    "week": 60 * 60 * 24 * 7,
    "weeks": 60 * 60 * 24 * 7,
}


_PART_RE = re.compile(r"(?P<value>\d+)\s*(?P<unit>[A-Za-z]*)")


def _split_parts(body: str) -> List[Tuple[int, str]]:
    """Split the unsigned body into (value, unit) pairs, rejecting stray characters."""
    parts: List[Tuple[int, str]] = []
    pos = 0
    for m in _PART_RE.finditer(body):
        if body[pos:m.start()].strip():
            raise DurationParseError(f"invalid duration: '{body}'")
        parts.append((int(m.group("value")), m.group("unit")))
        pos = m.end()
    if body[pos:].strip():
        raise DurationParseError(f"invalid duration: '{body}'")
    return parts


def parse_duration(text: str) -> int:
    """Parse a duration string into a signed number of seconds.

    Grammar: optional leading sign, then one or more ``<number><unit>`` groups
    (spaces allowed between and inside groups). Units: s, m, h, d, w (plus
    their long forms). A bare "0" is accepted as zero seconds.

    Args:
        text: Duration string, e.g. "3h", "2m 10s", "-5s", "0"

    Returns:
        Total seconds, negative when the string starts with "-"

    Raises:
        DurationParseError: If the string is empty, has a number without a
            unit, or uses an unknown unit
    """
    raw = (text or "").strip()
    sign = 1
    body = raw
    if body.startswith("-"):
        sign = -1
        body = body[1:].lstrip()
    elif body.startswith("+"):
        body = body[1:].lstrip()

    parts = _split_parts(body)
    if not parts:
        raise DurationParseError(f"invalid duration: '{raw}'")

    # "0" on its own needs no unit
    if len(parts) == 1 and parts[0] == (0, ""):
        return 0

    total = 0
    for value, unit in parts:
        multiplier = _UNIT_SECONDS.get(unit.lower()) if unit else None
        if multiplier is None:
            raise DurationParseError(f"invalid duration units: '{unit}'")
        total += value * multiplier
    return sign * total


def format_duration(total_seconds: int) -> str:
    """Render a number of seconds as "1d 2h 3m 4s" (zero parts omitted, sign dropped)."""
    remaining = abs(int(total_seconds))
    days, remaining = divmod(remaining, 60 * 60 * 24)
    hours, remaining = divmod(remaining, 60 * 60)
    minutes, seconds = divmod(remaining, 60)
    fragments = [
        f"{amount}{unit}"
        for amount, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (seconds, "s"))
        if amount > 0
    ]
    return " ".join(fragments) if fragments else "0s"
