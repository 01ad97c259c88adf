"""
Canonical clock helpers for day timelines.

All timeline math is done in integer minutes since midnight. Template and
stored blocks carry clock strings ("9:00am", "14:30"); these helpers are the
only place that converts between the two.
"""
import math
import re
from typing import Any, Optional

_CLOCK_RE = re.compile(r"^(\d{1,2})\s*:\s*(\d{2})$")


def parse_clock_string(value: Any) -> Optional[int]:
    """
    Parse a clock string to minutes since midnight.

    Accepts "H:MM", "HH:MM" (24-hour) and "H:MMam" / "H:MM PM" (12-hour,
    case-insensitive, optional space before the meridiem). Integers are
    already minutes and pass through. Returns None for anything malformed.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None

    s = value.strip().lower()
    meridiem = None
    if s.endswith("am") or s.endswith("pm"):
        meridiem = s[-2:]
        s = s[:-2].strip()

    m = _CLOCK_RE.match(s)
    if not m:
        return None
    hours = int(m.group(1))
    minutes = int(m.group(2))
    if minutes > 59:
        return None

    if meridiem is None:
        if hours > 23:
            return None
        return hours * 60 + minutes

    if hours < 1 or hours > 12:
        return None
    if hours == 12:
        hours = 0 if meridiem == "am" else 12
    elif meridiem == "pm":
        hours += 12
    return hours * 60 + minutes


def minutes_to_clock_label(minutes: int) -> str:
    """540 -> '9:00am', 810 -> '1:30pm'."""
    h, m = divmod(int(minutes), 60)
    meridiem = "pm" if h % 24 >= 12 else "am"
    h = h % 12 or 12
    return f"{h}:{m:02d}{meridiem}"


def range_label(start_minute: int, end_minute: int) -> str:
    return f"{minutes_to_clock_label(start_minute)} - {minutes_to_clock_label(end_minute)}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (never banker's rounding)."""
    return int(math.floor(value + 0.5))


def round_to_grid(minutes: int, increment: int) -> int:
    """Nearest multiple of increment; ties round up (602 -> 600, 603 -> 605 on a 5-minute grid)."""
    if increment <= 0:
        return minutes
    return round_half_up(minutes / increment) * increment
