"""
Human date/time expressions.

Time predicates compare a node's stored timestamp against an expression the
user typed. Both sides are normalised to an integer epoch value before
comparing.

Supported expressions:
- "now", "today", "yesterday", "tomorrow"
- ISO dates and datetimes: "2024-01-01", "2024-01-01T09:30", "2024-01-01 09:30"
- Other simple dates: "2024/01/01", "01-02-2024", "01/02/2024"
- Relative: "3 days ago", "2 weeks ago", "in 4 hours", "5 days from now"
- Offsets from today: "+3d", "-2w", "-1m", "+1y", "-6h"
"""
import re
from datetime import datetime, timedelta
from typing import Optional, Union

_UNIT_ALIASES = {
    "min": "minute",
    "h": "hour",
    "d": "day",
    "w": "week",
    "m": "month",
    "y": "year",
}


def _delta(amount: int, unit: str) -> timedelta:
    """Convert an amount of a unit into a timedelta."""
    unit = _UNIT_ALIASES.get(unit, unit)
    if unit == "minute":
        return timedelta(minutes=amount)
    elif unit == "hour":
        return timedelta(hours=amount)
    elif unit == "day":
        return timedelta(days=amount)
    elif unit == "week":
        return timedelta(weeks=amount)
    elif unit == "month":
        return timedelta(days=amount * 30)
    elif unit == "year":
        return timedelta(days=amount * 365)
    raise ValueError(f"Unknown time unit: {unit}")


def parse_datetime(expr: str, now: Optional[datetime] = None) -> datetime:
    """
    Parse a human date/time expression.

    Args:
        expr: Expression to parse
        now: Reference time for relative expressions (defaults to now)

    Returns:
        Naive local datetime

    Raises:
        ValueError: If the expression is not understood
    """
    now = now or datetime.now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    s = expr.strip().lower()

    if s == "now":
        return now
    if s == "today":
        return today
    if s == "yesterday":
        return today - timedelta(days=1)
    if s == "tomorrow":
        return today + timedelta(days=1)

    # "+3d", "-2w"
    match = re.match(r"^([+-])\s*(\d+)\s*(min|h|d|w|m|y)$", s)
    if match:
        sign = 1 if match.group(1) == "+" else -1
        delta = _delta(int(match.group(2)), match.group(3))
        base = now if match.group(3) in ("min", "h") else today
        return base + sign * delta

    # "3 days ago"
    match = re.match(r"^(\d+)\s*(minute|hour|day|week|month|year)s?\s+ago$", s)
    if match:
        return now - _delta(int(match.group(1)), match.group(2))

    # "in 3 days", "3 days from now"
    match = (re.match(r"^in\s+(\d+)\s*(minute|hour|day|week|month|year)s?$", s)
             or re.match(r"^(\d+)\s*(minute|hour|day|week|month|year)s?\s+from\s+now$", s))
    if match:
        return now + _delta(int(match.group(1)), match.group(2))

    try:
        parsed = datetime.fromisoformat(expr.strip().replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    except ValueError:
        pass

    for fmt in ["%Y/%m/%d", "%Y-%m-%d %H:%M", "%d-%m-%Y", "%d/%m/%Y"]:
        try:
            return datetime.strptime(expr.strip(), fmt)
        except ValueError:
            continue

    raise ValueError(f"Cannot parse date: {expr}")


def to_epoch(value: Union[None, int, float, str, datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Normalise a timestamp or expression to integer epoch seconds.

    Naive datetimes are interpreted as local time. None stays None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("Boolean is not a timestamp")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = parse_datetime(value, now=now)
    return int(value.timestamp())
