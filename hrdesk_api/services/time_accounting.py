# hrdesk_api/services/time_accounting.py
from __future__ import annotations

import re
from datetime import datetime, date, time as _time, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple, Union

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_TWO_PLACES = Decimal("0.01")
_SECONDS_PER_HOUR = Decimal(3600)


class InvalidCutoffTime(ValueError):
    """The configured auto clock-out time could not be read."""


class NegativeDurationError(ValueError):
    """clock_out is earlier than clock_in."""


def _leading_int(s: Optional[str]) -> Optional[int]:
    """Leading integer of a string ("7PM" -> 7, "30" -> 30, "x" -> None)."""
    if s is None:
        return None
    m = _LEADING_INT.match(s)
    return int(m.group(1)) if m else None


def parse_cutoff_time(time_str: str) -> Tuple[int, int]:
    """
    Parse a time-of-day setting into (hour, minute).

    Accepted:
      "7:30 PM" / "7 am"  -> 12-hour with period marker (case-insensitive)
      "19:30"             -> 24-hour
      "19"                -> bare hour
    """
    if time_str is None or not str(time_str).strip():
        raise InvalidCutoffTime("Auto clock-out time is empty")

    raw = str(time_str).strip()
    lowered = raw.lower()

    if "am" in lowered or "pm" in lowered:
        parts = raw.split()
        time_part = parts[0]
        period = parts[1].lower() if len(parts) > 1 else None
        hm = time_part.split(":")
        hours = _leading_int(hm[0]) or 0
        minutes = (_leading_int(hm[1]) if len(hm) > 1 else None) or 0
        if period == "pm" and hours != 12:
            hours += 12
        if period == "am" and hours == 12:
            hours = 0
    elif ":" in raw:
        hm = raw.split(":")
        hours = _leading_int(hm[0])
        minutes = _leading_int(hm[1])
    else:
        hours = _leading_int(raw)
        minutes = 0

    if hours is None or minutes is None or not (0 <= hours <= 23) or not (0 <= minutes <= 59):
        raise InvalidCutoffTime(f"Invalid auto clock-out time format: {time_str!r}")
    return hours, minutes


def resolve_cutoff_timestamp(
    day: Union[date, str],
    time_str: str,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """
    The configured time-of-day on the given calendar day, seconds zeroed.
    Aware in `tz` when given, naive otherwise.
    """
    if isinstance(day, str):
        day = datetime.strptime(day.strip(), "%Y-%m-%d").date()
    hours, minutes = parse_cutoff_time(time_str)
    return datetime.combine(day, _time(hours, minutes, 0, 0), tzinfo=tz)


def compute_elapsed_hours(clock_in: datetime, clock_out: datetime) -> Decimal:
    """(clock_out - clock_in) in hours, rounded half-up to 2dp."""
    seconds = Decimal((clock_out - clock_in).total_seconds())
    if seconds < 0:
        raise NegativeDurationError(
            f"clock_out {clock_out.isoformat()} is before clock_in {clock_in.isoformat()}"
        )
    return (seconds / _SECONDS_PER_HOUR).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
