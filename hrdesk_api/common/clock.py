# hrdesk_api/common/clock.py
"""
Calendar helpers for the configured business timezone.

Date-only columns (attendance.date, leave dates) hold the *local* calendar day
in APP_TIMEZONE. Timestamps are stored as naive UTC. Everything that compares
"today" or builds a time-of-day on a given day goes through here.
"""
from __future__ import annotations

from datetime import datetime, date, timezone, tzinfo
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DEFAULT_TZ = "UTC"


def app_tz() -> tzinfo:
    name = DEFAULT_TZ
    if has_app_context():
        name = current_app.config.get("APP_TIMEZONE") or DEFAULT_TZ
    return ZoneInfo(name)


def local_now() -> datetime:
    return datetime.now(app_tz())


def local_today() -> date:
    return local_now().date()


def to_storage(dt: datetime | None) -> datetime | None:
    """Aware (or app-local naive) datetime -> naive UTC for the DB."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=app_tz())
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage(dt: datetime | None) -> datetime | None:
    """Naive UTC from the DB -> aware datetime in the app timezone."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(app_tz())


def parse_date(s):
    if not s: return None
    if isinstance(s, date): return s
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try: return datetime.strptime(str(s).strip(), fmt).date()
        except ValueError: pass
    return None
