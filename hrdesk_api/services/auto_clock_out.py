# hrdesk_api/services/auto_clock_out.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from hrdesk_api.extensions import db
from hrdesk_api.common.clock import app_tz, local_now, to_storage, from_storage
from hrdesk_api.models.attendance import AttendanceRecord
from hrdesk_api.services.time_accounting import (
    InvalidCutoffTime,
    compute_elapsed_hours,
    resolve_cutoff_timestamp,
)

log = logging.getLogger(__name__)

NOT_CONFIGURED = "not_configured"
INVALID_TIME = "invalid_time"
NOT_REACHED = "not_reached"
NOTHING_TO_DO = "nothing_to_do"
PROCESSED = "processed"


@dataclass
class SweepResult:
    outcome: str
    message: str
    processed_count: Optional[int] = None
    skipped_count: int = 0

    @property
    def is_error(self) -> bool:
        return self.outcome == INVALID_TIME

    def to_dict(self):
        out = {"message": self.message}
        if self.processed_count is not None:
            out["processedCount"] = self.processed_count
        return out


def unclosed_records_for(day):
    return (AttendanceRecord.query
            .filter(AttendanceRecord.date == day,
                    AttendanceRecord.clock_in.isnot(None),
                    AttendanceRecord.clock_out.is_(None))
            .order_by(AttendanceRecord.id.asc())
            .all())


def run_auto_clock_out(auto_clock_out_time: Optional[str], now: Optional[datetime] = None) -> SweepResult:
    """
    Close today's open attendance rows at the configured cutoff.

    - now defaults to the current time in APP_TIMEZONE; a naive `now` is read
      as app-local wall clock.
    - Rows are closed at the cutoff, not at `now`.
    - A row that cannot be closed (negative duration, failed update) is
      skipped; the rest still run. Safe to re-run.
    """
    if not auto_clock_out_time or not str(auto_clock_out_time).strip():
        return SweepResult(NOT_CONFIGURED, "Auto clock-out time not configured")

    tz = app_tz()
    if now is None:
        now = local_now()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)

    today = now.date()
    try:
        cutoff = resolve_cutoff_timestamp(today, auto_clock_out_time, tz)
    except InvalidCutoffTime as e:
        log.warning("auto clock-out skipped: %s", e)
        return SweepResult(INVALID_TIME, "Invalid auto clock-out time format")

    if now < cutoff:
        return SweepResult(NOT_REACHED, "Auto clock-out time not reached yet")

    records = unclosed_records_for(today)
    if not records:
        return SweepResult(NOTHING_TO_DO, "No unclosed attendance records to process", processed_count=0)

    cutoff_stored = to_storage(cutoff)
    processed = 0
    skipped = 0
    for rec in records:
        try:
            hours = compute_elapsed_hours(from_storage(rec.clock_in), cutoff)
        except (ValueError, TypeError) as e:
            log.warning("auto clock-out: skipping attendance %s: %s", rec.id, e)
            skipped += 1
            continue

        try:
            rec.clock_out = cutoff_stored
            rec.total_hours = hours
            db.session.commit()
            processed += 1
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("auto clock-out: update failed for attendance %s", rec.id)
            skipped += 1

    log.info("auto clock-out for %s at %s: processed=%s skipped=%s",
             today.isoformat(), cutoff.isoformat(), processed, skipped)
    return SweepResult(
        PROCESSED,
        f"Successfully processed {processed} attendance records",
        processed_count=processed,
        skipped_count=skipped,
    )
