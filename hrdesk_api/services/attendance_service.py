# hrdesk_api/services/attendance_service.py
from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from typing import Optional

from hrdesk_api.extensions import db
from hrdesk_api.common.clock import local_now, to_storage, from_storage
from hrdesk_api.common.errors import APIError
from hrdesk_api.models.attendance import AttendanceRecord, STATUSES
from hrdesk_api.models.employee import Employee
from hrdesk_api.services.time_accounting import compute_elapsed_hours, NegativeDurationError

log = logging.getLogger(__name__)


def js_weekday(d: date) -> int:
    """0=Sunday .. 6=Saturday, the convention of Employee.week_off_day."""
    return (d.weekday() + 1) % 7


def clock_in(employee_id: int, now: Optional[datetime] = None) -> AttendanceRecord:
    now = now or local_now()
    today = now.date()
    existing = AttendanceRecord.query.filter_by(employee_id=employee_id, date=today).first()
    if existing:
        raise APIError("CONFLICT", "Already clocked in today", 409)

    rec = AttendanceRecord(
        employee_id=employee_id,
        date=today,
        clock_in=to_storage(now),
        status="present",
    )
    db.session.add(rec)
    db.session.commit()
    return rec


def close_record(rec: AttendanceRecord, at: Optional[datetime] = None) -> AttendanceRecord:
    if rec.clock_in is None:
        raise APIError("VALIDATION", "Record has no clock-in", 422)
    if rec.clock_out is not None:
        raise APIError("CONFLICT", "Already clocked out", 409)

    at = at or local_now()
    try:
        hours = compute_elapsed_hours(from_storage(rec.clock_in), at)
    except NegativeDurationError as e:
        raise APIError("VALIDATION", str(e), 422)

    rec.clock_out = to_storage(at)
    rec.total_hours = hours
    db.session.commit()
    return rec


def clock_out(employee_id: int, now: Optional[datetime] = None) -> AttendanceRecord:
    now = now or local_now()
    rec = AttendanceRecord.query.filter_by(employee_id=employee_id, date=now.date()).first()
    if not rec:
        raise APIError("NOT_FOUND", "No clock-in found for today", 404)
    return close_record(rec, now)


def update_record(rec: AttendanceRecord, d: dict) -> AttendanceRecord:
    if "status" in d:
        if d["status"] not in STATUSES:
            raise APIError("VALIDATION", f"status must be one of {', '.join(STATUSES)}", 422)
        rec.status = d["status"]
    if "notes" in d:
        rec.notes = d["notes"] or None
    db.session.commit()
    return rec


def daily_roster(day: date):
    """
    One row per active non-admin employee for `day`. Employees without a
    record show as week_off on their weekly off day, absent otherwise.
    """
    employees = (Employee.query
                 .filter(Employee.is_active.is_(True), Employee.role != "admin")
                 .order_by(Employee.first_name.asc(), Employee.id.asc())
                 .all())
    records = {r.employee_id: r for r in AttendanceRecord.query.filter_by(date=day).all()}
    weekday = js_weekday(day)

    rows = []
    for emp in employees:
        rec = records.get(emp.id)
        if rec:
            row = rec.to_dict()
            row["synthetic"] = False
        else:
            row = {
                "id": None,
                "employee_id": emp.id,
                "date": day.isoformat(),
                "clock_in": None,
                "clock_out": None,
                "total_hours": None,
                "status": "week_off" if emp.week_off_day is not None and emp.week_off_day == weekday else "absent",
                "notes": None,
                "synthetic": True,
            }
        row["employee"] = emp.to_brief()
        rows.append(row)

    counts = Counter(r["status"] for r in rows)
    stats = {s: counts.get(s, 0) for s in STATUSES}
    return rows, stats
