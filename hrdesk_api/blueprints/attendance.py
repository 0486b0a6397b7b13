# hrdesk_api/blueprints/attendance.py
from __future__ import annotations

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from hrdesk_api.extensions import db
from hrdesk_api.common.auth import requires_roles, current_employee_id
from hrdesk_api.common.clock import local_today, parse_date
from hrdesk_api.common.http import ok, fail
from hrdesk_api.models.attendance import AttendanceRecord
from hrdesk_api.services import attendance_service

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


@bp.post("/clock-in")
@jwt_required()
def clock_in():
    emp_id = current_employee_id()
    if emp_id is None:
        return fail("Unauthorized", status=401)
    rec = attendance_service.clock_in(emp_id)
    return ok(rec.to_dict(), status=201)


@bp.post("/clock-out")
@jwt_required()
def clock_out():
    emp_id = current_employee_id()
    if emp_id is None:
        return fail("Unauthorized", status=401)
    rec = attendance_service.clock_out(emp_id)
    return ok(rec.to_dict())


@bp.post("/<int:rid>/clock-out")
@requires_roles("hr")
def clock_out_for(rid):
    rec = db.session.get(AttendanceRecord, rid)
    if not rec:
        return fail("Attendance record not found", status=404)
    rec = attendance_service.close_record(rec)
    return ok(rec.to_dict())


@bp.patch("/<int:rid>")
@requires_roles("hr")
def update_record(rid):
    rec = db.session.get(AttendanceRecord, rid)
    if not rec:
        return fail("Attendance record not found", status=404)
    d = request.get_json(silent=True) or {}
    rec = attendance_service.update_record(rec, d)
    return ok(rec.to_dict())


@bp.get("")
@requires_roles("hr")
def roster():
    raw = request.args.get("date")
    day = parse_date(raw) if raw else local_today()
    if not day:
        return fail("Invalid date", status=422)
    rows, stats = attendance_service.daily_roster(day)
    return ok(rows, date=day.isoformat(), stats=stats)
