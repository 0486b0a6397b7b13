from decimal import Decimal, InvalidOperation
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from hrdesk_api.extensions import db
from hrdesk_api.common.auth import requires_roles
from hrdesk_api.common.http import ok, fail
from hrdesk_api.models.settings import AppSettings
from hrdesk_api.models.leave import LeaveType
from hrdesk_api.services.time_accounting import parse_cutoff_time, InvalidCutoffTime

bp = Blueprint("settings", __name__, url_prefix="/api/v1/settings")

@bp.get("")
@jwt_required()
def get_settings():
    s = AppSettings.current()
    return ok(s.to_dict() if s else None)

@bp.put("")
@requires_roles()
def put_settings():
    d = request.get_json(silent=True) or {}
    changes = {}

    if "max_late_days" in d:
        try:
            v = int(d["max_late_days"])
        except (TypeError, ValueError):
            return fail("max_late_days must be an integer", 422)
        if v < 0: return fail("max_late_days cannot be negative", 422)
        changes["max_late_days"] = v

    if "late_policy_deduction_per_day" in d:
        try:
            v = Decimal(str(d["late_policy_deduction_per_day"]))
        except InvalidOperation:
            return fail("late_policy_deduction_per_day must be a number", 422)
        if not v.is_finite() or v < 0:
            return fail("late_policy_deduction_per_day cannot be negative", 422)
        changes["late_policy_deduction_per_day"] = v

    if "late_policy_leave_type_id" in d:
        lt_id = d["late_policy_leave_type_id"]
        if lt_id is not None:
            if isinstance(lt_id, bool):
                return fail("late_policy_leave_type_id must be an integer", 422)
            try:
                lt_id = int(lt_id)
            except (TypeError, ValueError):
                return fail("late_policy_leave_type_id must be an integer", 422)
            if not db.session.get(LeaveType, lt_id):
                return fail("Invalid leave type", 404)
        changes["late_policy_leave_type_id"] = lt_id

    if "auto_clock_out_time" in d:
        raw = (d["auto_clock_out_time"] or "").strip() or None
        if raw:
            try:
                parse_cutoff_time(raw)
            except InvalidCutoffTime as e:
                return fail(str(e), 422)
        changes["auto_clock_out_time"] = raw

    s = AppSettings.current()
    if not s:
        s = AppSettings(max_late_days=3, late_policy_deduction_per_day=1)
        db.session.add(s)
    for k, v in changes.items():
        setattr(s, k, v)
    db.session.commit()
    return ok(s.to_dict())
