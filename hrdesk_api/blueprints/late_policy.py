from flask import Blueprint, request
from hrdesk_api.common.auth import requires_roles
from hrdesk_api.common.clock import local_today
from hrdesk_api.common.http import ok, fail
from hrdesk_api.services.policy_settings import load_policy_settings
from hrdesk_api.services.late_policy import (
    apply_late_policy_deduction,
    apply_late_policy_for_all_employees,
)

bp = Blueprint("late_policy", __name__, url_prefix="/api/v1/attendance/late-policy")

@bp.post("/apply")
@requires_roles("hr")
def apply_policy():
    d = request.get_json(silent=True) or {}
    today = local_today()
    try:
        year = int(d.get("year") or today.year)
        month = int(d.get("month") or today.month)
        emp_id = int(d["employee_id"]) if d.get("employee_id") else None
    except (TypeError, ValueError):
        return fail("year, month and employee_id must be integers", status=422)
    if not 1 <= month <= 12:
        return fail("month must be 1..12", status=422)

    settings = load_policy_settings()
    if emp_id:
        res = apply_late_policy_deduction(emp_id, year, month, settings)
    else:
        res = apply_late_policy_for_all_employees(year, month, settings)

    if not res.success:
        return fail(res.message, status=400, code="LATE_POLICY_FAILED")
    return ok(res.to_dict())
