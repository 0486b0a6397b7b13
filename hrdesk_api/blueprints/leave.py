from decimal import Decimal, InvalidOperation
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from hrdesk_api.extensions import db
from hrdesk_api.common.auth import requires_roles, current_employee_id, current_role
from hrdesk_api.common.clock import local_today
from hrdesk_api.common.http import ok, fail

from hrdesk_api.models.leave import LeaveType, LeaveBalance, LeaveRequest
from hrdesk_api.services import leave_accounting

bp = Blueprint("leave", __name__, url_prefix="/api/v1/leave")

def _is_manager():
    return current_role() in ("admin", "hr")

# ---------- Leave Types ----------
@bp.get("/types")
@jwt_required()
def list_types():
    q = LeaveType.query
    if request.args.get("all") != "1":
        q = q.filter_by(is_active=True)
    items = q.order_by(LeaveType.created_at.asc(), LeaveType.id.asc()).all()
    return ok([t.to_dict() for t in items])

def _apply_type_fields(lt, d):
    if "name" in d:
        name = (d.get("name") or "").strip()
        if not name: return "name is required"
        lt.name = name
    if "description" in d:
        lt.description = d.get("description") or None
    if "default_days" in d:
        try:
            days = Decimal(str(d.get("default_days") or 0))
        except InvalidOperation:
            return "default_days must be a number"
        if not days.is_finite() or days < 0: return "default_days cannot be negative"
        lt.default_days = days
    if "is_active" in d:
        lt.is_active = bool(d.get("is_active"))
    return None

@bp.post("/types")
@requires_roles("hr")
def create_type():
    d = request.get_json(silent=True) or {}
    if not (d.get("name") or "").strip():
        return fail("name is required", 422)
    lt = LeaveType(is_active=True, default_days=0)
    err = _apply_type_fields(lt, d)
    if err: return fail(err, 422)
    db.session.add(lt)
    db.session.commit()
    return ok(lt.to_dict(), status=201)

@bp.patch("/types/<int:tid>")
@requires_roles("hr")
def update_type(tid):
    lt = db.session.get(LeaveType, tid)
    if not lt: return fail("Leave type not found", 404)
    err = _apply_type_fields(lt, request.get_json(silent=True) or {})
    if err: return fail(err, 422)
    db.session.commit()
    return ok(lt.to_dict())

# ---------- Balances ----------
@bp.get("/balances")
@jwt_required()
def get_balances():
    emp_id = request.args.get("employee_id", type=int)
    year = request.args.get("year", type=int)

    if not _is_manager():
        # employees only ever see their own balances
        emp_id = current_employee_id()
        if emp_id is None: return fail("Unauthorized", 401)

    q = LeaveBalance.query
    if emp_id:
        q = q.filter(LeaveBalance.employee_id == emp_id)
    if year:
        q = q.filter(LeaveBalance.year == year)
    rows = q.order_by(LeaveBalance.year.desc(), LeaveBalance.employee_id.asc(), LeaveBalance.leave_type_id.asc()).all()
    return ok([r.to_dict() for r in rows])

@bp.post("/balances/allot")
@requires_roles("hr")
def allot_balances():
    d = request.get_json(silent=True) or {}
    try:
        year = int(d.get("year") or local_today().year)
    except (TypeError, ValueError):
        return fail("year must be an integer", 422)
    written = leave_accounting.allot_leave_balances(
        d.get("employee_ids") or [], year, d.get("days_by_type") or {}
    )
    return ok({"year": year, "balances_written": written})

@bp.delete("/balances/<int:bid>")
@requires_roles("hr")
def delete_balance(bid):
    leave_accounting.delete_balance(bid)
    return ok({"id": bid, "deleted": True})

@bp.delete("/balances")
@requires_roles("hr")
def delete_balance_group():
    emp_id = request.args.get("employee_id", type=int)
    year = request.args.get("year", type=int)
    if not (emp_id and year):
        return fail("employee_id and year are required", 422)
    n = leave_accounting.delete_balance_group(emp_id, year)
    return ok({"employee_id": emp_id, "year": year, "deleted": n})

# ---------- Requests ----------
@bp.post("/requests")
@jwt_required()
def apply_leave():
    emp_id = current_employee_id()
    if emp_id is None: return fail("Unauthorized", 401)
    lr = leave_accounting.submit_leave_request(emp_id, request.get_json(silent=True) or {})
    return ok(lr.to_dict(), status=201)

@bp.patch("/requests/<int:rid>")
@jwt_required()
def edit_leave(rid):
    emp_id = current_employee_id()
    if emp_id is None: return fail("Unauthorized", 401)
    lr = leave_accounting.update_leave_request(emp_id, rid, request.get_json(silent=True) or {})
    return ok(lr.to_dict())

@bp.get("/requests")
@jwt_required()
def list_requests():
    emp_id = request.args.get("employee_id", type=int)
    status = request.args.get("status")

    if not _is_manager():
        emp_id = current_employee_id()
        if emp_id is None: return fail("Unauthorized", 401)

    q = LeaveRequest.query
    if emp_id:
        q = q.filter(LeaveRequest.employee_id == emp_id)
    if status and status != "all":
        q = q.filter(LeaveRequest.status == status)
    items = q.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    data = []
    for r in items:
        row = r.to_dict()
        row["days"] = leave_accounting.approved_leave_days(r.start_date, r.end_date, r.half_day)
        data.append(row)
    counts = {s: sum(1 for r in items if r.status == s) for s in ("pending", "approved", "rejected")}
    return ok(data, total=len(items), **counts)

@bp.post("/requests/<int:rid>/approve")
@requires_roles("hr")
def approve_request(rid):
    lr = leave_accounting.review_leave_request(rid, "approved", current_employee_id())
    return ok({"id": lr.id, "status": lr.status})

@bp.post("/requests/<int:rid>/reject")
@requires_roles("hr")
def reject_request(rid):
    lr = leave_accounting.review_leave_request(rid, "rejected", current_employee_id())
    return ok({"id": lr.id, "status": lr.status})
