# hrdesk_api/services/leave_accounting.py
from __future__ import annotations

import logging
import math
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict, Iterable, Optional

from hrdesk_api.extensions import db
from hrdesk_api.common.clock import parse_date
from hrdesk_api.common.errors import APIError
from hrdesk_api.models.employee import Employee
from hrdesk_api.models.leave import LeaveType, LeaveBalance, LeaveRequest
from hrdesk_api.services.notifications import (
    notify_leave_event,
    leave_status_payload,
    new_request_payload,
)

log = logging.getLogger(__name__)

# Half-day cost differs between the two call sites and is kept that way until
# product signs off on one value (see DESIGN.md, "half-day constant").
REQUEST_HALF_DAY_DAYS = 1.0    # employee request form: balance check
APPROVAL_HALF_DAY_DAYS = 0.5   # admin approval: used_days increment

HALF_DAY_PERIODS = ("first_half", "second_half")
REVIEW_STATUSES = ("approved", "rejected")

_TWO_PLACES = Decimal("0.01")


def _round2(x) -> Decimal:
    return Decimal(str(x)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _as_id(v) -> int:
    if isinstance(v, bool):
        raise ValueError(v)
    return int(v)


def calculate_leave_days(start, end, half_day=False, half_day_days=APPROVAL_HALF_DAY_DAYS,
                         absolute=False) -> float:
    """
    Inclusive day count of a leave range: ceil(end - start in days) + 1.
    A half-day request costs `half_day_days` regardless of the range.
    """
    if half_day:
        return float(half_day_days)
    delta = end - start
    days = delta.total_seconds() / 86400
    if absolute:
        days = abs(days)
    return float(math.ceil(days) + 1)


def requested_leave_days(start, end, half_day=False) -> float:
    return calculate_leave_days(start, end, half_day, REQUEST_HALF_DAY_DAYS)


def approved_leave_days(start, end, half_day=False) -> float:
    return calculate_leave_days(start, end, half_day, APPROVAL_HALF_DAY_DAYS, absolute=True)


def get_balance(employee_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
    return LeaveBalance.query.filter_by(
        employee_id=employee_id, leave_type_id=leave_type_id, year=year
    ).first()


# ---------- requests (employee side) ----------

def _validated_request_fields(employee_id: int, d: dict) -> dict:
    try:
        lt_id = int(d.get("leave_type_id"))
    except (TypeError, ValueError):
        raise APIError("VALIDATION", "leave_type_id is required", 422)

    sd = parse_date(d.get("start_date"))
    ed = parse_date(d.get("end_date"))
    if not (sd and ed):
        raise APIError("VALIDATION", "Invalid dates", 422)

    lt = db.session.get(LeaveType, lt_id)
    if not lt or not lt.is_active:
        raise APIError("NOT_FOUND", "Invalid leave type", 404)

    half_day = bool(d.get("half_day"))
    period = d.get("half_day_period") or None
    if period and period not in HALF_DAY_PERIODS:
        raise APIError("VALIDATION", "half_day_period must be first_half or second_half", 422)

    days = requested_leave_days(sd, ed, half_day)
    if days <= 0:
        raise APIError("VALIDATION", "End date cannot be before start date", 422)

    bal = get_balance(employee_id, lt_id, sd.year)
    remaining = bal.remaining if bal else 0.0
    if days > remaining:
        raise APIError("INSUFFICIENT_BALANCE",
                       f"Insufficient balance. Available: {remaining:g}, Requested: {days:g}", 422)

    document_url = (d.get("document_url") or "").strip() or None
    if lt.is_medical and not document_url:
        raise APIError("VALIDATION", "A supporting document is required for sick/medical leave", 422)

    return {
        "leave_type_id": lt_id,
        "start_date": sd,
        "end_date": ed,
        "reason": (d.get("reason") or "").strip() or None,
        "half_day": half_day,
        "half_day_period": period if half_day else None,
        "document_url": document_url,
    }


def submit_leave_request(employee_id: int, d: dict) -> LeaveRequest:
    fields = _validated_request_fields(employee_id, d)
    lr = LeaveRequest(employee_id=employee_id, status="pending", **fields)
    db.session.add(lr)
    db.session.commit()

    notify_leave_event(new_request_payload(lr))
    return lr


def update_leave_request(employee_id: int, request_id: int, d: dict) -> LeaveRequest:
    lr = LeaveRequest.query.filter_by(id=request_id, employee_id=employee_id).first()
    if not lr:
        raise APIError("NOT_FOUND", "Leave request not found", 404)
    if lr.status != "pending":
        raise APIError("CONFLICT", f"Cannot edit request in '{lr.status}' status", 409)

    merged = {
        "leave_type_id": lr.leave_type_id,
        "start_date": lr.start_date,
        "end_date": lr.end_date,
        "reason": lr.reason,
        "half_day": lr.half_day,
        "half_day_period": lr.half_day_period,
        "document_url": lr.document_url,
    }
    merged.update({k: v for k, v in d.items() if k in merged})
    for k, v in _validated_request_fields(employee_id, merged).items():
        setattr(lr, k, v)
    lr.updated_at = datetime.utcnow()
    db.session.commit()
    return lr


# ---------- review (admin side) ----------

def review_leave_request(request_id: int, status: str, reviewer_id: Optional[int]) -> LeaveRequest:
    """
    Approve or reject a pending request.

    On approval the day count is added to used_days of the matching
    (employee, leave type, start-date year) balance. If that balance row does
    not exist nothing is charged and no row is created.
    """
    if status not in REVIEW_STATUSES:
        raise APIError("VALIDATION", "status must be approved or rejected", 422)

    lr = db.session.get(LeaveRequest, request_id)
    if not lr:
        raise APIError("NOT_FOUND", "Leave request not found", 404)
    if lr.status != "pending":
        verb = "approve" if status == "approved" else "reject"
        raise APIError("CONFLICT", f"Cannot {verb} request in '{lr.status}' status", 409)

    lr.status = status
    lr.reviewed_by = reviewer_id
    lr.reviewed_at = datetime.utcnow()

    if status == "approved":
        days = approved_leave_days(lr.start_date, lr.end_date, lr.half_day)
        bal = get_balance(lr.employee_id, lr.leave_type_id, lr.start_date.year)
        if bal:
            bal.used_days = _round2(float(bal.used_days or 0) + days)
        else:
            log.info("leave request %s approved without a %s balance row; nothing charged",
                     lr.id, lr.start_date.year)

    db.session.commit()

    payload = leave_status_payload(lr, status)
    if payload:
        notify_leave_event(payload)
    return lr


# ---------- allotment ----------

def allot_leave_balances(employee_ids: Iterable[int], year: int, days_by_type: Dict) -> int:
    """
    Upsert (employee, leave type, year) balances setting total_days.
    used_days of existing rows is left alone. Returns rows written.
    """
    try:
        employee_ids = [_as_id(e) for e in (employee_ids or [])]
    except (TypeError, ValueError):
        raise APIError("VALIDATION", "employee_ids must be integers", 422)
    if not employee_ids:
        raise APIError("VALIDATION", "Select at least one employee to allot leaves.", 422)

    updates = []
    for lt_id, raw in (days_by_type or {}).items():
        try:
            lt_id = _as_id(lt_id)
        except (TypeError, ValueError):
            raise APIError("VALIDATION", f"Invalid leave type id {lt_id!r}", 422)
        try:
            days = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError):
            continue
        if not days.is_finite() or days < 0:
            continue
        updates.append((lt_id, _round2(days)))

    if not updates:
        raise APIError("VALIDATION",
                       "Enter total days for at least one leave type (or leave blank to skip).", 422)

    known = {e.id for e in Employee.query.filter(Employee.id.in_(employee_ids)).all()}
    missing = sorted(set(employee_ids) - known)
    if missing:
        raise APIError("NOT_FOUND", "Unknown employees", 404, payload={"employee_ids": missing})

    written = 0
    for emp_id in employee_ids:
        for lt_id, days in updates:
            bal = get_balance(emp_id, lt_id, year)
            if bal:
                bal.total_days = days
            else:
                db.session.add(LeaveBalance(
                    employee_id=emp_id, leave_type_id=lt_id, year=year,
                    total_days=days, used_days=Decimal("0"),
                ))
            written += 1
    db.session.commit()
    return written


def delete_balance(balance_id: int) -> None:
    bal = db.session.get(LeaveBalance, balance_id)
    if not bal:
        raise APIError("NOT_FOUND", "Leave balance not found", 404)
    db.session.delete(bal)
    db.session.commit()


def delete_balance_group(employee_id: int, year: int) -> int:
    n = LeaveBalance.query.filter_by(employee_id=employee_id, year=year).delete()
    db.session.commit()
    return n
