# hrdesk_api/services/late_policy.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func

from hrdesk_api.extensions import db
from hrdesk_api.models.attendance import AttendanceRecord
from hrdesk_api.models.employee import Employee
from hrdesk_api.models.leave import LeaveBalance, LeaveType, LateDeductionLog
from hrdesk_api.services.policy_settings import PolicySettings

log = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class PolicyResult:
    success: bool
    message: str
    deducted: Decimal = ZERO

    def to_dict(self):
        return {"success": self.success, "message": self.message, "deducted": float(self.deducted)}


def _fmt(n) -> str:
    return f"{float(n):g}"


def month_bounds(year: int, month: int):
    """[first day of month, first day of next month)"""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def count_late_days(employee_id: int, year: int, month: int) -> int:
    start, end = month_bounds(year, month)
    return (db.session.query(func.count(AttendanceRecord.id))
            .filter(AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.status == "late",
                    AttendanceRecord.date >= start,
                    AttendanceRecord.date < end)
            .scalar()) or 0


def deduction_for(late_count: int, last_deducted_count: int, max_late_days: int, per_day: Decimal) -> Decimal:
    """
    Days still owed for this month: everything above the free allowance,
    minus what an earlier run already charged.
    """
    total = max(0, late_count - max_late_days) * per_day
    already = max(0, last_deducted_count - max_late_days) * per_day
    return Decimal(total) - Decimal(already)


def _charge_balance(employee_id: int, leave_type_id: int, year: int, days: Decimal):
    bal = LeaveBalance.query.filter_by(
        employee_id=employee_id, leave_type_id=leave_type_id, year=year
    ).first()
    if bal:
        bal.used_days = Decimal(str(bal.used_days or 0)) + days
        return bal

    # seed a balance from the leave type's default allotment
    lt = db.session.get(LeaveType, leave_type_id)
    total = Decimal(str(lt.default_days)) if lt and lt.default_days is not None else ZERO
    bal = LeaveBalance(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        year=year,
        total_days=total,
        used_days=days,
    )
    db.session.add(bal)
    return bal


def apply_late_policy_deduction(
    employee_id: int,
    year: int,
    month: int,
    settings: Optional[PolicySettings],
) -> PolicyResult:
    """
    Charge an employee's leave balance for late days beyond the monthly
    allowance. Incremental: only the part not charged by an earlier run for
    the same month is applied. Never raises.
    """
    try:
        if settings is None:
            return PolicyResult(False, "Settings not found")

        if not settings.leave_type_id:
            return PolicyResult(True, "Late policy not configured (no leave type set)")

        max_late = settings.max_late_days
        late_count = count_late_days(employee_id, year, month)

        entry = LateDeductionLog.query.filter_by(
            employee_id=employee_id, year=year, month=month
        ).first()
        last_count = entry.last_deducted_late_count if entry else 0

        new_deduction = deduction_for(late_count, last_count, max_late, settings.deduction_per_day)
        if new_deduction <= 0:
            return PolicyResult(True, f"No new deduction (late days: {late_count}, max: {max_late})")

        _charge_balance(employee_id, settings.leave_type_id, year, new_deduction)

        if entry:
            entry.last_deducted_late_count = late_count
            entry.total_deducted = Decimal(str(entry.total_deducted or 0)) + new_deduction
            entry.updated_at = datetime.utcnow()
        else:
            db.session.add(LateDeductionLog(
                employee_id=employee_id,
                year=year,
                month=month,
                last_deducted_late_count=late_count,
                total_deducted=new_deduction,
                leave_type_id=settings.leave_type_id,
            ))

        db.session.commit()
        log.info("late policy: employee=%s %04d-%02d late=%s deducted=%s",
                 employee_id, year, month, late_count, new_deduction)
        return PolicyResult(
            True,
            f"Deducted {_fmt(new_deduction)} day(s) for {late_count} late days",
            deducted=new_deduction,
        )
    except Exception as e:
        db.session.rollback()
        log.exception("late policy failed for employee %s (%04d-%02d)", employee_id, year, month)
        return PolicyResult(False, str(e) or "Unknown error")


def apply_late_policy_for_all_employees(
    year: int,
    month: int,
    settings: Optional[PolicySettings],
) -> PolicyResult:
    """Run the deduction for every active non-admin employee, one at a time."""
    try:
        employee_ids = [row.id for row in (
            db.session.query(Employee.id)
            .filter(Employee.is_active.is_(True), Employee.role != "admin")
            .order_by(Employee.id.asc())
            .all()
        )]
        if not employee_ids:
            return PolicyResult(False, "No active employees found")

        processed = 0
        total_deducted = ZERO
        for emp_id in employee_ids:
            res = apply_late_policy_deduction(emp_id, year, month, settings)
            if res.success:
                processed += 1
                total_deducted += res.deducted
            else:
                log.warning("late policy: employee %s not processed: %s", emp_id, res.message)

        return PolicyResult(
            True,
            f"Processed {processed} / {len(employee_ids)} employees",
            deducted=total_deducted,
        )
    except Exception as e:
        db.session.rollback()
        log.exception("late policy batch failed for %04d-%02d", year, month)
        return PolicyResult(False, str(e) or "Unknown error")
