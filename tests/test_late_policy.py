from datetime import date
from decimal import Decimal

from hrdesk_api.extensions import db
from hrdesk_api.models.leave import LeaveBalance, LateDeductionLog
from hrdesk_api.services.late_policy import (
    apply_late_policy_deduction,
    apply_late_policy_for_all_employees,
    count_late_days,
    deduction_for,
)
from hrdesk_api.services.policy_settings import PolicySettings, load_policy_settings
from tests.conftest import (
    make_employee, make_leave_type, make_balance, make_settings, add_attendance, auth_headers,
)

YEAR, MONTH = 2025, 3


def _policy(lt, max_late=3, per_day="1"):
    return PolicySettings(max_late_days=max_late, deduction_per_day=Decimal(per_day), leave_type_id=lt.id)


class _Lates:
    """Adds consecutive late days for one employee in the test month."""
    def __init__(self, session, emp):
        self.session, self.emp, self.n = session, emp, 0

    def upto(self, total):
        while self.n < total:
            self.n += 1
            add_attendance(self.session, self.emp, date(YEAR, MONTH, self.n), status="late")


def _log(emp):
    return LateDeductionLog.query.filter_by(employee_id=emp.id, year=YEAR, month=MONTH).first()


def test_deduction_formula():
    assert deduction_for(2, 0, 3, Decimal("1")) == 0
    assert deduction_for(4, 2, 3, Decimal("1")) == 1
    assert deduction_for(6, 4, 3, Decimal("1")) == 2
    assert deduction_for(6, 6, 3, Decimal("0.5")) == 0
    assert deduction_for(5, 0, 3, Decimal("0.5")) == Decimal("1.0")


def test_count_late_days_is_month_bounded(session):
    emp = make_employee(session)
    add_attendance(session, emp, date(2025, 2, 28), status="late")
    add_attendance(session, emp, date(2025, 3, 1), status="late")
    add_attendance(session, emp, date(2025, 3, 31), status="late")
    add_attendance(session, emp, date(2025, 3, 15), status="present")
    add_attendance(session, emp, date(2025, 4, 1), status="late")
    assert count_late_days(emp.id, 2025, 3) == 2


def test_december_rolls_into_next_year(session):
    emp = make_employee(session)
    add_attendance(session, emp, date(2025, 12, 31), status="late")
    add_attendance(session, emp, date(2026, 1, 1), status="late")
    assert count_late_days(emp.id, 2025, 12) == 1


def test_incremental_deductions_follow_late_count(session):
    lt = make_leave_type(session)
    emp = make_employee(session)
    bal = make_balance(session, emp, lt, YEAR, total=12, used=0)
    policy = _policy(lt)
    lates = _Lates(session, emp)

    applied = []
    for total in (2, 4, 4, 6):
        lates.upto(total)
        res = apply_late_policy_deduction(emp.id, YEAR, MONTH, policy)
        assert res.success, res.message
        applied.append(float(res.deducted))

    assert applied == [0, 1, 0, 2]
    db.session.refresh(bal)
    assert float(bal.used_days) == 3.0
    entry = _log(emp)
    assert entry.last_deducted_late_count == 6
    assert float(entry.total_deducted) == 3.0


def test_second_run_without_new_lates_changes_nothing(session):
    lt = make_leave_type(session)
    emp = make_employee(session)
    bal = make_balance(session, emp, lt, YEAR, total=10, used=1)
    _Lates(session, emp).upto(5)
    policy = _policy(lt)

    first = apply_late_policy_deduction(emp.id, YEAR, MONTH, policy)
    assert first.message == "Deducted 2 day(s) for 5 late days"
    db.session.refresh(bal)
    used_after_first = bal.used_days
    log_updated_at = _log(emp).updated_at

    second = apply_late_policy_deduction(emp.id, YEAR, MONTH, policy)
    assert second.success
    assert second.deducted == 0
    assert second.message == "No new deduction (late days: 5, max: 3)"
    db.session.refresh(bal)
    assert bal.used_days == used_after_first
    assert _log(emp).updated_at == log_updated_at
    assert _log(emp).last_deducted_late_count == 5


def test_log_not_written_while_within_allowance(session):
    lt = make_leave_type(session)
    emp = make_employee(session)
    _Lates(session, emp).upto(3)
    res = apply_late_policy_deduction(emp.id, YEAR, MONTH, _policy(lt))
    assert res.success
    assert _log(emp) is None
    assert LeaveBalance.query.count() == 0


def test_missing_balance_is_created_from_leave_type_default(session):
    lt = make_leave_type(session, default_days=15)
    emp = make_employee(session)
    _Lates(session, emp).upto(4)
    res = apply_late_policy_deduction(emp.id, YEAR, MONTH, _policy(lt, per_day="0.5"))
    assert res.success
    bal = LeaveBalance.query.filter_by(employee_id=emp.id, leave_type_id=lt.id, year=YEAR).one()
    assert float(bal.total_days) == 15.0
    assert float(bal.used_days) == 0.5
    assert _log(emp).leave_type_id == lt.id


def test_unconfigured_leave_type_is_a_soft_noop(session):
    emp = make_employee(session)
    _Lates(session, emp).upto(10)
    res = apply_late_policy_deduction(emp.id, YEAR, MONTH, PolicySettings(max_late_days=3, deduction_per_day=Decimal("1")))
    assert res.success is True
    assert res.message == "Late policy not configured (no leave type set)"
    assert LeaveBalance.query.count() == 0


def test_missing_settings_row_is_a_failure_result(session):
    emp = make_employee(session)
    res = apply_late_policy_deduction(emp.id, YEAR, MONTH, None)
    assert res.success is False
    assert res.message == "Settings not found"


def test_storage_error_becomes_failure_result(session, monkeypatch):
    from hrdesk_api.services import late_policy

    def boom(*a, **kw):
        raise RuntimeError("database is gone")

    monkeypatch.setattr(late_policy, "count_late_days", boom)
    lt = make_leave_type(session)
    res = apply_late_policy_deduction(1, YEAR, MONTH, _policy(lt))
    assert res.success is False
    assert "database is gone" in res.message


def test_batch_skips_admins_and_inactive(session):
    lt = make_leave_type(session)
    a = make_employee(session)
    b = make_employee(session, role="hr")
    admin = make_employee(session, role="admin")
    gone = make_employee(session, is_active=False)
    for emp in (a, b, admin, gone):
        _Lates(session, emp).upto(4)

    res = apply_late_policy_for_all_employees(YEAR, MONTH, _policy(lt))
    assert res.success
    assert res.message == "Processed 2 / 2 employees"
    assert _log(a) is not None and _log(b) is not None
    assert _log(admin) is None and _log(gone) is None


def test_batch_counts_only_successful_employees(session, monkeypatch):
    from hrdesk_api.services import late_policy

    lt = make_leave_type(session)
    a = make_employee(session)
    b = make_employee(session)
    real = late_policy.count_late_days

    def flaky(emp_id, year, month):
        if emp_id == a.id:
            raise RuntimeError("timeout")
        return real(emp_id, year, month)

    monkeypatch.setattr(late_policy, "count_late_days", flaky)
    res = apply_late_policy_for_all_employees(YEAR, MONTH, _policy(lt))
    assert res.success
    assert res.message == "Processed 1 / 2 employees"


def test_batch_without_employees(session):
    make_employee(session, role="admin")
    res = apply_late_policy_for_all_employees(YEAR, MONTH, None)
    assert res.success is False
    assert res.message == "No active employees found"


def test_policy_settings_snapshot(session):
    lt = make_leave_type(session)
    make_settings(session, max_late_days=2, late_policy_deduction_per_day=Decimal("0.5"),
                  late_policy_leave_type_id=lt.id, auto_clock_out_time=" 19:00 ")
    s = load_policy_settings()
    assert s.max_late_days == 2
    assert s.deduction_per_day == Decimal("0.5")
    assert s.leave_type_id == lt.id
    assert s.auto_clock_out_time == "19:00"


def test_apply_endpoint(client, session):
    lt = make_leave_type(session)
    make_settings(session, late_policy_leave_type_id=lt.id)
    hr = make_employee(session, role="hr")
    emp = make_employee(session)
    _Lates(session, emp).upto(5)

    resp = client.post("/api/v1/attendance/late-policy/apply",
                       json={"year": YEAR, "month": MONTH, "employee_id": emp.id},
                       headers=auth_headers(hr))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["deducted"] == 2.0

    resp = client.post("/api/v1/attendance/late-policy/apply",
                       json={"year": YEAR, "month": MONTH}, headers=auth_headers(emp))
    assert resp.status_code == 403
