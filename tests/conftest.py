import os
from datetime import date, datetime
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from hrdesk_api import create_app
from hrdesk_api.extensions import db
from hrdesk_api.models.employee import Employee
from hrdesk_api.models.attendance import AttendanceRecord
from hrdesk_api.models.leave import LeaveType, LeaveBalance
from hrdesk_api.models.settings import AppSettings


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config.update(
        TESTING=True,
        APP_TIMEZONE="UTC",
        LEAVE_NOTIFY_URL=None,
        AUTO_CLOCK_OUT_TOKEN=None,
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    yield db.session


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


_seq = {"n": 0}


def make_employee(session, role="employee", is_active=True, **kw):
    _seq["n"] += 1
    n = _seq["n"]
    e = Employee(
        email=kw.pop("email", f"emp{n}@test.local"),
        first_name=kw.pop("first_name", f"Emp{n}"),
        last_name=kw.pop("last_name", "Test"),
        role=role,
        is_active=is_active,
        **kw,
    )
    session.add(e); session.commit()
    return e


def make_leave_type(session, name="Casual Leave", default_days=12, **kw):
    lt = LeaveType(name=name, default_days=default_days, is_active=kw.pop("is_active", True), **kw)
    session.add(lt); session.commit()
    return lt


def make_balance(session, emp, lt, year, total=12, used=0):
    b = LeaveBalance(employee_id=emp.id, leave_type_id=lt.id, year=year,
                     total_days=Decimal(str(total)), used_days=Decimal(str(used)))
    session.add(b); session.commit()
    return b


def make_settings(session, **kw):
    s = AppSettings(
        max_late_days=kw.pop("max_late_days", 3),
        late_policy_deduction_per_day=kw.pop("late_policy_deduction_per_day", 1),
        **kw,
    )
    session.add(s); session.commit()
    return s


def add_attendance(session, emp, day: date, status="present", clock_in: datetime = None, clock_out=None):
    r = AttendanceRecord(employee_id=emp.id, date=day, status=status,
                         clock_in=clock_in, clock_out=clock_out)
    session.add(r); session.commit()
    return r


def auth_headers(emp, role=None):
    token = create_access_token(identity=str(emp.id), additional_claims={"role": role or emp.role})
    return {"Authorization": f"Bearer {token}"}
