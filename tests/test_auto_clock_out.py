from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from hrdesk_api.extensions import db
from hrdesk_api.models.attendance import AttendanceRecord
from hrdesk_api.services import auto_clock_out as sweep
from tests.conftest import make_employee, make_settings, add_attendance

DAY = date(2025, 3, 10)


def _at(h, m=0):
    return datetime(2025, 3, 10, h, m, tzinfo=timezone.utc)


def _open_rows(session, n, clock_in_hour=9):
    rows = []
    for i in range(n):
        emp = make_employee(session)
        rows.append(add_attendance(session, emp, DAY, clock_in=datetime(2025, 3, 10, clock_in_hour + i, 0)))
    return rows


def test_not_configured(session):
    res = sweep.run_auto_clock_out(None, now=_at(23))
    assert res.outcome == sweep.NOT_CONFIGURED
    assert res.processed_count is None


def test_invalid_time_is_reported_not_raised(session):
    res = sweep.run_auto_clock_out("25:99", now=_at(23))
    assert res.outcome == sweep.INVALID_TIME
    assert res.is_error


def test_before_cutoff_touches_nothing(session):
    rows = _open_rows(session, 2)
    res = sweep.run_auto_clock_out("7:00 PM", now=_at(18, 59))
    assert res.outcome == sweep.NOT_REACHED
    assert res.message == "Auto clock-out time not reached yet"
    for r in rows:
        db.session.refresh(r)
        assert r.clock_out is None and r.total_hours is None


def test_closes_all_open_rows_at_cutoff(session):
    rows = _open_rows(session, 3)            # clock-in 09:00, 10:00, 11:00
    res = sweep.run_auto_clock_out("19:00", now=_at(21, 15))
    assert res.outcome == sweep.PROCESSED
    assert res.processed_count == 3

    expected = [Decimal("10.00"), Decimal("9.00"), Decimal("8.00")]
    for r, hours in zip(rows, expected):
        db.session.refresh(r)
        assert r.clock_out == datetime(2025, 3, 10, 19, 0)   # cutoff, not "now"
        assert r.total_hours == hours


def test_row_with_clock_in_after_cutoff_is_skipped(session):
    ok_row = _open_rows(session, 1)[0]
    late = add_attendance(session, make_employee(session), DAY, clock_in=datetime(2025, 3, 10, 19, 30))

    res = sweep.run_auto_clock_out("19:00", now=_at(20))
    assert res.processed_count == 1
    assert res.skipped_count == 1

    db.session.refresh(ok_row); db.session.refresh(late)
    assert ok_row.clock_out is not None
    assert late.clock_out is None


def test_other_days_and_closed_rows_are_left_alone(session):
    emp = make_employee(session)
    yesterday = add_attendance(session, emp, date(2025, 3, 9), clock_in=datetime(2025, 3, 9, 9, 0))
    closed = add_attendance(session, make_employee(session), DAY,
                            clock_in=datetime(2025, 3, 10, 9, 0), clock_out=datetime(2025, 3, 10, 17, 0))
    no_clock_in = add_attendance(session, make_employee(session), DAY, status="absent")

    res = sweep.run_auto_clock_out("19", now=_at(20))
    assert res.outcome == sweep.NOTHING_TO_DO
    assert res.processed_count == 0

    db.session.refresh(yesterday); db.session.refresh(closed); db.session.refresh(no_clock_in)
    assert yesterday.clock_out is None
    assert closed.clock_out == datetime(2025, 3, 10, 17, 0)
    assert no_clock_in.clock_out is None


def test_rerun_is_idempotent(session):
    _open_rows(session, 2)
    first = sweep.run_auto_clock_out("19:00", now=_at(20))
    second = sweep.run_auto_clock_out("19:00", now=_at(22))
    assert first.processed_count == 2
    assert second.outcome == sweep.NOTHING_TO_DO


def test_today_follows_app_timezone(app, session):
    app.config["APP_TIMEZONE"] = "Asia/Kolkata"
    emp = make_employee(session)
    # 2025-03-10 14:00 IST is 08:30 UTC
    rec = add_attendance(session, emp, DAY, clock_in=datetime(2025, 3, 10, 3, 30))
    # 2025-03-10 19:30 UTC is already 2025-03-11 in IST; the 10th is not "today"
    res = sweep.run_auto_clock_out("7:00 PM", now=datetime(2025, 3, 10, 19, 30, tzinfo=timezone.utc))
    assert res.outcome == sweep.NOT_REACHED

    res = sweep.run_auto_clock_out("7:00 PM", now=datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc))
    assert res.processed_count == 1
    db.session.refresh(rec)
    # 19:00 IST -> 13:30 UTC
    assert rec.clock_out == datetime(2025, 3, 10, 13, 30)
    assert rec.total_hours == Decimal("10.00")


# ---------- HTTP ----------

@pytest.fixture
def fixed_now(monkeypatch):
    def _set(dt):
        monkeypatch.setattr(sweep, "local_now", lambda: dt)
    return _set


def test_endpoint_not_configured_without_settings(client):
    resp = client.post("/api/auto-clock-out")
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Auto clock-out time not configured"}


def test_endpoint_processes_rows(client, session, fixed_now):
    make_settings(session, auto_clock_out_time="7:00 PM")
    _open_rows(session, 3)
    fixed_now(_at(19, 5))
    resp = client.post("/api/auto-clock-out")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["processedCount"] == 3
    assert "3" in body["message"]


def test_endpoint_not_reached(client, session, fixed_now):
    make_settings(session, auto_clock_out_time="19:00")
    fixed_now(_at(10))
    resp = client.post("/api/auto-clock-out")
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Auto clock-out time not reached yet"


def test_endpoint_invalid_time_is_400(client, session):
    make_settings(session, auto_clock_out_time="half past seven")
    resp = client.post("/api/auto-clock-out")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_endpoint_requires_token_when_configured(app, client, session):
    app.config["AUTO_CLOCK_OUT_TOKEN"] = "s3cret"
    assert client.post("/api/auto-clock-out").status_code == 401
    resp = client.post("/api/auto-clock-out", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200


def test_failed_row_update_is_rolled_back_and_skipped(session, monkeypatch):
    rows = _open_rows(session, 3)
    sess = db.session()
    real_commit = sess.commit
    calls = {"n": 0}

    def flaky_commit():
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("UPDATE attendance", {}, Exception("database is locked"))
        return real_commit()

    monkeypatch.setattr(sess, "commit", flaky_commit)
    res = sweep.run_auto_clock_out("19:00", now=_at(21))
    monkeypatch.undo()

    assert res.outcome == sweep.PROCESSED
    assert res.processed_count == 2
    assert res.skipped_count == 1

    for r in rows:
        db.session.refresh(r)
    assert rows[0].clock_out == datetime(2025, 3, 10, 19, 0)
    assert rows[1].clock_out is None and rows[1].total_hours is None
    assert rows[2].clock_out == datetime(2025, 3, 10, 19, 0)
