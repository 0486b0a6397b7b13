# hrdesk_api/models/attendance.py
from __future__ import annotations

from datetime import datetime, date as date_type
from decimal import Decimal
from typing import Optional, Dict, Any

from sqlalchemy import UniqueConstraint, CheckConstraint, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrdesk_api.extensions import db

STATUSES = ("present", "absent", "late", "leave", "week_off")


class AttendanceRecord(db.Model):
    """
    One row per employee per local calendar day.

      clock_in / clock_out -> naive UTC timestamps
      total_hours          -> clock_out - clock_in in hours, 2dp
      status               -> present | absent | late | leave | week_off

    Created on clock-in; closed by a manual clock-out or the auto clock-out
    sweep. Never deleted by the accounting code.
    """

    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"), index=True, nullable=False
    )
    date: Mapped[date_type] = mapped_column(db.Date, index=True, nullable=False)

    clock_in: Mapped[Optional[datetime]] = mapped_column(db.DateTime, nullable=True)
    clock_out: Mapped[Optional[datetime]] = mapped_column(db.DateTime, nullable=True)
    total_hours: Mapped[Optional[Decimal]] = mapped_column(db.Numeric(6, 2), nullable=True)

    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default="present")
    notes: Mapped[Optional[str]] = mapped_column(db.Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    employee = relationship("Employee", lazy="joined")

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        CheckConstraint(
            "status in ('present','absent','late','leave','week_off')",
            name="ck_attendance_status",
        ),
        Index("ix_attendance_date_status", "date", "status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": self.date.isoformat(),
            "clock_in": self.clock_in.isoformat() if self.clock_in else None,
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
            "total_hours": float(self.total_hours) if self.total_hours is not None else None,
            "status": self.status,
            "notes": self.notes,
        }
