from datetime import datetime
from hrdesk_api.extensions import db

class LeaveType(db.Model):
    __tablename__ = "leave_types"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text)
    default_days = db.Column(db.Numeric(5,2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    @property
    def is_medical(self):
        n = (self.name or "").lower()
        return "sick" in n or "medical" in n

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "description": self.description,
            "default_days": float(self.default_days or 0), "is_active": self.is_active,
        }

class LeaveBalance(db.Model):
    __tablename__ = "leave_balances"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    total_days = db.Column(db.Numeric(6,2), nullable=False, default=0)
    used_days = db.Column(db.Numeric(6,2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance_emp_type_year"),
    )

    @property
    def remaining(self):
        return float(self.total_days or 0) - float(self.used_days or 0)

    leave_type = db.relationship("LeaveType")
    employee = db.relationship("Employee")

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "leave_type": {"id": self.leave_type.id, "name": self.leave_type.name} if self.leave_type else None,
            "year": self.year,
            "total_days": float(self.total_days or 0),
            "used_days": float(self.used_days or 0),
            "remaining": self.remaining,
        }

class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id", ondelete="RESTRICT"), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    half_day = db.Column(db.Boolean, default=False)
    half_day_period = db.Column(db.String(16))          # first_half|second_half
    reason = db.Column(db.Text)
    document_url = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)  # pending|approved|rejected

    reviewed_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"))
    reviewed_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("status in ('pending','approved','rejected')", name="ck_leave_request_status"),
        db.CheckConstraint(
            "half_day_period is null or half_day_period in ('first_half','second_half')",
            name="ck_leave_request_half_day_period",
        ),
    )

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref="leave_requests")
    reviewer = db.relationship("Employee", foreign_keys=[reviewed_by])
    leave_type = db.relationship("LeaveType")

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "leave_type_id": self.leave_type_id,
            "leave_type": self.leave_type.name if self.leave_type else None,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "half_day": bool(self.half_day),
            "half_day_period": self.half_day_period,
            "status": self.status,
            "reason": self.reason,
            "document_url": self.document_url,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

class LateDeductionLog(db.Model):
    """How far the late policy has already charged an employee for a month."""
    __tablename__ = "late_deductions_log"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    last_deducted_late_count = db.Column(db.Integer, nullable=False, default=0)
    total_deducted = db.Column(db.Numeric(6,2), nullable=False, default=0)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "year", "month", name="uq_late_deduction_emp_year_month"),
        db.CheckConstraint("month between 1 and 12", name="ck_late_deduction_month"),
    )
