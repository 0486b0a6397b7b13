from datetime import datetime
from hrdesk_api.extensions import db

ROLES = ("admin", "hr", "employee")

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)

    code  = db.Column(db.String(32), unique=True, nullable=True)     # e.g. 2024EMP-007
    email = db.Column(db.String(255), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    designation = db.Column(db.String(120), nullable=True)

    role      = db.Column(db.String(16), default="employee", nullable=False)  # admin/hr/employee
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    week_off_day = db.Column(db.SmallInteger, nullable=True)   # 0=Sunday .. 6=Saturday
    joining_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("role in ('admin','hr','employee')", name="ck_employee_role"),
        db.CheckConstraint("week_off_day is null or (week_off_day between 0 and 6)", name="ck_employee_week_off"),
        db.Index("ix_emp_active_role", "is_active", "role"),
    )

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_brief(self):
        return {"id": self.id, "code": self.code, "first_name": self.first_name,
                "last_name": self.last_name, "email": self.email}
