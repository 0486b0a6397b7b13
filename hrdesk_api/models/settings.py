from datetime import datetime
from hrdesk_api.extensions import db

class AppSettings(db.Model):
    """Process-wide policy settings. Single row; read on demand."""
    __tablename__ = "settings"

    id = db.Column(db.Integer, primary_key=True)
    max_late_days = db.Column(db.Integer, nullable=False, default=3)
    late_policy_deduction_per_day = db.Column(db.Numeric(5,2), nullable=False, default=1)
    late_policy_leave_type_id = db.Column(
        db.Integer, db.ForeignKey("leave_types.id", ondelete="SET NULL"), nullable=True
    )
    auto_clock_out_time = db.Column(db.String(20), nullable=True)   # "19", "19:30", "7:30 PM"
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    late_policy_leave_type = db.relationship("LeaveType")

    @classmethod
    def current(cls):
        return cls.query.order_by(cls.id.asc()).first()

    def to_dict(self):
        return {
            "max_late_days": self.max_late_days,
            "late_policy_deduction_per_day": float(self.late_policy_deduction_per_day or 0),
            "late_policy_leave_type_id": self.late_policy_leave_type_id,
            "auto_clock_out_time": self.auto_clock_out_time,
        }
