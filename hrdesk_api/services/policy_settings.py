# hrdesk_api/services/policy_settings.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from hrdesk_api.models.settings import AppSettings


@dataclass(frozen=True)
class PolicySettings:
    """Snapshot of the settings row, passed explicitly into the accounting services."""
    max_late_days: int = 0
    deduction_per_day: Decimal = Decimal("0")
    leave_type_id: Optional[int] = None
    auto_clock_out_time: Optional[str] = None

    @classmethod
    def from_row(cls, row: AppSettings) -> "PolicySettings":
        return cls(
            max_late_days=int(row.max_late_days or 0),
            deduction_per_day=Decimal(str(row.late_policy_deduction_per_day or 0)),
            leave_type_id=row.late_policy_leave_type_id,
            auto_clock_out_time=(row.auto_clock_out_time or "").strip() or None,
        )


def load_policy_settings() -> Optional[PolicySettings]:
    """None when the settings row has not been created yet."""
    row = AppSettings.current()
    return PolicySettings.from_row(row) if row else None
