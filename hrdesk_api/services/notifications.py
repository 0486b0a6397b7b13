# hrdesk_api/services/notifications.py
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import requests
from flask import current_app, has_app_context

log = logging.getLogger(__name__)


def _post(url: str, payload: Dict[str, Any], timeout: float) -> None:
    try:
        resp = requests.post(url, json=payload, timeout=timeout)
        resp.raise_for_status()
    except Exception:
        # best-effort; the leave transaction has already been committed
        log.warning("leave notification %r to %s failed", payload.get("type"), url, exc_info=True)


def notify_leave_event(payload: Dict[str, Any]) -> Optional[threading.Thread]:
    """
    Fire-and-forget POST of a leave event to LEAVE_NOTIFY_URL.

    Returns the worker thread (tests join it), or None when notifications are
    not configured. Never raises.
    """
    try:
        url = current_app.config.get("LEAVE_NOTIFY_URL") if has_app_context() else None
        if not url:
            log.debug("LEAVE_NOTIFY_URL not set; dropping %r notification", payload.get("type"))
            return None
        timeout = float(current_app.config.get("LEAVE_NOTIFY_TIMEOUT", 5))
        t = threading.Thread(target=_post, args=(url, dict(payload), timeout), daemon=True)
        t.start()
        return t
    except Exception:
        log.warning("could not dispatch leave notification", exc_info=True)
        return None


def leave_status_payload(leave_request, status: str) -> Optional[Dict[str, Any]]:
    emp = leave_request.employee
    if not emp or not emp.email:
        return None
    return {
        "type": "status_update",
        "employeeEmail": emp.email,
        "employeeName": emp.full_name or "Employee",
        "leaveTypeName": leave_request.leave_type.name if leave_request.leave_type else "Leave",
        "startDate": leave_request.start_date.isoformat(),
        "endDate": leave_request.end_date.isoformat(),
        "status": status,
    }


def new_request_payload(leave_request) -> Dict[str, Any]:
    emp = leave_request.employee
    return {
        "type": "new_request",
        "employeeName": emp.full_name if emp else "",
        "employeeEmail": emp.email if emp else None,
        "leaveTypeName": leave_request.leave_type.name if leave_request.leave_type else "Leave",
        "startDate": leave_request.start_date.isoformat(),
        "endDate": leave_request.end_date.isoformat(),
        "reason": leave_request.reason or "",
        "halfDay": bool(leave_request.half_day) or None,
    }
