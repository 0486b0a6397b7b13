# hrdesk_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from hrdesk_api.common.http import fail
from hrdesk_api.extensions import db
from hrdesk_api.models.employee import Employee


def current_employee_id() -> Optional[int]:
    """
    Identity issued by the auth provider is the employee id
    (int, numeric string, or {"employee_id": ...}).
    """
    ident = get_jwt_identity()
    if isinstance(ident, dict):
        ident = ident.get("employee_id")
    try:
        return int(ident)
    except (TypeError, ValueError):
        return None


def current_role() -> Optional[str]:
    """Role from the JWT claim, falling back to the employees table."""
    claims = get_jwt() or {}
    role = claims.get("role")
    if role:
        return role
    emp_id = current_employee_id()
    if emp_id is None:
        return None
    emp = db.session.get(Employee, emp_id)
    return emp.role if emp else None


def requires_roles(*codes: str):
    """
    Require that the current user has one of the given role codes.
    - Uses the role in the JWT if present; falls back to DB.
    - 'admin' always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if current_employee_id() is None:
                return fail("Unauthorized", status=401)

            role = current_role()
            if role is None:
                return fail("Unauthorized", status=401)
            if role == "admin" or role in codes:
                return fn(*args, **kwargs)
            return fail("Forbidden", status=403)
        return inner
    return outer
