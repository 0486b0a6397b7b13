# hrdesk_api/blueprints/auto_clock_out.py
import hmac

from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError

from hrdesk_api.common.http import fail
from hrdesk_api.services.policy_settings import load_policy_settings
from hrdesk_api.services.auto_clock_out import run_auto_clock_out

bp = Blueprint("auto_clock_out", __name__, url_prefix="/api/auto-clock-out")


def _authorized() -> bool:
    expected = current_app.config.get("AUTO_CLOCK_OUT_TOKEN")
    if not expected:
        return True
    got = request.headers.get("Authorization", "")
    return hmac.compare_digest(got, f"Bearer {expected}")


@bp.post("")
def auto_clock_out():
    """Scheduler hook: close today's open attendance rows once the cutoff has passed."""
    if not _authorized():
        return fail("Unauthorized", status=401)

    try:
        settings = load_policy_settings()
    except SQLAlchemyError:
        current_app.logger.exception("auto clock-out: could not read settings")
        return fail("Failed to fetch settings", status=500)

    try:
        result = run_auto_clock_out(settings.auto_clock_out_time if settings else None)
    except SQLAlchemyError:
        current_app.logger.exception("auto clock-out: could not read attendance")
        return fail("Failed to fetch attendance records", status=500)

    if result.is_error:
        return fail(result.message, status=400)
    return jsonify(result.to_dict()), 200
