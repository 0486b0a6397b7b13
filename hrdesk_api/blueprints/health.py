from flask import Blueprint
from sqlalchemy import text
from hrdesk_api.extensions import db
from hrdesk_api.common.http import ok, fail

bp = Blueprint("health", __name__, url_prefix="/api/health")

@bp.get("")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        return fail("database unavailable", status=503, detail=str(e))
    return ok({"status": "ok"})
