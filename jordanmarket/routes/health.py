"""
Health Check Route
Verifies the API is running and the database answers
"""
from flask import Blueprint, jsonify
from sqlalchemy import text

from jordanmarket.models import db
from jordanmarket.rate_limit import limiter
from jordanmarket.logger_config import error_logger

bp = Blueprint("health", __name__)


@bp.route("/health", methods=["GET"])
@limiter.exempt
def health():
    """
    GET /api/health
    Health check endpoint - no authentication required
    /api prefix is added globally during blueprint registration
    """
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        db.session.rollback()
        error_logger.error(f"Health check database ping failed: {e}")
        database = "unavailable"

    status = 200 if database == "ok" else 503
    return jsonify({
        "status": "ok" if status == 200 else "degraded",
        "service": "jordanmarket backend",
        "database": database,
    }), status
