"""
Config routes - Public configuration endpoint for frontend
Exposes safe, non-secret configuration values to the frontend
"""
from flask import Blueprint, jsonify, current_app

from jordanmarket.i18n import money_str, resolve_locale

bp = Blueprint('config', __name__)


@bp.route('/config', methods=['GET'])
def get_frontend_config():
    """
    GET /api/config
    Public config for the frontend; ONLY safe, non-secret values
    """
    return jsonify({
        "locales": list(current_app.config.get('SUPPORTED_LOCALES', ('ar', 'en'))),
        "default_locale": current_app.config.get('DEFAULT_LOCALE', 'ar'),
        "locale": resolve_locale(),
        "currency": "JOD",
        "delivery_fee": money_str(current_app.config.get('DEFAULT_DELIVERY_FEE')),
        "payment_methods": ["cod"],
    }), 200
