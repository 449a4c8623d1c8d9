"""
Rate Limiting
Flask-Limiter instance with per-category shared buckets keyed by user or IP
"""
from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from jordanmarket.auth import get_current_user

AUTH = 'auth'
CHECKOUT = 'checkout'
QANZ_REDEEM = 'qanz_redeem'
ADMIN_ACTION = 'admin_action'
GENERAL = 'general'


def rate_limit_key():
    """Authenticated requests are limited per user, anonymous ones per client IP"""
    payload = get_current_user()
    if payload and payload.get('user_id'):
        return f"user:{payload['user_id']}"
    return f"ip:{get_remote_address()}"


def _general_limit():
    return current_app.config['RATE_LIMITS'][GENERAL]


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[_general_limit],
)


def category_limit(category):
    """
    Decorator applying the configured limit for an action category

    All routes decorated with the same category share one bucket per key.
    """
    return limiter.shared_limit(
        lambda: current_app.config['RATE_LIMITS'][category],
        scope=category,
    )
