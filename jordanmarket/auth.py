"""
Authentication Utilities

HS256 access tokens issued at login/registration, read from the
Authorization header or the HttpOnly `access_token` cookie.
"""
import jwt
from functools import wraps
from flask import request, jsonify, current_app
from datetime import datetime, timedelta

from jordanmarket.models import db, User
from jordanmarket.errors import UNAUTHENTICATED
from jordanmarket.i18n import translate, resolve_locale
from jordanmarket.logger_config import app_logger

TOKEN_COOKIE_NAME = 'access_token'
TOKEN_ALGORITHM = 'HS256'

INVALID_TOKEN = 'INVALID_TOKEN'
USER_NOT_FOUND = 'USER_NOT_FOUND'


def _secret_key():
    secret_key = current_app.config.get('SECRET_KEY')
    if not secret_key:
        raise ValueError("SECRET_KEY not configured")
    return secret_key


def token_lifetime():
    return timedelta(days=current_app.config.get('JWT_EXPIRY_DAYS', 7))


def generate_token(user, role=None):
    """
    Issue an access token for `user`

    `role` is the primary dashboard at sign-in time. It is informational
    only; capabilities are re-read from the profile on every request.
    """
    now = datetime.utcnow()
    payload = {
        'user_id': user.id,
        'email': user.email,
        'role': role,
        'iat': now,
        'exp': now + token_lifetime(),
    }
    return jwt.encode(payload, _secret_key(), algorithm=TOKEN_ALGORITHM)


def verify_token(token):
    """Decoded payload, or None for an expired/forged/malformed token"""
    try:
        return jwt.decode(token, _secret_key(), algorithms=[TOKEN_ALGORITHM], leeway=10)
    except jwt.ExpiredSignatureError:
        app_logger.info("Rejected expired access token")
    except jwt.InvalidTokenError as e:
        app_logger.warning(f"Rejected invalid access token - {type(e).__name__}: {e}")
    return None


def get_token_from_request():
    """Bearer header first, then the access_token cookie"""
    auth_header = request.headers.get('Authorization', '')
    scheme, _, token = auth_header.partition(' ')
    if scheme == 'Bearer' and token.strip():
        return token.strip()
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


def get_current_user():
    """Token payload for the current request, or None"""
    token = get_token_from_request()
    return verify_token(token) if token else None


def set_auth_cookie(response, token):
    response.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        max_age=int(token_lifetime().total_seconds()),
        httponly=True,
        secure=current_app.config.get('SESSION_COOKIE_SECURE', False),
        samesite=current_app.config.get('SESSION_COOKIE_SAMESITE', 'Lax'),
    )
    return response


def clear_auth_cookie(response):
    response.delete_cookie(TOKEN_COOKIE_NAME)
    return response


def unauthenticated_response(code=UNAUTHENTICATED):
    return jsonify({
        "success": False,
        "error": translate(UNAUTHENTICATED, resolve_locale()),
        "code": code,
    }), 401


def require_auth(f):
    """
    Reject the request with 401 unless it carries a valid token for an existing user

    The wrapped view sees request.current_user (payload), request.user_id
    and request.user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_token_from_request():
            return unauthenticated_response()

        payload = get_current_user()
        if not payload:
            return unauthenticated_response(INVALID_TOKEN)

        user = db.session.get(User, payload.get('user_id'))
        if not user:
            app_logger.warning(f"Token for unknown user {payload.get('user_id')} on {request.path}")
            return unauthenticated_response(USER_NOT_FOUND)

        request.current_user = payload
        request.user_id = user.id
        request.user = user
        return f(*args, **kwargs)

    return decorated_function


login_required = require_auth
