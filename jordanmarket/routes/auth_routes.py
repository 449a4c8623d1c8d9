"""
Authentication Routes Blueprint
Handles registration, login, logout and the current user's profile
"""
from datetime import datetime

from flask import Blueprint, request, jsonify
from werkzeug.security import check_password_hash, generate_password_hash

from jordanmarket.models import db, User, Profile
from jordanmarket.auth import generate_token, login_required, set_auth_cookie, clear_auth_cookie
from jordanmarket.capabilities import resolve_capabilities, capabilities_dict, primary_dashboard, BUYER
from jordanmarket.errors import failure, result_response, INVALID_INPUT, UNAUTHENTICATED
from jordanmarket.error_handler import handle_exception
from jordanmarket.activity_logger import client_ip
from jordanmarket.logger_config import app_logger, log_auth_event
from jordanmarket.rate_limit import category_limit, AUTH
from jordanmarket.schemas import profile_schema
from jordanmarket.services.onboarding import update_profile
from jordanmarket.validation import (
    validate_request_data, LoginSchema, RegisterSchema, ProfileUpdateSchema,
)

# Create blueprint
bp = Blueprint('auth', __name__)


def _session_response(user, profile, status=200):
    """Issue a token for the user and set it as the HttpOnly cookie"""
    caps = resolve_capabilities(user.id)
    role = primary_dashboard(caps)
    token = generate_token(user, role=role)

    response = jsonify({
        "success": True,
        "token": token,
        "user_id": user.id,
        "email": user.email,
        "profile": profile_schema.dump(profile),
        "capabilities": capabilities_dict(caps),
        "redirect_url": f"/{caps.locale}/{role}/",
    })
    return set_auth_cookie(response, token), status


@bp.route('/auth/register', methods=['POST'])
@category_limit(AUTH)
def register():
    """
    POST /api/auth/register
    Create an account with buyer capability

    Request Body:
        {
            "email": "user@example.com",
            "password": "secret123",
            "full_name": "Name",
            "phone": "0791234567",
            "locale": "ar"
        }
    """
    try:
        data, errors = validate_request_data(RegisterSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        email = data['email'].strip().lower()
        if User.query.filter_by(email=email).first():
            log_auth_event('register', False, email, ip_address=client_ip(), error='email exists')
            return result_response(failure(INVALID_INPUT, details={'email': ['Email is already registered']}))

        user = User(email=email, password_hash=generate_password_hash(data['password']))
        db.session.add(user)
        db.session.flush()

        profile = Profile(
            id=user.id,
            full_name=data['full_name'],
            phone=data['phone'],
            preferred_locale=data.get('locale') or 'ar',
            role=BUYER,
            is_buyer=True,
        )
        db.session.add(profile)
        db.session.commit()

        log_auth_event('register', True, email, user_id=user.id, role=BUYER, ip_address=client_ip())
        return _session_response(user, profile, status=201)

    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "register"})


@bp.route('/auth/login', methods=['POST'])
@category_limit(AUTH)
def login():
    """
    POST /api/auth/login
    Authenticate and return a JWT (also set as the access_token cookie)
    """
    try:
        data, errors = validate_request_data(LoginSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        email = data['email'].strip().lower()
        user = User.query.filter_by(email=email).first()
        if not user or not check_password_hash(user.password_hash, data['password']):
            log_auth_event('login', False, email, ip_address=client_ip(), error='invalid credentials')
            return result_response(failure(UNAUTHENTICATED))

        user.last_login_at = datetime.utcnow()
        db.session.commit()

        response = _session_response(user, user.profile or db.session.get(Profile, user.id))
        log_auth_event('login', True, email, user_id=user.id, ip_address=client_ip())
        return response

    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "login"})


@bp.route('/auth/logout', methods=['POST'])
def logout():
    """
    POST /api/auth/logout
    Clear the access_token cookie
    """
    response = clear_auth_cookie(jsonify({"success": True}))
    log_auth_event('logout', True, ip_address=client_ip())
    return response, 200


@bp.route('/auth/me', methods=['GET'])
@login_required
def me():
    """
    GET /api/auth/me
    Current user, profile and resolved capabilities
    """
    try:
        caps = resolve_capabilities(request.user_id)
        profile = db.session.get(Profile, request.user_id)
        return jsonify({
            "success": True,
            "user_id": request.user_id,
            "email": request.user.email,
            "profile": profile_schema.dump(profile),
            "capabilities": capabilities_dict(caps),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "me"})


@bp.route('/auth/profile', methods=['PUT'])
@login_required
def update_my_profile():
    """
    PUT /api/auth/profile
    Update name, phone or preferred locale
    """
    try:
        data, errors = validate_request_data(ProfileUpdateSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = update_profile(request.user_id, data)
        app_logger.info(f"Profile updated for user {request.user_id}: {sorted(data)}")
        return jsonify({"success": True, "profile": profile_schema.dump(result['profile'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "update_profile"})
