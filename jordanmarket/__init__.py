import time

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_wtf.csrf import CSRFProtect
from flask_talisman import Talisman
from werkzeug.security import generate_password_hash

from config import Config
from jordanmarket.models import db, User, Profile
from jordanmarket.schemas import ma
from jordanmarket.rate_limit import limiter
from jordanmarket.errors import FORBIDDEN, NOT_FOUND, INVALID_INPUT, RATE_LIMITED, SERVER_ERROR
from jordanmarket.i18n import translate, resolve_locale
from jordanmarket.activity_logger import client_ip
from jordanmarket.services.rewards import seed_reward_rules
from jordanmarket.logger_config import (
    app_logger,
    access_logger,
    error_logger
)

# Initialize extensions (without app binding)
csrf = CSRFProtect()


def create_app(config_class=Config):
    """
    Flask application factory
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    ma.init_app(app)
    limiter.init_app(app)

    # APIs authenticate with JWT bearer tokens; CSRF only when explicitly enabled
    if app.config.get('WTF_CSRF_ENABLED', False):
        csrf.init_app(app)

    Talisman(
        app,
        content_security_policy=app.config.get('CSP'),
        force_https=app.config.get('FORCE_HTTPS', False),
        session_cookie_secure=app.config.get('SESSION_COOKIE_SECURE', False),
    )

    # Explicit origins; credentials are allowed so cookies work cross-origin
    CORS(
        app,
        supports_credentials=True,
        origins=app.config.get('ALLOWED_ORIGINS', [])
    )

    # Register blueprints
    try:
        from jordanmarket.routes import (
            auth_routes,
            catalog_routes,
            cart_routes,
            orders_routes,
            seller_routes,
            driver_routes,
            admin_routes,
            wallet_routes,
            notification_routes,
            dashboard_routes,
            config_routes,
            health
        )

        app.register_blueprint(auth_routes.bp, url_prefix="/api")
        app.register_blueprint(catalog_routes.bp, url_prefix="/api")
        app.register_blueprint(cart_routes.bp, url_prefix="/api")
        app.register_blueprint(orders_routes.bp, url_prefix="/api")
        app.register_blueprint(seller_routes.bp, url_prefix="/api/seller")
        app.register_blueprint(driver_routes.bp, url_prefix="/api/driver")
        app.register_blueprint(admin_routes.bp, url_prefix="/api/admin")
        app.register_blueprint(wallet_routes.bp, url_prefix="/api")
        app.register_blueprint(notification_routes.bp, url_prefix="/api")
        app.register_blueprint(config_routes.bp, url_prefix="/api")
        app.register_blueprint(health.bp, url_prefix="/api")
        app.register_blueprint(dashboard_routes.bp)  # locale-prefixed pages, no /api

        app_logger.info("All blueprints registered successfully")
    except Exception as e:
        app_logger.exception(f"Error registering blueprints: {e}")
        raise

    # Register handlers
    register_error_handlers(app)
    register_request_handlers(app)

    with app.app_context():
        db.create_all()
        seed_initial_admin(app)
        seed_reward_rules()

    # Startup logs
    app_logger.info("Flask application initialized successfully")
    app_logger.info(f"Environment: {app.config.get('ENV')}")
    app_logger.info(f"Debug mode: {app.config.get('DEBUG')}")

    return app


def seed_initial_admin(app):
    """Create the configured admin account on first start"""
    email = app.config.get('INITIAL_ADMIN_EMAIL')
    password = app.config.get('INITIAL_ADMIN_PASSWORD')
    if not email or not password:
        return None

    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        return None

    try:
        user = User(email=email, password_hash=generate_password_hash(password))
        db.session.add(user)
        db.session.flush()
        db.session.add(Profile(
            id=user.id,
            full_name='Administrator',
            role='admin',
            is_buyer=True,
            is_admin=True,
        ))
        db.session.commit()
        app_logger.info(f"Initial admin account created: {email}")
        return user
    except Exception as e:
        db.session.rollback()
        app_logger.exception(f"Failed to create initial admin account: {e}")
        return None


def register_error_handlers(app):
    """
    Register global error handlers
    """

    def expects_json():
        if request.path.startswith("/api/"):
            return True
        if request.headers.get("Accept", "").startswith("application/json"):
            return True
        return False

    def error_body(code, **extra):
        body = {
            "success": False,
            "code": code,
            "error": translate(code, resolve_locale()),
        }
        body.update(extra)
        return jsonify(body)

    @app.errorhandler(400)
    def bad_request(error):
        if expects_json():
            return error_body(INVALID_INPUT), 400
        return error

    @app.errorhandler(404)
    def not_found(error):
        if expects_json():
            return error_body(NOT_FOUND, path=request.path, method=request.method), 404
        return error

    @app.errorhandler(403)
    def forbidden(error):
        if expects_json():
            return error_body(FORBIDDEN), 403
        return error

    @app.errorhandler(405)
    def method_not_allowed(error):
        if expects_json():
            return error_body(INVALID_INPUT, method=request.method), 405
        return error

    @app.errorhandler(429)
    def rate_limited(error):
        app_logger.warning(f"Rate limit exceeded - {request.method} {request.path} ({error.description})")
        return error_body(RATE_LIMITED), 429

    @app.errorhandler(500)
    def internal_error(error):
        error_logger.exception("Internal server error")
        db.session.rollback()
        if expects_json():
            return error_body(SERVER_ERROR), 500
        return error


def register_request_handlers(app):
    """
    Register before/after request handlers
    """

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()
        if request.path.startswith("/api/"):
            access_logger.info(f"{client_ip()} - {request.method} {request.path}")

    @app.after_request
    def log_response(response):
        if request.path.startswith("/api/"):
            elapsed_ms = (time.perf_counter() - g.get("request_started", time.perf_counter())) * 1000
            access_logger.info(
                f"{request.method} {request.path} - {response.status_code} "
                f"({elapsed_ms:.1f} ms, locale={resolve_locale()})"
            )

        # Security headers
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response
