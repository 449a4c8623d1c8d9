import os
from datetime import timedelta
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    # Environment Configuration
    ENV = os.environ.get('ENV', 'production')
    DEBUG = False
    TESTING = False

    # Secret key for session management and JWT signing
    # Required - no default fallback
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is required")

    # Database (hosted Postgres in production)
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    if not SQLALCHEMY_DATABASE_URI:
        if ENV == 'production':
            raise ValueError("DATABASE_URL environment variable is required in production")
        SQLALCHEMY_DATABASE_URI = 'sqlite:///' + os.path.join(BASE_DIR, 'jordanmarket.db')

    # Disable modification tracking to save resources
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database Connection Pooling Configuration
    DB_POOL_SIZE = int(os.environ.get('DB_POOL_SIZE', 10))
    DB_MAX_OVERFLOW = int(os.environ.get('DB_MAX_OVERFLOW', 20))
    DB_POOL_TIMEOUT = int(os.environ.get('DB_POOL_TIMEOUT', 30))
    DB_POOL_RECYCLE = int(os.environ.get('DB_POOL_RECYCLE', 280))
    DB_CONNECT_TIMEOUT = int(os.environ.get('DB_CONNECT_TIMEOUT', 10))

    if SQLALCHEMY_DATABASE_URI.startswith('postgresql'):
        SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_pre_ping': True,  # Verify connections before using (MANDATORY for Passenger)
            'pool_recycle': DB_POOL_RECYCLE,
            'pool_size': DB_POOL_SIZE,
            'max_overflow': DB_MAX_OVERFLOW,
            'pool_timeout': DB_POOL_TIMEOUT,
            'connect_args': {
                'connect_timeout': DB_CONNECT_TIMEOUT,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Session Configuration (the cart lives in the signed session cookie)
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = os.environ.get('SESSION_COOKIE_HTTPONLY', 'true').lower() == 'true'
    SESSION_COOKIE_SAMESITE = os.environ.get('SESSION_COOKIE_SAMESITE', 'Lax')
    SESSION_TIMEOUT = int(os.environ.get('SESSION_TIMEOUT', 7 * 24 * 3600))
    PERMANENT_SESSION_LIFETIME = timedelta(seconds=SESSION_TIMEOUT)

    # JWT access token lifetime (days)
    JWT_EXPIRY_DAYS = int(os.environ.get('JWT_EXPIRY_DAYS', 7))

    # CSRF Protection Configuration
    # DISABLED for APIs - Using JWT tokens in Authorization headers instead
    WTF_CSRF_ENABLED = os.environ.get('WTF_CSRF_ENABLED', 'false').lower() == 'true'
    WTF_CSRF_TIME_LIMIT = 3600
    WTF_CSRF_SSL_STRICT = ENV == 'production'
    WTF_CSRF_METHODS = ['POST', 'PUT', 'PATCH', 'DELETE']

    # Content Security Policy (CSP) Configuration
    CSP = {
        "default-src": "'self'",
        "script-src": ["'self'"],
        "style-src": ["'self'", "'unsafe-inline'"],
        "img-src": ["'self'", "data:", "https:"],
        "font-src": ["'self'", "data:"],
        "connect-src": ["'self'"],
        "frame-ancestors": "'none'",
    }
    FORCE_HTTPS = os.environ.get('FORCE_HTTPS', 'false').lower() == 'true'

    # CORS Configuration
    ALLOWED_ORIGINS = os.environ.get(
        'ALLOWED_ORIGINS',
        'http://localhost:3000,http://localhost:5000,http://127.0.0.1:5000'
    ).split(',')

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024

    # Localization
    SUPPORTED_LOCALES = ('ar', 'en')
    DEFAULT_LOCALE = os.environ.get('DEFAULT_LOCALE', 'ar')

    # Marketplace settings (JOD)
    DEFAULT_DELIVERY_FEE = Decimal(os.environ.get('DEFAULT_DELIVERY_FEE', '2.00'))
    PLATFORM_FEE_RATE = Decimal(os.environ.get('PLATFORM_FEE_RATE', '0.05'))

    # Top-up codes
    TOPUP_CODE_MAX_BATCH = 100

    # Rate Limiting (Flask-Limiter)
    RATELIMIT_ENABLED = os.environ.get('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    RATE_LIMITS = {
        'auth': os.environ.get('RATE_LIMIT_AUTH', '5 per minute'),
        'checkout': os.environ.get('RATE_LIMIT_CHECKOUT', '10 per minute'),
        'qanz_redeem': os.environ.get('RATE_LIMIT_QANZ_REDEEM', '5 per minute'),
        'admin_action': os.environ.get('RATE_LIMIT_ADMIN_ACTION', '3 per minute'),
        'general': os.environ.get('RATE_LIMIT_GENERAL', '100 per minute'),
    }

    # Initial admin account, created on startup if missing
    INITIAL_ADMIN_EMAIL = os.environ.get('INITIAL_ADMIN_EMAIL')
    INITIAL_ADMIN_PASSWORD = os.environ.get('INITIAL_ADMIN_PASSWORD')

    # Production Security Settings
    if ENV == 'production':
        PREFERRED_URL_SCHEME = 'https'
        SEND_FILE_MAX_AGE_DEFAULT = 31536000  # 1 year


class DevelopmentConfig(Config):
    ENV = 'development'
    DEBUG = True


class TestingConfig(Config):
    ENV = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    INITIAL_ADMIN_EMAIL = None
    INITIAL_ADMIN_PASSWORD = None


config_by_name = {
    'production': Config,
    'development': DevelopmentConfig,
    'testing': TestingConfig,
}
