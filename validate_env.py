"""
Environment Variable Validation
Run before deploying: python validate_env.py
"""
import os
import sys
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

load_dotenv()

ENV = os.environ.get('ENV', 'production')

REQUIRED_VARS = {
    'production': ('SECRET_KEY', 'DATABASE_URL'),
    'development': ('SECRET_KEY',),
    'testing': ('SECRET_KEY',),
}

# Marketplace settings read by config.py, with the values they fall back to
MARKET_DEFAULTS = {
    'DEFAULT_LOCALE': 'ar',
    'DEFAULT_DELIVERY_FEE': '2.00',
    'PLATFORM_FEE_RATE': '0.05',
    'JWT_EXPIRY_DAYS': '7',
}

SUPPORTED_LOCALES = ('ar', 'en')


def _decimal(name):
    try:
        return Decimal(os.environ.get(name, MARKET_DEFAULTS[name]))
    except InvalidOperation:
        return None


def check_market_settings():
    """Problems with fee, locale and token settings, as messages"""
    problems = []

    fee = _decimal('DEFAULT_DELIVERY_FEE')
    if fee is None or fee < 0:
        problems.append("DEFAULT_DELIVERY_FEE must be a non-negative JOD amount, e.g. 2.00")

    rate = _decimal('PLATFORM_FEE_RATE')
    if rate is None or not (0 <= rate < 1):
        problems.append("PLATFORM_FEE_RATE must be a fraction between 0 and 1, e.g. 0.05")

    locale = os.environ.get('DEFAULT_LOCALE', MARKET_DEFAULTS['DEFAULT_LOCALE'])
    if locale not in SUPPORTED_LOCALES:
        problems.append(f"DEFAULT_LOCALE must be one of {', '.join(SUPPORTED_LOCALES)}")

    if not os.environ.get('JWT_EXPIRY_DAYS', MARKET_DEFAULTS['JWT_EXPIRY_DAYS']).isdigit():
        problems.append("JWT_EXPIRY_DAYS must be a whole number of days")

    return problems


def validate_environment():
    """
    Returns:
        Tuple of (is_valid, missing_vars, warnings)

    Invalid marketplace settings count as missing, since config.py would
    fail on them at import time.
    """
    missing_vars = [var for var in REQUIRED_VARS.get(ENV, REQUIRED_VARS['production'])
                    if not os.environ.get(var)]
    missing_vars.extend(check_market_settings())

    warnings = []
    if len(os.environ.get('SECRET_KEY', '')) < 32:
        warnings.append("SECRET_KEY is shorter than 32 characters")

    if ENV == 'production':
        if not os.environ.get('ALLOWED_ORIGINS'):
            warnings.append("ALLOWED_ORIGINS not set, CORS falls back to localhost origins")
        if os.environ.get('SESSION_COOKIE_SECURE', 'false').lower() != 'true':
            warnings.append("SESSION_COOKIE_SECURE is off, the auth and cart cookies travel over plain HTTP")
        if not os.environ.get('DATABASE_URL', 'postgresql').startswith('postgresql'):
            warnings.append("DATABASE_URL is not a PostgreSQL URL")
        if os.environ.get('RATELIMIT_STORAGE_URI', 'memory://') == 'memory://':
            warnings.append("Rate limits use in-process memory and are not shared between workers")

    if bool(os.environ.get('INITIAL_ADMIN_EMAIL')) != bool(os.environ.get('INITIAL_ADMIN_PASSWORD')):
        warnings.append("Set both INITIAL_ADMIN_EMAIL and INITIAL_ADMIN_PASSWORD to seed an admin")

    return not missing_vars, missing_vars, warnings


def print_validation_results():
    is_valid, missing_vars, warnings = validate_environment()

    print(f"\n{'='*60}")
    print(f"JordanMarket environment check - {ENV.upper()}")
    print(f"{'='*60}\n")

    if is_valid:
        print("Required variables and marketplace settings look good\n")
    else:
        print("Fix the following before starting the server:\n")
        for problem in missing_vars:
            print(f"  - {problem}")
        print()

    for warning in warnings:
        print(f"  ! {warning}")
    if warnings:
        print()

    print(f"{'='*60}\n")
    return is_valid


if __name__ == '__main__':
    if not print_validation_results():
        sys.exit(1)
