"""
Profile/Capability Resolver

Single place that turns an authenticated identity into a typed set of
capabilities. Every protected route goes through `require_capability`,
every dashboard entry point through `check_dashboard_access`.
"""
from collections import namedtuple
from functools import wraps

from flask import request, jsonify
from sqlalchemy.exc import IntegrityError

from jordanmarket.auth import require_auth
from jordanmarket.errors import FORBIDDEN, NOT_VERIFIED
from jordanmarket.i18n import translate, resolve_locale
from jordanmarket.logger_config import app_logger
from jordanmarket.models import db, Profile

BUYER = 'buyer'
SELLER = 'seller'
DRIVER = 'driver'
ADMIN = 'admin'

# Primary dashboard precedence, highest first
DASHBOARD_PRECEDENCE = (ADMIN, DRIVER, SELLER, BUYER)

Capabilities = namedtuple('Capabilities', [
    'user_id',
    'is_buyer',
    'is_seller',
    'is_driver',
    'is_admin',
    'seller_verified',
    'driver_verified',
    'seller_rejected',
    'driver_rejected',
    'locale',
])


def _has(caps, capability):
    return getattr(caps, f'is_{capability}')


def primary_dashboard(caps):
    """Pick the single dashboard a user lands on"""
    for capability in DASHBOARD_PRECEDENCE:
        if _has(caps, capability):
            return capability
    return BUYER


def capability_list(caps):
    return [c for c in DASHBOARD_PRECEDENCE if _has(caps, c)]


def capabilities_dict(caps):
    data = caps._asdict()
    data['capabilities'] = capability_list(caps)
    data['primary_dashboard'] = primary_dashboard(caps)
    return data


def refresh_role(profile):
    """Recompute the stored primary role from the profile's flags"""
    profile.role = primary_dashboard(capabilities_for(profile))
    return profile.role


def ensure_profile(user_id):
    """
    Return the user's profile, creating a buyer profile when missing

    Profiles are normally created at registration; this covers identities
    that were provisioned without one.
    """
    profile = db.session.get(Profile, user_id)
    if profile:
        return profile

    app_logger.info(f"Auto-creating buyer profile for user {user_id}")
    profile = Profile(id=user_id, role=BUYER, is_buyer=True)
    try:
        db.session.add(profile)
        db.session.commit()
    except IntegrityError:
        # Created concurrently by another request
        db.session.rollback()
        profile = db.session.get(Profile, user_id)
    return profile


def capabilities_for(profile):
    seller = profile.seller_profile
    driver = profile.driver_profile
    return Capabilities(
        user_id=profile.id,
        is_buyer=bool(profile.is_buyer) or profile.role == BUYER,
        is_seller=bool(profile.is_seller) or profile.role == SELLER,
        is_driver=bool(profile.is_driver) or profile.role == DRIVER,
        is_admin=bool(profile.is_admin) or profile.role == ADMIN,
        seller_verified=bool(seller and seller.is_verified),
        driver_verified=bool(driver and driver.is_verified),
        seller_rejected=bool(seller and seller.status == 'rejected'),
        driver_rejected=bool(driver and driver.status == 'rejected'),
        locale=profile.preferred_locale,
    )


def resolve_capabilities(user_id):
    """
    Resolve the capability set for an authenticated user id

    Returns None when there is no identity (unauthenticated).
    """
    if not user_id:
        return None
    return capabilities_for(ensure_profile(user_id))


def is_verified_for(caps, capability):
    if capability == SELLER:
        return caps.seller_verified
    if capability == DRIVER:
        return caps.driver_verified
    return True


def is_rejected_for(caps, capability):
    if capability == SELLER:
        return caps.seller_rejected
    if capability == DRIVER:
        return caps.driver_rejected
    return False


def require_capability(*capabilities, verified=False):
    """
    Decorator to require one of the given capabilities

    Admins pass every check. With verified=True a seller/driver must also have
    been verified by an admin.

    Usage:
        @require_capability('seller', verified=True)
        def create_product():
            ...
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            caps = resolve_capabilities(request.user_id)
            request.capabilities = caps

            if caps.is_admin:
                return f(*args, **kwargs)

            granted = [c for c in capabilities if _has(caps, c)]
            if not granted:
                app_logger.warning(
                    f"Insufficient capabilities - Route: {request.path}, "
                    f"User ID: {caps.user_id}, Required: {capabilities}, "
                    f"Has: {capability_list(caps)}"
                )
                return jsonify({
                    "success": False,
                    "error": translate(FORBIDDEN, resolve_locale()),
                    "code": FORBIDDEN,
                    "required": list(capabilities),
                }), 403

            if verified and not any(is_verified_for(caps, c) for c in granted):
                return jsonify({
                    "success": False,
                    "error": translate(NOT_VERIFIED, resolve_locale()),
                    "code": NOT_VERIFIED,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def check_dashboard_access(caps, area, locale):
    """
    Decide whether a user may enter a dashboard area

    Returns:
        tuple: (allowed, redirect_path) - redirect_path is None when allowed
    """
    if caps is None:
        return False, f"/{locale}/login"

    if caps.is_admin:
        return True, None

    if area == ADMIN:
        return False, f"/{locale}/unauthorized"

    if area in (SELLER, DRIVER):
        if _has(caps, area) and is_rejected_for(caps, area):
            return False, f"/{locale}/{area}/rejected"
        if not _has(caps, area) or not is_verified_for(caps, area):
            return False, f"/{locale}/{area}/onboarding"
        return True, None

    if area == BUYER and caps.is_buyer:
        return True, None

    return False, f"/{locale}/unauthorized"
