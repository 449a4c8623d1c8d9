"""
Dashboard Entry Points
Locale-prefixed area pages gated by the capability resolver; the response is
either a redirect or the area summary the page renders from.
"""
from flask import Blueprint, jsonify, redirect

from jordanmarket.models import db, User, SellerProfile, DriverProfile
from jordanmarket.auth import get_current_user
from jordanmarket.capabilities import (
    resolve_capabilities, check_dashboard_access, capabilities_dict, primary_dashboard,
    BUYER, SELLER, DRIVER, ADMIN,
)
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str
from jordanmarket.schemas import seller_profile_schema, driver_profile_schema
from jordanmarket.logger_config import access_logger
from jordanmarket.services import stats

bp = Blueprint('dashboard', __name__)

LOCALES = 'any(ar, en)'
DASHBOARD_AREAS = (BUYER, SELLER, DRIVER, ADMIN)
AREAS = f"any({', '.join(DASHBOARD_AREAS)})"

MONEY_KEYS = ('revenue', 'total_sales', 'total_spent', 'wallet_balance', 'cash_with_driver')

# Area pages reachable while an application is pending or rejected
APPLICATION_PAGES = ('onboarding', 'rejected')


def _current_capabilities():
    payload = get_current_user()
    user_id = payload.get('user_id') if payload else None
    if not user_id or not db.session.get(User, user_id):
        return None
    return resolve_capabilities(user_id)


def _area_stats(caps, area):
    if area == ADMIN:
        data = stats.admin_stats()
    elif area == SELLER:
        data = stats.seller_stats(caps.user_id)
    elif area == DRIVER:
        data = stats.driver_stats(caps.user_id)
    else:
        data = stats.buyer_stats(caps.user_id)

    for key in MONEY_KEYS:
        if key in data:
            data[key] = money_str(data[key])
    return data


@bp.route(f'/<{LOCALES}:locale>/<{AREAS}:area>/', methods=['GET'])
def dashboard(locale, area):
    """
    GET /<locale>/<area>/
    Redirects (302) to login, onboarding or unauthorized when the user may
    not enter the area; otherwise returns the area summary.
    """
    try:
        caps = _current_capabilities()
        allowed, redirect_to = check_dashboard_access(caps, area, locale)
        if not allowed:
            access_logger.info(f"Dashboard redirect: /{locale}/{area}/ -> {redirect_to}")
            return redirect(redirect_to, code=302)

        return jsonify({
            "success": True,
            "locale": locale,
            "area": area,
            "capabilities": capabilities_dict(caps),
            "stats": _area_stats(caps, area),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "dashboard", "area": area})


@bp.route(f'/<{LOCALES}:locale>/dashboard', methods=['GET'])
def home(locale):
    """
    GET /<locale>/dashboard
    Send the user to their primary dashboard
    """
    caps = _current_capabilities()
    if caps is None:
        return redirect(f"/{locale}/login", code=302)
    return redirect(f"/{locale}/{primary_dashboard(caps)}/", code=302)


def _application(caps, area):
    if area == SELLER:
        seller = db.session.get(SellerProfile, caps.user_id)
        return seller_profile_schema.dump(seller) if seller else None
    driver = db.session.get(DriverProfile, caps.user_id)
    return driver_profile_schema.dump(driver) if driver else None


@bp.route(f'/<{LOCALES}:locale>/<{AREAS}:area>/<path:subpath>', methods=['GET'])
def dashboard_page(locale, area, subpath):
    """
    GET /<locale>/<area>/<page>
    Every page under an area passes the same gate as the area root. The
    seller/driver onboarding and rejected pages only need a signed-in user,
    and show the state of the application.
    """
    try:
        caps = _current_capabilities()
        page = subpath.strip('/').split('/')[0]

        if area in (SELLER, DRIVER) and page in APPLICATION_PAGES:
            if caps is None:
                return redirect(f"/{locale}/login", code=302)
            application = _application(caps, area)
            return jsonify({
                "success": True,
                "locale": locale,
                "area": area,
                "page": page,
                "application": application,
                "status": application['status'] if application else None,
            }), 200

        allowed, redirect_to = check_dashboard_access(caps, area, locale)
        if not allowed:
            access_logger.info(f"Dashboard redirect: /{locale}/{area}/{subpath} -> {redirect_to}")
            return redirect(redirect_to, code=302)

        return jsonify({
            "success": True,
            "locale": locale,
            "area": area,
            "page": subpath.strip('/'),
            "capabilities": capabilities_dict(caps),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "dashboard_page", "area": area, "page": subpath})
