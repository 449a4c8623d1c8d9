"""
Driver Routes Blueprint
Handles driver onboarding, availability, deliveries and cash collections
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db, DriverProfile
from jordanmarket.capabilities import require_capability, BUYER, DRIVER
from jordanmarket.errors import failure, result_response, INVALID_INPUT, PROFILE_MISSING
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str
from jordanmarket.logger_config import app_logger
from jordanmarket.schemas import (
    driver_profile_schema, delivery_schema, deliveries_schema, cash_collection_schema,
    cash_collections_schema,
)
from jordanmarket.services import cash, deliveries, onboarding
from jordanmarket.services.stats import driver_stats
from jordanmarket.validation import (
    validate_request_data, DriverOnboardingSchema, DriverStatusSchema, CompleteDeliverySchema,
    MarkCollectedSchema,
)

bp = Blueprint('driver', __name__)


@bp.route('/onboarding', methods=['POST'])
@require_capability(BUYER)
def apply_as_driver():
    """
    POST /api/driver/onboarding
    Register vehicle details; the account stays offline until verified

    Request Body:
        {"vehicle_type": "motorcycle", "vehicle_plate": "12-34567"}
    """
    try:
        data, errors = validate_request_data(DriverOnboardingSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = onboarding.activate_driver(
            request.user_id, data['vehicle_type'], vehicle_plate=data.get('vehicle_plate')
        )
        return jsonify({
            "success": True,
            "driver_profile": driver_profile_schema.dump(result['driver_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "driver_onboarding"})


@bp.route('/profile', methods=['GET'])
@require_capability(DRIVER)
def get_driver_profile():
    """
    GET /api/driver/profile
    """
    driver = db.session.get(DriverProfile, request.user_id)
    if not driver:
        return result_response(failure(PROFILE_MISSING))
    return jsonify({"success": True, "driver_profile": driver_profile_schema.dump(driver)}), 200


@bp.route('/status', methods=['PUT'])
@require_capability(DRIVER, verified=True)
def set_status():
    """
    PUT /api/driver/status
    Go online or offline

    Request Body:
        {"is_active": true}
    """
    try:
        data, errors = validate_request_data(DriverStatusSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = onboarding.set_driver_active(request.user_id, data['is_active'])
        if not result['success']:
            return result_response(result)

        app_logger.info(f"Driver {request.user_id} is now {'online' if data['is_active'] else 'offline'}")
        return jsonify({
            "success": True,
            "driver_profile": driver_profile_schema.dump(result['driver_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "driver_status"})


@bp.route('/deliveries/available', methods=['GET'])
@require_capability(DRIVER, verified=True)
def available_deliveries():
    """
    GET /api/driver/deliveries/available
    Unassigned deliveries whose orders are ready for pickup
    """
    try:
        return jsonify({
            "success": True,
            "deliveries": deliveries_schema.dump(deliveries.list_available_deliveries()),
        }), 200
    except Exception as e:
        return handle_exception(e, {"action": "available_deliveries"})


@bp.route('/deliveries', methods=['GET'])
@require_capability(DRIVER, verified=True)
def my_deliveries():
    """
    GET /api/driver/deliveries?active=true
    Active deliveries, or the full history when active is not set
    """
    try:
        active_only = request.args.get('active', 'false').lower() == 'true'
        items = deliveries.list_driver_deliveries(request.user_id, active_only=active_only)
        return jsonify({"success": True, "deliveries": deliveries_schema.dump(items)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "driver_deliveries"})


@bp.route('/deliveries/<int:delivery_id>/accept', methods=['POST'])
@require_capability(DRIVER, verified=True)
def accept(delivery_id):
    """
    POST /api/driver/deliveries/<id>/accept
    First driver to accept wins; later attempts get INVALID_STATE
    """
    try:
        result = deliveries.accept_delivery(delivery_id, request.user_id)
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "delivery": delivery_schema.dump(result['delivery'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "accept_delivery", "delivery_id": delivery_id})


@bp.route('/deliveries/<int:delivery_id>/pickup', methods=['POST'])
@require_capability(DRIVER, verified=True)
def pickup(delivery_id):
    """
    POST /api/driver/deliveries/<id>/pickup
    """
    try:
        result = deliveries.mark_picked_up(delivery_id, request.user_id)
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "delivery": delivery_schema.dump(result['delivery'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "pickup_delivery", "delivery_id": delivery_id})


@bp.route('/deliveries/<int:delivery_id>/complete', methods=['POST'])
@require_capability(DRIVER, verified=True)
def complete(delivery_id):
    """
    POST /api/driver/deliveries/<id>/complete

    Request Body:
        {"cash_collected": "12.50"}
    """
    try:
        data, errors = validate_request_data(CompleteDeliverySchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = deliveries.complete_delivery(delivery_id, request.user_id, data['cash_collected'])
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "delivery": delivery_schema.dump(result['delivery'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "complete_delivery", "delivery_id": delivery_id})


@bp.route('/collections', methods=['GET'])
@require_capability(DRIVER, verified=True)
def my_collections():
    """
    GET /api/driver/collections?status=
    """
    try:
        items = cash.list_driver_collections(request.user_id, status=request.args.get('status'))
        return jsonify({"success": True, "collections": cash_collections_schema.dump(items)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "driver_collections"})


@bp.route('/collections/<int:collection_id>/collected', methods=['POST'])
@require_capability(DRIVER, verified=True)
def mark_collected(collection_id):
    """
    POST /api/driver/collections/<id>/collected
    Report the cash amount handed over by the buyer

    Request Body:
        {"amount_collected": "12.50"}
    """
    try:
        data, errors = validate_request_data(MarkCollectedSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = cash.mark_collected(collection_id, request.user_id, data['amount_collected'])
        if not result['success']:
            return result_response(result)
        return jsonify({
            "success": True,
            "collection": cash_collection_schema.dump(result['collection']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "mark_collected", "collection_id": collection_id})


@bp.route('/stats', methods=['GET'])
@require_capability(DRIVER, verified=True)
def stats():
    """
    GET /api/driver/stats
    """
    try:
        data = driver_stats(request.user_id)
        data['cash_with_driver'] = money_str(data['cash_with_driver'])
        data['wallet_balance'] = money_str(data['wallet_balance'])
        return jsonify({"success": True, "stats": data}), 200
    except Exception as e:
        return handle_exception(e, {"action": "driver_stats"})
