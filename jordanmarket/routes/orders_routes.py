"""
Orders Routes Blueprint
Buyer order placement and the shared order detail/cancel endpoints
"""
from flask import Blueprint, request, jsonify, current_app

from jordanmarket.models import db
from jordanmarket.capabilities import require_capability, BUYER, SELLER, DRIVER, ADMIN
from jordanmarket.errors import failure, result_response, INVALID_INPUT
from jordanmarket.error_handler import handle_exception
from jordanmarket.rate_limit import category_limit, CHECKOUT
from jordanmarket.schemas import order_schema, orders_schema, order_detail_schema
from jordanmarket.services.orders import create_order, cancel_order, get_order_for, list_buyer_orders
from jordanmarket.validation import validate_request_data, sanitize_text, OrderSchema

bp = Blueprint('orders', __name__)


@bp.route('/orders', methods=['POST'])
@require_capability(BUYER)
@category_limit(CHECKOUT)
def place_order():
    """
    POST /api/orders
    Place an order directly (without the session cart)

    Request Body:
        {
            "seller_id": 12,
            "items": [{"product_id": 3, "quantity": 2}],
            "delivery_address": "Street, City",
            "delivery_phone": "0791234567",
            "notes": "optional"
        }
    """
    try:
        data, errors = validate_request_data(OrderSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = create_order(
            buyer_id=request.user_id,
            seller_id=data['seller_id'],
            items=data['items'],
            delivery_address=data['delivery_address'],
            delivery_fee=current_app.config.get('DEFAULT_DELIVERY_FEE'),
            delivery_phone=data.get('delivery_phone'),
            notes=data.get('notes'),
        )
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "order": order_schema.dump(result['order'])}), 201

    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "place_order"})


@bp.route('/orders', methods=['GET'])
@require_capability(BUYER)
def my_orders():
    """
    GET /api/orders?status=
    The current buyer's orders, newest first
    """
    try:
        orders = list_buyer_orders(request.user_id, status=request.args.get('status'))
        return jsonify({"success": True, "orders": orders_schema.dump(orders)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_buyer_orders"})


@bp.route('/orders/<int:order_id>', methods=['GET'])
@require_capability(BUYER, SELLER, DRIVER, ADMIN)
def order_detail(order_id):
    """
    GET /api/orders/<id>
    Items, delivery, cash collection and history; visible to the buyer,
    the seller, the assigned driver and admins
    """
    try:
        result = get_order_for(order_id, request.capabilities)
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "order": order_detail_schema.dump(result['order'])}), 200
    except Exception as e:
        return handle_exception(e, {"action": "order_detail", "order_id": order_id})


@bp.route('/orders/<int:order_id>/cancel', methods=['POST'])
@require_capability(BUYER, SELLER, ADMIN)
def cancel(order_id):
    """
    POST /api/orders/<id>/cancel
    Cancel while the order is placed or accepted

    Request Body (optional):
        {"reason": "Changed my mind"}
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = sanitize_text(data['reason']) if isinstance(data.get('reason'), str) else None
        result = cancel_order(
            order_id, request.user_id,
            is_admin=request.capabilities.is_admin,
            reason=reason,
        )
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "order": order_schema.dump(result['order'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "cancel_order", "order_id": order_id})
