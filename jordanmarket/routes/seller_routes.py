"""
Seller Routes Blueprint
Store onboarding, product management and order fulfilment
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db, SellerProfile
from jordanmarket.capabilities import require_capability, BUYER, SELLER
from jordanmarket.errors import failure, result_response, INVALID_INPUT, PROFILE_MISSING
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str
from jordanmarket.logger_config import app_logger
from jordanmarket.schemas import (
    seller_profile_schema, product_schema, products_schema, order_schema, orders_schema,
    settlements_schema,
)
from jordanmarket.services import catalog, onboarding
from jordanmarket.services.orders import advance_status, cancel_order, list_seller_orders
from jordanmarket.services.settlements import seller_earnings, list_settlements
from jordanmarket.services.stats import seller_stats
from jordanmarket.validation import (
    validate_request_data, sanitize_text, SellerOnboardingSchema, ProductSchema, OrderStatusSchema,
)

bp = Blueprint('seller', __name__)


@bp.route('/onboarding', methods=['POST'])
@require_capability(BUYER)
def apply_as_seller():
    """
    POST /api/seller/onboarding
    Open (or update) a store application; an admin verifies it

    Request Body:
        {"store_name": "...", "store_description": "...", "address": "..."}
    """
    try:
        data, errors = validate_request_data(SellerOnboardingSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = onboarding.activate_seller(
            request.user_id,
            data['store_name'],
            store_description=data.get('store_description'),
            address=data.get('address'),
        )
        return jsonify({
            "success": True,
            "seller_profile": seller_profile_schema.dump(result['seller_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "seller_onboarding"})


@bp.route('/profile', methods=['GET'])
@require_capability(SELLER)
def get_seller_profile():
    """
    GET /api/seller/profile
    """
    seller = db.session.get(SellerProfile, request.user_id)
    if not seller:
        return result_response(failure(PROFILE_MISSING))
    return jsonify({"success": True, "seller_profile": seller_profile_schema.dump(seller)}), 200


@bp.route('/products', methods=['GET'])
@require_capability(SELLER, verified=True)
def my_products():
    """
    GET /api/seller/products
    All of the seller's products, active or not
    """
    try:
        products = catalog.list_seller_products(request.user_id)
        return jsonify({"success": True, "products": products_schema.dump(products)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_seller_products"})


@bp.route('/products', methods=['POST'])
@require_capability(SELLER, verified=True)
def create_product():
    """
    POST /api/seller/products

    Request Body:
        {
            "name_en": "...", "name_ar": "...",
            "description_en": "...", "description_ar": "...",
            "price": "4.50", "stock": 20, "category_id": 1
        }
    """
    try:
        data, errors = validate_request_data(ProductSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = catalog.create_product(request.user_id, data)
        if not result['success']:
            return result_response(result)

        app_logger.info(f"Seller {request.user_id} created product #{result['product'].id}")
        return jsonify({"success": True, "product": product_schema.dump(result['product'])}), 201
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "create_product"})


@bp.route('/products/<int:product_id>', methods=['PUT'])
@require_capability(SELLER, verified=True)
def update_product(product_id):
    """
    PUT /api/seller/products/<id>
    Partial update; existing orders keep the price they were placed at
    """
    try:
        data = request.get_json(silent=True) or {}
        schema = ProductSchema(partial=True)
        errors = schema.validate(data)
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = catalog.update_product(product_id, request.user_id, schema.load(data))
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "product": product_schema.dump(result['product'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "update_product", "product_id": product_id})


@bp.route('/products/<int:product_id>/toggle', methods=['POST'])
@require_capability(SELLER, verified=True)
def toggle_product(product_id):
    """
    POST /api/seller/products/<id>/toggle
    Flip is_active
    """
    try:
        result = catalog.toggle_product(product_id, request.user_id)
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "product": product_schema.dump(result['product'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "toggle_product", "product_id": product_id})


@bp.route('/products/<int:product_id>', methods=['DELETE'])
@require_capability(SELLER, verified=True)
def delete_product(product_id):
    """
    DELETE /api/seller/products/<id>
    Products that were ever ordered are deactivated instead of deleted
    """
    try:
        result = catalog.delete_product(product_id, request.user_id)
        return result_response(result)
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "delete_product", "product_id": product_id})


@bp.route('/orders', methods=['GET'])
@require_capability(SELLER, verified=True)
def my_orders():
    """
    GET /api/seller/orders?status=
    """
    try:
        orders = list_seller_orders(request.user_id, status=request.args.get('status'))
        return jsonify({"success": True, "orders": orders_schema.dump(orders)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_seller_orders"})


@bp.route('/orders/<int:order_id>/status', methods=['POST'])
@require_capability(SELLER, verified=True)
def update_order_status(order_id):
    """
    POST /api/seller/orders/<id>/status
    Move an order one step: placed -> accepted -> preparing -> ready

    Request Body:
        {"status": "accepted", "notes": "optional"}
    """
    try:
        data, errors = validate_request_data(OrderStatusSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = advance_status(order_id, request.user_id, data['status'], notes=data.get('notes'))
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "order": order_schema.dump(result['order'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "advance_order_status", "order_id": order_id})


@bp.route('/orders/<int:order_id>/cancel', methods=['POST'])
@require_capability(SELLER, verified=True)
def reject_order(order_id):
    """
    POST /api/seller/orders/<id>/cancel
    Reject an order that is still placed or accepted
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = sanitize_text(data['reason']) if isinstance(data.get('reason'), str) else None
        result = cancel_order(order_id, request.user_id, reason=reason)
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "order": order_schema.dump(result['order'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "seller_cancel_order", "order_id": order_id})


@bp.route('/stats', methods=['GET'])
@require_capability(SELLER, verified=True)
def stats():
    """
    GET /api/seller/stats
    """
    try:
        data = seller_stats(request.user_id)
        data['total_sales'] = money_str(data['total_sales'])
        return jsonify({"success": True, "stats": data}), 200
    except Exception as e:
        return handle_exception(e, {"action": "seller_stats"})


@bp.route('/earnings', methods=['GET'])
@require_capability(SELLER, verified=True)
def earnings():
    """
    GET /api/seller/earnings
    Settlement totals plus the settlement list
    """
    try:
        summary = {key: money_str(value) if key != 'settlement_count' else value
                   for key, value in seller_earnings(request.user_id).items()}
        settlements = list_settlements(seller_id=request.user_id)
        return jsonify({
            "success": True,
            "earnings": summary,
            "settlements": settlements_schema.dump(settlements),
        }), 200
    except Exception as e:
        return handle_exception(e, {"action": "seller_earnings"})
