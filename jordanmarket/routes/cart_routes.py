"""
Cart Routes Blueprint
Session cart operations and checkout
"""
from flask import Blueprint, request, jsonify, current_app

from jordanmarket.models import db
from jordanmarket.cart import (
    CartError, dispatch, load_cart, save_cart, cart_totals, empty_cart,
    ADD_ITEM, REMOVE_ITEM, UPDATE_QUANTITY, CLEAR,
)
from jordanmarket.capabilities import require_capability, BUYER
from jordanmarket.errors import failure, result_response, INVALID_INPUT, NOT_FOUND
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str
from jordanmarket.logger_config import app_logger
from jordanmarket.rate_limit import category_limit, CHECKOUT
from jordanmarket.schemas import order_schema
from jordanmarket.services.catalog import get_public_product
from jordanmarket.services.orders import create_order
from jordanmarket.validation import (
    validate_request_data, CartItemSchema, CartQuantitySchema, CheckoutSchema,
)

bp = Blueprint('cart', __name__)


def cart_payload(state):
    totals = cart_totals(state)
    return {
        "success": True,
        "cart": state,
        "item_count": totals['item_count'],
        "subtotal": money_str(totals['subtotal']),
    }


@bp.route('/cart', methods=['GET'])
def get_cart():
    """
    GET /api/cart
    """
    return jsonify(cart_payload(load_cart())), 200


@bp.route('/cart/items', methods=['POST'])
def add_cart_item():
    """
    POST /api/cart/items
    Add a product; the cart holds products of a single seller only

    Request Body:
        {"product_id": 1, "quantity": 2}
    """
    data, errors = validate_request_data(CartItemSchema, request.get_json(silent=True))
    if errors:
        return result_response(failure(INVALID_INPUT, details=errors))

    product = get_public_product(data['product_id'])
    if not product:
        return result_response(failure(NOT_FOUND))

    try:
        state = dispatch({
            'type': ADD_ITEM,
            'quantity': data['quantity'],
            'item': {
                'product_id': product.id,
                'seller_id': product.seller_id,
                'name_en': product.name_en,
                'name_ar': product.name_ar,
                'price': product.price,
            },
        })
    except CartError as e:
        return result_response(failure(e.code))
    return jsonify(cart_payload(state)), 200


@bp.route('/cart/items/<int:product_id>', methods=['PUT'])
def update_cart_item(product_id):
    """
    PUT /api/cart/items/<product_id>
    Set the quantity; zero or less removes the line
    """
    data, errors = validate_request_data(CartQuantitySchema, request.get_json(silent=True))
    if errors:
        return result_response(failure(INVALID_INPUT, details=errors))

    state = dispatch({'type': UPDATE_QUANTITY, 'product_id': product_id, 'quantity': data['quantity']})
    return jsonify(cart_payload(state)), 200


@bp.route('/cart/items/<int:product_id>', methods=['DELETE'])
def remove_cart_item(product_id):
    """
    DELETE /api/cart/items/<product_id>
    """
    state = dispatch({'type': REMOVE_ITEM, 'product_id': product_id})
    return jsonify(cart_payload(state)), 200


@bp.route('/cart', methods=['DELETE'])
def clear_cart():
    """
    DELETE /api/cart
    """
    state = dispatch({'type': CLEAR})
    return jsonify(cart_payload(state)), 200


@bp.route('/cart/checkout', methods=['POST'])
@require_capability(BUYER)
@category_limit(CHECKOUT)
def checkout():
    """
    POST /api/cart/checkout
    Turn the session cart into an order (cash on delivery)

    Prices are taken from the catalog at checkout time, not from the cart.
    The delivery fee is the configured flat fee.

    Request Body:
        {
            "delivery_address": "Street, City",
            "delivery_phone": "0791234567",
            "notes": "optional"
        }
    """
    try:
        data, errors = validate_request_data(CheckoutSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        state = load_cart()
        if not state['items']:
            return result_response(failure(INVALID_INPUT, details={'items': ['Your cart is empty']}))

        result = create_order(
            buyer_id=request.user_id,
            seller_id=state['seller_id'],
            items=[{'product_id': i['product_id'], 'quantity': i['quantity']} for i in state['items']],
            delivery_address=data['delivery_address'],
            delivery_fee=current_app.config.get('DEFAULT_DELIVERY_FEE'),
            delivery_phone=data.get('delivery_phone'),
            notes=data.get('notes'),
        )
        if not result['success']:
            return result_response(result)

        save_cart(empty_cart())
        order = result['order']
        app_logger.info(f"Checkout completed: order #{order.id} for buyer {request.user_id}")
        return jsonify({"success": True, "order": order_schema.dump(order)}), 201

    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "checkout"})
