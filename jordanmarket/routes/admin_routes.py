"""
Admin Routes Blueprint
Verification and rejection, cash reconciliation, QANZ codes, rewards and payouts,
settlements, user and product moderation, platform stats
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db
from jordanmarket.activity_logger import log_activity_from_request, list_activity
from jordanmarket.capabilities import require_capability, ADMIN
from jordanmarket.errors import failure, result_response, INVALID_INPUT
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str
from jordanmarket.rate_limit import category_limit, ADMIN_ACTION
from jordanmarket.schemas import (
    seller_profile_schema, driver_profile_schema, cash_collection_schema, cash_collections_schema,
    topup_codes_schema, settlement_schema, settlements_schema, orders_schema, order_schema,
    activity_logs_schema, categories_schema, category_schema, reward_rules_schema,
    reward_rule_schema, reward_events_schema, profiles_schema, products_schema, product_schema,
)
from jordanmarket.services import cash, catalog, onboarding, rewards, settlements, wallet
from jordanmarket.services.orders import list_all_orders, cancel_order
from jordanmarket.services.stats import admin_stats
from jordanmarket.validation import (
    validate_request_data, sanitize_text, GenerateCodesSchema, PayoutSchema, CategorySchema,
    RejectApplicationSchema, RewardRuleUpdateSchema, ProductModerationSchema,
)

bp = Blueprint('admin', __name__)


def _money_values(data, *keys):
    for key in keys:
        data[key] = money_str(data[key])
    return data


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

@bp.route('/sellers/pending', methods=['GET'])
@require_capability(ADMIN)
def pending_sellers():
    """
    GET /api/admin/sellers/pending
    """
    try:
        sellers = onboarding.pending_sellers()
        return jsonify({"success": True, "sellers": seller_profile_schema.dump(sellers, many=True)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "pending_sellers"})


@bp.route('/sellers/<int:user_id>/verify', methods=['POST'])
@require_capability(ADMIN)
def verify_seller(user_id):
    """
    POST /api/admin/sellers/<user_id>/verify
    """
    try:
        result = onboarding.verify_seller(user_id, request.user_id)
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Verified seller #{user_id}",
            action_type='seller_verification',
            entity_type='seller',
            entity_id=user_id
        )
        return jsonify({
            "success": True,
            "seller_profile": seller_profile_schema.dump(result['seller_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "verify_seller", "user_id": user_id})


@bp.route('/drivers/pending', methods=['GET'])
@require_capability(ADMIN)
def pending_drivers():
    """
    GET /api/admin/drivers/pending
    """
    try:
        drivers = onboarding.pending_drivers()
        return jsonify({"success": True, "drivers": driver_profile_schema.dump(drivers, many=True)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "pending_drivers"})


@bp.route('/drivers/<int:user_id>/verify', methods=['POST'])
@require_capability(ADMIN)
def verify_driver(user_id):
    """
    POST /api/admin/drivers/<user_id>/verify
    """
    try:
        result = onboarding.verify_driver(user_id, request.user_id)
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Verified driver #{user_id}",
            action_type='driver_verification',
            entity_type='driver',
            entity_id=user_id
        )
        return jsonify({
            "success": True,
            "driver_profile": driver_profile_schema.dump(result['driver_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "verify_driver", "user_id": user_id})


@bp.route('/sellers/<int:user_id>/reject', methods=['POST'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def reject_seller(user_id):
    """
    POST /api/admin/sellers/<user_id>/reject
    Decline a pending store application

    Request Body (optional):
        {"reason": "Store address could not be confirmed"}
    """
    try:
        data, errors = validate_request_data(RejectApplicationSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = onboarding.reject_seller(user_id, request.user_id, data.get('reason'))
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Rejected seller #{user_id}",
            action_type='seller_rejection',
            entity_type='seller',
            entity_id=user_id,
            details=data.get('reason')
        )
        return jsonify({
            "success": True,
            "seller_profile": seller_profile_schema.dump(result['seller_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "reject_seller", "user_id": user_id})


@bp.route('/drivers/<int:user_id>/reject', methods=['POST'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def reject_driver(user_id):
    """
    POST /api/admin/drivers/<user_id>/reject
    """
    try:
        data, errors = validate_request_data(RejectApplicationSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = onboarding.reject_driver(user_id, request.user_id, data.get('reason'))
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Rejected driver #{user_id}",
            action_type='driver_rejection',
            entity_type='driver',
            entity_id=user_id,
            details=data.get('reason')
        )
        return jsonify({
            "success": True,
            "driver_profile": driver_profile_schema.dump(result['driver_profile']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "reject_driver", "user_id": user_id})


# ---------------------------------------------------------------------------
# Cash reconciliation
# ---------------------------------------------------------------------------

@bp.route('/cash/summary', methods=['GET'])
@require_capability(ADMIN)
def get_cash_summary():
    """
    GET /api/admin/cash/summary
    Pending with drivers, awaiting confirmation and confirmed totals
    """
    try:
        summary = _money_values(cash.cash_summary(), 'pending_with_drivers', 'awaiting_confirmation', 'confirmed')
        return jsonify({"success": True, "summary": summary}), 200
    except Exception as e:
        return handle_exception(e, {"action": "cash_summary"})


@bp.route('/cash/collections', methods=['GET'])
@require_capability(ADMIN)
def open_collections():
    """
    GET /api/admin/cash/collections
    Collections still pending with a driver or awaiting confirmation
    """
    try:
        items = cash.list_open_collections()
        return jsonify({"success": True, "collections": cash_collections_schema.dump(items)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "open_collections"})


@bp.route('/cash/collections/<int:collection_id>/confirm', methods=['POST'])
@require_capability(ADMIN)
def confirm_collection(collection_id):
    """
    POST /api/admin/cash/collections/<id>/confirm
    Confirm the cash was received; creates the order's settlement
    """
    try:
        result = cash.confirm_receipt(collection_id, request.user_id)
        if not result['success']:
            return result_response(result)

        collection = result['collection']
        log_activity_from_request(
            action=f"Confirmed cash receipt for order #{collection.order_id}",
            action_type='cash_confirmation',
            entity_type='cash_collection',
            entity_id=collection_id,
            details=f"amount={money_str(collection.amount_collected)}"
        )
        return jsonify({"success": True, "collection": cash_collection_schema.dump(collection)}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "confirm_cash", "collection_id": collection_id})


# ---------------------------------------------------------------------------
# QANZ top-up codes and payouts
# ---------------------------------------------------------------------------

@bp.route('/codes', methods=['GET'])
@require_capability(ADMIN)
def get_codes():
    """
    GET /api/admin/codes?status=active|redeemed|voided
    """
    try:
        codes = wallet.list_codes(status=request.args.get('status'))
        return jsonify({"success": True, "codes": topup_codes_schema.dump(codes)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_codes"})


@bp.route('/codes', methods=['POST'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def create_codes():
    """
    POST /api/admin/codes
    Generate a batch of single-use top-up codes

    Request Body:
        {"amount": "10", "quantity": 5}
    """
    try:
        data, errors = validate_request_data(GenerateCodesSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = wallet.generate_codes(request.user_id, data['amount'], data['quantity'])
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Generated {data['quantity']} top-up codes",
            action_type='code_generation',
            entity_type='topup_code',
            details=f"amount={money_str(data['amount'])}"
        )
        return jsonify({"success": True, "codes": topup_codes_schema.dump(result['codes'])}), 201
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "generate_codes"})


@bp.route('/codes/<int:code_id>/void', methods=['POST'])
@require_capability(ADMIN)
def void_code(code_id):
    """
    POST /api/admin/codes/<id>/void
    """
    try:
        result = wallet.void_code(code_id, request.user_id)
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Voided top-up code #{code_id}",
            action_type='code_void',
            entity_type='topup_code',
            entity_id=code_id
        )
        return result_response(result)
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "void_code", "code_id": code_id})


@bp.route('/qanz/stats', methods=['GET'])
@require_capability(ADMIN)
def get_qanz_stats():
    """
    GET /api/admin/qanz/stats
    Code counts, outstanding liability and total redeemed
    """
    try:
        stats = _money_values(wallet.qanz_stats(), 'outstanding_liability', 'total_redeemed', 'wallet_balances')
        return jsonify({"success": True, "stats": stats}), 200
    except Exception as e:
        return handle_exception(e, {"action": "qanz_stats"})


@bp.route('/qanz/rewards', methods=['GET'])
@require_capability(ADMIN)
def get_reward_rules():
    """
    GET /api/admin/qanz/rewards
    """
    try:
        return jsonify({"success": True, "rules": reward_rules_schema.dump(rewards.list_rules())}), 200
    except Exception as e:
        return handle_exception(e, {"action": "reward_rules"})


@bp.route('/qanz/rewards/<int:rule_id>', methods=['PUT'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def update_reward_rule(rule_id):
    """
    PUT /api/admin/qanz/rewards/<rule_id>
    Change a rule's amount and/or switch it on or off

    Request Body:
        {"amount": "7.50", "is_active": true}
    """
    try:
        data, errors = validate_request_data(RewardRuleUpdateSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))
        if not data:
            return result_response(failure(INVALID_INPUT, details={'_schema': ['Nothing to update']}))

        result = None
        if 'amount' in data:
            result = rewards.update_rule_amount(rule_id, data['amount'])
            if not result['success']:
                return result_response(result)
        if 'is_active' in data:
            result = rewards.set_rule_active(rule_id, data['is_active'])
            if not result['success']:
                return result_response(result)

        rule = result['rule']
        log_activity_from_request(
            action=f"Updated reward rule '{rule.key}'",
            action_type='reward_rule_update',
            entity_type='reward_rule',
            entity_id=rule_id,
            details=f"amount={money_str(rule.amount)} active={rule.is_active}"
        )
        return jsonify({"success": True, "rule": reward_rule_schema.dump(rule)}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "update_reward_rule", "rule_id": rule_id})


@bp.route('/qanz/rewards/events', methods=['GET'])
@require_capability(ADMIN)
def get_reward_events():
    """
    GET /api/admin/qanz/rewards/events?limit=
    """
    try:
        limit = min(request.args.get('limit', rewards.RECENT_EVENTS_LIMIT, type=int) or rewards.RECENT_EVENTS_LIMIT, 200)
        return jsonify({"success": True, "events": reward_events_schema.dump(rewards.recent_events(limit))}), 200
    except Exception as e:
        return handle_exception(e, {"action": "reward_events"})


@bp.route('/qanz/rewards/stats', methods=['GET'])
@require_capability(ADMIN)
def get_reward_stats():
    """
    GET /api/admin/qanz/rewards/stats
    Total and this month's QANZ rewarded, active rules, event count
    """
    try:
        stats = _money_values(rewards.reward_stats(), 'total_rewarded', 'rewards_this_month')
        return jsonify({"success": True, "stats": stats}), 200
    except Exception as e:
        return handle_exception(e, {"action": "reward_stats"})


@bp.route('/payouts', methods=['POST'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def create_payout():
    """
    POST /api/admin/payouts
    Debit a wallet for cash paid out to its owner

    Request Body:
        {"owner_id": 12, "amount": "25.00", "description": "Weekly payout"}
    """
    try:
        data, errors = validate_request_data(PayoutSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = wallet.payout(data['owner_id'], data['amount'], request.user_id, data.get('description'))
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Paid out {money_str(data['amount'])} to user #{data['owner_id']}",
            action_type='payout',
            entity_type='wallet',
            entity_id=data['owner_id']
        )
        return jsonify({
            "success": True,
            "transaction_id": result['transaction_id'],
            "balance": money_str(result['balance']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "payout"})


# ---------------------------------------------------------------------------
# Settlements
# ---------------------------------------------------------------------------

@bp.route('/settlements', methods=['GET'])
@require_capability(ADMIN)
def get_settlements():
    """
    GET /api/admin/settlements?status=pending|paid
    """
    try:
        items = settlements.list_settlements(status=request.args.get('status'))
        return jsonify({"success": True, "settlements": settlements_schema.dump(items)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_settlements"})


@bp.route('/settlements/stats', methods=['GET'])
@require_capability(ADMIN)
def get_settlement_stats():
    """
    GET /api/admin/settlements/stats
    """
    try:
        stats = _money_values(
            settlements.settlement_stats(),
            'pending_seller_amount', 'pending_driver_amount', 'platform_revenue'
        )
        return jsonify({"success": True, "stats": stats}), 200
    except Exception as e:
        return handle_exception(e, {"action": "settlement_stats"})


@bp.route('/settlements/<int:settlement_id>/pay', methods=['POST'])
@require_capability(ADMIN)
def pay_settlement(settlement_id):
    """
    POST /api/admin/settlements/<id>/pay
    Credit the seller and driver wallets for a settlement
    """
    try:
        result = settlements.mark_settlement_paid(settlement_id, request.user_id)
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Paid settlement #{settlement_id}",
            action_type='settlement_payment',
            entity_type='settlement',
            entity_id=settlement_id
        )
        return jsonify({"success": True, "settlement": settlement_schema.dump(result['settlement'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "pay_settlement", "settlement_id": settlement_id})


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------

@bp.route('/stats', methods=['GET'])
@require_capability(ADMIN)
def get_admin_stats():
    """
    GET /api/admin/stats
    """
    try:
        stats = _money_values(admin_stats(), 'revenue')
        return jsonify({"success": True, "stats": stats}), 200
    except Exception as e:
        return handle_exception(e, {"action": "admin_stats"})


@bp.route('/users', methods=['GET'])
@require_capability(ADMIN)
def get_users():
    """
    GET /api/admin/users?capability=&search=&limit=
    """
    try:
        limit = min(request.args.get('limit', 200, type=int) or 200, 500)
        result = onboarding.list_users(
            capability=request.args.get('capability'),
            search=sanitize_text(request.args.get('search', '')).strip() or None,
            limit=limit,
        )
        if not result['success']:
            return result_response(result)
        return jsonify({"success": True, "users": profiles_schema.dump(result['users'])}), 200
    except Exception as e:
        return handle_exception(e, {"action": "admin_users"})


@bp.route('/products', methods=['GET'])
@require_capability(ADMIN)
def get_products():
    """
    GET /api/admin/products?seller_id=&active=&search=
    All products, including inactive ones and those of unverified sellers
    """
    try:
        active = request.args.get('active')
        products = catalog.list_all_products(
            seller_id=request.args.get('seller_id', type=int),
            is_active=None if active is None else active.lower() == 'true',
            search=sanitize_text(request.args.get('search', '')).strip() or None,
        )
        return jsonify({"success": True, "products": products_schema.dump(products)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "admin_products"})


@bp.route('/products/<int:product_id>/moderate', methods=['POST'])
@require_capability(ADMIN)
@category_limit(ADMIN_ACTION)
def moderate_product(product_id):
    """
    POST /api/admin/products/<product_id>/moderate
    Deactivate (or reactivate) a product

    Request Body:
        {"is_active": false, "reason": "Counterfeit listing"}
    """
    try:
        data, errors = validate_request_data(ProductModerationSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = catalog.moderate_product(product_id, request.user_id, data['is_active'], data.get('reason'))
        if not result['success']:
            return result_response(result)

        if result['changed']:
            state = 'Reactivated' if data['is_active'] else 'Deactivated'
            log_activity_from_request(
                action=f"{state} product #{product_id}",
                action_type='product_moderation',
                entity_type='product',
                entity_id=product_id,
                details=data.get('reason')
            )
        return jsonify({"success": True, "product": product_schema.dump(result['product'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "moderate_product", "product_id": product_id})


@bp.route('/orders', methods=['GET'])
@require_capability(ADMIN)
def get_orders():
    """
    GET /api/admin/orders?status=
    """
    try:
        orders = list_all_orders(status=request.args.get('status'))
        return jsonify({"success": True, "orders": orders_schema.dump(orders)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "admin_orders"})


@bp.route('/orders/<int:order_id>/cancel', methods=['POST'])
@require_capability(ADMIN)
def admin_cancel_order(order_id):
    """
    POST /api/admin/orders/<id>/cancel
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = sanitize_text(data['reason']) if isinstance(data.get('reason'), str) else None
        result = cancel_order(order_id, request.user_id, is_admin=True, reason=reason)
        if not result['success']:
            return result_response(result)

        log_activity_from_request(
            action=f"Cancelled order #{order_id}",
            action_type='order_cancellation',
            entity_type='order',
            entity_id=order_id,
            details=reason
        )
        return jsonify({"success": True, "order": order_schema.dump(result['order'])}), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "admin_cancel_order", "order_id": order_id})


@bp.route('/activity', methods=['GET'])
@require_capability(ADMIN)
def get_activity():
    """
    GET /api/admin/activity?action_type=&entity_type=&user_id=&limit=
    """
    try:
        limit = min(request.args.get('limit', 100, type=int) or 100, 500)
        logs = list_activity(
            limit=limit,
            action_type=request.args.get('action_type'),
            entity_type=request.args.get('entity_type'),
            user_id=request.args.get('user_id', type=int),
        )
        return jsonify({"success": True, "activity": activity_logs_schema.dump(logs)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_activity"})


@bp.route('/categories', methods=['GET'])
@require_capability(ADMIN)
def get_all_categories():
    """
    GET /api/admin/categories
    Includes inactive categories
    """
    try:
        categories = catalog.list_categories(include_inactive=True)
        return jsonify({"success": True, "categories": categories_schema.dump(categories)}), 200
    except Exception as e:
        return handle_exception(e, {"action": "admin_categories"})


@bp.route('/categories', methods=['POST'])
@require_capability(ADMIN)
def create_category():
    """
    POST /api/admin/categories

    Request Body:
        {"name_en": "Groceries", "name_ar": "بقالة"}
    """
    try:
        data, errors = validate_request_data(CategorySchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        category = catalog.create_category(data['name_en'], data['name_ar'])
        log_activity_from_request(
            action=f"Created category {category.name_en}",
            action_type='category_creation',
            entity_type='category',
            entity_id=category.id
        )
        return jsonify({"success": True, "category": category_schema.dump(category)}), 201
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "create_category"})
