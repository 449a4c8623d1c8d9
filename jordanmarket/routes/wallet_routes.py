"""
Wallet Routes Blueprint
QANZ balance, transaction history and top-up code redemption
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db
from jordanmarket.auth import login_required
from jordanmarket.errors import failure, result_response, INVALID_INPUT
from jordanmarket.error_handler import handle_exception
from jordanmarket.i18n import money_str, format_qanz, resolve_locale
from jordanmarket.rate_limit import category_limit, QANZ_REDEEM
from jordanmarket.schemas import wallet_transactions_schema, reward_events_schema
from jordanmarket.services import rewards
from jordanmarket.services.wallet import get_balance, list_transactions, redeem_code
from jordanmarket.validation import validate_request_data, RedeemCodeSchema

bp = Blueprint('wallet', __name__)


@bp.route('/wallet', methods=['GET'])
@login_required
def get_wallet():
    """
    GET /api/wallet?limit=
    Balance and recent transactions (with signed amounts)
    """
    try:
        limit = min(request.args.get('limit', 50, type=int) or 50, 200)
        balance = get_balance(request.user_id)
        return jsonify({
            "success": True,
            "balance": money_str(balance),
            "balance_display": format_qanz(balance, resolve_locale()),
            "transactions": wallet_transactions_schema.dump(list_transactions(request.user_id, limit=limit)),
        }), 200
    except Exception as e:
        return handle_exception(e, {"action": "get_wallet"})


@bp.route('/wallet/redeem', methods=['POST'])
@login_required
@category_limit(QANZ_REDEEM)
def redeem():
    """
    POST /api/wallet/redeem
    Redeem a top-up code; dashes, spaces and case are ignored

    Request Body:
        {"code": "ABCD-EFGH-JKLM"}
    """
    try:
        data, errors = validate_request_data(RedeemCodeSchema, request.get_json(silent=True))
        if errors:
            return result_response(failure(INVALID_INPUT, details=errors))

        result = redeem_code(data['code'], request.user_id)
        if not result['success']:
            return result_response(result)

        return jsonify({
            "success": True,
            "amount": money_str(result['amount']),
            "balance": money_str(result['balance']),
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "redeem_code"})


@bp.route('/wallet/rewards', methods=['GET'])
@login_required
def get_rewards():
    """
    GET /api/wallet/rewards?limit=
    The user's latest QANZ rewards and this month's total
    """
    try:
        limit = min(request.args.get('limit', rewards.USER_EVENTS_LIMIT, type=int) or rewards.USER_EVENTS_LIMIT, 50)
        return jsonify({
            "success": True,
            "rewards_this_month": money_str(rewards.rewards_this_month(request.user_id)),
            "events": reward_events_schema.dump(rewards.user_events(request.user_id, limit=limit)),
        }), 200
    except Exception as e:
        return handle_exception(e, {"action": "get_rewards"})
