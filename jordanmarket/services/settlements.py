"""
Settlements
One per confirmed cash collection; paying it out credits the seller and driver wallets
"""
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from jordanmarket.errors import success, failure, INVALID_STATE, NOT_FOUND
from jordanmarket.i18n import to_money, format_currency
from jordanmarket.logger_config import log_workflow_event
from jordanmarket.models import db, Settlement
from jordanmarket.services.notifications import notify_localized
from jordanmarket.services.wallet import credit, SALE_CREDIT, DELIVERY_FEE

SETTLEMENT_PENDING = 'pending'
SETTLEMENT_PAID = 'paid'


def compute_split(order_amount, delivery_fee, fee_rate):
    """Split an order's cash into platform fee, driver fee and seller share"""
    order_amount = to_money(order_amount)
    platform_fee = to_money(order_amount * Decimal(str(fee_rate)))
    return {
        'order_amount': order_amount,
        'platform_fee': platform_fee,
        'driver_fee': to_money(delivery_fee),
        'seller_amount': order_amount - platform_fee,
    }


def create_settlement(order, driver_id):
    """Add a pending settlement for the order; the caller commits"""
    split = compute_split(
        order.total_amount,
        order.delivery_fee,
        current_app.config.get('PLATFORM_FEE_RATE', Decimal('0.05')),
    )
    settlement = Settlement(
        order_id=order.id,
        seller_id=order.seller_id,
        driver_id=driver_id,
        status=SETTLEMENT_PENDING,
        **split
    )
    db.session.add(settlement)
    return settlement


def mark_settlement_paid(settlement_id, admin_id):
    """
    Pay a pending settlement into the seller and driver wallets

    The pending -> paid flip is conditional, so a settlement is credited once.
    """
    try:
        updated = Settlement.query.filter_by(id=settlement_id, status=SETTLEMENT_PENDING).update(
            {Settlement.status: SETTLEMENT_PAID, Settlement.paid_at: datetime.utcnow()},
            synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            settlement = db.session.get(Settlement, settlement_id)
            if not settlement:
                return failure(NOT_FOUND)
            return failure(INVALID_STATE, current_status=settlement.status)

        settlement = db.session.get(Settlement, settlement_id)
        credits = []
        if settlement.seller_amount > 0:
            credits.append((settlement.seller_id, SALE_CREDIT, settlement.seller_amount))
        if settlement.driver_id and settlement.driver_fee > 0:
            credits.append((settlement.driver_id, DELIVERY_FEE, settlement.driver_fee))

        for owner_id, tx_type, amount in credits:
            credit(
                owner_id, tx_type, amount,
                reference_type='order',
                reference_id=settlement.order_id,
                description=f"Order #{settlement.order_id}",
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('settlement', settlement_id, 'paid', actor_id=admin_id)
    for owner_id, _tx_type, amount in credits:
        notify_localized(
            owner_id, 'wallet', 'wallet_credit',
            reference_type='order', reference_id=settlement.order_id,
            order_id=settlement.order_id, amount=format_currency(amount),
        )
    return success(settlement=db.session.get(Settlement, settlement_id))


def list_settlements(status=None, seller_id=None, limit=200):
    query = Settlement.query
    if status:
        query = query.filter_by(status=status)
    if seller_id:
        query = query.filter_by(seller_id=seller_id)
    return query.order_by(Settlement.created_at.desc(), Settlement.id.desc()).limit(limit).all()


def _sum(column, *criteria):
    return to_money(db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar())


def seller_earnings(seller_id):
    by_seller = Settlement.seller_id == seller_id
    return {
        'total_sales': _sum(Settlement.order_amount, by_seller),
        'platform_fees': _sum(Settlement.platform_fee, by_seller),
        'total_earnings': _sum(Settlement.seller_amount, by_seller),
        'pending_payout': _sum(Settlement.seller_amount, by_seller, Settlement.status == SETTLEMENT_PENDING),
        'paid_out': _sum(Settlement.seller_amount, by_seller, Settlement.status == SETTLEMENT_PAID),
        'settlement_count': Settlement.query.filter(by_seller).count(),
    }


def settlement_stats():
    pending = Settlement.status == SETTLEMENT_PENDING
    return {
        'pending_count': Settlement.query.filter(pending).count(),
        'paid_count': Settlement.query.filter(Settlement.status == SETTLEMENT_PAID).count(),
        'pending_seller_amount': _sum(Settlement.seller_amount, pending),
        'pending_driver_amount': _sum(Settlement.driver_fee, pending),
        'platform_revenue': _sum(Settlement.platform_fee),
    }
