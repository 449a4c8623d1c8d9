"""
Cash Collection Ledger
pending (cash with driver) -> collected (driver reported) -> confirmed (admin received)
"""
from datetime import datetime

from sqlalchemy import func

from jordanmarket.errors import success, failure, INVALID_INPUT, INVALID_STATE, NOT_FOUND
from jordanmarket.i18n import to_money, parse_money, format_currency
from jordanmarket.logger_config import app_logger, log_workflow_event
from jordanmarket.models import db, CashCollection
from jordanmarket.services.notifications import notify_localized
from jordanmarket.services.settlements import create_settlement
from jordanmarket.status import CASH_PENDING, CASH_COLLECTED, CASH_CONFIRMED


def list_driver_collections(driver_id, status=None):
    query = CashCollection.query.filter_by(driver_id=driver_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(CashCollection.created_at.desc(), CashCollection.id.desc()).all()


def list_open_collections():
    """Collections the admin still has to reconcile (pending or collected)"""
    return (
        CashCollection.query
        .filter(CashCollection.status.in_((CASH_PENDING, CASH_COLLECTED)))
        .order_by(CashCollection.created_at.asc(), CashCollection.id.asc())
        .all()
    )


def mark_collected(collection_id, driver_id, amount_collected):
    amount = parse_money(amount_collected)
    if amount is None or amount < 0:
        return failure(INVALID_INPUT, details={'amount_collected': ['Amount must be zero or more']})

    updated = CashCollection.query.filter_by(
        id=collection_id, driver_id=driver_id, status=CASH_PENDING
    ).update(
        {
            CashCollection.status: CASH_COLLECTED,
            CashCollection.amount_collected: amount,
            CashCollection.collected_at: datetime.utcnow(),
        },
        synchronize_session=False
    )
    db.session.commit()

    if updated != 1:
        collection = db.session.get(CashCollection, collection_id)
        if not collection or collection.driver_id != driver_id:
            return failure(NOT_FOUND)
        return failure(INVALID_STATE, current_status=collection.status)

    log_workflow_event('cash', collection_id, 'collected', actor_id=driver_id, amount=amount)

    collection = db.session.get(CashCollection, collection_id)
    if collection.amount_collected != collection.amount_expected:
        app_logger.warning(
            f"Cash collection #{collection_id}: driver {driver_id} reported {collection.amount_collected}, "
            f"expected {collection.amount_expected}"
        )
    return success(collection=collection)


def confirm_receipt(collection_id, admin_id):
    """Admin confirms the cash reached the platform; opens the order's settlement"""
    try:
        updated = CashCollection.query.filter_by(
            id=collection_id, status=CASH_COLLECTED
        ).update(
            {
                CashCollection.status: CASH_CONFIRMED,
                CashCollection.confirmed_at: datetime.utcnow(),
                CashCollection.confirmed_by: admin_id,
            },
            synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            collection = db.session.get(CashCollection, collection_id)
            if not collection:
                return failure(NOT_FOUND)
            return failure(INVALID_STATE, current_status=collection.status)

        collection = db.session.get(CashCollection, collection_id)
        create_settlement(collection.order, collection.driver_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('cash', collection_id, 'confirmed', actor_id=admin_id)

    collection = db.session.get(CashCollection, collection_id)
    notify_localized(
        collection.driver_id, 'cash', 'cash_confirmed',
        reference_type='order', reference_id=collection.order_id,
        order_id=collection.order_id, amount=format_currency(collection.amount_collected),
    )
    return success(collection=collection)


def cash_summary():
    """Totals per reconciliation stage, summed at read time"""
    rows = (
        db.session.query(
            CashCollection.status,
            func.count(CashCollection.id),
            func.coalesce(func.sum(CashCollection.amount_expected), 0),
            func.coalesce(func.sum(CashCollection.amount_collected), 0),
        )
        .group_by(CashCollection.status)
        .all()
    )
    by_status = {status: (count, expected, collected) for status, count, expected, collected in rows}

    def _stage(status, use_expected):
        count, expected, collected = by_status.get(status, (0, 0, 0))
        return count, to_money(expected if use_expected else collected)

    pending_count, pending_total = _stage(CASH_PENDING, True)
    collected_count, collected_total = _stage(CASH_COLLECTED, False)
    confirmed_count, confirmed_total = _stage(CASH_CONFIRMED, False)

    return {
        'pending_with_drivers': pending_total,
        'pending_count': pending_count,
        'awaiting_confirmation': collected_total,
        'awaiting_count': collected_count,
        'confirmed': confirmed_total,
        'confirmed_count': confirmed_count,
    }
