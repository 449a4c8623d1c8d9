"""
Delivery Assignment Manager

available -> assigned -> picked_up -> delivered, mirrored onto the order.
Each step is one conditional UPDATE scoped to the driver and the expected
status; the delivery and order rows change together or not at all.
"""
from datetime import datetime

from jordanmarket.errors import (
    success, failure, INVALID_INPUT, INVALID_STATE, NOT_FOUND, NOT_VERIFIED,
)
from jordanmarket.i18n import to_money, parse_money
from jordanmarket.logger_config import log_workflow_event
from jordanmarket.models import db, Delivery, Order, DriverProfile, CashCollection
from jordanmarket.services.notifications import notify_localized
from jordanmarket.services.orders import transition_order
from jordanmarket.services.rewards import issue_delivery_rewards
from jordanmarket.status import (
    DELIVERY_AVAILABLE, DELIVERY_ASSIGNED, DELIVERY_PICKED_UP, DELIVERY_DELIVERED,
    ORDER_READY, ORDER_ASSIGNED, ORDER_PICKED_UP, ORDER_DELIVERED, CASH_PENDING,
)

ACTIVE_DELIVERY_STATUSES = (DELIVERY_ASSIGNED, DELIVERY_PICKED_UP)


def list_available_deliveries(limit=100):
    """Unassigned deliveries whose order the seller has marked ready"""
    return (
        Delivery.query
        .join(Order, Order.id == Delivery.order_id)
        .filter(
            Delivery.status == DELIVERY_AVAILABLE,
            Delivery.driver_id.is_(None),
            Order.status == ORDER_READY,
        )
        .order_by(Delivery.created_at.asc(), Delivery.id.asc())
        .limit(limit)
        .all()
    )


def list_driver_deliveries(driver_id, active_only=False, limit=100):
    query = Delivery.query.filter_by(driver_id=driver_id)
    if active_only:
        query = query.filter(Delivery.status.in_(ACTIVE_DELIVERY_STATUSES))
    return query.order_by(Delivery.assigned_at.desc(), Delivery.id.desc()).limit(limit).all()


def _ownership_failure(delivery_id, driver_id):
    """Classify a conditional update that touched no rows"""
    delivery = db.session.get(Delivery, delivery_id)
    if not delivery or delivery.driver_id != driver_id:
        return failure(NOT_FOUND)
    return failure(INVALID_STATE, current_status=delivery.status)


def accept_delivery(delivery_id, driver_id):
    """
    Assign an available delivery to a driver; the first accept wins

    The claim is `UPDATE deliveries SET driver_id=?, status='assigned'
    WHERE id=? AND status='available' AND driver_id IS NULL`. A second driver
    finds zero rows and gets INVALID_STATE.
    """
    driver = db.session.get(DriverProfile, driver_id)
    if not driver or not driver.is_verified:
        return failure(NOT_VERIFIED)
    if not driver.is_active:
        return failure(INVALID_STATE, details={'driver': ['Go online before accepting deliveries']})

    delivery = db.session.get(Delivery, delivery_id)
    if not delivery:
        return failure(NOT_FOUND)

    now = datetime.utcnow()
    try:
        claimed = Delivery.query.filter(
            Delivery.id == delivery_id,
            Delivery.status == DELIVERY_AVAILABLE,
            Delivery.driver_id.is_(None),
        ).update(
            {Delivery.driver_id: driver_id, Delivery.status: DELIVERY_ASSIGNED, Delivery.assigned_at: now},
            synchronize_session=False
        )
        if claimed != 1:
            db.session.rollback()
            return failure(INVALID_STATE)

        order = db.session.get(Order, delivery.order_id)
        if not transition_order(order.id, ORDER_READY, ORDER_ASSIGNED, 'driver', driver_id):
            # Order not ready yet (or cancelled meanwhile)
            db.session.rollback()
            return failure(INVALID_STATE)

        if order.payment_method == 'cod':
            db.session.add(CashCollection(
                order_id=order.id,
                driver_id=driver_id,
                status=CASH_PENDING,
                amount_expected=to_money(order.grand_total),
            ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('delivery', delivery_id, 'accepted', actor_id=driver_id)
    for user_id in (order.buyer_id, order.seller_id):
        notify_localized(
            user_id, 'delivery', 'delivery_assigned',
            reference_type='order', reference_id=order.id, order_id=order.id,
        )
    return success(delivery=db.session.get(Delivery, delivery_id))


def mark_picked_up(delivery_id, driver_id):
    try:
        updated = Delivery.query.filter_by(
            id=delivery_id, driver_id=driver_id, status=DELIVERY_ASSIGNED
        ).update(
            {Delivery.status: DELIVERY_PICKED_UP, Delivery.picked_up_at: datetime.utcnow()},
            synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            return _ownership_failure(delivery_id, driver_id)

        delivery = db.session.get(Delivery, delivery_id)
        if not transition_order(delivery.order_id, ORDER_ASSIGNED, ORDER_PICKED_UP, 'driver', driver_id):
            db.session.rollback()
            return failure(INVALID_STATE)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log_workflow_event('delivery', delivery_id, 'picked_up', actor_id=driver_id)

    order = db.session.get(Order, delivery.order_id)
    notify_localized(
        order.buyer_id, 'delivery', 'delivery_picked_up',
        reference_type='order', reference_id=order.id, order_id=order.id,
    )
    return success(delivery=db.session.get(Delivery, delivery_id))


def complete_delivery(delivery_id, driver_id, cash_collected):
    """Mark a picked-up delivery delivered and record the cash taken at the door"""
    amount = parse_money(cash_collected)
    if amount is None or amount < 0:
        return failure(INVALID_INPUT, details={'cash_collected': ['Amount must be zero or more']})

    try:
        updated = Delivery.query.filter_by(
            id=delivery_id, driver_id=driver_id, status=DELIVERY_PICKED_UP
        ).update(
            {
                Delivery.status: DELIVERY_DELIVERED,
                Delivery.delivered_at: datetime.utcnow(),
                Delivery.cash_collected: amount,
            },
            synchronize_session=False
        )
        if updated != 1:
            db.session.rollback()
            return _ownership_failure(delivery_id, driver_id)

        delivery = db.session.get(Delivery, delivery_id)
        if not transition_order(delivery.order_id, ORDER_PICKED_UP, ORDER_DELIVERED, 'driver', driver_id):
            db.session.rollback()
            return failure(INVALID_STATE)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    order = db.session.get(Order, delivery.order_id)
    log_workflow_event('delivery', delivery_id, 'delivered', actor_id=driver_id, cash=amount)
    for user_id in (order.buyer_id, order.seller_id):
        notify_localized(
            user_id, 'delivery', 'delivery_delivered',
            reference_type='order', reference_id=order.id, order_id=order.id,
        )
    issue_delivery_rewards(order, db.session.get(Delivery, delivery_id))
    return success(delivery=db.session.get(Delivery, delivery_id))
