"""
Order Lifecycle Manager

Orders move forward along status.ORDER_TRANSITIONS only. Every transition
is a conditional UPDATE on the expected current status; a zero row count
means another request got there first and the call fails without writing.
"""
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from jordanmarket.errors import (
    success, failure, INVALID_INPUT, INVALID_TRANSITION, NOT_FOUND, FORBIDDEN,
    INSUFFICIENT_STOCK,
)
from jordanmarket.i18n import to_money, parse_money, format_currency
from jordanmarket.logger_config import app_logger, log_workflow_event
from jordanmarket.models import (
    db, Order, OrderItem, OrderStatusHistory, Product, Delivery, SellerProfile,
)
from jordanmarket.services.notifications import notify_localized
from jordanmarket.status import (
    ORDER_TRANSITIONS, ORDER_PLACED, ORDER_CANCELLED, SELLER_ORDER_STATUSES,
    CANCELLABLE_ORDER_STATUSES, DELIVERY_AVAILABLE, DELIVERY_ASSIGNED,
    DELIVERY_CANCELLED, can_transition, status_label,
)


def transition_order(order_id, expected_status, new_status, actor_type, actor_id, notes=None):
    """
    Conditionally move an order from expected_status to new_status and record history

    Does not commit. Returns True when the row was updated.
    """
    updated = Order.query.filter_by(id=order_id, status=expected_status).update(
        {Order.status: new_status, Order.updated_at: datetime.utcnow()},
        synchronize_session=False
    )
    if updated != 1:
        return False

    db.session.add(OrderStatusHistory(
        order_id=order_id,
        status=new_status,
        status_label=status_label('order', new_status, 'en'),
        changed_by_type=actor_type,
        changed_by_id=actor_id,
        notes=notes,
    ))
    return True


def _merge_items(items):
    """Validate line items and merge repeated products; returns (merged, errors)"""
    if not items:
        return None, {'items': ['At least one item is required']}

    merged = OrderedDict()
    for index, item in enumerate(items):
        product_id = item.get('product_id')
        quantity = item.get('quantity')
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            return None, {'items': {index: ['Invalid product']}}
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            return None, {'items': {index: ['Quantity must be a positive integer']}}
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged, None


def create_order(buyer_id, seller_id, items, delivery_address, delivery_fee,
                 delivery_phone=None, notes=None):
    """
    Create an order with its items and companion delivery in one transaction

    Args:
        buyer_id: Ordering user
        seller_id: Seller every product must belong to
        items: list of {'product_id': int, 'quantity': int}
        delivery_address: Drop-off address
        delivery_fee: JOD fee, >= 0

    Returns:
        dict: success(order=Order) or a failure result. Stock is decremented
        only if every product has enough; otherwise nothing is written.
    """
    merged, errors = _merge_items(items)
    if errors:
        return failure(INVALID_INPUT, details=errors)

    fee = parse_money(delivery_fee)
    if fee is None or fee < 0:
        return failure(INVALID_INPUT, details={'delivery_fee': ['Delivery fee must be zero or more']})

    if not delivery_address or not delivery_address.strip():
        return failure(INVALID_INPUT, details={'delivery_address': ['Delivery address is required']})

    if buyer_id == seller_id:
        return failure(INVALID_INPUT, details={'seller_id': ['You cannot order your own products']})

    seller = db.session.get(SellerProfile, seller_id)
    if not seller or not seller.is_verified:
        return failure(INVALID_INPUT, details={'seller_id': ['Seller is not available']})

    products = {
        p.id: p for p in Product.query.filter(Product.id.in_(list(merged))).all()
    }
    for product_id in merged:
        product = products.get(product_id)
        if not product or not product.is_active or product.seller_id != seller_id:
            return failure(INVALID_INPUT, details={'items': [f'Product {product_id} is not available from this seller']})

    total = sum(
        (to_money(products[pid].price) * qty for pid, qty in merged.items()),
        Decimal('0.00')
    )

    try:
        order = Order(
            buyer_id=buyer_id,
            seller_id=seller_id,
            status=ORDER_PLACED,
            total_amount=to_money(total),
            delivery_fee=fee,
            delivery_address=delivery_address.strip(),
            delivery_phone=delivery_phone,
            notes=notes,
        )
        db.session.add(order)
        db.session.flush()

        for product_id, quantity in merged.items():
            decremented = Product.query.filter(
                Product.id == product_id,
                Product.stock >= quantity,
            ).update({Product.stock: Product.stock - quantity}, synchronize_session=False)
            if decremented != 1:
                db.session.rollback()
                app_logger.info(f"Order rejected for buyer {buyer_id}: insufficient stock for product {product_id}")
                return failure(INSUFFICIENT_STOCK, product_id=product_id)

            db.session.add(OrderItem(
                order_id=order.id,
                product_id=product_id,
                quantity=quantity,
                unit_price=to_money(products[product_id].price),
            ))

        db.session.add(Delivery(
            order_id=order.id,
            status=DELIVERY_AVAILABLE,
            pickup_address=seller.address,
            delivery_address=order.delivery_address,
        ))
        db.session.add(OrderStatusHistory(
            order_id=order.id,
            status=ORDER_PLACED,
            status_label=status_label('order', ORDER_PLACED, 'en'),
            changed_by_type='buyer',
            changed_by_id=buyer_id,
        ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('order', order.id, 'placed', actor_id=buyer_id, seller=seller_id, total=order.total_amount)
    notify_localized(
        seller_id, 'order', 'order_placed',
        reference_type='order', reference_id=order.id,
        order_id=order.id, amount=format_currency(order.grand_total),
    )
    return success(order=order)


def advance_status(order_id, actor_id, new_status, notes=None):
    """
    Seller-driven transitions: placed -> accepted -> preparing -> ready
    """
    order = db.session.get(Order, order_id)
    if not order:
        return failure(NOT_FOUND)

    if order.seller_id != actor_id:
        return failure(FORBIDDEN)

    current = order.status
    if new_status not in SELLER_ORDER_STATUSES or not can_transition(ORDER_TRANSITIONS, current, new_status):
        return failure(INVALID_TRANSITION, current_status=current, requested_status=new_status)

    try:
        if not transition_order(order_id, current, new_status, 'seller', actor_id, notes):
            db.session.rollback()
            return failure(INVALID_TRANSITION, current_status=current, requested_status=new_status)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log_workflow_event('order', order_id, new_status, actor_id=actor_id, previous=current)

    notify_localized(
        order.buyer_id, 'order', 'order_status',
        reference_type='order', reference_id=order.id,
        order_id=order.id, status=status_label('order', new_status, 'en'),
    )
    return success(order=order)


def cancel_order(order_id, actor_id, is_admin=False, reason=None):
    """
    Cancel an order while it is still placed or accepted

    The companion delivery is cancelled and the reserved stock restored.
    """
    order = db.session.get(Order, order_id)
    if not order:
        return failure(NOT_FOUND)

    if actor_id == order.buyer_id:
        actor_type = 'buyer'
    elif actor_id == order.seller_id:
        actor_type = 'seller'
    elif is_admin:
        actor_type = 'admin'
    else:
        return failure(FORBIDDEN)

    current = order.status
    if current not in CANCELLABLE_ORDER_STATUSES:
        return failure(INVALID_TRANSITION, current_status=current, requested_status=ORDER_CANCELLED)

    try:
        if not transition_order(order_id, current, ORDER_CANCELLED, actor_type, actor_id, reason):
            db.session.rollback()
            return failure(INVALID_TRANSITION, current_status=current, requested_status=ORDER_CANCELLED)

        Delivery.query.filter(
            Delivery.order_id == order_id,
            Delivery.status.in_((DELIVERY_AVAILABLE, DELIVERY_ASSIGNED)),
        ).update({Delivery.status: DELIVERY_CANCELLED}, synchronize_session=False)

        for item in order.items:
            Product.query.filter_by(id=item.product_id).update(
                {Product.stock: Product.stock + item.quantity}, synchronize_session=False
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('order', order.id, 'cancelled', actor_id=actor_id, actor_type=actor_type)

    recipients = {order.buyer_id, order.seller_id} - {actor_id}
    for user_id in recipients:
        notify_localized(
            user_id, 'order', 'order_cancelled',
            reference_type='order', reference_id=order.id, order_id=order.id,
        )
    return success(order=order)


def can_view_order(order, caps):
    if caps.is_admin:
        return True
    if caps.user_id in (order.buyer_id, order.seller_id):
        return True
    return bool(order.delivery and order.delivery.driver_id == caps.user_id)


def get_order_for(order_id, caps):
    order = db.session.get(Order, order_id)
    if not order:
        return failure(NOT_FOUND)
    if not can_view_order(order, caps):
        return failure(FORBIDDEN)
    return success(order=order)


def list_buyer_orders(buyer_id, status=None, limit=100):
    query = Order.query.filter_by(buyer_id=buyer_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def list_seller_orders(seller_id, status=None, limit=100):
    query = Order.query.filter_by(seller_id=seller_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def list_all_orders(status=None, limit=200):
    query = Order.query
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
