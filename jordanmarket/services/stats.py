"""
Dashboard statistics per role
"""
from sqlalchemy import func

from jordanmarket.i18n import to_money
from jordanmarket.models import (
    db, User, Order, Product, Delivery, SellerProfile, DriverProfile, CashCollection,
)
from jordanmarket.services.deliveries import ACTIVE_DELIVERY_STATUSES
from jordanmarket.services.wallet import get_balance
from jordanmarket.status import (
    ORDER_DELIVERED, ORDER_CANCELLED, ORDER_PLACED, DELIVERY_DELIVERED, CASH_PENDING,
)


def orders_by_status(*criteria):
    rows = (
        db.session.query(Order.status, func.count(Order.id))
        .filter(*criteria)
        .group_by(Order.status)
        .all()
    )
    return {status: count for status, count in rows}


def _order_sum(column, *criteria):
    return to_money(db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar())


def admin_stats():
    return {
        'total_users': User.query.count(),
        'total_orders': Order.query.count(),
        'pending_sellers': SellerProfile.query.filter_by(is_verified=False, rejected_at=None).count(),
        'pending_drivers': DriverProfile.query.filter_by(is_verified=False, rejected_at=None).count(),
        'revenue': _order_sum(Order.total_amount, Order.status == ORDER_DELIVERED),
        'orders_by_status': orders_by_status(),
    }


def seller_stats(seller_id):
    by_seller = Order.seller_id == seller_id
    open_statuses = (ORDER_DELIVERED, ORDER_CANCELLED)
    return {
        'total_products': Product.query.filter_by(seller_id=seller_id).count(),
        'active_products': Product.query.filter_by(seller_id=seller_id, is_active=True).count(),
        'new_orders': Order.query.filter(by_seller, Order.status == ORDER_PLACED).count(),
        'open_orders': Order.query.filter(by_seller, Order.status.notin_(open_statuses)).count(),
        'delivered_orders': Order.query.filter(by_seller, Order.status == ORDER_DELIVERED).count(),
        'total_sales': _order_sum(Order.total_amount, by_seller, Order.status == ORDER_DELIVERED),
        'orders_by_status': orders_by_status(by_seller),
    }


def driver_stats(driver_id):
    by_driver = Delivery.driver_id == driver_id
    cash_with_driver = db.session.query(
        func.coalesce(func.sum(CashCollection.amount_expected), 0)
    ).filter(CashCollection.driver_id == driver_id, CashCollection.status == CASH_PENDING).scalar()
    return {
        'active_deliveries': Delivery.query.filter(by_driver, Delivery.status.in_(ACTIVE_DELIVERY_STATUSES)).count(),
        'completed_deliveries': Delivery.query.filter(by_driver, Delivery.status == DELIVERY_DELIVERED).count(),
        'cash_with_driver': to_money(cash_with_driver),
        'wallet_balance': get_balance(driver_id),
    }


def buyer_stats(buyer_id):
    by_buyer = Order.buyer_id == buyer_id
    return {
        'total_orders': Order.query.filter(by_buyer).count(),
        'active_orders': Order.query.filter(
            by_buyer, Order.status.notin_((ORDER_DELIVERED, ORDER_CANCELLED))
        ).count(),
        'total_spent': _order_sum(Order.total_amount + Order.delivery_fee, by_buyer, Order.status == ORDER_DELIVERED),
        'wallet_balance': get_balance(buyer_id),
    }
