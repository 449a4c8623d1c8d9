"""
QANZ Reward Rules

Admin-tunable rules grant QANZ when marketplace events happen. Each grant
is recorded once per (rule key, reference, user); the unique constraint on
RewardEvent makes issuing idempotent, so a repeated trigger credits nothing.
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from jordanmarket.errors import success, failure, INVALID_INPUT, NOT_FOUND
from jordanmarket.i18n import to_money, parse_money, format_qanz
from jordanmarket.logger_config import app_logger, log_workflow_event
from jordanmarket.models import db, RewardRule, RewardEvent, Order
from jordanmarket.services.notifications import notify_localized
from jordanmarket.services.wallet import credit, REWARD
from jordanmarket.status import ORDER_DELIVERED

ORDER_DELIVERED_REWARD = 'order_delivered'
FIRST_ORDER_REWARD = 'first_order'
DELIVERY_COMPLETED_REWARD = 'delivery_completed'

DEFAULT_RULES = (
    {
        'key': ORDER_DELIVERED_REWARD,
        'title_en': 'Order delivered',
        'title_ar': 'تم توصيل الطلب',
        'amount': Decimal('5.00'),
    },
    {
        'key': FIRST_ORDER_REWARD,
        'title_en': 'First order',
        'title_ar': 'الطلب الأول',
        'amount': Decimal('20.00'),
    },
    {
        'key': DELIVERY_COMPLETED_REWARD,
        'title_en': 'Delivery completed',
        'title_ar': 'تم إكمال التوصيل',
        'amount': Decimal('2.00'),
    },
)

RECENT_EVENTS_LIMIT = 50
USER_EVENTS_LIMIT = 10


def seed_reward_rules():
    """Create the default rules that do not exist yet; returns how many were added"""
    existing = {key for (key,) in db.session.query(RewardRule.key).all()}
    missing = [RewardRule(**rule) for rule in DEFAULT_RULES if rule['key'] not in existing]
    if not missing:
        return 0
    try:
        db.session.add_all(missing)
        db.session.commit()
    except IntegrityError:
        # Seeded concurrently by another worker
        db.session.rollback()
        return 0
    app_logger.info(f"Seeded {len(missing)} QANZ reward rules")
    return len(missing)


def list_rules():
    return RewardRule.query.order_by(RewardRule.created_at.asc(), RewardRule.id.asc()).all()


def update_rule_amount(rule_id, amount):
    rule = db.session.get(RewardRule, rule_id)
    if not rule:
        return failure(NOT_FOUND)

    amount = parse_money(amount)
    if amount is None or amount <= 0:
        return failure(INVALID_INPUT, details={'amount': ['Amount must be greater than zero']})

    rule.amount = amount
    db.session.commit()
    return success(rule=rule)


def set_rule_active(rule_id, is_active):
    rule = db.session.get(RewardRule, rule_id)
    if not rule:
        return failure(NOT_FOUND)

    rule.is_active = bool(is_active)
    db.session.commit()
    return success(rule=rule)


def issue_reward(key, user_id, reference_type, reference_id):
    """
    Credit the rule's QANZ amount to `user_id` for one referenced event

    Returns:
        RewardEvent, or None when the rule is missing/inactive or this
        reference was already rewarded
    """
    rule = RewardRule.query.filter_by(key=key, is_active=True).first()
    if rule is None:
        return None

    amount = to_money(rule.amount)
    try:
        event = RewardEvent(
            key=key,
            reference_type=reference_type,
            reference_id=reference_id,
            user_id=user_id,
            issued_amount=amount,
        )
        db.session.add(event)
        db.session.flush()
        credit(
            user_id, REWARD, amount,
            reference_type='reward_event',
            reference_id=event.id,
            description=rule.title_en,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        app_logger.info(f"Reward '{key}' already issued for {reference_type}#{reference_id} to user {user_id}")
        return None
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('reward', event.id, 'issued', actor_id=user_id, key=key, amount=amount)
    notify_localized(
        user_id, 'wallet', 'qanz_reward',
        reference_type='reward_event', reference_id=event.id,
        amount=format_qanz(amount, 'en'), title_en=rule.title_en, title_ar=rule.title_ar,
    )
    return event


def issue_delivery_rewards(order, delivery):
    """
    Rewards for a delivered order: the buyer's order and first-order rewards
    and the driver's delivery reward. A failure is logged; the delivery has
    already been committed.
    """
    issued = []
    try:
        grants = [(ORDER_DELIVERED_REWARD, order.buyer_id, 'order', order.id)]
        delivered = Order.query.filter_by(buyer_id=order.buyer_id, status=ORDER_DELIVERED).count()
        if delivered == 1:
            grants.append((FIRST_ORDER_REWARD, order.buyer_id, 'profile', order.buyer_id))
        if delivery.driver_id:
            grants.append((DELIVERY_COMPLETED_REWARD, delivery.driver_id, 'delivery', delivery.id))

        for key, user_id, reference_type, reference_id in grants:
            event = issue_reward(key, user_id, reference_type, reference_id)
            if event is not None:
                issued.append(event)
    except Exception as e:
        db.session.rollback()
        app_logger.exception(f"Failed to issue rewards for order {order.id}: {e}")
    return issued


def recent_events(limit=RECENT_EVENTS_LIMIT):
    return (
        RewardEvent.query
        .order_by(RewardEvent.created_at.desc(), RewardEvent.id.desc())
        .limit(limit)
        .all()
    )


def user_events(user_id, limit=USER_EVENTS_LIMIT):
    return (
        RewardEvent.query
        .filter_by(user_id=user_id)
        .order_by(RewardEvent.created_at.desc(), RewardEvent.id.desc())
        .limit(limit)
        .all()
    )


def _month_start(now=None):
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _issued_total(*criteria):
    value = (
        db.session.query(func.coalesce(func.sum(RewardEvent.issued_amount), 0))
        .filter(*criteria)
        .scalar()
    )
    return to_money(value)


def rewards_this_month(user_id=None, now=None):
    """QANZ issued since the first of the month, for one user or the whole platform"""
    criteria = [RewardEvent.created_at >= _month_start(now)]
    if user_id is not None:
        criteria.append(RewardEvent.user_id == user_id)
    return _issued_total(*criteria)


def reward_stats(now=None):
    return {
        'total_rewarded': _issued_total(),
        'rewards_this_month': rewards_this_month(now=now),
        'active_rules': RewardRule.query.filter_by(is_active=True).count(),
        'total_events': RewardEvent.query.count(),
    }
