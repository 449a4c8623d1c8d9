"""
Status Workflows
Transition tables and bilingual labels for orders, deliveries and cash collections
"""

ORDER_PLACED = 'placed'
ORDER_ACCEPTED = 'accepted'
ORDER_PREPARING = 'preparing'
ORDER_READY = 'ready'
ORDER_ASSIGNED = 'assigned'
ORDER_PICKED_UP = 'picked_up'
ORDER_DELIVERED = 'delivered'
ORDER_CANCELLED = 'cancelled'

ORDER_FLOW = (
    ORDER_PLACED,
    ORDER_ACCEPTED,
    ORDER_PREPARING,
    ORDER_READY,
    ORDER_ASSIGNED,
    ORDER_PICKED_UP,
    ORDER_DELIVERED,
)

ORDER_TRANSITIONS = {
    ORDER_PLACED: (ORDER_ACCEPTED, ORDER_CANCELLED),
    ORDER_ACCEPTED: (ORDER_PREPARING, ORDER_CANCELLED),
    ORDER_PREPARING: (ORDER_READY,),
    ORDER_READY: (ORDER_ASSIGNED,),
    ORDER_ASSIGNED: (ORDER_PICKED_UP,),
    ORDER_PICKED_UP: (ORDER_DELIVERED,),
    ORDER_DELIVERED: (),
    ORDER_CANCELLED: (),
}

# Statuses the seller sets directly; the rest follow the delivery
SELLER_ORDER_STATUSES = (ORDER_ACCEPTED, ORDER_PREPARING, ORDER_READY)
CANCELLABLE_ORDER_STATUSES = (ORDER_PLACED, ORDER_ACCEPTED)

DELIVERY_AVAILABLE = 'available'
DELIVERY_ASSIGNED = 'assigned'
DELIVERY_PICKED_UP = 'picked_up'
DELIVERY_DELIVERED = 'delivered'
DELIVERY_CANCELLED = 'cancelled'

DELIVERY_TRANSITIONS = {
    DELIVERY_AVAILABLE: (DELIVERY_ASSIGNED, DELIVERY_CANCELLED),
    DELIVERY_ASSIGNED: (DELIVERY_PICKED_UP, DELIVERY_CANCELLED),
    DELIVERY_PICKED_UP: (DELIVERY_DELIVERED,),
    DELIVERY_DELIVERED: (),
    DELIVERY_CANCELLED: (),
}

CASH_PENDING = 'pending'
CASH_COLLECTED = 'collected'
CASH_CONFIRMED = 'confirmed'

CASH_TRANSITIONS = {
    CASH_PENDING: (CASH_COLLECTED,),
    CASH_COLLECTED: (CASH_CONFIRMED,),
    CASH_CONFIRMED: (),
}

STATUS_LABELS = {
    'order': {
        ORDER_PLACED: {'en': 'Placed', 'ar': 'تم الطلب'},
        ORDER_ACCEPTED: {'en': 'Accepted', 'ar': 'مقبول'},
        ORDER_PREPARING: {'en': 'Preparing', 'ar': 'قيد التحضير'},
        ORDER_READY: {'en': 'Ready for Pickup', 'ar': 'جاهز للاستلام'},
        ORDER_ASSIGNED: {'en': 'Driver Assigned', 'ar': 'تم تعيين سائق'},
        ORDER_PICKED_UP: {'en': 'Picked Up', 'ar': 'تم الاستلام'},
        ORDER_DELIVERED: {'en': 'Delivered', 'ar': 'تم التوصيل'},
        ORDER_CANCELLED: {'en': 'Cancelled', 'ar': 'ملغي'},
    },
    'delivery': {
        DELIVERY_AVAILABLE: {'en': 'Available', 'ar': 'متاح'},
        DELIVERY_ASSIGNED: {'en': 'Assigned', 'ar': 'تم التعيين'},
        DELIVERY_PICKED_UP: {'en': 'Picked Up', 'ar': 'تم الاستلام'},
        DELIVERY_DELIVERED: {'en': 'Delivered', 'ar': 'تم التوصيل'},
        DELIVERY_CANCELLED: {'en': 'Cancelled', 'ar': 'ملغي'},
    },
    'cash': {
        CASH_PENDING: {'en': 'With Driver', 'ar': 'مع السائق'},
        CASH_COLLECTED: {'en': 'Collected', 'ar': 'تم التحصيل'},
        CASH_CONFIRMED: {'en': 'Confirmed', 'ar': 'تم التأكيد'},
    },
}


def can_transition(transitions, current, new):
    """Return True if `new` is a direct successor of `current` in the given table"""
    return new in transitions.get(current, ())


def status_label(kind, status, locale='en'):
    labels = STATUS_LABELS.get(kind, {}).get(status)
    if not labels:
        return status.replace('_', ' ').title()
    return labels.get(locale) or labels['en']
