"""
Localization helpers
Message lookup (en/ar), request locale resolution and money/phone formatting
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import request, current_app, has_request_context

TWO_PLACES = Decimal('0.01')

MESSAGES = {
    'en': {
        # Result codes
        'UNAUTHENTICATED': 'Authentication required',
        'FORBIDDEN': 'You do not have permission to perform this action',
        'INVALID_INPUT': 'Invalid input provided',
        'INVALID_TRANSITION': 'This status change is not allowed',
        'NOT_FOUND': 'The requested item was not found',
        'INVALID_STATE': 'This item is no longer in a state that allows this action',
        'INSUFFICIENT_STOCK': 'Not enough stock for one or more products',
        'INSUFFICIENT_BALANCE': 'Insufficient wallet balance',
        'INVALID_OR_USED_CODE': 'Invalid or already used code',
        'RATE_LIMITED': 'Too many requests. Please try again later.',
        'PROFILE_MISSING': 'Profile not found',
        'DIFFERENT_SELLER': 'Your cart contains items from another seller. Clear it to add this product.',
        'NOT_VERIFIED': 'Your account is pending verification',
        'SERVER_ERROR': 'Something went wrong. Please try again.',

        # Notifications
        'notify.order_placed.title': 'New order #{order_id}',
        'notify.order_placed.message': 'You received a new order worth {amount}.',
        'notify.order_status.title': 'Order #{order_id} updated',
        'notify.order_status.message': 'Your order is now: {status}.',
        'notify.order_cancelled.title': 'Order #{order_id} cancelled',
        'notify.order_cancelled.message': 'Order #{order_id} has been cancelled.',
        'notify.delivery_assigned.title': 'Driver assigned to order #{order_id}',
        'notify.delivery_assigned.message': 'A driver has accepted the delivery of order #{order_id}.',
        'notify.delivery_picked_up.title': 'Order #{order_id} picked up',
        'notify.delivery_picked_up.message': 'Your order is on its way.',
        'notify.delivery_delivered.title': 'Order #{order_id} delivered',
        'notify.delivery_delivered.message': 'Order #{order_id} has been delivered.',
        'notify.cash_confirmed.title': 'Cash confirmed for order #{order_id}',
        'notify.cash_confirmed.message': 'The admin confirmed receipt of {amount}.',
        'notify.wallet_topup.title': 'Wallet topped up',
        'notify.wallet_topup.message': '{amount} were added to your wallet.',
        'notify.wallet_credit.title': 'Wallet credited',
        'notify.wallet_credit.message': '{amount} were added to your wallet for order #{order_id}.',
        'notify.seller_verified.title': 'Store approved',
        'notify.seller_verified.message': 'Your store has been verified. You can start selling.',
        'notify.driver_verified.title': 'Driver account approved',
        'notify.driver_verified.message': 'Your driver account has been verified. You can go online.',
        'notify.seller_rejected.title': 'Store application declined',
        'notify.seller_rejected.message': 'Your store application was not approved. {reason}',
        'notify.driver_rejected.title': 'Driver application declined',
        'notify.driver_rejected.message': 'Your driver application was not approved. {reason}',
        'notify.qanz_reward.title': 'You earned QANZ',
        'notify.qanz_reward.message': '{amount} were added to your wallet: {title_en}.',
        'notify.product_deactivated.title': 'Product removed from the store',
        'notify.product_deactivated.message': '"{name_en}" was deactivated by an admin. {reason}',
    },
    'ar': {
        'UNAUTHENTICATED': 'يجب تسجيل الدخول',
        'FORBIDDEN': 'ليس لديك صلاحية لتنفيذ هذا الإجراء',
        'INVALID_INPUT': 'البيانات المدخلة غير صالحة',
        'INVALID_TRANSITION': 'لا يمكن تغيير الحالة بهذا الشكل',
        'NOT_FOUND': 'العنصر المطلوب غير موجود',
        'INVALID_STATE': 'لم يعد هذا العنصر في حالة تسمح بهذا الإجراء',
        'INSUFFICIENT_STOCK': 'الكمية المتوفرة غير كافية لمنتج أو أكثر',
        'INSUFFICIENT_BALANCE': 'رصيد المحفظة غير كافٍ',
        'INVALID_OR_USED_CODE': 'الرمز غير صالح أو مستخدم مسبقاً',
        'RATE_LIMITED': 'طلبات كثيرة جداً. يرجى المحاولة مرة أخرى لاحقاً.',
        'PROFILE_MISSING': 'الملف الشخصي غير موجود',
        'DIFFERENT_SELLER': 'سلتك تحتوي على منتجات من بائع آخر. أفرغ السلة لإضافة هذا المنتج.',
        'NOT_VERIFIED': 'حسابك قيد المراجعة',
        'SERVER_ERROR': 'حدث خطأ ما. يرجى المحاولة مرة أخرى.',

        'notify.order_placed.title': 'طلب جديد #{order_id}',
        'notify.order_placed.message': 'لديك طلب جديد بقيمة {amount}.',
        'notify.order_status.title': 'تحديث الطلب #{order_id}',
        'notify.order_status.message': 'حالة طلبك الآن: {status}.',
        'notify.order_cancelled.title': 'تم إلغاء الطلب #{order_id}',
        'notify.order_cancelled.message': 'تم إلغاء الطلب #{order_id}.',
        'notify.delivery_assigned.title': 'تم تعيين سائق للطلب #{order_id}',
        'notify.delivery_assigned.message': 'قبل سائق توصيل الطلب #{order_id}.',
        'notify.delivery_picked_up.title': 'تم استلام الطلب #{order_id}',
        'notify.delivery_picked_up.message': 'طلبك في الطريق إليك.',
        'notify.delivery_delivered.title': 'تم توصيل الطلب #{order_id}',
        'notify.delivery_delivered.message': 'تم توصيل الطلب #{order_id}.',
        'notify.cash_confirmed.title': 'تأكيد المبلغ للطلب #{order_id}',
        'notify.cash_confirmed.message': 'أكد المشرف استلام {amount}.',
        'notify.wallet_topup.title': 'تم شحن المحفظة',
        'notify.wallet_topup.message': 'تمت إضافة {amount} إلى محفظتك.',
        'notify.wallet_credit.title': 'إيداع في المحفظة',
        'notify.wallet_credit.message': 'تمت إضافة {amount} إلى محفظتك عن الطلب #{order_id}.',
        'notify.seller_verified.title': 'تمت الموافقة على المتجر',
        'notify.seller_verified.message': 'تم توثيق متجرك. يمكنك البدء بالبيع.',
        'notify.driver_verified.title': 'تمت الموافقة على حساب السائق',
        'notify.driver_verified.message': 'تم توثيق حسابك كسائق. يمكنك البدء بالعمل.',
        'notify.seller_rejected.title': 'تم رفض طلب المتجر',
        'notify.seller_rejected.message': 'لم تتم الموافقة على طلب متجرك. {reason}',
        'notify.driver_rejected.title': 'تم رفض طلب السائق',
        'notify.driver_rejected.message': 'لم تتم الموافقة على طلبك كسائق. {reason}',
        'notify.qanz_reward.title': 'حصلت على قنز',
        'notify.qanz_reward.message': 'تمت إضافة {amount} إلى محفظتك: {title_ar}.',
        'notify.product_deactivated.title': 'تمت إزالة منتج من المتجر',
        'notify.product_deactivated.message': 'قام المشرف بإيقاف "{name_ar}". {reason}',
    },
}

SUPPORTED_LOCALES = tuple(MESSAGES)
FALLBACK_LOCALE = 'ar'


def normalize_locale(locale):
    if not locale:
        return None
    locale = locale.strip().lower()[:2]
    return locale if locale in SUPPORTED_LOCALES else None


def translate(key, locale=None, **params):
    """
    Look up a message by key

    Falls back to English, then to the key itself. Named params are
    interpolated with str.format.
    """
    locale = normalize_locale(locale) or FALLBACK_LOCALE
    template = MESSAGES[locale].get(key) or MESSAGES['en'].get(key) or key
    if params:
        return template.format(**params)
    return template


def resolve_locale():
    """
    Resolve the locale for the current request

    Priority:
    1. `locale` query parameter
    2. `NEXT_LOCALE` cookie
    3. Accept-Language header
    4. DEFAULT_LOCALE from config
    """
    default = FALLBACK_LOCALE
    if not has_request_context():
        return default

    default = normalize_locale(current_app.config.get('DEFAULT_LOCALE')) or default

    locale = normalize_locale(request.args.get('locale'))
    if locale:
        return locale

    locale = normalize_locale(request.cookies.get('NEXT_LOCALE'))
    if locale:
        return locale

    best = request.accept_languages.best_match(SUPPORTED_LOCALES)
    return best or default


def to_money(value):
    """Coerce to a Decimal rounded to two places"""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_money(value):
    """
    to_money for untrusted input

    Returns None for missing, malformed or non-finite values so callers can
    answer INVALID_INPUT instead of raising.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not amount.is_finite():
            return None
        return to_money(amount)
    except (InvalidOperation, ValueError, TypeError):
        return None


def money_str(value):
    """Two-fraction-digit string for JSON output"""
    value = to_money(value)
    return None if value is None else f"{value:.2f}"


def format_currency(amount, locale='en'):
    """Format a JOD amount, e.g. 'JOD 12.50' / '12.50 د.أ'"""
    value = money_str(amount or 0)
    if normalize_locale(locale) == 'ar':
        return f"{value} د.أ"
    return f"JOD {value}"


def format_qanz(amount, locale='en'):
    """Format a QANZ amount as whole coins"""
    value = to_money(amount or 0).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    formatted = f"{value:,}"
    if normalize_locale(locale) == 'ar':
        return f"{formatted} قنز"
    return f"{formatted} QANZ"


def format_phone(phone):
    """Format a Jordanian mobile number as +962 7X XXX XXXX"""
    if not phone:
        return ''
    digits = re.sub(r'\D', '', phone)
    if digits.startswith('00'):
        digits = digits[2:]
    if digits.startswith('962'):
        digits = digits[3:]
    if digits.startswith('0'):
        digits = digits[1:]
    if len(digits) != 9:
        return phone
    return f"+962 {digits[:2]} {digits[2:5]} {digits[5:]}"
