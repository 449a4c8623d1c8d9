"""
Wallet/Top-up Ledger

Balances only move through `apply_transaction`, which pairs a server-side
atomic UPDATE of the balance with a WalletTransaction row in the caller's
database transaction.
"""
import re
import secrets
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from jordanmarket.errors import (
    success, failure, INVALID_INPUT, INVALID_OR_USED_CODE, INVALID_STATE,
    INSUFFICIENT_BALANCE, NOT_FOUND,
)
from jordanmarket.i18n import to_money, parse_money, format_qanz
from jordanmarket.logger_config import app_logger, log_workflow_event
from jordanmarket.models import db, Wallet, WalletTransaction, TopupCode, Profile
from jordanmarket.services.notifications import notify_localized

TOPUP = 'topup'
REFUND = 'refund'
SALE_CREDIT = 'sale_credit'
DELIVERY_FEE = 'delivery_fee'
PAYMENT = 'payment'
PAYOUT = 'payout'
REWARD = 'reward'

CREDIT_TYPES = (TOPUP, REFUND, SALE_CREDIT, DELIVERY_FEE, REWARD)
DEBIT_TYPES = (PAYMENT, PAYOUT)

# No 0/O, 1/I to keep codes readable
CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CODE_GROUPS = 3
CODE_GROUP_SIZE = 4
MAX_CODES_PER_BATCH = 100

ZERO = Decimal('0.00')


def signed_amount(tx_type, amount):
    """Credits are positive, debits negative"""
    amount = to_money(amount)
    return -amount if tx_type in DEBIT_TYPES else amount


def get_wallet(owner_id):
    return Wallet.query.filter_by(owner_id=owner_id).first()


def get_or_create_wallet(owner_id):
    """Lazily create the wallet inside the current transaction"""
    wallet = get_wallet(owner_id)
    if wallet:
        return wallet
    try:
        with db.session.begin_nested():
            wallet = Wallet(owner_id=owner_id, balance=ZERO)
            db.session.add(wallet)
    except IntegrityError:
        # Another request created it first
        wallet = Wallet.query.filter_by(owner_id=owner_id).one()
    return wallet


def get_balance(owner_id):
    wallet = get_wallet(owner_id)
    if not wallet:
        return ZERO
    return to_money(wallet.balance)


def apply_transaction(owner_id, tx_type, amount, reference_type=None, reference_id=None, description=None):
    """
    Move a wallet balance and record the transaction. The caller commits.

    Returns:
        WalletTransaction, or None when a debit would take the balance below zero
    """
    if tx_type not in CREDIT_TYPES + DEBIT_TYPES:
        raise ValueError(f"Unknown wallet transaction type: {tx_type}")

    amount = to_money(amount)
    if amount <= 0:
        raise ValueError("Wallet transaction amount must be positive")

    wallet = get_or_create_wallet(owner_id)

    query = Wallet.query.filter(Wallet.id == wallet.id)
    if tx_type in DEBIT_TYPES:
        updated = query.filter(Wallet.balance >= amount).update(
            {Wallet.balance: Wallet.balance - amount, Wallet.updated_at: datetime.utcnow()},
            synchronize_session=False
        )
    else:
        updated = query.update(
            {Wallet.balance: Wallet.balance + amount, Wallet.updated_at: datetime.utcnow()},
            synchronize_session=False
        )

    if updated != 1:
        return None

    transaction = WalletTransaction(
        wallet_id=wallet.id,
        type=tx_type,
        amount=amount,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
    )
    db.session.add(transaction)
    db.session.flush()
    db.session.expire(wallet, ['balance'])
    return transaction


def credit(owner_id, tx_type, amount, reference_type=None, reference_id=None, description=None):
    if tx_type not in CREDIT_TYPES:
        raise ValueError(f"{tx_type} is not a credit type")
    return apply_transaction(owner_id, tx_type, amount, reference_type, reference_id, description)


def debit(owner_id, tx_type, amount, reference_type=None, reference_id=None, description=None):
    """Returns None when the balance is insufficient; nothing is written then"""
    if tx_type not in DEBIT_TYPES:
        raise ValueError(f"{tx_type} is not a debit type")
    return apply_transaction(owner_id, tx_type, amount, reference_type, reference_id, description)


def list_transactions(owner_id, limit=50):
    wallet = get_wallet(owner_id)
    if not wallet:
        return []
    return (
        WalletTransaction.query
        .filter_by(wallet_id=wallet.id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .all()
    )


def normalize_code(raw_code):
    """Strip spaces/dashes, uppercase and regroup in blocks of four"""
    cleaned = re.sub(r'[\s\-]', '', raw_code or '').upper()
    if not cleaned:
        return ''
    return '-'.join(
        cleaned[i:i + CODE_GROUP_SIZE] for i in range(0, len(cleaned), CODE_GROUP_SIZE)
    )


def generate_code():
    groups = [
        ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_GROUP_SIZE))
        for _ in range(CODE_GROUPS)
    ]
    return '-'.join(groups)


def redeem_code(raw_code, owner_id):
    """
    Redeem a single-use top-up code into the owner's wallet

    The code is claimed with one conditional UPDATE; only the request that
    flips redeemed_by from NULL credits the wallet.
    """
    code = normalize_code(raw_code)
    if not code:
        return failure(INVALID_OR_USED_CODE)

    try:
        claimed = TopupCode.query.filter(
            TopupCode.code == code,
            TopupCode.redeemed_by.is_(None),
            TopupCode.voided_at.is_(None),
        ).update(
            {TopupCode.redeemed_by: owner_id, TopupCode.redeemed_at: datetime.utcnow()},
            synchronize_session=False
        )
        if claimed != 1:
            db.session.rollback()
            app_logger.info(f"Rejected top-up code redemption by user {owner_id}")
            return failure(INVALID_OR_USED_CODE)

        topup = TopupCode.query.filter_by(code=code).one()
        amount = to_money(topup.amount)
        credit(
            owner_id, TOPUP, amount,
            reference_type='topup_code',
            reference_id=topup.id,
            description=f"Top-up code {code}",
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_workflow_event('topup_code', topup.id, 'redeemed', actor_id=owner_id, amount=amount)
    notify_localized(
        owner_id, 'wallet', 'wallet_topup',
        reference_type='topup_code', reference_id=topup.id,
        amount=format_qanz(amount, 'en'),
    )
    return success(amount=amount, balance=get_balance(owner_id))


def generate_codes(admin_id, amount, quantity=1):
    """Create `quantity` active codes worth `amount` QANZ each"""
    amount = parse_money(amount)
    if amount is None or amount <= 0:
        return failure(INVALID_INPUT, details={'amount': ['Amount must be greater than zero']})
    max_batch = current_app.config.get('TOPUP_CODE_MAX_BATCH', MAX_CODES_PER_BATCH)
    if not isinstance(quantity, int) or quantity < 1 or quantity > max_batch:
        return failure(INVALID_INPUT, details={'quantity': [f'Quantity must be between 1 and {max_batch}']})

    codes = set()
    while len(codes) < quantity:
        batch = {generate_code() for _ in range(quantity - len(codes))} - codes
        taken = {
            row.code for row in
            TopupCode.query.with_entities(TopupCode.code).filter(TopupCode.code.in_(batch)).all()
        }
        codes.update(batch - taken)

    try:
        created = [TopupCode(code=code, amount=amount, created_by=admin_id) for code in sorted(codes)]
        db.session.add_all(created)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    app_logger.info(f"Admin {admin_id} generated {quantity} top-up codes of {amount}")
    return success(codes=created)


def list_codes(status=None, limit=200):
    query = TopupCode.query
    if status == 'active':
        query = query.filter(TopupCode.redeemed_by.is_(None), TopupCode.voided_at.is_(None))
    elif status == 'redeemed':
        query = query.filter(TopupCode.redeemed_by.isnot(None))
    elif status == 'voided':
        query = query.filter(TopupCode.voided_at.isnot(None))
    return query.order_by(TopupCode.created_at.desc(), TopupCode.id.desc()).limit(limit).all()


def void_code(code_id, admin_id):
    """Void an active code so it can no longer be redeemed"""
    if not db.session.get(TopupCode, code_id):
        return failure(NOT_FOUND)

    voided = TopupCode.query.filter(
        TopupCode.id == code_id,
        TopupCode.redeemed_by.is_(None),
        TopupCode.voided_at.is_(None),
    ).update(
        {TopupCode.voided_at: datetime.utcnow(), TopupCode.voided_by: admin_id},
        synchronize_session=False
    )
    db.session.commit()

    if voided != 1:
        return failure(INVALID_STATE)
    return success(code_id=code_id)


def qanz_stats():
    def _sum(*criteria):
        value = db.session.query(func.coalesce(func.sum(TopupCode.amount), 0)).filter(*criteria).scalar()
        return to_money(value)

    active = (TopupCode.redeemed_by.is_(None), TopupCode.voided_at.is_(None))
    redeemed = (TopupCode.redeemed_by.isnot(None),)
    voided = (TopupCode.voided_at.isnot(None), TopupCode.redeemed_by.is_(None))

    return {
        'total_codes': TopupCode.query.count(),
        'active_codes': TopupCode.query.filter(*active).count(),
        'redeemed_codes': TopupCode.query.filter(*redeemed).count(),
        'voided_codes': TopupCode.query.filter(*voided).count(),
        'outstanding_liability': _sum(*active),
        'total_redeemed': _sum(*redeemed),
        'wallet_balances': to_money(
            db.session.query(func.coalesce(func.sum(Wallet.balance), 0)).scalar()
        ),
    }


def payout(owner_id, amount, admin_id, description=None):
    """Pay out part of a wallet balance (cash handed over outside the platform)"""
    if not db.session.get(Profile, owner_id):
        return failure(NOT_FOUND)

    amount = parse_money(amount)
    if amount is None or amount <= 0:
        return failure(INVALID_INPUT, details={'amount': ['Amount must be greater than zero']})

    try:
        transaction = debit(
            owner_id, PAYOUT, amount,
            reference_type='admin',
            reference_id=admin_id,
            description=description or 'Payout',
        )
        if transaction is None:
            db.session.rollback()
            return failure(INSUFFICIENT_BALANCE)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return success(transaction_id=transaction.id, balance=get_balance(owner_id))
