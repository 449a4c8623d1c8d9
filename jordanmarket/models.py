from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
from decimal import Decimal

db = SQLAlchemy()

MONEY = db.Numeric(12, 2)


def application_status(application):
    """'pending', 'verified' or 'rejected' for a seller/driver application"""
    if application.is_verified:
        return 'verified'
    if application.rejected_at is not None:
        return 'rejected'
    return 'pending'


class User(db.Model):
    """Authentication identity (email + password hash)"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship('Profile', backref='user', uselist=False)

    def __repr__(self):
        return f'<User {self.email}>'


class Profile(db.Model):
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, db.ForeignKey('users.id'), primary_key=True, autoincrement=False)
    full_name = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    preferred_locale = db.Column(db.String(5), default='ar', nullable=False)

    # Primary role, recomputed from the capability flags
    role = db.Column(db.String(20), default='buyer', nullable=False)
    is_buyer = db.Column(db.Boolean, default=True, nullable=False)
    is_seller = db.Column(db.Boolean, default=False, nullable=False)
    is_driver = db.Column(db.Boolean, default=False, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    seller_profile = db.relationship(
        'SellerProfile', backref='profile', uselist=False, foreign_keys='SellerProfile.user_id'
    )
    driver_profile = db.relationship(
        'DriverProfile', backref='profile', uselist=False, foreign_keys='DriverProfile.user_id'
    )

    def __repr__(self):
        return f'<Profile {self.id} - {self.role}>'


class SellerProfile(db.Model):
    __tablename__ = 'seller_profiles'

    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), primary_key=True)
    store_name = db.Column(db.String(150), nullable=False)
    store_description = db.Column(db.Text)
    address = db.Column(db.Text)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    verified_at = db.Column(db.DateTime)
    verified_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    rejected_at = db.Column(db.DateTime)
    rejected_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    rejection_reason = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def status(self):
        return application_status(self)

    def __repr__(self):
        return f'<SellerProfile {self.user_id} - {self.store_name}>'


class DriverProfile(db.Model):
    __tablename__ = 'driver_profiles'

    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), primary_key=True)
    vehicle_type = db.Column(db.String(30), nullable=False)  # 'car', 'motorcycle', 'bicycle', 'van'
    vehicle_plate = db.Column(db.String(20))
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    verified_at = db.Column(db.DateTime)
    verified_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    rejected_at = db.Column(db.DateTime)
    rejected_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    rejection_reason = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def status(self):
        return application_status(self)

    def __repr__(self):
        return f'<DriverProfile {self.user_id} - {self.vehicle_type}>'


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name_en = db.Column(db.String(100), nullable=False)
    name_ar = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Category {self.name_en}>'


class Product(db.Model):
    __tablename__ = 'products'
    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        db.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'))
    name_en = db.Column(db.String(200), nullable=False)
    name_ar = db.Column(db.String(200), nullable=False)
    description_en = db.Column(db.Text)
    description_ar = db.Column(db.Text)
    price = db.Column(MONEY, nullable=False)
    stock = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = db.relationship('Category', backref='products')

    def __repr__(self):
        return f'<Product {self.id} - {self.name_en}>'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='placed', nullable=False, index=True)

    # Items subtotal; the delivery fee is carried separately
    total_amount = db.Column(MONEY, nullable=False, default=Decimal('0.00'))
    delivery_fee = db.Column(MONEY, nullable=False, default=Decimal('0.00'))
    payment_method = db.Column(db.String(20), default='cod', nullable=False)

    delivery_address = db.Column(db.Text, nullable=False)
    delivery_phone = db.Column(db.String(20))
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', lazy=True)
    delivery = db.relationship('Delivery', backref='order', uselist=False)
    cash_collection = db.relationship('CashCollection', backref='order', uselist=False)
    history = db.relationship(
        'OrderStatusHistory', backref='order', lazy=True,
        order_by='OrderStatusHistory.id'
    )

    @property
    def grand_total(self):
        return (self.total_amount or Decimal('0')) + (self.delivery_fee or Decimal('0'))

    def __repr__(self):
        return f'<Order {self.id} - {self.status}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(MONEY, nullable=False)  # Price snapshot at order time

    product = db.relationship('Product')

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def __repr__(self):
        return f'<OrderItem {self.order_id}:{self.product_id} x{self.quantity}>'


class OrderStatusHistory(db.Model):
    __tablename__ = 'order_status_history'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)
    status_label = db.Column(db.String(100), nullable=False)
    changed_by_type = db.Column(db.String(20), nullable=False)  # 'buyer', 'seller', 'driver', 'admin'
    changed_by_id = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<OrderStatusHistory {self.order_id} - {self.status}>'


class Delivery(db.Model):
    __tablename__ = 'deliveries'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), index=True)
    status = db.Column(db.String(20), default='available', nullable=False, index=True)
    pickup_address = db.Column(db.Text)
    delivery_address = db.Column(db.Text)
    cash_collected = db.Column(MONEY)
    assigned_at = db.Column(db.DateTime)
    picked_up_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Delivery {self.id} - {self.status}>'


class CashCollection(db.Model):
    __tablename__ = 'cash_collections'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)
    amount_expected = db.Column(MONEY, nullable=False)
    amount_collected = db.Column(MONEY)
    collected_at = db.Column(db.DateTime)
    confirmed_at = db.Column(db.DateTime)
    confirmed_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    driver = db.relationship('Profile', foreign_keys=[driver_id])

    def __repr__(self):
        return f'<CashCollection {self.id} - {self.status}>'


class Wallet(db.Model):
    __tablename__ = 'wallets'
    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='ck_wallets_balance_non_negative'),
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), unique=True, nullable=False)
    balance = db.Column(MONEY, default=Decimal('0.00'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    transactions = db.relationship('WalletTransaction', backref='wallet', lazy='dynamic')

    def __repr__(self):
        return f'<Wallet {self.owner_id} - {self.balance}>'


class WalletTransaction(db.Model):
    __tablename__ = 'wallet_transactions'

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey('wallets.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # 'topup', 'refund', 'sale_credit', 'delivery_fee', 'reward', 'payment', 'payout'
    amount = db.Column(MONEY, nullable=False)  # Magnitude, sign derives from type
    reference_type = db.Column(db.String(30))
    reference_id = db.Column(db.Integer)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<WalletTransaction {self.id} - {self.type} {self.amount}>'


class TopupCode(db.Model):
    __tablename__ = 'topup_codes'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False)
    amount = db.Column(MONEY, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    redeemed_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    redeemed_at = db.Column(db.DateTime)
    voided_at = db.Column(db.DateTime)
    voided_by = db.Column(db.Integer, db.ForeignKey('profiles.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def status(self):
        if self.redeemed_by is not None:
            return 'redeemed'
        if self.voided_at is not None:
            return 'voided'
        return 'active'

    def __repr__(self):
        return f'<TopupCode {self.code} - {self.status}>'


class RewardRule(db.Model):
    """QANZ amount granted when a marketplace event happens (keyed, admin-tunable)"""
    __tablename__ = 'qanz_reward_rules'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False)
    title_en = db.Column(db.String(150), nullable=False)
    title_ar = db.Column(db.String(150), nullable=False)
    amount = db.Column(MONEY, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_reward_rule_amount_positive'),
    )

    def __repr__(self):
        return f'<RewardRule {self.key} - {self.amount}>'


class RewardEvent(db.Model):
    """One issued reward; the unique key makes issuing idempotent"""
    __tablename__ = 'qanz_reward_events'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), nullable=False)
    reference_type = db.Column(db.String(30), nullable=False)
    reference_id = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    issued_amount = db.Column(MONEY, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('Profile')

    __table_args__ = (
        db.UniqueConstraint('key', 'reference_type', 'reference_id', 'user_id', name='uq_reward_event'),
    )

    def __repr__(self):
        return f'<RewardEvent {self.key} {self.reference_type}:{self.reference_id} -> {self.user_id}>'


class Settlement(db.Model):
    __tablename__ = 'settlements'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    seller_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    driver_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), index=True)
    order_amount = db.Column(MONEY, nullable=False)
    platform_fee = db.Column(MONEY, nullable=False)
    driver_fee = db.Column(MONEY, nullable=False)
    seller_amount = db.Column(MONEY, nullable=False)
    status = db.Column(db.String(20), default='pending', nullable=False)  # 'pending', 'paid'
    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Settlement {self.order_id} - {self.status}>'


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)  # 'order', 'delivery', 'cash', 'wallet', 'verification', 'catalog'
    title = db.Column(db.String(150), nullable=False)
    message = db.Column(db.Text, nullable=False)
    reference_type = db.Column(db.String(30))
    reference_id = db.Column(db.Integer)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Notification {self.id} - {self.title}>'


class ActivityLog(db.Model):
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)
    user_type = db.Column(db.String(20), nullable=False)
    user_name = db.Column(db.String(150))
    action = db.Column(db.String(255), nullable=False)
    action_type = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(50))
    entity_id = db.Column(db.Integer)
    details = db.Column(db.Text)
    ip_address = db.Column(db.String(45))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.id} - {self.action_type}>'
