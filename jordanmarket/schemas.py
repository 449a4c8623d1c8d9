from flask_marshmallow import Marshmallow
from marshmallow import fields

from jordanmarket.i18n import money_str, format_phone
from jordanmarket.models import (
    User,
    Profile,
    SellerProfile,
    DriverProfile,
    Category,
    Product,
    Order,
    OrderItem,
    OrderStatusHistory,
    Delivery,
    CashCollection,
    WalletTransaction,
    TopupCode,
    RewardRule,
    RewardEvent,
    Settlement,
    Notification,
    ActivityLog,
)
from jordanmarket.services.wallet import signed_amount
from jordanmarket.status import status_label


ma = Marshmallow()


def Money(**kwargs):
    """Money is rendered as a two-decimal string"""
    return fields.Decimal(places=2, as_string=True, **kwargs)


class UserSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = User
        load_instance = True
        fields = ('id', 'email', 'last_login_at', 'created_at')


class SellerProfileSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = SellerProfile
        load_instance = True
        include_fk = True
        fields = ('user_id', 'store_name', 'store_description', 'address', 'is_verified',
                  'verified_at', 'status', 'rejected_at', 'rejection_reason', 'created_at')
    status = fields.String(dump_only=True)


class DriverProfileSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = DriverProfile
        load_instance = True
        include_fk = True
        fields = ('user_id', 'vehicle_type', 'vehicle_plate', 'is_verified', 'is_active',
                  'verified_at', 'status', 'rejected_at', 'rejection_reason', 'created_at')
    status = fields.String(dump_only=True)


class ProfileSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Profile
        load_instance = True
        include_fk = True
        fields = ('id', 'email', 'full_name', 'phone', 'phone_display', 'preferred_locale', 'role',
                  'is_buyer', 'is_seller', 'is_driver', 'is_admin', 'seller_profile',
                  'driver_profile', 'created_at')
    email = fields.Function(lambda profile: profile.user.email if profile.user else None)
    phone_display = fields.Function(lambda profile: format_phone(profile.phone))
    seller_profile = ma.Nested(SellerProfileSchema, allow_none=True)
    driver_profile = ma.Nested(DriverProfileSchema, allow_none=True)


class CategorySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Category
        load_instance = True
        fields = ('id', 'name_en', 'name_ar', 'is_active')


class ProductSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Product
        load_instance = True
        include_fk = True
        fields = ('id', 'seller_id', 'category_id', 'name_en', 'name_ar', 'description_en',
                  'description_ar', 'price', 'stock', 'is_active', 'created_at', 'updated_at')
    price = Money()


class OrderItemSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = OrderItem
        load_instance = True
        include_fk = True
        fields = ('id', 'product_id', 'product_name_en', 'product_name_ar', 'quantity',
                  'unit_price', 'line_total')
    unit_price = Money()
    line_total = Money(dump_only=True)
    product_name_en = fields.Function(lambda item: item.product.name_en if item.product else None)
    product_name_ar = fields.Function(lambda item: item.product.name_ar if item.product else None)


class OrderStatusHistorySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = OrderStatusHistory
        load_instance = True
        fields = ('status', 'status_label', 'changed_by_type', 'changed_by_id', 'notes', 'created_at')


class DeliverySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Delivery
        load_instance = True
        include_fk = True
        fields = ('id', 'order_id', 'driver_id', 'status', 'pickup_address', 'delivery_address',
                  'cash_collected', 'assigned_at', 'picked_up_at', 'delivered_at', 'created_at')
    cash_collected = Money(allow_none=True)


class CashCollectionSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = CashCollection
        load_instance = True
        include_fk = True
        fields = ('id', 'order_id', 'driver_id', 'driver_name', 'status', 'amount_expected',
                  'amount_collected', 'collected_at', 'confirmed_at', 'confirmed_by', 'created_at')
    amount_expected = Money()
    amount_collected = Money(allow_none=True)
    driver_name = fields.Function(lambda c: c.driver.full_name if c.driver else None)


class OrderSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Order
        load_instance = True
        include_fk = True
        fields = ('id', 'buyer_id', 'seller_id', 'status', 'status_label_en', 'status_label_ar',
                  'total_amount', 'delivery_fee', 'grand_total', 'payment_method',
                  'delivery_address', 'delivery_phone', 'notes', 'created_at', 'updated_at')
    total_amount = Money()
    delivery_fee = Money()
    grand_total = Money(dump_only=True)
    status_label_en = fields.Function(lambda o: status_label('order', o.status, 'en'))
    status_label_ar = fields.Function(lambda o: status_label('order', o.status, 'ar'))


class OrderDetailSchema(OrderSchema):
    class Meta(OrderSchema.Meta):
        fields = OrderSchema.Meta.fields + ('items', 'delivery', 'cash_collection', 'history')
    items = ma.Nested(OrderItemSchema, many=True)
    delivery = ma.Nested(DeliverySchema, allow_none=True)
    cash_collection = ma.Nested(CashCollectionSchema, allow_none=True)
    history = ma.Nested(OrderStatusHistorySchema, many=True)


class WalletTransactionSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = WalletTransaction
        load_instance = True
        fields = ('id', 'type', 'amount', 'signed_amount', 'reference_type', 'reference_id',
                  'description', 'created_at')
    amount = Money()
    signed_amount = fields.Method('get_signed_amount')

    def get_signed_amount(self, obj):
        return money_str(signed_amount(obj.type, obj.amount))


class TopupCodeSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = TopupCode
        load_instance = True
        include_fk = True
        fields = ('id', 'code', 'amount', 'status', 'created_by', 'redeemed_by', 'redeemed_at',
                  'voided_at', 'created_at')
    amount = Money()
    status = fields.String(dump_only=True)


class RewardRuleSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = RewardRule
        load_instance = True
        fields = ('id', 'key', 'title_en', 'title_ar', 'amount', 'is_active', 'created_at', 'updated_at')
    amount = Money()


class RewardEventSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = RewardEvent
        load_instance = True
        include_fk = True
        fields = ('id', 'key', 'reference_type', 'reference_id', 'user_id', 'user_name',
                  'issued_amount', 'created_at')
    issued_amount = Money()
    user_name = fields.Function(lambda e: e.user.full_name if e.user else None)


class SettlementSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Settlement
        load_instance = True
        include_fk = True
        fields = ('id', 'order_id', 'seller_id', 'driver_id', 'order_amount', 'platform_fee',
                  'driver_fee', 'seller_amount', 'status', 'paid_at', 'created_at')
    order_amount = Money()
    platform_fee = Money()
    driver_fee = Money()
    seller_amount = Money()


class NotificationSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Notification
        load_instance = True
        fields = ('id', 'type', 'title', 'message', 'reference_type', 'reference_id', 'is_read',
                  'created_at')


class ActivityLogSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ActivityLog
        load_instance = True
        fields = ('id', 'user_id', 'user_type', 'user_name', 'action', 'action_type',
                  'entity_type', 'entity_id', 'details', 'ip_address', 'timestamp')


profile_schema = ProfileSchema()
profiles_schema = ProfileSchema(many=True)
seller_profile_schema = SellerProfileSchema()
driver_profile_schema = DriverProfileSchema()
category_schema = CategorySchema()
categories_schema = CategorySchema(many=True)
product_schema = ProductSchema()
products_schema = ProductSchema(many=True)
order_schema = OrderSchema()
orders_schema = OrderSchema(many=True)
order_detail_schema = OrderDetailSchema()
delivery_schema = DeliverySchema()
deliveries_schema = DeliverySchema(many=True)
cash_collection_schema = CashCollectionSchema()
cash_collections_schema = CashCollectionSchema(many=True)
wallet_transactions_schema = WalletTransactionSchema(many=True)
topup_codes_schema = TopupCodeSchema(many=True)
reward_rules_schema = RewardRuleSchema(many=True)
reward_rule_schema = RewardRuleSchema()
reward_events_schema = RewardEventSchema(many=True)
settlement_schema = SettlementSchema()
settlements_schema = SettlementSchema(many=True)
notifications_schema = NotificationSchema(many=True)
activity_logs_schema = ActivityLogSchema(many=True)
