"""
Input Validation and Sanitization Utilities
Provides centralized input validation and HTML sanitization
"""
import re
from marshmallow import Schema, fields, validate, ValidationError, pre_load
from marshmallow.validate import Length, Regexp
import bleach

# Jordanian mobile: 07[789]XXXXXXX, optionally as +9627[789]XXXXXXX / 009627...
JORDAN_PHONE_PATTERN = r'^(\+962|00962|0)7[789]\d{7}$'

VEHICLE_TYPES = ['car', 'motorcycle', 'bicycle', 'van']


def sanitize_text(text):
    """
    Sanitize plain text by removing HTML tags

    Args:
        text: Text string to sanitize

    Returns:
        str: Sanitized text
    """
    if not text:
        return ""

    return bleach.clean(text, tags=[], strip=True)


def normalize_phone(phone):
    """Strip spaces and dashes from a phone number"""
    if not phone:
        return phone
    return re.sub(r'[\s\-]', '', phone)


class SanitizedSchema(Schema):
    """Base schema that strips HTML from every incoming string field"""

    # Fields left untouched by the sanitizer
    raw_fields = ('password',)

    @pre_load
    def sanitize_inputs(self, data, **kwargs):
        """Sanitize string inputs"""
        if isinstance(data, dict):
            data = dict(data)
            for key, value in data.items():
                if isinstance(value, str) and key not in self.raw_fields:
                    data[key] = sanitize_text(value).strip()
            if data.get('phone'):
                data['phone'] = normalize_phone(data['phone'])
            if data.get('delivery_phone'):
                data['delivery_phone'] = normalize_phone(data['delivery_phone'])
        return data


# Validation Schemas using Marshmallow

class LoginSchema(Schema):
    """Schema for login validation"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=Length(min=1, max=255))


class RegisterSchema(SanitizedSchema):
    """Schema for registration validation"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=Length(min=8, max=128))
    full_name = fields.Str(required=True, validate=Length(min=2, max=120))
    phone = fields.Str(required=True, validate=Regexp(JORDAN_PHONE_PATTERN, error='Invalid phone number'))
    locale = fields.Str(validate=validate.OneOf(['ar', 'en']), load_default='ar')


class ProfileUpdateSchema(SanitizedSchema):
    """Schema for profile update validation"""
    full_name = fields.Str(validate=Length(min=2, max=120))
    phone = fields.Str(validate=Regexp(JORDAN_PHONE_PATTERN, error='Invalid phone number'))
    locale = fields.Str(validate=validate.OneOf(['ar', 'en']))


class SellerOnboardingSchema(SanitizedSchema):
    store_name = fields.Str(required=True, validate=Length(min=2, max=150))
    store_description = fields.Str(validate=Length(max=2000), allow_none=True)
    address = fields.Str(validate=Length(max=500), allow_none=True)


class DriverOnboardingSchema(SanitizedSchema):
    vehicle_type = fields.Str(required=True, validate=validate.OneOf(VEHICLE_TYPES))
    vehicle_plate = fields.Str(validate=Length(max=20), allow_none=True)


class DriverStatusSchema(Schema):
    is_active = fields.Bool(required=True)


class CategorySchema(SanitizedSchema):
    name_en = fields.Str(required=True, validate=Length(min=1, max=100))
    name_ar = fields.Str(required=True, validate=Length(min=1, max=100))


class ProductSchema(SanitizedSchema):
    """Schema for product create/update"""
    name_en = fields.Str(required=True, validate=Length(min=1, max=200))
    name_ar = fields.Str(required=True, validate=Length(min=1, max=200))
    description_en = fields.Str(validate=Length(max=5000), allow_none=True)
    description_ar = fields.Str(validate=Length(max=5000), allow_none=True)
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))
    stock = fields.Int(required=True, validate=validate.Range(min=0))
    category_id = fields.Int(allow_none=True)
    is_active = fields.Bool(load_default=True)


class OrderItemSchema(Schema):
    product_id = fields.Int(required=True)
    quantity = fields.Int(required=True, validate=validate.Range(min=1, max=1000))


class OrderSchema(SanitizedSchema):
    """Schema for direct order creation"""
    # SECURITY: buyer_id is not accepted - taken from the token
    seller_id = fields.Int(required=True)
    items = fields.List(fields.Nested(OrderItemSchema), required=True, validate=Length(min=1, max=50))
    delivery_address = fields.Str(required=True, validate=Length(min=5, max=500))
    delivery_phone = fields.Str(validate=Regexp(JORDAN_PHONE_PATTERN, error='Invalid phone number'), allow_none=True)
    notes = fields.Str(validate=Length(max=1000), allow_none=True)


class CheckoutSchema(SanitizedSchema):
    """Schema for cart checkout"""
    delivery_address = fields.Str(required=True, validate=Length(min=5, max=500))
    delivery_phone = fields.Str(validate=Regexp(JORDAN_PHONE_PATTERN, error='Invalid phone number'), allow_none=True)
    notes = fields.Str(validate=Length(max=1000), allow_none=True)


class OrderStatusSchema(SanitizedSchema):
    # Driver-owned or unknown targets are rejected by the workflow as invalid transitions
    status = fields.Str(required=True, validate=Length(min=1, max=20))
    notes = fields.Str(validate=Length(max=1000), allow_none=True)


class CartItemSchema(Schema):
    product_id = fields.Int(required=True)
    quantity = fields.Int(load_default=1, validate=validate.Range(min=1, max=1000))


class CartQuantitySchema(Schema):
    quantity = fields.Int(required=True, validate=validate.Range(max=1000))


class CompleteDeliverySchema(Schema):
    cash_collected = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))


class MarkCollectedSchema(Schema):
    amount_collected = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))


class RedeemCodeSchema(SanitizedSchema):
    code = fields.Str(required=True, validate=Length(min=4, max=40))


class GenerateCodesSchema(Schema):
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0, min_inclusive=False, max=100000))
    quantity = fields.Int(load_default=1, validate=validate.Range(min=1, max=100))


class PayoutSchema(SanitizedSchema):
    owner_id = fields.Int(required=True)
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0, min_inclusive=False))
    description = fields.Str(validate=Length(max=255), allow_none=True)


class RejectApplicationSchema(SanitizedSchema):
    reason = fields.Str(validate=Length(max=500), allow_none=True)


class RewardRuleUpdateSchema(Schema):
    amount = fields.Decimal(places=2, validate=validate.Range(min=0, min_inclusive=False, max=100000))
    is_active = fields.Bool()


class ProductModerationSchema(SanitizedSchema):
    is_active = fields.Bool(required=True)
    reason = fields.Str(validate=Length(max=500), allow_none=True)


def validate_request_data(schema_class, data):
    """
    Validate request data against a schema

    Args:
        schema_class: Marshmallow Schema class
        data: Data dictionary to validate

    Returns:
        tuple: (validated_data, errors)
        - validated_data: Cleaned and validated data
        - errors: Dictionary of validation errors (empty if valid)
    """
    if data is None:
        data = {}
    try:
        schema = schema_class()
        validated_data = schema.load(data)
        return validated_data, {}
    except ValidationError as err:
        return None, err.messages
