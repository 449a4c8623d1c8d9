"""
Catalog: categories and seller-managed products
"""
from jordanmarket.errors import success, failure, NOT_FOUND, FORBIDDEN, INVALID_INPUT
from jordanmarket.logger_config import log_workflow_event
from jordanmarket.models import db, Category, Product, OrderItem, SellerProfile
from jordanmarket.services.notifications import notify_localized

PRODUCT_FIELDS = (
    'name_en', 'name_ar', 'description_en', 'description_ar',
    'price', 'stock', 'category_id', 'is_active',
)


def list_categories(include_inactive=False):
    query = Category.query
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Category.name_en).all()


def create_category(name_en, name_ar):
    category = Category(name_en=name_en, name_ar=name_ar)
    db.session.add(category)
    db.session.commit()
    return category


def list_products(category_id=None, seller_id=None, limit=100, offset=0):
    """Active products of verified sellers, newest first"""
    query = (
        Product.query
        .join(SellerProfile, SellerProfile.user_id == Product.seller_id)
        .filter(Product.is_active.is_(True), SellerProfile.is_verified.is_(True))
    )
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if seller_id:
        query = query.filter(Product.seller_id == seller_id)
    return query.order_by(Product.created_at.desc(), Product.id.desc()).offset(offset).limit(limit).all()


def get_public_product(product_id):
    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        return None
    return product


def list_seller_products(seller_id):
    return Product.query.filter_by(seller_id=seller_id).order_by(Product.created_at.desc(), Product.id.desc()).all()


def _owned_product(product_id, seller_id):
    product = db.session.get(Product, product_id)
    if not product:
        return None, failure(NOT_FOUND)
    if product.seller_id != seller_id:
        return None, failure(FORBIDDEN)
    return product, None


def _check_category(category_id):
    if category_id is not None and not db.session.get(Category, category_id):
        return failure(INVALID_INPUT, details={'category_id': ['Unknown category']})
    return None


def create_product(seller_id, data):
    error = _check_category(data.get('category_id'))
    if error:
        return error

    product = Product(seller_id=seller_id, **{k: data[k] for k in PRODUCT_FIELDS if k in data})
    db.session.add(product)
    db.session.commit()
    return success(product=product)


def update_product(product_id, seller_id, data):
    """
    Update a product's fields

    Historical order items keep their own unit_price snapshot, so price
    changes never affect existing orders.
    """
    product, error = _owned_product(product_id, seller_id)
    if error:
        return error

    error = _check_category(data.get('category_id'))
    if error:
        return error

    for field in PRODUCT_FIELDS:
        if field in data:
            setattr(product, field, data[field])
    db.session.commit()
    return success(product=product)


def toggle_product(product_id, seller_id):
    product, error = _owned_product(product_id, seller_id)
    if error:
        return error

    product.is_active = not product.is_active
    db.session.commit()
    return success(product=product)


def delete_product(product_id, seller_id):
    """Delete a product, or deactivate it when it has ever been ordered"""
    product, error = _owned_product(product_id, seller_id)
    if error:
        return error

    ordered = db.session.query(OrderItem.query.filter_by(product_id=product.id).exists()).scalar()
    if ordered:
        product.is_active = False
        db.session.commit()
        return success(deleted=False, deactivated=True)

    db.session.delete(product)
    db.session.commit()
    return success(deleted=True, deactivated=False)


def list_all_products(seller_id=None, is_active=None, search=None, limit=200):
    """Every product regardless of seller verification or status, for moderation"""
    query = Product.query
    if seller_id:
        query = query.filter(Product.seller_id == seller_id)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if search:
        pattern = f"%{search}%"
        query = query.filter(db.or_(Product.name_en.ilike(pattern), Product.name_ar.ilike(pattern)))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()


def moderate_product(product_id, admin_id, is_active, reason=None):
    """
    Take a product off the storefront (or put it back) on an admin's decision

    The seller is told when a product is taken down.
    """
    product = db.session.get(Product, product_id)
    if not product:
        return failure(NOT_FOUND)

    changed = product.is_active != bool(is_active)
    product.is_active = bool(is_active)
    db.session.commit()

    if changed:
        log_workflow_event('product', product_id, 'activated' if is_active else 'deactivated',
                           actor_id=admin_id, reason=reason)
        if not is_active:
            notify_localized(
                product.seller_id, 'catalog', 'product_deactivated',
                reference_type='product', reference_id=product_id,
                name_en=product.name_en, name_ar=product.name_ar, reason=reason or '',
            )
    return success(product=product, changed=changed)
