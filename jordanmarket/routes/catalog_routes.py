"""
Catalog Routes Blueprint
Public product and category browsing
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db
from jordanmarket.errors import failure, result_response, NOT_FOUND
from jordanmarket.error_handler import handle_exception
from jordanmarket.schemas import categories_schema, products_schema, product_schema
from jordanmarket.services.catalog import list_categories, list_products, get_public_product

bp = Blueprint('catalog', __name__)

MAX_PAGE_SIZE = 100


@bp.route('/categories', methods=['GET'])
def get_categories():
    """
    GET /api/categories
    Active categories with English and Arabic names
    """
    try:
        return jsonify({"success": True, "categories": categories_schema.dump(list_categories())}), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_categories"})


@bp.route('/products', methods=['GET'])
def get_products():
    """
    GET /api/products?category_id=&seller_id=&limit=&offset=
    Active products of verified sellers
    """
    try:
        limit = min(request.args.get('limit', 50, type=int) or 50, MAX_PAGE_SIZE)
        offset = max(request.args.get('offset', 0, type=int) or 0, 0)
        products = list_products(
            category_id=request.args.get('category_id', type=int),
            seller_id=request.args.get('seller_id', type=int),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "success": True,
            "products": products_schema.dump(products),
            "limit": limit,
            "offset": offset,
        }), 200
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "list_products"})


@bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    """
    GET /api/products/<id>
    """
    product = get_public_product(product_id)
    if not product:
        return result_response(failure(NOT_FOUND))
    return jsonify({"success": True, "product": product_schema.dump(product)}), 200
