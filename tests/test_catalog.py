from __future__ import annotations

import unittest
from decimal import Decimal

from jordanmarket.models import db, Product, ActivityLog, Notification
from jordanmarket.services.catalog import (
    list_products, update_product, toggle_product, delete_product, create_product,
    list_all_products, moderate_product,
)

from tests.base import MarketTestCase


class CatalogServiceTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.seller = self.make_seller()
        self.category = self.make_category()

    def test_public_listing_hides_inactive_and_unverified(self):
        visible = self.make_product(self.seller, category_id=self.category)
        hidden = self.make_product(self.seller, name="Hidden")
        toggle_product(hidden, self.seller)
        self.make_product(self.make_user("pending", seller=True), name="Unverified")

        self.assertEqual([p.id for p in list_products()], [visible])
        self.assertEqual([p.id for p in list_products(category_id=self.category)], [visible])

    def test_unknown_category_is_invalid(self):
        result = create_product(self.seller, {
            "name_en": "Tea", "name_ar": "شاي", "price": Decimal("1.00"), "stock": 1, "category_id": 999,
        })
        self.assertEqual(result["code"], "INVALID_INPUT")

    def test_only_owner_updates(self):
        product = self.make_product(self.seller)
        result = update_product(product, self.make_seller(), {"price": Decimal("1.00")})
        self.assertEqual(result["code"], "FORBIDDEN")
        self.assertEqual(update_product(4242, self.seller, {})["code"], "NOT_FOUND")

    def test_ordered_product_is_deactivated_not_deleted(self):
        product = self.make_product(self.seller)
        self.place_order(self.make_buyer(), self.seller, product)

        result = delete_product(product, self.seller)
        self.assertFalse(result["deleted"])
        self.assertFalse(db.session.get(Product, product).is_active)

        fresh = self.make_product(self.seller, name="Fresh")
        self.assertTrue(delete_product(fresh, self.seller)["deleted"])
        self.assertIsNone(db.session.get(Product, fresh))


class ProductModerationTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_admin()
        self.seller = self.make_seller()
        self.oil = self.make_product(self.seller)

    def test_admin_takes_product_down_and_seller_is_told(self):
        result = moderate_product(self.oil, self.admin, False, "Counterfeit listing")
        self.assertTrue(result["success"])
        self.assertTrue(result["changed"])
        self.assertFalse(db.session.get(Product, self.oil).is_active)
        self.assertEqual(list_products(), [])

        notice = Notification.query.filter_by(user_id=self.seller, type="catalog").one()
        self.assertEqual(notice.title, "Product removed from the store")
        self.assertIn("Counterfeit listing", notice.message)

        again = moderate_product(self.oil, self.admin, False)
        self.assertFalse(again["changed"])
        self.assertEqual(Notification.query.filter_by(user_id=self.seller).count(), 1)

        self.assertEqual(moderate_product(4242, self.admin, False)["code"], "NOT_FOUND")

    def test_moderation_list_includes_inactive_and_unverified(self):
        toggle_product(self.oil, self.seller)
        pending_product = self.make_product(self.make_user("pending", seller=True), name="Zaatar")

        self.assertEqual({p.id for p in list_all_products()}, {self.oil, pending_product})
        self.assertEqual([p.id for p in list_all_products(is_active=False)], [self.oil])
        self.assertEqual([p.id for p in list_all_products(search="zaat")], [pending_product])

    def test_moderation_over_http(self):
        res = self.post_json(f"/api/admin/products/{self.oil}/moderate", {"is_active": False, "reason": "Expired"},
                             user_id=self.admin)
        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.get_json()["product"]["is_active"])
        entry = ActivityLog.query.filter_by(action_type="product_moderation").one()
        self.assertEqual(entry.entity_id, self.oil)

        res = self.get_json("/api/admin/products?active=false", user_id=self.admin)
        self.assertEqual([p["id"] for p in res.get_json()["products"]], [self.oil])

        res = self.post_json(f"/api/admin/products/{self.oil}/moderate", {}, user_id=self.admin)
        self.assertEqual(res.status_code, 400)

        res = self.post_json(f"/api/admin/products/{self.oil}/moderate", {"is_active": True}, user_id=self.seller)
        self.assertEqual(res.status_code, 403)


class CatalogApiTestCase(MarketTestCase):
    def test_seller_manages_products(self):
        seller = self.make_seller()
        category = self.make_category()

        res = self.post_json("/api/seller/products", {
            "name_en": "<script>x</script>Dates",
            "name_ar": "تمر",
            "price": "6.75",
            "stock": 12,
            "category_id": category,
        }, user_id=seller)
        self.assertEqual(res.status_code, 201)
        product = res.get_json()["product"]
        self.assertEqual(product["name_en"], "xDates")
        self.assertEqual(product["price"], "6.75")

        res = self.put_json(f"/api/seller/products/{product['id']}", {"stock": 3}, user_id=seller)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["product"]["stock"], 3)
        self.assertTrue(res.get_json()["product"]["is_active"])

        res = self.client.get("/api/products")
        self.assertEqual([p["id"] for p in res.get_json()["products"]], [product["id"]])

        res = self.client.get(f"/api/products/{product['id']}")
        self.assertEqual(res.status_code, 200)

        res = self.client.get("/api/categories")
        self.assertEqual(res.get_json()["categories"][0]["name_ar"], "بقالة")

    def test_invalid_product_payload(self):
        res = self.post_json("/api/seller/products", {"name_en": "Nuts", "price": "-1"}, user_id=self.make_seller())
        self.assertEqual(res.status_code, 400)
        details = res.get_json()["details"]
        self.assertIn("price", details)
        self.assertIn("name_ar", details)

    def test_page_size_is_capped(self):
        res = self.client.get("/api/products?limit=1000")
        self.assertEqual(res.get_json()["limit"], 100)

    def test_missing_product_is_not_found(self):
        self.assertEqual(self.client.get("/api/products/999").status_code, 404)


if __name__ == "__main__":
    unittest.main()
