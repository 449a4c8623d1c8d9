from __future__ import annotations

import unittest
from decimal import Decimal

from jordanmarket.models import db, Order, OrderItem, Product, Delivery, Notification
from jordanmarket.services.orders import create_order, advance_status, cancel_order

from tests.base import MarketTestCase


class OrderCreationTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.buyer = self.make_buyer()
        self.seller = self.make_seller()
        self.oil = self.make_product(self.seller, price="4.25", stock=5)

    def test_order_snapshots_price_and_decrements_stock(self):
        order_id = self.place_order(self.buyer, self.seller, self.oil, quantity=2)

        order = db.session.get(Order, order_id)
        self.assertEqual(order.status, "placed")
        self.assertEqual(order.total_amount, Decimal("8.50"))
        self.assertEqual(order.grand_total, Decimal("10.50"))
        self.assertEqual(len(order.history), 1)
        self.assertEqual(order.delivery.status, "available")
        self.assertEqual(db.session.get(Product, self.oil).stock, 3)

        product = db.session.get(Product, self.oil)
        product.price = Decimal("9.99")
        db.session.commit()

        item = OrderItem.query.filter_by(order_id=order_id).one()
        self.assertEqual(item.unit_price, Decimal("4.25"))
        self.assertEqual(db.session.get(Order, order_id).total_amount, Decimal("8.50"))

    def test_insufficient_stock_rejects_without_writing(self):
        olives = self.make_product(self.seller, price="2.00", stock=10, name="Olives")
        result = create_order(
            buyer_id=self.buyer,
            seller_id=self.seller,
            items=[
                {"product_id": olives, "quantity": 3},
                {"product_id": self.oil, "quantity": 6},
            ],
            delivery_address="Abdoun, Amman",
            delivery_fee=Decimal("2.00"),
        )

        self.assertFalse(result["success"])
        self.assertEqual(result["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(db.session.get(Product, olives).stock, 10)
        self.assertEqual(db.session.get(Product, self.oil).stock, 5)
        self.assertEqual(Order.query.count(), 0)
        self.assertEqual(Delivery.query.count(), 0)

    def test_repeated_products_are_merged(self):
        result = create_order(
            buyer_id=self.buyer,
            seller_id=self.seller,
            items=[
                {"product_id": self.oil, "quantity": 2},
                {"product_id": self.oil, "quantity": 3},
            ],
            delivery_address="Abdoun, Amman",
            delivery_fee=Decimal("0"),
        )
        self.assertTrue(result["success"])
        self.assertEqual(len(result["order"].items), 1)
        self.assertEqual(db.session.get(Product, self.oil).stock, 0)

    def test_product_from_another_seller_is_invalid(self):
        other_seller = self.make_seller()
        foreign = self.make_product(other_seller)
        result = create_order(
            buyer_id=self.buyer,
            seller_id=self.seller,
            items=[{"product_id": foreign, "quantity": 1}],
            delivery_address="Abdoun, Amman",
            delivery_fee=Decimal("2.00"),
        )
        self.assertFalse(result["success"])
        self.assertEqual(result["code"], "INVALID_INPUT")

    def test_negative_delivery_fee_is_invalid(self):
        result = create_order(
            buyer_id=self.buyer,
            seller_id=self.seller,
            items=[{"product_id": self.oil, "quantity": 1}],
            delivery_address="Abdoun, Amman",
            delivery_fee=Decimal("-1"),
        )
        self.assertEqual(result["code"], "INVALID_INPUT")

    def test_malformed_delivery_fee_is_invalid_input(self):
        result = create_order(
            buyer_id=self.buyer,
            seller_id=self.seller,
            items=[{"product_id": self.oil, "quantity": 1}],
            delivery_address="Abdoun, Amman",
            delivery_fee="abc",
        )
        self.assertEqual(result["code"], "INVALID_INPUT")
        self.assertIn("delivery_fee", result["details"])
        self.assertEqual(Order.query.count(), 0)
        self.assertEqual(db.session.get(Product, self.oil).stock, 5)

    def test_unverified_seller_cannot_receive_orders(self):
        pending = self.make_user("pending", seller=True)
        product = self.make_product(pending)
        result = create_order(
            buyer_id=self.buyer,
            seller_id=pending,
            items=[{"product_id": product, "quantity": 1}],
            delivery_address="Abdoun, Amman",
            delivery_fee=Decimal("2.00"),
        )
        self.assertEqual(result["code"], "INVALID_INPUT")

    def test_seller_is_notified_of_new_order(self):
        order_id = self.place_order(self.buyer, self.seller, self.oil)
        notification = Notification.query.filter_by(user_id=self.seller).one()
        self.assertEqual(notification.reference_id, order_id)
        self.assertIn(f"#{order_id}", notification.title)


class OrderTransitionTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.buyer = self.make_buyer()
        self.seller = self.make_seller()
        self.product = self.make_product(self.seller, stock=4)
        self.order_id = self.place_order(self.buyer, self.seller, self.product, quantity=2)

    def test_seller_walks_the_order_to_ready(self):
        self.advance_to_ready(self.order_id, self.seller)
        order = db.session.get(Order, self.order_id)
        self.assertEqual(order.status, "ready")
        self.assertEqual(
            [h.status for h in order.history],
            ["placed", "accepted", "preparing", "ready"],
        )

    def test_skipping_a_step_is_rejected(self):
        result = advance_status(self.order_id, self.seller, "ready")
        self.assertFalse(result["success"])
        self.assertEqual(result["code"], "INVALID_TRANSITION")
        self.assertEqual(db.session.get(Order, self.order_id).status, "placed")

    def test_seller_cannot_set_driver_statuses(self):
        self.advance_to_ready(self.order_id, self.seller)
        result = advance_status(self.order_id, self.seller, "assigned")
        self.assertEqual(result["code"], "INVALID_TRANSITION")

    def test_other_seller_is_forbidden(self):
        result = advance_status(self.order_id, self.make_seller(), "accepted")
        self.assertEqual(result["code"], "FORBIDDEN")

    def test_buyer_cancel_restores_stock(self):
        result = cancel_order(self.order_id, self.buyer)
        self.assertTrue(result["success"])

        order = db.session.get(Order, self.order_id)
        self.assertEqual(order.status, "cancelled")
        self.assertEqual(order.delivery.status, "cancelled")
        self.assertEqual(db.session.get(Product, self.product).stock, 4)
        self.assertEqual(Notification.query.filter_by(user_id=self.seller, type="order").count(), 2)

    def test_cancel_after_preparing_is_rejected(self):
        advance_status(self.order_id, self.seller, "accepted")
        advance_status(self.order_id, self.seller, "preparing")
        result = cancel_order(self.order_id, self.buyer)
        self.assertEqual(result["code"], "INVALID_TRANSITION")
        self.assertEqual(db.session.get(Product, self.product).stock, 2)

    def test_stranger_cannot_cancel(self):
        result = cancel_order(self.order_id, self.make_buyer())
        self.assertEqual(result["code"], "FORBIDDEN")

    def test_admin_can_cancel(self):
        result = cancel_order(self.order_id, self.make_admin(), is_admin=True)
        self.assertTrue(result["success"])


class OrderApiTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.buyer = self.make_buyer()
        self.seller = self.make_seller()
        self.product = self.make_product(self.seller, price="3.00", stock=5)

    def test_place_order_uses_configured_delivery_fee(self):
        res = self.post_json("/api/orders", {
            "seller_id": self.seller,
            "items": [{"product_id": self.product, "quantity": 2}],
            "delivery_address": "Jabal Al Hussein, Amman",
            "delivery_phone": "079 123 4567",
        }, user_id=self.buyer)

        self.assertEqual(res.status_code, 201)
        order = res.get_json()["order"]
        self.assertEqual(order["total_amount"], "6.00")
        self.assertEqual(order["delivery_fee"], "2.00")
        self.assertEqual(order["grand_total"], "8.00")
        self.assertEqual(order["status_label_en"], "Placed")

    def test_insufficient_stock_maps_to_conflict(self):
        res = self.post_json("/api/orders", {
            "seller_id": self.seller,
            "items": [{"product_id": self.product, "quantity": 50}],
            "delivery_address": "Jabal Al Hussein, Amman",
        }, user_id=self.buyer)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["code"], "INSUFFICIENT_STOCK")

    def test_seller_status_skip_returns_conflict(self):
        order_id = self.place_order(self.buyer, self.seller, self.product)
        res = self.post_json(f"/api/seller/orders/{order_id}/status", {"status": "preparing"}, user_id=self.seller)
        self.assertEqual(res.status_code, 409)
        body = res.get_json()
        self.assertEqual(body["code"], "INVALID_TRANSITION")
        self.assertEqual(body["current_status"], "placed")

        res = self.post_json(f"/api/seller/orders/{order_id}/status", {"status": "accepted"}, user_id=self.seller)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["order"]["status"], "accepted")

    def test_order_detail_is_private(self):
        order_id = self.place_order(self.buyer, self.seller, self.product)

        res = self.get_json(f"/api/orders/{order_id}", user_id=self.buyer)
        self.assertEqual(res.status_code, 200)
        detail = res.get_json()["order"]
        self.assertEqual(len(detail["items"]), 1)
        self.assertEqual(detail["history"][0]["status"], "placed")

        res = self.get_json(f"/api/orders/{order_id}", user_id=self.make_buyer())
        self.assertEqual(res.status_code, 403)

    def test_buyer_lists_own_orders(self):
        self.place_order(self.buyer, self.seller, self.product)
        self.place_order(self.make_buyer(), self.seller, self.product)

        res = self.get_json("/api/orders", user_id=self.buyer)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.get_json()["orders"]), 1)


if __name__ == "__main__":
    unittest.main()
