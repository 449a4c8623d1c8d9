from __future__ import annotations

import unittest
from decimal import Decimal

from jordanmarket.cart import (
    cart_reducer, cart_totals, empty_cart, CartError,
    ADD_ITEM, REMOVE_ITEM, UPDATE_QUANTITY, CLEAR,
)
from jordanmarket.models import db, Order, Product

from tests.base import MarketTestCase


def _item(product_id, seller_id, price="2.50"):
    return {
        "product_id": product_id,
        "seller_id": seller_id,
        "name_en": f"Product {product_id}",
        "name_ar": f"منتج {product_id}",
        "price": Decimal(price),
    }


class CartReducerTestCase(unittest.TestCase):
    def test_add_merges_quantities(self):
        state = cart_reducer(empty_cart(), {"type": ADD_ITEM, "item": _item(1, 10), "quantity": 2})
        state = cart_reducer(state, {"type": ADD_ITEM, "item": _item(1, 10), "quantity": 3})

        self.assertEqual(state["seller_id"], 10)
        self.assertEqual(len(state["items"]), 1)
        self.assertEqual(state["items"][0]["quantity"], 5)
        self.assertEqual(state["items"][0]["price"], "2.50")

    def test_reducer_does_not_mutate_input(self):
        start = empty_cart()
        after = cart_reducer(start, {"type": ADD_ITEM, "item": _item(1, 10)})
        self.assertEqual(start, empty_cart())
        self.assertIsNot(after, start)

        again = cart_reducer(after, {"type": UPDATE_QUANTITY, "product_id": 1, "quantity": 4})
        self.assertEqual(after["items"][0]["quantity"], 1)
        self.assertEqual(again["items"][0]["quantity"], 4)

    def test_second_seller_is_rejected(self):
        state = cart_reducer(empty_cart(), {"type": ADD_ITEM, "item": _item(1, 10)})
        with self.assertRaises(CartError) as ctx:
            cart_reducer(state, {"type": ADD_ITEM, "item": _item(2, 11)})
        self.assertEqual(ctx.exception.code, "DIFFERENT_SELLER")

    def test_zero_quantity_removes_and_empty_cart_forgets_seller(self):
        state = cart_reducer(empty_cart(), {"type": ADD_ITEM, "item": _item(1, 10)})
        state = cart_reducer(state, {"type": UPDATE_QUANTITY, "product_id": 1, "quantity": 0})
        self.assertEqual(state, empty_cart())

        state = cart_reducer(state, {"type": ADD_ITEM, "item": _item(2, 11)})
        self.assertEqual(state["seller_id"], 11)

    def test_remove_and_clear(self):
        state = cart_reducer(empty_cart(), {"type": ADD_ITEM, "item": _item(1, 10)})
        state = cart_reducer(state, {"type": ADD_ITEM, "item": _item(2, 10)})
        state = cart_reducer(state, {"type": REMOVE_ITEM, "product_id": 1})
        self.assertEqual([i["product_id"] for i in state["items"]], [2])
        self.assertEqual(cart_reducer(state, {"type": CLEAR}), empty_cart())

    def test_totals(self):
        state = cart_reducer(empty_cart(), {"type": ADD_ITEM, "item": _item(1, 10, "2.50"), "quantity": 2})
        state = cart_reducer(state, {"type": ADD_ITEM, "item": _item(2, 10, "1.25")})
        totals = cart_totals(state)
        self.assertEqual(totals["item_count"], 3)
        self.assertEqual(totals["subtotal"], Decimal("6.25"))

    def test_unknown_action(self):
        with self.assertRaises(ValueError):
            cart_reducer(empty_cart(), {"type": "CHECKOUT"})


class CartApiTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.buyer = self.make_buyer()
        self.seller = self.make_seller()
        self.product = self.make_product(self.seller, price="3.00", stock=6)

    def test_checkout_creates_order_and_clears_cart(self):
        res = self.client.post("/api/cart/items", json={"product_id": self.product, "quantity": 2})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["subtotal"], "6.00")

        # Checkout re-reads the catalog price
        db.session.get(Product, self.product).price = Decimal("3.50")
        db.session.commit()

        res = self.client.post(
            "/api/cart/checkout",
            json={"delivery_address": "Sweifieh, Amman"},
            headers=self.auth_headers(self.buyer),
        )
        self.assertEqual(res.status_code, 201)
        order = res.get_json()["order"]
        self.assertEqual(order["total_amount"], "7.00")
        self.assertEqual(db.session.get(Order, order["id"]).buyer_id, self.buyer)

        res = self.client.get("/api/cart")
        self.assertEqual(res.get_json()["item_count"], 0)

    def test_second_seller_conflicts(self):
        other = self.make_product(self.make_seller())
        self.client.post("/api/cart/items", json={"product_id": self.product})

        res = self.client.post("/api/cart/items", json={"product_id": other})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["code"], "DIFFERENT_SELLER")

    def test_update_and_remove_lines(self):
        self.client.post("/api/cart/items", json={"product_id": self.product})

        res = self.client.put(f"/api/cart/items/{self.product}", json={"quantity": 4})
        self.assertEqual(res.get_json()["item_count"], 4)

        res = self.client.delete(f"/api/cart/items/{self.product}")
        self.assertEqual(res.get_json()["cart"], empty_cart())

    def test_checkout_of_empty_cart_is_invalid(self):
        res = self.client.post(
            "/api/cart/checkout",
            json={"delivery_address": "Sweifieh, Amman"},
            headers=self.auth_headers(self.buyer),
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["code"], "INVALID_INPUT")

    def test_unknown_product_is_not_found(self):
        res = self.client.post("/api/cart/items", json={"product_id": 4242})
        self.assertEqual(res.status_code, 404)


if __name__ == "__main__":
    unittest.main()
