from __future__ import annotations

import unittest
from datetime import datetime
from decimal import Decimal

from jordanmarket.models import db, Order, RewardRule, RewardEvent, WalletTransaction, ActivityLog, Notification
from jordanmarket.services.deliveries import accept_delivery, mark_picked_up, complete_delivery
from jordanmarket.services.rewards import (
    seed_reward_rules, issue_reward, update_rule_amount, set_rule_active, rewards_this_month,
    reward_stats, user_events, ORDER_DELIVERED_REWARD, FIRST_ORDER_REWARD, DELIVERY_COMPLETED_REWARD,
)
from jordanmarket.services.wallet import get_balance

from tests.base import MarketTestCase


class RewardTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        seed_reward_rules()
        self.buyer = self.make_buyer()
        self.seller = self.make_seller()
        self.driver = self.make_driver()
        self.admin = self.make_admin()
        self.product = self.make_product(self.seller, price="10.00", stock=10)

    def rule(self, key):
        return RewardRule.query.filter_by(key=key).one()

    def deliver(self):
        order_id = self.place_order(self.buyer, self.seller, self.product)
        self.advance_to_ready(order_id, self.seller)
        delivery_id = db.session.get(Order, order_id).delivery.id
        accept_delivery(delivery_id, self.driver)
        mark_picked_up(delivery_id, self.driver)
        result = complete_delivery(delivery_id, self.driver, Decimal("12.00"))
        self.assertTrue(result["success"], result)
        return order_id, delivery_id


class RewardIssuingTestCase(RewardTestCase):
    def test_seeding_is_idempotent(self):
        self.assertEqual(seed_reward_rules(), 0)
        self.assertEqual(RewardRule.query.count(), 3)

    def test_delivered_order_rewards_buyer_and_driver(self):
        order_id, delivery_id = self.deliver()

        self.assertEqual(get_balance(self.buyer), Decimal("25.00"))
        self.assertEqual(get_balance(self.driver), Decimal("2.00"))
        keys = sorted(e.key for e in RewardEvent.query.all())
        self.assertEqual(keys, [DELIVERY_COMPLETED_REWARD, FIRST_ORDER_REWARD, ORDER_DELIVERED_REWARD])

        event = RewardEvent.query.filter_by(key=DELIVERY_COMPLETED_REWARD).one()
        self.assertEqual((event.reference_type, event.reference_id), ("delivery", delivery_id))
        tx = WalletTransaction.query.filter_by(reference_type="reward_event", reference_id=event.id).one()
        self.assertEqual(tx.type, "reward")
        self.assertEqual(tx.amount, Decimal("2.00"))

        notices = Notification.query.filter_by(user_id=self.buyer, type="wallet").all()
        self.assertEqual(len(notices), 2)
        self.assertTrue(all(n.title == "You earned QANZ" for n in notices))

    def test_first_order_reward_is_granted_once(self):
        self.deliver()
        self.deliver()

        self.assertEqual(get_balance(self.buyer), Decimal("30.00"))
        self.assertEqual(RewardEvent.query.filter_by(key=FIRST_ORDER_REWARD).count(), 1)
        self.assertEqual(RewardEvent.query.filter_by(key=ORDER_DELIVERED_REWARD).count(), 2)

    def test_same_reference_is_rewarded_once(self):
        order_id, _ = self.deliver()

        self.assertIsNone(issue_reward(ORDER_DELIVERED_REWARD, self.buyer, "order", order_id))
        self.assertEqual(get_balance(self.buyer), Decimal("25.00"))
        self.assertEqual(RewardEvent.query.filter_by(key=ORDER_DELIVERED_REWARD).count(), 1)

    def test_inactive_rule_issues_nothing(self):
        for key in (ORDER_DELIVERED_REWARD, FIRST_ORDER_REWARD, DELIVERY_COMPLETED_REWARD):
            set_rule_active(self.rule(key).id, False)

        order_id, _ = self.deliver()

        self.assertEqual(get_balance(self.buyer), Decimal("0.00"))
        self.assertEqual(get_balance(self.driver), Decimal("0.00"))
        self.assertEqual(RewardEvent.query.count(), 0)
        self.assertEqual(db.session.get(Order, order_id).status, "delivered")

    def test_amount_change_applies_to_later_rewards(self):
        rule = self.rule(ORDER_DELIVERED_REWARD)
        result = update_rule_amount(rule.id, "7.5")
        self.assertTrue(result["success"])
        self.assertEqual(result["rule"].amount, Decimal("7.50"))

        event = issue_reward(ORDER_DELIVERED_REWARD, self.buyer, "order", 999)
        self.assertEqual(event.issued_amount, Decimal("7.50"))

    def test_amount_must_be_positive(self):
        rule = self.rule(ORDER_DELIVERED_REWARD)
        for value in ("0", "-3", "abc", None):
            self.assertEqual(update_rule_amount(rule.id, value)["code"], "INVALID_INPUT", value)
        self.assertEqual(self.rule(ORDER_DELIVERED_REWARD).amount, Decimal("5.00"))
        self.assertEqual(update_rule_amount(4242, "1")["code"], "NOT_FOUND")
        self.assertEqual(set_rule_active(4242, True)["code"], "NOT_FOUND")

    def test_monthly_total_and_stats(self):
        self.deliver()
        db.session.add(RewardEvent(
            key=ORDER_DELIVERED_REWARD,
            reference_type="order",
            reference_id=4242,
            user_id=self.buyer,
            issued_amount=Decimal("3.00"),
            created_at=datetime(2020, 1, 15),
        ))
        db.session.commit()

        self.assertEqual(rewards_this_month(self.buyer), Decimal("25.00"))
        self.assertEqual(rewards_this_month(), Decimal("27.00"))
        self.assertEqual(len(user_events(self.buyer)), 3)

        stats = reward_stats()
        self.assertEqual(stats["total_rewarded"], Decimal("30.00"))
        self.assertEqual(stats["rewards_this_month"], Decimal("27.00"))
        self.assertEqual(stats["active_rules"], 3)
        self.assertEqual(stats["total_events"], 4)


class RewardApiTestCase(RewardTestCase):
    def test_admin_manages_rules(self):
        res = self.get_json("/api/admin/qanz/rewards", user_id=self.admin)
        self.assertEqual(res.status_code, 200)
        rules = {r["key"]: r for r in res.get_json()["rules"]}
        self.assertEqual(rules[ORDER_DELIVERED_REWARD]["amount"], "5.00")

        rule_id = rules[ORDER_DELIVERED_REWARD]["id"]
        res = self.put_json(f"/api/admin/qanz/rewards/{rule_id}", {"amount": "8.25", "is_active": False},
                            user_id=self.admin)
        self.assertEqual(res.status_code, 200)
        body = res.get_json()["rule"]
        self.assertEqual(body["amount"], "8.25")
        self.assertFalse(body["is_active"])
        self.assertEqual(ActivityLog.query.filter_by(action_type="reward_rule_update").count(), 1)

        res = self.put_json(f"/api/admin/qanz/rewards/{rule_id}", {"amount": "0"}, user_id=self.admin)
        self.assertEqual(res.status_code, 400)
        res = self.put_json(f"/api/admin/qanz/rewards/{rule_id}", {}, user_id=self.admin)
        self.assertEqual(res.status_code, 400)
        res = self.put_json("/api/admin/qanz/rewards/4242", {"is_active": True}, user_id=self.admin)
        self.assertEqual(res.status_code, 404)

    def test_events_and_stats(self):
        self.deliver()

        res = self.get_json("/api/admin/qanz/rewards/events", user_id=self.admin)
        events = res.get_json()["events"]
        self.assertEqual(len(events), 3)
        self.assertIn("Buyer", {e["user_name"] for e in events})

        res = self.get_json("/api/admin/qanz/rewards/stats", user_id=self.admin)
        stats = res.get_json()["stats"]
        self.assertEqual(stats["total_rewarded"], "27.00")
        self.assertEqual(stats["total_events"], 3)

    def test_user_sees_own_rewards(self):
        self.deliver()

        res = self.get_json("/api/wallet/rewards", user_id=self.buyer)
        self.assertEqual(res.status_code, 200)
        body = res.get_json()
        self.assertEqual(body["rewards_this_month"], "25.00")
        self.assertEqual({e["user_id"] for e in body["events"]}, {self.buyer})

        res = self.get_json("/api/wallet", user_id=self.buyer)
        types = {t["type"] for t in res.get_json()["transactions"]}
        self.assertEqual(types, {"reward"})

    def test_buyer_cannot_manage_rules(self):
        res = self.get_json("/api/admin/qanz/rewards", user_id=self.buyer)
        self.assertEqual(res.status_code, 403)
        res = self.put_json("/api/admin/qanz/rewards/1", {"is_active": False}, user_id=self.buyer)
        self.assertEqual(res.status_code, 403)


if __name__ == "__main__":
    unittest.main()
