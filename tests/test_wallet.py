from __future__ import annotations

import re
import unittest
from decimal import Decimal

from jordanmarket.models import db, TopupCode, WalletTransaction, ActivityLog, Notification
from jordanmarket.services.wallet import (
    normalize_code, generate_codes, redeem_code, void_code, payout, qanz_stats,
    get_balance, credit, debit, apply_transaction, list_transactions, signed_amount,
)

from tests.base import MarketTestCase

CODE_PATTERN = re.compile(r"^[A-Z2-9]{4}-[A-Z2-9]{4}-[A-Z2-9]{4}$")


class CodeFormatTestCase(unittest.TestCase):
    def test_normalize_ignores_case_spaces_and_dashes(self):
        self.assertEqual(normalize_code(" abcd efgh-jklm "), "ABCD-EFGH-JKLM")
        self.assertEqual(normalize_code("ABCDEFGHJKLM"), "ABCD-EFGH-JKLM")
        self.assertEqual(normalize_code(""), "")
        self.assertEqual(normalize_code(None), "")

    def test_signed_amounts(self):
        self.assertEqual(signed_amount("topup", Decimal("10")), Decimal("10.00"))
        self.assertEqual(signed_amount("payout", Decimal("4")), Decimal("-4.00"))


class WalletLedgerTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_admin()
        self.buyer = self.make_buyer()

    def _code(self, amount="10.00"):
        result = generate_codes(self.admin, Decimal(amount), 1)
        self.assertTrue(result["success"])
        return result["codes"][0]

    def test_redeeming_ten_qanz_credits_the_wallet_once(self):
        code = self._code("10")
        self.assertRegex(code.code, CODE_PATTERN)
        self.assertEqual(get_balance(self.buyer), Decimal("0.00"))

        result = redeem_code(code.code.lower().replace("-", " "), self.buyer)
        self.assertTrue(result["success"])
        self.assertEqual(result["amount"], Decimal("10.00"))
        self.assertEqual(result["balance"], Decimal("10.00"))

        again = redeem_code(code.code, self.buyer)
        self.assertFalse(again["success"])
        self.assertEqual(again["code"], "INVALID_OR_USED_CODE")
        self.assertEqual(get_balance(self.buyer), Decimal("10.00"))

        transactions = list_transactions(self.buyer)
        self.assertEqual(len(transactions), 1)
        self.assertEqual(transactions[0].type, "topup")
        self.assertEqual(transactions[0].reference_id, code.id)

        stored = db.session.get(TopupCode, code.id)
        self.assertEqual(stored.status, "redeemed")
        self.assertEqual(stored.redeemed_by, self.buyer)
        self.assertEqual(Notification.query.filter_by(user_id=self.buyer, type="wallet").count(), 1)

    def test_code_is_single_use_across_users(self):
        code = self._code("5")
        other = self.make_buyer()
        self.assertTrue(redeem_code(code.code, self.buyer)["success"])
        self.assertEqual(redeem_code(code.code, other)["code"], "INVALID_OR_USED_CODE")
        self.assertEqual(get_balance(other), Decimal("0.00"))

    def test_unknown_code_is_rejected(self):
        self.assertEqual(redeem_code("ZZZZ-ZZZZ-ZZZZ", self.buyer)["code"], "INVALID_OR_USED_CODE")
        self.assertEqual(redeem_code("   ", self.buyer)["code"], "INVALID_OR_USED_CODE")

    def test_voided_code_cannot_be_redeemed(self):
        code = self._code()
        self.assertTrue(void_code(code.id, self.admin)["success"])
        self.assertEqual(db.session.get(TopupCode, code.id).status, "voided")
        self.assertEqual(redeem_code(code.code, self.buyer)["code"], "INVALID_OR_USED_CODE")
        self.assertEqual(void_code(code.id, self.admin)["code"], "INVALID_STATE")

    def test_redeemed_code_cannot_be_voided(self):
        code = self._code()
        redeem_code(code.code, self.buyer)
        self.assertEqual(void_code(code.id, self.admin)["code"], "INVALID_STATE")
        self.assertEqual(void_code(99999, self.admin)["code"], "NOT_FOUND")

    def test_generate_codes_validates_batch(self):
        self.assertEqual(generate_codes(self.admin, Decimal("0"), 1)["code"], "INVALID_INPUT")
        self.assertEqual(generate_codes(self.admin, Decimal("5"), 0)["code"], "INVALID_INPUT")
        self.assertEqual(generate_codes(self.admin, Decimal("5"), 101)["code"], "INVALID_INPUT")

        result = generate_codes(self.admin, Decimal("5"), 20)
        codes = {c.code for c in result["codes"]}
        self.assertEqual(len(codes), 20)

    def test_qanz_stats_track_liability(self):
        first = self._code("10")
        self._code("15")
        voided = self._code("7")
        redeem_code(first.code, self.buyer)
        void_code(voided.id, self.admin)

        stats = qanz_stats()
        self.assertEqual(stats["total_codes"], 3)
        self.assertEqual(stats["active_codes"], 1)
        self.assertEqual(stats["redeemed_codes"], 1)
        self.assertEqual(stats["voided_codes"], 1)
        self.assertEqual(stats["outstanding_liability"], Decimal("15.00"))
        self.assertEqual(stats["total_redeemed"], Decimal("10.00"))
        self.assertEqual(stats["wallet_balances"], Decimal("10.00"))

    def test_payout_never_overdraws(self):
        credit(self.buyer, "refund", Decimal("12.00"))
        db.session.commit()

        result = payout(self.buyer, Decimal("20.00"), self.admin)
        self.assertEqual(result["code"], "INSUFFICIENT_BALANCE")
        self.assertEqual(get_balance(self.buyer), Decimal("12.00"))

        result = payout(self.buyer, Decimal("7.50"), self.admin)
        self.assertTrue(result["success"])
        self.assertEqual(result["balance"], Decimal("4.50"))

        latest = db.session.get(WalletTransaction, result["transaction_id"])
        self.assertEqual(latest.type, "payout")
        self.assertEqual(latest.amount, Decimal("7.50"))

    def test_debit_returns_none_when_balance_is_short(self):
        self.assertIsNone(debit(self.buyer, "payment", Decimal("1.00")))
        db.session.rollback()
        self.assertEqual(get_balance(self.buyer), Decimal("0.00"))

    def test_transaction_types_are_checked(self):
        with self.assertRaises(ValueError):
            apply_transaction(self.buyer, "gift", Decimal("1"))
        with self.assertRaises(ValueError):
            credit(self.buyer, "payout", Decimal("1"))
        with self.assertRaises(ValueError):
            debit(self.buyer, "topup", Decimal("1"))
        with self.assertRaises(ValueError):
            credit(self.buyer, "topup", Decimal("0"))

    def test_payout_to_unknown_owner(self):
        self.assertEqual(payout(99999, Decimal("1"), self.admin)["code"], "NOT_FOUND")

    def test_malformed_amounts_are_invalid_input(self):
        credit(self.buyer, "refund", Decimal("5.00"))
        db.session.commit()

        self.assertEqual(payout(self.buyer, "abc", self.admin)["code"], "INVALID_INPUT")
        self.assertEqual(generate_codes(self.admin, "ten")["code"], "INVALID_INPUT")
        self.assertEqual(get_balance(self.buyer), Decimal("5.00"))


class WalletApiTestCase(MarketTestCase):
    def test_redeem_and_view_wallet(self):
        admin = self.make_admin()
        buyer = self.make_buyer()

        res = self.post_json("/api/admin/codes", {"amount": "10", "quantity": 2}, user_id=admin)
        self.assertEqual(res.status_code, 201)
        codes = res.get_json()["codes"]
        self.assertEqual(len(codes), 2)
        self.assertEqual({c["status"] for c in codes}, {"active"})
        self.assertEqual(ActivityLog.query.filter_by(action_type="code_generation").count(), 1)

        raw = codes[0]["code"].lower()
        res = self.post_json("/api/wallet/redeem", {"code": raw}, user_id=buyer)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["balance"], "10.00")

        res = self.post_json("/api/wallet/redeem", {"code": raw}, user_id=buyer)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["code"], "INVALID_OR_USED_CODE")

        res = self.get_json("/api/wallet", user_id=buyer)
        body = res.get_json()
        self.assertEqual(body["balance"], "10.00")
        self.assertEqual(body["transactions"][0]["signed_amount"], "10.00")

        res = self.get_json("/api/admin/qanz/stats", user_id=admin)
        self.assertEqual(res.get_json()["stats"]["outstanding_liability"], "10.00")

    def test_buyer_cannot_generate_codes(self):
        res = self.post_json("/api/admin/codes", {"amount": "10"}, user_id=self.make_buyer())
        self.assertEqual(res.status_code, 403)
        self.assertEqual(TopupCode.query.count(), 0)


if __name__ == "__main__":
    unittest.main()
