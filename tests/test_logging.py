from __future__ import annotations

import unittest

from jordanmarket.logger_config import mask_email, log_workflow_event, log_auth_event

from tests.base import MarketTestCase


class LoggingHelpersTestCase(unittest.TestCase):
    def test_mask_email_keeps_domain(self):
        self.assertEqual(mask_email("lina@example.com"), "li**@example.com")
        self.assertEqual(mask_email("a@b.jo"), "a@b.jo")
        self.assertIsNone(mask_email(None))

    def test_workflow_event_line(self):
        with self.assertLogs("jordanmarket.workflow", level="INFO") as captured:
            log_workflow_event("order", 12, "placed", actor_id=3, total="22.00")
        self.assertIn("order#12 placed by=3 total=22.00", captured.output[0])

    def test_failed_auth_is_a_warning(self):
        with self.assertLogs("jordanmarket.auth", level="WARNING") as captured:
            log_auth_event("login", False, "lina@example.com", error="invalid credentials")
        self.assertIn("li**@example.com", captured.output[0])
        self.assertNotIn("lina@", captured.output[0])


class WorkflowLogTestCase(MarketTestCase):
    def test_order_lifecycle_is_logged(self):
        seller = self.make_seller()
        product = self.make_product(seller)
        with self.assertLogs("jordanmarket.workflow", level="INFO") as captured:
            order_id = self.place_order(self.make_buyer(), seller, product)
            self.advance_to_ready(order_id, seller)

        lines = "\n".join(captured.output)
        self.assertIn(f"order#{order_id} placed", lines)
        self.assertIn(f"order#{order_id} ready by={seller} previous=preparing", lines)


if __name__ == "__main__":
    unittest.main()
