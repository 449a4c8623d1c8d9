from __future__ import annotations

import unittest

from jordanmarket.capabilities import resolve_capabilities, primary_dashboard
from jordanmarket.models import db, Profile, ActivityLog, Notification
from jordanmarket.services.onboarding import (
    activate_seller, activate_driver, verify_seller, verify_driver, set_driver_active,
    pending_sellers, pending_drivers, reject_seller, reject_driver,
)

from tests.base import MarketTestCase


class OnboardingServiceTestCase(MarketTestCase):
    def test_seller_application_waits_for_verification(self):
        user = self.make_buyer()
        activate_seller(user, "Souq Al Balad", address="Downtown, Amman")

        caps = resolve_capabilities(user)
        self.assertTrue(caps.is_seller)
        self.assertFalse(caps.seller_verified)
        self.assertEqual(db.session.get(Profile, user).role, "seller")
        self.assertEqual([s.user_id for s in pending_sellers()], [user])

        admin = self.make_admin()
        self.assertTrue(verify_seller(user, admin)["success"])
        self.assertTrue(resolve_capabilities(user).seller_verified)
        self.assertEqual(pending_sellers(), [])
        self.assertEqual(Notification.query.filter_by(user_id=user, type="verification").count(), 1)

        # Verifying again is a no-op
        verify_seller(user, admin)
        self.assertEqual(Notification.query.filter_by(user_id=user, type="verification").count(), 1)

    def test_driver_role_outranks_seller(self):
        user = self.make_seller()
        activate_driver(user, "car", vehicle_plate="10-12345")
        self.assertEqual(db.session.get(Profile, user).role, "driver")
        self.assertEqual(primary_dashboard(resolve_capabilities(user)), "driver")

    def test_driver_goes_online_only_when_verified(self):
        user = self.make_buyer()
        activate_driver(user, "motorcycle")
        self.assertEqual(set_driver_active(user, True)["code"], "NOT_VERIFIED")

        verify_driver(user, self.make_admin())
        result = set_driver_active(user, True)
        self.assertTrue(result["success"])
        self.assertTrue(result["driver_profile"].is_active)

    def test_verify_unknown_applicant(self):
        admin = self.make_admin()
        self.assertEqual(verify_seller(4242, admin)["code"], "NOT_FOUND")
        self.assertEqual(verify_driver(4242, admin)["code"], "NOT_FOUND")
        self.assertEqual(set_driver_active(4242, False)["code"], "NOT_FOUND")


class RejectionServiceTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_admin()

    def test_rejected_seller_leaves_the_queue_and_is_notified(self):
        user = self.make_user("pending", seller=True)
        result = reject_seller(user, self.admin, "Address could not be confirmed")

        self.assertTrue(result["success"])
        seller = result["seller_profile"]
        self.assertEqual(seller.status, "rejected")
        self.assertEqual(seller.rejected_by, self.admin)
        self.assertEqual(seller.rejection_reason, "Address could not be confirmed")
        self.assertEqual(pending_sellers(), [])

        caps = resolve_capabilities(user)
        self.assertTrue(caps.seller_rejected)
        self.assertFalse(caps.seller_verified)

        notice = Notification.query.filter_by(user_id=user, type="verification").one()
        self.assertEqual(notice.title, "Store application declined")
        self.assertIn("Address could not be confirmed", notice.message)

    def test_only_pending_applications_can_be_rejected(self):
        verified = self.make_seller()
        result = reject_seller(verified, self.admin)
        self.assertEqual(result["code"], "INVALID_STATE")
        self.assertEqual(result["current_status"], "verified")

        pending = self.make_user("pending", seller=True)
        self.assertTrue(reject_seller(pending, self.admin)["success"])
        again = reject_seller(pending, self.admin)
        self.assertEqual(again["code"], "INVALID_STATE")
        self.assertEqual(Notification.query.filter_by(user_id=pending).count(), 1)

        self.assertEqual(reject_seller(4242, self.admin)["code"], "NOT_FOUND")
        self.assertEqual(reject_driver(4242, self.admin)["code"], "NOT_FOUND")

    def test_rejected_application_cannot_be_verified_until_reapplied(self):
        user = self.make_user("pending", seller=True)
        reject_seller(user, self.admin)
        self.assertEqual(verify_seller(user, self.admin)["code"], "INVALID_STATE")

        activate_seller(user, "Souq Al Balad 2")
        self.assertEqual([s.user_id for s in pending_sellers()], [user])
        self.assertFalse(resolve_capabilities(user).seller_rejected)
        self.assertTrue(verify_seller(user, self.admin)["success"])

    def test_rejected_driver_stays_offline(self):
        user = self.make_user("rider", driver=True)
        result = reject_driver(user, self.admin)

        self.assertTrue(result["success"])
        self.assertEqual(result["driver_profile"].status, "rejected")
        self.assertFalse(result["driver_profile"].is_active)
        self.assertEqual(pending_drivers(), [])
        self.assertEqual(set_driver_active(user, True)["code"], "NOT_VERIFIED")
        self.assertEqual(verify_driver(user, self.admin)["code"], "INVALID_STATE")


class OnboardingApiTestCase(MarketTestCase):
    def test_seller_onboarding_and_admin_verification(self):
        user = self.make_buyer()
        admin = self.make_admin()

        res = self.post_json("/api/seller/onboarding", {
            "store_name": "Zaatar House",
            "address": "Jabal Al Weibdeh",
        }, user_id=user)
        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.get_json()["seller_profile"]["is_verified"])

        res = self.get_json("/api/admin/sellers/pending", user_id=admin)
        self.assertEqual([s["user_id"] for s in res.get_json()["sellers"]], [user])

        res = self.post_json(f"/api/admin/sellers/{user}/verify", user_id=admin)
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.get_json()["seller_profile"]["is_verified"])

        entry = ActivityLog.query.filter_by(action_type="seller_verification").one()
        self.assertEqual(entry.user_id, admin)
        self.assertEqual(entry.user_type, "admin")
        self.assertEqual(entry.entity_id, user)

        res = self.get_json("/en/seller/", user_id=user)
        self.assertEqual(res.status_code, 200)

    def test_admin_rejects_seller_application(self):
        user = self.make_user("pending", seller=True)
        admin = self.make_admin()

        res = self.post_json(f"/api/admin/sellers/{user}/reject", {"reason": "Incomplete details"}, user_id=admin)
        self.assertEqual(res.status_code, 200)
        body = res.get_json()["seller_profile"]
        self.assertEqual(body["status"], "rejected")
        self.assertEqual(body["rejection_reason"], "Incomplete details")

        entry = ActivityLog.query.filter_by(action_type="seller_rejection").one()
        self.assertEqual(entry.entity_id, user)
        self.assertEqual(entry.details, "Incomplete details")

        res = self.get_json("/api/admin/sellers/pending", user_id=admin)
        self.assertEqual(res.get_json()["sellers"], [])

        res = self.post_json(f"/api/admin/sellers/{user}/reject", user_id=admin)
        self.assertEqual(res.status_code, 409)

        res = self.get_json("/en/seller/", user_id=user)
        self.assertEqual(res.status_code, 302)
        self.assertTrue(res.headers["Location"].endswith("/en/seller/rejected"))

    def test_admin_rejects_driver_application(self):
        user = self.make_user("rider", driver=True)
        admin = self.make_admin()

        res = self.post_json(f"/api/admin/drivers/{user}/reject", user_id=admin)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["driver_profile"]["status"], "rejected")
        self.assertEqual(ActivityLog.query.filter_by(action_type="driver_rejection").count(), 1)

        res = self.post_json(f"/api/admin/drivers/{user}/reject", user_id=self.make_buyer())
        self.assertEqual(res.status_code, 403)

    def test_admin_lists_and_filters_users(self):
        admin = self.make_admin()
        buyer = self.make_buyer()
        seller = self.make_seller()
        driver = self.make_driver()

        res = self.get_json("/api/admin/users", user_id=admin)
        self.assertEqual(res.status_code, 200)
        self.assertEqual({u["id"] for u in res.get_json()["users"]}, {admin, buyer, seller, driver})

        res = self.get_json("/api/admin/users?capability=seller", user_id=admin)
        users = res.get_json()["users"]
        self.assertEqual([u["id"] for u in users], [seller])
        self.assertEqual(users[0]["seller_profile"]["status"], "verified")

        res = self.get_json("/api/admin/users?search=driv", user_id=admin)
        self.assertEqual([u["id"] for u in res.get_json()["users"]], [driver])

        res = self.get_json("/api/admin/users?capability=wizard", user_id=admin)
        self.assertEqual(res.status_code, 400)

        res = self.get_json("/api/admin/users", user_id=buyer)
        self.assertEqual(res.status_code, 403)

    def test_driver_onboarding_rejects_unknown_vehicle(self):
        res = self.post_json("/api/driver/onboarding", {"vehicle_type": "camel"}, user_id=self.make_buyer())
        self.assertEqual(res.status_code, 400)
        self.assertIn("vehicle_type", res.get_json()["details"])

    def test_admin_stats_and_activity(self):
        admin = self.make_admin()
        self.make_user("pending", seller=True)
        self.post_json("/api/admin/categories", {"name_en": "Bakery", "name_ar": "مخبز"}, user_id=admin)

        res = self.get_json("/api/admin/stats", user_id=admin)
        stats = res.get_json()["stats"]
        self.assertEqual(stats["pending_sellers"], 1)
        self.assertEqual(stats["total_users"], 2)
        self.assertEqual(stats["revenue"], "0.00")

        res = self.get_json("/api/admin/activity?action_type=category_creation", user_id=admin)
        self.assertEqual(len(res.get_json()["activity"]), 1)


if __name__ == "__main__":
    unittest.main()
