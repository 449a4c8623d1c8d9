from __future__ import annotations

import unittest

from jordanmarket.models import db, Notification
from jordanmarket.services.notifications import (
    notify, notify_localized, mark_read, mark_all_read, unread_count, list_notifications,
)

from tests.base import MarketTestCase


class NotificationServiceTestCase(MarketTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.make_buyer()

    def test_mark_read_is_idempotent(self):
        notification = notify(self.user, "order", "Hello", "World")
        self.assertEqual(unread_count(self.user), 1)

        first = mark_read(notification.id, self.user)
        second = mark_read(notification.id, self.user)
        self.assertTrue(first["success"])
        self.assertTrue(second["success"])
        self.assertTrue(db.session.get(Notification, notification.id).is_read)
        self.assertEqual(unread_count(self.user), 0)

    def test_cannot_mark_someone_elses_notification(self):
        notification = notify(self.user, "order", "Hello", "World")
        result = mark_read(notification.id, self.make_buyer())
        self.assertEqual(result["code"], "NOT_FOUND")
        self.assertFalse(db.session.get(Notification, notification.id).is_read)

    def test_mark_all_read(self):
        for i in range(3):
            notify(self.user, "order", f"Title {i}", "Body")
        result = mark_all_read(self.user)
        self.assertEqual(result["updated"], 3)
        self.assertEqual(list_notifications(self.user, unread_only=True), [])

    def test_failed_insert_returns_none(self):
        self.assertIsNone(notify(self.user, "order", None, "Body"))
        self.assertEqual(Notification.query.count(), 0)

    def test_localized_in_recipient_locale(self):
        arabic = self.make_user("arabic", locale="ar")
        notification = notify_localized(
            arabic, "order", "order_cancelled",
            reference_type="order", reference_id=7, order_id=7,
        )
        self.assertEqual(notification.title, "تم إلغاء الطلب #7")
        self.assertEqual(notification.reference_id, 7)

        english = notify_localized(self.user, "order", "order_cancelled", order_id=7)
        self.assertEqual(english.title, "Order #7 cancelled")


class NotificationApiTestCase(MarketTestCase):
    def test_list_and_read(self):
        user = self.make_buyer()
        first = notify(user, "order", "First", "Body").id
        notify(user, "order", "Second", "Body")

        res = self.get_json("/api/notifications/unread-count", user_id=user)
        self.assertEqual(res.get_json()["unread_count"], 2)

        res = self.post_json(f"/api/notifications/{first}/read", user_id=user)
        self.assertEqual(res.status_code, 200)
        res = self.post_json(f"/api/notifications/{first}/read", user_id=user)
        self.assertEqual(res.status_code, 200)

        res = self.get_json("/api/notifications", user_id=user)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.get_json()["notifications"]), 2)

        res = self.post_json("/api/notifications/read-all", user_id=user)
        self.assertEqual(res.get_json()["updated"], 1)


if __name__ == "__main__":
    unittest.main()
