"""
Notification Emitter
Best-effort user notices; a failed insert never affects the triggering workflow
"""
from jordanmarket.errors import success, failure, NOT_FOUND
from jordanmarket.i18n import translate
from jordanmarket.logger_config import app_logger
from jordanmarket.models import db, Notification, Profile

DEFAULT_LIMIT = 50


def notify(user_id, type, title, message, reference_type=None, reference_id=None):
    """
    Insert a notification and commit it on its own

    Returns:
        Notification or None when the insert failed
    """
    try:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except Exception as e:
        db.session.rollback()
        app_logger.exception(f"Failed to create notification for user {user_id}: {e}")
        return None


def notify_localized(user_id, type, key, reference_type=None, reference_id=None, **params):
    """
    Render `notify.<key>.title` / `notify.<key>.message` in the recipient's locale and notify
    """
    try:
        profile = db.session.get(Profile, user_id)
        locale = profile.preferred_locale if profile else None
        title = translate(f'notify.{key}.title', locale, **params)
        message = translate(f'notify.{key}.message', locale, **params)
    except Exception as e:
        app_logger.exception(f"Failed to render notification '{key}' for user {user_id}: {e}")
        return None
    return notify(user_id, type, title, message, reference_type, reference_id)


def list_notifications(user_id, limit=DEFAULT_LIMIT, unread_only=False):
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user_id):
    return Notification.query.filter_by(user_id=user_id, is_read=False).count()


def mark_read(notification_id, user_id):
    """Mark one notification read; already-read is a successful no-op"""
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if not notification:
        return failure(NOT_FOUND)

    if not notification.is_read:
        Notification.query.filter_by(id=notification_id, user_id=user_id, is_read=False).update(
            {Notification.is_read: True}, synchronize_session=False
        )
        db.session.commit()

    return success(notification_id=notification_id)


def mark_all_read(user_id):
    updated = Notification.query.filter_by(user_id=user_id, is_read=False).update(
        {Notification.is_read: True}, synchronize_session=False
    )
    db.session.commit()
    return success(updated=updated)
