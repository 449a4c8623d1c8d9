"""
Notification Routes Blueprint
"""
from flask import Blueprint, request, jsonify

from jordanmarket.models import db
from jordanmarket.auth import login_required
from jordanmarket.errors import result_response
from jordanmarket.error_handler import handle_exception
from jordanmarket.schemas import notifications_schema
from jordanmarket.services import notifications

bp = Blueprint('notifications', __name__)


@bp.route('/notifications', methods=['GET'])
@login_required
def get_notifications():
    """
    GET /api/notifications?unread=true&limit=
    """
    try:
        unread_only = request.args.get('unread', 'false').lower() == 'true'
        limit = min(request.args.get('limit', notifications.DEFAULT_LIMIT, type=int) or notifications.DEFAULT_LIMIT, 200)
        items = notifications.list_notifications(request.user_id, limit=limit, unread_only=unread_only)
        return jsonify({
            "success": True,
            "notifications": notifications_schema.dump(items),
            "unread_count": notifications.unread_count(request.user_id),
        }), 200
    except Exception as e:
        return handle_exception(e, {"action": "list_notifications"})


@bp.route('/notifications/unread-count', methods=['GET'])
@login_required
def get_unread_count():
    """
    GET /api/notifications/unread-count
    """
    return jsonify({"success": True, "unread_count": notifications.unread_count(request.user_id)}), 200


@bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    """
    POST /api/notifications/<id>/read
    Idempotent: marking an already-read notification succeeds
    """
    try:
        return result_response(notifications.mark_read(notification_id, request.user_id))
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "mark_notification_read", "notification_id": notification_id})


@bp.route('/notifications/read-all', methods=['POST'])
@login_required
def mark_all_read():
    """
    POST /api/notifications/read-all
    """
    try:
        return result_response(notifications.mark_all_read(request.user_id))
    except Exception as e:
        db.session.rollback()
        return handle_exception(e, {"action": "mark_all_notifications_read"})
