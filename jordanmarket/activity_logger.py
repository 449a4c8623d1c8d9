"""
Activity Logger
Persistent audit trail (activity_logs table) of admin actions:
verifications, cash confirmations, settlement payouts, code batches.
"""
from flask import request, has_request_context
from datetime import datetime

from jordanmarket.models import db, ActivityLog, Profile, User
from jordanmarket.logger_config import app_logger
from jordanmarket.capabilities import primary_dashboard


def client_ip():
    """First X-Forwarded-For hop, then X-Real-IP, then the socket address"""
    if not has_request_context():
        return None
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return (request.headers.get('X-Real-IP') or '').strip() or request.remote_addr


def _actor_name(user_id, user_type):
    if not user_id:
        return user_type
    profile = db.session.get(Profile, user_id)
    if profile and profile.full_name:
        return profile.full_name
    user = db.session.get(User, user_id)
    return user.email if user else f"{user_type} #{user_id}"


def log_activity(user_id, user_type, action, action_type, entity_type=None, entity_id=None,
                 details=None, ip_address=None):
    """
    Append an audit entry and commit it

    `user_type` is the capability the action was taken under. Failures are
    logged and swallowed: the audited action has already been committed.

    Returns the ActivityLog or None.
    """
    try:
        entry = ActivityLog(
            user_id=user_id,
            user_type=user_type,
            user_name=_actor_name(user_id, user_type),
            action=action,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address or client_ip(),
            timestamp=datetime.utcnow(),
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception as e:
        db.session.rollback()
        app_logger.exception(f"Failed to write activity log ({action_type} {entity_type} {entity_id}): {e}")
        return None


def log_activity_from_request(action, action_type, entity_type=None, entity_id=None, details=None):
    """Audit an action by the authenticated user of a @require_capability view"""
    caps = getattr(request, 'capabilities', None)
    user_id = getattr(request, 'user_id', None)
    if not user_id or caps is None:
        app_logger.warning(f"Activity '{action_type}' not logged: no authenticated capabilities on request")
        return None

    return log_activity(
        user_id, primary_dashboard(caps), action, action_type,
        entity_type=entity_type, entity_id=entity_id, details=details,
    )


def list_activity(limit=100, action_type=None, entity_type=None, user_id=None):
    """Newest entries first"""
    query = ActivityLog.query
    if action_type:
        query = query.filter_by(action_type=action_type)
    if entity_type:
        query = query.filter_by(entity_type=entity_type)
    if user_id:
        query = query.filter_by(user_id=user_id)
    return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()
