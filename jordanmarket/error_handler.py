"""
Error Handling Utilities
Provides centralized error handling and logging for production safety
"""
from flask import jsonify, request, has_request_context, current_app

from jordanmarket.errors import SERVER_ERROR
from jordanmarket.i18n import translate, resolve_locale
from jordanmarket.logger_config import log_error_with_context


def log_error(error, context=None):
    """
    Log error details server-side only

    Args:
        error: Exception object
        context: Optional context information (dict)
    """
    if context is None:
        context = {}

    if has_request_context():
        context['endpoint'] = request.path
        context['method'] = request.method
        context['remote_addr'] = request.remote_addr
        user_id = getattr(request, 'user_id', None)
        if user_id:
            context['user_id'] = user_id

    log_error_with_context(error, context)


def get_error_message(error, default_message=None):
    """
    Get appropriate error message based on environment

    Args:
        error: Exception object
        default_message: Message to return outside development

    Returns:
        str: Error message (detailed in development, generic otherwise)
    """
    if current_app.config.get('ENV') == 'development':
        return f"{type(error).__name__}: {str(error)}"

    if default_message:
        return default_message

    error_type = type(error).__name__
    locale = resolve_locale()
    if 'IntegrityError' in error_type:
        return translate('INVALID_STATE', locale)
    if 'ValidationError' in error_type:
        return translate('INVALID_INPUT', locale)
    return translate(SERVER_ERROR, locale)


def handle_exception(error, context=None, default_message=None):
    """
    Handle an unexpected exception and return a generic response

    Args:
        error: Exception object
        context: Optional context information
        default_message: Message shown to the user

    Returns:
        tuple: (jsonify response, status_code)
    """
    log_error(error, context)
    return jsonify({
        "success": False,
        "code": SERVER_ERROR,
        "error": get_error_message(error, default_message),
    }), 500
