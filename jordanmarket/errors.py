"""
Result values for workflow operations

Service functions never raise for expected failures. They return a dict:
    {'success': True, ...data}
    {'success': False, 'code': 'INVALID_TRANSITION', 'error': '...'}
"""
from flask import jsonify

from jordanmarket.i18n import translate, resolve_locale

UNAUTHENTICATED = 'UNAUTHENTICATED'
FORBIDDEN = 'FORBIDDEN'
INVALID_INPUT = 'INVALID_INPUT'
INVALID_TRANSITION = 'INVALID_TRANSITION'
NOT_FOUND = 'NOT_FOUND'
INVALID_STATE = 'INVALID_STATE'
INSUFFICIENT_STOCK = 'INSUFFICIENT_STOCK'
INSUFFICIENT_BALANCE = 'INSUFFICIENT_BALANCE'
INVALID_OR_USED_CODE = 'INVALID_OR_USED_CODE'
RATE_LIMITED = 'RATE_LIMITED'
PROFILE_MISSING = 'PROFILE_MISSING'
NOT_VERIFIED = 'NOT_VERIFIED'
DIFFERENT_SELLER = 'DIFFERENT_SELLER'
SERVER_ERROR = 'SERVER_ERROR'

HTTP_STATUS = {
    UNAUTHENTICATED: 401,
    FORBIDDEN: 403,
    NOT_VERIFIED: 403,
    INVALID_INPUT: 400,
    INVALID_TRANSITION: 409,
    INVALID_STATE: 409,
    INSUFFICIENT_STOCK: 409,
    INSUFFICIENT_BALANCE: 409,
    DIFFERENT_SELLER: 409,
    INVALID_OR_USED_CODE: 400,
    NOT_FOUND: 404,
    PROFILE_MISSING: 404,
    RATE_LIMITED: 429,
    SERVER_ERROR: 500,
}


def success(**data):
    result = {'success': True}
    result.update(data)
    return result


def failure(code, error=None, **extra):
    """Build a failed result; `error` defaults to the code's English message"""
    result = {
        'success': False,
        'code': code,
        'error': error or translate(code, 'en'),
    }
    result.update(extra)
    return result


def result_response(result, status=200):
    """
    Turn a result dict into a JSON response

    Failed results are localized for the request and mapped to an HTTP status.
    """
    if result.get('success'):
        return jsonify(result), status

    code = result.get('code', SERVER_ERROR)
    body = dict(result)
    body['error'] = translate(code, resolve_locale())
    return jsonify(body), HTTP_STATUS.get(code, 400)
