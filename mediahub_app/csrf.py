"""
Session CSRF tokens.

Clients fetch the token from GET /api/csrf-token and send it back in the
X-CSRF-Token header (or a "_csrf_token" JSON field) on every write.
"""
import hmac
import secrets
from functools import wraps
from typing import Optional

from flask import request, session, jsonify

from mediahub_app.log import log

TOKEN_HEADER = 'X-CSRF-Token'
TOKEN_FIELD = '_csrf_token'
SESSION_KEY = 'csrf_token'

# Methods that change state and need a token
PROTECTED_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


def _new_token() -> str:
    session[SESSION_KEY] = secrets.token_hex(32)
    return session[SESSION_KEY]


def _submitted_token() -> Optional[str]:
    header = request.headers.get(TOKEN_HEADER)
    if header:
        return header
    body = request.get_json(silent=True)
    if isinstance(body, dict) and isinstance(body.get(TOKEN_FIELD), str):
        return body[TOKEN_FIELD]
    return None


def csrf_protect(f):
    """Reject protected methods unless the submitted token matches the session's."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if request.method not in PROTECTED_METHODS:
            return f(*args, **kwargs)

        submitted = _submitted_token()
        expected = session.get(SESSION_KEY)
        if not submitted or not expected or not hmac.compare_digest(submitted, expected):
            log(f"⚠️ CSRF check failed for {request.method} {request.path}")
            return jsonify({'error': 'Invalid or missing CSRF token', 'code': 'csrf_failed'}), 403

        return f(*args, **kwargs)
    return decorated_function


def ensure_csrf_token():
    """before_request hook: every session carries a token."""
    if SESSION_KEY not in session:
        _new_token()


def regenerate_csrf_token():
    """Rotate the token (after login/registration)."""
    return _new_token()


def get_csrf_token():
    ensure_csrf_token()
    return jsonify({'csrf_token': session[SESSION_KEY]})
