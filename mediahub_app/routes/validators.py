"""Request parsing and JSON error helpers shared by the blueprints."""

from typing import Any, Dict

from flask import jsonify, request

from mediahub_app.services.errors import ConflictError, NotFoundError, ServiceError

MAX_QUERY_LENGTH = 200

# Service exception -> HTTP status; anything else is a 400
ERROR_STATUS = (
    (NotFoundError, 404),
    (ConflictError, 409),
)


def json_body() -> Dict[str, Any]:
    """Request JSON as a dict; missing or non-object bodies become {}."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def clean_query(value, max_length: int = MAX_QUERY_LENGTH) -> str:
    """
    Search text with control characters removed, trimmed and capped.

    Examples:
        clean_query("  星际穿越\\n") -> "星际穿越"
        clean_query(None) -> ""
    """
    if not isinstance(value, str):
        return ""
    printable = ''.join(c for c in value if c >= ' ')
    return printable.strip()[:max_length]


def error_response(message: str, code: str = 'invalid_request', status: int = 400):
    return jsonify({'error': message, 'code': code}), status


def service_error_response(exc: ServiceError):
    status = 400
    for error_type, error_status in ERROR_STATUS:
        if isinstance(exc, error_type):
            status = error_status
            break
    return error_response(exc.message, code=exc.code, status=status)
