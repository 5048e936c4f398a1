"""
Service-layer exceptions.

Routes translate these into JSON error responses; nothing below the route
layer knows about HTTP status codes.
"""


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    code = "service_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Rejected input. Nothing was mutated."""

    code = "invalid_request"


class NotFoundError(ServiceError):
    """Missing row, or a row the acting user does not own."""

    code = "not_found"


class ConflictError(ServiceError):
    """Unique value already taken (e.g. a registered email)."""

    code = "conflict"


COLLECTION_NOT_FOUND = "Collection not found or access denied"
