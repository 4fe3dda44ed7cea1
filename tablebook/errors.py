"""Booking error taxonomy

Services raise these; the API layer turns them into
``{"success": false, "error": <code>, "message": <text>}`` responses.
The ``detail`` attribute keeps the underlying cause (e.g. a driver message)
for logs and Python callers, and is never sent to clients.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for every error surfaced by the booking core"""

    code: str = "ERROR"
    status_code: int = 400
    default_message: str = "The request could not be completed"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class NotFoundError(BookingError):
    """Lookup miss; terminal, not retryable"""
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class InvalidRequestError(BookingError):
    """Malformed input, rejected before any write"""
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid request"


class ConflictError(BookingError):
    """Uniqueness violation; re-fetch availability and retry"""
    code = "CONFLICT"
    status_code = 409
    default_message = "The resource was modified concurrently"


class BackendUnavailableError(BookingError):
    code = "BACKEND_UNAVAILABLE"
    status_code = 503
    default_message = "The booking service is temporarily unavailable"


class PolicyRejectionError(BookingError):
    """Business-rule rejection, not a system fault"""
    code = "POLICY_REJECTION"
    status_code = 400
    default_message = "The request is not allowed by the restaurant policy"
