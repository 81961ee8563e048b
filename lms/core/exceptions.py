"""
Error taxonomy for the access core.

Every failure a caller must be able to tell apart has its own class and a
stable ``error_type`` code; the HTTP layer renders them in ``main.py``.
"""

from typing import Optional


class AppException(Exception):
    status_code: int = 500
    error_type: str = "error"
    default_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class Unauthenticated(AppException):
    """Missing, malformed or expired session token, or unknown account."""

    status_code = 401
    error_type = "unauthenticated"
    default_message = "Authentication required. Please log in."


class SessionSuperseded(AppException):
    """Token is genuine but a newer login replaced it."""

    status_code = 401
    error_type = "session_superseded"
    default_message = (
        "Session expired. This account is logged in from another device."
    )


class AccountBlocked(AppException):
    status_code = 403
    error_type = "account_blocked"
    default_message = "Your account has been blocked. Please contact support."


class Forbidden(AppException):
    status_code = 403
    error_type = "forbidden"
    default_message = "Access denied"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason)


class NotFound(AppException):
    status_code = 404
    error_type = "not_found"
    default_message = "Not found"


class Conflict(AppException):
    status_code = 409
    error_type = "conflict"
    default_message = "Already exists"


class InvalidTransition(AppException):
    status_code = 409
    error_type = "invalid_transition"
    default_message = "Invalid state transition"


class ConfigurationError(AppException):
    """Fatal misconfiguration. Not retryable."""

    status_code = 500
    error_type = "configuration_error"
    default_message = "Service is misconfigured"
