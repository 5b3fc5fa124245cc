"""
Storefront error taxonomy

Every error carries the HTTP status it is surfaced with; the message is
safe to show to the caller.
"""


class StorefrontError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(StorefrontError):
    """Missing, invalid or expired bearer token"""
    status_code = 401


class ValidationError(StorefrontError):
    """Request is well-formed but its content is unacceptable"""
    status_code = 400


class ConflictError(StorefrontError):
    """Insufficient stock or an order not in the state the action needs"""
    status_code = 400


class PermissionDeniedError(StorefrontError):
    status_code = 403


class NotFoundError(StorefrontError):
    status_code = 404


class InternalError(StorefrontError):
    """Unexpected store failure; the message never carries internals"""
    status_code = 500

    def __init__(self, message: str = "An error occurred while processing your request"):
        super().__init__(message)
