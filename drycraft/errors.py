"""
Error taxonomy shared by the routers and the data layer.

Each error carries the HTTP status it maps to; the app registers one
handler for the whole family so every failure renders as
``{"error": message}``.
"""

from __future__ import annotations


class DryCraftError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DryCraftError):
    """Missing or empty required field, or a value outside its allowed set."""

    status_code = 400
    default_message = "Invalid request"


class ConflictError(DryCraftError):
    """A unique key (username, email) is already taken."""

    status_code = 400
    default_message = "Resource already exists"


class AuthError(DryCraftError):
    """Missing or incorrect credentials."""

    status_code = 401
    default_message = "Invalid credentials"


class ForbiddenError(AuthError):
    """Missing/invalid session, or the caller does not own the resource."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(DryCraftError):
    status_code = 404
    default_message = "Resource not found"


class DependencyError(DryCraftError):
    """The database (or another backing service) failed unexpectedly."""

    status_code = 500
    default_message = "Internal server error"
