"""
auth/exceptions.py -- Error taxonomy for the credential and session lifecycle.

Every error carries a machine-readable code, a client-safe message and the
HTTP status the API layer maps it to. Messages never contain usernames,
tokens or internal detail -- api/main.py renders them verbatim.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthGateError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthGateError):
    """Missing or malformed input. No state was changed."""

    status_code = 400
    code = "validation_error"
    default_message = "Username and password required."


class AlreadyExistsError(AuthGateError):
    status_code = 400
    code = "already_exists"
    default_message = "User already exists."


class InvalidCredentialsError(AuthGateError):
    """Login failed. Deliberately silent about which half was wrong."""

    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid credentials."


class MissingTokenError(AuthGateError):
    status_code = 401
    code = "missing_token"
    default_message = "Access token required."


class InvalidTokenError(AuthGateError):
    """Token failed verification. Subclasses exist for logging only."""

    status_code = 403
    code = "invalid_token"
    default_message = "Invalid or expired token."


class TokenExpiredError(InvalidTokenError):
    pass


class TokenSignatureError(InvalidTokenError):
    pass


class UserNotFoundError(AuthGateError):
    status_code = 404
    code = "not_found"
    default_message = "User not found."


class StoreUnavailableError(AuthGateError):
    """The database failed. Full detail is logged server-side only."""

    status_code = 500
    code = "internal_error"
    default_message = "Server error."
