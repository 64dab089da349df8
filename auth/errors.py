"""
auth/errors.py -- Error taxonomy for the auth core.

Every failure the core can report is an AuthError subclass carrying its HTTP
status, a stable machine-readable code and a client-safe message. api/main.py
registers one exception handler for AuthError that renders the shared
ErrorResponse envelope, so route handlers simply raise.

Disclosure policy:
  Validation errors carry field-level details so callers can fix their input.
  Authentication and authorization failures are deliberately generic: wrong
  password, unknown email and deactivated account all produce the same
  InvalidCredentials body, and every token problem after extraction surfaces
  as Unauthorized. TokenInvalid / TokenExpired exist for server-side logging
  and never reach a client unchanged.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """Base class for all expected auth failures."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        if message is not None:
            self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(AuthError):
    """Input failed shape or policy checks. details lists {field, message} pairs."""

    status_code = 400
    code = "validation_error"
    message = "Validation failed."


class DuplicateEmail(AuthError):
    status_code = 409
    code = "duplicate_email"
    message = "A user with this email already exists."


class InvalidCredentials(AuthError):
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid email or password."


class TokenMissing(AuthError):
    status_code = 401
    code = "token_missing"
    message = "Access token required."


class TokenInvalid(AuthError):
    """Bad signature, malformed structure or missing claims. Internal only."""

    status_code = 401
    code = "token_invalid"
    message = "Invalid token."


class TokenExpired(AuthError):
    """Embedded expiry has passed. Internal only."""

    status_code = 401
    code = "token_expired"
    message = "Token has expired."


class Unauthorized(AuthError):
    """Invalid, expired or revoked token, as seen by the client."""

    status_code = 401
    code = "unauthorized"
    message = "Invalid or expired token."


class RateLimited(AuthError):
    status_code = 429
    code = "rate_limited"
    message = "Too many authentication attempts, please try again later."


class NotFound(AuthError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class InternalError(AuthError):
    """Generic 500. The underlying exception is logged, never returned."""
