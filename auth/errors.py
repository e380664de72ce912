"""
auth/errors.py -- Typed outcomes for the credential and authorship core.

Every failure the core can report is one of these classes. The API layer maps
them to HTTP responses in one exception handler (api/main.py), so routes raise
and never build error payloads by hand.

Credential and token failures carry a fixed message whatever the root cause:
the caller must not be able to tell "unknown email" from "wrong password", or
"wrong token" from "expired token".
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. code is machine-readable, message is safe to show users."""

    code: str = "auth_error"
    message: str = "Authentication error."
    status_code: int = 400

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    message = "Invalid email or password."
    status_code = 401

    def __init__(self) -> None:
        # Fixed message only -- no per-cause override.
        super().__init__()


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    message = "That email is already registered."
    status_code = 409


class TokenInvalidOrExpired(AuthError):
    code = "token_invalid_or_expired"
    message = "The reset link is invalid or has expired. Please request a new one."
    status_code = 400

    def __init__(self) -> None:
        super().__init__()


class Forbidden(AuthError):
    code = "forbidden"
    message = "You are not allowed to modify this resource."
    status_code = 403


class NotifierUnavailable(AuthError):
    code = "notifier_unavailable"
    message = "The email could not be sent. Please try again later."
    status_code = 503


class StoreUnavailable(AuthError):
    code = "store_unavailable"
    message = "The service is temporarily unavailable."
    status_code = 503


class PasswordTooLong(AuthError):
    code = "password_too_long"
    message = "Password must be at most 72 bytes when UTF-8 encoded."
    status_code = 422
