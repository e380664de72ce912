"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors board/models.py
-- dataclasses own domain shape; stores and services do the work.

Layer rule: no imports from api/, board/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered recruiter account.

    email is the login handle. The store normalizes it (trimmed, lowercased)
    on every write and lookup, so two spellings of one address are one account.

    hashed_password is always a bcrypt hash -- the plaintext never reaches this
    object. reset_token and reset_token_expires_at are set together by
    PasswordResetFlow and cleared together when the reset completes; outside
    an active reset request both are None.
    """

    email: str
    name: str
    hashed_password: str
    id: int | None = None
    reset_token: str | None = None
    reset_token_expires_at: datetime | None = None  # UTC, timezone-aware
    avatar: str | None = None  # filename returned by the external file store
    created_at: str | None = None


@dataclass(frozen=True)
class Session:
    """A live binding of an opaque session id to a user id.

    The session id is the only thing the client holds (inside the signed
    cookie). Destroying the row ends the session even if the cookie survives.
    """

    session_id: str
    user_id: int
    expires_at: datetime  # UTC, timezone-aware


@dataclass(frozen=True)
class ResetToken:
    """An issued password-reset token and its absolute expiry."""

    token: str
    expires_at: datetime  # UTC, timezone-aware
