"""
auth/reset.py -- Forgot-password / reset-password flow.

State machine per attempt:
    Requested -> TokenIssued -> Consumed | Expired | NeverConsumed

Ordering rules:
  request_reset() persists the token BEFORE notifying. A failed save raises,
  and a save that matches no row returns early, before anything is sent, so
  no mail ever carries an unsaved token.

  complete_reset() re-checks the token itself instead of trusting an earlier
  validate_token() call (time passes between showing the form and submitting
  it). The hash write and the token clear are one guarded UPDATE in the store,
  so a replayed or superseded token fails.

Enumeration: request_reset() returns the same outcome whether or not the
email belongs to an account, and every token failure is the same
TokenInvalidOrExpired.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from auth.errors import TokenInvalidOrExpired
from auth.models import User
from auth.passwords import PasswordHasher
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import TokenIssuer, utcnow

logger = logging.getLogger("jobboard.auth.reset")

RESET_PATH = "/reestablecer-password"
RESET_SUBJECT = "Password Reset"
RESET_TEMPLATE = "reset"
GENERIC_RESET_MESSAGE = "If an account exists for that email, we have sent instructions to reset the password."


class Notifier(Protocol):
    """Outgoing message channel. Raises NotifierUnavailable on failure."""

    def send(self, user: User, subject: str, reset_link: str, template: str) -> None: ...


def build_reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}{RESET_PATH}/{token}"


class PasswordResetFlow:
    def __init__(
        self,
        users: UserStore,
        issuer: TokenIssuer,
        hasher: PasswordHasher,
        notifier: Notifier,
        base_url: str,
        sessions: SessionStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.users = users
        self.issuer = issuer
        self.hasher = hasher
        self.notifier = notifier
        self.base_url = base_url
        self.sessions = sessions
        self._clock = clock

    def request_reset(self, email: str, base_url: str | None = None) -> str:
        """Issue and mail a reset token if the account exists.

        Always returns GENERIC_RESET_MESSAGE. NotifierUnavailable and
        StoreUnavailable propagate.
        """
        user = self.users.get_by_email(email)
        if user is None:
            return GENERIC_RESET_MESSAGE

        issued = self.issuer.issue()
        if not self.users.set_reset_token(user.id, issued.token, issued.expires_at):
            # Row vanished after the lookup; nothing was saved, so nothing is sent.
            logger.warning("Reset token not stored, user_id=%s no longer exists", user.id)
            return GENERIC_RESET_MESSAGE
        user.reset_token = issued.token
        user.reset_token_expires_at = issued.expires_at

        link = build_reset_link(base_url or self.base_url, issued.token)
        self.notifier.send(user, RESET_SUBJECT, link, RESET_TEMPLATE)
        logger.info("Password reset requested user_id=%s", user.id)
        return GENERIC_RESET_MESSAGE

    def validate_token(self, token: str) -> User:
        """Return the user holding a live token, else raise TokenInvalidOrExpired."""
        user = self.users.find_by_valid_token(token, self._clock())
        if user is None:
            raise TokenInvalidOrExpired()
        return user

    def complete_reset(self, token: str, new_password: str) -> User:
        """Store a new password and burn the token. Single use."""
        user = self.validate_token(token)
        hashed = self.hasher.hash(new_password)
        if not self.users.consume_reset_token(user.id, token, hashed, self._clock()):
            raise TokenInvalidOrExpired()
        if self.sessions is not None:
            self.sessions.destroy_for_user(user.id)
        logger.info("Password reset completed user_id=%s", user.id)
        user.hashed_password = hashed
        user.reset_token = None
        user.reset_token_expires_at = None
        return user
