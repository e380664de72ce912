"""
auth/authenticator.py -- Password login and the session gate.

State machine per attempt:
    Anonymous -> Authenticating -> Authenticated | Rejected

Rejected always raises InvalidCredentials with the same message, and bcrypt
runs on every attempt (against a dummy hash when the email is unknown), so
neither the response nor its timing reveals whether an account exists.

The authenticator never writes to the users table. Its only side effect is
the session binding in SessionStore.
"""

from __future__ import annotations

import logging

from auth.errors import InvalidCredentials
from auth.models import Session, User
from auth.passwords import PasswordHasher
from auth.sessions import SessionStore
from auth.store import UserStore

logger = logging.getLogger("jobboard.auth")


class SessionAuthenticator:
    def __init__(self, users: UserStore, hasher: PasswordHasher, sessions: SessionStore) -> None:
        self.users = users
        self.hasher = hasher
        self.sessions = sessions

    def verify_credentials(self, email: str, password: str) -> User:
        """Return the user whose credentials match, else raise InvalidCredentials."""
        user = self.users.get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify(password, self.hasher.dummy_hash)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.hashed_password):
            raise InvalidCredentials()
        return user

    def authenticate(self, email: str, password: str) -> tuple[User, Session]:
        """Verify credentials, bind a new session, and return both."""
        user = self.verify_credentials(email, password)
        session = self.sessions.create(user.id)
        logger.info("Login user_id=%s", user.id)
        return user, session

    def login(self, email: str, password: str) -> Session:
        """Verify credentials and bind a new session to the user."""
        return self.authenticate(email, password)[1]

    def is_authenticated(self, session_id: str | None) -> bool:
        return self.sessions.read(session_id or "") is not None

    def current_user(self, session_id: str | None) -> User | None:
        """Resolve a session id to its user, or None if the session is not live."""
        session = self.sessions.read(session_id or "")
        if session is None:
            return None
        return self.users.get_by_id(session.user_id)

    def logout(self, session_id: str | None) -> bool:
        """Destroy the session binding. Returns False if already logged out."""
        destroyed = self.sessions.destroy(session_id or "")
        if destroyed:
            logger.info("Logout")
        return destroyed
