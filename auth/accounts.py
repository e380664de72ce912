"""
auth/accounts.py -- Registration and profile changes.

The plaintext password is hashed here, before the User object exists, so the
entity never holds plaintext. A profile update re-hashes only when a new
password is supplied.
"""

from __future__ import annotations

import logging

from auth.models import User
from auth.passwords import PasswordHasher
from auth.store import UserStore

logger = logging.getLogger("jobboard.auth.accounts")


class AccountService:
    def __init__(self, users: UserStore, hasher: PasswordHasher) -> None:
        self.users = users
        self.hasher = hasher

    def register(self, email: str, name: str, password: str) -> User:
        """Create an account. Raises DuplicateEmail if the email is taken."""
        user = self.users.save(User(email=email, name=name, hashed_password=self.hasher.hash(password)))
        logger.info("Registered user_id=%s", user.id)
        return user

    def update_profile(
        self,
        user: User,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
        avatar: str | None = None,
    ) -> User:
        """Write only the supplied fields and return the stored user.

        Raises DuplicateEmail on email conflict. The reset-token columns are
        never written here.
        """
        changes: dict = {}
        if name is not None:
            changes["name"] = name
        if email is not None:
            changes["email"] = email
        if password:
            changes["hashed_password"] = self.hasher.hash(password)
        if avatar is not None:
            changes["avatar"] = avatar
        if changes:
            self.users.update_user(user.id, **changes)
        return self.users.get_by_id(user.id) or user
