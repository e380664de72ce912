"""
auth/passwords.py -- bcrypt password hashing behind an explicit interface.

The user entity carries no hashing methods. SessionAuthenticator,
AccountService and PasswordResetFlow receive a PasswordHasher, so the
algorithm and its cost are chosen in one place.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection hashes a password longer than 72 bytes, which bcrypt 4.x rejects.
"""

from __future__ import annotations

import bcrypt

from auth.errors import PasswordTooLong

# bcrypt only reads the first 72 bytes of its input; bcrypt 5 rejects longer input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way hashing with a fixed work factor.

    rounds is the bcrypt cost (log2 of the iteration count). The cost and salt
    are embedded in every hash, so verify() works across cost changes.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Used by SessionAuthenticator to spend the same bcrypt time on unknown
        # emails as on real accounts.
        self.dummy_hash: str = self.hash("jobboard_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the plaintext.

        Raises PasswordTooLong if the UTF-8 encoding exceeds MAX_PASSWORD_BYTES.
        """
        if not plain:
            raise ValueError("Cannot hash an empty password")
        if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong()
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str | None) -> bool:
        """Return True if plain matches hashed. Malformed or missing hashes return False."""
        if not plain or not hashed:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
