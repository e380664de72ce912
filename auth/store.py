"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as board/store.py).
UserStore is the repository; _row_to_user is the mapper. Services and routes
never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Emails are normalized (trimmed, lowercased) on every write and lookup, and
  the UNIQUE constraint on users.email enforces one account per address. A
  constraint violation surfaces as DuplicateEmail, never as IntegrityError.

  Reset-token lookups match the token AND an unexpired expiry in the same
  WHERE clause, so the store cannot tell a caller *why* a token failed.
  consume_reset_token() writes the new hash and clears both token fields in
  one UPDATE guarded by the same conditions -- a token overwritten by a newer
  request, or consumed by a parallel request, matches zero rows.

Timestamps: reset_token_expires_at is a DateTime column holding naive UTC.
to_db_time() / from_db_time() convert at the boundary so the domain only ever
sees timezone-aware datetimes.

Layer rule: no imports from api/, board/, or notify/.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.errors import DuplicateEmail, StoreUnavailable
from auth.models import User
from core.config import get_settings

logger = logging.getLogger("jobboard.auth.store")

# Columns update_user() may write. Reset-token columns change only through
# set_reset_token() and consume_reset_token().
_PROFILE_FIELDS: frozenset[str] = frozenset({"email", "name", "avatar", "hashed_password"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("reset_token", String(64), index=True),
    Column("reset_token_expires_at", DateTime),  # naive UTC
    Column("avatar", String(255)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers (shared with auth/sessions.py)
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def to_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.save(User(email="a@x.com", name="Ana", hashed_password=hasher.hash("secret1")))
        store.get_by_email("A@X.com ")   # same account
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        with self._connect() as conn:
            _metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Open a connection; backend failures become StoreUnavailable.

        IntegrityError is not an availability problem and passes through so
        save() can translate it into DuplicateEmail.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except OperationalError as exc:
            logger.error("User store unavailable: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        normalized = normalize_email(email)
        if not normalized:
            return None
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalized)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_valid_token(self, token: str, now: datetime) -> User | None:
        """Return the user holding this reset token if it expires after now.

        A wrong token and an expired token both return None.
        """
        if not token:
            return None
        with self._connect() as conn:
            row = conn.execute(
                _users.select().where(
                    (_users.c.reset_token == token) & (_users.c.reset_token_expires_at > to_db_time(now))
                )
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, user: User) -> User:
        """Insert a new user (id is None) or update an existing user's profile.

        For an existing row only email, name and avatar are written. The
        password hash and the reset-token columns of a stored user change
        through update_user(), set_reset_token() and consume_reset_token(),
        so a stale copy of the user can never write old values back.

        Returns the user as stored (normalized email, assigned id). Raises
        DuplicateEmail if another account already holds the email.
        """
        email = normalize_email(user.email)
        if user.id is not None:
            self.update_user(user.id, email=email, name=user.name, avatar=user.avatar)
            return dataclasses.replace(user, email=email)

        created_at = user.created_at or _now_iso()
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        name=user.name,
                        hashed_password=user.hashed_password,
                        reset_token=user.reset_token,
                        reset_token_expires_at=to_db_time(user.reset_token_expires_at),
                        avatar=user.avatar,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return dataclasses.replace(user, id=result.inserted_primary_key[0], email=email, created_at=created_at)

    def update_user(self, user_id: int, **fields) -> bool:
        """Write only the given profile columns. Unknown field names raise ValueError.

        Accepts email, name, avatar and hashed_password. Reset-token columns
        are not accepted here. Returns True if the user row exists. Raises
        DuplicateEmail if the new email is taken.
        """
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if not fields:
            return False
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        try:
            with self._connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return result.rowcount > 0

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> bool:
        """Store a reset token and its expiry together. Last writer wins.

        Returns True if the user row exists.
        """
        with self._connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(reset_token=token, reset_token_expires_at=to_db_time(expires_at))
            )
            conn.commit()
        return result.rowcount > 0

    def consume_reset_token(self, user_id: int, token: str, hashed_password: str, now: datetime) -> bool:
        """Set a new password hash and clear the token in one guarded UPDATE.

        Matches only while token is still the user's current, unexpired token.
        Returns False if it was overwritten, consumed, or expired in the
        meantime -- the caller reports that as an invalid token.
        """
        with self._connect() as conn:
            result = conn.execute(
                _users.update()
                .where(
                    (_users.c.id == user_id)
                    & (_users.c.reset_token == token)
                    & (_users.c.reset_token_expires_at > to_db_time(now))
                )
                .values(hashed_password=hashed_password, reset_token=None, reset_token_expires_at=None)
            )
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        reset_token=row.reset_token,
        reset_token_expires_at=from_db_time(row.reset_token_expires_at),
        avatar=row.avatar,
        created_at=row.created_at,
    )
