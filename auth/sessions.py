"""
auth/sessions.py -- Server-side session bindings (session id -> user id).

A session is a row, not a token: the signed cookie only names the row. This
makes logout real -- destroy() deletes the row and every copy of the cookie
stops working -- and keeps TTL policy here instead of in the core.

Session ids are secrets.token_urlsafe(32): 256 bits from the OS CSPRNG.

Layer rule: no imports from api/, board/, or notify/.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table
from sqlalchemy.engine import Connection
from sqlalchemy.exc import OperationalError

from auth.errors import StoreUnavailable
from auth.models import Session
from auth.store import from_db_time, make_engine, to_db_time
from auth.tokens import utcnow
from core.config import get_settings

logger = logging.getLogger("jobboard.auth.sessions")

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("session_id", String(64), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("expires_at", DateTime, nullable=False),  # naive UTC
)


class SessionStore:
    """create / read / destroy contract over the sessions table.

    Expired rows read as absent. purge_expired() trims them; the API lifespan
    calls it periodically.
    """

    def __init__(
        self,
        db_url: str | None = None,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        settings = get_settings()
        self.engine = make_engine(db_url or settings.database_url)
        self.ttl = timedelta(seconds=ttl_seconds or settings.session_expire_seconds)
        self._clock = clock
        with self._connect() as conn:
            _metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except OperationalError as exc:
            logger.error("Session store unavailable: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    def create(self, user_id: int) -> Session:
        session = Session(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            expires_at=self._clock() + self.ttl,
        )
        with self._connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    session_id=session.session_id,
                    user_id=session.user_id,
                    expires_at=to_db_time(session.expires_at),
                )
            )
            conn.commit()
        return session

    def read(self, session_id: str) -> Session | None:
        if not session_id:
            return None
        now = to_db_time(self._clock())
        with self._connect() as conn:
            row = conn.execute(
                _sessions.select().where((_sessions.c.session_id == session_id) & (_sessions.c.expires_at > now))
            ).fetchone()
        if row is None:
            return None
        return Session(session_id=row.session_id, user_id=row.user_id, expires_at=from_db_time(row.expires_at))

    def destroy(self, session_id: str) -> bool:
        """Delete the binding. Returns False if it was already gone."""
        if not session_id:
            return False
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
            conn.commit()
        return result.rowcount > 0

    def destroy_for_user(self, user_id: int) -> int:
        """End every session of one user. Returns number of sessions ended."""
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def purge_expired(self) -> int:
        """Delete expired rows. Returns number of rows removed."""
        now = to_db_time(self._clock())
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= now))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()
