"""
board/store.py -- SQLAlchemy-backed persistence for vacancies and candidates.

Uses SQLAlchemy Core (not ORM) so the dataclasses in board/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. VacancyStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL directly.

The store does not check authorship. Callers run AuthorizationGuard.authorize()
on the loaded vacancy before update_vacancy() / delete_vacancy(); the store
exposes author_id on every Vacancy it returns so they can.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = VacancyStore("sqlite:///:memory:")
    vacancy = store.create_vacancy(Vacancy(title="Python Dev", company="ACME", author_id=1))
    store.get_by_url(vacancy.url)
    store.close()
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
import secrets
import unicodedata
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from auth.errors import StoreUnavailable
from auth.store import make_engine
from board.models import Candidate, Vacancy
from core.config import get_settings

logger = logging.getLogger("jobboard.board.store")

# Fields update_vacancy() accepts. url, author_id and id are fixed at insert.
_MUTABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "company", "location", "salary", "contract", "description", "skills"}
)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_vacancies = Table(
    "vacancies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", String(255), nullable=False, unique=True),
    Column("title", String(255), nullable=False),
    Column("company", String(255), nullable=False),
    Column("location", String(255), nullable=False, server_default=""),
    Column("salary", String(100), nullable=False, server_default=""),
    Column("contract", String(100), nullable=False, server_default=""),
    Column("description", Text, nullable=False, server_default=""),
    Column("skills", Text),  # JSON array serialized as text
    Column("author_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)

_candidates = Table(
    "candidates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("vacancy_id", Integer, ForeignKey("vacancies.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("cv", String(255)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(title: str) -> str:
    """Lowercase ASCII slug with a short random suffix, e.g. 'python-dev-3fa9c1'.

    The suffix keeps two postings with the same title from colliding on the
    UNIQUE url column.
    """
    ascii_title = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    base = re.sub(r"[^a-z0-9]+", "-", ascii_title.lower()).strip("-") or "vacancy"
    return f"{base[:80]}-{secrets.token_hex(3)}"


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class VacancyStore:
    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        with self._connect() as conn:
            metadata.create_all(conn)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except OperationalError as exc:
            logger.error("Vacancy store unavailable: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    # ------------------------------------------------------------------
    # Vacancies
    # ------------------------------------------------------------------

    def create_vacancy(self, vacancy: Vacancy) -> Vacancy:
        """Insert a vacancy and return it with id, url and created_at filled in."""
        url = slugify(vacancy.title)
        created_at = _now_iso()
        with self._connect() as conn:
            result = conn.execute(
                _vacancies.insert().values(
                    url=url,
                    title=vacancy.title,
                    company=vacancy.company,
                    location=vacancy.location,
                    salary=vacancy.salary,
                    contract=vacancy.contract,
                    description=vacancy.description,
                    skills=json.dumps(vacancy.skills),
                    author_id=vacancy.author_id,
                    created_at=created_at,
                )
            )
            conn.commit()
        return dataclasses.replace(vacancy, id=result.inserted_primary_key[0], url=url, created_at=created_at)

    def get_by_url(self, url: str) -> Vacancy | None:
        with self._connect() as conn:
            row = conn.execute(_vacancies.select().where(_vacancies.c.url == url)).fetchone()
        return _row_to_vacancy(row) if row is not None else None

    def get_by_id(self, vacancy_id: int) -> Vacancy | None:
        with self._connect() as conn:
            row = conn.execute(_vacancies.select().where(_vacancies.c.id == vacancy_id)).fetchone()
        return _row_to_vacancy(row) if row is not None else None

    def update_vacancy(self, vacancy_id: int, **fields) -> bool:
        """Update mutable fields. Unknown field names raise ValueError.

        Returns True if a row was updated, False if vacancy_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown vacancy fields: {sorted(unknown)!r}")
        if not fields:
            return False
        if "skills" in fields:
            fields["skills"] = json.dumps(fields["skills"])
        with self._connect() as conn:
            result = conn.execute(_vacancies.update().where(_vacancies.c.id == vacancy_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_vacancy(self, vacancy_id: int) -> bool:
        """Delete a vacancy and its candidates. Returns True if deleted."""
        with self._connect() as conn:
            conn.execute(_candidates.delete().where(_candidates.c.vacancy_id == vacancy_id))
            result = conn.execute(_vacancies.delete().where(_vacancies.c.id == vacancy_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def add_candidate(self, candidate: Candidate) -> Candidate:
        """Insert an application and return it with id and created_at filled in."""
        created_at = _now_iso()
        with self._connect() as conn:
            result = conn.execute(
                _candidates.insert().values(
                    vacancy_id=candidate.vacancy_id,
                    name=candidate.name,
                    email=candidate.email,
                    cv=candidate.cv,
                    created_at=created_at,
                )
            )
            conn.commit()
        return dataclasses.replace(candidate, id=result.inserted_primary_key[0], created_at=created_at)

    def list_candidates(self, vacancy_id: int) -> list[Candidate]:
        """Return candidates for one vacancy, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                _candidates.select().where(_candidates.c.vacancy_id == vacancy_id).order_by(_candidates.c.id)
            ).fetchall()
        return [_row_to_candidate(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_vacancy(row) -> Vacancy:
    return Vacancy(
        id=row.id,
        url=row.url,
        title=row.title,
        company=row.company,
        location=row.location,
        salary=row.salary,
        contract=row.contract,
        description=row.description,
        skills=json.loads(row.skills) if row.skills else [],
        author_id=row.author_id,
        created_at=row.created_at,
    )


def _row_to_candidate(row) -> Candidate:
    return Candidate(
        id=row.id,
        vacancy_id=row.vacancy_id,
        name=row.name,
        email=row.email,
        cv=row.cv,
        created_at=row.created_at,
    )
