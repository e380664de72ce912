"""
board/models.py -- Domain dataclasses for vacancy postings.

Pure data containers with zero logic. Persistence lives in board/store.py;
the authorship rule lives in auth/guard.py, which reads author_id.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Candidate:
    """An application to a vacancy.

    cv is the filename returned by the external file store after upload; this
    package never touches the file itself.
    """

    vacancy_id: int
    name: str
    email: str
    cv: str | None = None
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Vacancy:
    """A job posting.

    author_id is the id of the user who created it -- the only user allowed
    to edit or delete it, or to see its candidates.

    url is a unique slug derived from the title on insert. id and url are
    None/"" before the record is written to the database.
    """

    title: str
    company: str
    author_id: int
    location: str = ""
    salary: str = ""
    contract: str = ""
    description: str = ""
    skills: list[str] = field(default_factory=list)
    url: str = ""
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
