"""
auth/guard.py -- Authorship check for resource mutation.

One rule: only the user whose id equals resource.author_id may change or
delete the resource. Ids are compared by value, not by type or identity, so
the integer 5 from the database and the string "5" from a path parameter are
the same principal. Anything missing -- resource, author_id, principal --
is a denial.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from auth.errors import Forbidden


def _stable_id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _author_of(resource: Any) -> Any:
    if resource is None:
        return None
    if isinstance(resource, Mapping):
        return resource.get("author_id")
    return getattr(resource, "author_id", None)


class AuthorizationGuard:
    """Stateless. Call before any destructive store operation."""

    def is_author(self, resource: Any, principal_id: Any) -> bool:
        author = _stable_id(_author_of(resource))
        principal = _stable_id(principal_id)
        if author is None or principal is None:
            return False
        return author == principal

    def authorize(self, resource: Any, principal_id: Any) -> None:
        """Return if principal_id authored resource, raise Forbidden otherwise."""
        if not self.is_author(resource, principal_id):
            raise Forbidden()
