"""
tests/test_vacancy_store.py -- Unit tests for board/store.py (VacancyStore).
"""

from __future__ import annotations

import pytest

from board.models import Candidate, Vacancy
from board.store import VacancyStore, slugify


def _vacancy(**overrides) -> Vacancy:
    fields = {"title": "Python Developer", "company": "ACME", "author_id": 1, "skills": ["python"]}
    fields.update(overrides)
    return Vacancy(**fields)


def test_slugify() -> None:
    slug = slugify("Desarrollador Python Sénior!")
    base, suffix = slug.rsplit("-", 1)
    assert base == "desarrollador-python-senior"
    assert len(suffix) == 6


def test_slugify_empty_title() -> None:
    assert slugify("!!!").startswith("vacancy-")


def test_create_and_get(vacancy_store: VacancyStore) -> None:
    created = vacancy_store.create_vacancy(_vacancy())
    assert created.id is not None
    fetched = vacancy_store.get_by_url(created.url)
    assert fetched == created
    assert fetched.skills == ["python"]
    assert vacancy_store.get_by_id(created.id) == created


def test_same_title_gets_distinct_urls(vacancy_store: VacancyStore) -> None:
    first = vacancy_store.create_vacancy(_vacancy())
    second = vacancy_store.create_vacancy(_vacancy())
    assert first.url != second.url


def test_update_mutable_fields(vacancy_store: VacancyStore) -> None:
    created = vacancy_store.create_vacancy(_vacancy())
    assert vacancy_store.update_vacancy(created.id, title="Lead", skills=["python", "go"]) is True
    updated = vacancy_store.get_by_id(created.id)
    assert updated.title == "Lead"
    assert updated.skills == ["python", "go"]
    assert updated.author_id == 1


def test_update_rejects_fixed_fields(vacancy_store: VacancyStore) -> None:
    created = vacancy_store.create_vacancy(_vacancy())
    with pytest.raises(ValueError):
        vacancy_store.update_vacancy(created.id, author_id=2)


def test_update_unknown_id(vacancy_store: VacancyStore) -> None:
    assert vacancy_store.update_vacancy(999, title="x") is False


def test_delete_removes_candidates(vacancy_store: VacancyStore) -> None:
    created = vacancy_store.create_vacancy(_vacancy())
    vacancy_store.add_candidate(Candidate(vacancy_id=created.id, name="Carla", email="carla@example.com"))
    assert vacancy_store.delete_vacancy(created.id) is True
    assert vacancy_store.get_by_id(created.id) is None
    assert vacancy_store.list_candidates(created.id) == []
    assert vacancy_store.delete_vacancy(created.id) is False


def test_candidates_listed_oldest_first(vacancy_store: VacancyStore) -> None:
    created = vacancy_store.create_vacancy(_vacancy())
    for name in ("Carla", "Diego"):
        vacancy_store.add_candidate(Candidate(vacancy_id=created.id, name=name, email=f"{name.lower()}@example.com"))
    assert [c.name for c in vacancy_store.list_candidates(created.id)] == ["Carla", "Diego"]
