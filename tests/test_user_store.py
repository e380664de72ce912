"""
tests/test_user_store.py -- Unit tests for auth/store.py (UserStore).

Covers:
  - email normalization on write and lookup; one account per email
  - reset token lookup honours expiry to the second
  - consume_reset_token is guarded: wrong, replaced, replayed and expired
    tokens match zero rows
  - timestamps come back timezone-aware
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from auth.errors import DuplicateEmail
from auth.models import User
from auth.store import UserStore, normalize_email


def _user(email: str = "ana@example.com", name: str = "Ana") -> User:
    return User(email=email, name=name, hashed_password="$2b$04$placeholderhash")


class TestSaveAndLookup:
    def test_save_assigns_id_and_created_at(self, user_store: UserStore) -> None:
        saved = user_store.save(_user())
        assert saved.id is not None
        assert saved.created_at

    def test_email_is_normalized(self, user_store: UserStore) -> None:
        saved = user_store.save(_user(email="  Ana@Example.COM "))
        assert saved.email == "ana@example.com"
        assert user_store.get_by_email("ANA@example.com").id == saved.id

    def test_duplicate_email_rejected(self, user_store: UserStore) -> None:
        user_store.save(_user(email="ana@example.com"))
        with pytest.raises(DuplicateEmail):
            user_store.save(_user(email="ANA@example.com", name="Other"))

    def test_unknown_email_returns_none(self, user_store: UserStore) -> None:
        assert user_store.get_by_email("ghost@example.com") is None
        assert user_store.get_by_email("") is None

    def test_get_by_id(self, user_store: UserStore) -> None:
        saved = user_store.save(_user())
        assert user_store.get_by_id(saved.id).email == "ana@example.com"
        assert user_store.get_by_id(9999) is None

    def test_save_existing_overwrites_row(self, user_store: UserStore) -> None:
        saved = user_store.save(_user())
        saved.name = "Ana Maria"
        user_store.save(saved)
        assert user_store.get_by_id(saved.id).name == "Ana Maria"

    def test_update_to_taken_email_rejected(self, user_store: UserStore) -> None:
        user_store.save(_user(email="ana@example.com"))
        other = user_store.save(_user(email="bob@example.com", name="Bob"))
        other.email = "ana@example.com"
        with pytest.raises(DuplicateEmail):
            user_store.save(other)


def test_normalize_email() -> None:
    assert normalize_email(" A@B.Com ") == "a@b.com"
    assert normalize_email("") == ""


class TestResetTokenColumns:
    def test_valid_token_found_until_expiry(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))

        found = user_store.find_by_valid_token("a" * 40, clock.now + timedelta(seconds=3599))
        assert found is not None and found.id == user.id
        assert found.reset_token_expires_at == clock.now + timedelta(hours=1)
        assert found.reset_token_expires_at.tzinfo is not None

    def test_token_expired_after_ttl(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        assert user_store.find_by_valid_token("a" * 40, clock.now + timedelta(seconds=3601)) is None

    def test_token_expired_at_exact_boundary(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        assert user_store.find_by_valid_token("a" * 40, clock.now + timedelta(hours=1)) is None

    def test_unknown_or_empty_token(self, user_store: UserStore, clock) -> None:
        assert user_store.find_by_valid_token("b" * 40, clock.now) is None
        assert user_store.find_by_valid_token("", clock.now) is None

    def test_set_reset_token_unknown_user(self, user_store: UserStore, clock) -> None:
        assert user_store.set_reset_token(42, "a" * 40, clock.now) is False

    def test_new_token_replaces_old(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        user_store.set_reset_token(user.id, "b" * 40, clock.now + timedelta(hours=1))
        assert user_store.find_by_valid_token("a" * 40, clock.now) is None
        assert user_store.find_by_valid_token("b" * 40, clock.now).id == user.id


class TestConsumeResetToken:
    def test_consume_sets_hash_and_clears_token(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))

        assert user_store.consume_reset_token(user.id, "a" * 40, "new-hash", clock.now) is True

        stored = user_store.get_by_id(user.id)
        assert stored.hashed_password == "new-hash"
        assert stored.reset_token is None
        assert stored.reset_token_expires_at is None

    def test_consume_twice_fails(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        assert user_store.consume_reset_token(user.id, "a" * 40, "first", clock.now)
        assert user_store.consume_reset_token(user.id, "a" * 40, "second", clock.now) is False
        assert user_store.get_by_id(user.id).hashed_password == "first"

    def test_consume_replaced_token_fails(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        user_store.set_reset_token(user.id, "b" * 40, clock.now + timedelta(hours=1))
        assert user_store.consume_reset_token(user.id, "a" * 40, "x", clock.now) is False

    def test_consume_expired_token_fails(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))
        assert user_store.consume_reset_token(user.id, "a" * 40, "x", clock.now + timedelta(hours=2)) is False
        assert user_store.get_by_id(user.id).hashed_password == "$2b$04$placeholderhash"


class TestUpdateUser:
    def test_save_of_stale_copy_leaves_token_and_hash(self, user_store: UserStore, clock) -> None:
        user = user_store.save(_user())
        user_store.set_reset_token(user.id, "a" * 40, clock.now + timedelta(hours=1))

        user.name = "Ana Maria"
        user.hashed_password = "stale-hash"
        user_store.save(user)

        stored = user_store.get_by_id(user.id)
        assert stored.name == "Ana Maria"
        assert stored.hashed_password == "$2b$04$placeholderhash"
        assert stored.reset_token == "a" * 40

    def test_update_user_writes_only_given_columns(self, user_store: UserStore) -> None:
        user = user_store.save(_user())
        assert user_store.update_user(user.id, hashed_password="new-hash") is True
        stored = user_store.get_by_id(user.id)
        assert stored.hashed_password == "new-hash"
        assert stored.name == "Ana"

    def test_update_user_rejects_token_columns(self, user_store: UserStore) -> None:
        user = user_store.save(_user())
        with pytest.raises(ValueError):
            user_store.update_user(user.id, reset_token="b" * 40)

    def test_update_user_normalizes_email_and_rejects_duplicates(self, user_store: UserStore) -> None:
        user = user_store.save(_user())
        user_store.save(_user(email="bob@example.com", name="Bob"))
        user_store.update_user(user.id, email=" ANA2@Example.com")
        assert user_store.get_by_email("ana2@example.com").id == user.id
        with pytest.raises(DuplicateEmail):
            user_store.update_user(user.id, email="bob@example.com")

    def test_update_user_unknown_id(self, user_store: UserStore) -> None:
        assert user_store.update_user(999, name="Ghost") is False
