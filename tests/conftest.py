"""
tests/conftest.py -- Shared test fixtures for the job board.

This module provides:
  - FakeClock / clock: a settable UTC clock for expiry arithmetic
  - RecordingNotifier / notifier: captures outgoing reset mail in memory
  - user_store, session_store, vacancy_store: isolated in-memory SQLite stores
  - hasher, authenticator, accounts, reset_flow: services wired over them
  - api_client: TestClient over the real app with a patched lifespan

Design: unit-level stores use plain "sqlite:///:memory:" -- SQLAlchemy keeps
one connection per thread for it, so each store sees one database. The
api_client fixture uses named shared-memory URIs instead because TestClient
runs sync route handlers in a thread pool, and a plain :memory: database is
per-connection.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY in dev mode instead of raising ValueError.
BCRYPT_ROUNDS=4 keeps bcrypt fast in tests.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, wire_services
from auth.accounts import AccountService
from auth.authenticator import SessionAuthenticator
from auth.errors import NotifierUnavailable
from auth.models import User
from auth.passwords import PasswordHasher
from auth.reset import PasswordResetFlow
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import TokenIssuer
from board.store import VacancyStore
from core.config import get_settings

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock. advance() moves time forward by whole seconds."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingNotifier:
    """Notifier that stores every send() call. Set fail=True to simulate an outage."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, user: User, subject: str, reset_link: str, template: str) -> None:
        if self.fail:
            raise NotifierUnavailable()
        self.sent.append({"user": user, "subject": subject, "link": reset_link, "template": template})

    @property
    def last_token(self) -> str:
        return self.sent[-1]["link"].rsplit("/", 1)[-1]


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_store(clock: FakeClock) -> Generator[SessionStore, None, None]:
    store = SessionStore("sqlite:///:memory:", ttl_seconds=3600, clock=clock)
    yield store
    store.close()


@pytest.fixture
def vacancy_store() -> Generator[VacancyStore, None, None]:
    store = VacancyStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def accounts(user_store: UserStore, hasher: PasswordHasher) -> AccountService:
    return AccountService(user_store, hasher)


@pytest.fixture
def authenticator(
    user_store: UserStore, hasher: PasswordHasher, session_store: SessionStore
) -> SessionAuthenticator:
    return SessionAuthenticator(user_store, hasher, session_store)


@pytest.fixture
def reset_flow(
    user_store: UserStore,
    hasher: PasswordHasher,
    notifier: RecordingNotifier,
    session_store: SessionStore,
    clock: FakeClock,
) -> PasswordResetFlow:
    return PasswordResetFlow(
        users=user_store,
        issuer=TokenIssuer(ttl_seconds=3600, clock=clock),
        hasher=hasher,
        notifier=notifier,
        base_url="http://jobs.test",
        sessions=session_store,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# API fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(suffix: str, notifier: RecordingNotifier, hasher: PasswordHasher):
    """Return a lifespan that wires isolated shared-memory stores into app.state."""
    db_url = f"sqlite:///file:test_jobboard_{suffix}?mode=memory&cache=shared&uri=true"

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(
            app,
            get_settings(),
            user_store=UserStore(db_url),
            session_store=SessionStore(db_url),
            vacancy_store=VacancyStore(db_url),
            notifier=notifier,
            hasher=hasher,
        )
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()
        app.state.vacancy_store.close()
        app.state.session_store.close()
        app.state.user_store.close()

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request, hasher: PasswordHasher) -> Generator[tuple[TestClient, RecordingNotifier], None, None]:
    """Yield (client, notifier) over the real app with isolated stores.

    Rate limiting is switched off so modules can log in as often as they need;
    the limiter itself is slowapi's concern.
    """
    notifier = RecordingNotifier()
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    app.router.lifespan_context = _patch_lifespan(suffix, notifier, hasher)
    limiter.enabled = False
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, notifier
    limiter.enabled = True


@pytest.fixture(scope="module")
def login_as(api_client):
    """Return a helper that registers an account and gives back Bearer headers for it.

    The login cookie is cleared so each request authenticates only through
    the headers it is given.
    """
    client, _ = api_client

    def _login(email: str, password: str = "secret1", name: str = "Test") -> dict:
        client.post("/api/v1/auth/register", json={"email": email, "name": name, "password": password})
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _login
