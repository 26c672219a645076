"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of chord.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from chord.database.models import Base  # noqa: E402
from chord.engine.permissions import Permission  # noqa: E402
from chord.services import guild_service, role_service  # noqa: E402

OWNER_ID = "owner-1"
MEMBER_IDS = ("alice", "bob", "carol")

_bigint_sqlite_registered = False


def _register_bigint_sqlite_compat():
    """Map BigInteger → INTEGER on SQLite (idempotent)."""
    global _bigint_sqlite_registered
    if _bigint_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _bigint_sqlite_registered = True


_register_bigint_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Chord tables.

    Uses StaticPool so every session (and the TestClient's worker thread)
    sees the same in-memory database.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------
class RecordingAuditSink:
    """Audit sink that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[dict] = []

    def record(self, **event) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [str(e["action"]) for e in self.events]


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def guild(db_engine: Engine) -> dict:
    """A guild owned by ``owner-1`` with members alice, bob and carol."""
    created = guild_service.create_guild(db_engine, OWNER_ID, "Test Guild")
    for user_id in MEMBER_IDS:
        guild_service.add_member(db_engine, created["id"], user_id)
    return created


def make_role(
    engine: Engine,
    guild_id: str,
    name: str,
    *flags: Permission,
    holders: tuple[str, ...] = (),
) -> dict:
    """Create a custom role as the owner and give it to *holders*."""
    bits = 0
    for flag in flags:
        bits |= int(flag)
    role = role_service.create_role(engine, guild_id, OWNER_ID, name, permissions=bits)
    for user_id in holders:
        role_service.assign_role(engine, guild_id, user_id, role["id"], OWNER_ID)
    return role


def make_token(sub: str = OWNER_ID) -> str:
    """Create a bearer JWT for *sub*.  Usable from any test module."""
    import jwt

    from chord.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub}, JWT_SECRET, algorithm=JWT_ALGORITHM)


@pytest.fixture
def client(db_engine: Engine):
    """FastAPI TestClient wired to the in-memory engine."""
    from fastapi.testclient import TestClient

    from chord.api.deps import get_engine
    from chord.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
