"""
Pytest fixtures for the check-in service tests.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

# antes de importar checkin: nada de migrations no startup nem ./data
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(tempfile.mkdtemp(), "checkin-test.db"))
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import checkin.models  # noqa: F401
from checkin.api import deps
from checkin.core.errors import LedgerError
from checkin.core.tokens import create_access_token
from checkin.db import session as db_session
from checkin.db.base import Base
from checkin.services.ledger import DatabasePointLedger
from checkin.services.lifecycle import SessionLifecycleManager
from checkin.services.redemption import RedemptionEngine
from checkin.services.status import LiveStatusProjector


class FakeClock:
    """Relógio controlado pelos testes."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FlakyLedger:
    """Ledger que falha enquanto ``failing`` for True."""

    def __init__(self, db, failing: bool = True):
        self.inner = DatabasePointLedger(db)
        self.failing = failing
        self.calls = 0

    def credit_points(self, attendee_id, amount, reason, *, idempotency_key):
        self.calls += 1
        if self.failing:
            raise LedgerError("ledger unavailable")
        return self.inner.credit_points(attendee_id, amount, reason, idempotency_key=idempotency_key)

    def balance(self, attendee_id):
        return self.inner.balance(attendee_id)


@pytest.fixture
def engine(tmp_path):
    eng = db_session.make_engine(f"sqlite:///{tmp_path / 'checkin.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(db):
    return DatabasePointLedger(db)


@pytest.fixture
def lifecycle(db, clock):
    return SessionLifecycleManager(db, clock=clock)


@pytest.fixture
def redemption_engine(db, ledger, clock):
    return RedemptionEngine(db, ledger, clock=clock)


@pytest.fixture
def projector(db, clock):
    return LiveStatusProjector(db, clock=clock)


@pytest.fixture
def open_session(lifecycle):
    """Sessão ativa de 2h e 50 pontos."""
    return lifecycle.create_session(
        event_name="Sunday Service", points=50, valid_for=timedelta(hours=2), created_by="organizer-1",
    )


# ----------------------------------------------------------------------
# API
# ----------------------------------------------------------------------
def auth_headers(sub: str, *roles: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub=sub, roles=roles or ('member',))}"}


@pytest.fixture
def client(session_factory, clock, monkeypatch):
    from checkin.main import api

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    monkeypatch.setattr(db_session, "SessionLocal", session_factory)
    api.dependency_overrides[db_session.get_db] = _get_db
    api.dependency_overrides[deps.get_clock] = lambda: clock
    try:
        yield TestClient(api)
    finally:
        api.dependency_overrides.clear()


@pytest.fixture
def organizer_headers():
    return auth_headers("organizer-1", "organizer")


@pytest.fixture
def admin_headers():
    return auth_headers("admin-1", "admin")
