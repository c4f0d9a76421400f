import uuid
from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from advanced_criteria import config
from tests.fixtures import models

_SETTINGS_ENV = (
    config.ALIAS_PREFIX_ENV,
    config.PARAMETER_PREFIX_ENV,
    config.MAX_RESULTS_ENV,
)

ALICE_EXTERNAL_ID = uuid.UUID("5f0c6f7e-4c1b-4d8a-9d0e-1b2c3d4e5f60")


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch):
    """Run every test against default settings unless it opts in."""
    for var in _SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)
    config.refresh_settings()
    yield
    config.refresh_settings()


# In-memory SQLite with StaticPool so the schema persists across connections
@pytest.fixture(scope="session")
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        models.Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture
def db(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(models.Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture
def sample(db):
    """Four users, two groups, three posts with tags, revisions and reviews."""
    trial = models.TrialAccount(label="Trial")
    premium = models.PremiumAccount(label="Premium")
    enterprise = models.EnterpriseAccount(label="Enterprise")

    alice = models.User(
        username="alice", email="alice@example.com", age=30, score=4.5, is_active=True,
        external_id=ALICE_EXTERNAL_ID, created_at=datetime(2024, 1, 10), account=premium,
    )
    bob = models.User(
        username="bob", email=None, age=17, score=3.0, is_active=False,
        created_at=datetime(2024, 3, 5), account=trial,
    )
    carol = models.User(
        username="carol", email="carol@corp.test", age=45, score=None, is_active=True,
        created_at=datetime(2024, 6, 20), account=enterprise,
    )
    dave = models.User(
        username="dave", email="dave@example.com", age=None, score=2.5, is_active=True,
        created_at=datetime(2023, 12, 31), account=None,
    )

    admins = models.Group(name="admins", users=[alice, carol])
    staff = models.Group(name="staff", users=[alice, bob])

    hello = models.Post(title="Hello SQLAlchemy", published=True, author=alice, created_at=datetime(2024, 2, 1))
    depth = models.Post(title="Criteria in depth", published=False, author=alice, created_at=datetime(2024, 4, 1))
    notes = models.Post(title="Bob's notes", published=True, author=bob, created_at=datetime(2024, 5, 1))

    hello.tags = [models.Tag(name="python"), models.Tag(name="orm")]
    notes.tags = [models.Tag(name="notes")]

    hello.revisions = [models.PostRevision(number=1, body="draft"), models.PostRevision(number=2, body="final")]
    notes.revisions = [models.PostRevision(number=1, body="draft")]
    reviews = [
        models.RevisionReview(verdict="approved", revision=hello.revisions[1]),
        models.RevisionReview(verdict="rejected", revision=notes.revisions[0]),
        models.RevisionReview(verdict="rejected", revision=hello.revisions[0]),
    ]

    db.add_all([trial, premium, enterprise, alice, bob, carol, dave, admins, staff, hello, depth, notes, *reviews])
    db.commit()
    return SimpleNamespace(
        alice=alice, bob=bob, carol=carol, dave=dave,
        admins=admins, staff=staff,
        hello=hello, depth=depth, notes=notes,
        trial=trial, premium=premium, enterprise=enterprise,
    )
