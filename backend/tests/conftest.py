"""
Pytest configuration and fixtures for backend tests.

Provides shared fixtures for:
- Test database sessions (in-memory SQLite with foreign keys on)
- Sample data factories (users, groups, memberships, events, songs)
- Signed bearer tokens and an authenticated TestClient
"""

import os
import time
from datetime import date

import pytest
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

TEST_JWT_SECRET = "test-secret-for-gigboard-tokens-0123456789"

# Set test environment variables before importing app modules
os.environ["GIGBOARD_DB_URL"] = "sqlite:///:memory:"
os.environ["GIGBOARD_ENV"] = "test"
os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["AUTH_JWT_AUDIENCE"] = "authenticated"
os.environ["AUTH_JWT_ISSUER"] = ""

from backend.src.models import Base, Membership, User
from backend.src.services.event_service import EventDraft, EventService


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    def _fk_pragma_on_connect(dbapi_con, con_record):
        dbapi_con.execute("pragma foreign_keys=ON")

    event.listen(engine, "connect", _fk_pragma_on_connect)

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def make_user(test_db_session):
    """Factory for users."""
    counter = {"n": 0}

    def _create(subject=None, display_name="Sam", first_name=None, last_name=None,
                email=None, **kwargs):
        counter["n"] += 1
        user = User(
            external_subject=subject or f"subject-{counter['n']}",
            display_name=display_name,
            first_name=first_name,
            last_name=last_name,
            email=email,
            **kwargs,
        )
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user

    return _create


@pytest.fixture
def make_group(test_db_session):
    """Factory for groups created through GroupService (creator becomes owner)."""
    from backend.src.services.group_service import GroupService

    def _create(owner, name="The Night Owls", **kwargs):
        return GroupService(test_db_session).create(
            name=name, creator_user_id=owner.id, **kwargs
        )

    return _create


@pytest.fixture
def make_member(test_db_session):
    """Factory adding a user to a group."""
    from backend.src.services.membership_service import MembershipService

    def _create(group, user, role="member", display_name=None, **kwargs):
        return MembershipService(test_db_session).add_member(
            group_id=group.id,
            user_id=user.id,
            role=role,
            display_name=display_name,
            **kwargs,
        )

    return _create


@pytest.fixture
def membership_of(test_db_session):
    """Look up the membership of a user in a group."""
    def _get(group, user):
        return (
            test_db_session.query(Membership)
            .filter(Membership.group_id == group.id, Membership.user_id == user.id)
            .one()
        )

    return _get


@pytest.fixture
def make_group_event(test_db_session, membership_of):
    """Factory for group events authored by ``author``'s membership."""
    def _create(group, author, event_type="rehearsal", event_date=date(2026, 3, 1),
                **fields):
        if event_type in ("rehearsal", "recording", "private_booking") \
                and "location" not in fields and not fields.get("is_public"):
            fields["location"] = "Studio B"
        if event_type in ("public_gig", "festival") and "venue" not in fields \
                and fields.get("is_public", True):
            fields["venue"] = "The Lexington"
        return EventService(test_db_session).create_group_event(
            group_id=group.id,
            authored_by_membership_id=membership_of(group, author).id,
            draft=EventDraft(event_type=event_type, event_date=event_date, **fields),
        )

    return _create


@pytest.fixture
def make_unavailability(test_db_session):
    """Factory for personal unavailability."""
    def _create(user, event_date=date(2026, 3, 1), end_date=None, **fields):
        return EventService(test_db_session).create_personal_event(
            user.id,
            EventDraft(
                event_type="unavailable",
                event_date=event_date,
                end_date=end_date,
                **fields,
            ),
        )

    return _create


@pytest.fixture
def make_song(test_db_session, membership_of):
    """Factory for songs."""
    from backend.src.services.song_service import SongService

    counter = {"n": 0}

    def _create(group, added_by, title="Mr. Brightside", artist="The Killers",
                catalog_id=None):
        counter["n"] += 1
        return SongService(test_db_session).add_song(
            group_id=group.id,
            added_by_membership_id=membership_of(group, added_by).id,
            catalog_id=catalog_id or f"track-{counter['n']}",
            title=title,
            artist=artist,
        )

    return _create


# ============================================================================
# Authentication Fixtures
# ============================================================================

def make_token(subject, secret=TEST_JWT_SECRET, expires_in=3600, **claims):
    """Sign an HS256 token the way the identity provider does."""
    now = int(time.time())
    payload = {
        "sub": subject,
        "aud": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user (or a raw subject)."""
    def _headers(user_or_subject, **claims):
        subject = getattr(user_or_subject, "external_subject", user_or_subject)
        return {"Authorization": f"Bearer {make_token(subject, **claims)}"}

    return _headers


@pytest.fixture
def test_client(test_db_session):
    """
    TestClient bound to the test database session.

    Requests authenticate through the real bearer-token path; use
    ``auth_headers(user)`` to act as a user.
    """
    from fastapi.testclient import TestClient

    from backend.src.db.database import get_db
    from backend.src.main import app

    def get_test_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = get_test_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def token_factory():
    """The ``make_token`` helper, for tests that need raw or bad tokens."""
    return make_token
