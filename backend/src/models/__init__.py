"""
SQLAlchemy models for the gigboard backend.

Provides the declarative base class and imports every model so that they
are registered with ``Base.metadata`` (required for ``create_all`` in tests
and for Alembic autogenerate).
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()


from backend.src.models.user import User
from backend.src.models.group import Group
from backend.src.models.membership import Membership, MembershipRole, MANAGER_ROLES
from backend.src.models.event import (
    Event,
    EventType,
    EventKind,
    EVENT_KINDS,
    GROUP_EVENT_TYPES,
    PERSONAL_EVENT_TYPES,
    kind_of,
)
from backend.src.models.song import Song, SongReadiness, SongVeto, ReadinessStatus

__all__ = [
    "Base",
    "User",
    "Group",
    "Membership",
    "MembershipRole",
    "MANAGER_ROLES",
    "Event",
    "EventType",
    "EventKind",
    "EVENT_KINDS",
    "GROUP_EVENT_TYPES",
    "PERSONAL_EVENT_TYPES",
    "kind_of",
    "Song",
    "SongReadiness",
    "SongVeto",
    "ReadinessStatus",
]
