"""
User model for authenticated principals.

A User is created the first time a bearer credential issued by the external
identity provider resolves successfully. Users are never deleted; only their
profile fields change.

Design Rationale:
- external_subject stores the identity provider's immutable ``sub`` claim
- email/phone are the verified contacts reported by the provider
- A user can belong to any number of groups through Membership rows and
  presents a per-group alias there (display_name here is the global one)
- profile_completed is derived, never written directly by clients
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


# Profile fields that must all be set before a profile counts as complete
REQUIRED_PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "display_name",
    "hometown",
    "instrument",
)


class User(Base, GuidMixin):
    """
    Authenticated principal.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid / guid: External identifier (usr_xxx)
        external_subject: Identity provider subject (unique)
        email: Verified email, if any
        phone: Verified phone, if any
        display_name, first_name, last_name, hometown, instrument, avatar_url:
            Global profile fields
        profile_completed: True once every REQUIRED_PROFILE_FIELDS is set
        is_platform_admin: Platform-wide administrator flag
        created_at / updated_at: Timestamps

    Relationships:
        memberships: Group memberships (one-to-many)
        personal_events: Events owned directly by this user (one-to-many)
    """

    __tablename__ = "users"

    GUID_PREFIX = "usr"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity
    external_subject = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    phone = Column(String(50), unique=True, nullable=True)

    # Profile
    display_name = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    hometown = Column(String(255), nullable=True)
    instrument = Column(String(100), nullable=True)
    avatar_url = Column(Text, nullable=True)
    profile_completed = Column(Boolean, default=False, nullable=False)

    is_platform_admin = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    memberships = relationship(
        "Membership",
        back_populates="user",
        lazy="dynamic",
        passive_deletes=True,
    )
    personal_events = relationship(
        "Event",
        back_populates="owner",
        foreign_keys="Event.owner_user_id",
        lazy="dynamic",
        passive_deletes=True,
    )

    @property
    def full_name(self) -> Optional[str]:
        """First and last name joined, falling back to display_name."""
        parts = [p for p in (self.first_name, self.last_name) if p]
        if parts:
            return " ".join(parts)
        return self.display_name

    def refresh_profile_completed(self) -> bool:
        """Recompute and store profile_completed from the profile fields."""
        self.profile_completed = all(
            getattr(self, field) for field in REQUIRED_PROFILE_FIELDS
        )
        return self.profile_completed

    def __repr__(self) -> str:
        return (
            f"<User("
            f"id={self.id}, "
            f"subject='{self.external_subject}', "
            f"email='{self.email}'"
            f")>"
        )

    def __str__(self) -> str:
        return self.full_name or self.email or self.phone or self.external_subject
