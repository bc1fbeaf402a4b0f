"""
Group model: the tenant boundary.

A Group is a band or artist project. Everything group-scoped (events,
memberships, songs) carries a group_id FK and is isolated from every other
group.

Design Rationale:
- slug is generated from the name and must be unique
- allowed_event_types_json restricts which group event types may be
  scheduled; NULL means "every group event type"
- Deleting a group hard-deletes its events, memberships and songs
  (FK ON DELETE CASCADE, mirrored by explicit deletes in GroupService)
"""

import json
import re
from datetime import datetime
from typing import List

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Group(Base, GuidMixin):
    """
    Band/artist group.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid / guid: External identifier (grp_xxx)
        name: Display name
        slug: URL-safe unique identifier
        description: Free text
        avatar_url: Optional image
        allowed_event_types_json: JSON list of EventType values, NULL = all
        created_by_user_id: User that created the group
        created_at / updated_at: Timestamps
    """

    __tablename__ = "groups"

    GUID_PREFIX = "grp"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(255), nullable=False)
    slug = Column(String(120), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    allowed_event_types_json = Column(Text, nullable=True)

    created_by_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    created_by = relationship("User", foreign_keys=[created_by_user_id])
    memberships = relationship(
        "Membership",
        back_populates="group",
        lazy="dynamic",
        passive_deletes=True,
    )

    @property
    def allowed_event_types(self) -> List[str]:
        """Allowed event type values; every group type when unrestricted."""
        from backend.src.models.event import GROUP_EVENT_TYPES

        if not self.allowed_event_types_json:
            return [t.value for t in GROUP_EVENT_TYPES]
        return json.loads(self.allowed_event_types_json)

    @allowed_event_types.setter
    def allowed_event_types(self, values) -> None:
        self.allowed_event_types_json = json.dumps(list(values)) if values else None

    @staticmethod
    def generate_slug(name: str) -> str:
        """
        Build a URL-safe slug from a group name.

        Example:
            >>> Group.generate_slug("The Night  Owls!")
            'the-night-owls'
        """
        if not name:
            return ""
        slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
        return slug.strip("-")

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name='{self.name}', slug='{self.slug}')>"

    def __str__(self) -> str:
        return self.name
