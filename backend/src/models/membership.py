"""
Membership model binding a User to a Group with a role.

At most one Membership exists per (user_id, group_id). The membership also
carries the per-group identity of the member (alias, icon, color), so the
same person can present differently in different bands.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class MembershipRole(str, enum.Enum):
    """Role of a member inside one group."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Roles allowed to manage other members
MANAGER_ROLES = frozenset({MembershipRole.OWNER.value, MembershipRole.ADMIN.value})


class Membership(Base, GuidMixin):
    """
    A user's membership in a group.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid / guid: External identifier (mem_xxx)
        user_id: FK to users
        group_id: FK to groups
        role: owner, admin or member
        display_name: Alias shown inside this group
        icon: Icon name shown inside this group
        color: Hex color shown inside this group
        joined_at: Join timestamp

    Constraints:
        - (user_id, group_id) unique
    """

    __tablename__ = "memberships"

    GUID_PREFIX = "mem"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role = Column(String(20), nullable=False, default=MembershipRole.MEMBER.value)
    display_name = Column(String(255), nullable=False)
    icon = Column(String(50), nullable=False, default="music")
    color = Column(String(20), nullable=False, default="#6b7280")

    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="memberships", lazy="joined")
    group = relationship("Group", back_populates="memberships", lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )

    @property
    def is_owner(self) -> bool:
        return self.role == MembershipRole.OWNER.value

    @property
    def can_manage_members(self) -> bool:
        return self.role in MANAGER_ROLES

    def __repr__(self) -> str:
        return (
            f"<Membership("
            f"id={self.id}, "
            f"user_id={self.user_id}, "
            f"group_id={self.group_id}, "
            f"role='{self.role}'"
            f")>"
        )
