"""
Membership directory: who belongs to which group, with which role.

Design:
- One Membership per (user, group); a second add is a ConflictError
- get_membership() is the authorization lookup and never raises
- Role policy:
  - only owners and admins manage other members
  - only an owner can grant or revoke the owner role
  - the last owner of a group can never be demoted or removed, not even
    by themselves
- Removing a membership removes the events it authored and its readiness
  marks and vetoes (explicit deletes mirroring the FK cascades)
"""

import re
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from backend.src.models import (
    Group, Membership, MembershipRole, SongReadiness, SongVeto, Song, User
)
from backend.src.utils.logging_config import get_logger
from backend.src.services.exceptions import (
    NotFoundError, ConflictError, ValidationError, PermissionDeniedError
)
from backend.src.services.event_service import EventService
from backend.src.services.guid import GuidService


logger = get_logger("services")

DEFAULT_ICON = "music"
DEFAULT_COLOR = "#6b7280"
_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")
_ROLE_VALUES = tuple(r.value for r in MembershipRole)


class MembershipService:
    """
    Service for group memberships.

    Usage:
        >>> service = MembershipService(db_session)
        >>> membership = service.add_member(group.id, user.id, display_name="Keys")
        >>> service.get_membership(user.id, group.id).role
        'member'
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def list_memberships(self, user_id: int) -> List[Membership]:
        """All memberships of a user, oldest first."""
        return (
            self.db.query(Membership)
            .filter(Membership.user_id == user_id)
            .order_by(Membership.joined_at.asc(), Membership.id.asc())
            .all()
        )

    def get_membership(self, user_id: int, group_id: int) -> Optional[Membership]:
        """
        Membership of user in group, or None.

        Never raises; callers treat None as "not a member".
        """
        if user_id is None or group_id is None:
            return None
        return (
            self.db.query(Membership)
            .filter(
                Membership.user_id == user_id,
                Membership.group_id == group_id,
            )
            .first()
        )

    def list_group_members(self, group_id: int) -> List[Membership]:
        """Members of a group: owners first, then by join date."""
        memberships = (
            self.db.query(Membership)
            .filter(Membership.group_id == group_id)
            .order_by(Membership.joined_at.asc(), Membership.id.asc())
            .all()
        )
        rank = {role.value: i for i, role in enumerate(MembershipRole)}
        return sorted(memberships, key=lambda m: rank.get(m.role, len(rank)))

    def get_by_guid(self, group_id: int, guid: str) -> Membership:
        """
        Get a membership of this group by GUID.

        Raises:
            NotFoundError: If the GUID is malformed, unknown, or belongs to
                another group
        """
        if not GuidService.validate_guid(guid, "mem"):
            raise NotFoundError("Membership", guid)
        try:
            uuid_value = GuidService.parse_guid(guid, "mem")
        except ValueError:
            raise NotFoundError("Membership", guid)

        membership = (
            self.db.query(Membership)
            .filter(
                Membership.uuid == uuid_value,
                Membership.group_id == group_id,
            )
            .first()
        )
        if not membership:
            raise NotFoundError("Membership", guid)
        return membership

    def count_owners(self, group_id: int) -> int:
        return (
            self.db.query(Membership)
            .filter(
                Membership.group_id == group_id,
                Membership.role == MembershipRole.OWNER.value,
            )
            .count()
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_member(
        self,
        group_id: int,
        user_id: int,
        role: str = MembershipRole.MEMBER.value,
        display_name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        acting_role: Optional[str] = None,
    ) -> Membership:
        """
        Add a user to a group.

        Args:
            group_id: Target group
            user_id: User to add
            role: owner, admin or member
            display_name: Alias inside the group (defaults to the user's name)
            icon: Icon name (default "music")
            color: Hex color (default "#6b7280")
            acting_role: Role of the member performing the add; only an
                owner may add another owner. None skips the check (group
                creation, internal callers).

        Raises:
            NotFoundError: If group or user does not exist
            ConflictError: If the user is already a member
            ValidationError: If role or color is invalid
            PermissionDeniedError: If a non-owner tries to add an owner
        """
        role = self._validate_role(role)
        color = self._validate_color(color) if color else DEFAULT_COLOR

        if acting_role is not None and role == MembershipRole.OWNER.value \
                and acting_role != MembershipRole.OWNER.value:
            raise PermissionDeniedError("Only an owner can add another owner")

        group = self.db.query(Group).filter(Group.id == group_id).first()
        if not group:
            raise NotFoundError("Group", group_id)
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)

        if self.get_membership(user_id, group_id) is not None:
            raise ConflictError(f"User {user.guid} is already a member of this group")

        alias = (display_name or "").strip() or user.display_name or user.full_name
        if not alias:
            raise ValidationError("display_name is required", field="display_name")

        membership = Membership(
            user_id=user_id,
            group_id=group_id,
            role=role,
            display_name=alias,
            icon=icon or DEFAULT_ICON,
            color=color,
        )
        try:
            self.db.add(membership)
            self.db.commit()
            self.db.refresh(membership)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate membership rejected: {e}")
            raise ConflictError(f"User {user.guid} is already a member of this group")

        logger.info(
            "Added member",
            extra={
                "group_guid": group.guid,
                "membership_guid": membership.guid,
                "role": role,
            },
        )
        return membership

    def remove_member(
        self, group_id: int, membership_guid: str, acting_membership_id: int
    ) -> None:
        """
        Remove a membership and everything it authored.

        Members may remove themselves; removing someone else needs owner or
        admin, and removing an owner needs an owner.

        Raises:
            NotFoundError: If the membership is not in this group
            PermissionDeniedError: If policy forbids the removal
        """
        target = self.get_by_guid(group_id, membership_guid)
        acting = self._get_acting(group_id, acting_membership_id)

        if target.id != acting.id:
            if not acting.can_manage_members:
                raise PermissionDeniedError("Only owners and admins can remove members")
            if target.is_owner and not acting.is_owner:
                raise PermissionDeniedError("Only an owner can remove an owner")

        if target.is_owner and self.count_owners(group_id) <= 1:
            raise PermissionDeniedError(
                "The last owner cannot leave the group; transfer ownership first"
            )

        self._delete_membership_rows(target)
        self.db.commit()

        logger.info(
            "Removed member",
            extra={
                "group_id": group_id,
                "membership_guid": membership_guid,
                "self_removal": target.id == acting.id,
            },
        )

    def change_role(
        self,
        group_id: int,
        membership_guid: str,
        new_role: str,
        acting_membership_id: int,
    ) -> Membership:
        """
        Change a member's role.

        Raises:
            NotFoundError: If the membership is not in this group
            ValidationError: If new_role is not a known role
            PermissionDeniedError: If policy forbids the change
        """
        new_role = self._validate_role(new_role)
        target = self.get_by_guid(group_id, membership_guid)
        acting = self._get_acting(group_id, acting_membership_id)

        if not acting.can_manage_members:
            raise PermissionDeniedError("Only owners and admins can change roles")

        owner = MembershipRole.OWNER.value
        if (new_role == owner or target.role == owner) and not acting.is_owner:
            raise PermissionDeniedError("Only an owner can grant or revoke ownership")

        if target.role == new_role:
            return target

        if target.is_owner and self.count_owners(group_id) <= 1:
            raise PermissionDeniedError("The last owner of a group cannot be demoted")

        old_role = target.role
        target.role = new_role
        self.db.commit()
        self.db.refresh(target)

        logger.info(
            "Changed member role",
            extra={
                "membership_guid": target.guid,
                "old_role": old_role,
                "new_role": new_role,
            },
        )
        return target

    def update_profile(
        self,
        group_id: int,
        membership_guid: str,
        acting_membership_id: int,
        display_name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Membership:
        """
        Update a member's per-group alias, icon or color.

        Allowed for the member themselves and for owners/admins.

        Raises:
            NotFoundError: If the membership is not in this group
            ValidationError: If a value is blank or malformed
            PermissionDeniedError: If acting is neither self nor a manager
        """
        target = self.get_by_guid(group_id, membership_guid)
        acting = self._get_acting(group_id, acting_membership_id)

        if target.id != acting.id and not acting.can_manage_members:
            raise PermissionDeniedError("You can only edit your own member profile")

        if display_name is not None:
            display_name = display_name.strip()
            if not display_name:
                raise ValidationError("display_name cannot be blank", field="display_name")
            target.display_name = display_name
        if icon is not None:
            if not icon.strip():
                raise ValidationError("icon cannot be blank", field="icon")
            target.icon = icon.strip()
        if color is not None:
            target.color = self._validate_color(color)

        self.db.commit()
        self.db.refresh(target)
        return target

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_acting(self, group_id: int, acting_membership_id: int) -> Membership:
        acting = (
            self.db.query(Membership)
            .filter(
                Membership.id == acting_membership_id,
                Membership.group_id == group_id,
            )
            .first()
        )
        if acting is None:
            raise PermissionDeniedError("Not a member of this group")
        return acting

    def _delete_membership_rows(self, membership: Membership) -> None:
        """Delete a membership with its authored events, marks and vetoes."""
        EventService(self.db).delete_events_authored_by(membership.id, commit=False)
        self.db.query(SongReadiness).filter(
            SongReadiness.membership_id == membership.id
        ).delete(synchronize_session=False)
        self.db.query(SongVeto).filter(
            SongVeto.membership_id == membership.id
        ).delete(synchronize_session=False)
        self.db.query(Song).filter(
            Song.added_by_membership_id == membership.id
        ).update({Song.added_by_membership_id: None}, synchronize_session=False)
        self.db.delete(membership)

    @staticmethod
    def _validate_role(role: str) -> str:
        value = role.value if isinstance(role, MembershipRole) else role
        if value not in _ROLE_VALUES:
            raise ValidationError(
                f"Invalid role '{role}'. Expected one of: {', '.join(_ROLE_VALUES)}",
                field="role",
            )
        return value

    @staticmethod
    def _validate_color(color: str) -> str:
        if not _COLOR_PATTERN.match(color or ""):
            raise ValidationError("color must be a hex value like #1f2937", field="color")
        return color.lower()
