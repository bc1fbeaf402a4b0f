"""
Group service for managing groups (tenants).

Provides business logic for creating, retrieving, updating and deleting
bands/artist projects. Groups are tenancy boundaries: events, memberships
and songs all belong to exactly one Group.

Design:
- Group names are not unique (two bands can share a name); slugs are, and
  get a numeric suffix on collision
- The creator becomes the group's first owner in the same transaction
- allowed_event_types restricts which group event types can be scheduled
- Deleting a group removes everything it owns
"""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from backend.src.models import (
    Event, Group, Membership, MembershipRole, Song, SongReadiness, SongVeto, User,
    GROUP_EVENT_TYPES,
)
from backend.src.utils.logging_config import get_logger
from backend.src.services.exceptions import NotFoundError, ConflictError, ValidationError
from backend.src.services.guid import GuidService
from backend.src.services.membership_service import (
    DEFAULT_COLOR, DEFAULT_ICON, MembershipService
)


logger = get_logger("services")

_GROUP_TYPE_VALUES = tuple(t.value for t in GROUP_EVENT_TYPES)


class GroupService:
    """
    Service for managing groups.

    Usage:
        >>> service = GroupService(db_session)
        >>> group = service.create(name="The Night Owls", creator_user_id=user.id)
        >>> print(group.guid)  # grp_01hgw2bbg...
    """

    def __init__(self, db: Session):
        """
        Initialize group service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def create(
        self,
        name: str,
        creator_user_id: int,
        description: Optional[str] = None,
        allowed_event_types: Optional[Iterable[str]] = None,
        display_name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Group:
        """
        Create a group with its creator as owner.

        Args:
            name: Group display name
            creator_user_id: User creating the group (becomes owner)
            description: Optional description
            allowed_event_types: Group event types the group schedules;
                None allows every group type
            display_name: Creator's alias inside the group (defaults to the
                creator's global name)
            icon: Creator's icon inside the group
            color: Creator's color inside the group

        Returns:
            Created Group instance

        Raises:
            NotFoundError: If the creator does not exist
            ValidationError: If name or allowed_event_types are invalid
        """
        name = self._validate_name(name)
        allowed = self._validate_allowed_types(allowed_event_types)

        creator = self.db.query(User).filter(User.id == creator_user_id).first()
        if not creator:
            raise NotFoundError("User", creator_user_id)

        alias = (display_name or "").strip() or creator.display_name or creator.full_name
        if not alias:
            raise ValidationError(
                "display_name is required until your profile has a name",
                field="display_name",
            )

        color = MembershipService._validate_color(color) if color else DEFAULT_COLOR

        try:
            group = Group(
                name=name,
                slug=self._unique_slug(name),
                description=(description or "").strip() or None,
                created_by_user_id=creator.id,
            )
            group.allowed_event_types = allowed
            self.db.add(group)
            self.db.flush()

            self.db.add(
                Membership(
                    user_id=creator.id,
                    group_id=group.id,
                    role=MembershipRole.OWNER.value,
                    display_name=alias,
                    icon=icon or DEFAULT_ICON,
                    color=color,
                )
            )
            self.db.commit()
            self.db.refresh(group)

        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Failed to create group '{name}': {e}")
            raise ConflictError(f"Group '{name}' could not be created, please retry")

        logger.info(f"Created group: {group.name} ({group.guid})")
        return group

    def get_by_guid(self, guid: str) -> Group:
        """
        Get a group by GUID.

        Args:
            guid: Group GUID (grp_xxx format)

        Raises:
            NotFoundError: If group not found
        """
        if not GuidService.validate_guid(guid, "grp"):
            raise NotFoundError("Group", guid)

        try:
            uuid_value = GuidService.parse_guid(guid, "grp")
        except ValueError:
            raise NotFoundError("Group", guid)

        group = self.db.query(Group).filter(Group.uuid == uuid_value).first()
        if not group:
            raise NotFoundError("Group", guid)

        return group

    def get_by_id(self, group_id: int) -> Group:
        """
        Raises:
            NotFoundError: If group not found
        """
        group = self.db.query(Group).filter(Group.id == group_id).first()
        if not group:
            raise NotFoundError("Group", group_id)
        return group

    def list_for_user(self, user_id: int) -> List[Group]:
        """Groups the user is a member of, by name."""
        return (
            self.db.query(Group)
            .join(Membership, Membership.group_id == Group.id)
            .filter(Membership.user_id == user_id)
            .order_by(Group.name.asc(), Group.id.asc())
            .all()
        )

    def update(
        self,
        group_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        avatar_url: Optional[str] = None,
        allowed_event_types: Optional[Iterable[str]] = None,
    ) -> Group:
        """
        Update an existing group.

        Only fields passed as non-None are changed. Renaming keeps the slug
        stable so existing links keep working.

        Raises:
            NotFoundError: If group not found
            ValidationError: If a value is invalid
        """
        group = self.get_by_id(group_id)

        if name is not None:
            group.name = self._validate_name(name)
        if description is not None:
            group.description = description.strip() or None
        if avatar_url is not None:
            group.avatar_url = avatar_url.strip() or None
        if allowed_event_types is not None:
            group.allowed_event_types = self._validate_allowed_types(allowed_event_types)

        self.db.commit()
        self.db.refresh(group)
        logger.info(f"Updated group: {group.name} ({group.guid})")
        return group

    def delete(self, group_id: int) -> None:
        """
        Delete a group and everything it owns.

        Events, songs (with readiness marks and vetoes) and memberships are
        removed explicitly before the group row, so the result does not
        depend on the database enforcing ON DELETE CASCADE.

        Raises:
            NotFoundError: If group not found
        """
        group = self.get_by_id(group_id)
        guid = group.guid

        song_ids = [
            sid for (sid,) in self.db.query(Song.id).filter(Song.group_id == group_id).all()
        ]
        if song_ids:
            self.db.query(SongReadiness).filter(
                SongReadiness.song_id.in_(song_ids)
            ).delete(synchronize_session=False)
            self.db.query(SongVeto).filter(
                SongVeto.song_id.in_(song_ids)
            ).delete(synchronize_session=False)
            self.db.query(Song).filter(Song.group_id == group_id).delete(
                synchronize_session=False
            )

        self.db.query(Event).filter(Event.group_id == group_id).delete(
            synchronize_session=False
        )
        self.db.query(Membership).filter(Membership.group_id == group_id).delete(
            synchronize_session=False
        )
        self.db.delete(group)
        self.db.commit()

        logger.info(f"Deleted group {guid}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        if not name or not name.strip():
            raise ValidationError("Group name cannot be empty", field="name")
        name = name.strip()
        if len(name) > 255:
            raise ValidationError("Group name cannot exceed 255 characters", field="name")
        return name

    @staticmethod
    def _validate_allowed_types(values: Optional[Iterable[str]]) -> Optional[List[str]]:
        if values is None:
            return None
        values = [getattr(v, "value", v) for v in values]
        if not values:
            raise ValidationError(
                "At least one event type must be allowed", field="allowed_event_types"
            )
        invalid = [v for v in values if v not in _GROUP_TYPE_VALUES]
        if invalid:
            raise ValidationError(
                f"Not group event types: {', '.join(invalid)}",
                field="allowed_event_types",
            )
        # Keep the canonical order, drop duplicates
        return [t for t in _GROUP_TYPE_VALUES if t in values]

    def _unique_slug(self, name: str) -> str:
        base = Group.generate_slug(name) or "group"
        base = base[:100]
        taken = {
            slug for (slug,) in
            self.db.query(Group.slug).filter(Group.slug.like(f"{base}%")).all()
        }
        if base not in taken:
            return base
        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"
