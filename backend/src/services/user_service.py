"""
User service for principals and their global profile.

Design:
- A User row is provisioned the first time a credential resolves
  (get_or_create_by_subject); users are never deleted
- Verified email/phone are refreshed from the identity provider on every
  resolution, other profile fields belong to the user
- profile_completed is recomputed on every profile write
"""

from typing import Any, Dict

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from backend.src.auth.principal_resolver import ResolvedPrincipal
from backend.src.models import User
from backend.src.utils.logging_config import get_logger
from backend.src.services.exceptions import NotFoundError, ConflictError, ValidationError
from backend.src.services.guid import GuidService


logger = get_logger("services")

# Profile fields a user may edit
EDITABLE_PROFILE_FIELDS = (
    "display_name",
    "first_name",
    "last_name",
    "hometown",
    "instrument",
    "avatar_url",
)


class UserService:
    """
    Service for users.

    Usage:
        >>> service = UserService(db_session)
        >>> user = service.get_or_create_by_subject(resolved_principal)
        >>> print(user.guid)  # usr_01hgw2bbg...
    """

    def __init__(self, db: Session):
        """
        Initialize user service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def get_or_create_by_subject(self, principal: ResolvedPrincipal) -> User:
        """
        Provision or refresh the User behind a resolved credential.

        Args:
            principal: Identity extracted from a verified bearer token

        Returns:
            Existing or newly created User
        """
        user = (
            self.db.query(User)
            .filter(User.external_subject == principal.subject)
            .first()
        )
        if user is not None:
            changed = False
            if principal.email and user.email != principal.email:
                user.email = principal.email
                changed = True
            if principal.phone and user.phone != principal.phone:
                user.phone = principal.phone
                changed = True
            if changed:
                try:
                    self.db.commit()
                except IntegrityError:
                    # Contact already claimed by another account; keep ours
                    self.db.rollback()
                    logger.warning(
                        "Could not refresh verified contact",
                        extra={"user_guid": user.guid},
                    )
            return user

        metadata = principal.claims.get("user_metadata") or {}
        user = User(
            external_subject=principal.subject,
            email=principal.email,
            phone=principal.phone,
            display_name=metadata.get("display_name") or metadata.get("name"),
            first_name=metadata.get("first_name"),
            last_name=metadata.get("last_name"),
            avatar_url=metadata.get("avatar_url"),
        )
        user.refresh_profile_completed()

        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            # A concurrent request provisioned the same subject first
            self.db.rollback()
            user = (
                self.db.query(User)
                .filter(User.external_subject == principal.subject)
                .first()
            )
            if user is None:
                raise ConflictError("Verified contact already belongs to another user")
            return user

        logger.info("Provisioned user", extra={"user_guid": user.guid})
        return user

    def get_by_id(self, user_id: int) -> User:
        """
        Raises:
            NotFoundError: If user not found
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def get_by_guid(self, guid: str) -> User:
        """
        Get a user by GUID.

        Args:
            guid: User GUID (usr_xxx format)

        Raises:
            NotFoundError: If the GUID is malformed or no user matches
        """
        if not GuidService.validate_guid(guid, "usr"):
            raise NotFoundError("User", guid)
        try:
            uuid_value = GuidService.parse_guid(guid, "usr")
        except ValueError:
            raise NotFoundError("User", guid)

        user = self.db.query(User).filter(User.uuid == uuid_value).first()
        if not user:
            raise NotFoundError("User", guid)
        return user

    def update_profile(self, user_id: int, fields: Dict[str, Any]) -> User:
        """
        Update the user's global profile.

        Args:
            user_id: Internal user ID
            fields: Mapping of EDITABLE_PROFILE_FIELDS to new values; keys
                set to None clear the field, unknown keys are rejected

        Returns:
            Updated User

        Raises:
            NotFoundError: If user not found
            ValidationError: If a field is not editable or a value is blank
        """
        user = self.get_by_id(user_id)

        for key, value in fields.items():
            if key not in EDITABLE_PROFILE_FIELDS:
                raise ValidationError(f"Field '{key}' cannot be updated", field=key)
            if isinstance(value, str):
                value = value.strip()
                if not value and key in ("display_name", "first_name", "last_name"):
                    raise ValidationError(f"{key} cannot be blank", field=key)
                value = value or None
            setattr(user, key, value)

        user.refresh_profile_completed()
        self.db.commit()
        self.db.refresh(user)

        logger.info(
            "Updated user profile",
            extra={"user_guid": user.guid, "fields": sorted(fields.keys())},
        )
        return user

