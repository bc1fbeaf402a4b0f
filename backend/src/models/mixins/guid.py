"""
GUID mixin for SQLAlchemy models.

Entities carry an internal integer primary key for joins and a UUIDv7
``uuid`` column for external identification. The ``guid`` property renders
the UUID as ``{prefix}_{crockford_base32}`` (e.g. ``grp_01hgw2bbg...``).
"""

import uuid as uuid_module
from typing import ClassVar

from sqlalchemy import Column, LargeBinary, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from uuid_extensions import uuid7

from backend.src.services.guid import GuidService


class UUIDType(TypeDecorator):
    """
    UUID column type that works on PostgreSQL and SQLite.

    PostgreSQL stores a native UUID; SQLite (used by the test suite) stores
    the 16 raw bytes. Values always come back as ``uuid.UUID``.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid_module.UUID):
            value = (
                uuid_module.UUID(bytes=value)
                if isinstance(value, bytes)
                else uuid_module.UUID(str(value))
            )
        return value if dialect.name == "postgresql" else value.bytes

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        if isinstance(value, bytes):
            return uuid_module.UUID(bytes=value)
        return uuid_module.UUID(str(value))


class GuidMixin:
    """
    Adds a UUIDv7 ``uuid`` column and a prefixed ``guid`` property.

    Subclasses set ``GUID_PREFIX`` to one of the prefixes registered in
    ``backend.src.services.guid.ENTITY_PREFIXES``.
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(
        UUIDType(),
        nullable=False,
        unique=True,
        index=True,
        default=uuid7,
    )

    @property
    def guid(self) -> str:
        """GUID string, or None before the row has been flushed."""
        if self.uuid is None:
            return None
        return GuidService.encode_uuid(self.uuid, self.GUID_PREFIX)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        """
        Decode a GUID of this entity type.

        Raises:
            ValueError: If the GUID is malformed or has another prefix
        """
        return GuidService.parse_guid(guid, cls.GUID_PREFIX)
