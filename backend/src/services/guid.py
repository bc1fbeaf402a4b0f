"""
GUID helpers for entity identification.

Every externally visible entity is addressed by a GUID of the form
``{prefix}_{base32_uuid}``:

- prefix: 3-character entity type identifier (see ENTITY_PREFIXES)
- base32_uuid: 26-character Crockford Base32 encoding of a UUIDv7

Internal integer ids never leave the service layer.
"""

import re
import uuid

import base32_crockford
from uuid_extensions import uuid7

ENTITY_PREFIXES = {
    "usr": "User",
    "grp": "Group",
    "mem": "Membership",
    "evt": "Event",
    "sng": "Song",
}

GUID_PATTERN = re.compile(
    r"^(usr|grp|mem|evt|sng)_[0-9A-HJKMNP-TV-Za-hjkmnp-tv-z]{26}$",
    re.IGNORECASE
)


class GuidService:
    """
    Static helpers for generating, encoding and parsing GUIDs.

    Lookups in the service layer go through ``parse_guid`` so that a
    malformed or wrong-prefix identifier is reported the same way as an
    unknown one (callers translate the ValueError into NotFoundError).
    """

    @staticmethod
    def generate_uuid() -> uuid.UUID:
        """Generate a new time-ordered UUIDv7."""
        return uuid7()

    @staticmethod
    def encode_uuid(uuid_value: uuid.UUID, prefix: str) -> str:
        """
        Encode a UUID as a GUID string.

        Args:
            uuid_value: UUID (or its 16 raw bytes) to encode
            prefix: Entity type prefix

        Returns:
            GUID string (e.g. "evt_01hgw2bbg...")

        Raises:
            ValueError: If prefix is unknown
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'. "
                f"Valid prefixes: {', '.join(ENTITY_PREFIXES.keys())}"
            )

        raw = uuid_value if isinstance(uuid_value, bytes) else uuid_value.bytes
        encoded = base32_crockford.encode(int.from_bytes(raw, "big")).zfill(26)
        return f"{prefix}_{encoded.lower()}"

    @staticmethod
    def decode_guid(guid: str) -> tuple[str, uuid.UUID]:
        """
        Split a GUID into its prefix and UUID.

        Raises:
            ValueError: If the GUID is empty, malformed or cannot be decoded
        """
        if not guid:
            raise ValueError("GUID cannot be empty")

        if not GUID_PATTERN.match(guid):
            raise ValueError(
                f"Invalid GUID format: {guid}. "
                f"Expected format: {{prefix}}_{{26-char base32}}"
            )

        prefix = guid[:3].lower()
        try:
            uuid_int = base32_crockford.decode(guid[4:].upper())
            return prefix, uuid.UUID(bytes=uuid_int.to_bytes(16, "big"))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid GUID encoding: {e}")

    @staticmethod
    def validate_guid(guid: str, expected_prefix: str = None) -> bool:
        """Return True if ``guid`` is well-formed (and has the expected prefix)."""
        if not guid or not GUID_PATTERN.match(guid):
            return False
        if expected_prefix:
            return guid[:3].lower() == expected_prefix.lower()
        return True

    @staticmethod
    def parse_guid(guid: str, expected_prefix: str) -> uuid.UUID:
        """
        Parse a GUID and check its prefix.

        Args:
            guid: GUID string
            expected_prefix: Required entity prefix

        Returns:
            UUID extracted from the GUID

        Raises:
            ValueError: If the format is invalid or the prefix does not match
        """
        prefix, uuid_value = GuidService.decode_guid(guid)
        if prefix != expected_prefix.lower():
            raise ValueError(
                f"GUID prefix mismatch. Expected '{expected_prefix}', got '{prefix}'"
            )
        return uuid_value
