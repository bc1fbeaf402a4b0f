"""
Reusable SQLAlchemy mixins shared across models.
"""

from backend.src.models.mixins.guid import GuidMixin, UUIDType

__all__ = ["GuidMixin", "UUIDType"]
