"""
Shared response schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DeleteResponse(BaseModel):
    """Response after deleting a resource."""

    message: str = Field(..., description="Confirmation message")
    deleted_guid: Optional[str] = Field(default=None, description="GUID of deleted resource")

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Event deleted successfully",
                "deleted_guid": "evt_01hgw2bbg0000000000000001",
            }
        }
    }


class ErrorResponse(BaseModel):
    """Uniform error body."""

    error: str = Field(
        ...,
        description="validation, unauthenticated, forbidden, not_found, conflict, "
                    "rate_limited or internal",
    )
    message: str
