"""
Application settings configuration for gigboard.

Centralized settings loaded from environment variables (and ``.env``).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        AUTH_JWT_SECRET: Shared secret of the identity provider's HS256 tokens
        AUTH_JWT_ISSUER: Expected ``iss`` claim (empty = not checked)
        AUTH_JWT_AUDIENCE: Expected ``aud`` claim (default: "authenticated")
        AUTH_FAILURE_WINDOW_SECONDS: Window for counting failed credentials per IP
        AUTH_FAILURE_BLOCK_THRESHOLD: Failures in the window before an IP is blocked
        AUTH_FAILURE_BLOCK_SECONDS: How long a blocked IP stays blocked
        CORS_ALLOWED_ORIGINS: Comma-separated list of allowed browser origins
    """

    # Identity provider token verification
    auth_jwt_secret: str = Field(
        default="",
        validation_alias="AUTH_JWT_SECRET",
        description="HS256 secret shared with the identity provider. Must be at least 32 bytes."
    )

    auth_jwt_issuer: str = Field(
        default="",
        validation_alias="AUTH_JWT_ISSUER",
        description="Expected issuer claim, e.g. https://<project>.supabase.co/auth/v1"
    )

    auth_jwt_audience: str = Field(
        default="authenticated",
        validation_alias="AUTH_JWT_AUDIENCE",
    )

    # Failed credential tracking (per client IP)
    auth_failure_window_seconds: int = Field(
        default=300,
        validation_alias="AUTH_FAILURE_WINDOW_SECONDS",
        ge=1,
    )

    auth_failure_block_threshold: int = Field(
        default=20,
        validation_alias="AUTH_FAILURE_BLOCK_THRESHOLD",
        ge=1,
    )

    auth_failure_block_seconds: int = Field(
        default=300,
        validation_alias="AUTH_FAILURE_BLOCK_SECONDS",
        ge=1,
    )

    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="CORS_ALLOWED_ORIGINS",
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("auth_jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject obviously weak secrets."""
        if v and len(v) < 32:
            raise ValueError("AUTH_JWT_SECRET must be at least 32 characters")
        return v

    @property
    def jwt_configured(self) -> bool:
        """Check if bearer token verification is configured."""
        return bool(self.auth_jwt_secret)

    @property
    def cors_allowed_origins_list(self) -> List[str]:
        """Allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
