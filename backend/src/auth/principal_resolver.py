"""
Principal resolution for bearer credentials.

The identity provider (Supabase-style auth) signs access tokens with a
shared HS256 secret. A resolver verifies a token and returns the stable
subject plus verified contact details; it never touches the database.

Swapping identity providers means providing another PrincipalResolver
implementation and registering it on ``app.state.principal_resolver``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from backend.src.config.settings import AppSettings
from backend.src.utils.logging_config import get_logger


logger = get_logger("auth")

TOKEN_ALGORITHM = "HS256"


class InvalidCredentialError(Exception):
    """Raised when a bearer credential cannot be resolved to a principal."""


@dataclass(frozen=True)
class ResolvedPrincipal:
    """
    Identity extracted from a verified credential.

    Attributes:
        subject: Identity provider subject (``sub`` claim), never empty
        email: Verified email, if the provider reported one
        phone: Verified phone, if the provider reported one
        claims: Remaining token claims (metadata for first-time profiles)
    """
    subject: str
    email: Optional[str] = None
    phone: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


class PrincipalResolver:
    """Interface: resolve a bearer credential into a ResolvedPrincipal."""

    def resolve(self, credential: str) -> ResolvedPrincipal:
        raise NotImplementedError


class JWTPrincipalResolver(PrincipalResolver):
    """
    Verify HS256 JWTs issued by the identity provider.

    Args:
        secret: Shared signing secret
        audience: Expected ``aud`` claim
        issuer: Expected ``iss`` claim, or None to skip the check
    """

    def __init__(self, secret: str, audience: Optional[str] = "authenticated",
                 issuer: Optional[str] = None):
        if not secret:
            raise ValueError("JWT secret is required")
        self.secret = secret
        self.audience = audience or None
        self.issuer = issuer or None

    def resolve(self, credential: str) -> ResolvedPrincipal:
        """
        Verify signature, expiry, audience and issuer of a token.

        Raises:
            InvalidCredentialError: If the token is malformed, expired,
                signed with another key, or has no subject
        """
        if not credential:
            raise InvalidCredentialError("Missing credential")

        try:
            payload = jwt.decode(
                credential,
                self.secret,
                algorithms=[TOKEN_ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            logger.info(f"Credential rejected: {e}")
            raise InvalidCredentialError("Invalid or expired credential") from e

        subject = payload.get("sub")
        if not subject or not isinstance(subject, str):
            raise InvalidCredentialError("Credential has no subject")

        return ResolvedPrincipal(
            subject=subject,
            email=payload.get("email") or None,
            phone=payload.get("phone") or None,
            claims={
                k: v for k, v in payload.items()
                if k not in ("sub", "email", "phone")
            },
        )


def build_principal_resolver(settings: AppSettings) -> Optional[PrincipalResolver]:
    """
    Build the resolver configured in settings.

    Returns:
        JWTPrincipalResolver, or None when no secret is configured (every
        bearer request is then rejected with 401)
    """
    if not settings.jwt_configured:
        logger.warning("AUTH_JWT_SECRET not set; bearer authentication disabled")
        return None
    return JWTPrincipalResolver(
        secret=settings.auth_jwt_secret,
        audience=settings.auth_jwt_audience,
        issuer=settings.auth_jwt_issuer,
    )
