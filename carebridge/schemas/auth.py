"""
Authentication schemas: current user lookup and OAuth session exchange.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from carebridge.schemas.base import CamelModel


class AuthUser(CamelModel):
    """The signed-in user, used to tell own messages from others'."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AuthUser":
        metadata = row.get("user_metadata") or row.get("metadata") or {}
        return cls(
            id=str(row["id"]),
            email=row.get("email"),
            role=row.get("role") if row.get("role") not in (None, "authenticated") else metadata.get("role"),
            metadata=metadata,
        )

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthUser":
        """Build from access-token claims (``sub``, ``email``, ``user_metadata``)."""
        metadata = claims.get("user_metadata") or {}
        return cls(
            id=str(claims["sub"]),
            email=claims.get("email"),
            role=metadata.get("role"),
            metadata=metadata,
        )


class AuthSessionData(CamelModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user: AuthUser

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AuthSessionData":
        return cls(
            access_token=row["access_token"],
            refresh_token=row.get("refresh_token"),
            expires_in=row.get("expires_in"),
            token_type=row.get("token_type") or "bearer",
            user=AuthUser.from_row(row["user"]),
        )


class OAuthFragmentTokens(BaseModel):
    """Tokens carried in the URL fragment of an implicit-flow redirect."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    token_type: str = "bearer"
    provider_token: Optional[str] = None
    provider_refresh_token: Optional[str] = None


class OAuthFragmentRequest(BaseModel):
    fragment: str = Field(..., description="URL fragment, with or without the leading '#'")
