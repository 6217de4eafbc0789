"""
Authentication module data models.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

import jwt
from pydantic import BaseModel, Field

from shared.models import User, utc_now


class AuthProvider(str, Enum):
    """Sign-in providers; one flow is active per sign-in attempt."""

    APPLE = "apple"
    GOOGLE = "google"

    @property
    def title(self) -> str:
        return {AuthProvider.APPLE: "Apple", AuthProvider.GOOGLE: "Google"}[self]


class IdentityTokens(BaseModel):
    """Access/refresh token pair issued by the identity provider."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)

    model_config = {"frozen": True}

    @property
    def expires_at(self) -> Optional[datetime]:
        """
        Expiry from the access token's ``exp`` claim.

        The signature is not verified; the token is only read to schedule
        refreshes. Returns None for opaque or malformed tokens.
        """
        try:
            claims = jwt.decode(
                self.access_token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.InvalidTokenError:
            return None
        exp = claims.get("exp")
        if exp is None:
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return expires_at <= (now or utc_now())


class IdentityResult(BaseModel):
    """What a successful provider flow yields: the identity and its tokens."""

    uid: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    tokens: IdentityTokens

    model_config = {"frozen": True}


class AuthSession(BaseModel):
    """The signed-in user together with the tokens backing the session."""

    user: User
    tokens: IdentityTokens

    model_config = {"frozen": True}
