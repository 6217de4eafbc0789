"""
Authentication module exceptions.

Every message is safe to show to a user; provider and transport details
go into ``details``.
"""

from typing import Any, Optional

from shared.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    MapChatError,
    NotFoundError,
)


class AuthError(MapChatError):
    """Base exception for authentication errors."""

    pass


class AuthCancelledError(AuthError):
    """Raised when the user aborts the sign-in flow."""

    def __init__(self):
        super().__init__("Authentication was cancelled", code="CANCELLED")


class InvalidCredentialsError(AuthError, AuthenticationError):
    """Raised when the identity provider rejects the credential exchange."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Invalid credentials provided",
            code="INVALID_CREDENTIALS",
            details={"reason": reason} if reason else None,
        )


class AuthNetworkError(AuthError, ExternalServiceError):
    """Raised when the identity provider or store cannot be reached."""

    def __init__(self, details: Optional[dict[str, Any]] = None):
        super().__init__(
            "Network error occurred",
            service="identity_provider",
            code="NETWORK_ERROR",
            details=dict(details or {}),
        )


class TokenExpiredError(AuthError, AuthenticationError):
    """Raised when the session's refresh token is no longer accepted."""

    def __init__(self):
        super().__init__("Authentication token expired", code="TOKEN_EXPIRED")


class AuthUserNotFoundError(AuthError, NotFoundError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, user_id: Optional[str] = None):
        super().__init__(
            "User not found",
            code="USER_NOT_FOUND",
            details={"user_id": user_id} if user_id else None,
        )


class AccountDeletedError(AuthError):
    """Raised when signing in to an identity whose account was deleted."""

    def __init__(self, user_id: Optional[str] = None):
        super().__init__(
            "Account has been deleted",
            code="ACCOUNT_DELETED",
            details={"user_id": user_id} if user_id else None,
        )


class AuthUnknownError(AuthError):
    """Raised for failures outside the other auth error kinds."""

    def __init__(self, detail: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Authentication error: {detail}",
            code="UNKNOWN",
            details=details,
        )
