"""
Authentication module.

Provider sign-in, token refresh, sign-out, account deletion and the
account-owned privacy settings (ghost mode, block list).

Public API:
- IAuthService: Interface for auth operations
- IIdentityProvider: Interface for the external identity service
- AuthService: Document-store backed implementation
- SupabaseIdentityProvider / InMemoryIdentityProvider: Identity variants
- AuthProvider, AuthSession, IdentityTokens, IdentityResult: Models
- Auth exceptions: AuthCancelledError, InvalidCredentialsError, etc.
"""

from .interfaces import IAuthService, IIdentityProvider
from .models import AuthProvider, AuthSession, IdentityResult, IdentityTokens
from .identity import InMemoryIdentityProvider, SupabaseIdentityProvider
from .service import AuthService
from .exceptions import (
    AuthError,
    AuthCancelledError,
    InvalidCredentialsError,
    AuthNetworkError,
    TokenExpiredError,
    AuthUserNotFoundError,
    AccountDeletedError,
    AuthUnknownError,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "IIdentityProvider",
    # Implementations
    "AuthService",
    "InMemoryIdentityProvider",
    "SupabaseIdentityProvider",
    # Models
    "AuthProvider",
    "AuthSession",
    "IdentityResult",
    "IdentityTokens",
    # Exceptions
    "AuthError",
    "AuthCancelledError",
    "InvalidCredentialsError",
    "AuthNetworkError",
    "TokenExpiredError",
    "AuthUserNotFoundError",
    "AccountDeletedError",
    "AuthUnknownError",
]
