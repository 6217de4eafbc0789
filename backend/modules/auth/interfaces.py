"""
Authentication module interfaces.

Other modules should depend on IAuthService, not the concrete implementation.
The identity provider sits behind IIdentityProvider so tests can script it.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from shared.models import User

from .models import AuthProvider, IdentityResult, IdentityTokens


@runtime_checkable
class IIdentityProvider(Protocol):
    """Contract for the external identity service."""

    async def sign_in(self, provider: AuthProvider) -> IdentityResult:
        """
        Run the provider flow and exchange its credential for a session.

        Raises:
            AuthCancelledError: If the user aborts the flow
            InvalidCredentialsError: If the credential exchange is rejected
            AuthNetworkError: On transport failure
        """
        ...

    async def refresh(self, refresh_token: str) -> IdentityTokens:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            TokenExpiredError: If the refresh token is no longer accepted
            AuthNetworkError: On transport failure
        """
        ...

    async def sign_out(self) -> None:
        ...

    async def delete_identity(self, uid: UUID) -> None:
        """Remove the identity so it can no longer sign in."""
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    ``current_user`` and ``is_authenticated`` reflect the last completed
    sign_in, sign_out or delete_account as soon as that call returns.
    """

    @property
    def current_user(self) -> Optional[User]:
        ...

    @property
    def is_authenticated(self) -> bool:
        ...

    async def sign_in(self, provider: AuthProvider) -> User:
        """
        Sign in and persist the resulting user before returning it.

        Args:
            provider: Which provider flow to run

        Returns:
            The stored User

        Raises:
            AuthCancelledError, InvalidCredentialsError, AuthNetworkError
        """
        ...

    async def sign_out(self) -> None:
        """Clear the session. A no-op when already signed out."""
        ...

    async def refresh_token(self) -> None:
        """
        Refresh the session tokens without changing ``current_user``.

        Raises:
            AuthUserNotFoundError: If nobody is signed in
            TokenExpiredError: If the refresh token was rejected
        """
        ...

    async def delete_account(self) -> None:
        """
        Delete the user's documents, then the identity, then the session.

        Raises:
            AuthUserNotFoundError: If nobody is signed in
        """
        ...

    async def set_ghost_mode(self, enabled: bool) -> User:
        """Hide or reveal the signed-in user's location to everyone."""
        ...

    async def block_user(self, user_id: UUID) -> User:
        ...

    async def unblock_user(self, user_id: UUID) -> User:
        ...
