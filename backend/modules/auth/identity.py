"""
Identity providers.

Provides both in-memory (for testing) and Supabase Auth (for production)
implementations of IIdentityProvider.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from uuid import UUID, uuid4

import httpx
from supabase import AuthApiError, AuthRetryableError, Client

from .exceptions import (
    AccountDeletedError,
    AuthCancelledError,
    AuthNetworkError,
    AuthUnknownError,
    InvalidCredentialsError,
    TokenExpiredError,
)
from .models import AuthProvider, IdentityResult, IdentityTokens

logger = logging.getLogger(__name__)

# Runs the platform's provider flow and returns its id-token; None when
# the user cancels.
TokenSource = Callable[[AuthProvider], Awaitable[Optional[str]]]


class SupabaseIdentityProvider:
    """
    Supabase Auth identity provider.

    The provider flow itself (Sign in with Apple / Google) happens on the
    device; ``token_source`` hands over the resulting id-token, which is
    exchanged for a Supabase session.

    Args:
        client: Client used for session calls
        token_source: Async callable running the provider flow
        admin_client: Service-role client for identity deletion;
            defaults to ``client``
        timeout_seconds: Bound on each call to Supabase Auth
    """

    def __init__(
        self,
        client: Client,
        token_source: TokenSource,
        admin_client: Optional[Client] = None,
        timeout_seconds: float = 10.0,
    ):
        self._client = client
        self._admin = admin_client or client
        self._token_source = token_source
        self._timeout = timeout_seconds

    @staticmethod
    def _tokens(session) -> IdentityTokens:
        return IdentityTokens(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        )

    async def _call(self, operation: str, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Identity provider {operation} timed out after {self._timeout:.1f}s")
            raise AuthNetworkError({"operation": operation, "timeout_seconds": self._timeout}) from e
        except (AuthRetryableError, httpx.HTTPError) as e:
            logger.warning(f"Identity provider {operation} failed in transport: {e}")
            raise AuthNetworkError({"operation": operation, "cause": str(e)}) from e

    async def sign_in(self, provider: AuthProvider) -> IdentityResult:
        id_token = await self._token_source(provider)
        if id_token is None:
            raise AuthCancelledError()

        try:
            response = await self._call(
                "sign_in",
                self._client.auth.sign_in_with_id_token,
                {"provider": provider.value, "token": id_token},
            )
        except AuthApiError as e:
            raise InvalidCredentialsError(str(e)) from e

        if response.user is None or response.session is None:
            raise InvalidCredentialsError("no session returned")

        metadata = response.user.user_metadata or {}
        return IdentityResult(
            uid=UUID(response.user.id),
            email=response.user.email,
            name=metadata.get("full_name") or metadata.get("name"),
            avatar_url=metadata.get("avatar_url"),
            tokens=self._tokens(response.session),
        )

    async def refresh(self, refresh_token: str) -> IdentityTokens:
        try:
            response = await self._call("refresh", self._client.auth.refresh_session, refresh_token)
        except AuthApiError as e:
            raise TokenExpiredError() from e
        if response.session is None:
            raise TokenExpiredError()
        return self._tokens(response.session)

    async def sign_out(self) -> None:
        try:
            await self._call("sign_out", self._client.auth.sign_out)
        except AuthApiError as e:
            raise AuthUnknownError("sign out was rejected", {"cause": str(e)}) from e

    async def delete_identity(self, uid: UUID) -> None:
        try:
            await self._call("delete_identity", self._admin.auth.admin.delete_user, str(uid))
        except AuthApiError as e:
            raise AuthUnknownError("identity could not be deleted", {"cause": str(e)}) from e


class InMemoryIdentityProvider:
    """
    Scripted identity provider.

    For testing and development. Accounts are registered per provider;
    ``fail_next`` queues an error for the next call of any operation.
    ``latency`` delays every call, simulating a slow identity service.
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self._accounts: dict[AuthProvider, IdentityResult] = {}
        self._deleted: set[UUID] = set()
        self._valid_refresh_tokens: dict[str, UUID] = {}
        self._failures: list[Exception] = []
        self._issued = 0
        self.cancel_next = False
        self.signed_out = 0

    @property
    def deleted_identities(self) -> set[UUID]:
        return set(self._deleted)

    def register(
        self,
        provider: AuthProvider,
        email: Optional[str] = "user@example.com",
        name: Optional[str] = None,
        uid: Optional[UUID] = None,
        access_token: Optional[str] = None,
    ) -> IdentityResult:
        tokens = self._issue(access_token)
        account = IdentityResult(uid=uid or uuid4(), email=email, name=name, tokens=tokens)
        self._accounts[provider] = account
        self._valid_refresh_tokens[tokens.refresh_token] = account.uid
        return account

    def fail_next(self, error: Exception) -> None:
        self._failures.append(error)

    def revoke_refresh_tokens(self) -> None:
        self._valid_refresh_tokens.clear()

    def _issue(self, access_token: Optional[str] = None) -> IdentityTokens:
        self._issued += 1
        return IdentityTokens(
            access_token=access_token or f"access-{self._issued}",
            refresh_token=f"refresh-{self._issued}",
        )

    async def _round_trip(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self._failures:
            raise self._failures.pop(0)

    async def sign_in(self, provider: AuthProvider) -> IdentityResult:
        await self._round_trip()
        if self.cancel_next:
            self.cancel_next = False
            raise AuthCancelledError()

        account = self._accounts.get(provider)
        if account is None:
            raise InvalidCredentialsError(f"no {provider.value} account registered")
        if account.uid in self._deleted:
            raise AccountDeletedError(str(account.uid))
        return account

    async def refresh(self, refresh_token: str) -> IdentityTokens:
        await self._round_trip()
        uid = self._valid_refresh_tokens.pop(refresh_token, None)
        if uid is None or uid in self._deleted:
            raise TokenExpiredError()
        tokens = self._issue()
        self._valid_refresh_tokens[tokens.refresh_token] = uid
        return tokens

    async def sign_out(self) -> None:
        await self._round_trip()
        self.signed_out += 1

    async def delete_identity(self, uid: UUID) -> None:
        await self._round_trip()
        self._deleted.add(uid)
        self._valid_refresh_tokens = {
            token: owner for token, owner in self._valid_refresh_tokens.items() if owner != uid
        }
