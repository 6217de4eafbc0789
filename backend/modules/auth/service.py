"""
Authentication service implementation.

Runs provider sign-in through an IIdentityProvider and keeps the user's
document in the shared store in step with the session.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from shared.config import Settings, get_settings
from shared.exceptions import MapChatError
from shared.models import User, utc_now
from store.exceptions import translate_store_errors
from store.interfaces import IDocumentStore
from store.models import BatchOperation, Collections

from .exceptions import (
    AuthNetworkError,
    AuthUnknownError,
    AuthUserNotFoundError,
    InvalidCredentialsError,
)
from .interfaces import IAuthService, IIdentityProvider
from .models import AuthProvider, AuthSession, IdentityResult

logger = logging.getLogger(__name__)

R = TypeVar("R")


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Session state lives in memory; ``current_user`` is replaced only after
    the corresponding remote write has succeeded.
    """

    def __init__(
        self,
        store: IDocumentStore,
        identity: IIdentityProvider,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._identity = identity
        self._settings = settings or get_settings()
        self._lock = asyncio.Lock()
        self._session: Optional[AuthSession] = None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def current_user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def _errors(self):
        return translate_store_errors(AuthUnknownError, unavailable_error=AuthNetworkError)

    def _require_session(self) -> AuthSession:
        if self._session is None:
            raise AuthUserNotFoundError()
        return self._session

    async def _bounded(self, operation: str, call: Awaitable[R]) -> R:
        """Await a non-interactive identity provider call under the remote timeout."""
        timeout = self._settings.remote_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Identity provider {operation} timed out after {timeout:.1f}s")
            raise AuthNetworkError({"operation": operation, "timeout_seconds": timeout}) from e

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    async def sign_in(self, provider: AuthProvider) -> User:
        async with self._lock:
            # Unbounded: the provider flow waits on the user. Its token
            # exchange is bounded inside the provider.
            identity = await self._identity.sign_in(provider)
            if not identity.email:
                raise InvalidCredentialsError("identity has no email address")

            user = await self._upsert_user(identity)
            self._session = AuthSession(user=user, tokens=identity.tokens)

        logger.info(f"Signed in user {user.id} with {provider.value}")
        return user

    async def _upsert_user(self, identity: IdentityResult) -> User:
        now = utc_now()
        with self._errors():
            existing = await self._store.get_document(Collections.USERS, str(identity.uid), User)
            if existing is not None:
                user = existing.with_presence(True, now)
                if not user.name and identity.name:
                    user = user.model_copy(update={"name": identity.name})
            else:
                user = User(
                    id=identity.uid,
                    name=identity.name or "",
                    email=identity.email,
                    avatar_url=identity.avatar_url,
                    is_online=True,
                    last_seen=now,
                    created_at=now,
                    updated_at=now,
                )
                logger.info(f"Creating user document for {identity.uid}")
            await self._store.set_document(Collections.USERS, str(user.id), user)
        return user

    async def refresh_token(self) -> None:
        async with self._lock:
            session = self._require_session()
            tokens = await self._bounded(
                "refresh", self._identity.refresh(session.tokens.refresh_token)
            )
            self._session = session.model_copy(update={"tokens": tokens})

        logger.debug(f"Refreshed tokens for user {session.user.id}")

    async def sign_out(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            user_id = self._session.user.id

            try:
                with self._errors():
                    await self._store.update_document(
                        Collections.USERS,
                        str(user_id),
                        User,
                        lambda u: u.with_presence(False),
                    )
            except MapChatError as e:
                logger.warning(f"Could not record sign-out presence for {user_id}: {e.message}")

            self._session = None
            try:
                await self._bounded("sign_out", self._identity.sign_out())
            except MapChatError as e:
                logger.warning(f"Identity provider sign-out failed for {user_id}: {e.message}")

        logger.info(f"Signed out user {user_id}")

    async def delete_account(self) -> None:
        async with self._lock:
            session = self._require_session()
            user_id = session.user.id

            # Documents first, session last: a failure here leaves the
            # account signed in and the deletion retryable.
            with self._errors():
                await self._store.perform_batch(
                    [
                        BatchOperation.delete_document(Collections.USERS, str(user_id)),
                        BatchOperation.delete_document(Collections.LOCATIONS, str(user_id)),
                    ]
                )
            await self._bounded("delete_identity", self._identity.delete_identity(user_id))
            self._session = None

        logger.info(f"Deleted account {user_id}")

    # -------------------------------------------------------------------------
    # Account-owned state
    # -------------------------------------------------------------------------

    async def _update_current_user(self, mutate: Callable[[User], User]) -> User:
        session = self._require_session()
        with self._errors():
            user = await self._store.update_document(
                Collections.USERS, str(session.user.id), User, mutate
            )
        if user is None:
            raise AuthUserNotFoundError(str(session.user.id))
        self._session = session.model_copy(update={"user": user})
        return user

    async def set_ghost_mode(self, enabled: bool) -> User:
        async with self._lock:
            user = await self._update_current_user(lambda u: u.with_ghost_mode(enabled))
        logger.info(f"Ghost mode {'on' if enabled else 'off'} for user {user.id}")
        return user

    async def block_user(self, user_id: UUID) -> User:
        async with self._lock:
            session = self._require_session()
            if user_id == session.user.id:
                raise AuthUnknownError("you cannot block yourself")
            return await self._update_current_user(lambda u: u.blocking(user_id))

    async def unblock_user(self, user_id: UUID) -> User:
        async with self._lock:
            return await self._update_current_user(lambda u: u.unblocking(user_id))


# Verify the implementation satisfies the interface
def _verify_interface(store: IDocumentStore, identity: IIdentityProvider) -> IAuthService:
    """Type check that AuthService implements IAuthService."""
    service: IAuthService = AuthService(store, identity)
    return service
