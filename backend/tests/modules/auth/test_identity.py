"""Tests for the identity providers."""

import time
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest
from supabase import AuthApiError

from modules.auth.exceptions import (
    AccountDeletedError,
    AuthCancelledError,
    AuthNetworkError,
    AuthUnknownError,
    InvalidCredentialsError,
    TokenExpiredError,
)
from modules.auth.identity import InMemoryIdentityProvider, SupabaseIdentityProvider
from modules.auth.interfaces import IIdentityProvider
from modules.auth.models import AuthProvider


class TestInMemoryIdentityProvider:
    def test_implements_interface(self):
        assert isinstance(InMemoryIdentityProvider(), IIdentityProvider)

    @pytest.mark.asyncio
    async def test_sign_in_registered_account(self, identity):
        account = identity.register(AuthProvider.APPLE, name="Alice")

        result = await identity.sign_in(AuthProvider.APPLE)

        assert result == account

    @pytest.mark.asyncio
    async def test_unregistered_provider(self, identity):
        identity.register(AuthProvider.APPLE)

        with pytest.raises(InvalidCredentialsError):
            await identity.sign_in(AuthProvider.GOOGLE)

    @pytest.mark.asyncio
    async def test_cancel_next(self, identity):
        identity.register(AuthProvider.GOOGLE)
        identity.cancel_next = True

        with pytest.raises(AuthCancelledError):
            await identity.sign_in(AuthProvider.GOOGLE)
        assert await identity.sign_in(AuthProvider.GOOGLE)

    @pytest.mark.asyncio
    async def test_refresh_tokens_are_single_use(self, identity):
        account = identity.register(AuthProvider.APPLE)

        tokens = await identity.refresh(account.tokens.refresh_token)

        assert tokens.refresh_token != account.tokens.refresh_token
        with pytest.raises(TokenExpiredError):
            await identity.refresh(account.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_deleted_identity(self, identity):
        account = identity.register(AuthProvider.APPLE)

        await identity.delete_identity(account.uid)

        assert identity.deleted_identities == {account.uid}
        with pytest.raises(AccountDeletedError):
            await identity.sign_in(AuthProvider.APPLE)
        with pytest.raises(TokenExpiredError):
            await identity.refresh(account.tokens.refresh_token)


class TestSupabaseIdentityProvider:
    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def token_source(self):
        async def source(provider):
            return f"{provider.value}-id-token"

        return source

    @pytest.fixture
    def provider(self, client, token_source):
        return SupabaseIdentityProvider(client, token_source)

    @staticmethod
    def auth_response(uid, email="alice@example.com", metadata=None):
        response = MagicMock()
        response.user.id = str(uid)
        response.user.email = email
        response.user.user_metadata = metadata or {}
        response.session.access_token = "access"
        response.session.refresh_token = "refresh"
        return response

    def test_implements_interface(self, provider):
        assert isinstance(provider, IIdentityProvider)

    @pytest.mark.asyncio
    async def test_sign_in_exchanges_id_token(self, provider, client):
        uid = uuid4()
        client.auth.sign_in_with_id_token.return_value = self.auth_response(
            uid, metadata={"full_name": "Alice Liddell", "avatar_url": "https://img/a.png"}
        )

        result = await provider.sign_in(AuthProvider.APPLE)

        client.auth.sign_in_with_id_token.assert_called_once_with(
            {"provider": "apple", "token": "apple-id-token"}
        )
        assert result.uid == uid
        assert result.name == "Alice Liddell"
        assert result.avatar_url == "https://img/a.png"
        assert result.tokens.refresh_token == "refresh"

    @pytest.mark.asyncio
    async def test_cancelled_flow(self, client):
        async def cancelled(provider):
            return None

        provider = SupabaseIdentityProvider(client, cancelled)

        with pytest.raises(AuthCancelledError):
            await provider.sign_in(AuthProvider.GOOGLE)
        client.auth.sign_in_with_id_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_token(self, provider, client):
        client.auth.sign_in_with_id_token.side_effect = AuthApiError("Invalid id token", 400, None)

        with pytest.raises(InvalidCredentialsError):
            await provider.sign_in(AuthProvider.APPLE)

    @pytest.mark.asyncio
    async def test_transport_failure(self, provider, client):
        client.auth.sign_in_with_id_token.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(AuthNetworkError) as exc_info:
            await provider.sign_in(AuthProvider.APPLE)
        assert exc_info.value.details["operation"] == "sign_in"

    @pytest.mark.asyncio
    async def test_slow_exchange_times_out(self, client, token_source):
        client.auth.sign_in_with_id_token.side_effect = lambda credentials: time.sleep(0.3)
        provider = SupabaseIdentityProvider(client, token_source, timeout_seconds=0.05)

        with pytest.raises(AuthNetworkError) as exc_info:
            await provider.sign_in(AuthProvider.APPLE)
        assert exc_info.value.details["timeout_seconds"] == 0.05

    @pytest.mark.asyncio
    async def test_refresh(self, provider, client):
        client.auth.refresh_session.return_value = self.auth_response(uuid4())

        tokens = await provider.refresh("old-refresh")

        client.auth.refresh_session.assert_called_once_with("old-refresh")
        assert tokens.access_token == "access"

    @pytest.mark.asyncio
    async def test_refresh_rejected(self, provider, client):
        client.auth.refresh_session.side_effect = AuthApiError("Refresh token revoked", 400, None)

        with pytest.raises(TokenExpiredError):
            await provider.refresh("old-refresh")

    @pytest.mark.asyncio
    async def test_delete_uses_admin_client(self, client, token_source):
        admin = MagicMock()
        provider = SupabaseIdentityProvider(client, token_source, admin_client=admin)
        uid = uuid4()

        await provider.delete_identity(uid)

        admin.auth.admin.delete_user.assert_called_once_with(str(uid))

    @pytest.mark.asyncio
    async def test_delete_rejected(self, provider, client):
        client.auth.admin.delete_user.side_effect = AuthApiError("User not allowed", 403, None)

        with pytest.raises(AuthUnknownError):
            await provider.delete_identity(uuid4())
