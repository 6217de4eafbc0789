"""Tests for shared/database.py."""

import pytest
from unittest.mock import patch, MagicMock

from shared.config import Settings
from shared.database import (
    get_supabase_client,
    reset_client_cache,
)


def configured(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_service_role_key="test-key",
    )
    values.update(overrides)
    return Settings(**values)


class TestSupabaseClient:
    def setup_method(self):
        """Reset cache before each test."""
        reset_client_cache()

    @patch("shared.database.create_client")
    def test_creates_service_role_client(self, mock_create):
        mock_create.return_value = MagicMock()

        client = get_supabase_client(configured())

        mock_create.assert_called_once_with("https://test.supabase.co", "test-key")
        assert client is mock_create.return_value

    @patch("shared.database.create_client")
    def test_caches_client(self, mock_create):
        mock_create.return_value = MagicMock()

        client1 = get_supabase_client(configured())
        client2 = get_supabase_client(configured())

        mock_create.assert_called_once()
        assert client1 is client2

    @patch("shared.database.get_settings")
    @patch("shared.database.create_client")
    def test_defaults_to_application_settings(self, mock_create, mock_settings):
        mock_settings.return_value = configured()

        get_supabase_client()

        mock_create.assert_called_once_with("https://test.supabase.co", "test-key")

    @pytest.mark.parametrize("overrides", [
        {"supabase_url": ""},
        {"supabase_service_role_key": ""},
    ])
    def test_raises_without_config(self, overrides):
        with pytest.raises(RuntimeError, match="configuration missing"):
            get_supabase_client(configured(**overrides))


class TestResetClientCache:
    @patch("shared.database.create_client")
    def test_reset_allows_new_client(self, mock_create):
        reset_client_cache()
        mock_create.side_effect = [MagicMock(name="client1"), MagicMock(name="client2")]

        client1 = get_supabase_client(configured())
        reset_client_cache()
        client2 = get_supabase_client(configured())

        assert mock_create.call_count == 2
        assert client1 is not client2
        reset_client_cache()
