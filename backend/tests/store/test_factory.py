"""Tests for backend selection."""

from unittest.mock import MagicMock, patch

import pytest

from store.factory import get_document_backend
from store.memory_backend import InMemoryDocumentBackend
from store.supabase_backend import SupabaseDocumentBackend


class TestGetDocumentBackend:
    def test_memory(self, settings):
        assert isinstance(get_document_backend(settings), InMemoryDocumentBackend)

    @patch("store.factory.get_supabase_client")
    def test_supabase(self, mock_client, settings):
        mock_client.return_value = MagicMock()
        remote = settings.model_copy(update={"document_backend": "supabase"})

        backend = get_document_backend(remote)

        assert isinstance(backend, SupabaseDocumentBackend)
        mock_client.assert_called_once_with(remote)

    def test_unknown(self, settings):
        with pytest.raises(ValueError, match="Unknown document backend"):
            get_document_backend(settings.model_copy(update={"document_backend": "sqlite"}))
