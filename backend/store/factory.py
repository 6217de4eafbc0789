"""
Document backend factory.

Selects the remote document database from configuration.
"""

import logging
from typing import Optional

from shared.config import Settings, get_settings
from shared.database import get_supabase_client

from .interfaces import IDocumentBackend
from .memory_backend import InMemoryDocumentBackend
from .supabase_backend import SupabaseDocumentBackend

logger = logging.getLogger(__name__)


def get_document_backend(settings: Optional[Settings] = None) -> IDocumentBackend:
    """
    Build the backend named by ``Settings.document_backend``.

    Args:
        settings: Optional settings override

    Returns:
        A fresh backend instance

    Raises:
        RuntimeError: If the Supabase backend is selected but not configured
        ValueError: If the backend name is unknown
    """
    settings = settings or get_settings()

    if settings.document_backend == "memory":
        logger.info("Using in-memory document backend")
        return InMemoryDocumentBackend()

    if settings.document_backend == "supabase":
        logger.info(f"Using Supabase document backend (table {settings.supabase_documents_table})")
        return SupabaseDocumentBackend(
            get_supabase_client(settings),
            table=settings.supabase_documents_table,
            poll_interval=settings.listener_poll_interval_seconds,
        )

    raise ValueError(f"Unknown document backend: {settings.document_backend}")
