"""
Base repository class for database access.

Provides a common abstraction layer for Supabase-backed adapters: client
access plus a single place where blocking client calls are moved off the
event loop and transport failures are translated.
"""

import asyncio
from typing import Any, Callable, Generic, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - ``_execute`` to run a query builder in a worker thread
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class DocumentRepository(BaseRepository[DocumentSnapshot]):
            async def fetch(self, doc_id: str) -> Optional[DocumentSnapshot]:
                result = await self._execute(
                    "fetch",
                    lambda: self._db.table("documents").select("*").eq("id", doc_id),
                )
                ...
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    def _translate_error(self, operation: str, error: Exception) -> Exception:
        """Map a client failure to the subclass's error type."""
        return error

    async def _execute(self, operation: str, build: Callable[[], Any]) -> Any:
        """
        Build and execute a query in a worker thread.

        The supabase client is synchronous; running it in a thread keeps the
        event loop free and lets callers bound the wait with ``wait_for``.

        Args:
            operation: Name used in error details.
            build: Returns a query builder with ``execute()``.

        Returns:
            The client's response object.
        """
        try:
            return await asyncio.to_thread(lambda: build().execute())
        except (httpx.HTTPError, APIError) as e:
            raise self._translate_error(operation, e) from e
