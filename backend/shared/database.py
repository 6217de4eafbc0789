"""
Database client factory for Supabase.

The document store, identity provider and media uploader all talk to
the same Supabase project; they share one service-role client.
"""

from typing import Optional
from supabase import create_client, Client

from .config import Settings, get_settings

# Module-level client cache
_service_client: Optional[Client] = None


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """
    Get Supabase client with service role (bypasses RLS).

    Use this for backend operations that need full database access, such as
    committing document batches or deleting auth identities.

    Args:
        settings: Settings to read the project URL and key from.
            Defaults to the cached application settings.

    Returns:
        Supabase client configured with service role key

    Raises:
        RuntimeError: If the Supabase URL or service role key is missing
    """
    global _service_client

    if _service_client is None:
        settings = settings or get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "Supabase configuration missing. "
                "Set MAPCHAT_SUPABASE_URL and MAPCHAT_SUPABASE_SERVICE_ROLE_KEY "
                "environment variables."
            )
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def reset_client_cache() -> None:
    """
    Reset the cached database client.

    Useful for testing or when configuration changes.
    """
    global _service_client
    _service_client = None
