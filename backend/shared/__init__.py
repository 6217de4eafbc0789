"""
Shared infrastructure for the MapChat backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- log_config: Console logging setup
- models: Entities shared across modules (User, UserLocation, Coordinate)
- retry: Exponential backoff for remote calls

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings, reset_settings_cache
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    MapChatError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
)
from .log_config import configure_logging
from .models import Coordinate, User, UserLocation, SENTINEL_ID
from .retry import retry_async

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings_cache",
    "get_supabase_client",
    "reset_client_cache",
    "MapChatError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "ExternalServiceError",
    "configure_logging",
    "Coordinate",
    "User",
    "UserLocation",
    "SENTINEL_ID",
    "retry_async",
]
