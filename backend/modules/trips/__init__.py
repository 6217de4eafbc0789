"""
Trips module.

Trip CRUD, membership-based lookups and clock-derived status.

Public API:
- ITripService: Interface for trip operations
- TripService: Document-store backed implementation
- Trip, TripStatus, TripBuckets: Models
- categorize, search_trips: Pure helpers for trip lists
- Trip exceptions: TripNotFoundError, InvalidTripDataError, etc.
"""

from .interfaces import ITripService
from .models import Trip, TripStatus, TripBuckets, categorize, search_trips, trip_status
from .service import TripService
from .exceptions import (
    TripError,
    TripNotFoundError,
    InvalidTripDataError,
    TripPermissionDeniedError,
    TripConflictError,
    TripUnknownError,
)

__all__ = [
    # Interface
    "ITripService",
    # Implementation
    "TripService",
    # Models
    "Trip",
    "TripStatus",
    "TripBuckets",
    "categorize",
    "search_trips",
    "trip_status",
    # Exceptions
    "TripError",
    "TripNotFoundError",
    "InvalidTripDataError",
    "TripPermissionDeniedError",
    "TripConflictError",
    "TripUnknownError",
]
