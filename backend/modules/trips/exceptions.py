"""
Trips module exceptions.
"""

from typing import Any, Optional

from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    MapChatError,
    NotFoundError,
    ValidationError,
)


class TripError(MapChatError):
    """Base exception for trip-related errors."""

    pass


class TripNotFoundError(TripError, NotFoundError):
    """Raised when a trip does not exist."""

    def __init__(self, trip_id: str):
        super().__init__(
            "Trip not found",
            code="TRIP_NOT_FOUND",
            details={"trip_id": trip_id},
        )


class InvalidTripDataError(TripError, ValidationError):
    """Raised when a trip fails local validation."""

    def __init__(self, reason: str):
        super().__init__(
            "Invalid trip data",
            code="INVALID_TRIP_DATA",
            details={"reason": reason},
        )


class TripPermissionDeniedError(TripError, AuthorizationError):
    """Raised when the current user may not modify a trip."""

    def __init__(self, trip_id: str, user_id: str):
        super().__init__(
            "Permission denied",
            code="TRIP_PERMISSION_DENIED",
            details={"trip_id": trip_id, "user_id": user_id},
        )


class TripConflictError(TripError, ConflictError):
    """Raised when concurrent writers keep invalidating a trip update."""

    def __init__(self, trip_id: str):
        super().__init__(
            "Conflict detected, please try again",
            code="TRIP_CONFLICT",
            details={"trip_id": trip_id},
        )


class TripUnknownError(TripError):
    """Raised for failures outside the other trip error kinds."""

    def __init__(self, detail: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Trip error: {detail}",
            code="TRIP_UNKNOWN",
            details=details,
        )
