"""
Location module exceptions.
"""

from typing import Any, Optional

from shared.exceptions import AuthorizationError, MapChatError


class LocationError(MapChatError):
    """Base exception for location-related errors."""

    pass


class LocationPermissionDeniedError(LocationError, AuthorizationError):
    """Raised when location access is not authorized."""

    def __init__(self, status: Optional[str] = None):
        super().__init__(
            "Location permission denied",
            code="LOCATION_PERMISSION_DENIED",
            details={"status": status} if status else None,
        )


class LocationServicesDisabledError(LocationError):
    """Raised when location services are switched off on the device."""

    def __init__(self):
        super().__init__(
            "Location services are disabled",
            code="LOCATION_SERVICES_DISABLED",
        )


class FailedToGetLocationError(LocationError):
    """Raised when no fix is obtained within the bounded wait."""

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(
            "Failed to get current location",
            code="FAILED_TO_GET_LOCATION",
            details={"timeout": timeout} if timeout is not None else None,
        )


class LocationUnknownError(LocationError):
    """Raised for failures outside the other location error kinds."""

    def __init__(self, detail: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Location error: {detail}",
            code="LOCATION_UNKNOWN",
            details=details,
        )
