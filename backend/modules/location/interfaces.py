"""
Location module interfaces.
"""

from typing import Callable, Optional, Protocol, runtime_checkable
from uuid import UUID

from shared.models import User, UserLocation
from store.live import LiveSequence

from .models import LocationPermissionStatus, LocationTrackingMode, SensorReading


@runtime_checkable
class ILocationSensor(Protocol):
    """
    Contract for the device location sensor.

    ``start_updates`` pushes readings to the handler from the event loop
    until ``stop_updates`` is called.
    """

    @property
    def services_enabled(self) -> bool:
        ...

    async def authorization_status(self) -> LocationPermissionStatus:
        ...

    async def request_authorization(self, mode: LocationTrackingMode) -> LocationPermissionStatus:
        """Ask the platform for access at the given tier; returns the resulting status."""
        ...

    def configure(self, desired_accuracy: float, distance_filter: float) -> None:
        ...

    def start_updates(self, handler: Callable[[SensorReading], None]) -> None:
        ...

    def stop_updates(self) -> None:
        ...

    async def request_fix(self) -> Optional[SensorReading]:
        """One-shot fix; None when the sensor could not produce one."""
        ...


@runtime_checkable
class ILocationService(Protocol):
    """Interface for permissions, one-shot fixes and continuous tracking."""

    @property
    def permission_status(self) -> LocationPermissionStatus:
        ...

    @property
    def is_tracking(self) -> bool:
        ...

    @property
    def current_location(self) -> Optional[UserLocation]:
        ...

    def bind_user(self, user_id: Optional[UUID], trip_id: Optional[UUID] = None) -> None:
        """Attribute subsequent fixes to a user (and optionally a trip)."""
        ...

    async def request_permission(self, mode: LocationTrackingMode) -> LocationPermissionStatus:
        """
        Request location access. ``DISABLED`` stops tracking first.

        Returns:
            The updated permission status
        """
        ...

    async def start_tracking(self) -> None:
        """
        Start continuous tracking. Idempotent.

        Raises:
            LocationServicesDisabledError: If location services are off
            LocationPermissionDeniedError: If access is not authorized
        """
        ...

    async def stop_tracking(self) -> None:
        """Stop tracking. No update is delivered after this returns."""
        ...

    async def get_current_location(self) -> UserLocation:
        """
        One-shot fix with a bounded wait.

        Raises:
            FailedToGetLocationError: If no fix arrives in time
        """
        ...

    async def update_location(self, location: UserLocation) -> None:
        """Persist a location under ``locations/<userId>``."""
        ...

    def track(self) -> LiveSequence[UserLocation]:
        """Persisted tracking updates; ends when tracking stops."""
        ...

    async def fetch_visible_locations(self, viewer: User, user_ids: list[UUID]) -> list[UserLocation]:
        """Latest locations of the given users that the viewer is allowed to see."""
        ...
