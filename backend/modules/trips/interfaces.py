"""
Trips module interface.
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from shared.models import User
from store.live import LiveSequence

from .models import Trip


@runtime_checkable
class ITripService(Protocol):
    """Interface for trip CRUD and trip lookups by membership and time."""

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        """
        Bind the user on whose behalf updates and deletes run.

        While a user is bound, only the trip's admin or the admin of the
        trip's group may update or delete it.
        """
        ...

    async def create_trip(self, trip: Trip) -> Trip:
        """
        Create a trip.

        Args:
            trip: The trip to create; a sentinel id is replaced

        Returns:
            The stored trip

        Raises:
            InvalidTripDataError: If a name is blank or the dates are not ordered
        """
        ...

    async def update_trip(self, trip: Trip) -> Trip:
        """
        Replace a trip's editable fields.

        Raises:
            InvalidTripDataError: If validation fails
            TripNotFoundError: If the trip does not exist
            TripPermissionDeniedError: If the bound user may not edit it
        """
        ...

    async def delete_trip(self, trip_id: UUID) -> None:
        """Delete a trip. Deleting a missing trip is not an error."""
        ...

    async def fetch_trip(self, trip_id: UUID) -> Trip:
        """
        Get a trip by id.

        Raises:
            TripNotFoundError: If the trip does not exist
        """
        ...

    async def fetch_trips(self, user: User) -> list[Trip]:
        """All trips of every group the user belongs to, by start date."""
        ...

    async def fetch_active_trips(self, now: Optional[datetime] = None) -> list[Trip]:
        """Trips with start_date <= now <= end_date."""
        ...

    def listen_to_trip(self, trip_id: UUID) -> LiveSequence[Optional[Trip]]:
        """Live snapshots of one trip."""
        ...

    def listen_to_group_trips(self, group_id: UUID) -> LiveSequence[list[Trip]]:
        """Live list of a group's trips."""
        ...
