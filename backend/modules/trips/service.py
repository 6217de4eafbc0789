"""
Trip service implementation.

Trips belong to groups; membership is resolved through the group service
so this module never queries group documents itself.
"""

import asyncio
import logging
from datetime import datetime
from typing import AsyncGenerator, Optional
from uuid import UUID, uuid4

from shared.config import Settings, get_settings
from shared.models import SENTINEL_ID, User, format_utc, unique_ids, utc_now
from store.exceptions import translate_store_errors
from store.interfaces import IDocumentStore
from store.live import LiveSequence
from store.models import Collections, FilterOp, QueryFilter

from modules.groups.exceptions import GroupError, GroupNotFoundError
from modules.groups.interfaces import IGroupService

from .exceptions import (
    InvalidTripDataError,
    TripConflictError,
    TripNotFoundError,
    TripPermissionDeniedError,
    TripUnknownError,
)
from .interfaces import ITripService
from .models import Trip, TripStatus

logger = logging.getLogger(__name__)


class TripService(ITripService):
    """
    Trip service over the shared document store.

    Args:
        store: Shared document store
        groups: Group service used for the membership join and admin checks
        settings: Optional settings override
    """

    def __init__(
        self,
        store: IDocumentStore,
        groups: IGroupService,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._groups = groups
        self._settings = settings or get_settings()
        self._lock = asyncio.Lock()
        self._current_user_id: Optional[UUID] = None

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        self._current_user_id = user_id

    def _errors(self, trip_id: Optional[UUID] = None):
        return translate_store_errors(
            TripUnknownError,
            conflict_error=lambda: TripConflictError(str(trip_id)),
        )

    @staticmethod
    def _validate(trip: Trip) -> None:
        if not trip.name.strip():
            raise InvalidTripDataError("name is blank")
        if not trip.location_name.strip():
            raise InvalidTripDataError("location name is blank")
        if trip.start_date >= trip.end_date:
            raise InvalidTripDataError("start date must be before end date")

    async def _group_admin(self, stored: Trip) -> Optional[UUID]:
        """Admin of the trip's group, or None if the group no longer exists."""
        try:
            group = await self._groups.fetch_group(stored.group_id)
        except GroupNotFoundError:
            return None
        except GroupError as e:
            raise TripUnknownError("could not verify permissions", {"cause": e.to_dict()}) from e
        return group.admin_id

    async def _require_editor(self, stored: Trip) -> None:
        """Allow the trip's admin or the admin of its group; no-op when unbound."""
        user_id = self._current_user_id
        if user_id is None or stored.admin_id == user_id:
            return
        if await self._group_admin(stored) != user_id:
            raise TripPermissionDeniedError(str(stored.id), str(user_id))

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def create_trip(self, trip: Trip) -> Trip:
        self._validate(trip)
        if trip.id == SENTINEL_ID:
            trip = trip.model_copy(update={"id": uuid4()})

        async with self._lock:
            with self._errors(trip.id):
                await self._store.set_document(Collections.TRIPS, str(trip.id), trip)

        logger.info(f"Created trip {trip.id} for group {trip.group_id}")
        return trip

    async def update_trip(self, trip: Trip) -> Trip:
        self._validate(trip)
        trip_id = str(trip.id)
        user_id = self._current_user_id

        async with self._lock:
            with self._errors(trip.id):
                stored = await self._store.get_document(Collections.TRIPS, trip_id, Trip)
                if stored is None:
                    raise TripNotFoundError(trip_id)
                group_admin = None
                if user_id is not None and user_id != stored.admin_id:
                    group_admin = await self._group_admin(stored)

                def apply(current: Trip) -> Trip:
                    # The looked-up admin only vouches for the group it was read from.
                    editors = {current.admin_id}
                    if current.group_id == stored.group_id:
                        editors.add(group_admin)
                    if user_id is not None and user_id not in editors:
                        raise TripPermissionDeniedError(trip_id, str(user_id))
                    # Ownership and group come from the stored trip, never the payload.
                    return trip.model_copy(
                        update={
                            "admin_id": current.admin_id,
                            "group_id": current.group_id,
                            "created_at": current.created_at,
                            "updated_at": utc_now(),
                        }
                    )

                updated = await self._store.update_document(Collections.TRIPS, trip_id, Trip, apply)

        if updated is None:
            raise TripNotFoundError(trip_id)
        logger.info(f"Updated trip {trip_id}")
        return updated

    async def delete_trip(self, trip_id: UUID) -> None:
        async with self._lock:
            with self._errors(trip_id):
                if self._current_user_id is not None:
                    stored = await self._store.get_document(Collections.TRIPS, str(trip_id), Trip)
                    if stored is not None:
                        await self._require_editor(stored)
                await self._store.delete_document(Collections.TRIPS, str(trip_id))

        logger.info(f"Deleted trip {trip_id}")

    async def fetch_trip(self, trip_id: UUID) -> Trip:
        with self._errors(trip_id):
            trip = await self._store.get_document(Collections.TRIPS, str(trip_id), Trip)
        if trip is None:
            raise TripNotFoundError(str(trip_id))
        return trip

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def fetch_trips(self, user: User) -> list[Trip]:
        try:
            groups = await self._groups.fetch_groups(user.id)
        except GroupError as e:
            raise TripUnknownError("could not load groups", {"cause": e.to_dict()}) from e

        group_ids = unique_ids([g.id for g in groups] + list(user.group_ids))
        if not group_ids:
            return []

        limit = self._settings.max_query_limit
        with self._errors():
            results = await asyncio.gather(
                *(
                    self._store.query_documents(
                        Collections.TRIPS,
                        Trip,
                        [QueryFilter(field="groupId", value=str(group_id))],
                        limit=limit,
                    )
                    for group_id in group_ids
                )
            )

        by_id = {trip.id: trip for trips in results for trip in trips}
        return sorted(by_id.values(), key=lambda t: t.start_date)

    async def fetch_active_trips(self, now: Optional[datetime] = None) -> list[Trip]:
        now = now or utc_now()
        stamp = format_utc(now)
        with self._errors():
            candidates = await self._store.query_documents(
                Collections.TRIPS,
                Trip,
                [
                    QueryFilter(field="startDate", value=stamp, op=FilterOp.LESS_EQUAL),
                    QueryFilter(field="endDate", value=stamp, op=FilterOp.GREATER_EQUAL),
                ],
                limit=self._settings.max_query_limit,
                order_by="startDate",
                descending=True,
            )
        active = [trip for trip in candidates if trip.status_at(now) == TripStatus.ACTIVE]
        return sorted(active, key=lambda t: t.start_date)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def listen_to_trip(self, trip_id: UUID) -> LiveSequence[Optional[Trip]]:
        return self._store.listen_to_document(Collections.TRIPS, str(trip_id), Trip)

    def listen_to_group_trips(self, group_id: UUID) -> LiveSequence[list[Trip]]:
        source = self._store.listen_to_collection(
            Collections.TRIPS, Trip, [QueryFilter(field="groupId", value=str(group_id))]
        )

        async def sorted_trips() -> AsyncGenerator[list[Trip], None]:
            try:
                async for trips in source:
                    yield sorted(trips, key=lambda t: t.start_date)
            finally:
                await source.aclose()

        return LiveSequence(sorted_trips(), name=source.name)


# Verify the implementation satisfies the interface
def _verify_interface(store: IDocumentStore, groups: IGroupService) -> ITripService:
    """Type check that TripService implements ITripService."""
    service: ITripService = TripService(store, groups)
    return service
