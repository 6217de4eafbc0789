"""
Location service implementation.

Sensor readings are queued in arrival order and handled by one worker
task: each reading becomes a UserLocation, is persisted, and only then is
delivered to open tracking sequences. Every start bumps a generation
counter; anything tagged with an older generation is dropped, which is
how stop_tracking guarantees nothing is delivered after it returns.
"""

import asyncio
import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from shared.config import Settings, get_settings
from shared.models import User, UserLocation, unique_ids
from store.exceptions import translate_store_errors
from store.interfaces import IDocumentStore
from store.live import LiveSequence
from store.models import Collections

from .exceptions import (
    FailedToGetLocationError,
    LocationError,
    LocationPermissionDeniedError,
    LocationServicesDisabledError,
    LocationUnknownError,
)
from .interfaces import ILocationSensor, ILocationService
from .models import (
    LocationPermissionStatus,
    LocationTrackingMode,
    SensorReading,
    SpeedTier,
    TrackingPolicy,
)

logger = logging.getLogger(__name__)

_STOP = object()


class LocationService(ILocationService):
    """
    Location service over a sensor and the shared document store.

    Args:
        store: Shared document store
        sensor: Device location sensor
        settings: Optional settings override (fix timeout)
        policy: Speed-based sensor settings; defaults to TrackingPolicy()
    """

    def __init__(
        self,
        store: IDocumentStore,
        sensor: ILocationSensor,
        settings: Optional[Settings] = None,
        policy: Optional[TrackingPolicy] = None,
    ):
        self._store = store
        self._sensor = sensor
        self._settings = settings or get_settings()
        self._policy = policy or TrackingPolicy()
        self._lock = asyncio.Lock()

        self._user_id: Optional[UUID] = None
        self._trip_id: Optional[UUID] = None
        self._permission_status = LocationPermissionStatus.NOT_DETERMINED
        self._current_location: Optional[UserLocation] = None

        # Tracking state
        self._is_tracking = False
        self._generation = 0
        self._tier: Optional[SpeedTier] = None
        self._readings: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._subscribers: list[asyncio.Queue] = []

    @property
    def permission_status(self) -> LocationPermissionStatus:
        return self._permission_status

    @property
    def is_tracking(self) -> bool:
        return self._is_tracking

    @property
    def current_location(self) -> Optional[UserLocation]:
        return self._current_location

    @property
    def speed_tier(self) -> Optional[SpeedTier]:
        return self._tier

    def bind_user(self, user_id: Optional[UUID], trip_id: Optional[UUID] = None) -> None:
        self._user_id = user_id
        self._trip_id = trip_id

    # -------------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------------

    async def refresh_permission_status(self) -> LocationPermissionStatus:
        self._permission_status = await self._sensor.authorization_status()
        return self._permission_status

    async def request_permission(self, mode: LocationTrackingMode) -> LocationPermissionStatus:
        if mode == LocationTrackingMode.DISABLED:
            await self.stop_tracking()
            return await self.refresh_permission_status()

        async with self._lock:
            self._permission_status = await self._sensor.request_authorization(mode)

        logger.info(f"Location permission after {mode.value} request: {self._permission_status.value}")
        return self._permission_status

    # -------------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------------

    async def start_tracking(self) -> None:
        async with self._lock:
            if self._is_tracking:
                return
            if not self._sensor.services_enabled:
                raise LocationServicesDisabledError()

            status = await self.refresh_permission_status()
            if not status.is_authorized:
                raise LocationPermissionDeniedError(status.value)

            self._generation += 1
            generation = self._generation
            readings: asyncio.Queue = asyncio.Queue()
            self._readings = readings
            self._apply_tier(self._policy.initial_tier)
            self._is_tracking = True
            self._worker = asyncio.create_task(self._process_readings(generation, readings))
            self._sensor.start_updates(lambda reading: self._on_reading(generation, reading))

        logger.info(f"Location tracking started (generation {generation})")

    async def stop_tracking(self) -> None:
        async with self._lock:
            self._halt()

    def _halt(self) -> None:
        if not self._is_tracking:
            return

        self._is_tracking = False
        self._generation += 1
        self._sensor.stop_updates()
        if self._worker is not None:
            self._worker.cancel()
            self._worker = None
        self._readings = None
        self._tier = None

        for queue in self._subscribers:
            while not queue.empty():
                queue.get_nowait()
            queue.put_nowait(_STOP)

        logger.info("Location tracking stopped")

    def _on_reading(self, generation: int, reading: SensorReading) -> None:
        if generation != self._generation or self._readings is None:
            return
        self._readings.put_nowait(reading)

    def _apply_tier(self, tier: SpeedTier) -> None:
        if tier == self._tier:
            return
        settings = self._policy.settings_for(tier)
        self._sensor.configure(settings.desired_accuracy, settings.distance_filter)
        logger.debug(
            f"Sensor tier {tier.value}: accuracy {settings.desired_accuracy:.0f} m, "
            f"distance filter {settings.distance_filter:.0f} m"
        )
        self._tier = tier

    async def _process_readings(self, generation: int, readings: asyncio.Queue) -> None:
        while True:
            reading: SensorReading = await readings.get()
            if generation != self._generation:
                return

            tier = self._policy.tier_for(reading.speed)
            if tier is not None:
                self._apply_tier(tier)

            if self._user_id is None:
                logger.warning("Dropping location reading: no user bound to location service")
                continue

            location = reading.to_location(self._user_id, self._trip_id)
            try:
                await self._persist(location)
            except LocationError as e:
                logger.warning(f"Location update not delivered, persisting failed: {e.message}")
                continue

            if generation != self._generation:
                return
            self._current_location = location
            for queue in self._subscribers:
                queue.put_nowait(location)

    def track(self) -> LiveSequence[UserLocation]:
        async def updates() -> AsyncGenerator[UserLocation, None]:
            queue: asyncio.Queue = asyncio.Queue()
            self._subscribers.append(queue)
            try:
                if not self._is_tracking:
                    return
                while True:
                    item = await queue.get()
                    if item is _STOP:
                        return
                    yield item
            finally:
                self._subscribers.remove(queue)

        return LiveSequence(updates(), name="location-updates")

    # -------------------------------------------------------------------------
    # Fixes and persistence
    # -------------------------------------------------------------------------

    async def get_current_location(self) -> UserLocation:
        if self._user_id is None:
            raise LocationUnknownError("no user bound to location service")
        if not self._sensor.services_enabled:
            raise LocationServicesDisabledError()

        status = await self.refresh_permission_status()
        if not status.is_authorized:
            raise LocationPermissionDeniedError(status.value)

        timeout = self._settings.location_fix_timeout_seconds
        try:
            reading = await asyncio.wait_for(self._sensor.request_fix(), timeout=timeout)
        except asyncio.TimeoutError:
            raise FailedToGetLocationError(timeout) from None
        if reading is None:
            raise FailedToGetLocationError(timeout)

        location = reading.to_location(self._user_id, self._trip_id)
        self._current_location = location
        return location

    async def _persist(self, location: UserLocation) -> None:
        with translate_store_errors(LocationUnknownError):
            await self._store.set_document(Collections.LOCATIONS, str(location.user_id), location)

    async def update_location(self, location: UserLocation) -> None:
        await self._persist(location)
        if location.user_id == self._user_id:
            self._current_location = location

    async def fetch_visible_locations(self, viewer: User, user_ids: list[UUID]) -> list[UserLocation]:
        candidates = [
            uid for uid in unique_ids(user_ids)
            if uid != viewer.id and not viewer.is_blocked(uid)
        ]
        if not candidates:
            return []

        with translate_store_errors(LocationUnknownError):
            users = await asyncio.gather(
                *(self._store.get_document(Collections.USERS, str(uid), User) for uid in candidates)
            )
            visible = [
                user for user in users
                if user is not None and not user.is_ghost_mode and not user.is_blocked(viewer.id)
            ]
            locations = await asyncio.gather(
                *(
                    self._store.get_document(Collections.LOCATIONS, str(user.id), UserLocation)
                    for user in visible
                )
            )
        return [location for location in locations if location is not None]


# Verify the implementation satisfies the interface
def _verify_interface(store: IDocumentStore, sensor: ILocationSensor) -> ILocationService:
    """Type check that LocationService implements ILocationService."""
    service: ILocationService = LocationService(store, sensor)
    return service
