"""
Simulated location sensor.

For testing and development; a device build supplies its own
ILocationSensor. Readings are injected with ``emit`` and one-shot fixes
are scripted with ``queue_fix``.
"""

import asyncio
import logging
from typing import Callable, Optional

from .models import LocationPermissionStatus, LocationTrackingMode, SensorReading, SensorSettings

logger = logging.getLogger(__name__)


class SimulatedLocationSensor:
    """In-process ILocationSensor."""

    def __init__(
        self,
        status: LocationPermissionStatus = LocationPermissionStatus.NOT_DETERMINED,
        services_enabled: bool = True,
        grant_requests: bool = True,
        fix_delay: float = 0.0,
    ):
        self._status = status
        self._services_enabled = services_enabled
        self._grant_requests = grant_requests
        self._handler: Optional[Callable[[SensorReading], None]] = None
        self._fixes: list[SensorReading] = []
        self.fix_delay = fix_delay
        self.settings: Optional[SensorSettings] = None
        self.configurations: list[SensorSettings] = []
        self.authorization_requests: list[LocationTrackingMode] = []

    @property
    def services_enabled(self) -> bool:
        return self._services_enabled

    @property
    def is_updating(self) -> bool:
        return self._handler is not None

    def set_services_enabled(self, enabled: bool) -> None:
        self._services_enabled = enabled

    def set_authorization(self, status: LocationPermissionStatus) -> None:
        self._status = status

    async def authorization_status(self) -> LocationPermissionStatus:
        return self._status

    async def request_authorization(self, mode: LocationTrackingMode) -> LocationPermissionStatus:
        self.authorization_requests.append(mode)
        if not self._grant_requests:
            if self._status == LocationPermissionStatus.NOT_DETERMINED:
                self._status = LocationPermissionStatus.DENIED
            return self._status

        if mode == LocationTrackingMode.ALWAYS and self._status in (
            LocationPermissionStatus.NOT_DETERMINED,
            LocationPermissionStatus.AUTHORIZED_WHEN_IN_USE,
        ):
            self._status = LocationPermissionStatus.AUTHORIZED_ALWAYS
        elif (
            mode == LocationTrackingMode.WHEN_IN_USE
            and self._status == LocationPermissionStatus.NOT_DETERMINED
        ):
            self._status = LocationPermissionStatus.AUTHORIZED_WHEN_IN_USE
        return self._status

    def configure(self, desired_accuracy: float, distance_filter: float) -> None:
        self.settings = SensorSettings(desired_accuracy=desired_accuracy, distance_filter=distance_filter)
        self.configurations.append(self.settings)

    def start_updates(self, handler: Callable[[SensorReading], None]) -> None:
        self._handler = handler

    def stop_updates(self) -> None:
        self._handler = None

    def emit(self, reading: SensorReading) -> None:
        """Deliver a reading as the platform would; ignored while stopped."""
        if self._handler is None:
            logger.debug("Sensor stopped, dropping simulated reading")
            return
        self._handler(reading)

    def queue_fix(self, reading: SensorReading) -> None:
        self._fixes.append(reading)

    async def request_fix(self) -> Optional[SensorReading]:
        if self.fix_delay:
            await asyncio.sleep(self.fix_delay)
        return self._fixes.pop(0) if self._fixes else None
