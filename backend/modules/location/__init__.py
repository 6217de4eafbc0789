"""
Location module.

Location permissions, one-shot fixes, continuous tracking with a
speed-adaptive sensor policy, and visibility-filtered location lookups.

Public API:
- ILocationService / ILocationSensor: Interfaces
- LocationService: Document-store backed implementation
- SimulatedLocationSensor: In-process sensor
- LocationPermissionStatus, LocationTrackingMode, SensorReading, TrackingPolicy: Models
- Location exceptions: LocationPermissionDeniedError, FailedToGetLocationError, etc.
"""

from .interfaces import ILocationService, ILocationSensor
from .models import (
    LocationPermissionStatus,
    LocationTrackingMode,
    SensorReading,
    SensorSettings,
    SpeedTier,
    TrackingPolicy,
)
from .sensor import SimulatedLocationSensor
from .service import LocationService
from .exceptions import (
    LocationError,
    LocationPermissionDeniedError,
    LocationServicesDisabledError,
    FailedToGetLocationError,
    LocationUnknownError,
)

__all__ = [
    # Interfaces
    "ILocationService",
    "ILocationSensor",
    # Implementations
    "LocationService",
    "SimulatedLocationSensor",
    # Models
    "LocationPermissionStatus",
    "LocationTrackingMode",
    "SensorReading",
    "SensorSettings",
    "SpeedTier",
    "TrackingPolicy",
    # Exceptions
    "LocationError",
    "LocationPermissionDeniedError",
    "LocationServicesDisabledError",
    "FailedToGetLocationError",
    "LocationUnknownError",
]
