"""
Location module models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from shared.models import UserLocation, utc_now


class LocationPermissionStatus(str, Enum):
    """Platform authorization state for location access."""

    NOT_DETERMINED = "notDetermined"
    RESTRICTED = "restricted"
    DENIED = "denied"
    AUTHORIZED_WHEN_IN_USE = "authorizedWhenInUse"
    AUTHORIZED_ALWAYS = "authorizedAlways"

    @property
    def is_authorized(self) -> bool:
        return self in (
            LocationPermissionStatus.AUTHORIZED_WHEN_IN_USE,
            LocationPermissionStatus.AUTHORIZED_ALWAYS,
        )


class LocationTrackingMode(str, Enum):
    DISABLED = "disabled"
    WHEN_IN_USE = "whenInUse"
    ALWAYS = "always"


class SensorReading(BaseModel):
    """A raw fix from the location sensor, before it is attributed to a user."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    altitude: Optional[float] = None
    horizontal_accuracy: float = Field(..., ge=0.0)
    vertical_accuracy: Optional[float] = None
    speed: Optional[float] = Field(None, description="m/s; negative or None when unknown")
    timestamp: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    def to_location(self, user_id: UUID, trip_id: Optional[UUID] = None) -> UserLocation:
        return UserLocation(
            user_id=user_id,
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            horizontal_accuracy=self.horizontal_accuracy,
            vertical_accuracy=self.vertical_accuracy,
            speed=self.speed if self.speed is not None and self.speed >= 0 else None,
            timestamp=self.timestamp,
            trip_id=trip_id,
        )


class SpeedTier(str, Enum):
    STATIONARY = "stationary"
    MOVING = "moving"
    FAST = "fast"


class SensorSettings(BaseModel):
    """Accuracy and minimum distance between updates, both in metres."""

    desired_accuracy: float = Field(..., gt=0)
    distance_filter: float = Field(..., ge=0)

    model_config = {"frozen": True}


class TrackingPolicy(BaseModel):
    """
    Battery/precision trade-off for continuous tracking.

    A stationary device gets coarse fixes and a wide distance filter; the
    faster it moves, the finer the accuracy and the more often it reports.
    """

    moving_threshold_mps: float = 1.0
    fast_threshold_mps: float = 15.0
    stationary: SensorSettings = SensorSettings(desired_accuracy=100.0, distance_filter=200.0)
    moving: SensorSettings = SensorSettings(desired_accuracy=10.0, distance_filter=25.0)
    fast: SensorSettings = SensorSettings(desired_accuracy=5.0, distance_filter=50.0)
    initial_tier: SpeedTier = SpeedTier.MOVING

    model_config = {"frozen": True}

    def tier_for(self, speed: Optional[float]) -> Optional[SpeedTier]:
        """Tier for a ground speed; None when the speed is unknown."""
        if speed is None or speed < 0:
            return None
        if speed >= self.fast_threshold_mps:
            return SpeedTier.FAST
        if speed >= self.moving_threshold_mps:
            return SpeedTier.MOVING
        return SpeedTier.STATIONARY

    def settings_for(self, tier: SpeedTier) -> SensorSettings:
        return {
            SpeedTier.STATIONARY: self.stationary,
            SpeedTier.MOVING: self.moving,
            SpeedTier.FAST: self.fast,
        }[tier]
