"""Tests for location models and the tracking policy."""

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.location.models import LocationPermissionStatus, SpeedTier, TrackingPolicy
from tests.conftest import make_reading


class TestPermissionStatus:
    @pytest.mark.parametrize(
        "status,authorized",
        [
            (LocationPermissionStatus.NOT_DETERMINED, False),
            (LocationPermissionStatus.RESTRICTED, False),
            (LocationPermissionStatus.DENIED, False),
            (LocationPermissionStatus.AUTHORIZED_WHEN_IN_USE, True),
            (LocationPermissionStatus.AUTHORIZED_ALWAYS, True),
        ],
    )
    def test_is_authorized(self, status, authorized):
        assert status.is_authorized is authorized


class TestSensorReading:
    def test_to_location(self):
        user_id, trip_id = uuid4(), uuid4()

        location = make_reading(speed=3.5).to_location(user_id, trip_id)

        assert location.user_id == user_id
        assert location.trip_id == trip_id
        assert location.speed == 3.5

    def test_negative_speed_means_unknown(self):
        assert make_reading(speed=-1.0).to_location(uuid4()).speed is None

    def test_rejects_out_of_range_latitude(self):
        with pytest.raises(ValidationError):
            make_reading(latitude=91.0)


class TestTrackingPolicy:
    @pytest.mark.parametrize(
        "speed,tier",
        [
            (None, None),
            (-1.0, None),
            (0.0, SpeedTier.STATIONARY),
            (0.99, SpeedTier.STATIONARY),
            (1.0, SpeedTier.MOVING),
            (14.9, SpeedTier.MOVING),
            (15.0, SpeedTier.FAST),
        ],
    )
    def test_tier_for(self, speed, tier):
        assert TrackingPolicy().tier_for(speed) == tier

    def test_faster_tiers_are_more_precise(self):
        policy = TrackingPolicy()
        stationary = policy.settings_for(SpeedTier.STATIONARY)
        fast = policy.settings_for(SpeedTier.FAST)

        assert fast.desired_accuracy < stationary.desired_accuracy
        assert fast.distance_filter < stationary.distance_filter
