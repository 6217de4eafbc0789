"""
Trip models.

Trip status is derived from the clock on every read and never stored.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from shared.models import Coordinate, DocumentModel, UTCDateTime, ensure_utc, utc_now


class TripStatus(str, Enum):
    """Where a trip sits relative to the current time."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    PAST = "past"

    @property
    def label(self) -> str:
        return {
            TripStatus.UPCOMING: "Upcoming",
            TripStatus.ACTIVE: "Active",
            TripStatus.PAST: "Completed",
        }[self]


def trip_status(now: datetime, start_date: datetime, end_date: datetime) -> TripStatus:
    """Active on [start, end] inclusive, upcoming before, past after."""
    now = ensure_utc(now)
    if now < start_date:
        return TripStatus.UPCOMING
    if now > end_date:
        return TripStatus.PAST
    return TripStatus.ACTIVE


class Trip(DocumentModel):
    """A planned trip of one group, stored under ``trips/<id>``."""

    id: UUID
    name: str
    location_name: str
    coordinate: Coordinate
    start_date: UTCDateTime
    end_date: UTCDateTime
    group_id: UUID
    admin_id: UUID
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=utc_now)
    updated_at: UTCDateTime = Field(default_factory=utc_now)

    def status_at(self, now: datetime) -> TripStatus:
        return trip_status(now, self.start_date, self.end_date)

    @property
    def status(self) -> TripStatus:
        return self.status_at(utc_now())

    @property
    def is_active(self) -> bool:
        return self.status == TripStatus.ACTIVE

    @property
    def is_upcoming(self) -> bool:
        return self.status == TripStatus.UPCOMING

    @property
    def is_past(self) -> bool:
        return self.status == TripStatus.PAST

    @property
    def status_text(self) -> str:
        return self.status.label

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)


class TripBuckets(BaseModel):
    """Trips grouped by status at one instant."""

    active: list[Trip] = Field(default_factory=list)
    upcoming: list[Trip] = Field(default_factory=list)
    past: list[Trip] = Field(default_factory=list)


def categorize(trips: list[Trip], now: Optional[datetime] = None) -> TripBuckets:
    """
    Split trips by status. Upcoming trips soonest first, past trips most
    recent first.
    """
    now = now or utc_now()
    buckets = TripBuckets()
    for trip in trips:
        status = trip.status_at(now)
        if status == TripStatus.ACTIVE:
            buckets.active.append(trip)
        elif status == TripStatus.UPCOMING:
            buckets.upcoming.append(trip)
        else:
            buckets.past.append(trip)
    buckets.active.sort(key=lambda t: t.end_date)
    buckets.upcoming.sort(key=lambda t: t.start_date)
    buckets.past.sort(key=lambda t: t.end_date, reverse=True)
    return buckets


def search_trips(trips: list[Trip], text: str) -> list[Trip]:
    """Case-insensitive match on trip name or location name."""
    needle = text.strip().casefold()
    if not needle:
        return list(trips)
    return [
        trip for trip in trips
        if needle in trip.name.casefold() or needle in trip.location_name.casefold()
    ]
