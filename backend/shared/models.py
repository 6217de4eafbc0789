"""
Shared data models used across modules.

These are the entities more than one service reads: users and their
locations, plus the serialization conventions every stored document uses.
Module-specific models should stay in their respective module directories.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Iterable, Optional, Union
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel


# All-zero id meaning "not yet assigned"; services replace it on create.
SENTINEL_ID = UUID(int=0)

RECENT_LOCATION_WINDOW = timedelta(seconds=300)
ACCURATE_LOCATION_METERS = 50.0
EARTH_RADIUS_METERS = 6_371_008.8


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_utc(value: datetime) -> str:
    """
    Serialize a datetime in fixed-width UTC ISO-8601.

    Every stored timestamp has the same width, so string comparison in
    range filters orders them chronologically.
    """
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


UTCDateTime = Annotated[
    datetime,
    AfterValidator(ensure_utc),
    PlainSerializer(format_utc, return_type=str, when_used="json"),
]


def unique_ids(values: Iterable[UUID]) -> list[UUID]:
    """De-duplicate ids keeping first-seen order."""
    seen: set[UUID] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class DocumentModel(BaseModel):
    """
    Base for every entity persisted in the document store.

    Stored with camelCase keys; both field names and aliases are accepted
    when decoding. Instances are immutable, helpers return updated copies.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """Plain JSON-compatible record for the remote store."""
        return self.model_dump(mode="json", by_alias=True)


class Coordinate(BaseModel):
    """A WGS84 latitude/longitude pair."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = {"frozen": True}


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in metres."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


class UserLocation(DocumentModel):
    """A location fix published by a user, stored under ``locations/<userId>``."""

    user_id: UUID
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    altitude: Optional[float] = None
    horizontal_accuracy: float = Field(..., ge=0.0)
    vertical_accuracy: Optional[float] = None
    speed: Optional[float] = Field(None, description="Ground speed in m/s, when known")
    timestamp: UTCDateTime = Field(default_factory=utc_now)
    trip_id: Optional[UUID] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    @property
    def is_accurate(self) -> bool:
        return self.horizontal_accuracy < ACCURATE_LOCATION_METERS

    def is_recent(self, now: Optional[datetime] = None) -> bool:
        """True while the fix is younger than five minutes."""
        now = ensure_utc(now) if now else utc_now()
        return now - self.timestamp < RECENT_LOCATION_WINDOW

    def distance_to(self, other: Union["UserLocation", Coordinate]) -> float:
        target = other.coordinate if isinstance(other, UserLocation) else other
        return haversine_meters(self.coordinate, target)

    @staticmethod
    def format_distance(meters: float) -> str:
        if meters < 1000:
            return f"{meters:.0f} m"
        return f"{meters / 1000:.1f} km"


class User(DocumentModel):
    """An account, stored under ``users/<id>``."""

    id: UUID
    name: str = ""
    email: str = ""
    phone_number: Optional[str] = None
    avatar_url: Optional[str] = None
    current_location: Optional[UserLocation] = None
    group_ids: list[UUID] = Field(default_factory=list)
    is_online: bool = False
    last_seen: Optional[UTCDateTime] = None
    is_ghost_mode: bool = False
    blocked_user_ids: list[UUID] = Field(default_factory=list)
    created_at: UTCDateTime = Field(default_factory=utc_now)
    updated_at: UTCDateTime = Field(default_factory=utc_now)

    @field_validator("group_ids", "blocked_user_ids")
    @classmethod
    def _dedupe(cls, value: list[UUID]) -> list[UUID]:
        return unique_ids(value)

    @property
    def display_name(self) -> str:
        return self.name.strip() or "Unknown User"

    @property
    def has_avatar(self) -> bool:
        return bool(self.avatar_url)

    @property
    def is_location_visible(self) -> bool:
        return not self.is_ghost_mode and self.current_location is not None

    @property
    def visible_location(self) -> Optional[UserLocation]:
        """The location other users may see; hidden entirely in ghost mode."""
        return self.current_location if self.is_location_visible else None

    def is_blocked(self, user_id: UUID) -> bool:
        return user_id in self.blocked_user_ids

    def belongs_to_group(self, group_id: UUID) -> bool:
        return group_id in self.group_ids

    def with_ghost_mode(self, enabled: bool, now: Optional[datetime] = None) -> "User":
        return self.model_copy(update={"is_ghost_mode": enabled, "updated_at": now or utc_now()})

    def blocking(self, user_id: UUID, now: Optional[datetime] = None) -> "User":
        if self.is_blocked(user_id):
            return self
        return self.model_copy(
            update={
                "blocked_user_ids": [*self.blocked_user_ids, user_id],
                "updated_at": now or utc_now(),
            }
        )

    def unblocking(self, user_id: UUID, now: Optional[datetime] = None) -> "User":
        if not self.is_blocked(user_id):
            return self
        return self.model_copy(
            update={
                "blocked_user_ids": [u for u in self.blocked_user_ids if u != user_id],
                "updated_at": now or utc_now(),
            }
        )

    def with_presence(self, is_online: bool, now: Optional[datetime] = None) -> "User":
        now = now or utc_now()
        return self.model_copy(update={"is_online": is_online, "last_seen": now, "updated_at": now})
