"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
fast settings, an in-memory document backend, a store with a controllable
clock, and every service wired around that one store.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import jwt  # PyJWT
import pytest

from shared.config import Settings, reset_settings_cache
from shared.models import User, UserLocation
from store.document_store import DocumentStore
from store.memory_backend import InMemoryDocumentBackend

from modules.auth.identity import InMemoryIdentityProvider
from modules.auth.service import AuthService
from modules.chat.media import InMemoryMediaUploader
from modules.chat.service import ChatService
from modules.groups.service import GroupService
from modules.location.models import LocationPermissionStatus, SensorReading
from modules.location.sensor import SimulatedLocationSensor
from modules.location.service import LocationService
from modules.trips.service import TripService


# Signing key for test tokens only; expiry is read without verification.
TEST_JWT_SECRET = "test-secret-key-for-testing-only"


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    lifetime: timedelta = timedelta(hours=1),
) -> str:
    """
    Create a Supabase-style access token.

    Args:
        user_id: Subject of the token
        email: Email claim
        expired: If True, the token expired an hour ago
        lifetime: Time until expiry for a valid token

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + lifetime

    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_reading(
    latitude: float = 37.7749,
    longitude: float = -122.4194,
    speed: Optional[float] = None,
    accuracy: float = 10.0,
) -> SensorReading:
    return SensorReading(
        latitude=latitude,
        longitude=longitude,
        horizontal_accuracy=accuracy,
        speed=speed,
    )


def make_location(user_id: UUID, latitude: float = 37.7749, longitude: float = -122.4194) -> UserLocation:
    return UserLocation(
        user_id=user_id,
        latitude=latitude,
        longitude=longitude,
        horizontal_accuracy=10.0,
    )


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings before and after each test."""
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Settings with short waits and no backoff delay."""
    return Settings(
        _env_file=None,
        document_backend="memory",
        remote_timeout_seconds=0.5,
        remote_max_retries=2,
        remote_initial_backoff_seconds=0.0,
        remote_max_backoff_seconds=0.0,
        listener_poll_interval_seconds=0.01,
        location_fix_timeout_seconds=0.2,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> InMemoryDocumentBackend:
    return InMemoryDocumentBackend()


@pytest.fixture
def store(backend, settings, clock) -> DocumentStore:
    return DocumentStore(backend, settings, clock=clock)


@pytest.fixture
def alice_id() -> UUID:
    return uuid4()


@pytest.fixture
def bob_id() -> UUID:
    return uuid4()


@pytest.fixture
def carol_id() -> UUID:
    return uuid4()


@pytest.fixture
def alice(alice_id) -> User:
    return User(id=alice_id, name="Alice", email="alice@example.com")


@pytest.fixture
def group_service(store, settings) -> GroupService:
    return GroupService(store, settings)


@pytest.fixture
def trip_service(store, group_service, settings) -> TripService:
    return TripService(store, group_service, settings)


@pytest.fixture
def uploader() -> InMemoryMediaUploader:
    return InMemoryMediaUploader()


@pytest.fixture
def chat_service(store, uploader, settings) -> ChatService:
    return ChatService(store, uploader, settings)


@pytest.fixture
def sensor() -> SimulatedLocationSensor:
    return SimulatedLocationSensor(status=LocationPermissionStatus.AUTHORIZED_WHEN_IN_USE)


@pytest.fixture
def location_service(store, sensor, settings) -> LocationService:
    return LocationService(store, sensor, settings)


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def auth_service(store, identity, settings) -> AuthService:
    return AuthService(store, identity, settings)
