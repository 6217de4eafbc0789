"""
Service wiring.

Builds every domain service around a single DocumentStore, so all of them
share one cache and one set of per-document locks. Callers depend on the
interfaces; swapping an implementation only changes this file.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from shared.config import Settings, get_settings
from shared.database import get_supabase_client
from store.document_store import DocumentStore
from store.factory import get_document_backend
from store.interfaces import IDocumentBackend

from modules.auth.identity import InMemoryIdentityProvider
from modules.auth.interfaces import IAuthService, IIdentityProvider
from modules.auth.service import AuthService
from modules.chat.interfaces import IChatService, IMediaUploader
from modules.chat.media import InMemoryMediaUploader, SupabaseStorageUploader
from modules.chat.service import ChatService
from modules.groups.interfaces import IGroupService
from modules.groups.service import GroupService
from modules.location.interfaces import ILocationSensor, ILocationService
from modules.location.sensor import SimulatedLocationSensor
from modules.location.service import LocationService
from modules.navigation.service import NavigationLauncher
from modules.trips.interfaces import ITripService
from modules.trips.service import TripService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Every service of one app session, sharing ``store``."""

    settings: Settings
    store: DocumentStore
    auth: IAuthService
    location: ILocationService
    groups: IGroupService
    trips: ITripService
    chat: IChatService
    navigation: NavigationLauncher

    def bind_user(self, user_id: Optional[UUID]) -> None:
        """Act as ``user_id`` in every service that checks ownership."""
        self.groups.set_current_user(user_id)
        self.trips.set_current_user(user_id)
        self.chat.set_current_user(user_id)
        self.location.bind_user(user_id)

    async def shutdown(self) -> None:
        await self.location.stop_tracking()
        self.store.clear_cache()


def build_container(
    settings: Optional[Settings] = None,
    backend: Optional[IDocumentBackend] = None,
    sensor: Optional[ILocationSensor] = None,
    identity: Optional[IIdentityProvider] = None,
    uploader: Optional[IMediaUploader] = None,
) -> ServiceContainer:
    """
    Wire the services.

    Collaborators that are not given are chosen from
    ``settings.document_backend``: in-memory variants for ``memory``,
    Supabase ones for ``supabase``.

    Raises:
        ValueError: If the Supabase backend is selected without an
            identity provider (the sign-in flow is device-specific)
    """
    settings = settings or get_settings()
    backend = backend or get_document_backend(settings)
    remote = settings.document_backend == "supabase"

    if identity is None:
        if remote:
            raise ValueError("An identity provider is required with the supabase backend")
        identity = InMemoryIdentityProvider()

    if uploader is None:
        if remote:
            uploader = SupabaseStorageUploader(
                get_supabase_client(settings), bucket=settings.supabase_media_bucket
            )
        else:
            uploader = InMemoryMediaUploader()

    store = DocumentStore(backend, settings)
    groups = GroupService(store, settings)

    container = ServiceContainer(
        settings=settings,
        store=store,
        auth=AuthService(store, identity, settings),
        location=LocationService(store, sensor or SimulatedLocationSensor(), settings),
        groups=groups,
        trips=TripService(store, groups, settings),
        chat=ChatService(store, uploader, settings),
        navigation=NavigationLauncher(),
    )
    logger.info(f"Built {settings.app_name} services ({settings.document_backend} backend)")
    return container
