"""
Group service implementation.

Membership changes are single read-modify-write transactions on the group
document, so concurrent adds and promotions never lose each other's work.
"""

import asyncio
import logging
from typing import AsyncGenerator, Iterable, Optional
from uuid import UUID, uuid4

from shared.config import Settings, get_settings
from shared.models import SENTINEL_ID, utc_now
from store.exceptions import translate_store_errors
from store.interfaces import IDocumentStore
from store.live import LiveSequence, combine_latest
from store.models import Collections, FilterOp, QueryFilter

from .exceptions import (
    GroupConflictError,
    GroupMemberNotFoundError,
    GroupNotFoundError,
    GroupUnknownError,
    InvalidGroupDataError,
    NotGroupAdminError,
)
from .interfaces import IGroupService
from .models import Group

logger = logging.getLogger(__name__)


def _merge_groups(*group_lists: Iterable[Group]) -> list[Group]:
    by_id: dict[UUID, Group] = {}
    for groups in group_lists:
        for group in groups:
            by_id[group.id] = group
    return sorted(by_id.values(), key=lambda g: (g.name.casefold(), str(g.id)))


class GroupService(IGroupService):
    """
    Group service over the shared document store.

    Mutating operations are serialized by one lock per service instance.
    """

    def __init__(self, store: IDocumentStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()
        self._lock = asyncio.Lock()
        self._current_user_id: Optional[UUID] = None

    @property
    def current_user_id(self) -> Optional[UUID]:
        return self._current_user_id

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        self._current_user_id = user_id

    def _errors(self, group_id: UUID):
        return translate_store_errors(
            GroupUnknownError,
            conflict_error=lambda: GroupConflictError(str(group_id)),
        )

    @staticmethod
    def _validate(group: Group) -> None:
        if not group.name.strip():
            raise InvalidGroupDataError("name is blank")

    def _require_admin(self, group: Group) -> None:
        user_id = self._current_user_id
        if user_id is None or not group.is_admin(user_id):
            raise NotGroupAdminError(str(group.id), str(user_id) if user_id else None)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def create_group(self, group: Group) -> Group:
        self._validate(group)
        if group.id == SENTINEL_ID:
            group = group.model_copy(update={"id": uuid4()})

        async with self._lock:
            with self._errors(group.id):
                await self._store.set_document(Collections.GROUPS, str(group.id), group)

        logger.info(f"Created group {group.id} with admin {group.admin_id}")
        return group

    async def update_group(self, group: Group) -> Group:
        self._validate(group)

        def apply(stored: Group) -> Group:
            self._require_admin(stored)
            return stored.model_copy(
                update={
                    "name": group.name,
                    "description": group.description,
                    "avatar_url": group.avatar_url,
                    "updated_at": utc_now(),
                }
            )

        async with self._lock:
            with self._errors(group.id):
                updated = await self._store.update_document(
                    Collections.GROUPS, str(group.id), Group, apply
                )

        if updated is None:
            raise GroupNotFoundError(str(group.id))
        logger.info(f"Updated group {group.id}")
        return updated

    async def delete_group(self, group_id: UUID) -> None:
        async with self._lock:
            with self._errors(group_id):
                stored = await self._store.get_document(Collections.GROUPS, str(group_id), Group)
                if stored is None:
                    raise GroupNotFoundError(str(group_id))
                self._require_admin(stored)
                await self._store.delete_document(Collections.GROUPS, str(group_id))

        logger.info(f"Deleted group {group_id}")

    async def fetch_group(self, group_id: UUID) -> Group:
        with self._errors(group_id):
            group = await self._store.get_document(Collections.GROUPS, str(group_id), Group)
        if group is None:
            raise GroupNotFoundError(str(group_id))
        return group

    async def fetch_groups(self, user_id: UUID) -> list[Group]:
        limit = self._settings.max_query_limit
        with translate_store_errors(GroupUnknownError):
            administered = await self._store.query_documents(
                Collections.GROUPS, Group, self._admin_filter(user_id), limit=limit
            )
            joined = await self._store.query_documents(
                Collections.GROUPS, Group, self._member_filter(user_id), limit=limit
            )
        return _merge_groups(administered, joined)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def add_member(self, user_id: UUID, group_id: UUID) -> Group:
        async with self._lock:
            with self._errors(group_id):
                updated = await self._store.update_document(
                    Collections.GROUPS,
                    str(group_id),
                    Group,
                    lambda group: group.adding(user_id),
                )

        if updated is None:
            raise GroupNotFoundError(str(group_id))
        logger.info(f"Added {user_id} to group {group_id}")
        return updated

    async def remove_member(self, user_id: UUID, group_id: UUID) -> Optional[Group]:
        def apply(group: Group) -> Group:
            self._require_admin(group)
            if group.is_admin(user_id):
                raise NotGroupAdminError(str(group_id), str(user_id))
            if user_id not in group.member_ids:
                raise GroupMemberNotFoundError(str(group_id), str(user_id))
            return group.removing(user_id)

        async with self._lock:
            with self._errors(group_id):
                updated = await self._store.update_document(
                    Collections.GROUPS, str(group_id), Group, apply
                )
                if updated is None:
                    raise GroupNotFoundError(str(group_id))

                if updated.member_count == 0:
                    await self._store.delete_document(Collections.GROUPS, str(group_id))
                    logger.info(f"Removed {user_id} from group {group_id}; group was empty and deleted")
                    return None

        logger.info(f"Removed {user_id} from group {group_id}")
        return updated

    async def promote_to_admin(self, user_id: UUID, group_id: UUID) -> Group:
        def apply(group: Group) -> Group:
            self._require_admin(group)
            if user_id not in group.member_ids:
                raise GroupMemberNotFoundError(str(group_id), str(user_id))
            return group.promoting_to_admin(user_id)

        async with self._lock:
            with self._errors(group_id):
                updated = await self._store.update_document(
                    Collections.GROUPS, str(group_id), Group, apply
                )

        if updated is None:
            raise GroupNotFoundError(str(group_id))
        logger.info(f"Promoted {user_id} to admin of group {group_id}")
        return updated

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def listen_to_group(self, group_id: UUID) -> LiveSequence[Optional[Group]]:
        return self._store.listen_to_document(Collections.GROUPS, str(group_id), Group)

    def listen_to_user_groups(self, user_id: UUID) -> LiveSequence[list[Group]]:
        combined = combine_latest(
            self._store.listen_to_collection(Collections.GROUPS, Group, self._admin_filter(user_id)),
            self._store.listen_to_collection(Collections.GROUPS, Group, self._member_filter(user_id)),
            name=f"user-groups/{user_id}",
        )

        async def merged() -> AsyncGenerator[list[Group], None]:
            try:
                async for administered, joined in combined:
                    yield _merge_groups(administered, joined)
            finally:
                await combined.aclose()

        return LiveSequence(merged(), name=combined.name)

    @staticmethod
    def _admin_filter(user_id: UUID) -> list[QueryFilter]:
        return [QueryFilter(field="adminId", value=str(user_id))]

    @staticmethod
    def _member_filter(user_id: UUID) -> list[QueryFilter]:
        return [QueryFilter(field="memberIds", value=str(user_id), op=FilterOp.ARRAY_CONTAINS)]


# Verify the implementation satisfies the interface
def _verify_interface(store: IDocumentStore) -> IGroupService:
    """Type check that GroupService implements IGroupService."""
    service: IGroupService = GroupService(store)
    return service
