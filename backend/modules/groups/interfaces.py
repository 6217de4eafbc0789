"""
Groups module interface.

Other modules should depend on IGroupService, not the concrete implementation.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from store.live import LiveSequence

from .models import Group


@runtime_checkable
class IGroupService(Protocol):
    """
    Interface for group CRUD and membership.

    Admin-only operations are checked against the stored group and the
    user bound with ``set_current_user``.
    """

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        """Bind the user on whose behalf operations run (None to unbind)."""
        ...

    async def create_group(self, group: Group) -> Group:
        """
        Create a group.

        Args:
            group: The group to create; a sentinel id is replaced

        Returns:
            The stored group

        Raises:
            InvalidGroupDataError: If the name is blank
        """
        ...

    async def update_group(self, group: Group) -> Group:
        """
        Update a group's name, description and avatar.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotGroupAdminError: If the current user is not the stored admin
        """
        ...

    async def delete_group(self, group_id: UUID) -> None:
        """
        Delete a group.

        Raises:
            GroupNotFoundError: If the group does not exist
            NotGroupAdminError: If the current user is not the admin
        """
        ...

    async def add_member(self, user_id: UUID, group_id: UUID) -> Group:
        """Add a member. No-op if the user is already a member or the admin."""
        ...

    async def remove_member(self, user_id: UUID, group_id: UUID) -> Optional[Group]:
        """
        Remove a member; the group is deleted when no members remain.

        Returns:
            The updated group, or None if the removal deleted it

        Raises:
            NotGroupAdminError: If the caller is not the admin, or targets the admin
            GroupMemberNotFoundError: If the user is not a member
        """
        ...

    async def promote_to_admin(self, user_id: UUID, group_id: UUID) -> Group:
        """
        Make a member the admin; the former admin becomes a regular member.

        Raises:
            NotGroupAdminError: If the caller is not the admin
            GroupMemberNotFoundError: If the user is not a member
        """
        ...

    async def fetch_group(self, group_id: UUID) -> Group:
        """
        Get a group by id.

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        ...

    async def fetch_groups(self, user_id: UUID) -> list[Group]:
        """All groups the user administers or belongs to."""
        ...

    def listen_to_group(self, group_id: UUID) -> LiveSequence[Optional[Group]]:
        """Live snapshots of one group (None once deleted)."""
        ...

    def listen_to_user_groups(self, user_id: UUID) -> LiveSequence[list[Group]]:
        """Live list of the groups a user administers or belongs to."""
        ...
