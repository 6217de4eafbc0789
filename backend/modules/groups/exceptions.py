"""
Groups module exceptions.

Every error carries a user-facing message; transport details, when any,
are kept in ``details``.
"""

from typing import Any, Optional

from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    MapChatError,
    NotFoundError,
    ValidationError,
)


class GroupError(MapChatError):
    """Base exception for group-related errors."""

    pass


class GroupNotFoundError(GroupError, NotFoundError):
    """Raised when a group does not exist."""

    def __init__(self, group_id: str):
        super().__init__(
            "Group not found",
            code="GROUP_NOT_FOUND",
            details={"group_id": group_id},
        )


class NotGroupAdminError(GroupError, AuthorizationError):
    """Raised when a non-admin attempts an admin-only operation."""

    def __init__(self, group_id: str, user_id: Optional[str] = None):
        super().__init__(
            "Admin permission required",
            code="NOT_GROUP_ADMIN",
            details={"group_id": group_id, "user_id": user_id},
        )


class GroupMemberNotFoundError(GroupError, NotFoundError):
    """Raised when the target user is not a member of the group."""

    def __init__(self, group_id: str, user_id: str):
        super().__init__(
            "Member not found in group",
            code="GROUP_MEMBER_NOT_FOUND",
            details={"group_id": group_id, "user_id": user_id},
        )


class InvalidGroupDataError(GroupError, ValidationError):
    """Raised when a group fails local validation."""

    def __init__(self, reason: str):
        super().__init__(
            "Invalid group data",
            code="INVALID_GROUP_DATA",
            details={"reason": reason},
        )


class GroupConflictError(GroupError, ConflictError):
    """Raised when concurrent writers keep invalidating a group update."""

    def __init__(self, group_id: str):
        super().__init__(
            "Conflict detected, please try again",
            code="GROUP_CONFLICT",
            details={"group_id": group_id},
        )


class GroupUnknownError(GroupError):
    """Raised for failures outside the other group error kinds."""

    def __init__(self, detail: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Group error: {detail}",
            code="GROUP_UNKNOWN",
            details=details,
        )
