"""
Groups module.

Group CRUD and the membership state machine (add, remove, promote).

Public API:
- IGroupService: Interface for group operations
- GroupService: Document-store backed implementation
- Group: Group model
- Group exceptions: GroupNotFoundError, NotGroupAdminError, etc.
"""

from .interfaces import IGroupService
from .models import Group
from .service import GroupService
from .exceptions import (
    GroupError,
    GroupNotFoundError,
    NotGroupAdminError,
    GroupMemberNotFoundError,
    InvalidGroupDataError,
    GroupConflictError,
    GroupUnknownError,
)

__all__ = [
    # Interface
    "IGroupService",
    # Implementation
    "GroupService",
    # Models
    "Group",
    # Exceptions
    "GroupError",
    "GroupNotFoundError",
    "NotGroupAdminError",
    "GroupMemberNotFoundError",
    "InvalidGroupDataError",
    "GroupConflictError",
    "GroupUnknownError",
]
