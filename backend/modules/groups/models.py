"""
Group models.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, ValidationInfo, field_validator

from shared.models import DocumentModel, UTCDateTime, unique_ids, utc_now


class Group(DocumentModel):
    """
    A set of users with exactly one admin, stored under ``groups/<id>``.

    ``member_ids`` never contains the admin; the admin is counted through
    ``all_member_ids``.
    """

    id: UUID
    name: str
    admin_id: UUID
    member_ids: list[UUID] = Field(default_factory=list)
    avatar_url: Optional[str] = None
    description: Optional[str] = None
    created_at: UTCDateTime = Field(default_factory=utc_now)
    updated_at: UTCDateTime = Field(default_factory=utc_now)

    @field_validator("member_ids")
    @classmethod
    def _normalize_members(cls, value: list[UUID], info: ValidationInfo) -> list[UUID]:
        admin_id = info.data.get("admin_id")
        return [m for m in unique_ids(value) if m != admin_id]

    @property
    def member_count(self) -> int:
        return len(self.member_ids)

    @property
    def all_member_ids(self) -> list[UUID]:
        return [*self.member_ids, self.admin_id]

    @property
    def has_avatar(self) -> bool:
        return bool(self.avatar_url)

    def is_admin(self, user_id: UUID) -> bool:
        return user_id == self.admin_id

    def is_member(self, user_id: UUID) -> bool:
        return user_id in self.all_member_ids

    def adding(self, user_id: UUID, now: Optional[datetime] = None) -> "Group":
        """Copy with ``user_id`` as a member; unchanged if already in the group."""
        if self.is_member(user_id):
            return self
        return self.model_copy(
            update={"member_ids": [*self.member_ids, user_id], "updated_at": now or utc_now()}
        )

    def removing(self, user_id: UUID, now: Optional[datetime] = None) -> "Group":
        """Copy without ``user_id`` in the member list; the admin is unaffected."""
        if user_id not in self.member_ids:
            return self
        return self.model_copy(
            update={
                "member_ids": [m for m in self.member_ids if m != user_id],
                "updated_at": now or utc_now(),
            }
        )

    def promoting_to_admin(self, user_id: UUID, now: Optional[datetime] = None) -> "Group":
        """Copy with ``user_id`` as admin and the former admin as a regular member."""
        if user_id == self.admin_id:
            return self
        members = [m for m in self.member_ids if m != user_id]
        members.append(self.admin_id)
        return self.model_copy(
            update={
                "admin_id": user_id,
                "member_ids": members,
                "updated_at": now or utc_now(),
            }
        )
