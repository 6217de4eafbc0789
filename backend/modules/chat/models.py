"""
Chat models.
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from shared.models import DocumentModel, UserLocation, UTCDateTime, unique_ids, utc_now


DELETED_MESSAGE_TEXT = "This message was deleted"


class MessageStatus(str, Enum):
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    VOICE = "voice"
    LOCATION = "location"

    @property
    def label(self) -> str:
        return {
            MediaType.IMAGE: "📷 Photo",
            MediaType.VIDEO: "🎥 Video",
            MediaType.VOICE: "🎙️ Voice message",
            MediaType.LOCATION: "📍 Location",
        }[self]

    @property
    def content_type(self) -> str:
        return {
            MediaType.IMAGE: "image/jpeg",
            MediaType.VIDEO: "video/mp4",
            MediaType.VOICE: "audio/mp4",
            MediaType.LOCATION: "application/octet-stream",
        }[self]

    @property
    def file_extension(self) -> str:
        return {
            MediaType.IMAGE: "jpg",
            MediaType.VIDEO: "mp4",
            MediaType.VOICE: "m4a",
            MediaType.LOCATION: "bin",
        }[self]


class Message(DocumentModel):
    """
    One chat message, stored under ``messages/<id>``.

    A message's content is its text, a media attachment, or a shared
    location. Deleted messages keep their place and timestamps but lose
    their content.
    """

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    text: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None
    shared_location: Optional[UserLocation] = None
    status: MessageStatus = MessageStatus.SENDING
    is_edited: bool = False
    is_deleted: bool = False
    reply_to_id: Optional[UUID] = None
    created_at: UTCDateTime = Field(default_factory=utc_now)
    updated_at: UTCDateTime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_content(self) -> "Message":
        kinds = sum((bool(self.text), self.media_url is not None, self.shared_location is not None))
        if self.is_deleted:
            if kinds or self.media_type is not None:
                raise ValueError("a deleted message keeps no content")
        elif kinds != 1:
            raise ValueError("a message holds exactly one of text, media or a shared location")
        if (self.media_url is None) != (self.media_type is None):
            raise ValueError("media_url and media_type must be set together")
        return self

    @property
    def has_media(self) -> bool:
        return self.media_url is not None

    @property
    def has_location(self) -> bool:
        return self.shared_location is not None

    @property
    def is_text_only(self) -> bool:
        return bool(self.text) and not self.has_media and not self.has_location

    @property
    def is_reply(self) -> bool:
        return self.reply_to_id is not None

    @property
    def display_text(self) -> str:
        if self.is_deleted:
            return DELETED_MESSAGE_TEXT
        if self.text:
            return self.text
        if self.has_media:
            return self.media_type.label if self.media_type else "Media"
        if self.has_location:
            return "📍 Shared location"
        return ""

    def with_status(self, status: MessageStatus, now: Optional[datetime] = None) -> "Message":
        return self.model_copy(update={"status": status, "updated_at": now or utc_now()})

    def edited(self, text: str, now: Optional[datetime] = None) -> "Message":
        return self.model_copy(
            update={"text": text, "is_edited": True, "updated_at": now or utc_now()}
        )

    def soft_deleted(self, now: Optional[datetime] = None) -> "Message":
        return self.model_copy(
            update={
                "is_deleted": True,
                "text": None,
                "media_url": None,
                "media_type": None,
                "shared_location": None,
                "updated_at": now or utc_now(),
            }
        )


class Conversation(DocumentModel):
    """A chat thread between participants, stored under ``conversations/<id>``."""

    id: UUID
    participants: list[UUID]
    last_message: Optional[Message] = None
    created_at: UTCDateTime = Field(default_factory=utc_now)
    updated_at: UTCDateTime = Field(default_factory=utc_now)

    @field_validator("participants")
    @classmethod
    def _check_participants(cls, value: list[UUID]) -> list[UUID]:
        value = unique_ids(value)
        if not value:
            raise ValueError("a conversation needs at least one participant")
        return value

    def is_participant(self, user_id: UUID) -> bool:
        return user_id in self.participants


def merge_messages(existing: Iterable[Message], incoming: Iterable[Message]) -> list[Message]:
    """
    Merge newly received messages into a timeline.

    Messages are de-duplicated by id (the incoming copy wins) and ordered
    by creation time.
    """
    by_id = {message.id: message for message in existing}
    for message in incoming:
        by_id[message.id] = message
    return sorted(by_id.values(), key=lambda m: (m.created_at, str(m.id)))
