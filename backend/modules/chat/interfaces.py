"""
Chat module interfaces.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from shared.models import UserLocation
from store.live import LiveSequence

from .models import Conversation, MediaType, Message


@runtime_checkable
class IMediaUploader(Protocol):
    """Binary object storage for chat attachments."""

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Store a payload.

        Args:
            path: Object path, unique per message
            data: Raw bytes
            content_type: MIME type of the payload

        Returns:
            A durable URL for the stored object

        Raises:
            MediaUploadFailedError: If the payload could not be stored
        """
        ...


@runtime_checkable
class IChatService(Protocol):
    """
    Interface for conversations and messages.

    Operations run on behalf of the user bound with ``set_current_user``.
    """

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        ...

    async def create_conversation(self, participants: list[UUID]) -> Conversation:
        """Start a conversation; the current user is always a participant."""
        ...

    async def fetch_conversation(self, conversation_id: UUID) -> Conversation:
        """
        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        ...

    async def fetch_conversations(self, user_id: UUID) -> list[Conversation]:
        """Conversations the user takes part in, most recently active first."""
        ...

    async def send_message(
        self,
        text: str,
        conversation_id: UUID,
        reply_to_id: Optional[UUID] = None,
    ) -> Message:
        """
        Send a text message.

        Returns:
            The message with status ``sent``

        Raises:
            MessageSendFailedError: If the text is blank or the write fails
            ConversationNotFoundError: If the conversation does not exist
            ChatPermissionDeniedError: If the sender is not a participant
        """
        ...

    async def send_media(self, data: bytes, media_type: MediaType, conversation_id: UUID) -> Message:
        """
        Upload an attachment, then send a message referencing it.

        Raises:
            MediaUploadFailedError: If the upload stage fails
            MessageSendFailedError: If the message write fails after upload
        """
        ...

    async def send_location(self, location: UserLocation, conversation_id: UUID) -> Message:
        """Send a message sharing a location."""
        ...

    async def edit_message(self, message_id: UUID, new_text: str) -> Message:
        """
        Replace a message's text and mark it edited.

        Raises:
            MessageNotFoundError: If the message does not exist or was deleted
            ChatPermissionDeniedError: If the current user did not send it
        """
        ...

    async def delete_message(self, message_id: UUID) -> Message:
        """Soft-delete a message: content is cleared, the record stays."""
        ...

    async def mark_read(self, message_id: UUID) -> Message:
        """Mark a message from another user as read."""
        ...

    async def fetch_messages(self, conversation_id: UUID, limit: int = 50) -> list[Message]:
        """The latest ``limit`` messages in ascending creation order."""
        ...

    def listen_to_messages(self, conversation_id: UUID) -> LiveSequence[Message]:
        """
        Live sequence of messages as they arrive or change.

        A message already returned by ``fetch_messages`` may be delivered
        again; merge with ``merge_messages``.
        """
        ...
