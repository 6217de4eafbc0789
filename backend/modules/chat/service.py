"""
Chat service implementation.

Sending is two-phase: the message is written with status ``sending``, then
one batch marks it ``sent`` and updates the conversation's last message.
A failed second phase leaves the message marked ``failed`` so it can be
retried from the client.
"""

import asyncio
import logging
from typing import AsyncGenerator, Optional
from uuid import UUID, uuid4

from shared.config import Settings, get_settings
from shared.models import UserLocation, format_utc
from store.exceptions import DocumentStoreError, translate_store_errors
from store.interfaces import IDocumentStore
from store.live import LiveSequence
from store.models import BatchOperation, Collections, FilterOp, QueryFilter

from .exceptions import (
    ChatPermissionDeniedError,
    ChatUnknownError,
    ConversationNotFoundError,
    MediaUploadFailedError,
    MessageNotFoundError,
    MessageSendFailedError,
)
from .interfaces import IChatService, IMediaUploader
from .models import Conversation, MediaType, Message, MessageStatus

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 50


class ChatService(IChatService):
    """
    Chat service over the shared document store.

    Args:
        store: Shared document store
        uploader: Object storage for attachments
        settings: Optional settings override
    """

    def __init__(
        self,
        store: IDocumentStore,
        uploader: IMediaUploader,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._uploader = uploader
        self._settings = settings or get_settings()
        self._lock = asyncio.Lock()
        self._current_user_id: Optional[UUID] = None

    def set_current_user(self, user_id: Optional[UUID]) -> None:
        self._current_user_id = user_id

    def _require_user(self) -> UUID:
        if self._current_user_id is None:
            raise ChatPermissionDeniedError("no signed-in user")
        return self._current_user_id

    @staticmethod
    def _read_errors():
        return translate_store_errors(ChatUnknownError)

    @staticmethod
    def _send_errors():
        return translate_store_errors(MessageSendFailedError)

    async def _load_conversation(self, conversation_id: UUID) -> Conversation:
        conversation = await self._store.get_document(
            Collections.CONVERSATIONS, str(conversation_id), Conversation
        )
        if conversation is None:
            raise ConversationNotFoundError(str(conversation_id))
        return conversation

    async def _load_for_sending(self, conversation_id: UUID) -> tuple[UUID, Conversation]:
        sender_id = self._require_user()
        with self._send_errors():
            conversation = await self._load_conversation(conversation_id)
        if not conversation.is_participant(sender_id):
            raise ChatPermissionDeniedError(
                "sender is not a participant",
                {"conversation_id": str(conversation_id), "user_id": str(sender_id)},
            )
        return sender_id, conversation

    # -------------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------------

    async def create_conversation(self, participants: list[UUID]) -> Conversation:
        user_id = self._require_user()
        conversation = Conversation(id=uuid4(), participants=[user_id, *participants])

        async with self._lock:
            with self._read_errors():
                await self._store.set_document(
                    Collections.CONVERSATIONS, str(conversation.id), conversation
                )

        logger.info(
            f"Created conversation {conversation.id} with {len(conversation.participants)} participant(s)"
        )
        return conversation

    async def fetch_conversation(self, conversation_id: UUID) -> Conversation:
        with self._read_errors():
            return await self._load_conversation(conversation_id)

    async def fetch_conversations(self, user_id: UUID) -> list[Conversation]:
        with self._read_errors():
            conversations = await self._store.query_documents(
                Collections.CONVERSATIONS,
                Conversation,
                [QueryFilter(field="participants", value=str(user_id), op=FilterOp.ARRAY_CONTAINS)],
                limit=self._settings.max_query_limit,
            )
        return sorted(conversations, key=lambda c: c.updated_at, reverse=True)

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def _deliver(self, conversation: Conversation, message: Message) -> Message:
        """Persist as sending, then atomically mark sent and bump the conversation."""
        with self._send_errors():
            await self._store.set_document(Collections.MESSAGES, str(message.id), message)

        sent = message.with_status(MessageStatus.SENT)
        try:
            await self._store.perform_batch(
                [
                    BatchOperation.set_document(Collections.MESSAGES, str(sent.id), sent),
                    BatchOperation.update_fields(
                        Collections.CONVERSATIONS,
                        str(conversation.id),
                        {"lastMessage": sent.to_document(), "updatedAt": format_utc(sent.updated_at)},
                    ),
                ]
            )
        except DocumentStoreError as e:
            logger.warning(f"Delivery of message {message.id} failed: {e.message}")
            await self._mark_failed(message)
            raise MessageSendFailedError(
                "message could not be delivered",
                {"message_id": str(message.id), "cause": e.to_dict()},
            ) from e

        logger.info(f"Sent message {sent.id} to conversation {conversation.id}")
        return sent

    async def _mark_failed(self, message: Message) -> None:
        try:
            await self._store.set_document(
                Collections.MESSAGES, str(message.id), message.with_status(MessageStatus.FAILED)
            )
        except DocumentStoreError as e:
            logger.warning(f"Could not mark message {message.id} as failed: {e.message}")

    async def send_message(
        self,
        text: str,
        conversation_id: UUID,
        reply_to_id: Optional[UUID] = None,
    ) -> Message:
        text = text.strip()
        if not text:
            raise MessageSendFailedError("message text is empty")

        async with self._lock:
            sender_id, conversation = await self._load_for_sending(conversation_id)
            message = Message(
                id=uuid4(),
                conversation_id=conversation_id,
                sender_id=sender_id,
                text=text,
                reply_to_id=reply_to_id,
            )
            return await self._deliver(conversation, message)

    async def send_media(self, data: bytes, media_type: MediaType, conversation_id: UUID) -> Message:
        if not data:
            raise MediaUploadFailedError("payload is empty")

        async with self._lock:
            sender_id, conversation = await self._load_for_sending(conversation_id)
            message_id = uuid4()
            path = f"{conversation_id}/{message_id}.{media_type.file_extension}"
            timeout = self._settings.remote_timeout_seconds
            try:
                url = await asyncio.wait_for(
                    self._uploader.upload(path, data, media_type.content_type),
                    timeout=timeout,
                )
            except asyncio.TimeoutError as e:
                raise MediaUploadFailedError(f"upload timed out after {timeout:.1f}s") from e

            message = Message(
                id=message_id,
                conversation_id=conversation_id,
                sender_id=sender_id,
                media_url=url,
                media_type=media_type,
            )
            return await self._deliver(conversation, message)

    async def send_location(self, location: UserLocation, conversation_id: UUID) -> Message:
        async with self._lock:
            sender_id, conversation = await self._load_for_sending(conversation_id)
            message = Message(
                id=uuid4(),
                conversation_id=conversation_id,
                sender_id=sender_id,
                shared_location=location,
            )
            return await self._deliver(conversation, message)

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    async def edit_message(self, message_id: UUID, new_text: str) -> Message:
        user_id = self._require_user()
        new_text = new_text.strip()
        if not new_text:
            raise MessageSendFailedError("message text is empty")

        def apply(message: Message) -> Message:
            if message.is_deleted:
                raise MessageNotFoundError(str(message_id))
            if message.sender_id != user_id:
                raise ChatPermissionDeniedError("only the sender can edit a message")
            if not message.text:
                raise MessageSendFailedError("only text messages can be edited")
            return message.edited(new_text)

        async with self._lock:
            with self._send_errors():
                updated = await self._store.update_document(
                    Collections.MESSAGES, str(message_id), Message, apply
                )

        if updated is None:
            raise MessageNotFoundError(str(message_id))
        logger.info(f"Edited message {message_id}")
        return updated

    async def delete_message(self, message_id: UUID) -> Message:
        user_id = self._require_user()

        def apply(message: Message) -> Message:
            if message.sender_id != user_id:
                raise ChatPermissionDeniedError("only the sender can delete a message")
            if message.is_deleted:
                return message
            return message.soft_deleted()

        async with self._lock:
            with self._read_errors():
                updated = await self._store.update_document(
                    Collections.MESSAGES, str(message_id), Message, apply
                )

        if updated is None:
            raise MessageNotFoundError(str(message_id))
        logger.info(f"Deleted message {message_id}")
        return updated

    async def mark_read(self, message_id: UUID) -> Message:
        user_id = self._require_user()

        def apply(message: Message) -> Message:
            if message.sender_id == user_id or message.status == MessageStatus.READ:
                return message
            return message.with_status(MessageStatus.READ)

        async with self._lock:
            with self._read_errors():
                updated = await self._store.update_document(
                    Collections.MESSAGES, str(message_id), Message, apply
                )

        if updated is None:
            raise MessageNotFoundError(str(message_id))
        return updated

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    async def fetch_messages(self, conversation_id: UUID, limit: int = DEFAULT_FETCH_LIMIT) -> list[Message]:
        with self._read_errors():
            newest_first = await self._store.query_documents(
                Collections.MESSAGES,
                Message,
                [QueryFilter(field="conversationId", value=str(conversation_id))],
                limit=limit,
                order_by="createdAt",
                descending=True,
            )
        return sorted(newest_first, key=lambda m: (m.created_at, str(m.id)))

    def listen_to_messages(self, conversation_id: UUID) -> LiveSequence[Message]:
        source = self._store.listen_to_collection(
            Collections.MESSAGES,
            Message,
            [QueryFilter(field="conversationId", value=str(conversation_id))],
        )

        async def arrivals() -> AsyncGenerator[Message, None]:
            delivered: dict[UUID, Message] = {}
            try:
                async for messages in source:
                    for message in sorted(messages, key=lambda m: (m.created_at, str(m.id))):
                        if delivered.get(message.id) != message:
                            delivered[message.id] = message
                            yield message
            finally:
                await source.aclose()

        return LiveSequence(arrivals(), name=f"messages/{conversation_id}")


# Verify the implementation satisfies the interface
def _verify_interface(store: IDocumentStore, uploader: IMediaUploader) -> IChatService:
    """Type check that ChatService implements IChatService."""
    service: IChatService = ChatService(store, uploader)
    return service
