"""
Chat module.

Conversations, message sending (text, media, location), edits, soft
deletes and live message delivery.

Public API:
- IChatService: Interface for chat operations
- IMediaUploader: Interface for attachment storage
- ChatService: Document-store backed implementation
- InMemoryMediaUploader / SupabaseStorageUploader: Uploader variants
- Message, Conversation, MessageStatus, MediaType: Models
- merge_messages: Timeline de-duplication and ordering
- Chat exceptions: MessageSendFailedError, MediaUploadFailedError, etc.
"""

from .interfaces import IChatService, IMediaUploader
from .models import (
    Conversation,
    MediaType,
    Message,
    MessageStatus,
    DELETED_MESSAGE_TEXT,
    merge_messages,
)
from .media import InMemoryMediaUploader, SupabaseStorageUploader
from .service import ChatService
from .exceptions import (
    ChatError,
    ConversationNotFoundError,
    MessageNotFoundError,
    MessageSendFailedError,
    MediaUploadFailedError,
    EncryptionFailedError,
    ChatPermissionDeniedError,
    ChatUnknownError,
)

__all__ = [
    # Interfaces
    "IChatService",
    "IMediaUploader",
    # Implementations
    "ChatService",
    "InMemoryMediaUploader",
    "SupabaseStorageUploader",
    # Models
    "Conversation",
    "MediaType",
    "Message",
    "MessageStatus",
    "DELETED_MESSAGE_TEXT",
    "merge_messages",
    # Exceptions
    "ChatError",
    "ConversationNotFoundError",
    "MessageNotFoundError",
    "MessageSendFailedError",
    "MediaUploadFailedError",
    "EncryptionFailedError",
    "ChatPermissionDeniedError",
    "ChatUnknownError",
]
