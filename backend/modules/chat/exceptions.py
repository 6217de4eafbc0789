"""
Chat module exceptions.

Upload failures and send failures are separate kinds: the first happens
before any message exists, the second after the payload is stored.
"""

from typing import Any, Optional

from shared.exceptions import (
    AuthorizationError,
    ExternalServiceError,
    MapChatError,
    NotFoundError,
)


class ChatError(MapChatError):
    """Base exception for chat-related errors."""

    pass


class ConversationNotFoundError(ChatError, NotFoundError):
    """Raised when a conversation does not exist."""

    def __init__(self, conversation_id: str):
        super().__init__(
            "Conversation not found",
            code="CONVERSATION_NOT_FOUND",
            details={"conversation_id": conversation_id},
        )


class MessageNotFoundError(ChatError, NotFoundError):
    """Raised when a message does not exist (or was deleted)."""

    def __init__(self, message_id: str):
        super().__init__(
            "Message not found",
            code="MESSAGE_NOT_FOUND",
            details={"message_id": message_id},
        )


class MessageSendFailedError(ChatError):
    """Raised when a message cannot be written."""

    def __init__(self, detail: str = "", details: Optional[dict[str, Any]] = None):
        details = dict(details or {})
        if detail:
            details["reason"] = detail
        super().__init__(
            "Failed to send message",
            code="SEND_FAILED",
            details=details,
        )


class MediaUploadFailedError(ChatError, ExternalServiceError):
    """Raised when a media payload cannot be uploaded."""

    def __init__(self, detail: str = "", details: Optional[dict[str, Any]] = None):
        details = dict(details or {})
        if detail:
            details["reason"] = detail
        super().__init__(
            "Failed to upload media",
            service="media_storage",
            code="UPLOAD_FAILED",
            details=details,
        )


class EncryptionFailedError(ChatError):
    """Raised when a message payload cannot be encrypted."""

    def __init__(self, detail: str = ""):
        super().__init__(
            "Failed to encrypt message",
            code="ENCRYPTION_FAILED",
            details={"reason": detail} if detail else None,
        )


class ChatPermissionDeniedError(ChatError, AuthorizationError):
    """Raised when the current user may not perform a chat operation."""

    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            "Permission denied",
            code="CHAT_PERMISSION_DENIED",
            details={"reason": reason, **(details or {})},
        )


class ChatUnknownError(ChatError):
    """Raised for failures outside the other chat error kinds."""

    def __init__(self, detail: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Chat error: {detail}",
            code="CHAT_UNKNOWN",
            details=details,
        )
