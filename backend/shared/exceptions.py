"""
Base exception classes for the MapChat backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class MapChatError(Exception):
    """
    Base exception for all MapChat errors.

    All custom exceptions should inherit from this class. The message is
    always safe to show to a user; transport details belong in ``details``.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logs and client payloads."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(MapChatError):
    """Resource not found."""

    pass


class ValidationError(MapChatError):
    """Input validation failed."""

    pass


class AuthenticationError(MapChatError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(MapChatError):
    """Authorization failed (insufficient permissions)."""

    pass


class ConflictError(MapChatError):
    """A concurrent write invalidated the precondition of this write."""

    pass


class ExternalServiceError(MapChatError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
