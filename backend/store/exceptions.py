"""
Document store exceptions.

Absence of a document is not an error at this layer (reads return ``None``);
these cover transport failures, bounded-wait expiry, decoding mistakes and
write preconditions.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from shared.exceptions import ConflictError, ExternalServiceError


class DocumentStoreError(ExternalServiceError):
    """Base exception for document store failures."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, service="document_store", code=code, details=details)


class RemoteUnavailableError(DocumentStoreError):
    """Raised when the remote database cannot be reached. Retryable."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        details = {"operation": operation}
        if cause is not None:
            details["cause"] = str(cause)
        super().__init__(
            f"Remote document database unavailable during {operation}",
            code="REMOTE_UNAVAILABLE",
            details=details,
        )


class RemoteTimeoutError(DocumentStoreError):
    """Raised when a remote call exceeds its bounded wait."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Remote {operation} timed out after {timeout:.1f}s",
            code="REMOTE_TIMEOUT",
            details={"operation": operation, "timeout": timeout},
        )


class DocumentDecodeError(DocumentStoreError):
    """Raised when a stored document cannot be read as the requested type."""

    def __init__(self, key: str, expected: str, reason: str):
        super().__init__(
            f"Document {key} could not be decoded as {expected}",
            code="DOCUMENT_DECODE_FAILED",
            details={"key": key, "expected": expected, "reason": reason},
        )


class VersionConflictError(DocumentStoreError, ConflictError):
    """Raised when a conditional write finds a different version than expected."""

    def __init__(self, key: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict on {key}",
            code="VERSION_CONFLICT",
            details={"key": key, "expected_version": expected, "actual_version": actual},
        )


class StoreConflictError(DocumentStoreError, ConflictError):
    """Raised when a read-modify-write keeps colliding and gives up."""

    def __init__(self, key: str, attempts: int):
        super().__init__(
            f"Gave up updating {key} after {attempts} conflicting attempts",
            code="STORE_CONFLICT",
            details={"key": key, "attempts": attempts},
        )


class BatchCommitError(DocumentStoreError):
    """Raised when a batch is rejected. Nothing from the batch was applied."""

    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Batch commit rejected: {reason}",
            code="BATCH_REJECTED",
            details=details,
        )


@contextmanager
def translate_store_errors(
    unknown_error: Callable[[str, dict[str, Any]], Exception],
    conflict_error: Optional[Callable[[], Exception]] = None,
    unavailable_error: Optional[Callable[[], Exception]] = None,
) -> Iterator[None]:
    """
    Re-raise store failures as a domain's own error kinds.

    Args:
        unknown_error: Builds the domain's catch-all error from a short
            user-facing detail and the store error's details.
        conflict_error: Builds the domain's conflict error, if it has one.
        unavailable_error: Builds the domain's network error, if it has one.
    """
    try:
        yield
    except (VersionConflictError, StoreConflictError) as e:
        if conflict_error is not None:
            raise conflict_error() from e
        raise unknown_error("conflicting write", {"cause": e.to_dict()}) from e
    except (RemoteUnavailableError, RemoteTimeoutError) as e:
        if unavailable_error is not None:
            raise unavailable_error() from e
        detail = "request timed out" if isinstance(e, RemoteTimeoutError) else "service unavailable"
        raise unknown_error(detail, {"cause": e.to_dict()}) from e
    except BatchCommitError as e:
        raise unknown_error("write was rejected", {"cause": e.to_dict()}) from e
    except DocumentStoreError as e:
        raise unknown_error("stored data could not be read", {"cause": e.to_dict()}) from e
