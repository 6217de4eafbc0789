"""Tests for document store exceptions and their translation."""

import pytest

from shared.exceptions import ConflictError, ExternalServiceError, MapChatError
from store.exceptions import (
    BatchCommitError,
    DocumentDecodeError,
    RemoteTimeoutError,
    RemoteUnavailableError,
    StoreConflictError,
    VersionConflictError,
    translate_store_errors,
)


class DomainUnknown(MapChatError):
    def __init__(self, detail, details=None):
        super().__init__(f"Domain error: {detail}", code="DOMAIN_UNKNOWN", details=details)


class DomainConflict(MapChatError):
    def __init__(self):
        super().__init__("Conflict detected, please try again", code="DOMAIN_CONFLICT")


class DomainNetwork(MapChatError):
    def __init__(self):
        super().__init__("Network error occurred", code="DOMAIN_NETWORK")


class TestStoreErrors:
    def test_store_errors_are_external_service_errors(self):
        error = RemoteUnavailableError("get", ConnectionError("refused"))
        assert isinstance(error, ExternalServiceError)
        assert error.service == "document_store"
        assert error.details["cause"] == "refused"

    def test_conflicts_are_conflict_errors(self):
        assert isinstance(VersionConflictError("groups/1", 2, 3), ConflictError)
        assert isinstance(StoreConflictError("groups/1", 4), ConflictError)


class TestTranslateStoreErrors:
    def test_conflict_uses_domain_conflict(self):
        with pytest.raises(DomainConflict):
            with translate_store_errors(DomainUnknown, conflict_error=DomainConflict):
                raise StoreConflictError("groups/1", 4)

    def test_conflict_without_domain_conflict(self):
        with pytest.raises(DomainUnknown) as exc_info:
            with translate_store_errors(DomainUnknown):
                raise VersionConflictError("groups/1", 2, 3)
        assert exc_info.value.message == "Domain error: conflicting write"
        assert exc_info.value.details["cause"]["error"] == "VERSION_CONFLICT"

    def test_timeout(self):
        with pytest.raises(DomainUnknown, match="request timed out"):
            with translate_store_errors(DomainUnknown):
                raise RemoteTimeoutError("get", 0.5)

    def test_unavailable_uses_domain_network(self):
        with pytest.raises(DomainNetwork):
            with translate_store_errors(DomainUnknown, unavailable_error=DomainNetwork):
                raise RemoteUnavailableError("set")

    def test_batch_rejected(self):
        with pytest.raises(DomainUnknown, match="write was rejected"):
            with translate_store_errors(DomainUnknown):
                raise BatchCommitError("cannot update missing document")

    def test_decode_failure(self):
        with pytest.raises(DomainUnknown, match="could not be read"):
            with translate_store_errors(DomainUnknown):
                raise DocumentDecodeError("groups/1", "Group", "missing name")

    def test_domain_errors_pass_through(self):
        with pytest.raises(DomainConflict):
            with translate_store_errors(DomainUnknown):
                raise DomainConflict()

    def test_original_error_is_chained(self):
        with pytest.raises(DomainUnknown) as exc_info:
            with translate_store_errors(DomainUnknown):
                raise RemoteUnavailableError("get")
        assert isinstance(exc_info.value.__cause__, RemoteUnavailableError)
