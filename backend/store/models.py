"""
Document store data models.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class Collections:
    """Top-level collection names."""

    USERS = "users"
    TRIPS = "trips"
    GROUPS = "groups"
    CONVERSATIONS = "conversations"
    MESSAGES = "messages"
    LOCATIONS = "locations"


class FilterOp(str, Enum):
    """Comparison applied by a query filter."""

    EQUAL = "=="
    ARRAY_CONTAINS = "array-contains"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="


class QueryFilter(BaseModel):
    """
    One predicate of a conjunctive query.

    ``field`` names a top-level key of the stored record (camelCase).
    """

    field: str
    value: Any
    op: FilterOp = FilterOp.EQUAL

    model_config = {"frozen": True}

    def matches(self, data: dict[str, Any]) -> bool:
        """Evaluate the predicate against a stored record."""
        actual = data.get(self.field)
        if self.op == FilterOp.EQUAL:
            return actual == self.value
        if self.op == FilterOp.ARRAY_CONTAINS:
            return isinstance(actual, list) and self.value in actual
        if actual is None:
            return False
        try:
            if self.op == FilterOp.LESS_EQUAL:
                return actual <= self.value
            return actual >= self.value
        except TypeError:
            return False


class BatchOperationType(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


class BatchOperation(BaseModel):
    """
    A single write inside an atomic batch.

    ``set`` replaces the whole record, ``update`` merges top-level keys into
    an existing record (the batch fails if it is missing), ``delete`` removes
    the record if present.
    """

    collection: str
    document_id: str
    type: BatchOperationType
    data: Optional[dict[str, Any]] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_payload(self) -> "BatchOperation":
        if self.type != BatchOperationType.DELETE and self.data is None:
            raise ValueError(f"{self.type.value} operation requires data")
        return self

    @property
    def key(self) -> str:
        return f"{self.collection}/{self.document_id}"

    @classmethod
    def set_document(cls, collection: str, document_id: str, value: BaseModel) -> "BatchOperation":
        return cls(
            collection=collection,
            document_id=document_id,
            type=BatchOperationType.SET,
            data=value.model_dump(mode="json", by_alias=True),
        )

    @classmethod
    def update_fields(cls, collection: str, document_id: str, fields: dict[str, Any]) -> "BatchOperation":
        return cls(
            collection=collection,
            document_id=document_id,
            type=BatchOperationType.UPDATE,
            data=fields,
        )

    @classmethod
    def delete_document(cls, collection: str, document_id: str) -> "BatchOperation":
        return cls(collection=collection, document_id=document_id, type=BatchOperationType.DELETE)


class DocumentSnapshot(BaseModel):
    """A stored record as returned by the remote database."""

    collection: str
    id: str
    data: dict[str, Any] = Field(default_factory=dict)
    version: int = Field(..., ge=1, description="Incremented on every write")

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return f"{self.collection}/{self.id}"
