"""Base document model, ObjectId handling and collection naming."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Callable, TypeVar

from bson import ObjectId
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    WithJsonSchema,
)

from .exceptions import ConfigurationError, InvalidIdError

logger = logging.getLogger(__name__)

EMPTY_OBJECT_ID = ObjectId("0" * 24)

# BSON datetimes carry millisecond precision
_TIMESTAMP_RESOLUTION = timedelta(milliseconds=1)


# ============================================================================
# Identifiers and timestamps
# ============================================================================


def parse_object_id(value: str | ObjectId) -> ObjectId:
    """Parse a 24-character hex string into an ObjectId.

    Raises InvalidIdError for anything else, including 12-byte strings
    that bson would otherwise accept.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value):
        return ObjectId(value)
    raise InvalidIdError(value)


def is_empty_id(value: ObjectId | None) -> bool:
    """Check whether an id is unset (None or the all-zero ObjectId)."""
    return value is None or value == EMPTY_OBJECT_ID


def utc_now() -> datetime:
    """Current UTC time truncated to what BSON can store."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def next_timestamp(previous: datetime | None) -> datetime:
    """Current time, bumped past ``previous`` when the clock has not moved."""
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + _TIMESTAMP_RESOLUTION
    return now


def _validate_object_id(value: Any) -> ObjectId:
    try:
        return parse_object_id(value)
    except InvalidIdError as e:
        raise ValueError(e.message) from e


def _as_utc(value: datetime) -> datetime:
    # Drivers hand back naive datetimes unless the client is tz_aware
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


PyObjectId = Annotated[
    ObjectId,
    PlainValidator(_validate_object_id),
    PlainSerializer(str, return_type=str, when_used="json"),
    WithJsonSchema({"type": "string", "pattern": "^[0-9a-fA-F]{24}$"}),
]

UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# ============================================================================
# Document base
# ============================================================================


class Document(BaseModel):
    """Base class for every stored document.

    Provides:
    - id, stored as ``_id``
    - created_at, stamped by the repository on insert
    - updated_at, stamped by the repository on replace
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    id: PyObjectId | None = Field(default=None, alias="_id")
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None

    @property
    def has_id(self) -> bool:
        """True when the document carries a non-empty id."""
        return not is_empty_id(self.id)

    def to_mongo(self) -> dict[str, Any]:
        """Dump to a BSON-ready dict keyed by stored field names."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_mongo(cls, data: dict[str, Any]) -> "Document":
        """Build a document from a raw driver result."""
        return cls.model_validate(data)

    @classmethod
    def stored_key(cls, field_name: str) -> str:
        """Map a model field name to the key it is stored under."""
        field = cls.model_fields.get(field_name)
        if field is None:
            return field_name
        return field.alias or field_name


TDocument = TypeVar("TDocument", bound=Document)


# ============================================================================
# Collection naming
# ============================================================================

_collection_names: dict[type, str] = {}


def register_collection(document_type: type, name: str) -> None:
    """Register the collection name used for a document type."""
    if not name or not name.strip():
        raise ConfigurationError(
            f"Collection name for {document_type.__name__} cannot be blank"
        )
    _collection_names[document_type] = name.strip()
    logger.debug(f"Registered collection '{name.strip()}' for {document_type.__name__}")


def collection(name: str) -> Callable[[type[TDocument]], type[TDocument]]:
    """Class decorator form of register_collection()."""

    def decorator(document_type: type[TDocument]) -> type[TDocument]:
        register_collection(document_type, name)
        return document_type

    return decorator


def get_collection_name(document_type: type) -> str:
    """Resolve the collection for a type.

    Registrations are inherited by subclasses; without one the class name
    is used.
    """
    for klass in document_type.__mro__:
        if klass in _collection_names:
            return _collection_names[klass]
    return document_type.__name__
