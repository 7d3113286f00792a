"""Document entities: what gets embedded, stored and retrieved."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from semantic_retrieval.errors import ValidationError

ScalarValue = str | int | float | bool


class ContentType(str, Enum):
    """Kind of archived content."""

    TEXT = "text"
    LINK = "link"
    FILE = "file"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: "str | ContentType", field_name: str = "content_type") -> "ContentType":
        """Convert a raw value to a ContentType.

        Raises:
            ValidationError: If the value is not a known content type
        """
        if isinstance(value, ContentType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            raise ValidationError(field_name, f"unknown content type {value!r}") from e


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any, field_name: str) -> datetime:
    """Accept a datetime, unix seconds or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(field_name, f"not an ISO-8601 timestamp: {value!r}") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValidationError(field_name, f"expected a timestamp, got {type(value).__name__}")


def _to_str_tuple(value: Any, field_name: str) -> tuple[str, ...]:
    if isinstance(value, str):
        raise ValidationError(field_name, "expected a list of strings, got a string")
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError(field_name, f"expected a list of strings, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, str):
            raise ValidationError(field_name, f"expected strings, got {type(item).__name__}")
    return tuple(value)


@dataclass(frozen=True)
class DocumentMetadata:
    """Typed metadata attached to every stored document.

    Attributes:
        content_type: Kind of content
        user_id: Owner of the document
        importance_score: Importance on a 0-10 scale
        tags: User or classifier assigned tags
        keywords: Extracted keywords, used for keyword matching
        created_at: Creation time (set by the vector store when missing)
        updated_at: Last update time
        content_length: Length of the stored content in characters
        extra: Any other scalar values, kept as-is
    """

    content_type: ContentType | None = None
    user_id: str | None = None
    importance_score: float | None = None
    tags: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    content_length: int | None = None
    extra: dict[str, ScalarValue] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DocumentMetadata":
        """Build metadata from an untyped mapping, validating every known field.

        Raises:
            ValidationError: If a known field has the wrong type or range
        """
        if not data:
            return cls()

        values: dict[str, Any] = {}
        extra: dict[str, ScalarValue] = {}

        for key, value in data.items():
            if value is None:
                continue
            name = f"metadata.{key}"
            if key == "content_type":
                values[key] = ContentType.parse(value, name)
            elif key == "user_id":
                if not isinstance(value, str):
                    raise ValidationError(name, f"expected a string, got {type(value).__name__}")
                values[key] = value
            elif key == "importance_score":
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValidationError(name, f"expected a number, got {type(value).__name__}")
                if not 0 <= value <= 10:
                    raise ValidationError(name, "must be between 0 and 10")
                values[key] = float(value)
            elif key in ("tags", "keywords"):
                values[key] = _to_str_tuple(value, name)
            elif key in ("created_at", "updated_at"):
                values[key] = to_datetime(value, name)
            elif key == "content_length":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValidationError(name, f"expected an integer, got {type(value).__name__}")
                values[key] = value
            elif isinstance(value, (str, int, float, bool)):
                extra[key] = value
            else:
                raise ValidationError(name, f"unsupported value type {type(value).__name__}")

        return cls(extra=extra, **values)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a plain mapping. Timestamps become unix seconds."""
        data: dict[str, Any] = dict(self.extra)
        if self.content_type is not None:
            data["content_type"] = self.content_type.value
        if self.user_id is not None:
            data["user_id"] = self.user_id
        if self.importance_score is not None:
            data["importance_score"] = self.importance_score
        if self.tags:
            data["tags"] = list(self.tags)
        if self.keywords:
            data["keywords"] = list(self.keywords)
        if self.created_at is not None:
            data["created_at"] = int(self.created_at.timestamp())
        if self.updated_at is not None:
            data["updated_at"] = int(self.updated_at.timestamp())
        if self.content_length is not None:
            data["content_length"] = self.content_length
        return data

    def updated(self, **changes: Any) -> "DocumentMetadata":
        return replace(self, **changes)


@dataclass(frozen=True)
class VectorDocument:
    """A document as persisted in the vector store.

    Attributes:
        id: Unique identifier
        content: Stored text
        embedding: Fixed-length embedding vector (may be empty on query hits
            from stores that do not return vectors)
        metadata: Typed metadata
        created_at: Creation time
        distance: L2 distance to the query vector, set on query hits only
    """

    id: str
    content: str
    embedding: list[float]
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    created_at: datetime = field(default_factory=utc_now)
    distance: float | None = None

    def with_distance(self, distance: float) -> "VectorDocument":
        return replace(self, distance=distance)


@dataclass(frozen=True)
class ContentItem:
    """A piece of user content to be indexed for search."""

    id: str
    raw_content: str
    type: ContentType = ContentType.TEXT
    user_id: str | None = None
    tags: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    importance_score: float | None = None
    created_at: datetime | None = None
    extra: dict[str, ScalarValue] = field(default_factory=dict)

    def validate(self) -> None:
        """Reject items that cannot be indexed.

        Raises:
            ValidationError: On empty id or content, or out-of-range importance
        """
        if not self.id or not self.id.strip():
            raise ValidationError("id", "must not be empty")
        if not self.raw_content or not self.raw_content.strip():
            raise ValidationError("raw_content", "must not be empty")
        if self.importance_score is not None and not 0 <= self.importance_score <= 10:
            raise ValidationError("importance_score", "must be between 0 and 10")


@dataclass(frozen=True)
class BatchIndexResult:
    """Outcome of indexing many items, failures counted rather than raised."""

    success_count: int
    failure_count: int
    indexed_ids: tuple[str, ...] = ()
    failed_ids: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count
