"""Search request/response entities and the metadata filter."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from semantic_retrieval.entities.document import ContentType, DocumentMetadata, VectorDocument
from semantic_retrieval.errors import UnsupportedOperationError, ValidationError

DEFAULT_TOP_K = 10
DEFAULT_MAX_RESULTS = 100


class SimilarityMetric(str, Enum):
    """Supported vector similarity metrics."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dot"
    MANHATTAN = "manhattan"

    @classmethod
    def parse(cls, value: "str | SimilarityMetric") -> "SimilarityMetric":
        if isinstance(value, SimilarityMetric):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnsupportedOperationError("similarity metric", value) from e


@dataclass(frozen=True)
class TimeRange:
    """Inclusive time window; either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValidationError("time_range", "start must not be after end")

    def contains(self, moment: datetime) -> bool:
        if self.start and moment < self.start:
            return False
        if self.end and moment > self.end:
            return False
        return True


@dataclass(frozen=True)
class MetadataFilter:
    """Filter applied by the vector store.

    Fields are combined with AND; the values inside one field
    (content types, tags) are combined with OR. Unset fields match
    everything.
    """

    user_id: str | None = None
    content_types: frozenset[ContentType] = frozenset()
    created_after: datetime | None = None
    created_before: datetime | None = None
    min_importance: float | None = None
    tags: frozenset[str] = frozenset()

    @classmethod
    def build(
        cls,
        user_id: str | None = None,
        content_types: tuple[ContentType, ...] | list[ContentType] = (),
        time_range: TimeRange | None = None,
        importance_threshold: float | None = None,
        tags: tuple[str, ...] | list[str] = (),
    ) -> "MetadataFilter":
        return cls(
            user_id=user_id or None,
            content_types=frozenset(content_types),
            created_after=time_range.start if time_range else None,
            created_before=time_range.end if time_range else None,
            min_importance=importance_threshold if importance_threshold else None,
            tags=frozenset(tags),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.user_id is None
            and not self.content_types
            and self.created_after is None
            and self.created_before is None
            and self.min_importance is None
            and not self.tags
        )

    def matches(self, metadata: DocumentMetadata, created_at: datetime | None = None) -> bool:
        """Evaluate the filter in-process.

        Args:
            metadata: Document metadata
            created_at: Fallback creation time when the metadata has none
        """
        if self.user_id is not None and metadata.user_id != self.user_id:
            return False
        if self.content_types and metadata.content_type not in self.content_types:
            return False

        moment = metadata.created_at or created_at
        if self.created_after is not None and (moment is None or moment < self.created_after):
            return False
        if self.created_before is not None and (moment is None or moment > self.created_before):
            return False

        if self.min_importance is not None:
            if metadata.importance_score is None or metadata.importance_score < self.min_importance:
                return False
        if self.tags and not self.tags.intersection(metadata.tags):
            return False
        return True


@dataclass(frozen=True)
class SearchOptions:
    """Per-call search configuration."""

    query: str = ""
    content_types: tuple[ContentType, ...] = ()
    user_id: str | None = None
    top_k: int = DEFAULT_TOP_K
    min_similarity: float = 0.0
    include_content: bool = True
    similarity_metric: SimilarityMetric = SimilarityMetric.COSINE
    time_range: TimeRange | None = None
    tags: tuple[str, ...] = ()
    importance_threshold: float | None = None
    enable_reranking: bool = True
    max_results: int = DEFAULT_MAX_RESULTS

    def with_defaults(self) -> "SearchOptions":
        """Return a copy with unset limits and metric replaced by defaults."""
        return replace(
            self,
            top_k=self.top_k if self.top_k > 0 else DEFAULT_TOP_K,
            max_results=self.max_results if self.max_results > 0 else DEFAULT_MAX_RESULTS,
            similarity_metric=SimilarityMetric.parse(self.similarity_metric or SimilarityMetric.COSINE),
        )

    def validate(self) -> None:
        """Raises ValidationError for unusable options."""
        if not self.query or not self.query.strip():
            raise ValidationError("query", "must not be empty")
        if not 0.0 <= self.min_similarity <= 1.0:
            raise ValidationError("min_similarity", "must be between 0 and 1")

    def metadata_filter(self) -> MetadataFilter:
        return MetadataFilter.build(
            user_id=self.user_id,
            content_types=self.content_types,
            time_range=self.time_range,
            importance_threshold=self.importance_threshold,
            tags=self.tags,
        )


@dataclass(frozen=True)
class SearchResultItem:
    """One ranked search hit."""

    document_id: str
    content: str
    similarity: float
    metadata: DocumentMetadata
    created_at: datetime
    distance: float | None = None
    rank: int = 0
    relevance_score: float = 0.0
    matched_keywords: tuple[str, ...] = ()
    content_summary: str = ""

    @classmethod
    def from_document(cls, doc: VectorDocument, similarity: float) -> "SearchResultItem":
        return cls(
            document_id=doc.id,
            content=doc.content,
            similarity=similarity,
            metadata=doc.metadata,
            created_at=doc.metadata.created_at or doc.created_at,
            distance=doc.distance,
        )


@dataclass
class SearchResponse:
    """Search results with timing and processing metadata."""

    results: list[SearchResultItem]
    total_results: int
    query_time: float
    processed_query: str
    similarity_metric: SimilarityMetric
    vector_dimension: int
    metadata: dict[str, Any] = field(default_factory=dict)
