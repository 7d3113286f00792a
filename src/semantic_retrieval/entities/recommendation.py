"""Recommendation request/response entities."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from semantic_retrieval.entities.document import ContentType, DocumentMetadata, VectorDocument
from semantic_retrieval.entities.personalization import PersonalizationContext
from semantic_retrieval.entities.search import TimeRange
from semantic_retrieval.errors import UnsupportedOperationError, ValidationError

DEFAULT_MAX_RECOMMENDATIONS = 10


class RecommendationType(str, Enum):
    """Recommendation strategies."""

    SIMILAR = "similar"
    RELATED = "related"
    PERSONALIZED = "personalized"
    TRENDING = "trending"
    COLLABORATIVE = "collaborative"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: "str | RecommendationType") -> "RecommendationType":
        if isinstance(value, RecommendationType):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnsupportedOperationError("recommendation type", value) from e


@dataclass(frozen=True)
class RecommendationRequest:
    """Per-call recommendation configuration."""

    type: RecommendationType
    user_id: str | None = None
    source_document_id: str | None = None
    source_query: str | None = None
    max_recommendations: int = DEFAULT_MAX_RECOMMENDATIONS
    content_types: tuple[ContentType, ...] = ()
    exclude_documents: tuple[str, ...] = ()
    time_range: TimeRange | None = None
    min_similarity: float = 0.0
    diversity_enabled: bool = False
    personalization: PersonalizationContext | None = None
    include_explanations: bool = False

    def with_defaults(self) -> "RecommendationRequest":
        if self.max_recommendations > 0:
            return self
        return replace(self, max_recommendations=DEFAULT_MAX_RECOMMENDATIONS)

    def validate(self) -> None:
        if not 0.0 <= self.min_similarity <= 1.0:
            raise ValidationError("min_similarity", "must be between 0 and 1")


@dataclass(frozen=True)
class RecommendationExplanation:
    """Why an item was recommended."""

    reason: str
    similarity_score: float = 0.0
    factor_breakdown: dict[str, float] = field(default_factory=dict)
    matched_features: tuple[str, ...] = ()
    user_preferences: tuple[str, ...] = ()


@dataclass(frozen=True)
class RecommendationItem:
    """One ranked recommendation."""

    document_id: str
    content: str
    similarity: float
    confidence: float
    recommendation_score: float
    metadata: DocumentMetadata
    created_at: datetime
    rank: int = 0
    explanation: RecommendationExplanation | None = None
    related_keywords: tuple[str, ...] = ()

    @classmethod
    def from_document(
        cls,
        doc: VectorDocument,
        similarity: float,
        score: float,
        related_keywords: tuple[str, ...] = (),
        explanation: RecommendationExplanation | None = None,
    ) -> "RecommendationItem":
        return cls(
            document_id=doc.id,
            content=doc.content,
            similarity=similarity,
            confidence=score,
            recommendation_score=score,
            metadata=doc.metadata,
            created_at=doc.metadata.created_at or doc.created_at,
            explanation=explanation,
            related_keywords=related_keywords,
        )


@dataclass
class RecommendationResponse:
    """Recommendations with timing and processing metadata."""

    recommendations: list[RecommendationItem]
    total_found: int
    process_time: float
    recommendation_type: RecommendationType
    metadata: dict[str, Any] = field(default_factory=dict)
