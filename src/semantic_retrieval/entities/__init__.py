"""Domain entities for internal representation.

These are pure dataclasses used internally by services and
repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache import CacheEntry, CacheStats, PartitionStats
from .document import (
    BatchIndexResult,
    ContentItem,
    ContentType,
    DocumentMetadata,
    VectorDocument,
)
from .embedding import BatchEmbeddingResult, EmbeddingResult
from .personalization import PersonalizationContext
from .ranking import (
    BoostFactors,
    DiversityMetrics,
    DiversitySettings,
    PersonalizationWeights,
    RankingOptions,
    RankingResult,
    RankingStrategy,
    RankingWeights,
    ScoreBreakdown,
    TimeDecayConfig,
    default_ranking_options,
)
from .recommendation import (
    RecommendationExplanation,
    RecommendationItem,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationType,
)
from .search import (
    MetadataFilter,
    SearchOptions,
    SearchResponse,
    SearchResultItem,
    SimilarityMetric,
    TimeRange,
)

__all__ = [
    "BatchEmbeddingResult",
    "BatchIndexResult",
    "BoostFactors",
    "CacheEntry",
    "CacheStats",
    "ContentItem",
    "ContentType",
    "DiversityMetrics",
    "DiversitySettings",
    "DocumentMetadata",
    "EmbeddingResult",
    "MetadataFilter",
    "PartitionStats",
    "PersonalizationContext",
    "PersonalizationWeights",
    "RankingOptions",
    "RankingResult",
    "RankingStrategy",
    "RankingWeights",
    "RecommendationExplanation",
    "RecommendationItem",
    "RecommendationRequest",
    "RecommendationResponse",
    "RecommendationType",
    "ScoreBreakdown",
    "SearchOptions",
    "SearchResponse",
    "SearchResultItem",
    "SimilarityMetric",
    "TimeDecayConfig",
    "TimeRange",
    "VectorDocument",
    "default_ranking_options",
]
