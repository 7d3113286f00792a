"""Ranking configuration and results."""

from dataclasses import dataclass, field
from enum import Enum

from semantic_retrieval.entities.document import ContentType
from semantic_retrieval.entities.personalization import PersonalizationContext
from semantic_retrieval.entities.search import SearchResultItem
from semantic_retrieval.errors import UnsupportedOperationError


class RankingStrategy(str, Enum):
    SIMILARITY = "similarity"
    RELEVANCE = "relevance"
    TIME = "time"
    IMPORTANCE = "importance"
    HYBRID = "hybrid"
    PERSONALIZED = "personalized"

    @classmethod
    def parse(cls, value: "str | RankingStrategy") -> "RankingStrategy":
        if isinstance(value, RankingStrategy):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnsupportedOperationError("ranking strategy", value) from e


@dataclass(frozen=True)
class RankingWeights:
    """Weights of the hybrid score factors."""

    similarity: float = 0.4
    keyword_match: float = 0.2
    importance: float = 0.2
    freshness: float = 0.1
    user_preference: float = 0.05
    content_type: float = 0.03
    tag_relevance: float = 0.02


@dataclass(frozen=True)
class PersonalizationWeights:
    """Weights of the personalization factor and the personalized blend.

    Attributes:
        content_type: Added when the item type is a preferred content type
        tag: Added per preferred tag on the item
        interaction_history: Multiplies the recorded interaction weight
        user_preference: Multiplies the explicit preference weight
        prior: Weight of the prior relevance score in the personalized strategy
        context: Weight of the personalization factor in the personalized strategy
    """

    content_type: float = 0.3
    tag: float = 0.2
    interaction_history: float = 0.5
    user_preference: float = 0.3
    prior: float = 0.6
    context: float = 0.4


@dataclass(frozen=True)
class BoostFactors:
    """Additive boosts applied on top of the hybrid score."""

    high_importance: float = 0.0
    recent_content: float = 0.0
    user_interaction: float = 0.0
    content_type_boosts: dict[ContentType, float] = field(default_factory=dict)
    tag_boosts: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class TimeDecayConfig:
    """Freshness decay.

    With a half-life, freshness is ``0.5 ** (age_days / half_life_days)``
    floored at ``min_score``; without one, it decays linearly by
    ``decay_rate`` per year.
    """

    enabled: bool = True
    decay_rate: float = 0.5
    half_life_days: float = 365.0
    min_score: float = 0.1
    recent_boost_days: float = 7.0


@dataclass(frozen=True)
class DiversitySettings:
    enabled: bool = True
    content_type_diversity: bool = True
    tag_diversity: bool = False
    time_diversity: bool = False
    max_similar_results: int = 3
    diversity_threshold: float = 0.7


@dataclass(frozen=True)
class RankingOptions:
    strategy: RankingStrategy = RankingStrategy.HYBRID
    weights: RankingWeights = field(default_factory=RankingWeights)
    boosts: BoostFactors | None = None
    time_decay: TimeDecayConfig = field(default_factory=TimeDecayConfig)
    diversity: DiversitySettings = field(default_factory=DiversitySettings)
    personalization: PersonalizationContext | None = None
    personalization_weights: PersonalizationWeights = field(default_factory=PersonalizationWeights)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-item audit trail of how the final score was built."""

    document_id: str
    final_score: float
    similarity_score: float = 0.0
    keyword_score: float = 0.0
    importance_score: float = 0.0
    freshness_score: float = 0.0
    personalization_score: float = 0.0
    content_type_score: float = 0.0
    tag_score: float = 0.0
    boosts: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class DiversityMetrics:
    content_type_diversity: float = 0.0
    tag_diversity: float = 0.0
    time_diversity: float = 0.0
    overall_diversity: float = 0.0


@dataclass
class RankingResult:
    original_results: list[SearchResultItem]
    ranked_results: list[SearchResultItem]
    strategy: RankingStrategy
    score_breakdown: list[ScoreBreakdown]
    diversity_metrics: DiversityMetrics


def default_ranking_options() -> RankingOptions:
    """Hybrid ranking with time decay and content-type diversity."""
    return RankingOptions()
