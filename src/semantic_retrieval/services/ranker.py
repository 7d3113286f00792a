"""Multi-strategy ranking of search results.

The ranker never mutates its input. Items come back as new frozen
instances with ``relevance_score`` set to the score used for sorting
and ``rank`` assigned after diversity filtering.
"""

import logging
import math
from collections import Counter
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from semantic_retrieval.entities import (
    BoostFactors,
    DiversityMetrics,
    DiversitySettings,
    PersonalizationContext,
    PersonalizationWeights,
    RankingOptions,
    RankingResult,
    RankingStrategy,
    ScoreBreakdown,
    SearchResultItem,
    TimeDecayConfig,
    default_ranking_options,
)

DEFAULT_IMPORTANCE = 0.5
HIGH_IMPORTANCE = 0.8
RECENT_CONTENT_DAYS = 7.0


def _age_days(created_at: datetime, now: datetime) -> float:
    return max((now - created_at).total_seconds() / 86400.0, 0.0)


def normalized_importance(item: SearchResultItem) -> float:
    """Importance on a 0-1 scale; 0.5 when unknown."""
    if item.metadata.importance_score is None:
        return DEFAULT_IMPORTANCE
    return item.metadata.importance_score / 10.0


def shannon_entropy(distribution: Counter) -> float:
    """Shannon entropy divided by ``log2(categories)``; 0.0 for one category or none."""
    if len(distribution) <= 1:
        return 0.0
    total = sum(distribution.values())
    if total == 0:
        return 0.0
    entropy = 0.0
    for count in distribution.values():
        if count > 0:
            p = count / total
            entropy -= p * math.log2(p)
    return entropy / math.log2(len(distribution))


class Ranker:
    """Scores and reorders search results.

    Example:
        ```python
        ranker = Ranker()
        result = ranker.rank(items, RankingOptions(strategy=RankingStrategy.HYBRID))
        for item, breakdown in zip(result.ranked_results, result.score_breakdown):
            print(item.rank, item.document_id, breakdown.final_score)
        ```
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def rank(self, results: list[SearchResultItem], options: RankingOptions | None = None) -> RankingResult:
        """Rank ``results`` with the strategy in ``options``.

        Args:
            results: Items to rank
            options: Ranking options, defaults to ``default_ranking_options()``

        Returns:
            RankingResult whose ``ranked_results`` and ``score_breakdown``
            are parallel lists
        """
        options = options or default_ranking_options()
        original = list(results)
        if not original:
            return RankingResult(
                original_results=original,
                ranked_results=[],
                strategy=options.strategy,
                score_breakdown=[],
                diversity_metrics=DiversityMetrics(),
            )

        now = self._clock()
        scored = self._score(original, options, now)

        # Stable: ties keep their input order
        scored.sort(key=lambda pair: pair[1].final_score, reverse=True)
        if options.strategy is RankingStrategy.TIME:
            scored.sort(key=lambda pair: pair[0].created_at, reverse=True)

        if options.diversity.enabled:
            scored = self._apply_diversity(scored, options.diversity)

        ranked = [replace(item, rank=i) for i, (item, _) in enumerate(scored, start=1)]
        breakdown = [b for _, b in scored]

        self._logger.debug(
            "Ranked %d results into %d with strategy %s",
            len(original),
            len(ranked),
            options.strategy.value,
        )
        return RankingResult(
            original_results=original,
            ranked_results=ranked,
            strategy=options.strategy,
            score_breakdown=breakdown,
            diversity_metrics=self.diversity_metrics(ranked),
        )

    def _score(
        self,
        results: list[SearchResultItem],
        options: RankingOptions,
        now: datetime,
    ) -> list[tuple[SearchResultItem, ScoreBreakdown]]:
        strategy = options.strategy
        if strategy is RankingStrategy.PERSONALIZED and options.personalization is None:
            strategy = RankingStrategy.HYBRID

        scorer = {
            RankingStrategy.SIMILARITY: self._score_similarity,
            RankingStrategy.RELEVANCE: self._score_relevance,
            RankingStrategy.TIME: self._score_time,
            RankingStrategy.IMPORTANCE: self._score_importance,
            RankingStrategy.HYBRID: self._score_hybrid,
            RankingStrategy.PERSONALIZED: self._score_personalized,
        }.get(strategy, self._score_similarity)

        scored = []
        for item in results:
            breakdown = scorer(item, options, now)
            if strategy in (RankingStrategy.HYBRID, RankingStrategy.PERSONALIZED):
                item = replace(item, relevance_score=breakdown.final_score)
            scored.append((item, breakdown))
        return scored

    # Strategies

    def _score_similarity(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        return ScoreBreakdown(
            document_id=item.document_id,
            final_score=item.similarity,
            similarity_score=item.similarity,
        )

    def _score_relevance(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        return ScoreBreakdown(
            document_id=item.document_id,
            final_score=item.relevance_score,
            similarity_score=item.similarity,
            keyword_score=self.keyword_score(item),
            importance_score=normalized_importance(item),
            freshness_score=self.freshness_score(item.created_at, options.time_decay, now),
        )

    def _score_time(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        freshness = self.freshness_score(item.created_at, options.time_decay, now)
        return ScoreBreakdown(document_id=item.document_id, final_score=freshness, freshness_score=freshness)

    def _score_importance(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        importance = normalized_importance(item)
        return ScoreBreakdown(document_id=item.document_id, final_score=importance, importance_score=importance)

    def _score_hybrid(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        weights = options.weights
        ctx = options.personalization

        similarity = item.similarity
        keyword = self.keyword_score(item)
        importance = normalized_importance(item)
        freshness = self.freshness_score(item.created_at, options.time_decay, now)
        personal = self.personalization_score(item, ctx, options.personalization_weights)
        content_type = self.content_type_score(item, ctx)
        tag = self.tag_score(item, ctx)
        boosts = self.boosts(item, options.boosts, ctx, now)

        final = (
            similarity * weights.similarity
            + keyword * weights.keyword_match
            + importance * weights.importance
            + freshness * weights.freshness
            + personal * weights.user_preference
            + content_type * weights.content_type
            + tag * weights.tag_relevance
            + sum(boosts.values())
        )
        return ScoreBreakdown(
            document_id=item.document_id,
            final_score=final,
            similarity_score=similarity,
            keyword_score=keyword,
            importance_score=importance,
            freshness_score=freshness,
            personalization_score=personal,
            content_type_score=content_type,
            tag_score=tag,
            boosts=boosts,
        )

    def _score_personalized(self, item: SearchResultItem, options: RankingOptions, now: datetime) -> ScoreBreakdown:
        blend = options.personalization_weights
        personal = self.personalization_score(item, options.personalization, blend)
        final = item.relevance_score * blend.prior + personal * blend.context
        return ScoreBreakdown(
            document_id=item.document_id,
            final_score=final,
            similarity_score=item.similarity,
            personalization_score=personal,
        )

    # Factors

    @staticmethod
    def keyword_score(item: SearchResultItem) -> float:
        return min(len(item.matched_keywords) / 5.0, 1.0)

    @staticmethod
    def freshness_score(created_at: datetime, decay: TimeDecayConfig | None, now: datetime) -> float:
        """Freshness in [0, 1].

        Half-life decay floored at ``min_score``, times a boost of up to
        1.5 for content younger than ``recent_boost_days``, capped at 1.0.
        """
        if decay is None or not decay.enabled:
            return 1.0

        days = _age_days(created_at, now)
        if decay.half_life_days > 0:
            score = max(0.5 ** (days / decay.half_life_days), decay.min_score)
            if decay.recent_boost_days > 0 and days <= decay.recent_boost_days:
                score *= 1.0 + (decay.recent_boost_days - days) / decay.recent_boost_days * 0.5
        else:
            score = max(1.0 - (days / 365.0) * decay.decay_rate, decay.min_score)

        return min(score, 1.0)

    @staticmethod
    def personalization_score(
        item: SearchResultItem,
        ctx: PersonalizationContext | None,
        weights: PersonalizationWeights | None = None,
    ) -> float:
        if ctx is None:
            return 0.0
        weights = weights or PersonalizationWeights()

        score = 0.0
        if item.metadata.content_type is not None and item.metadata.content_type in ctx.preferred_content_types:
            score += weights.content_type
        for tag in item.metadata.tags:
            if tag in ctx.preferred_tags:
                score += weights.tag
        score += ctx.interaction_history.get(item.document_id, 0.0) * weights.interaction_history
        score += ctx.user_preferences.get(item.document_id, 0.0) * weights.user_preference
        return min(score, 1.0)

    @staticmethod
    def content_type_score(item: SearchResultItem, ctx: PersonalizationContext | None) -> float:
        if ctx is None or item.metadata.content_type is None:
            return 0.0
        return 1.0 if item.metadata.content_type in ctx.preferred_content_types else 0.0

    @staticmethod
    def tag_score(item: SearchResultItem, ctx: PersonalizationContext | None) -> float:
        if ctx is None or not ctx.preferred_tags:
            return 0.0
        preferred = {t.lower() for t in ctx.preferred_tags}
        matches = sum(1 for tag in item.metadata.tags if tag.lower() in preferred)
        return min(matches / len(ctx.preferred_tags), 1.0)

    @staticmethod
    def boosts(
        item: SearchResultItem,
        factors: BoostFactors | None,
        ctx: PersonalizationContext | None,
        now: datetime,
    ) -> dict[str, float]:
        """Additive boosts, keyed by name for the score breakdown."""
        if factors is None:
            return {}

        boosts: dict[str, float] = {}
        if factors.high_importance > 0 and normalized_importance(item) > HIGH_IMPORTANCE:
            boosts["high_importance"] = factors.high_importance

        days = _age_days(item.created_at, now)
        if factors.recent_content > 0 and days <= RECENT_CONTENT_DAYS:
            boosts["recent_content"] = factors.recent_content * (RECENT_CONTENT_DAYS - days) / RECENT_CONTENT_DAYS

        content_type = item.metadata.content_type
        if content_type is not None and content_type in factors.content_type_boosts:
            boosts["content_type"] = factors.content_type_boosts[content_type]

        tag_boost = sum(factors.tag_boosts.get(tag, 0.0) for tag in item.metadata.tags)
        if tag_boost:
            boosts["tags"] = tag_boost

        if ctx is not None and factors.user_interaction > 0 and item.document_id in ctx.interaction_history:
            boosts["user_interaction"] = factors.user_interaction * ctx.interaction_history[item.document_id]

        return boosts

    # Diversity

    @staticmethod
    def _apply_diversity(
        scored: list[tuple[SearchResultItem, ScoreBreakdown]],
        settings: DiversitySettings,
    ) -> list[tuple[SearchResultItem, ScoreBreakdown]]:
        """Drop items whose content type, tag or creation day is already at the cap."""
        if len(scored) <= 1:
            return scored

        cap = settings.max_similar_results
        type_counts: Counter = Counter()
        tag_counts: Counter = Counter()
        day_counts: Counter = Counter()
        kept = []

        for item, breakdown in scored:
            content_type = item.metadata.content_type
            day = item.created_at.date().isoformat()

            if settings.content_type_diversity and content_type is not None and type_counts[content_type] >= cap:
                continue
            if settings.tag_diversity and any(tag_counts[tag] >= cap for tag in item.metadata.tags):
                continue
            if settings.time_diversity and day_counts[day] >= cap:
                continue

            kept.append((item, breakdown))
            if content_type is not None:
                type_counts[content_type] += 1
            tag_counts.update(item.metadata.tags)
            day_counts[day] += 1

        return kept

    @staticmethod
    def diversity_metrics(results: list[SearchResultItem]) -> DiversityMetrics:
        """Normalized entropy of content types, tags and creation days, weighted 0.4/0.4/0.2."""
        if not results:
            return DiversityMetrics()

        types = Counter(r.metadata.content_type.value for r in results if r.metadata.content_type is not None)
        tags = Counter(tag for r in results for tag in r.metadata.tags)
        days = Counter(r.created_at.date().isoformat() for r in results)

        type_entropy = shannon_entropy(types)
        tag_entropy = shannon_entropy(tags)
        time_entropy = shannon_entropy(days)
        return DiversityMetrics(
            content_type_diversity=type_entropy,
            tag_diversity=tag_entropy,
            time_diversity=time_entropy,
            overall_diversity=type_entropy * 0.4 + tag_entropy * 0.4 + time_entropy * 0.2,
        )
