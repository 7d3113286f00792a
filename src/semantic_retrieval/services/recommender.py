"""Multi-strategy content recommendations.

Every strategy reduces to the same shape: obtain a query vector (from a
source document, a free-text query or the user's recent interactions),
query the vector store, then score candidates with strategy-specific
weights. Post-processing (exclusion, diversity, truncation, ranking) and
caching are shared.
"""

import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import numpy as np

from semantic_retrieval.config import RecommendationWeights
from semantic_retrieval.entities import (
    MetadataFilter,
    PersonalizationContext,
    RecommendationExplanation,
    RecommendationItem,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationType,
    SearchOptions,
    SearchResultItem,
    TimeRange,
    VectorDocument,
)
from semantic_retrieval.errors import NotFoundError, RetrievalError, ValidationError
from semantic_retrieval.services.cache_manager import VectorCacheManager
from semantic_retrieval.services.collaborative import CollaborativeFilter
from semantic_retrieval.services.search_engine import SearchEngine
from semantic_retrieval.utils.text import keyword_overlap, preprocess_query

DEFAULT_IMPORTANCE = 0.5
NEUTRAL_SIMILARITY = 0.5
RECENT_HOURS = 24.0
RECENCY_DECAY_HOURS = 168.0
UNKNOWN_TYPE = "unknown"


def _shared_keywords(a: tuple[str, ...] | list[str], b: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    other = {k.lower() for k in b}
    return tuple(k for k in a if k.lower() in other)


def recency_bonus(age_hours: float) -> float:
    """1.0 within a day, decaying linearly to 0.0 at one week."""
    if age_hours <= RECENT_HOURS:
        return 1.0
    return max(0.0, 1.0 - (age_hours - RECENT_HOURS) / (RECENCY_DECAY_HOURS - RECENT_HOURS))


class Recommender:
    """Recommendation orchestration service.

    Example:
        ```python
        recommender = Recommender(search_engine=engine)
        response = await recommender.get_recommendations(
            RecommendationRequest(type=RecommendationType.SIMILAR, source_document_id="doc-1")
        )
        ```
    """

    def __init__(
        self,
        search_engine: SearchEngine,
        cache: VectorCacheManager | None = None,
        collaborative_filter: CollaborativeFilter | None = None,
        weights: RecommendationWeights | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the recommender.

        Args:
            search_engine: Engine used for vectors, documents and store queries
            cache: Cache manager. Defaults to the engine's cache.
            collaborative_filter: Source of similar-user recommendations.
                Without one, collaborative requests degrade to personalized.
            weights: Strategy weights. Defaults to RecommendationWeights().
            logger: Optional logger
            clock: Returns "now"; used by trending
        """
        self._engine = search_engine
        self._cache = cache or search_engine.cache
        self._collaborative = collaborative_filter
        self._weights = weights or RecommendationWeights()
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_recommendations(self, request: RecommendationRequest | None) -> RecommendationResponse:
        """Produce recommendations for ``request``.

        The cache is checked first, keyed on the full request; a hit is
        returned as-is.

        Raises:
            ValidationError: On a missing request or missing strategy inputs
            UnsupportedOperationError: On an unknown recommendation type
            NotFoundError: If the source document does not exist
            UpstreamError: If the vector store or embedding provider fails
        """
        start = time.perf_counter()
        if request is None:
            raise ValidationError("request", "recommendation request is required")
        request = replace(request, type=RecommendationType.parse(request.type)).with_defaults()
        request.validate()

        cached, found = self._cache.get_recommendation(request)
        if found and cached is not None:
            return self._response(request, cached, start, cache_hit=True)

        items = await self.run_strategy(request)
        items = self._post_process(request, items)
        self._cache.set_recommendation(request, items)

        response = self._response(request, items, start, cache_hit=False)
        self._logger.info(
            "%s recommendations: %d items in %.1fms",
            request.type.value,
            len(items),
            response.metadata["processing_time_ms"],
        )
        return response

    async def run_strategy(self, request: RecommendationRequest) -> list[RecommendationItem]:
        """Run one strategy without caching or post-processing."""
        strategy = {
            RecommendationType.SIMILAR: self._similar,
            RecommendationType.RELATED: self._related,
            RecommendationType.PERSONALIZED: self._personalized,
            RecommendationType.TRENDING: self._trending,
            RecommendationType.COLLABORATIVE: self._collaborative_items,
            RecommendationType.HYBRID: self._hybrid,
        }[RecommendationType.parse(request.type)]
        return await strategy(request)

    def _response(
        self,
        request: RecommendationRequest,
        items: list[RecommendationItem],
        start: float,
        cache_hit: bool,
    ) -> RecommendationResponse:
        elapsed = time.perf_counter() - start
        return RecommendationResponse(
            recommendations=list(items),
            total_found=len(items),
            process_time=elapsed,
            recommendation_type=request.type,
            metadata={
                "processing_time_ms": elapsed * 1000,
                "diversity_enabled": request.diversity_enabled,
                "personalized": request.personalization is not None,
                "cache_hit": cache_hit,
            },
        )

    def _filter(self, request: RecommendationRequest) -> MetadataFilter:
        return MetadataFilter.build(
            user_id=request.user_id,
            content_types=request.content_types,
            time_range=request.time_range,
        )

    # Strategies

    async def _similar(self, request: RecommendationRequest) -> list[RecommendationItem]:
        if not request.source_document_id:
            raise ValidationError("source_document_id", "required for similar recommendations")

        source = await self._engine.get_document(request.source_document_id)
        hits = await self._engine.find_nearest(
            source.embedding,
            request.max_recommendations * 2,
            self._filter(request),
        )

        items = []
        for doc in hits:
            if doc.id == source.id or not doc.embedding:
                continue
            similarity = self._engine.similarity.cosine_similarity(source.embedding, doc.embedding)
            if similarity < request.min_similarity:
                continue
            explanation = None
            if request.include_explanations:
                explanation = RecommendationExplanation(
                    reason="Content similarity based on semantic vectors",
                    similarity_score=similarity,
                    factor_breakdown={"vector_similarity": similarity},
                )
            items.append(
                RecommendationItem.from_document(
                    doc,
                    similarity,
                    similarity,
                    related_keywords=_shared_keywords(source.metadata.keywords, doc.metadata.keywords),
                    explanation=explanation,
                )
            )
        items.sort(key=lambda item: item.similarity, reverse=True)
        return items

    async def _related(self, request: RecommendationRequest) -> list[RecommendationItem]:
        source: VectorDocument | None = None
        if request.source_document_id:
            source = await self._engine.get_document(request.source_document_id)
            vector = source.embedding
            query_keywords = list(source.metadata.keywords)
        elif request.source_query:
            processed = preprocess_query(request.source_query)
            vector, _ = await self._engine.generate_query_vector(processed)
            query_keywords = processed.lower().split()
        else:
            raise ValidationError("source", "related recommendations need a source document or query")

        floor = request.min_similarity * self._weights.related_floor_factor
        hits = await self._engine.find_nearest(vector, request.max_recommendations * 3, self._filter(request))

        items = []
        for doc in hits:
            if (source is not None and doc.id == source.id) or not doc.embedding:
                continue
            similarity = self._engine.similarity.cosine_similarity(vector, doc.embedding)
            if similarity < floor:
                continue
            overlap = keyword_overlap(query_keywords, doc.metadata.keywords)
            score = self._weights.related_vector * similarity + self._weights.related_keyword * overlap
            explanation = None
            if request.include_explanations:
                explanation = RecommendationExplanation(
                    reason="Related content based on semantic and keyword similarity",
                    similarity_score=similarity,
                    factor_breakdown={"vector_similarity": similarity, "keyword_overlap": overlap},
                )
            items.append(
                RecommendationItem.from_document(
                    doc,
                    similarity,
                    score,
                    related_keywords=_shared_keywords(query_keywords, doc.metadata.keywords),
                    explanation=explanation,
                )
            )
        items.sort(key=lambda item: item.recommendation_score, reverse=True)
        return items

    def _resolve_context(self, request: RecommendationRequest) -> PersonalizationContext | None:
        if request.personalization is not None:
            self._cache.set_user_preference(request.personalization.user_id, request.personalization)
            return request.personalization
        if request.user_id:
            context, found = self._cache.get_user_preference(request.user_id)
            if found:
                return context
        return None

    async def _interaction_vector(self, context: PersonalizationContext) -> list[float] | None:
        vectors = []
        for document_id in context.recent_interactions:
            try:
                doc = await self._engine.get_document(document_id)
            except NotFoundError:
                self._logger.debug("Skipping missing interaction document %s", document_id)
                continue
            if doc.embedding:
                vectors.append(doc.embedding)
        if not vectors:
            return None
        return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()

    @staticmethod
    def _preference_query(context: PersonalizationContext) -> str:
        parts = list(context.preferred_tags) + [ct.value for ct in context.preferred_content_types]
        return " ".join(parts) if parts else "general content"

    async def _personalized(self, request: RecommendationRequest) -> list[RecommendationItem]:
        context = self._resolve_context(request)
        if context is None:
            raise ValidationError("personalization", "required for personalized recommendations")

        query_text = ""
        vector = await self._interaction_vector(context)
        if vector is None:
            query_text = preprocess_query(request.source_query or self._preference_query(context))
            vector, _ = await self._engine.generate_query_vector(query_text)

        options = SearchOptions(
            query=query_text or "personalized",
            content_types=request.content_types,
            user_id=request.user_id,
            top_k=request.max_recommendations * 2,
            min_similarity=request.min_similarity * self._weights.personalized_floor_factor,
            time_range=request.time_range,
            enable_reranking=True,
        )
        results = await self._engine.search_with_vector(vector, options, query_text)

        preferred_tags = {t.lower() for t in context.preferred_tags}
        items = []
        for result in results:
            bonus, matched = self._personalization_bonus(result, context, preferred_tags)
            score = min(result.relevance_score + bonus, 1.0)
            explanation = None
            if request.include_explanations:
                explanation = RecommendationExplanation(
                    reason="Personalized based on your preferences and history",
                    similarity_score=result.similarity,
                    factor_breakdown={"relevance": result.relevance_score, "personalization_bonus": bonus},
                    matched_features=tuple(matched),
                    user_preferences=tuple(context.preferred_tags)
                    + tuple(ct.value for ct in context.preferred_content_types),
                )
            items.append(self._from_search_result(result, score, explanation))
        items.sort(key=lambda item: item.recommendation_score, reverse=True)
        return items

    def _personalization_bonus(
        self,
        result: SearchResultItem,
        context: PersonalizationContext,
        preferred_tags: set[str],
    ) -> tuple[float, list[str]]:
        bonus = 0.0
        matched = []
        content_type = result.metadata.content_type
        if content_type is not None and content_type in context.preferred_content_types:
            bonus += self._weights.personalized_type_bonus
            matched.append(f"content_type:{content_type.value}")
        for tag in result.metadata.tags:
            if tag.lower() in preferred_tags:
                bonus += self._weights.personalized_tag_bonus
                matched.append(f"tag:{tag}")
        history = context.interaction_history.get(result.document_id)
        if history:
            bonus += history * self._weights.personalized_history_factor
            matched.append("interaction_history")
        return bonus, matched

    @staticmethod
    def _from_search_result(
        result: SearchResultItem,
        score: float,
        explanation: RecommendationExplanation | None,
    ) -> RecommendationItem:
        return RecommendationItem(
            document_id=result.document_id,
            content=result.content,
            similarity=result.similarity,
            confidence=score,
            recommendation_score=score,
            metadata=result.metadata,
            created_at=result.created_at,
            explanation=explanation,
            related_keywords=result.matched_keywords,
        )

    async def _trending(self, request: RecommendationRequest) -> list[RecommendationItem]:
        now = self._clock()
        time_range = request.time_range
        if time_range is None or time_range.start is None:
            end = time_range.end if time_range is not None and time_range.end else now
            time_range = TimeRange(start=end - timedelta(days=self._weights.trending_window_days), end=end)
        end = time_range.end or now
        window_hours = max((end - time_range.start).total_seconds() / 3600.0, 1.0)

        metadata_filter = MetadataFilter.build(
            user_id=request.user_id,
            content_types=request.content_types,
            time_range=time_range,
        )
        docs = await self._engine.find_nearest(None, request.max_recommendations * 5, metadata_filter)

        items = []
        for doc in docs:
            created = doc.metadata.created_at or doc.created_at
            age_hours = max((now - created).total_seconds() / 3600.0, 0.0)
            freshness = max(1.0 - age_hours / window_hours, 0.0)
            importance = (
                doc.metadata.importance_score / 10.0
                if doc.metadata.importance_score is not None
                else DEFAULT_IMPORTANCE
            )
            score = self._weights.trending_freshness * freshness + self._weights.trending_importance * importance
            explanation = None
            if request.include_explanations:
                explanation = RecommendationExplanation(
                    reason="Trending content based on recency and importance",
                    similarity_score=NEUTRAL_SIMILARITY,
                    factor_breakdown={
                        "freshness": freshness,
                        "importance": importance,
                        "recency_bonus": recency_bonus(age_hours),
                    },
                )
            items.append(RecommendationItem.from_document(doc, NEUTRAL_SIMILARITY, score, explanation=explanation))

        items.sort(key=lambda item: item.recommendation_score, reverse=True)
        return items

    async def _collaborative_items(self, request: RecommendationRequest) -> list[RecommendationItem]:
        if self._collaborative is None or not request.user_id:
            return await self._fallback_to_personalized(request)

        if not self._collaborative.get_user_interactions(request.user_id):
            self._logger.debug("No interactions for %s, using personalized", request.user_id)
            return await self._fallback_to_personalized(request)

        scores = self._collaborative.recommend(request.user_id, limit=request.max_recommendations * 2)
        items = []
        for document_id, score in scores.items():
            try:
                doc = await self._engine.get_document(document_id)
            except NotFoundError:
                self._logger.debug("Collaborative candidate %s no longer indexed", document_id)
                continue
            explanation = None
            if request.include_explanations:
                explanation = RecommendationExplanation(
                    reason="Users with similar interests engaged with this content",
                    similarity_score=NEUTRAL_SIMILARITY,
                    factor_breakdown={"collaborative_score": score},
                )
            items.append(RecommendationItem.from_document(doc, NEUTRAL_SIMILARITY, score, explanation=explanation))
        items.sort(key=lambda item: item.recommendation_score, reverse=True)
        return items

    async def _fallback_to_personalized(self, request: RecommendationRequest) -> list[RecommendationItem]:
        if request.personalization is None and request.user_id:
            context, found = self._cache.get_user_preference(request.user_id)
            request = replace(
                request,
                personalization=context if found else PersonalizationContext(user_id=request.user_id),
            )
        return await self._personalized(request)

    async def _hybrid(self, request: RecommendationRequest) -> list[RecommendationItem]:
        total = request.max_recommendations
        plan: list[tuple[RecommendationType, float, int]] = []
        if request.source_document_id:
            plan.append((RecommendationType.SIMILAR, self._weights.hybrid_similar, max(1, total // 2)))
        if self._resolve_context(request) is not None:
            plan.append((RecommendationType.PERSONALIZED, self._weights.hybrid_personalized, max(1, total // 2)))
        plan.append((RecommendationType.TRENDING, self._weights.hybrid_trending, max(1, total // 3)))
        if request.user_id:
            plan.append((RecommendationType.COLLABORATIVE, self._weights.hybrid_collaborative, max(1, total // 4)))

        merged: dict[str, RecommendationItem] = {}
        for strategy, weight, size in plan:
            sub_request = replace(request, type=strategy, max_recommendations=size)
            try:
                sub_items = await self.run_strategy(sub_request)
            except RetrievalError as e:
                self._logger.warning("Hybrid sub-strategy %s failed: %s", strategy.value, e)
                continue

            for item in sub_items:
                score = item.recommendation_score * weight
                explanation = None
                if request.include_explanations:
                    explanation = RecommendationExplanation(
                        reason=f"Hybrid recommendation (strategy: {strategy.value}, weight: {weight})",
                        similarity_score=item.similarity,
                        factor_breakdown={f"{strategy.value}_weight": weight},
                    )
                weighted = replace(item, recommendation_score=score, confidence=score, explanation=explanation)
                current = merged.get(item.document_id)
                if current is None or score > current.recommendation_score:
                    merged[item.document_id] = weighted

        items = list(merged.values())
        items.sort(key=lambda item: item.recommendation_score, reverse=True)
        return items

    # Post-processing

    def _post_process(self, request: RecommendationRequest, items: list[RecommendationItem]) -> list[RecommendationItem]:
        excluded = set(request.exclude_documents)
        if excluded:
            items = [item for item in items if item.document_id not in excluded]

        if request.diversity_enabled:
            items = self.apply_diversity(items, self._weights.diversity_per_type)

        items = items[: request.max_recommendations]
        return [replace(item, rank=i) for i, item in enumerate(items, start=1)]

    @staticmethod
    def apply_diversity(items: list[RecommendationItem], per_type: int) -> list[RecommendationItem]:
        """Keep at most ``per_type`` items of each content type, in order.

        Lists of three items or fewer are returned unchanged.
        """
        if len(items) <= 3:
            return list(items)
        counts: Counter = Counter()
        diverse = []
        for item in items:
            content_type = item.metadata.content_type
            key = content_type.value if content_type is not None else UNKNOWN_TYPE
            if counts[key] < per_type:
                counts[key] += 1
                diverse.append(item)
        return diverse
