"""Conversions between DTOs and domain entities."""

from semantic_retrieval.dto import (
    GetRecommendationsRequest,
    PersonalizationRequest,
    RecommendationItemResponse,
    SearchRequest,
    SearchResultItemResponse,
)
from semantic_retrieval.dto.requests import DocumentFields
from semantic_retrieval.dto.responses import RecommendationExplanationResponse
from semantic_retrieval.entities import (
    ContentItem,
    ContentType,
    DocumentMetadata,
    PersonalizationContext,
    RecommendationItem,
    RecommendationRequest,
    RecommendationType,
    SearchOptions,
    SearchResultItem,
    SimilarityMetric,
    TimeRange,
)
from semantic_retrieval.entities.document import to_datetime


def _time_range(start, end) -> TimeRange | None:
    if start is None and end is None:
        return None
    return TimeRange(
        start=to_datetime(start, "start_time") if start else None,
        end=to_datetime(end, "end_time") if end else None,
    )


def _content_types(values: list[str]) -> tuple[ContentType, ...]:
    return tuple(ContentType.parse(v, "content_types") for v in values)


def to_search_options(request: SearchRequest) -> SearchOptions:
    return SearchOptions(
        query=request.query,
        content_types=_content_types(request.content_types),
        user_id=request.user_id,
        top_k=request.top_k,
        min_similarity=request.min_similarity,
        include_content=request.include_content,
        similarity_metric=SimilarityMetric.parse(request.similarity_metric),
        time_range=_time_range(request.start_time, request.end_time),
        tags=tuple(request.tags),
        importance_threshold=request.importance_threshold,
        enable_reranking=request.enable_reranking,
        max_results=request.max_results,
    )


def to_content_item(document_id: str, fields: DocumentFields) -> ContentItem:
    return ContentItem(
        id=document_id,
        raw_content=fields.content,
        type=ContentType.parse(fields.content_type),
        user_id=fields.user_id,
        tags=tuple(fields.tags),
        keywords=tuple(fields.keywords),
        importance_score=fields.importance_score,
        created_at=to_datetime(fields.created_at, "created_at") if fields.created_at else None,
        extra=DocumentMetadata.from_dict(fields.metadata).extra,
    )


def to_personalization(request: PersonalizationRequest) -> PersonalizationContext:
    return PersonalizationContext(
        user_id=request.user_id,
        user_preferences=dict(request.user_preferences),
        recent_interactions=tuple(request.recent_interactions),
        preferred_content_types=_content_types(request.preferred_content_types),
        preferred_tags=tuple(request.preferred_tags),
        interaction_history=dict(request.interaction_history),
    )


def to_recommendation_request(request: GetRecommendationsRequest) -> RecommendationRequest:
    return RecommendationRequest(
        type=RecommendationType.parse(request.type),
        user_id=request.user_id,
        source_document_id=request.source_document_id,
        source_query=request.source_query,
        max_recommendations=request.max_recommendations,
        content_types=_content_types(request.content_types),
        exclude_documents=tuple(request.exclude_documents),
        time_range=_time_range(request.start_time, request.end_time),
        min_similarity=request.min_similarity,
        diversity_enabled=request.diversity_enabled,
        personalization=to_personalization(request.personalization) if request.personalization else None,
        include_explanations=request.include_explanations,
    )


def search_item_response(item: SearchResultItem) -> SearchResultItemResponse:
    return SearchResultItemResponse(
        document_id=item.document_id,
        content=item.content,
        similarity=item.similarity,
        distance=item.distance,
        rank=item.rank,
        relevance_score=item.relevance_score,
        matched_keywords=list(item.matched_keywords),
        content_summary=item.content_summary,
        metadata=item.metadata.to_dict(),
        created_at=item.created_at,
    )


def recommendation_item_response(item: RecommendationItem) -> RecommendationItemResponse:
    explanation = None
    if item.explanation is not None:
        explanation = RecommendationExplanationResponse(
            reason=item.explanation.reason,
            similarity_score=item.explanation.similarity_score,
            factor_breakdown=dict(item.explanation.factor_breakdown),
            matched_features=list(item.explanation.matched_features),
            user_preferences=list(item.explanation.user_preferences),
        )
    return RecommendationItemResponse(
        document_id=item.document_id,
        content=item.content,
        similarity=item.similarity,
        confidence=item.confidence,
        recommendation_score=item.recommendation_score,
        rank=item.rank,
        metadata=item.metadata.to_dict(),
        created_at=item.created_at,
        related_keywords=list(item.related_keywords),
        explanation=explanation,
    )
