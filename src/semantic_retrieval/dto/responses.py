"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SearchResultItemResponse(BaseModel):
    """Single search result (in results array)."""

    document_id: str = Field(..., description="Id of the matched document")
    content: str = Field(..., description="Document content (empty when include_content is false)")
    similarity: float = Field(..., description="Similarity to the query (0-1)", ge=0.0, le=1.0)
    distance: float | None = Field(None, description="L2 distance reported by the vector store")
    rank: int = Field(..., description="1-based position in the result list", ge=1)
    relevance_score: float = Field(..., description="Composite relevance (0-1)")
    matched_keywords: list[str] = Field(default_factory=list, description="Query words found in the document")
    content_summary: str = Field("", description="Excerpt around the first query word")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Typed document metadata")
    created_at: datetime = Field(..., description="Document creation time")


class SearchResultsResponse(BaseModel):
    """Response DTO for semantic search."""

    query: str = Field(..., description="The original query")
    processed_query: str = Field(..., description="The query after normalization")
    results: list[SearchResultItemResponse] = Field(default_factory=list, description="Ranked results")
    total_results: int = Field(..., description="Number of results returned", ge=0)
    query_time_ms: float = Field(..., description="Time taken for the search in milliseconds")
    similarity_metric: str = Field(..., description="Metric used for similarity")
    vector_dimension: int = Field(..., description="Dimension of the query vector", ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict, description="Result counts and cache status")
    diversity_metrics: dict[str, float] | None = Field(
        None,
        description="Diversity of the result set when a ranking strategy was applied",
    )


class IndexDocumentResponse(BaseModel):
    """Response DTO for index, update and delete operations."""

    success: bool = Field(..., description="Whether the operation succeeded")
    document_id: str = Field(..., description="The affected document id")
    message: str = Field(..., description="Human-readable status message")


class BatchIndexResponse(BaseModel):
    """Response DTO for batch indexing."""

    success_count: int = Field(..., description="Documents indexed", ge=0)
    failure_count: int = Field(..., description="Documents skipped after a failure", ge=0)
    indexed_ids: list[str] = Field(default_factory=list, description="Ids that were indexed")
    failed_ids: list[str] = Field(default_factory=list, description="Ids that failed")


class RecommendationExplanationResponse(BaseModel):
    """Why an item was recommended."""

    reason: str = Field(..., description="Human-readable reason")
    similarity_score: float = Field(0.0, description="Similarity behind the recommendation")
    factor_breakdown: dict[str, float] = Field(default_factory=dict, description="Score factors")
    matched_features: list[str] = Field(default_factory=list, description="Preferences this item matched")
    user_preferences: list[str] = Field(default_factory=list, description="The user's stated preferences")


class RecommendationItemResponse(BaseModel):
    """Single recommendation (in recommendations array)."""

    document_id: str = Field(..., description="Recommended document id")
    content: str = Field(..., description="Document content")
    similarity: float = Field(..., description="Similarity used by the strategy")
    confidence: float = Field(..., description="Confidence in the recommendation")
    recommendation_score: float = Field(..., description="Score the list is sorted by")
    rank: int = Field(..., description="1-based position", ge=1)
    metadata: dict[str, Any] = Field(default_factory=dict, description="Typed document metadata")
    created_at: datetime = Field(..., description="Document creation time")
    related_keywords: list[str] = Field(default_factory=list, description="Keywords shared with the source")
    explanation: RecommendationExplanationResponse | None = Field(None, description="Optional explanation")


class RecommendationsResponse(BaseModel):
    """Response DTO for recommendations."""

    recommendations: list[RecommendationItemResponse] = Field(default_factory=list, description="Ranked items")
    total_found: int = Field(..., description="Number of recommendations returned", ge=0)
    process_time_ms: float = Field(..., description="Processing time in milliseconds")
    recommendation_type: str = Field(..., description="Strategy that produced the list")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Processing metadata")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    vector_store_healthy: bool = Field(..., description="Whether the vector store is reachable")
    embedding_healthy: bool = Field(..., description="Whether the embedding provider is reachable")
    errors: dict[str, str] = Field(default_factory=dict, description="Failure details per component")
