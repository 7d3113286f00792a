"""Request DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Request DTO for semantic search.

    The handler will convert this to SearchOptions for the service layer.
    """

    query: str = Field(..., description="Free-text search query", min_length=1)
    content_types: list[str] = Field(
        default_factory=list,
        description="Restrict results to these content types (text, link, file, image)",
    )
    user_id: str | None = Field(None, description="Restrict results to one user's documents")
    top_k: int = Field(10, description="Maximum number of results to return", ge=1, le=100)
    min_similarity: float = Field(0.0, description="Minimum similarity (0-1)", ge=0.0, le=1.0)
    include_content: bool = Field(True, description="Whether to return full document content")
    similarity_metric: str = Field(
        "cosine",
        description="Similarity metric: cosine, euclidean, dot or manhattan",
    )
    start_time: datetime | None = Field(None, description="Only documents created at or after this time")
    end_time: datetime | None = Field(None, description="Only documents created at or before this time")
    tags: list[str] = Field(default_factory=list, description="Match documents carrying any of these tags")
    importance_threshold: float | None = Field(
        None,
        description="Minimum importance score (0-10)",
        ge=0.0,
        le=10.0,
    )
    enable_reranking: bool = Field(True, description="Sort by composite relevance instead of similarity")
    max_results: int = Field(100, description="Candidates fetched from the vector store", ge=1, le=1000)
    ranking_strategy: str | None = Field(
        None,
        description="Optional second ranking pass: similarity, relevance, time, importance, hybrid, personalized",
    )


class DocumentFields(BaseModel):
    """Fields shared by index and update requests."""

    content: str = Field(..., description="Raw document content", min_length=1)
    content_type: str = Field("text", description="Content type: text, link, file or image")
    user_id: str | None = Field(None, description="Owner of the document")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    keywords: list[str] = Field(default_factory=list, description="Extracted keywords")
    importance_score: float | None = Field(None, description="Importance (0-10)", ge=0.0, le=10.0)
    created_at: datetime | None = Field(None, description="Creation time; defaults to now")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional scalar metadata (strings, numbers, booleans)",
    )


class IndexDocumentRequest(DocumentFields):
    """Request DTO for indexing one document."""

    id: str = Field(..., description="Unique document id", min_length=1)


class BatchIndexRequest(BaseModel):
    """Request DTO for indexing many documents."""

    documents: list[IndexDocumentRequest] = Field(..., description="Documents to index", min_length=1)


class UpdateDocumentRequest(DocumentFields):
    """Request DTO for replacing an indexed document (id comes from the path)."""


class PersonalizationRequest(BaseModel):
    """Caller-supplied personalization context."""

    user_id: str = Field(..., description="The user the context belongs to", min_length=1)
    user_preferences: dict[str, float] = Field(default_factory=dict, description="Document id -> preference weight")
    recent_interactions: list[str] = Field(default_factory=list, description="Recent document ids, newest first")
    preferred_content_types: list[str] = Field(default_factory=list, description="Favoured content types")
    preferred_tags: list[str] = Field(default_factory=list, description="Favoured tags")
    interaction_history: dict[str, float] = Field(
        default_factory=dict,
        description="Document id -> interaction weight (0-1)",
    )


class GetRecommendationsRequest(BaseModel):
    """Request DTO for recommendations."""

    type: str = Field(
        ...,
        description="Strategy: similar, related, personalized, trending, collaborative or hybrid",
    )
    user_id: str | None = Field(None, description="User the recommendations are for")
    source_document_id: str | None = Field(None, description="Source document for similar/related")
    source_query: str | None = Field(None, description="Free-text source for related/personalized")
    max_recommendations: int = Field(10, description="Maximum recommendations to return", ge=1, le=100)
    content_types: list[str] = Field(default_factory=list, description="Restrict to these content types")
    exclude_documents: list[str] = Field(default_factory=list, description="Document ids never to return")
    start_time: datetime | None = Field(None, description="Only documents created at or after this time")
    end_time: datetime | None = Field(None, description="Only documents created at or before this time")
    min_similarity: float = Field(0.0, description="Minimum similarity (0-1)", ge=0.0, le=1.0)
    diversity_enabled: bool = Field(False, description="Cap results per content type")
    personalization: PersonalizationRequest | None = Field(None, description="Personalization context")
    include_explanations: bool = Field(False, description="Attach an explanation to every item")
