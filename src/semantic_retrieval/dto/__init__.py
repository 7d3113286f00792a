"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    BatchIndexRequest,
    GetRecommendationsRequest,
    IndexDocumentRequest,
    PersonalizationRequest,
    SearchRequest,
    UpdateDocumentRequest,
)
from .responses import (
    BatchIndexResponse,
    HealthCheckResponse,
    IndexDocumentResponse,
    RecommendationExplanationResponse,
    RecommendationItemResponse,
    RecommendationsResponse,
    SearchResultItemResponse,
    SearchResultsResponse,
)

__all__ = [
    "SearchRequest",
    "IndexDocumentRequest",
    "BatchIndexRequest",
    "UpdateDocumentRequest",
    "PersonalizationRequest",
    "GetRecommendationsRequest",
    "SearchResultItemResponse",
    "SearchResultsResponse",
    "IndexDocumentResponse",
    "BatchIndexResponse",
    "RecommendationExplanationResponse",
    "RecommendationItemResponse",
    "RecommendationsResponse",
    "HealthCheckResponse",
]
