"""HTTP handlers for search and index operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

from dataclasses import asdict
from typing import Any

from fastapi import HTTPException, status

from semantic_retrieval.dto import (
    BatchIndexRequest,
    BatchIndexResponse,
    HealthCheckResponse,
    IndexDocumentRequest,
    IndexDocumentResponse,
    SearchRequest,
    SearchResultsResponse,
    UpdateDocumentRequest,
)
from semantic_retrieval.entities import RankingOptions, RankingStrategy
from semantic_retrieval.handlers.converters import (
    search_item_response,
    to_content_item,
    to_search_options,
)
from semantic_retrieval.handlers.errors import http_error
from semantic_retrieval.services import Ranker, SearchEngine


class SearchHandler:
    """HTTP handlers for search and document maintenance.

    This handler delegates business logic to SearchEngine
    and handles HTTP-specific concerns like:
    - Converting DTOs to entities and back
    - Setting appropriate status codes
    - Mapping domain errors to HTTP errors

    Example:
        ```python
        handler = SearchHandler(search_engine=engine)

        @app.post("/search", response_model=SearchResultsResponse)
        async def search(request: SearchRequest):
            return await handler.search(request)
        ```
    """

    def __init__(self, search_engine: SearchEngine, ranker: Ranker | None = None) -> None:
        """Initialize the search handler.

        Args:
            search_engine: The search engine for business logic (required).
            ranker: Ranker for the optional second ranking pass.
        """
        self._engine = search_engine
        self._ranker = ranker or Ranker()

    async def search(self, request: SearchRequest) -> SearchResultsResponse:
        """Handle POST /search requests.

        Raises:
            HTTPException: 400 on invalid options, 502 on upstream failure
        """
        try:
            response = await self._engine.search(to_search_options(request))

            results = response.results
            diversity = None
            if request.ranking_strategy:
                ranking = self._ranker.rank(
                    results,
                    RankingOptions(strategy=RankingStrategy.parse(request.ranking_strategy)),
                )
                results = ranking.ranked_results
                diversity = asdict(ranking.diversity_metrics)

            return SearchResultsResponse(
                query=request.query,
                processed_query=response.processed_query,
                results=[search_item_response(item) for item in results],
                total_results=len(results),
                query_time_ms=response.query_time * 1000,
                similarity_metric=response.similarity_metric.value,
                vector_dimension=response.vector_dimension,
                metadata=response.metadata,
                diversity_metrics=diversity,
            )
        except Exception as e:
            raise http_error("search", e) from e

    async def index_document(self, request: IndexDocumentRequest) -> IndexDocumentResponse:
        """Handle POST /documents requests."""
        try:
            document = await self._engine.index_document(to_content_item(request.id, request))
            return IndexDocumentResponse(
                success=True,
                document_id=document.id,
                message="Document indexed successfully",
            )
        except Exception as e:
            raise http_error("index document", e) from e

    async def batch_index_documents(self, request: BatchIndexRequest) -> BatchIndexResponse:
        """Handle POST /documents/batch requests.

        Per-document failures are reported in the response, not raised.
        """
        try:
            items = [to_content_item(doc.id, doc) for doc in request.documents]
            result = await self._engine.batch_index_documents(items)
            return BatchIndexResponse(
                success_count=result.success_count,
                failure_count=result.failure_count,
                indexed_ids=list(result.indexed_ids),
                failed_ids=list(result.failed_ids),
            )
        except Exception as e:
            raise http_error("index documents", e) from e

    async def update_document(self, document_id: str, request: UpdateDocumentRequest) -> IndexDocumentResponse:
        """Handle PUT /documents/{document_id} requests."""
        try:
            await self._engine.update_document(to_content_item(document_id, request))
            return IndexDocumentResponse(
                success=True,
                document_id=document_id,
                message="Document updated successfully",
            )
        except Exception as e:
            raise http_error("update document", e) from e

    async def delete_document(self, document_id: str) -> IndexDocumentResponse:
        """Handle DELETE /documents/{document_id} requests."""
        try:
            await self._engine.delete_document(document_id)
            return IndexDocumentResponse(
                success=True,
                document_id=document_id,
                message="Document deleted successfully",
            )
        except Exception as e:
            raise http_error("delete document", e) from e

    async def get_stats(self) -> dict[str, Any]:
        """Handle GET /search/stats requests."""
        try:
            return await self._engine.get_search_stats()
        except Exception as e:
            raise http_error("get stats", e) from e

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Raises:
            HTTPException: 503 if a component is unhealthy
        """
        health = await self._engine.health_check()
        response = HealthCheckResponse(
            status=health["status"],
            vector_store_healthy=health["vector_store"],
            embedding_healthy=health["embedding"],
            errors=health["errors"],
        )
        if health["status"] != "healthy":
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=response.model_dump(),
            )
        return response
