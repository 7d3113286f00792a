"""FastAPI application exposing search, indexing and recommendations."""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from semantic_retrieval.api.dependencies import (
    RecommendationHandlerDep,
    SearchHandlerDep,
    lifespan,
)
from semantic_retrieval.config import settings
from semantic_retrieval.dto import (
    BatchIndexRequest,
    BatchIndexResponse,
    GetRecommendationsRequest,
    HealthCheckResponse,
    IndexDocumentRequest,
    IndexDocumentResponse,
    RecommendationsResponse,
    SearchRequest,
    SearchResultsResponse,
    UpdateDocumentRequest,
)
from semantic_retrieval.services import Recommender, SearchEngine

VERSION = "0.1.0"


def create_app(
    search_engine: SearchEngine | None = None,
    recommender: Recommender | None = None,
) -> FastAPI:
    """Build the API.

    Args:
        search_engine: Prebuilt engine. If None, built from settings at startup.
        recommender: Prebuilt recommender. If None, built around the engine.
    """
    app = FastAPI(
        title="Semantic Retrieval API",
        description="Semantic search and recommendations over a personal content archive",
        version=VERSION,
        lifespan=lifespan,
    )
    if search_engine is not None:
        app.state.search_engine = search_engine
    if recommender is not None:
        app.state.recommender = recommender

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Semantic Retrieval API",
            "version": VERSION,
            "endpoints": {
                "search": "/search",
                "stats": "/search/stats",
                "documents": "/documents",
                "recommendations": "/recommendations",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: SearchHandlerDep) -> HealthCheckResponse:
        return await handler.health_check()

    @app.post("/search", response_model=SearchResultsResponse)
    async def search(request: SearchRequest, handler: SearchHandlerDep) -> SearchResultsResponse:
        """Semantic search over indexed documents."""
        return await handler.search(request)

    @app.get("/search/stats", response_model=dict[str, Any])
    async def search_stats(handler: SearchHandlerDep) -> dict[str, Any]:
        """Vector store, cache and embedding statistics."""
        return await handler.get_stats()

    @app.post("/documents", response_model=IndexDocumentResponse, status_code=201)
    async def index_document(request: IndexDocumentRequest, handler: SearchHandlerDep) -> IndexDocumentResponse:
        return await handler.index_document(request)

    @app.post("/documents/batch", response_model=BatchIndexResponse)
    async def batch_index_documents(request: BatchIndexRequest, handler: SearchHandlerDep) -> BatchIndexResponse:
        return await handler.batch_index_documents(request)

    @app.put("/documents/{document_id}", response_model=IndexDocumentResponse)
    async def update_document(
        document_id: str,
        request: UpdateDocumentRequest,
        handler: SearchHandlerDep,
    ) -> IndexDocumentResponse:
        return await handler.update_document(document_id, request)

    @app.delete("/documents/{document_id}", response_model=IndexDocumentResponse)
    async def delete_document(document_id: str, handler: SearchHandlerDep) -> IndexDocumentResponse:
        return await handler.delete_document(document_id)

    @app.post("/recommendations", response_model=RecommendationsResponse)
    async def recommendations(
        request: GetRecommendationsRequest,
        handler: RecommendationHandlerDep,
    ) -> RecommendationsResponse:
        """Recommendations using one of six strategies."""
        return await handler.get_recommendations(request)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "semantic_retrieval.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
