"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from semantic_retrieval.config import settings
from semantic_retrieval.handlers import RecommendationHandler, SearchHandler
from semantic_retrieval.protocols import EmbeddingProvider
from semantic_retrieval.repositories import (
    InMemoryInteractionStore,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
    RedisVectorStore,
)
from semantic_retrieval.services import (
    CollaborativeFilter,
    Ranker,
    Recommender,
    SearchEngine,
    VectorCacheManager,
)
from semantic_retrieval.utils import configure_logging


def get_search_handler(request: Request) -> SearchHandler:
    """Dependency injection for SearchHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "search_handler", None)
    if handler is None:
        raise RuntimeError("SearchHandler not initialized. Check lifespan setup.")
    return handler


def get_recommendation_handler(request: Request) -> RecommendationHandler:
    """Dependency injection for RecommendationHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "recommendation_handler", None)
    if handler is None:
        raise RuntimeError("RecommendationHandler not initialized. Check lifespan setup.")
    return handler


def create_embedding_provider(logger: logging.Logger | None = None) -> EmbeddingProvider:
    """Build the embedding provider selected by EMBEDDING_PROVIDER.

    ⚠️ IMPORTANT: When switching providers or models the vector dimension
    may change; drop the Redis index before restarting.
    """
    if settings.embedding_provider == "ollama":
        return OllamaEmbeddingProvider(logger=logger)
    if settings.embedding_provider == "openai":
        return OpenAIEmbeddingProvider(logger=logger)

    # Imported here so that the HTTP layer does not load torch unless needed
    from semantic_retrieval.repositories.local_embedding_provider import LocalEmbeddingProvider

    return LocalEmbeddingProvider(logger=logger)


def build_services(logger: logging.Logger | None = None) -> tuple[SearchEngine, Recommender]:
    """Wire repositories and services from settings."""
    embedding_provider = create_embedding_provider(logger)
    vector_store = RedisVectorStore.create(dimension=embedding_provider.dimension, logger=logger)
    cache = VectorCacheManager.create(logger=logger)

    search_engine = SearchEngine(
        vector_store=vector_store,
        embedding_provider=embedding_provider,
        cache=cache,
        logger=logger,
    )
    recommender = Recommender(
        search_engine=search_engine,
        collaborative_filter=CollaborativeFilter(InMemoryInteractionStore(), logger=logger),
        logger=logger,
    )
    return search_engine, recommender


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Services (business logic) - app.state.search_engine, app.state.recommender
    2. Handlers (HTTP endpoints) - app.state.search_handler, app.state.recommendation_handler

    Services placed in app.state before startup (e.g. by tests) are used
    as-is instead of being built from settings.

    Cleanup:
        Closes the search engine and removes all services from app.state
    """
    logger = configure_logging(settings.log_level)

    search_engine = getattr(app.state, "search_engine", None)
    recommender = getattr(app.state, "recommender", None)
    if search_engine is None:
        search_engine, built_recommender = build_services(logger)
        recommender = recommender or built_recommender
    elif recommender is None:
        recommender = Recommender(search_engine=search_engine, logger=logger)

    app.state.search_engine = search_engine
    app.state.recommender = recommender
    app.state.search_handler = SearchHandler(search_engine=search_engine, ranker=Ranker(logger=logger))
    app.state.recommendation_handler = RecommendationHandler(recommender=recommender)

    logger.info("Semantic retrieval API started (embedding provider: %s)", settings.embedding_provider)

    yield

    await search_engine.close()
    del app.state.recommendation_handler
    del app.state.search_handler
    del app.state.recommender
    del app.state.search_engine
    logger.info("Semantic retrieval API shut down")


# Type aliases for cleaner dependency injection
SearchHandlerDep = Annotated[SearchHandler, Depends(get_search_handler)]
RecommendationHandlerDep = Annotated[RecommendationHandler, Depends(get_recommendation_handler)]
