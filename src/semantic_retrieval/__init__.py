"""Semantic Retrieval - semantic search and recommendations over a content archive.

This package provides a layered architecture:

Layers:
    - protocols: Interface contracts (VectorStore, EmbeddingProvider, InteractionStore)
    - repositories: Data access implementations (Redis, in-memory, Ollama, OpenAI, local models)
    - services: Business logic (SearchEngine, Recommender, Ranker, caches)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from semantic_retrieval.repositories import InMemoryVectorStore, OllamaEmbeddingProvider
    from semantic_retrieval.services import SearchEngine

    engine = SearchEngine.create(
        vector_store=InMemoryVectorStore(),
        embedding_provider=OllamaEmbeddingProvider.create(),
    )
    ```

For HTTP API:
    ```python
    from semantic_retrieval.api.app import app
    ```
"""

from semantic_retrieval.config import get_redis_client, settings
from semantic_retrieval.entities import (
    ContentItem,
    RecommendationRequest,
    RecommendationType,
    SearchOptions,
    VectorDocument,
)
from semantic_retrieval.errors import (
    NotFoundError,
    RetrievalError,
    UnsupportedOperationError,
    UpstreamError,
    ValidationError,
)
from semantic_retrieval.protocols import EmbeddingProvider, InteractionStore, VectorStore
from semantic_retrieval.repositories import InMemoryVectorStore, RedisVectorStore
from semantic_retrieval.services import Recommender, SearchEngine, VectorCacheManager

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Errors
    "RetrievalError",
    "ValidationError",
    "NotFoundError",
    "UpstreamError",
    "UnsupportedOperationError",
    # Protocols (interfaces)
    "EmbeddingProvider",
    "InteractionStore",
    "VectorStore",
    # Services (business logic)
    "SearchEngine",
    "Recommender",
    "VectorCacheManager",
    # Repositories (data access)
    "InMemoryVectorStore",
    "RedisVectorStore",
    # Entities (domain models)
    "ContentItem",
    "VectorDocument",
    "SearchOptions",
    "RecommendationRequest",
    "RecommendationType",
]
