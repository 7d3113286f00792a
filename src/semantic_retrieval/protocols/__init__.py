"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Services depend on these, never on concrete repositories, so a Redis
vector store can be swapped for the in-memory one (or a test double)
without touching service code.

Usage:
    ```python
    from semantic_retrieval.protocols import EmbeddingProvider, VectorStore

    store: VectorStore = RedisVectorStore.create(dimension=384)  # works
    store: VectorStore = InMemoryVectorStore()                    # also works
    ```
"""

from .embedding_provider import EmbeddingProvider
from .interaction_store import InteractionStore
from .vector_store import VectorStore

__all__ = [
    "EmbeddingProvider",
    "InteractionStore",
    "VectorStore",
]
