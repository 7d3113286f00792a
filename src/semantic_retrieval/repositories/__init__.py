"""Repository layer for data access.

This layer abstracts external dependencies (Redis, embedding models and
APIs, interaction history) behind protocol-based interfaces.

``LocalEmbeddingProvider`` is not re-exported here because importing it
loads sentence-transformers; import it from
``semantic_retrieval.repositories.local_embedding_provider``.
"""

from semantic_retrieval.protocols import EmbeddingProvider, InteractionStore, VectorStore

from .memory_interaction_store import InMemoryInteractionStore
from .memory_vector_store import InMemoryVectorStore
from .ollama_embedding_provider import OllamaEmbeddingProvider
from .openai_embedding_provider import OpenAIEmbeddingProvider
from .redis_vector_store import RedisVectorStore

__all__ = [
    "EmbeddingProvider",
    "InteractionStore",
    "VectorStore",
    "InMemoryInteractionStore",
    "InMemoryVectorStore",
    "OllamaEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "RedisVectorStore",
]
