"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert text to vector embeddings.

Implementations:
- sentence-transformers (local, default)
- Ollama (local HTTP API)
- OpenAI-compatible ``/embeddings`` APIs
"""

from typing import Protocol, runtime_checkable

from semantic_retrieval.entities import BatchEmbeddingResult, ContentType, EmbeddingResult


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services.

    ``encode`` must be idempotent: identical input text yields an
    identical vector.
    """

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def encode(self, text: str, content_type: ContentType | None = None) -> EmbeddingResult:
        """Generate the embedding for a single text.

        Args:
            text: The text to encode
            content_type: Optional hint used to prepare the text

        Returns:
            EmbeddingResult with the vector and tokens used

        Raises:
            UpstreamError: If the provider fails
        """
        ...

    async def encode_batch(self, texts: list[str]) -> BatchEmbeddingResult:
        """Generate embeddings for many texts.

        Per-item failures are reported in the result, not raised.
        """
        ...

    async def is_available(self) -> bool:
        """Return True if the provider can serve requests."""
        ...
