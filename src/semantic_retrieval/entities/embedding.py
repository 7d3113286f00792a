"""Embedding provider results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmbeddingResult:
    """A single embedding.

    Attributes:
        vector: The embedding vector
        tokens_used: Tokens consumed (0 when the provider does not report it)
        model: Model that produced the vector
    """

    vector: list[float]
    tokens_used: int = 0
    model: str = ""

    @property
    def dimension(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class BatchEmbeddingResult:
    """Embeddings for many texts, aligned with the input order.

    Failed items are ``None`` in ``results`` and listed in ``errors``
    by input index.
    """

    results: list[EmbeddingResult | None]
    success_count: int
    failure_count: int
    total_tokens: int = 0
    errors: dict[int, str] = field(default_factory=dict)
