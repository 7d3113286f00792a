"""Per-item batch embedding shared by the HTTP embedding providers."""

import logging
from typing import Protocol

from semantic_retrieval.entities import BatchEmbeddingResult, EmbeddingResult
from semantic_retrieval.errors import RetrievalError


class _Encoder(Protocol):
    async def encode(self, text: str) -> EmbeddingResult: ...


async def encode_each(encoder: _Encoder, texts: list[str], logger: logging.Logger) -> BatchEmbeddingResult:
    """Encode texts one by one, counting failures instead of raising.

    Args:
        encoder: Anything with an async ``encode(text)``
        texts: Texts to encode
        logger: Logger for per-item failures

    Returns:
        BatchEmbeddingResult aligned with ``texts``
    """
    results: list[EmbeddingResult | None] = []
    errors: dict[int, str] = {}
    total_tokens = 0

    for i, text in enumerate(texts):
        try:
            result = await encoder.encode(text)
        except RetrievalError as e:
            logger.warning("Failed to embed batch item %d: %s", i, e)
            errors[i] = str(e)
            results.append(None)
            continue
        total_tokens += result.tokens_used
        results.append(result)

    return BatchEmbeddingResult(
        results=results,
        success_count=len(texts) - len(errors),
        failure_count=len(errors),
        total_tokens=total_tokens,
        errors=errors,
    )
