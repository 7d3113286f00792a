"""Local sentence-transformers embedding provider.

This is the default embedding provider, using sentence-transformers
models running locally. No API calls required. Encoding is CPU bound,
so it runs in a worker thread to keep the event loop responsive.
"""

import asyncio
import logging
import time

import numpy as np
from sentence_transformers import SentenceTransformer

from semantic_retrieval.config import settings
from semantic_retrieval.entities import BatchEmbeddingResult, ContentType, EmbeddingResult
from semantic_retrieval.errors import UpstreamError
from semantic_retrieval.utils.text import prepare_embedding_text


class LocalEmbeddingProvider:
    """Local sentence-transformers implementation of EmbeddingProvider.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Default model: paraphrase-multilingual-MiniLM-L12-v2 (384 dimensions)
    """

    def __init__(
        self,
        model_name: str | None = None,
        max_tokens: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the local embedding provider.

        Args:
            model_name: Name of the sentence-transformers model.
                       Defaults to settings.embedding_model.
            max_tokens: Approximate input budget used for truncation
            logger: Optional logger
        """
        self._model_name = model_name or settings.embedding_model
        self._max_tokens = max_tokens or settings.embedding_max_tokens
        self._logger = logger or logging.getLogger(__name__)
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None

    @classmethod
    def create(cls, model_name: str | None = None) -> "LocalEmbeddingProvider":
        """Factory method to create LocalEmbeddingProvider with defaults."""
        return cls(model_name=model_name)

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the embedding model."""
        if self._model is None:
            self._logger.info("Loading embedding model: %s", self._model_name)
            start_time = time.time()
            self._model = SentenceTransformer(self._model_name)
            self._logger.info("Model loaded in %.2fs", time.time() - start_time)
        return self._model

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    def _count_tokens(self, text: str) -> int:
        tokenizer = getattr(self.model, "tokenizer", None)
        if tokenizer is None:
            return 0
        return len(tokenizer.tokenize(text))

    def _encode_sync(self, texts: list[str]) -> np.ndarray:
        return self.model.encode(
            texts,
            show_progress_bar=False,
            normalize_embeddings=True,
        )

    async def encode(self, text: str, content_type: ContentType | None = None) -> EmbeddingResult:
        """Generate embedding vector for a single text.

        Args:
            text: The text to encode
            content_type: Optional hint used to prefix the text

        Returns:
            EmbeddingResult with the normalized vector

        Raises:
            UpstreamError: If the model fails to load or encode
        """
        prepared = prepare_embedding_text(text, content_type, self._max_tokens)
        try:
            embeddings = await asyncio.to_thread(self._encode_sync, [prepared])
            tokens = await asyncio.to_thread(self._count_tokens, prepared)
        except Exception as e:
            raise UpstreamError("embedding.encode", str(e), {"model": self._model_name}) from e

        return EmbeddingResult(vector=embeddings[0].tolist(), tokens_used=tokens, model=self._model_name)

    async def encode_batch(self, texts: list[str], batch_size: int = 32) -> BatchEmbeddingResult:
        """Generate embeddings for multiple texts efficiently.

        The whole batch goes through the model at once; if that fails,
        each text is retried alone so one bad input does not sink the batch.
        """
        prepared = [prepare_embedding_text(t, max_tokens=self._max_tokens) for t in texts]
        try:
            embeddings = await asyncio.to_thread(
                lambda: self.model.encode(
                    prepared,
                    batch_size=batch_size,
                    show_progress_bar=False,
                    normalize_embeddings=True,
                )
            )
        except Exception as e:
            self._logger.warning("Batch encoding failed, encoding %d texts individually: %s", len(texts), e)
            return await self._encode_individually(prepared)

        results: list[EmbeddingResult | None] = [
            EmbeddingResult(vector=row.tolist(), model=self._model_name) for row in embeddings
        ]
        return BatchEmbeddingResult(results=results, success_count=len(results), failure_count=0)

    async def _encode_individually(self, texts: list[str]) -> BatchEmbeddingResult:
        results: list[EmbeddingResult | None] = []
        errors: dict[int, str] = {}
        for i, text in enumerate(texts):
            try:
                embeddings = await asyncio.to_thread(self._encode_sync, [text])
            except Exception as e:
                self._logger.warning("Failed to embed batch item %d: %s", i, e)
                errors[i] = str(e)
                results.append(None)
                continue
            results.append(EmbeddingResult(vector=embeddings[0].tolist(), model=self._model_name))
        return BatchEmbeddingResult(
            results=results,
            success_count=len(texts) - len(errors),
            failure_count=len(errors),
            errors=errors,
        )

    async def is_available(self) -> bool:
        """Check if the embedding provider is available.

        Returns:
            True if the model can be loaded, False otherwise
        """
        try:
            await asyncio.to_thread(lambda: self.model)
            return True
        except Exception as e:
            self._logger.warning("Embedding model unavailable: %s", e)
            return False
