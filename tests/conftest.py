"""Shared fixtures: deterministic embeddings, in-memory store, cache."""

import hashlib
import logging
from datetime import datetime, timezone

import numpy as np
import pytest

from semantic_retrieval.entities import (
    ContentType,
    DocumentMetadata,
    EmbeddingResult,
    VectorDocument,
)
from semantic_retrieval.errors import UpstreamError
from semantic_retrieval.repositories import InMemoryVectorStore
from semantic_retrieval.repositories.embedding_batch import encode_each
from semantic_retrieval.services import CacheConfig, SearchEngine, VectorCacheManager

DIMENSION = 3
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeEmbeddingProvider:
    """EmbeddingProvider returning fixed vectors for known texts.

    Unknown texts get a stable pseudo-random unit vector derived from
    their sha256, so identical input always yields the same vector.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, dimension: int = DIMENSION) -> None:
        self.vectors = dict(vectors or {})
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    def _hash_vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        raw = np.frombuffer(digest[: self._dimension], dtype=np.uint8).astype(np.float64) + 1.0
        return (raw / np.linalg.norm(raw)).tolist()

    async def encode(self, text: str, content_type: ContentType | None = None) -> EmbeddingResult:
        self.calls.append(text)
        if text in self.failing:
            raise UpstreamError("embedding.encode", "model unavailable")
        vector = self.vectors.get(text) or self._hash_vector(text)
        return EmbeddingResult(vector=list(vector), tokens_used=len(text.split()), model=self.model_name)

    async def encode_batch(self, texts: list[str]):
        return await encode_each(self, texts, logging.getLogger(__name__))

    async def is_available(self) -> bool:
        return True


def make_document(
    document_id: str,
    embedding: list[float],
    content: str | None = None,
    created_at: datetime = NOW,
    **metadata,
) -> VectorDocument:
    """VectorDocument with typed metadata built from keyword arguments."""
    return VectorDocument(
        id=document_id,
        content=content or f"content of {document_id}",
        embedding=embedding,
        metadata=DocumentMetadata(created_at=created_at, **metadata),
        created_at=created_at,
    )


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=DIMENSION)


@pytest.fixture
def cache():
    manager = VectorCacheManager(CacheConfig(cleanup_interval=3600))
    yield manager
    manager.close()


@pytest.fixture
def engine(store, provider, cache) -> SearchEngine:
    return SearchEngine(
        vector_store=store,
        embedding_provider=provider,
        cache=cache,
        upstream_timeout=5,
        clock=lambda: NOW,
    )
