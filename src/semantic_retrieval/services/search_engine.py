"""Semantic search orchestration.

Ties together the embedding provider, the vector store, the cache and
the similarity calculator. Every upstream call goes through
``asyncio.wait_for`` with the configured timeout; cancellation of the
calling task propagates untouched and nothing is cached for a call
that did not complete.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, TypeVar

from semantic_retrieval.config import ScoringWeights, settings
from semantic_retrieval.entities import (
    BatchIndexResult,
    ContentItem,
    DocumentMetadata,
    EmbeddingResult,
    MetadataFilter,
    SearchOptions,
    SearchResponse,
    SearchResultItem,
    SimilarityMetric,
    VectorDocument,
)
from semantic_retrieval.errors import RetrievalError, UpstreamError, ValidationError
from semantic_retrieval.protocols import EmbeddingProvider, VectorStore
from semantic_retrieval.services.cache_manager import VectorCacheManager
from semantic_retrieval.services.similarity import SimilarityCalculator
from semantic_retrieval.utils.text import (
    extract_matched_keywords,
    generate_summary,
    normalize_whitespace,
    prepare_embedding_text,
    preprocess_query,
)

T = TypeVar("T")

HEALTH_CHECK_TEXT = "health check test"


class SearchEngine:
    """Core search orchestration service.

    This service depends on PROTOCOLS, not concrete implementations:
    - VectorStore: Redis, in-memory, or anything matching the protocol
    - EmbeddingProvider: local, Ollama, OpenAI-compatible, etc.

    Example:
        ```python
        engine = SearchEngine.create(
            vector_store=InMemoryVectorStore(),
            embedding_provider=OllamaEmbeddingProvider.create(),
        )
        await engine.index_document(ContentItem(id="n1", raw_content="..."))
        response = await engine.search(SearchOptions(query="vector databases"))
        await engine.close()
        ```
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        cache: VectorCacheManager,
        similarity: SimilarityCalculator | None = None,
        weights: ScoringWeights | None = None,
        upstream_timeout: float | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the search engine.

        Args:
            vector_store: Vector storage backend (required).
            embedding_provider: Embedding generation service (required).
            cache: Cache manager for query vectors (required).
            similarity: Similarity calculator. Defaults to a new one.
            weights: Relevance score weights. Defaults to ScoringWeights().
            upstream_timeout: Seconds allowed per upstream call. Defaults to settings.
            logger: Optional logger
            clock: Returns "now"; used for freshness scoring
        """
        self._store = vector_store
        self._embeddings = embedding_provider
        self._cache = cache
        self._logger = logger or logging.getLogger(__name__)
        self._similarity = similarity or SimilarityCalculator(logger=self._logger)
        self._weights = weights or ScoringWeights()
        self._timeout = upstream_timeout or settings.upstream_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider,
        cache: VectorCacheManager | None = None,
        logger: logging.Logger | None = None,
    ) -> "SearchEngine":
        """Factory method with a settings-configured cache manager."""
        return cls(
            vector_store=vector_store,
            embedding_provider=embedding_provider,
            cache=cache or VectorCacheManager.create(logger=logger),
            logger=logger,
        )

    # Upstream calls

    async def _call_store(self, operation: str, fn: Callable[..., T], *args: Any, **context: Any) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout)
        except TimeoutError as e:
            raise UpstreamError(operation, f"timed out after {self._timeout}s", context) from e
        except RetrievalError:
            raise
        except Exception as e:
            raise UpstreamError(operation, str(e), context) from e

    async def _embed(self, text: str, content_type=None) -> EmbeddingResult:
        try:
            return await asyncio.wait_for(self._embeddings.encode(text, content_type), timeout=self._timeout)
        except TimeoutError as e:
            raise UpstreamError("embedding.encode", f"timed out after {self._timeout}s") from e
        except RetrievalError:
            raise
        except Exception as e:
            raise UpstreamError("embedding.encode", str(e), {"model": self._embeddings.model_name}) from e

    # Query path

    async def generate_query_vector(self, query: str, options: SearchOptions | None = None) -> tuple[list[float], bool]:
        """Resolve the vector for ``query``, from cache when possible.

        Returns:
            Tuple (vector, cache_hit)
        """
        options = options or SearchOptions(query=query)
        vector, found = self._cache.get_query_vector(query, options)
        if found and vector is not None:
            return vector, True

        result = await self._embed(query)
        self._cache.set_query_vector(query, options, result.vector)
        self._logger.debug("Embedded query (%d tokens)", result.tokens_used)
        return result.vector, False

    async def find_nearest(
        self,
        vector: list[float] | None,
        top_k: int,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[VectorDocument]:
        """Query the vector store directly."""
        return await self._call_store(
            "vector_store.query",
            self._store.query,
            vector,
            top_k,
            metadata_filter,
            top_k=top_k,
        )

    async def search(self, options: SearchOptions | None) -> SearchResponse:
        """Run a semantic search end-to-end.

        Steps: validate, preprocess the query, resolve the query vector
        (cache first), query the store with the metadata filter, enrich
        hits, optionally rerank, then threshold, truncate and rank.

        Raises:
            ValidationError: On missing options or an empty query
            UpstreamError: If the embedding provider or vector store fails
        """
        start = time.perf_counter()
        if options is None:
            raise ValidationError("options", "search options are required")
        options = options.with_defaults()
        options.validate()

        processed_query = preprocess_query(options.query)
        vector, cache_hit = await self.generate_query_vector(processed_query, options)

        results, counts = await self._retrieve(vector, options, processed_query)

        elapsed = time.perf_counter() - start
        self._logger.info(
            "Search for %r returned %d results in %.1fms (cache_hit=%s)",
            processed_query,
            len(results),
            elapsed * 1000,
            cache_hit,
        )
        return SearchResponse(
            results=results,
            total_results=len(results),
            query_time=elapsed,
            processed_query=processed_query,
            similarity_metric=options.similarity_metric,
            vector_dimension=len(vector),
            metadata={**counts, "reranking_enabled": options.enable_reranking, "cache_hit": cache_hit},
        )

    async def search_with_vector(
        self,
        vector: list[float],
        options: SearchOptions,
        query_text: str = "",
    ) -> list[SearchResultItem]:
        """Run steps 4-8 of a search with a precomputed query vector."""
        options = options.with_defaults()
        results, _ = await self._retrieve(vector, options, query_text)
        return results

    async def _retrieve(
        self,
        vector: list[float],
        options: SearchOptions,
        query_text: str,
    ) -> tuple[list[SearchResultItem], dict[str, int]]:
        hits = await self.find_nearest(vector, options.max_results, options.metadata_filter())

        results = self._enrich(hits, vector, options, query_text)
        original_count = len(results)

        if options.enable_reranking:
            results.sort(key=lambda r: r.relevance_score, reverse=True)

        results = [r for r in results if r.similarity >= options.min_similarity]
        after_filtering = len(results)

        if not options.include_content:
            results = [replace(r, content="") for r in results]
        results = [replace(r, rank=i) for i, r in enumerate(results[: options.top_k], start=1)]

        counts = {
            "original_results": original_count,
            "after_filtering": after_filtering,
            "final_count": len(results),
        }
        return results, counts

    def _enrich(
        self,
        hits: list[VectorDocument],
        vector: list[float],
        options: SearchOptions,
        query_text: str,
    ) -> list[SearchResultItem]:
        now = self._clock()
        results = []
        for doc in hits:
            if doc.embedding:
                try:
                    similarity = self._similarity.calculate_similarity(vector, doc.embedding, options.similarity_metric)
                except ValidationError as e:
                    self._logger.warning("Skipping hit %s: %s", doc.id, e)
                    continue
            elif doc.distance is not None:
                similarity = min(max(1.0 - doc.distance, 0.0), 1.0)
            else:
                self._logger.warning("Skipping hit %s: no embedding and no distance", doc.id)
                continue

            item = SearchResultItem.from_document(doc, similarity)
            matched = extract_matched_keywords(query_text, doc.content, doc.metadata.keywords)
            results.append(
                replace(
                    item,
                    matched_keywords=tuple(matched),
                    content_summary=generate_summary(doc.content, query_text),
                    relevance_score=self.relevance_score(item, matched, query_text, now),
                )
            )

        self._logger.debug("Enriched %d of %d hits", len(results), len(hits))
        return results

    def relevance_score(
        self,
        item: SearchResultItem,
        matched_keywords: list[str],
        query_text: str,
        now: datetime,
    ) -> float:
        """Composite relevance in [0, 1].

        Weighted sum of similarity, keyword coverage, importance (0-10
        scaled to 0-1) and freshness ``1 / (1 + age_days / 365)``.
        """
        weights = self._weights
        score = item.similarity * weights.similarity

        query_words = query_text.split()
        if query_words:
            score += min(len(matched_keywords) / len(query_words), 1.0) * weights.keyword_coverage

        if item.metadata.importance_score is not None:
            score += (item.metadata.importance_score / 10.0) * weights.importance

        age_days = max((now - item.created_at).total_seconds() / 86400.0, 0.0)
        score += (1.0 / (1.0 + age_days / weights.freshness_scale_days)) * weights.freshness

        return min(max(score, 0.0), 1.0)

    # Index maintenance

    def _build_document(self, item: ContentItem, vector: list[float], created_at: datetime | None = None) -> VectorDocument:
        created = created_at or item.created_at or self._clock()
        content = normalize_whitespace(item.raw_content)
        metadata = DocumentMetadata(
            content_type=item.type,
            user_id=item.user_id,
            importance_score=item.importance_score,
            tags=tuple(item.tags),
            keywords=tuple(item.keywords),
            created_at=created,
            content_length=len(content),
            extra=dict(item.extra),
        )
        return VectorDocument(id=item.id, content=content, embedding=vector, metadata=metadata, created_at=created)

    async def index_document(self, item: ContentItem) -> VectorDocument:
        """Embed and store one content item.

        Raises:
            ValidationError: On an empty id or content
            UpstreamError: If embedding or storage fails
        """
        item.validate()
        result = await self._embed(item.raw_content, item.type)
        document = self._build_document(item, result.vector)
        await self._call_store("vector_store.add", self._store.add, document, document_id=item.id)
        self._cache.invalidate_recommendations()
        self._logger.info("Indexed document %s (%d tokens)", item.id, result.tokens_used)
        return document

    async def batch_index_documents(self, items: list[ContentItem]) -> BatchIndexResult:
        """Index many items; per-item failures are logged and counted.

        Raises:
            ValidationError: If ``items`` is empty
        """
        if not items:
            raise ValidationError("items", "must not be empty")

        failed: list[str] = []
        valid: list[ContentItem] = []
        for item in items:
            try:
                item.validate()
            except ValidationError as e:
                self._logger.warning("Skipping invalid item %s: %s", item.id or "<no id>", e)
                failed.append(item.id)
                continue
            valid.append(item)

        documents: list[VectorDocument] = []
        if valid:
            texts = [prepare_embedding_text(i.raw_content, i.type, settings.embedding_max_tokens) for i in valid]
            try:
                batch = await asyncio.wait_for(
                    self._embeddings.encode_batch(texts),
                    timeout=self._timeout * max(1, len(texts)),
                )
            except TimeoutError as e:
                raise UpstreamError("embedding.encode_batch", "timed out", {"batch_size": len(texts)}) from e

            for item, result in zip(valid, batch.results):
                if result is None:
                    self._logger.warning("Embedding failed for item %s", item.id)
                    failed.append(item.id)
                    continue
                documents.append(self._build_document(item, result.vector))

        if documents:
            try:
                await self._call_store(
                    "vector_store.add_batch",
                    self._store.add_batch,
                    documents,
                    batch_size=len(documents),
                )
            except RetrievalError as e:
                self._logger.error("Failed to store batch of %d documents: %s", len(documents), e)
                failed.extend(doc.id for doc in documents)
                documents = []
            else:
                self._cache.invalidate_recommendations()

        result = BatchIndexResult(
            success_count=len(documents),
            failure_count=len(failed),
            indexed_ids=tuple(doc.id for doc in documents),
            failed_ids=tuple(failed),
        )
        self._logger.info(
            "Batch indexed %d of %d items (%d failed)",
            result.success_count,
            len(items),
            result.failure_count,
        )
        return result

    async def get_document(self, document_id: str) -> VectorDocument:
        """Raises NotFoundError for unknown ids."""
        if not document_id:
            raise ValidationError("document_id", "must not be empty")
        return await self._call_store("vector_store.get", self._store.get, document_id, document_id=document_id)

    async def delete_document(self, document_id: str) -> None:
        """Raises NotFoundError for unknown ids."""
        if not document_id:
            raise ValidationError("document_id", "must not be empty")
        await self._call_store("vector_store.delete", self._store.delete, document_id, document_id=document_id)
        self._cache.invalidate_recommendations()
        self._logger.info("Deleted document %s", document_id)

    async def update_document(self, item: ContentItem) -> VectorDocument:
        """Re-embed and replace an existing document, keeping its creation time.

        Raises:
            NotFoundError: If the document does not exist
        """
        item.validate()
        existing = await self.get_document(item.id)
        result = await self._embed(item.raw_content, item.type)
        document = self._build_document(item, result.vector, created_at=existing.metadata.created_at)
        document = replace(document, metadata=document.metadata.updated(updated_at=self._clock()))
        await self._call_store("vector_store.update", self._store.update, document, document_id=item.id)
        self._cache.invalidate_recommendations()
        self._logger.info("Updated document %s", item.id)
        return document

    # Introspection

    async def get_search_stats(self) -> dict[str, Any]:
        store_stats = await self._call_store("vector_store.get_stats", self._store.get_stats)
        return {
            "vector_store": store_stats,
            **self._cache.get_stats().to_dict(),
            "cache_info": self._cache.get_cache_info(),
            "embedding_model": self._embeddings.model_name,
            "embedding_dimension": self._embeddings.dimension,
            "supported_similarity_metrics": [m.value for m in SimilarityMetric],
            "features": {
                "query_vector_cache": True,
                "reranking": True,
                "keyword_matching": True,
                "content_summary": True,
            },
        }

    async def health_check(self, strict: bool = False) -> dict[str, Any]:
        """Probe the vector store and the embedding provider.

        Args:
            strict: Raise instead of reporting an unhealthy status

        Returns:
            Dict with ``status`` ("healthy"/"unhealthy") and per-component flags

        Raises:
            UpstreamError: If ``strict`` and a component is unhealthy
        """
        errors: dict[str, str] = {}
        try:
            store_ok = await self._call_store("vector_store.health_check", self._store.health_check)
        except UpstreamError as e:
            store_ok = False
            errors["vector_store"] = str(e)

        try:
            await self._embed(HEALTH_CHECK_TEXT)
            embedding_ok = True
        except UpstreamError as e:
            embedding_ok = False
            errors["embedding"] = str(e)

        healthy = bool(store_ok) and embedding_ok
        if not healthy:
            self._logger.warning("Health check failed: store=%s embedding=%s", store_ok, embedding_ok)
            if strict:
                raise UpstreamError("health_check", "one or more components are unhealthy", errors)
        return {
            "status": "healthy" if healthy else "unhealthy",
            "vector_store": bool(store_ok),
            "embedding": embedding_ok,
            "errors": errors,
        }

    async def close(self) -> None:
        """Stop the cache and release provider connections."""
        self._cache.close()
        close = getattr(self._embeddings, "close", None)
        if close is not None:
            await close()
        self._logger.info("Search engine closed")

    @property
    def cache(self) -> VectorCacheManager:
        return self._cache

    @property
    def similarity(self) -> SimilarityCalculator:
        return self._similarity

    @property
    def embedding_provider(self) -> EmbeddingProvider:
        return self._embeddings
