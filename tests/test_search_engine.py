"""Tests for the search engine."""

import asyncio
from datetime import timedelta

import pytest

from conftest import NOW, FakeEmbeddingProvider, make_document
from semantic_retrieval.entities import (
    ContentItem,
    ContentType,
    RecommendationRequest,
    RecommendationType,
    SearchOptions,
    SearchResultItem,
)
from semantic_retrieval.errors import NotFoundError, UpstreamError, ValidationError
from semantic_retrieval.services import SearchEngine

QUERY = "artificial intelligence in healthcare"


class SlowEmbeddingProvider(FakeEmbeddingProvider):
    async def encode(self, text, content_type=None):
        await asyncio.sleep(10)
        return await super().encode(text, content_type)


@pytest.fixture
def healthcare(store, provider):
    """One document at cosine 0.95 to the query and one at 0.5."""
    provider.vectors[QUERY] = [1.0, 0.0, 0.0]
    store.add(make_document("close", [0.9, 0.19**0.5, 0.0], content="AI triage in healthcare"))
    store.add(make_document("unrelated", [0.0, 1.0, 0.0], content="Sourdough baking notes"))
    return store


@pytest.mark.asyncio
async def test_min_similarity_keeps_only_close_document(engine, healthcare):
    response = await engine.search(SearchOptions(query=QUERY, top_k=10, min_similarity=0.7))

    assert [r.document_id for r in response.results] == ["close"]
    assert response.results[0].rank == 1
    assert response.results[0].similarity == pytest.approx(0.95)
    assert response.total_results == 1
    assert response.vector_dimension == 3
    assert response.metadata["original_results"] == 2
    assert response.metadata["after_filtering"] == 1


@pytest.mark.asyncio
async def test_second_identical_search_served_from_cache(engine, healthcare, provider):
    options = SearchOptions(query=QUERY, top_k=10, min_similarity=0.7)

    first = await engine.search(options)
    before = (await engine.get_search_stats())["query_vector_hits"]
    second = await engine.search(options)
    after = (await engine.get_search_stats())["query_vector_hits"]

    assert after - before == 1
    assert provider.calls.count(QUERY) == 1
    assert first.metadata["cache_hit"] is False
    assert second.metadata["cache_hit"] is True


@pytest.mark.asyncio
async def test_empty_query_rejected_before_embedding(engine, provider):
    with pytest.raises(ValidationError) as exc_info:
        await engine.search(SearchOptions(query="   "))

    assert exc_info.value.field == "query"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_missing_options_rejected(engine):
    with pytest.raises(ValidationError):
        await engine.search(None)


@pytest.mark.asyncio
async def test_results_enriched(engine, healthcare):
    response = await engine.search(SearchOptions(query=QUERY))

    top = response.results[0]
    assert top.matched_keywords == ("healthcare",)
    assert top.content_summary == "AI triage in healthcare"
    assert 0.0 <= top.relevance_score <= 1.0


@pytest.mark.asyncio
async def test_include_content_false_strips_content(engine, healthcare):
    response = await engine.search(SearchOptions(query=QUERY, include_content=False))

    assert all(r.content == "" for r in response.results)


@pytest.mark.asyncio
async def test_top_k_truncates_and_ranks(engine, healthcare):
    response = await engine.search(SearchOptions(query=QUERY, top_k=1))

    assert len(response.results) == 1
    assert response.results[0].rank == 1
    assert response.metadata["final_count"] == 1


@pytest.mark.asyncio
async def test_reranking_uses_relevance(engine, store, provider):
    provider.vectors[QUERY] = [1.0, 0.0, 0.0]
    store.add(make_document("similar", [0.92, (1 - 0.92**2) ** 0.5, 0.0]))
    store.add(make_document("important", [0.9, 0.19**0.5, 0.0], importance_score=10.0))

    reranked = await engine.search(SearchOptions(query=QUERY))
    by_distance = await engine.search(SearchOptions(query=QUERY, enable_reranking=False))

    assert [r.document_id for r in reranked.results] == ["important", "similar"]
    assert [r.document_id for r in by_distance.results] == ["similar", "important"]


def test_relevance_score_formula(engine):
    doc = make_document(
        "d",
        [1.0, 0.0, 0.0],
        created_at=NOW - timedelta(days=365),
        importance_score=5.0,
    )
    item = SearchResultItem.from_document(doc, 0.8)

    score = engine.relevance_score(item, ["ai"], "ai news", NOW)

    assert score == pytest.approx(0.6 * 0.8 + 0.2 * 0.5 + 0.1 * 0.5 + 0.1 * 0.5)


@pytest.mark.asyncio
async def test_content_type_filter(engine, store, provider):
    provider.vectors["notes"] = [1.0, 0.0, 0.0]
    store.add(make_document("text", [1.0, 0.0, 0.0], content_type=ContentType.TEXT))
    store.add(make_document("link", [1.0, 0.0, 0.0], content_type=ContentType.LINK))

    response = await engine.search(SearchOptions(query="notes", content_types=(ContentType.LINK,)))

    assert [r.document_id for r in response.results] == ["link"]


@pytest.mark.asyncio
async def test_embedding_timeout_is_upstream_error_and_not_cached(store, cache):
    engine = SearchEngine(store, SlowEmbeddingProvider(), cache, upstream_timeout=0.05)
    options = SearchOptions(query=QUERY)

    with pytest.raises(UpstreamError):
        await engine.search(options)

    assert cache.get_query_vector(QUERY, options) == (None, False)


@pytest.mark.asyncio
async def test_cancelled_search_propagates_and_caches_nothing(store, cache):
    engine = SearchEngine(store, SlowEmbeddingProvider(), cache, upstream_timeout=30)
    options = SearchOptions(query=QUERY)

    task = asyncio.create_task(engine.search(options))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert cache.get_query_vector(QUERY, options) == (None, False)


@pytest.mark.asyncio
async def test_embedding_failure_is_upstream_error(engine, provider):
    provider.failing.add(QUERY)

    with pytest.raises(UpstreamError):
        await engine.search(SearchOptions(query=QUERY))


@pytest.mark.asyncio
async def test_index_document_stores_metadata_and_invalidates_recommendations(engine, store, cache):
    request = RecommendationRequest(type=RecommendationType.TRENDING)
    cache.set_recommendation(request, [])

    document = await engine.index_document(
        ContentItem(
            id="n1",
            raw_content="  Vector   databases explained ",
            type=ContentType.LINK,
            user_id="alice",
            tags=("db",),
            importance_score=7.0,
        )
    )

    stored = store.get("n1")
    assert document.id == "n1"
    assert stored.content == "Vector databases explained"
    assert stored.metadata.content_type is ContentType.LINK
    assert stored.metadata.user_id == "alice"
    assert stored.metadata.tags == ("db",)
    assert stored.metadata.created_at == NOW
    assert cache.get_recommendation(request)[1] is False


@pytest.mark.asyncio
async def test_index_document_rejects_empty_content(engine, provider):
    with pytest.raises(ValidationError):
        await engine.index_document(ContentItem(id="n1", raw_content=" "))
    assert provider.calls == []


@pytest.mark.asyncio
async def test_batch_index_counts_failures(engine, store, provider):
    provider.failing.add("broken text")

    result = await engine.batch_index_documents(
        [
            ContentItem(id="ok-1", raw_content="first note"),
            ContentItem(id="empty", raw_content=""),
            ContentItem(id="broken", raw_content="broken text"),
            ContentItem(id="ok-2", raw_content="second note"),
        ]
    )

    assert result.success_count == 2
    assert result.failure_count == 2
    assert set(result.indexed_ids) == {"ok-1", "ok-2"}
    assert set(result.failed_ids) == {"empty", "broken"}
    assert result.total == 4
    assert store.count() == 2


@pytest.mark.asyncio
async def test_batch_index_rejects_empty_batch(engine):
    with pytest.raises(ValidationError):
        await engine.batch_index_documents([])


@pytest.mark.asyncio
async def test_update_keeps_creation_time(engine, store):
    original = NOW - timedelta(days=3)
    await engine.index_document(ContentItem(id="n1", raw_content="draft", created_at=original))

    await engine.update_document(ContentItem(id="n1", raw_content="final version"))

    stored = store.get("n1")
    assert stored.content == "final version"
    assert stored.metadata.created_at == original
    assert stored.metadata.updated_at == NOW


@pytest.mark.asyncio
async def test_update_and_delete_unknown_document(engine):
    with pytest.raises(NotFoundError):
        await engine.update_document(ContentItem(id="ghost", raw_content="text"))
    with pytest.raises(NotFoundError):
        await engine.delete_document("ghost")
    with pytest.raises(NotFoundError):
        await engine.get_document("ghost")


@pytest.mark.asyncio
async def test_delete_document(engine, store):
    await engine.index_document(ContentItem(id="n1", raw_content="note"))

    await engine.delete_document("n1")

    assert store.count() == 0


@pytest.mark.asyncio
async def test_search_stats(engine):
    stats = await engine.get_search_stats()

    assert stats["vector_store"]["backend"] == "memory"
    assert stats["embedding_model"] == "fake-embedding"
    assert "cosine" in stats["supported_similarity_metrics"]
    assert set(stats["cache_info"]) == {"query_vector", "recommendation", "user_preference"}


@pytest.mark.asyncio
async def test_health_check(engine, provider):
    healthy = await engine.health_check()
    assert healthy["status"] == "healthy"

    provider.failing.add("health check test")
    unhealthy = await engine.health_check()
    assert unhealthy["status"] == "unhealthy"
    assert unhealthy["embedding"] is False
    with pytest.raises(UpstreamError):
        await engine.health_check(strict=True)


@pytest.mark.asyncio
async def test_close_stops_cache(engine, cache):
    await engine.close()

    assert cache.closed is True
