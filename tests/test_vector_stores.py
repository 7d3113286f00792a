"""Tests for the in-memory vector store and the Redis filter translation."""

from datetime import timedelta

import pytest

from conftest import NOW, make_document
from semantic_retrieval.entities import ContentType, MetadataFilter, TimeRange
from semantic_retrieval.errors import NotFoundError, ValidationError
from semantic_retrieval.repositories import InMemoryVectorStore
from semantic_retrieval.repositories.redis_vector_store import build_filter_expression


@pytest.fixture
def populated(store):
    store.add_batch(
        [
            make_document("near", [1.0, 0.0, 0.0], user_id="alice", content_type=ContentType.TEXT),
            make_document(
                "middle",
                [0.6, 0.8, 0.0],
                user_id="alice",
                content_type=ContentType.LINK,
                created_at=NOW - timedelta(days=2),
            ),
            make_document(
                "far",
                [0.0, 0.0, 1.0],
                user_id="bob",
                content_type=ContentType.TEXT,
                created_at=NOW - timedelta(days=10),
                tags=("ai",),
            ),
        ]
    )
    return store


def test_query_orders_by_l2_distance(populated):
    hits = populated.query([1.0, 0.0, 0.0], top_k=3)

    assert [h.id for h in hits] == ["near", "middle", "far"]
    assert hits[0].distance == pytest.approx(0.0)
    assert hits[2].distance == pytest.approx(2**0.5)


def test_query_applies_metadata_filter(populated):
    hits = populated.query([1.0, 0.0, 0.0], top_k=10, metadata_filter=MetadataFilter(user_id="alice"))
    assert [h.id for h in hits] == ["near", "middle"]

    hits = populated.query(
        [1.0, 0.0, 0.0],
        top_k=10,
        metadata_filter=MetadataFilter(content_types=frozenset({ContentType.LINK})),
    )
    assert [h.id for h in hits] == ["middle"]


def test_query_without_vector_lists_newest_first(populated):
    hits = populated.query(None, top_k=2)

    assert [h.id for h in hits] == ["near", "middle"]


def test_query_respects_time_range(populated):
    window = MetadataFilter.build(time_range=TimeRange(start=NOW - timedelta(days=5), end=NOW))

    hits = populated.query(None, top_k=10, metadata_filter=window)

    assert {h.id for h in hits} == {"near", "middle"}


def test_dimension_mismatch_rejected(populated):
    with pytest.raises(ValidationError):
        populated.add(make_document("bad", [1.0, 0.0]))
    with pytest.raises(ValidationError):
        populated.query([1.0, 0.0], top_k=1)


def test_empty_embedding_rejected():
    with pytest.raises(ValidationError):
        InMemoryVectorStore().add(make_document("empty", []))


def test_get_update_delete(populated):
    assert populated.get("near").metadata.user_id == "alice"
    assert populated.get("near").metadata.content_length == len("content of near")

    populated.update(make_document("near", [0.0, 1.0, 0.0], content="changed"))
    assert populated.get("near").content == "changed"

    populated.delete("near")
    assert populated.count() == 2
    with pytest.raises(NotFoundError):
        populated.get("near")
    with pytest.raises(NotFoundError):
        populated.delete("near")
    with pytest.raises(NotFoundError):
        populated.update(make_document("missing", [1.0, 0.0, 0.0]))


def test_stats(populated):
    stats = populated.get_stats()

    assert stats["backend"] == "memory"
    assert stats["total_documents"] == 3
    assert stats["dimension"] == 3
    assert populated.health_check() is True


def test_redis_filter_expression():
    assert build_filter_expression(None) is None
    assert build_filter_expression(MetadataFilter()) is None

    expression = str(
        build_filter_expression(
            MetadataFilter(user_id="alice", content_types=frozenset({ContentType.TEXT, ContentType.LINK}))
        )
    )

    assert "@user_id:{alice}" in expression
    assert "@content_type:{link|text}" in expression
