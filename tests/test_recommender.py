"""Tests for the multi-strategy recommender."""

from dataclasses import replace
from datetime import timedelta

import pytest

from conftest import NOW, make_document
from semantic_retrieval.entities import (
    ContentItem,
    ContentType,
    PersonalizationContext,
    RecommendationItem,
    RecommendationRequest,
    RecommendationType,
)
from semantic_retrieval.errors import NotFoundError, UnsupportedOperationError, ValidationError
from semantic_retrieval.repositories import InMemoryInteractionStore
from semantic_retrieval.services import CollaborativeFilter, Recommender


@pytest.fixture
def corpus(store):
    store.add_batch(
        [
            make_document(
                "source",
                [1.0, 0.0, 0.0],
                user_id="alice",
                content_type=ContentType.TEXT,
                keywords=("ai", "health"),
                created_at=NOW - timedelta(days=1),
            ),
            make_document(
                "twin",
                [1.0, 0.0, 0.0],
                user_id="alice",
                content_type=ContentType.TEXT,
                keywords=("ai",),
                created_at=NOW - timedelta(days=2),
            ),
            make_document(
                "near",
                [0.8, 0.6, 0.0],
                user_id="alice",
                content_type=ContentType.LINK,
                keywords=("health",),
                tags=("ml",),
                importance_score=8.0,
                created_at=NOW - timedelta(days=5),
            ),
            make_document(
                "mid",
                [0.6, 0.8, 0.0],
                user_id="alice",
                content_type=ContentType.FILE,
                created_at=NOW - timedelta(days=20),
            ),
            make_document(
                "far",
                [0.0, 0.0, 1.0],
                user_id="bob",
                content_type=ContentType.TEXT,
                created_at=NOW - timedelta(days=60),
            ),
        ]
    )
    return store


@pytest.fixture
def interactions():
    return InMemoryInteractionStore(
        {
            "alice": {"source": 1.0, "twin": 1.0},
            "bob": {"source": 1.0, "twin": 0.9, "near": 1.0},
        }
    )


@pytest.fixture
def recommender(engine, corpus, interactions):
    return Recommender(
        search_engine=engine,
        collaborative_filter=CollaborativeFilter(interactions),
        clock=lambda: NOW,
    )


@pytest.fixture
def context():
    return PersonalizationContext(
        user_id="alice",
        recent_interactions=("source",),
        preferred_content_types=(ContentType.LINK,),
        preferred_tags=("ML",),
        interaction_history={"mid": 0.5},
    )


def ids(response) -> list[str]:
    return [item.document_id for item in response.recommendations]


@pytest.mark.asyncio
async def test_similar_excludes_source_and_orders_by_cosine(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.SIMILAR, source_document_id="source")
    )

    assert ids(response) == ["twin", "near", "mid", "far"]
    assert [item.rank for item in response.recommendations] == [1, 2, 3, 4]
    twin = response.recommendations[0]
    assert twin.similarity == pytest.approx(1.0)
    assert twin.recommendation_score == twin.confidence == twin.similarity
    assert twin.related_keywords == ("ai",)


@pytest.mark.asyncio
async def test_excluded_document_never_returned_even_if_closest(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=RecommendationType.SIMILAR,
            source_document_id="source",
            exclude_documents=("twin",),
        )
    )

    assert "twin" not in ids(response)
    assert ids(response) == ["near", "mid", "far"]


@pytest.mark.asyncio
async def test_similar_requires_known_source(recommender):
    with pytest.raises(ValidationError) as exc_info:
        await recommender.get_recommendations(RecommendationRequest(type=RecommendationType.SIMILAR))
    assert exc_info.value.field == "source_document_id"

    with pytest.raises(NotFoundError):
        await recommender.get_recommendations(
            RecommendationRequest(type=RecommendationType.SIMILAR, source_document_id="ghost")
        )


@pytest.mark.asyncio
async def test_similar_explanation(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=RecommendationType.SIMILAR,
            source_document_id="source",
            include_explanations=True,
        )
    )

    explanation = response.recommendations[0].explanation
    assert explanation.reason == "Content similarity based on semantic vectors"


@pytest.mark.asyncio
async def test_related_blends_vector_and_keyword_scores(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.RELATED, source_document_id="source")
    )

    scores = {item.document_id: item.recommendation_score for item in response.recommendations}
    assert "source" not in scores
    assert scores["twin"] == pytest.approx(0.7 * 1.0 + 0.3 * 0.5)
    assert scores["near"] == pytest.approx(0.7 * 0.9 + 0.3 * 0.5)
    assert scores["mid"] == pytest.approx(0.7 * 0.8)


@pytest.mark.asyncio
async def test_related_floor_is_lowered(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=RecommendationType.RELATED,
            source_document_id="source",
            min_similarity=1.0,
        )
    )

    # floor is 0.7, so "far" (0.5) is the only candidate dropped
    assert set(ids(response)) == {"twin", "near", "mid"}


@pytest.mark.asyncio
async def test_related_from_query(recommender, provider):
    provider.vectors["health ai"] = [1.0, 0.0, 0.0]

    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.RELATED, source_query="health ai")
    )

    top = response.recommendations[0]
    assert top.document_id == "source"
    assert top.related_keywords == ("health", "ai")
    assert top.recommendation_score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_related_requires_a_source(recommender):
    with pytest.raises(ValidationError) as exc_info:
        await recommender.get_recommendations(RecommendationRequest(type=RecommendationType.RELATED))
    assert exc_info.value.field == "source"


@pytest.mark.asyncio
async def test_personalized_requires_context(recommender):
    with pytest.raises(ValidationError) as exc_info:
        await recommender.get_recommendations(
            RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id="nobody")
        )
    assert exc_info.value.field == "personalization"


@pytest.mark.asyncio
async def test_personalized_adds_preference_bonus(recommender, context):
    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=RecommendationType.PERSONALIZED,
            user_id="alice",
            personalization=context,
            include_explanations=True,
        )
    )

    scores = {item.document_id: item for item in response.recommendations}
    assert "far" not in scores
    assert scores["near"].recommendation_score == pytest.approx(1.0)
    assert scores["mid"].recommendation_score == pytest.approx(0.6 * 0.8 + 0.1 / (1 + 20 / 365) + 0.5 * 0.3)
    assert "tag:ml" in scores["near"].explanation.matched_features
    assert "content_type:link" in scores["near"].explanation.matched_features
    assert response.metadata["personalized"] is True
    assert all(item.recommendation_score <= 1.0 for item in response.recommendations)


@pytest.mark.asyncio
async def test_personalized_reuses_cached_context(recommender, context):
    await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id="alice", personalization=context)
    )

    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id="alice")
    )

    assert response.recommendations[0].document_id == "near"


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", list(RecommendationType))
async def test_scores_non_increasing_for_every_strategy(recommender, context, strategy):
    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=strategy,
            user_id="alice",
            source_document_id="source",
            personalization=context,
        )
    )

    scores = [item.recommendation_score for item in response.recommendations]
    assert scores
    assert scores == sorted(scores, reverse=True)
    assert [item.rank for item in response.recommendations] == list(range(1, len(scores) + 1))


@pytest.mark.asyncio
async def test_related_truncation_keeps_best_blended_score(engine, store):
    store.add_batch(
        [
            make_document("src", [1.0, 0.0, 0.0], keywords=("x",)),
            make_document("closest", [0.9, 0.1, 0.0]),
            make_document("keyword", [0.8, 0.3, 0.0], keywords=("x",)),
        ]
    )
    recommender = Recommender(search_engine=engine, clock=lambda: NOW)

    full = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.RELATED, source_document_id="src")
    )
    top = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.RELATED, source_document_id="src", max_recommendations=1)
    )

    # "closest" wins on the vector alone, "keyword" wins once keyword overlap is blended in
    assert ids(full) == ["keyword", "closest"]
    assert ids(top) == ["keyword"]
    assert top.recommendations[0].recommendation_score == pytest.approx(full.recommendations[0].recommendation_score)


@pytest.mark.asyncio
async def test_personalized_bonus_reorders_results(engine, store, provider):
    store.add_batch(
        [
            make_document("plain", [1.0, 0.0, 0.0]),
            make_document("tagged", [0.9, 0.1, 0.0], tags=("ai",)),
        ]
    )
    provider.vectors["ai"] = [1.0, 0.0, 0.0]
    recommender = Recommender(search_engine=engine, clock=lambda: NOW)

    response = await recommender.get_recommendations(
        RecommendationRequest(
            type=RecommendationType.PERSONALIZED,
            personalization=PersonalizationContext(user_id="carol", preferred_tags=("ai",)),
            max_recommendations=1,
        )
    )

    assert ids(response) == ["tagged"]


@pytest.mark.asyncio
async def test_trending_scores_freshness_and_importance(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.TRENDING, include_explanations=True)
    )

    assert ids(response) == ["near", "source", "twin", "mid"]
    scores = {item.document_id: item for item in response.recommendations}
    assert scores["near"].recommendation_score == pytest.approx(0.6 * (1 - 120 / 720) + 0.4 * 0.8)
    assert scores["source"].recommendation_score == pytest.approx(0.6 * (1 - 24 / 720) + 0.4 * 0.5)
    assert scores["source"].similarity == 0.5
    assert scores["source"].explanation.factor_breakdown["recency_bonus"] == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_collaborative_uses_similar_users(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.COLLABORATIVE, user_id="alice")
    )

    assert ids(response) == ["near"]
    assert response.recommendations[0].recommendation_score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_collaborative_without_history_degrades_to_personalized(engine, corpus, context):
    recommender = Recommender(
        search_engine=engine,
        collaborative_filter=CollaborativeFilter(InMemoryInteractionStore()),
        clock=lambda: NOW,
    )

    collaborative = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.COLLABORATIVE, user_id="alice", personalization=context)
    )
    personalized = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id="alice", personalization=context)
    )

    assert ids(collaborative) == ids(personalized)
    assert collaborative.recommendation_type is RecommendationType.COLLABORATIVE


@pytest.mark.asyncio
async def test_hybrid_keeps_max_weighted_score_per_document(recommender, context):
    request = RecommendationRequest(
        type=RecommendationType.HYBRID,
        user_id="alice",
        source_document_id="source",
        personalization=context,
        max_recommendations=10,
    )
    plan = [
        (RecommendationType.SIMILAR, 0.3, 5),
        (RecommendationType.PERSONALIZED, 0.4, 5),
        (RecommendationType.TRENDING, 0.2, 3),
        (RecommendationType.COLLABORATIVE, 0.1, 2),
    ]
    expected: dict[str, float] = {}
    for strategy, weight, size in plan:
        items = await recommender.run_strategy(replace(request, type=strategy, max_recommendations=size))
        assert items, strategy
        for item in items:
            expected[item.document_id] = max(expected.get(item.document_id, 0.0), item.recommendation_score * weight)

    response = await recommender.get_recommendations(request)

    returned = ids(response)
    assert len(returned) == len(set(returned))
    assert set(returned) == set(expected)
    for item in response.recommendations:
        assert item.recommendation_score == pytest.approx(expected[item.document_id])
    scores = [item.recommendation_score for item in response.recommendations]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_hybrid_explanations_name_strategy(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.HYBRID, include_explanations=True)
    )

    for item in response.recommendations:
        assert item.explanation.reason == "Hybrid recommendation (strategy: trending, weight: 0.2)"
        assert item.explanation.factor_breakdown == {"trending_weight": 0.2}


@pytest.mark.asyncio
async def test_hybrid_skips_failing_sub_strategy(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.HYBRID, source_document_id="ghost")
    )

    assert response.total_found > 0


@pytest.mark.asyncio
async def test_cached_response_returned_without_recomputation(recommender, store):
    request = RecommendationRequest(type=RecommendationType.SIMILAR, source_document_id="source")
    first = await recommender.get_recommendations(request)

    store.delete("twin")
    second = await recommender.get_recommendations(request)

    assert first.metadata["cache_hit"] is False
    assert second.metadata["cache_hit"] is True
    assert ids(second) == ids(first)


@pytest.mark.asyncio
async def test_indexing_invalidates_cached_recommendations(recommender, engine):
    request = RecommendationRequest(type=RecommendationType.TRENDING)
    await recommender.get_recommendations(request)

    await engine.index_document(ContentItem(id="fresh", raw_content="breaking news"))
    response = await recommender.get_recommendations(request)

    assert response.metadata["cache_hit"] is False
    assert "fresh" in ids(response)


@pytest.mark.asyncio
async def test_truncates_to_max_recommendations(recommender):
    response = await recommender.get_recommendations(
        RecommendationRequest(type=RecommendationType.TRENDING, max_recommendations=2)
    )

    assert ids(response) == ["near", "source"]
    assert response.total_found == 2


@pytest.mark.asyncio
async def test_unknown_type_rejected(recommender):
    with pytest.raises(UnsupportedOperationError):
        await recommender.get_recommendations(RecommendationRequest(type="telepathic"))


@pytest.mark.asyncio
async def test_missing_request_rejected(recommender):
    with pytest.raises(ValidationError):
        await recommender.get_recommendations(None)


def make_item(document_id: str, content_type: ContentType | None) -> RecommendationItem:
    doc = make_document(document_id, [1.0, 0.0, 0.0], content_type=content_type)
    return RecommendationItem.from_document(doc, 0.5, 0.5)


def test_diversity_caps_each_content_type():
    items = [
        make_item("t1", ContentType.TEXT),
        make_item("t2", ContentType.TEXT),
        make_item("t3", ContentType.TEXT),
        make_item("l1", ContentType.LINK),
        make_item("u1", None),
        make_item("u2", None),
        make_item("u3", None),
    ]

    kept = Recommender.apply_diversity(items, per_type=2)

    assert [item.document_id for item in kept] == ["t1", "t2", "l1", "u1", "u2"]


def test_diversity_leaves_short_lists_alone():
    items = [make_item(f"t{i}", ContentType.TEXT) for i in range(3)]

    assert Recommender.apply_diversity(items, per_type=2) == items
