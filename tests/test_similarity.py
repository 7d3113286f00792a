"""Tests for the similarity calculator."""

import math

import pytest

from conftest import make_document
from semantic_retrieval.entities import SimilarityMetric
from semantic_retrieval.errors import UnsupportedOperationError, ValidationError
from semantic_retrieval.services import SimilarityCalculator

VECTORS = [
    [1.0, 0.0, 0.0],
    [0.0, 1.0, 0.0],
    [-1.0, 0.0, 0.0],
    [0.3, -0.7, 2.5],
    [1e-3, 4.0, -2.0],
]


@pytest.fixture
def calc():
    return SimilarityCalculator()


@pytest.mark.parametrize("a", VECTORS)
@pytest.mark.parametrize("b", VECTORS)
def test_cosine_in_unit_interval_and_symmetric(calc, a, b):
    """Cosine similarity stays in [0, 1] and does not depend on argument order."""
    value = calc.cosine_similarity(a, b)
    assert 0.0 <= value <= 1.0
    assert value == pytest.approx(calc.cosine_similarity(b, a))


@pytest.mark.parametrize("a", VECTORS)
def test_cosine_self_similarity_is_one(calc, a):
    assert calc.cosine_similarity(a, a) == pytest.approx(1.0)


def test_cosine_maps_opposite_and_orthogonal(calc):
    assert calc.cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(0.0)
    assert calc.cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.5)


def test_cosine_zero_vector_is_zero(calc):
    assert calc.cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


@pytest.mark.parametrize("metric", list(SimilarityMetric))
def test_mismatched_lengths_rejected_for_every_metric(calc, metric):
    with pytest.raises(ValidationError):
        calc.calculate_similarity([1.0, 2.0], [1.0, 2.0, 3.0], metric)


def test_empty_vectors_rejected(calc):
    with pytest.raises(ValidationError):
        calc.cosine_similarity([], [])


def test_distance_conversions(calc):
    assert calc.euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)
    assert calc.calculate_similarity([0.0, 0.0], [3.0, 4.0], SimilarityMetric.EUCLIDEAN) == pytest.approx(
        math.exp(-5.0)
    )
    assert calc.manhattan_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(7.0)
    assert calc.calculate_similarity([0.0, 0.0], [3.0, 4.0], "manhattan") == pytest.approx(1.0 / 8.0)
    assert calc.calculate_similarity([1.0, 2.0], [3.0, 4.0], "dot") == pytest.approx(11.0)


def test_unknown_metric_is_unsupported(calc):
    with pytest.raises(UnsupportedOperationError):
        calc.calculate_similarity([1.0], [1.0], "jaccard")


def test_batch_skips_invalid_candidates_and_ranks(calc):
    results = calc.batch_calculate_similarity(
        [1.0, 0.0],
        [[0.0, 1.0], [1.0, 0.0, 0.0], [1.0, 0.1]],
        ["orthogonal", "bad", "close"],
    )

    assert [r.document_id for r in results] == ["close", "orthogonal"]
    assert [r.rank for r in results] == [1, 2]


def test_batch_requires_aligned_ids(calc):
    with pytest.raises(ValidationError):
        calc.batch_calculate_similarity([1.0], [[1.0]], ["a", "b"])


def test_similarity_matrix_is_symmetric_with_unit_diagonal(calc):
    matrix = calc.calculate_similarity_matrix(VECTORS[:3], ["a", "b", "c"])

    for i in range(3):
        assert matrix.matrix[i][i] == 1.0
        for j in range(3):
            assert matrix.matrix[i][j] == pytest.approx(matrix.matrix[j][i])


def test_find_most_similar_documents_thresholds_and_truncates(calc):
    documents = [
        make_document("same", [1.0, 0.0, 0.0]),
        make_document("orthogonal", [0.0, 1.0, 0.0]),
        make_document("opposite", [-1.0, 0.0, 0.0]),
    ]

    results = calc.find_most_similar_documents([1.0, 0.0, 0.0], documents, threshold=0.4, top_k=1)

    assert [r.document_id for r in results] == ["same"]


def test_statistics(calc):
    results = calc.batch_calculate_similarity([1.0, 0.0], [[1.0, 0.0], [0.0, 1.0]], ["a", "b"])

    stats = calc.get_similarity_statistics(results)

    assert stats["count"] == 2
    assert stats["max"] == pytest.approx(1.0)
    assert stats["min"] == pytest.approx(0.5)
    assert calc.calculate_average_similarity(results) == pytest.approx(0.75)
    assert calc.get_similarity_statistics([])["count"] == 0
