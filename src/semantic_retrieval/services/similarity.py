"""Vector similarity math.

Pure functions over equal-length float vectors, backed by numpy.
Every similarity returned here lies in [0, 1] except the raw dot
product, whose range depends on the vector norms.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from semantic_retrieval.entities import SimilarityMetric, VectorDocument
from semantic_retrieval.errors import UnsupportedOperationError, ValidationError

Vector = Sequence[float] | np.ndarray


@dataclass
class SimilarityResult:
    """Similarity of one candidate to a query vector."""

    document_id: str
    similarity: float
    distance: float = 0.0
    rank: int = 0


@dataclass(frozen=True)
class SimilarityMatrix:
    document_ids: list[str]
    matrix: list[list[float]]
    metric: SimilarityMetric


def _as_pair(v1: Vector, v2: Vector) -> tuple[np.ndarray, np.ndarray]:
    a = np.asarray(v1, dtype=np.float64)
    b = np.asarray(v2, dtype=np.float64)
    if a.ndim != 1 or b.ndim != 1:
        raise ValidationError("vectors", "must be one-dimensional")
    if a.shape[0] != b.shape[0]:
        raise ValidationError("vectors", f"dimensions must match ({a.shape[0]} != {b.shape[0]})")
    if a.shape[0] == 0:
        raise ValidationError("vectors", "cannot be empty")
    return a, b


class SimilarityCalculator:
    """Stateless similarity calculator.

    Example:
        ```python
        calc = SimilarityCalculator()
        calc.cosine_similarity([1.0, 0.0], [1.0, 0.0])  # 1.0
        calc.calculate_similarity(a, b, SimilarityMetric.MANHATTAN)
        ```
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def cosine_similarity(self, v1: Vector, v2: Vector) -> float:
        """Cosine similarity mapped from [-1, 1] into [0, 1] via ``(cos + 1) / 2``.

        Zero-norm vectors yield 0.0.

        Raises:
            ValidationError: On empty or mismatched vectors
        """
        a, b = _as_pair(v1, v2)
        norm_a = float(np.linalg.norm(a))
        norm_b = float(np.linalg.norm(b))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0

        cosine = float(np.dot(a, b)) / (norm_a * norm_b)
        return min(max((cosine + 1.0) / 2.0, 0.0), 1.0)

    def euclidean_distance(self, v1: Vector, v2: Vector) -> float:
        a, b = _as_pair(v1, v2)
        return float(np.linalg.norm(a - b))

    @staticmethod
    def euclidean_distance_to_similarity(distance: float) -> float:
        return math.exp(-distance)

    def dot_product_similarity(self, v1: Vector, v2: Vector) -> float:
        a, b = _as_pair(v1, v2)
        return float(np.dot(a, b))

    def manhattan_distance(self, v1: Vector, v2: Vector) -> float:
        a, b = _as_pair(v1, v2)
        return float(np.sum(np.abs(a - b)))

    @staticmethod
    def manhattan_distance_to_similarity(distance: float) -> float:
        return 1.0 / (1.0 + distance)

    def calculate_similarity(
        self,
        v1: Vector,
        v2: Vector,
        metric: SimilarityMetric | str = SimilarityMetric.COSINE,
    ) -> float:
        """Dispatch to the similarity function for ``metric``.

        Raises:
            ValidationError: On empty or mismatched vectors
            UnsupportedOperationError: On an unknown metric
        """
        metric = SimilarityMetric.parse(metric)
        if metric is SimilarityMetric.COSINE:
            return self.cosine_similarity(v1, v2)
        if metric is SimilarityMetric.EUCLIDEAN:
            return self.euclidean_distance_to_similarity(self.euclidean_distance(v1, v2))
        if metric is SimilarityMetric.DOT_PRODUCT:
            return self.dot_product_similarity(v1, v2)
        if metric is SimilarityMetric.MANHATTAN:
            return self.manhattan_distance_to_similarity(self.manhattan_distance(v1, v2))
        raise UnsupportedOperationError("similarity metric", metric)

    def batch_calculate_similarity(
        self,
        query: Vector,
        candidates: Sequence[Vector],
        document_ids: Sequence[str],
        metric: SimilarityMetric | str = SimilarityMetric.COSINE,
    ) -> list[SimilarityResult]:
        """Compare one query against many candidates.

        Candidates that fail validation are logged and skipped.

        Returns:
            Results sorted by descending similarity with 1-based ranks
        """
        if len(candidates) != len(document_ids):
            raise ValidationError("vectors_and_ids", "vectors and document ids must have the same length")
        metric = SimilarityMetric.parse(metric)

        results: list[SimilarityResult] = []
        for doc_id, candidate in zip(document_ids, candidates):
            try:
                similarity = self.calculate_similarity(query, candidate, metric)
            except ValidationError as e:
                self._logger.error("Failed to calculate similarity for %s: %s", doc_id, e)
                continue

            result = SimilarityResult(document_id=doc_id, similarity=similarity)
            if metric is SimilarityMetric.EUCLIDEAN:
                result.distance = self.euclidean_distance(query, candidate)
            elif metric is SimilarityMetric.MANHATTAN:
                result.distance = self.manhattan_distance(query, candidate)
            results.append(result)

        self.sort_by_similarity(results)
        for i, result in enumerate(results, start=1):
            result.rank = i

        self._logger.debug("Compared query against %d candidates, %d scored", len(candidates), len(results))
        return results

    @staticmethod
    def sort_by_similarity(results: list[SimilarityResult]) -> None:
        results.sort(key=lambda r: r.similarity, reverse=True)

    @staticmethod
    def sort_by_distance(results: list[SimilarityResult]) -> None:
        results.sort(key=lambda r: r.distance)

    @staticmethod
    def filter_by_similarity_threshold(results: list[SimilarityResult], threshold: float) -> list[SimilarityResult]:
        """Keep results at or above ``threshold``; a threshold <= 0 keeps everything."""
        if threshold <= 0:
            return results
        return [r for r in results if r.similarity >= threshold]

    @staticmethod
    def get_top_k(results: list[SimilarityResult], k: int) -> list[SimilarityResult]:
        if k <= 0:
            return []
        return results[:k]

    def calculate_similarity_matrix(
        self,
        vectors: Sequence[Vector],
        document_ids: Sequence[str],
        metric: SimilarityMetric | str = SimilarityMetric.COSINE,
    ) -> SimilarityMatrix:
        """Full pairwise similarity matrix, for diagnostics on small sets.

        The diagonal is 1.0 and the matrix is symmetric.
        """
        if len(vectors) != len(document_ids):
            raise ValidationError("vectors_and_ids", "vectors and document ids must have the same length")
        metric = SimilarityMetric.parse(metric)

        n = len(vectors)
        matrix = [[0.0] * n for _ in range(n)]
        for i in range(n):
            matrix[i][i] = 1.0
            for j in range(i + 1, n):
                value = self.calculate_similarity(vectors[i], vectors[j], metric)
                matrix[i][j] = value
                matrix[j][i] = value

        return SimilarityMatrix(document_ids=list(document_ids), matrix=matrix, metric=metric)

    def find_most_similar_documents(
        self,
        query: Vector,
        documents: Sequence[VectorDocument],
        metric: SimilarityMetric | str = SimilarityMetric.COSINE,
        top_k: int = 0,
        threshold: float = 0.0,
    ) -> list[SimilarityResult]:
        """Rank documents by similarity to ``query``, then threshold and cut to ``top_k``."""
        if not documents:
            return []

        results = self.batch_calculate_similarity(
            query,
            [doc.embedding for doc in documents],
            [doc.id for doc in documents],
            metric,
        )
        results = self.filter_by_similarity_threshold(results, threshold)
        if top_k > 0:
            results = self.get_top_k(results, top_k)
        return results

    @staticmethod
    def calculate_average_similarity(results: Sequence[SimilarityResult]) -> float:
        if not results:
            return 0.0
        return sum(r.similarity for r in results) / len(results)

    @staticmethod
    def get_similarity_statistics(results: Sequence[SimilarityResult]) -> dict[str, float]:
        if not results:
            return {"count": 0, "average": 0.0, "max": 0.0, "min": 0.0}

        values = [r.similarity for r in results]
        return {
            "count": len(values),
            "average": sum(values) / len(values),
            "max": max(values),
            "min": min(values),
        }
