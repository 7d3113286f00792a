"""User-based collaborative filtering over interaction weights.

Users are compared by cosine similarity of their interaction vectors
(document id -> weight). A candidate document's score is the
similarity-weighted average of the neighbours' weights for it, over
neighbours that interacted with it and documents the target user has
not touched yet.
"""

import logging
import math

from semantic_retrieval.protocols import InteractionStore


def user_similarity(a: dict[str, float], b: dict[str, float]) -> float:
    """Cosine similarity of two sparse interaction vectors, 0.0 if either is empty."""
    if not a or not b:
        return 0.0
    dot = sum(weight * b[doc] for doc, weight in a.items() if doc in b)
    norm_a = math.sqrt(sum(w * w for w in a.values()))
    norm_b = math.sqrt(sum(w * w for w in b.values()))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class CollaborativeFilter:
    """Find similar users and score the documents they liked."""

    def __init__(
        self,
        interaction_store: InteractionStore,
        max_neighbors: int = 20,
        min_user_similarity: float = 0.1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = interaction_store
        self._max_neighbors = max_neighbors
        self._min_similarity = min_user_similarity
        self._logger = logger or logging.getLogger(__name__)

    def get_user_interactions(self, user_id: str) -> dict[str, float]:
        return self._store.get_interactions(user_id)

    def find_similar_users(self, user_id: str) -> list[tuple[str, float]]:
        """Most similar users first, above the similarity floor."""
        target = self._store.get_interactions(user_id)
        if not target:
            return []

        neighbors = []
        for other in self._store.list_users():
            if other == user_id:
                continue
            similarity = user_similarity(target, self._store.get_interactions(other))
            if similarity >= self._min_similarity:
                neighbors.append((other, similarity))

        neighbors.sort(key=lambda pair: pair[1], reverse=True)
        return neighbors[: self._max_neighbors]

    def recommend(self, user_id: str, limit: int | None = None) -> dict[str, float]:
        """Score documents the user has not interacted with.

        Returns:
            Document id -> score in [0, 1], highest first
        """
        seen = self._store.get_interactions(user_id)
        neighbors = self.find_similar_users(user_id)

        weighted: dict[str, float] = {}
        norms: dict[str, float] = {}
        for neighbor, similarity in neighbors:
            for doc_id, weight in self._store.get_interactions(neighbor).items():
                if doc_id in seen:
                    continue
                weighted[doc_id] = weighted.get(doc_id, 0.0) + similarity * weight
                norms[doc_id] = norms.get(doc_id, 0.0) + similarity

        scores = {doc_id: weighted[doc_id] / norms[doc_id] for doc_id in weighted if norms[doc_id] > 0}
        peak = max(scores.values(), default=0.0)
        if peak > 1.0:
            scores = {doc_id: score / peak for doc_id, score in scores.items()}

        ranked = dict(sorted(scores.items(), key=lambda pair: pair[1], reverse=True)[:limit])
        self._logger.debug(
            "Collaborative filtering for %s: %d neighbors, %d candidates",
            user_id,
            len(neighbors),
            len(ranked),
        )
        return ranked
