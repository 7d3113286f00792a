"""In-memory interaction store.

Keeps user -> document -> weight in process memory. The HTTP layer
feeds it from recommendation requests that carry an interaction
history; tests fill it directly.
"""

import threading


class InMemoryInteractionStore:
    """Thread-safe InteractionStore backed by a nested dict."""

    def __init__(self, interactions: dict[str, dict[str, float]] | None = None) -> None:
        self._interactions: dict[str, dict[str, float]] = {
            user: dict(docs) for user, docs in (interactions or {}).items()
        }
        self._lock = threading.Lock()

    def record(self, user_id: str, document_id: str, weight: float = 1.0) -> None:
        """Record an interaction, keeping the strongest weight seen."""
        with self._lock:
            docs = self._interactions.setdefault(user_id, {})
            docs[document_id] = max(weight, docs.get(document_id, 0.0))

    def get_interactions(self, user_id: str) -> dict[str, float]:
        with self._lock:
            return dict(self._interactions.get(user_id, {}))

    def list_users(self) -> list[str]:
        with self._lock:
            return [user for user, docs in self._interactions.items() if docs]
