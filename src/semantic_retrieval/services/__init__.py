"""Service layer for business logic.

This layer contains the core search and recommendation logic.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from semantic_retrieval.services import Recommender, SearchEngine

    engine = SearchEngine.create(vector_store=store, embedding_provider=provider)
    recommender = Recommender(search_engine=engine)
    ```
"""

from .cache_manager import CacheConfig, VectorCacheManager
from .collaborative import CollaborativeFilter
from .ranker import Ranker
from .recommender import Recommender
from .search_engine import SearchEngine
from .similarity import SimilarityCalculator, SimilarityResult

__all__ = [
    "CacheConfig",
    "CollaborativeFilter",
    "Ranker",
    "Recommender",
    "SearchEngine",
    "SimilarityCalculator",
    "SimilarityResult",
    "VectorCacheManager",
]
