"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .recommendation_handler import RecommendationHandler
from .search_handler import SearchHandler

__all__ = [
    "RecommendationHandler",
    "SearchHandler",
]
