"""HTTP handlers for recommendations."""

from semantic_retrieval.dto import GetRecommendationsRequest, RecommendationsResponse
from semantic_retrieval.handlers.converters import (
    recommendation_item_response,
    to_recommendation_request,
)
from semantic_retrieval.handlers.errors import http_error
from semantic_retrieval.services import Recommender


class RecommendationHandler:
    """HTTP handlers for recommendation requests."""

    def __init__(self, recommender: Recommender) -> None:
        self._recommender = recommender

    async def get_recommendations(self, request: GetRecommendationsRequest) -> RecommendationsResponse:
        """Handle POST /recommendations requests.

        Raises:
            HTTPException: 400 on invalid input or unknown type, 404 on an
                unknown source document, 502 on upstream failure
        """
        try:
            response = await self._recommender.get_recommendations(to_recommendation_request(request))
            return RecommendationsResponse(
                recommendations=[recommendation_item_response(item) for item in response.recommendations],
                total_found=response.total_found,
                process_time_ms=response.process_time * 1000,
                recommendation_type=response.recommendation_type.value,
                metadata=response.metadata,
            )
        except Exception as e:
            raise http_error("get recommendations", e) from e
