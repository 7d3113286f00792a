import os
from dataclasses import dataclass
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    vector_index_name: str = os.getenv("VECTOR_INDEX_NAME", "content_vectors")

    # Embedding
    embedding_provider: str = os.getenv("EMBEDDING_PROVIDER", "local")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "paraphrase-multilingual-MiniLM-L12-v2")
    embedding_max_tokens: int = int(os.getenv("EMBEDDING_MAX_TOKENS", "8000"))

    # Ollama
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # OpenAI-compatible embedding API
    openai_api_base: str = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")

    # Upstream calls (vector store, embedding provider), seconds
    upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "30"))

    # In-process cache, TTLs in seconds
    query_vector_cache_ttl: int = int(os.getenv("QUERY_VECTOR_CACHE_TTL", "3600"))
    query_vector_cache_size: int = int(os.getenv("QUERY_VECTOR_CACHE_SIZE", "10000"))
    recommendation_cache_ttl: int = int(os.getenv("RECOMMENDATION_CACHE_TTL", "1800"))
    recommendation_cache_size: int = int(os.getenv("RECOMMENDATION_CACHE_SIZE", "5000"))
    user_preference_cache_ttl: int = int(os.getenv("USER_PREFERENCE_CACHE_TTL", "86400"))
    user_preference_cache_size: int = int(os.getenv("USER_PREFERENCE_CACHE_SIZE", "1000"))
    cache_cleanup_interval: float = float(os.getenv("CACHE_CLEANUP_INTERVAL", "600"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.embedding_provider not in ("local", "ollama", "openai"):
            raise ValueError(
                f"EMBEDDING_PROVIDER must be one of ['local', 'ollama', 'openai'], "
                f"got {self.embedding_provider}"
            )

        if self.upstream_timeout <= 0:
            raise ValueError("UPSTREAM_TIMEOUT must be positive")

        if self.cache_cleanup_interval <= 0:
            raise ValueError("CACHE_CLEANUP_INTERVAL must be positive")

        for name in ("query_vector_cache_size", "recommendation_cache_size", "user_preference_cache_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got {self.log_level}")


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the composite search relevance score.

    The defaults are tuning starting points, not derived from data.
    """

    similarity: float = 0.6
    keyword_coverage: float = 0.2
    importance: float = 0.1
    freshness: float = 0.1
    freshness_scale_days: float = 365.0


@dataclass(frozen=True)
class RecommendationWeights:
    """Weights used by the recommendation strategies."""

    related_vector: float = 0.7
    related_keyword: float = 0.3
    related_floor_factor: float = 0.7

    personalized_floor_factor: float = 0.8
    personalized_type_bonus: float = 0.2
    personalized_tag_bonus: float = 0.1
    personalized_history_factor: float = 0.3

    trending_freshness: float = 0.6
    trending_importance: float = 0.4
    trending_window_days: int = 30

    hybrid_similar: float = 0.3
    hybrid_personalized: float = 0.4
    hybrid_trending: float = 0.2
    hybrid_collaborative: float = 0.1

    diversity_per_type: int = 2


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
