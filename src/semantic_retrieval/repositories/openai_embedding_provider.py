"""OpenAI-compatible embedding provider.

Talks to any service exposing ``POST {base}/embeddings`` with the OpenAI
request/response shape (OpenAI, Azure-style gateways, vLLM, LiteLLM, ...).
Unlike the local providers it reports the tokens billed per request.
"""

import logging

import httpx

from semantic_retrieval.config import settings
from semantic_retrieval.entities import BatchEmbeddingResult, ContentType, EmbeddingResult
from semantic_retrieval.errors import UpstreamError
from semantic_retrieval.repositories.embedding_batch import encode_each
from semantic_retrieval.utils.text import prepare_embedding_text


class OpenAIEmbeddingProvider:
    """OpenAI-compatible implementation of EmbeddingProvider protocol."""

    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            model_name: Embedding model. Defaults to settings.embedding_model.
            base_url: API base URL. Defaults to settings.openai_api_base.
            api_key: Bearer token. Defaults to settings.openai_api_key.
            timeout: Request timeout in seconds
            max_tokens: Approximate input budget used for truncation
            logger: Optional logger
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self._model_name = model_name or settings.embedding_model
        self._base_url = (base_url or settings.openai_api_base).rstrip("/")
        self._api_key = api_key or settings.openai_api_key
        self._timeout = timeout or settings.upstream_timeout
        self._max_tokens = max_tokens or settings.embedding_max_tokens
        self._logger = logger or logging.getLogger(__name__)
        self._transport = transport
        self._dimension: int | None = None
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(cls, model_name: str | None = None) -> "OpenAIEmbeddingProvider":
        return cls(model_name=model_name)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            return self.MODEL_DIMENSIONS.get(self._model_name, 1536)
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def encode(self, text: str, content_type: ContentType | None = None) -> EmbeddingResult:
        """Embed one text.

        Raises:
            UpstreamError: On HTTP errors or a response without embeddings
        """
        payload = {
            "model": self._model_name,
            "input": prepare_embedding_text(text, content_type, self._max_tokens),
        }

        try:
            response = await self.client.post("/embeddings", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamError("embedding.encode", f"embedding API error: {e}", {"model": self._model_name}) from e

        items = data.get("data") or []
        if not items or "embedding" not in items[0]:
            raise UpstreamError("embedding.encode", "no embedding data in response", {"model": self._model_name})

        vector = items[0]["embedding"]
        self._dimension = len(vector)
        usage = data.get("usage") or {}
        return EmbeddingResult(
            vector=vector,
            tokens_used=int(usage.get("total_tokens", 0)),
            model=data.get("model", self._model_name),
        )

    async def encode_batch(self, texts: list[str]) -> BatchEmbeddingResult:
        return await encode_each(self, texts, self._logger)

    async def is_available(self) -> bool:
        try:
            await self.encode("health check")
            return True
        except UpstreamError as e:
            self._logger.warning("Embedding API unavailable: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
