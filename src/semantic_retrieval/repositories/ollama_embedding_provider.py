"""Ollama-based embedding provider.

Uses Ollama's local API to generate embeddings. Ollama serves models locally
without requiring HuggingFace authentication or downloading models manually.

Requirements:
    - Ollama installed: https://ollama.com
    - Model pulled: `ollama pull nomic-embed-text`
    - Ollama running: `ollama serve` (usually runs automatically)

Models available:
- embeddinggemma (308M params, 768 dims, 2K context)
- nomic-embed-text (137M params, 768 dims)
- mxbai-embed-large (335M params, 1024 dims)
- all-minilm (22M params, 384 dims)
"""

import logging

import httpx

from semantic_retrieval.config import settings
from semantic_retrieval.entities import BatchEmbeddingResult, ContentType, EmbeddingResult
from semantic_retrieval.errors import UpstreamError
from semantic_retrieval.repositories.embedding_batch import encode_each
from semantic_retrieval.utils.text import prepare_embedding_text


class OllamaEmbeddingProvider:
    """Ollama-based implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OllamaEmbeddingProvider.create(model_name="nomic-embed-text")
        result = await provider.encode("Hello, world!")
        print(len(result.vector))  # 768
        await provider.close()
        ```
    """

    # Known model dimensions (for common models)
    MODEL_DIMENSIONS = {
        "embeddinggemma": 768,
        "embeddinggemma:300m": 768,
        "nomic-embed-text": 768,
        "mxbai-embed-large": 1024,
        "all-minilm": 384,
        "all-minilm:l6-v2": 384,
    }

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Ollama embedding provider.

        Args:
            model_name: Name of the Ollama model. Defaults to settings.embedding_model.
            base_url: Ollama API base URL. Defaults to settings.ollama_base_url.
            timeout: Request timeout in seconds. Defaults to settings.upstream_timeout.
            max_tokens: Approximate input budget used for truncation
            logger: Optional logger
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self._model_name = model_name or settings.embedding_model
        self._base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self._timeout = timeout or settings.upstream_timeout
        self._max_tokens = max_tokens or settings.embedding_max_tokens
        self._logger = logger or logging.getLogger(__name__)
        self._transport = transport
        self._dimension: int | None = None
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    @classmethod
    def create(
        cls,
        model_name: str | None = None,
        base_url: str | None = None,
    ) -> "OllamaEmbeddingProvider":
        """Factory method to create OllamaEmbeddingProvider with defaults."""
        return cls(model_name=model_name, base_url=base_url)

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension.

        Known models report their dimension up front; otherwise the
        dimension seen on the first successful encode is used, and 768
        until then.
        """
        if self._dimension is None:
            return self.MODEL_DIMENSIONS.get(self._model_name, 768)
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def encode(self, text: str, content_type: ContentType | None = None) -> EmbeddingResult:
        """Generate embedding vector for a single text.

        Raises:
            UpstreamError: If the Ollama API request fails or the response is malformed
        """
        url = f"{self._base_url}/api/embed"
        payload = {
            "model": self._model_name,
            "input": prepare_embedding_text(text, content_type, self._max_tokens),
        }

        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            error_msg = f"Ollama API error: {e}"
            if "connection refused" in str(e).lower():
                error_msg += " (is Ollama running? Try: ollama serve)"
            elif "not found" in str(e).lower():
                error_msg += f" (model not found? Try: ollama pull {self._model_name})"
            raise UpstreamError("embedding.encode", error_msg, {"model": self._model_name}) from e

        # Ollama returns {"embeddings": [[...]]} for single input
        if data.get("embeddings"):
            vector = data["embeddings"][0]
        elif "embedding" in data:
            vector = data["embedding"]
        else:
            raise UpstreamError("embedding.encode", f"unexpected response format: {list(data)}")

        self._dimension = len(vector)
        return EmbeddingResult(
            vector=vector,
            tokens_used=int(data.get("prompt_eval_count", 0)),
            model=self._model_name,
        )

    async def encode_batch(self, texts: list[str]) -> BatchEmbeddingResult:
        return await encode_each(self, texts, self._logger)

    async def is_available(self) -> bool:
        """Check if Ollama is running and the model answers."""
        try:
            await self.encode("test")
            return True
        except UpstreamError as e:
            self._logger.warning("Ollama unavailable: %s", e)
            return False

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
