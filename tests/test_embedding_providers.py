"""Tests for the embedding providers, with HTTP mocked through httpx.MockTransport."""

import json

import httpx
import numpy as np
import pytest

from semantic_retrieval.entities import ContentType
from semantic_retrieval.errors import UpstreamError
from semantic_retrieval.repositories import OllamaEmbeddingProvider, OpenAIEmbeddingProvider


def recording_transport(handler):
    """MockTransport that also records the JSON bodies it received."""
    requests: list[dict] = []

    def wrapped(request: httpx.Request) -> httpx.Response:
        requests.append({"url": str(request.url), "headers": request.headers, "json": json.loads(request.content)})
        return handler(request)

    return httpx.MockTransport(wrapped), requests


@pytest.mark.asyncio
async def test_openai_encode_parses_vector_and_usage():
    transport, requests = recording_transport(
        lambda request: httpx.Response(
            200,
            json={
                "data": [{"embedding": [0.1, 0.2, 0.3]}],
                "model": "text-embedding-3-small",
                "usage": {"total_tokens": 4},
            },
        )
    )
    provider = OpenAIEmbeddingProvider(
        model_name="text-embedding-3-small",
        base_url="https://api.example.com/v1/",
        api_key="secret",
        transport=transport,
    )

    result = await provider.encode("a   shared  link", ContentType.LINK)
    await provider.close()

    assert result.vector == [0.1, 0.2, 0.3]
    assert result.tokens_used == 4
    assert result.model == "text-embedding-3-small"
    assert provider.dimension == 3
    sent = requests[0]
    assert sent["url"] == "https://api.example.com/v1/embeddings"
    assert sent["headers"]["authorization"] == "Bearer secret"
    assert sent["json"] == {"model": "text-embedding-3-small", "input": "Web content: a shared link"}


def test_openai_dimension_before_first_call():
    provider = OpenAIEmbeddingProvider(model_name="text-embedding-3-large", api_key="k")
    assert provider.dimension == 3072


@pytest.mark.asyncio
async def test_openai_http_error_becomes_upstream_error():
    transport, _ = recording_transport(lambda request: httpx.Response(500, json={"error": "boom"}))
    provider = OpenAIEmbeddingProvider(model_name="m", base_url="https://api.example.com", transport=transport)

    with pytest.raises(UpstreamError) as exc_info:
        await provider.encode("hello")
    available = await provider.is_available()
    await provider.close()

    assert exc_info.value.operation == "embedding.encode"
    assert available is False


@pytest.mark.asyncio
async def test_openai_empty_data_rejected():
    transport, _ = recording_transport(lambda request: httpx.Response(200, json={"data": []}))
    provider = OpenAIEmbeddingProvider(model_name="m", base_url="https://api.example.com", transport=transport)

    with pytest.raises(UpstreamError, match="no embedding data"):
        await provider.encode("hello")
    await provider.close()


@pytest.mark.asyncio
async def test_openai_batch_counts_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        if json.loads(request.content)["input"] == "bad":
            return httpx.Response(400, json={"error": "rejected"})
        return httpx.Response(200, json={"data": [{"embedding": [1.0, 0.0]}], "usage": {"total_tokens": 2}})

    transport, _ = recording_transport(handler)
    provider = OpenAIEmbeddingProvider(model_name="m", base_url="https://api.example.com", transport=transport)

    batch = await provider.encode_batch(["good", "bad", "also good"])
    await provider.close()

    assert batch.success_count == 2
    assert batch.failure_count == 1
    assert batch.results[1] is None
    assert set(batch.errors) == {1}
    assert batch.total_tokens == 4


@pytest.mark.asyncio
async def test_ollama_encode_reads_embeddings_list():
    transport, requests = recording_transport(
        lambda request: httpx.Response(200, json={"embeddings": [[0.5, 0.5]], "prompt_eval_count": 3})
    )
    provider = OllamaEmbeddingProvider(
        model_name="nomic-embed-text",
        base_url="http://ollama:11434",
        transport=transport,
    )

    assert provider.dimension == 768
    result = await provider.encode("hello world")
    await provider.close()

    assert result.vector == [0.5, 0.5]
    assert result.tokens_used == 3
    assert provider.dimension == 2
    assert requests[0]["url"] == "http://ollama:11434/api/embed"
    assert requests[0]["json"] == {"model": "nomic-embed-text", "input": "hello world"}


@pytest.mark.asyncio
async def test_ollama_legacy_single_embedding_field():
    transport, _ = recording_transport(lambda request: httpx.Response(200, json={"embedding": [0.1, 0.9]}))
    provider = OllamaEmbeddingProvider(model_name="all-minilm", base_url="http://ollama", transport=transport)

    result = await provider.encode("hi")
    await provider.close()

    assert result.vector == [0.1, 0.9]


@pytest.mark.asyncio
async def test_ollama_unexpected_response():
    transport, _ = recording_transport(lambda request: httpx.Response(200, json={"status": "ok"}))
    provider = OllamaEmbeddingProvider(model_name="all-minilm", base_url="http://ollama", transport=transport)

    with pytest.raises(UpstreamError, match="unexpected response format"):
        await provider.encode("hi")
    assert await provider.is_available() is False
    await provider.close()


class FakeSentenceModel:
    """Stand-in for a loaded SentenceTransformer."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.seen: list[list[str]] = []

    def encode(self, texts, **kwargs):
        self.seen.append(list(texts))
        if self.fail_on is not None and self.fail_on in texts:
            raise RuntimeError("encoding failed")
        return np.array([[float(len(t)), 1.0] for t in texts])

    def get_sentence_embedding_dimension(self) -> int:
        return 2


def local_provider(model: FakeSentenceModel):
    from semantic_retrieval.repositories.local_embedding_provider import LocalEmbeddingProvider

    provider = LocalEmbeddingProvider(model_name="fake-minilm")
    provider._model = model
    return provider


@pytest.mark.asyncio
async def test_local_encode_prefixes_content_type():
    model = FakeSentenceModel()
    provider = local_provider(model)

    result = await provider.encode("photo of a cat", ContentType.IMAGE)

    assert model.seen == [["Image text: photo of a cat"]]
    assert result.vector == [float(len("Image text: photo of a cat")), 1.0]
    assert result.model == "fake-minilm"
    assert provider.dimension == 2


@pytest.mark.asyncio
async def test_local_batch_retries_items_individually():
    provider = local_provider(FakeSentenceModel(fail_on="bad"))

    batch = await provider.encode_batch(["good", "bad", "fine"])

    assert batch.success_count == 2
    assert batch.failure_count == 1
    assert batch.results[1] is None
    assert batch.results[0].vector == [4.0, 1.0]


@pytest.mark.asyncio
async def test_local_encode_failure_is_upstream_error():
    provider = local_provider(FakeSentenceModel(fail_on="boom"))

    with pytest.raises(UpstreamError):
        await provider.encode("boom")
