"""Redis implementation of VectorStore.

This repository uses Redis Stack with vector search capabilities (HNSW index).
It's the default implementation and satisfies the VectorStore protocol.
"""

import json
import logging
import math
import struct
from datetime import datetime, timezone

import redis
from redisvl.index import SearchIndex
from redisvl.query import FilterQuery, VectorQuery
from redisvl.query.filter import FilterExpression, Num, Tag

from semantic_retrieval.config import get_redis_client, settings
from semantic_retrieval.entities import DocumentMetadata, MetadataFilter, VectorDocument
from semantic_retrieval.errors import NotFoundError, UpstreamError, ValidationError

RETURN_FIELDS = ["doc_id", "content", "metadata", "created_at"]


def _decode(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def build_filter_expression(metadata_filter: MetadataFilter | None) -> FilterExpression | None:
    """Translate a MetadataFilter into a redisvl filter expression.

    Tag filters given a list match any of the values; all fields are ANDed.
    """
    if metadata_filter is None or metadata_filter.is_empty:
        return None

    expressions: list[FilterExpression] = []
    if metadata_filter.user_id is not None:
        expressions.append(Tag("user_id") == metadata_filter.user_id)
    if metadata_filter.content_types:
        expressions.append(Tag("content_type") == sorted(ct.value for ct in metadata_filter.content_types))
    if metadata_filter.created_after is not None:
        expressions.append(Num("created_at") >= metadata_filter.created_after.timestamp())
    if metadata_filter.created_before is not None:
        expressions.append(Num("created_at") <= metadata_filter.created_before.timestamp())
    if metadata_filter.min_importance is not None:
        expressions.append(Num("importance_score") >= metadata_filter.min_importance)
    if metadata_filter.tags:
        expressions.append(Tag("tags") == sorted(metadata_filter.tags))

    combined = expressions[0]
    for expression in expressions[1:]:
        combined = combined & expression
    return combined


class RedisVectorStore:
    """Redis implementation using an HNSW vector index with L2 distance.

    This class satisfies the VectorStore protocol through structural
    typing - no explicit inheritance needed.

    Documents are stored as hashes under ``{index_name}:{document_id}``:
    - ``embedding`` as packed float32 bytes
    - ``user_id``, ``content_type``, ``tags`` and ``keywords`` as TAG fields
    - ``created_at`` and ``importance_score`` as NUMERIC fields
    - the full typed metadata as JSON in ``metadata``
    """

    def __init__(
        self,
        dimension: int,
        redis_client: redis.Redis | None = None,
        index_name: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the Redis vector store.

        Args:
            dimension: Embedding vector dimension
            redis_client: Redis client instance. If None, creates default.
            index_name: Name of the Redis search index.
            logger: Optional logger
        """
        self._dimension = dimension
        self._client = redis_client or get_redis_client()
        self._index_name = index_name or settings.vector_index_name
        self._logger = logger or logging.getLogger(__name__)
        self._index: SearchIndex | None = None

        self._ensure_index()

    @classmethod
    def create(
        cls,
        dimension: int,
        index_name: str | None = None,
        logger: logging.Logger | None = None,
    ) -> "RedisVectorStore":
        """Factory method to create RedisVectorStore with defaults.

        Args:
            dimension: Embedding vector dimension (usually ``provider.dimension``)
            index_name: Redis index name. If None, uses settings.
            logger: Optional logger

        Returns:
            Configured RedisVectorStore
        """
        return cls(dimension=dimension, index_name=index_name, logger=logger)

    def _ensure_index(self) -> None:
        """Ensure the Redis vector index exists."""
        if self._index is not None:
            return

        index_schema = {
            "index": {
                "name": self._index_name,
                "prefix": f"{self._index_name}:",
                "storage_type": "hash",
            },
            "fields": [
                {"name": "doc_id", "type": "tag"},
                {"name": "content", "type": "text"},
                {"name": "user_id", "type": "tag"},
                {"name": "content_type", "type": "tag"},
                {"name": "tags", "type": "tag", "attrs": {"separator": ","}},
                {"name": "keywords", "type": "tag", "attrs": {"separator": ","}},
                {"name": "created_at", "type": "numeric", "attrs": {"sortable": True}},
                {"name": "importance_score", "type": "numeric"},
                {
                    "name": "embedding",
                    "type": "vector",
                    "attrs": {
                        "dims": self._dimension,
                        "algorithm": "hnsw",
                        "distance_metric": "l2",
                        "datatype": "float32",
                    },
                },
            ],
        }

        self._index = SearchIndex.from_dict(index_schema, redis_client=self._client)

        try:
            self._index.create(overwrite=False)
            self._logger.info("Created new index: %s", self._index_name)
        except Exception as e:
            if "already exists" in str(e):
                self._logger.info("Using existing index: %s", self._index_name)
            else:
                raise UpstreamError("vector_store.create_index", str(e), {"collection": self._index_name}) from e

    def _key(self, document_id: str) -> str:
        return f"{self._index_name}:{document_id}"

    def _to_mapping(self, document: VectorDocument) -> dict:
        if not document.id:
            raise ValidationError("id", "must not be empty")
        if len(document.embedding) != self._dimension:
            raise ValidationError(
                "embedding",
                f"expected dimension {self._dimension}, got {len(document.embedding)}",
            )

        metadata = document.metadata.updated(
            created_at=document.metadata.created_at or document.created_at,
            content_length=len(document.content),
        )
        mapping = {
            "doc_id": document.id,
            "content": document.content,
            "embedding": struct.pack(f"{len(document.embedding)}f", *document.embedding),
            "created_at": str(metadata.created_at.timestamp()),
            "metadata": json.dumps(metadata.to_dict()),
            "tags": ",".join(metadata.tags),
            "keywords": ",".join(metadata.keywords),
        }
        if metadata.user_id is not None:
            mapping["user_id"] = metadata.user_id
        if metadata.content_type is not None:
            mapping["content_type"] = metadata.content_type.value
        if metadata.importance_score is not None:
            mapping["importance_score"] = str(metadata.importance_score)
        return mapping

    def _from_fields(self, document_id: str, fields: dict, embedding: bytes | None) -> VectorDocument:
        metadata = DocumentMetadata.from_dict(json.loads(_decode(fields.get("metadata")) or "{}"))
        created_raw = _decode(fields.get("created_at"))
        created_at = (
            datetime.fromtimestamp(float(created_raw), tz=timezone.utc)
            if created_raw
            else metadata.created_at or datetime.now(timezone.utc)
        )
        vector = list(struct.unpack(f"{len(embedding) // 4}f", embedding)) if embedding else []
        return VectorDocument(
            id=document_id,
            content=_decode(fields.get("content")),
            embedding=vector,
            metadata=metadata,
            created_at=created_at,
        )

    def add(self, document: VectorDocument) -> None:
        self.add_batch([document])

    def add_batch(self, documents: list[VectorDocument]) -> None:
        mappings = [(self._key(doc.id), self._to_mapping(doc)) for doc in documents]
        try:
            pipe = self._client.pipeline()
            for key, mapping in mappings:
                pipe.delete(key)
                pipe.hset(key, mapping=mapping)
            pipe.execute()
        except redis.RedisError as e:
            raise UpstreamError(
                "vector_store.add",
                str(e),
                {"collection": self._index_name, "batch_size": len(documents)},
            ) from e

    def get(self, document_id: str) -> VectorDocument:
        try:
            raw = self._client.hgetall(self._key(document_id))
        except redis.RedisError as e:
            raise UpstreamError("vector_store.get", str(e), {"document_id": document_id}) from e

        if not raw:
            raise NotFoundError("document", document_id)

        fields = {_decode(k): v for k, v in raw.items()}
        return self._from_fields(document_id, fields, fields.get("embedding"))

    def delete(self, document_id: str) -> None:
        try:
            deleted: int = self._client.delete(self._key(document_id))  # type: ignore[assignment]
        except redis.RedisError as e:
            raise UpstreamError("vector_store.delete", str(e), {"document_id": document_id}) from e
        if deleted == 0:
            raise NotFoundError("document", document_id)

    def update(self, document: VectorDocument) -> None:
        try:
            exists = self._client.exists(self._key(document.id))
        except redis.RedisError as e:
            raise UpstreamError("vector_store.update", str(e), {"document_id": document.id}) from e
        if not exists:
            raise NotFoundError("document", document.id)
        self.add_batch([document])

    def query(
        self,
        vector: list[float] | None,
        top_k: int,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[VectorDocument]:
        if top_k <= 0 or self._index is None:
            return []

        expression = build_filter_expression(metadata_filter)
        if vector is not None:
            query = VectorQuery(
                vector=vector,
                vector_field_name="embedding",
                return_fields=RETURN_FIELDS,
                filter_expression=expression,
                num_results=top_k,
            )
        else:
            query = FilterQuery(
                return_fields=RETURN_FIELDS,
                filter_expression=expression or FilterExpression("*"),
                num_results=top_k,
            )
            query.sort_by("created_at", asc=False)

        try:
            results = self._index.query(query)
            keys = [self._key(_decode(r["doc_id"])) for r in results]
            pipe = self._client.pipeline()
            for key in keys:
                pipe.hget(key, "embedding")
            embeddings = pipe.execute()
        except redis.RedisError as e:
            raise UpstreamError(
                "vector_store.query",
                str(e),
                {"collection": self._index_name, "top_k": top_k},
            ) from e

        hits = []
        for result, embedding in zip(results, embeddings):
            document = self._from_fields(_decode(result["doc_id"]), result, embedding)
            # RediSearch reports squared L2 distances
            distance = math.sqrt(max(float(result.get("vector_distance", 0.0)), 0.0))
            hits.append(document.with_distance(distance))

        if vector is not None:
            hits.sort(key=lambda d: d.distance or 0.0)
        return hits

    def count(self) -> int:
        try:
            return sum(1 for _ in self._client.scan_iter(match=f"{self._index_name}:*"))
        except redis.RedisError as e:
            raise UpstreamError("vector_store.count", str(e), {"collection": self._index_name}) from e

    def health_check(self) -> bool:
        """Check if Redis is accessible."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            self._logger.warning("Redis health check failed: %s", e)
            return False

    def get_stats(self) -> dict:
        return {
            "collection_name": self._index_name,
            "backend": "redis",
            "total_documents": self.count(),
            "dimension": self._dimension,
        }

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
