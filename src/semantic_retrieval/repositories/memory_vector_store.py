"""In-memory implementation of VectorStore.

Brute-force L2 search over a numpy matrix. Suitable for tests, demos
and small personal archives; satisfies the VectorStore protocol.
"""

import logging
import threading
from dataclasses import replace

import numpy as np

from semantic_retrieval.entities import MetadataFilter, VectorDocument
from semantic_retrieval.errors import NotFoundError, ValidationError


class InMemoryVectorStore:
    """Thread-safe in-process vector store.

    This class satisfies the VectorStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        dimension: int | None = None,
        collection_name: str = "memory",
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            dimension: Expected vector dimension. If None, fixed by the first document.
            collection_name: Name reported in stats
            logger: Optional logger
        """
        self._dimension = dimension
        self._collection_name = collection_name
        self._logger = logger or logging.getLogger(__name__)
        self._documents: dict[str, VectorDocument] = {}
        self._lock = threading.RLock()

    def _check_dimension(self, document: VectorDocument) -> None:
        if not document.id:
            raise ValidationError("id", "must not be empty")
        if not document.embedding:
            raise ValidationError("embedding", f"document {document.id} has no embedding")
        if self._dimension is None:
            self._dimension = len(document.embedding)
        elif len(document.embedding) != self._dimension:
            raise ValidationError(
                "embedding",
                f"expected dimension {self._dimension}, got {len(document.embedding)}",
            )

    @staticmethod
    def _stamp(document: VectorDocument) -> VectorDocument:
        metadata = document.metadata
        if metadata.created_at is None or metadata.content_length is None:
            metadata = metadata.updated(
                created_at=metadata.created_at or document.created_at,
                content_length=len(document.content),
            )
        return replace(document, metadata=metadata, distance=None)

    def add(self, document: VectorDocument) -> None:
        with self._lock:
            self._check_dimension(document)
            self._documents[document.id] = self._stamp(document)

    def add_batch(self, documents: list[VectorDocument]) -> None:
        with self._lock:
            for document in documents:
                self._check_dimension(document)
            for document in documents:
                self._documents[document.id] = self._stamp(document)

    def get(self, document_id: str) -> VectorDocument:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError("document", document_id)
        return document

    def delete(self, document_id: str) -> None:
        with self._lock:
            if self._documents.pop(document_id, None) is None:
                raise NotFoundError("document", document_id)

    def update(self, document: VectorDocument) -> None:
        with self._lock:
            if document.id not in self._documents:
                raise NotFoundError("document", document.id)
            self._check_dimension(document)
            self._documents[document.id] = self._stamp(document)

    def query(
        self,
        vector: list[float] | None,
        top_k: int,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[VectorDocument]:
        if top_k <= 0:
            return []

        with self._lock:
            candidates = [
                doc
                for doc in self._documents.values()
                if metadata_filter is None or metadata_filter.matches(doc.metadata, doc.created_at)
            ]

        if not candidates:
            return []

        if vector is None:
            candidates.sort(key=lambda d: d.metadata.created_at or d.created_at, reverse=True)
            return [doc.with_distance(0.0) for doc in candidates[:top_k]]

        if self._dimension is not None and len(vector) != self._dimension:
            raise ValidationError("vector", f"expected dimension {self._dimension}, got {len(vector)}")

        matrix = np.asarray([doc.embedding for doc in candidates], dtype=np.float64)
        distances = np.linalg.norm(matrix - np.asarray(vector, dtype=np.float64), axis=1)
        order = np.argsort(distances, kind="stable")[:top_k]
        return [candidates[i].with_distance(float(distances[i])) for i in order]

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def health_check(self) -> bool:
        return True

    def get_stats(self) -> dict:
        return {
            "collection_name": self._collection_name,
            "backend": "memory",
            "total_documents": self.count(),
            "dimension": self._dimension,
        }
