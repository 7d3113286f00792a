"""Vector store protocol.

Defines the interface for any backend that persists embedded documents
and answers nearest-neighbor queries with metadata filtering.

Distance semantics are L2: a hit's ``distance`` is the Euclidean
distance to the query vector and callers convert it to a similarity
as ``1 - distance``.
"""

from typing import Protocol, runtime_checkable

from semantic_retrieval.entities import MetadataFilter, VectorDocument


@runtime_checkable
class VectorStore(Protocol):
    """Protocol for vector storage backends.

    Implementations raise ``NotFoundError`` for unknown ids and
    ``UpstreamError`` for backend failures.
    """

    def add(self, document: VectorDocument) -> None:
        """Store a document, replacing any document with the same id."""
        ...

    def add_batch(self, documents: list[VectorDocument]) -> None:
        """Store many documents in one round trip."""
        ...

    def get(self, document_id: str) -> VectorDocument:
        """Fetch a document including its embedding.

        Raises:
            NotFoundError: If the id is unknown
        """
        ...

    def delete(self, document_id: str) -> None:
        """Delete a document.

        Raises:
            NotFoundError: If the id is unknown
        """
        ...

    def update(self, document: VectorDocument) -> None:
        """Replace an existing document.

        Raises:
            NotFoundError: If the id is unknown
        """
        ...

    def query(
        self,
        vector: list[float] | None,
        top_k: int,
        metadata_filter: MetadataFilter | None = None,
    ) -> list[VectorDocument]:
        """Find the nearest documents.

        Args:
            vector: Query vector. ``None`` lists filtered documents, newest first
            top_k: Maximum number of hits
            metadata_filter: Optional filter

        Returns:
            Hits ordered by ascending distance, with ``distance`` set
        """
        ...

    def count(self) -> int:
        """Return the number of stored documents."""
        ...

    def health_check(self) -> bool:
        """Return True if the backend is reachable."""
        ...

    def get_stats(self) -> dict:
        """Return implementation-specific statistics."""
        ...
