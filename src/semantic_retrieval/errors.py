"""Error taxonomy for the retrieval core.

Every error raised by services and repositories derives from
``RetrievalError`` so callers can catch the whole family at once.
The concrete classes also derive from the closest builtin so that
code expecting ``ValueError`` / ``LookupError`` / ``RuntimeError``
keeps working.
"""

from typing import Any


class RetrievalError(Exception):
    """Base class for all retrieval core errors."""


class ValidationError(RetrievalError, ValueError):
    """Input rejected before any I/O was attempted.

    Attributes:
        field: Name of the offending field
        reason: Human-readable reason
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"invalid {field}: {reason}")


class NotFoundError(RetrievalError, LookupError):
    """A referenced resource does not exist."""

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class UpstreamError(RetrievalError, RuntimeError):
    """The vector store or embedding provider failed.

    Never retried by the core. Always raised ``from`` the underlying
    exception so the original traceback is preserved.

    Attributes:
        operation: The operation that failed (e.g. ``"vector_store.query"``)
        context: Extra context such as document id or batch size
    """

    def __init__(self, operation: str, message: str, context: dict[str, Any] | None = None) -> None:
        self.operation = operation
        self.context = context or {}
        detail = f"{operation} failed: {message}"
        if self.context:
            pairs = ", ".join(f"{k}={v}" for k, v in self.context.items())
            detail = f"{detail} ({pairs})"
        super().__init__(detail)


class UnsupportedOperationError(RetrievalError):
    """Unknown similarity metric, recommendation type or similar selector."""

    def __init__(self, operation: str, value: Any) -> None:
        self.operation = operation
        self.value = value
        super().__init__(f"unsupported {operation}: {value}")
