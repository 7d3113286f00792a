"""Mapping of retrieval errors onto HTTP errors."""

from fastapi import HTTPException, status

from semantic_retrieval.errors import (
    NotFoundError,
    UnsupportedOperationError,
    UpstreamError,
    ValidationError,
)


def http_error(action: str, error: Exception) -> HTTPException:
    """Build the HTTPException for a failed ``action``.

    Validation and unsupported-operation errors map to 400, unknown
    documents to 404, store or embedding failures to 502 and anything
    else to 500.
    """
    if isinstance(error, (ValidationError, UnsupportedOperationError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, UpstreamError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=f"Failed to {action}: {error}")
