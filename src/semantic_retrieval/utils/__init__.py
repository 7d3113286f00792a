"""Shared helpers: logging setup and text processing."""

from .log import configure_logging
from .text import (
    extract_matched_keywords,
    generate_summary,
    keyword_overlap,
    normalize_whitespace,
    prepare_embedding_text,
    preprocess_query,
)

__all__ = [
    "configure_logging",
    "extract_matched_keywords",
    "generate_summary",
    "keyword_overlap",
    "normalize_whitespace",
    "prepare_embedding_text",
    "preprocess_query",
]
