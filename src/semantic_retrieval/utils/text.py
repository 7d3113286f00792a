"""Text helpers shared by the search engine, recommender and embedding providers."""

import re

from semantic_retrieval.entities.document import ContentType

_WHITESPACE = re.compile(r"\s+")

# Rough estimate used for truncation before embedding
CHARS_PER_TOKEN = 4

CONTENT_TYPE_PREFIXES = {
    ContentType.LINK: "Web content: ",
    ContentType.FILE: "Document content: ",
    ContentType.IMAGE: "Image text: ",
}


def normalize_whitespace(text: str) -> str:
    """Trim and collapse runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text).strip()


def preprocess_query(query: str) -> str:
    """Normalize a search query.

    Whitespace is collapsed. Very short single-token queries are
    lowercased so that "AI" and "ai" share a cache entry.
    """
    query = normalize_whitespace(query)
    if len(query) < 10 and " " not in query:
        query = query.lower()
    return query


def prepare_embedding_text(
    text: str,
    content_type: ContentType | None = None,
    max_tokens: int = 8000,
) -> str:
    """Prepare raw content for the embedding provider.

    Args:
        text: Raw content
        content_type: Optional hint, adds a short prefix for links, files and images
        max_tokens: Approximate token budget of the embedding model

    Returns:
        Cleaned, prefixed and truncated text
    """
    text = normalize_whitespace(text)
    prefix = CONTENT_TYPE_PREFIXES.get(content_type) if content_type else None
    if prefix:
        text = prefix + text

    max_chars = max_tokens * CHARS_PER_TOKEN
    if len(text) > max_chars:
        text = text[: max_chars - 3] + "..."
    return text


def extract_matched_keywords(query: str, content: str, keywords: tuple[str, ...] | list[str] = ()) -> list[str]:
    """Find query words present in the content or the document keywords.

    Query words shorter than three characters are ignored for the content
    match. A metadata keyword matches when it contains a query word or is
    contained in one. Matching is case-insensitive; the result keeps
    first-seen order with duplicates removed.
    """
    query_words = query.lower().split()
    content_lower = content.lower()

    matched = [word for word in query_words if len(word) > 2 and word in content_lower]

    for keyword in keywords:
        keyword_lower = keyword.lower()
        if not keyword_lower:
            continue
        for word in query_words:
            if word in keyword_lower or keyword_lower in word:
                matched.append(keyword)
                break

    return list(dict.fromkeys(matched))


def generate_summary(content: str, query: str, max_length: int = 200, step: int = 50) -> str:
    """Cut an excerpt of ``content`` around the densest query-word window.

    Windows of ``max_length`` characters are scanned every ``step``
    characters; the first window holding the most distinct query words
    wins. Cut edges are moved to word boundaries and marked with "...".
    """
    if len(content) <= max_length:
        return content

    query_words = query.lower().split()
    content_lower = content.lower()

    best_start = 0
    best_matches = 0
    for start in range(0, len(content) - max_length + 1, step):
        window = content_lower[start : start + max_length]
        matches = sum(1 for word in query_words if word in window)
        if matches > best_matches:
            best_matches = matches
            best_start = start

    end = min(best_start + max_length, len(content))
    summary = content[best_start:end]

    if best_start > 0:
        space = summary.find(" ")
        if space > 0:
            summary = summary[space + 1 :]
        summary = "..." + summary

    if end < len(content):
        space = summary.rfind(" ")
        if space > 0:
            summary = summary[:space]
        summary = summary + "..."

    return summary


def keyword_overlap(query_keywords: list[str] | tuple[str, ...], doc_keywords: list[str] | tuple[str, ...]) -> float:
    """Fraction of query keywords also present in the document keywords."""
    if not query_keywords:
        return 0.0
    doc_set = {k.lower() for k in doc_keywords}
    hits = sum(1 for k in query_keywords if k.lower() in doc_set)
    return hits / len(query_keywords)
