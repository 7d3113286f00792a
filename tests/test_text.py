"""Tests for query and embedding text helpers."""

from semantic_retrieval.entities import ContentType
from semantic_retrieval.utils import (
    extract_matched_keywords,
    generate_summary,
    keyword_overlap,
    prepare_embedding_text,
    preprocess_query,
)


def test_preprocess_query_collapses_whitespace():
    assert preprocess_query("  machine   learning\tmodels ") == "machine learning models"


def test_preprocess_query_lowercases_short_single_tokens():
    assert preprocess_query("AI") == "ai"
    assert preprocess_query("Machine Learning") == "Machine Learning"


def test_prepare_embedding_text_prefixes_by_content_type():
    assert prepare_embedding_text("example.com", ContentType.LINK) == "Web content: example.com"
    assert prepare_embedding_text("report", ContentType.FILE) == "Document content: report"
    assert prepare_embedding_text("receipt", ContentType.IMAGE) == "Image text: receipt"
    assert prepare_embedding_text("plain  note", ContentType.TEXT) == "plain note"


def test_prepare_embedding_text_truncates():
    text = prepare_embedding_text("x" * 100, max_tokens=10)

    assert len(text) == 40
    assert text.endswith("...")


def test_extract_matched_keywords():
    matched = extract_matched_keywords(
        "neural networks for AI",
        "A primer on neural networks.",
        keywords=("Artificial Intelligence", "ai"),
    )

    assert matched == ["neural", "networks", "ai"]


def test_generate_summary_short_content_unchanged():
    assert generate_summary("short text", "text") == "short text"


def test_generate_summary_centres_on_query_words():
    content = " ".join(["filler"] * 60) + " vector databases store embeddings " + " ".join(["padding"] * 60)

    summary = generate_summary(content, "vector databases")

    assert "vector databases" in summary
    assert summary.startswith("...")
    assert summary.endswith("...")
    assert len(summary) <= 200 + 6


def test_keyword_overlap_is_case_insensitive():
    assert keyword_overlap(["AI", "health"], ["ai", "finance"]) == 0.5
    assert keyword_overlap([], ["ai"]) == 0.0
