"""Tests for embedding text preparation."""

from news_rag.models import Document
from news_rag.rag.text import (
    TRUNCATION_MARKER,
    create_embedding_text,
    prepare_text,
    text_fingerprint,
)


class TestPrepareText:
    def test_collapses_whitespace_and_newlines(self):
        assert prepare_text("  hello \n\n  world\t again  ") == "hello world again"

    def test_strips_non_printable(self):
        assert prepare_text("bell\x07 and null\x00 gone") == "bell and null gone"

    def test_keeps_unicode_text(self):
        assert prepare_text("Zürich café, naïve") == "Zürich café, naïve"

    def test_truncates_with_marker(self):
        out = prepare_text("a" * 50, max_length=10)
        assert out == "a" * 10 + TRUNCATION_MARKER

    def test_exact_length_not_truncated(self):
        assert prepare_text("a" * 10, max_length=10) == "a" * 10

    def test_non_text_returns_empty(self):
        assert prepare_text(None) == ""
        assert prepare_text(42) == ""
        assert prepare_text("") == ""


class TestCreateEmbeddingText:
    def test_title_summary_content_order(self):
        doc = Document(id="d1", title="Title A", summary="Short summary", content="Body text")
        assert create_embedding_text(doc) == "Title: Title A Summary: Short summary Content: Body text"

    def test_missing_parts_are_skipped(self):
        doc = Document(id="d1", content="Only body")
        assert create_embedding_text(doc) == "Content: Only body"

    def test_content_truncated_before_joining(self):
        doc = Document(id="d1", title="T", content="x" * 100)
        text = create_embedding_text(doc, max_content_length=20)
        assert text == "Title: T Content: " + "x" * 20 + TRUNCATION_MARKER

    def test_overall_length_capped(self):
        doc = Document(id="d1", title="T" * 100, content="body")
        text = create_embedding_text(doc, max_length=30)
        assert len(text) == 30 + len(TRUNCATION_MARKER)

    def test_deterministic(self):
        doc = Document(id="d1", title="Same", content="Same body")
        assert create_embedding_text(doc) == create_embedding_text(doc)


class TestFingerprint:
    def test_same_input_same_fingerprint(self):
        assert text_fingerprint("abc", "m1") == text_fingerprint("abc", "m1")

    def test_text_changes_fingerprint(self):
        assert text_fingerprint("abc", "m1") != text_fingerprint("abd", "m1")

    def test_model_changes_fingerprint(self):
        assert text_fingerprint("abc", "m1") != text_fingerprint("abc", "m2")
