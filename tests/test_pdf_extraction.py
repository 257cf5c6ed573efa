"""
Tests for the native PDF text layer helpers: glued-word repair, candidate
scoring and rejection of unreadable files.
"""

import pytest

from resume_intake.core.errors import ErrorCode, ParserError
from resume_intake.core.pdf_extractor import (
    _clean_page_text,
    _score_text,
    _segment_token,
    extract_pdf_text,
    looks_like_pdf,
)


class TestSegmentToken:
    def test_trailing_joiner(self):
        assert _segment_token("territoryby") == "territory by"

    def test_inner_article(self):
        assert _segment_token("backalarge") == "back a large"

    def test_short_or_capitalized_tokens_untouched(self):
        assert _segment_token("python") == "python"
        assert _segment_token("Kubernetes") == "Kubernetes"

    def test_no_valid_split(self):
        assert _segment_token("engineering") == "engineering"


def test_clean_page_text_keeps_blank_lines():
    assert _clean_page_text("  Grew territoryby 40%  \n\nSKILLS") == "Grew territory by 40%\n\nSKILLS"


def test_score_prefers_clean_text():
    glued = "Managedcrossfunctionalteams across regions"
    fragmented = " ".join("Managed cross functional teams across regions".replace(" ", ""))
    clean = "Managed cross functional teams across regions"
    assert _score_text(clean) == 0
    assert _score_text(glued) > _score_text(clean)
    assert _score_text(fragmented) > _score_text(clean)
    assert _score_text("") == 1e9


def test_header_detection():
    assert looks_like_pdf(b"%PDF-1.7\n...")
    assert not looks_like_pdf(b"Jane Doe")


def test_missing_header_rejected():
    with pytest.raises(ParserError) as exc_info:
        extract_pdf_text(b"Jane Doe resume")
    assert exc_info.value.code == ErrorCode.PDF_INVALID_FORMAT


def test_unreadable_pdf_body():
    with pytest.raises(ParserError) as exc_info:
        extract_pdf_text(b"%PDF-1.7\nthis is not a pdf body")
    assert exc_info.value.code in (ErrorCode.PDF_INVALID_FORMAT, ErrorCode.PDF_EXTRACTION_FAILED)
    assert exc_info.value.context["original_error"]
