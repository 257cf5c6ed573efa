from dataclasses import dataclass
from io import BytesIO
from typing import Any, Callable, List, Optional, Tuple
import logging
import re

import pdfplumber

from resume_intake.core.errors import ErrorCode, ErrorHandler, ParserError

logger = logging.getLogger(__name__)

PageCallback = Callable[[int, int], None]

JOINERS_SET = {"a", "an", "to", "in", "of", "for", "and", "the", "by", "on", "at", "or", "as", "is"}
SUFFIX_JOINERS = ("by", "to", "in", "of", "at", "on")
COMMON3 = {"new", "all", "top", "one", "two", "six", "ten", "and", "ver"}
VOWELS = set("aeiouy")


@dataclass
class PdfText:
    text: str
    page_count: int
    x_tolerances: List[float]


def _wordish(s: str) -> bool:
    """Check if a string looks like a word-shaped piece (has vowels, no weird clusters)."""
    s = s.lower()
    if not s.isalpha():
        return False
    if not any(c in VOWELS for c in s):
        return False
    if re.search(r"[bcdfghjklmnpqrstvwxz]{5,}", s):
        return False
    return True


def _valid_piece(p: str) -> bool:
    p = p.lower()
    if p in JOINERS_SET:
        return True
    if len(p) >= 4:
        return _wordish(p)
    return len(p) == 3 and p in COMMON3


def _segment_token(tok: str) -> str:
    """
    Split a glued lowercase token at a joiner boundary ("territoryby" -> "territory by",
    "backalarge" -> "back a large"). One shot, every piece must pass _valid_piece().
    """
    t = tok.lower()
    if not (t.isalpha() and t.islower() and len(t) >= 8):
        return tok

    for j in SUFFIX_JOINERS:
        if t.endswith(j) and len(t) > len(j) + 3:
            left = t[:-len(j)]
            if _valid_piece(left):
                return f"{left} {j}"

    # Longest left side first
    for i in range(len(t) - 4, 2, -1):
        if t[i] != "a":
            continue
        left, right = t[:i], t[i + 1:]
        if _valid_piece(left) and _valid_piece(right):
            return f"{left} a {right}"

    return tok


def _deglue_joiners(text: str) -> str:
    return " ".join(_segment_token(t) for t in text.split())


def _words_to_text(page: Any, *, x_tolerance: float = 3, y_tolerance: float = 2, line_y_tolerance: float = 3) -> str:
    """
    Extract text from a PDF page using word objects.

    Groups words by vertical position into lines and joins them with single spaces,
    which avoids both the glued-word and the over-spaced-word artefacts of
    layout-based extraction. A vertical gap noticeably taller than the running line
    height becomes a blank line so paragraph breaks survive into the text.
    """
    words = page.extract_words(
        x_tolerance=x_tolerance,
        y_tolerance=y_tolerance,
        keep_blank_chars=False,
        use_text_flow=True,
    )
    if not words:
        return ""

    words.sort(key=lambda w: (round(w["top"] / line_y_tolerance), w["x0"]))
    lines: List[Tuple[float, float, List[str]]] = []
    current_key = None
    for w in words:
        key = round(w["top"] / line_y_tolerance)
        if current_key is None or key != current_key:
            lines.append((w["top"], w["bottom"], [w["text"]]))
            current_key = key
        else:
            top, bottom, texts = lines[-1]
            texts.append(w["text"])
            lines[-1] = (top, max(bottom, w["bottom"]), texts)

    out: List[str] = []
    prev_bottom = None
    for top, bottom, texts in lines:
        height = max(bottom - top, 1.0)
        if prev_bottom is not None and top - prev_bottom > height * 1.2:
            out.append("")
        out.append(" ".join(texts))
        prev_bottom = bottom
    return "\n".join(out)


def _score_text(s: str) -> float:
    """
    Score extracted text quality; lower is better.

    Penalizes very long alphabetic tokens (18+ chars, glued words) and an excess of
    single-letter tokens (character fragmentation).
    """
    tokens = re.findall(r"[A-Za-z]+", s)
    if not tokens:
        return 1e9
    long_glued = sum(1 for t in tokens if len(t) >= 18)
    one_letter_count = sum(1 for t in tokens if len(t) == 1)
    excessive_singles = max(0, one_letter_count - 10)
    return long_glued * 10 + excessive_singles * 3


def _extract_best(page: Any, x_tolerance_range: Optional[List[float]] = None) -> Tuple[str, float, float]:
    """Try several x_tolerance values and keep the text with the best score."""
    if x_tolerance_range is None:
        x_tolerance_range = [1.5, 2, 2.5, 3]

    candidates = []
    for xt in x_tolerance_range:
        txt = _words_to_text(page, x_tolerance=xt)
        candidates.append((_score_text(txt), xt, txt))

    candidates.sort(key=lambda x: x[0])
    best_score, best_xt, best_txt = candidates[0]
    return best_txt, best_xt, best_score


def _clean_page_text(text: str) -> str:
    lines = []
    for line in text.splitlines():
        line = line.strip()
        lines.append(_deglue_joiners(line) if line else "")
    return "\n".join(lines)


def looks_like_pdf(pdf_bytes: bytes) -> bool:
    return b"%PDF" in pdf_bytes[:1024]


def extract_pdf_text(pdf_bytes: bytes, on_page: Optional[PageCallback] = None) -> PdfText:
    """
    Extract the native text layer of a PDF, page by page.

    Returns an empty text (not an error) for image-only PDFs so the caller can
    decide whether to escalate to OCR. Raises ParserError for unreadable files:
    PDF_PASSWORD_PROTECTED, PDF_INVALID_FORMAT or PDF_EXTRACTION_FAILED.
    """
    if not looks_like_pdf(pdf_bytes):
        raise ParserError(ErrorCode.PDF_INVALID_FORMAT, "Invalid PDF: missing %PDF header")

    pages: List[str] = []
    tolerances: List[float] = []
    try:
        with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
            total = len(pdf.pages)
            for page_i, page in enumerate(pdf.pages, start=1):
                text, used_x_tol, score = _extract_best(page)
                logger.debug("pdf page %d/%d: x_tolerance=%s score=%s chars=%d", page_i, total, used_x_tol, score, len(text))
                pages.append(_clean_page_text(text))
                tolerances.append(used_x_tol)
                if on_page is not None:
                    on_page(page_i, total)
    except ParserError:
        raise
    except Exception as e:
        code = ErrorHandler.classify(e, default=ErrorCode.PDF_EXTRACTION_FAILED)
        if code not in (ErrorCode.PDF_PASSWORD_PROTECTED, ErrorCode.PDF_INVALID_FORMAT, ErrorCode.MEMORY_LIMIT_EXCEEDED):
            code = ErrorCode.PDF_EXTRACTION_FAILED
        raise ParserError(code, f"PDF extraction failed: {e}", context={"original_error": type(e).__name__}) from e

    text = "\n\n".join(p for p in pages if p.strip())
    return PdfText(text=text, page_count=len(pages), x_tolerances=tolerances)
