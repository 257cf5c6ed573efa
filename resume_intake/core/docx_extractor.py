from io import BytesIO
from typing import List, Tuple

from docx import Document

from resume_intake.core.errors import ErrorCode, ParserError


def extract_docx_lines(docx_bytes: bytes) -> List[Tuple[int, str]]:
    """
    Deterministically extract paragraph text from a DOCX, then table cells.
    Returns list of (block_index, text); empty paragraphs are kept as "" so that
    blank-line entry boundaries survive.
    """
    try:
        doc = Document(BytesIO(docx_bytes))
    except Exception as e:
        raise ParserError(
            ErrorCode.DOCX_PARSING_FAILED,
            f"Could not open DOCX: {e}",
            context={"original_error": type(e).__name__},
        ) from e

    out: List[Tuple[int, str]] = []
    for i, p in enumerate(doc.paragraphs):
        out.append((i, (p.text or "").strip()))

    offset = len(out)
    for table in doc.tables:
        for row in table.rows:
            seen = []
            for cell in row.cells:
                t = (cell.text or "").strip()
                # merged cells repeat across the row
                if t and t not in seen:
                    seen.append(t)
            if seen:
                out.append((offset, " | ".join(seen)))
                offset += 1
        out.append((offset, ""))
        offset += 1
    return out


def extract_docx_text(docx_bytes: bytes) -> str:
    lines = [text for _, text in extract_docx_lines(docx_bytes)]
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)
