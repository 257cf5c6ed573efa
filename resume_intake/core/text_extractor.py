"""Plain-text and RTF reading."""

import re
from typing import List

from resume_intake.core.errors import ErrorCode, ParserError

_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

# Destinations whose content is never body text
_RTF_SKIP_GROUPS = {
    "fonttbl", "colortbl", "stylesheet", "info", "pict", "object", "header", "footer",
    "headerl", "headerr", "footerl", "footerr", "listtable", "listoverridetable",
    "rsidtbl", "generator", "themedata", "colorschememapping", "latentstyles", "datastore",
    "xmlnstbl", "mmathPr", "filetbl", "revtbl",
}
_RTF_BREAKS = {"par": "\n", "line": "\n", "sect": "\n\n", "page": "\n\n", "row": "\n", "tab": "\t", "cell": " | "}
_RTF_TOKEN_RE = re.compile(
    r"\\([a-zA-Z]+)(-?\d+)? ?|\\'([0-9a-fA-F]{2})|\\([^a-zA-Z])|([{}])|([^\\{}]+)",
)


def decode_text(raw: bytes) -> str:
    if raw.startswith((b"\xff\xfe", b"\xfe\xff")):
        return raw.decode("utf-16")
    for encoding in _ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ParserError(ErrorCode.TEXT_EXTRACTION_FAILED, "Could not decode text file")


def is_rtf(raw: bytes) -> bool:
    return raw.lstrip()[:5] == b"{\\rtf"


def strip_rtf(rtf: str) -> str:
    """
    Reduce an RTF document to its visible text.

    Walks control words and groups with a stack; groups starting with "\\*" or a
    known non-text destination are skipped, \\par/\\line become newlines and
    \\'hh / \\uN escapes are decoded.
    """
    out: List[str] = []
    stack: List[bool] = []
    skipping = False
    unicode_skip = 0
    group_start = False

    for m in _RTF_TOKEN_RE.finditer(rtf):
        word, arg, hexcode, symbol, brace, text = m.groups()

        if brace == "{":
            stack.append(skipping)
            group_start = True
            continue
        if brace == "}":
            skipping = stack.pop() if stack else False
            group_start = False
            continue

        if symbol is not None:
            if symbol == "*" and group_start:
                skipping = True
            elif not skipping:
                if symbol in "\\{}":
                    out.append(symbol)
                elif symbol == "~":
                    out.append(" ")
                elif symbol == "\n" or symbol == "\r":
                    out.append("\n")
            group_start = False
            continue

        if word is not None:
            if group_start and word in _RTF_SKIP_GROUPS:
                skipping = True
            elif not skipping:
                if word in _RTF_BREAKS:
                    out.append(_RTF_BREAKS[word])
                elif word == "u" and arg is not None:
                    code = int(arg)
                    out.append(chr(code + 65536 if code < 0 else code))
                    unicode_skip = 1
                elif word in ("emdash", "endash"):
                    out.append("-")
                elif word == "bullet":
                    out.append("•")
            group_start = False
            continue

        if hexcode is not None:
            if unicode_skip:
                unicode_skip -= 1
            elif not skipping:
                out.append(bytes([int(hexcode, 16)]).decode("cp1252", errors="replace"))
            group_start = False
            continue

        if text is not None:
            group_start = False
            if skipping:
                continue
            chunk = text.replace("\r", "").replace("\n", "")
            if unicode_skip and chunk:
                chunk = chunk[unicode_skip:]
                unicode_skip = 0
            out.append(chunk)

    return "".join(out)


def extract_plain_text(raw: bytes) -> str:
    """Decode a plain-text or RTF upload into text."""
    text = decode_text(raw)
    if is_rtf(raw):
        text = strip_rtf(text)
    if "\x00" in text:
        raise ParserError(
            ErrorCode.TEXT_EXTRACTION_FAILED,
            "File contains binary data and is not plain text",
        )
    return text
