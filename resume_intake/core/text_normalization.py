"""
Text normalization for extracted résumé text.

normalize_text() turns whatever a strategy produced (CRLF line ends, tabs,
non-breaking spaces, letter-spaced headings, assorted bullet glyphs) into one
canonical line-oriented blob. Blank lines are preserved (collapsed to one)
because they separate job and education entries.

Field-level helpers:
- normalize_field_text(): conservative repair of split-inside-a-word artefacts
- extract_email_flexible(): email recovery tolerant of stray spaces
"""

import re
import unicodedata
from typing import List, Optional


# ============================================================================
# Whole-document normalization
# ============================================================================

_ZERO_WIDTH_RE = re.compile("[​‌‍⁠﻿­]")
_SPACE_VARIANTS_RE = re.compile("[\t  -   　]")
_MULTI_SPACE_RE = re.compile(r" {2,}")
_BULLET_GLYPHS_RE = re.compile("^[•●▪■◦‣⁃∙·➢➔►–]\\s*")
_DASHES_RE = re.compile("[‒―−]")
# "E X P E R I E N C E" or "W O R K  E X P E R I E N C E"
_LETTER_SPACED_RE = re.compile(r"^(?:[A-Za-z] ){3,}[A-Za-z](?:\s{2,}(?:[A-Za-z] )*[A-Za-z])*$")


def _despace_if_needed(line: str) -> str:
    """Join letter-spaced headings; a double space marks a real word gap."""
    if not _LETTER_SPACED_RE.match(line):
        return line
    words = re.split(r"\s{2,}", line)
    return " ".join(w.replace(" ", "") for w in words)


def normalize_line(line: str) -> str:
    line = _ZERO_WIDTH_RE.sub("", line)
    line = _SPACE_VARIANTS_RE.sub(" ", line)
    line = line.strip()
    line = _despace_if_needed(line)
    line = _MULTI_SPACE_RE.sub(" ", line)
    line = _DASHES_RE.sub("-", line)
    if _BULLET_GLYPHS_RE.match(line) and not re.match("^\u2013\\s*\\d", line):
        line = _BULLET_GLYPHS_RE.sub("• ", line, count=1)
    return line


def normalize_text(text: str) -> str:
    """
    Canonicalise extracted text into newline-separated lines.

    - \\r\\n and \\r become \\n
    - tabs and exotic spaces become single spaces; zero-width characters vanish
    - each line is trimmed and inner space runs collapse to one
    - runs of blank lines collapse to a single blank line
    - leading/trailing blank lines are dropped
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n\n")

    out: List[str] = []
    for raw_line in text.split("\n"):
        line = normalize_line(raw_line)
        if not line and (not out or out[-1] == ""):
            continue
        out.append(line)

    while out and out[-1] == "":
        out.pop()
    return "\n".join(out)


def split_lines(text: str) -> List[str]:
    return text.split("\n") if text else []


# ============================================================================
# Field-level helpers
# ============================================================================

EMAIL_FLEX_RE = re.compile(r"([^\s@]+(?:\s+[^\s@]+)*)\s*(@)\s*([^\s@]+(?:\s+[^\s@]+)*)\s*\.\s*([A-Za-z]{2,})")
EMAIL_STRICT_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Word-break suffixes seen in PDF text ("communicati on", "manage ment")
_BROKEN_SUFFIXES = {"on", "ons", "ion", "ions", "ing", "ment", "ments", "tion", "tions", "ity", "ies", "ness"}


def _user_looks_like_phone(user: str) -> bool:
    digit_count = sum(1 for c in user if c.isdigit())
    return "(" in user or ")" in user or user.startswith("+") or (digit_count >= 7 and "-" in user)


def extract_email_flexible(text: str) -> Optional[str]:
    """
    Extract an email, tolerating accidental spaces around @ and the final dot.

    - "jane.doe@example.com" -> "jane.doe@example.com"
    - "jane.doe @ example . com" -> "jane.doe@example.com"
    - "(856)366-5713k.o.harbaugh@gmail.com" -> None (user part is a phone)
    """
    if not text:
        return None

    m = EMAIL_STRICT_RE.search(text)
    if m and not _user_looks_like_phone(m.group(0).split("@")[0]):
        return m.group(0).rstrip(".")

    for line in text.splitlines():
        m = EMAIL_FLEX_RE.search(line)
        if not m:
            continue
        # only the last whitespace-separated piece before "@" belongs to the address
        user = m.group(1).split()[-1]
        domain = m.group(3).replace(" ", "")
        tld = m.group(4)
        if _user_looks_like_phone(user) or not re.fullmatch(r"[A-Za-z0-9._%+-]+", user):
            continue
        if not re.fullmatch(r"[A-Za-z0-9.-]+", domain):
            continue
        return f"{user}@{domain}.{tld}"
    return None


def normalize_field_text(text: str) -> str:
    """
    Safe normalization for structured fields (job title, employer, school).

    Merges a word that a PDF split before a common suffix when the left piece ends
    in a vowel or "t" ("communicati on" -> "communication"), collapses spaces and
    strips separator debris. Does not split anything.
    """
    if not text or not text.strip():
        return (text or "").strip()

    tokens = text.split()
    out: List[str] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if i + 1 < len(tokens):
            nxt = tokens[i + 1]
            if (
                tok.isalpha()
                and nxt.isalpha()
                and nxt.islower()
                and nxt in _BROKEN_SUFFIXES
                and len(tok) >= 4
                and tok[-1].lower() in "aeiout"
            ):
                out.append(tok + nxt)
                i += 2
                continue
        out.append(tok)
        i += 1

    return " ".join(out).strip(" ,;:|-—–•")
