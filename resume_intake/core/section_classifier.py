"""
Section classification.

Each section type owns an ordered list of header patterns, most specific first.
Lines are scanned top to bottom; the first line matching any of a type's
patterns opens that section, and every section runs until the next opened
section (by position) or the end of the document.

Résumés rarely label the contact block, so when no contact header exists the
preamble above the first header becomes an implicit contact span.
"""

import logging
import re
from dataclasses import dataclass
from re import Pattern
from typing import Dict, List, Optional, Tuple

from resume_intake.core.schemas import (
    EXPECTED_SECTIONS,
    SectionClassification,
    SectionSpan,
    SectionType,
)
from resume_intake.core.text_normalization import split_lines

logger = logging.getLogger(__name__)

MAX_HEADER_LENGTH = 60
MAX_HEADER_WORDS = 6
IMPLICIT_CONTACT_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.7
MIN_SECTION_CONTENT = 10

_PREFIX = r"^(?:\d{1,2}[.)]\s*|[IVX]{1,4}\.\s*|[#*•]+\s*)?"
_SUFFIX = r"\s*[:\-_—–=*]*\s*$"
_INLINE_SUFFIX = r"\s*[:\-—–]\s*(?P<rest>\S.*)$"


@dataclass(frozen=True)
class HeaderPattern:
    regex: Pattern[str]
    confidence: float
    inline: Optional[Pattern[str]] = None


def _header(body: str, confidence: float, allow_inline: bool = False) -> HeaderPattern:
    inline = re.compile(_PREFIX + rf"(?:{body})" + _INLINE_SUFFIX, re.IGNORECASE) if allow_inline else None
    return HeaderPattern(re.compile(_PREFIX + rf"(?:{body})" + _SUFFIX, re.IGNORECASE), confidence, inline)


# Dict order is the claim order when one line could open two sections.
SECTION_PATTERNS: Dict[SectionType, List[HeaderPattern]] = {
    SectionType.EXPERIENCE: [
        _header(r"(?:professional|work|relevant|career|industry)\s+experience", 0.95),
        _header(r"(?:employment|work|career|professional)\s+history", 0.95),
        _header(r"experience", 0.9),
        _header(r"employment|professional\s+background|positions\s+held", 0.8),
        _header(r"(?:work\s+)?(?:experiance|expereince|experince|expirience)", 0.7),
    ],
    SectionType.EDUCATION: [
        _header(r"(?:education(?:al)?|academic)\s+(?:background|history|qualifications)", 0.95),
        _header(r"education(?:\s*(?:&|and)\s*(?:training|certifications?))?", 0.9),
        _header(r"academics?|academic\s+credentials|qualifications", 0.75),
        _header(r"educaton|eduction|educatoin|edcuation", 0.7),
    ],
    SectionType.SKILLS: [
        _header(
            r"(?:technical|core|key|professional|relevant|computer)\s+skills(?:\s*(?:&|and)\s*\w+)?"
            r"|skills\s*(?:&|and)\s*(?:expertise|abilities|competencies|tools|technologies)",
            0.95,
            allow_inline=True,
        ),
        _header(r"skills|skill\s*set", 0.9, allow_inline=True),
        _header(
            r"core\s+competencies|competencies|areas\s+of\s+expertise|expertise|technologies"
            r"|technical\s+proficienc(?:y|ies)|tools\s*(?:&|and)\s*technologies",
            0.85,
        ),
    ],
    SectionType.SUMMARY: [
        _header(r"(?:professional|executive|career)\s+(?:summary|profile)|summary\s+of\s+qualifications", 0.9, allow_inline=True),
        _header(r"summary|profile|(?:career\s+)?objective|about\s+me|overview", 0.85, allow_inline=True),
    ],
    SectionType.CONTACT: [
        _header(r"(?:contact|personal)\s+(?:information|info|details)", 0.9),
        _header(r"contact(?:\s+me)?", 0.85),
    ],
    SectionType.PROJECTS: [_header(r"(?:personal|key|selected|academic|side)\s+projects|projects", 0.85)],
    SectionType.CERTIFICATIONS: [
        _header(r"certifications?(?:\s*(?:&|and)\s*licen[cs]es)?|licen[cs]es(?:\s*(?:&|and)\s*certifications?)?", 0.85)
    ],
    SectionType.LANGUAGES: [_header(r"languages", 0.8, allow_inline=True)],
    SectionType.VOLUNTEER: [
        _header(r"volunteer(?:ing|\s+experience|\s+work)?|community\s+(?:service|involvement)", 0.85)
    ],
    SectionType.PUBLICATIONS: [_header(r"publications", 0.85)],
    SectionType.AWARDS: [
        _header(r"awards?(?:\s*(?:&|and)\s*(?:honors|honours|recognition))?|honou?rs(?:\s*(?:&|and)\s*awards)?|achievements", 0.85)
    ],
    SectionType.REFERENCES: [_header(r"references(?:\s+available\s+upon\s+request)?", 0.85)],
}


def _looks_like_header_candidate(line: str) -> bool:
    return 0 < len(line) <= MAX_HEADER_LENGTH and len(line.split()) <= MAX_HEADER_WORDS


def match_header(line: str, section: SectionType, inline: bool = False) -> Optional[Tuple[float, str]]:
    """
    Test one line against a section's ordered patterns.

    With inline=False only whole-line headers match; with inline=True only
    "Skills: Python, SQL" style headers that carry content on the same line.
    Returns (confidence, inline_rest) for the first pattern that matches.
    """
    stripped = line.strip()
    if not stripped:
        return None
    for pattern in SECTION_PATTERNS[section]:
        if not inline:
            if _looks_like_header_candidate(stripped) and pattern.regex.match(stripped):
                return pattern.confidence, ""
        elif pattern.inline is not None:
            m = pattern.inline.match(stripped)
            if m:
                return round(pattern.confidence - 0.05, 2), m.group("rest").strip()
    return None


class SectionClassifier:
    """Stateless; classify() is a pure function of the text."""

    def classify(self, text: str) -> SectionClassification:
        lines = split_lines(text)
        claimed: Dict[int, SectionType] = {}
        found: Dict[SectionType, Tuple[int, float, str]] = {}

        # Whole-line headers first; inline headers only for sections still missing
        for inline in (False, True):
            for section in SECTION_PATTERNS:
                if section in found:
                    continue
                for idx, line in enumerate(lines):
                    if idx in claimed:
                        continue
                    hit = match_header(line, section, inline=inline)
                    if hit is None:
                        continue
                    confidence, rest = hit
                    found[section] = (idx, confidence, rest)
                    claimed[idx] = section
                    break

        starts = sorted((idx, section) for section, (idx, _, _) in found.items())
        sections: Dict[SectionType, SectionSpan] = {}
        for pos, (start, section) in enumerate(starts):
            end = starts[pos + 1][0] if pos + 1 < len(starts) else len(lines)
            _, confidence, rest = found[section]
            body = lines[start + 1:end]
            if rest:
                body = [rest] + body
            sections[section] = SectionSpan(
                start_line=start,
                end_line=end,
                header=lines[start].strip(),
                content="\n".join(body).strip(),
                confidence=confidence,
            )

        if SectionType.CONTACT not in sections:
            first_header = starts[0][0] if starts else len(lines)
            preamble = "\n".join(lines[:first_header]).strip()
            if preamble:
                sections[SectionType.CONTACT] = SectionSpan(
                    start_line=0,
                    end_line=first_header,
                    header="",
                    content=preamble,
                    confidence=IMPLICIT_CONTACT_CONFIDENCE,
                    implicit=True,
                )

        ordered = dict(sorted(sections.items(), key=lambda kv: kv[1].start_line))
        warnings = self._warnings(ordered)
        confidence = sum(ordered[s].confidence for s in EXPECTED_SECTIONS if s in ordered) / len(EXPECTED_SECTIONS)

        logger.debug(
            "classified %d sections (%s), confidence %.2f",
            len(ordered),
            ", ".join(s.value for s in ordered),
            confidence,
        )
        return SectionClassification(
            sections=ordered,
            warnings=warnings,
            classification_confidence=round(min(1.0, confidence), 4),
        )

    @staticmethod
    def _warnings(sections: Dict[SectionType, SectionSpan]) -> List[str]:
        warnings: List[str] = []
        for section in EXPECTED_SECTIONS:
            span = sections.get(section)
            if span is None:
                warnings.append(f"No {section.value} section found")
            elif len(span.content) < MIN_SECTION_CONTENT:
                warnings.append(f"Section '{section.value}' has insufficient content")
        for section, span in sections.items():
            if span.confidence < LOW_CONFIDENCE:
                warnings.append(f"Low confidence in {section.value} section classification ({span.confidence:.2f})")
        return warnings
