"""
Education parsing module for detecting and extracting education entries from resumes.

Deterministic and rule-based: the education span is cut into entries (blank
lines, or a new degree line once the current entry already has a degree), and
each entry is read with ordered degree and institution patterns plus year,
month, GPA and location lookups.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from resume_intake.core.extraction_rules import MONTH_NAMES, MONTHS, ExtractionRule, find_location, first_match
from resume_intake.core.schemas import Education, ExtractionResult
from resume_intake.core.text_normalization import normalize_field_text, split_lines

logger = logging.getLogger(__name__)

FIELD_WEIGHTS = {"degree": 0.4, "institution": 0.4, "year": 0.2}

# ===== DEGREE KEYWORDS (Strong Signal) =====
# A line containing any of these opens or belongs to an education entry

DEGREE_KEYWORDS = {
    "bachelor",
    "master",
    "associate of",
    "associate's",
    "associate degree",
    "b.s.",
    "b.a.",
    "m.s.",
    "m.a.",
    "mba",
    "m.b.a.",
    "ph.d",
    "phd",
    "doctorate",
    "doctor of",
    "diploma",
    "ged",
}

# ===== INSTITUTION KEYWORDS =====

INSTITUTION_KEYWORDS = {
    "university",
    "college",
    "institute",
    "school",
    "academy",
    "polytechnic",
    "conservatory",
}

# Field-of-study text stops at any of these
_FIELD_STOP = r"(?=\s*(?:[,|(;]|\s[-–—]\s|\s(?:from|at)\s|\b(?:19|20)\d{2}\b|\bGPA\b|$))"
_FIELD = r"(?P<field>[A-Za-z&/'\- ]+?)"

GPA_RE = re.compile(r"\bGPA\s*[:\-]?\s*(\d\.\d{1,2})(?:\s*/\s*(\d(?:\.\d{1,2})?))?", re.IGNORECASE)
YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")
MONTH_YEAR_RE = re.compile(
    r"\b(Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?|Sep(?:t(?:ember)?)?"
    r"|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?,?\s+((?:19|20)\d{2})\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Degree:
    degree: str
    field: str = ""


@dataclass
class EducationEntry:
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def has_degree_keyword(text: str) -> bool:
    """
    Check if text contains degree keywords.
    This is a STRONG signal that a line opens an education entry.
    """
    text_lower = text.lower()
    return any(keyword in text_lower for keyword in DEGREE_KEYWORDS)


def is_institution_keyword(text: str) -> bool:
    text_lower = text.lower()
    return any(re.search(rf"\b{keyword}\b", text_lower) for keyword in INSTITUTION_KEYWORDS)


# ============================================================================
# Degree rules (longer names first)
# ============================================================================

def _clean_field(value: Optional[str]) -> str:
    if not value:
        return ""
    value = re.split(r"\s+(?:from|at)\s+", value, maxsplit=1)[0]
    value = normalize_field_text(value.strip())
    if is_institution_keyword(value) or len(value) < 2:
        return ""
    return value


def _degree(m: re.Match) -> Optional[Degree]:
    degree = re.sub(r"\s+", " ", m.group("degree")).strip()
    field_value = _clean_field(m.groupdict().get("field"))
    return Degree(degree=degree, field=field_value)


DEGREE_RULES: List[ExtractionRule[Degree]] = [
    ExtractionRule(
        "long_form_degree",
        re.compile(
            r"(?P<degree>\b(?:Bachelor|Master|Doctor|Associate)(?:'?s)?(?![A-Za-z])"
            r"(?:\s+of\s+(?:Science|Arts|Fine\s+Arts|Business\s+Administration|Engineering|Education|Laws"
            r"|Philosophy|Applied\s+Science|Technology|Public\s+Health|Social\s+Work|Music|Nursing))?"
            r"(?:\s+degree)?)"
            rf"(?:\s*(?:\bin\b|,|:|\s-\s|–|—)\s*{_FIELD}{_FIELD_STOP})?",
            re.IGNORECASE | re.M,
        ),
        transform=_degree,
    ),
    ExtractionRule(
        "abbreviated_degree",
        re.compile(
            r"(?<![A-Za-z])(?<!,\s)(?P<degree>B\.?\s?S\.?c?|B\.?\s?A\.?|M\.?\s?S\.?c?|M\.?\s?A\.?|M\.?B\.?A\.?|Ph\.?\s?D\.?"
            r"|B\.?\s?Eng\.?|M\.?\s?Eng\.?|B\.?\s?Tech\.?|M\.?\s?Tech\.?|A\.?\s?A\.?\s?S?\.?|J\.?\s?D\.?|Ed\.?\s?D\.?)"
            r"(?![A-Za-z])"
            rf"(?:\s*(?:\bin\b|,|:|\s-\s|–|—)?\s*(?:\bin\b\s*)?{_FIELD}{_FIELD_STOP})?",
            re.M,
        ),
        transform=_degree,
    ),
    ExtractionRule(
        "generic_degree",
        re.compile(
            r"(?P<degree>\b(?:High\s+School\s+Diploma|GED|Diploma|Certificate|Doctorate|PhD|Associate\s+Degree))"
            rf"(?:\s+in\s+{_FIELD}{_FIELD_STOP})?",
            re.IGNORECASE | re.M,
        ),
        transform=_degree,
    ),
]


# ============================================================================
# Institution rules
# ============================================================================

_SCHOOL_STOP = r"(?=\s*(?:[,|(;]|\s[-–—]\s|\b(?:19|20)\d{2}\b|$))"
_CAP_WORD = r"[A-Z][A-Za-z&.'\-]*"


def _clean_school(m: re.Match) -> Optional[str]:
    school = normalize_field_text(re.sub(r"\s+", " ", m.group("school")))
    if school.isupper() and len(school) > 4:
        school = school.title()
    return school or None


def _school_valid(value: str) -> bool:
    return not has_degree_keyword(value) and 3 <= len(value) <= 100


INSTITUTION_RULES: List[ExtractionRule[str]] = [
    ExtractionRule(
        "university_of",
        re.compile(rf"(?P<school>(?:The\s+)?University\s+of\s+{_CAP_WORD}(?:\s+(?:{_CAP_WORD}|at|of|and|&))*?){_SCHOOL_STOP}", re.M),
        transform=_clean_school,
        validate=_school_valid,
    ),
    ExtractionRule(
        "named_institution",
        re.compile(
            rf"(?P<school>(?:{_CAP_WORD}\s+){{0,5}}(?:University|College|Institute|School|Academy|Polytechnic|Conservatory)"
            rf"(?:\s+(?:of|for)\s+{_CAP_WORD}(?:\s+{_CAP_WORD}){{0,3}})?)(?![A-Za-z])"
        ),
        transform=_clean_school,
        validate=_school_valid,
    ),
    ExtractionRule(
        "at_or_from",
        re.compile(rf"\b(?:at|from)\s+(?P<school>{_CAP_WORD}(?:\s+{_CAP_WORD}){{0,5}}){_SCHOOL_STOP}", re.M),
        transform=_clean_school,
        validate=_school_valid,
    ),
]


# ============================================================================
# Entry splitting and parsing
# ============================================================================

def split_entries(section_text: str, merge_fragments: bool = True) -> List[EducationEntry]:
    """
    Split on blank lines, or on a degree line once the current entry already
    holds one; fragments without a degree or school join the entry before them.
    """
    raw: List[EducationEntry] = []
    current = EducationEntry()
    for line in split_lines(section_text):
        stripped = line.strip()
        if not stripped:
            if current.lines:
                raw.append(current)
                current = EducationEntry()
            continue
        if current.lines and first_match(DEGREE_RULES, stripped) and first_match(DEGREE_RULES, current.text):
            raw.append(current)
            current = EducationEntry()
        current.lines.append(stripped)
    if current.lines:
        raw.append(current)
    if not merge_fragments:
        return raw

    merged: List[EducationEntry] = []
    for entry in raw:
        has_anchor = first_match(DEGREE_RULES, entry.text) or first_match(INSTITUTION_RULES, entry.text)
        if merged and not has_anchor:
            merged[-1].lines.extend(entry.lines)
        else:
            merged.append(entry)
    return merged


def _graduation(text: str) -> Tuple[str, str]:
    """(year, month name) of the last date mentioned in the entry."""
    years = YEAR_RE.findall(text)
    if not years:
        return "", ""
    year = years[-1]
    month = ""
    for m in MONTH_YEAR_RE.finditer(text):
        if m.group(2) == year:
            month = MONTH_NAMES[MONTHS[m.group(1).lower().rstrip(".")]]
    return year, month


def score_education(education: Education) -> float:
    confidence = 0.0
    if education.degree:
        confidence += FIELD_WEIGHTS["degree"]
    if education.school:
        confidence += FIELD_WEIGHTS["institution"]
    if education.grad_year:
        confidence += FIELD_WEIGHTS["year"]
    return round(min(1.0, confidence), 4)


def parse_education_entry(entry: EducationEntry) -> Education:
    """
    Parse a single education entry into an Education record.

    Expected structure (flexible):
      Line 1: Institution and/or degree
      Line 2: Location or dates (if not on line 1)
      Line N: Details (GPA, honors, coursework)
    """
    text = entry.text
    education = Education()

    degree = first_match(DEGREE_RULES, text)
    if degree is not None:
        education.degree = degree.value.degree
        education.field = degree.value.field

    school = first_match(INSTITUTION_RULES, text)
    if school is not None:
        education.school = school.value

    education.grad_year, education.grad_month = _graduation(text)

    gpa = GPA_RE.search(text)
    if gpa:
        education.gpa = gpa.group(1) if not gpa.group(2) else f"{gpa.group(1)}/{gpa.group(2)}"

    for line in entry.lines:
        location = find_location(line)
        if location and location != education.school:
            education.location = location
            break

    education.confidence = score_education(education)
    return education


def _degree_block(entry: EducationEntry) -> bool:
    return bool(first_match(DEGREE_RULES, entry.text)) and is_institution_keyword(entry.text)


def extract_education(section_text: Optional[str], full_text: Optional[str] = None) -> ExtractionResult[List[Education]]:
    """
    Read education entries from the education span. Without a span the full
    text is searched instead, keeping only blocks that name a degree and an institution.
    """
    if section_text and section_text.strip():
        blocks = split_entries(section_text)
    elif full_text and full_text.strip():
        blocks = [e for e in split_entries(full_text, merge_fragments=False) if _degree_block(e)]
        logger.debug("no education section; %d degree blocks found in full text", len(blocks))
    else:
        return ExtractionResult[List[Education]](
            data=[], confidence=0.0, source="education", warnings=["No education found"]
        )

    entries: List[Education] = []
    warnings: List[str] = []
    for n, entry in enumerate(blocks, start=1):
        education = parse_education_entry(entry)
        if not education.degree and not education.school:
            warnings.append(f"Could not extract meaningful data from education entry {n}")
            continue
        entries.append(education)

    if not entries:
        warnings.append("No education found")
    confidence = sum(e.confidence for e in entries) / len(entries) if entries else 0.0
    logger.debug("extracted %d education entries", len(entries))
    return ExtractionResult[List[Education]](
        data=entries,
        confidence=round(confidence, 4),
        source="education",
        warnings=warnings,
    )
