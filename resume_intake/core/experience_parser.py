"""
Work experience extraction.

The experience span is cut into job entries, then each entry is read with
ordered rules:

  1. date range (month/year, numeric, bare years; "Present" marks current)
  2. headline: "Title at Company", "Title | Company", "Company: Title",
     "Title, Company" and the two-line title/employer layout
  3. location ("City, ST" anywhere in the header lines)

Whatever the matched spans leave behind becomes the accomplishments text.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from resume_intake.core.extraction_rules import (
    ExtractionRule,
    find_date_range,
    find_location,
    first_match,
    has_role_word,
    ends_with_role_word,
)
from resume_intake.core.schemas import ExtractionResult, WorkExperience
from resume_intake.core.text_normalization import normalize_field_text, split_lines

logger = logging.getLogger(__name__)

MIN_ENTRY_LENGTH = 20
MAX_HEADER_LINES = 4
MAX_TITLE_WORDS = 5
MIN_ACCOMPLISHMENTS_LENGTH = 10

CORE_WEIGHTS = {"title": 0.3, "employer": 0.3, "dates": 0.2}
BONUS_WEIGHTS = {"location": 0.1, "accomplishments": 0.05, "remote": 0.05}

BULLET_RE = re.compile(r"^\s*(?:[•●▪◦*>+]|-(?=\s)|\d{1,2}[.)](?=\s))\s*")
REMOTE_RE = re.compile(r"\b(?:remote|work\s+from\s+home|wfh|telecommute)\b", re.IGNORECASE)
COMPANY_SUFFIX_RE = re.compile(
    r"\b(?:inc|llc|l\.l\.c|ltd|corp|corporation|co|company|group|gmbh|plc|lp|llp|technologies|labs|partners|holdings|solutions|systems)\b\.?",
    re.IGNORECASE,
)
_SEPARATORS = r"\s*(?:\||—|–|·|•|\s-\s)\s*"


@dataclass
class Headline:
    title: str = ""
    employer: str = ""
    location: str = ""


@dataclass
class EntryScore:
    core: float
    bonus: float

    @property
    def total(self) -> float:
        return round(min(1.0, self.core + self.bonus), 4)


@dataclass
class JobEntry:
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines).strip()


# ============================================================================
# Headline rules
# ============================================================================

def _title_case_each_word(text: str) -> str:
    words = text.split()
    return " ".join(w[0].upper() + w[1:].lower() if w else "" for w in words)


def _clean(value: Optional[str]) -> str:
    if not value:
        return ""
    value = value.strip()
    if value.isupper() and len(value) > 4:
        value = _title_case_each_word(value)
    return normalize_field_text(value)


def _split_location(value: str) -> Tuple[str, str]:
    """'Acme Inc, Austin, TX' -> ('Acme Inc', 'Austin, TX')"""
    location = find_location(value)
    if location and value.endswith(location):
        return value[: -len(location)].rstrip(" ,|-"), location
    return value, ""


def _title_at_company(m: re.Match) -> Optional[Headline]:
    employer, location = _split_location(m.group("employer"))
    return Headline(title=_clean(m.group("title")), employer=_clean(employer), location=location)


def _separated(m: re.Match) -> Optional[Headline]:
    left, right = m.group("left").strip(), m.group("right").strip()
    location = (m.group("rest") or "").strip()
    if has_role_word(left) and not has_role_word(right):
        title, employer = left, right
    elif has_role_word(right) and not has_role_word(left):
        title, employer = right, left
    elif COMPANY_SUFFIX_RE.search(left):
        title, employer = right, left
    else:
        title, employer = left, right
    employer, trailing = _split_location(employer)
    if not location or not find_location(location):
        location = trailing or find_location(location) or ""
    return Headline(title=_clean(title), employer=_clean(employer), location=location)


def _company_colon_title(m: re.Match) -> Optional[Headline]:
    employer, title = m.group("employer").strip(), m.group("title").strip()
    location = (m.group("location") or "").strip()
    if has_role_word(employer) and not has_role_word(title):
        employer, title = title, employer
    return Headline(title=_clean(title), employer=_clean(employer), location=_clean(location))


def _title_comma_company(m: re.Match) -> Optional[Headline]:
    employer, location = _split_location(m.group("employer"))
    return Headline(title=_clean(m.group("title")), employer=_clean(employer), location=location)


def _headline_valid(value: Headline) -> bool:
    return bool(value.title and value.employer) and len(value.title) <= 80 and len(value.employer) <= 80


HEADLINE_RULES: List[ExtractionRule[Headline]] = [
    ExtractionRule(
        "title_at_company",
        re.compile(r"^(?P<title>[^|@\n]+?)\s+(?:at|@)\s+(?P<employer>[^|\n]+?)\s*$", re.IGNORECASE | re.M),
        transform=_title_at_company,
        validate=lambda h: _headline_valid(h) and has_role_word(h.title),
    ),
    ExtractionRule(
        "title_separator_company",
        re.compile(rf"^(?P<left>[^|—–·•\n]+?){_SEPARATORS}(?P<right>[^|—–·•\n]+?)(?:{_SEPARATORS}(?P<rest>[^\n]+))?\s*$", re.M),
        transform=_separated,
        validate=_headline_valid,
    ),
    ExtractionRule(
        "company_colon_title",
        re.compile(r"^(?P<employer>[^:\n]+?):\s*(?P<title>[^:\n]+?)(?::\s*(?P<location>[^:\n]*))?\s*$", re.M),
        transform=_company_colon_title,
        validate=lambda h: _headline_valid(h) and (has_role_word(h.title) or h.title.isupper()),
    ),
    ExtractionRule(
        "title_comma_company",
        re.compile(r"^(?P<title>[^,\n]+?),\s*(?P<employer>[^\n]+?)\s*$", re.M),
        transform=_title_comma_company,
        validate=lambda h: _headline_valid(h) and ends_with_role_word(h.title),
    ),
]


def _two_line_headline(header_lines: List[str]) -> Headline:
    """Fallback for a title line and an employer line stacked on top of each other."""
    headline = Headline()
    rest: List[str] = []
    for line in header_lines:
        if not headline.title and has_role_word(line) and not COMPANY_SUFFIX_RE.search(line):
            headline.title = _clean(line)
        else:
            rest.append(line)
    for line in rest:
        employer, location = _split_location(line)
        if employer and not headline.employer:
            headline.employer = _clean(employer)
            headline.location = headline.location or location
    if not headline.title and len(rest) > 1 and headline.employer:
        # "Acme Inc" then an unrecognised title line
        candidate = rest[1]
        if len(candidate) <= 60 and not find_date_range(candidate):
            headline.title = _clean(candidate)
    return headline


# ============================================================================
# Entry splitting
# ============================================================================

def _is_bullet(line: str) -> bool:
    return bool(BULLET_RE.match(line))


def looks_like_title_line(line: str) -> bool:
    """A title line ends in a role word or is a 'Title at/@/| Company' headline."""
    stripped = line.strip()
    if not stripped or _is_bullet(stripped) or len(stripped) > 100:
        return False
    without_dates = stripped
    dates = find_date_range(stripped)
    if dates is not None:
        without_dates = (stripped[: dates.span[0]] + stripped[dates.span[1]:]).strip(" ,|-–—")
    if ends_with_role_word(without_dates) and len(without_dates.split()) <= MAX_TITLE_WORDS:
        return True
    return first_match(HEADLINE_RULES[:2], without_dates) is not None


def _has_headline(entry: JobEntry) -> bool:
    header = [ln for ln in entry.lines if ln.strip() and not _is_bullet(ln)][:MAX_HEADER_LINES]
    return any(looks_like_title_line(ln) for ln in header) or (
        len(header) >= 2 and any(COMPANY_SUFFIX_RE.search(ln) for ln in header)
    )


def _entry_established(entry: JobEntry) -> bool:
    """An entry is complete enough to close once it has dates, bullets, or a headline with a line under it."""
    if not entry.lines:
        return False
    if find_date_range(entry.text) is not None or any(_is_bullet(ln) for ln in entry.lines):
        return True
    return len(entry.lines) >= 2 and _has_headline(entry)


def split_entries(section_text: str, merge_fragments: bool = True) -> List[JobEntry]:
    """
    Cut the experience span into entries on blank lines or before a
    title-looking line, then merge fragments that carry no headline of their
    own into the entry before them.
    """
    raw: List[JobEntry] = []
    current = JobEntry()
    for line in split_lines(section_text):
        stripped = line.strip()
        if not stripped:
            if current.lines:
                raw.append(current)
                current = JobEntry()
            continue
        if looks_like_title_line(stripped) and _entry_established(current):
            raw.append(current)
            current = JobEntry()
        current.lines.append(stripped)
    if current.lines:
        raw.append(current)

    if not merge_fragments:
        return [e for e in raw if len(e.text) > MIN_ENTRY_LENGTH]

    merged: List[JobEntry] = []
    for entry in raw:
        if merged and not _has_headline(entry):
            merged[-1].lines.extend(entry.lines)
        else:
            merged.append(entry)
    return [e for e in merged if len(e.text) > MIN_ENTRY_LENGTH]


# ============================================================================
# Entry parsing
# ============================================================================

def score_entry(job: WorkExperience) -> EntryScore:
    core = 0.0
    if job.job_title:
        core += CORE_WEIGHTS["title"]
    if job.employer:
        core += CORE_WEIGHTS["employer"]
    if job.start_date:
        core += CORE_WEIGHTS["dates"]
    bonus = 0.0
    if job.location:
        bonus += BONUS_WEIGHTS["location"]
    if len(job.accomplishments) > MIN_ACCOMPLISHMENTS_LENGTH:
        bonus += BONUS_WEIGHTS["accomplishments"]
    if job.remote:
        bonus += BONUS_WEIGHTS["remote"]
    return EntryScore(core=round(core, 4), bonus=round(bonus, 4))


def parse_entry(entry: JobEntry, index: int) -> Tuple[WorkExperience, EntryScore]:
    job = WorkExperience(id=f"exp-{index}")

    header_lines: List[str] = []
    body_lines: List[str] = []
    for line in entry.lines:
        if not body_lines and not _is_bullet(line) and len(header_lines) < MAX_HEADER_LINES:
            header_lines.append(line)
        else:
            body_lines.append(line)

    # Dates may sit on any header line; strip them before reading the headline
    cleaned_header: List[str] = []
    for line in header_lines:
        if job.start_date is None and not job.current:
            dates = find_date_range(line)
            if dates is not None:
                job.start_date = dates.value.start
                job.end_date = dates.value.end
                job.current = dates.value.current
                line = (line[: dates.span[0]] + line[dates.span[1]:]).strip(" ,|-–—()")
        if line:
            cleaned_header.append(line)

    headline_text = "\n".join(cleaned_header)
    hit = first_match(HEADLINE_RULES, headline_text)
    headline = hit.value if hit is not None else _two_line_headline(cleaned_header)
    job.job_title = headline.title
    job.employer = headline.employer

    location = headline.location or ""
    if not location:
        for line in cleaned_header:
            location = find_location(line) or ""
            if location:
                break
    job.location = location

    job.remote = bool(REMOTE_RE.search(entry.text))
    if job.remote and not job.location:
        job.location = "Remote"

    # Header lines the headline did not consume stay with the accomplishments
    consumed = {headline.title.lower(), headline.employer.lower()}
    leftovers: List[str] = []
    for line in cleaned_header:
        if hit is not None and hit.span[0] <= headline_text.find(line) < hit.span[1]:
            continue
        low = _clean(line).lower()
        if low in consumed or (job.location and line.strip() == job.location):
            continue
        if any(part and part in low for part in consumed) and len(low) <= 100:
            continue
        leftovers.append(line)
    body = [BULLET_RE.sub("", ln).strip() for ln in leftovers + body_lines]
    job.accomplishments = "\n".join(ln for ln in body if ln)

    score = score_entry(job)
    job.confidence = score.total
    return job, score


def section_confidence(scores: List[EntryScore]) -> float:
    """
    Mean of the entries' core scores plus the best bonus among them; equals the
    entry confidence for a single entry and never drops when a complete entry is added.
    """
    if not scores:
        return 0.0
    core = sum(s.core for s in scores) / len(scores)
    bonus = max(s.bonus for s in scores)
    return round(min(1.0, core + bonus), 4)


def _job_block(entry: JobEntry) -> bool:
    return _has_headline(entry) and find_date_range(entry.text) is not None


def extract_experience(section_text: Optional[str], full_text: Optional[str] = None) -> ExtractionResult[List[WorkExperience]]:
    """
    Read job entries from the experience span. Without a span the full text is
    searched instead, keeping only blocks that carry both a headline and a date range.
    """
    if section_text and section_text.strip():
        entries = split_entries(section_text)
    elif full_text and full_text.strip():
        entries = [e for e in split_entries(full_text, merge_fragments=False) if _job_block(e)]
        logger.debug("no experience section; %d job blocks found in full text", len(entries))
    else:
        return ExtractionResult[List[WorkExperience]](
            data=[], confidence=0.0, source="experience", warnings=["No work experience found"]
        )

    jobs: List[WorkExperience] = []
    scores: List[EntryScore] = []
    warnings: List[str] = []
    for n, entry in enumerate(entries, start=1):
        job, score = parse_entry(entry, len(jobs) + 1)
        if not job.job_title and not job.employer:
            warnings.append(f"Could not extract meaningful data from job entry {n}")
            continue
        jobs.append(job)
        scores.append(score)

    if not jobs:
        warnings.append("No work experience found")
    logger.debug("extracted %d job entries", len(jobs))
    return ExtractionResult[List[WorkExperience]](
        data=jobs,
        confidence=section_confidence(scores),
        source="experience",
        warnings=warnings,
    )
