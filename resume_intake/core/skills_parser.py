"""
Skills and summary extraction.

Skills are the ordered, case-insensitively de-duplicated union of three
sources: known keyword matches, short bullet lines and comma lists.
"""

import re
from typing import Iterable, List, Optional

from resume_intake.core.extraction_rules import find_location
from resume_intake.core.schemas import ExtractionResult
from resume_intake.core.text_normalization import split_lines

MAX_BULLET_SKILL_LENGTH = 50
MAX_LIST_ITEM_LENGTH = 30
MIN_LIST_COMMAS = 2
MIN_LIST_ITEMS = 3
SKILL_CONFIDENCE_STEP = 0.05
MIN_FULL_SUMMARY_LENGTH = 50

TECHNICAL_SKILL_PATTERNS = [
    r"Python", r"Java(?!Script)", r"JavaScript", r"TypeScript", r"C\+\+", r"C#", r"Go(?:lang)?", r"Rust",
    r"Ruby", r"PHP", r"Swift", r"Kotlin", r"Scala", r"R(?=\s*[,/)]|\s+programming)", r"SQL", r"NoSQL",
    r"PostgreSQL", r"MySQL", r"MongoDB", r"Redis", r"Elasticsearch", r"HTML5?", r"CSS3?",
    r"React(?:\.js)?", r"Angular(?:JS)?", r"Vue(?:\.js)?", r"Node(?:\.js)?", r"Django", r"Flask", r"FastAPI",
    r"Spring(?: Boot)?", r"Express(?:\.js)?", r"\.NET", r"AWS", r"Azure", r"GCP", r"Google Cloud",
    r"Docker", r"Kubernetes", r"Terraform", r"Ansible", r"Jenkins", r"Git(?:Hub|Lab)?", r"CI/CD",
    r"Linux", r"Bash", r"REST(?:ful)?(?: APIs?)?", r"GraphQL", r"Kafka", r"Spark", r"Hadoop",
    r"TensorFlow", r"PyTorch", r"scikit-learn", r"Pandas", r"NumPy", r"Machine Learning",
    r"Deep Learning", r"Data Analysis", r"Tableau", r"Power BI", r"Excel", r"Salesforce", r"SAP",
    r"Jira", r"Agile", r"Scrum", r"Figma", r"Photoshop",
]
SOFT_SKILL_PATTERNS = [
    r"Leadership", r"Communication", r"Teamwork", r"Problem[- ]Solving", r"Time Management",
    r"Project Management", r"Critical Thinking", r"Collaboration", r"Mentoring", r"Negotiation",
    r"Public Speaking", r"Customer Service", r"Stakeholder Management", r"Adaptability",
]
CERTIFICATION_PATTERNS = [
    r"PMP", r"CPA", r"CISSP", r"CCNA", r"CompTIA (?:A\+|Network\+|Security\+)",
    r"AWS Certified [A-Z][A-Za-z\- ]+?(?=[,;\n]|$)", r"Certified Scrum Master", r"Six Sigma(?: [A-Z][a-z]+ Belt)?",
]

# Common English words as well as skill names; matched with their capitalisation only
_CASE_SENSITIVE = {r"R(?=\s*[,/)]|\s+programming)", r"Go(?:lang)?", r"Rust", r"Swift", r"Spring(?: Boot)?", r"Express(?:\.js)?", r"Excel", r"Agile", r"Spark"}

_KEYWORD_RES = [
    re.compile(rf"(?<![\w+#.]){p}(?![\w+#])", 0 if p in _CASE_SENSITIVE else re.IGNORECASE)
    for p in TECHNICAL_SKILL_PATTERNS + SOFT_SKILL_PATTERNS + CERTIFICATION_PATTERNS
]

_BULLET_RE = re.compile(r"^\s*(?:[•●▪◦*]|-(?=\s))\s*")
_LABEL_RE = re.compile(r"^[A-Za-z][A-Za-z &/]{1,40}:\s*")
_YEAR_RE = re.compile(r"\b\d{4}\b")


def dedupe(items: Iterable[str]) -> List[str]:
    """Case-insensitive de-duplication that keeps the first spelling and order."""
    seen = set()
    out: List[str] = []
    for item in items:
        item = item.strip()
        key = item.lower()
        if item and key not in seen:
            seen.add(key)
            out.append(item)
    return out


def keyword_skills(text: str) -> List[str]:
    found = []
    for regex in _KEYWORD_RES:
        for m in regex.finditer(text):
            found.append((m.start(), m.group(0)))
    return [value for _, value in sorted(found)]


def bullet_skills(text: str) -> List[str]:
    skills = []
    for line in split_lines(text):
        if not _BULLET_RE.match(line):
            continue
        item = _BULLET_RE.sub("", line).strip().rstrip(".;,")
        if 1 <= len(item) <= MAX_BULLET_SKILL_LENGTH and item.count(",") < MIN_LIST_COMMAS:
            skills.append(_LABEL_RE.sub("", item) or item)
    return skills


def _list_item_ok(item: str) -> bool:
    if not item or len(item) >= MAX_LIST_ITEM_LENGTH:
        return False
    if re.search(r"\.\s|\.$", item) and not re.fullmatch(r"[\w.+#\-/ ]*\.(?:js|net|io)", item, re.IGNORECASE):
        return False
    return not _YEAR_RE.search(item)


def comma_list_skills(text: str, skip_locations: bool = False) -> List[str]:
    """
    "Languages: Python, Go, SQL, Rust" -> ["Python", "Go", "SQL", "Rust"]

    A line counts as a list when it has at least two commas and yields more
    than two acceptable items. With skip_locations, "City, ST" lines are ignored.
    """
    skills: List[str] = []
    for line in split_lines(text):
        body = _BULLET_RE.sub("", line).strip()
        if body.count(",") < MIN_LIST_COMMAS:
            continue
        if skip_locations and find_location(body):
            continue
        body = _LABEL_RE.sub("", body)
        items = [i.strip(" •;") for i in re.split(r"[,;|]", body)]
        kept = [i for i in items if _list_item_ok(i)]
        if len(kept) >= MIN_LIST_ITEMS:
            skills.extend(kept)
    return skills


def extract_skills(section_text: Optional[str], full_text: Optional[str] = None) -> ExtractionResult[List[str]]:
    """
    Skills from the skills span. Without a span the full text is searched for
    known keywords and comma lists only; its bullets are accomplishments.
    """
    if section_text and section_text.strip():
        skills = dedupe(keyword_skills(section_text) + bullet_skills(section_text) + comma_list_skills(section_text))
    elif full_text and full_text.strip():
        skills = dedupe(keyword_skills(full_text) + comma_list_skills(full_text, skip_locations=True))
    else:
        return ExtractionResult[List[str]](data=[], confidence=0.0, source="skills", warnings=["No skills found"])

    warnings = [] if skills else ["No skills found"]
    return ExtractionResult[List[str]](
        data=skills,
        confidence=skills_confidence(skills),
        source="skills",
        warnings=warnings,
    )


def skills_confidence(skills: List[str]) -> float:
    return round(min(1.0, SKILL_CONFIDENCE_STEP * len(skills)), 4)


def summary_confidence(summary: str) -> float:
    if len(summary) > MIN_FULL_SUMMARY_LENGTH:
        return 0.9
    return 0.6 if summary else 0.0


def extract_summary(section_text: Optional[str]) -> ExtractionResult[str]:
    """Summary span folded into one paragraph."""
    lines = [_BULLET_RE.sub("", ln).strip() for ln in split_lines(section_text or "")]
    summary = " ".join(ln for ln in lines if ln)
    return ExtractionResult[str](data=summary, confidence=summary_confidence(summary), source="summary")
