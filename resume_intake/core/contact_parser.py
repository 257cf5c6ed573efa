"""
Contact block extraction: email, phone, name, location and profile links.

Each field has an ordered rule list (labelled forms first, then bare patterns).
Confidence accumulates per recovered field and is capped at 1.0.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from resume_intake.core.extraction_rules import (
    ROLE_WORDS,
    STATE_NAMES,
    US_STATES,
    ExtractionRule,
    first_match,
    normalize_phone,
)
from resume_intake.core.schemas import ContactInfo, ExtractionResult
from resume_intake.core.text_normalization import extract_email_flexible

NAME_WINDOW = 500

FIELD_WEIGHTS = {
    "email": 0.3,
    "phone": 0.2,
    "name": 0.3,
    "location": 0.1,
    "linkedin": 0.05,
    "website": 0.05,
}

# Common resume section headers and labels (never a name)
HEADER_BLACKLIST = {
    "resume", "curriculum vitae", "cv", "objective", "summary", "professional summary",
    "profile", "experience", "work experience", "employment history", "professional experience",
    "education", "skills", "technical skills", "core competencies", "projects", "certifications",
    "contact", "contact information", "personal information", "references", "awards",
}


@dataclass(frozen=True)
class Location:
    city: str
    state: str
    zip: str = ""


# ============================================================================
# Rules
# ============================================================================

def _email_from_label(m: re.Match) -> Optional[str]:
    return extract_email_flexible(m.group(1))


EMAIL_RULES: List[ExtractionRule[str]] = [
    ExtractionRule("labelled_email", re.compile(r"\b(?:e-?mail|email address)\s*[:\-]\s*(.+)$", re.I | re.M), _email_from_label),
    ExtractionRule(
        "email",
        re.compile(r"(?<![\w.+-])([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})\b"),
        validate=lambda v: not re.match(r"^[\d()+-]{7,}", v),
    ),
]


def _phone_digits_ok(value: str) -> bool:
    return 7 <= len(re.sub(r"\D", "", value)) <= 15


PHONE_RULES: List[ExtractionRule[str]] = [
    ExtractionRule(
        "labelled_phone",
        re.compile(r"\b(?:phone|tel|telephone|mobile|cell)\.?\s*[:\-]?\s*(\+?[\d(][\d\s().\-]{6,20}\d)", re.I),
        validate=_phone_digits_ok,
    ),
    ExtractionRule(
        "us_phone",
        re.compile(r"(?<![\d+])((?:\+?1[\s.\-]?)?\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]\d{4}|\d{10})(?!\d)"),
        validate=_phone_digits_ok,
    ),
    ExtractionRule(
        "international_phone",
        re.compile(r"(?<!\d)(\+\d{1,3}(?:[\s.\-]?\(?\d{1,4}\)?){2,5})(?!\d)"),
        validate=_phone_digits_ok,
    ),
]


def _clean_name(value: str) -> Optional[str]:
    name = re.sub(r"\s+", " ", value).strip(" ,|")
    if name.isupper():
        name = name.title()
    return name


def _name_valid(value: str) -> bool:
    key = value.lower().strip()
    if key in HEADER_BLACKLIST or any(c.isdigit() for c in value) or "@" in value:
        return False
    words = key.split()
    if not 2 <= len(words) <= 4:
        return False
    return not any(w.strip(".,") in ROLE_WORDS for w in words)


_NAME_WORD = r"[A-Z][A-Za-z'\-]+"
NAME_RULES: List[ExtractionRule[str]] = [
    ExtractionRule(
        "labelled_name",
        re.compile(r"^\s*(?:full\s+)?name\s*[:\-]\s*(.+?)\s*$", re.I | re.M),
        transform=lambda m: _clean_name(m.group(1)),
        validate=_name_valid,
    ),
    ExtractionRule(
        "name_line",
        re.compile(rf"^[ \t]*({_NAME_WORD}(?:[ \t]+[A-Z]\.?)?(?:[ \t]+{_NAME_WORD}){{1,3}})[ \t]*$", re.M),
        transform=lambda m: _clean_name(m.group(1)),
        validate=_name_valid,
    ),
    ExtractionRule(
        "name_before_separator",
        re.compile(rf"^[ \t]*({_NAME_WORD}(?:[ \t]+{_NAME_WORD}){{1,2}})[ \t]*[|,•·—–]", re.M),
        transform=lambda m: _clean_name(m.group(1)),
        validate=_name_valid,
        confidence=0.8,
    ),
]


def _city_state_zip(m: re.Match) -> Optional[Location]:
    city, state = m.group(1).strip(), m.group(2).strip()
    zip_code = m.group(3) if m.lastindex and m.lastindex >= 3 and m.group(3) else ""
    if state.upper() in US_STATES:
        return Location(city=city, state=state.upper(), zip=zip_code)
    if state.lower() in STATE_NAMES:
        return Location(city=city, state=state.title(), zip=zip_code)
    return None


def _labelled_location(m: re.Match) -> Optional[Location]:
    value = m.group(1).strip()
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if not parts:
        return None
    city = parts[0]
    state, zip_code = "", ""
    if len(parts) > 1:
        tail = parts[1].split()
        state = tail[0] if tail else ""
        if len(tail) > 1 and re.fullmatch(r"\d{5}(?:-\d{4})?", tail[-1]):
            zip_code = tail[-1]
    return Location(city=city, state=state, zip=zip_code)


_CITY = r"([A-Z][A-Za-z.'\-]+(?: [A-Z][A-Za-z.'\-]+){0,2})"
LOCATION_RULES: List[ExtractionRule[Location]] = [
    ExtractionRule(
        "labelled_location",
        re.compile(r"\b(?:location|address|based in)\s*[:\-]\s*(.+?)\s*$", re.I | re.M),
        transform=_labelled_location,
    ),
    ExtractionRule(
        "city_state_zip",
        re.compile(rf"{_CITY},\s*([A-Z]{{2}})\s+(\d{{5}}(?:-\d{{4}})?)\b"),
        transform=_city_state_zip,
    ),
    ExtractionRule(
        "city_state_code",
        re.compile(rf"{_CITY},\s*([A-Z]{{2}})\b(?![a-z])"),
        transform=_city_state_zip,
    ),
    ExtractionRule(
        "city_state_name",
        re.compile(rf"{_CITY},\s*([A-Z][a-z]+(?: [A-Z][a-z]+)?)\b"),
        transform=_city_state_zip,
    ),
]

LINKEDIN_RULES: List[ExtractionRule[str]] = [
    ExtractionRule(
        "linkedin_url",
        re.compile(r"((?:https?://)?(?:[a-z]{2,3}\.)?linkedin\.com/(?:in|pub|profile)/[A-Za-z0-9_\-%]+/?)", re.I),
    ),
    ExtractionRule("linkedin_label", re.compile(r"\blinkedin\s*[:\-]\s*([A-Za-z0-9_\-/.]+)", re.I)),
]


def _website_valid(value: str) -> bool:
    lowered = value.lower()
    return "linkedin.com" not in lowered and "@" not in lowered and "." in lowered


WEBSITE_RULES: List[ExtractionRule[str]] = [
    ExtractionRule(
        "labelled_website",
        re.compile(r"\b(?:website|portfolio|web|site|blog)\s*[:\-]\s*((?:https?://)?[\w.\-]+\.[a-z]{2,}[^\s|,;]*)", re.I),
        validate=_website_valid,
    ),
    ExtractionRule("http_url", re.compile(r"(https?://[^\s|,;)>\]]+)", re.I), validate=_website_valid),
    ExtractionRule("www_url", re.compile(r"(?<![@\w.])(www\.[\w\-]+\.[a-z]{2,}[^\s|,;)]*)", re.I), validate=_website_valid),
    ExtractionRule("github", re.compile(r"(?<![\w.])(github\.com/[A-Za-z0-9_\-]+)", re.I), validate=_website_valid),
]


# ============================================================================
# Extraction
# ============================================================================

def split_name(full_name: str) -> tuple:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def extract_contact(full_text: str, section_text: Optional[str] = None) -> ExtractionResult[ContactInfo]:
    """
    Extract contact details, searching the contact span first and falling back
    to the whole document (names only in its first NAME_WINDOW characters).
    """
    scopes = [s for s in (section_text, full_text) if s]
    contact = ContactInfo()
    warnings: List[str] = []
    confidence = 0.0

    def search(rules):
        for scope in scopes:
            hit = first_match(rules, scope)
            if hit is not None:
                return hit
        return None

    email = search(EMAIL_RULES)
    if email is None:
        flexible = extract_email_flexible(section_text or "") or extract_email_flexible(full_text)
        email_value = flexible or ""
    else:
        email_value = email.value
    if email_value:
        contact.email = email_value.lower()
        confidence += FIELD_WEIGHTS["email"]
    else:
        warnings.append("No email address found")

    phone = search(PHONE_RULES)
    if phone is not None:
        contact.phone = normalize_phone(phone.value.strip())
        confidence += FIELD_WEIGHTS["phone"]
    else:
        warnings.append("No phone number found")

    name_scopes = [s for s in (section_text, full_text[:NAME_WINDOW]) if s]
    name = None
    for scope in name_scopes:
        name = first_match(NAME_RULES, scope[:NAME_WINDOW])
        if name is not None:
            break
    if name is not None:
        contact.first_name, contact.last_name = split_name(name.value)
        confidence += FIELD_WEIGHTS["name"] * name.confidence
    else:
        warnings.append("No name found")

    location_scopes = [s for s in (section_text, full_text[:NAME_WINDOW]) if s]
    for scope in location_scopes:
        location = first_match(LOCATION_RULES, scope)
        if location is not None:
            contact.city = location.value.city
            contact.state = location.value.state
            contact.zip = location.value.zip
            confidence += FIELD_WEIGHTS["location"]
            break

    linkedin = search(LINKEDIN_RULES)
    if linkedin is not None:
        url = linkedin.value.rstrip("/")
        if "linkedin.com" not in url.lower():
            url = f"linkedin.com/in/{url.strip('/')}"
        contact.linkedin = url
        confidence += FIELD_WEIGHTS["linkedin"]

    website = search(WEBSITE_RULES)
    if website is not None:
        contact.website = website.value.rstrip("/.")
        confidence += FIELD_WEIGHTS["website"]

    return ExtractionResult[ContactInfo](
        data=contact,
        confidence=round(min(1.0, confidence), 4),
        source="contact" if section_text else "full-text",
        warnings=warnings,
    )
