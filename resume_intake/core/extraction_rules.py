"""
Ordered extraction rules.

A field is described by a list of ExtractionRule objects in priority order
(most specific first). first_match() evaluates them in order and returns on the
first rule whose pattern matches and whose transformed value passes validation.
Priority is specificity, not position in the text.
"""

from dataclasses import dataclass
from datetime import date
from re import Match, Pattern
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar
import re

T = TypeVar("T")


def _first_group(m: Match[str]) -> Optional[str]:
    groups = [g for g in m.groups() if g]
    value = groups[0] if groups else m.group(0)
    value = value.strip()
    return value or None


def _non_empty(value: object) -> bool:
    return bool(value)


@dataclass(frozen=True)
class RuleMatch(Generic[T]):
    value: T
    rule: str
    span: Tuple[int, int]
    confidence: float = 1.0


@dataclass(frozen=True)
class ExtractionRule(Generic[T]):
    name: str
    pattern: Pattern[str]
    transform: Callable[[Match[str]], Optional[T]] = _first_group  # type: ignore[assignment]
    validate: Callable[[T], bool] = _non_empty
    confidence: float = 1.0

    def apply(self, text: str) -> Optional[RuleMatch[T]]:
        for m in self.pattern.finditer(text):
            value = self.transform(m)
            if value is not None and self.validate(value):
                return RuleMatch(value=value, rule=self.name, span=m.span(), confidence=self.confidence)
        return None


def first_match(rules: Sequence[ExtractionRule[T]], text: str) -> Optional[RuleMatch[T]]:
    """Evaluate rules in priority order; the first success wins."""
    if not text:
        return None
    for rule in rules:
        hit = rule.apply(text)
        if hit is not None:
            return hit
    return None


# ============================================================================
# Dates
# ============================================================================

MONTHS = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9, "oct": 10, "october": 10,
    "nov": 11, "november": 11, "dec": 12, "december": 12,
}
MONTH_NAMES = [
    "", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_MONTH_RE = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?"
    r"|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?"
)
_YEAR_RE = r"(?:19|20)\d{2}"
_PRESENT_RE = r"(?:Present|Current(?:ly)?|Now|Today|Ongoing)"
_RANGE_SEP = r"\s*(?:-|–|—|to|until|through)\s*"

DATE_TOKEN_RE = re.compile(
    rf"(?P<month>{_MONTH_RE})\s*,?\s*(?P<year>{_YEAR_RE})"
    rf"|(?P<num_month>0?[1-9]|1[0-2])\s*/\s*(?P<num_year>{_YEAR_RE})"
    rf"|(?P<bare_year>{_YEAR_RE})"
    rf"|(?P<present>{_PRESENT_RE})",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DateRange:
    start: Optional[date]
    end: Optional[date]
    current: bool
    raw: str


def parse_date_token(token: str) -> Tuple[Optional[date], bool]:
    """
    Parse one side of a date range.
    Returns (date, is_current); month-less years resolve to January.
    """
    token = token.strip()
    m = DATE_TOKEN_RE.fullmatch(token) or DATE_TOKEN_RE.search(token)
    if not m:
        return None, False
    if m.group("present"):
        return None, True
    if m.group("month"):
        month = MONTHS.get(m.group("month").lower().rstrip("."), 1)
        return date(int(m.group("year")), month, 1), False
    if m.group("num_month"):
        return date(int(m.group("num_year")), int(m.group("num_month")), 1), False
    return date(int(m.group("bare_year")), 1, 1), False


def _date_range(m: Match[str]) -> Optional[DateRange]:
    start, _ = parse_date_token(m.group("start"))
    end, current = parse_date_token(m.group("end"))
    if start is None:
        return None
    return DateRange(start=start, end=end, current=current, raw=m.group(0).strip())


def _date_range_valid(value: DateRange) -> bool:
    return value.start is not None and (value.current or value.end is None or value.start <= value.end)


DATE_RANGE_RULES: List[ExtractionRule[DateRange]] = [
    ExtractionRule(
        "month_year_range",
        re.compile(
            rf"(?P<start>{_MONTH_RE}\s*,?\s*{_YEAR_RE}){_RANGE_SEP}(?P<end>{_MONTH_RE}\s*,?\s*{_YEAR_RE}|{_PRESENT_RE}|{_YEAR_RE})",
            re.IGNORECASE,
        ),
        transform=_date_range,
        validate=_date_range_valid,
    ),
    ExtractionRule(
        "numeric_month_range",
        re.compile(
            rf"(?P<start>(?:0?[1-9]|1[0-2])\s*/\s*{_YEAR_RE}){_RANGE_SEP}(?P<end>(?:0?[1-9]|1[0-2])\s*/\s*{_YEAR_RE}|{_PRESENT_RE})",
            re.IGNORECASE,
        ),
        transform=_date_range,
        validate=_date_range_valid,
    ),
    ExtractionRule(
        "year_range",
        re.compile(rf"(?P<start>\b{_YEAR_RE}){_RANGE_SEP}(?P<end>{_YEAR_RE}\b|{_PRESENT_RE})", re.IGNORECASE),
        transform=_date_range,
        validate=_date_range_valid,
    ),
]


def find_date_range(text: str) -> Optional[RuleMatch[DateRange]]:
    return first_match(DATE_RANGE_RULES, text)


# ============================================================================
# Phones
# ============================================================================

def normalize_phone(phone: str) -> str:
    """
    (DDD) DDD-DDDD for 10 digits or 11 digits with a leading 1; anything else
    is returned unchanged.
    """
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    elif len(digits) != 10:
        return phone
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


# ============================================================================
# Locations
# ============================================================================

US_STATES = {
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA", "HI", "ID", "IL", "IN",
    "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV",
    "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN",
    "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY", "DC",
}
STATE_NAMES = {
    "alabama", "alaska", "arizona", "arkansas", "california", "colorado", "connecticut",
    "delaware", "florida", "georgia", "hawaii", "idaho", "illinois", "indiana", "iowa",
    "kansas", "kentucky", "louisiana", "maine", "maryland", "massachusetts", "michigan",
    "minnesota", "mississippi", "missouri", "montana", "nebraska", "nevada", "new hampshire",
    "new jersey", "new mexico", "new york", "north carolina", "north dakota", "ohio", "oklahoma",
    "oregon", "pennsylvania", "rhode island", "south carolina", "south dakota", "tennessee",
    "texas", "utah", "vermont", "virginia", "washington", "west virginia", "wisconsin", "wyoming",
    "puerto rico",
}
MULTI_WORD_STATES = {name for name in STATE_NAMES if " " in name}

_NOT_CITY_WORDS = {"study", "abroad", "institute", "program", "semester", "trimester", "year", "inc", "llc", "corp"}


def find_location(text: str) -> Optional[str]:
    """
    Find a "City, State" pair, walking commas right to left so that
    "Acme Corp, San Francisco, CA" yields "San Francisco, CA" and
    "Spokane, Washington, 2012 - 2016" yields "Spokane, Washington".
    """
    commas = [i for i, c in enumerate(text) if c == ","]
    for comma_pos in reversed(commas):
        words_after = text[comma_pos + 1:].split()
        if not words_after:
            continue
        first_word = words_after[0].strip(",.;:-")
        two_words = " ".join(words_after[:2]).strip(",.;:-") if len(words_after) >= 2 else ""

        if two_words.lower() in MULTI_WORD_STATES:
            region = two_words
        elif first_word.upper() == first_word and first_word.upper() in US_STATES:
            region = first_word
        elif first_word.lower() in STATE_NAMES:
            region = first_word
        else:
            continue

        city_words: List[str] = []
        for w in reversed(text[:comma_pos].split()):
            if re.match(r"^[A-Z][a-z.'\-]*$", w):
                city_words.insert(0, w)
                if len(city_words) >= 2:
                    break
            else:
                break
        if not city_words:
            continue
        city = " ".join(city_words)
        if any(word.lower().strip(".") in _NOT_CITY_WORDS for word in city_words):
            continue
        return f"{city}, {region}"
    return None


# ============================================================================
# Role words
# ============================================================================

# A line ending in (or built around) one of these reads as a job title
ROLE_WORDS = {
    "engineer", "developer", "manager", "director", "analyst", "specialist", "coordinator",
    "assistant", "consultant", "designer", "architect", "administrator", "scientist", "intern",
    "representative", "officer", "associate", "lead", "executive", "technician", "accountant",
    "supervisor", "president", "vp", "head", "programmer", "teacher", "nurse", "recruiter",
    "editor", "writer", "advisor", "strategist", "owner", "founder", "cto", "ceo", "cfo",
    "researcher", "instructor", "clerk", "agent", "planner", "buyer", "auditor", "trainer",
}


def has_role_word(text: str) -> bool:
    words = re.findall(r"[A-Za-z]+", text.lower())
    return any(w in ROLE_WORDS for w in words)


def ends_with_role_word(text: str) -> bool:
    words = re.findall(r"[A-Za-z]+", text.lower())
    return bool(words) and words[-1] in ROLE_WORDS
