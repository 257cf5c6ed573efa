"""
Manual corrections round trip.

The builder UI sends back the processed data of an earlier parse along with
the fields a person corrected. Corrections are merged into that data, every
section is re-scored from the merged record and a fresh placement decision is
made. Ingestion and classification are not repeated.

Override paths use dots and list indices, in snake_case or camelCase:

    contact.email
    skills
    work_experiences.0.job_title      (workExperiences.0.jobTitle also works)
    education.1                       (a whole entry; index == len appends)

Moves take a value out of one path and put it into another, converting it on
the way: a summary moved to skills is split into items, experience entries
moved to education become degree/school entries, and so on.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from resume_intake.core.config import ScoringConfig
from resume_intake.core.contact_parser import FIELD_WEIGHTS as CONTACT_WEIGHTS
from resume_intake.core.education_parser import score_education
from resume_intake.core.experience_parser import CORE_WEIGHTS, EntryScore, score_entry, section_confidence
from resume_intake.core.parsing_context import ParsingContext
from resume_intake.core.resume_pipeline import ResumePipeline
from resume_intake.core.schemas import (
    EXPECTED_SECTIONS,
    ContactInfo,
    Education,
    ExtractionResult,
    IntelligentPlacementResult,
    ParsedResumeData,
    SectionClassification,
    SectionExtractions,
    SectionSpan,
    SectionType,
    WorkExperience,
)
from resume_intake.core.skills_parser import dedupe, skills_confidence, summary_confidence

logger = logging.getLogger(__name__)

HUMAN_CONFIDENCE = 1.0
MOVE_KEY = "move"

ROOTS = ("contact", "work_experiences", "education", "skills", "summary")
ROOT_ALIASES = {"experience": "work_experiences", "experiences": "work_experiences"}
ENTRY_MODELS = {"work_experiences": WorkExperience, "education": Education}

# Field renames when entries move between experience and education
EXPERIENCE_TO_EDUCATION = {"employer": "school", "job_title": "degree", "location": "location"}
EDUCATION_TO_EXPERIENCE = {"school": "employer", "degree": "job_title", "location": "location"}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_ITEM_SPLIT_RE = re.compile(r"\s*[,;\n]\s*")
_IGNORED_TEXT_KEYS = {"id", "confidence", "remote", "current"}

Path = Tuple[Any, ...]


# ============================================================================
# Paths
# ============================================================================

def _snake(segment: str) -> str:
    return _CAMEL_RE.sub("_", segment).lower()


def parse_path(path: str) -> Path:
    """
    'workExperiences.0.jobTitle' -> ('work_experiences', 0, 'job_title')

    Raises:
        ValueError: the path does not name a field of the processed data.
    """
    parts: List[Any] = []
    for segment in path.strip().split("."):
        if not segment:
            raise ValueError(f"Invalid field path: {path!r}")
        parts.append(int(segment) if segment.isdigit() else _snake(segment))

    root = ROOT_ALIASES.get(parts[0], parts[0])
    parts[0] = root
    if root not in ROOTS:
        raise ValueError(f"Unknown section in field path: {path!r}")

    if root == "contact":
        ok = len(parts) == 1 or (len(parts) == 2 and parts[1] in ContactInfo.model_fields)
    elif root == "summary":
        ok = len(parts) == 1
    elif root == "skills":
        ok = len(parts) == 1 or (len(parts) == 2 and isinstance(parts[1], int))
    else:
        model = ENTRY_MODELS[root]
        ok = (
            len(parts) == 1
            or (len(parts) == 2 and isinstance(parts[1], int))
            or (len(parts) == 3 and isinstance(parts[1], int) and parts[2] in model.model_fields)
        )
    if not ok:
        raise ValueError(f"Unknown field path: {path!r}")
    return tuple(parts)


def _get(data: Dict[str, Any], path: Path) -> Any:
    value: Any = data
    for part in path:
        if isinstance(part, int):
            if part >= len(value):
                raise ValueError(f"Index {part} out of range in {'.'.join(map(str, path))}")
            value = value[part]
        else:
            value = value.get(part, "")
    return value


def _set(data: Dict[str, Any], path: Path, value: Any) -> None:
    root = path[0]
    if len(path) == 1:
        data[root] = value
        return

    container = data[root]
    key = path[1]
    if isinstance(key, str):
        container[key] = value
        return

    if key > len(container):
        raise ValueError(f"Index {key} out of range in {'.'.join(map(str, path))}")
    if len(path) == 2:
        if key == len(container):
            container.append(value)
        else:
            container[key] = value
        return

    if key == len(container):
        container.append({})
    container[key][path[2]] = value


def _clear(data: Dict[str, Any], path: Path) -> None:
    current = _get(data, path)
    if len(path) == 2 and isinstance(path[1], int):
        del data[path[0]][path[1]]
    elif isinstance(current, list):
        _set(data, path, [])
    elif isinstance(current, bool):
        _set(data, path, False)
    elif isinstance(current, dict):
        _set(data, path, {})
    else:
        _set(data, path, "" if isinstance(current, str) else None)


# ============================================================================
# Moves
# ============================================================================

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        parts = [_as_text(v) for k, v in value.items() if k not in _IGNORED_TEXT_KEYS]
        return ", ".join(p for p in parts if p)
    if isinstance(value, (list, tuple)):
        return ", ".join(t for t in (_as_text(v) for v in value) if t)
    return str(value)


def _as_items(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = [_as_text(v) for v in value]
    else:
        items = _ITEM_SPLIT_RE.split(_as_text(value).rstrip("."))
    return [item for item in items if item]


def _year_of(value: Any) -> str:
    text = str(value or "")
    return text[:4] if text[:4].isdigit() else ""


def _experience_to_education(entry: Dict[str, Any]) -> Dict[str, Any]:
    moved = {new: entry.get(old, "") or "" for old, new in EXPERIENCE_TO_EDUCATION.items()}
    moved["grad_year"] = _year_of(entry.get("end_date") or entry.get("start_date"))
    return moved


def _education_to_experience(entry: Dict[str, Any]) -> Dict[str, Any]:
    moved = {new: entry.get(old, "") or "" for old, new in EDUCATION_TO_EXPERIENCE.items()}
    if entry.get("grad_year"):
        moved["end_date"] = f"{entry['grad_year']}-01-01"
    return moved


def _convert_entries(value: Any, source_root: str, target_root: str) -> List[Dict[str, Any]]:
    entries = value if isinstance(value, list) else [value]
    converted: List[Dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError(f"Cannot move {source_root} into {target_root}")
        if source_root == target_root:
            converted.append(dict(entry))
        elif target_root == "education":
            converted.append(_experience_to_education(entry))
        else:
            converted.append(_education_to_experience(entry))
    return converted


def apply_move(data: Dict[str, Any], source: str, target: str) -> List[Path]:
    """Move the value at `source` into `target`; returns the paths that received it."""
    source_path, target_path = parse_path(source), parse_path(target)
    if source_path == target_path:
        return [target_path]
    value = _get(data, source_path)
    target_root = target_path[0]
    received = [target_path]

    if target_root in ENTRY_MODELS and len(target_path) == 1:
        entries = _convert_entries(value, source_path[0], target_root)
        start = len(data[target_root])
        data[target_root].extend(entries)
        received = [(target_root, start + n) for n in range(len(entries))]
    elif target_root == "skills" and len(target_path) == 1:
        data["skills"] = dedupe(list(data["skills"]) + _as_items(value))
    elif target_root == "summary":
        data["summary"] = " ".join(t for t in (data["summary"].strip(), _as_text(value)) if t)
    elif target_root == "contact" and len(target_path) == 1:
        raise ValueError("Move a single contact field, e.g. 'contact.website'")
    else:
        _set(data, target_path, _as_text(value))

    _clear(data, source_path)
    logger.debug("moved %s -> %s", source, target)
    return received


def _moves_from(overrides: Dict[str, Any], moves: Optional[Iterable[Dict[str, str]]]) -> List[Dict[str, str]]:
    collected = list(moves or [])
    embedded = overrides.get(MOVE_KEY)
    if isinstance(embedded, dict):
        collected.append(embedded)
    elif isinstance(embedded, list):
        collected.extend(embedded)
    elif embedded is not None:
        raise ValueError("'move' must be an object with 'from' and 'to'")
    for move in collected:
        if not isinstance(move, dict) or not move.get("from") or not move.get("to"):
            raise ValueError("Each move needs 'from' and 'to' field paths")
    return collected


# ============================================================================
# Re-scoring
# ============================================================================

def _human(touched: Set[Path], *prefix: Any) -> bool:
    """True when a touched path covers prefix or lies inside it."""
    return any(path[: len(prefix)] == prefix or prefix[: len(path)] == path for path in touched)


def _contact_result(contact: ContactInfo, touched: Set[Path]) -> ExtractionResult[ContactInfo]:
    warnings: List[str] = []
    if ("contact",) in touched:
        confidence = HUMAN_CONFIDENCE
    else:
        present = {
            "email": bool(contact.email),
            "phone": bool(contact.phone),
            "name": bool(contact.first_name or contact.last_name),
            "location": bool(contact.city or contact.state),
            "linkedin": bool(contact.linkedin),
            "website": bool(contact.website),
        }
        confidence = sum(CONTACT_WEIGHTS[name] for name, ok in present.items() if ok)
    if not contact.email:
        warnings.append("No email address found")
    if not contact.phone:
        warnings.append("No phone number found")
    if not (contact.first_name or contact.last_name):
        warnings.append("No name found")
    return ExtractionResult[ContactInfo](
        data=contact, confidence=round(min(1.0, confidence), 4), source="manual", warnings=warnings
    )


def _experience_result(jobs: List[WorkExperience], touched: Set[Path]) -> ExtractionResult[List[WorkExperience]]:
    scores: List[EntryScore] = []
    warnings: List[str] = []
    for i, job in enumerate(jobs):
        if _human(touched, "work_experiences", i) and (job.job_title or job.employer):
            core = sum(CORE_WEIGHTS.values())
            score = EntryScore(core=core, bonus=round(HUMAN_CONFIDENCE - core, 4))
        else:
            score = score_entry(job)
        job.confidence = score.total
        if not job.job_title and not job.employer:
            warnings.append(f"Could not extract meaningful data from job entry {i + 1}")
        scores.append(score)
    if not jobs:
        warnings.append("No work experience found")
    return ExtractionResult[List[WorkExperience]](
        data=jobs, confidence=section_confidence(scores), source="manual", warnings=warnings
    )


def _education_result(entries: List[Education], touched: Set[Path]) -> ExtractionResult[List[Education]]:
    warnings: List[str] = []
    for i, entry in enumerate(entries):
        if _human(touched, "education", i) and (entry.degree or entry.school):
            entry.confidence = HUMAN_CONFIDENCE
        else:
            entry.confidence = score_education(entry)
        if not entry.degree and not entry.school:
            warnings.append(f"Could not extract meaningful data from education entry {i + 1}")
    if not entries:
        warnings.append("No education found")
    confidence = sum(e.confidence for e in entries) / len(entries) if entries else 0.0
    return ExtractionResult[List[Education]](
        data=entries, confidence=round(confidence, 4), source="manual", warnings=warnings
    )


def rebuild_extractions(data: ParsedResumeData, touched: Set[Path]) -> SectionExtractions:
    """
    Per-section extraction results for corrected data.

    Untouched sections are scored by field presence with the extractors'
    weights. A section or entry a person set or edited counts as certain.
    """
    skills_human = _human(touched, "skills")
    summary_human = _human(touched, "summary")
    return SectionExtractions(
        contact=_contact_result(data.contact, touched),
        experience=_experience_result(data.work_experiences, touched),
        education=_education_result(data.education, touched),
        skills=ExtractionResult[List[str]](
            data=data.skills,
            confidence=HUMAN_CONFIDENCE if skills_human and data.skills else skills_confidence(data.skills),
            source="manual",
            warnings=[] if data.skills else ["No skills found"],
        ),
        summary=ExtractionResult[str](
            data=data.summary,
            confidence=HUMAN_CONFIDENCE if summary_human and data.summary else summary_confidence(data.summary),
            source="manual",
        ),
    )


def classification_from_data(data: ParsedResumeData) -> SectionClassification:
    """Reviewed data has a known structure: every populated section counts as found."""
    contact = data.contact
    present = {
        SectionType.CONTACT: any([contact.first_name, contact.last_name, contact.email, contact.phone]),
        SectionType.SUMMARY: bool(data.summary),
        SectionType.EXPERIENCE: bool(data.work_experiences),
        SectionType.EDUCATION: bool(data.education),
        SectionType.SKILLS: bool(data.skills),
    }
    sections = {
        section: SectionSpan(start_line=0, end_line=0, confidence=HUMAN_CONFIDENCE, implicit=True)
        for section, ok in present.items()
        if ok
    }
    confidence = sum(1 for s in EXPECTED_SECTIONS if s in sections) / len(EXPECTED_SECTIONS)
    return SectionClassification(sections=sections, classification_confidence=round(confidence, 4))


# ============================================================================
# Entry point
# ============================================================================

def merge_overrides(
    processed_data: ParsedResumeData,
    overrides: Dict[str, Any],
    moves: Optional[Iterable[Dict[str, str]]] = None,
) -> Tuple[ParsedResumeData, Set[Path]]:
    """
    Apply moves, then field overrides, to a copy of processed_data.

    Returns the validated record and the set of paths a person touched.

    Raises:
        ValueError: an unknown path, an out-of-range index or a value that
            does not validate (pydantic's ValidationError is a ValueError).
    """
    data = processed_data.model_dump()
    touched: Set[Path] = set()

    for move in _moves_from(overrides, moves):
        touched.update(apply_move(data, move["from"], move["to"]))

    for path, value in overrides.items():
        if path == MOVE_KEY:
            continue
        parsed = parse_path(path)
        _set(data, parsed, value)
        touched.add(parsed)

    for i, entry in enumerate(data["work_experiences"]):
        if isinstance(entry, dict) and not entry.get("id"):
            entry["id"] = f"exp-{i + 1}"

    merged = ParsedResumeData.model_validate(data)
    logger.info("merged %d override(s)", len(touched))
    return merged, touched


def apply_manual_overrides(
    processed_data: ParsedResumeData,
    overrides: Dict[str, Any],
    moves: Optional[Iterable[Dict[str, str]]] = None,
    scoring: Optional[ScoringConfig] = None,
    pipeline: Optional[ResumePipeline] = None,
    context: Optional[ParsingContext] = None,
) -> IntelligentPlacementResult:
    """Merge corrections, re-score and re-decide placement without re-parsing the file."""
    pipeline = pipeline or ResumePipeline(scoring=scoring)
    context = context or pipeline.new_context("manual-override")

    merged, touched = merge_overrides(processed_data, overrides, moves)
    context.info("override", f"Applied {len(touched)} correction(s)", {"paths": [".".join(map(str, p)) for p in touched]})

    classification = classification_from_data(merged)
    extractions = rebuild_extractions(merged, touched)
    for name, result in extractions.scored().items():
        for warning in result.warnings:
            context.warn("extraction", warning, {"section": name})
    return pipeline.score_and_place("", classification, extractions, context)
