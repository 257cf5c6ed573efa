"""
Confidence scoring for resume extraction.

The composite score blends four sub-scores:

  classification  how sure the classifier was about the expected section headers
  extraction      mean confidence of the contact/experience/education/skills extractors
  validation      weighted pass rate of the field checks in VALIDATION_RULES
  completeness    share of expected sections present, with a bonus per strong section

Confidence Scale:
  >= 0.85  high (safe to place automatically)
  >= 0.7   good
  >= 0.5   moderate (place, then review)
  >= 0.3   low
  <  0.3   very low (manual entry)
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Tuple

from resume_intake.core.config import ScoringConfig
from resume_intake.core.schemas import (
    EXPECTED_SECTIONS,
    ConfidenceBreakdown,
    ConfidenceDetail,
    ConfidenceInterpretation,
    ConfidenceScore,
    SectionClassification,
    SectionExtractions,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
MIN_GRADUATION_YEAR = 1950
CLASSIFICATION_SUGGESTION_FLOOR = 0.7
EXTRACTION_SUGGESTION_FLOOR = 0.6


@dataclass(frozen=True)
class CheckResult:
    passed: bool
    confidence: float
    reason: str


@dataclass(frozen=True)
class ValidationRule:
    section: str
    field: str
    weight: float
    critical: bool
    check: Callable[[SectionExtractions], CheckResult]
    suggestion: str = ""


# ============================================================================
# Checks
# ============================================================================

def _email_format(ex: SectionExtractions) -> CheckResult:
    email = ex.contact.data.email
    if not email:
        return CheckResult(False, 0.0, "No email address extracted")
    if not EMAIL_PATTERN.match(email):
        return CheckResult(False, 0.3, f"Email '{email}' is not a valid address")
    return CheckResult(True, 1.0, "Valid email format")


def _phone_format(ex: SectionExtractions) -> CheckResult:
    phone = ex.contact.data.phone
    if not phone:
        return CheckResult(False, 0.0, "No phone number extracted")
    digits = len(re.sub(r"\D", "", phone))
    if 10 <= digits <= 15:
        return CheckResult(True, 1.0, "Valid phone format")
    return CheckResult(True, 0.5, f"Phone number has an unusual length ({digits} digits)")


def _name_completeness(ex: SectionExtractions) -> CheckResult:
    contact = ex.contact.data
    if contact.first_name and contact.last_name:
        return CheckResult(True, 1.0, "First and last name present")
    if contact.first_name or contact.last_name:
        return CheckResult(True, 0.6, "Only part of the name was found")
    return CheckResult(False, 0.0, "No name extracted")


def _location_completeness(ex: SectionExtractions) -> CheckResult:
    contact = ex.contact.data
    if contact.city and contact.state:
        return CheckResult(True, 1.0, "City and state present")
    if contact.city or contact.state:
        return CheckResult(True, 0.5, "Location is incomplete")
    return CheckResult(False, 0.0, "No location extracted")


def _first_job(ex: SectionExtractions):
    return ex.experience.data[0] if ex.experience.data else None


def _job_title_quality(ex: SectionExtractions) -> CheckResult:
    job = _first_job(ex)
    if job is None:
        return CheckResult(False, 0.0, "No work experience entries")
    if not job.job_title:
        return CheckResult(False, 0.0, "Most recent position has no job title")
    if not 2 <= len(job.job_title) <= 100:
        return CheckResult(False, 0.3, f"Job title '{job.job_title[:40]}' has an implausible length")
    return CheckResult(True, 1.0, "Job title present")


def _employer_quality(ex: SectionExtractions) -> CheckResult:
    job = _first_job(ex)
    if job is None:
        return CheckResult(False, 0.0, "No work experience entries")
    if not job.employer:
        return CheckResult(False, 0.0, "Most recent position has no employer")
    if not 2 <= len(job.employer) <= 100:
        return CheckResult(False, 0.3, f"Employer '{job.employer[:40]}' has an implausible length")
    return CheckResult(True, 1.0, "Employer present")


def _date_validity(ex: SectionExtractions) -> CheckResult:
    job = _first_job(ex)
    if job is None or job.start_date is None:
        return CheckResult(False, 0.0, "No start date for the most recent position")
    if job.start_date > date.today():
        return CheckResult(False, 0.2, "Start date is in the future")
    if job.end_date is not None and job.start_date > job.end_date:
        return CheckResult(False, 0.2, "Start date is after end date")
    return CheckResult(True, 1.0, "Dates are consistent")


def _accomplishments_quality(ex: SectionExtractions) -> CheckResult:
    job = _first_job(ex)
    text = job.accomplishments if job is not None else ""
    if len(text) > 50:
        return CheckResult(True, 1.0, "Accomplishments present")
    if len(text) > 10:
        return CheckResult(True, 0.6, "Accomplishments are brief")
    return CheckResult(False, 0.0, "No accomplishments for the most recent position")


def _first_education(ex: SectionExtractions):
    return ex.education.data[0] if ex.education.data else None


def _degree_validity(ex: SectionExtractions) -> CheckResult:
    edu = _first_education(ex)
    if edu is None or not edu.degree:
        return CheckResult(False, 0.0, "No degree extracted")
    return CheckResult(True, 1.0, "Degree present")


def _institution_validity(ex: SectionExtractions) -> CheckResult:
    edu = _first_education(ex)
    if edu is None or not edu.school:
        return CheckResult(False, 0.0, "No institution extracted")
    return CheckResult(True, 1.0, "Institution present")


def _graduation_year_validity(ex: SectionExtractions) -> CheckResult:
    edu = _first_education(ex)
    if edu is None or not edu.grad_year:
        return CheckResult(False, 0.0, "No graduation year extracted")
    if not edu.grad_year.strip().isdigit():
        return CheckResult(False, 0.2, f"Graduation year '{edu.grad_year}' is not a year")
    year = int(edu.grad_year)
    if MIN_GRADUATION_YEAR <= year <= date.today().year + 10:
        return CheckResult(True, 1.0, "Graduation year is plausible")
    return CheckResult(False, 0.2, f"Graduation year {year} is out of range")


def _skills_quantity(ex: SectionExtractions) -> CheckResult:
    count = len(ex.skills.data)
    if count >= 3:
        return CheckResult(True, 1.0, f"{count} skills found")
    if count > 0:
        return CheckResult(True, 0.5, f"Only {count} skill(s) found")
    return CheckResult(False, 0.0, "No skills extracted")


def _skills_quality(ex: SectionExtractions) -> CheckResult:
    skills = ex.skills.data
    if not skills:
        return CheckResult(False, 0.0, "No skills extracted")
    share = sum(1 for s in skills if 2 <= len(s) <= 50) / len(skills)
    return CheckResult(share > 0, round(share, 4), f"{share:.0%} of skills have a plausible length")


VALIDATION_RULES: List[ValidationRule] = [
    ValidationRule("contact", "email_format", 0.3, True, _email_format, "Add or correct the email address"),
    ValidationRule("contact", "phone_format", 0.2, False, _phone_format),
    ValidationRule("contact", "name_completeness", 0.25, True, _name_completeness, "Enter the candidate's full name"),
    ValidationRule("contact", "location_completeness", 0.15, False, _location_completeness),
    ValidationRule("experience", "job_title_quality", 0.3, True, _job_title_quality, "Enter the job title for the most recent position"),
    ValidationRule("experience", "employer_quality", 0.25, True, _employer_quality, "Enter the employer for the most recent position"),
    ValidationRule("experience", "date_validity", 0.2, False, _date_validity),
    ValidationRule("experience", "accomplishments_quality", 0.25, False, _accomplishments_quality),
    ValidationRule("education", "degree_validity", 0.4, True, _degree_validity, "Enter the degree earned"),
    ValidationRule("education", "institution_validity", 0.35, True, _institution_validity, "Enter the school or institution"),
    ValidationRule("education", "graduation_year_validity", 0.25, False, _graduation_year_validity),
    ValidationRule("skills", "skills_quantity", 0.4, True, _skills_quantity, "Add at least three skills"),
    ValidationRule("skills", "skills_quality", 0.6, False, _skills_quality),
]


# ============================================================================
# Calculator
# ============================================================================

class ConfidenceCalculator:
    """Central place for all document-level confidence logic."""

    def __init__(self, config: Optional[ScoringConfig] = None, rules: Optional[List[ValidationRule]] = None):
        self.config = config or ScoringConfig()
        self.rules = rules if rules is not None else VALIDATION_RULES

    def validate(self, extractions: SectionExtractions) -> Tuple[float, List[ConfidenceDetail]]:
        """Returns (validation score, details for failing or weak checks)."""
        details: List[ConfidenceDetail] = []
        total_weight = 0.0
        earned = 0.0
        for rule in self.rules:
            result = rule.check(extractions)
            total_weight += rule.weight
            if result.passed:
                earned += rule.weight * result.confidence
            if not result.passed or result.confidence < self.config.validation_detail_floor:
                details.append(
                    ConfidenceDetail(
                        section=rule.section,
                        field=rule.field,
                        score=result.confidence,
                        reason=result.reason,
                        suggestion=rule.suggestion if rule.critical and not result.passed else None,
                    )
                )
        score = earned / total_weight if total_weight else 0.0
        return round(score, 4), details

    def completeness(self, classification: SectionClassification, extractions: SectionExtractions) -> float:
        scored = extractions.scored()
        present = [s for s in EXPECTED_SECTIONS if s in classification.sections]
        score = len(present) / len(EXPECTED_SECTIONS)
        for section in present:
            if scored[section.value].confidence > self.config.completeness_bonus_floor:
                score += self.config.completeness_bonus
        return round(min(1.0, score), 4)

    def calculate(self, classification: SectionClassification, extractions: SectionExtractions) -> ConfidenceScore:
        details: List[ConfidenceDetail] = []

        classification_score = classification.classification_confidence
        details.append(
            ConfidenceDetail(
                section="document",
                field="classification",
                score=classification_score,
                reason=f"Found {len(classification.found)} of {len(EXPECTED_SECTIONS)} expected sections",
                suggestion="Label sections with clear headers such as Experience, Education and Skills"
                if classification_score < CLASSIFICATION_SUGGESTION_FLOOR
                else None,
            )
        )

        scored = extractions.scored()
        for name, result in scored.items():
            details.append(
                ConfidenceDetail(
                    section=name,
                    field="extraction",
                    score=result.confidence,
                    reason=f"{name.capitalize()} extraction confidence",
                    suggestion=f"Review the {name} section for missing or misread fields"
                    if result.confidence < EXTRACTION_SUGGESTION_FLOOR
                    else None,
                )
            )
        extraction_score = round(sum(r.confidence for r in scored.values()) / len(scored), 4)

        validation_score, validation_details = self.validate(extractions)
        details.extend(validation_details)

        completeness_score = self.completeness(classification, extractions)
        details.append(
            ConfidenceDetail(
                section="document",
                field="completeness",
                score=completeness_score,
                reason=f"{len(classification.found)} of {len(EXPECTED_SECTIONS)} expected sections present",
            )
        )

        w = self.config.weights
        total = w.classification + w.extraction + w.validation + w.completeness
        overall = 0.0
        if total > 0:
            overall = (
                w.classification * classification_score
                + w.extraction * extraction_score
                + w.validation * validation_score
                + w.completeness * completeness_score
            ) / total

        logger.debug(
            "confidence: overall=%.3f classification=%.3f extraction=%.3f validation=%.3f completeness=%.3f",
            overall, classification_score, extraction_score, validation_score, completeness_score,
        )
        return ConfidenceScore(
            overall=round(min(1.0, max(0.0, overall)), 4),
            breakdown=ConfidenceBreakdown(
                classification=classification_score,
                extraction=extraction_score,
                validation=validation_score,
                completeness=completeness_score,
            ),
            details=details,
        )


def interpret_confidence(score: float) -> ConfidenceInterpretation:
    if score >= 0.85:
        return ConfidenceInterpretation(
            level="high",
            description="Extraction is highly reliable",
            recommendation="Data can be placed automatically",
        )
    if score >= 0.7:
        return ConfidenceInterpretation(
            level="good",
            description="Extraction is mostly reliable",
            recommendation="Place the data and spot-check key fields",
        )
    if score >= 0.5:
        return ConfidenceInterpretation(
            level="moderate",
            description="Some fields may be missing or misread",
            recommendation="Review the extracted data before saving",
        )
    if score >= 0.3:
        return ConfidenceInterpretation(
            level="low",
            description="Many fields are missing or uncertain",
            recommendation="Review every section carefully",
        )
    return ConfidenceInterpretation(
        level="very_low",
        description="Extraction is unreliable",
        recommendation="Enter the resume manually",
    )
