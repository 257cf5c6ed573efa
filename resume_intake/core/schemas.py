from datetime import date
from enum import Enum
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


T = TypeVar("T")

OverallQuality = Literal["excellent", "good", "fair", "poor"]
ConfidenceLevel = Literal["high", "good", "moderate", "low", "very_low"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (the builder UI speaks camelCase)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractionMethod(str, Enum):
    NATIVE_PDF = "native-pdf"
    OCR = "ocr"
    DOCX = "docx"
    PLAINTEXT = "plaintext"


class SectionType(str, Enum):
    CONTACT = "contact"
    SUMMARY = "summary"
    EXPERIENCE = "experience"
    EDUCATION = "education"
    SKILLS = "skills"
    # Recognised only so they can terminate the span before them
    PROJECTS = "projects"
    CERTIFICATIONS = "certifications"
    LANGUAGES = "languages"
    VOLUNTEER = "volunteer"
    PUBLICATIONS = "publications"
    AWARDS = "awards"
    REFERENCES = "references"


CORE_SECTIONS = (
    SectionType.CONTACT,
    SectionType.SUMMARY,
    SectionType.EXPERIENCE,
    SectionType.EDUCATION,
    SectionType.SKILLS,
)
EXPECTED_SECTIONS = (
    SectionType.CONTACT,
    SectionType.EXPERIENCE,
    SectionType.EDUCATION,
    SectionType.SKILLS,
)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class RawDocument(BaseModel):
    """An uploaded file as received. Never mutated after construction."""
    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., repr=False)
    filename: str = ""
    declared_mime_type: str = ""
    size_bytes: int = Field(default=0, ge=0)

    @classmethod
    def from_bytes(cls, content: bytes, filename: str = "", mime_type: str = "") -> "RawDocument":
        return cls(
            content=content,
            filename=filename or "",
            declared_mime_type=(mime_type or "").lower(),
            size_bytes=len(content),
        )

    @property
    def extension(self) -> str:
        name = self.filename.lower()
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[-1]


class ExtractedText(CamelModel):
    text: str
    method: ExtractionMethod
    char_count: int = Field(..., ge=0)
    ocr_confidence: Optional[float] = Field(default=None, description="Mean recognizer confidence (0-100) when OCR produced the text")
    page_count: Optional[int] = None
    attempts: int = Field(default=1, description="How many strategy attempts ran before success")

    @classmethod
    def build(cls, text: str, method: ExtractionMethod, **extra: Any) -> "ExtractedText":
        return cls(text=text, method=method, char_count=len(text), **extra)


class ParsingOptions(CamelModel):
    timeout_ms: int = Field(default=60_000, gt=0)
    max_file_size_bytes: int = Field(default=50 * 1024 * 1024, gt=0)
    enable_ocr: bool = True
    ocr_language: str = "eng"
    strict_validation: bool = False
    retry_attempts: int = Field(default=2, ge=0)
    retry_base_delay_ms: Optional[int] = Field(
        default=None, ge=0, description="Overrides the per-strategy backoff base (1000 ms for PDF, 500 ms otherwise)"
    )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

class SectionSpan(CamelModel):
    start_line: int = Field(..., description="Index of the header line (or first content line for implicit spans)")
    end_line: int = Field(..., description="Exclusive end line index")
    header: str = ""
    content: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    implicit: bool = False


class SectionClassification(CamelModel):
    sections: Dict[SectionType, SectionSpan] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    classification_confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    def content_of(self, section: SectionType) -> Optional[str]:
        span = self.sections.get(section)
        return span.content if span is not None else None

    @property
    def found(self) -> List[SectionType]:
        return [s for s in EXPECTED_SECTIONS if s in self.sections]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ContactInfo(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    linkedin: str = ""
    website: str = ""


class WorkExperience(CamelModel):
    id: str
    job_title: str = ""
    employer: str = ""
    location: str = ""
    remote: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    current: bool = False
    accomplishments: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class Education(CamelModel):
    school: str = ""
    location: str = ""
    degree: str = ""
    field: str = ""
    grad_year: str = ""
    grad_month: str = ""
    gpa: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractionResult(CamelModel, Generic[T]):
    data: T
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: str = Field(..., description="Section span or strategy the data came from")
    warnings: List[str] = Field(default_factory=list)


class SectionExtractions(CamelModel):
    contact: ExtractionResult[ContactInfo]
    experience: ExtractionResult[List[WorkExperience]]
    education: ExtractionResult[List[Education]]
    skills: ExtractionResult[List[str]]
    summary: ExtractionResult[str]

    def scored(self) -> Dict[str, ExtractionResult]:
        """The four sections that feed the extraction sub-score."""
        return {
            "contact": self.contact,
            "experience": self.experience,
            "education": self.education,
            "skills": self.skills,
        }


# ---------------------------------------------------------------------------
# Scoring and placement
# ---------------------------------------------------------------------------

class ConfidenceDetail(CamelModel):
    section: str
    field: str
    score: float = Field(..., ge=0.0, le=1.0)
    reason: str
    suggestion: Optional[str] = None


class ConfidenceBreakdown(CamelModel):
    classification: float = Field(..., ge=0.0, le=1.0)
    extraction: float = Field(..., ge=0.0, le=1.0)
    validation: float = Field(..., ge=0.0, le=1.0)
    completeness: float = Field(..., ge=0.0, le=1.0)


class ConfidenceScore(CamelModel):
    overall: float = Field(..., ge=0.0, le=1.0)
    breakdown: ConfidenceBreakdown
    details: List[ConfidenceDetail] = Field(default_factory=list)


class ConfidenceInterpretation(CamelModel):
    level: ConfidenceLevel
    description: str
    recommendation: str


class UncertainField(CamelModel):
    section: str
    field: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str
    alternatives: Optional[List[str]] = None
    suggestion: str = ""


class UncertaintyDetection(CamelModel):
    uncertain_fields: List[UncertainField] = Field(default_factory=list)
    recommend_manual_review: bool
    auto_placement_safe: bool


class PlacementAlternative(CamelModel):
    section: str
    field: str
    suggested_value: Any = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str


class PlacementDecision(CamelModel):
    should_auto_place: bool
    requires_review: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str
    alternatives: Optional[List[PlacementAlternative]] = None


class ParsedResumeData(CamelModel):
    contact: ContactInfo = Field(default_factory=ContactInfo)
    work_experiences: List[WorkExperience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    summary: str = ""


class PlacementMetadata(CamelModel):
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    text_length: int = Field(default=0, ge=0)
    sections_found: List[str] = Field(default_factory=list)
    overall_quality: OverallQuality = "poor"
    recommendations: List[str] = Field(default_factory=list)
    extraction_method: Optional[ExtractionMethod] = None


class IntelligentPlacementResult(CamelModel):
    classification: SectionClassification
    extraction: SectionExtractions
    confidence: ConfidenceScore
    uncertainty: UncertaintyDetection
    placement: PlacementDecision
    processed_data: ParsedResumeData
    metadata: PlacementMetadata = Field(default_factory=PlacementMetadata)


# ---------------------------------------------------------------------------
# Builder-side record
# ---------------------------------------------------------------------------

class ActiveSections(CamelModel):
    contact: bool = False
    summary: bool = False
    experience: bool = False
    education: bool = False
    skills: bool = False
    projects: bool = False
    certifications: bool = False
    languages: bool = False
    volunteer: bool = False
    publications: bool = False
    awards: bool = False
    references: bool = False


class ResumeData(CamelModel):
    contact: ContactInfo = Field(default_factory=ContactInfo)
    summary: str = ""
    work_experiences: List[WorkExperience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    projects: List[Dict[str, Any]] = Field(default_factory=list)
    certifications: List[Dict[str, Any]] = Field(default_factory=list)
    languages: List[Dict[str, Any]] = Field(default_factory=list)
    volunteer: List[Dict[str, Any]] = Field(default_factory=list)
    publications: List[Dict[str, Any]] = Field(default_factory=list)
    awards: List[Dict[str, Any]] = Field(default_factory=list)
    references: List[Dict[str, Any]] = Field(default_factory=list)
    active_sections: ActiveSections = Field(default_factory=ActiveSections)


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class ParseResponse(CamelModel):
    result: IntelligentPlacementResult
    resume_data: ResumeData
    summary: str
    warnings: List[str] = Field(default_factory=list)


class OverrideRequest(CamelModel):
    processed_data: ParsedResumeData
    overrides: Dict[str, Any] = Field(
        default_factory=dict,
        description="Field path -> corrected value, e.g. {'contact.email': 'a@b.com', 'work_experiences.0.job_title': 'Engineer'}",
    )
    moves: List[Dict[str, str]] = Field(
        default_factory=list,
        description="Whole-section moves, e.g. [{'from': 'summary', 'to': 'skills'}]",
    )
