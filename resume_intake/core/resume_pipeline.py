"""
End-to-end résumé processing.

    ingest -> normalize -> classify -> extract -> score -> detect uncertainty -> decide placement

parse_document() runs the whole chain for an uploaded file; process_text() runs
everything after ingestion and is what the manual-override and text-only paths
reuse.
"""

import asyncio
import logging
from typing import List, Optional

from resume_intake.core.config import ScoringConfig, Settings, get_settings
from resume_intake.core.confidence_calculator import ConfidenceCalculator
from resume_intake.core.document_ingestor import DocumentIngestor
from resume_intake.core.errors import ErrorCode, ErrorHandler, ErrorSeverity, ParserError
from resume_intake.core.field_extractor import FieldExtractor
from resume_intake.core.parsing_context import ParsingContext, ProgressCallback
from resume_intake.core.placement import PlacementDecider, UncertaintyDetector
from resume_intake.core.schemas import (
    EXPECTED_SECTIONS,
    ActiveSections,
    ConfidenceScore,
    ExtractionMethod,
    IntelligentPlacementResult,
    OverallQuality,
    ParsedResumeData,
    ParsingOptions,
    PlacementMetadata,
    RawDocument,
    ResumeData,
    SectionClassification,
    SectionExtractions,
    UncertaintyDetection,
)
from resume_intake.core.section_classifier import SectionClassifier
from resume_intake.core.text_normalization import normalize_text

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 50
MAX_REASONABLE_SKILLS = 100
MAX_RECOMMENDATIONS = 8


def overall_quality(score: float) -> OverallQuality:
    if score >= 0.85:
        return "excellent"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "fair"
    return "poor"


def to_parsed_resume_data(extractions: SectionExtractions) -> ParsedResumeData:
    return ParsedResumeData(
        contact=extractions.contact.data,
        work_experiences=extractions.experience.data,
        education=extractions.education.data,
        skills=extractions.skills.data,
        summary=extractions.summary.data,
    )


def to_resume_data(parsed: ParsedResumeData) -> ResumeData:
    """Builder-side record; sections with data are switched on."""
    contact = parsed.contact
    has_contact = any([contact.first_name, contact.last_name, contact.email, contact.phone])
    return ResumeData(
        contact=contact,
        summary=parsed.summary,
        work_experiences=parsed.work_experiences,
        education=parsed.education,
        skills=parsed.skills,
        active_sections=ActiveSections(
            contact=has_contact,
            summary=bool(parsed.summary),
            experience=bool(parsed.work_experiences),
            education=bool(parsed.education),
            skills=bool(parsed.skills),
        ),
    )


class ResumePipeline:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        scoring: Optional[ScoringConfig] = None,
        *,
        ingestor: Optional[DocumentIngestor] = None,
        classifier: Optional[SectionClassifier] = None,
        extractor: Optional[FieldExtractor] = None,
    ):
        self.settings = settings or get_settings()
        self.scoring = scoring or self.settings.scoring
        self.ingestor = ingestor or DocumentIngestor(self.settings)
        self.classifier = classifier or SectionClassifier()
        self.extractor = extractor or FieldExtractor(self.settings.extraction_workers)
        self.calculator = ConfidenceCalculator(self.scoring)
        self.detector = UncertaintyDetector(self.scoring)
        self.decider = PlacementDecider(self.scoring)

    def new_context(self, document_name: str = "", on_progress: Optional[ProgressCallback] = None) -> ParsingContext:
        return ParsingContext(
            document_name=document_name,
            max_logs=self.settings.log_buffer_size,
            on_progress=on_progress,
        )

    async def parse_document(
        self,
        raw: RawDocument,
        options: Optional[ParsingOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        context: Optional[ParsingContext] = None,
    ) -> IntelligentPlacementResult:
        """
        Parse an uploaded résumé into a placement result.

        Raises:
            ParserError: from ingestion, INSUFFICIENT_DATA when the text or the
                parsed data is too thin, or any unexpected failure converted by
                ErrorHandler. Every error is recorded on the context first.
        """
        options = options or self.settings.default_options()
        context = context or self.new_context(raw.filename, on_progress)
        context.report_progress(0, "Starting")
        context.info("pipeline", f"Parsing {raw.filename or 'upload'}", {"size_bytes": raw.size_bytes})
        context.start_timer("pipeline")
        try:
            extracted = await self.ingestor.ingest(raw, options, context)

            context.start_timer("normalization")
            text = normalize_text(extracted.text)
            context.end_timer("normalization", category="normalization")
            context.report_progress(70, "Text normalized")

            self.validate_text(text, options, context)
            result = await asyncio.to_thread(self.process_text, text, context, extracted.method)
            self.validate_parsed_data(result.processed_data, options, context)
        except Exception as e:
            error = ErrorHandler.handle(e, context)
            if error is e:
                raise
            raise error from e
        finally:
            context.end_timer("pipeline", category="pipeline")

        result.metadata.processing_time_ms = context.elapsed_ms()
        context.report_progress(100, "Complete")
        context.info(
            "pipeline",
            f"Finished with overall confidence {result.confidence.overall:.2f}",
            {"quality": result.metadata.overall_quality, "auto_place": result.placement.should_auto_place},
        )
        return result

    def process_text(
        self,
        text: str,
        context: Optional[ParsingContext] = None,
        extraction_method: Optional[ExtractionMethod] = None,
    ) -> IntelligentPlacementResult:
        context = context or self.new_context()

        context.start_timer("classification")
        classification = self.classifier.classify(text)
        context.end_timer("classification", category="classification")
        context.info(
            "classification",
            f"Found sections: {', '.join(s.value for s in classification.sections) or 'none'}",
            {"confidence": classification.classification_confidence},
        )
        for warning in classification.warnings:
            context.warn("classification", warning)
        context.report_progress(75, "Sections classified")

        context.start_timer("extraction")
        extractions = self.extractor.extract_all(text, classification)
        context.end_timer("extraction", category="extraction")
        for name, result in extractions.scored().items():
            for warning in result.warnings:
                context.warn("extraction", warning, {"section": name})
        context.report_progress(85, "Fields extracted")

        return self.score_and_place(text, classification, extractions, context, extraction_method)

    def score_and_place(
        self,
        text: str,
        classification: SectionClassification,
        extractions: SectionExtractions,
        context: ParsingContext,
        extraction_method: Optional[ExtractionMethod] = None,
    ) -> IntelligentPlacementResult:
        context.start_timer("scoring")
        score = self.calculator.calculate(classification, extractions)
        context.end_timer("scoring", category="scoring")
        context.info("scoring", f"Overall confidence {score.overall:.2f}", score.breakdown.model_dump())
        context.report_progress(90, "Confidence scored")

        uncertainty = self.detector.detect(score, extractions)
        placement = self.decider.decide(score, uncertainty)
        context.info(
            "placement",
            placement.reasoning,
            {"uncertain_fields": len(uncertainty.uncertain_fields), "auto_place": placement.should_auto_place},
        )
        context.report_progress(95, "Placement decided")

        metadata = PlacementMetadata(
            processing_time_ms=context.elapsed_ms(),
            text_length=len(text),
            sections_found=[s.value for s in classification.sections],
            overall_quality=overall_quality(score.overall),
            recommendations=self.recommendations(classification, extractions, score, uncertainty, extraction_method),
            extraction_method=extraction_method,
        )
        return IntelligentPlacementResult(
            classification=classification,
            extraction=extractions,
            confidence=score,
            uncertainty=uncertainty,
            placement=placement,
            processed_data=to_parsed_resume_data(extractions),
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_text(self, text: str, options: ParsingOptions, context: ParsingContext) -> None:
        if not text.strip():
            raise ParserError(
                ErrorCode.INSUFFICIENT_DATA,
                "No text could be extracted from the document",
                severity=ErrorSeverity.HIGH,
            )
        if len(text) < MIN_TEXT_LENGTH:
            message = f"Extracted text is very short ({len(text)} characters)"
            if options.strict_validation:
                raise ParserError(
                    ErrorCode.INSUFFICIENT_DATA,
                    message,
                    severity=ErrorSeverity.HIGH,
                    context={"text_length": len(text)},
                )
            context.warn("pipeline", message)

    def validate_parsed_data(self, data: ParsedResumeData, options: ParsingOptions, context: ParsingContext) -> List[str]:
        """
        Check the parsed record for missing essentials.

        Missing name, email or experience are errors under strict validation
        (raised together as INSUFFICIENT_DATA) and warnings otherwise.
        """
        errors: List[str] = []
        warnings: List[str] = []
        essential = errors if options.strict_validation else warnings

        contact = data.contact
        if not (contact.first_name or contact.last_name):
            essential.append("Missing candidate name")
        if not contact.email:
            essential.append("Missing email address")
        if not data.work_experiences:
            essential.append("No work experience found")
        if not contact.phone:
            warnings.append("Missing phone number")
        if not data.education:
            warnings.append("No education found")
        if not data.skills:
            warnings.append("No skills found")
        elif len(data.skills) > MAX_REASONABLE_SKILLS:
            warnings.append(f"Found {len(data.skills)} skills; the list may include noise")

        for warning in warnings:
            if warning not in context.warnings:
                context.warn("pipeline", warning)
        if errors:
            raise ParserError(
                ErrorCode.INSUFFICIENT_DATA,
                "; ".join(errors),
                severity=ErrorSeverity.HIGH,
                context={"missing": errors},
            )
        return warnings

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @staticmethod
    def recommendations(
        classification: SectionClassification,
        extractions: SectionExtractions,
        score: ConfidenceScore,
        uncertainty: UncertaintyDetection,
        extraction_method: Optional[ExtractionMethod] = None,
    ) -> List[str]:
        out: List[str] = []
        for section in EXPECTED_SECTIONS:
            if section not in classification.sections:
                out.append(f"Add a clearly labeled {section.value} section")
        if extraction_method == ExtractionMethod.OCR:
            out.append("Text was recognized with OCR; check names, dates and numbers for misreads")
        if uncertainty.recommend_manual_review:
            out.append("Review the extracted data manually before saving")
        if not extractions.contact.data.email:
            out.append("Add an email address")
        for detail in score.details:
            if detail.suggestion:
                out.append(detail.suggestion)
        return list(dict.fromkeys(out))[:MAX_RECOMMENDATIONS]
