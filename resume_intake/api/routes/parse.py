import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from resume_intake.core.errors import ErrorCode, ParserError
from resume_intake.core.manual_override import apply_manual_overrides
from resume_intake.core.placement import placement_summary
from resume_intake.core.resume_pipeline import ResumePipeline, to_resume_data
from resume_intake.core.schemas import OverrideRequest, ParseResponse, ParsingOptions, RawDocument

logger = logging.getLogger(__name__)

router = APIRouter(tags=["parse"])

STATUS_BY_CODE = {
    ErrorCode.FILE_NOT_PROVIDED: 400,
    ErrorCode.FILE_EMPTY: 400,
    ErrorCode.FILE_TOO_LARGE: 413,
    ErrorCode.FILE_TYPE_UNSUPPORTED: 415,
    ErrorCode.FILE_CORRUPTED: 422,
    ErrorCode.PDF_INVALID_FORMAT: 422,
    ErrorCode.PDF_PASSWORD_PROTECTED: 422,
    ErrorCode.PDF_NO_TEXT_CONTENT: 422,
    ErrorCode.OCR_INSUFFICIENT_QUALITY: 422,
    ErrorCode.INSUFFICIENT_DATA: 422,
    ErrorCode.CONTACT_INFO_MISSING: 422,
    ErrorCode.WORK_EXPERIENCE_MISSING: 422,
    ErrorCode.EDUCATION_INFO_MISSING: 422,
    ErrorCode.TIMEOUT_EXCEEDED: 504,
}

EXAMPLE_RESPONSE = {
    "result": {
        "confidence": {
            "overall": 0.86,
            "breakdown": {"classification": 0.95, "extraction": 0.78, "validation": 0.9, "completeness": 0.85},
        },
        "placement": {
            "shouldAutoPlace": True,
            "requiresReview": False,
            "confidence": 0.86,
            "reasoning": "High confidence (86%) with no uncertain fields",
        },
        "metadata": {"overallQuality": "excellent", "extractionMethod": "native-pdf"},
    },
    "resumeData": {
        "contact": {
            "firstName": "John",
            "lastName": "Smith",
            "email": "john.smith@email.com",
            "phone": "(555) 123-4567",
            "city": "San Francisco",
            "state": "CA",
        },
        "workExperiences": [
            {
                "id": "exp-1",
                "jobTitle": "Software Engineer",
                "employer": "Acme Inc",
                "startDate": "2019-01-01",
                "current": True,
            }
        ],
        "skills": ["Python", "JavaScript", "React"],
        "activeSections": {"contact": True, "experience": True, "education": True, "skills": True},
    },
    "summary": "High confidence (86%), 0 uncertain field(s): placed automatically",
    "warnings": [],
}


@lru_cache
def get_pipeline() -> ResumePipeline:
    return ResumePipeline()


def http_error(err: ParserError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_CODE.get(err.code, 500), detail=err.to_dict())


@router.post(
    "/parse",
    response_model=ParseResponse,
    response_model_by_alias=True,
    summary="Parse Resume",
    description="Extract structured résumé data from a PDF, Word, text, RTF or image upload and decide whether it can be placed into the builder automatically.",
    responses={
        200: {
            "description": "Successfully parsed resume",
            "content": {"application/json": {"example": EXAMPLE_RESPONSE}},
        },
        400: {"description": "No file or an empty file uploaded"},
        413: {"description": "File exceeds the size limit"},
        415: {"description": "Unsupported file format"},
        422: {"description": "Document has too little extractable text or is an unreadable PDF"},
        504: {"description": "Processing exceeded the time limit"},
    },
)
async def parse_resume(
    file: UploadFile = File(..., description="Resume file (PDF, DOCX, DOC, TXT, RTF, JPG, PNG, GIF, BMP or TIFF)"),
    enable_ocr: Optional[bool] = Form(None),
    strict_validation: Optional[bool] = Form(None),
    ocr_language: Optional[str] = Form(None),
    timeout_ms: Optional[int] = Form(None),
    retry_attempts: Optional[int] = Form(None),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    """
    Parse a resume file into builder-ready data.

    **Returns:**
    - **result**: classification, per-section extraction, confidence breakdown,
      uncertain fields and the placement decision
    - **resumeData**: the record the builder loads, with active sections switched on
    - **summary**: one-line description of the placement decision
    - **warnings**: everything the parser was unsure about
    """
    overrides = {
        "enable_ocr": enable_ocr,
        "strict_validation": strict_validation,
        "ocr_language": ocr_language,
        "timeout_ms": timeout_ms,
        "retry_attempts": retry_attempts,
    }
    try:
        options = ParsingOptions(
            **{**pipeline.settings.default_options().model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e

    raw = RawDocument.from_bytes(await file.read(), file.filename or "", file.content_type or "")
    context = pipeline.new_context(raw.filename)
    try:
        result = await pipeline.parse_document(raw, options, context=context)
    except ParserError as err:
        logger.warning("parse failed for %s: %s %s", raw.filename or "upload", err.code.value, err.message)
        raise http_error(err) from err

    return ParseResponse(
        result=result,
        resume_data=to_resume_data(result.processed_data),
        summary=placement_summary(result),
        warnings=list(dict.fromkeys(context.warnings)),
    )


@router.post(
    "/parse/overrides",
    response_model=ParseResponse,
    response_model_by_alias=True,
    summary="Apply Manual Corrections",
    description="Merge human corrections into previously parsed data, then re-score and re-decide placement without re-reading the file.",
    responses={422: {"description": "Unknown field path or invalid corrected value"}},
)
async def apply_overrides(request: OverrideRequest, pipeline: ResumePipeline = Depends(get_pipeline)):
    context = pipeline.new_context("manual-override")
    try:
        result = apply_manual_overrides(
            request.processed_data,
            request.overrides,
            request.moves,
            pipeline=pipeline,
            context=context,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return ParseResponse(
        result=result,
        resume_data=to_resume_data(result.processed_data),
        summary=placement_summary(result),
        warnings=list(dict.fromkeys(context.warnings)),
    )
