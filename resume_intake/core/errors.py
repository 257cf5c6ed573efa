"""
Error taxonomy for the resume pipeline.

Every failure that leaves the pipeline is a ParserError carrying a machine code,
a fixed severity, a recoverability flag and a user-facing message that the UI can
show without knowing the taxonomy. Arbitrary exceptions raised by third-party
libraries (pdfplumber, python-docx, pytesseract) are converted by ErrorHandler.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from resume_intake.core.parsing_context import ParsingContext
    from resume_intake.core.schemas import RawDocument

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    # File validation
    FILE_NOT_PROVIDED = "FILE_NOT_PROVIDED"
    FILE_EMPTY = "FILE_EMPTY"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    FILE_TYPE_UNSUPPORTED = "FILE_TYPE_UNSUPPORTED"
    FILE_CORRUPTED = "FILE_CORRUPTED"

    # PDF
    PDF_INVALID_FORMAT = "PDF_INVALID_FORMAT"
    PDF_PASSWORD_PROTECTED = "PDF_PASSWORD_PROTECTED"
    PDF_NO_TEXT_CONTENT = "PDF_NO_TEXT_CONTENT"
    PDF_EXTRACTION_FAILED = "PDF_EXTRACTION_FAILED"

    # OCR
    OCR_INITIALIZATION_FAILED = "OCR_INITIALIZATION_FAILED"
    OCR_PROCESSING_FAILED = "OCR_PROCESSING_FAILED"
    OCR_INSUFFICIENT_QUALITY = "OCR_INSUFFICIENT_QUALITY"

    # Word processor / text
    DOCX_PARSING_FAILED = "DOCX_PARSING_FAILED"
    TEXT_EXTRACTION_FAILED = "TEXT_EXTRACTION_FAILED"

    # Data sufficiency
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    CONTACT_INFO_MISSING = "CONTACT_INFO_MISSING"
    WORK_EXPERIENCE_MISSING = "WORK_EXPERIENCE_MISSING"
    EDUCATION_INFO_MISSING = "EDUCATION_INFO_MISSING"

    # System
    MEMORY_LIMIT_EXCEEDED = "MEMORY_LIMIT_EXCEEDED"
    TIMEOUT_EXCEEDED = "TIMEOUT_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# code -> (severity, recoverable)
ERROR_PROFILE: Dict[ErrorCode, tuple] = {
    ErrorCode.FILE_NOT_PROVIDED: (ErrorSeverity.HIGH, False),
    ErrorCode.FILE_EMPTY: (ErrorSeverity.HIGH, False),
    ErrorCode.FILE_TOO_LARGE: (ErrorSeverity.HIGH, False),
    ErrorCode.FILE_TYPE_UNSUPPORTED: (ErrorSeverity.HIGH, False),
    ErrorCode.FILE_CORRUPTED: (ErrorSeverity.HIGH, False),
    ErrorCode.PDF_INVALID_FORMAT: (ErrorSeverity.HIGH, False),
    ErrorCode.PDF_PASSWORD_PROTECTED: (ErrorSeverity.HIGH, False),
    ErrorCode.PDF_NO_TEXT_CONTENT: (ErrorSeverity.MEDIUM, False),
    ErrorCode.PDF_EXTRACTION_FAILED: (ErrorSeverity.HIGH, False),
    ErrorCode.OCR_INITIALIZATION_FAILED: (ErrorSeverity.MEDIUM, True),
    ErrorCode.OCR_PROCESSING_FAILED: (ErrorSeverity.MEDIUM, True),
    ErrorCode.OCR_INSUFFICIENT_QUALITY: (ErrorSeverity.MEDIUM, True),
    ErrorCode.DOCX_PARSING_FAILED: (ErrorSeverity.MEDIUM, True),
    ErrorCode.TEXT_EXTRACTION_FAILED: (ErrorSeverity.MEDIUM, True),
    ErrorCode.INSUFFICIENT_DATA: (ErrorSeverity.MEDIUM, True),
    ErrorCode.CONTACT_INFO_MISSING: (ErrorSeverity.LOW, True),
    ErrorCode.WORK_EXPERIENCE_MISSING: (ErrorSeverity.LOW, True),
    ErrorCode.EDUCATION_INFO_MISSING: (ErrorSeverity.LOW, True),
    ErrorCode.MEMORY_LIMIT_EXCEEDED: (ErrorSeverity.CRITICAL, False),
    ErrorCode.TIMEOUT_EXCEEDED: (ErrorSeverity.HIGH, True),
    ErrorCode.NETWORK_ERROR: (ErrorSeverity.MEDIUM, True),
    ErrorCode.UNKNOWN_ERROR: (ErrorSeverity.MEDIUM, True),
}

USER_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.FILE_NOT_PROVIDED: "Please select a file to upload.",
    ErrorCode.FILE_EMPTY: "The selected file appears to be empty. Please choose a different file.",
    ErrorCode.FILE_TYPE_UNSUPPORTED: (
        "This file type is not supported. Please upload a PDF, DOCX, DOC, TXT, RTF, or image file."
    ),
    ErrorCode.FILE_CORRUPTED: "The file appears to be damaged. Please re-export it and try again.",
    ErrorCode.PDF_INVALID_FORMAT: "This file does not look like a valid PDF. Please re-export it and try again.",
    ErrorCode.PDF_PASSWORD_PROTECTED: "This PDF is password protected. Please provide an unlocked PDF file.",
    ErrorCode.PDF_NO_TEXT_CONTENT: (
        "No text could be extracted from this PDF. It may be an image-based PDF or corrupted."
    ),
    ErrorCode.OCR_INITIALIZATION_FAILED: (
        "Text recognition is unavailable right now. Please upload a text-based PDF or DOCX instead."
    ),
    ErrorCode.OCR_PROCESSING_FAILED: (
        "Could not extract text from the image-based content. The image quality may be too poor."
    ),
    ErrorCode.OCR_INSUFFICIENT_QUALITY: (
        "The scanned text was too unclear to read reliably. Please upload a sharper scan."
    ),
    ErrorCode.DOCX_PARSING_FAILED: "We could not read this Word document. Please save it again or upload a PDF.",
    ErrorCode.TEXT_EXTRACTION_FAILED: "We could not read the text in this file. Please check its encoding.",
    ErrorCode.INSUFFICIENT_DATA: (
        "Not enough information could be extracted from the resume. "
        "Please check if the file contains readable text."
    ),
    ErrorCode.CONTACT_INFO_MISSING: (
        "Could not find contact information in the resume. "
        "Please ensure your name and email are clearly visible."
    ),
    ErrorCode.WORK_EXPERIENCE_MISSING: "No work experience was found. You can add it manually.",
    ErrorCode.EDUCATION_INFO_MISSING: "No education history was found. You can add it manually.",
    ErrorCode.MEMORY_LIMIT_EXCEEDED: "This file is too complex to process. Please try a smaller file.",
    ErrorCode.TIMEOUT_EXCEEDED: (
        "Processing took too long and was cancelled. Please try with a smaller file or simpler format."
    ),
    ErrorCode.NETWORK_ERROR: "A network problem interrupted processing. Please try again.",
}
DEFAULT_USER_MESSAGE = "An error occurred while processing your resume. Please try again or contact support."


ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "txt", "rtf", "jpg", "jpeg", "png", "gif", "bmp", "tif", "tiff"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/markdown",
    "application/rtf",
    "text/rtf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/bmp",
    "image/tiff",
}


class ParserError(Exception):
    """A classified pipeline failure."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        severity: Optional[ErrorSeverity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        default_severity, default_recoverable = ERROR_PROFILE.get(code, (ErrorSeverity.MEDIUM, True))
        self.code = code
        self.message = message
        self.severity = severity or default_severity
        self.context: Dict[str, Any] = dict(context or {})
        self.recoverable = default_recoverable if recoverable is None else recoverable
        self.user_message = user_message or self._generate_user_message()
        self.timestamp = datetime.now(timezone.utc)

    def _generate_user_message(self) -> str:
        if self.code == ErrorCode.FILE_TOO_LARGE:
            max_size = self.context.get("max_size_bytes")
            if max_size:
                return f"File is too large. Maximum size is {max_size // (1024 * 1024)}MB."
            return "File is too large. Please upload a smaller file."
        return USER_MESSAGES.get(self.code, DEFAULT_USER_MESSAGE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "recoverable": self.recoverable,
            "userMessage": self.user_message,
            "timestamp": self.timestamp.isoformat(),
        }

    def __repr__(self) -> str:
        return f"ParserError({self.code.value}, {self.message!r})"


# Keyword checks used when a library raises something untyped.
# Order matters: a "password" message from pdfminer also mentions the PDF.
_KEYWORD_CODES = [
    (("password", "encrypted"), ErrorCode.PDF_PASSWORD_PROTECTED),
    (("invalid pdf", "pdfsyntaxerror", "no /root object", "is this really a pdf"), ErrorCode.PDF_INVALID_FORMAT),
    (("tesseract", "ocr"), ErrorCode.OCR_PROCESSING_FAILED),
    (("docx", "package not found", "not a zip file"), ErrorCode.DOCX_PARSING_FAILED),
    (("memory", "heap"), ErrorCode.MEMORY_LIMIT_EXCEEDED),
    (("timeout", "timed out"), ErrorCode.TIMEOUT_EXCEEDED),
]


def _exception_text(exc: BaseException) -> str:
    """Message text of an exception and its cause chain, lowercased."""
    parts = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(type(current).__name__)
        parts.append(str(current))
        current = current.__cause__ or current.__context__
    return " ".join(parts).lower()


class ErrorHandler:
    """Converts, records and validates. Stateless; statistics live on the ParsingContext."""

    @staticmethod
    def classify(exc: BaseException, default: ErrorCode = ErrorCode.UNKNOWN_ERROR) -> ErrorCode:
        if isinstance(exc, ParserError):
            return exc.code
        if isinstance(exc, MemoryError):
            return ErrorCode.MEMORY_LIMIT_EXCEEDED
        if isinstance(exc, TimeoutError):
            return ErrorCode.TIMEOUT_EXCEEDED
        text = _exception_text(exc)
        for keywords, code in _KEYWORD_CODES:
            if any(k in text for k in keywords):
                return code
        return default

    @staticmethod
    def handle(
        exc: BaseException,
        context: Optional["ParsingContext"] = None,
        *,
        default: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        extra: Optional[Dict[str, Any]] = None,
    ) -> ParserError:
        """Return exc as a ParserError (converting if needed) and record it on the context."""
        if isinstance(exc, ParserError):
            error = exc
            if extra:
                error.context.update(extra)
        else:
            code = ErrorHandler.classify(exc, default=default)
            error = ParserError(
                code,
                str(exc) or type(exc).__name__,
                context={"original_error": type(exc).__name__, **(extra or {})},
            )
            error.__cause__ = exc
        if context is not None:
            context.record_error(error)
        else:
            logger.warning("[%s] %s", error.code.value, error.message)
        return error

    @staticmethod
    def validate_file(raw: Optional["RawDocument"], max_size_bytes: int) -> None:
        """Fail fast before any extraction strategy is chosen."""
        if raw is None:
            raise ParserError(ErrorCode.FILE_NOT_PROVIDED, "No file provided")

        file_context = {"filename": raw.filename, "size_bytes": raw.size_bytes}
        if raw.size_bytes == 0 or not raw.content:
            raise ParserError(ErrorCode.FILE_EMPTY, "File is empty", context=file_context)

        if raw.size_bytes > max_size_bytes:
            raise ParserError(
                ErrorCode.FILE_TOO_LARGE,
                f"File size {raw.size_bytes} exceeds maximum {max_size_bytes}",
                context={**file_context, "max_size_bytes": max_size_bytes},
            )

        mime = (raw.declared_mime_type or "").split(";")[0].strip()
        if raw.extension not in ALLOWED_EXTENSIONS and mime not in ALLOWED_MIME_TYPES:
            raise ParserError(
                ErrorCode.FILE_TYPE_UNSUPPORTED,
                f"Unsupported file type: {raw.extension or mime or 'unknown'}",
                context={**file_context, "mime_type": mime},
            )

    @staticmethod
    def is_retryable(exc: BaseException) -> bool:
        """Whether another attempt of the same strategy could plausibly succeed."""
        code = ErrorHandler.classify(exc)
        return code not in {
            ErrorCode.PDF_PASSWORD_PROTECTED,
            ErrorCode.PDF_INVALID_FORMAT,
            ErrorCode.FILE_EMPTY,
            ErrorCode.FILE_TOO_LARGE,
            ErrorCode.FILE_TYPE_UNSUPPORTED,
            ErrorCode.MEMORY_LIMIT_EXCEEDED,
            ErrorCode.TIMEOUT_EXCEEDED,
        }
